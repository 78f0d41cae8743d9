"""TypeScript target: interfaces, string/number enums, union aliases with guards.

Interfaces keep the wire property names so values round-trip through
``JSON.parse``/``JSON.stringify`` untouched. Constraints become a
``validateX`` function returning the list of violations.
"""

from __future__ import annotations

import json
import re

from llm_forge.ir.models import (
    Constraint,
    ConstraintKind,
    EnumType,
    EnumValueType,
    ObjectType,
    PrimitiveKind,
    UnionType,
)
from llm_forge.mappers.base import TypeMapper, format_number

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


class TypeScriptTypeMapper(TypeMapper):
    language = "typescript"
    primitives = {
        PrimitiveKind.STRING: "string",
        PrimitiveKind.INTEGER: "number",
        PrimitiveKind.FLOAT: "number",
        PrimitiveKind.BOOLEAN: "boolean",
        PrimitiveKind.NULL: "null",
        PrimitiveKind.ANY: "unknown",
        PrimitiveKind.BINARY: "Blob",
    }

    def nullable(self, base: str, imports: set[str]) -> str:
        return f"{base} | null"

    def array_of(self, item: str, imports: set[str]) -> str:
        return f"Array<{item}>" if " " in item else f"{item}[]"

    def map_of(self, value: str, imports: set[str]) -> str:
        return f"Record<string, {value}>"

    def map_constraints(self, constraints: list[Constraint], subject: str) -> list[str]:
        guards = []
        for c in constraints:
            check = _CHECKS.get(c.kind)
            if check is None:
                continue
            condition, message = check(subject, c.value)
            guards.append(f"if ({condition}) errors.push({json.dumps(message)});")
        return guards

    # -- Declarations ----------------------------------------------------

    def render_object(self, t: ObjectType, imports: set[str]) -> str:
        name = self.type_name(t.id)
        tags = self.discriminator_tags(t.id)
        lines = self._jsdoc(self.doc_lines(t), "")
        lines.append(f"export interface {name} {{")
        guards: list[str] = []
        for prop in t.properties:
            key = _key(prop.name)
            optional = self.is_optional(t, prop)
            if prop.name in tags:
                annotation = " | ".join(json.dumps(v) for v in tags[prop.name])
            else:
                annotation = self.render_reference(prop.type_ref, imports, path=f"{t.id}.{prop.name}")
            doc = [prop.description.strip()] if prop.description else []
            if prop.deprecated:
                doc.append("@deprecated")
            lines += self._jsdoc(doc, "  ")
            lines.append(f"  {key}{'?' if optional else ''}: {annotation};")
            checks = self.map_constraints(self.property_constraints(prop), f"value{_access(prop.name)}")
            if checks:
                if optional or prop.type_ref.nullable:
                    guards.append(f"  if (value{_access(prop.name)} != null) {{")
                    guards += [f"    {g}" for g in checks]
                    guards.append("  }")
                else:
                    guards += [f"  {g}" for g in checks]
        if t.additional_properties is True:
            lines.append("  [key: string]: unknown;")
        lines.append("}")
        lines.append("")
        lines.append(f"export function validate{name}(value: {name}): string[] {{")
        lines.append("  const errors: string[] = [];")
        lines += guards
        lines.append("  return errors;")
        lines.append("}")
        return "\n".join(lines)

    def render_enum(self, t: EnumType, imports: set[str]) -> str:
        name = self.type_name(t.id)
        lines = self._jsdoc(self.doc_lines(t), "")
        lines.append(f"export enum {name} {{")
        used: set[str] = set()
        for value in t.values:
            member = self.naming.enum_member_name(str(value.name or value.value))
            while member in used:
                member = f"{member}_"
            used.add(member)
            literal = json.dumps(value.value) if t.value_type == EnumValueType.STRING else format_number(value.value)
            if value.deprecated:
                lines.append("  /** @deprecated */")
            lines.append(f"  {member} = {literal},")
        lines.append("}")
        lines.append("")
        lines.append(f"export function is{name}(value: unknown): value is {name} {{")
        lines.append(f"  return (Object.values({name}) as unknown[]).includes(value);")
        lines.append("}")
        return "\n".join(lines)

    def render_union(self, t: UnionType, imports: set[str]) -> str:
        name = self.type_name(t.id)
        variants = [self.render_reference(v, imports, path=f"{t.id}.variants[{i}]") for i, v in enumerate(t.variants)]
        lines = self._jsdoc(self.doc_lines(t), "")
        lines.append(f"export type {name} = {' | '.join(variants) or 'never'};")
        if t.discriminator:
            lines.append("")
            lines.append(f"export const {name}Discriminator = {json.dumps(t.discriminator)};")
            for ref in t.variants:
                literal = self.variant_literal(t, ref)
                if literal is None:
                    continue
                variant = self.type_name(ref.type_id)
                lines.append("")
                lines.append(f"export function is{variant}(value: {name}): value is {variant} {{")
                lines.append(f"  return (value as {variant}){_access(t.discriminator)} === {json.dumps(literal)};")
                lines.append("}")
        return "\n".join(lines)

    def _jsdoc(self, doc: list[str], indent: str) -> list[str]:
        if not doc:
            return []
        if len(doc) == 1:
            return [f"{indent}/** {doc[0]} */"]
        return [f"{indent}/**"] + [f"{indent} * {line}".rstrip() for line in doc] + [f"{indent} */"]

    def import_lines(self, imports: list[str]) -> list[str]:
        return []


def _key(name: str) -> str:
    return name if _IDENTIFIER.match(name) else json.dumps(name)


def _access(name: str) -> str:
    return f".{name}" if _IDENTIFIER.match(name) else f"[{json.dumps(name)}]"


def _check_pattern(subject, value):
    return f"!new RegExp({json.dumps(value)}).test(String({subject}))", f"{subject} must match {value}"


_CHECKS = {
    ConstraintKind.MINIMUM: lambda s, v: (f"{s} < {format_number(v)}", f"{s} must be >= {format_number(v)}"),
    ConstraintKind.MAXIMUM: lambda s, v: (f"{s} > {format_number(v)}", f"{s} must be <= {format_number(v)}"),
    ConstraintKind.EXCLUSIVE_MINIMUM: lambda s, v: (f"{s} <= {format_number(v)}", f"{s} must be > {format_number(v)}"),
    ConstraintKind.EXCLUSIVE_MAXIMUM: lambda s, v: (f"{s} >= {format_number(v)}", f"{s} must be < {format_number(v)}"),
    ConstraintKind.MULTIPLE_OF: lambda s, v: (
        f"{s} % {format_number(v)} !== 0",
        f"{s} must be a multiple of {format_number(v)}",
    ),
    ConstraintKind.MIN_LENGTH: lambda s, v: (f"{s}.length < {v}", f"{s} must have at least {v} characters"),
    ConstraintKind.MAX_LENGTH: lambda s, v: (f"{s}.length > {v}", f"{s} must have at most {v} characters"),
    ConstraintKind.MIN_ITEMS: lambda s, v: (f"{s}.length < {v}", f"{s} must have at least {v} items"),
    ConstraintKind.MAX_ITEMS: lambda s, v: (f"{s}.length > {v}", f"{s} must have at most {v} items"),
    ConstraintKind.UNIQUE_ITEMS: lambda s, v: (f"new Set({s}).size !== {s}.length", f"{s} must not contain duplicates"),
    ConstraintKind.PATTERN: _check_pattern,
    ConstraintKind.ENUM: lambda s, v: (
        f"!{json.dumps(list(v))}.includes({s} as never)",
        f"{s} must be one of {', '.join(map(str, v))}",
    ),
}
