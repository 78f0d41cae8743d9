"""Rust target: serde structs and enums with a ``validate`` method."""

from __future__ import annotations

from llm_forge.errors import UnsupportedConstructError
from llm_forge.ir.models import (
    ArrayType,
    Constraint,
    ConstraintKind,
    EnumType,
    EnumValueType,
    ObjectType,
    PrimitiveKind,
    TypeReference,
    UnionType,
)
from llm_forge.mappers.base import TypeMapper, format_number
from llm_forge.mappers.naming import pascal_case


class RustTypeMapper(TypeMapper):
    language = "rust"
    primitives = {
        PrimitiveKind.STRING: "String",
        PrimitiveKind.INTEGER: "i64",
        PrimitiveKind.FLOAT: "f64",
        PrimitiveKind.BOOLEAN: "bool",
        PrimitiveKind.NULL: "()",
        PrimitiveKind.ANY: "serde_json::Value",
        PrimitiveKind.BINARY: "Vec<u8>",
    }

    def nullable(self, base: str, imports: set[str]) -> str:
        return f"Option<{base}>"

    def array_of(self, item: str, imports: set[str]) -> str:
        return f"Vec<{item}>"

    def map_of(self, value: str, imports: set[str]) -> str:
        imports.add("std::collections::HashMap")
        return f"HashMap<String, {value}>"

    def map_constraints(self, constraints: list[Constraint], subject: str) -> list[str]:
        """Return ``if`` statements that bail out of ``validate`` on a violation."""
        guards = []
        for c in constraints:
            condition = _condition(c, subject)
            if condition is None:
                continue
            label = subject.replace("self.", "").strip("()*")
            message = f"{label} violates {c.kind.value} {_display(c.value)}"
            guards.append(f"if {condition} {{ return Err({_rust_str(message)}.into()); }}")
        return guards

    # -- Declarations ----------------------------------------------------

    def render_object(self, t: ObjectType, imports: set[str]) -> str:
        imports.update(("serde::Deserialize", "serde::Serialize"))
        name = self.type_name(t.id)
        tags = self.enclosing_tags(t.id)
        lines = self._doc(self.doc_lines(t), "")
        lines.append("#[derive(Debug, Clone, PartialEq, Serialize, Deserialize)]")
        if t.additional_properties is False:
            lines.append("#[serde(deny_unknown_fields)]")
        lines.append(f"pub struct {name} {{")
        guards: list[str] = []
        for prop in t.properties:
            field = self.property_name(prop.name)
            if prop.name in tags:
                lines.append(f"    // `{prop.name}` is written by the enclosing tagged enum.")
                continue
            optional = self.is_optional(t, prop)
            annotation = self.render_reference(prop.type_ref, imports, path=f"{t.id}.{prop.name}")
            if self._needs_box(prop.type_ref, t.id):
                annotation = _boxed(annotation)
            if optional and not annotation.startswith("Option<"):
                annotation = f"Option<{annotation}>"
            lines += self._doc([prop.description.strip()] if prop.description else [], "    ")
            if prop.deprecated:
                lines.append("    #[deprecated]")
            attrs = []
            if field.removeprefix("r#") != prop.name:
                attrs.append(f"rename = {_rust_str(prop.name)}")
            if annotation.startswith("Option<"):
                attrs += ["default", 'skip_serializing_if = "Option::is_none"']
            if attrs:
                lines.append(f"    #[serde({', '.join(attrs)})]")
            lines.append(f"    pub {field}: {annotation},")

            constraints = self.property_constraints(prop)
            if annotation.startswith("Option<"):
                checks = self.map_constraints(constraints, "(*value)")
                if checks:
                    guards.append(f"        if let Some(value) = &self.{field} {{")
                    guards += [f"            {g}" for g in checks]
                    guards.append("        }")
            else:
                guards += [f"        {g}" for g in self.map_constraints(constraints, f"self.{field}")]
        if t.additional_properties not in (None, False):
            value = self.map_value(t, imports)
            imports.add("std::collections::HashMap")
            lines.append("    #[serde(flatten)]")
            lines.append(f"    pub additional_properties: HashMap<String, {value}>,")
        lines.append("}")
        lines.append("")
        lines.append(f"impl {name} {{")
        lines.append("    /// Check the field constraints declared by the API schema.")
        lines.append("    pub fn validate(&self) -> Result<(), String> {")
        lines += guards
        lines.append("        Ok(())")
        lines.append("    }")
        lines.append("}")
        return "\n".join(lines)

    def render_enum(self, t: EnumType, imports: set[str]) -> str:
        name = self.type_name(t.id)
        lines = self._doc(self.doc_lines(t), "")
        members = []
        used: set[str] = set()
        for value in t.values:
            member = self.naming.enum_member_name(str(value.name or value.value))
            while member in used:
                member = f"{member}_"
            used.add(member)
            members.append((member, value))
        if t.value_type == EnumValueType.STRING:
            imports.update(("serde::Deserialize", "serde::Serialize"))
            lines.append("#[derive(Debug, Clone, Copy, PartialEq, Eq, Hash, Serialize, Deserialize)]")
            lines.append(f"pub enum {name} {{")
            for member, value in members:
                lines.append(f"    #[serde(rename = {_rust_str(str(value.value))})]")
                lines.append(f"    {member},")
            lines.append("}")
            return "\n".join(lines)
        for value in t.values:
            if not isinstance(value.value, int) or isinstance(value.value, bool):
                raise UnsupportedConstructError(
                    t.id, "unsupported_enum_value", f"Rust enums cannot carry the non-integer value {value.value!r}"
                )
        imports.update(("serde_repr::Deserialize_repr", "serde_repr::Serialize_repr"))
        lines.append("#[derive(Debug, Clone, Copy, PartialEq, Eq, Hash, Serialize_repr, Deserialize_repr)]")
        lines.append("#[repr(i64)]")
        lines.append(f"pub enum {name} {{")
        for member, value in members:
            lines.append(f"    {member} = {value.value},")
        lines.append("}")
        return "\n".join(lines)

    def render_union(self, t: UnionType, imports: set[str]) -> str:
        imports.update(("serde::Deserialize", "serde::Serialize"))
        name = self.type_name(t.id)
        lines = self._doc(self.doc_lines(t), "")
        lines.append("#[derive(Debug, Clone, PartialEq, Serialize, Deserialize)]")
        tagged = self.is_tagged_union(t)
        lines.append(f"#[serde(tag = {_rust_str(t.discriminator)})]" if tagged else "#[serde(untagged)]")
        lines.append(f"pub enum {name} {{")
        used: set[str] = set()
        for i, ref in enumerate(t.variants):
            inner = self.render_reference(ref, imports, path=f"{t.id}.variants[{i}]")
            variant = self._variant_name(ref, i)
            while variant in used:
                variant = f"{variant}{i}"
            used.add(variant)
            if tagged:
                lines.append(f"    #[serde(rename = {_rust_str(self.variant_literal(t, ref))})]")
            lines.append(f"    {variant}({inner}),")
        lines.append("}")
        return "\n".join(lines)

    def _needs_box(self, ref: TypeReference, owner: str) -> bool:
        """A field leading back to its owner without a heap container in between."""
        target = self.resolve(ref)
        if isinstance(target, ArrayType) or (isinstance(target, ObjectType) and target.is_map):
            return False
        return self.reaches(ref, owner)

    def _variant_name(self, ref: TypeReference, index: int) -> str:
        target = self.resolve(ref)
        if target is None:
            return pascal_case(ref.primitive.value)
        return self.type_name(target.id) if target.kind.value in ("object", "enum", "union") else f"Variant{index}"

    def _doc(self, doc: list[str], indent: str) -> list[str]:
        return [f"{indent}/// {line}".rstrip() for line in doc]

    def import_lines(self, imports: list[str]) -> list[str]:
        return [f"use {path};" for path in sorted(set(imports))]


def _boxed(annotation: str) -> str:
    if annotation.startswith("Option<"):
        return f"Option<Box<{annotation[len('Option<'):-1]}>>"
    return f"Box<{annotation}>"


def _rust_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _display(value) -> str:
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(map(str, value)) + "]"
    return format_number(value) if isinstance(value, (int, float)) else str(value)


def _float(value) -> str:
    text = format_number(value)
    return text if "." in text or "e" in text else f"{text}.0"


def _condition(c: Constraint, s: str) -> str | None:
    number = f"({s} as f64)"
    if c.kind == ConstraintKind.MINIMUM:
        return f"{number} < {_float(c.value)}"
    if c.kind == ConstraintKind.MAXIMUM:
        return f"{number} > {_float(c.value)}"
    if c.kind == ConstraintKind.EXCLUSIVE_MINIMUM:
        return f"{number} <= {_float(c.value)}"
    if c.kind == ConstraintKind.EXCLUSIVE_MAXIMUM:
        return f"{number} >= {_float(c.value)}"
    if c.kind == ConstraintKind.MULTIPLE_OF:
        return f"{number} % {_float(c.value)} != 0.0"
    if c.kind == ConstraintKind.MIN_LENGTH:
        return f"{s}.chars().count() < {c.value}"
    if c.kind == ConstraintKind.MAX_LENGTH:
        return f"{s}.chars().count() > {c.value}"
    if c.kind == ConstraintKind.MIN_ITEMS:
        return f"{s}.len() < {c.value}"
    if c.kind == ConstraintKind.MAX_ITEMS:
        return f"{s}.len() > {c.value}"
    if c.kind == ConstraintKind.PATTERN:
        return f"!regex::Regex::new({_rust_str(c.value)}).map(|re| re.is_match(&{s})).unwrap_or(false)"
    if c.kind == ConstraintKind.ENUM:
        values = ", ".join(_rust_str(str(v)) for v in c.value)
        return f"![{values}].contains(&{s}.to_string().as_str())"
    if c.kind == ConstraintKind.UNIQUE_ITEMS and c.value:
        return f"{s}.iter().enumerate().any(|(i, item)| {s}[..i].contains(item))"
    return None
