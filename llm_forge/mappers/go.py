"""Go target: tagged structs, validated string enums and union wrappers.

Go has neither sum types nor closed enums, so unions become a struct with
one pointer per variant plus custom JSON marshalling, and enums become a
named type with an ``IsValid`` check run on unmarshal.
"""

from __future__ import annotations

import json

from llm_forge.ir.models import (
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

# Already nil-able, so a pointer would only add a second level of nullability.
_NILABLE = ("[]", "map[", "any", "*")


class GoTypeMapper(TypeMapper):
    language = "go"
    primitives = {
        PrimitiveKind.STRING: "string",
        PrimitiveKind.INTEGER: "int64",
        PrimitiveKind.FLOAT: "float64",
        PrimitiveKind.BOOLEAN: "bool",
        PrimitiveKind.NULL: "any",
        PrimitiveKind.ANY: "any",
        PrimitiveKind.BINARY: "[]byte",
    }

    def nullable(self, base: str, imports: set[str]) -> str:
        if base.startswith(_NILABLE):
            return base
        return f"*{base}"

    def array_of(self, item: str, imports: set[str]) -> str:
        return f"[]{item}"

    def map_of(self, value: str, imports: set[str]) -> str:
        return f"map[string]{value}"

    def map_constraints(self, constraints: list[Constraint], subject: str) -> list[str]:
        """Return Go statements that return an error on a violation."""
        guards = []
        for c in constraints:
            condition = self._condition(c, subject)
            if condition is None:
                continue
            label = subject.replace("v.", "", 1).strip("()*")
            guards.append(f"if {condition} {{")
            guards.append(f'\treturn fmt.Errorf("{label}: violates {c.kind.value} %v", {_go_value(c.value)})')
            guards.append("}")
        return guards

    def _condition(self, c: Constraint, s: str) -> str | None:
        number = f"float64({s})"
        if c.kind == ConstraintKind.MINIMUM:
            return f"{number} < {format_number(c.value)}"
        if c.kind == ConstraintKind.MAXIMUM:
            return f"{number} > {format_number(c.value)}"
        if c.kind == ConstraintKind.EXCLUSIVE_MINIMUM:
            return f"{number} <= {format_number(c.value)}"
        if c.kind == ConstraintKind.EXCLUSIVE_MAXIMUM:
            return f"{number} >= {format_number(c.value)}"
        if c.kind == ConstraintKind.MULTIPLE_OF:
            return f"math.Mod({number}, {format_number(c.value)}) != 0"
        if c.kind == ConstraintKind.MIN_LENGTH:
            return f"utf8.RuneCountInString({s}) < {c.value}"
        if c.kind == ConstraintKind.MAX_LENGTH:
            return f"utf8.RuneCountInString({s}) > {c.value}"
        if c.kind == ConstraintKind.MIN_ITEMS:
            return f"len({s}) < {c.value}"
        if c.kind == ConstraintKind.MAX_ITEMS:
            return f"len({s}) > {c.value}"
        if c.kind == ConstraintKind.PATTERN:
            return f"!regexp.MustCompile({_backquote(c.value)}).MatchString({s})"
        if c.kind == ConstraintKind.ENUM:
            values = list(c.value)
            if all(isinstance(v, str) for v in values):
                return f"!slices.Contains([]string{{{', '.join(json.dumps(v) for v in values)}}}, {s})"
            if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
                return f"!slices.Contains([]float64{{{', '.join(format_number(v) for v in values)}}}, {number})"
            return f"!slices.Contains([]string{{{', '.join(json.dumps(_sprint(v)) for v in values)}}}, fmt.Sprint({s}))"
        if c.kind == ConstraintKind.UNIQUE_ITEMS and c.value:
            return (
                f"func() bool {{ seen := map[string]bool{{}}; for _, item := range {s} {{ "
                "key := fmt.Sprint(item); if seen[key] { return true }; seen[key] = true }; return false }()"
            )
        return None

    def _constraint_imports(self, constraints: list[Constraint], imports: set[str]) -> None:
        kinds = {c.kind for c in constraints}
        if kinds & {ConstraintKind.MIN_LENGTH, ConstraintKind.MAX_LENGTH}:
            imports.add("unicode/utf8")
        if ConstraintKind.PATTERN in kinds:
            imports.add("regexp")
        if ConstraintKind.MULTIPLE_OF in kinds:
            imports.add("math")
        if ConstraintKind.ENUM in kinds:
            imports.add("slices")

    # -- Declarations ----------------------------------------------------

    def render_object(self, t: ObjectType, imports: set[str]) -> str:
        name = self.type_name(t.id)
        lines = self._doc(name, self.doc_lines(t))
        lines.append(f"type {name} struct {{")
        guards: list[str] = []
        used: set[str] = set()
        for prop in t.properties:
            field = self.property_name(prop.name)
            while field in used:
                field = f"{field}_"
            used.add(field)
            optional = self.is_optional(t, prop)
            annotation = self.render_reference(prop.type_ref, imports, optional=optional, path=f"{t.id}.{prop.name}")
            if not annotation.startswith(_NILABLE) and self.reaches(prop.type_ref, t.id):
                annotation = f"*{annotation}"
            tag = f"{prop.name},omitempty" if optional else prop.name
            if prop.description:
                lines.append(f"\t// {field} {prop.description.strip().splitlines()[0]}")
            if prop.deprecated:
                lines.append(f"\t// Deprecated: {field} is deprecated.")
            lines.append(f'\t{field} {annotation} `json:"{tag}"`')

            constraints = self.property_constraints(prop)
            self._constraint_imports(constraints, imports)
            if annotation.startswith("*"):
                checks = self.map_constraints(constraints, f"*v.{field}")
                if checks:
                    guards.append(f"\tif v.{field} != nil {{")
                    guards += [f"\t\t{g}" for g in checks]
                    guards.append("\t}")
            else:
                guards += [f"\t{g}" for g in self.map_constraints(constraints, f"v.{field}")]
        if t.additional_properties not in (None, False):
            value = self.map_value(t, imports)
            lines.append(f'\tAdditionalProperties map[string]{value} `json:"-"`')
        lines.append("}")
        lines.append("")
        lines.append(f"// Validate checks the field constraints declared for {name}.")
        lines.append(f"func (v *{name}) Validate() error {{")
        if guards:
            imports.add("fmt")
        lines += guards
        lines.append("\treturn nil")
        lines.append("}")
        return "\n".join(lines)

    def render_enum(self, t: EnumType, imports: set[str]) -> str:
        imports.update(("encoding/json", "fmt"))
        name = self.type_name(t.id)
        if t.value_type == EnumValueType.STRING:
            base = "string"
        elif all(isinstance(v.value, int) for v in t.values):
            base = "int64"
        else:
            base = "float64"
        lines = self._doc(name, self.doc_lines(t))
        lines.append(f"type {name} {base}")
        lines.append("")
        lines.append("const (")
        members = []
        for value in t.values:
            member = name + self.naming.enum_member_name(str(value.name or value.value))
            while member in members:
                member = f"{member}_"
            members.append(member)
            literal = json.dumps(value.value) if base == "string" else format_number(value.value)
            lines.append(f"\t{member} {name} = {literal}")
        lines.append(")")
        lines.append("")
        lines.append(f"// IsValid reports whether v is one of the declared {name} values.")
        lines.append(f"func (v {name}) IsValid() bool {{")
        lines.append("\tswitch v {")
        if members:
            lines.append(f"\tcase {', '.join(members)}:")
            lines.append("\t\treturn true")
        lines.append("\t}")
        lines.append("\treturn false")
        lines.append("}")
        lines.append("")
        lines.append(f"func (v *{name}) UnmarshalJSON(data []byte) error {{")
        lines.append(f"\tvar raw {base}")
        lines.append("\tif err := json.Unmarshal(data, &raw); err != nil {")
        lines.append("\t\treturn err")
        lines.append("\t}")
        lines.append(f"\tif !{name}(raw).IsValid() {{")
        lines.append(f'\t\treturn fmt.Errorf("invalid {name} value: %v", raw)')
        lines.append("\t}")
        lines.append(f"\t*v = {name}(raw)")
        lines.append("\treturn nil")
        lines.append("}")
        return "\n".join(lines)

    def render_union(self, t: UnionType, imports: set[str]) -> str:
        imports.update(("encoding/json", "fmt"))
        name = self.type_name(t.id)
        members: list[tuple[str, str, TypeReference]] = []
        used: set[str] = set()
        for i, ref in enumerate(t.variants):
            inner = self.render_reference(ref, imports, path=f"{t.id}.variants[{i}]")
            field = self._variant_name(ref, i)
            while field in used:
                field = f"{field}{i}"
            used.add(field)
            members.append((field, inner, ref))

        lines = self._doc(name, self.doc_lines(t) or ["holds exactly one of its variants."])
        lines.append(f"type {name} struct {{")
        for field, inner, _ in members:
            lines.append(f"\t{field} *{inner}")
        lines.append("}")
        lines.append("")
        lines.append(f"func (u {name}) MarshalJSON() ([]byte, error) {{")
        lines.append("\tswitch {")
        for field, _, _ in members:
            lines.append(f"\tcase u.{field} != nil:")
            lines.append(f"\t\treturn json.Marshal(u.{field})")
        lines.append("\t}")
        lines.append('\treturn []byte("null"), nil')
        lines.append("}")
        lines.append("")
        lines.append(f"func (u *{name}) UnmarshalJSON(data []byte) error {{")
        if self.is_tagged_union(t):
            lines.append("\tvar head struct {")
            lines.append(f'\t\tTag string `json:"{t.discriminator}"`')
            lines.append("\t}")
            lines.append("\tif err := json.Unmarshal(data, &head); err != nil {")
            lines.append("\t\treturn err")
            lines.append("\t}")
            lines.append("\tswitch head.Tag {")
            for field, inner, ref in members:
                lines.append(f"\tcase {json.dumps(self.variant_literal(t, ref))}:")
                lines.append(f"\t\tu.{field} = new({inner})")
                lines.append(f"\t\treturn json.Unmarshal(data, u.{field})")
            lines.append("\t}")
            lines.append(f'\treturn fmt.Errorf("{name}: unknown {t.discriminator} %q", head.Tag)')
        else:
            for field, inner, _ in members:
                lines.append("\t{")
                lines.append(f"\t\tvar candidate {inner}")
                lines.append("\t\tif err := json.Unmarshal(data, &candidate); err == nil {")
                lines.append(f"\t\t\tu.{field} = &candidate")
                lines.append("\t\t\treturn nil")
                lines.append("\t\t}")
                lines.append("\t}")
            lines.append(f'\treturn fmt.Errorf("{name}: value matches no variant")')
        lines.append("}")
        return "\n".join(lines)

    def _variant_name(self, ref: TypeReference, index: int) -> str:
        target = self.resolve(ref)
        if target is None:
            return pascal_case(ref.primitive.value)
        return self.type_name(target.id) if target.kind.value in ("object", "enum", "union") else f"Variant{index}"

    def _doc(self, name: str, doc: list[str]) -> list[str]:
        if not doc:
            return []
        first = doc[0]
        lines = [f"// {name} {first[:1].lower()}{first[1:]}" if not first.startswith(name) else f"// {first}"]
        return lines + [f"// {line}".rstrip() for line in doc[1:]]

    def import_lines(self, imports: list[str]) -> list[str]:
        paths = sorted(set(imports))
        if not paths:
            return []
        return ["import ("] + [f'\t"{p}"' for p in paths] + [")"]


def _backquote(pattern: str) -> str:
    if "`" in pattern:
        return json.dumps(pattern)
    return f"`{pattern}`"


def _go_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, (list, tuple)):
        return json.dumps(", ".join(_sprint(v) for v in value))
    return json.dumps(str(value))


def _sprint(value) -> str:
    """Text ``fmt.Sprint`` produces for a JSON scalar."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    if isinstance(value, float):
        return format_number(value)
    return str(value)
