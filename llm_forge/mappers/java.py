"""Java target: immutable classes with builders, Jackson and Bean Validation.

Tagged unions whose variants are all objects become a sealed interface the
variants implement; any other union falls back to a wrapper class holding
the raw value.
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
from llm_forge.mappers.naming import pascal_case

_JACKSON = "com.fasterxml.jackson.annotation"
_VALIDATION = "jakarta.validation.constraints"


class JavaTypeMapper(TypeMapper):
    language = "java"
    primitives = {
        PrimitiveKind.STRING: "String",
        PrimitiveKind.INTEGER: "Long",
        PrimitiveKind.FLOAT: "Double",
        PrimitiveKind.BOOLEAN: "Boolean",
        PrimitiveKind.NULL: "Object",
        PrimitiveKind.ANY: "Object",
        PrimitiveKind.BINARY: "byte[]",
    }

    def __init__(self, schema):
        super().__init__(schema)
        # object id -> sealed interfaces it implements
        self._sealed: dict[str, list[str]] = {}
        for t in schema.types:
            if isinstance(t, UnionType) and self.is_tagged_union(t):
                for ref in t.variants:
                    self._sealed.setdefault(ref.type_id, []).append(self.type_name(t.id))

    def nullable(self, base: str, imports: set[str]) -> str:
        # Every Java reference is nullable; the annotation only documents it.
        imports.add("org.jspecify.annotations.Nullable")
        return f"@Nullable {base}"

    def array_of(self, item: str, imports: set[str]) -> str:
        imports.add("java.util.List")
        return f"List<{item}>"

    def map_of(self, value: str, imports: set[str]) -> str:
        imports.add("java.util.Map")
        return f"Map<String, {value}>"

    def map_constraints(self, constraints: list[Constraint], subject: str) -> list[str]:
        """Return Bean Validation annotations for a field."""
        values = {c.kind: c.value for c in constraints}
        out = []
        for kind, name, inclusive in (
            (ConstraintKind.MINIMUM, "DecimalMin", True),
            (ConstraintKind.EXCLUSIVE_MINIMUM, "DecimalMin", False),
            (ConstraintKind.MAXIMUM, "DecimalMax", True),
            (ConstraintKind.EXCLUSIVE_MAXIMUM, "DecimalMax", False),
        ):
            if kind in values:
                bound = json.dumps(format_number(values[kind]))
                out.append(f"@{name}({bound})" if inclusive else f"@{name}(value = {bound}, inclusive = false)")
        for low, high in (
            (ConstraintKind.MIN_LENGTH, ConstraintKind.MAX_LENGTH),
            (ConstraintKind.MIN_ITEMS, ConstraintKind.MAX_ITEMS),
        ):
            args = []
            if low in values:
                args.append(f"min = {values[low]}")
            if high in values:
                args.append(f"max = {values[high]}")
            if args:
                out.append(f"@Size({', '.join(args)})")
        if ConstraintKind.PATTERN in values:
            out.append(f"@Pattern(regexp = {json.dumps(values[ConstraintKind.PATTERN])})")
        allowed = values.get(ConstraintKind.ENUM)
        if allowed and all(isinstance(v, str) for v in allowed):
            choices = "|".join(re.escape(v) for v in allowed)
            out.append(f"@Pattern(regexp = {json.dumps(f'^(?:{choices})$')})")
        if values.get(ConstraintKind.FORMAT) == "email":
            out.append("@Email")
        return out

    def constructor_checks(self, constraints: list[Constraint], field: str, bare: str) -> list[str]:
        """Checks Bean Validation cannot express, run when the object is built."""
        values = {c.kind: c.value for c in constraints}
        checks = []
        allowed = values.get(ConstraintKind.ENUM)
        if allowed and not all(isinstance(v, str) for v in allowed):
            literals = ", ".join(_java_literal(v, bare) for v in allowed)
            checks.append(
                (f"!java.util.List.of({literals}).contains({field})", f"{field} must be one of {_display(allowed)}")
            )
        if values.get(ConstraintKind.UNIQUE_ITEMS):
            checks.append(
                (f"new java.util.HashSet<>({field}).size() != {field}.size()", f"{field} must not contain duplicates")
            )
        return [
            f"if ({field} != null && {condition}) throw new IllegalArgumentException({json.dumps(message)});"
            for condition, message in checks
        ]

    # -- Declarations ----------------------------------------------------

    def render_object(self, t: ObjectType, imports: set[str]) -> str:
        name = self.type_name(t.id)
        imports.update(
            (
                "java.util.Objects",
                f"{_JACKSON}.JsonInclude",
                f"{_JACKSON}.JsonProperty",
                "com.fasterxml.jackson.databind.annotation.JsonDeserialize",
                "com.fasterxml.jackson.databind.annotation.JsonPOJOBuilder",
            )
        )
        fields = []
        checks: list[str] = []
        used: set[str] = set()
        for prop in t.properties:
            field = self.property_name(prop.name)
            while field in used:
                field = f"{field}_"
            used.add(field)
            optional = self.is_optional(t, prop)
            annotation = self.render_reference(prop.type_ref, imports, optional=optional, path=f"{t.id}.{prop.name}")
            bare = annotation.removeprefix("@Nullable ")
            annotations = [f"@JsonProperty({json.dumps(prop.name)})"]
            if not optional and not prop.type_ref.nullable:
                annotations.append("@NotNull")
            constraints = self.property_constraints(prop)
            annotations += self.map_constraints(constraints, field)
            checks += self.constructor_checks(constraints, field, bare)
            if prop.deprecated:
                annotations.append("@Deprecated")
            for a in annotations:
                if not a.startswith("@JsonProperty") and not a.startswith("@Deprecated"):
                    imports.add(f"{_VALIDATION}.{a[1:].split('(')[0]}")
            fields.append((field, annotation, bare, annotations, prop))

        lines = self._javadoc(self.doc_lines(t), "")
        if t.additional_properties is not False:
            imports.add(f"{_JACKSON}.JsonIgnoreProperties")
            lines.append("@JsonIgnoreProperties(ignoreUnknown = true)")
        lines.append("@JsonInclude(JsonInclude.Include.NON_NULL)")
        lines.append(f"@JsonDeserialize(builder = {name}.Builder.class)")
        implements = self._sealed.get(t.id, [])
        suffix = f" implements {', '.join(implements)}" if implements else ""
        lines.append(f"public final class {name}{suffix} {{")
        for field, annotation, _, annotations, prop in fields:
            lines += self._javadoc([prop.description.strip()] if prop.description else [], "    ")
            lines += [f"    {a}" for a in annotations]
            lines.append(f"    private final {annotation} {field};")
            lines.append("")
        lines.append(f"    private {name}(Builder builder) {{")
        for field, *_ in fields:
            lines.append(f"        this.{field} = builder.{field};")
        lines += [f"        {c}" for c in checks]
        lines.append("    }")
        for field, annotation, _, _, _ in fields:
            lines.append("")
            lines.append(f"    public {annotation} get{pascal_case(field)}() {{")
            lines.append(f"        return {field};")
            lines.append("    }")
        lines.append("")
        lines.append("    public static Builder builder() {")
        lines.append("        return new Builder();")
        lines.append("    }")
        lines.append("")
        lines += self._equality(name, [f[0] for f in fields])
        lines.append("")
        lines.append('    @JsonPOJOBuilder(withPrefix = "")')
        lines.append("    public static final class Builder {")
        for field, annotation, *_ in fields:
            lines.append(f"        private {annotation} {field};")
        for field, annotation, _, _, prop in fields:
            lines.append("")
            lines.append(f"        @JsonProperty({json.dumps(prop.name)})")
            lines.append(f"        public Builder {field}({annotation} {field}) {{")
            lines.append(f"            this.{field} = {field};")
            lines.append("            return this;")
            lines.append("        }")
        lines.append("")
        lines.append(f"        public {name} build() {{")
        lines.append(f"            return new {name}(this);")
        lines.append("        }")
        lines.append("    }")
        lines.append("}")
        return "\n".join(lines)

    def _equality(self, name: str, fields: list[str]) -> list[str]:
        lines = ["    @Override", "    public boolean equals(Object o) {", "        if (this == o) return true;"]
        lines.append(f"        if (!(o instanceof {name} other)) return false;")
        if fields:
            checks = " && ".join(f"Objects.equals({f}, other.{f})" for f in fields)
            lines.append(f"        return {checks};")
        else:
            lines.append("        return true;")
        lines.append("    }")
        lines.append("")
        lines.append("    @Override")
        lines.append("    public int hashCode() {")
        lines.append(f"        return Objects.hash({', '.join(fields)});")
        lines.append("    }")
        lines.append("")
        lines.append("    @Override")
        lines.append("    public String toString() {")
        parts = " + \", \" + ".join(f'"{f}=" + {f}' for f in fields) or '""'
        lines.append(f'        return "{name}{{" + {parts} + "}}";')
        lines.append("    }")
        return lines

    def render_enum(self, t: EnumType, imports: set[str]) -> str:
        imports.update((f"{_JACKSON}.JsonCreator", f"{_JACKSON}.JsonValue"))
        name = self.type_name(t.id)
        if t.value_type == EnumValueType.STRING:
            value_type = "String"
        elif all(isinstance(v.value, int) for v in t.values):
            value_type = "Long"
        else:
            value_type = "Double"
        lines = self._javadoc(self.doc_lines(t), "")
        lines.append(f"public enum {name} {{")
        members = []
        used: set[str] = set()
        for value in t.values:
            member = self.naming.enum_member_name(str(value.name or value.value))
            while member in used:
                member = f"{member}_"
            used.add(member)
            if value_type == "String":
                literal = json.dumps(value.value)
            else:
                literal = format_number(value.value) + ("L" if value_type == "Long" else "")
                if value_type == "Double" and "." not in literal:
                    literal += ".0"
            members.append(f"    {member}({literal})")
        lines.append(",\n".join(members) + ";")
        lines.append("")
        lines.append(f"    private final {value_type} value;")
        lines.append("")
        lines.append(f"    {name}({value_type} value) {{")
        lines.append("        this.value = value;")
        lines.append("    }")
        lines.append("")
        lines.append("    @JsonValue")
        lines.append(f"    public {value_type} getValue() {{")
        lines.append("        return value;")
        lines.append("    }")
        lines.append("")
        lines.append("    @JsonCreator")
        lines.append(f"    public static {name} fromValue({value_type} value) {{")
        lines.append(f"        for ({name} candidate : values()) {{")
        lines.append("            if (candidate.value.equals(value)) {")
        lines.append("                return candidate;")
        lines.append("            }")
        lines.append("        }")
        lines.append(f'        throw new IllegalArgumentException("Unknown {name} value: " + value);')
        lines.append("    }")
        lines.append("}")
        return "\n".join(lines)

    def render_union(self, t: UnionType, imports: set[str]) -> str:
        name = self.type_name(t.id)
        lines = self._javadoc(self.doc_lines(t), "")
        if self.is_tagged_union(t):
            imports.update((f"{_JACKSON}.JsonSubTypes", f"{_JACKSON}.JsonTypeInfo"))
            variants = [self.type_name(ref.type_id) for ref in t.variants]
            lines.append("@JsonTypeInfo(")
            lines.append("    use = JsonTypeInfo.Id.NAME,")
            lines.append("    include = JsonTypeInfo.As.EXISTING_PROPERTY,")
            lines.append(f"    property = {json.dumps(t.discriminator)},")
            lines.append("    visible = true)")
            lines.append("@JsonSubTypes({")
            subtypes = [
                f"    @JsonSubTypes.Type(value = {v}.class, name = {json.dumps(self.variant_literal(t, ref))})"
                for v, ref in zip(variants, t.variants)
            ]
            lines.append(",\n".join(subtypes))
            lines.append("})")
            lines.append(f"public sealed interface {name} permits {', '.join(variants)} {{")
            lines.append("}")
            return "\n".join(lines)

        imports.update((f"{_JACKSON}.JsonCreator", f"{_JACKSON}.JsonValue", "java.util.Objects"))
        lines.append(f"public final class {name} {{")
        lines.append("    private final Object value;")
        lines.append("")
        lines.append(f"    private {name}(Object value) {{")
        lines.append("        this.value = Objects.requireNonNull(value);")
        lines.append("    }")
        seen: set[str] = set()
        for i, ref in enumerate(t.variants):
            variant = self.render_reference(ref, imports, path=f"{t.id}.variants[{i}]")
            erased = variant.split("<")[0]
            if erased in seen:
                continue
            seen.add(erased)
            label = pascal_case(erased.replace("[]", "Array"))
            lines.append("")
            lines.append(f"    public static {name} of{label}({variant} value) {{")
            lines.append(f"        return new {name}(value);")
            lines.append("    }")
            lines.append("")
            lines.append(f"    public boolean is{label}() {{")
            lines.append(f"        return value instanceof {erased};")
            lines.append("    }")
        lines.append("")
        lines.append("    @JsonCreator(mode = JsonCreator.Mode.DELEGATING)")
        lines.append(f"    static {name} fromJson(Object value) {{")
        lines.append(f"        return new {name}(value);")
        lines.append("    }")
        lines.append("")
        lines.append("    @JsonValue")
        lines.append("    public Object getValue() {")
        lines.append("        return value;")
        lines.append("    }")
        lines.append("}")
        return "\n".join(lines)

    def _javadoc(self, doc: list[str], indent: str) -> list[str]:
        if not doc:
            return []
        return [f"{indent}/**"] + [f"{indent} * {line}".rstrip() for line in doc] + [f"{indent} */"]

    def import_lines(self, imports: list[str]) -> list[str]:
        return [f"import {name};" for name in sorted(set(imports))]


def _java_literal(value, bare: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if bare == "Long" and isinstance(value, int):
        return f"{value}L"
    if bare == "Double" and isinstance(value, (int, float)):
        return repr(float(value))
    return json.dumps(str(value))


def _display(values) -> str:
    return ", ".join("true" if v is True else "false" if v is False else format_number(v) for v in values)
