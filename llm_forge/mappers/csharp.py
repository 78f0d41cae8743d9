"""C# target: init-only records with System.Text.Json and DataAnnotations.

Unions become a wrapper around the raw ``JsonElement``, so the
discriminator literal stays exactly as received and each variant is
deserialized on demand.
"""

from __future__ import annotations

import json

from llm_forge.errors import UnsupportedConstructError
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

_SERIALIZATION = "System.Text.Json.Serialization"
_ANNOTATIONS = "System.ComponentModel.DataAnnotations"


class CSharpTypeMapper(TypeMapper):
    language = "csharp"
    primitives = {
        PrimitiveKind.STRING: "string",
        PrimitiveKind.INTEGER: "long",
        PrimitiveKind.FLOAT: "double",
        PrimitiveKind.BOOLEAN: "bool",
        PrimitiveKind.NULL: "object",
        PrimitiveKind.ANY: "JsonElement",
        PrimitiveKind.BINARY: "byte[]",
    }

    def primitive(self, kind, imports, path="$"):
        name = super().primitive(kind, imports, path)
        if name == "JsonElement":
            imports.add("System.Text.Json")
        return name

    def nullable(self, base: str, imports: set[str]) -> str:
        return base if base.endswith("?") else f"{base}?"

    def array_of(self, item: str, imports: set[str]) -> str:
        imports.add("System.Collections.Generic")
        return f"List<{item}>"

    def map_of(self, value: str, imports: set[str]) -> str:
        imports.add("System.Collections.Generic")
        return f"Dictionary<string, {value}>"

    def map_constraints(self, constraints: list[Constraint], subject: str) -> list[str]:
        """Return DataAnnotations attributes for a property."""
        values = {c.kind: c.value for c in constraints}
        out = []
        low = values.get(ConstraintKind.MINIMUM, values.get(ConstraintKind.EXCLUSIVE_MINIMUM))
        high = values.get(ConstraintKind.MAXIMUM, values.get(ConstraintKind.EXCLUSIVE_MAXIMUM))
        if low is not None or high is not None:
            args = [
                _double(low) if low is not None else "double.MinValue",
                _double(high) if high is not None else "double.MaxValue",
            ]
            if ConstraintKind.EXCLUSIVE_MINIMUM in values:
                args.append("MinimumIsExclusive = true")
            if ConstraintKind.EXCLUSIVE_MAXIMUM in values:
                args.append("MaximumIsExclusive = true")
            out.append(f"[Range({', '.join(args)})]")
        if ConstraintKind.MAX_LENGTH in values:
            args = [str(values[ConstraintKind.MAX_LENGTH])]
            if ConstraintKind.MIN_LENGTH in values:
                args.append(f"MinimumLength = {values[ConstraintKind.MIN_LENGTH]}")
            out.append(f"[StringLength({', '.join(args)})]")
        elif ConstraintKind.MIN_LENGTH in values:
            out.append(f"[MinLength({values[ConstraintKind.MIN_LENGTH]})]")
        if ConstraintKind.MIN_ITEMS in values:
            out.append(f"[MinLength({values[ConstraintKind.MIN_ITEMS]})]")
        if ConstraintKind.MAX_ITEMS in values:
            out.append(f"[MaxLength({values[ConstraintKind.MAX_ITEMS]})]")
        if ConstraintKind.PATTERN in values:
            out.append(f"[RegularExpression({_verbatim(values[ConstraintKind.PATTERN])})]")
        if values.get(ConstraintKind.FORMAT) == "email":
            out.append("[EmailAddress]")
        return out

    # -- Declarations ----------------------------------------------------

    def _allowed_values(self, constraints: list[Constraint], annotation: str) -> list[str]:
        allowed = next((c.value for c in constraints if c.kind == ConstraintKind.ENUM), None)
        if not allowed:
            return []
        base = annotation.rstrip("?")
        return [f"[AllowedValues({', '.join(_csharp_literal(v, base) for v in allowed)})]"]

    def render_object(self, t: ObjectType, imports: set[str]) -> str:
        imports.add(_SERIALIZATION)
        name = self.type_name(t.id)
        lines = self._summary(self.doc_lines(t), "")
        lines.append(f"public sealed record {name}")
        lines.append("{")
        used: set[str] = {name}
        members = []
        validators: list[str] = []
        for prop in t.properties:
            member = self.property_name(prop.name)
            while member in used:
                member = f"{member}Value"
            used.add(member)
            optional = self.is_optional(t, prop)
            annotation = self.render_reference(prop.type_ref, imports, optional=optional, path=f"{t.id}.{prop.name}")
            block = self._summary([prop.description.strip()] if prop.description else [], "    ")
            block.append(f"    [JsonPropertyName({json.dumps(prop.name)})]")
            constraints = self.property_constraints(prop)
            attributes = self.map_constraints(constraints, member)
            attributes += self._allowed_values(constraints, annotation)
            if any(c.kind == ConstraintKind.UNIQUE_ITEMS and c.value for c in constraints):
                imports.add("System.Linq")
                check = f"Validate{member}Distinct"
                attributes.append(f"[CustomValidation(typeof({name}), nameof({check}))]")
                validators.append(_distinct_validator(check, annotation, prop.name))
            required = not optional and not prop.type_ref.nullable
            if required:
                attributes.insert(0, "[Required]")
            if attributes:
                imports.add(_ANNOTATIONS)
            if prop.deprecated:
                attributes.append("[Obsolete]")
            block += [f"    {a}" for a in attributes]
            modifier = "required " if required else ""
            block.append(f"    public {modifier}{annotation} {member} {{ get; init; }}")
            members.append("\n".join(block))
        if t.additional_properties not in (None, False):
            imports.update(("System.Collections.Generic", "System.Text.Json"))
            members.append(
                "    [JsonExtensionData]\n"
                "    public Dictionary<string, JsonElement>? AdditionalProperties { get; init; }"
            )
        members += validators
        lines.append("\n\n".join(members))
        lines.append("}")
        return "\n".join(lines)

    def render_enum(self, t: EnumType, imports: set[str]) -> str:
        imports.add(_SERIALIZATION)
        name = self.type_name(t.id)
        lines = self._summary(self.doc_lines(t), "")
        used: set[str] = set()
        members = []
        for value in t.values:
            member = self.naming.enum_member_name(str(value.name or value.value))
            while member in used:
                member = f"{member}_"
            used.add(member)
            members.append((member, value))
        if t.value_type == EnumValueType.STRING:
            lines.append(f"[JsonConverter(typeof(JsonStringEnumConverter<{name}>))]")
            lines.append(f"public enum {name}")
            lines.append("{")
            for member, value in members:
                lines.append(f"    [JsonStringEnumMemberName({json.dumps(str(value.value))})]")
                lines.append(f"    {member},")
            lines.append("}")
            return "\n".join(lines)
        for value in t.values:
            if not isinstance(value.value, int) or isinstance(value.value, bool):
                raise UnsupportedConstructError(
                    t.id, "unsupported_enum_value", f"C# enums cannot carry the non-integer value {value.value!r}"
                )
        lines.append(f"public enum {name} : long")
        lines.append("{")
        for member, value in members:
            lines.append(f"    {member} = {value.value},")
        lines.append("}")
        return "\n".join(lines)

    def render_union(self, t: UnionType, imports: set[str]) -> str:
        imports.update(("System", "System.Text.Json", _SERIALIZATION))
        name = self.type_name(t.id)
        tagged = self.is_tagged_union(t)
        lines = self._summary(self.doc_lines(t) or [f"One of the {name} variants, kept as raw JSON."], "")
        lines.append(f"[JsonConverter(typeof({name}JsonConverter))]")
        lines.append(f"public sealed class {name}")
        lines.append("{")
        lines.append(f"    public {name}(JsonElement raw)")
        lines.append("    {")
        lines.append("        Raw = raw;")
        lines.append("    }")
        lines.append("")
        lines.append("    public JsonElement Raw { get; }")
        if tagged:
            prop = json.dumps(t.discriminator)
            lines.append("")
            lines.append(f"    public const string DiscriminatorProperty = {prop};")
            lines.append("")
            lines.append("    public string? Discriminator =>")
            lines.append(f"        Raw.ValueKind == JsonValueKind.Object && Raw.TryGetProperty({prop}, out var tag)")
            lines.append("            ? tag.GetString()")
            lines.append("            : null;")
        seen: set[str] = set()
        for i, ref in enumerate(t.variants):
            variant = self.render_reference(ref, imports, path=f"{t.id}.variants[{i}]")
            if variant in seen:
                continue
            seen.add(variant)
            label = pascal_case(variant.replace("[]", "Array"))
            lines.append("")
            lines.append(f"    public static {name} From({variant} value) =>")
            lines.append("        new(JsonSerializer.SerializeToElement(value));")
            lines.append("")
            if tagged:
                literal = json.dumps(self.variant_literal(t, ref))
                lines.append(f"    public {variant}? As{label}() =>")
                lines.append(f"        Discriminator == {literal} ? Raw.Deserialize<{variant}>() : null;")
            else:
                lines.append(f"    public bool TryAs{label}(out {variant}? value)")
                lines.append("    {")
                lines.append("        try")
                lines.append("        {")
                lines.append(f"            value = Raw.Deserialize<{variant}>();")
                lines.append("            return value is not null;")
                lines.append("        }")
                lines.append("        catch (JsonException)")
                lines.append("        {")
                lines.append("            value = default;")
                lines.append("            return false;")
                lines.append("        }")
                lines.append("    }")
        lines.append("}")
        lines.append("")
        lines.append(f"internal sealed class {name}JsonConverter : JsonConverter<{name}>")
        lines.append("{")
        lines.append(
            f"    public override {name} Read(ref Utf8JsonReader reader, Type typeToConvert, JsonSerializerOptions options) =>"
        )
        lines.append("        new(JsonElement.ParseValue(ref reader));")
        lines.append("")
        lines.append(f"    public override void Write(Utf8JsonWriter writer, {name} value, JsonSerializerOptions options) =>")
        lines.append("        value.Raw.WriteTo(writer);")
        lines.append("}")
        return "\n".join(lines)

    def _summary(self, doc: list[str], indent: str) -> list[str]:
        if not doc:
            return []
        body = [f"{indent}/// {line}".rstrip() for line in doc]
        return [f"{indent}/// <summary>"] + body + [f"{indent}/// </summary>"]

    def import_lines(self, imports: list[str]) -> list[str]:
        return [f"using {ns};" for ns in sorted(set(imports))]


def _double(value) -> str:
    text = format_number(value)
    return text if "." in text else f"{text}.0"


def _verbatim(pattern: str) -> str:
    return '@"' + pattern.replace('"', '""') + '"'


def _csharp_literal(value, base: str) -> str:
    """Literal boxed to the same CLR type as the property, so ``Equals`` matches."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if base == "long" and isinstance(value, int):
        return f"{value}L"
    if base == "double" and isinstance(value, (int, float)):
        return _double(value)
    return json.dumps(str(value))


def _distinct_validator(method: str, annotation: str, wire_name: str) -> str:
    message = json.dumps(f"{wire_name} must not contain duplicates")
    return (
        f"    public static ValidationResult? {method}({annotation.rstrip('?')}? value) =>\n"
        "        value is null || value.Distinct().Count() == value.Count\n"
        "            ? ValidationResult.Success\n"
        f"            : new ValidationResult({message});"
    )
