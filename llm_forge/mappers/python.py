"""Python target: pydantic v2 models, ``str`` enums and annotated unions."""

from __future__ import annotations

from collections import defaultdict

from llm_forge.ir.models import (
    Constraint,
    ConstraintKind,
    EnumType,
    EnumValueType,
    ObjectType,
    PrimitiveKind,
    PropertyDefinition,
    UnionType,
)
from llm_forge.mappers.base import TypeMapper, format_number

_STDLIB = frozenset({"collections.abc", "enum", "typing", "urllib.parse"})

_FIELD_KWARGS = {
    ConstraintKind.MINIMUM: "ge",
    ConstraintKind.MAXIMUM: "le",
    ConstraintKind.EXCLUSIVE_MINIMUM: "gt",
    ConstraintKind.EXCLUSIVE_MAXIMUM: "lt",
    ConstraintKind.MULTIPLE_OF: "multiple_of",
    ConstraintKind.MIN_LENGTH: "min_length",
    ConstraintKind.MAX_LENGTH: "max_length",
    ConstraintKind.MIN_ITEMS: "min_length",
    ConstraintKind.MAX_ITEMS: "max_length",
}


class PythonTypeMapper(TypeMapper):
    language = "python"
    primitives = {
        PrimitiveKind.STRING: "str",
        PrimitiveKind.INTEGER: "int",
        PrimitiveKind.FLOAT: "float",
        PrimitiveKind.BOOLEAN: "bool",
        PrimitiveKind.NULL: "None",
        PrimitiveKind.ANY: "Any",
        PrimitiveKind.BINARY: "bytes",
    }
    reserved_names = frozenset(
        {
            "Annotated",
            "Any",
            "BaseModel",
            "ConfigDict",
            "Enum",
            "Field",
            "Literal",
            "Optional",
            "TYPE_CHECKING",
            "Union",
        }
    )

    def primitive(self, kind, imports, path="$"):
        name = super().primitive(kind, imports, path)
        if name == "Any":
            imports.add("typing.Any")
        return name

    def nullable(self, base: str, imports: set[str]) -> str:
        imports.add("typing.Optional")
        return f"Optional[{base}]"

    def array_of(self, item: str, imports: set[str]) -> str:
        return f"list[{item}]"

    def map_of(self, value: str, imports: set[str]) -> str:
        return f"dict[str, {value}]"

    def map_constraints(self, constraints: list[Constraint], subject: str) -> list[str]:
        """Return ``Field`` keyword arguments.

        Enum constraints narrow the annotation to a ``Literal`` instead, and
        ``format`` has no pydantic equivalent.
        """
        kwargs = []
        for c in constraints:
            if c.kind in _FIELD_KWARGS:
                kwargs.append(f"{_FIELD_KWARGS[c.kind]}={format_number(c.value)}")
            elif c.kind == ConstraintKind.PATTERN:
                kwargs.append(f"pattern={c.value!r}")
        return kwargs

    # -- Declarations ----------------------------------------------------

    def render_object(self, t: ObjectType, imports: set[str]) -> str:
        imports.update(("pydantic.BaseModel", "pydantic.ConfigDict"))
        lines = [f"class {self.type_name(t.id)}(BaseModel):"]
        lines += self._docstring(self.doc_lines(t))
        config = ["populate_by_name=True", "protected_namespaces=()"]
        if t.additional_properties is False:
            config.append('extra="forbid"')
        elif t.additional_properties is not None:
            config.append('extra="allow"')
        lines.append(f"    model_config = ConfigDict({', '.join(config)})")
        if t.properties:
            lines.append("")
        tags = self.discriminator_tags(t.id)
        used: set[str] = set()
        for prop in t.properties:
            lines.append("    " + self._field(t, prop, tags.get(prop.name), used, imports))
        return "\n".join(lines)

    def _field(
        self, t: ObjectType, prop: PropertyDefinition, literals: list[str] | None, used: set[str], imports: set[str]
    ) -> str:
        name = self.property_name(prop.name)
        while name in used:
            name = f"{name}_"
        used.add(name)
        optional = self.is_optional(t, prop)
        constraints = self.property_constraints(prop)
        enum = next((c.value for c in constraints if c.kind == ConstraintKind.ENUM), None)

        kwargs: list[str] = []
        if literals:
            imports.add("typing.Literal")
            annotation = f"Literal[{', '.join(repr(v) for v in literals)}]"
            kwargs.append(f"default={literals[0]!r}")
        else:
            if enum:
                imports.add("typing.Literal")
                annotation = f"Literal[{', '.join(repr(v) for v in enum)}]"
                if prop.type_ref.nullable or optional:
                    annotation = self.nullable(annotation, imports)
            else:
                annotation = self.render_reference(prop.type_ref, imports, optional=optional, path=f"{t.id}.{prop.name}")
            if prop.default is not None:
                if isinstance(prop.default, (list, dict)):
                    kwargs.append(f"default_factory=lambda: {prop.default!r}")
                else:
                    kwargs.append(f"default={prop.default!r}")
            elif optional:
                kwargs.append("default=None")
        if name != prop.name:
            kwargs.append(f"alias={prop.name!r}")
        kwargs += self.map_constraints(constraints, name)
        if prop.description:
            kwargs.append(f"description={prop.description.strip()!r}")
        if prop.deprecated:
            kwargs.append("deprecated=True")

        if not kwargs:
            return f"{name}: {annotation}"
        if kwargs == ["default=None"]:
            return f"{name}: {annotation} = None"
        imports.add("pydantic.Field")
        return f"{name}: {annotation} = Field({', '.join(kwargs)})"

    def render_enum(self, t: EnumType, imports: set[str]) -> str:
        imports.add("enum.Enum")
        if t.value_type == EnumValueType.STRING:
            base = "str, Enum"
        elif all(isinstance(v.value, int) for v in t.values):
            base = "int, Enum"
        else:
            base = "Enum"
        lines = [f"class {self.type_name(t.id)}({base}):"]
        lines += self._docstring(self.doc_lines(t))
        if len(lines) > 1:
            lines.append("")
        used: dict[str, int] = defaultdict(int)
        for value in t.values:
            member = self.naming.enum_member_name(str(value.name or value.value))
            used[member] += 1
            if used[member] > 1:
                member = f"{member}_{used[member]}"
            lines.append(f"    {member} = {value.value!r}")
        if not t.values:
            lines.append("    pass")
        return "\n".join(lines)

    def render_union(self, t: UnionType, imports: set[str]) -> str:
        variants = [self.render_reference(v, imports, path=f"{t.id}.variants[{i}]") for i, v in enumerate(t.variants)]
        if len(variants) == 1:
            expr = variants[0]
        else:
            imports.add("typing.Union")
            expr = f"Union[{', '.join(variants)}]"
        if self.is_tagged_union(t):
            imports.update(("typing.Annotated", "pydantic.Field"))
            field_name = self.property_name(t.discriminator)
            expr = f"Annotated[{expr}, Field(discriminator={field_name!r})]"
        lines = [f"# {line}" if line else "#" for line in self.doc_lines(t)]
        lines.append(f"{self.type_name(t.id)} = {expr}")
        return "\n".join(lines)

    def _docstring(self, doc: list[str]) -> list[str]:
        if not doc:
            return []
        if len(doc) == 1:
            return [f'    """{doc[0]}"""']
        return ['    """' + doc[0]] + [f"    {line}" if line else "" for line in doc[1:]] + ['    """']

    # -- Imports ---------------------------------------------------------

    def import_lines(self, imports: list[str]) -> list[str]:
        by_module: dict[str, list[str]] = defaultdict(list)
        for qualified in imports:
            module, _, name = qualified.rpartition(".")
            by_module[module].append(name)
        stdlib = sorted(m for m in by_module if m in _STDLIB)
        third_party = sorted(m for m in by_module if m not in _STDLIB)
        lines = [f"from {m} import {', '.join(sorted(set(by_module[m])))}" for m in stdlib]
        if stdlib and third_party:
            lines.append("")
        lines += [f"from {m} import {', '.join(sorted(set(by_module[m])))}" for m in third_party]
        return lines
