"""Shared contract for the per-language type mappers.

A mapper is built once per (schema, language) pair. Construction assigns
every IR type a native name; after that the mapper only reads the schema,
so one instance can serve a whole generation run.

Only object, enum and union kinds become declarations. Primitives, arrays
and map-like objects are rendered inline wherever they are referenced, and
their constraints are folded into the referring property.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar

from llm_forge.errors import UnsupportedConstructError
from llm_forge.ir.models import (
    ArrayType,
    CanonicalSchema,
    Constraint,
    ConstraintKind,
    EnumType,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    PropertyDefinition,
    TypeDefinition,
    TypeKind,
    TypeReference,
    UnionType,
)
from llm_forge.mappers.naming import NamingConvention, convention_for

DECLARED_KINDS = (TypeKind.OBJECT, TypeKind.ENUM, TypeKind.UNION)


@dataclass
class MappedType:
    """A rendered native declaration.

    ``imports`` are language-level module/symbol names (not statements),
    ``dependencies`` are native names of other declared types this one uses.
    """

    name: str
    code: str
    imports: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)


class TypeMapper(ABC):
    """Translate IR types and references into one target language."""

    language: ClassVar[str]
    primitives: ClassVar[dict[PrimitiveKind, str]]
    # Names the rendered module imports; declared types must not shadow them.
    reserved_names: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, schema: CanonicalSchema):
        self.schema = schema
        self.naming = convention_for(self.language)
        self._types: dict[str, TypeDefinition] = {t.id: t for t in schema.types}
        self._names: dict[str, str] = {}
        taken: set[str] = set(self.reserved_names)
        for t in schema.types:
            base = self.naming.type_name(t.name)
            name, n = base, 2
            while name in taken:
                name = f"{base}{n}"
                n += 1
            taken.add(name)
            self._names[t.id] = name
        # type id -> discriminator property -> literals selecting that type
        self._tags: dict[str, dict[str, list[str]]] = {}
        # (type id, discriminator property) -> unions that select the type by it
        self._tag_owners: dict[tuple[str, str], list[UnionType]] = {}
        for t in schema.types:
            if isinstance(t, UnionType) and t.discriminator:
                for literal, target in t.discriminator_mapping.items():
                    literals = self._tags.setdefault(target, {}).setdefault(t.discriminator, [])
                    if literal not in literals:
                        literals.append(literal)
                    owners = self._tag_owners.setdefault((target, t.discriminator), [])
                    if t not in owners:
                        owners.append(t)

    # -- Lookup ----------------------------------------------------------

    def get_naming_convention(self) -> NamingConvention:
        return self.naming

    def type_name(self, type_id: str) -> str:
        if type_id not in self._names:
            raise UnsupportedConstructError(type_id, "unresolved_reference", f"Unknown type id {type_id!r}")
        return self._names[type_id]

    def resolve(self, ref: TypeReference, path: str = "$") -> TypeDefinition | None:
        """Return the referenced definition, or None for primitive references."""
        if ref.type_id is None:
            if ref.primitive is None:
                raise UnsupportedConstructError(path, "empty_reference", "Type reference has no target")
            return None
        t = self._types.get(ref.type_id)
        if t is None:
            raise UnsupportedConstructError(path, "unresolved_reference", f"Unknown type id {ref.type_id!r}")
        return t

    def declared_types(self) -> list[TypeDefinition]:
        """Types that get their own declaration, in IR order."""
        return [t for t in self.schema.types if is_declared(t)]

    def property_name(self, name: str) -> str:
        return self.naming.property_name(name)

    def discriminator_tags(self, type_id: str) -> dict[str, list[str]]:
        """Discriminator properties of ``type_id`` and the literals that select it."""
        return self._tags.get(type_id, {})

    def enclosing_tags(self, type_id: str) -> set[str]:
        """Discriminator properties written by an enclosing tagged union.

        A property qualifies only when every union selecting ``type_id`` by
        it is tagged; otherwise the variant must carry the field itself.
        """
        return {
            prop
            for (target, prop), owners in self._tag_owners.items()
            if target == type_id and all(self.is_tagged_union(u) for u in owners)
        }

    def reaches(self, ref: TypeReference, type_id: str) -> bool:
        """True when following ``ref`` through declared types leads back to ``type_id``."""
        pending = [ref]
        seen: set[str] = set()
        while pending:
            current = pending.pop()
            if current.type_id is None or current.type_id in seen or current.type_id not in self._types:
                continue
            if current.type_id == type_id:
                return True
            seen.add(current.type_id)
            pending.extend(_direct_references(self._types[current.type_id]))
        return False

    def is_tagged_union(self, t: UnionType) -> bool:
        """True when every variant is a declared object selected by a literal."""
        if not t.discriminator or not t.variants:
            return False
        for ref in t.variants:
            target = self._types.get(ref.type_id) if ref.type_id else None
            if not isinstance(target, ObjectType) or target.is_map or t.literal_for(target.id) is None:
                return False
        return True

    # -- Public contract -------------------------------------------------

    def map_type(self, t: TypeDefinition) -> MappedType:
        imports: set[str] = set()
        if isinstance(t, ObjectType) and not t.is_map:
            code = self.render_object(t, imports)
        elif isinstance(t, EnumType):
            code = self.render_enum(t, imports)
        elif isinstance(t, UnionType):
            code = self.render_union(t, imports)
        elif isinstance(t, (PrimitiveType, ArrayType, ObjectType)):
            # Rendered inline at every reference site.
            expr = self.render_reference(TypeReference.to(t.id), imports, path=t.id)
            return MappedType(name=expr, code="", imports=sorted(imports))
        else:
            raise UnsupportedConstructError(t.id, "unsupported_kind", f"Cannot map type kind {type(t).__name__}")
        return MappedType(
            name=self.type_name(t.id),
            code=code.rstrip("\n") + "\n",
            imports=sorted(imports),
            dependencies=self.dependencies(t),
        )

    def map_type_reference(self, ref: TypeReference, optional: bool = False) -> str:
        return self.render_reference(ref, set(), optional=optional)

    def import_lines(self, imports: list[str]) -> list[str]:
        """Render collected imports as source lines."""
        return sorted(set(imports))

    @abstractmethod
    def map_constraints(self, constraints: list[Constraint], subject: str) -> list[str]:
        """Return declarative attributes or guard expressions for ``subject``."""

    # -- Reference rendering ---------------------------------------------

    def render_reference(
        self, ref: TypeReference, imports: set[str], optional: bool = False, path: str = "$"
    ) -> str:
        """Render ``ref`` and apply the nullable wrapper at most once."""
        target = self.resolve(ref, path)
        base = self._render_target(ref, target, imports, path)
        if (ref.nullable or optional) and not self.is_null(ref):
            return self.nullable(base, imports)
        return base

    def _render_target(self, ref: TypeReference, target: TypeDefinition | None, imports: set[str], path: str) -> str:
        if target is None:
            return self.primitive(ref.primitive, imports, path)
        if isinstance(target, PrimitiveType):
            return self.primitive(target.primitive_kind, imports, f"{path}.{target.id}")
        if isinstance(target, ArrayType):
            item = self.render_reference(target.items, imports, path=f"{target.id}.items")
            return self.array_of(item, imports)
        if isinstance(target, ObjectType) and target.is_map:
            value = self.map_value(target, imports)
            return self.map_of(value, imports)
        return self.named(target, imports)

    def map_value(self, t: ObjectType, imports: set[str]) -> str:
        if isinstance(t.additional_properties, TypeReference):
            return self.render_reference(t.additional_properties, imports, path=f"{t.id}.additionalProperties")
        return self.primitive(PrimitiveKind.ANY, imports, t.id)

    def is_null(self, ref: TypeReference) -> bool:
        target = self._types.get(ref.type_id) if ref.type_id else None
        if isinstance(target, PrimitiveType):
            return target.primitive_kind == PrimitiveKind.NULL
        return ref.type_id is None and ref.primitive == PrimitiveKind.NULL

    def primitive(self, kind: PrimitiveKind | None, imports: set[str], path: str = "$") -> str:
        if kind not in self.primitives:
            raise UnsupportedConstructError(
                path, "unsupported_primitive", f"{self.language} has no mapping for primitive {kind}"
            )
        return self.primitives[kind]

    def named(self, t: TypeDefinition, imports: set[str]) -> str:
        return self.type_name(t.id)

    @abstractmethod
    def nullable(self, base: str, imports: set[str]) -> str:
        ...

    @abstractmethod
    def array_of(self, item: str, imports: set[str]) -> str:
        ...

    @abstractmethod
    def map_of(self, value: str, imports: set[str]) -> str:
        ...

    # -- Declarations ----------------------------------------------------

    @abstractmethod
    def render_object(self, t: ObjectType, imports: set[str]) -> str:
        ...

    @abstractmethod
    def render_enum(self, t: EnumType, imports: set[str]) -> str:
        ...

    @abstractmethod
    def render_union(self, t: UnionType, imports: set[str]) -> str:
        ...

    # -- Helpers for subclasses ------------------------------------------

    def property_constraints(self, prop: PropertyDefinition) -> list[Constraint]:
        """Constraints of ``prop`` merged with those of an inline-rendered target.

        The property's own constraints win over the referenced type's.
        """
        own = prop.constraints.flatten() if prop.constraints else []
        inherited: list[Constraint] = []
        target = self._types.get(prop.type_ref.type_id) if prop.type_ref.type_id else None
        if isinstance(target, PrimitiveType) and target.constraints:
            inherited = target.constraints.flatten()
        elif isinstance(target, ArrayType):
            inherited = target.size_constraints()
        seen = {c.kind for c in own}
        return own + [c for c in inherited if c.kind not in seen]

    def is_optional(self, t: ObjectType, prop: PropertyDefinition) -> bool:
        return not t.is_required(prop.name)

    def dependencies(self, t: TypeDefinition) -> list[str]:
        """Native names of the declared types ``t`` refers to."""
        found: list[str] = []
        for ref in _direct_references(t):
            for type_id in self._declared_targets(ref, set()):
                name = self._names[type_id]
                if type_id != t.id and name not in found:
                    found.append(name)
        return found

    def referenced_types(self, ref: TypeReference) -> list[str]:
        """Native names of the declared types reachable from ``ref``."""
        return [self._names[type_id] for type_id in self._declared_targets(ref, set())]

    def _declared_targets(self, ref: TypeReference, seen: set[str]) -> list[str]:
        if ref.type_id is None or ref.type_id in seen or ref.type_id not in self._types:
            return []
        seen.add(ref.type_id)
        target = self._types[ref.type_id]
        if is_declared(target):
            return [target.id]
        out: list[str] = []
        for inner in _direct_references(target):
            out.extend(self._declared_targets(inner, seen))
        return out

    def variant_literal(self, union: UnionType, ref: TypeReference) -> str | None:
        """Discriminator literal for a union variant, exactly as on the wire."""
        if ref.type_id is None:
            return None
        return union.literal_for(ref.type_id)

    def doc_lines(self, t: TypeDefinition) -> list[str]:
        lines = (t.description or "").strip().splitlines()
        if t.deprecated:
            lines.append(f"Deprecated: {t.deprecation_message}" if t.deprecation_message else "Deprecated.")
        return lines


def is_declared(t: TypeDefinition) -> bool:
    if isinstance(t, ObjectType):
        return not t.is_map
    return t.kind in DECLARED_KINDS


def _direct_references(t: TypeDefinition) -> list[TypeReference]:
    if isinstance(t, ObjectType):
        refs = [p.type_ref for p in t.properties]
        if isinstance(t.additional_properties, TypeReference):
            refs.append(t.additional_properties)
        return refs
    if isinstance(t, ArrayType):
        return [t.items]
    if isinstance(t, UnionType):
        return list(t.variants)
    return []


def format_number(value) -> str:
    """Render a numeric constraint bound without a spurious ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def constraint_map(constraints: list[Constraint]) -> dict[ConstraintKind, object]:
    return {c.kind: c.value for c in constraints}
