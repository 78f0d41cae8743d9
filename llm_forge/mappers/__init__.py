"""Type system mappers, one per target language."""

from __future__ import annotations

from llm_forge.ir.models import CanonicalSchema
from llm_forge.mappers.base import MappedType, TypeMapper
from llm_forge.mappers.csharp import CSharpTypeMapper
from llm_forge.mappers.go import GoTypeMapper
from llm_forge.mappers.java import JavaTypeMapper
from llm_forge.mappers.naming import NamingConvention, convention_for
from llm_forge.mappers.python import PythonTypeMapper
from llm_forge.mappers.rust import RustTypeMapper
from llm_forge.mappers.typescript import TypeScriptTypeMapper

MAPPERS: dict[str, type[TypeMapper]] = {
    cls.language: cls
    for cls in (
        PythonTypeMapper,
        TypeScriptTypeMapper,
        RustTypeMapper,
        GoTypeMapper,
        JavaTypeMapper,
        CSharpTypeMapper,
    )
}

LANGUAGES = tuple(MAPPERS)


def get_mapper(language: str, schema: CanonicalSchema) -> TypeMapper:
    """Build the mapper for ``language`` over ``schema``.

    Raises:
        ValueError: If the language is not supported.
    """
    try:
        cls = MAPPERS[language]
    except KeyError:
        raise ValueError(f"Unsupported language {language!r}; expected one of {', '.join(LANGUAGES)}") from None
    return cls(schema)


__all__ = [
    "LANGUAGES",
    "MAPPERS",
    "CSharpTypeMapper",
    "GoTypeMapper",
    "JavaTypeMapper",
    "MappedType",
    "NamingConvention",
    "PythonTypeMapper",
    "RustTypeMapper",
    "TypeMapper",
    "TypeScriptTypeMapper",
    "convention_for",
    "get_mapper",
]
