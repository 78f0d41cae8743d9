"""Identifier case conversion and keyword escaping.

All functions here are pure and cached, so the same input name maps to the
same identifier everywhere in a run, across threads and across runs.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CASE_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


@lru_cache(maxsize=4096)
def split_words(name: str) -> tuple[str, ...]:
    """Split ``name`` into lowercase words.

    ``"HTTPResponse"`` -> ``("http", "response")``,
    ``"user_id"`` / ``"userId"`` / ``"user-id"`` -> ``("user", "id")``.
    """
    spaced = _ACRONYM_BOUNDARY.sub(r"\1 \2", name)
    spaced = _CASE_BOUNDARY.sub(r"\1 \2", spaced)
    return tuple(w.lower() for w in _NON_ALNUM.sub(" ", spaced).split())


@lru_cache(maxsize=4096)
def pascal_case(name: str) -> str:
    return "".join(w[:1].upper() + w[1:] for w in split_words(name))


@lru_cache(maxsize=4096)
def camel_case(name: str) -> str:
    pascal = pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


@lru_cache(maxsize=4096)
def snake_case(name: str) -> str:
    return "_".join(split_words(name))


@lru_cache(maxsize=4096)
def screaming_snake_case(name: str) -> str:
    return snake_case(name).upper()


@lru_cache(maxsize=4096)
def kebab_case(name: str) -> str:
    return "-".join(split_words(name))


@lru_cache(maxsize=4096)
def flat_case(name: str) -> str:
    return "".join(split_words(name))


# --- Reserved words ---

KEYWORDS: dict[str, frozenset[str]] = {
    "python": frozenset(
        "False None True and as assert async await break class continue def del elif else except "
        "finally for from global if import in is lambda nonlocal not or pass raise return try while "
        "with yield json dict copy schema".split()
    ),
    "typescript": frozenset(
        "break case catch class const continue debugger default delete do else enum export extends "
        "false finally for function if import in instanceof new null return super switch this throw "
        "true try typeof var void while with as implements interface let package private protected "
        "public static yield any boolean number string symbol".split()
    ),
    "rust": frozenset(
        "as async await break const continue crate dyn else enum extern false fn for if impl in let "
        "loop match mod move mut pub ref return self Self static struct super trait true type unsafe "
        "use where while abstract become box do final macro override priv typeof unsized virtual "
        "yield try".split()
    ),
    "go": frozenset(
        "break case chan const continue default defer else fallthrough for func go goto if import "
        "interface map package range return select struct switch type var".split()
    ),
    "java": frozenset(
        "abstract assert boolean break byte case catch char class const continue default do double "
        "else enum extends final finally float for goto if implements import instanceof int "
        "interface long native new package private protected public return short static strictfp "
        "super switch synchronized this throw throws transient try void volatile while true false "
        "null record sealed permits var yield".split()
    ),
    "csharp": frozenset(
        "abstract as base bool break byte case catch char checked class const continue decimal "
        "default delegate do double else enum event explicit extern false finally fixed float for "
        "foreach goto if implicit in int interface internal is lock long namespace new null object "
        "operator out override params private protected public readonly ref return sbyte sealed "
        "short sizeof stackalloc static string struct switch this throw true try typeof uint ulong "
        "unchecked unsafe ushort using virtual void volatile while record".split()
    ),
}


@lru_cache(maxsize=4096)
def escape_keyword(identifier: str, language: str) -> str:
    """Make ``identifier`` legal in ``language``.

    Reserved words get the language's usual escape (``r#`` in Rust, ``@``
    in C#, a trailing underscore elsewhere). Identifiers starting with a
    digit get a leading underscore.
    """
    if not identifier:
        return "_"
    if identifier[0].isdigit():
        identifier = f"_{identifier}"
    if identifier not in KEYWORDS.get(language, frozenset()):
        return identifier
    if language == "rust":
        # Raw identifiers cannot spell these.
        return f"{identifier}_" if identifier in ("self", "Self", "super", "crate") else f"r#{identifier}"
    if language == "csharp":
        return f"@{identifier}"
    return f"{identifier}_"


def _upper_start(identifier: str) -> str:
    """Prefix identifiers that would start with a digit."""
    return f"V{identifier}" if identifier[:1].isdigit() else identifier


@dataclass(frozen=True)
class NamingConvention:
    """The six identifier transforms a target language needs."""

    type_name: Callable[[str], str]
    property_name: Callable[[str], str]
    method_name: Callable[[str], str]
    constant_name: Callable[[str], str]
    enum_member_name: Callable[[str], str]
    package_name: Callable[[str], str]


@lru_cache(maxsize=None)
def convention_for(language: str) -> NamingConvention:
    """Build the naming convention for one of the supported languages."""

    def esc(fn: Callable[[str], str]) -> Callable[[str], str]:
        return lambda name: escape_keyword(fn(name) or "value", language)

    def type_name(name: str) -> str:
        return escape_keyword(_upper_start(pascal_case(name) or "Type"), language)

    def enum_member(fn: Callable[[str], str]) -> Callable[[str], str]:
        return lambda name: escape_keyword(_upper_start(fn(name) or "Empty"), language)

    if language == "python":
        return NamingConvention(
            type_name=type_name,
            property_name=esc(snake_case),
            method_name=esc(snake_case),
            constant_name=esc(screaming_snake_case),
            enum_member_name=enum_member(screaming_snake_case),
            package_name=lambda name: snake_case(name) or "client",
        )
    if language == "typescript":
        return NamingConvention(
            type_name=type_name,
            property_name=esc(camel_case),
            method_name=esc(camel_case),
            constant_name=esc(screaming_snake_case),
            enum_member_name=enum_member(pascal_case),
            package_name=lambda name: kebab_case(name) or "client",
        )
    if language == "rust":
        return NamingConvention(
            type_name=type_name,
            property_name=esc(snake_case),
            method_name=esc(snake_case),
            constant_name=esc(screaming_snake_case),
            enum_member_name=enum_member(pascal_case),
            package_name=lambda name: kebab_case(name) or "client",
        )
    if language == "go":
        return NamingConvention(
            type_name=type_name,
            property_name=enum_member(pascal_case),  # exported struct fields
            method_name=enum_member(pascal_case),
            constant_name=enum_member(pascal_case),
            enum_member_name=enum_member(pascal_case),
            package_name=lambda name: flat_case(name) or "client",
        )
    if language == "java":
        return NamingConvention(
            type_name=type_name,
            property_name=esc(camel_case),
            method_name=esc(camel_case),
            constant_name=esc(screaming_snake_case),
            enum_member_name=enum_member(screaming_snake_case),
            package_name=lambda name: flat_case(name) or "client",
        )
    if language == "csharp":
        return NamingConvention(
            type_name=type_name,
            property_name=enum_member(pascal_case),
            method_name=enum_member(pascal_case),
            constant_name=enum_member(pascal_case),
            enum_member_name=enum_member(pascal_case),
            package_name=lambda name: ".".join(pascal_case(w) for w in split_words(name)) or "Client",
        )
    raise ValueError(f"Unknown language: {language}")
