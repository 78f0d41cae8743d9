"""Shared Jinja2 environment for the per-language templates."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from llm_forge.mappers.naming import camel_case, kebab_case, pascal_case, screaming_snake_case, snake_case

TEMPLATES_DIR = Path(__file__).parent / "templates"

GENERATED_NOTICE = "Code generated by llm-forge. DO NOT EDIT."


def _quote(value) -> str:
    """A double-quoted string literal valid in JSON, TS, Go, Java, C# and Rust."""
    return json.dumps(str(value), ensure_ascii=False)


def _comment(text: str | None, prefix: str = "#", indent: int = 0) -> str:
    """Render ``text`` as line comments; blank input renders nothing."""
    if not text:
        return ""
    pad = " " * indent
    return "\n".join(f"{pad}{prefix} {line}".rstrip() for line in text.strip().splitlines())


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    """Build the environment once; it is read-only afterwards and safe to share."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
        auto_reload=False,
        extensions=["jinja2.ext.do"],
    )
    env.filters.update(
        pascal=pascal_case,
        camel=camel_case,
        snake=snake_case,
        kebab=kebab_case,
        screaming=screaming_snake_case,
        quote=_quote,
        pyrepr=repr,
        comment=_comment,
    )
    env.globals["notice"] = GENERATED_NOTICE
    return env


def render(template: str, **context) -> str:
    """Render ``template`` (relative to the templates directory)."""
    text = get_environment().get_template(template).render(**context)
    return text.rstrip("\n") + "\n"
