"""Structural validation: does a document have the IR's shape?

This is the first of the two validation phases. It runs the document
through the pydantic wire models and translates pydantic's error list into
``ValidationIssue`` records with stable codes.
"""

from __future__ import annotations

from pydantic import ValidationError

from llm_forge.ir.wire import UNION_TAGS, CanonicalSchemaModel
from llm_forge.validator.result import ValidationIssue

_SCALAR_LABELS = {"bool", "int", "float", "str", "dict", "list"}


def validate_structure(document: dict) -> tuple[CanonicalSchemaModel | None, list[ValidationIssue]]:
    """Validate a wire-format dict against the IR shape.

    Args:
        document: The canonical schema as a camelCase JSON-compatible dict.

    Returns:
        The parsed wire model (or None) and the list of structural issues.
        An empty list means the document is well formed.
    """
    if not isinstance(document, dict):
        return None, [
            ValidationIssue(path="", message=f"expected an object, got {type(document).__name__}", code="invalid_type")
        ]
    try:
        return CanonicalSchemaModel.model_validate(document), []
    except ValidationError as exc:
        return None, issues_from_pydantic(exc)


def issues_from_pydantic(exc: ValidationError) -> list[ValidationIssue]:
    issues = []
    for err in exc.errors():
        issues.append(
            ValidationIssue(
                path=format_location(err["loc"]),
                message=err["msg"],
                code=_issue_code(err["type"]),
            )
        )
    return issues


def format_location(loc: tuple) -> str:
    """Render a pydantic error location as ``types[0].properties[1].name``.

    Tag segments that pydantic inserts for union members are dropped so
    the path points at the document, not at the validator's internals.
    """
    path = ""
    previous = None
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif _is_union_label(part, previous):
            pass
        else:
            path += f".{part}" if path else str(part)
        previous = part
    return path


def _is_union_label(part: str, previous) -> bool:
    if isinstance(previous, int) and part in UNION_TAGS:
        return True
    return part in _SCALAR_LABELS or part.endswith("Model") or "[" in part


def _issue_code(error_type: str) -> str:
    if error_type == "missing":
        return "missing_field"
    if error_type.startswith("union_tag"):
        return "invalid_kind"
    if error_type in ("literal_error", "enum") or error_type.startswith("string_pattern"):
        return "invalid_value"
    if error_type.endswith("_type") or error_type.endswith("_parsing"):
        return "invalid_type"
    return "invalid_structure"
