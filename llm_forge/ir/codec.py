"""Serialize the IR to its camelCase wire form and back."""

from __future__ import annotations

import dataclasses
import json
from enum import Enum
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from llm_forge.ir.models import AuthScheme, CanonicalSchema, TypeDefinition
from llm_forge.ir.wire import CanonicalSchemaModel

# Fields whose wire name is not the plain camelCase of the attribute.
_WIRE_NAMES = {"type_ref": "type", "location": "in"}


def _wire_name(attr: str) -> str:
    return _WIRE_NAMES.get(attr) or to_camel(attr)


def _dump(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out: dict[str, Any] = {}
        if isinstance(value, TypeDefinition):
            out["kind"] = value.kind.value
        elif isinstance(value, AuthScheme):
            out["type"] = value.kind.value
        for f in dataclasses.fields(value):
            item = getattr(value, f.name)
            if item is None:
                continue
            out[_wire_name(f.name)] = _dump(item)
        return out
    if isinstance(value, dict):
        return {str(k): _dump(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    return value


def dump_schema(schema: CanonicalSchema) -> dict:
    """Convert a ``CanonicalSchema`` into a JSON-compatible wire dict.

    ``None`` fields are omitted; everything else is written in declaration
    order, so the output is stable for an unchanged schema.
    """
    return _dump(schema)


def dumps_schema(schema: CanonicalSchema, indent: int | None = 2) -> str:
    return json.dumps(dump_schema(schema), indent=indent, ensure_ascii=False)


def load_schema(document: dict) -> CanonicalSchema:
    """Parse a wire dict into a ``CanonicalSchema``.

    Only the structural shape is checked here. Run the result through
    ``llm_forge.validator.SchemaValidator`` for the semantic invariants.

    Raises:
        SchemaValidationError: If the document does not match the IR shape.
    """
    from llm_forge.validator.structural import issues_from_pydantic
    from llm_forge.errors import SchemaValidationError

    try:
        model = CanonicalSchemaModel.model_validate(document)
    except ValidationError as exc:
        raise SchemaValidationError(issues_from_pydantic(exc)) from exc
    return model.to_ir()


def loads_schema(text: str) -> CanonicalSchema:
    return load_schema(json.loads(text))
