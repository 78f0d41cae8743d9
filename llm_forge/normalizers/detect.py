"""Detect the format of a raw schema document and load it from disk."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

import yaml


class SchemaFormat(Enum):
    OPENAPI = "openapi"
    PROVIDER = "provider"
    CANONICAL = "canonical"
    UNKNOWN = "unknown"


def detect_schema_format(document: object) -> SchemaFormat:
    """Guess which normalizer understands ``document``."""
    if not isinstance(document, dict):
        return SchemaFormat.UNKNOWN
    if "openapi" in document or "swagger" in document:
        return SchemaFormat.OPENAPI
    if isinstance(document.get("metadata"), dict) and "schemaVersion" in document["metadata"]:
        return SchemaFormat.CANONICAL
    if "baseUrl" in document and "endpoints" in document:
        return SchemaFormat.PROVIDER
    return SchemaFormat.UNKNOWN


def load_document(path: Path) -> dict:
    """Read a JSON or YAML document.

    Raises:
        ValueError: If the file parses but is not a mapping.
    """
    text = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() == ".json":
        data = json.loads(text)
    else:
        # YAML is a superset of JSON, so this also covers extension-less JSON.
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level, got {type(data).__name__}")
    return data
