"""Shared pipeline skeleton for schema normalizers.

A normalizer turns one raw provider schema document into a
``CanonicalSchema``. Concrete adapters only supply the ``extract_*`` hooks;
``normalize`` runs ``validate`` first and only converts input that passed.
All per-call state lives in a ``NormalizeContext``, so a single normalizer
instance can be shared between threads.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from llm_forge.ir.models import (
    AuthScheme,
    CanonicalSchema,
    EndpointDefinition,
    ErrorDefinition,
    SchemaMetadata,
    TypeDefinition,
)

logger = logging.getLogger(__name__)


@dataclass
class NormalizeResult:
    """Outcome of normalizing one raw schema document."""

    success: bool
    schema: CanonicalSchema | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class NormalizeContext:
    """Mutable state for a single ``convert`` call."""

    raw: dict
    types: list[TypeDefinition] = field(default_factory=list)
    type_keys: dict[str, str] = field(default_factory=dict)  # source key -> type id
    warnings: list[str] = field(default_factory=list)
    _ids: set[str] = field(default_factory=set)

    def allocate_id(self, name: str) -> str:
        """Return a fresh, unique type id derived from ``name``."""
        base = re.sub(r"[^A-Za-z0-9_]", "_", name).strip("_") or "Type"
        candidate = base
        n = 2
        while candidate in self._ids:
            candidate = f"{base}_{n}"
            n += 1
        self._ids.add(candidate)
        return candidate

    def add_type(self, type_def: TypeDefinition) -> str:
        self._ids.add(type_def.id)
        self.types.append(type_def)
        return type_def.id

    def warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)


class SchemaNormalizer(ABC):
    """Base class for provider schema adapters."""

    provider_id: str = "unknown"
    provider_name: str = "Unknown"

    def __init__(self, provider_id: str | None = None, provider_name: str | None = None, include_deprecated: bool = True):
        self.provider_overridden = bool(provider_id)
        if provider_id:
            self.provider_id = provider_id
        if provider_name:
            self.provider_name = provider_name
        elif provider_id:
            self.provider_name = provider_id.replace("-", " ").title()
        self.include_deprecated = include_deprecated

    # -- Pipeline --------------------------------------------------------

    def validate(self, raw: Any, errors: list[str] | None = None) -> bool:
        """Return True if ``raw`` looks like a document this adapter handles.

        Never raises. Reasons for rejection are appended to ``errors`` when
        a list is given.
        """
        if not isinstance(raw, dict):
            reasons = [f"Schema document must be an object, got {type(raw).__name__}"]
        else:
            reasons = self.validation_errors(raw)
        if errors is not None:
            errors.extend(reasons)
        return not reasons

    def convert(self, raw: dict, warnings: list[str] | None = None) -> CanonicalSchema:
        """Build the canonical schema. Only call after ``validate`` passed.

        Types registered while extracting endpoints or errors (inline request
        and response shapes) are appended to the type table in the order
        they were found. Degraded-input warnings go to ``warnings``.
        """
        ctx = NormalizeContext(raw=raw)
        metadata = self.extract_metadata(raw, ctx)
        authentication = self.extract_auth_schemes(raw, ctx)
        self.extract_types(raw, ctx)
        endpoints = self.extract_endpoints(raw, ctx)
        errors = self.extract_errors(raw, ctx)
        config = self.extract_config(raw, ctx)
        schema = CanonicalSchema(
            metadata=metadata,
            types=list(ctx.types),
            endpoints=endpoints,
            authentication=authentication,
            errors=errors,
            config=config,
        )
        if warnings is not None:
            warnings.extend(ctx.warnings)
        return schema

    def normalize(self, raw: Any) -> NormalizeResult:
        errors: list[str] = []
        if not self.validate(raw, errors):
            logger.info("%s rejected schema document: %s", type(self).__name__, "; ".join(errors))
            return NormalizeResult(success=False, errors=errors)

        warnings: list[str] = []
        schema = self.convert(raw, warnings)
        logger.debug(
            "Normalized %s schema: %d type(s), %d endpoint(s)",
            self.provider_id,
            len(schema.types),
            len(schema.endpoints),
        )
        return NormalizeResult(success=True, schema=schema, warnings=warnings)

    # -- Hooks -----------------------------------------------------------

    @abstractmethod
    def validation_errors(self, raw: dict) -> list[str]:
        """Return the reasons ``raw`` cannot be normalized (empty if it can)."""

    def extract_metadata(self, raw: dict, ctx: NormalizeContext) -> SchemaMetadata:
        return SchemaMetadata(
            provider_id=self.provider_id,
            provider_name=self.provider_name,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )

    @abstractmethod
    def extract_types(self, raw: dict, ctx: NormalizeContext) -> list[TypeDefinition]:
        """Register the document's named types in ``ctx`` and return them."""

    @abstractmethod
    def extract_endpoints(self, raw: dict, ctx: NormalizeContext) -> list[EndpointDefinition]:
        ...

    def extract_auth_schemes(self, raw: dict, ctx: NormalizeContext) -> list[AuthScheme]:
        return []

    def extract_errors(self, raw: dict, ctx: NormalizeContext) -> list[ErrorDefinition]:
        return []

    def extract_config(self, raw: dict, ctx: NormalizeContext) -> dict | None:
        return None


def slugify(text: str) -> str:
    """Lowercase identifier-safe slug, e.g. ``"OpenAI API"`` -> ``"openai-api"``."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "provider"
