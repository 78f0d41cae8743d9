"""Schema normalizers: raw provider API descriptions -> ``CanonicalSchema``."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from llm_forge.normalizers.base import NormalizeResult, SchemaNormalizer
from llm_forge.normalizers.detect import SchemaFormat, detect_schema_format, load_document
from llm_forge.normalizers.openapi import OpenAPINormalizer
from llm_forge.normalizers.provider_spec import ProviderSpecNormalizer

logger = logging.getLogger(__name__)

__all__ = [
    "NormalizeResult",
    "OpenAPINormalizer",
    "ProviderSpecNormalizer",
    "SchemaFormat",
    "SchemaNormalizer",
    "detect_schema_format",
    "load_document",
    "normalize_many",
    "normalize_schema",
    "normalizer_for",
]


def normalizer_for(document: object, **options) -> SchemaNormalizer | None:
    fmt = detect_schema_format(document)
    if fmt == SchemaFormat.OPENAPI:
        return OpenAPINormalizer(**options)
    if fmt == SchemaFormat.PROVIDER:
        return ProviderSpecNormalizer(**options)
    return None


def normalize_schema(document: object, **options) -> NormalizeResult:
    """Detect the document's format and normalize it.

    ``options`` are passed to the normalizer (``provider_id``,
    ``provider_name``, ``include_deprecated``).
    """
    normalizer = normalizer_for(document, **options)
    if normalizer is None:
        return NormalizeResult(success=False, errors=["Unrecognized schema format"])
    return normalizer.normalize(document)


def normalize_many(documents: dict[str, object], max_workers: int = 4) -> dict[str, NormalizeResult]:
    """Normalize several providers' documents concurrently.

    Each document gets its own normalizer call and context, so nothing is
    shared between workers. Results are keyed like ``documents``.
    """
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            name: pool.submit(normalize_schema, doc, provider_id=name) for name, doc in documents.items()
        }
        results = {name: future.result() for name, future in futures.items()}
    failed = [name for name, r in results.items() if not r.success]
    if failed:
        logger.warning("Normalization failed for: %s", ", ".join(failed))
    return results
