"""Canonical intermediate representation for provider API descriptions.

Every schema normalizer produces a ``CanonicalSchema``; the validator, type
mappers and code generation engine only ever read it.
"""

# Version of the IR wire format written into ``SchemaMetadata.schema_version``.
IR_SCHEMA_VERSION = "1.0.0"
