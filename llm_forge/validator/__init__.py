"""Two-phase validation of canonical schema documents.

Structural failures short-circuit: semantic checks assume a well-typed
document and only run once the structural phase is clean.
"""

from __future__ import annotations

import logging

from llm_forge.errors import SchemaValidationError
from llm_forge.ir.codec import dump_schema
from llm_forge.ir.models import CanonicalSchema
from llm_forge.validator.result import ValidationIssue, ValidationResult
from llm_forge.validator.semantic import validate_semantics
from llm_forge.validator.structural import validate_structure

logger = logging.getLogger(__name__)

__all__ = ["SchemaValidator", "ValidationIssue", "ValidationResult", "assert_valid", "validate_schema"]


class SchemaValidator:
    """Validate an IR document, given as a ``CanonicalSchema`` or a wire dict."""

    def validate(self, document: CanonicalSchema | dict) -> ValidationResult:
        if isinstance(document, CanonicalSchema):
            document = dump_schema(document)

        model, issues = validate_structure(document)
        if issues:
            logger.debug("Structural validation failed with %d issue(s)", len(issues))
            return ValidationResult(errors=issues)

        schema = model.to_ir()
        issues = validate_semantics(schema)
        if issues:
            logger.debug("Semantic validation failed with %d issue(s)", len(issues))
        return ValidationResult(errors=issues, schema=schema)

    def assert_valid(self, document: CanonicalSchema | dict) -> CanonicalSchema:
        """Validate and return the parsed schema, or raise with every error.

        Raises:
            SchemaValidationError: If either phase reports an issue.
        """
        result = self.validate(document)
        if not result.valid:
            raise SchemaValidationError(result.errors)
        return result.schema


def validate_schema(document: CanonicalSchema | dict) -> ValidationResult:
    return SchemaValidator().validate(document)


def assert_valid(document: CanonicalSchema | dict) -> CanonicalSchema:
    return SchemaValidator().assert_valid(document)
