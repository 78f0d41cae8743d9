"""Validation result types."""

from __future__ import annotations

from dataclasses import dataclass, field

from llm_forge.ir.models import CanonicalSchema


@dataclass
class ValidationIssue:
    """A single validation failure."""

    path: str  # Dotted/bracketed locator, e.g. "endpoints[0].requestBody.type.typeId"
    message: str
    code: str  # Machine-readable category, e.g. "invalid_type_reference"

    def to_dict(self) -> dict:
        return {"path": self.path, "message": self.message, "code": self.code}


@dataclass
class ValidationResult:
    """Outcome of validating one canonical schema document."""

    errors: list[ValidationIssue] = field(default_factory=list)
    schema: CanonicalSchema | None = None  # Parsed IR, set when the structural phase passed

    @property
    def valid(self) -> bool:
        return not self.errors

    def codes(self) -> set[str]:
        return {e.code for e in self.errors}

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": [e.to_dict() for e in self.errors]}

    def summary(self) -> str:
        status = "PASS" if self.valid else "FAIL"
        return f"[{status}] {len(self.errors)} error(s)"
