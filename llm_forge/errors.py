"""Exception types raised by the llm-forge pipeline.

Malformed provider input is never raised: normalizers report it through
their result objects. Exceptions are reserved for call sites that asked for
a hard failure (``assert_valid``) and for constructs a type mapper cannot
represent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from llm_forge.validator.result import ValidationIssue


class ForgeError(ValueError):
    """Base class for all llm-forge errors."""


class SchemaValidationError(ForgeError):
    """A canonical schema failed validation.

    ``errors`` holds every accumulated issue, not just the first one.
    """

    def __init__(self, errors: list[ValidationIssue]):
        self.errors = list(errors)
        lines = [f"  {issue.path or '/'}: {issue.message} [{issue.code}]" for issue in self.errors]
        super().__init__("Invalid canonical schema:\n" + "\n".join(lines))


class UnsupportedConstructError(ForgeError):
    """A type mapper met a type or reference it cannot represent."""

    def __init__(self, path: str, code: str, message: str):
        self.path = path
        self.code = code
        self.message = message
        super().__init__(f"{path}: {message} [{code}]")


class ConfigError(ForgeError):
    """Generator configuration is missing or inconsistent."""
