"""Shared pipeline skeleton for response normalizers.

Mirrors ``llm_forge.normalizers.base`` for runtime payloads: ``validate``
never raises and records why it rejected a payload, ``convert`` assembles a
``UnifiedResponse`` from the ``extract_*`` hooks, and missing fields degrade
to defaults (zero usage, ``StopReason.UNKNOWN``). Streaming chunks go
through the same validate/convert split.
"""

from __future__ import annotations

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from llm_forge.responses.models import (
    MessageRole,
    ModelInfo,
    NormalizationResult,
    Provider,
    ProviderCapabilities,
    ProviderMetadata,
    StopReason,
    StopReasonMetadata,
    StreamChunk,
    StreamEventType,
    TokenUsage,
    ToolUseContent,
    UnifiedError,
    UnifiedMessage,
    UnifiedResponse,
    UnifiedStreamResponse,
)
from llm_forge.responses.model_registry import default_model_registry
from llm_forge.responses.stop_reasons import normalize_stop_reason

logger = logging.getLogger(__name__)

_ROLE_ALIASES = {
    "system": MessageRole.SYSTEM,
    "developer": MessageRole.SYSTEM,
    "user": MessageRole.USER,
    "human": MessageRole.USER,
    "assistant": MessageRole.ASSISTANT,
    "model": MessageRole.ASSISTANT,
    "chatbot": MessageRole.ASSISTANT,
    "tool": MessageRole.TOOL,
    "function": MessageRole.FUNCTION,
}


@dataclass
class ParseContext:
    """Per-call state, so adapters can be shared across threads."""

    raw: Any
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)


class ResponseNormalizer(ABC):
    """Base class for provider response adapters."""

    provider: Provider
    metadata: ProviderMetadata
    # JSON types of the fields the extract_* hooks read; see ``shape_errors``.
    response_shape: ClassVar[dict] = {}
    chunk_shape: ClassVar[dict] = {}

    @property
    def capabilities(self) -> ProviderCapabilities:
        return self.metadata.capabilities

    # -- Full responses --------------------------------------------------

    def validate(self, raw: Any, errors: list[str] | None = None) -> bool:
        """Return True if ``raw`` is a payload this adapter can convert.

        Error payloads count as valid: they convert into a response whose
        ``error`` field is set.
        """
        if not isinstance(raw, dict):
            reasons = [f"Invalid response: must be an object, got {type(raw).__name__}"]
        else:
            reasons = [f"Invalid response: {e}" for e in shape_errors(raw, self.response_shape)]
            if not reasons and not raw.get("error"):
                reasons = self.validation_errors(raw)
        if errors is not None:
            errors.extend(reasons)
        return not reasons

    def convert(self, raw: dict, warnings: list[str] | None = None) -> UnifiedResponse:
        ctx = ParseContext(raw=raw)
        stop_reason, stop_metadata = self.extract_stop_reason(raw, ctx)
        response = UnifiedResponse(
            id=self.extract_id(raw),
            provider=self.provider,
            model=self.extract_model_info(raw, ctx),
            messages=self.extract_messages(raw, ctx),
            stop_reason=stop_reason,
            stop_reason_metadata=stop_metadata,
            usage=self.extract_usage(raw, ctx),
            metadata=self.extract_response_metadata(raw, ctx),
            error=self.extract_error(raw, ctx),
            raw=raw,
        )
        if warnings is not None:
            warnings.extend(ctx.warnings)
        return response

    def normalize(self, raw: Any) -> NormalizationResult:
        errors: list[str] = []
        if not self.validate(raw, errors):
            return NormalizationResult(success=False, errors=errors)
        warnings: list[str] = []
        response = self.convert(raw, warnings)
        return NormalizationResult(success=True, response=response, warnings=warnings)

    # -- Streaming -------------------------------------------------------

    def validate_chunk(self, raw: Any, errors: list[str] | None = None) -> bool:
        if not isinstance(raw, dict):
            reasons = [f"Invalid stream chunk: must be an object, got {type(raw).__name__}"]
        else:
            reasons = [f"Invalid stream chunk: {e}" for e in shape_errors(raw, self.chunk_shape)]
            if not reasons and not raw.get("error"):
                reasons = self.chunk_validation_errors(raw)
        if errors is not None:
            errors.extend(reasons)
        return not reasons

    def convert_chunk(self, raw: dict, warnings: list[str] | None = None) -> UnifiedStreamResponse:
        ctx = ParseContext(raw=raw)
        chunks = self.extract_chunks(raw, ctx)
        stop_value = self.chunk_stop_reason_value(raw)
        stop_reason, stop_metadata = None, None
        if stop_value is not None:
            stop_reason, stop_metadata = normalize_stop_reason(stop_value, self.provider.value)
            for chunk in chunks:
                if chunk.type == StreamEventType.MESSAGE_DELTA:
                    chunk.stop_reason = stop_reason
        stream = UnifiedStreamResponse(
            id=self.extract_id(raw),
            provider=self.provider,
            model=self.extract_model_info(raw, ctx),
            chunks=chunks,
            stop_reason=stop_reason,
            stop_reason_metadata=stop_metadata,
            usage=self.extract_chunk_usage(raw, ctx),
            error=self.extract_error(raw, ctx),
        )
        if warnings is not None:
            warnings.extend(ctx.warnings)
        return stream

    def normalize_chunk(self, raw: Any) -> NormalizationResult:
        errors: list[str] = []
        if not self.validate_chunk(raw, errors):
            return NormalizationResult(success=False, errors=errors)
        warnings: list[str] = []
        stream = self.convert_chunk(raw, warnings)
        return NormalizationResult(success=True, response=stream, warnings=warnings)

    # -- Hooks -----------------------------------------------------------

    @abstractmethod
    def validation_errors(self, raw: dict) -> list[str]:
        ...

    @abstractmethod
    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        ...

    @abstractmethod
    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        ...

    @abstractmethod
    def stop_reason_value(self, raw: dict) -> str | None:
        """Return the provider's raw stop/finish reason string, if any."""

    @abstractmethod
    def extract_model_info(self, raw: dict, ctx: ParseContext) -> ModelInfo:
        ...

    @abstractmethod
    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        ...

    def extract_stop_reason(self, raw: dict, ctx: ParseContext) -> tuple[StopReason, StopReasonMetadata]:
        reason, metadata = normalize_stop_reason(self.stop_reason_value(raw), self.provider.value)
        if metadata.original_value is not None and not metadata.was_recognized:
            ctx.warn(f"Unrecognized {self.provider.value} stop reason: {metadata.original_value!r}")
        return reason, metadata

    def extract_id(self, raw: dict) -> str:
        return str(raw.get("id") or _content_id(self.provider, raw))

    def extract_response_metadata(self, raw: dict, ctx: ParseContext) -> dict[str, Any]:
        return {}

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        return []

    @abstractmethod
    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        ...

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        return None

    def extract_chunk_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage | None:
        return None

    # -- Helpers for adapters --------------------------------------------

    def normalize_role(self, role: Any, ctx: ParseContext) -> MessageRole:
        key = str(role or "").lower()
        if key in _ROLE_ALIASES:
            return _ROLE_ALIASES[key]
        ctx.warn(f"Unknown message role {role!r} from {self.provider.value}, defaulting to 'user'")
        return MessageRole.USER

    def model_info(self, model_id: str | None) -> ModelInfo:
        """Describe ``model_id``, preferring known per-model limits over provider-wide ones."""
        known = default_model_registry().get(model_id, self.provider) if isinstance(model_id, str) else None
        if known is None:
            return ModelInfo(
                id=model_id or "unknown",
                provider=self.provider,
                context_window=self.capabilities.max_context_window,
                max_output_tokens=self.capabilities.max_output_tokens,
            )
        return ModelInfo(
            id=model_id,
            provider=self.provider,
            version=known.version,
            context_window=known.context_window or self.capabilities.max_context_window,
            max_output_tokens=known.max_output_tokens or self.capabilities.max_output_tokens,
        )

    def tool_use(self, call_id: Any, name: Any, arguments: Any, ctx: ParseContext) -> ToolUseContent:
        """Build a tool call, decoding JSON-string arguments."""
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError:
                ctx.warn(f"Tool call {name!r} has arguments that are not valid JSON")
                arguments = {"_raw": arguments}
        if not isinstance(arguments, dict):
            arguments = {"value": arguments}
        return ToolUseContent(id=str(call_id or f"call_{name}"), name=str(name or ""), input=arguments)


def usage(input_tokens: Any = 0, output_tokens: Any = 0, total_tokens: Any = None, **extra) -> TokenUsage:
    """Build ``TokenUsage`` from possibly-missing counts."""
    i = int(input_tokens or 0)
    o = int(output_tokens or 0)
    return TokenUsage(
        input_tokens=i,
        output_tokens=o,
        total_tokens=int(total_tokens) if total_tokens else i + o,
        **{k: int(v) for k, v in extra.items() if v is not None},
    )


NUMBER = (int, float)

_JSON_NAMES = {dict: "an object", list: "an array", str: "a string", bool: "a boolean", int: "a number", float: "a number"}


def shape_errors(value: Any, shape: Any, path: str = "") -> list[str]:
    """Describe where ``value`` departs from ``shape``.

    A shape is a Python type (or tuple of types) for a leaf, a dict of
    field shapes for an object, a one-element list for an array of that
    shape, or a tuple mixing those for alternatives. Missing and null
    fields always pass, since the hooks treat them as absent.
    """
    if value is None:
        return []
    if isinstance(shape, tuple) and any(isinstance(s, (dict, list)) for s in shape):
        for alternative in shape:
            if _kind_matches(value, alternative):
                return shape_errors(value, alternative, path)
        expected = " or ".join(_describe(s) for s in shape)
        return [f"'{path}' must be {expected}, got {_describe(type(value))}"]
    if not _kind_matches(value, shape):
        return [f"'{path or '$'}' must be {_describe(shape)}, got {_describe(type(value))}"]
    errors: list[str] = []
    if isinstance(shape, dict):
        for key, inner in shape.items():
            errors += shape_errors(value.get(key), inner, f"{path}.{key}" if path else key)
    elif isinstance(shape, list):
        for i, item in enumerate(value):
            errors += shape_errors(item, shape[0], f"{path}[{i}]")
    return errors


def _kind_matches(value: Any, shape: Any) -> bool:
    if isinstance(shape, dict):
        return isinstance(value, dict)
    if isinstance(shape, list):
        return isinstance(value, list)
    return isinstance(value, shape)


def _describe(shape: Any) -> str:
    if isinstance(shape, dict):
        return "an object"
    if isinstance(shape, list):
        return "an array"
    if isinstance(shape, tuple):
        return " or ".join(dict.fromkeys(_describe(s) for s in shape))
    return _JSON_NAMES.get(shape, shape.__name__)


def _content_id(provider: Provider, raw: Any) -> str:
    digest = hashlib.sha1(json.dumps(raw, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"{provider.value}-{digest[:16]}"
