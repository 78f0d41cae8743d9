"""Anthropic Messages API responses and server-sent stream events."""

from __future__ import annotations

from typing import Any

from llm_forge.responses.base import NUMBER, ParseContext, ResponseNormalizer, usage
from llm_forge.responses.models import (
    Content,
    ImageContent,
    ModelInfo,
    Provider,
    ProviderCapabilities,
    ProviderMetadata,
    StopReason,
    StopReasonMetadata,
    StreamChunk,
    StreamEventType,
    TextContent,
    TokenUsage,
    ToolResultContent,
    UnifiedError,
    UnifiedMessage,
)

_STREAM_EVENTS = {
    "message_start",
    "content_block_start",
    "content_block_delta",
    "content_block_stop",
    "message_delta",
    "message_stop",
    "ping",
    "error",
}

_USAGE = {
    key: NUMBER
    for key in ("input_tokens", "output_tokens", "cache_creation_input_tokens", "cache_read_input_tokens")
}
_BLOCK = {"source": dict}
_RESPONSE_SHAPE = {"content": [_BLOCK], "usage": _USAGE, "message": dict}
_CHUNK_SHAPE = {
    "index": int,
    "content_block": _BLOCK,
    "delta": dict,
    "message": {"usage": _USAGE},
    "usage": _USAGE,
}


class AnthropicNormalizer(ResponseNormalizer):
    provider = Provider.ANTHROPIC
    metadata = ProviderMetadata(
        id=Provider.ANTHROPIC,
        name="Anthropic",
        description="Anthropic Messages API",
        api_version="2023-06-01",
        base_url="https://api.anthropic.com/v1",
        capabilities=ProviderCapabilities(
            streaming=True,
            function_calling=True,
            tool_use=True,
            vision=True,
            json_mode=False,
            max_context_window=200000,
            max_output_tokens=8192,
            modalities=("text", "image"),
        ),
        docs_url="https://docs.anthropic.com/en/api/messages",
    )
    response_shape = _RESPONSE_SHAPE
    chunk_shape = _CHUNK_SHAPE

    def validation_errors(self, raw: dict) -> list[str]:
        if raw.get("type") == "message" or isinstance(raw.get("content"), list):
            return []
        return ["Invalid response: expected a 'message' object with a 'content' array"]

    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        if raw.get("type") == "error":
            return []
        content = [c for c in (self._block(b, ctx) for b in raw.get("content") or []) if c is not None]
        return [UnifiedMessage(role=self.normalize_role(raw.get("role", "assistant"), ctx), content=content)]

    def _block(self, block: Any, ctx: ParseContext) -> Content | None:
        if not isinstance(block, dict):
            return None
        kind = block.get("type")
        if kind == "text":
            return TextContent(block.get("text", ""))
        if kind in ("tool_use", "server_tool_use"):
            return self.tool_use(block.get("id"), block.get("name"), block.get("input") or {}, ctx)
        if kind == "tool_result":
            inner = block.get("content")
            if isinstance(inner, list):
                inner = "".join(p.get("text", "") for p in inner if isinstance(p, dict))
            return ToolResultContent(
                tool_use_id=block.get("tool_use_id", ""), content=str(inner or ""), is_error=bool(block.get("is_error"))
            )
        if kind == "image":
            source = block.get("source") or {}
            return ImageContent(
                source_type=source.get("type", "base64"),
                url=source.get("url"),
                data=source.get("data"),
                media_type=source.get("media_type"),
            )
        if kind not in ("thinking", "redacted_thinking"):
            ctx.warn(f"Skipping unsupported Anthropic content block type {kind!r}")
        return None

    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        return self._usage(raw.get("usage") or {})

    def _usage(self, u: dict) -> TokenUsage:
        return usage(
            u.get("input_tokens"),
            u.get("output_tokens"),
            cache_creation_input_tokens=u.get("cache_creation_input_tokens"),
            cache_read_input_tokens=u.get("cache_read_input_tokens"),
        )

    def stop_reason_value(self, raw: dict) -> str | None:
        return raw.get("stop_reason")

    def extract_stop_reason(self, raw: dict, ctx: ParseContext) -> tuple[StopReason, StopReasonMetadata]:
        reason, metadata = super().extract_stop_reason(raw, ctx)
        if raw.get("stop_sequence"):
            metadata.details["stop_sequence"] = raw["stop_sequence"]
        return reason, metadata

    def extract_model_info(self, raw: dict, ctx: ParseContext) -> ModelInfo:
        model = raw.get("model") or (raw.get("message") or {}).get("model")
        return self.model_info(model)

    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        err = raw.get("error")
        if not isinstance(err, dict):
            return None
        return UnifiedError(code=err.get("type", "api_error"), message=err.get("message", ""), type=err.get("type", "error"))

    def extract_id(self, raw: dict) -> str:
        message = raw.get("message") if isinstance(raw.get("message"), dict) else {}
        return str(raw.get("id") or message.get("id") or super().extract_id(raw))

    # -- Streaming -------------------------------------------------------

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        if raw.get("type") not in _STREAM_EVENTS:
            return [f"Invalid stream chunk: unknown event type {raw.get('type')!r}"]
        return []

    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        kind = raw.get("type")
        index = raw.get("index", 0)
        if kind == "message_start":
            return [StreamChunk(StreamEventType.MESSAGE_START)]
        if kind == "content_block_start":
            block = self._block(raw.get("content_block"), ctx)
            chunks = [StreamChunk(StreamEventType.CONTENT_BLOCK_START, index=index, content_block=block)]
            if isinstance(block, TextContent) and block.text:
                chunks.append(StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index, text=block.text))
                block.text = ""
            return chunks
        if kind == "content_block_delta":
            delta = raw.get("delta") or {}
            if delta.get("type") == "input_json_delta":
                return [
                    StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index, partial_json=delta.get("partial_json", ""))
                ]
            if delta.get("type") == "text_delta":
                return [StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index, text=delta.get("text", ""))]
            return []
        if kind == "content_block_stop":
            return [StreamChunk(StreamEventType.CONTENT_BLOCK_STOP, index=index)]
        if kind == "message_delta":
            return [StreamChunk(StreamEventType.MESSAGE_DELTA)]
        if kind == "message_stop":
            return [StreamChunk(StreamEventType.MESSAGE_STOP)]
        return []

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        if raw.get("type") == "message_delta":
            return (raw.get("delta") or {}).get("stop_reason")
        return None

    def extract_chunk_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage | None:
        if raw.get("type") == "message_start":
            return self._usage((raw.get("message") or {}).get("usage") or {})
        if raw.get("type") == "message_delta" and raw.get("usage"):
            return self._usage(raw["usage"])
        return None
