"""Cohere chat responses, covering both the v1 and v2 payload shapes."""

from __future__ import annotations

from llm_forge.responses.base import NUMBER, ParseContext, ResponseNormalizer, shape_errors, usage
from llm_forge.responses.models import (
    Content,
    MessageRole,
    ModelInfo,
    Provider,
    ProviderCapabilities,
    ProviderMetadata,
    StreamChunk,
    StreamEventType,
    TextContent,
    TokenUsage,
    ToolUseContent,
    UnifiedError,
    UnifiedMessage,
)

_V1_EVENTS = {"stream-start", "text-generation", "tool-calls-generation", "stream-end", "citation-generation", "search-results"}
_V2_EVENTS = {
    "message-start",
    "content-start",
    "content-delta",
    "content-end",
    "tool-call-start",
    "tool-call-delta",
    "tool-call-end",
    "message-end",
    "citation-start",
    "citation-end",
    "tool-plan-delta",
}

_TOKENS = {"input_tokens": NUMBER, "output_tokens": NUMBER}
_USAGE = {"tokens": _TOKENS, "billed_units": _TOKENS}
_TOOL_CALL = {"function": dict}
_RESPONSE_SHAPE = {
    "message": (str, {"content": list, "tool_calls": [_TOOL_CALL]}),
    "tool_calls": [dict],
    "usage": _USAGE,
    "meta": _USAGE,
    "citations": list,
}
_CHUNK_SHAPE = {
    "index": int,
    "tool_calls": [dict],
    "delta": {"message": {"content": dict, "tool_calls": _TOOL_CALL}, "usage": _USAGE},
    "response": {"meta": _USAGE},
}


class CohereNormalizer(ResponseNormalizer):
    provider = Provider.COHERE
    metadata = ProviderMetadata(
        id=Provider.COHERE,
        name="Cohere",
        description="Cohere Chat API",
        api_version="v2",
        base_url="https://api.cohere.com/v2",
        capabilities=ProviderCapabilities(
            streaming=True,
            function_calling=True,
            tool_use=True,
            json_mode=True,
            max_context_window=128000,
            max_output_tokens=4096,
        ),
        docs_url="https://docs.cohere.com/reference/chat",
    )
    response_shape = _RESPONSE_SHAPE
    chunk_shape = _CHUNK_SHAPE

    def validation_errors(self, raw: dict) -> list[str]:
        if any(k in raw for k in ("text", "generation_id", "message", "finish_reason", "meta")):
            return []
        return ["Invalid response: expected 'text', 'message', 'generation_id' or 'finish_reason'"]

    def validate(self, raw, errors: list[str] | None = None) -> bool:
        # Cohere reports errors as a bare {"message": "..."} object.
        if isinstance(raw, dict) and _is_error_payload(raw) and not shape_errors(raw, self.response_shape):
            return True
        return super().validate(raw, errors)

    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        if _is_error_payload(raw):
            return []
        content: list[Content] = []
        message = raw.get("message")
        if isinstance(message, dict):
            # v2
            for part in message.get("content") or []:
                if isinstance(part, dict) and part.get("type") == "text":
                    content.append(TextContent(part.get("text", "")))
            for call in message.get("tool_calls") or []:
                fn = call.get("function") or {}
                content.append(self.tool_use(call.get("id"), fn.get("name"), fn.get("arguments"), ctx))
            role = self.normalize_role(message.get("role", "assistant"), ctx)
        else:
            # v1
            if raw.get("text"):
                content.append(TextContent(raw["text"]))
            for i, call in enumerate(raw.get("tool_calls") or []):
                content.append(self.tool_use(f"call_{i}", call.get("name"), call.get("parameters") or {}, ctx))
            role = MessageRole.ASSISTANT
        return [UnifiedMessage(role=role, content=content)]

    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        return self._usage(raw.get("usage") or raw.get("meta") or {})

    def _usage(self, u: dict) -> TokenUsage:
        tokens = u.get("tokens") or u.get("billed_units") or {}
        return usage(tokens.get("input_tokens"), tokens.get("output_tokens"))

    def stop_reason_value(self, raw: dict) -> str | None:
        return raw.get("finish_reason")

    def extract_model_info(self, raw: dict, ctx: ParseContext) -> ModelInfo:
        return self.model_info(raw.get("model"))

    def extract_id(self, raw: dict) -> str:
        return str(raw.get("id") or raw.get("generation_id") or super().extract_id(raw))

    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        if isinstance(raw.get("error"), dict):
            err = raw["error"]
            return UnifiedError(code=str(err.get("code", "error")), message=err.get("message", ""))
        if _is_error_payload(raw):
            return UnifiedError(code="error", message=raw["message"])
        return None

    def extract_response_metadata(self, raw: dict, ctx: ParseContext) -> dict:
        meta = {}
        if raw.get("generation_id"):
            meta["request_id"] = raw["generation_id"]
        if raw.get("citations"):
            meta["citations"] = list(raw["citations"])
        return meta

    # -- Streaming -------------------------------------------------------

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        kind = raw.get("event_type") or raw.get("type")
        if kind in _V1_EVENTS or kind in _V2_EVENTS:
            return []
        return [f"Invalid stream chunk: unknown Cohere event {kind!r}"]

    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        kind = raw.get("event_type") or raw.get("type")
        index = raw.get("index", 0)
        delta = raw.get("delta") or {}
        message = delta.get("message") or {}
        if kind in ("stream-start", "message-start"):
            return [StreamChunk(StreamEventType.MESSAGE_START)]
        if kind == "text-generation":
            return [StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, text=raw.get("text", ""))]
        if kind == "content-delta":
            text = (message.get("content") or {}).get("text", "")
            return [StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index, text=text)]
        if kind == "tool-call-start":
            call = message.get("tool_calls") or {}
            fn = call.get("function") or {}
            return [
                StreamChunk(
                    StreamEventType.CONTENT_BLOCK_START,
                    index=index + 1,
                    content_block=ToolUseContent(id=call.get("id", ""), name=fn.get("name", "")),
                ),
                StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index + 1, partial_json=fn.get("arguments") or ""),
            ]
        if kind == "tool-call-delta":
            args = ((message.get("tool_calls") or {}).get("function") or {}).get("arguments", "")
            return [StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index + 1, partial_json=args)]
        if kind == "tool-calls-generation":
            return [
                StreamChunk(
                    StreamEventType.CONTENT_BLOCK_START,
                    index=i + 1,
                    content_block=self.tool_use(f"call_{i}", call.get("name"), call.get("parameters") or {}, ctx),
                )
                for i, call in enumerate(raw.get("tool_calls") or [])
            ]
        if kind in ("stream-end", "message-end"):
            return [StreamChunk(StreamEventType.MESSAGE_DELTA), StreamChunk(StreamEventType.MESSAGE_STOP)]
        return []

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        kind = raw.get("event_type") or raw.get("type")
        if kind == "stream-end":
            return raw.get("finish_reason")
        if kind == "message-end":
            return (raw.get("delta") or {}).get("finish_reason")
        return None

    def extract_chunk_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage | None:
        kind = raw.get("event_type") or raw.get("type")
        if kind == "stream-end":
            return self._usage((raw.get("response") or {}).get("meta") or {})
        if kind == "message-end":
            return self._usage((raw.get("delta") or {}).get("usage") or {})
        return None


def _is_error_payload(raw: dict) -> bool:
    return isinstance(raw.get("message"), str) and "text" not in raw and "finish_reason" not in raw
