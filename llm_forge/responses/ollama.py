"""Ollama ``/api/chat`` and ``/api/generate`` responses.

Ollama streams newline-delimited JSON objects that share the shape of the
final response, with ``done: false`` until the last one.
"""

from __future__ import annotations

from llm_forge.responses.base import NUMBER, ParseContext, ResponseNormalizer, usage
from llm_forge.responses.models import (
    Content,
    ModelInfo,
    Provider,
    ProviderCapabilities,
    ProviderMetadata,
    StreamChunk,
    StreamEventType,
    TextContent,
    TokenUsage,
    UnifiedError,
    UnifiedMessage,
)

_SHAPE = {
    "message": {"tool_calls": [{"function": dict}]},
    "prompt_eval_count": NUMBER,
    "eval_count": NUMBER,
}


class OllamaNormalizer(ResponseNormalizer):
    provider = Provider.OLLAMA
    metadata = ProviderMetadata(
        id=Provider.OLLAMA,
        name="Ollama",
        description="Ollama local API",
        api_version="v1",
        base_url="http://localhost:11434/api",
        capabilities=ProviderCapabilities(
            streaming=True,
            function_calling=True,
            tool_use=True,
            vision=True,
            json_mode=True,
            max_context_window=8192,
            max_output_tokens=4096,
            modalities=("text", "image"),
        ),
        auth_type="none",
        docs_url="https://github.com/ollama/ollama/blob/main/docs/api.md",
    )
    response_shape = _SHAPE
    chunk_shape = _SHAPE

    def validation_errors(self, raw: dict) -> list[str]:
        if any(k in raw for k in ("message", "response", "done")):
            return []
        return ["Invalid response: expected 'message', 'response' or 'done'"]

    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        if raw.get("error"):
            return []
        message = raw.get("message") if isinstance(raw.get("message"), dict) else {}
        content: list[Content] = []
        text = message.get("content") if message else raw.get("response")
        if text:
            content.append(TextContent(text))
        for i, call in enumerate(message.get("tool_calls") or []):
            fn = call.get("function") or {}
            content.append(self.tool_use(call.get("id") or f"call_{i}", fn.get("name"), fn.get("arguments") or {}, ctx))
        return [UnifiedMessage(role=self.normalize_role(message.get("role", "assistant"), ctx), content=content)]

    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        return usage(raw.get("prompt_eval_count"), raw.get("eval_count"))

    def stop_reason_value(self, raw: dict) -> str | None:
        if raw.get("done_reason"):
            return raw["done_reason"]
        return "stop" if raw.get("done") else None

    def extract_model_info(self, raw: dict, ctx: ParseContext) -> ModelInfo:
        return self.model_info(raw.get("model"))

    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        if not raw.get("error"):
            return None
        return UnifiedError(code="error", message=str(raw["error"]))

    def extract_response_metadata(self, raw: dict, ctx: ParseContext) -> dict:
        meta = {}
        for key in ("created_at", "total_duration", "load_duration", "eval_duration"):
            if raw.get(key) is not None:
                meta[key] = raw[key]
        return meta

    # -- Streaming -------------------------------------------------------

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        return self.validation_errors(raw)

    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        chunks = []
        message = self.extract_messages(raw, ctx)
        for block_index, block in enumerate(message[0].content if message else []):
            if isinstance(block, TextContent):
                chunks.append(StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, text=block.text))
            else:
                chunks.append(StreamChunk(StreamEventType.CONTENT_BLOCK_START, index=block_index + 1, content_block=block))
        if raw.get("done"):
            chunks.append(StreamChunk(StreamEventType.MESSAGE_DELTA))
            chunks.append(StreamChunk(StreamEventType.MESSAGE_STOP))
        return chunks

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        return self.stop_reason_value(raw) if raw.get("done") else None

    def extract_chunk_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage | None:
        return self.extract_usage(raw, ctx) if raw.get("done") else None
