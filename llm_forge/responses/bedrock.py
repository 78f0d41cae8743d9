"""AWS Bedrock Converse / ConverseStream responses."""

from __future__ import annotations

from llm_forge.responses.base import NUMBER, ParseContext, ResponseNormalizer, usage
from llm_forge.responses.models import (
    Content,
    ImageContent,
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

_STREAM_KEYS = ("messageStart", "contentBlockStart", "contentBlockDelta", "contentBlockStop", "messageStop", "metadata")
_USAGE = {
    key: NUMBER
    for key in ("inputTokens", "outputTokens", "totalTokens", "cacheReadInputTokens", "cacheWriteInputTokens")
}
_RESPONSE_SHAPE = {
    "output": {"message": {"content": [{"toolUse": dict, "image": dict}]}},
    "usage": _USAGE,
    "metrics": dict,
    "error": (str, dict),
}
_CHUNK_SHAPE = {
    "contentBlockStart": {"contentBlockIndex": int, "start": {"toolUse": dict}},
    "contentBlockDelta": {"contentBlockIndex": int, "delta": {"toolUse": dict}},
    "contentBlockStop": {"contentBlockIndex": int},
    "messageStop": dict,
    "metadata": {"usage": _USAGE},
    "error": (str, dict),
}


class BedrockNormalizer(ResponseNormalizer):
    provider = Provider.BEDROCK
    metadata = ProviderMetadata(
        id=Provider.BEDROCK,
        name="AWS Bedrock",
        description="AWS Bedrock Converse API",
        api_version="v1",
        base_url="https://bedrock-runtime.{region}.amazonaws.com",
        capabilities=ProviderCapabilities(
            streaming=True,
            function_calling=True,
            tool_use=True,
            vision=True,
            max_context_window=200000,
            max_output_tokens=4096,
            modalities=("text", "image"),
        ),
        auth_type="service_account",
        docs_url="https://docs.aws.amazon.com/bedrock/latest/APIReference/API_runtime_Converse.html",
    )
    response_shape = _RESPONSE_SHAPE
    chunk_shape = _CHUNK_SHAPE

    def validation_errors(self, raw: dict) -> list[str]:
        if any(k in raw for k in ("output", "usage", "stopReason")):
            return []
        return ["Invalid response: expected 'output', 'usage' or 'stopReason'"]

    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        message = (raw.get("output") or {}).get("message") or {}
        if not message:
            return []
        content = [c for c in (self._block(b, ctx) for b in message.get("content") or []) if c is not None]
        return [UnifiedMessage(role=self.normalize_role(message.get("role", "assistant"), ctx), content=content)]

    def _block(self, block: dict, ctx: ParseContext) -> Content | None:
        if "text" in block:
            return TextContent(block["text"])
        if "toolUse" in block:
            tool = block["toolUse"] or {}
            return self.tool_use(tool.get("toolUseId"), tool.get("name"), tool.get("input") or {}, ctx)
        if "image" in block:
            image = block["image"] or {}
            return ImageContent(source_type="base64", media_type=f"image/{image.get('format', 'png')}")
        return None

    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        u = raw.get("usage") or {}
        return usage(
            u.get("inputTokens"),
            u.get("outputTokens"),
            u.get("totalTokens"),
            cache_read_input_tokens=u.get("cacheReadInputTokens"),
            cache_creation_input_tokens=u.get("cacheWriteInputTokens"),
        )

    def stop_reason_value(self, raw: dict) -> str | None:
        return raw.get("stopReason")

    def extract_model_info(self, raw: dict, ctx: ParseContext) -> ModelInfo:
        return self.model_info(raw.get("modelId"))

    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        err = raw.get("error")
        if not err:
            return None
        if isinstance(err, str):
            return UnifiedError(code="error", message=err)
        return UnifiedError(code=str(err.get("code", "unknown_error")), message=err.get("message", ""), type=err.get("type", "error"))

    def extract_response_metadata(self, raw: dict, ctx: ParseContext) -> dict:
        metrics = raw.get("metrics") or {}
        return {"latency_ms": metrics["latencyMs"]} if "latencyMs" in metrics else {}

    # -- Streaming -------------------------------------------------------

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        if any(k in raw for k in _STREAM_KEYS):
            return []
        return ["Invalid stream chunk: expected a ConverseStream event"]

    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        if "messageStart" in raw:
            return [StreamChunk(StreamEventType.MESSAGE_START)]
        if "contentBlockStart" in raw:
            event = raw["contentBlockStart"] or {}
            tool = (event.get("start") or {}).get("toolUse") or {}
            return [
                StreamChunk(
                    StreamEventType.CONTENT_BLOCK_START,
                    index=event.get("contentBlockIndex", 0),
                    content_block=ToolUseContent(id=tool.get("toolUseId", ""), name=tool.get("name", "")),
                )
            ]
        if "contentBlockDelta" in raw:
            event = raw["contentBlockDelta"] or {}
            delta = event.get("delta") or {}
            index = event.get("contentBlockIndex", 0)
            if "text" in delta:
                return [StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index, text=delta["text"])]
            if "toolUse" in delta:
                return [
                    StreamChunk(
                        StreamEventType.CONTENT_BLOCK_DELTA, index=index, partial_json=(delta["toolUse"] or {}).get("input", "")
                    )
                ]
            return []
        if "contentBlockStop" in raw:
            stop = raw["contentBlockStop"] or {}
            return [StreamChunk(StreamEventType.CONTENT_BLOCK_STOP, index=stop.get("contentBlockIndex", 0))]
        if "messageStop" in raw:
            return [StreamChunk(StreamEventType.MESSAGE_DELTA), StreamChunk(StreamEventType.MESSAGE_STOP)]
        return []

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        return (raw.get("messageStop") or {}).get("stopReason")

    def extract_chunk_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage | None:
        if "metadata" in raw and isinstance(raw["metadata"], dict) and raw["metadata"].get("usage"):
            return self.extract_usage(raw["metadata"], ctx)
        return None
