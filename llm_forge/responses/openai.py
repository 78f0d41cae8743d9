"""OpenAI chat completions, plus the providers that speak the same format."""

from __future__ import annotations

from typing import Any

from llm_forge.responses.base import NUMBER, ParseContext, ResponseNormalizer, usage
from llm_forge.responses.models import (
    Content,
    FunctionCallContent,
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

_USAGE = {
    "prompt_tokens": NUMBER,
    "completion_tokens": NUMBER,
    "total_tokens": NUMBER,
    "prompt_tokens_details": {"cached_tokens": NUMBER},
    "completion_tokens_details": {"reasoning_tokens": NUMBER},
}
_TOOL_CALL = {"index": int, "function": dict}
_MESSAGE = {
    "content": (str, [{"image_url": {"url": str}}]),
    "tool_calls": [_TOOL_CALL],
    "function_call": dict,
}
_RESPONSE_SHAPE = {"choices": [{"message": _MESSAGE}], "usage": _USAGE, "error": (str, dict)}
_CHUNK_SHAPE = {"choices": [{"index": int, "delta": _MESSAGE}], "usage": _USAGE, "error": (str, dict)}


class OpenAINormalizer(ResponseNormalizer):
    provider = Provider.OPENAI
    metadata = ProviderMetadata(
        id=Provider.OPENAI,
        name="OpenAI",
        description="OpenAI Chat Completions API",
        api_version="v1",
        base_url="https://api.openai.com/v1",
        capabilities=ProviderCapabilities(
            streaming=True,
            function_calling=True,
            tool_use=True,
            vision=True,
            json_mode=True,
            max_context_window=128000,
            max_output_tokens=16384,
            modalities=("text", "image", "audio"),
        ),
        docs_url="https://platform.openai.com/docs/api-reference/chat",
    )
    response_shape = _RESPONSE_SHAPE
    chunk_shape = _CHUNK_SHAPE

    def validation_errors(self, raw: dict) -> list[str]:
        if not isinstance(raw.get("choices"), list):
            return ["Invalid response: missing 'choices' array"]
        return []

    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        messages = []
        for choice in raw.get("choices") or []:
            if not isinstance(choice, dict):
                continue
            message = choice.get("message") or {}
            content: list[Content] = []
            if "text" in choice and not message:
                # Legacy /completions payload
                content.append(TextContent(choice.get("text") or ""))
            content += self._content_parts(message.get("content"))
            if message.get("refusal"):
                content.append(TextContent(message["refusal"]))
            for call in message.get("tool_calls") or []:
                fn = call.get("function") or {}
                content.append(self.tool_use(call.get("id"), fn.get("name"), fn.get("arguments"), ctx))
            if message.get("function_call"):
                fc = message["function_call"]
                content.append(FunctionCallContent(name=fc.get("name", ""), arguments=fc.get("arguments", "")))
            messages.append(
                UnifiedMessage(
                    role=self.normalize_role(message.get("role", "assistant"), ctx),
                    content=content,
                    name=message.get("name"),
                    tool_call_id=message.get("tool_call_id"),
                )
            )
        return messages

    def _content_parts(self, content: Any) -> list[Content]:
        if isinstance(content, str):
            return [TextContent(content)] if content else []
        parts: list[Content] = []
        for part in content or []:
            if not isinstance(part, dict):
                continue
            if part.get("type") == "text":
                parts.append(TextContent(part.get("text", "")))
            elif part.get("type") == "image_url":
                url = (part.get("image_url") or {}).get("url", "")
                if url.startswith("data:"):
                    media_type, _, data = url[5:].partition(";base64,")
                    parts.append(ImageContent(source_type="base64", data=data, media_type=media_type))
                else:
                    parts.append(ImageContent(source_type="url", url=url))
        return parts

    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        return self._usage(raw.get("usage") or {})

    def _usage(self, u: dict) -> TokenUsage:
        prompt_details = u.get("prompt_tokens_details") or {}
        completion_details = u.get("completion_tokens_details") or {}
        return usage(
            u.get("prompt_tokens"),
            u.get("completion_tokens"),
            u.get("total_tokens"),
            cache_read_input_tokens=prompt_details.get("cached_tokens"),
            reasoning_tokens=completion_details.get("reasoning_tokens"),
        )

    def stop_reason_value(self, raw: dict) -> str | None:
        choices = raw.get("choices") or []
        return choices[0].get("finish_reason") if choices and isinstance(choices[0], dict) else None

    def extract_model_info(self, raw: dict, ctx: ParseContext) -> ModelInfo:
        return self.model_info(raw.get("model"))

    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        err = raw.get("error")
        if not err:
            return None
        if isinstance(err, str):
            return UnifiedError(code="error", message=err)
        return UnifiedError(
            code=str(err.get("code") or err.get("type") or "unknown_error"),
            message=err.get("message", ""),
            type=err.get("type") or "error",
            details={"param": err["param"]} if err.get("param") else {},
        )

    def extract_response_metadata(self, raw: dict, ctx: ParseContext) -> dict[str, Any]:
        meta = {}
        for key in ("created", "system_fingerprint", "service_tier"):
            if raw.get(key) is not None:
                meta[key] = raw[key]
        return meta

    # -- Streaming -------------------------------------------------------

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        if not isinstance(raw.get("choices"), list):
            return ["Invalid stream chunk: missing 'choices' array"]
        return []

    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        chunks = []
        for choice in raw.get("choices") or []:
            delta = choice.get("delta") or {}
            index = choice.get("index", 0)
            if delta.get("role"):
                chunks.append(StreamChunk(StreamEventType.MESSAGE_START, index=index))
            if delta.get("content"):
                chunks.append(StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index, text=delta["content"]))
            for call in delta.get("tool_calls") or []:
                # Tool calls occupy block indexes after the text block.
                block = index + 1 + int(call.get("index", 0))
                fn = call.get("function") or {}
                if call.get("id") or fn.get("name"):
                    chunks.append(
                        StreamChunk(
                            StreamEventType.CONTENT_BLOCK_START,
                            index=block,
                            content_block=ToolUseContent(id=call.get("id", ""), name=fn.get("name", "")),
                        )
                    )
                if fn.get("arguments"):
                    chunks.append(
                        StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=block, partial_json=fn["arguments"])
                    )
            if choice.get("finish_reason"):
                chunks.append(StreamChunk(StreamEventType.MESSAGE_DELTA, index=index))
                chunks.append(StreamChunk(StreamEventType.MESSAGE_STOP, index=index))
        return chunks

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        return self.stop_reason_value(raw)

    def extract_chunk_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage | None:
        return self._usage(raw["usage"]) if raw.get("usage") else None


def _compatible(provider: Provider, name: str, base_url: str, docs_url: str, **capabilities) -> ProviderMetadata:
    return ProviderMetadata(
        id=provider,
        name=name,
        description=f"{name} (OpenAI-compatible chat completions)",
        api_version="v1",
        base_url=base_url,
        capabilities=ProviderCapabilities(streaming=True, **capabilities),
        docs_url=docs_url,
    )


class MistralNormalizer(OpenAINormalizer):
    provider = Provider.MISTRAL
    metadata = _compatible(
        Provider.MISTRAL,
        "Mistral AI",
        "https://api.mistral.ai/v1",
        "https://docs.mistral.ai/api/",
        function_calling=True,
        tool_use=True,
        json_mode=True,
        max_context_window=128000,
    )


class XAINormalizer(OpenAINormalizer):
    provider = Provider.XAI
    metadata = _compatible(
        Provider.XAI,
        "xAI",
        "https://api.x.ai/v1",
        "https://docs.x.ai/api",
        function_calling=True,
        tool_use=True,
        vision=True,
        max_context_window=131072,
    )


class TogetherNormalizer(OpenAINormalizer):
    provider = Provider.TOGETHER
    metadata = _compatible(
        Provider.TOGETHER,
        "Together AI",
        "https://api.together.xyz/v1",
        "https://docs.together.ai/reference",
        function_calling=True,
        tool_use=True,
        json_mode=True,
    )


class FireworksNormalizer(OpenAINormalizer):
    provider = Provider.FIREWORKS
    metadata = _compatible(
        Provider.FIREWORKS,
        "Fireworks AI",
        "https://api.fireworks.ai/inference/v1",
        "https://docs.fireworks.ai/api-reference",
        function_calling=True,
        tool_use=True,
        json_mode=True,
    )


class PerplexityNormalizer(OpenAINormalizer):
    provider = Provider.PERPLEXITY
    metadata = _compatible(
        Provider.PERPLEXITY,
        "Perplexity",
        "https://api.perplexity.ai",
        "https://docs.perplexity.ai/api-reference",
        max_context_window=127072,
    )

    def extract_response_metadata(self, raw: dict, ctx: ParseContext) -> dict[str, Any]:
        meta = super().extract_response_metadata(raw, ctx)
        if raw.get("citations"):
            meta["citations"] = list(raw["citations"])
        if raw.get("search_results"):
            meta["search_results"] = list(raw["search_results"])
        return meta
