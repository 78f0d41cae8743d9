"""Google Gemini ``generateContent`` / ``streamGenerateContent`` responses."""

from __future__ import annotations

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
    UnifiedError,
    UnifiedMessage,
)

_PART = {"functionCall": dict, "inlineData": dict, "fileData": dict}
_USAGE = {
    key: NUMBER
    for key in (
        "promptTokenCount",
        "candidatesTokenCount",
        "totalTokenCount",
        "cachedContentTokenCount",
        "thoughtsTokenCount",
    )
}
_SHAPE = {
    "candidates": [{"content": {"parts": [_PART]}, "index": int, "safetyRatings": list}],
    "usageMetadata": _USAGE,
    "promptFeedback": dict,
}


class GoogleNormalizer(ResponseNormalizer):
    provider = Provider.GOOGLE
    metadata = ProviderMetadata(
        id=Provider.GOOGLE,
        name="Google Gemini",
        description="Google Gemini API",
        api_version="v1beta",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        capabilities=ProviderCapabilities(
            streaming=True,
            function_calling=True,
            tool_use=True,
            vision=True,
            json_mode=True,
            max_context_window=1000000,
            max_output_tokens=8192,
            modalities=("text", "image", "audio", "video"),
        ),
        docs_url="https://ai.google.dev/api",
    )
    response_shape = _SHAPE
    chunk_shape = _SHAPE

    def validation_errors(self, raw: dict) -> list[str]:
        if any(k in raw for k in ("candidates", "usageMetadata", "promptFeedback")):
            return []
        return ["Invalid response: expected 'candidates', 'usageMetadata' or 'promptFeedback'"]

    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        messages = []
        for candidate in raw.get("candidates") or []:
            body = candidate.get("content") or {}
            messages.append(
                UnifiedMessage(
                    role=self.normalize_role(body.get("role", "model"), ctx),
                    content=self._parts(body.get("parts") or [], ctx),
                )
            )
        return messages

    def _parts(self, parts: list, ctx: ParseContext) -> list[Content]:
        content: list[Content] = []
        for i, part in enumerate(parts):
            if not isinstance(part, dict) or part.get("thought"):
                continue
            if "text" in part:
                content.append(TextContent(part["text"]))
            elif "functionCall" in part:
                call = part["functionCall"] or {}
                content.append(self.tool_use(call.get("id") or f"call_{i}", call.get("name"), call.get("args") or {}, ctx))
            elif "inlineData" in part:
                data = part["inlineData"] or {}
                content.append(ImageContent(source_type="base64", data=data.get("data"), media_type=data.get("mimeType")))
            elif "fileData" in part:
                data = part["fileData"] or {}
                content.append(ImageContent(source_type="url", url=data.get("fileUri"), media_type=data.get("mimeType")))
        return content

    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        return self._usage(raw.get("usageMetadata") or {})

    def _usage(self, u: dict) -> TokenUsage:
        return usage(
            u.get("promptTokenCount"),
            u.get("candidatesTokenCount"),
            u.get("totalTokenCount"),
            cache_read_input_tokens=u.get("cachedContentTokenCount"),
            reasoning_tokens=u.get("thoughtsTokenCount"),
        )

    def stop_reason_value(self, raw: dict) -> str | None:
        candidates = raw.get("candidates") or []
        if candidates and candidates[0].get("finishReason"):
            return candidates[0]["finishReason"]
        if (raw.get("promptFeedback") or {}).get("blockReason"):
            # The prompt itself was blocked, no candidate was produced.
            return "SAFETY"
        return None

    def extract_stop_reason(self, raw: dict, ctx: ParseContext) -> tuple[StopReason, StopReasonMetadata]:
        reason, metadata = super().extract_stop_reason(raw, ctx)
        candidates = raw.get("candidates") or []
        if candidates and candidates[0].get("safetyRatings"):
            metadata.details["safety_ratings"] = candidates[0]["safetyRatings"]
        feedback = raw.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            metadata.details["block_reason"] = feedback["blockReason"]
        return reason, metadata

    def extract_model_info(self, raw: dict, ctx: ParseContext) -> ModelInfo:
        return self.model_info(raw.get("modelVersion"))

    def extract_id(self, raw: dict) -> str:
        return str(raw.get("responseId") or super().extract_id(raw))

    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        err = raw.get("error")
        if not isinstance(err, dict):
            return None
        code = err.get("code")
        return UnifiedError(
            code=str(code) if code is not None else "unknown_error",
            message=err.get("message", ""),
            type=err.get("status") or "error",
            status_code=code if isinstance(code, int) else None,
        )

    # -- Streaming -------------------------------------------------------
    # Each streamed chunk is a partial GenerateContentResponse.

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        return self.validation_errors(raw)

    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        chunks = []
        for c_index, candidate in enumerate(raw.get("candidates") or []):
            index = candidate.get("index", c_index)
            extra_blocks = 0
            for part in self._parts((candidate.get("content") or {}).get("parts") or [], ctx):
                if isinstance(part, TextContent):
                    chunks.append(StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, index=index, text=part.text))
                else:
                    extra_blocks += 1
                    chunks.append(
                        StreamChunk(StreamEventType.CONTENT_BLOCK_START, index=index + extra_blocks, content_block=part)
                    )
            if candidate.get("finishReason"):
                chunks.append(StreamChunk(StreamEventType.MESSAGE_DELTA, index=index))
                chunks.append(StreamChunk(StreamEventType.MESSAGE_STOP, index=index))
        return chunks

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        return self.stop_reason_value(raw)

    def extract_chunk_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage | None:
        return self._usage(raw["usageMetadata"]) if raw.get("usageMetadata") else None
