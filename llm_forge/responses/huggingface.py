"""Hugging Face Inference API and Text Generation Inference (TGI) responses.

Three response formats share the endpoint: OpenAI-compatible chat
completions from TGI's ``/v1/chat/completions``, raw text generation
(``generated_text`` plus ``details``), and the older conversational task.
Streams are either OpenAI-style ``choices[].delta`` chunks or raw token
events.
"""

from __future__ import annotations

from typing import Any

from llm_forge.responses.base import NUMBER, ParseContext, usage
from llm_forge.responses.models import (
    MessageRole,
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
from llm_forge.responses.openai import OpenAINormalizer

_DETAILS = {"finish_reason": str, "generated_tokens": NUMBER}
_RESPONSE_FIELDS = {
    "generated_text": str,
    "details": _DETAILS,
    "conversation": {"past_user_inputs": [str], "generated_responses": [str]},
}
_TOKEN_FIELDS = {
    "token": {"text": str, "special": bool},
    "generated_text": str,
    "details": _DETAILS,
}
_KEYS = ("generated_text", "conversation", "choices", "model", "details")


def _is_chat(raw: dict) -> bool:
    return isinstance(raw.get("choices"), list)


def _is_token_event(raw: dict) -> bool:
    return any(k in raw for k in ("token", "generated_text", "details"))


class HuggingFaceNormalizer(OpenAINormalizer):
    provider = Provider.HUGGINGFACE
    metadata = ProviderMetadata(
        id=Provider.HUGGINGFACE,
        name="Hugging Face",
        description="Hugging Face Inference API for open-source models",
        api_version="v1",
        base_url="https://api-inference.huggingface.co",
        capabilities=ProviderCapabilities(
            streaming=True,
            vision=True,
            max_context_window=32768,
            max_output_tokens=8192,
            modalities=("text", "image"),
        ),
        docs_url="https://huggingface.co/docs/api-inference",
    )
    response_shape = {**OpenAINormalizer.response_shape, **_RESPONSE_FIELDS}
    chunk_shape = {**OpenAINormalizer.chunk_shape, **_TOKEN_FIELDS}

    def validation_errors(self, raw: dict) -> list[str]:
        if any(k in raw for k in _KEYS):
            return []
        return ["Invalid response: expected 'generated_text', 'conversation' or 'choices'"]

    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        if raw.get("error"):
            return []
        if _is_chat(raw):
            return super().extract_messages(raw, ctx)
        messages = []
        conversation = raw.get("conversation") or {}
        if conversation:
            asked = conversation.get("past_user_inputs") or []
            answered = conversation.get("generated_responses") or []
            for i in range(max(len(asked), len(answered))):
                if i < len(asked):
                    messages.append(UnifiedMessage(MessageRole.USER, [TextContent(asked[i])]))
                if i < len(answered):
                    messages.append(UnifiedMessage(MessageRole.ASSISTANT, [TextContent(answered[i])]))
        text = raw.get("generated_text")
        # The conversational task repeats the latest answer in ``generated_text``.
        if text and (not messages or messages[-1].role != MessageRole.ASSISTANT):
            messages.append(UnifiedMessage(MessageRole.ASSISTANT, [TextContent(text)]))
        return messages

    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        if raw.get("usage"):
            return self._usage(raw["usage"])
        # Text generation reports only the generated count.
        return usage(0, (raw.get("details") or {}).get("generated_tokens"))

    def stop_reason_value(self, raw: dict) -> str | None:
        if _is_chat(raw):
            return super().stop_reason_value(raw)
        return (raw.get("details") or {}).get("finish_reason")

    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        err = raw.get("error")
        if not err:
            return None
        if isinstance(err, dict):
            return super().extract_error(raw, ctx)
        details = {"error_type": raw["error_type"]} if raw.get("error_type") else {}
        return UnifiedError(code="huggingface_error", message=str(err), type="api_error", details=details)

    def extract_response_metadata(self, raw: dict, ctx: ParseContext) -> dict[str, Any]:
        if _is_chat(raw):
            meta = super().extract_response_metadata(raw, ctx)
            meta["format"] = "chat"
            return meta
        meta: dict[str, Any] = {"format": "conversational" if "conversation" in raw else "text_generation"}
        seed = (raw.get("details") or {}).get("seed")
        if seed is not None:
            meta["seed"] = seed
        return meta

    # -- Streaming -------------------------------------------------------

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        if _is_token_event(raw):
            if "token" in raw and isinstance(raw["token"], dict) and not isinstance(raw["token"].get("text"), str):
                return ["Invalid stream chunk: 'token.text' must be a string"]
            return []
        if _is_chat(raw) and raw.get("id"):
            return []
        return ["Invalid stream chunk: expected a token event or 'id' with 'choices'"]

    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        if not _is_token_event(raw):
            return super().extract_chunks(raw, ctx)
        chunks = []
        token = raw.get("token") or {}
        # Special tokens (end of sequence and the like) carry no visible text.
        if token.get("text") and not token.get("special"):
            chunks.append(StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, text=token["text"]))
        if raw.get("generated_text") is not None or raw.get("details"):
            chunks.append(StreamChunk(StreamEventType.MESSAGE_DELTA))
            chunks.append(StreamChunk(StreamEventType.MESSAGE_STOP))
        return chunks

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        if not _is_token_event(raw):
            return super().chunk_stop_reason_value(raw)
        if raw.get("details"):
            return raw["details"].get("finish_reason") or "stop"
        return "stop" if raw.get("generated_text") is not None else None

    def extract_chunk_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage | None:
        if not _is_token_event(raw):
            return super().extract_chunk_usage(raw, ctx)
        generated = (raw.get("details") or {}).get("generated_tokens")
        return usage(0, generated) if generated else None
