"""Replicate predictions and their server-sent stream events.

A prediction is polled until ``status`` settles; only ``succeeded``
predictions carry output. Language models return a list of text pieces,
image and audio models a list of file URLs. Streams deliver SSE events
(``output``, ``logs``, ``error``, ``done``) whose ``data`` is plain text,
or JSON for ``error`` and ``done``.
"""

from __future__ import annotations

import json
from typing import Any

from llm_forge.responses.base import NUMBER, ParseContext, ResponseNormalizer, usage
from llm_forge.responses.models import (
    Content,
    ImageContent,
    MessageRole,
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

STATUSES = ("starting", "processing", "succeeded", "failed", "canceled", "aborted")
EVENTS = ("output", "logs", "error", "done")

_IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp", ".gif")

_METRICS = {
    "predict_time": NUMBER,
    "total_time": NUMBER,
    "input_token_count": NUMBER,
    "output_token_count": NUMBER,
}
_RESPONSE_SHAPE = {
    "id": str,
    "version": str,
    "status": str,
    "error": str,
    "logs": str,
    "metrics": _METRICS,
    "urls": dict,
    "detail": str,
}
_CHUNK_SHAPE = {"event": str, "id": str, "data": str}


class ReplicateNormalizer(ResponseNormalizer):
    provider = Provider.REPLICATE
    metadata = ProviderMetadata(
        id=Provider.REPLICATE,
        name="Replicate",
        description="Replicate API for running ML models in the cloud",
        api_version="v1",
        base_url="https://api.replicate.com/v1",
        capabilities=ProviderCapabilities(
            streaming=True,
            vision=True,
            max_context_window=128000,
            max_output_tokens=4096,
            modalities=("text", "image", "audio", "video"),
        ),
        docs_url="https://replicate.com/docs/reference/http",
    )
    response_shape = _RESPONSE_SHAPE
    chunk_shape = _CHUNK_SHAPE

    def validation_errors(self, raw: dict) -> list[str]:
        # API errors come back as ``{"detail": ...}`` rather than ``error``.
        if isinstance(raw.get("detail"), str):
            return []
        errors = [f"Invalid response: missing '{key}'" for key in ("id", "version", "status") if not raw.get(key)]
        if raw.get("status") and raw["status"] not in STATUSES:
            errors.append(f"Invalid response: unknown status {raw['status']!r}, expected one of {', '.join(STATUSES)}")
        return errors

    def extract_messages(self, raw: dict, ctx: ParseContext) -> list[UnifiedMessage]:
        output = raw.get("output")
        if raw.get("status") != "succeeded" or output in (None, "", []):
            return []
        content = self._output_content(output)
        return [UnifiedMessage(role=MessageRole.ASSISTANT, content=content)] if content else []

    def _output_content(self, output: Any) -> list[Content]:
        if isinstance(output, str):
            return [_file_or_text(output)]
        if isinstance(output, dict):
            return [TextContent(json.dumps(output, indent=2))]
        if not isinstance(output, list):
            return [TextContent(str(output))]
        if all(isinstance(item, str) and not _is_url(item) for item in output):
            # Language models stream their output as a list of text pieces.
            return [TextContent("".join(output))]
        content: list[Content] = []
        for item in output:
            if isinstance(item, str):
                content.append(_file_or_text(item))
            else:
                content.append(TextContent(json.dumps(item)))
        return content

    def extract_usage(self, raw: dict, ctx: ParseContext) -> TokenUsage:
        metrics = raw.get("metrics") or {}
        return usage(metrics.get("input_token_count"), metrics.get("output_token_count"))

    def stop_reason_value(self, raw: dict) -> str | None:
        # Still-running predictions have no stop reason yet.
        status = raw.get("status")
        return status if status in ("succeeded", "failed", "canceled", "aborted") else None

    def extract_model_info(self, raw: dict, ctx: ParseContext) -> ModelInfo:
        info = self.model_info(raw.get("model") or raw.get("version"))
        if raw.get("model") and raw.get("version"):
            info.version = raw["version"]
        return info

    def extract_error(self, raw: dict, ctx: ParseContext) -> UnifiedError | None:
        if raw.get("event") == "error":
            return _stream_error(raw)
        if isinstance(raw.get("detail"), str):
            return UnifiedError(code="replicate_api_error", message=raw["detail"], type="api_error")
        if raw.get("error"):
            details = {"status": raw.get("status")}
            if raw.get("logs"):
                details["logs"] = raw["logs"]
            return UnifiedError(
                code="replicate_prediction_error", message=str(raw["error"]), type="prediction_error", details=details
            )
        return None

    def extract_response_metadata(self, raw: dict, ctx: ParseContext) -> dict[str, Any]:
        meta: dict[str, Any] = {}
        for key in ("status", "created_at", "started_at", "completed_at", "logs", "urls"):
            if raw.get(key):
                meta[key] = raw[key]
        metrics = raw.get("metrics") or {}
        for key in ("predict_time", "total_time"):
            if metrics.get(key) is not None:
                meta[key] = metrics[key]
        return meta

    # -- Streaming -------------------------------------------------------

    def chunk_validation_errors(self, raw: dict) -> list[str]:
        if raw.get("event") not in EVENTS:
            return [f"Invalid stream chunk: 'event' must be one of {', '.join(EVENTS)}, got {raw.get('event')!r}"]
        if "data" not in raw:
            return ["Invalid stream chunk: missing 'data'"]
        return []

    def extract_chunks(self, raw: dict, ctx: ParseContext) -> list[StreamChunk]:
        event = raw.get("event")
        if event == "output" and raw.get("data"):
            return [StreamChunk(StreamEventType.CONTENT_BLOCK_DELTA, text=raw["data"])]
        if event == "done":
            return [StreamChunk(StreamEventType.MESSAGE_DELTA), StreamChunk(StreamEventType.MESSAGE_STOP)]
        return []

    def chunk_stop_reason_value(self, raw: dict) -> str | None:
        if raw.get("event") == "error":
            return "error"
        if raw.get("event") != "done":
            return None
        return str(_json_data(raw).get("reason") or "completed")


def _is_url(value: str) -> bool:
    return value.startswith(("http://", "https://", "data:"))


def _file_or_text(value: str) -> Content:
    if not _is_url(value):
        return TextContent(value)
    if value.startswith("data:"):
        media_type, _, data = value[5:].partition(";base64,")
        return ImageContent(source_type="base64", data=data, media_type=media_type)
    if value.lower().split("?")[0].endswith(_IMAGE_SUFFIXES):
        return ImageContent(source_type="url", url=value)
    return TextContent(value)


def _json_data(raw: dict) -> dict:
    try:
        data = json.loads(raw.get("data") or "{}")
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def _stream_error(raw: dict) -> UnifiedError:
    text = raw.get("data") or ""
    data = _json_data(raw)
    message = data.get("detail") or data.get("message") or (text[:200] + "..." if len(text) > 200 else text)
    details = {"raw_data": text}
    if raw.get("id"):
        details["event_id"] = raw["id"]
    return UnifiedError(code="replicate_streaming_error", message=str(message), type="streaming_error", details=details)
