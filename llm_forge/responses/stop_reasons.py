"""Map provider finish/stop reason strings onto ``StopReason``.

Known values come from per-provider tables and map with high confidence.
Anything else falls through to keyword heuristics (medium confidence) and
finally to ``StopReason.UNKNOWN`` (low confidence).
"""

from __future__ import annotations

from llm_forge.responses.models import MappingConfidence, StopReason, StopReasonMetadata

_OPENAI = {
    "stop": StopReason.END_TURN,
    "length": StopReason.MAX_TOKENS,
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "content_filter": StopReason.CONTENT_FILTER,
}

TABLES: dict[str, dict[str, StopReason]] = {
    "openai": _OPENAI,
    "mistral": {**_OPENAI, "model_length": StopReason.CONTEXT_LENGTH, "error": StopReason.ERROR},
    "xai": _OPENAI,
    "together": {**_OPENAI, "eos": StopReason.END_TURN},
    "fireworks": _OPENAI,
    "perplexity": _OPENAI,
    "anthropic": {
        "end_turn": StopReason.END_TURN,
        "max_tokens": StopReason.MAX_TOKENS,
        "stop_sequence": StopReason.STOP_SEQUENCE,
        "tool_use": StopReason.TOOL_USE,
        "pause_turn": StopReason.END_TURN,
        "refusal": StopReason.CONTENT_FILTER,
        "model_context_window_exceeded": StopReason.CONTEXT_LENGTH,
    },
    "google": {
        "stop": StopReason.END_TURN,
        "max_tokens": StopReason.MAX_TOKENS,
        "safety": StopReason.CONTENT_FILTER,
        "recitation": StopReason.RECITATION,
        "blocklist": StopReason.CONTENT_FILTER,
        "prohibited_content": StopReason.CONTENT_FILTER,
        "spii": StopReason.CONTENT_FILTER,
        "image_safety": StopReason.CONTENT_FILTER,
        "malformed_function_call": StopReason.ERROR,
        "finish_reason_unspecified": StopReason.UNKNOWN,
    },
    "cohere": {
        "complete": StopReason.END_TURN,
        "max_tokens": StopReason.MAX_TOKENS,
        "stop_sequence": StopReason.STOP_SEQUENCE,
        "tool_call": StopReason.TOOL_USE,
        "error": StopReason.ERROR,
        "error_toxic": StopReason.CONTENT_FILTER,
        "error_limit": StopReason.CONTEXT_LENGTH,
        "user_cancel": StopReason.CANCELED,
    },
    "bedrock": {
        "end_turn": StopReason.END_TURN,
        "tool_use": StopReason.TOOL_USE,
        "max_tokens": StopReason.MAX_TOKENS,
        "stop_sequence": StopReason.STOP_SEQUENCE,
        "guardrail_intervened": StopReason.CONTENT_FILTER,
        "content_filtered": StopReason.CONTENT_FILTER,
    },
    "ollama": {
        "stop": StopReason.END_TURN,
        "length": StopReason.MAX_TOKENS,
        "load": StopReason.END_TURN,
        "unload": StopReason.END_TURN,
    },
    "huggingface": {
        **_OPENAI,
        "eos_token": StopReason.END_TURN,
        "stop_sequence": StopReason.STOP_SEQUENCE,
    },
    # Prediction statuses and stream ``done`` reasons
    "replicate": {
        "succeeded": StopReason.END_TURN,
        "completed": StopReason.END_TURN,
        "failed": StopReason.ERROR,
        "error": StopReason.ERROR,
        "canceled": StopReason.CANCELED,
        "cancelled": StopReason.CANCELED,
        "aborted": StopReason.CANCELED,
    },
}

# Checked in order; the first keyword found in the value wins.
_HEURISTICS = (
    ("context", StopReason.CONTEXT_LENGTH),
    ("filter", StopReason.CONTENT_FILTER),
    ("safety", StopReason.CONTENT_FILTER),
    ("moderat", StopReason.CONTENT_FILTER),
    ("block", StopReason.CONTENT_FILTER),
    ("tool", StopReason.TOOL_USE),
    ("function", StopReason.TOOL_USE),
    ("sequence", StopReason.STOP_SEQUENCE),
    ("length", StopReason.MAX_TOKENS),
    ("token", StopReason.MAX_TOKENS),
    ("recitation", StopReason.RECITATION),
    ("cancel", StopReason.CANCELED),
    ("abort", StopReason.CANCELED),
    ("error", StopReason.ERROR),
    ("fail", StopReason.ERROR),
    ("stop", StopReason.END_TURN),
    ("end", StopReason.END_TURN),
    ("complete", StopReason.END_TURN),
    ("finish", StopReason.END_TURN),
    ("done", StopReason.END_TURN),
)


def normalize_stop_reason(value: str | None, provider: str) -> tuple[StopReason, StopReasonMetadata]:
    """Map a raw stop reason for ``provider`` and describe how it was mapped."""
    if value is None or str(value).strip() == "":
        return StopReason.UNKNOWN, StopReasonMetadata(None, False, MappingConfidence.LOW)

    key = str(value).strip().lower()
    table = TABLES.get(provider, {})
    if key in table:
        return table[key], StopReasonMetadata(str(value), True, MappingConfidence.HIGH)

    for keyword, reason in _HEURISTICS:
        if keyword in key:
            return reason, StopReasonMetadata(str(value), True, MappingConfidence.MEDIUM)

    return StopReason.UNKNOWN, StopReasonMetadata(str(value), False, MappingConfidence.LOW)
