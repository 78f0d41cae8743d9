"""Tests for runtime response normalization across providers."""

import pytest

from llm_forge.responses import (
    MappingConfidence,
    MessageRole,
    ModelDetails,
    ModelRegistry,
    Provider,
    StopReason,
    StreamAccumulator,
    default_model_registry,
    default_registry,
    detect_provider_from_model,
    normalize_stop_reason,
    search_models,
)
from llm_forge.responses.base import shape_errors
from llm_forge.responses.models import ImageContent, ToolUseContent


def _openai_response(**overrides) -> dict:
    response = {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "model": "gpt-4o",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello there"},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
    }
    response.update(overrides)
    return response


def _anthropic_response(**overrides) -> dict:
    response = {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "model": "claude-3-5-sonnet-20241022",
        "content": [
            {"type": "text", "text": "Let me check."},
            {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {"city": "Paris"}},
        ],
        "stop_reason": "tool_use",
        "usage": {"input_tokens": 20, "output_tokens": 8},
    }
    response.update(overrides)
    return response


# --- Full Responses ---


def test_openai_response():
    result = default_registry().normalize(_openai_response(), provider="openai")
    assert result.success
    response = result.response
    assert response.provider == Provider.OPENAI
    assert response.id == "chatcmpl-123"
    assert response.model.id == "gpt-4o"
    assert response.text == "Hello there"
    assert response.stop_reason == StopReason.END_TURN
    assert response.stop_reason_metadata.mapping_confidence == MappingConfidence.HIGH
    assert (response.usage.input_tokens, response.usage.output_tokens, response.usage.total_tokens) == (12, 3, 15)


def test_openai_tool_calls():
    raw = _openai_response()
    raw["choices"][0]["message"] = {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {"id": "call_1", "type": "function", "function": {"name": "lookup", "arguments": '{"q": "llm"}'}}
        ],
    }
    raw["choices"][0]["finish_reason"] = "tool_calls"
    response = default_registry().normalize(raw, provider=Provider.OPENAI).response
    call = response.messages[0].tool_calls[0]
    assert call.name == "lookup"
    assert call.input == {"q": "llm"}
    assert response.stop_reason == StopReason.TOOL_USE


def test_anthropic_response():
    response = default_registry().normalize(_anthropic_response(), provider="anthropic").response
    assert response.provider == Provider.ANTHROPIC
    assert response.messages[0].role == MessageRole.ASSISTANT
    assert response.text == "Let me check."
    assert isinstance(response.messages[0].content[1], ToolUseContent)
    assert response.stop_reason == StopReason.TOOL_USE
    assert response.usage.total_tokens == 28


def test_error_payload_is_normalized():
    raw = {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
    result = default_registry().normalize(raw, provider="anthropic")
    assert result.success
    assert result.response.error.code == "overloaded_error"
    assert result.response.messages == []


def test_invalid_response_reports_errors():
    result = default_registry().normalize({"id": "x"}, provider="openai")
    assert not result.success
    assert result.response is None
    assert any("choices" in e for e in result.errors)


def test_unknown_payload_cannot_be_detected():
    result = default_registry().normalize({"foo": "bar"})
    assert not result.success


def test_unregistered_provider_raises():
    with pytest.raises(ValueError):
        default_registry().get("acme")


# --- Detection ---


def test_detect_by_shape():
    registry = default_registry()
    assert registry.detect(_anthropic_response()).provider == Provider.ANTHROPIC
    detected = registry.detect(_openai_response())
    assert detected.provider == Provider.OPENAI
    assert detected.method == "shape"


def test_detect_prefers_headers_and_url():
    registry = default_registry()
    by_header = registry.detect(_openai_response(), headers={"Anthropic-Version": "2023-06-01"})
    assert by_header.provider == Provider.ANTHROPIC
    assert by_header.method == "header"
    by_url = registry.detect({}, url="https://api.mistral.ai/v1/chat/completions")
    assert by_url.provider == Provider.MISTRAL
    assert by_url.confidence > 0.8


def test_detect_by_model_name():
    detected = default_registry().detect({"model": "gemini-1.5-pro"})
    assert detected.provider == Provider.GOOGLE
    assert detected.method == "model"


def test_detect_nothing():
    assert default_registry().detect({"hello": "world"}) is None


def test_default_registry_providers():
    registry = default_registry()
    assert len(registry.providers()) == 13
    assert Provider.OLLAMA in registry
    assert registry.get("anthropic").capabilities.tool_use


# --- Stop Reasons ---


def test_stop_reason_table_hit():
    reason, meta = normalize_stop_reason("length", "openai")
    assert reason == StopReason.MAX_TOKENS
    assert meta.was_recognized
    assert meta.mapping_confidence == MappingConfidence.HIGH
    assert meta.original_value == "length"


def test_stop_reason_is_case_insensitive():
    reason, meta = normalize_stop_reason("SAFETY", "google")
    assert reason == StopReason.CONTENT_FILTER
    assert meta.mapping_confidence == MappingConfidence.HIGH


def test_stop_reason_heuristic():
    reason, meta = normalize_stop_reason("context_window_full", "openai")
    assert reason == StopReason.CONTEXT_LENGTH
    assert meta.mapping_confidence == MappingConfidence.MEDIUM


def test_stop_reason_unrecognized():
    reason, meta = normalize_stop_reason("zzz", "anthropic")
    assert reason == StopReason.UNKNOWN
    assert not meta.was_recognized
    assert meta.mapping_confidence == MappingConfidence.LOW
    assert meta.original_value == "zzz"


@pytest.mark.parametrize("value", [None, "", "   "])
def test_stop_reason_missing(value):
    reason, meta = normalize_stop_reason(value, "openai")
    assert reason == StopReason.UNKNOWN
    assert meta.original_value is None
    assert meta.mapping_confidence == MappingConfidence.LOW


# --- Streaming ---


def _anthropic_events() -> list[dict]:
    return [
        {
            "type": "message_start",
            "message": {"id": "msg_02", "model": "claude-3-5-haiku", "usage": {"input_tokens": 10, "output_tokens": 1}},
        },
        {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
        {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Hel"}},
        {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "lo"}},
        {"type": "content_block_stop", "index": 0},
        {
            "type": "content_block_start",
            "index": 1,
            "content_block": {"type": "tool_use", "id": "toolu_2", "name": "search", "input": {}},
        },
        {"type": "content_block_delta", "index": 1, "delta": {"type": "input_json_delta", "partial_json": '{"q": '}},
        {"type": "content_block_delta", "index": 1, "delta": {"type": "input_json_delta", "partial_json": '"cats"}'}},
        {"type": "content_block_stop", "index": 1},
        {"type": "message_delta", "delta": {"stop_reason": "tool_use"}, "usage": {"output_tokens": 15}},
        {"type": "message_stop"},
    ]


def test_anthropic_stream_accumulates():
    registry = default_registry()
    acc = StreamAccumulator()
    for event in _anthropic_events():
        result = registry.normalize_chunk(event, provider="anthropic")
        assert result.success
        acc.add(result.response)
    response = acc.finish()

    assert acc.finished
    assert response.id == "msg_02"
    assert response.model.id == "claude-3-5-haiku"
    assert response.text == "Hello"
    tool = response.messages[0].tool_calls[0]
    assert tool.name == "search"
    assert tool.input == {"q": "cats"}
    assert response.stop_reason == StopReason.TOOL_USE
    assert response.usage.input_tokens == 10
    assert response.usage.output_tokens == 15
    assert response.usage.total_tokens == 25


def test_openai_stream_accumulates():
    registry = default_registry()
    chunks = [
        {"id": "c1", "object": "chat.completion.chunk", "model": "gpt-4o", "choices": [{"index": 0, "delta": {"role": "assistant"}}]},
        {"id": "c1", "object": "chat.completion.chunk", "model": "gpt-4o", "choices": [{"index": 0, "delta": {"content": "Hi"}}]},
        {"id": "c1", "object": "chat.completion.chunk", "model": "gpt-4o", "choices": [{"index": 0, "delta": {"content": "!"}}]},
        {
            "id": "c1",
            "object": "chat.completion.chunk",
            "model": "gpt-4o",
            "choices": [{"index": 0, "delta": {}, "finish_reason": "length"}],
        },
    ]
    acc = StreamAccumulator()
    for chunk in chunks:
        acc.add(registry.normalize_chunk(chunk).response)
    response = acc.finish()
    assert response.provider == Provider.OPENAI
    assert response.text == "Hi!"
    assert response.stop_reason == StopReason.MAX_TOKENS


def test_stream_with_bad_tool_json_warns():
    registry = default_registry()
    events = _anthropic_events()
    events[7] = {"type": "content_block_delta", "index": 1, "delta": {"type": "input_json_delta", "partial_json": "oops"}}
    acc = StreamAccumulator()
    for event in events:
        acc.add(registry.normalize_chunk(event, provider="anthropic").response)
    tool = acc.finish().messages[0].tool_calls[0]
    assert "_raw" in tool.input
    assert acc.warnings


def test_unknown_stream_event_is_rejected():
    result = default_registry().normalize_chunk({"type": "bogus"}, provider="anthropic")
    assert not result.success


def test_finish_without_chunks_raises():
    with pytest.raises(ValueError):
        StreamAccumulator().finish()


# --- Malformed Payloads ---


@pytest.mark.parametrize(
    "provider, raw",
    [
        ("google", {"candidates": ["bad"]}),
        ("bedrock", {"output": "bad"}),
        ("anthropic", {"type": "message", "content": "x", "usage": "bad"}),
        ("openai", {"choices": [{"message": "oops"}]}),
        ("cohere", {"message": {"content": "x", "tool_calls": "nope"}, "finish_reason": "COMPLETE"}),
        ("ollama", {"done": True, "message": {"tool_calls": [{"function": "f"}]}}),
        ("huggingface", {"generated_text": "hi", "details": "long"}),
        ("replicate", {"id": "p1", "version": "v1", "status": "succeeded", "metrics": []}),
    ],
)
def test_malformed_nested_fields_are_rejected(provider, raw):
    result = default_registry().normalize(raw, provider=provider)
    assert not result.success
    assert result.errors[0].startswith("Invalid response: ")


def test_malformed_error_payload_is_still_rejected():
    raw = {"type": "message", "content": "x", "error": {"type": "overloaded_error"}}
    assert not default_registry().normalize(raw, provider="anthropic").success


def test_malformed_stream_chunk_is_rejected():
    registry = default_registry()
    bad_google = registry.normalize_chunk({"candidates": [{"content": {"parts": "bad"}}]}, provider="google")
    assert not bad_google.success
    assert "candidates[0].content.parts" in bad_google.errors[0]
    bad_bedrock = registry.normalize_chunk({"contentBlockDelta": {"delta": "x"}}, provider="bedrock")
    assert not bad_bedrock.success


def test_shape_errors_paths():
    assert shape_errors({"a": [1, "x"]}, {"a": [int]}) == ["'a[1]' must be a number, got a string"]
    assert shape_errors(5, {"a": int}) == ["'$' must be an object, got a number"]
    assert shape_errors({"m": 3}, {"m": (str, {"x": int})}) == ["'m' must be a string or an object, got a number"]
    assert shape_errors({"m": {"x": "y"}}, {"m": (str, {"x": int})}) == ["'m.x' must be a number, got a string"]


def test_shape_errors_ignore_missing_and_null():
    assert shape_errors({}, {"a": {"b": [int]}}) == []
    assert shape_errors({"a": None}, {"a": {"b": [int]}}) == []


# --- Google ---


def _google_response(**overrides) -> dict:
    response = {
        "responseId": "resp-1",
        "modelVersion": "gemini-1.5-flash",
        "candidates": [
            {
                "index": 0,
                "content": {
                    "role": "model",
                    "parts": [{"text": "It is noon."}, {"functionCall": {"name": "get_time", "args": {"tz": "UTC"}}}],
                },
                "finishReason": "STOP",
            }
        ],
        "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": 6, "totalTokenCount": 10},
    }
    response.update(overrides)
    return response


def test_google_response():
    response = default_registry().normalize(_google_response(), provider="google").response
    assert response.id == "resp-1"
    assert response.messages[0].role == MessageRole.ASSISTANT
    assert response.text == "It is noon."
    call = response.messages[0].tool_calls[0]
    assert (call.id, call.name, call.input) == ("call_1", "get_time", {"tz": "UTC"})
    assert response.stop_reason == StopReason.END_TURN
    assert (response.usage.input_tokens, response.usage.output_tokens, response.usage.total_tokens) == (4, 6, 10)


def test_google_model_limits_come_from_the_model_registry():
    response = default_registry().normalize(_google_response(), provider="google").response
    assert response.model.id == "gemini-1.5-flash"
    assert response.model.context_window == 1048576


def test_google_blocked_prompt():
    raw = {"promptFeedback": {"blockReason": "SAFETY"}}
    response = default_registry().normalize(raw, provider="google").response
    assert response.messages == []
    assert response.stop_reason == StopReason.CONTENT_FILTER
    assert response.stop_reason_metadata.details["block_reason"] == "SAFETY"


def test_google_error():
    raw = {"error": {"code": 400, "message": "API key not valid", "status": "INVALID_ARGUMENT"}}
    result = default_registry().normalize(raw, provider="google")
    assert result.success
    assert result.response.error.status_code == 400
    assert result.response.error.type == "INVALID_ARGUMENT"


def test_google_stream_accumulates():
    registry = default_registry()
    chunks = [
        {"candidates": [{"content": {"role": "model", "parts": [{"text": "Hel"}]}, "index": 0}], "modelVersion": "gemini-1.5-pro"},
        {
            "candidates": [{"content": {"role": "model", "parts": [{"text": "lo"}]}, "finishReason": "MAX_TOKENS", "index": 0}],
            "usageMetadata": {"promptTokenCount": 3, "candidatesTokenCount": 2},
            "modelVersion": "gemini-1.5-pro",
        },
    ]
    acc = StreamAccumulator()
    for chunk in chunks:
        result = registry.normalize_chunk(chunk, provider="google")
        assert result.success
        acc.add(result.response)
    response = acc.finish()
    assert acc.finished
    assert response.text == "Hello"
    assert response.stop_reason == StopReason.MAX_TOKENS
    assert response.usage.total_tokens == 5


# --- Cohere ---


def test_cohere_v2_response():
    raw = {
        "id": "c2",
        "finish_reason": "COMPLETE",
        "message": {"role": "assistant", "content": [{"type": "text", "text": "Bonjour"}]},
        "usage": {"billed_units": {"input_tokens": 1, "output_tokens": 1}, "tokens": {"input_tokens": 7, "output_tokens": 3}},
    }
    response = default_registry().normalize(raw, provider="cohere").response
    assert response.id == "c2"
    assert response.text == "Bonjour"
    assert response.stop_reason == StopReason.END_TURN
    assert (response.usage.input_tokens, response.usage.output_tokens) == (7, 3)


def test_cohere_v2_tool_calls():
    raw = {
        "id": "c3",
        "finish_reason": "TOOL_CALL",
        "message": {
            "role": "assistant",
            "tool_calls": [{"id": "tc1", "type": "function", "function": {"name": "lookup", "arguments": '{"q": 1}'}}],
        },
    }
    response = default_registry().normalize(raw, provider="cohere").response
    call = response.messages[0].tool_calls[0]
    assert (call.id, call.name, call.input) == ("tc1", "lookup", {"q": 1})
    assert response.stop_reason == StopReason.TOOL_USE


def test_cohere_v1_response():
    raw = {
        "text": "Hi there",
        "generation_id": "gen-1",
        "finish_reason": "MAX_TOKENS",
        "meta": {"billed_units": {"input_tokens": 5, "output_tokens": 2}},
    }
    response = default_registry().normalize(raw, provider="cohere").response
    assert response.id == "gen-1"
    assert response.metadata["request_id"] == "gen-1"
    assert response.text == "Hi there"
    assert response.stop_reason == StopReason.MAX_TOKENS
    assert response.usage.total_tokens == 7


def test_cohere_bare_error():
    result = default_registry().normalize({"message": "invalid api token"}, provider="cohere")
    assert result.success
    assert result.response.error.message == "invalid api token"
    assert result.response.messages == []


def test_cohere_v2_stream_accumulates():
    registry = default_registry()
    events = [
        {"type": "message-start", "id": "c4"},
        {"type": "content-delta", "index": 0, "delta": {"message": {"content": {"text": "Bon"}}}},
        {"type": "content-delta", "index": 0, "delta": {"message": {"content": {"text": "jour"}}}},
        {
            "type": "message-end",
            "delta": {"finish_reason": "COMPLETE", "usage": {"tokens": {"input_tokens": 4, "output_tokens": 2}}},
        },
    ]
    acc = StreamAccumulator()
    for event in events:
        acc.add(registry.normalize_chunk(event, provider="cohere").response)
    response = acc.finish()
    assert response.id == "c4"
    assert response.text == "Bonjour"
    assert response.stop_reason == StopReason.END_TURN
    assert response.usage.total_tokens == 6


# --- Bedrock ---


def test_bedrock_response():
    raw = {
        "output": {
            "message": {
                "role": "assistant",
                "content": [
                    {"text": "Searching."},
                    {"toolUse": {"toolUseId": "t1", "name": "search", "input": {"q": "x"}}},
                ],
            }
        },
        "stopReason": "tool_use",
        "usage": {"inputTokens": 9, "outputTokens": 5, "totalTokens": 14},
        "metrics": {"latencyMs": 120},
    }
    response = default_registry().normalize(raw, provider="bedrock").response
    assert response.text == "Searching."
    assert response.messages[0].tool_calls[0].id == "t1"
    assert response.stop_reason == StopReason.TOOL_USE
    assert response.usage.total_tokens == 14
    assert response.metadata == {"latency_ms": 120}


def test_bedrock_stream_accumulates():
    registry = default_registry()
    events = [
        {"messageStart": {"role": "assistant"}},
        {"contentBlockDelta": {"contentBlockIndex": 0, "delta": {"text": "Hel"}}},
        {"contentBlockDelta": {"contentBlockIndex": 0, "delta": {"text": "lo"}}},
        {"contentBlockStop": {"contentBlockIndex": 0}},
        {"messageStop": {"stopReason": "end_turn"}},
        {"metadata": {"usage": {"inputTokens": 9, "outputTokens": 2}, "metrics": {"latencyMs": 80}}},
    ]
    acc = StreamAccumulator()
    for event in events:
        result = registry.normalize_chunk(event, provider="bedrock")
        assert result.success
        acc.add(result.response)
    response = acc.finish()
    assert response.text == "Hello"
    assert response.stop_reason == StopReason.END_TURN
    assert response.usage.total_tokens == 11


def test_bedrock_null_stream_event():
    result = default_registry().normalize_chunk({"contentBlockDelta": None}, provider="bedrock")
    assert result.success
    assert result.response.chunks == []


# --- Ollama ---


def test_ollama_chat_response():
    raw = {
        "model": "llama3",
        "created_at": "2024-06-01T12:00:00Z",
        "message": {"role": "assistant", "content": "Hey!"},
        "done": True,
        "done_reason": "stop",
        "prompt_eval_count": 26,
        "eval_count": 4,
    }
    response = default_registry().normalize(raw, provider="ollama").response
    assert response.text == "Hey!"
    assert response.stop_reason == StopReason.END_TURN
    assert (response.usage.input_tokens, response.usage.output_tokens) == (26, 4)
    assert response.metadata["created_at"] == "2024-06-01T12:00:00Z"


def test_ollama_generate_response():
    raw = {"model": "llama3", "response": "Plain text", "done": True}
    response = default_registry().normalize(raw, provider="ollama").response
    assert response.text == "Plain text"


def test_ollama_stream_accumulates():
    registry = default_registry()
    chunks = [
        {"model": "llama3", "message": {"role": "assistant", "content": "Hel"}, "done": False},
        {"model": "llama3", "message": {"role": "assistant", "content": "lo"}, "done": False},
        {
            "model": "llama3",
            "message": {"role": "assistant", "content": ""},
            "done": True,
            "done_reason": "length",
            "prompt_eval_count": 8,
            "eval_count": 2,
        },
    ]
    acc = StreamAccumulator()
    for chunk in chunks:
        acc.add(registry.normalize_chunk(chunk, provider="ollama").response)
    response = acc.finish()
    assert acc.finished
    assert response.text == "Hello"
    assert response.stop_reason == StopReason.MAX_TOKENS
    assert response.usage.total_tokens == 10


# --- Hugging Face ---


def test_huggingface_text_generation():
    raw = {"generated_text": "Once upon a time", "details": {"finish_reason": "length", "generated_tokens": 20, "seed": 42}}
    response = default_registry().normalize(raw, provider="huggingface").response
    assert response.provider == Provider.HUGGINGFACE
    assert response.text == "Once upon a time"
    assert response.stop_reason == StopReason.MAX_TOKENS
    assert (response.usage.input_tokens, response.usage.output_tokens) == (0, 20)
    assert response.metadata == {"format": "text_generation", "seed": 42}


def test_huggingface_conversational():
    raw = {
        "generated_text": "Fine, thanks.",
        "conversation": {"past_user_inputs": ["Hi", "How are you?"], "generated_responses": ["Hello", "Fine, thanks."]},
    }
    response = default_registry().normalize(raw, provider="huggingface").response
    roles = [m.role for m in response.messages]
    assert roles == [MessageRole.USER, MessageRole.ASSISTANT, MessageRole.USER, MessageRole.ASSISTANT]
    assert response.messages[-1].text == "Fine, thanks."
    assert response.metadata["format"] == "conversational"


def test_huggingface_chat_completion():
    raw = _openai_response(model="HuggingFaceH4/zephyr-7b-beta")
    response = default_registry().normalize(raw, provider="huggingface").response
    assert response.text == "Hello there"
    assert response.stop_reason == StopReason.END_TURN
    assert response.usage.total_tokens == 15
    assert response.model.context_window == 32768
    assert response.metadata["format"] == "chat"


def test_huggingface_error():
    result = default_registry().normalize({"error": "Model is loading", "error_type": "overloaded"}, provider="huggingface")
    assert result.success
    assert result.response.error.code == "huggingface_error"
    assert result.response.error.details == {"error_type": "overloaded"}


def test_huggingface_token_stream_accumulates():
    registry = default_registry()
    events = [
        {"token": {"id": 1, "text": "Hel", "special": False}, "generated_text": None, "details": None},
        {"token": {"id": 2, "text": "lo", "special": False}, "generated_text": None, "details": None},
        {
            "token": {"id": 0, "text": "</s>", "special": True},
            "generated_text": "Hello",
            "details": {"finish_reason": "eos_token", "generated_tokens": 3},
        },
    ]
    acc = StreamAccumulator()
    for event in events:
        result = registry.normalize_chunk(event, provider="huggingface")
        assert result.success
        acc.add(result.response)
    response = acc.finish()
    assert acc.finished
    assert response.text == "Hello"
    assert response.stop_reason == StopReason.END_TURN
    assert response.usage.output_tokens == 3


def test_huggingface_tgi_stream_uses_chat_chunks():
    chunk = {"id": "tgi-1", "model": "tgi", "choices": [{"index": 0, "delta": {"content": "Hi"}, "finish_reason": None}]}
    result = default_registry().normalize_chunk(chunk, provider="huggingface")
    assert result.success
    assert result.response.chunks[0].text == "Hi"


def test_huggingface_token_without_text_is_rejected():
    result = default_registry().normalize_chunk({"token": {"id": 3}}, provider="huggingface")
    assert not result.success


# --- Replicate ---


def _replicate_prediction(**overrides) -> dict:
    prediction = {
        "id": "p1",
        "model": "meta/meta-llama-3.1-405b-instruct",
        "version": "5a6809ca6288247d06daf6365557e5e429063f32a21146b2a807c682652136b8",
        "status": "succeeded",
        "output": ["Hel", "lo", "!"],
        "created_at": "2024-08-01T10:00:00Z",
        "metrics": {"predict_time": 1.2, "input_token_count": 10, "output_token_count": 3},
        "urls": {"get": "https://api.replicate.com/v1/predictions/p1"},
    }
    prediction.update(overrides)
    return prediction


def test_replicate_prediction():
    response = default_registry().normalize(_replicate_prediction(), provider="replicate").response
    assert response.id == "p1"
    assert response.text == "Hello!"
    assert response.stop_reason == StopReason.END_TURN
    assert (response.usage.input_tokens, response.usage.output_tokens) == (10, 3)
    assert response.model.id == "meta/meta-llama-3.1-405b-instruct"
    assert response.model.version.startswith("5a6809ca")
    assert response.metadata["predict_time"] == 1.2
    assert response.metadata["status"] == "succeeded"


def test_replicate_image_output():
    raw = _replicate_prediction(model="black-forest-labs/flux-schnell", output=["https://replicate.delivery/x/out.webp"])
    content = default_registry().normalize(raw, provider="replicate").response.messages[0].content
    assert content == [ImageContent(source_type="url", url="https://replicate.delivery/x/out.webp")]


def test_replicate_failed_prediction():
    raw = _replicate_prediction(status="failed", output=None, error="CUDA out of memory", logs="loading weights")
    result = default_registry().normalize(raw, provider="replicate")
    assert result.success
    response = result.response
    assert response.messages == []
    assert response.stop_reason == StopReason.ERROR
    assert response.error.code == "replicate_prediction_error"
    assert response.error.details == {"status": "failed", "logs": "loading weights"}


def test_replicate_running_prediction_has_no_output():
    raw = _replicate_prediction(status="processing", output=["partial"])
    response = default_registry().normalize(raw, provider="replicate").response
    assert response.messages == []
    assert response.stop_reason == StopReason.UNKNOWN


def test_replicate_unknown_status_is_rejected():
    result = default_registry().normalize(_replicate_prediction(status="exploded"), provider="replicate")
    assert not result.success
    assert "exploded" in result.errors[0]


def test_replicate_api_error():
    result = default_registry().normalize({"detail": "Invalid token."}, provider="replicate")
    assert result.success
    assert result.response.error.code == "replicate_api_error"


def test_replicate_stream_accumulates():
    registry = default_registry()
    events = [
        {"event": "output", "id": "1", "data": "Hel"},
        {"event": "logs", "id": "2", "data": "step 1"},
        {"event": "output", "id": "3", "data": "lo"},
        {"event": "done", "id": "4", "data": "{}"},
    ]
    acc = StreamAccumulator()
    for event in events:
        result = registry.normalize_chunk(event)
        assert result.success
        acc.add(result.response)
    response = acc.finish()
    assert response.provider == Provider.REPLICATE
    assert response.text == "Hello"
    assert response.stop_reason == StopReason.END_TURN


def test_replicate_stream_canceled_and_error_events():
    registry = default_registry()
    canceled = registry.normalize_chunk({"event": "done", "data": '{"reason": "canceled"}'}, provider="replicate")
    assert canceled.response.stop_reason == StopReason.CANCELED
    failed = registry.normalize_chunk({"event": "error", "id": "9", "data": '{"detail": "boom"}'}, provider="replicate")
    assert failed.success
    assert failed.response.error.message == "boom"
    assert failed.response.error.details["event_id"] == "9"
    assert failed.response.stop_reason == StopReason.ERROR


def test_replicate_unknown_event_is_rejected():
    assert not default_registry().normalize_chunk({"event": "ping", "data": ""}, provider="replicate").success


# --- New Provider Detection ---


def test_detect_huggingface_and_replicate():
    registry = default_registry()
    assert registry.detect({"generated_text": "x"}).provider == Provider.HUGGINGFACE
    assert registry.detect({"token": {"text": "x"}}).provider == Provider.HUGGINGFACE
    assert registry.detect({"id": "p", "version": "a" * 64, "status": "starting"}).provider == Provider.REPLICATE
    assert registry.detect({"event": "output", "data": "x"}).provider == Provider.REPLICATE


def test_detect_by_api_token_prefix():
    registry = default_registry()
    by_hf = registry.detect({}, headers={"Authorization": "Bearer hf_abc123"})
    assert (by_hf.provider, by_hf.method) == (Provider.HUGGINGFACE, "header")
    by_r8 = registry.detect({}, headers={"authorization": "Bearer r8_abc123"})
    assert by_r8.provider == Provider.REPLICATE


def test_detect_by_url_for_new_providers():
    registry = default_registry()
    assert registry.detect({}, url="https://api-inference.huggingface.co/models/gpt2").provider == Provider.HUGGINGFACE
    assert registry.detect({}, url="https://api.replicate.com/v1/predictions").provider == Provider.REPLICATE


def test_detect_by_known_model():
    detected = default_registry().detect({"model": "black-forest-labs/flux-schnell"})
    assert detected.provider == Provider.REPLICATE
    assert detected.method == "model"


# --- Model Registry ---


def test_model_registry_lookup():
    models = default_model_registry()
    assert models.get("claude-3-haiku").id == "claude-3-haiku-20240307"
    assert models.get("GPT-4O").id == "gpt-4o"
    assert models.get("gpt-4o", Provider.ANTHROPIC) is None
    assert models.get("gpt-4-turbo", Provider.OPENAI).version == "2024-04-09"
    assert "command-r" in models
    assert models.get("no-such-model") is None


def test_detect_provider_from_model():
    assert detect_provider_from_model("command-r-plus") == Provider.COHERE
    assert detect_provider_from_model("HuggingFaceH4/zephyr-7b-beta") == Provider.HUGGINGFACE
    assert detect_provider_from_model("mystery-1") is None


def test_search_models():
    vision = search_models(provider=Provider.ANTHROPIC, capability="vision")
    assert vision and all(m.provider == Provider.ANTHROPIC and "vision" in m.capabilities for m in vision)
    assert {m.id for m in search_models(min_context_window=1_000_000)} == {"gemini-1.5-pro", "gemini-1.5-flash"}
    cheap = search_models(max_output_cost=1.0)
    assert cheap and all(m.pricing.output_per_1m <= 1.0 for m in cheap)
    deprecated = {m.id for m in search_models(deprecated=True)}
    assert "claude-3-sonnet-20240229" in deprecated
    assert "gpt-4o" not in deprecated


def test_custom_model_registry():
    models = ModelRegistry()
    models.register(ModelDetails(id="acme-1", provider=Provider.OPENAI, display_name="Acme 1", aliases=("acme",)))
    assert len(models) == 1
    assert models.get("ACME").id == "acme-1"
    assert models.capabilities("acme-1") == ("text",)
    assert models.provider_models(Provider.OPENAI)[0].display_name == "Acme 1"
    assert models.provider_models(Provider.GOOGLE) == []
