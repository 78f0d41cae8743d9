"""Provider registry and auto-detection for response payloads.

Detection checks, in order of confidence: HTTP headers, request URL,
the response body shape, and finally the model name.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from llm_forge.responses.anthropic import AnthropicNormalizer
from llm_forge.responses.base import ResponseNormalizer
from llm_forge.responses.bedrock import BedrockNormalizer
from llm_forge.responses.cohere import CohereNormalizer
from llm_forge.responses.google import GoogleNormalizer
from llm_forge.responses.huggingface import HuggingFaceNormalizer
from llm_forge.responses.model_registry import ModelRegistry, default_model_registry
from llm_forge.responses.models import NormalizationResult, Provider
from llm_forge.responses.ollama import OllamaNormalizer
from llm_forge.responses.openai import (
    FireworksNormalizer,
    MistralNormalizer,
    OpenAINormalizer,
    PerplexityNormalizer,
    TogetherNormalizer,
    XAINormalizer,
)
from llm_forge.responses.replicate import EVENTS as REPLICATE_EVENTS, ReplicateNormalizer

logger = logging.getLogger(__name__)

# --- Detection tables ---

_HEADER_HINTS: list[tuple[str, Provider]] = [
    ("anthropic-version", Provider.ANTHROPIC),
    ("anthropic-ratelimit-requests-limit", Provider.ANTHROPIC),
    ("openai-organization", Provider.OPENAI),
    ("openai-processing-ms", Provider.OPENAI),
    ("openai-version", Provider.OPENAI),
    ("x-amzn-bedrock-invocation-latency", Provider.BEDROCK),
    ("x-amzn-bedrock-input-token-count", Provider.BEDROCK),
    ("x-goog-api-client", Provider.GOOGLE),
    ("x-api-warning", Provider.COHERE),
    ("x-compute-type", Provider.HUGGINGFACE),
]

# Prefixes of the API token in the Authorization header
_TOKEN_HINTS: list[tuple[str, Provider]] = [
    ("hf_", Provider.HUGGINGFACE),
    ("r8_", Provider.REPLICATE),
]

_HOST_HINTS: list[tuple[str, Provider]] = [
    ("api.openai.com", Provider.OPENAI),
    ("openai.azure.com", Provider.OPENAI),
    ("api.anthropic.com", Provider.ANTHROPIC),
    ("generativelanguage.googleapis.com", Provider.GOOGLE),
    ("aiplatform.googleapis.com", Provider.GOOGLE),
    ("api.cohere.com", Provider.COHERE),
    ("api.cohere.ai", Provider.COHERE),
    ("api.mistral.ai", Provider.MISTRAL),
    ("api.x.ai", Provider.XAI),
    ("api.perplexity.ai", Provider.PERPLEXITY),
    ("api.together.xyz", Provider.TOGETHER),
    ("api.fireworks.ai", Provider.FIREWORKS),
    ("amazonaws.com", Provider.BEDROCK),
    ("localhost:11434", Provider.OLLAMA),
    ("huggingface.co", Provider.HUGGINGFACE),
    ("replicate.com", Provider.REPLICATE),
]

_MODEL_HINTS: list[tuple[re.Pattern, Provider]] = [
    (re.compile(r"^(gpt-|o1|o3|o4|chatgpt|text-davinci)"), Provider.OPENAI),
    (re.compile(r"^claude"), Provider.ANTHROPIC),
    (re.compile(r"^(models/)?gemini"), Provider.GOOGLE),
    (re.compile(r"^command"), Provider.COHERE),
    (re.compile(r"^(mistral|mixtral|codestral|pixtral|ministral)"), Provider.MISTRAL),
    (re.compile(r"^grok"), Provider.XAI),
    (re.compile(r"^(sonar|pplx-)"), Provider.PERPLEXITY),
    (re.compile(r"^accounts/fireworks/"), Provider.FIREWORKS),
    (re.compile(r"^(anthropic|amazon|meta|cohere|ai21|mistral)\.[a-z0-9-]+"), Provider.BEDROCK),
    (re.compile(r"^(llama|qwen|phi|gemma)[0-9.]*:"), Provider.OLLAMA),
]

HEADER_CONFIDENCE = 0.95
URL_CONFIDENCE = 0.9
SHAPE_CONFIDENCE = 0.8
MODEL_CONFIDENCE = 0.7

_REPLICATE_VERSION = re.compile(r"^[a-f0-9]{64}$")


@dataclass
class DetectionResult:
    provider: Provider
    confidence: float
    method: str  # "header", "url", "shape" or "model"


class ProviderRegistry:
    """Maps providers to response adapters and picks one for a payload."""

    def __init__(self, models: ModelRegistry | None = None):
        self._normalizers: dict[Provider, ResponseNormalizer] = {}
        self.models = models if models is not None else default_model_registry()

    def register(self, normalizer: ResponseNormalizer) -> None:
        self._normalizers[normalizer.provider] = normalizer

    def get(self, provider: Provider | str) -> ResponseNormalizer:
        key = Provider(provider) if isinstance(provider, str) else provider
        if key not in self._normalizers:
            raise KeyError(f"No response normalizer registered for {key.value!r}")
        return self._normalizers[key]

    def providers(self) -> list[Provider]:
        return list(self._normalizers)

    def __contains__(self, provider: Provider) -> bool:
        return provider in self._normalizers

    # -- Detection -------------------------------------------------------

    def detect(
        self,
        response: Any = None,
        headers: dict[str, str] | None = None,
        url: str | None = None,
        model: str | None = None,
    ) -> DetectionResult | None:
        """Guess which provider produced a payload.

        Returns None when no signal matches a registered provider.
        """
        for detector in (
            lambda: self._from_headers(headers),
            lambda: self._from_url(url),
            lambda: self._from_shape(response),
            lambda: self._from_model(model or _model_field(response)),
        ):
            result = detector()
            if result is not None and result.provider in self._normalizers:
                logger.debug("Detected provider %s via %s", result.provider.value, result.method)
                return result
        return None

    def _from_headers(self, headers: dict[str, str] | None) -> DetectionResult | None:
        if not headers:
            return None
        names = {k.lower() for k in headers}
        for header, provider in _HEADER_HINTS:
            if header in names:
                return DetectionResult(provider, HEADER_CONFIDENCE, "header")
        auth = next((v for k, v in headers.items() if k.lower() == "authorization"), "")
        token = str(auth).removeprefix("Bearer ").strip()
        for prefix, provider in _TOKEN_HINTS:
            if token.startswith(prefix):
                return DetectionResult(provider, HEADER_CONFIDENCE, "header")
        return None

    def _from_url(self, url: str | None) -> DetectionResult | None:
        if not url:
            return None
        netloc = urlparse(url).netloc.lower() or url.lower()
        for host, provider in _HOST_HINTS:
            if host in netloc:
                return DetectionResult(provider, URL_CONFIDENCE, "url")
        return None

    def _from_shape(self, response: Any) -> DetectionResult | None:
        if not isinstance(response, dict):
            return None
        provider = _shape_provider(response)
        return DetectionResult(provider, SHAPE_CONFIDENCE, "shape") if provider else None

    def _from_model(self, model: str | None) -> DetectionResult | None:
        if not model:
            return None
        known = self.models.detect_provider(model)
        if known is not None:
            return DetectionResult(known, MODEL_CONFIDENCE, "model")
        name = model.lower()
        for pattern, provider in _MODEL_HINTS:
            if pattern.match(name):
                return DetectionResult(provider, MODEL_CONFIDENCE, "model")
        return None

    # -- Dispatch --------------------------------------------------------

    def _resolve(self, raw: Any, provider, headers, url) -> ResponseNormalizer | None:
        if provider is not None:
            return self.get(provider)
        detected = self.detect(raw, headers=headers, url=url)
        return self._normalizers[detected.provider] if detected else None

    def normalize(
        self,
        raw: Any,
        provider: Provider | str | None = None,
        headers: dict[str, str] | None = None,
        url: str | None = None,
    ) -> NormalizationResult:
        normalizer = self._resolve(raw, provider, headers, url)
        if normalizer is None:
            return NormalizationResult(success=False, errors=["Could not detect the response provider"])
        return normalizer.normalize(raw)

    def normalize_chunk(
        self,
        raw: Any,
        provider: Provider | str | None = None,
        headers: dict[str, str] | None = None,
        url: str | None = None,
    ) -> NormalizationResult:
        normalizer = self._resolve(raw, provider, headers, url)
        if normalizer is None:
            return NormalizationResult(success=False, errors=["Could not detect the stream chunk provider"])
        return normalizer.normalize_chunk(raw)


def _model_field(response: Any) -> str | None:
    if not isinstance(response, dict):
        return None
    model = response.get("model") or response.get("modelVersion") or response.get("modelId")
    return model if isinstance(model, str) else None


def _shape_provider(raw: dict) -> Provider | None:
    if raw.get("event") in REPLICATE_EVENTS and "data" in raw:
        return Provider.REPLICATE
    if isinstance(raw.get("version"), str) and isinstance(raw.get("status"), str):
        if isinstance(raw.get("urls"), dict) or _REPLICATE_VERSION.match(raw["version"]):
            return Provider.REPLICATE
    if raw.get("type") == "message" or str(raw.get("type", "")).startswith(("message_", "content_block_")):
        return Provider.ANTHROPIC
    if "candidates" in raw or "promptFeedback" in raw:
        return Provider.GOOGLE
    if "output" in raw and "stopReason" in raw:
        return Provider.BEDROCK
    if any(k in raw for k in ("messageStart", "contentBlockDelta", "messageStop")):
        return Provider.BEDROCK
    if "generation_id" in raw or "event_type" in raw or ("finish_reason" in raw and "message" in raw):
        return Provider.COHERE
    if "generated_text" in raw or isinstance(raw.get("conversation"), dict) or isinstance(raw.get("token"), dict):
        return Provider.HUGGINGFACE
    if "done" in raw and ("eval_count" in raw or "message" in raw or "response" in raw):
        return Provider.OLLAMA
    if raw.get("object") in ("chat.completion", "chat.completion.chunk", "text_completion") or "choices" in raw:
        if "citations" in raw or "search_results" in raw:
            return Provider.PERPLEXITY
        return Provider.OPENAI
    return None


def default_registry() -> ProviderRegistry:
    """Registry with every built-in adapter."""
    registry = ProviderRegistry()
    for cls in (
        OpenAINormalizer,
        AnthropicNormalizer,
        GoogleNormalizer,
        CohereNormalizer,
        MistralNormalizer,
        XAINormalizer,
        PerplexityNormalizer,
        TogetherNormalizer,
        FireworksNormalizer,
        BedrockNormalizer,
        OllamaNormalizer,
        HuggingFaceNormalizer,
        ReplicateNormalizer,
    ):
        registry.register(cls())
    return registry
