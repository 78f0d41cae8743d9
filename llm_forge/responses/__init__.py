"""Runtime response normalization across LLM providers."""

from llm_forge.responses.base import ParseContext, ResponseNormalizer
from llm_forge.responses.model_registry import (
    ModelDetails,
    ModelRegistry,
    default_model_registry,
    detect_provider_from_model,
    search_models,
)
from llm_forge.responses.models import (
    MappingConfidence,
    MessageRole,
    NormalizationResult,
    Provider,
    StopReason,
    StreamEventType,
    UnifiedResponse,
    UnifiedStreamResponse,
)
from llm_forge.responses.registry import DetectionResult, ProviderRegistry, default_registry
from llm_forge.responses.stop_reasons import normalize_stop_reason
from llm_forge.responses.stream import StreamAccumulator

__all__ = [
    "DetectionResult",
    "MappingConfidence",
    "MessageRole",
    "ModelDetails",
    "ModelRegistry",
    "NormalizationResult",
    "ParseContext",
    "Provider",
    "ProviderRegistry",
    "ResponseNormalizer",
    "StopReason",
    "StreamAccumulator",
    "StreamEventType",
    "UnifiedResponse",
    "UnifiedStreamResponse",
    "default_model_registry",
    "default_registry",
    "detect_provider_from_model",
    "normalize_stop_reason",
    "search_models",
]
