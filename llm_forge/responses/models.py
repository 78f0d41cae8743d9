"""Unified runtime response models.

Every provider's chat/completion payload is normalized into a
``UnifiedResponse``; streaming payloads become ``UnifiedStreamResponse``
objects holding a list of ``StreamChunk`` events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class Provider(Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    COHERE = "cohere"
    MISTRAL = "mistral"
    XAI = "xai"
    PERPLEXITY = "perplexity"
    TOGETHER = "together"
    FIREWORKS = "fireworks"
    BEDROCK = "bedrock"
    OLLAMA = "ollama"
    HUGGINGFACE = "huggingface"
    REPLICATE = "replicate"


class MessageRole(Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    FUNCTION = "function"


class ContentType(Enum):
    TEXT = "text"
    IMAGE = "image"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    FUNCTION_CALL = "function_call"


class StopReason(Enum):
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    CONTEXT_LENGTH = "context_length"
    STOP_SEQUENCE = "stop_sequence"
    TOOL_USE = "tool_use"
    CONTENT_FILTER = "content_filter"
    RECITATION = "recitation"
    ERROR = "error"
    CANCELED = "canceled"
    UNKNOWN = "unknown"


class MappingConfidence(Enum):
    HIGH = "high"  # Listed in the provider's table
    MEDIUM = "medium"  # Matched by keyword heuristics
    LOW = "low"  # Missing or unrecognized


class StreamEventType(Enum):
    MESSAGE_START = "message_start"
    CONTENT_BLOCK_START = "content_block_start"
    CONTENT_BLOCK_DELTA = "content_block_delta"
    CONTENT_BLOCK_STOP = "content_block_stop"
    MESSAGE_DELTA = "message_delta"
    MESSAGE_STOP = "message_stop"


# --- Content blocks ---


@dataclass
class TextContent:
    text: str

    type: ClassVar[ContentType] = ContentType.TEXT


@dataclass
class ImageContent:
    source_type: str  # "url" or "base64"
    url: str | None = None
    data: str | None = None
    media_type: str | None = None

    type: ClassVar[ContentType] = ContentType.IMAGE


@dataclass
class ToolUseContent:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    type: ClassVar[ContentType] = ContentType.TOOL_USE


@dataclass
class ToolResultContent:
    tool_use_id: str
    content: str
    is_error: bool = False

    type: ClassVar[ContentType] = ContentType.TOOL_RESULT


@dataclass
class FunctionCallContent:
    name: str
    arguments: str

    type: ClassVar[ContentType] = ContentType.FUNCTION_CALL


Content = TextContent | ImageContent | ToolUseContent | ToolResultContent | FunctionCallContent


# --- Messages and accounting ---


@dataclass
class UnifiedMessage:
    role: MessageRole
    content: list[Content] = field(default_factory=list)
    name: str | None = None
    tool_call_id: str | None = None

    @property
    def text(self) -> str:
        return "".join(c.text for c in self.content if isinstance(c, TextContent))

    @property
    def tool_calls(self) -> list[ToolUseContent]:
        return [c for c in self.content if isinstance(c, ToolUseContent)]


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None
    reasoning_tokens: int | None = None


@dataclass
class ModelInfo:
    id: str
    provider: Provider
    version: str | None = None
    context_window: int | None = None
    max_output_tokens: int | None = None


@dataclass
class UnifiedError:
    code: str
    message: str
    type: str = "error"
    status_code: int | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class StopReasonMetadata:
    original_value: str | None
    was_recognized: bool
    mapping_confidence: MappingConfidence
    details: dict[str, Any] = field(default_factory=dict)


# --- Responses ---


@dataclass
class UnifiedResponse:
    id: str
    provider: Provider
    model: ModelInfo
    messages: list[UnifiedMessage] = field(default_factory=list)
    stop_reason: StopReason = StopReason.UNKNOWN
    stop_reason_metadata: StopReasonMetadata | None = None
    usage: TokenUsage = field(default_factory=TokenUsage)
    metadata: dict[str, Any] = field(default_factory=dict)
    error: UnifiedError | None = None
    raw: Any = None

    @property
    def text(self) -> str:
        return "".join(m.text for m in self.messages if m.role == MessageRole.ASSISTANT)


@dataclass
class StreamChunk:
    type: StreamEventType
    index: int = 0
    text: str | None = None  # Text delta
    partial_json: str | None = None  # Tool input delta
    content_block: Content | None = None  # Set on CONTENT_BLOCK_START
    stop_reason: StopReason | None = None  # Set on MESSAGE_DELTA


@dataclass
class UnifiedStreamResponse:
    id: str
    provider: Provider
    model: ModelInfo
    chunks: list[StreamChunk] = field(default_factory=list)
    stop_reason: StopReason | None = None
    stop_reason_metadata: StopReasonMetadata | None = None
    usage: TokenUsage | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    error: UnifiedError | None = None


# --- Provider description ---


@dataclass
class ProviderCapabilities:
    streaming: bool = True
    function_calling: bool = False
    tool_use: bool = False
    vision: bool = False
    json_mode: bool = False
    system_messages: bool = True
    max_context_window: int | None = None
    max_output_tokens: int | None = None
    modalities: tuple[str, ...] = ("text",)


@dataclass
class ProviderMetadata:
    id: Provider
    name: str
    description: str
    api_version: str
    base_url: str
    capabilities: ProviderCapabilities
    auth_type: str = "api_key"  # api_key, oauth, service_account
    docs_url: str | None = None


@dataclass
class NormalizationResult:
    """Outcome of normalizing one response payload or stream chunk."""

    success: bool
    response: UnifiedResponse | UnifiedStreamResponse | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
