"""Fold normalized stream chunks back into a complete response."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace

from llm_forge.responses.models import (
    Content,
    MessageRole,
    ModelInfo,
    Provider,
    StopReason,
    StopReasonMetadata,
    StreamEventType,
    TextContent,
    TokenUsage,
    ToolUseContent,
    UnifiedError,
    UnifiedMessage,
    UnifiedResponse,
    UnifiedStreamResponse,
)

logger = logging.getLogger(__name__)


@dataclass
class _Block:
    content: Content | None = None
    text: list[str] = field(default_factory=list)
    json: list[str] = field(default_factory=list)


class StreamAccumulator:
    """Collects ``UnifiedStreamResponse`` objects for one streamed message.

    Usage:
        acc = StreamAccumulator()
        for event in events:
            result = registry.normalize_chunk(event, provider="anthropic")
            acc.add(result.response)
        response = acc.finish()
    """

    def __init__(self):
        self.id: str | None = None
        self.provider: Provider | None = None
        self.model: ModelInfo | None = None
        self.stop_reason: StopReason | None = None
        self.stop_reason_metadata: StopReasonMetadata | None = None
        self.usage: TokenUsage | None = None
        self.error: UnifiedError | None = None
        self.warnings: list[str] = []
        self.finished = False
        self._blocks: dict[int, _Block] = {}

    def add(self, stream: UnifiedStreamResponse) -> None:
        if self.id is None:
            self.id = stream.id
            self.provider = stream.provider
        if self.model is None or (self.model.id == "unknown" and stream.model.id != "unknown"):
            self.model = stream.model
        if stream.stop_reason is not None:
            self.stop_reason = stream.stop_reason
            self.stop_reason_metadata = stream.stop_reason_metadata
        if stream.usage is not None:
            self.usage = _merge_usage(self.usage, stream.usage)
        if stream.error is not None:
            self.error = stream.error

        for chunk in stream.chunks:
            if chunk.type == StreamEventType.CONTENT_BLOCK_START:
                block = self._blocks.setdefault(chunk.index, _Block())
                block.content = chunk.content_block
            elif chunk.type == StreamEventType.CONTENT_BLOCK_DELTA:
                block = self._blocks.setdefault(chunk.index, _Block())
                if chunk.text:
                    block.text.append(chunk.text)
                if chunk.partial_json:
                    block.json.append(chunk.partial_json)
            elif chunk.type == StreamEventType.MESSAGE_STOP:
                self.finished = True

    def finish(self) -> UnifiedResponse:
        """Build the final response from everything added so far."""
        if self.provider is None:
            raise ValueError("No stream chunks were added")
        content: list[Content] = []
        for index in sorted(self._blocks):
            block = self._blocks[index]
            item = self._assemble(block)
            if item is not None:
                content.append(item)
        return UnifiedResponse(
            id=self.id or "",
            provider=self.provider,
            model=self.model or ModelInfo(id="unknown", provider=self.provider),
            messages=[UnifiedMessage(role=MessageRole.ASSISTANT, content=content)],
            stop_reason=self.stop_reason or StopReason.UNKNOWN,
            stop_reason_metadata=self.stop_reason_metadata,
            usage=self.usage or TokenUsage(),
            error=self.error,
        )

    def _assemble(self, block: _Block) -> Content | None:
        if isinstance(block.content, ToolUseContent):
            if not block.json:
                return block.content
            payload = "".join(block.json)
            try:
                arguments = json.loads(payload) if payload.strip() else {}
            except json.JSONDecodeError:
                message = f"Streamed arguments for tool {block.content.name!r} are not valid JSON"
                logger.warning(message)
                self.warnings.append(message)
                arguments = {"_raw": payload}
            return replace(block.content, input=arguments)
        if block.content is None or isinstance(block.content, TextContent):
            prefix = block.content.text if block.content is not None else ""
            text = prefix + "".join(block.text)
            return TextContent(text) if text or block.content is not None else None
        return block.content


def _merge_usage(current: TokenUsage | None, new: TokenUsage) -> TokenUsage:
    # Providers report input and output counts in separate events, so keep
    # the largest value seen for each counter.
    if current is None:
        return new
    merged = TokenUsage(
        input_tokens=max(current.input_tokens, new.input_tokens),
        output_tokens=max(current.output_tokens, new.output_tokens),
    )
    merged.total_tokens = max(current.total_tokens, new.total_tokens, merged.input_tokens + merged.output_tokens)
    for name in ("cache_creation_input_tokens", "cache_read_input_tokens", "reasoning_tokens"):
        values = [v for v in (getattr(current, name), getattr(new, name)) if v is not None]
        setattr(merged, name, max(values) if values else None)
    return merged
