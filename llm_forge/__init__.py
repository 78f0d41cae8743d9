"""llm-forge: normalize LLM provider APIs and generate multi-language SDKs."""

__version__ = "0.3.0"
