"""Known models across providers.

Adapters consult the registry to fill in context windows and versions the
payload does not carry, and provider detection falls back to it when a
model name is the only signal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from llm_forge.responses.models import Provider


@dataclass
class ModelPricing:
    """USD per million tokens."""

    input_per_1m: float | None = None
    output_per_1m: float | None = None
    cached_input_per_1m: float | None = None
    currency: str = "USD"


@dataclass
class ModelDetails:
    id: str
    provider: Provider
    display_name: str
    description: str | None = None
    version: str | None = None
    context_window: int | None = None
    max_output_tokens: int | None = None
    capabilities: tuple[str, ...] = ("text",)
    family: str | None = None
    variant: str | None = None
    release_date: str | None = None
    deprecated: bool = False
    replacement_model: str | None = None
    pricing: ModelPricing | None = None
    aliases: tuple[str, ...] = ()


class ModelRegistry:
    """Lookup table of ``ModelDetails`` keyed by provider and model id."""

    def __init__(self, models: list[ModelDetails] | None = None):
        self._models: dict[tuple[Provider, str], ModelDetails] = {}
        self._aliases: dict[str, tuple[Provider, str]] = {}
        for model in models or ():
            self.register(model)

    def register(self, model: ModelDetails) -> None:
        self._models[(model.provider, model.id)] = model
        for alias in model.aliases:
            self.register_alias(alias, model.id, model.provider)

    def register_alias(self, alias: str, model_id: str, provider: Provider) -> None:
        self._aliases[alias.lower()] = (provider, model_id)

    def get(self, model_id: str, provider: Provider | None = None) -> ModelDetails | None:
        """Find a model by id or alias.

        With ``provider`` only that provider's entry matches. Without it the
        alias table is tried first, then a case-insensitive scan, so a bare
        model name resolves to whichever provider registered it first.
        """
        if provider is not None:
            found = self._models.get((provider, model_id))
            if found is None:
                key = self._aliases.get(model_id.lower())
                if key is not None and key[0] == provider:
                    found = self._models.get(key)
            return found
        key = self._aliases.get(model_id.lower())
        if key is not None:
            return self._models[key]
        wanted = model_id.lower()
        return next((m for m in self._models.values() if m.id.lower() == wanted), None)

    def __contains__(self, model_id: str) -> bool:
        return self.get(model_id) is not None

    def __len__(self) -> int:
        return len(self._models)

    def models(self) -> list[ModelDetails]:
        return list(self._models.values())

    def provider_models(self, provider: Provider) -> list[ModelDetails]:
        return [m for m in self._models.values() if m.provider == provider]

    def detect_provider(self, model_id: str) -> Provider | None:
        model = self.get(model_id)
        return model.provider if model else None

    def capabilities(self, model_id: str, provider: Provider | None = None) -> tuple[str, ...]:
        model = self.get(model_id, provider)
        return model.capabilities if model else ()

    def search(
        self,
        provider: Provider | None = None,
        family: str | None = None,
        variant: str | None = None,
        capability: str | None = None,
        min_context_window: int | None = None,
        max_output_cost: float | None = None,
        deprecated: bool | None = None,
    ) -> list[ModelDetails]:
        """Return the models matching every given criterion.

        ``max_output_cost`` excludes models with no known output price.
        """
        results = []
        for m in self._models.values():
            if provider is not None and m.provider != provider:
                continue
            if family is not None and m.family != family:
                continue
            if variant is not None and m.variant != variant:
                continue
            if capability is not None and capability not in m.capabilities:
                continue
            if min_context_window and (m.context_window or 0) < min_context_window:
                continue
            if max_output_cost is not None:
                cost = m.pricing.output_per_1m if m.pricing else None
                if cost is None or cost > max_output_cost:
                    continue
            if deprecated is not None and m.deprecated != deprecated:
                continue
            results.append(m)
        return results


# --- Built-in models ---


def _m(provider, model_id, display_name, context, output, capabilities, family, variant=None, price=None, **extra):
    return ModelDetails(
        id=model_id,
        provider=provider,
        display_name=display_name,
        context_window=context,
        max_output_tokens=output,
        capabilities=tuple(capabilities.split()),
        family=family,
        variant=variant,
        pricing=ModelPricing(*price) if price else None,
        **extra,
    )


_OPENAI, _ANTHROPIC, _GOOGLE = Provider.OPENAI, Provider.ANTHROPIC, Provider.GOOGLE
_HF = Provider.HUGGINGFACE

BUILTIN_MODELS: list[ModelDetails] = [
    _m(_OPENAI, "gpt-4o", "GPT-4o", 128000, 16384, "text vision function_calling json_mode", "gpt-4o", price=(2.5, 10.0, 1.25)),
    _m(_OPENAI, "gpt-4o-mini", "GPT-4o mini", 128000, 16384, "text vision function_calling json_mode", "gpt-4o", "mini", (0.15, 0.6, 0.075)),
    _m(
        _OPENAI,
        "gpt-4-turbo-2024-04-09",
        "GPT-4 Turbo",
        128000,
        4096,
        "text vision function_calling json_mode",
        "gpt-4",
        "turbo",
        (10.0, 30.0),
        version="2024-04-09",
        release_date="2024-04-09",
        aliases=("gpt-4-turbo",),
    ),
    _m(_OPENAI, "gpt-4", "GPT-4", 8192, 4096, "text function_calling", "gpt-4", "standard", (30.0, 60.0)),
    _m(_OPENAI, "gpt-3.5-turbo", "GPT-3.5 Turbo", 16385, 4096, "text function_calling", "gpt-3.5", "turbo", (0.5, 1.5)),
    _m(_OPENAI, "o1-preview", "o1 preview", 128000, 32768, "text reasoning", "o1", "preview", (15.0, 60.0)),
    _m(_OPENAI, "o1-mini", "o1 mini", 128000, 65536, "text reasoning", "o1", "mini", (3.0, 12.0)),
    _m(
        _ANTHROPIC,
        "claude-3-opus-20240229",
        "Claude 3 Opus",
        200000,
        4096,
        "text vision tool_use",
        "claude-3",
        "opus",
        (15.0, 75.0, 1.5),
        aliases=("claude-3-opus",),
    ),
    _m(
        _ANTHROPIC,
        "claude-3-sonnet-20240229",
        "Claude 3 Sonnet",
        200000,
        4096,
        "text vision tool_use",
        "claude-3",
        "sonnet",
        (3.0, 15.0),
        deprecated=True,
        replacement_model="claude-3-5-sonnet-20241022",
    ),
    _m(
        _ANTHROPIC,
        "claude-3-5-sonnet-20241022",
        "Claude 3.5 Sonnet",
        200000,
        8192,
        "text vision tool_use",
        "claude-3.5",
        "sonnet",
        (3.0, 15.0, 0.3),
        aliases=("claude-3-5-sonnet-latest",),
    ),
    _m(
        _ANTHROPIC,
        "claude-3-haiku-20240307",
        "Claude 3 Haiku",
        200000,
        4096,
        "text vision tool_use",
        "claude-3",
        "haiku",
        (0.25, 1.25, 0.03),
        aliases=("claude-3-haiku",),
    ),
    _m(_GOOGLE, "gemini-1.5-pro", "Gemini 1.5 Pro", 2097152, 8192, "text vision audio video function_calling", "gemini-1.5", "pro", (1.25, 5.0)),
    _m(_GOOGLE, "gemini-1.5-flash", "Gemini 1.5 Flash", 1048576, 8192, "text vision audio video function_calling", "gemini-1.5", "flash", (0.075, 0.3)),
    _m(_GOOGLE, "gemini-1.0-pro", "Gemini 1.0 Pro", 32760, 8192, "text function_calling", "gemini-1.0", "pro", deprecated=True, replacement_model="gemini-1.5-pro"),
    _m(Provider.MISTRAL, "mistral-large-latest", "Mistral Large", 128000, 4096, "text function_calling json_mode", "mistral-large", price=(2.0, 6.0)),
    _m(Provider.MISTRAL, "mistral-small-latest", "Mistral Small", 32000, 4096, "text function_calling json_mode", "mistral-small", price=(0.2, 0.6)),
    _m(Provider.MISTRAL, "open-mixtral-8x22b", "Mixtral 8x22B", 65536, 4096, "text function_calling", "mixtral", "8x22b", (2.0, 6.0)),
    _m(Provider.COHERE, "command-r-plus", "Command R+", 128000, 4096, "text tool_use", "command-r", "plus", (2.5, 10.0)),
    _m(Provider.COHERE, "command-r", "Command R", 128000, 4096, "text tool_use", "command-r", "standard", (0.15, 0.6)),
    _m(Provider.XAI, "grok-beta", "Grok Beta", 131072, 4096, "text function_calling", "grok", "beta", (5.0, 15.0)),
    _m(Provider.PERPLEXITY, "sonar-pro", "Sonar Pro", 200000, 8000, "text search", "sonar", "pro", (3.0, 15.0)),
    _m(Provider.TOGETHER, "meta-llama/Llama-3-70b-chat-hf", "Llama 3 70B Chat (Together)", 8192, 4096, "text", "llama-3", "chat", (0.9, 0.9)),
    _m(Provider.FIREWORKS, "accounts/fireworks/models/llama-v3p1-70b-instruct", "Llama 3.1 70B (Fireworks)", 131072, 4096, "text function_calling", "llama-3.1", "instruct", (0.9, 0.9)),
    _m(Provider.BEDROCK, "anthropic.claude-3-5-sonnet-20240620-v1:0", "Claude 3.5 Sonnet (Bedrock)", 200000, 8192, "text vision tool_use", "claude-3.5", "sonnet", (3.0, 15.0)),
    _m(Provider.BEDROCK, "anthropic.claude-3-opus-20240229-v1:0", "Claude 3 Opus (Bedrock)", 200000, 4096, "text vision tool_use", "claude-3", "opus", (15.0, 75.0)),
    _m(_HF, "mistralai/Mistral-7B-Instruct-v0.2", "Mistral 7B Instruct v0.2", 32768, 8192, "text", "mistral", "instruct"),
    _m(_HF, "HuggingFaceH4/zephyr-7b-beta", "Zephyr 7B Beta", 32768, 8192, "text", "zephyr", "beta"),
    _m(_HF, "google/gemma-2-9b-it", "Gemma 2 9B Instruct", 8192, 8192, "text", "gemma", "instruct"),
    _m(_HF, "meta-llama/Meta-Llama-3-70B-Instruct", "Llama 3 70B Instruct", 8192, 8192, "text", "llama-3", "instruct"),
    _m(_HF, "bigcode/starcoder2-15b", "StarCoder2 15B", 16384, 8192, "text code", "starcoder", "base"),
    _m(Provider.REPLICATE, "meta/meta-llama-3.1-405b-instruct", "Llama 3.1 405B Instruct", 128000, 4096, "text", "llama-3.1", "instruct", (9.5, 9.5)),
    _m(Provider.REPLICATE, "black-forest-labs/flux-pro", "FLUX Pro", None, None, "image", "flux", "pro"),
    _m(Provider.REPLICATE, "black-forest-labs/flux-schnell", "FLUX Schnell", None, None, "image", "flux", "schnell"),
    _m(Provider.OLLAMA, "llama3", "Llama 3 (Ollama)", 8192, 4096, "text", "llama-3", "base"),
    _m(Provider.OLLAMA, "gemma2", "Gemma 2 (Ollama)", 8192, 4096, "text", "gemma", "2"),
]


@lru_cache(maxsize=None)
def default_model_registry() -> ModelRegistry:
    """Process-wide registry seeded with ``BUILTIN_MODELS``."""
    return ModelRegistry(BUILTIN_MODELS)


def detect_provider_from_model(model_id: str) -> Provider | None:
    return default_model_registry().detect_provider(model_id)


def search_models(**criteria) -> list[ModelDetails]:
    return default_model_registry().search(**criteria)
