"""Generator configuration: target language, package identity and feature flags.

Defaults for the output directory, version and author can be supplied
through ``LLM_FORGE_*`` environment variables; a YAML file can describe
one or several target languages at once (see ``load_config``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from llm_forge.errors import ConfigError
from llm_forge.ir.models import CanonicalSchema
from llm_forge.mappers import LANGUAGES


@dataclass
class FeatureFlags:
    """Switches for the optional generated modules.

    ``include_streaming`` and ``include_rate_limiting`` default to None,
    meaning "decide from the schema": on when any endpoint streams or
    declares a rate limit.
    """

    generate_tests: bool = True
    generate_docs: bool = True
    generate_examples: bool = True
    include_retry: bool = True
    include_streaming: bool | None = None
    include_rate_limiting: bool | None = None

    def resolve(self, schema: CanonicalSchema) -> FeatureFlags:
        """Return a copy with every schema-derived flag filled in."""
        return replace(
            self,
            include_streaming=schema.has_streaming if self.include_streaming is None else self.include_streaming,
            include_rate_limiting=(
                schema.has_rate_limits if self.include_rate_limiting is None else self.include_rate_limiting
            ),
        )


@dataclass
class GeneratorConfig:
    """Everything the code generation engine needs besides the schema.

    Attributes:
        language: Target language, one of ``llm_forge.mappers.LANGUAGES``.
        output_dir: Directory the CLI writes generated files under.
        package_name: Package/module name; defaults to the provider id.
        version: Version written into the package manifest.
        author: Author written into the package manifest.
        license: SPDX license identifier for the manifest.
        features: Optional module switches.
        options: Language-specific tuning, e.g. ``timeout``, ``base_url``,
            ``group_id`` (Java) or ``module_path`` (Go).
    """

    language: str
    output_dir: str = field(default_factory=lambda: os.getenv("LLM_FORGE_OUTPUT_DIR", "generated"))
    package_name: str | None = None
    version: str = field(default_factory=lambda: os.getenv("LLM_FORGE_PACKAGE_VERSION", "0.1.0"))
    author: str | None = field(default_factory=lambda: os.getenv("LLM_FORGE_AUTHOR"))
    license: str = "MIT"
    features: FeatureFlags = field(default_factory=FeatureFlags)
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.language not in LANGUAGES:
            raise ConfigError(f"Unsupported language {self.language!r}; expected one of {', '.join(LANGUAGES)}")

    @property
    def timeout(self) -> float:
        return float(self.options.get("timeout", 30))

    @property
    def max_retries(self) -> int:
        return int(self.options.get("max_retries", 3))


_FEATURE_KEYS = {
    "generate_tests",
    "generate_docs",
    "generate_examples",
    "include_retry",
    "include_streaming",
    "include_rate_limiting",
}


def load_config(path: str | Path) -> list[GeneratorConfig]:
    """Load generator configurations from a YAML file.

    The file holds shared settings plus either ``language`` or
    ``languages``; one ``GeneratorConfig`` is returned per language::

        languages: [python, typescript]
        package_name: acme-llm
        version: 1.2.0
        features:
          generate_examples: false
        options:
          timeout: 60

    Raises:
        ConfigError: If the file is not a mapping, names no language, or
            uses an unknown feature flag.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    languages = data.get("languages") or ([data["language"]] if data.get("language") else [])
    if not languages:
        raise ConfigError(f"{path}: set 'language' or 'languages'")

    features = data.get("features") or {}
    unknown = set(features) - _FEATURE_KEYS
    if unknown:
        raise ConfigError(f"{path}: unknown feature flag(s): {', '.join(sorted(unknown))}")

    shared: dict[str, Any] = {
        key: data[key] for key in ("output_dir", "package_name", "version", "author", "license") if key in data
    }
    if "version" in shared:
        shared["version"] = str(shared["version"])
    return [
        GeneratorConfig(
            language=language,
            features=FeatureFlags(**features),
            options=dict(data.get("options") or {}),
            **shared,
        )
        for language in languages
    ]
