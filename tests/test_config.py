"""Tests for generator configuration loading and feature flag resolution."""

import pytest

from llm_forge.config import FeatureFlags, GeneratorConfig, load_config
from llm_forge.errors import ConfigError
from llm_forge.ir.models import (
    CanonicalSchema,
    EndpointDefinition,
    HttpMethod,
    RateLimit,
    SchemaMetadata,
)


def _write(tmp_path, text: str):
    path = tmp_path / "forge.yaml"
    path.write_text(text)
    return path


def _make_schema(streaming: bool, rate_limit: RateLimit | None = None) -> CanonicalSchema:
    return CanonicalSchema(
        metadata=SchemaMetadata(provider_id="acme", provider_name="Acme"),
        endpoints=[
            EndpointDefinition(
                id="post_chat",
                operation_id="chat",
                method=HttpMethod.POST,
                path="/chat",
                streaming=streaming,
                rate_limit=rate_limit,
            )
        ],
    )


# --- GeneratorConfig ---


def test_defaults(monkeypatch):
    monkeypatch.delenv("LLM_FORGE_OUTPUT_DIR", raising=False)
    monkeypatch.delenv("LLM_FORGE_PACKAGE_VERSION", raising=False)
    config = GeneratorConfig(language="python")
    assert config.output_dir == "generated"
    assert config.version == "0.1.0"
    assert config.license == "MIT"
    assert config.timeout == 30.0
    assert config.max_retries == 3


def test_environment_defaults(monkeypatch):
    monkeypatch.setenv("LLM_FORGE_OUTPUT_DIR", "/tmp/out")
    monkeypatch.setenv("LLM_FORGE_PACKAGE_VERSION", "2.0.0")
    monkeypatch.setenv("LLM_FORGE_AUTHOR", "Jane Doe")
    config = GeneratorConfig(language="go")
    assert (config.output_dir, config.version, config.author) == ("/tmp/out", "2.0.0", "Jane Doe")


def test_unsupported_language():
    with pytest.raises(ConfigError):
        GeneratorConfig(language="cobol")


def test_options():
    config = GeneratorConfig(language="java", options={"timeout": "45", "max_retries": 5})
    assert config.timeout == 45.0
    assert config.max_retries == 5


# --- FeatureFlags ---


def test_flags_resolve_from_schema():
    resolved = FeatureFlags().resolve(_make_schema(streaming=True))
    assert resolved.include_streaming is True
    assert resolved.include_rate_limiting is False

    resolved = FeatureFlags().resolve(_make_schema(streaming=False, rate_limit=RateLimit(requests=10)))
    assert resolved.include_streaming is False
    assert resolved.include_rate_limiting is True


def test_explicit_flags_win():
    flags = FeatureFlags(include_streaming=False, include_rate_limiting=True)
    resolved = flags.resolve(_make_schema(streaming=True))
    assert resolved.include_streaming is False
    assert resolved.include_rate_limiting is True
    assert flags.include_streaming is False  # original untouched


# --- load_config ---


def test_load_single_language(tmp_path):
    path = _write(tmp_path, "language: rust\npackage_name: acme-llm\nversion: 1.2\n")
    (config,) = load_config(path)
    assert config.language == "rust"
    assert config.package_name == "acme-llm"
    assert config.version == "1.2"


def test_load_many_languages(tmp_path):
    path = _write(
        tmp_path,
        "languages: [python, typescript]\n"
        "features:\n"
        "  generate_examples: false\n"
        "options:\n"
        "  timeout: 60\n",
    )
    configs = load_config(path)
    assert [c.language for c in configs] == ["python", "typescript"]
    assert all(not c.features.generate_examples for c in configs)
    assert all(c.timeout == 60.0 for c in configs)
    assert configs[0].options is not configs[1].options


@pytest.mark.parametrize(
    "text",
    [
        "- python\n",
        "package_name: acme\n",
        "language: python\nfeatures:\n  telemetry: true\n",
        "language: cobol\n",
    ],
)
def test_invalid_config_files(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, text))
