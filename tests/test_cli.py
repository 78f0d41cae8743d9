"""Tests for the llm-forge command line interface."""

import json

import pytest
from click.testing import CliRunner

from llm_forge.cli import main


def _canonical_document() -> dict:
    return {
        "metadata": {
            "providerId": "acme",
            "providerName": "Acme",
            "schemaVersion": "1.0.0",
            "baseUrl": "https://api.acme.test",
        },
        "types": [
            {
                "kind": "object",
                "id": "Model",
                "name": "Model",
                "properties": [{"name": "id", "type": {"primitive": "string"}, "required": True}],
                "required": ["id"],
            }
        ],
        "endpoints": [
            {
                "id": "get_v1_models_model",
                "operationId": "getModel",
                "method": "GET",
                "path": "/v1/models/{model}",
                "parameters": [{"name": "model", "in": "path", "type": {"primitive": "string"}, "required": True}],
                "responses": [{"statusCode": "200", "type": {"typeId": "Model"}}],
            }
        ],
    }


def _openapi_document() -> dict:
    return {
        "openapi": "3.0.3",
        "info": {"title": "Acme", "version": "1"},
        "servers": [{"url": "https://api.acme.test"}],
        "paths": {
            "/v1/models": {
                "get": {
                    "operationId": "listModels",
                    "responses": {"200": {"description": "OK"}},
                }
            }
        },
    }


def _write_json(tmp_path, name: str, data) -> str:
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return str(path)


@pytest.fixture
def runner():
    return CliRunner()


# --- providers / version ---


def test_providers(runner):
    result = runner.invoke(main, ["providers"])
    assert result.exit_code == 0
    assert "anthropic" in result.output
    assert "openai" in result.output


def test_providers_lists_huggingface_and_replicate(runner):
    result = runner.invoke(main, ["providers"])
    assert "Providers (13)" in result.output
    assert "huggingface" in result.output
    assert "replicate" in result.output


def test_models_filtered_by_provider(runner):
    result = runner.invoke(main, ["models", "--provider", "ollama"])
    assert result.exit_code == 0
    assert "Models (2)" in result.output


def test_models_hides_deprecated_by_default(runner):
    shown = runner.invoke(main, ["models", "--provider", "google"])
    everything = runner.invoke(main, ["models", "--provider", "google", "--include-deprecated"])
    assert "Models (2)" in shown.output
    assert "Models (3)" in everything.output


def test_models_unknown_provider(runner):
    result = runner.invoke(main, ["models", "--provider", "acme"])
    assert result.exit_code == 1
    assert "Unknown provider" in result.output


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.3.0" in result.output


# --- validate ---


def test_validate_valid_schema(runner, tmp_path):
    path = _write_json(tmp_path, "schema.json", _canonical_document())
    result = runner.invoke(main, ["validate", path, "--json"])
    assert result.exit_code == 0
    assert json.loads(result.output)["valid"] is True


def test_validate_invalid_schema(runner, tmp_path):
    doc = _canonical_document()
    doc["endpoints"][0]["responses"][0]["type"] = {"typeId": "Missing"}
    path = _write_json(tmp_path, "schema.json", doc)
    result = runner.invoke(main, ["validate", path])
    assert result.exit_code == 1
    assert "invalid_type_reference" in result.output


def test_validate_missing_file(runner, tmp_path):
    result = runner.invoke(main, ["validate", str(tmp_path / "nope.json")])
    assert result.exit_code == 1


# --- normalize ---


def test_normalize_to_file(runner, tmp_path):
    source = _write_json(tmp_path, "openapi.json", _openapi_document())
    out = tmp_path / "canonical.json"
    result = runner.invoke(main, ["normalize", source, "-o", str(out), "--provider-id", "acme"])
    assert result.exit_code == 0
    data = json.loads(out.read_text())
    assert data["metadata"]["providerId"] == "acme"
    assert data["endpoints"][0]["operationId"] == "listModels"


def test_normalize_unrecognized_document(runner, tmp_path):
    source = _write_json(tmp_path, "junk.json", {"hello": "world"})
    result = runner.invoke(main, ["normalize", source])
    assert result.exit_code == 1


# --- generate ---


def test_generate_writes_packages(runner, tmp_path):
    schema = _write_json(tmp_path, "schema.json", _canonical_document())
    out = tmp_path / "out"
    result = runner.invoke(main, ["generate", schema, "-l", "python", "-l", "go", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert (out / "python" / "acme" / "client.py").is_file()
    assert (out / "go" / "client.go").is_file()


def test_generate_dry_run_writes_nothing(runner, tmp_path):
    schema = _write_json(tmp_path, "schema.json", _canonical_document())
    out = tmp_path / "out"
    result = runner.invoke(main, ["generate", schema, "-l", "rust", "-o", str(out), "--dry-run"])
    assert result.exit_code == 0, result.output
    assert not out.exists()


def test_generate_from_openapi_with_config(runner, tmp_path):
    source = _write_json(tmp_path, "openapi.json", _openapi_document())
    config = tmp_path / "forge.yaml"
    config.write_text(f"languages: [typescript]\noutput_dir: {tmp_path / 'gen'}\npackage_name: acme-sdk\n")
    result = runner.invoke(main, ["generate", source, "-c", str(config)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "gen" / "typescript" / "package.json").is_file()


def test_generate_rejects_bad_config(runner, tmp_path):
    schema = _write_json(tmp_path, "schema.json", _canonical_document())
    config = tmp_path / "forge.yaml"
    config.write_text("language: cobol\n")
    result = runner.invoke(main, ["generate", schema, "-c", str(config), "--dry-run"])
    assert result.exit_code == 1


def test_generate_rejects_invalid_schema(runner, tmp_path):
    doc = _canonical_document()
    del doc["metadata"]["providerName"]
    schema = _write_json(tmp_path, "schema.json", doc)
    result = runner.invoke(main, ["generate", schema, "-l", "python", "--dry-run"])
    assert result.exit_code == 1


# --- parse-response ---


def test_parse_response_json(runner, tmp_path):
    raw = {
        "id": "msg_1",
        "type": "message",
        "role": "assistant",
        "model": "claude-3-5-haiku",
        "content": [{"type": "text", "text": "Hi"}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 3, "output_tokens": 1},
    }
    path = _write_json(tmp_path, "response.json", raw)
    result = runner.invoke(main, ["parse-response", path, "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["provider"] == "anthropic"
    assert data["stop_reason"] == "end_turn"
    assert "raw" not in data


def test_parse_response_stream(runner, tmp_path):
    chunks = [
        {"id": "c1", "object": "chat.completion.chunk", "model": "gpt-4o", "choices": [{"index": 0, "delta": {"content": "Yo"}}]},
        {
            "id": "c1",
            "object": "chat.completion.chunk",
            "model": "gpt-4o",
            "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
        },
    ]
    path = _write_json(tmp_path, "chunks.json", chunks)
    result = runner.invoke(main, ["parse-response", path])
    assert result.exit_code == 0, result.output
    assert "Yo" in result.output


def test_parse_response_unknown_provider(runner, tmp_path):
    path = _write_json(tmp_path, "response.json", {"id": "x"})
    result = runner.invoke(main, ["parse-response", path, "-p", "acme"])
    assert result.exit_code == 1
