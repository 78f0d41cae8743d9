"""Tests for the OpenAPI and native provider schema normalizers."""

import json

import pytest
import yaml

from llm_forge.ir.models import (
    ApiKeyAuth,
    ArrayType,
    BearerAuth,
    EnumType,
    HttpMethod,
    ObjectType,
    ParameterLocation,
    PrimitiveKind,
    UnionType,
)
from llm_forge.normalizers import (
    OpenAPINormalizer,
    ProviderSpecNormalizer,
    SchemaFormat,
    detect_schema_format,
    load_document,
    normalize_many,
    normalize_schema,
)
from llm_forge.validator import validate_schema


def _make_openapi() -> dict:
    return {
        "openapi": "3.1.0",
        "info": {"title": "Acme LLM API", "version": "2024-01-01"},
        "servers": [{"url": "https://api.acme.test/v1"}],
        "security": [{"bearerAuth": []}],
        "x-rate-limit": {"requests": 60, "windowSeconds": 60},
        "components": {
            "securitySchemes": {"bearerAuth": {"type": "http", "scheme": "bearer"}},
            "schemas": {
                "Role": {"type": "string", "enum": ["user", "assistant"]},
                "Message": {
                    "type": "object",
                    "required": ["role", "content"],
                    "properties": {
                        "role": {"$ref": "#/components/schemas/Role"},
                        "content": {"type": "string", "maxLength": 10000},
                        "name": {"type": ["string", "null"]},
                    },
                },
                "TextBlock": {
                    "type": "object",
                    "properties": {"type": {"const": "text"}, "text": {"type": "string"}},
                },
                "ImageBlock": {
                    "type": "object",
                    "properties": {"type": {"const": "image"}, "url": {"type": "string"}},
                },
                "Block": {
                    "oneOf": [
                        {"$ref": "#/components/schemas/TextBlock"},
                        {"$ref": "#/components/schemas/ImageBlock"},
                    ],
                    "discriminator": {"propertyName": "type"},
                },
            },
        },
        "paths": {
            "/chat/completions": {
                "post": {
                    "operationId": "createChatCompletion",
                    "summary": "Create a chat completion",
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "properties": {
                                        "messages": {
                                            "type": "array",
                                            "items": {"$ref": "#/components/schemas/Message"},
                                        },
                                        "stream": {"type": "boolean"},
                                    },
                                }
                            }
                        },
                    },
                    "responses": {
                        "200": {
                            "description": "OK",
                            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Message"}}},
                        },
                        "429": {"description": "Too many requests"},
                        "500": {"description": "Server error"},
                    },
                }
            },
            "/models/{model}": {
                "get": {
                    "parameters": [{"name": "model", "in": "path", "schema": {"type": "string"}}],
                    "responses": {"404": {"description": "No such model"}},
                },
                "delete": {
                    "operationId": "deleteModel",
                    "deprecated": True,
                    "responses": {"204": {"description": "Deleted"}},
                },
            },
        },
    }


def _make_provider_doc() -> dict:
    return {
        "version": "2023-06-01",
        "baseUrl": "https://api.anthropic.com/v1",
        "models": [{"id": "claude-3-5-sonnet"}],
        "types": [
            {
                "name": "Message",
                "kind": "object",
                "properties": [
                    {"name": "id", "type": "string", "required": True},
                    {"name": "stop_reason", "type": "string?"},
                ],
            },
        ],
        "endpoints": [
            {
                "id": "createMessage",
                "method": "POST",
                "path": "/messages",
                "streaming": True,
                "requestBody": {"schema": "Message"},
                "responses": [{"statusCode": 200, "schema": "Message"}],
                "rateLimit": {"requests": 50},
            },
            {
                "id": "listMessages",
                "method": "GET",
                "path": "/messages",
                "responses": [{"statusCode": 200, "schema": "Message[]"}],
            },
        ],
        "errors": [
            {"code": "rate_limit_error", "statusCode": 429},
            {"code": "invalid_request_error", "statusCode": 400, "description": "Bad input"},
        ],
    }


# --- Format Detection ---


def test_detect_schema_format():
    assert detect_schema_format(_make_openapi()) == SchemaFormat.OPENAPI
    assert detect_schema_format(_make_provider_doc()) == SchemaFormat.PROVIDER
    assert detect_schema_format({"metadata": {"schemaVersion": "1.0.0"}}) == SchemaFormat.CANONICAL
    assert detect_schema_format({"hello": "world"}) == SchemaFormat.UNKNOWN
    assert detect_schema_format("openapi") == SchemaFormat.UNKNOWN


def test_load_document_json_and_yaml(tmp_path):
    json_path = tmp_path / "api.json"
    json_path.write_text(json.dumps(_make_openapi()))
    yaml_path = tmp_path / "api.yaml"
    yaml_path.write_text(yaml.dump(_make_provider_doc()))
    assert load_document(json_path)["openapi"] == "3.1.0"
    assert load_document(yaml_path)["baseUrl"] == "https://api.anthropic.com/v1"


def test_load_document_rejects_non_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_document(path)


def test_unrecognized_document():
    result = normalize_schema({"hello": "world"})
    assert not result.success
    assert result.schema is None
    assert result.errors == ["Unrecognized schema format"]


# --- OpenAPI ---


def test_openapi_metadata():
    schema = normalize_schema(_make_openapi()).schema
    assert schema.metadata.provider_id == "acme-llm-api"
    assert schema.metadata.provider_name == "Acme LLM API"
    assert schema.metadata.api_version == "2024-01-01"
    assert schema.metadata.base_url == "https://api.acme.test/v1"


def test_openapi_provider_override():
    schema = OpenAPINormalizer(provider_id="acme").normalize(_make_openapi()).schema
    assert schema.metadata.provider_id == "acme"
    assert schema.metadata.provider_name == "Acme"


def test_openapi_component_types():
    schema = normalize_schema(_make_openapi()).schema
    role = schema.get_type("Role")
    assert isinstance(role, EnumType)
    assert [v.value for v in role.values] == ["user", "assistant"]

    message = schema.get_type("Message")
    assert isinstance(message, ObjectType)
    assert message.required == ["role", "content"]
    props = {p.name: p for p in message.properties}
    assert props["role"].type_ref.type_id == "Role"
    assert props["content"].constraints.max_length == 10000
    assert props["name"].type_ref.nullable


def test_openapi_discriminated_union():
    schema = normalize_schema(_make_openapi()).schema
    block = schema.get_type("Block")
    assert isinstance(block, UnionType)
    assert block.discriminator == "type"
    assert block.discriminator_mapping == {"text": "TextBlock", "image": "ImageBlock"}


def test_openapi_partial_mapping_keeps_implicit_literals():
    doc = _make_openapi()
    schemas = doc["components"]["schemas"]
    schemas["Cat"] = {"type": "object", "properties": {"kind": {"type": "string"}}}
    schemas["Dog"] = {"type": "object", "properties": {"kind": {"type": "string"}}}
    schemas["Pet"] = {
        "oneOf": [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Dog"}],
        "discriminator": {"propertyName": "kind", "mapping": {"cat": "#/components/schemas/Cat"}},
    }
    pet = normalize_schema(doc).schema.get_type("Pet")
    assert pet.discriminator_mapping == {"cat": "Cat", "Dog": "Dog"}
    assert pet.literal_for("Cat") == "cat"


def test_openapi_endpoints():
    schema = normalize_schema(_make_openapi()).schema
    by_op = {e.operation_id: e for e in schema.endpoints}
    assert set(by_op) == {"createChatCompletion", "get_models_model", "deleteModel"}

    chat = by_op["createChatCompletion"]
    assert chat.method == HttpMethod.POST
    assert chat.id == "post_chat_completions"
    assert chat.streaming  # request body has a "stream" property
    assert chat.authentication == ["bearerAuth"]
    assert chat.rate_limit.requests == 60
    assert chat.request_body.required
    inline = schema.get_type(chat.request_body.type_ref.type_id)
    assert isinstance(inline, ObjectType)
    messages = schema.get_type(next(p for p in inline.properties if p.name == "messages").type_ref.type_id)
    assert isinstance(messages, ArrayType)
    assert messages.items.type_id == "Message"

    get_model = by_op["get_models_model"]
    param = get_model.parameters[0]
    assert param.location == ParameterLocation.PATH
    assert param.required
    assert param.type_ref.primitive == PrimitiveKind.STRING


def test_openapi_skips_deprecated_when_asked():
    schema = normalize_schema(_make_openapi(), include_deprecated=False).schema
    assert "deleteModel" not in {e.operation_id for e in schema.endpoints}


def test_openapi_auth_and_errors():
    schema = normalize_schema(_make_openapi()).schema
    assert len(schema.authentication) == 1
    assert isinstance(schema.authentication[0], BearerAuth)

    errors = {e.status: e for e in schema.errors}
    assert [e.status for e in schema.errors] == [404, 429, 500]
    assert errors[404].code == "not_found"
    assert not errors[404].retryable
    assert errors[429].name == "RateLimitError"
    assert errors[429].retryable
    assert errors[500].retryable


def test_openapi_output_is_valid_ir():
    result = normalize_schema(_make_openapi())
    assert result.success
    assert validate_schema(result.schema).valid


def test_openapi_rejects_swagger_2():
    result = normalize_schema({"swagger": "2.0", "info": {}, "paths": {}})
    assert not result.success
    assert any("openapi" in e for e in result.errors)


def test_openapi_unsupported_security_scheme_warns():
    doc = _make_openapi()
    doc["components"]["securitySchemes"]["cookie"] = {"type": "openIdConnect"}
    result = normalize_schema(doc)
    assert result.success
    assert any("openIdConnect" in w for w in result.warnings)


# --- Native Provider Format ---


def test_provider_spec_defaults():
    result = normalize_schema(_make_provider_doc())
    assert result.success
    schema = result.schema
    assert schema.metadata.provider_id == "anthropic"
    assert schema.metadata.api_version == "2023-06-01"
    assert schema.config == {"models": ["claude-3-5-sonnet"]}

    auth = schema.authentication[0]
    assert isinstance(auth, ApiKeyAuth)
    assert auth.name == "x-api-key"
    assert all(e.authentication == [auth.id] for e in schema.endpoints)


def test_provider_spec_types_and_references():
    schema = normalize_schema(_make_provider_doc()).schema
    message = schema.get_type("Message")
    props = {p.name: p for p in message.properties}
    assert props["id"].required
    assert props["stop_reason"].type_ref.nullable

    listing = next(e for e in schema.endpoints if e.operation_id == "listMessages")
    array = schema.get_type(listing.success_response.type_ref.type_id)
    assert isinstance(array, ArrayType)
    assert array.items.type_id == "Message"


def test_provider_spec_endpoints_and_errors():
    schema = normalize_schema(_make_provider_doc()).schema
    create = schema.endpoints[0]
    assert create.streaming
    assert create.rate_limit.requests == 50
    assert create.rate_limit.window_seconds == 60

    errors = {e.code: e for e in schema.errors}
    assert errors["rate_limit_error"].name == "RateLimitError"
    assert errors["rate_limit_error"].retryable
    assert not errors["invalid_request_error"].retryable
    assert validate_schema(schema).valid


def test_provider_spec_validation_errors():
    errors = []
    assert not ProviderSpecNormalizer().validate({"baseUrl": "", "endpoints": []}, errors)
    assert "Schema version is required" in errors
    assert "Base URL is required" in errors
    assert "At least one endpoint is required" in errors


def test_provider_spec_dangling_reference_is_left_for_validator():
    doc = _make_provider_doc()
    doc["endpoints"][1]["responses"][0]["schema"] = "Conversation"
    result = normalize_schema(doc)
    assert result.success
    assert any("Conversation" in w for w in result.warnings)
    assert "invalid_type_reference" in validate_schema(result.schema).codes()


# --- Batch ---


def test_normalize_many():
    results = normalize_many({"acme": _make_openapi(), "anthropic": _make_provider_doc(), "junk": {}})
    assert results["acme"].success
    assert results["acme"].schema.metadata.provider_id == "acme"
    assert results["anthropic"].success
    assert not results["junk"].success
