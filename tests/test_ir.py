"""Tests for the canonical IR (Intermediate Representation) and its wire codec."""

import pytest

from llm_forge.errors import SchemaValidationError
from llm_forge.ir import IR_SCHEMA_VERSION
from llm_forge.ir.codec import dump_schema, dumps_schema, load_schema, loads_schema
from llm_forge.ir.models import (
    ApiKeyAuth,
    ArrayType,
    CanonicalSchema,
    ConstraintKind,
    Constraints,
    EndpointDefinition,
    EnumType,
    EnumValue,
    HttpMethod,
    ObjectType,
    ParameterDefinition,
    ParameterLocation,
    PrimitiveKind,
    PropertyDefinition,
    RequestBody,
    ResponseDefinition,
    SchemaMetadata,
    TypeKind,
    TypeReference,
    UnionType,
)


def _make_schema() -> CanonicalSchema:
    return CanonicalSchema(
        metadata=SchemaMetadata(provider_id="acme", provider_name="Acme", base_url="https://api.acme.test"),
        types=[
            ObjectType(
                id="User",
                name="User",
                properties=[
                    PropertyDefinition(name="id", type_ref=TypeReference.of(PrimitiveKind.STRING), required=True),
                    PropertyDefinition(name="bio", type_ref=TypeReference.of(PrimitiveKind.STRING, nullable=True)),
                ],
                required=["id"],
            ),
            ArrayType(id="UserList", name="UserList", items=TypeReference.to("User")),
            EnumType(id="Role", name="Role", values=[EnumValue("admin"), EnumValue("member")]),
        ],
        endpoints=[
            EndpointDefinition(
                id="get_v1_users_userId",
                operation_id="getUser",
                method=HttpMethod.GET,
                path="/v1/users/{userId}",
                parameters=[
                    ParameterDefinition(
                        name="userId", location=ParameterLocation.PATH, type_ref=TypeReference.of(PrimitiveKind.STRING)
                    )
                ],
                responses=[
                    ResponseDefinition(status_code="404"),
                    ResponseDefinition(status_code="200", type_ref=TypeReference.to("User")),
                ],
                authentication=["apiKey"],
            ),
            EndpointDefinition(
                id="post_v1_users",
                operation_id="createUser",
                method=HttpMethod.POST,
                path="/v1/users",
                request_body=RequestBody(type_ref=TypeReference.to("User")),
                responses=[ResponseDefinition(status_code="201", type_ref=TypeReference.to("User"))],
            ),
        ],
        authentication=[ApiKeyAuth(id="apiKey", name="x-api-key")],
    )


# --- Model Tests ---


def test_type_kinds_are_class_level():
    schema = _make_schema()
    assert [t.kind for t in schema.types] == [TypeKind.OBJECT, TypeKind.ARRAY, TypeKind.ENUM]


def test_get_type_and_auth_scheme():
    schema = _make_schema()
    assert schema.get_type("User").name == "User"
    assert schema.get_type("Missing") is None
    assert schema.get_auth_scheme("apiKey").name == "x-api-key"
    assert schema.get_auth_scheme("oauth") is None


def test_success_response_skips_error_statuses():
    endpoint = _make_schema().endpoints[0]
    assert endpoint.success_response.status_code == "200"


def test_success_response_falls_back_to_default():
    endpoint = EndpointDefinition(
        id="x",
        operation_id="x",
        method=HttpMethod.GET,
        path="/x",
        responses=[ResponseDefinition(status_code="400"), ResponseDefinition(status_code="default")],
    )
    assert endpoint.success_response.status_code == "default"


def test_parameters_in_location():
    endpoint = _make_schema().endpoints[0]
    assert [p.name for p in endpoint.parameters_in(ParameterLocation.PATH)] == ["userId"]
    assert endpoint.parameters_in(ParameterLocation.QUERY) == []


def test_object_required_and_map():
    user = _make_schema().get_type("User")
    assert user.is_required("id")
    assert not user.is_required("bio")
    assert not user.is_map

    bag = ObjectType(id="Bag", name="Bag", additional_properties=TypeReference.of(PrimitiveKind.INTEGER))
    assert bag.is_map


def test_union_literal_for():
    union = UnionType(
        id="Block",
        name="Block",
        variants=[TypeReference.to("Text"), TypeReference.to("Image")],
        discriminator="type",
        discriminator_mapping={"text": "Text", "image": "Image"},
    )
    assert union.literal_for("Image") == "image"
    assert union.literal_for("Audio") is None


def test_schema_feature_properties():
    schema = _make_schema()
    assert not schema.has_streaming
    assert not schema.has_rate_limits
    schema.endpoints[1].streaming = True
    assert schema.has_streaming


# --- Constraint Tests ---


def test_constraints_flatten_folds_exclusive_bounds():
    c = Constraints(minimum=0, exclusive_minimum=True, maximum=10, max_length=5, pattern="^a")
    kinds = [item.kind for item in c.flatten()]
    assert kinds == [
        ConstraintKind.EXCLUSIVE_MINIMUM,
        ConstraintKind.MAXIMUM,
        ConstraintKind.MAX_LENGTH,
        ConstraintKind.PATTERN,
    ]
    assert c.flatten()[0].value == 0


def test_empty_constraints():
    assert Constraints().is_empty
    assert not Constraints(enum=["a"]).is_empty


def test_array_size_constraints():
    arr = ArrayType(id="Tags", name="Tags", min_items=1, unique_items=True)
    assert [c.kind for c in arr.size_constraints()] == [ConstraintKind.MIN_ITEMS, ConstraintKind.UNIQUE_ITEMS]


# --- Codec Tests ---


def test_dump_uses_wire_names():
    doc = dump_schema(_make_schema())
    assert doc["metadata"]["providerId"] == "acme"
    assert doc["metadata"]["schemaVersion"] == IR_SCHEMA_VERSION
    user = doc["types"][0]
    assert user["kind"] == "object"
    assert user["properties"][0]["type"] == {"primitive": "string", "nullable": False}
    param = doc["endpoints"][0]["parameters"][0]
    assert param["in"] == "path"
    assert doc["authentication"][0]["type"] == "apiKey"
    assert doc["authentication"][0]["in"] == "header"


def test_dump_omits_none_fields():
    doc = dump_schema(_make_schema())
    assert "description" not in doc["types"][0]
    assert "requestBody" not in doc["endpoints"][0]


def test_codec_round_trip():
    schema = _make_schema()
    loaded = loads_schema(dumps_schema(schema))
    assert dump_schema(loaded) == dump_schema(schema)
    assert isinstance(loaded.types[0], ObjectType)
    assert loaded.endpoints[1].request_body.type_ref.type_id == "User"


def test_load_schema_rejects_bad_shape():
    doc = dump_schema(_make_schema())
    del doc["metadata"]["providerId"]
    with pytest.raises(SchemaValidationError) as exc_info:
        load_schema(doc)
    assert any(issue.code == "missing_field" for issue in exc_info.value.errors)
