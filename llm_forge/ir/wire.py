"""Pydantic models for the IR wire format (camelCase JSON).

These models mirror the IR dataclasses in ``llm_forge.ir.models``. They are
what structural validation runs against, and ``to_ir()`` turns a validated
document back into the dataclass tree.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from llm_forge.ir import models as ir


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# --- Shared pieces ---


class TypeReferenceModel(WireModel):
    type_id: str | None = None
    primitive: ir.PrimitiveKind | None = None
    nullable: bool = False

    @model_validator(mode="after")
    def _exactly_one_target(self) -> TypeReferenceModel:
        if (self.type_id is None) == (self.primitive is None):
            raise ValueError("type reference needs exactly one of 'typeId' or 'primitive'")
        return self

    def to_ir(self) -> ir.TypeReference:
        return ir.TypeReference(type_id=self.type_id, primitive=self.primitive, nullable=self.nullable)


class ConstraintsModel(WireModel):
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    multiple_of: float | None = None
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    pattern: str | None = None
    format: str | None = None
    enum: list[Any] | None = None

    def to_ir(self) -> ir.Constraints:
        return ir.Constraints(**self.model_dump())


def _constraints(model: ConstraintsModel | None) -> ir.Constraints | None:
    return model.to_ir() if model is not None else None


class PropertyModel(WireModel):
    name: str = Field(min_length=1)
    type_ref: TypeReferenceModel = Field(alias="type")
    required: bool = False
    description: str | None = None
    default: Any = None
    constraints: ConstraintsModel | None = None
    deprecated: bool = False

    def to_ir(self) -> ir.PropertyDefinition:
        return ir.PropertyDefinition(
            name=self.name,
            type_ref=self.type_ref.to_ir(),
            required=self.required,
            description=self.description,
            default=self.default,
            constraints=_constraints(self.constraints),
            deprecated=self.deprecated,
        )


class EnumValueModel(WireModel):
    value: str | int | float
    name: str | None = None
    description: str | None = None
    deprecated: bool = False

    def to_ir(self) -> ir.EnumValue:
        return ir.EnumValue(**self.model_dump())


# --- Type definitions (tagged on "kind") ---


class _TypeBase(WireModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    deprecated: bool = False
    deprecation_message: str | None = None

    def _common(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "deprecated": self.deprecated,
            "deprecation_message": self.deprecation_message,
        }


class PrimitiveTypeModel(_TypeBase):
    kind: Literal["primitive"]
    primitive_kind: ir.PrimitiveKind
    constraints: ConstraintsModel | None = None

    def to_ir(self) -> ir.PrimitiveType:
        return ir.PrimitiveType(
            **self._common(),
            primitive_kind=self.primitive_kind,
            constraints=_constraints(self.constraints),
        )


class ObjectTypeModel(_TypeBase):
    kind: Literal["object"]
    properties: list[PropertyModel] = Field(default_factory=list)
    required: list[str] = Field(default_factory=list)
    additional_properties: bool | TypeReferenceModel | None = None
    discriminator: str | None = None

    def to_ir(self) -> ir.ObjectType:
        extra = self.additional_properties
        if isinstance(extra, TypeReferenceModel):
            extra = extra.to_ir()
        return ir.ObjectType(
            **self._common(),
            properties=[p.to_ir() for p in self.properties],
            required=list(self.required),
            additional_properties=extra,
            discriminator=self.discriminator,
        )


class ArrayTypeModel(_TypeBase):
    kind: Literal["array"]
    items: TypeReferenceModel
    min_items: int | None = Field(default=None, ge=0)
    max_items: int | None = Field(default=None, ge=0)
    unique_items: bool = False

    def to_ir(self) -> ir.ArrayType:
        return ir.ArrayType(
            **self._common(),
            items=self.items.to_ir(),
            min_items=self.min_items,
            max_items=self.max_items,
            unique_items=self.unique_items,
        )


class UnionTypeModel(_TypeBase):
    kind: Literal["union"]
    variants: list[TypeReferenceModel] = Field(min_length=1)
    discriminator: str | None = None
    discriminator_mapping: dict[str, str] = Field(default_factory=dict)

    def to_ir(self) -> ir.UnionType:
        return ir.UnionType(
            **self._common(),
            variants=[v.to_ir() for v in self.variants],
            discriminator=self.discriminator,
            discriminator_mapping=dict(self.discriminator_mapping),
        )


class EnumTypeModel(_TypeBase):
    kind: Literal["enum"]
    values: list[EnumValueModel] = Field(min_length=1)
    value_type: ir.EnumValueType = ir.EnumValueType.STRING

    def to_ir(self) -> ir.EnumType:
        return ir.EnumType(
            **self._common(),
            values=[v.to_ir() for v in self.values],
            value_type=self.value_type,
        )


TypeDefinitionModel = Annotated[
    Union[PrimitiveTypeModel, ObjectTypeModel, ArrayTypeModel, UnionTypeModel, EnumTypeModel],
    Field(discriminator="kind"),
]


# --- Endpoints ---


class ParameterModel(WireModel):
    name: str = Field(min_length=1)
    location: ir.ParameterLocation = Field(alias="in")
    type_ref: TypeReferenceModel = Field(alias="type")
    required: bool = False
    description: str | None = None
    default: Any = None
    constraints: ConstraintsModel | None = None
    deprecated: bool = False

    def to_ir(self) -> ir.ParameterDefinition:
        return ir.ParameterDefinition(
            name=self.name,
            location=self.location,
            type_ref=self.type_ref.to_ir(),
            required=self.required,
            description=self.description,
            default=self.default,
            constraints=_constraints(self.constraints),
            deprecated=self.deprecated,
        )


class RequestBodyModel(WireModel):
    type_ref: TypeReferenceModel = Field(alias="type")
    content_type: str = "application/json"
    required: bool = True
    description: str | None = None

    def to_ir(self) -> ir.RequestBody:
        return ir.RequestBody(
            type_ref=self.type_ref.to_ir(),
            content_type=self.content_type,
            required=self.required,
            description=self.description,
        )


class ResponseModel(WireModel):
    status_code: str = Field(pattern=r"^([1-5][0-9X]{2}|default)$")
    type_ref: TypeReferenceModel | None = Field(default=None, alias="type")
    description: str | None = None
    content_type: str | None = None
    headers: dict[str, TypeReferenceModel] = Field(default_factory=dict)

    def to_ir(self) -> ir.ResponseDefinition:
        return ir.ResponseDefinition(
            status_code=self.status_code,
            type_ref=self.type_ref.to_ir() if self.type_ref else None,
            description=self.description,
            content_type=self.content_type,
            headers={name: ref.to_ir() for name, ref in self.headers.items()},
        )


class RateLimitModel(WireModel):
    requests: int = Field(gt=0)
    window_seconds: int = Field(default=60, gt=0)
    scope: str | None = None

    def to_ir(self) -> ir.RateLimit:
        return ir.RateLimit(**self.model_dump())


class EndpointModel(WireModel):
    id: str = Field(min_length=1)
    operation_id: str = Field(min_length=1)
    method: ir.HttpMethod
    path: str = Field(pattern=r"^/")
    summary: str | None = None
    description: str | None = None
    parameters: list[ParameterModel] = Field(default_factory=list)
    request_body: RequestBodyModel | None = None
    responses: list[ResponseModel] = Field(default_factory=list)
    streaming: bool = False
    authentication: list[str] = Field(default_factory=list)
    rate_limit: RateLimitModel | None = None
    tags: list[str] = Field(default_factory=list)
    deprecated: bool = False

    def to_ir(self) -> ir.EndpointDefinition:
        return ir.EndpointDefinition(
            id=self.id,
            operation_id=self.operation_id,
            method=self.method,
            path=self.path,
            summary=self.summary,
            description=self.description,
            parameters=[p.to_ir() for p in self.parameters],
            request_body=self.request_body.to_ir() if self.request_body else None,
            responses=[r.to_ir() for r in self.responses],
            streaming=self.streaming,
            authentication=list(self.authentication),
            rate_limit=self.rate_limit.to_ir() if self.rate_limit else None,
            tags=list(self.tags),
            deprecated=self.deprecated,
        )


# --- Authentication (tagged on "type") ---


class _AuthBase(WireModel):
    id: str = Field(min_length=1)
    description: str | None = None


class ApiKeyAuthModel(_AuthBase):
    type: Literal["apiKey"]
    location: ir.ApiKeyLocation = Field(alias="in")
    name: str = Field(min_length=1)

    def to_ir(self) -> ir.ApiKeyAuth:
        return ir.ApiKeyAuth(id=self.id, description=self.description, location=self.location, name=self.name)


class BearerAuthModel(_AuthBase):
    type: Literal["bearer"]
    scheme: str = "bearer"
    bearer_format: str | None = None

    def to_ir(self) -> ir.BearerAuth:
        return ir.BearerAuth(
            id=self.id, description=self.description, scheme=self.scheme, bearer_format=self.bearer_format
        )


class OAuth2FlowModel(WireModel):
    type: ir.OAuth2FlowType
    authorization_url: str | None = None
    token_url: str | None = None
    refresh_url: str | None = None
    scopes: dict[str, str] = Field(default_factory=dict)

    def to_ir(self) -> ir.OAuth2Flow:
        return ir.OAuth2Flow(**self.model_dump())


class OAuth2AuthModel(_AuthBase):
    type: Literal["oauth2"]
    flows: list[OAuth2FlowModel] = Field(min_length=1)

    def to_ir(self) -> ir.OAuth2Auth:
        return ir.OAuth2Auth(id=self.id, description=self.description, flows=[f.to_ir() for f in self.flows])


class BasicAuthModel(_AuthBase):
    type: Literal["basic"]

    def to_ir(self) -> ir.BasicAuth:
        return ir.BasicAuth(id=self.id, description=self.description)


AuthSchemeModel = Annotated[
    Union[ApiKeyAuthModel, BearerAuthModel, OAuth2AuthModel, BasicAuthModel],
    Field(discriminator="type"),
]


# --- Errors and root ---


class ErrorModel(WireModel):
    code: str = Field(min_length=1)
    status: int = Field(ge=100, le=599)
    name: str = Field(min_length=1)
    description: str | None = None
    type_ref: TypeReferenceModel | None = Field(default=None, alias="type")
    retryable: bool = False

    def to_ir(self) -> ir.ErrorDefinition:
        return ir.ErrorDefinition(
            code=self.code,
            status=self.status,
            name=self.name,
            description=self.description,
            type_ref=self.type_ref.to_ir() if self.type_ref else None,
            retryable=self.retryable,
        )


class MetadataModel(WireModel):
    provider_id: str = Field(min_length=1)
    provider_name: str = Field(min_length=1)
    schema_version: str
    api_version: str | None = None
    base_url: str | None = None
    generated_at: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    def to_ir(self) -> ir.SchemaMetadata:
        return ir.SchemaMetadata(**self.model_dump())


class CanonicalSchemaModel(WireModel):
    metadata: MetadataModel
    types: list[TypeDefinitionModel] = Field(default_factory=list)
    endpoints: list[EndpointModel] = Field(default_factory=list)
    authentication: list[AuthSchemeModel] = Field(default_factory=list)
    errors: list[ErrorModel] = Field(default_factory=list)
    config: dict[str, Any] | None = None

    def to_ir(self) -> ir.CanonicalSchema:
        return ir.CanonicalSchema(
            metadata=self.metadata.to_ir(),
            types=[t.to_ir() for t in self.types],
            endpoints=[e.to_ir() for e in self.endpoints],
            authentication=[a.to_ir() for a in self.authentication],
            errors=[e.to_ir() for e in self.errors],
            config=dict(self.config) if self.config is not None else None,
        )


# Tag values that appear in pydantic error locations for the tagged unions above.
UNION_TAGS = frozenset(["primitive", "object", "array", "union", "enum", "apiKey", "bearer", "oauth2", "basic"])
