"""IR data models: the canonical schema shared by every pipeline stage.

A ``CanonicalSchema`` is built once by a schema normalizer, validated once,
and then treated as read-only by the type mappers and the code generation
engine. Type references always point into the schema's type table by id;
types are never embedded inside one another.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from llm_forge.ir import IR_SCHEMA_VERSION


class TypeKind(Enum):
    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    UNION = "union"
    ENUM = "enum"


class PrimitiveKind(Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    NULL = "null"
    ANY = "any"
    BINARY = "binary"


class EnumValueType(Enum):
    STRING = "string"
    NUMBER = "number"


class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ParameterLocation(Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


class AuthKind(Enum):
    API_KEY = "apiKey"
    BEARER = "bearer"
    OAUTH2 = "oauth2"
    BASIC = "basic"


class ApiKeyLocation(Enum):
    HEADER = "header"
    QUERY = "query"


class OAuth2FlowType(Enum):
    AUTHORIZATION_CODE = "authorizationCode"
    CLIENT_CREDENTIALS = "clientCredentials"
    IMPLICIT = "implicit"
    PASSWORD = "password"


class ConstraintKind(Enum):
    MINIMUM = "minimum"
    MAXIMUM = "maximum"
    EXCLUSIVE_MINIMUM = "exclusive_minimum"
    EXCLUSIVE_MAXIMUM = "exclusive_maximum"
    MULTIPLE_OF = "multiple_of"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    PATTERN = "pattern"
    FORMAT = "format"
    ENUM = "enum"
    MIN_ITEMS = "min_items"
    MAX_ITEMS = "max_items"
    UNIQUE_ITEMS = "unique_items"


# --- Constraints ---


@dataclass(frozen=True)
class Constraint:
    """One flattened constraint, the unit a type mapper translates."""

    kind: ConstraintKind
    value: Any


@dataclass
class Constraints:
    """Validation constraints attached to a primitive, property or parameter."""

    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    multiple_of: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    format: str | None = None
    enum: list[Any] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.flatten()

    def flatten(self) -> list[Constraint]:
        """Return the constraints as an ordered list of ``Constraint`` items.

        Exclusive flags are folded into the bound they qualify, so an
        exclusive minimum of 0 becomes ``EXCLUSIVE_MINIMUM=0`` instead of
        ``MINIMUM=0`` plus a flag.
        """
        out: list[Constraint] = []
        if self.minimum is not None:
            kind = ConstraintKind.EXCLUSIVE_MINIMUM if self.exclusive_minimum else ConstraintKind.MINIMUM
            out.append(Constraint(kind, self.minimum))
        if self.maximum is not None:
            kind = ConstraintKind.EXCLUSIVE_MAXIMUM if self.exclusive_maximum else ConstraintKind.MAXIMUM
            out.append(Constraint(kind, self.maximum))
        if self.multiple_of is not None:
            out.append(Constraint(ConstraintKind.MULTIPLE_OF, self.multiple_of))
        if self.min_length is not None:
            out.append(Constraint(ConstraintKind.MIN_LENGTH, self.min_length))
        if self.max_length is not None:
            out.append(Constraint(ConstraintKind.MAX_LENGTH, self.max_length))
        if self.pattern:
            out.append(Constraint(ConstraintKind.PATTERN, self.pattern))
        if self.format:
            out.append(Constraint(ConstraintKind.FORMAT, self.format))
        if self.enum:
            out.append(Constraint(ConstraintKind.ENUM, tuple(self.enum)))
        return out


# --- Type references and definitions ---


@dataclass
class TypeReference:
    """Either a primitive, or a pointer into the schema's type table."""

    type_id: str | None = None
    primitive: PrimitiveKind | None = None
    nullable: bool = False

    @classmethod
    def to(cls, type_id: str, nullable: bool = False) -> TypeReference:
        return cls(type_id=type_id, nullable=nullable)

    @classmethod
    def of(cls, primitive: PrimitiveKind, nullable: bool = False) -> TypeReference:
        return cls(primitive=primitive, nullable=nullable)

    @property
    def is_primitive(self) -> bool:
        return self.type_id is None and self.primitive is not None


@dataclass
class PropertyDefinition:
    name: str
    type_ref: TypeReference
    required: bool = False
    description: str | None = None
    default: Any = None
    constraints: Constraints | None = None
    deprecated: bool = False


@dataclass
class EnumValue:
    value: str | int | float
    name: str | None = None  # Display name
    description: str | None = None
    deprecated: bool = False


@dataclass
class TypeDefinition:
    """Common fields of every IR type. Concrete kinds subclass this."""

    id: str
    name: str
    description: str | None = None
    deprecated: bool = False
    deprecation_message: str | None = None

    kind: ClassVar[TypeKind]


@dataclass
class PrimitiveType(TypeDefinition):
    primitive_kind: PrimitiveKind = PrimitiveKind.STRING
    constraints: Constraints | None = None

    kind: ClassVar[TypeKind] = TypeKind.PRIMITIVE


@dataclass
class ObjectType(TypeDefinition):
    properties: list[PropertyDefinition] = field(default_factory=list)
    required: list[str] = field(default_factory=list)
    # None: unspecified, False: closed, True: any extra keys, TypeReference: typed extras
    additional_properties: bool | TypeReference | None = None
    discriminator: str | None = None

    kind: ClassVar[TypeKind] = TypeKind.OBJECT

    @property
    def is_map(self) -> bool:
        """A property-less object that accepts arbitrary keys."""
        return not self.properties and self.additional_properties not in (None, False)

    def is_required(self, property_name: str) -> bool:
        return property_name in self.required or any(
            p.name == property_name and p.required for p in self.properties
        )


@dataclass
class ArrayType(TypeDefinition):
    items: TypeReference = field(default_factory=lambda: TypeReference.of(PrimitiveKind.ANY))
    min_items: int | None = None
    max_items: int | None = None
    unique_items: bool = False

    kind: ClassVar[TypeKind] = TypeKind.ARRAY

    def size_constraints(self) -> list[Constraint]:
        out: list[Constraint] = []
        if self.min_items is not None:
            out.append(Constraint(ConstraintKind.MIN_ITEMS, self.min_items))
        if self.max_items is not None:
            out.append(Constraint(ConstraintKind.MAX_ITEMS, self.max_items))
        if self.unique_items:
            out.append(Constraint(ConstraintKind.UNIQUE_ITEMS, True))
        return out


@dataclass
class UnionType(TypeDefinition):
    variants: list[TypeReference] = field(default_factory=list)
    discriminator: str | None = None
    discriminator_mapping: dict[str, str] = field(default_factory=dict)  # literal -> type id

    kind: ClassVar[TypeKind] = TypeKind.UNION

    def literal_for(self, type_id: str) -> str | None:
        """Return the discriminator literal selecting ``type_id``, if mapped."""
        for literal, target in self.discriminator_mapping.items():
            if target == type_id:
                return literal
        return None


@dataclass
class EnumType(TypeDefinition):
    values: list[EnumValue] = field(default_factory=list)
    value_type: EnumValueType = EnumValueType.STRING

    kind: ClassVar[TypeKind] = TypeKind.ENUM


# --- Endpoints ---


@dataclass
class ParameterDefinition:
    name: str
    location: ParameterLocation
    type_ref: TypeReference
    required: bool = False
    description: str | None = None
    default: Any = None
    constraints: Constraints | None = None
    deprecated: bool = False


@dataclass
class RequestBody:
    type_ref: TypeReference
    content_type: str = "application/json"
    required: bool = True
    description: str | None = None


@dataclass
class ResponseDefinition:
    status_code: str  # "200", "404", ... or "default"
    type_ref: TypeReference | None = None
    description: str | None = None
    content_type: str | None = None
    headers: dict[str, TypeReference] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status_code.startswith("2")


@dataclass
class RateLimit:
    requests: int
    window_seconds: int = 60
    scope: str | None = None  # e.g. "api-key", "organization"


@dataclass
class EndpointDefinition:
    id: str
    operation_id: str
    method: HttpMethod
    path: str
    summary: str | None = None
    description: str | None = None
    parameters: list[ParameterDefinition] = field(default_factory=list)
    request_body: RequestBody | None = None
    responses: list[ResponseDefinition] = field(default_factory=list)
    streaming: bool = False
    authentication: list[str] = field(default_factory=list)  # AuthScheme ids
    rate_limit: RateLimit | None = None
    tags: list[str] = field(default_factory=list)
    deprecated: bool = False

    def parameters_in(self, location: ParameterLocation) -> list[ParameterDefinition]:
        return [p for p in self.parameters if p.location == location]

    @property
    def success_response(self) -> ResponseDefinition | None:
        """First 2xx response, falling back to ``default``."""
        for response in self.responses:
            if response.is_success:
                return response
        for response in self.responses:
            if response.status_code == "default":
                return response
        return None


# --- Authentication ---


@dataclass
class AuthScheme:
    id: str
    description: str | None = None

    kind: ClassVar[AuthKind]


@dataclass
class ApiKeyAuth(AuthScheme):
    location: ApiKeyLocation = ApiKeyLocation.HEADER
    name: str = "x-api-key"

    kind: ClassVar[AuthKind] = AuthKind.API_KEY


@dataclass
class BearerAuth(AuthScheme):
    scheme: str = "bearer"
    bearer_format: str | None = None

    kind: ClassVar[AuthKind] = AuthKind.BEARER


@dataclass
class OAuth2Flow:
    type: OAuth2FlowType
    authorization_url: str | None = None
    token_url: str | None = None
    refresh_url: str | None = None
    scopes: dict[str, str] = field(default_factory=dict)


@dataclass
class OAuth2Auth(AuthScheme):
    flows: list[OAuth2Flow] = field(default_factory=list)

    kind: ClassVar[AuthKind] = AuthKind.OAUTH2


@dataclass
class BasicAuth(AuthScheme):
    kind: ClassVar[AuthKind] = AuthKind.BASIC


# --- Errors and root ---


@dataclass
class ErrorDefinition:
    code: str
    status: int
    name: str
    description: str | None = None
    type_ref: TypeReference | None = None
    retryable: bool = False


@dataclass
class SchemaMetadata:
    provider_id: str
    provider_name: str
    schema_version: str = IR_SCHEMA_VERSION
    api_version: str | None = None
    base_url: str | None = None
    generated_at: str | None = None  # ISO-8601, informational only
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class CanonicalSchema:
    """Root IR document."""

    metadata: SchemaMetadata
    types: list[TypeDefinition] = field(default_factory=list)
    endpoints: list[EndpointDefinition] = field(default_factory=list)
    authentication: list[AuthScheme] = field(default_factory=list)
    errors: list[ErrorDefinition] = field(default_factory=list)
    config: dict[str, Any] | None = None

    def get_type(self, type_id: str) -> TypeDefinition | None:
        for t in self.types:
            if t.id == type_id:
                return t
        return None

    def get_auth_scheme(self, scheme_id: str) -> AuthScheme | None:
        for scheme in self.authentication:
            if scheme.id == scheme_id:
                return scheme
        return None

    @property
    def has_streaming(self) -> bool:
        return any(e.streaming for e in self.endpoints)

    @property
    def has_rate_limits(self) -> bool:
        return any(e.rate_limit is not None for e in self.endpoints)
