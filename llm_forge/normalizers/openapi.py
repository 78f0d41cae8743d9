"""OpenAPI 3.x schema normalizer.

Converts an OpenAPI 3.0 or 3.1 document into a ``CanonicalSchema``:
- ``components.schemas`` become named IR types (ids are allocated up front,
  so recursive ``$ref`` chains never loop)
- inline objects, enums, arrays and unions become types named after their
  parent; unconstrained inline primitives stay primitive references
- ``paths`` become endpoints; non-2xx responses become error definitions
- ``components.securitySchemes`` become auth schemes
"""

from __future__ import annotations

import re
from typing import Any

from llm_forge.ir.models import (
    ApiKeyAuth,
    ApiKeyLocation,
    ArrayType,
    AuthScheme,
    BasicAuth,
    BearerAuth,
    Constraints,
    EndpointDefinition,
    EnumType,
    EnumValue,
    EnumValueType,
    ErrorDefinition,
    HttpMethod,
    OAuth2Auth,
    OAuth2Flow,
    OAuth2FlowType,
    ObjectType,
    ParameterDefinition,
    ParameterLocation,
    PrimitiveKind,
    PrimitiveType,
    PropertyDefinition,
    RateLimit,
    RequestBody,
    ResponseDefinition,
    SchemaMetadata,
    TypeDefinition,
    TypeReference,
    UnionType,
)
from llm_forge.mappers.naming import pascal_case
from llm_forge.normalizers.base import NormalizeContext, SchemaNormalizer, slugify

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")

_PRIMITIVES = {
    "string": PrimitiveKind.STRING,
    "integer": PrimitiveKind.INTEGER,
    "number": PrimitiveKind.FLOAT,
    "boolean": PrimitiveKind.BOOLEAN,
    "null": PrimitiveKind.NULL,
}

_CONSTRAINT_KEYS = (
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "multipleOf",
    "minLength",
    "maxLength",
    "pattern",
    "format",
    "enum",
)

# Status -> (error code, error name); anything else falls back to http_<status>.
_HTTP_ERRORS = {
    400: ("bad_request", "BadRequestError"),
    401: ("authentication_error", "AuthenticationError"),
    403: ("permission_denied", "PermissionDeniedError"),
    404: ("not_found", "NotFoundError"),
    408: ("request_timeout", "RequestTimeoutError"),
    409: ("conflict", "ConflictError"),
    413: ("request_too_large", "RequestTooLargeError"),
    422: ("unprocessable_entity", "UnprocessableEntityError"),
    429: ("rate_limit_exceeded", "RateLimitError"),
    500: ("internal_server_error", "InternalServerError"),
    502: ("bad_gateway", "BadGatewayError"),
    503: ("service_unavailable", "ServiceUnavailableError"),
    504: ("gateway_timeout", "GatewayTimeoutError"),
    529: ("overloaded", "OverloadedError"),
}

_OAUTH_FLOWS = {
    "authorizationCode": OAuth2FlowType.AUTHORIZATION_CODE,
    "clientCredentials": OAuth2FlowType.CLIENT_CREDENTIALS,
    "implicit": OAuth2FlowType.IMPLICIT,
    "password": OAuth2FlowType.PASSWORD,
}

_SCHEMA_REF = "#/components/schemas/"


def is_retryable_status(status: int) -> bool:
    return status in (408, 409, 429) or status >= 500


class OpenAPINormalizer(SchemaNormalizer):
    """Normalize OpenAPI 3.0/3.1 documents."""

    def validation_errors(self, raw: dict) -> list[str]:
        errors = []
        version = raw.get("openapi")
        if not isinstance(version, str) or not version.startswith("3."):
            errors.append(f"Unsupported or missing 'openapi' version: {version!r} (expected 3.x)")
        if not isinstance(raw.get("info"), dict):
            errors.append("Missing 'info' object")
        if not isinstance(raw.get("paths"), dict):
            errors.append("Missing 'paths' object")
        return errors

    # -- Metadata --------------------------------------------------------

    def extract_metadata(self, raw: dict, ctx: NormalizeContext) -> SchemaMetadata:
        metadata = super().extract_metadata(raw, ctx)
        info = raw.get("info", {})
        title = info.get("title") or self.provider_name
        if not self.provider_overridden:
            metadata.provider_id = slugify(title)
            metadata.provider_name = title
        metadata.api_version = str(info["version"]) if "version" in info else None
        servers = raw.get("servers") or []
        if servers and isinstance(servers[0], dict):
            metadata.base_url = servers[0].get("url")
        if info.get("description"):
            metadata.extra["description"] = info["description"]
        metadata.extra["openapi"] = raw.get("openapi")
        return metadata

    def extract_config(self, raw: dict, ctx: NormalizeContext) -> dict | None:
        servers = [s.get("url") for s in raw.get("servers") or [] if isinstance(s, dict) and s.get("url")]
        return {"servers": servers} if len(servers) > 1 else None

    # -- Types -----------------------------------------------------------

    def extract_types(self, raw: dict, ctx: NormalizeContext) -> list[TypeDefinition]:
        schemas = raw.get("components", {}).get("schemas", {}) or {}
        # Allocate every component id first so $ref cycles resolve by id.
        for name in schemas:
            ctx.type_keys[_SCHEMA_REF + name] = ctx.allocate_id(name)
        for name, schema in schemas.items():
            if not isinstance(schema, dict):
                ctx.warn(f"Skipping component schema '{name}': not an object")
                continue
            ctx.add_type(self._build_type(ctx.type_keys[_SCHEMA_REF + name], name, schema, ctx))
        return list(ctx.types)

    def _build_type(self, type_id: str, name: str, schema: dict, ctx: NormalizeContext) -> TypeDefinition:
        common = {
            "id": type_id,
            "name": name,
            "description": schema.get("description"),
            "deprecated": bool(schema.get("deprecated", False)),
        }
        if "allOf" in schema:
            return self._merge_all_of(common, schema, ctx)
        if "oneOf" in schema or "anyOf" in schema:
            return self._build_union(common, schema, ctx)

        type_name, _ = _schema_type(schema)
        if "enum" in schema and type_name in (None, "string", "integer", "number"):
            values = [EnumValue(value=v) for v in schema["enum"] if v is not None]
            descriptions = schema.get("x-enum-descriptions") or {}
            if isinstance(descriptions, dict):
                for value in values:
                    value.description = descriptions.get(str(value.value))
            value_type = EnumValueType.NUMBER if type_name in ("integer", "number") else EnumValueType.STRING
            return EnumType(**common, values=values, value_type=value_type)
        if type_name == "array":
            return ArrayType(
                **common,
                items=self._reference(schema.get("items") or {}, ctx, f"{name}Item"),
                min_items=schema.get("minItems"),
                max_items=schema.get("maxItems"),
                unique_items=bool(schema.get("uniqueItems", False)),
            )
        if type_name == "object" or "properties" in schema or "additionalProperties" in schema:
            return self._build_object(common, schema, ctx)
        return PrimitiveType(**common, primitive_kind=_primitive_kind(schema), constraints=_constraints(schema))

    def _build_object(self, common: dict, schema: dict, ctx: NormalizeContext) -> ObjectType:
        name = common["name"]
        required = [r for r in schema.get("required", []) if isinstance(r, str)]
        properties = [
            self._property(name, prop_name, prop_schema, prop_name in required, ctx)
            for prop_name, prop_schema in (schema.get("properties") or {}).items()
        ]

        extra = schema.get("additionalProperties")
        if isinstance(extra, dict):
            additional = True if not extra else self._reference(extra, ctx, f"{name}Value")
        elif isinstance(extra, bool):
            additional = extra
        else:
            # A bare "type: object" is a free-form map.
            additional = True if not properties else None

        discriminator = schema.get("discriminator", {})
        return ObjectType(
            **common,
            properties=properties,
            required=required,
            additional_properties=additional,
            discriminator=discriminator.get("propertyName") if isinstance(discriminator, dict) else None,
        )

    def _property(self, parent: str, name: str, schema: Any, required: bool, ctx: NormalizeContext) -> PropertyDefinition:
        schema = schema if isinstance(schema, dict) else {}
        ref = self._reference(schema, ctx, f"{parent}{pascal_case(name)}", inline_constraints=True)
        target = self._resolve_schema(schema, ctx) or schema
        return PropertyDefinition(
            name=name,
            type_ref=ref,
            required=required,
            description=schema.get("description") or target.get("description"),
            default=schema.get("default"),
            constraints=_constraints(schema) if ref.is_primitive else None,
            deprecated=bool(schema.get("deprecated", False)),
        )

    def _merge_all_of(self, common: dict, schema: dict, ctx: NormalizeContext) -> TypeDefinition:
        parts = [p for p in schema["allOf"] if isinstance(p, dict)]
        merged: dict[str, Any] = {"type": "object", "properties": {}, "required": []}
        for part in parts + [schema]:
            resolved = self._flatten_all_of(part, ctx, set())
            merged["properties"].update(resolved.get("properties") or {})
            merged["required"] += [r for r in resolved.get("required", []) if r not in merged["required"]]
            for key in ("additionalProperties", "discriminator"):
                if key in resolved:
                    merged[key] = resolved[key]
        return self._build_object(common, merged, ctx)

    def _flatten_all_of(self, schema: dict, ctx: NormalizeContext, seen: set[str]) -> dict:
        if "$ref" in schema:
            ref = schema["$ref"]
            if ref in seen:
                return {}
            seen.add(ref)
            target = self._resolve_pointer(ref, ctx)
            return self._flatten_all_of(target, ctx, seen) if isinstance(target, dict) else {}
        out = {k: v for k, v in schema.items() if k != "allOf"}
        out["properties"] = dict(schema.get("properties") or {})
        out["required"] = list(schema.get("required", []))
        for part in schema.get("allOf", []):
            if isinstance(part, dict):
                nested = self._flatten_all_of(part, ctx, seen)
                out["properties"].update(nested.get("properties") or {})
                out["required"] += nested.get("required", [])
        return out

    def _build_union(self, common: dict, schema: dict, ctx: NormalizeContext) -> UnionType:
        options = schema.get("oneOf") or schema.get("anyOf") or []
        variants = []
        for i, option in enumerate(o for o in options if not _is_null_schema(o)):
            variants.append(self._reference(option, ctx, f"{common['name']}Variant{i + 1}"))

        discriminator = schema.get("discriminator") if isinstance(schema.get("discriminator"), dict) else {}
        prop = discriminator.get("propertyName")
        mapping: dict[str, str] = {}
        for literal, target in (discriminator.get("mapping") or {}).items():
            key = target if target.startswith("#/") else _SCHEMA_REF + target
            if key in ctx.type_keys:
                mapping[str(literal)] = ctx.type_keys[key]
            else:
                ctx.warn(f"Discriminator mapping '{literal}' -> '{target}' does not name a component schema")
        if prop:
            # Variants missing from an explicit mapping keep their implicit literal.
            mapped = set(mapping.values())
            for literal, target in self._infer_mapping(prop, variants, ctx).items():
                if target not in mapped and literal not in mapping:
                    mapping[literal] = target
        return UnionType(**common, variants=variants, discriminator=prop, discriminator_mapping=mapping)

    def _infer_mapping(self, prop: str, variants: list[TypeReference], ctx: NormalizeContext) -> dict[str, str]:
        """Derive literal -> type id from each variant's single-valued tag property."""
        by_id = {v: k for k, v in ctx.type_keys.items()}
        mapping = {}
        for variant in variants:
            key = by_id.get(variant.type_id or "")
            if not key:
                continue
            target = self._flatten_all_of(self._resolve_pointer(key, ctx) or {}, ctx, set())
            tag = (target.get("properties") or {}).get(prop, {})
            if "const" in tag:
                mapping[str(tag["const"])] = variant.type_id
            elif isinstance(tag.get("enum"), list) and len(tag["enum"]) == 1:
                mapping[str(tag["enum"][0])] = variant.type_id
            else:
                mapping[key.rsplit("/", 1)[-1]] = variant.type_id
        return mapping

    def _reference(
        self, schema: Any, ctx: NormalizeContext, name_hint: str, inline_constraints: bool = False
    ) -> TypeReference:
        """Return a reference for ``schema``, registering inline types as needed.

        With ``inline_constraints`` the caller records primitive constraints
        itself, so a constrained primitive stays a primitive reference.
        """
        if not isinstance(schema, dict) or not schema:
            return TypeReference.of(PrimitiveKind.ANY)
        nullable = _is_nullable(schema)

        if "$ref" in schema:
            return self._ref_target(schema["$ref"], ctx, name_hint, nullable)

        # Wrapper forms: allOf: [$ref] and oneOf: [$ref, {type: null}]
        for key in ("allOf", "oneOf", "anyOf"):
            parts = schema.get(key)
            if isinstance(parts, list):
                non_null = [p for p in parts if not _is_null_schema(p)]
                if len(non_null) == 1 and "properties" not in schema:
                    inner = self._reference(non_null[0], ctx, name_hint, inline_constraints)
                    inner.nullable = inner.nullable or nullable or len(non_null) < len(parts)
                    return inner

        type_name, _ = _schema_type(schema)
        is_composite = (
            any(k in schema for k in ("allOf", "oneOf", "anyOf", "properties", "additionalProperties", "enum"))
            or type_name in ("object", "array")
        )
        if not is_composite and (inline_constraints or _constraints(schema) is None):
            return TypeReference.of(_primitive_kind(schema), nullable=nullable)

        type_id = ctx.allocate_id(name_hint)
        ctx.add_type(self._build_type(type_id, name_hint, schema, ctx))
        return TypeReference.to(type_id, nullable=nullable)

    def _ref_target(self, ref: str, ctx: NormalizeContext, name_hint: str, nullable: bool) -> TypeReference:
        if ref in ctx.type_keys:
            return TypeReference.to(ctx.type_keys[ref], nullable=nullable)
        target = self._resolve_pointer(ref, ctx)
        if not isinstance(target, dict):
            ctx.warn(f"Unresolvable $ref '{ref}', using 'any'")
            return TypeReference.of(PrimitiveKind.ANY, nullable=nullable)
        # A pointer into a schema (not a component): convert once and cache by pointer.
        type_id = ctx.allocate_id(name_hint)
        ctx.type_keys[ref] = type_id
        ctx.add_type(self._build_type(type_id, name_hint, target, ctx))
        return TypeReference.to(type_id, nullable=nullable)

    def _resolve_pointer(self, ref: str, ctx: NormalizeContext) -> Any:
        if not ref.startswith("#/"):
            return None
        node: Any = ctx.raw
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _resolve_schema(self, schema: dict, ctx: NormalizeContext) -> dict | None:
        if "$ref" in schema:
            target = self._resolve_pointer(schema["$ref"], ctx)
            return target if isinstance(target, dict) else None
        return schema

    def _deref(self, node: Any, ctx: NormalizeContext) -> dict:
        """Follow ``$ref`` chains on parameters, bodies and responses."""
        seen = set()
        while isinstance(node, dict) and "$ref" in node and node["$ref"] not in seen:
            seen.add(node["$ref"])
            node = self._resolve_pointer(node["$ref"], ctx)
        return node if isinstance(node, dict) else {}

    # -- Endpoints -------------------------------------------------------

    def extract_endpoints(self, raw: dict, ctx: NormalizeContext) -> list[EndpointDefinition]:
        endpoints = []
        default_security = raw.get("security")
        for path, item in raw.get("paths", {}).items():
            if not isinstance(item, dict):
                continue
            shared_params = item.get("parameters", [])
            for method in HTTP_METHODS:
                operation = item.get(method)
                if not isinstance(operation, dict):
                    continue
                if operation.get("deprecated") and not self.include_deprecated:
                    continue
                endpoints.append(
                    self._endpoint(path, method, operation, shared_params, default_security, ctx)
                )
        return endpoints

    def _endpoint(
        self, path: str, method: str, op: dict, shared_params: list, default_security: Any, ctx: NormalizeContext
    ) -> EndpointDefinition:
        op_id = op.get("operationId") or _fallback_operation_id(method, path)
        hint = pascal_case(op_id)

        params: dict[tuple[str, str], ParameterDefinition] = {}
        for raw_param in list(shared_params) + list(op.get("parameters", [])):
            param = self._parameter(raw_param, hint, ctx)
            if param is not None:
                params[(param.name, param.location.value)] = param

        body = None
        raw_body = self._deref(op.get("requestBody"), ctx) if op.get("requestBody") else None
        if raw_body:
            content_type, media = _pick_media(raw_body.get("content", {}))
            if media is not None:
                body = RequestBody(
                    type_ref=self._reference(media.get("schema") or {}, ctx, f"{hint}Request"),
                    content_type=content_type,
                    required=bool(raw_body.get("required", False)),
                    description=raw_body.get("description"),
                )

        responses = [
            self._response(str(status), resp, hint, ctx) for status, resp in (op.get("responses") or {}).items()
        ]

        security = op.get("security", default_security) or []
        auth: list[str] = []
        for requirement in security:
            for scheme_id in requirement or {}:
                if scheme_id not in auth:
                    auth.append(scheme_id)

        return EndpointDefinition(
            id=f"{method}_{_sanitize(path)}",
            operation_id=op_id,
            method=HttpMethod(method.upper()),
            path=path,
            summary=op.get("summary"),
            description=op.get("description"),
            parameters=list(params.values()),
            request_body=body,
            responses=responses,
            streaming=self._is_streaming(op, raw_body, ctx),
            authentication=auth,
            rate_limit=_rate_limit(op.get("x-rate-limit") or ctx.raw.get("x-rate-limit")),
            tags=list(op.get("tags", [])),
            deprecated=bool(op.get("deprecated", False)),
        )

    def _parameter(self, raw_param: Any, hint: str, ctx: NormalizeContext) -> ParameterDefinition | None:
        param = self._deref(raw_param, ctx)
        try:
            location = ParameterLocation(param.get("in"))
        except ValueError:
            ctx.warn(f"Skipping parameter {param.get('name')!r}: unknown location {param.get('in')!r}")
            return None
        if not param.get("name"):
            ctx.warn("Skipping parameter without a name")
            return None
        schema = param.get("schema") or {}
        ref = self._reference(schema, ctx, f"{hint}{pascal_case(param['name'])}", inline_constraints=True)
        return ParameterDefinition(
            name=param["name"],
            location=location,
            type_ref=ref,
            required=bool(param.get("required", location == ParameterLocation.PATH)),
            description=param.get("description"),
            default=schema.get("default") if isinstance(schema, dict) else None,
            constraints=_constraints(schema) if ref.is_primitive else None,
            deprecated=bool(param.get("deprecated", False)),
        )

    def _response(self, status: str, raw_response: Any, hint: str, ctx: NormalizeContext) -> ResponseDefinition:
        resp = self._deref(raw_response, ctx)
        content_type, media = _pick_media(resp.get("content", {}))
        type_ref = None
        if media is not None and media.get("schema"):
            suffix = "Response" if status.startswith("2") else f"Error{status}"
            type_ref = self._reference(media["schema"], ctx, f"{hint}{suffix}")
        headers = {}
        for name, header in (resp.get("headers") or {}).items():
            header = self._deref(header, ctx)
            headers[name] = self._reference(header.get("schema") or {}, ctx, f"{hint}{pascal_case(name)}Header")
        return ResponseDefinition(
            status_code=status.upper() if status != "default" else status,
            type_ref=type_ref,
            description=resp.get("description"),
            content_type=content_type,
            headers=headers,
        )

    def _is_streaming(self, op: dict, raw_body: dict | None, ctx: NormalizeContext) -> bool:
        if op.get("x-streaming") is not None:
            return bool(op["x-streaming"])
        for resp in (op.get("responses") or {}).values():
            if "text/event-stream" in (self._deref(resp, ctx).get("content") or {}):
                return True
        if raw_body:
            _, media = _pick_media(raw_body.get("content", {}))
            if media is not None:
                schema = self._flatten_all_of(media.get("schema") or {}, ctx, set())
                if "stream" in (schema.get("properties") or {}):
                    return True
        text = f"{op.get('summary', '')} {op.get('description', '')}".lower()
        return "stream" in text

    # -- Auth and errors -------------------------------------------------

    def extract_auth_schemes(self, raw: dict, ctx: NormalizeContext) -> list[AuthScheme]:
        schemes: list[AuthScheme] = []
        for scheme_id, scheme in (raw.get("components", {}).get("securitySchemes") or {}).items():
            scheme = self._deref(scheme, ctx)
            kind = scheme.get("type")
            description = scheme.get("description")
            if kind == "apiKey":
                location = scheme.get("in", "header")
                if location not in ("header", "query"):
                    ctx.warn(f"API key scheme '{scheme_id}' uses location '{location}', treating it as a header")
                    location = "header"
                schemes.append(
                    ApiKeyAuth(
                        id=scheme_id,
                        description=description,
                        location=ApiKeyLocation(location),
                        name=scheme.get("name", "x-api-key"),
                    )
                )
            elif kind == "http" and str(scheme.get("scheme", "")).lower() == "basic":
                schemes.append(BasicAuth(id=scheme_id, description=description))
            elif kind == "http":
                schemes.append(
                    BearerAuth(
                        id=scheme_id,
                        description=description,
                        scheme=str(scheme.get("scheme", "bearer")).lower(),
                        bearer_format=scheme.get("bearerFormat"),
                    )
                )
            elif kind == "oauth2":
                flows = [
                    OAuth2Flow(
                        type=_OAUTH_FLOWS[flow_name],
                        authorization_url=flow.get("authorizationUrl"),
                        token_url=flow.get("tokenUrl"),
                        refresh_url=flow.get("refreshUrl"),
                        scopes=dict(flow.get("scopes") or {}),
                    )
                    for flow_name, flow in (scheme.get("flows") or {}).items()
                    if flow_name in _OAUTH_FLOWS and isinstance(flow, dict)
                ]
                if flows:
                    schemes.append(OAuth2Auth(id=scheme_id, description=description, flows=flows))
                else:
                    ctx.warn(f"OAuth2 scheme '{scheme_id}' declares no supported flows, skipping it")
            else:
                ctx.warn(f"Unsupported security scheme type '{kind}' for '{scheme_id}', skipping it")
        return schemes

    def extract_errors(self, raw: dict, ctx: NormalizeContext) -> list[ErrorDefinition]:
        """One error definition per distinct 4xx/5xx status used by any operation."""
        found: dict[int, ErrorDefinition] = {}
        for item in raw.get("paths", {}).values():
            if not isinstance(item, dict):
                continue
            for method in HTTP_METHODS:
                op = item.get(method)
                if not isinstance(op, dict):
                    continue
                for status, resp in (op.get("responses") or {}).items():
                    if not str(status).isdigit() or int(status) < 400 or int(status) in found:
                        continue
                    code = int(status)
                    resp = self._deref(resp, ctx)
                    error_code, name = _HTTP_ERRORS.get(code, (f"http_{code}", f"Http{code}Error"))
                    _, media = _pick_media(resp.get("content", {}))
                    type_ref = None
                    if media is not None and media.get("schema"):
                        type_ref = self._reference(media["schema"], ctx, f"{name}Body")
                    found[code] = ErrorDefinition(
                        code=error_code,
                        status=code,
                        name=name,
                        description=resp.get("description"),
                        type_ref=type_ref,
                        retryable=is_retryable_status(code),
                    )
        return [found[k] for k in sorted(found)]


# --- Helpers ---


def _schema_type(schema: dict) -> tuple[str | None, bool]:
    """Return the schema's non-null type name and whether 'null' was listed."""
    declared = schema.get("type")
    if isinstance(declared, list):
        non_null = [t for t in declared if t != "null"]
        return (non_null[0] if non_null else "null"), "null" in declared
    return declared, False


def _is_nullable(schema: dict) -> bool:
    return bool(schema.get("nullable")) or _schema_type(schema)[1]


def _is_null_schema(schema: Any) -> bool:
    return isinstance(schema, dict) and schema.get("type") == "null"


def _primitive_kind(schema: dict) -> PrimitiveKind:
    type_name, _ = _schema_type(schema)
    if type_name == "string" and schema.get("format") == "binary":
        return PrimitiveKind.BINARY
    return _PRIMITIVES.get(type_name, PrimitiveKind.ANY)


def _constraints(schema: Any) -> Constraints | None:
    if not isinstance(schema, dict) or not any(k in schema for k in _CONSTRAINT_KEYS):
        return None
    c = Constraints(
        minimum=schema.get("minimum"),
        maximum=schema.get("maximum"),
        multiple_of=schema.get("multipleOf"),
        min_length=schema.get("minLength"),
        max_length=schema.get("maxLength"),
        pattern=schema.get("pattern"),
        format=schema.get("format"),
        enum=list(schema["enum"]) if isinstance(schema.get("enum"), list) else None,
    )
    # 3.0 uses boolean flags, 3.1 uses numeric bounds.
    for key, bound in (("exclusiveMinimum", "minimum"), ("exclusiveMaximum", "maximum")):
        flag = schema.get(key)
        if isinstance(flag, bool):
            setattr(c, f"exclusive_{bound}", flag)
        elif isinstance(flag, (int, float)):
            setattr(c, bound, flag)
            setattr(c, f"exclusive_{bound}", True)
    return None if c.is_empty else c


def _pick_media(content: Any) -> tuple[str | None, dict | None]:
    if not isinstance(content, dict) or not content:
        return None, None
    for preferred in ("application/json", "text/event-stream"):
        if preferred in content:
            return preferred, content[preferred] or {}
    content_type = next(iter(content))
    return content_type, content[content_type] or {}


def _rate_limit(raw: Any) -> RateLimit | None:
    if not isinstance(raw, dict) or not raw.get("requests"):
        return None
    return RateLimit(
        requests=int(raw["requests"]),
        window_seconds=int(raw.get("windowSeconds", raw.get("window", 60))),
        scope=raw.get("scope"),
    )


def _sanitize(path: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", path).strip("_") or "root"


def _fallback_operation_id(method: str, path: str) -> str:
    return f"{method}_{_sanitize(path)}"
