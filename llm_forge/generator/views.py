"""Template-facing views of IR endpoints, auth schemes and errors.

Views hold already-rendered native strings (identifiers, type expressions,
path expressions), so templates never call back into a mapper.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from llm_forge.generator.profiles import LanguageProfile, auth_class_name
from llm_forge.generator.resources import ResourceGroup, path_segments
from llm_forge.ir.models import (
    ApiKeyAuth,
    AuthScheme,
    BearerAuth,
    EndpointDefinition,
    ErrorDefinition,
    OAuth2Auth,
    ParameterDefinition,
    ParameterLocation,
    PrimitiveKind,
    RateLimit,
    TypeReference,
)
from llm_forge.mappers.base import TypeMapper
from llm_forge.mappers.naming import pascal_case

logger = logging.getLogger(__name__)

# Identifiers the method templates use for their own locals.
_RESERVED_LOCALS = {"body", "params", "options", "query", "headers", "request", "response", "ctx", "self"}

DEFAULT_RETRYABLE_STATUSES = (408, 409, 429, 500, 502, 503, 504)


@dataclass
class TypeView:
    name: str
    module: str
    kind: str
    code: str
    imports: list[str] = field(default_factory=list)
    dependencies: list[TypeView] = field(default_factory=list)


@dataclass
class ParamView:
    name: str  # wire name
    ident: str
    type: str
    location: str
    required: bool
    description: str | None = None


@dataclass
class BodyView:
    type: str
    required: bool
    content_type: str


@dataclass
class MethodView:
    name: str
    operation_id: str
    http_method: str
    path: str
    path_expr: str
    path_params: list[ParamView]
    query_params: list[ParamView]
    header_params: list[ParamView]
    body: BodyView | None
    response_type: str | None
    streaming: bool
    summary: str | None
    description: str | None
    deprecated: bool
    auth: list[str]
    rate_limit: RateLimit | None

    @property
    def required_params(self) -> list[ParamView]:
        return [p for p in self.query_params + self.header_params if p.required]

    @property
    def optional_params(self) -> list[ParamView]:
        return [p for p in self.query_params + self.header_params if not p.required]

    @property
    def doc(self) -> str:
        return "\n\n".join(part.strip() for part in (self.summary, self.description) if part)


@dataclass
class ResourceView:
    name: str
    class_name: str
    module: str
    attr: str
    methods: list[MethodView]
    models: list[str]
    imports: list[str]

    @property
    def has_path_params(self) -> bool:
        return any(m.path_params for m in self.methods)

    @property
    def has_streaming(self) -> bool:
        return any(m.streaming for m in self.methods)


@dataclass
class AuthView:
    id: str
    kind: str
    class_name: str
    module: str
    location: str = "header"
    param_name: str = "Authorization"
    scheme: str = "Bearer"
    bearer_format: str | None = None
    token_url: str | None = None
    scopes: list[str] = field(default_factory=list)
    description: str | None = None


@dataclass
class ErrorView:
    code: str
    status: int
    name: str
    class_name: str
    variant: str
    description: str | None
    retryable: bool


def _unique(base: str, used: set[str]) -> str:
    name, n = base, 2
    while name in used:
        name = f"{base}{n}"
        n += 1
    used.add(name)
    return name


def build_method(
    endpoint: EndpointDefinition,
    mapper: TypeMapper,
    profile: LanguageProfile,
    imports: set[str],
    models: set[str],
    used_names: set[str],
    warnings: list[str],
) -> MethodView:
    """Render one endpoint into a ``MethodView``.

    Type imports the rendered signatures need are added to ``imports`` and
    the declared types they mention to ``models``.
    """
    used_idents = set(_RESERVED_LOCALS)

    def reference(ref: TypeReference, optional: bool = False, where: str = "") -> str:
        models.update(mapper.referenced_types(ref))
        return mapper.render_reference(ref, imports, optional=optional, path=f"{endpoint.id}.{where}")

    def param(p: ParameterDefinition) -> ParamView:
        required = p.required or p.location == ParameterLocation.PATH
        return ParamView(
            name=p.name,
            ident=_unique(profile.ident(p.name, profile.param_case), used_idents),
            type=reference(p.type_ref, optional=not required, where=p.name),
            location=p.location.value,
            required=required,
            description=p.description,
        )

    for p in endpoint.parameters_in(ParameterLocation.COOKIE):
        warnings.append(f"{endpoint.operation_id}: cookie parameter {p.name!r} is not supported and was skipped")

    path_params = [param(p) for p in endpoint.parameters_in(ParameterLocation.PATH)]
    query_params = [param(p) for p in endpoint.parameters_in(ParameterLocation.QUERY)]
    header_params = [param(p) for p in endpoint.parameters_in(ParameterLocation.HEADER)]

    body = None
    if endpoint.request_body is not None:
        rb = endpoint.request_body
        body = BodyView(
            type=reference(rb.type_ref, optional=not rb.required, where="body"),
            required=rb.required,
            content_type=rb.content_type,
        )

    response_type = None
    success = endpoint.success_response
    if success is not None and success.type_ref is not None:
        # The response itself is never modelled as absent; a missing body is void.
        ref = TypeReference(type_id=success.type_ref.type_id, primitive=success.type_ref.primitive)
        if not mapper.is_null(ref):
            response_type = reference(ref, where="response")

    by_wire = {p.name: p.ident for p in path_params}
    for text in _missing_path_params(endpoint.path, by_wire):
        warnings.append(f"{endpoint.operation_id}: path parameter {{{text}}} is not declared; bound as a string")
        by_wire[text] = _unique(profile.ident(text, profile.param_case), used_idents)
        path_params.append(
            ParamView(
                name=text,
                ident=by_wire[text],
                type=mapper.primitive(PrimitiveKind.STRING, imports),
                location="path",
                required=True,
            )
        )

    return MethodView(
        name=_unique(mapper.naming.method_name(endpoint.operation_id), used_names),
        operation_id=endpoint.operation_id,
        http_method=endpoint.method.value,
        path=endpoint.path,
        path_expr=profile.path_expression(endpoint.path, by_wire),
        path_params=path_params,
        query_params=query_params,
        header_params=header_params,
        body=body,
        response_type=response_type,
        streaming=endpoint.streaming,
        summary=endpoint.summary,
        description=endpoint.description,
        deprecated=endpoint.deprecated,
        auth=list(endpoint.authentication),
        rate_limit=endpoint.rate_limit,
    )


def build_resource(
    group: ResourceGroup,
    mapper: TypeMapper,
    profile: LanguageProfile,
    warnings: list[str],
    streaming: bool = False,
) -> ResourceView:
    imports: set[str] = set()
    models: set[str] = set()
    used: set[str] = set()
    methods = [build_method(e, mapper, profile, imports, models, used, warnings) for e in group.endpoints]
    imports.update(profile.resource_imports(methods, streaming))
    class_name = pascal_case(group.name) + profile.resource_suffix
    return ResourceView(
        name=group.name,
        class_name=class_name,
        module=profile.resource_module(group.name),
        attr=profile.ident(group.name, profile.attribute_case),
        methods=methods,
        models=sorted(models),
        imports=mapper.import_lines(sorted(imports)),
    )


def build_auth(scheme: AuthScheme, profile: LanguageProfile) -> AuthView:
    view = AuthView(
        id=scheme.id,
        kind=scheme.kind.value,
        class_name=auth_class_name(scheme.id),
        module=profile.auth_module(scheme.id),
        description=scheme.description,
    )
    if isinstance(scheme, ApiKeyAuth):
        view.location = scheme.location.value
        view.param_name = scheme.name
        view.scheme = ""
    elif isinstance(scheme, BearerAuth):
        view.scheme = scheme.scheme[:1].upper() + scheme.scheme[1:] if scheme.scheme else "Bearer"
        view.bearer_format = scheme.bearer_format
    elif isinstance(scheme, OAuth2Auth):
        flow = next((f for f in scheme.flows if f.token_url), scheme.flows[0] if scheme.flows else None)
        if flow is not None:
            view.token_url = flow.token_url or flow.authorization_url
            view.scopes = sorted(flow.scopes)
    else:
        view.scheme = "Basic"
    return view


def build_errors(errors: list[ErrorDefinition], profile: LanguageProfile) -> list[ErrorView]:
    views = []
    used: set[str] = {"Api" + profile.error_suffix, "ApiConnection" + profile.error_suffix}
    for e in errors:
        base = pascal_case(e.name) or pascal_case(e.code) or f"Http{e.status}"
        if base.endswith("Error") and base != "Error":
            base = base[: -len("Error")]
        class_name = _unique(base + profile.error_suffix, used)
        views.append(
            ErrorView(
                code=e.code,
                status=e.status,
                name=e.name,
                class_name=class_name,
                variant=class_name[: -len(profile.error_suffix)],
                description=e.description,
                retryable=e.retryable,
            )
        )
    return views


def retryable_statuses(errors: list[ErrorDefinition]) -> list[int]:
    statuses = set(DEFAULT_RETRYABLE_STATUSES)
    statuses.update(e.status for e in errors if e.retryable)
    return sorted(statuses)


def _missing_path_params(path: str, declared: dict[str, str]) -> list[str]:
    return [text for text, is_param in path_segments(path) if is_param and text not in declared]
