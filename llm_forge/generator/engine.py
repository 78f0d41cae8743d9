"""Code generation engine: canonical schema + config -> file records.

The engine renders, in a fixed order, type declarations, the error
hierarchy, one auth handler per scheme, one module per resource, the
top-level client, the optional utilities, and finally the manifest,
README, tests and examples. It never touches the filesystem; writing the
records out is the caller's job (see ``orchestrator.write_files``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from llm_forge.config import GeneratorConfig
from llm_forge.generator.models import FileKind, GeneratedFile, GenerationResult, PackageMetadata
from llm_forge.generator.profiles import LanguageProfile, get_profile
from llm_forge.generator.resources import group_endpoints
from llm_forge.generator.templates import GENERATED_NOTICE, render
from llm_forge.generator.views import (
    MethodView,
    ResourceView,
    TypeView,
    build_auth,
    build_errors,
    build_resource,
    retryable_statuses,
)
from llm_forge.ir.models import CanonicalSchema
from llm_forge.mappers import get_mapper

logger = logging.getLogger(__name__)

LANGUAGE_TITLES = {
    "python": "Python",
    "typescript": "TypeScript",
    "rust": "Rust",
    "go": "Go",
    "java": "Java",
    "csharp": "C#",
}


class CodeGenerationEngine:
    """Generate one client package for ``config.language``.

    The schema is only read, so several engines (one per language) can run
    over the same schema at once.
    """

    def __init__(self, schema: CanonicalSchema, config: GeneratorConfig):
        self.schema = schema
        self.config = config
        self.profile: LanguageProfile = get_profile(config.language)
        self.mapper = get_mapper(config.language, schema)
        self.features = config.features.resolve(schema)
        self.ids = self.profile.identity(config, schema)

    def generate(self) -> GenerationResult:
        """Render every file for this language.

        Returns:
            A ``GenerationResult`` whose files are in stage order. Rendering
            the same schema and config twice yields identical files.

        Raises:
            UnsupportedConstructError: If a type cannot be represented in
                the target language.
        """
        files: list[GeneratedFile] = []
        warnings: list[str] = []
        language = self.config.language
        ctx = self._base_context()

        def emit(role: str, kind: FileKind = FileKind.SOURCE, module: str = "", **extra: Any) -> None:
            path = self.profile.path(role, self.ids, module)
            if path is None:
                return
            content = render(f"{language}/{role}.j2", **{**ctx, **extra})
            files.append(GeneratedFile(path=path, content=content, kind=kind))

        # Step 1: one declaration per object, enum and union type
        types = self._type_views()
        ctx["types"] = types
        for view in types:
            emit("type", module=view.module, t=view)
        emit("type_index")
        logger.debug("[%s] rendered %d type declaration(s)", language, len(types))

        # Step 2: error hierarchy
        ctx["errors"] = build_errors(self.schema.errors, self.profile)
        ctx["retryable_statuses"] = retryable_statuses(self.schema.errors)
        emit("errors")

        # Step 3: one auth handler per scheme
        ctx["auth_schemes"] = [build_auth(s, self.profile) for s in self.schema.authentication]
        for auth in ctx["auth_schemes"]:
            emit("auth", module=auth.module, auth=auth)
        emit("auth_index")

        # Step 4: resources
        resources = [
            build_resource(group, self.mapper, self.profile, warnings, self.features.include_streaming)
            for group in group_endpoints(self.schema.endpoints)
        ]
        ctx["resources"] = resources
        ctx["example_method"] = _example_method(resources)
        for resource in resources:
            emit("resource", module=resource.module, resource=resource)
        emit("resource_index")
        logger.debug("[%s] rendered %d resource(s)", language, len(resources))

        # Step 5: client
        emit("client")
        emit("package_index")

        # Step 6: optional utilities
        if self.features.include_retry:
            emit("retry")
        if self.features.include_rate_limiting:
            emit("rate_limit")
        if self.features.include_streaming:
            emit("streaming")

        # Step 7: packaging, docs, tests, examples
        emit("manifest", FileKind.CONFIG)
        for pattern, role in sorted(self.profile.extras.items()):
            if role.startswith("test") and not self.features.generate_tests:
                continue
            files.append(
                GeneratedFile(
                    path=pattern.format(**self.ids),
                    content=render(f"{language}/{role}.j2", **ctx),
                    kind=FileKind.CONFIG,
                )
            )
        if self.features.generate_docs:
            usage = render(f"{language}/example.j2", **{**ctx, "header": ""})
            files.append(
                GeneratedFile(path="README.md", content=render("common/README.md.j2", **ctx, usage=usage), kind=FileKind.DOC)
            )
        if self.features.generate_tests:
            emit("test", FileKind.TEST)
        if self.features.generate_examples:
            emit("example")

        result = GenerationResult(
            language=language,
            files=files,
            metadata=ctx["metadata"],
            warnings=warnings,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info("%s", result.summary())
        return result

    # -- Context -----------------------------------------------------------

    def _base_context(self) -> dict[str, Any]:
        meta = self.schema.metadata
        rate_limits = [
            {"operation_id": e.operation_id, "requests": e.rate_limit.requests, "window": e.rate_limit.window_seconds}
            for e in self.schema.endpoints
            if e.rate_limit is not None
        ]
        return {
            "language": self.config.language,
            "language_title": LANGUAGE_TITLES[self.config.language],
            "header": f"{self.profile.comment} {GENERATED_NOTICE}",
            "ids": self.ids,
            "client_name": self.ids["client"],
            "provider_id": meta.provider_id,
            "provider_name": meta.provider_name,
            "api_version": meta.api_version or "",
            "base_url": self.config.options.get("base_url") or meta.base_url or "",
            "version": self.config.version,
            "license": self.config.license,
            "author": self.config.author or "",
            "timeout": self.config.timeout,
            "max_retries": self.config.max_retries,
            "features": self.features,
            "rate_limits": rate_limits,
            "streaming": self.features.include_streaming,
            "profile": self.profile,
            "metadata": self._metadata(),
            "types": [],
            "errors": [],
            "retryable_statuses": [],
            "auth_schemes": [],
            "resources": [],
            "example_method": None,
        }

    def _metadata(self) -> PackageMetadata:
        names = {
            "python": self.ids["dist"],
            "typescript": self.ids["dist"],
            "rust": self.ids["dist"],
            "go": self.ids.get("module", ""),
            "java": f"{self.ids.get('group', '')}:{self.ids['dist']}",
            "csharp": self.ids.get("ns", ""),
        }
        return PackageMetadata(
            package_name=names[self.config.language],
            version=self.config.version,
            dependencies=dict(self.profile.dependencies),
            dev_dependencies=dict(self.profile.dev_dependencies),
            scripts=dict(self.profile.scripts),
        )

    def _type_views(self) -> list[TypeView]:
        views: list[TypeView] = []
        by_name: dict[str, TypeView] = {}
        deps: dict[str, list[str]] = {}
        modules: set[str] = set()
        for t in self.mapper.declared_types():
            mapped = self.mapper.map_type(t)
            module = self.profile.type_module(mapped.name)
            base, n = module, 2
            while module in modules:
                module = f"{base}{n}"
                n += 1
            modules.add(module)
            view = TypeView(
                name=mapped.name,
                module=module,
                kind=t.kind.value,
                code=mapped.code,
                imports=self.mapper.import_lines(mapped.imports + self._deferred_imports(t, mapped)),
            )
            views.append(view)
            by_name[mapped.name] = view
            deps[mapped.name] = mapped.dependencies
        for view in views:
            view.dependencies = [by_name[name] for name in deps[view.name] if name in by_name]
        return views

    def _deferred_imports(self, t, mapped) -> list[str]:
        # Python models import their dependencies for type checking only and
        # are rebuilt by the package index, which breaks import cycles.
        if self.config.language == "python" and mapped.dependencies and t.kind.value != "union":
            return ["typing.TYPE_CHECKING"]
        return []


def _example_method(resources: list[ResourceView]) -> tuple[ResourceView, MethodView] | None:
    """First method callable without arguments, for README and example code."""
    for resource in resources:
        for method in resource.methods:
            if method.path_params or method.required_params or (method.body and method.body.required):
                continue
            return resource, method
    return None
