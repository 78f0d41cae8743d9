"""Per-language packaging rules: file layout, dependencies and identifiers.

Each profile maps a file *role* (``type``, ``client``, ``manifest``, ...)
to a path pattern and, by convention, to the template
``<language>/<role>.j2``. A role whose pattern is missing is not emitted
for that language.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field

from llm_forge.config import GeneratorConfig
from llm_forge.generator.resources import path_segments
from llm_forge.ir.models import CanonicalSchema
from llm_forge.mappers.naming import (
    KEYWORDS,
    camel_case,
    escape_keyword,
    flat_case,
    kebab_case,
    pascal_case,
    snake_case,
)


@dataclass(frozen=True)
class LanguageProfile:
    language: str
    comment: str
    paths: dict[str, str]
    # identifier transforms
    param_case: Callable[[str], str]
    attribute_case: Callable[[str], str]
    type_module: Callable[[str], str]
    auth_module: Callable[[str], str]
    resource_module: Callable[[str], str]
    path_expression: Callable[[str, dict[str, str]], str]
    resource_suffix: str = "Resource"
    error_suffix: str = "Error"
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)
    install: str = ""
    # extra config files: path pattern -> template role
    extras: dict[str, str] = field(default_factory=dict)
    # imports a resource module needs beyond its type references
    resource_imports: Callable[[list, bool], set[str]] = lambda methods, streaming: set()

    def identity(self, config: GeneratorConfig, schema: CanonicalSchema) -> dict[str, str]:
        """Names that path patterns and templates are formatted with."""
        raw = config.package_name or schema.metadata.provider_id
        ids = {
            "raw": raw,
            "pkg": snake_case(raw) or "client",
            "dist": kebab_case(raw) or "client",
            "flat": flat_case(raw) or "client",
            "client": pascal_case(schema.metadata.provider_name or raw) + "Client",
        }
        if self.language == "go":
            ids["module"] = config.options.get("module_path") or f"example.com/{ids['dist']}"
        elif self.language == "java":
            group = config.options.get("group_id", "com.example")
            ids["group"] = group
            ids["pkg"] = f"{group}.{ids['flat']}"
            ids["pkg_dir"] = ids["pkg"].replace(".", "/")
        elif self.language == "csharp":
            ids["ns"] = ".".join(pascal_case(w) for w in kebab_case(raw).split("-")) or "Client"
        if ids["client"] == "Client":
            ids["client"] = pascal_case(raw) + "Client"
        return ids

    def path(self, role: str, ids: dict[str, str], module: str = "") -> str | None:
        pattern = self.paths.get(role)
        if pattern is None:
            return None
        return pattern.format(module=module, **ids)

    def ident(self, name: str, case: Callable[[str], str]) -> str:
        return escape_keyword(case(name) or "value", self.language)


def auth_class_name(scheme_id: str) -> str:
    name = pascal_case(scheme_id) or "Custom"
    return name if name.endswith("Auth") else f"{name}Auth"


def _module(language: str) -> Callable[[str], str]:
    """snake_case module names, with reserved words suffixed by an underscore."""

    def name(value: str) -> str:
        module = snake_case(value) or "root"
        return f"{module}_" if module in KEYWORDS[language] else module

    return name


# -- Path expressions ---------------------------------------------------


def _python_path(path: str, params: dict[str, str]) -> str:
    pieces = path_segments(path)
    if not any(is_param for _, is_param in pieces):
        return repr(path)
    body = "".join(
        f"{{quote(str({params[text]}), safe='')}}" if is_param else text.replace("{", "{{").replace("}", "}}")
        for text, is_param in pieces
    )
    return f'f"{body}"'


def _typescript_path(path: str, params: dict[str, str]) -> str:
    pieces = path_segments(path)
    if not any(is_param for _, is_param in pieces):
        return json.dumps(path)
    body = "".join(
        f"${{encodeURIComponent(String({params[text]}))}}" if is_param else text.replace("`", "\\`")
        for text, is_param in pieces
    )
    return f"`{body}`"


def _rust_path(path: str, params: dict[str, str]) -> str:
    pieces = path_segments(path)
    if not any(is_param for _, is_param in pieces):
        return f"{json.dumps(path)}.to_string()"
    fmt = "".join("{}" if is_param else text.replace("{", "{{").replace("}", "}}") for text, is_param in pieces)
    args = ", ".join(f"encode_path(&param_value(&{params[text]}))" for text, is_param in pieces if is_param)
    return f"format!({json.dumps(fmt)}, {args})"


def _concat_path(escape: str) -> Callable[[str, dict[str, str]], str]:
    def render(path: str, params: dict[str, str]) -> str:
        parts = [escape.format(params[text]) if is_param else json.dumps(text) for text, is_param in path_segments(path)]
        return " + ".join(parts) or '""'

    return render


def _csharp_path(path: str, params: dict[str, str]) -> str:
    pieces = path_segments(path)
    if not any(is_param for _, is_param in pieces):
        return json.dumps(path)
    body = "".join(
        f"{{Uri.EscapeDataString(Convert.ToString({params[text]}, CultureInfo.InvariantCulture) ?? string.Empty)}}"
        if is_param
        else text.replace("{", "{{").replace("}", "}}").replace('"', '\\"')
        for text, is_param in pieces
    )
    return f'$"{body}"'


# -- Resource imports ---------------------------------------------------


def _streams(methods: list, streaming: bool) -> list:
    return [m for m in methods if m.streaming] if streaming else []


def _python_imports(methods: list, streaming: bool) -> set[str]:
    out = {"typing.TYPE_CHECKING"}
    if any(m.path_params for m in methods):
        out.add("urllib.parse.quote")
    streams = _streams(methods, streaming)
    if streams:
        out.add("collections.abc.Iterator")
    if any(m.response_type is None for m in streams):
        out.add("typing.Any")
    return out


def _go_imports(methods: list, streaming: bool) -> set[str]:
    out = {"context", "net/http"}
    if any(m.path_params or m.query_params or m.header_params for m in methods):
        out.add("fmt")
    if any(m.path_params or m.query_params for m in methods):
        out.add("net/url")
    return out


def _java_imports(methods: list, streaming: bool) -> set[str]:
    out = {"com.fasterxml.jackson.core.type.TypeReference", "java.util.LinkedHashMap", "java.util.Map"}
    if _streams(methods, streaming):
        out.add("java.util.stream.Stream")
    return out


def _csharp_imports(methods: list, streaming: bool) -> set[str]:
    out = {"System.Collections.Generic", "System.Net.Http", "System.Threading", "System.Threading.Tasks"}
    if any(m.path_params for m in methods):
        out.update(("System", "System.Globalization"))
    streams = _streams(methods, streaming)
    if streams:
        out.add("System.Runtime.CompilerServices")
    if any(m.response_type is None for m in streams):
        out.add("System.Text.Json")
    return out


# -- Profiles -----------------------------------------------------------

PYTHON = LanguageProfile(
    language="python",
    comment="#",
    paths={
        "type": "{pkg}/types/{module}.py",
        "type_index": "{pkg}/types/__init__.py",
        "errors": "{pkg}/errors.py",
        "auth": "{pkg}/auth/{module}.py",
        "auth_index": "{pkg}/auth/__init__.py",
        "resource": "{pkg}/resources/{module}.py",
        "resource_index": "{pkg}/resources/__init__.py",
        "client": "{pkg}/client.py",
        "package_index": "{pkg}/__init__.py",
        "retry": "{pkg}/retry.py",
        "rate_limit": "{pkg}/rate_limit.py",
        "streaming": "{pkg}/streaming.py",
        "manifest": "pyproject.toml",
        "test": "tests/test_client.py",
        "example": "examples/quickstart.py",
    },
    param_case=snake_case,
    attribute_case=snake_case,
    type_module=_module("python"),
    auth_module=_module("python"),
    resource_module=_module("python"),
    path_expression=_python_path,
    resource_imports=_python_imports,
    dependencies={"httpx": ">=0.27", "pydantic": ">=2.6"},
    dev_dependencies={"pytest": ">=8.0", "respx": ">=0.21"},
    scripts={"build": "python -m build", "test": "pytest", "publish": "twine upload dist/*"},
    install="pip install {dist}",
)

TYPESCRIPT = LanguageProfile(
    language="typescript",
    comment="//",
    paths={
        "type": "src/types/{module}.ts",
        "type_index": "src/types/index.ts",
        "errors": "src/errors.ts",
        "auth": "src/auth/{module}.ts",
        "auth_index": "src/auth/index.ts",
        "resource": "src/resources/{module}.ts",
        "resource_index": "src/resources/index.ts",
        "client": "src/client.ts",
        "package_index": "src/index.ts",
        "retry": "src/retry.ts",
        "rate_limit": "src/rate-limit.ts",
        "streaming": "src/streaming.ts",
        "manifest": "package.json",
        "test": "test/client.test.ts",
        "example": "examples/quickstart.ts",
    },
    param_case=camel_case,
    attribute_case=camel_case,
    type_module=kebab_case,
    auth_module=kebab_case,
    resource_module=kebab_case,
    path_expression=_typescript_path,
    dev_dependencies={"@types/node": "^20.12.0", "typescript": "^5.4.0", "vitest": "^1.6.0"},
    scripts={"build": "tsc -p tsconfig.json", "test": "vitest run", "publish": "npm publish"},
    install="npm install {dist}",
    extras={"tsconfig.json": "tsconfig"},
)

RUST = LanguageProfile(
    language="rust",
    comment="//",
    paths={
        "type": "src/types/{module}.rs",
        "type_index": "src/types/mod.rs",
        "errors": "src/error.rs",
        "auth": "src/auth/{module}.rs",
        "auth_index": "src/auth/mod.rs",
        "resource": "src/resources/{module}.rs",
        "resource_index": "src/resources/mod.rs",
        "client": "src/client.rs",
        "package_index": "src/lib.rs",
        "retry": "src/retry.rs",
        "rate_limit": "src/rate_limit.rs",
        "streaming": "src/streaming.rs",
        "manifest": "Cargo.toml",
        "test": "tests/client.rs",
        "example": "examples/quickstart.rs",
    },
    param_case=snake_case,
    attribute_case=snake_case,
    type_module=_module("rust"),
    auth_module=_module("rust"),
    resource_module=_module("rust"),
    path_expression=_rust_path,
    dependencies={
        "futures-util": '"0.3"',
        "regex": '"1"',
        "reqwest": '{ version = "0.12", default-features = false, features = ["json", "stream", "rustls-tls"] }',
        "serde": '{ version = "1", features = ["derive"] }',
        "serde_json": '"1"',
        "serde_repr": '"0.1"',
        "thiserror": '"1"',
        "tokio": '{ version = "1", features = ["time", "sync"] }',
    },
    dev_dependencies={"tokio": '{ version = "1", features = ["macros", "rt-multi-thread"] }'},
    scripts={"build": "cargo build", "test": "cargo test", "publish": "cargo publish"},
    install="cargo add {dist}",
)

GO = LanguageProfile(
    language="go",
    comment="//",
    paths={
        "type": "model_{module}.go",
        "errors": "errors.go",
        "auth": "auth_{module}.go",
        "resource": "service_{module}.go",
        "client": "client.go",
        "retry": "retry.go",
        "rate_limit": "rate_limit.go",
        "streaming": "streaming.go",
        "manifest": "go.mod",
        "test": "client_test.go",
        "example": "examples/quickstart/main.go",
    },
    param_case=camel_case,
    attribute_case=pascal_case,
    type_module=snake_case,
    auth_module=snake_case,
    resource_module=snake_case,
    path_expression=_concat_path("url.PathEscape(fmt.Sprint({}))"),
    resource_imports=_go_imports,
    resource_suffix="Service",
    scripts={"build": "go build ./...", "test": "go test ./...", "publish": "git tag v$VERSION && git push --tags"},
    install="go get {module}",
)

JAVA = LanguageProfile(
    language="java",
    comment="//",
    paths={
        "type": "src/main/java/{pkg_dir}/model/{module}.java",
        "errors": "src/main/java/{pkg_dir}/ApiException.java",
        "auth": "src/main/java/{pkg_dir}/auth/{module}.java",
        "auth_index": "src/main/java/{pkg_dir}/auth/AuthHandler.java",
        "resource": "src/main/java/{pkg_dir}/resources/{module}.java",
        "client": "src/main/java/{pkg_dir}/{client}.java",
        "retry": "src/main/java/{pkg_dir}/RetryPolicy.java",
        "rate_limit": "src/main/java/{pkg_dir}/RateLimiter.java",
        "streaming": "src/main/java/{pkg_dir}/ServerSentEvents.java",
        "manifest": "pom.xml",
        "test": "src/test/java/{pkg_dir}/ClientTest.java",
        "example": "examples/Quickstart.java",
    },
    param_case=camel_case,
    attribute_case=camel_case,
    type_module=str,
    auth_module=auth_class_name,
    resource_module=lambda group: pascal_case(group) + "Resource",
    path_expression=_concat_path("pathParam({})"),
    resource_imports=_java_imports,
    error_suffix="Exception",
    dependencies={
        "com.fasterxml.jackson.core:jackson-databind": "2.17.1",
        "jakarta.validation:jakarta.validation-api": "3.0.2",
        "org.jspecify:jspecify": "1.0.0",
    },
    dev_dependencies={"org.junit.jupiter:junit-jupiter": "5.10.2"},
    scripts={"build": "mvn -B package", "test": "mvn -B test", "publish": "mvn -B deploy"},
    install="<dependency>{group}:{dist}</dependency>",
)

CSHARP = LanguageProfile(
    language="csharp",
    comment="//",
    paths={
        "type": "src/{ns}/Models/{module}.cs",
        "errors": "src/{ns}/Errors.cs",
        "auth": "src/{ns}/Auth/{module}.cs",
        "auth_index": "src/{ns}/Auth/IAuthHandler.cs",
        "resource": "src/{ns}/Resources/{module}.cs",
        "client": "src/{ns}/{client}.cs",
        "retry": "src/{ns}/RetryPolicy.cs",
        "rate_limit": "src/{ns}/RateLimiter.cs",
        "streaming": "src/{ns}/ServerSentEvents.cs",
        "manifest": "src/{ns}/{ns}.csproj",
        "test": "tests/{ns}.Tests/ClientTests.cs",
        "example": "examples/Quickstart.cs",
    },
    param_case=camel_case,
    attribute_case=pascal_case,
    type_module=str,
    auth_module=auth_class_name,
    resource_module=lambda group: pascal_case(group) + "Resource",
    path_expression=_csharp_path,
    resource_imports=_csharp_imports,
    dev_dependencies={
        "Microsoft.NET.Test.Sdk": "17.10.0",
        "xunit": "2.8.0",
        "xunit.runner.visualstudio": "2.8.0",
    },
    scripts={"build": "dotnet build", "test": "dotnet test", "publish": "dotnet pack -c Release"},
    install="dotnet add package {ns}",
    extras={"tests/{ns}.Tests/{ns}.Tests.csproj": "test_project"},
)

PROFILES: dict[str, LanguageProfile] = {
    p.language: p for p in (PYTHON, TYPESCRIPT, RUST, GO, JAVA, CSHARP)
}


def get_profile(language: str) -> LanguageProfile:
    try:
        return PROFILES[language]
    except KeyError:
        raise ValueError(f"No generation profile for language {language!r}") from None
