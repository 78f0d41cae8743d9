"""llm-forge CLI: normalize provider schemas, validate IR and generate SDKs."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from llm_forge import __version__

console = Console()

logger = logging.getLogger(__name__)


def _load(path: str) -> dict:
    import yaml

    from llm_forge.normalizers import load_document

    try:
        return load_document(Path(path))
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"  [red]Failed to read {path}:[/] {e}")
        raise SystemExit(1) from None


def _print_issues(errors: list, warnings: list | None = None):
    for e in errors:
        console.print(f"  [red]x[/] {escape(str(e))}")
    for w in warnings or []:
        console.print(f"  [yellow]![/] {escape(str(w))}")


def _canonical(document: dict, provider_id: str | None = None):
    """Return a validated ``CanonicalSchema`` for any supported input document."""
    from llm_forge.errors import SchemaValidationError
    from llm_forge.normalizers import SchemaFormat, detect_schema_format, normalize_schema
    from llm_forge.validator import assert_valid

    if detect_schema_format(document) != SchemaFormat.CANONICAL:
        result = normalize_schema(document, provider_id=provider_id)
        if not result.success:
            console.print("[red]Normalization FAILED:[/]")
            _print_issues(result.errors)
            raise SystemExit(1)
        _print_issues([], result.warnings)
        document = result.schema

    try:
        return assert_valid(document)
    except SchemaValidationError as e:
        console.print("[red]Schema validation FAILED:[/]")
        _print_issues([f"[{i.code}] {i.path or '/'}: {i.message}" for i in e.errors])
        raise SystemExit(1) from None


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
def main(verbose: int):
    """llm-forge: normalize LLM provider APIs and generate client SDKs.

    Provider descriptions (OpenAI-style OpenAPI documents or the compact
    provider format) are normalized into one canonical schema, validated,
    and turned into idiomatic client packages for Python, TypeScript,
    Rust, Go, Java and C#.
    """
    level = logging.WARNING - 10 * min(verbose, 2)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


# ── Normalize ────────────────────────────────────────────────────────


@main.command()
@click.argument("input_path")
@click.option("--output", "-o", default=None, help="Write the canonical schema JSON here instead of stdout")
@click.option("--provider-id", default=None, help="Override the provider id derived from the document")
@click.option("--include-deprecated/--skip-deprecated", default=True, help="Keep deprecated operations")
def normalize(input_path: str, output: str | None, provider_id: str | None, include_deprecated: bool):
    """Normalize an OpenAPI or provider document into the canonical schema.

    INPUT_PATH may be JSON or YAML.
    """
    from llm_forge.ir.codec import dumps_schema
    from llm_forge.normalizers import normalize_schema

    document = _load(input_path)
    result = normalize_schema(document, provider_id=provider_id, include_deprecated=include_deprecated)
    if not result.success:
        console.print(f"[red]Normalization FAILED:[/] {input_path}")
        _print_issues(result.errors)
        raise SystemExit(1)

    text = dumps_schema(result.schema)
    if output is None:
        click.echo(text)
        return

    Path(output).write_text(text + "\n", encoding="utf-8")
    schema = result.schema
    console.print(f"\n[bold blue]llm-forge[/]: normalized {schema.metadata.provider_name}\n")
    console.print(
        f"  {len(schema.types)} type(s), {len(schema.endpoints)} endpoint(s), "
        f"{len(schema.authentication)} auth scheme(s), {len(schema.errors)} error(s)"
    )
    _print_issues([], result.warnings)
    console.print(f"\n[green]Canonical schema written to:[/] {output}")


# ── Validate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("schema_path")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def validate(schema_path: str, as_json: bool):
    """Validate a canonical schema document.

    Runs the structural phase first; semantic checks (references,
    uniqueness, discriminators) only run once the structure is clean.
    """
    from llm_forge.validator import validate_schema

    result = validate_schema(_load(schema_path))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        console.print(f"\n[bold blue]llm-forge[/]: validating {schema_path}\n")
        if result.valid:
            console.print("  [green]v[/] Schema is valid")
        else:
            _print_issues([f"[{i.code}] {i.path or '/'}: {i.message}" for i in result.errors])
            console.print(f"\n[red]{result.summary()}[/]")

    if not result.valid:
        raise SystemExit(1)


# ── Generate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("schema_path")
@click.option("--config", "-c", "config_path", default=None, help="YAML generator configuration")
@click.option(
    "--language",
    "-l",
    "languages",
    multiple=True,
    help="Target language (repeatable); ignored when --config is given",
)
@click.option("--output", "-o", default=None, help="Output directory (overrides the configuration)")
@click.option("--package-name", default=None, help="Package name; defaults to the provider id")
@click.option("--workers", default=4, show_default=True, help="Languages generated in parallel")
@click.option("--dry-run", is_flag=True, help="Generate but do not write any files")
def generate(
    schema_path: str,
    config_path: str | None,
    languages: tuple,
    output: str | None,
    package_name: str | None,
    workers: int,
    dry_run: bool,
):
    """Generate client SDKs from a schema.

    SCHEMA_PATH may be a canonical schema or any document the normalizers
    understand; it is normalized and validated first.
    """
    from llm_forge.config import GeneratorConfig, load_config
    from llm_forge.errors import ConfigError
    from llm_forge.generator import generate_all, write_files
    from llm_forge.mappers import LANGUAGES

    console.print(f"\n[bold blue]llm-forge[/]: generating from {schema_path}\n")
    schema = _canonical(_load(schema_path))

    try:
        if config_path:
            configs = load_config(config_path)
        else:
            configs = [GeneratorConfig(language=lang) for lang in (languages or LANGUAGES)]
    except (ConfigError, OSError) as e:
        console.print(f"[red]Invalid configuration:[/] {e}")
        raise SystemExit(1) from None
    for config in configs:
        if output:
            config.output_dir = output
        if package_name:
            config.package_name = package_name

    report = generate_all(schema, configs, max_workers=workers)

    table = Table(title=f"Generated packages ({len(report.results)})")
    table.add_column("Language", style="cyan")
    table.add_column("Package")
    table.add_column("Files", justify="right")
    table.add_column("Warnings", justify="right", style="yellow")
    table.add_column("Output")

    roots = {c.language: c.output_dir for c in configs}
    for language, result in report.results.items():
        where = "-" if dry_run else str(Path(roots[language]) / language)
        if not dry_run:
            write_files(result, roots[language])
        table.add_row(
            language,
            result.metadata.package_name,
            str(len(result.files)),
            str(len(result.warnings)),
            where,
        )
    console.print(table)

    for result in report.results.values():
        for w in result.warnings:
            console.print(f"  [yellow]![/] {escape(f'[{result.language}] {w}')}")
    for language, error in sorted(report.errors.items()):
        console.print(f"  [red]x[/] {escape(f'[{language}] {error}')}")

    if report.results and not dry_run:
        lines = []
        for language, steps in report.build_instructions().items():
            lines.append(f"[bold]{language}[/] (cd {Path(roots[language]) / language})")
            lines.extend(f"  {step}" for step in steps)
        console.print(Panel("\n".join(lines), title="Next steps"))

    if not report.success:
        console.print(f"\n[red]{report.summary()}[/]")
        raise SystemExit(1)
    console.print(f"\n[green]{report.summary()}[/]")


# ── Responses ────────────────────────────────────────────────────────


@main.command(name="parse-response")
@click.argument("response_path")
@click.option("--provider", "-p", default=None, help="Provider id; detected from the payload when omitted")
@click.option("--json", "as_json", is_flag=True, help="Print the unified response as JSON")
def parse_response(response_path: str, provider: str | None, as_json: bool):
    """Normalize a provider response into the unified shape.

    RESPONSE_PATH holds one JSON response object, or a JSON array of
    stream chunks that are accumulated into a single response.
    """
    from dataclasses import asdict

    from llm_forge.responses import Provider, StreamAccumulator, default_registry

    try:
        raw = json.loads(Path(response_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"  [red]Failed to read {response_path}:[/] {e}")
        raise SystemExit(1) from None

    if provider is not None and provider not in {p.value for p in Provider}:
        console.print(f"[red]Unknown provider:[/] {provider}")
        raise SystemExit(1)

    registry = default_registry()
    warnings: list[str] = []
    if isinstance(raw, list):
        if provider is None and raw:
            detected = registry.detect(raw[0])
            provider = detected.provider.value if detected else None
        acc = StreamAccumulator()
        for i, chunk in enumerate(raw):
            result = registry.normalize_chunk(chunk, provider=provider)
            if not result.success:
                console.print(f"[red]Chunk {i} FAILED:[/]")
                _print_issues(result.errors)
                raise SystemExit(1)
            warnings.extend(result.warnings)
            acc.add(result.response)
        try:
            response = acc.finish()
        except ValueError as e:
            console.print(f"[red]{e}[/]")
            raise SystemExit(1) from None
    else:
        result = registry.normalize(raw, provider=provider)
        if not result.success:
            console.print("[red]Normalization FAILED:[/]")
            _print_issues(result.errors)
            raise SystemExit(1)
        warnings.extend(result.warnings)
        response = result.response

    if as_json:
        data = asdict(response)
        data.pop("raw", None)
        click.echo(json.dumps(data, indent=2, default=lambda v: getattr(v, "value", str(v))))
        return

    usage = response.usage
    body = "\n".join(
        [
            f"[bold]Provider:[/] {response.provider.value}",
            f"[bold]Model:[/] {response.model.id}",
            f"[bold]Stop reason:[/] {response.stop_reason.value}",
            f"[bold]Usage:[/] {usage.input_tokens} in / {usage.output_tokens} out / {usage.total_tokens} total",
            "",
            response.text or "[dim](no text content)[/]",
        ]
    )
    console.print(Panel(body, title=response.id or "response"))
    if response.error is not None:
        console.print(f"  [red]x[/] {response.error.code}: {response.error.message}")
    _print_issues([], warnings)


@main.command()
def providers():
    """List the providers the response normalizer understands."""
    from llm_forge.responses import default_registry

    registry = default_registry()
    table = Table(title=f"Providers ({len(registry.providers())})")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Base URL")
    table.add_column("Streaming", justify="center")
    table.add_column("Tools", justify="center")
    table.add_column("Vision", justify="center")

    def mark(flag: bool) -> str:
        return "[green]Y[/]" if flag else "[red]N[/]"

    for provider in registry.providers():
        meta = registry.get(provider).metadata
        caps = meta.capabilities
        table.add_row(
            provider.value,
            meta.name,
            meta.base_url,
            mark(caps.streaming),
            mark(caps.tool_use or caps.function_calling),
            mark(caps.vision),
        )
    console.print(table)


@main.command()
@click.option("--provider", "-p", default=None, help="Only models served by this provider")
@click.option("--capability", default=None, help="Only models with this capability, e.g. vision")
@click.option("--min-context", type=int, default=None, help="Minimum context window in tokens")
@click.option("--include-deprecated", is_flag=True, help="Also list deprecated models")
def models(provider, capability, min_context, include_deprecated):
    """List known models and their limits."""
    from llm_forge.responses import Provider, search_models

    try:
        wanted = Provider(provider) if provider else None
    except ValueError:
        console.print(f"  [red]Unknown provider:[/] {escape(provider)}")
        raise SystemExit(1) from None
    found = search_models(
        provider=wanted,
        capability=capability,
        min_context_window=min_context,
        deprecated=None if include_deprecated else False,
    )
    table = Table(title=f"Models ({len(found)})")
    table.add_column("Id", style="cyan")
    table.add_column("Provider")
    table.add_column("Context", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Capabilities")
    table.add_column("$/1M out", justify="right")
    for m in found:
        price = m.pricing.output_per_1m if m.pricing else None
        table.add_row(
            escape(m.id) + (" [dim](deprecated)[/]" if m.deprecated else ""),
            m.provider.value,
            f"{m.context_window:,}" if m.context_window else "-",
            f"{m.max_output_tokens:,}" if m.max_output_tokens else "-",
            ", ".join(m.capabilities),
            f"{price:g}" if price is not None else "-",
        )
    console.print(table)


if __name__ == "__main__":
    main()
