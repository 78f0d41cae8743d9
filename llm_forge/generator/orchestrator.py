"""Run code generation for several target languages and write the results.

``generate_all`` fans the per-language engines out over a thread pool.
The schema is shared read-only; each engine builds its own mapper and view
objects, so workers never touch common mutable state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from llm_forge.config import GeneratorConfig
from llm_forge.errors import ForgeError
from llm_forge.generator.engine import CodeGenerationEngine
from llm_forge.generator.models import GenerationResult
from llm_forge.ir.models import CanonicalSchema

logger = logging.getLogger(__name__)


@dataclass
class OrchestrationReport:
    """Per-language outcome of one ``generate_all`` call."""

    results: dict[str, GenerationResult] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def total_files(self) -> int:
        return sum(len(r.files) for r in self.results.values())

    @property
    def total_warnings(self) -> int:
        return sum(len(r.warnings) for r in self.results.values())

    def build_instructions(self) -> dict[str, list[str]]:
        """Commands to build and test each generated package, by language."""
        return {
            language: [f"{name}: {command}" for name, command in result.metadata.scripts.items()]
            for language, result in self.results.items()
        }

    def summary(self) -> str:
        status = "OK" if self.success else "FAILED"
        line = f"{status}: {len(self.results)} language(s), {self.total_files} file(s), {self.total_warnings} warning(s)"
        if self.errors:
            line += f", {len(self.errors)} failure(s): " + ", ".join(sorted(self.errors))
        return line


def _generate_one(schema: CanonicalSchema, config: GeneratorConfig) -> GenerationResult:
    return CodeGenerationEngine(schema, config).generate()


def generate_all(
    schema: CanonicalSchema,
    configs: list[GeneratorConfig],
    max_workers: int = 4,
) -> OrchestrationReport:
    """Generate one package per config, concurrently.

    A language that fails with a ``ForgeError`` (for example an unsupported
    construct) is recorded in ``report.errors`` and does not stop the others.
    Any other exception propagates.
    """
    report = OrchestrationReport()
    if not configs:
        return report

    languages = [c.language for c in configs]
    duplicates = sorted({lang for lang in languages if languages.count(lang) > 1})
    if duplicates:
        logger.warning("Several configs target %s; the last one wins", ", ".join(duplicates))

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(configs)))) as pool:
        futures = [(config.language, pool.submit(_generate_one, schema, config)) for config in configs]
        for language, future in futures:
            try:
                report.results[language] = future.result()
            except ForgeError as e:
                logger.error("[%s] generation failed: %s", language, e)
                report.errors[language] = str(e)

    logger.info("%s", report.summary())
    return report


def write_files(result: GenerationResult, root: str | Path) -> list[Path]:
    """Write every file of ``result`` under ``root/<language>/``.

    Returns:
        The written paths, in result order.

    Raises:
        ForgeError: If a file path would escape the output directory.
    """
    base = (Path(root) / result.language).resolve()
    written: list[Path] = []
    for f in result.files:
        target = (base / f.path).resolve()
        if base != target and base not in target.parents:
            raise ForgeError(f"Refusing to write outside {base}: {f.path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(f.content, encoding="utf-8")
        written.append(target)
    logger.debug("[%s] wrote %d file(s) under %s", result.language, len(written), base)
    return written
