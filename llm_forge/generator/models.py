"""Records produced by the code generation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FileKind(Enum):
    SOURCE = "source"
    TEST = "test"
    CONFIG = "config"
    DOC = "doc"


@dataclass
class GeneratedFile:
    """One output file; ``path`` is relative to the package root."""

    path: str
    content: str
    kind: FileKind = FileKind.SOURCE


@dataclass
class PackageMetadata:
    package_name: str
    version: str
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)


@dataclass
class GenerationResult:
    """Everything one engine run produced for a single language.

    ``generated_at`` is the only value that differs between two runs over
    the same schema and config; file contents never embed it.
    """

    language: str
    files: list[GeneratedFile]
    metadata: PackageMetadata
    warnings: list[str] = field(default_factory=list)
    generated_at: str | None = None

    def get_file(self, path: str) -> GeneratedFile | None:
        for f in self.files:
            if f.path == path:
                return f
        return None

    def files_of_kind(self, kind: FileKind) -> list[GeneratedFile]:
        return [f for f in self.files if f.kind == kind]

    def summary(self) -> str:
        counts = ", ".join(f"{len(self.files_of_kind(k))} {k.value}" for k in FileKind)
        return f"[{self.language}] {len(self.files)} file(s) ({counts}), {len(self.warnings)} warning(s)"
