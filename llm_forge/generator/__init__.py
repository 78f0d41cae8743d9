"""Code generation: canonical schema + config -> per-language client packages."""

from llm_forge.generator.engine import CodeGenerationEngine
from llm_forge.generator.models import FileKind, GeneratedFile, GenerationResult, PackageMetadata
from llm_forge.generator.orchestrator import OrchestrationReport, generate_all, write_files
from llm_forge.generator.resources import group_endpoints, resource_key

__all__ = [
    "CodeGenerationEngine",
    "FileKind",
    "GeneratedFile",
    "GenerationResult",
    "OrchestrationReport",
    "PackageMetadata",
    "generate_all",
    "group_endpoints",
    "resource_key",
    "write_files",
]
