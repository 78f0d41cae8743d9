"""Grouping of endpoints into client resources."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from llm_forge.ir.models import EndpointDefinition

_VERSION_SEGMENT = re.compile(r"^v\d+(\.\d+)*$", re.IGNORECASE)
_PATH_PARAM = re.compile(r"\{([^}]+)\}")

ROOT_RESOURCE = "root"


@dataclass
class ResourceGroup:
    name: str
    endpoints: list[EndpointDefinition] = field(default_factory=list)


def resource_key(path: str) -> str:
    """Return the resource name for ``path``.

    The first literal segment wins; version segments (``v1``, ``v2.1``)
    and path parameters are skipped. ``/v1/{id}`` falls back to ``root``.
    """
    for segment in path.strip("/").split("/"):
        if not segment or _VERSION_SEGMENT.match(segment) or _PATH_PARAM.search(segment):
            continue
        return segment
    return ROOT_RESOURCE


def group_endpoints(endpoints: list[EndpointDefinition]) -> list[ResourceGroup]:
    """Group endpoints by resource, sorted by resource name.

    Endpoints keep their schema order inside a group.
    """
    grouped: dict[str, list[EndpointDefinition]] = {}
    for endpoint in endpoints:
        grouped.setdefault(resource_key(endpoint.path), []).append(endpoint)
    return [ResourceGroup(name=name, endpoints=grouped[name]) for name in sorted(grouped)]


def path_segments(path: str) -> list[tuple[str, bool]]:
    """Split ``path`` into ``(text, is_parameter)`` pieces.

    ``"/users/{id}/posts"`` -> ``[("/users/", False), ("id", True), ("/posts", False)]``
    """
    pieces: list[tuple[str, bool]] = []
    pos = 0
    for match in _PATH_PARAM.finditer(path):
        if match.start() > pos:
            pieces.append((path[pos : match.start()], False))
        pieces.append((match.group(1), True))
        pos = match.end()
    if pos < len(path):
        pieces.append((path[pos:], False))
    return pieces
