"""References into Clout documents: capabilities on vertexes and outgoing edges."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


class CloutLookupError(LookupError):
    """Raised when a referenced element is missing from a Clout."""


def _vertex(clout: Mapping[str, Any], vertex_id: str) -> Mapping[str, Any]:
    vertexes = clout.get("vertexes") if isinstance(clout, Mapping) else None
    if isinstance(vertexes, Mapping) and vertex_id in vertexes:
        vertex = vertexes[vertex_id]
        if isinstance(vertex, Mapping):
            return vertex
    raise CloutLookupError(f"vertex not found: {vertex_id}")


@dataclass
class Capability:
    """A named capability on a Clout vertex."""

    vertex_id: str
    capability_name: str

    def find(self, clout: Mapping[str, Any]) -> tuple[Mapping[str, Any], Any]:
        """Return the vertex and the capability value."""
        vertex = _vertex(clout, self.vertex_id)
        properties = vertex.get("properties")
        capabilities = properties.get("capabilities") if isinstance(properties, Mapping) else None
        if not isinstance(capabilities, Mapping):
            raise CloutLookupError(f"vertex has no capabilities: {self.vertex_id}")
        if self.capability_name not in capabilities:
            raise CloutLookupError(
                f"vertex {self.vertex_id} has no capability: {self.capability_name}"
            )
        return vertex, capabilities[self.capability_name]


@dataclass
class Relationship:
    """An outgoing edge of a Clout vertex, by position."""

    vertex_id: str
    edges_out_index: int

    def find(self, clout: Mapping[str, Any]) -> Any:
        """Return the edge."""
        vertex = _vertex(clout, self.vertex_id)
        edges = vertex.get("edgesOut") or []
        if 0 <= self.edges_out_index < len(edges):
            return edges[self.edges_out_index]
        raise CloutLookupError(f"vertex has too few edges: {self.vertex_id}")