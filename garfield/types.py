"""Core data structures for the knowledge graph."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


class Confidence(str, Enum):
    """How certain an edge or hyperedge is."""

    EXTRACTED = "EXTRACTED"
    INFERRED = "INFERRED"
    AMBIGUOUS = "AMBIGUOUS"

    def default_score(self) -> float:
        """The numeric score given to a relation of this confidence."""
        return _DEFAULT_SCORES[self]


_DEFAULT_SCORES = {
    Confidence.EXTRACTED: 1.0,
    Confidence.INFERRED: 0.75,
    Confidence.AMBIGUOUS: 0.2,
}


class FileType(str, Enum):
    """Classification of a source file."""

    CODE = "code"
    MARKDOWN = "markdown"
    BINARY = "binary"
    RATIONALE = "rationale"


def _require(data: Mapping[str, Any], key: str, owner: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{owner} is missing field '{key}'") from None


def chrono_now() -> str:
    """Current Unix time in whole seconds, as a string."""
    return str(int(time.time()))


@dataclass
class Node:
    """A node in the graph."""

    id: str
    label: str
    source_file: str
    source_location: str = ""
    community: int | None = None
    node_type: str | None = None
    file_type: FileType | None = None
    file_stem: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "source_file": self.source_file,
            "source_location": self.source_location,
            "community": self.community,
            "node_type": self.node_type,
            "file_type": self.file_type.value if self.file_type is not None else None,
            "file_stem": self.file_stem,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Node:
        file_type = data.get("file_type")
        return cls(
            id=_require(data, "id", "node"),
            label=_require(data, "label", "node"),
            source_file=_require(data, "source_file", "node"),
            source_location=data.get("source_location") or "",
            community=data.get("community"),
            node_type=data.get("node_type"),
            file_type=FileType(file_type) if file_type is not None else None,
            file_stem=data.get("file_stem"),
        )


@dataclass
class Edge:
    """A directed relation between two nodes."""

    source: str
    target: str
    relation: str
    confidence: Confidence
    confidence_score: float | None = None
    source_file: str = ""
    note: str | None = None

    def __post_init__(self) -> None:
        self.confidence = Confidence(self.confidence)
        if self.confidence_score is None:
            self.confidence_score = self.confidence.default_score()

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "relation": self.relation,
            "confidence": self.confidence.value,
            "confidence_score": self.confidence_score,
            "source_file": self.source_file,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Edge:
        return cls(
            source=_require(data, "source", "edge"),
            target=_require(data, "target", "edge"),
            relation=_require(data, "relation", "edge"),
            confidence=Confidence(_require(data, "confidence", "edge")),
            confidence_score=float(data.get("confidence_score", 0.0)),
            source_file=data.get("source_file") or "",
            note=data.get("note"),
        )


@dataclass
class Hyperedge:
    """A relationship among three or more nodes."""

    id: str
    label: str
    nodes: list[str]
    relation: str
    confidence: Confidence
    source_file: str
    confidence_score: float | None = None

    def __post_init__(self) -> None:
        self.confidence = Confidence(self.confidence)
        if self.confidence_score is None:
            self.confidence_score = self.confidence.default_score()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "nodes": list(self.nodes),
            "relation": self.relation,
            "confidence": self.confidence.value,
            "confidence_score": self.confidence_score,
            "source_file": self.source_file,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Hyperedge:
        return cls(
            id=_require(data, "id", "hyperedge"),
            label=_require(data, "label", "hyperedge"),
            nodes=list(_require(data, "nodes", "hyperedge")),
            relation=_require(data, "relation", "hyperedge"),
            confidence=Confidence(_require(data, "confidence", "hyperedge")),
            source_file=_require(data, "source_file", "hyperedge"),
            confidence_score=float(data.get("confidence_score", 0.0)),
        )


def _links_from(data: Mapping[str, Any], owner: str) -> list[Edge]:
    if "links" in data:
        raw = data["links"]
    elif "edges" in data:
        raw = data["edges"]
    else:
        raise ValueError(f"{owner} is missing field 'links'")
    return [Edge.from_dict(item) for item in raw]


@dataclass
class ExtractionResult:
    """Nodes, edges and hyperedges extracted from one or more files."""

    nodes: list[Node] = field(default_factory=list)
    links: list[Edge] = field(default_factory=list)
    hyperedges: list[Hyperedge] = field(default_factory=list)

    def add_node(self, node: Node) -> None:
        self.nodes.append(node)

    def add_edge(self, edge: Edge) -> None:
        self.links.append(edge)

    def add_hyperedge(self, hyperedge: Hyperedge) -> None:
        self.hyperedges.append(hyperedge)

    def merge(self, other: ExtractionResult) -> None:
        """Append everything from another result to this one."""
        self.nodes.extend(other.nodes)
        self.links.extend(other.links)
        self.hyperedges.extend(other.hyperedges)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [e.to_dict() for e in self.links],
            "hyperedges": [h.to_dict() for h in self.hyperedges],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExtractionResult:
        return cls(
            nodes=[Node.from_dict(n) for n in _require(data, "nodes", "extraction")],
            links=_links_from(data, "extraction"),
            hyperedges=[Hyperedge.from_dict(h) for h in data.get("hyperedges", [])],
        )


@dataclass
class GraphMetadata:
    """Summary counts and creation time of a graph."""

    total_nodes: int
    total_edges: int
    communities: int
    created: str

    @classmethod
    def create(cls, total_nodes: int, total_edges: int, communities: int) -> GraphMetadata:
        """Metadata stamped with the current time."""
        return cls(total_nodes, total_edges, communities, chrono_now())

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "communities": self.communities,
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GraphMetadata:
        return cls(
            total_nodes=int(_require(data, "total_nodes", "metadata")),
            total_edges=int(_require(data, "total_edges", "metadata")),
            communities=int(_require(data, "communities", "metadata")),
            created=str(_require(data, "created", "metadata")),
        )


@dataclass
class GraphData:
    """A whole knowledge graph."""

    nodes: list[Node]
    links: list[Edge]
    metadata: GraphMetadata
    hyperedges: list[Hyperedge] = field(default_factory=list)

    @classmethod
    def create(cls, nodes: list[Node], links: list[Edge], communities: int) -> GraphData:
        """Build a graph whose metadata counts match the given nodes and links."""
        nodes = list(nodes)
        links = list(links)
        return cls(
            nodes=nodes,
            links=links,
            metadata=GraphMetadata.create(len(nodes), len(links), communities),
        )

    def node_by_id(self, node_id: str) -> Node | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def label_of(self, node_id: str) -> str:
        """The label of a node, or the id itself when no such node exists."""
        node = self.node_by_id(node_id)
        return node.label if node is not None else node_id

    def degree(self, node_id: str) -> int:
        """Number of edges that touch the node in either direction."""
        return sum(1 for e in self.links if e.source == node_id or e.target == node_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [e.to_dict() for e in self.links],
            "metadata": self.metadata.to_dict(),
            "hyperedges": [h.to_dict() for h in self.hyperedges],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GraphData:
        return cls(
            nodes=[Node.from_dict(n) for n in _require(data, "nodes", "graph")],
            links=_links_from(data, "graph"),
            metadata=GraphMetadata.from_dict(_require(data, "metadata", "graph")),
            hyperedges=[Hyperedge.from_dict(h) for h in data.get("hyperedges", [])],
        )

    @classmethod
    def load(cls, path: str | Path) -> GraphData:
        """Read a graph from a JSON file."""
        with open(path, encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))

    def save(self, path: str | Path) -> None:
        """Write the graph to a JSON file, creating parent directories."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh, indent=2)


@dataclass
class BuildSummary:
    """Counts reported after a build."""

    total_nodes: int
    total_edges: int
    communities: int
    hyperedges: int
    changed_files: int
    cached_files: int