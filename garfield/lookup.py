"""Detailed lookups on a knowledge graph: nodes, neighbours, communities, stats and bodies."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path

from garfield.types import Confidence, Edge, GraphData, Hyperedge, Node

_SEARCH_DIRS = ("./src", ".", "src")
_EXTENSIONS = ("rs", "py", "ts", "js", "go", "java")
_MOST_CONNECTED = 10
_FORMATTED_MOST_CONNECTED = 5


@dataclass
class EdgeInfo:
    """An edge with the labels of both ends resolved."""

    source: str
    target: str
    source_label: str
    target_label: str
    relation: str
    confidence: str


@dataclass
class HyperedgeInfo:
    """Summary of a hyperedge (a module grouping)."""

    id: str
    label: str
    member_count: int
    relation: str
    confidence_score: float


@dataclass
class NodeDetails:
    """Everything known about one node."""

    id: str
    label: str
    source_file: str
    source_location: str
    community: int | None
    node_type: str | None
    incoming_edges: list[EdgeInfo] = field(default_factory=list)
    outgoing_edges: list[EdgeInfo] = field(default_factory=list)
    hyperedge: HyperedgeInfo | None = None


@dataclass
class CommunityNode:
    """A node within a community, with its degree."""

    id: str
    label: str
    degree: int


@dataclass
class CommunityInfo:
    """The members and cohesion of one community."""

    id: int
    size: int
    cohesion: float
    label: str
    nodes: list[CommunityNode]


@dataclass
class ConfidenceBreakdown:
    """Edge counts per confidence level."""

    extracted: int
    inferred: int
    ambiguous: int


@dataclass
class GodNodeInfo:
    """A highly connected node."""

    id: str
    label: str
    degree: int
    source_file: str


@dataclass
class GraphStats:
    """Summary statistics of a graph."""

    total_nodes: int
    total_edges: int
    communities: int
    confidence_breakdown: ConfidenceBreakdown
    avg_degree: float
    most_connected: list[GodNodeInfo]


def _round2(value: float) -> float:
    """Round to two decimals, halves away from zero."""
    return math.copysign(math.floor(abs(value) * 100.0 + 0.5) / 100.0, value)


def _confidence_name(confidence: Confidence) -> str:
    return confidence.name.capitalize()


def _find_node(graph: GraphData, identifier: str) -> Node | None:
    wanted = identifier.lower()
    return next(
        (n for n in graph.nodes if n.id == identifier or n.label.lower() == wanted),
        None,
    )


def _hyperedge_info(he: Hyperedge) -> HyperedgeInfo:
    return HyperedgeInfo(
        id=he.id,
        label=he.label,
        member_count=len(he.nodes),
        relation=he.relation,
        confidence_score=he.confidence_score,
    )


def _edge_info(graph: GraphData, edge: Edge) -> EdgeInfo:
    return EdgeInfo(
        source=edge.source,
        target=edge.target,
        source_label=graph.label_of(edge.source),
        target_label=graph.label_of(edge.target),
        relation=edge.relation,
        confidence=_confidence_name(edge.confidence),
    )


def get_node(graph: GraphData, identifier: str) -> NodeDetails | None:
    """Details of the node with this id or (case-insensitive) label."""
    node = _find_node(graph, identifier)
    if node is None:
        return None

    incoming = [
        EdgeInfo(
            source=e.source,
            target=e.target,
            source_label=graph.label_of(e.source),
            target_label=node.label,
            relation=e.relation,
            confidence=_confidence_name(e.confidence),
        )
        for e in graph.links
        if e.target == node.id
    ]
    outgoing = [
        EdgeInfo(
            source=e.source,
            target=e.target,
            source_label=node.label,
            target_label=graph.label_of(e.target),
            relation=e.relation,
            confidence=_confidence_name(e.confidence),
        )
        for e in graph.links
        if e.source == node.id
    ]
    group = next((he for he in graph.hyperedges if node.id in he.nodes), None)

    return NodeDetails(
        id=node.id,
        label=node.label,
        source_file=node.source_file,
        source_location=node.source_location,
        community=node.community,
        node_type=node.node_type,
        incoming_edges=incoming,
        outgoing_edges=outgoing,
        hyperedge=_hyperedge_info(group) if group is not None else None,
    )


def get_hyperedge(graph: GraphData, identifier: str) -> HyperedgeInfo | None:
    """The hyperedge with this id, or whose label contains the identifier."""
    wanted = identifier.lower()
    he = next(
        (h for h in graph.hyperedges if h.id == identifier or wanted in h.label.lower()),
        None,
    )
    return _hyperedge_info(he) if he is not None else None


def get_neighbors(graph: GraphData, identifier: str, max_results: int) -> list[EdgeInfo]:
    """Edges touching the node, in graph order, at most ``max_results`` of them."""
    node = _find_node(graph, identifier)
    if node is None:
        return []
    neighbors = [
        _edge_info(graph, e)
        for e in graph.links
        if e.source == node.id or e.target == node.id
    ]
    return neighbors[:max_results]


def get_community(graph: GraphData, community_id: int) -> CommunityInfo | None:
    """Members and cohesion of a community, or None if it has no nodes."""
    members = [n for n in graph.nodes if n.community == community_id]
    if not members:
        return None

    community_nodes = [
        CommunityNode(id=n.id, label=n.label, degree=graph.degree(n.id)) for n in members
    ]

    linked = {(e.source, e.target) for e in graph.links}
    size = len(members)
    actual = sum(
        1
        for i, a in enumerate(members)
        for b in members[i + 1 :]
        if (a.id, b.id) in linked or (b.id, a.id) in linked
    )
    possible = size * (size - 1) / 2.0
    cohesion = actual / possible if possible > 0 else 1.0

    return CommunityInfo(
        id=community_id,
        size=size,
        cohesion=_round2(cohesion),
        label=f"Community {community_id}",
        nodes=community_nodes,
    )


def graph_stats(graph: GraphData) -> GraphStats:
    """Counts, confidence breakdown, average degree and the most connected nodes."""
    counts = {c: 0 for c in Confidence}
    for edge in graph.links:
        counts[edge.confidence] += 1

    ranked = [
        GodNodeInfo(
            id=n.id, label=n.label, degree=graph.degree(n.id), source_file=n.source_file
        )
        for n in graph.nodes
    ]
    total_nodes = len(graph.nodes)
    degree_sum = sum(info.degree for info in ranked)
    avg_degree = degree_sum / total_nodes if total_nodes else 0.0
    ranked.sort(key=lambda info: info.degree, reverse=True)

    return GraphStats(
        total_nodes=total_nodes,
        total_edges=len(graph.links),
        communities=graph.metadata.communities,
        confidence_breakdown=ConfidenceBreakdown(
            extracted=counts[Confidence.EXTRACTED],
            inferred=counts[Confidence.INFERRED],
            ambiguous=counts[Confidence.AMBIGUOUS],
        ),
        avg_degree=_round2(avg_degree),
        most_connected=ranked[:_MOST_CONNECTED],
    )


def format_graph_stats(stats: GraphStats) -> str:
    """Render graph statistics as readable text."""
    lines = [
        "## Graph Statistics",
        f"  Total Nodes: {stats.total_nodes}",
        f"  Total Edges: {stats.total_edges}",
        f"  Communities: {stats.communities}",
        f"  Avg Degree: {stats.avg_degree:.2f}",
        "\n## Confidence Breakdown",
        f"  EXTRACTED: {stats.confidence_breakdown.extracted}",
        f"  INFERRED: {stats.confidence_breakdown.inferred}",
        f"  AMBIGUOUS: {stats.confidence_breakdown.ambiguous}",
    ]
    if stats.most_connected:
        lines.append("\n## Most Connected Nodes")
        for rank, node in enumerate(stats.most_connected[:_FORMATTED_MOST_CONNECTED], 1):
            lines.append(f"  {rank}. {node.label} (degree: {node.degree})")
    return "\n".join(lines)


def find_source_file(file_stem: str, root: str | Path = ".") -> Path | None:
    """Locate ``<file_stem>.<ext>`` in the usual source directories under ``root``."""
    base = Path(root)
    for directory in _SEARCH_DIRS:
        folder = base / directory
        for ext in _EXTENSIONS:
            name = f"{file_stem}.{ext}"
            for candidate in (folder / name, folder / "raw" / name):
                if candidate.exists():
                    return candidate
    return None


def _split_lines(content: str) -> list[str]:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def extract_function_body(content: str, fn_name: str) -> str | None:
    """The lines of the named function's definition, each prefixed with a gutter."""
    lines = _split_lines(content)
    patterns = (
        f"fn {fn_name}",
        f"pub fn {fn_name}",
        f"def {fn_name}",
        f"func {fn_name}",
        f"func ({fn_name}",
    )
    start = next(
        (i for i, line in enumerate(lines) if any(p in line for p in patterns)), None
    )
    if start is None:
        return None

    depth = 0
    opened = False
    end = start
    for i, line in enumerate(lines[start:], start):
        for ch in line:
            if ch in "{(":
                depth += 1
                opened = True
            elif ch in "})":
                depth -= 1
        end = i
        if opened and depth <= 0:
            break

    return "\n".join(f"    | {line}" for line in lines[start : end + 1])


def get_node_body(node_id: str, root: str | Path = ".") -> str | None:
    """Source text of a node given as ``file_stem:name``, read from disk."""
    file_stem, sep, name = node_id.partition(":")
    if not sep:
        return None
    path = find_source_file(file_stem, root)
    if path is None:
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    return extract_function_body(content, name)