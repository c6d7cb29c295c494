"""Keyword search and traversal over a knowledge graph."""

from __future__ import annotations

from collections import deque
from typing import Iterable, Sequence

from garfield.types import Edge, GraphData

_CHARS_PER_TOKEN = 4
_START_NODES = 3


def _adjacency(graph: GraphData) -> dict[str, list[str]]:
    """Undirected adjacency lists: every edge is followed both ways."""
    adj: dict[str, list[str]] = {node.id: [] for node in graph.nodes}
    for edge in graph.links:
        adj.setdefault(edge.source, []).append(edge.target)
        adj.setdefault(edge.target, []).append(edge.source)
    return adj


def _find_edge(graph: GraphData, source: str, target: str) -> Edge | None:
    return next(
        (e for e in graph.links if e.source == source and e.target == target), None
    )


def _terms(question: str) -> list[str]:
    return [word.lower() for word in question.split() if len(word) > 2]


def score_nodes(graph: GraphData, terms: Sequence[str]) -> list[tuple[float, str]]:
    """Score nodes by keyword matches, highest first.

    Each term found in the label counts 1.0, each term found in the
    source file path counts 0.5. Nodes scoring zero are left out.
    """
    lowered = [t.lower() for t in terms]
    scored: list[tuple[float, str]] = []
    for node in graph.nodes:
        label = node.label.lower()
        source = node.source_file.lower()
        score = sum(1 for t in lowered if t in label) + 0.5 * sum(
            1 for t in lowered if t in source
        )
        if score > 0:
            scored.append((score, node.id))
    scored.sort(key=lambda item: item[0], reverse=True)
    return scored


def bfs(
    graph: GraphData, start_nodes: Iterable[str], depth: int
) -> tuple[set[str], list[Edge]]:
    """Breadth-first traversal up to ``depth`` levels from the start nodes."""
    frontier = list(dict.fromkeys(start_nodes))
    visited = set(frontier)
    edges_seen: list[Edge] = []
    adj = _adjacency(graph)

    for _ in range(depth):
        next_frontier: dict[str, None] = {}
        for node_id in frontier:
            for neighbor in adj.get(node_id, ()):
                if neighbor in visited:
                    continue
                next_frontier[neighbor] = None
                edge = _find_edge(graph, node_id, neighbor)
                if edge is not None:
                    edges_seen.append(edge)
        visited.update(next_frontier)
        frontier = list(next_frontier)

    return visited, edges_seen


def dfs(
    graph: GraphData, start_nodes: Iterable[str], depth: int
) -> tuple[set[str], list[Edge]]:
    """Depth-first traversal, not descending past ``depth``."""
    visited: set[str] = set()
    edges_seen: list[Edge] = []
    adj = _adjacency(graph)
    stack = [(node_id, 0) for node_id in reversed(list(start_nodes))]

    while stack:
        node_id, d = stack.pop()
        if node_id in visited or d > depth:
            continue
        visited.add(node_id)
        for neighbor in adj.get(node_id, ()):
            if neighbor in visited:
                continue
            stack.append((neighbor, d + 1))
            edge = _find_edge(graph, node_id, neighbor)
            if edge is not None:
                edges_seen.append(edge)

    return visited, edges_seen


def find_shortest_path(
    graph: GraphData, source: str, target: str, max_hops: int
) -> list[str] | None:
    """Shortest undirected path from source to target, or None."""
    adj = _adjacency(graph)
    visited: set[str] = set()
    queue: deque[tuple[str, list[str]]] = deque([(source, [source])])

    while queue:
        current, path = queue.popleft()
        if current == target:
            return path
        if len(path) > max_hops or current in visited:
            continue
        visited.add(current)
        for neighbor in adj.get(current, ()):
            if neighbor not in visited:
                queue.append((neighbor, [*path, neighbor]))

    return None


def subgraph_to_text(
    graph: GraphData,
    nodes: Iterable[str],
    edges: Iterable[Edge],
    token_budget: int,
) -> str:
    """Render a subgraph as text, cut to about ``token_budget`` tokens."""
    wanted = set(nodes)
    char_budget = token_budget * _CHARS_PER_TOKEN

    members = [n for n in graph.nodes if n.id in wanted]
    members.sort(key=lambda n: graph.degree(n.id), reverse=True)

    lines = ["## Nodes"]
    for node in members:
        group = next((he for he in graph.hyperedges if node.id in he.nodes), None)
        group_label = f" [{group.label}]" if group is not None else ""
        community = node.community if node.community is not None else 0
        lines.append(
            f"  • {node.label}{group_label} "
            f"[{node.source_file} @ {node.source_location}] (community: {community})"
        )

    lines.append("\n## Edges")
    for edge in edges:
        if edge.source in wanted and edge.target in wanted:
            lines.append(
                f"  {graph.label_of(edge.source)} "
                f"--[{edge.relation}: {edge.confidence.value}]--> "
                f"{graph.label_of(edge.target)}"
            )

    output = "\n".join(lines)
    encoded = output.encode("utf-8")
    if len(encoded) > char_budget:
        head = encoded[:char_budget].decode("utf-8", errors="ignore")
        return f"{head}\n... (truncated to ~{token_budget} token budget)"
    return output


def _run(
    graph: GraphData,
    question: str,
    scored: list[tuple[float, str]],
    use_dfs: bool,
    depth: int,
    token_budget: int,
    filters: str,
) -> str:
    start_nodes = [node_id for _, node_id in scored[:_START_NODES]]
    traverse = dfs if use_dfs else bfs
    found, edges = traverse(graph, start_nodes, depth)
    traversal = "DFS" if use_dfs else "BFS"
    start_labels = [
        node.label
        for node in (graph.node_by_id(node_id) for node_id in start_nodes)
        if node is not None
    ]
    header = (
        f'Query: "{question}"{filters}\n'
        f"Traversal: {traversal} depth={depth} | Start: {', '.join(start_labels)} "
        f"| {len(found)} nodes found\n\n"
    )
    return header + subgraph_to_text(graph, found, edges, token_budget)


def query(
    graph: GraphData,
    question: str,
    use_dfs: bool = False,
    depth: int = 3,
    token_budget: int = 2000,
) -> str:
    """Answer a free-text question by traversing from the best-matching nodes."""
    scored = score_nodes(graph, _terms(question))
    if not scored:
        return "No matching nodes found."
    return _run(graph, question, scored, use_dfs, depth, token_budget, "")


def query_with_filters(
    graph: GraphData,
    question: str,
    use_dfs: bool = False,
    depth: int = 3,
    token_budget: int = 2000,
    node_type: str | None = None,
    community: int | None = None,
    source: str | None = None,
    hyperedge: str | None = None,
) -> str:
    """Like :func:`query`, restricting start nodes by type, community, file or module."""
    scored = score_nodes(graph, _terms(question))

    def keep(node_id: str) -> bool:
        node = graph.node_by_id(node_id)
        if node_type is not None:
            if node is None or node.node_type is None:
                return False
            if node_type.lower() not in node.node_type.lower():
                return False
        if community is not None and (node is None or node.community != community):
            return False
        if source is not None and (
            node is None or source.lower() not in node.source_file.lower()
        ):
            return False
        if hyperedge is not None:
            wanted = hyperedge.lower()
            if not any(
                wanted in he.label.lower() and node_id in he.nodes
                for he in graph.hyperedges
            ):
                return False
        return True

    scored = [item for item in scored if keep(item[1])]
    if not scored:
        return "No matching nodes found with filters."

    filters = ""
    if node_type is not None:
        filters += f" [type:{node_type}]"
    if community is not None:
        filters += f" [community:{community}]"
    if source is not None:
        filters += f" [source:{source}]"
    if hyperedge is not None:
        filters += f" [hyperedge:{hyperedge}]"

    return _run(graph, question, scored, use_dfs, depth, token_budget, filters)