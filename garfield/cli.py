"""Command-line interface for querying and exploring a knowledge graph."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from garfield.agents import AgentName, install_agent, uninstall_agent
from garfield.lookup import NodeDetails, get_node, get_node_body
from garfield.query import find_shortest_path, query, query_with_filters
from garfield.types import GraphData

VERSION = "0.1.0"
DEFAULT_GRAPH = "garfield-out/graph.json"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="garfield",
        description="Build knowledge graph from source code",
    )
    parser.add_argument("--version", action="version", version=f"garfield {VERSION}")
    commands = parser.add_subparsers(dest="command", required=True)

    q = commands.add_parser("query", help="Query the graph")
    q.add_argument("question", help="Question or terms to search")
    q.add_argument("--dfs", action="store_true", help="Use DFS traversal instead of BFS")
    q.add_argument("--depth", type=int, default=3, help="Traversal depth")
    q.add_argument("--budget", type=int, default=2000, help="Token budget")
    q.add_argument("--graph", default=DEFAULT_GRAPH, help="Graph file path")
    q.add_argument(
        "--node-type",
        metavar="TYPE",
        help="Filter by node type (function, class, method, struct)",
    )
    q.add_argument("--community", type=int, metavar="ID", help="Filter by community ID")
    q.add_argument("--source", metavar="PATTERN", help="Filter by source file path pattern")
    q.add_argument("--hyperedge", metavar="MODULE", help="Filter by hyperedge (module) name")

    p = commands.add_parser("path", help="Find shortest path between two nodes")
    p.add_argument("source", help="Source node (or label pattern)")
    p.add_argument("target", help="Target node (or label pattern)")
    p.add_argument("--max-hops", type=int, default=8, help="Max hops")
    p.add_argument("--graph", default=DEFAULT_GRAPH, help="Graph file path")

    e = commands.add_parser("explain", help="Explain a specific node")
    e.add_argument("name", help="Node name or pattern")
    e.add_argument("--graph", default=DEFAULT_GRAPH, help="Graph file path")

    b = commands.add_parser(
        "body", help="Get body (source code) of a function/method from source files"
    )
    b.add_argument("node_id", help="Node ID (format: file_stem:function_name)")

    names = [a.value for a in AgentName]
    a = commands.add_parser("agent", help="Install agent integration (pi, claude, cursor)")
    a.add_argument("name", choices=names, help="Agent to install")
    a.add_argument("-f", "--force", action="store_true", help="Force overwrite existing files")

    u = commands.add_parser("uninstall", help="Uninstall agent integration (pi, claude, cursor)")
    u.add_argument("name", choices=names, help="Agent to uninstall")

    return parser


def _load(path: str) -> GraphData:
    try:
        return GraphData.load(path)
    except FileNotFoundError:
        raise RuntimeError(f"Graph file not found: {path}") from None
    except (OSError, ValueError) as exc:
        raise RuntimeError(f"Could not read graph {path}: {exc}") from None


def _resolve(graph: GraphData, pattern: str) -> str:
    """Map an id or label pattern to a node id; unresolved patterns pass through."""
    if graph.node_by_id(pattern) is not None:
        return pattern
    wanted = pattern.lower()
    exact = next((n for n in graph.nodes if n.label.lower() == wanted), None)
    if exact is not None:
        return exact.id
    partial = next((n for n in graph.nodes if wanted in n.label.lower()), None)
    return partial.id if partial is not None else pattern


def _format_details(details: NodeDetails) -> str:
    lines = [
        f"Node: {details.label}",
        f"  ID: {details.id}",
        f"  Source: {details.source_file} @ {details.source_location}",
    ]
    if details.node_type is not None:
        lines.append(f"  Type: {details.node_type}")
    if details.community is not None:
        lines.append(f"  Community: {details.community}")
    if details.hyperedge is not None:
        lines.append(
            f"  Module: {details.hyperedge.label} "
            f"({details.hyperedge.member_count} members)"
        )
    lines.append(f"\nIncoming ({len(details.incoming_edges)}):")
    lines.extend(
        f"  {e.source_label} --{e.relation} [{e.confidence}]--> {e.target_label}"
        for e in details.incoming_edges
    )
    lines.append(f"\nOutgoing ({len(details.outgoing_edges)}):")
    lines.extend(
        f"  {e.source_label} --{e.relation} [{e.confidence}]--> {e.target_label}"
        for e in details.outgoing_edges
    )
    return "\n".join(lines)


def _cmd_query(args: argparse.Namespace) -> int:
    mode = "DFS" if args.dfs else "BFS"
    print(f"Query: {args.question}")
    print(f"Mode: {mode} (depth={args.depth}, budget={args.budget})\n")
    try:
        graph = _load(args.graph)
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    filtered = any(
        value is not None
        for value in (args.node_type, args.community, args.source, args.hyperedge)
    )
    if filtered:
        output = query_with_filters(
            graph,
            args.question,
            args.dfs,
            args.depth,
            args.budget,
            args.node_type,
            args.community,
            args.source,
            args.hyperedge,
        )
    else:
        output = query(graph, args.question, args.dfs, args.depth, args.budget)
    print(output)
    return 0


def _cmd_path(args: argparse.Namespace) -> int:
    print(f"Finding path: {args.source} -> {args.target} (max {args.max_hops} hops)\n")
    try:
        graph = _load(args.graph)
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    path = find_shortest_path(
        graph,
        _resolve(graph, args.source),
        _resolve(graph, args.target),
        args.max_hops,
    )
    if path is None:
        print(f"No path found between {args.source} and {args.target}")
        return 0

    print(f"Path found ({len(path) - 1} hops):")
    *steps, last = path
    for node in steps:
        print(f"  {node} ->")
    print(f"  {last}")
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    try:
        graph = _load(args.graph)
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    details = get_node(graph, _resolve(graph, args.name))
    if details is None:
        print(f"Error: Node not found: {args.name}", file=sys.stderr)
        return 1
    print(_format_details(details))
    return 0


def _cmd_body(args: argparse.Namespace) -> int:
    print(f"Getting body for: {args.node_id}\n")
    print("Reading from source files...\n")
    body = get_node_body(args.node_id)
    if body is None:
        print(f"[ERROR] Could not find body for: {args.node_id}", file=sys.stderr)
        print(
            "  Make sure the node ID is correct (format: file_stem:function_name)",
            file=sys.stderr,
        )
        print("  Example: garfield body serve:find_shortest_path", file=sys.stderr)
        return 1
    print(body)
    return 0


def _cmd_agent(args: argparse.Namespace) -> int:
    install_agent(args.name, args.force)
    return 0


def _cmd_uninstall(args: argparse.Namespace) -> int:
    uninstall_agent(args.name)
    return 0


_COMMANDS = {
    "query": _cmd_query,
    "path": _cmd_path,
    "explain": _cmd_explain,
    "body": _cmd_body,
    "agent": _cmd_agent,
    "uninstall": _cmd_uninstall,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; return the process exit status."""
    args = _build_parser().parse_args(argv)
    return _COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())