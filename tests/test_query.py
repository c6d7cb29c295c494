import pytest

from garfield.query import (
    bfs,
    dfs,
    find_shortest_path,
    query,
    query_with_filters,
    score_nodes,
    subgraph_to_text,
)
from garfield.types import Confidence, Edge, GraphData, GraphMetadata, Hyperedge, Node


def _node(node_id, label, source_file, node_type):
    return Node(
        id=node_id,
        label=label,
        source_file=source_file,
        source_location=f"{source_file} @ L1",
        node_type=node_type,
    )


def _edge(source, target, relation):
    return Edge(source, target, relation, Confidence.EXTRACTED, 1.0)


@pytest.fixture
def graph():
    return GraphData(
        nodes=[
            _node("fn_add", "add", "src/math.rs", "function"),
            _node("fn_subtract", "subtract", "src/math.rs", "function"),
            _node("fn_multiply", "multiply", "src/math.rs", "function"),
            _node("class_calculator", "Calculator", "src/calc.rs", "class"),
        ],
        links=[
            _edge("fn_add", "class_calculator", "defines"),
            _edge("fn_subtract", "class_calculator", "defines"),
            _edge("fn_multiply", "class_calculator", "defines"),
            _edge("class_calculator", "fn_add", "calls"),
        ],
        metadata=GraphMetadata.create(4, 4, 2),
        hyperedges=[
            Hyperedge(
                id="file_math",
                label="math module",
                nodes=["fn_add", "fn_subtract", "fn_multiply"],
                relation="participate_in",
                confidence=Confidence.INFERRED,
                source_file="src/math.rs",
                confidence_score=0.8,
            )
        ],
    )


@pytest.fixture
def chain():
    nodes = [
        Node("a.py:A", "A", "a.py", "L1"),
        Node("a.py:B", "B", "a.py", "L1"),
        Node("a.py:C", "C", "a.py", "L1"),
        Node("b.py:D", "D", "b.py", "L1"),
    ]
    edges = [
        Edge("a.py:A", "a.py:B", "calls", Confidence.EXTRACTED),
        Edge("a.py:B", "a.py:C", "calls", Confidence.EXTRACTED),
        Edge("a.py:C", "b.py:D", "imports", Confidence.INFERRED),
    ]
    return GraphData(nodes, edges, GraphMetadata.create(4, 3, 2))


def test_score_nodes_exact_match(graph):
    scores = score_nodes(graph, ["add"])
    assert scores[0][1] == "fn_add"
    assert scores == [(1.0, "fn_add")]


def test_score_nodes_partial_match(graph):
    scores = score_nodes(graph, ["calc"])
    assert any("calc" in node_id for _, node_id in scores)
    assert scores == [(1.5, "class_calculator")]


def test_score_nodes_no_match(graph):
    assert score_nodes(graph, ["xyz123"]) == []


def test_score_nodes_case_insensitive(graph):
    assert score_nodes(graph, ["ADD"]) == score_nodes(graph, ["add"])


def test_score_nodes_label_beats_file(chain):
    scores = score_nodes(chain, ["a"])
    assert scores[0] == (1.5, "a.py:A")
    assert sorted(scores) == [(0.5, "a.py:B"), (0.5, "a.py:C"), (1.5, "a.py:A")]


def test_bfs_traversal(graph):
    nodes, _ = bfs(graph, ["fn_add"], 2)
    assert "fn_add" in nodes


def test_bfs_depth_limit(graph):
    shallow, _ = bfs(graph, ["class_calculator"], 1)
    deep, _ = bfs(graph, ["class_calculator"], 2)
    assert len(deep) >= len(shallow)


def test_bfs_chain_nodes_and_edges(chain):
    nodes, edges = bfs(chain, ["a.py:A"], 2)
    assert nodes == {"a.py:A", "a.py:B", "a.py:C"}
    assert [(e.source, e.target) for e in edges] == [
        ("a.py:A", "a.py:B"),
        ("a.py:B", "a.py:C"),
    ]


def test_bfs_reverse_edges_are_walked_but_not_recorded(chain):
    nodes, edges = bfs(chain, ["b.py:D"], 1)
    assert nodes == {"b.py:D", "a.py:C"}
    assert edges == []


def test_bfs_zero_depth_returns_start(chain):
    nodes, edges = bfs(chain, ["a.py:B"], 0)
    assert nodes == {"a.py:B"}
    assert edges == []


def test_dfs_traversal(graph):
    nodes, _ = dfs(graph, ["fn_add"], 2)
    assert "fn_add" in nodes


def test_dfs_depth_limit(chain):
    nodes, _ = dfs(chain, ["a.py:A"], 1)
    assert nodes == {"a.py:A", "a.py:B"}


def test_dfs_vs_bfs_same_reachable(graph):
    bfs_nodes, _ = bfs(graph, ["class_calculator"], 3)
    dfs_nodes, _ = dfs(graph, ["class_calculator"], 3)
    assert bfs_nodes == dfs_nodes
    assert len(bfs_nodes) == 4


def test_find_shortest_path_direct(graph):
    path = find_shortest_path(graph, "fn_add", "fn_subtract", 10)
    assert path == ["fn_add", "class_calculator", "fn_subtract"]


def test_find_shortest_path_no_path(graph):
    assert find_shortest_path(graph, "fn_add", "nonexistent", 10) is None


def test_find_shortest_path_chain(chain):
    path = find_shortest_path(chain, "a.py:A", "b.py:D", 5)
    assert path == ["a.py:A", "a.py:B", "a.py:C", "b.py:D"]
    assert len(path) <= 5


def test_find_shortest_path_respects_max_hops(chain):
    assert find_shortest_path(chain, "a.py:A", "b.py:D", 2) is None


def test_find_shortest_path_to_self(chain):
    assert find_shortest_path(chain, "a.py:A", "a.py:A", 0) == ["a.py:A"]


def test_subgraph_to_text_with_nodes(graph):
    output = subgraph_to_text(graph, {"fn_add", "fn_subtract"}, [], 1000)
    assert "  • add [math module] [src/math.rs @ src/math.rs @ L1] (community: 0)" in output
    assert "subtract" in output


def test_subgraph_to_text_empty_input(graph):
    assert subgraph_to_text(graph, set(), [], 1000) == "## Nodes\n\n## Edges"


def test_subgraph_to_text_edges_inside_subgraph_only(graph):
    output = subgraph_to_text(graph, {"fn_add", "class_calculator"}, graph.links, 1000)
    assert "  add --[defines: EXTRACTED]--> Calculator" in output
    assert "  Calculator --[calls: EXTRACTED]--> add" in output
    assert "subtract" not in output


def test_subgraph_to_text_orders_by_degree(graph):
    output = subgraph_to_text(graph, {n.id for n in graph.nodes}, [], 10000)
    lines = output.splitlines()
    assert lines[1].startswith("  • Calculator")


def test_subgraph_to_text_respects_token_budget(graph):
    ids = {n.id for n in graph.nodes}
    small = subgraph_to_text(graph, ids, [], 10)
    large = subgraph_to_text(graph, ids, [], 10000)
    assert small.endswith("\n... (truncated to ~10 token budget)")
    assert "truncated" not in large
    assert len(small) < len(large)


def test_query_header(graph):
    output = query(graph, "add", False, 1, 2000)
    assert output.startswith('Query: "add"\nTraversal: BFS depth=1 | Start: add | 2 nodes found\n\n')


def test_query_dfs_mode(graph):
    output = query(graph, "calculator", True, 3, 2000)
    assert "Traversal: DFS depth=3 | Start: Calculator | 4 nodes found" in output


def test_query_short_words_ignored(graph):
    assert query(graph, "ad to", False, 3, 2000) == "No matching nodes found."


def test_query_with_filters_node_type(graph):
    output = query_with_filters(graph, "calc add", False, 1, 2000, node_type="class")
    assert output.startswith('Query: "calc add" [type:class]\n')
    assert "Start: Calculator |" in output


def test_query_with_filters_hyperedge(graph):
    output = query_with_filters(graph, "calc add", False, 1, 2000, hyperedge="math")
    assert "[hyperedge:math]" in output
    assert "Start: add |" in output


def test_query_with_filters_source(graph):
    output = query_with_filters(graph, "calc add", False, 1, 2000, source="CALC.rs")
    assert "Start: Calculator |" in output


def test_query_with_filters_no_match(graph):
    result = query_with_filters(graph, "add", False, 3, 2000, community=5)
    assert result == "No matching nodes found with filters."