from pathlib import Path

import pytest

from garfield.cli import main
from garfield.types import Confidence, Edge, GraphData, Hyperedge, Node


def _graph() -> GraphData:
    nodes = [
        Node("fn_add", "add", "src/math.rs", "L1", node_type="function"),
        Node("fn_subtract", "subtract", "src/math.rs", "L5", node_type="function"),
        Node("fn_multiply", "multiply", "src/math.rs", "L9", node_type="function"),
        Node("class_calculator", "Calculator", "src/calc.rs", "L1", node_type="class"),
        Node("lonely", "lonely", "src/alone.rs", "L1", node_type="function"),
    ]
    links = [
        Edge("fn_add", "class_calculator", "defines", Confidence.EXTRACTED),
        Edge("fn_subtract", "class_calculator", "defines", Confidence.EXTRACTED),
        Edge("fn_multiply", "class_calculator", "defines", Confidence.EXTRACTED),
    ]
    graph = GraphData.create(nodes, links, 1)
    graph.hyperedges.append(
        Hyperedge(
            "file_math",
            "math module",
            ["fn_add", "fn_subtract", "fn_multiply"],
            "participate_in",
            Confidence.INFERRED,
            "src/math.rs",
        )
    )
    return graph


@pytest.fixture
def graph_file(tmp_path: Path) -> Path:
    path = tmp_path / "out" / "graph.json"
    _graph().save(path)
    return path


def test_query_prints_matches(graph_file, capsys):
    code = main(["query", "multiply", "--graph", str(graph_file)])
    out = capsys.readouterr().out
    assert code == 0
    assert "Mode: BFS (depth=3, budget=2000)" in out
    assert "multiply" in out
    assert "## Nodes" in out


def test_query_dfs_mode(graph_file, capsys):
    code = main(["query", "multiply", "--dfs", "--graph", str(graph_file)])
    out = capsys.readouterr().out
    assert code == 0
    assert "Mode: DFS" in out
    assert "Traversal: DFS" in out


def test_query_without_match(graph_file, capsys):
    code = main(["query", "xyz123", "--graph", str(graph_file)])
    assert code == 0
    assert "No matching nodes found." in capsys.readouterr().out


def test_query_with_filters_excludes(graph_file, capsys):
    code = main(
        ["query", "multiply", "--node-type", "class", "--graph", str(graph_file)]
    )
    assert code == 0
    assert "No matching nodes found with filters." in capsys.readouterr().out


def test_query_with_hyperedge_filter(graph_file, capsys):
    code = main(
        ["query", "multiply", "--hyperedge", "math", "--graph", str(graph_file)]
    )
    out = capsys.readouterr().out
    assert code == 0
    assert "[hyperedge:math]" in out


def test_query_missing_graph(tmp_path, capsys):
    code = main(["query", "add", "--graph", str(tmp_path / "missing.json")])
    assert code == 1
    assert "Error:" in capsys.readouterr().err


def test_path_found(graph_file, capsys):
    code = main(["path", "fn_add", "fn_subtract", "--graph", str(graph_file)])
    out = capsys.readouterr().out
    assert code == 0
    assert "Path found" in out
    assert "  fn_add ->" in out
    assert out.rstrip().endswith("fn_subtract")


def test_path_by_label(graph_file, capsys):
    code = main(["path", "add", "Calculator", "--graph", str(graph_file)])
    out = capsys.readouterr().out
    assert code == 0
    assert "fn_add ->" in out
    assert "class_calculator" in out


def test_path_not_found(graph_file, capsys):
    code = main(["path", "fn_add", "lonely", "--graph", str(graph_file)])
    out = capsys.readouterr().out
    assert code == 0
    assert "No path found between fn_add and lonely" in out


def test_explain_node(graph_file, capsys):
    code = main(["explain", "Calculator", "--graph", str(graph_file)])
    out = capsys.readouterr().out
    assert code == 0
    assert "ID: class_calculator" in out
    assert "add --defines" in out


def test_explain_shows_module(graph_file, capsys):
    code = main(["explain", "fn_add", "--graph", str(graph_file)])
    out = capsys.readouterr().out
    assert code == 0
    assert "math module" in out


def test_explain_unknown(graph_file, capsys):
    code = main(["explain", "nothing_here", "--graph", str(graph_file)])
    assert code == 1
    assert "nothing_here" in capsys.readouterr().err


def test_body_reads_source(tmp_path, monkeypatch, capsys):
    src = tmp_path / "src"
    src.mkdir()
    (src / "calc.py").write_text("def area(w, h):\n    return w * h\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    code = main(["body", "calc:area"])
    out = capsys.readouterr().out
    assert code == 0
    assert "def area(w, h):" in out


def test_body_missing(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    code = main(["body", "nonexistent:function"])
    assert code == 1
    assert "Could not find body for: nonexistent:function" in capsys.readouterr().err


def test_agent_cursor_install_and_uninstall(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["agent", "cursor"]) == 0
    agents_md = tmp_path / "AGENTS.md"
    assert "## garfield" in agents_md.read_text(encoding="utf-8")

    assert main(["uninstall", "cursor"]) == 0
    assert "garfield" not in agents_md.read_text(encoding="utf-8")


def test_agent_claude_writes_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["agent", "claude"]) == 0
    config = tmp_path / ".claude_desktop_config.json"
    assert "serve" in config.read_text(encoding="utf-8")
    assert main(["uninstall", "claude"]) == 0
    assert not config.exists()


def test_unknown_agent_rejected():
    with pytest.raises(SystemExit) as info:
        main(["agent", "emacs"])
    assert info.value.code == 2


def test_missing_command_rejected():
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 2