# garfield

Explore a code knowledge graph from the command line or from Python.

A graph is a JSON file (by default `garfield-out/graph.json`) with:

- `nodes`: each with `id`, `label`, `source_file` and optionally
  `source_location`, `community`, `node_type`, `file_type`, `file_stem`;
- `links` (also accepted as `edges`): each with `source`, `target`,
  `relation` and a `confidence` of `EXTRACTED`, `INFERRED` or `AMBIGUOUS`,
  plus optional `confidence_score`, `source_file` and `note`;
- `metadata`: `total_nodes`, `total_edges`, `communities`, `created`;
- `hyperedges` (optional): groups of node ids with an `id`, `label`,
  `relation`, `confidence` and `source_file`, used as modules.

## Installation

```
pip install .
```

## Command line

Search the graph for nodes matching some terms, then walk outward from the
three best matches (breadth-first by default):

```
garfield query "parse config" --depth 3 --budget 2000
garfield query "parse config" --dfs
garfield query "handler" --node-type function --source src/net
garfield query "handler" --community 2 --hyperedge "net module"
```

Find the shortest path between two nodes, given by id or by label:

```
garfield path "a.py:A" "b.py:D" --max-hops 8
```

Show a node's location, type, community, module and its incoming and
outgoing edges:

```
garfield explain Calculator
```

Print the source of a function, looked up as `file_stem:function_name`.
The file `<file_stem>.<ext>` (ext one of `rs`, `py`, `ts`, `js`, `go`,
`java`) is searched for in `./src`, `.` and `src`, and in a `raw/`
folder under each:

```
garfield body serve:find_shortest_path
```

`query`, `path` and `explain` accept `--graph PATH`. `garfield --version`
prints the version.

### Agent integrations

```
garfield agent claude      # AGENTS.md section + .claude_desktop_config.json
garfield agent cursor      # AGENTS.md section
garfield agent pi -f       # PI extension under ~/.pi/agent, overwriting it
garfield uninstall claude
garfield uninstall cursor
garfield uninstall pi
```

Without `-f`, existing files (or an AGENTS.md that already has a
`## garfield` section) are left alone. The PI skill file is installed only
when a `SKILL.md` is shipped in `garfield/agents/pi/`.

## Library

```python
from garfield.types import GraphData
from garfield.query import query, find_shortest_path
from garfield.lookup import get_node, graph_stats, format_graph_stats
from garfield.validate import validate_graph, ValidationError

graph = GraphData.load("garfield-out/graph.json")

try:
    validate_graph(graph)
except ValidationError as err:
    print(err)

print(query(graph, "shortest path", use_dfs=False, depth=2, token_budget=1000))
print(find_shortest_path(graph, "a.py:A", "b.py:D", 5))

details = get_node(graph, "Calculator")
if details is not None:
    print(details.label, len(details.outgoing_edges))

print(format_graph_stats(graph_stats(graph)))
```

`validate_graph` and `validate_extraction` raise a subclass of
`ValidationError` for empty ids or labels, duplicate ids and edges to
unknown nodes; `validate_graph` also issues a `RuntimeWarning` when the
metadata counts disagree with the graph.

Query scoring gives one point for each term (words longer than two
characters) found in a node's label and half a point for each found in its
source file path. Output is cut to about four bytes per token of the budget.

## What it does not do

This package reads graphs; it does not make them. There is no command that
scans source code to extract nodes and edges, detects communities or
hyperedges, caches file hashes or writes a `GRAPH_REPORT.md`. The graph JSON
must come from elsewhere.

The text the agent integrations install mentions `garfield build`, and the
Claude Desktop config points at `garfield serve`; neither command exists in
this package.

## Running the tests

```
pip install ".[test]"
pytest
```