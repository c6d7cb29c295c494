"""Install and remove coding-agent integrations for the graph tool."""

from __future__ import annotations

import json
import os
import shutil
import sys
from enum import Enum
from pathlib import Path

GRAPH_OUTPUT_DIR = "garfield-out"
GARFIELD_BINARY = "garfield"

_AGENTS_DIR = Path(__file__).resolve().parent / "agents"
_SECTION_MARKERS = ("## garfield", "## Garfield")

_SECTION_RULES = (
    f"Before answering architecture or codebase questions, read "
    f"{GRAPH_OUTPUT_DIR}/GRAPH_REPORT.md for god nodes and community structure",
    "After modifying code files in this session, run `garfield build . --update` "
    "to keep the graph current",
)

_SECTION_COMMANDS = (
    ("garfield build <path>", "Build knowledge graph"),
    ('garfield query "X"', "Query the graph"),
    ('garfield path "A" "B"', "Find path between nodes"),
    ('garfield explain "Node"', "Explain a node"),
)

_EXE_PLACEHOLDER = "@@EXE_PATH@@"

_EXTENSION_TEMPLATE = r"""/**
 * PI extension for the garfield code graph.
 * Generated by `garfield agent pi`; binary: @@EXE_PATH@@
 */

import type { ExtensionAPI } from "@mariozechner/pi-coding-agent";
import { Type } from "@sinclair/typebox";
import { existsSync, readFileSync } from "node:fs";
import { execSync } from "node:child_process";
import { join } from "node:path";

const GF_BINARY = "@@EXE_PATH@@";
const GRAPH_JSON = join("garfield-out", "graph.json");
const GRAPH_REPORT = join("garfield-out", "GRAPH_REPORT.md");

type RunResult = { stdout: string; stderr: string; code: number };

function loadGraph(): any | null {
  if (!existsSync(GRAPH_JSON)) return null;
  try {
    return JSON.parse(readFileSync(GRAPH_JSON, "utf-8"));
  } catch {
    return null;
  }
}

function runGarfield(args: string[]): RunResult {
  try {
    const stdout = execSync(`${GF_BINARY} ${args.join(" ")}`, { encoding: "utf-8" });
    return { stdout, stderr: "", code: 0 };
  } catch (e: any) {
    return { stdout: e.stdout || "", stderr: e.stderr || e.message, code: e.status || 1 };
  }
}

function summary(graph: any): string {
  const meta = graph?.metadata;
  return `${meta?.total_nodes || 0} nodes, ${meta?.total_edges || 0} edges`;
}

function buildGraph(ctx: any, path: string, update: boolean): void {
  ctx.ui.notify(`Building graph from ${path}...`, "info");
  const run = runGarfield(["build", path, ...(update ? ["--update"] : [])]);
  if (run.code === 0) ctx.ui.notify("Build complete!", "success");
  else ctx.ui.notify("Build failed: " + run.stderr, "error");
}

function show(ctx: any, run: RunResult, fallback: string): void {
  ctx.ui.notify(run.stdout || run.stderr || fallback, run.code === 0 ? "info" : "error");
}

function words(args: string): string[] {
  return args.trim().split(/\s+/).filter(Boolean);
}

export default function garfieldExtension(pi: ExtensionAPI) {
  pi.on("session_start", async (_event, ctx) => {
    const graph = loadGraph();
    if (graph) ctx.ui.notify(`Garfield: ${summary(graph)}`, "success");
  });

  pi.registerCommand("garfield", {
    description: "Garfield: build, query, path, explain, report",
    handler: async (args, ctx) => {
      const [cmd = "help", ...rest] = words(args);
      if (cmd === "help") {
        ctx.ui.notify("garfield commands:\n/build, /query, /path, /explain, /report", "info");
      } else if (cmd === "build") {
        buildGraph(ctx, rest[0] || ".", rest.includes("--update"));
      } else if (cmd === ".") {
        buildGraph(ctx, ".", false);
      } else if (cmd === "query") {
        const question = rest.join(" ");
        if (!question) ctx.ui.notify('Usage: /garfield query "question"', "error");
        else show(ctx, runGarfield(["query", question]), "No results");
      } else if (cmd === "path") {
        const [source, target] = rest;
        if (!source || !target) ctx.ui.notify('Usage: /garfield path "A" "B"', "error");
        else show(ctx, runGarfield(["path", source, target]), "No path found");
      } else if (cmd === "explain") {
        const name = rest.join(" ");
        if (!name) ctx.ui.notify('Usage: /garfield explain "NodeName"', "error");
        else show(ctx, runGarfield(["explain", name]), "Node not found");
      } else if (cmd === "report") {
        if (existsSync(GRAPH_REPORT)) {
          ctx.ui.notify(readFileSync(GRAPH_REPORT, "utf-8").substring(0, 500) + "...", "info");
        } else {
          ctx.ui.notify("No graph found. Run /garfield build first.", "warning");
        }
      } else {
        ctx.ui.notify("Run /garfield help for available commands", "info");
      }
    },
  });

  pi.registerCommand("gf", {
    description: "Alias for /garfield",
    handler: async (args, ctx) => {
      const parts = words(args);
      if (parts.length === 1 && parts[0] === ".") buildGraph(ctx, ".", false);
      else ctx.ui.notify("Use /garfield instead", "info");
    },
  });

  pi.registerTool({
    name: "garfield_build",
    label: "Garfield Build",
    description: "Build Garfield knowledge graph from source code",
    parameters: Type.Object({
      path: Type.Optional(Type.String()),
      update: Type.Optional(Type.Boolean()),
    }),
    async execute(_toolCallId, params) {
      const run = runGarfield(["build", params.path || ".", ...(params.update ? ["--update"] : [])]);
      if (run.code !== 0) {
        return {
          content: [{ type: "text", text: "Build failed: " + run.stderr }],
          details: { error: run.stderr },
        };
      }
      const graph = loadGraph();
      return {
        content: [{ type: "text", text: `Graph built: ${summary(graph)}` }],
        details: graph?.metadata,
      };
    },
  });

  pi.registerTool({
    name: "garfield_graph_query",
    label: "Garfield Query",
    description: "Query Garfield knowledge graph for code relationships",
    parameters: Type.Object({
      question: Type.String(),
      mode: Type.Optional(Type.Union([Type.Literal("bfs"), Type.Literal("dfs")])),
      depth: Type.Optional(Type.Number()),
    }),
    async execute(_toolCallId, params) {
      const graph = loadGraph();
      if (!graph) {
        return {
          content: [{ type: "text", text: "No graph found. Run 'garfield build' first." }],
          details: { error: "no_graph" },
        };
      }
      const needle = params.question.toLowerCase();
      const hits = graph.nodes.filter((n: any) =>
        n.label.toLowerCase().includes(needle) || n.id.toLowerCase().includes(needle));
      const listing = hits.slice(0, 5).map((n: any) => `- ${n.label} (${n.source_file})`).join("\n");
      return {
        content: [{
          type: "text",
          text: hits.length ? `Found ${hits.length} matching nodes:\n${listing}` : "No matching nodes found",
        }],
        details: { matches: hits.length },
      };
    },
  });

  pi.registerTool({
    name: "garfield_path",
    label: "Garfield Path",
    description: "Find shortest path between nodes",
    parameters: Type.Object({ source: Type.String(), target: Type.String() }),
    async execute(_toolCallId, params) {
      const run = runGarfield(["path", params.source, params.target]);
      return {
        content: [{ type: "text", text: run.stdout || run.stderr || "No path found" }],
        details: { code: run.code },
      };
    },
  });
}
"""


class AgentName(str, Enum):
    """Agents that can be integrated with."""

    PI = "pi"
    CLAUDE = "claude"
    CURSOR = "cursor"


def _lines(content: str) -> list[str]:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _has_section(content: str) -> bool:
    return any(marker in content for marker in _SECTION_MARKERS)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ""


def remove_garfield_section(content: str) -> str:
    """Drop the '## garfield' section (up to the next '## ' heading) from markdown."""
    kept: list[str] = []
    in_section = False
    for line in _lines(content):
        lower = line.lower()
        if lower.startswith("## garfield"):
            in_section = True
            continue
        if in_section and lower.startswith("## "):
            in_section = False
        if not in_section:
            kept.append(line)
    return "\n".join(kept)


def generate_garfield_section() -> str:
    """The '## garfield' section added to AGENTS.md."""
    parts = [
        "## garfield",
        "",
        f"This project has a garfield knowledge graph at {GRAPH_OUTPUT_DIR}/.",
        "",
        "Rules:",
        *(f"- {rule}" for rule in _SECTION_RULES),
        "",
        "Commands:",
        *(f"- `{cmd}` - {what}" for cmd, what in _SECTION_COMMANDS),
    ]
    return "\n".join(parts) + "\n"


def generate_extension_ts(exe_path: str) -> str:
    """TypeScript source of the PI extension, pointing at ``exe_path``."""
    return _EXTENSION_TEMPLATE.replace(_EXE_PLACEHOLDER, exe_path)


def generate_mcp_config(graph_json_path: str, garfield_binary: str) -> str:
    """Claude Desktop MCP server configuration as pretty-printed JSON."""
    server = {"command": garfield_binary, "args": ["serve", graph_json_path]}
    return json.dumps({"mcpServers": {"garfield": server}}, indent=2, sort_keys=True)


def _write_unless_present(target: Path, content: str, force: bool, what: str) -> bool:
    if target.exists() and not force:
        print(f"  [WARN]  {what} already exists (use -f to overwrite)")
        return False
    target.write_text(content, encoding="utf-8")
    print(f"  [OK] {what} installed!")
    return True


def install_pi_agent(home: str | Path, exe_path: str, force: bool = False) -> list[Path]:
    """Install the PI extension and skill under ``home``; return the files written."""
    base = Path(home) / ".pi" / "agent"
    ext_dir = base / "extensions" / "garfield"
    skill_dir = base / "skills" / "garfield"
    written: list[Path] = []

    print("[INSTALL] Installing PI Extension...")
    print(f"  Dest:   {ext_dir}")
    ext_dir.mkdir(parents=True, exist_ok=True)
    ext_dst = ext_dir / "index.ts"
    if _write_unless_present(ext_dst, generate_extension_ts(exe_path), force, "Extension"):
        written.append(ext_dst)

    skill_src = _AGENTS_DIR / "pi" / "SKILL.md"
    if skill_src.exists():
        print("\n[SKILL] Installing PI Skill...")
        print(f"  Source: {skill_src}")
        print(f"  Dest:   {skill_dir}")
        skill_dir.mkdir(parents=True, exist_ok=True)
        skill_dst = skill_dir / "SKILL.md"
        skill = skill_src.read_text(encoding="utf-8").replace("graphify-out", GRAPH_OUTPUT_DIR)
        if _write_unless_present(skill_dst, skill, force, "Skill"):
            written.append(skill_dst)

    print("\n[DONE] PI agent installation complete!")
    print("\nNext steps:\n  1. Start PI: pi\n  2. Type /reload to load the extension")
    print("  3. Try: /garfield help")
    return written


def _install_agents_md(cwd: Path, force: bool) -> Path | None:
    agents_md = cwd / "AGENTS.md"
    print(f"  AGENTS.md: {agents_md}")
    if agents_md.exists() and not force:
        content = _read_text(agents_md)
        if _has_section(content):
            print("  [WARN]  AGENTS.md already has garfield section (use -f to overwrite)")
            return None
        agents_md.write_text(
            content.rstrip() + "\n\n" + generate_garfield_section(), encoding="utf-8"
        )
        print("  [OK] AGENTS.md section added!")
    else:
        agents_md.write_text(generate_garfield_section(), encoding="utf-8")
        print("  [OK] AGENTS.md created!")
    return agents_md


def install_claude_agent(
    cwd: str | Path, garfield_binary: str, graph_json_path: str, force: bool = False
) -> list[Path]:
    """Add the AGENTS.md section and MCP config in ``cwd``; return the files written."""
    cwd = Path(cwd)
    written: list[Path] = []
    mcp_config = cwd / ".claude_desktop_config.json"

    print("[ADD] Installing Claude Code integration...")
    agents_md = _install_agents_md(cwd, force)
    if agents_md is not None:
        written.append(agents_md)

    print("\n[EXT] Installing Claude Desktop MCP...")
    print(f"  Config: {mcp_config}")
    config = generate_mcp_config(graph_json_path, garfield_binary)
    if _write_unless_present(mcp_config, config, force, ".claude_desktop_config.json"):
        written.append(mcp_config)

    print("\n[DONE] Claude agent installation complete!")
    return written


def install_cursor_agent(
    cwd: str | Path, garfield_binary: str, force: bool = False
) -> list[Path]:
    """Add the AGENTS.md section in ``cwd``; return the files written."""
    print("[ADD] Installing Cursor integration...")
    agents_md = _install_agents_md(Path(cwd), force)
    print("\n[DONE] Cursor agent installation complete!")
    return [agents_md] if agents_md is not None else []


def install_agent(name: str | AgentName, force: bool = False) -> list[Path]:
    """Install the named agent integration; raise ValueError for an unknown agent."""
    agent = AgentName(name)
    print(f"garfield agent {agent.value} - Installing agent integration\n")

    cwd = Path.cwd()
    graph_json = str(cwd / GRAPH_OUTPUT_DIR / "graph.json")

    if agent is AgentName.PI:
        exe_path = os.path.abspath(sys.argv[0]) if sys.argv and sys.argv[0] else GARFIELD_BINARY
        return install_pi_agent(Path.home(), exe_path, force)
    if agent is AgentName.CLAUDE:
        return install_claude_agent(cwd, GARFIELD_BINARY, graph_json, force)
    return install_cursor_agent(cwd, GARFIELD_BINARY, force)


def _uninstall_agents_md(cwd: Path) -> Path | None:
    agents_md = cwd / "AGENTS.md"
    if not agents_md.exists():
        return None
    content = _read_text(agents_md)
    if not _has_section(content):
        print("  AGENTS.md section not found")
        return None
    try:
        agents_md.write_text(remove_garfield_section(content), encoding="utf-8")
    except OSError:
        return None
    print("[OK] AGENTS.md section removed")
    return agents_md


def uninstall_agent(name: str | AgentName) -> list[Path]:
    """Remove the named agent integration; return the paths removed or modified."""
    agent = AgentName(name)
    print(f"garfield uninstall {agent.value} - Removing agent integration\n")
    changed: list[Path] = []

    if agent is AgentName.PI:
        base = Path.home() / ".pi" / "agent"
        targets = (
            (base / "extensions" / "garfield", "Extension"),
            (base / "skills" / "garfield", "Skill"),
        )
        for directory, what in targets:
            if directory.exists():
                shutil.rmtree(directory, ignore_errors=True)
                changed.append(directory)
                print(f"[OK] PI {what} removed: {directory}")
            else:
                print(f"  PI {what} not found")
        print("\n[DONE] PI agent uninstallation complete!")
        return changed

    cwd = Path.cwd()
    agents_md = _uninstall_agents_md(cwd)
    if agents_md is not None:
        changed.append(agents_md)

    if agent is AgentName.CLAUDE:
        mcp_config = cwd / ".claude_desktop_config.json"
        if mcp_config.exists():
            try:
                mcp_config.unlink()
            except OSError:
                pass
            else:
                changed.append(mcp_config)
                print("[OK] Claude Desktop config removed")
        print("\n[DONE] Claude agent uninstallation complete!")
    else:
        print("\n[DONE] Cursor agent uninstallation complete!")
    return changed