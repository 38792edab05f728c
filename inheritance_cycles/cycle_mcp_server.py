#!/usr/bin/env python3
"""
Inheritance Cycle Analysis MCP Server

Provides tools for finding cyclic inheritance in C++ projects and in
class relationship snapshots.
"""

import asyncio
import json
import os
import sys
from typing import Any, Dict, List

from . import diagnostics

try:
    from clang.cindex import Config
except ImportError:
    diagnostics.fatal("clang package not found. Install with: pip install libclang")
    sys.exit(1)

from mcp.server import Server
from mcp.types import (
    Tool,
    TextContent,
)

from .cycle_analyzer import CycleAnalyzer
from .cycle_detector import CycleDetector
from .hierarchy_builder import HierarchyBuilder
from .relationship_table import RelationshipTable


def configure_libclang() -> bool:
    """Point the clang bindings at LIBCLANG_PATH when it is set.

    Without the variable the library bundled with the libclang wheel is used.
    """
    env_path = os.environ.get("LIBCLANG_PATH")
    if not env_path:
        return True
    if not os.path.exists(env_path):
        diagnostics.warning(f"LIBCLANG_PATH set but file not found: {env_path}")
        return False
    if Config.loaded:
        diagnostics.debug("libclang already loaded, ignoring LIBCLANG_PATH")
        return True
    diagnostics.info(f"Using libclang from LIBCLANG_PATH: {env_path}")
    Config.set_library_file(env_path)
    return True


configure_libclang()

# Set by set_project_directory
analyzer = None

# MCP Server
server = Server("inheritance-cycle-analyzer")


@server.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(
            name="set_project_directory",
            description="Set the C++ project to analyze and run cyclic inheritance detection on it. "
            "Classes and their bases are extracted from the sources with libclang, unless the "
            "project config names a 'relationships_file' snapshot. Must be called before "
            "detect_inheritance_cycles and get_ancestor_chain.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_path": {
                        "type": "string",
                        "description": "Absolute path to the project root directory",
                    },
                    "config_file": {
                        "type": "string",
                        "description": "Optional absolute path to a .inheritance-cycles-config.json file",
                    },
                },
                "required": ["project_path"],
            },
        ),
        Tool(
            name="detect_inheritance_cycles",
            description="Report every class of the current project that lies on an inheritance "
            "cycle. Each cycle path runs from the class to its first recurrence, e.g. "
            "'A -> B -> C -> A'. Every member of a cycle gets its own rotation; 'cycle_groups' "
            "lists each distinct cycle once. An empty 'cycles' list means the hierarchy is acyclic.",
            inputSchema={
                "type": "object",
                "properties": {
                    "class_name": {
                        "type": "string",
                        "description": "Optional: fully-qualified class name ('ns.Widget' or 'ns::Widget') to restrict the report to",
                    },
                },
            },
        ),
        Tool(
            name="get_ancestor_chain",
            description="Get the ancestor chain of a class: the class itself followed by each "
            "successive parent. 'state' is 'parent_missing' when the chain reached a root or a "
            "class outside the project, or 'cycle_closed' when it reached a class already on the chain.",
            inputSchema={
                "type": "object",
                "properties": {
                    "class_name": {
                        "type": "string",
                        "description": "Fully-qualified class name",
                    },
                },
                "required": ["class_name"],
            },
        ),
        Tool(
            name="analyze_relationship_table",
            description="Detect inheritance cycles in an inline relationship table without a "
            "project. Maps each class name to its immediate parent name, or null for no parent.",
            inputSchema={
                "type": "object",
                "properties": {
                    "classes": {
                        "type": "object",
                        "description": "Mapping of class name to parent class name or null, e.g. {\"A\": \"B\", \"B\": \"A\"}",
                        "additionalProperties": {"type": ["string", "null"]},
                    },
                },
                "required": ["classes"],
            },
        ),
        Tool(
            name="get_server_status",
            description="Get analyzer status: current project, relationship source, class and cycle counts.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


def _text(text: str) -> List[TextContent]:
    return [TextContent(type="text", text=text)]


def _json(data: Any) -> List[TextContent]:
    return _text(json.dumps(data, indent=2))


def _no_project() -> List[TextContent]:
    return _text("Error: No project analyzed yet. Call 'set_project_directory' first.")


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    global analyzer
    arguments = arguments or {}
    loop = asyncio.get_running_loop()

    try:
        if name == "set_project_directory":
            project_path = arguments.get("project_path")
            config_file = arguments.get("config_file")

            if not isinstance(project_path, str) or not project_path.strip():
                return _text("Error: 'project_path' must be a non-empty string")

            if project_path != project_path.strip():
                return _text("Error: 'project_path' may not include leading or trailing whitespace")

            if not os.path.isabs(project_path):
                return _text(f"Error: '{project_path}' is not an absolute path")

            if not os.path.isdir(project_path):
                return _text(f"Error: Directory '{project_path}' does not exist")

            if config_file:
                if not isinstance(config_file, str) or not config_file.strip():
                    return _text("Error: 'config_file' must be a non-empty string")
                config_file = config_file.strip()
                if not os.path.isabs(config_file):
                    return _text(f"Error: '{config_file}' is not an absolute path")
                if not os.path.isfile(config_file):
                    return _text(f"Error: Config file '{config_file}' does not exist")

            new_analyzer = CycleAnalyzer(project_path, config_file=config_file)
            # Parsing and chain building are CPU-bound
            report = await loop.run_in_executor(None, new_analyzer.analyze)
            analyzer = new_analyzer

            stats = analyzer.get_stats()
            return _text(
                f"Analyzed {stats['class_count']} classes from {stats['source']} "
                f"in {stats['last_analysis_time']}s. "
                f"{len(report)} classes on {len(report.groups())} inheritance cycle(s)."
            )

        elif name == "detect_inheritance_cycles":
            if analyzer is None:
                return _no_project()
            return _json(analyzer.get_result(arguments.get("class_name")))

        elif name == "get_ancestor_chain":
            if analyzer is None:
                return _no_project()
            class_name = arguments.get("class_name")
            if not isinstance(class_name, str) or not class_name.strip():
                return _text("Error: 'class_name' must be a non-empty string")
            chain = analyzer.get_ancestor_chain(class_name)
            if chain is None:
                return _text(f"Class '{class_name}' not found")
            result = chain.to_dict()
            result["rendered"] = chain.render(analyzer.separator)
            return _json(result)

        elif name == "analyze_relationship_table":
            classes = arguments.get("classes")
            if not isinstance(classes, dict):
                return _text("Error: 'classes' must be an object mapping class names to parents")
            table = RelationshipTable.from_mapping(classes)
            report = await loop.run_in_executor(
                None, lambda: CycleDetector().detect(table, HierarchyBuilder(max_workers=1))
            )
            result = {"class_count": len(table)}
            result.update(report.to_dict())
            return _json(result)

        elif name == "get_server_status":
            status = {"server": server.name, "project_set": analyzer is not None}
            if analyzer is not None:
                status.update(analyzer.get_stats())
            return _json(status)

        else:
            return _text(f"Unknown tool: {name}")

    except Exception as e:
        diagnostics.error(f"Tool '{name}' failed: {e}")
        return _text(f"Error: {str(e)}")


async def main():
    """Main entry point for the MCP server."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Inheritance Cycle Analysis MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Transport Options:
  stdio  - Standard I/O transport (default, for CLI integration)
  http   - HTTP/Streamable HTTP transport (RESTful API)
  sse    - Server-Sent Events transport (streaming updates)

Examples:
  %(prog)s                                    # Run with stdio transport
  %(prog)s --transport http --port 8000      # Run HTTP server on port 8000
        """,
    )

    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "http", "sse"],
        default="stdio",
        help="Transport protocol to use (default: stdio)",
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host address for HTTP/SSE server (default: 127.0.0.1)",
    )

    parser.add_argument(
        "--port", type=int, default=8000, help="Port number for HTTP/SSE server (default: 8000)"
    )

    args = parser.parse_args()

    if args.transport == "stdio":
        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    else:
        from .http_server import run_http_server

        await run_http_server(server, args.host, args.port, args.transport)


def cli():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
