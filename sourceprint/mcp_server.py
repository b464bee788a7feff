#!/usr/bin/env python3
"""
MCP server for sourceprint - renders repositories to printable HTML and lists
the files a configuration would select.
"""

import asyncio
import json
import logging
import pathlib
import shutil
import tempfile
from typing import Any, Dict, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .acquire import acquire, auth_from_mode, derive_name, is_remote
from .config import DEFAULT_IGNORE, DEFAULT_PATTERNS, ProcessConfig
from .pipeline import run_pipeline
from .selection import select_files

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

server = Server("sourceprint-mcp")

SOURCE_SCHEMA = {
    "source": {
        "type": "string",
        "description": "Git URL or local directory to render",
    },
    "patterns": {
        "type": "array",
        "items": {"type": "string"},
        "description": f"Glob patterns to include (default: {list(DEFAULT_PATTERNS)})",
    },
    "ignore": {
        "type": "array",
        "items": {"type": "string"},
        "description": f"Skip paths containing any of these substrings (default: {list(DEFAULT_IGNORE)})",
    },
}


def config_from_arguments(arguments: Dict[str, Any]) -> ProcessConfig:
    return ProcessConfig(
        patterns=tuple(arguments.get("patterns") or DEFAULT_PATTERNS),
        ignore=tuple(arguments.get("ignore") or DEFAULT_IGNORE),
        filename=arguments.get("filename") or None,
        content_filters=tuple(arguments.get("content") or ()),
        auth=arguments.get("auth", "none"),
    )


@server.list_tools()
async def list_tools() -> List[Tool]:
    """List available tools."""
    return [
        Tool(
            name="render_source",
            description="Render a repository or directory into one syntax-highlighted HTML page and a JSON manifest",
            inputSchema={
                "type": "object",
                "properties": {
                    **SOURCE_SCHEMA,
                    "output_root": {
                        "type": "string",
                        "description": "Directory to write <name>_generated/ into (default: a new temp dir)",
                    },
                    "filename": {"type": "string", "description": "Output file stem"},
                    "content": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Keep only files whose content matches one of these (* wildcards)",
                    },
                    "auth": {"type": "string", "enum": ["none", "ssh", "token"]},
                },
                "required": ["source"],
            },
        ),
        Tool(
            name="list_files",
            description="List the files a set of patterns selects, without rendering them",
            inputSchema={
                "type": "object",
                "properties": {
                    **SOURCE_SCHEMA,
                    "auth": {"type": "string", "enum": ["none", "ssh", "token"]},
                },
                "required": ["source"],
            },
        ),
    ]


def render_source(arguments: Dict[str, Any]) -> Dict[str, Any]:
    config = config_from_arguments(arguments)
    output_root = arguments.get("output_root") or tempfile.mkdtemp(prefix="sourceprint_")
    report = run_pipeline(arguments["source"], output_root, config)
    return {
        "html": str(report.html_path),
        "manifest_path": str(report.manifest_path),
        "commit": report.commit,
        "files": report.manifest,
        "skipped": [{"path": s.rel, "reason": s.reason} for s in report.skipped],
    }


def list_files(arguments: Dict[str, Any]) -> List[str]:
    config = config_from_arguments(arguments)
    config.validate()
    source = arguments["source"]
    tmpdir = tempfile.mkdtemp(prefix="sourceprint_")
    try:
        auth = auth_from_mode(config.auth) if is_remote(source) else None
        root = acquire(source, pathlib.Path(tmpdir, derive_name(source)), auth)
        return [f.rel for f in select_files(root, config.patterns, config.ignore)]
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Call a specific tool by name."""
    if "source" not in arguments:
        raise ValueError("Missing required argument: source")
    logger.info(f"{name}: {arguments['source']}")
    if name == "render_source":
        result = await asyncio.to_thread(render_source, arguments)
    elif name == "list_files":
        result = await asyncio.to_thread(list_files, arguments)
    else:
        raise ValueError(f"Unknown tool: {name}")
    return [TextContent(type="text", text=json.dumps(result, indent=2))]


async def serve():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main():
    """Entry point for the sourceprint-mcp console script."""
    asyncio.run(serve())


if __name__ == "__main__":
    main()
