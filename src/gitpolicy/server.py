"""MCP server wiring for gitpolicy.

The server speaks MCP over stdio; stdout carries protocol frames, so all
logging goes to stderr.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, TextContent, Tool

from gitpolicy import __version__
from gitpolicy.advisor import PolicyAdvisor
from gitpolicy.errors import internal_error
from gitpolicy.tools import TOOL_METADATA, dispatch_tool

logger = logging.getLogger(__name__)

_POLICY_URI = "gitpolicy://policy"
_STATUS_URI = "gitpolicy://server-status"


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def resolve_repo_root(repo_path: Optional[str] = None) -> Path:
    """Pick the repository the server advises on: argument, GITPOLICY_REPO_PATH, or cwd."""
    return Path(repo_path or os.environ.get("GITPOLICY_REPO_PATH") or Path.cwd()).resolve()


def build_server(advisor: PolicyAdvisor) -> Server:
    """Create an MCP server bound to *advisor*."""
    server = Server("gitpolicy")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        tools = [
            Tool(name=name, description=meta["description"], inputSchema=meta["inputSchema"])
            for name, meta in TOOL_METADATA.items()
        ]
        logger.info("Listed %s tools", len(tools))
        return tools

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        if not isinstance(arguments, dict):
            arguments = {}
        logger.info("Tool called: %s", name)
        try:
            # git queries block; keep them off the event loop.
            result = await asyncio.to_thread(dispatch_tool, advisor, name, arguments)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Tool %s failed: %s", name, exc)
            result = internal_error("Tool execution failed")
        return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        return [
            Resource(
                uri=_POLICY_URI,
                name="Branching Policy",
                description="The policy currently applied to the repository",
                mimeType="application/json",
            ),
            Resource(
                uri=_STATUS_URI,
                name="Server Status",
                description="Server version, repository, and available tools",
                mimeType="application/json",
            ),
        ]

    @server.read_resource()
    async def read_resource(uri: Any) -> str:
        uri_s = uri if isinstance(uri, str) else str(uri)
        if uri_s == _POLICY_URI:
            return json.dumps(advisor.get_config().to_dict(), indent=2)
        if uri_s == _STATUS_URI:
            status = {
                "server": "gitpolicy",
                "version": __version__,
                "repo_root": str(advisor.repo_root),
                "policy_file": str(advisor.store.path),
                "policy_file_present": advisor.store.path.is_file(),
                "tool_names": sorted(TOOL_METADATA),
            }
            return json.dumps(status, indent=2)
        return json.dumps({"ok": False, "code": "NotFound", "message": "Unknown resource"}, indent=2)

    return server


async def run_server(repo_path: Optional[str] = None) -> None:
    """Run the server over stdio until the client disconnects."""
    from mcp.server.stdio import stdio_server

    repo_root = resolve_repo_root(repo_path)
    advisor = PolicyAdvisor(repo_root)
    server = build_server(advisor)
    logger.info("gitpolicy %s advising on %s", __version__, repo_root)

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
