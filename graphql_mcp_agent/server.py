"""
GraphQL MCP Server

Serves the toolkit over the Model Context Protocol on stdio: the static
configure/introspect/execute/status tools plus one tool per resolver of the
configured endpoint.

Usage:
    graphql-mcp-agent --log-level DEBUG

    # or with environment configuration
    GRAPHQL_ENDPOINT=https://countries.trevorblades.com/ python -m graphql_mcp_agent
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

import mcp.types as types
from dotenv import load_dotenv
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.stdio import stdio_server

from . import __version__
from .base import GraphQLToolkit
from .dispatcher import GraphQLDispatcher
from .errors import GraphQLAgentError, InternalError

SERVER_NAME = "graphql-mcp-agent"

logger = logging.getLogger(__name__)


def list_tool_definitions(toolkit: GraphQLToolkit) -> List[types.Tool]:
    """Describe the static tools and the current resolver tools."""
    return [
        types.Tool(name=tool.name, description=tool.description.strip(), inputSchema=tool.parameter_schema())
        for tool in toolkit.get_tools()
    ]


async def handle_call_tool(
    toolkit: GraphQLToolkit, name: str, arguments: Optional[Dict[str, Any]]
) -> Tuple[str, bool]:
    """
    Route a tool call by exact name

    Returns:
        The result text and whether it reports a failed query

    Raises:
        GraphQLAgentError: For configuration, lookup and validation problems
        InternalError: For anything unanticipated
    """
    tools = {tool.name: tool for tool in toolkit.get_tools()}
    tool = tools.get(name)

    try:
        if tool is None:
            # Raises "not configured" or "unknown tool" with the current tool names
            result = await toolkit.dispatcher.invoke(name, arguments)
            return result.render(), not result.ok
        return await tool.call(**tool.parse_arguments(arguments))
    except GraphQLAgentError:
        raise
    except Exception as e:
        logger.exception("Tool execution failed for %s", name)
        raise InternalError(f"Tool execution failed: {e}") from e


def create_server(dispatcher: GraphQLDispatcher) -> Server:
    """Build the MCP server around a dispatcher."""
    server = Server(SERVER_NAME, version=__version__)
    toolkit = GraphQLToolkit(dispatcher=dispatcher)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return list_tool_definitions(toolkit)

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> types.CallToolResult:
        try:
            text, is_error = await handle_call_tool(toolkit, name, arguments)
        except GraphQLAgentError as e:
            logger.warning("Tool %s failed (%s): %s", name, e.kind.value, e)
            raise
        finally:
            if name == "configure_graphql":
                # Resolver tools were replaced (or cleared)
                await server.request_context.session.send_tool_list_changed()
        return types.CallToolResult(content=[types.TextContent(type="text", text=text)], isError=is_error)

    return server


async def run_stdio(dispatcher: GraphQLDispatcher) -> None:
    """Serve on stdio, auto-configuring from the environment once the transport is up."""
    server = create_server(dispatcher)
    logger.info("%s v%s starting (transport: stdio)", SERVER_NAME, __version__)

    async with stdio_server() as (read_stream, write_stream):
        logger.info("%s ready", SERVER_NAME)
        auto_configure = asyncio.create_task(dispatcher.auto_configure())
        try:
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(
                    notification_options=NotificationOptions(tools_changed=True)
                ),
            )
        finally:
            if not auto_configure.done():
                auto_configure.cancel()


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Expose a GraphQL endpoint as MCP tools over stdio",
        epilog="Configure via GRAPHQL_ENDPOINT, GRAPHQL_HEADERS, GRAPHQL_AUTH_TOKEN, GRAPHQL_API_KEY, "
        "GRAPHQL_TIMEOUT, GRAPHQL_MAX_DEPTH, GRAPHQL_MAX_COMPLEXITY, GRAPHQL_DISABLED_RESOLVERS",
    )
    parser.add_argument("--env-file", default=None, help="Load environment variables from this file (default: .env)")
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level"
    )
    args = parser.parse_args(argv)

    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    load_dotenv(args.env_file)

    try:
        asyncio.run(run_stdio(GraphQLDispatcher()))
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")


if __name__ == "__main__":
    main()
