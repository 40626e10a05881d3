"""Base GraphQL Toolkit implementation."""

from typing import Any, Dict, List, Optional

from langchain_core.tools import BaseTool, BaseToolkit
from pydantic import ConfigDict

from .config import SessionConfig
from .tools import (
    ConfigureGraphQLTool,
    ExecuteQueryTool,
    GetStatusTool,
    GraphQLResolverTool,
    IntrospectSchemaTool,
)


class GraphQLSource:
    """
    GraphQL endpoint connection wrapper.
    Similar to langchain's SQLDatabase but for GraphQL endpoints.
    """

    def __init__(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_ms: int = 30000,
    ):
        """
        Initialize GraphQL endpoint connection.

        Args:
            endpoint: GraphQL endpoint URL
            headers: Optional HTTP headers forwarded with every request
            timeout_ms: Request timeout in milliseconds
        """
        self.endpoint = endpoint
        self.headers = headers or {}
        self.timeout_ms = timeout_ms

    @classmethod
    def from_config(cls, config: SessionConfig) -> "GraphQLSource":
        return cls(endpoint=config.endpoint, headers=dict(config.headers), timeout_ms=config.timeout_ms)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    async def probe(self) -> None:
        """Send a trivial query to check the endpoint is reachable."""
        from .graphql import probe_endpoint

        await probe_endpoint(self.endpoint, headers=self.headers, timeout=self.timeout_seconds)

    async def get_schema(self) -> Dict[str, Any]:
        """Fetch a fresh introspection result."""
        from .graphql import fetch_graphql_schema

        return await fetch_graphql_schema(self.endpoint, headers=self.headers, timeout=self.timeout_seconds)

    async def execute_query(
        self,
        query: str,
        variables: Optional[Dict] = None,
        operation_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Execute a GraphQL query."""
        from .graphql import post_graphql

        return await post_graphql(
            self.endpoint,
            query,
            variables=variables,
            headers=self.headers,
            timeout=self.timeout_seconds,
            operation_name=operation_name,
        )

    def get_endpoint(self) -> str:
        """Get the GraphQL endpoint URL."""
        return self.endpoint


class GraphQLToolkit(BaseToolkit):
    """
    GraphQL Agent Toolkit.

    Exposes the static configuration/introspection/status tools plus one
    tool per resolver of the currently configured schema. The resolver tools
    change on every reconfiguration, so call get_tools() again afterwards.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    dispatcher: Any

    def __init__(self, dispatcher, **kwargs):
        """
        Initialize the GraphQL toolkit.

        Args:
            dispatcher: GraphQLDispatcher owning the active configuration
        """
        super().__init__(dispatcher=dispatcher, **kwargs)

    def get_static_tools(self) -> List[BaseTool]:
        return [
            ConfigureGraphQLTool(self.dispatcher),
            IntrospectSchemaTool(self.dispatcher),
            ExecuteQueryTool(self.dispatcher),
            GetStatusTool(self.dispatcher),
        ]

    def get_resolver_tools(self) -> List[BaseTool]:
        catalog = self.dispatcher.catalog
        return [
            GraphQLResolverTool(self.dispatcher, spec, catalog.args_model(spec.tool_name))
            for spec in catalog
        ]

    def get_tools(self) -> List[BaseTool]:
        """
        Get all available GraphQL tools.

        Returns:
            List of GraphQL tools
        """
        return self.get_static_tools() + self.get_resolver_tools()

    @property
    def dialect(self) -> str:
        """Get the dialect name."""
        return "graphql"


async def create_graphql_toolkit(
    endpoint: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    **limits: Any,
) -> GraphQLToolkit:
    """
    Create a GraphQL toolkit and configure it against an endpoint.

    Args:
        endpoint: GraphQL endpoint URL; falls back to GRAPHQL_ENDPOINT
        headers: Optional HTTP headers for authentication
        **limits: timeout_ms, max_depth, max_complexity, disabled_resolvers

    Returns:
        Configured GraphQL toolkit instance
    """
    from .dispatcher import GraphQLDispatcher

    dispatcher = GraphQLDispatcher()
    await dispatcher.configure(endpoint=endpoint, headers=headers, **limits)
    return GraphQLToolkit(dispatcher=dispatcher)
