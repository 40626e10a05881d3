"""GraphQL Tools for LLM agents."""

import asyncio
import logging
from typing import Any, Dict, List, Literal, Optional, Tuple, Type

from langchain_core.callbacks import AsyncCallbackManagerForToolRun, CallbackManagerForToolRun
from langchain_core.tools import BaseTool
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import GraphQLAgentError, QueryValidationError
from .models import ToolSpec

logger = logging.getLogger(__name__)


def clean_query(query: str) -> str:
    """Strip code fences, backticks and surrounding quotes agents tend to add."""
    query = query.strip()

    # Remove code block markers (```...```)
    if query.startswith("```") and query.endswith("```"):
        query = query[3:-3].strip()
        # Also remove language identifier if present (e.g., ```graphql)
        lines = query.split("\n")
        if lines and lines[0].strip() and not lines[0].strip().startswith(("{", "query", "mutation")):
            query = "\n".join(lines[1:]).strip()

    if query.startswith("`") and query.endswith("`"):
        query = query[1:-1].strip()

    if (query.startswith('"') and query.endswith('"')) or (query.startswith("'") and query.endswith("'")):
        query = query[1:-1].strip()

    return query


def format_error(error: GraphQLAgentError) -> str:
    text = f"❌ {error.kind.value.replace('_', ' ').capitalize()} error: {error.message}"
    if error.query:
        text += f"\n\nQuery:\n{error.query}"
    return text


class GraphQLAgentTool(BaseTool):
    """
    Common base for the toolkit's tools.

    ``execute`` raises GraphQLAgentError subclasses; ``_arun`` turns them into
    text for LangChain agents, while the MCP server calls ``call`` directly to
    learn whether the text reports a failure.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __init__(self, dispatcher, **kwargs):
        super().__init__(**kwargs)
        self._dispatcher = dispatcher

    @property
    def dispatcher(self):
        return self._dispatcher

    def parameter_schema(self) -> Dict[str, Any]:
        """JSON schema advertised to MCP clients."""
        return self.args_schema.model_json_schema()

    def parse_arguments(self, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Validate raw call arguments against ``args_schema``."""
        try:
            parsed = self.args_schema.model_validate(arguments or {})
        except ValidationError as e:
            raise QueryValidationError(f"Invalid arguments for {self.name}: {e}") from e
        return parsed.model_dump()

    async def execute(self, **kwargs: Any) -> str:
        raise NotImplementedError

    async def call(self, **kwargs: Any) -> Tuple[str, bool]:
        """Run the tool and report whether its text describes a failure."""
        return await self.execute(**kwargs), False

    def _run(
        self,
        run_manager: Optional[CallbackManagerForToolRun] = None,
        **kwargs: Any,
    ) -> str:
        """Run the tool synchronously."""
        return asyncio.run(self._arun(**kwargs))

    async def _arun(
        self,
        run_manager: Optional[AsyncCallbackManagerForToolRun] = None,
        **kwargs: Any,
    ) -> str:
        try:
            return await self.execute(**kwargs)
        except GraphQLAgentError as e:
            return format_error(e)
        except Exception as e:
            logger.exception("Tool execution failed for %s", self.name)
            return f"❌ Internal error: Tool execution failed: {str(e)}"


class ConfigureGraphQLInput(BaseModel):
    """Input for GraphQL configure tool."""
    endpoint: Optional[str] = Field(default=None, description="GraphQL endpoint URL; falls back to GRAPHQL_ENDPOINT")
    headers: Optional[Dict[str, str]] = Field(
        default=None, description="HTTP headers for authentication (e.g., Authorization)"
    )
    timeout: Optional[int] = Field(default=None, description="Request timeout in milliseconds (1000-60000, default 30000)")
    maxDepth: Optional[int] = Field(default=None, description="Maximum allowed query nesting depth (1-20, default 10)")
    maxComplexity: Optional[int] = Field(
        default=None, description="Maximum allowed query complexity score (1-1000, default 100)"
    )
    disabledResolvers: Optional[List[str]] = Field(
        default=None, description="List of resolver names to disable for security"
    )


class ConfigureGraphQLTool(GraphQLAgentTool):
    """
    Tool to connect to a GraphQL endpoint and build one tool per resolver.
    """

    name: str = "configure_graphql"
    description: str = """
    Set up the connection to a GraphQL endpoint.

    Tests connectivity, introspects the schema and creates one query_<field> /
    mutation_<field> tool per resolver. Any previously created resolver tools
    are discarded, even if this call fails.
    """
    args_schema: Type[BaseModel] = ConfigureGraphQLInput

    async def execute(
        self,
        endpoint: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        maxDepth: Optional[int] = None,
        maxComplexity: Optional[int] = None,
        disabledResolvers: Optional[List[str]] = None,
    ) -> str:
        summary = await self.dispatcher.configure(
            endpoint=endpoint,
            headers=headers,
            timeout_ms=timeout,
            max_depth=maxDepth,
            max_complexity=maxComplexity,
            disabled_resolvers=disabledResolvers,
        )
        return summary.render()


class IntrospectSchemaInput(BaseModel):
    """Input for GraphQL introspection tool."""
    includeDeprecated: bool = Field(default=False, description="Include deprecated fields and enum values in the schema")
    format: Literal["json", "sdl"] = Field(
        default="json", description="'json' for the raw introspection result, 'sdl' for schema language"
    )


class IntrospectSchemaTool(GraphQLAgentTool):
    """
    Tool to get the schema of the configured endpoint.
    """

    name: str = "introspect_schema"
    description: str = """
    Get the GraphQL schema of the configured endpoint: all types, fields and
    arguments. Returns the cached schema when available.
    """
    args_schema: Type[BaseModel] = IntrospectSchemaInput

    async def execute(self, includeDeprecated: bool = False, format: str = "json") -> str:
        return await self.dispatcher.introspect(include_deprecated=includeDeprecated, format=format)


class ExecuteQueryInput(BaseModel):
    """Input for GraphQL execute tool."""
    query: str = Field(min_length=1, description="GraphQL query string to execute")
    variables: Optional[Dict[str, Any]] = Field(default=None, description="Variables to pass to the GraphQL query")
    operationName: Optional[str] = Field(
        default=None, description="Name of the operation to execute (for multi-operation documents)"
    )


class ExecuteQueryTool(GraphQLAgentTool):
    """
    Tool to execute hand-written GraphQL queries.
    """

    name: str = "execute_query"
    description: str = """
    Execute a GraphQL query against the configured endpoint.
    Input: GraphQL query as plain text without any formatting markers.

    CORRECT: { countries { code name } }
    WRONG: `{ countries { code name } }` (with backticks)

    Depth, complexity and disabled-resolver limits apply.
    """
    args_schema: Type[BaseModel] = ExecuteQueryInput

    async def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        operationName: Optional[str] = None,
    ) -> str:
        text, _ = await self.call(query=query, variables=variables, operationName=operationName)
        return text

    async def call(self, **kwargs: Any) -> Tuple[str, bool]:
        result = await self.dispatcher.execute_query(
            clean_query(kwargs["query"]), kwargs.get("variables"), kwargs.get("operationName")
        )
        return result.render(), not result.ok


class GetStatusInput(BaseModel):
    """Input for GraphQL status tool."""
    # No input needed for status
    pass


class GetStatusTool(GraphQLAgentTool):
    """
    Tool to report connection status and configuration.
    """

    name: str = "get_status"
    description: str = "Get current GraphQL connection status and configuration"
    args_schema: Type[BaseModel] = GetStatusInput

    async def execute(self) -> str:
        return self.dispatcher.render_status()


class GraphQLResolverTool(GraphQLAgentTool):
    """
    One tool per Query/Mutation field of the configured schema.
    """

    def __init__(self, dispatcher, spec: ToolSpec, args_model: Type[BaseModel]):
        super().__init__(
            dispatcher,
            name=spec.tool_name,
            description=spec.description,
            args_schema=args_model,
        )
        self._spec = spec

    @property
    def spec(self) -> ToolSpec:
        return self._spec

    def parameter_schema(self) -> Dict[str, Any]:
        return self._spec.parameter_schema

    def parse_arguments(self, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        # Validated by the dispatcher so that failures carry the attempted query
        return dict(arguments or {})

    async def execute(self, **kwargs: Any) -> str:
        text, _ = await self.call(**kwargs)
        return text

    async def call(self, **kwargs: Any) -> Tuple[str, bool]:
        result = await self.dispatcher.invoke(self.name, kwargs)
        return result.render(), not result.ok
