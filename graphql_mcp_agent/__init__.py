"""GraphQL Agent Toolkit: one tool per resolver of any GraphQL endpoint."""

__version__ = "1.1.0"

from .base import GraphQLToolkit, GraphQLSource, create_graphql_toolkit
from .catalog import SchemaCatalog, rebuild
from .config import SessionConfig, load_environment_config, resolve_config
from .dispatcher import GraphQLDispatcher, DispatcherState
from .errors import (
    ErrorKind,
    GraphQLAgentError,
    ConfigurationError,
    ConnectivityError,
    IntrospectionError,
    QueryValidationError,
    ExecutionError,
    ToolNotFoundError,
    InternalError
)
from .models import CallResult, FieldDescriptor, SchemaSnapshot, ToolSpec, TypeKind, TypeRef
from .safety import QueryLimits, sanitize_query, validate_query
from .synthesizer import synthesize
from .tools import (
    ConfigureGraphQLTool,
    IntrospectSchemaTool,
    ExecuteQueryTool,
    GetStatusTool,
    GraphQLResolverTool
)

__all__ = [
    "GraphQLToolkit",
    "GraphQLSource",
    "create_graphql_toolkit",
    "GraphQLDispatcher",
    "DispatcherState",
    "SchemaCatalog",
    "rebuild",
    "SessionConfig",
    "load_environment_config",
    "resolve_config",
    "synthesize",
    "QueryLimits",
    "sanitize_query",
    "validate_query",
    "CallResult",
    "FieldDescriptor",
    "SchemaSnapshot",
    "ToolSpec",
    "TypeKind",
    "TypeRef",
    "ErrorKind",
    "GraphQLAgentError",
    "ConfigurationError",
    "ConnectivityError",
    "IntrospectionError",
    "QueryValidationError",
    "ExecutionError",
    "ToolNotFoundError",
    "InternalError",
    "ConfigureGraphQLTool",
    "IntrospectSchemaTool",
    "ExecuteQueryTool",
    "GetStatusTool",
    "GraphQLResolverTool"
]
