"""Error taxonomy for the GraphQL agent toolkit."""

from enum import Enum
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    """Closed set of failure categories reported to callers."""

    CONFIGURATION = "configuration"
    CONNECTIVITY = "connectivity"
    INTROSPECTION = "introspection"
    VALIDATION = "validation"
    EXECUTION = "execution"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class GraphQLAgentError(Exception):
    """Base class for all errors raised by the toolkit."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.query = query

    def __str__(self) -> str:
        return self.message


class ConfigurationError(GraphQLAgentError):
    """Missing or invalid endpoint, malformed limits, or no active configuration."""

    kind = ErrorKind.CONFIGURATION


class ConnectivityError(GraphQLAgentError):
    """The connectivity probe against the endpoint failed."""

    kind = ErrorKind.CONNECTIVITY


class IntrospectionError(GraphQLAgentError):
    """Schema introspection failed. Non-fatal during configuration."""

    kind = ErrorKind.INTROSPECTION


class QueryValidationError(GraphQLAgentError):
    """A query or its arguments violate the configured limits."""

    kind = ErrorKind.VALIDATION


class ExecutionError(GraphQLAgentError):
    """Transport failure or GraphQL-level errors in the response."""

    kind = ErrorKind.EXECUTION


class ToolNotFoundError(GraphQLAgentError):
    """No tool with the requested name is known."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, tool_name: str, available: Iterable[str]):
        self.tool_name = tool_name
        self.available = list(available)
        super().__init__(
            f"Unknown tool: {tool_name}. Available tools: {', '.join(self.available) or 'none'}"
        )


class InternalError(GraphQLAgentError):
    """Wraps any unanticipated exception."""

    kind = ErrorKind.INTERNAL
