"""
Query Safety Module

Heuristic limits applied to every query before it is sent: a field-count
complexity score, a brace-nesting depth score and a textual deny-list of
resolver names. None of this parses GraphQL; the scores are measured on a
sanitized copy of the text and the original text is what gets executed.
"""

import re
from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .errors import QueryValidationError

_BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")
_LINE_COMMENT = re.compile(r"#[^\r\n]*")
_WHITESPACE = re.compile(r"\s+")
_FIELD_SELECTION = re.compile(r"\w+(?=\s*[{(])")


class QueryLimits(BaseModel):
    """Limits enforced on every query."""

    model_config = ConfigDict(frozen=True)

    max_depth: int = 10
    max_complexity: int = 100
    disabled_resolvers: Tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config) -> "QueryLimits":
        return cls(
            max_depth=config.max_depth,
            max_complexity=config.max_complexity,
            disabled_resolvers=tuple(config.disabled_resolvers),
        )


class QueryMetrics(BaseModel):
    """Scores measured for an accepted query."""

    model_config = ConfigDict(frozen=True)

    sanitized: str
    complexity: int
    depth: int


def sanitize_query(query: str) -> str:
    """Remove block and line comments, collapse whitespace and trim."""
    # Removing one comment can splice "/" and "*" into a new one
    while True:
        stripped = _LINE_COMMENT.sub("", _BLOCK_COMMENT.sub("", query))
        if stripped == query:
            break
        query = stripped
    return _WHITESPACE.sub(" ", query).strip()


def calculate_complexity(query: str) -> int:
    """Count words immediately followed by ``{`` or ``(``."""
    return len(_FIELD_SELECTION.findall(query))


def calculate_depth(query: str) -> int:
    """
    Maximum brace nesting depth.

    Unbalanced input is tolerated: the counter may go negative and the
    running maximum is still reported.
    """
    depth = 0
    max_depth = 0
    for char in query:
        if char == "{":
            depth += 1
            max_depth = max(max_depth, depth)
        elif char == "}":
            depth -= 1
    return max_depth


def find_disabled_resolver(query: str, disabled_resolvers: Iterable[str]) -> Optional[str]:
    """Return the first disabled name found anywhere in the text, case-insensitively."""
    lowered = query.lower()
    for resolver in disabled_resolvers:
        if resolver and resolver.lower() in lowered:
            return resolver
    return None


def validate_query(query: str, limits: QueryLimits) -> QueryMetrics:
    """
    Check a query against the configured limits

    Checks run in order complexity, depth, disabled resolvers; the first
    violation is raised.

    Args:
        query: Query text as it will be sent
        limits: Active limits

    Returns:
        QueryMetrics: Measured scores when the query is accepted

    Raises:
        QueryValidationError: On the first violated limit
    """
    sanitized = sanitize_query(query)

    complexity = calculate_complexity(sanitized)
    if complexity > limits.max_complexity:
        raise QueryValidationError(
            f"Query complexity ({complexity}) exceeds maximum allowed ({limits.max_complexity})",
            query=query,
        )

    depth = calculate_depth(sanitized)
    if depth > limits.max_depth:
        raise QueryValidationError(
            f"Query depth ({depth}) exceeds maximum allowed ({limits.max_depth})",
            query=query,
        )

    resolver = find_disabled_resolver(sanitized, limits.disabled_resolvers)
    if resolver is not None:
        raise QueryValidationError(f"Access to resolver '{resolver}' is disabled", query=query)

    return QueryMetrics(sanitized=sanitized, complexity=complexity, depth=depth)
