"""
GraphQL Transport Module

HTTP helpers for talking to a GraphQL endpoint: a generic POST, the
connectivity probe, schema introspection and schema post-processing.
"""

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from graphql import build_client_schema, get_introspection_query, print_schema

from .errors import ExecutionError

logger = logging.getLogger(__name__)

PROBE_QUERY = "{ __typename }"


def format_graphql_errors(errors: List[Any]) -> str:
    """Join the messages of a GraphQL ``errors`` array."""
    messages = []
    for error in errors:
        if isinstance(error, dict):
            messages.append(error.get("message", str(error)))
        else:
            messages.append(str(error))
    return "; ".join(messages)


async def post_graphql(
    endpoint: str,
    query: str,
    variables: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 30.0,
    operation_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    POST a GraphQL request and return the decoded response body

    Args:
        endpoint: GraphQL endpoint URL
        query: Document text, sent as-is
        variables: Optional variables
        headers: Extra HTTP headers
        timeout: Total request timeout in seconds
        operation_name: Optional operation name for multi-operation documents

    Returns:
        Dict: The response body; may contain ``errors``

    Raises:
        ExecutionError: On transport failure, timeout, non-200 status or a non-JSON body
    """
    payload: Dict[str, Any] = {"query": query}
    if variables:
        payload["variables"] = variables
    if operation_name:
        payload["operationName"] = operation_name

    request_headers = {**(headers or {}), "Content-Type": "application/json"}

    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
            async with session.post(endpoint, json=payload, headers=request_headers) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None

                if response.status != 200:
                    detail = ""
                    if isinstance(body, dict) and body.get("errors"):
                        detail = f": {format_graphql_errors(body['errors'])}"
                    raise ExecutionError(f"GraphQL request failed with HTTP {response.status}{detail}", query=query)

                if not isinstance(body, dict):
                    raise ExecutionError("GraphQL endpoint returned a non-JSON response", query=query)

                return body
    except asyncio.TimeoutError as e:
        raise ExecutionError(f"GraphQL request timed out after {timeout:g}s", query=query) from e
    except aiohttp.ClientError as e:
        raise ExecutionError(f"GraphQL request failed: {e}", query=query) from e


async def probe_endpoint(endpoint: str, headers: Optional[Dict[str, str]] = None, timeout: float = 30.0) -> None:
    """
    Check that the endpoint answers a trivial query

    Raises:
        ExecutionError: If the request fails or the response carries errors
    """
    result = await post_graphql(endpoint, PROBE_QUERY, headers=headers, timeout=timeout)
    if result.get("errors"):
        raise ExecutionError(format_graphql_errors(result["errors"]), query=PROBE_QUERY)


async def fetch_graphql_schema(
    endpoint: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 30.0,
    include_descriptions: bool = True,
) -> Dict:
    """
    Fetch schema information from GraphQL endpoint

    Args:
        endpoint: GraphQL endpoint URL
        headers: Extra HTTP headers
        timeout: Total request timeout in seconds
        include_descriptions: Whether to request type, field and argument descriptions

    Returns:
        Dict: The complete introspection response (``{"data": {"__schema": ...}}``)

    Raises:
        ExecutionError: If the request fails or introspection returns errors or no schema
    """
    # Use the standard introspection query from graphql-core
    introspection_query = get_introspection_query(descriptions=include_descriptions)
    result = await post_graphql(endpoint, introspection_query, headers=headers, timeout=timeout)

    if result.get("errors"):
        raise ExecutionError(
            f"GraphQL introspection failed: {format_graphql_errors(result['errors'])}",
            query=introspection_query,
        )

    if not (result.get("data") or {}).get("__schema"):
        raise ExecutionError("GraphQL introspection returned no schema data", query=introspection_query)

    return result


def filter_deprecated(introspection_result: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of an introspection result without deprecated fields and enum values

    The input is left untouched.
    """
    result = copy.deepcopy(introspection_result)
    schema = (result.get("data") or result).get("__schema") or {}

    for type_def in schema.get("types") or []:
        if type_def.get("fields") is not None:
            type_def["fields"] = [f for f in type_def["fields"] if not f.get("isDeprecated")]
        if type_def.get("enumValues") is not None:
            type_def["enumValues"] = [v for v in type_def["enumValues"] if not v.get("isDeprecated")]

    return result


def schema_to_sdl(introspection_result: Dict[str, Any]) -> str:
    """
    Render an introspection result as SDL using graphql-core

    Raises:
        TypeError, ValueError: If the introspection result cannot be turned into a schema
    """
    data = introspection_result.get("data", introspection_result)
    schema = build_client_schema(data)
    return print_schema(schema)
