"""
GraphQL Dispatcher

Owns the active configuration and tool catalog, and drives configuration,
resolver invocation, raw query execution, introspection and status.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ValidationError

from .base import GraphQLSource
from .catalog import SchemaCatalog
from .config import SessionConfig, load_environment_config, resolve_config
from .errors import (
    ConfigurationError,
    ConnectivityError,
    ErrorKind,
    ExecutionError,
    IntrospectionError,
    QueryValidationError,
    ToolNotFoundError,
)
from .graphql import filter_deprecated, format_graphql_errors, schema_to_sdl
from .models import CallResult, OperationKind
from .safety import QueryLimits, validate_query
from .synthesizer import synthesize

logger = logging.getLogger(__name__)

STATIC_TOOL_NAMES: Tuple[str, ...] = ("configure_graphql", "introspect_schema", "execute_query", "get_status")
SCHEMA_CACHE_TTL_SECONDS = 5 * 60
AUTO_CONFIGURE_DELAY_SECONDS = 0.1


class DispatcherState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURING = "configuring"
    CONFIGURED = "configured"


@dataclass(frozen=True)
class Session:
    """One configuration version: settings, connection and the tools derived from it."""

    config: SessionConfig
    source: GraphQLSource
    catalog: SchemaCatalog


class ConfigureSummary(BaseModel):
    """What a successful configure call applied."""

    endpoint: str
    timeout_ms: int
    max_depth: int
    max_complexity: int
    disabled_resolvers: List[str]
    headers_configured: bool
    tool_count: int
    introspection_error: Optional[str] = None

    @classmethod
    def from_session(cls, session: Session, introspection_error: Optional[str] = None) -> "ConfigureSummary":
        config = session.config
        return cls(
            endpoint=config.endpoint,
            timeout_ms=config.timeout_ms,
            max_depth=config.max_depth,
            max_complexity=config.max_complexity,
            disabled_resolvers=list(config.disabled_resolvers),
            headers_configured=config.has_headers,
            tool_count=len(session.catalog),
            introspection_error=introspection_error,
        )

    def render(self) -> str:
        disabled = ", ".join(self.disabled_resolvers) if self.disabled_resolvers else "None"
        text = (
            f"✅ Successfully configured GraphQL endpoint: {self.endpoint}\n\n"
            f"Settings:\n"
            f"- Max depth: {self.max_depth}\n"
            f"- Max complexity: {self.max_complexity}\n"
            f"- Disabled resolvers: {disabled}\n"
            f"- Timeout: {self.timeout_ms}ms\n"
            f"- Headers configured: {'yes' if self.headers_configured else 'no'}\n"
            f"- Dynamic tools created: {self.tool_count}"
        )
        if self.introspection_error:
            text += f"\n\n⚠️ Schema introspection failed, no resolver tools available: {self.introspection_error}"
        return text


class GraphQLDispatcher:
    """
    State machine UNCONFIGURED -> CONFIGURING -> CONFIGURED.

    The active Session is replaced wholesale and only inside configure().
    Every operation reads ``self._session`` once at entry and works on that
    reference, so an invocation started before a reconfiguration finishes
    against the session it started with.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        source_factory: Callable[[SessionConfig], GraphQLSource] = GraphQLSource.from_config,
        schema_ttl_seconds: float = SCHEMA_CACHE_TTL_SECONDS,
    ):
        """
        Args:
            environ: Environment to read defaults from, defaults to ``os.environ``
            source_factory: Builds the endpoint connection for a configuration
            schema_ttl_seconds: Schema cache TTL reported by status()
        """
        self._environ = environ
        self._source_factory = source_factory
        self._schema_ttl_seconds = schema_ttl_seconds
        self._state = DispatcherState.UNCONFIGURED
        self._session: Optional[Session] = None
        self._auto_configure_attempted = False

    @property
    def state(self) -> DispatcherState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_configured(self) -> bool:
        return self._session is not None

    @property
    def catalog(self) -> SchemaCatalog:
        session = self._session
        return session.catalog if session else SchemaCatalog.empty()

    def known_tool_names(self) -> List[str]:
        return list(STATIC_TOOL_NAMES) + self.catalog.tool_names

    # Configuration

    async def configure(
        self,
        endpoint: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout_ms: Optional[int] = None,
        max_depth: Optional[int] = None,
        max_complexity: Optional[int] = None,
        disabled_resolvers: Optional[List[str]] = None,
    ) -> ConfigureSummary:
        """
        Configure (or reconfigure) the endpoint and rebuild the resolver tools

        The previous session is dropped before anything else happens, so a
        failed attempt leaves the dispatcher unconfigured rather than stale.
        Introspection failure is not fatal: the session is installed with
        zero resolver tools.

        Raises:
            ConfigurationError: If no endpoint resolves or a setting is malformed
            ConnectivityError: If the connectivity probe fails
        """
        self._session = None
        self._state = DispatcherState.CONFIGURING
        installed = False

        try:
            config = resolve_config(
                {
                    "endpoint": endpoint,
                    "headers": headers,
                    "timeout_ms": timeout_ms,
                    "max_depth": max_depth,
                    "max_complexity": max_complexity,
                    "disabled_resolvers": disabled_resolvers,
                },
                self._environ,
            )
            source = self._source_factory(config)

            try:
                await source.probe()
            except ExecutionError as e:
                raise ConnectivityError(f"Failed to connect to GraphQL endpoint: {e.message}") from e

            catalog, introspection_error = await self._build_catalog(config, source)
            session = Session(config=config, source=source, catalog=catalog)
            self._session = session
            self._state = DispatcherState.CONFIGURED
            installed = True
        finally:
            if not installed:
                self._state = DispatcherState.UNCONFIGURED

        logger.info("Configured GraphQL endpoint: %s (%d dynamic tools)", config.endpoint, len(catalog))
        return ConfigureSummary.from_session(session, introspection_error)

    async def _build_catalog(
        self, config: SessionConfig, source: GraphQLSource
    ) -> Tuple[SchemaCatalog, Optional[str]]:
        logger.info("Performing schema introspection to create resolver tools")
        try:
            introspection_result = await source.get_schema()
            catalog = SchemaCatalog.from_introspection(
                introspection_result,
                config.disabled_resolvers,
                ttl_seconds=self._schema_ttl_seconds,
            )
        except (ExecutionError, ValueError, KeyError, TypeError, AttributeError) as e:
            error = IntrospectionError(str(e))
            logger.warning("Schema introspection failed, but configuration saved: %s", error)
            return SchemaCatalog.empty(), error.message

        logger.info("Created %d dynamic tools from GraphQL schema", len(catalog))
        return catalog, None

    async def auto_configure(self, delay: float = AUTO_CONFIGURE_DELAY_SECONDS) -> bool:
        """
        First transition after the transport is ready: configure from the environment

        Runs at most once. Failure is logged and leaves the dispatcher unconfigured.

        Returns:
            bool: True if configuration succeeded
        """
        if self._auto_configure_attempted:
            return False
        self._auto_configure_attempted = True

        env_endpoint = load_environment_config(self._environ).get("endpoint")
        if not env_endpoint:
            logger.info("No GRAPHQL_ENDPOINT found in environment. Running without GraphQL configuration")
            return False

        await asyncio.sleep(delay)
        try:
            await self.configure()
        except (ConfigurationError, ConnectivityError) as e:
            logger.warning("Auto-configuration from environment failed: %s", e)
            logger.warning("Running without GraphQL configuration")
            return False

        logger.info("Auto-configured from environment: %s", env_endpoint)
        return True

    # Execution

    def _require_session(self) -> Session:
        session = self._session
        if session is None:
            if load_environment_config(self._environ).get("endpoint"):
                suggestion = (
                    "Use configure_graphql to activate the endpoint, or check the logs for "
                    "auto-configuration errors."
                )
            else:
                suggestion = "Use configure_graphql first, or set the GRAPHQL_ENDPOINT environment variable."
            raise ConfigurationError(f"GraphQL endpoint not configured. {suggestion}")
        return session

    async def invoke(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> CallResult:
        """
        Call a resolver tool

        Argument and safety violations come back as VALIDATION failures and
        nothing is sent; transport and GraphQL errors come back as EXECUTION
        failures. Both carry the attempted query.

        Raises:
            ConfigurationError: If nothing is configured
            ToolNotFoundError: If no resolver tool has that name
        """
        session = self._require_session()
        spec = session.catalog.get(tool_name)
        if spec is None:
            raise ToolNotFoundError(tool_name, list(STATIC_TOOL_NAMES) + session.catalog.tool_names)

        descriptor = spec.descriptor
        snapshot = session.catalog.snapshot
        label = "Mutation" if descriptor.operation_kind == OperationKind.MUTATION else "Query"

        try:
            validated = session.catalog.args_model(tool_name).model_validate(arguments or {})
        except ValidationError as e:
            attempted = synthesize(descriptor, snapshot).document
            return CallResult.failure(
                attempted,
                ErrorKind.VALIDATION,
                f"Invalid arguments for {tool_name}: {_format_validation_error(e)}",
                variables=arguments or {},
                label=label,
                endpoint=session.config.endpoint,
            )

        synthesized = synthesize(descriptor, snapshot, validated.model_dump(exclude_none=True))
        logger.info(
            "Executing GraphQL %s: %s (variables: %s)",
            descriptor.operation_kind.value,
            descriptor.field_name,
            bool(synthesized.variables),
        )
        return await self._execute(session, synthesized.document, synthesized.variables, label=label)

    async def execute_query(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> CallResult:
        """
        Execute a hand-written query under the same limits as synthesized ones

        Raises:
            ConfigurationError: If nothing is configured
        """
        session = self._require_session()
        if not query or not query.strip():
            return CallResult.failure(
                query or "", ErrorKind.VALIDATION, "GraphQL query cannot be empty", endpoint=session.config.endpoint
            )
        return await self._execute(session, query, variables or {}, operation_name=operation_name)

    async def _execute(
        self,
        session: Session,
        query: str,
        variables: Dict[str, Any],
        operation_name: Optional[str] = None,
        label: str = "Query",
    ) -> CallResult:
        endpoint = session.config.endpoint
        try:
            validate_query(query, QueryLimits.from_config(session.config))
        except QueryValidationError as e:
            logger.warning("Rejected query: %s", e)
            return CallResult.failure(
                query, ErrorKind.VALIDATION, e.message, variables=variables, label=label, endpoint=endpoint
            )

        try:
            result = await session.source.execute_query(query, variables, operation_name=operation_name)
        except ExecutionError as e:
            logger.warning("GraphQL execution failed: %s", e)
            return CallResult.failure(
                query, ErrorKind.EXECUTION, e.message, variables=variables, label=label, endpoint=endpoint
            )

        if result.get("errors"):
            message = format_graphql_errors(result["errors"])
            logger.warning("GraphQL returned errors: %s", message)
            return CallResult.failure(
                query, ErrorKind.EXECUTION, message, variables=variables, label=label, endpoint=endpoint
            )

        return CallResult.success(query, result.get("data"), variables=variables, label=label, endpoint=endpoint)

    # Introspection and status

    async def introspect(self, include_deprecated: bool = False, format: str = "json") -> str:
        """
        Return the schema as text

        Uses the cached snapshot when there is one; otherwise fetches a fresh
        result without installing it (the resolver tools only change on
        reconfiguration).

        Args:
            include_deprecated: Keep deprecated fields and enum values
            format: ``json`` for the raw introspection result, ``sdl`` for schema language

        Raises:
            ConfigurationError: If nothing is configured or the format is unknown
            IntrospectionError: If a fresh fetch fails or the schema cannot be rendered
        """
        if format not in ("json", "sdl"):
            raise ConfigurationError(f"Unknown schema format '{format}', expected 'json' or 'sdl'")

        session = self._require_session()
        snapshot = session.catalog.snapshot
        if snapshot is not None:
            raw = snapshot.raw
        else:
            try:
                raw = await session.source.get_schema()
            except ExecutionError as e:
                raise IntrospectionError(f"Schema introspection failed: {e.message}") from e

        if not include_deprecated:
            raw = filter_deprecated(raw)

        if format == "sdl":
            try:
                return schema_to_sdl(raw)
            except (TypeError, ValueError, KeyError) as e:
                raise IntrospectionError(f"Could not render schema as SDL: {e}") from e
        return json.dumps(raw, indent=2, ensure_ascii=False)

    def status(self, now: Optional[float] = None) -> Dict[str, Any]:
        """Report state, endpoint, limits and schema cache; no side effects."""
        session = self._session
        now = now if now is not None else time.time()

        settings = None
        snapshot = None
        if session is not None:
            config = session.config
            snapshot = session.catalog.snapshot
            settings = {
                "maxDepth": config.max_depth,
                "maxComplexity": config.max_complexity,
                "disabledResolvers": list(config.disabled_resolvers),
                "timeout": config.timeout_ms,
                "headersConfigured": config.has_headers,
            }

        return {
            "state": self._state.value,
            "configured": session is not None,
            "endpoint": session.config.endpoint if session else None,
            "settings": settings,
            "dynamicTools": len(session.catalog) if session else 0,
            "cacheStatus": {
                "schemaCache": snapshot is not None,
                "cacheAge": round(snapshot.age_seconds(now) * 1000) if snapshot else None,
                "cacheTTL": int(self._schema_ttl_seconds * 1000),
                "stale": snapshot.is_stale(now) if snapshot else None,
            },
        }

    def render_status(self) -> str:
        return f"📊 GraphQL Agent Status\n\n{json.dumps(self.status(), indent=2)}"


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)
