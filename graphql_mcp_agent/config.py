"""Session configuration: environment defaults merged with explicit overrides."""

import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_DEPTH = 10
DEFAULT_MAX_COMPLEXITY = 100

TIMEOUT_RANGE = (1000, 60000)
DEPTH_RANGE = (1, 20)
COMPLEXITY_RANGE = (1, 1000)

ENV_ENDPOINT = "GRAPHQL_ENDPOINT"
ENV_TIMEOUT = "GRAPHQL_TIMEOUT"
ENV_MAX_DEPTH = "GRAPHQL_MAX_DEPTH"
ENV_MAX_COMPLEXITY = "GRAPHQL_MAX_COMPLEXITY"
ENV_DISABLED_RESOLVERS = "GRAPHQL_DISABLED_RESOLVERS"
ENV_HEADERS = "GRAPHQL_HEADERS"
ENV_AUTH_TOKEN = "GRAPHQL_AUTH_TOKEN"
ENV_API_KEY = "GRAPHQL_API_KEY"

_url_adapter = TypeAdapter(AnyHttpUrl)


def _clamp(value: int, bounds: Tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, value))


class SessionConfig(BaseModel):
    """
    Connection settings and query limits for one configured endpoint.

    Frozen: a reconfiguration replaces the whole object.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_depth: int = DEFAULT_MAX_DEPTH
    max_complexity: int = DEFAULT_MAX_COMPLEXITY
    disabled_resolvers: Tuple[str, ...] = ()

    @field_validator("endpoint")
    @classmethod
    def _validate_endpoint(cls, value: str) -> str:
        value = value.strip()
        try:
            _url_adapter.validate_python(value)
        except ValidationError:
            raise ValueError("Must be a valid GraphQL endpoint URL") from None
        return value

    @field_validator("timeout_ms")
    @classmethod
    def _clamp_timeout(cls, value: int) -> int:
        return _clamp(value, TIMEOUT_RANGE)

    @field_validator("max_depth")
    @classmethod
    def _clamp_depth(cls, value: int) -> int:
        return _clamp(value, DEPTH_RANGE)

    @field_validator("max_complexity")
    @classmethod
    def _clamp_complexity(cls, value: int) -> int:
        return _clamp(value, COMPLEXITY_RANGE)

    @field_validator("disabled_resolvers", mode="before")
    @classmethod
    def _normalize_resolvers(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple, set, frozenset)):
            return tuple(name.strip() for name in value if isinstance(name, str) and name.strip())
        return value

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def has_headers(self) -> bool:
        return bool(self.headers)


def _env_int(environ: Mapping[str, str], key: str) -> Optional[int]:
    raw = environ.get(key)
    if raw is None:
        return None
    try:
        return int(raw, 10)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", key, raw)
        return None


def load_environment_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Read configuration defaults from environment variables

    Args:
        environ: Mapping to read from, defaults to ``os.environ``

    Returns:
        Dict: Partial configuration; only keys that were set and parseable
    """
    environ = os.environ if environ is None else environ
    config: Dict[str, Any] = {}

    if environ.get(ENV_ENDPOINT):
        config["endpoint"] = environ[ENV_ENDPOINT]

    for key, field in (
        (ENV_TIMEOUT, "timeout_ms"),
        (ENV_MAX_DEPTH, "max_depth"),
        (ENV_MAX_COMPLEXITY, "max_complexity"),
    ):
        value = _env_int(environ, key)
        if value is not None:
            config[field] = value

    if environ.get(ENV_DISABLED_RESOLVERS):
        config["disabled_resolvers"] = [r.strip() for r in environ[ENV_DISABLED_RESOLVERS].split(",") if r.strip()]

    headers: Dict[str, str] = {}
    if environ.get(ENV_HEADERS):
        try:
            parsed = json.loads(environ[ENV_HEADERS])
            if not isinstance(parsed, dict):
                raise ValueError("expected a JSON object")
            headers.update({str(k): str(v) for k, v in parsed.items()})
        except ValueError as e:
            logger.warning("Failed to parse %s as JSON: %s", ENV_HEADERS, e)

    if environ.get(ENV_AUTH_TOKEN):
        headers["Authorization"] = f"Bearer {environ[ENV_AUTH_TOKEN]}"

    if environ.get(ENV_API_KEY):
        headers["X-API-Key"] = environ[ENV_API_KEY]

    if headers:
        config["headers"] = headers

    return config


def resolve_config(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SessionConfig:
    """
    Merge environment defaults with explicit overrides

    Explicit values win field by field; ``None`` counts as not given. Header
    maps are merged key by key with explicit keys winning.

    Raises:
        ConfigurationError: If no endpoint resolves or a value is malformed
    """
    merged = load_environment_config(environ)
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

    headers = dict(merged.get("headers") or {})
    headers.update(overrides.pop("headers", None) or {})
    merged.update(overrides)
    merged["headers"] = headers

    if not merged.get("endpoint"):
        raise ConfigurationError(
            f"GraphQL endpoint must be provided either as argument or via {ENV_ENDPOINT} environment variable"
        )

    try:
        return SessionConfig(**merged)
    except ValidationError as e:
        problems: List[str] = [
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
        ]
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems)) from e
