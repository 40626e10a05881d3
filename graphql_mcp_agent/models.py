"""Data model shared by the schema catalog, synthesizer and dispatcher."""

import json
import time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import ErrorKind


class TypeKind(str, Enum):
    """GraphQL type kinds as reported by introspection."""

    SCALAR = "SCALAR"
    OBJECT = "OBJECT"
    INTERFACE = "INTERFACE"
    UNION = "UNION"
    ENUM = "ENUM"
    INPUT_OBJECT = "INPUT_OBJECT"
    LIST = "LIST"
    NON_NULL = "NON_NULL"

    @property
    def is_wrapper(self) -> bool:
        return self in (TypeKind.LIST, TypeKind.NON_NULL)


# Kinds that need a selection set when returned and are opaque as arguments
OBJECT_LIKE_KINDS = frozenset(
    {TypeKind.OBJECT, TypeKind.INTERFACE, TypeKind.UNION, TypeKind.INPUT_OBJECT}
)


class OperationKind(str, Enum):
    QUERY = "query"
    MUTATION = "mutation"


class TypeRef(BaseModel):
    """A (possibly wrapped) reference to a GraphQL type."""

    model_config = ConfigDict(frozen=True)

    kind: TypeKind
    name: Optional[str] = None
    of_type: Optional["TypeRef"] = None
    enum_values: Optional[List[str]] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "TypeRef":
        if self.kind.is_wrapper and self.of_type is None:
            raise ValueError(f"{self.kind.value} type reference requires of_type")
        if not self.kind.is_wrapper and not self.name:
            raise ValueError(f"{self.kind.value} type reference requires a name")
        return self


class ArgDescriptor(BaseModel):
    """One argument of a root field."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: TypeRef
    description: Optional[str] = None
    default_value: Optional[str] = None


class FieldDescriptor(BaseModel):
    """One exposed resolver on the Query or Mutation root type."""

    model_config = ConfigDict(frozen=True)

    field_name: str
    operation_kind: OperationKind
    return_type: TypeRef
    args: List[ArgDescriptor] = Field(default_factory=list)
    description: Optional[str] = None

    @property
    def tool_name(self) -> str:
        return f"{self.operation_kind.value}_{self.field_name}"

    def get_arg(self, name: str) -> Optional[ArgDescriptor]:
        for arg in self.args:
            if arg.name == name:
                return arg
        return None


class ToolSpec(BaseModel):
    """Tool interface derived 1:1 from a FieldDescriptor."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    description: str
    parameter_schema: Dict[str, Any]
    descriptor: FieldDescriptor


class SchemaSnapshot(BaseModel):
    """An introspection result and the time it was fetched.

    The TTL only feeds status reporting; a stale snapshot stays usable until
    the next configuration replaces it.
    """

    model_config = ConfigDict(frozen=True)

    raw: Dict[str, Any]
    fetched_at: float = Field(default_factory=time.time)
    ttl_seconds: float = 300.0

    @property
    def schema(self) -> Dict[str, Any]:
        """The ``__schema`` object, with or without the ``data`` envelope."""
        data = self.raw.get("data", self.raw)
        return data.get("__schema", {}) if isinstance(data, dict) else {}

    @property
    def types(self) -> List[Dict[str, Any]]:
        return self.schema.get("types") or []

    def find_type(self, name: str) -> Optional[Dict[str, Any]]:
        for type_def in self.types:
            if type_def.get("name") == name:
                return type_def
        return None

    def age_seconds(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.fetched_at

    def is_stale(self, now: Optional[float] = None) -> bool:
        return self.age_seconds(now) > self.ttl_seconds


class CallResult(BaseModel):
    """Outcome of a tool invocation.

    Failures are ordinary values, not exceptions; both variants carry the
    query text that was (or would have been) sent.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    query: str
    variables: Dict[str, Any] = Field(default_factory=dict)
    payload: Optional[Any] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    label: str = "Query"
    endpoint: Optional[str] = None

    @classmethod
    def success(cls, query: str, payload: Any, variables: Optional[Dict[str, Any]] = None,
                label: str = "Query", endpoint: Optional[str] = None) -> "CallResult":
        return cls(ok=True, query=query, payload=payload, variables=variables or {}, label=label, endpoint=endpoint)

    @classmethod
    def failure(cls, query: str, error_kind: ErrorKind, message: str,
                variables: Optional[Dict[str, Any]] = None, label: str = "Query",
                endpoint: Optional[str] = None) -> "CallResult":
        return cls(
            ok=False,
            query=query,
            error_kind=error_kind,
            message=message,
            variables=variables or {},
            label=label,
            endpoint=endpoint,
        )

    def render(self) -> str:
        """Format the result as agent-facing text, naming the endpoint it ran against."""
        if self.ok:
            header = f"✅ {self.label} executed successfully"
            if self.endpoint:
                header += f"\n\nEndpoint: {self.endpoint}"
            body = json.dumps(self.payload, indent=2, ensure_ascii=False)
            return f"{header}\n\nResult:\n{body}"

        kind = self.error_kind.value if self.error_kind else ErrorKind.INTERNAL.value
        return (
            f"❌ {self.label} failed ({kind})\n\n"
            f"Error: {self.message}\n\n"
            f"Query:\n{self.query}"
        )
