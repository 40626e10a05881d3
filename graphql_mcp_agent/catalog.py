"""
Schema Catalog Module

Turns an introspection result into one ToolSpec per root Query/Mutation field
and keeps the schema snapshot those specs were derived from.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, create_model

from .models import ArgDescriptor, FieldDescriptor, OperationKind, SchemaSnapshot, ToolSpec
from .synthesizer import build_parameter_schema
from .type_mapper import is_required, parse_type_ref, to_python_type

logger = logging.getLogger(__name__)


def _schema_data(introspection_result: Dict[str, Any]) -> Dict[str, Any]:
    """Get the ``__schema`` part, accepting results with or without the ``data`` envelope."""
    data = introspection_result.get("data", introspection_result) or {}
    return data.get("__schema") or {}


def _root_type(schema_data: Dict[str, Any], ref_key: str) -> Optional[Dict[str, Any]]:
    root_ref = schema_data.get(ref_key) or {}
    root_name = root_ref.get("name")
    if not root_name:
        return None
    for type_def in schema_data.get("types") or []:
        if type_def.get("name") == root_name:
            return type_def
    return None


def derive_descriptors(
    introspection_result: Dict[str, Any],
    disabled_resolvers: Iterable[str] = (),
) -> List[FieldDescriptor]:
    """
    Derive field descriptors for every exposed root field

    Args:
        introspection_result: Raw introspection response
        disabled_resolvers: Field names to skip (case-sensitive exact match)

    Returns:
        List[FieldDescriptor]: Query fields first, then Mutation fields, in schema order
    """
    schema_data = _schema_data(introspection_result)
    type_lookup = {t.get("name"): t for t in schema_data.get("types") or [] if t.get("name")}
    disabled = set(disabled_resolvers)
    descriptors: List[FieldDescriptor] = []

    roots: Tuple[Tuple[str, OperationKind], ...] = (
        ("queryType", OperationKind.QUERY),
        ("mutationType", OperationKind.MUTATION),
    )
    for ref_key, operation_kind in roots:
        root = _root_type(schema_data, ref_key)
        if root is None:
            continue
        for field in root.get("fields") or []:
            field_name = field.get("name")
            if field_name in disabled:
                logger.debug("Skipping disabled resolver %s", field_name)
                continue
            args = [
                ArgDescriptor(
                    name=arg["name"],
                    type=parse_type_ref(arg["type"], type_lookup),
                    description=arg.get("description"),
                    default_value=arg.get("defaultValue"),
                )
                for arg in field.get("args") or []
            ]
            descriptors.append(
                FieldDescriptor(
                    field_name=field_name,
                    operation_kind=operation_kind,
                    return_type=parse_type_ref(field["type"], type_lookup),
                    args=args,
                    description=field.get("description"),
                )
            )

    return descriptors


def build_tool_spec(descriptor: FieldDescriptor) -> ToolSpec:
    """Build the tool interface for a single descriptor."""
    description = descriptor.description or (
        f"Execute GraphQL {descriptor.operation_kind.value}: {descriptor.field_name}"
    )
    return ToolSpec(
        tool_name=descriptor.tool_name,
        description=description,
        parameter_schema=build_parameter_schema(descriptor.args),
        descriptor=descriptor,
    )


def build_args_model(spec: ToolSpec) -> Type[BaseModel]:
    """
    Build a pydantic model validating a tool's call arguments

    Required arguments have no default; optional ones default to None and are
    dropped before synthesis. Unknown arguments are rejected.
    """
    fields: Dict[str, Any] = {}
    for arg in spec.descriptor.args:
        python_type = to_python_type(arg.type)
        if is_required(arg.type):
            fields[arg.name] = (python_type, ...)
        else:
            fields[arg.name] = (Optional[python_type], None)

    model_name = "".join(part.capitalize() for part in spec.tool_name.split("_")) + "Input"
    return create_model(
        model_name,
        __config__=ConfigDict(extra="forbid", protected_namespaces=()),
        **fields,
    )


class SchemaCatalog:
    """
    Ordered set of tools derived from one schema snapshot.

    A catalog is never mutated after construction; reconfiguration builds a
    new one.
    """

    def __init__(self, snapshot: Optional[SchemaSnapshot] = None, tools: Optional[List[ToolSpec]] = None):
        self._snapshot = snapshot
        self._tools: Dict[str, ToolSpec] = {tool.tool_name: tool for tool in tools or []}
        self._args_models: Dict[str, Type[BaseModel]] = {}

    @classmethod
    def empty(cls) -> "SchemaCatalog":
        return cls()

    @classmethod
    def from_introspection(
        cls,
        introspection_result: Dict[str, Any],
        disabled_resolvers: Iterable[str] = (),
        ttl_seconds: float = 300.0,
    ) -> "SchemaCatalog":
        snapshot = SchemaSnapshot(raw=introspection_result, ttl_seconds=ttl_seconds)
        return cls(snapshot=snapshot, tools=rebuild(introspection_result, disabled_resolvers))

    @property
    def snapshot(self) -> Optional[SchemaSnapshot]:
        return self._snapshot

    @property
    def tools(self) -> List[ToolSpec]:
        return list(self._tools.values())

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    def get(self, tool_name: str) -> Optional[ToolSpec]:
        return self._tools.get(tool_name)

    def args_model(self, tool_name: str) -> Type[BaseModel]:
        """Get the (lazily built) argument model for a tool."""
        if tool_name not in self._args_models:
            self._args_models[tool_name] = build_args_model(self._tools[tool_name])
        return self._args_models[tool_name]

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._tools


def rebuild(introspection_result: Dict[str, Any], disabled_resolvers: Iterable[str] = ()) -> List[ToolSpec]:
    """
    Convert an introspection result into an ordered list of tool specs

    Args:
        introspection_result: Raw introspection response
        disabled_resolvers: Field names to leave out

    Returns:
        List[ToolSpec]: One spec per exposed Query/Mutation field
    """
    tools = [build_tool_spec(descriptor) for descriptor in derive_descriptors(introspection_result, disabled_resolvers)]
    logger.info("Built %d tools from GraphQL schema", len(tools))
    return tools
