"""
GraphQL Query Synthesis Module

Builds a minimal executable document for a single root field: a variable
declaration per argument, the argument application on the field, and a
best-effort selection set for object-typed results.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .models import OBJECT_LIKE_KINDS, ArgDescriptor, FieldDescriptor, SchemaSnapshot, TypeKind, TypeRef
from .type_mapper import is_required, to_graphql_type_signature, to_parameter_schema, unwrap

MAX_SELECTED_FIELDS = 5
FALLBACK_SELECTION = ("id", "name", "code", "title")


class SynthesizedQuery(BaseModel):
    """A synthesized document plus the variables to send with it."""

    document: str
    variable_schema: Dict[str, Any]
    variables: Dict[str, Any] = Field(default_factory=dict)


def build_parameter_schema(args: List[ArgDescriptor]) -> Dict[str, Any]:
    """
    Build the JSON-schema object describing a field's arguments

    Args:
        args: Argument descriptors in declaration order

    Returns:
        Dict: ``{"type": "object", "properties": ..., "required": ..., "additionalProperties": False}``
    """
    properties: Dict[str, Any] = {}
    required: List[str] = []

    for arg in args:
        prop = to_parameter_schema(arg.type)
        if arg.description:
            prop["description"] = arg.description
        if arg.default_value is not None:
            try:
                prop["default"] = json.loads(arg.default_value)
            except (json.JSONDecodeError, TypeError):
                # Enum literals and other GraphQL-only syntax are not JSON
                pass
        properties[arg.name] = prop
        if is_required(arg.type):
            required.append(arg.name)

    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def build_selection_set(return_type: TypeRef, snapshot: Optional[SchemaSnapshot]) -> str:
    """
    Pick a selection set for a field's return type

    Scalar and enum results need none. For object-like results the first few
    scalar/enum fields of the type are selected; when the type is unknown or
    has none, a fixed guess list is used. The guess may not exist on the
    type, in which case the server rejects the query at execution time.

    Returns:
        str: Selection set like `` { name code }`` or an empty string
    """
    leaf = unwrap(return_type)
    if leaf.kind in (TypeKind.SCALAR, TypeKind.ENUM):
        return ""

    if snapshot is not None:
        type_def = snapshot.find_type(leaf.name)
        if type_def and type_def.get("fields"):
            selected = []
            for field in type_def["fields"]:
                field_leaf = _leaf_kind(field.get("type") or {})
                if field_leaf in ("SCALAR", "ENUM"):
                    selected.append(field["name"])
                if len(selected) >= MAX_SELECTED_FIELDS:
                    break
            if selected:
                return f" {{ {' '.join(selected)} }}"

    return f" {{ {' '.join(FALLBACK_SELECTION)} }}"


def _leaf_kind(raw_type: Dict[str, Any]) -> Optional[str]:
    while raw_type and raw_type.get("kind") in ("NON_NULL", "LIST"):
        raw_type = raw_type.get("ofType") or {}
    return raw_type.get("kind")


def _coerce_opaque(arg: ArgDescriptor, value: Any) -> Any:
    """Decode JSON-encoded strings passed for object-like arguments."""
    if unwrap(arg.type).kind not in OBJECT_LIKE_KINDS or not isinstance(value, str):
        return value
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError:
        return value
    return decoded if isinstance(decoded, (dict, list)) else value


def synthesize(
    descriptor: FieldDescriptor,
    snapshot: Optional[SchemaSnapshot],
    arguments: Optional[Dict[str, Any]] = None,
) -> SynthesizedQuery:
    """
    Synthesize the document for one root field

    Args:
        descriptor: Field to call
        snapshot: Cached schema used to choose a selection set
        arguments: Call arguments. When given, only supplied arguments are
            declared and applied, so omitted ones keep their server defaults.
            When omitted, every declared argument is included.

    Returns:
        SynthesizedQuery: Document text, parameter schema and variables
    """
    if arguments is None:
        applied = list(descriptor.args)
        variables: Dict[str, Any] = {}
    else:
        applied = [arg for arg in descriptor.args if arg.name in arguments]
        variables = {arg.name: _coerce_opaque(arg, arguments[arg.name]) for arg in applied}

    if applied:
        declarations = ", ".join(f"${arg.name}: {to_graphql_type_signature(arg.type)}" for arg in applied)
        applications = ", ".join(f"{arg.name}: ${arg.name}" for arg in applied)
        variable_clause = f"({declarations})"
        arg_clause = f"({applications})"
    else:
        variable_clause = ""
        arg_clause = ""

    selection_set = build_selection_set(descriptor.return_type, snapshot)
    operation = descriptor.operation_kind.value
    head = f"{operation} {variable_clause}" if variable_clause else operation
    document = f"{head} {{ {descriptor.field_name}{arg_clause}{selection_set} }}"

    return SynthesizedQuery(
        document=document,
        variable_schema=build_parameter_schema(descriptor.args),
        variables=variables,
    )
