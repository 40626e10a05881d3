"""
GraphQL Type Mapping Module

Converts introspection type references into tool parameter schemas, GraphQL
variable signatures and Python types for argument validation.
"""

from typing import Any, Dict, List, Literal, Optional

from .models import OBJECT_LIKE_KINDS, TypeKind, TypeRef

SCALAR_PARAMETER_TYPES: Dict[str, str] = {
    "String": "string",
    "ID": "string",
    "Int": "integer",
    "Float": "number",
    "Boolean": "boolean",
}

SCALAR_PYTHON_TYPES: Dict[str, type] = {
    "String": str,
    "ID": str,
    "Int": int,
    "Float": float,
    "Boolean": bool,
}

BUILTIN_SCALARS = frozenset(SCALAR_PARAMETER_TYPES)


def parse_type_ref(raw: Dict[str, Any], type_lookup: Optional[Dict[str, Dict[str, Any]]] = None) -> TypeRef:
    """
    Convert an introspection type reference dict into a TypeRef

    Args:
        raw: Type reference as returned by introspection (``kind``, ``name``, ``ofType``)
        type_lookup: Optional name -> type definition table, used to attach enum values

    Returns:
        TypeRef: Parsed type reference
    """
    kind = TypeKind(raw.get("kind"))

    if kind.is_wrapper:
        return TypeRef(kind=kind, of_type=parse_type_ref(raw.get("ofType") or {}, type_lookup))

    name = raw.get("name")
    enum_values = None
    if kind == TypeKind.ENUM:
        raw_values = raw.get("enumValues")
        if raw_values is None and type_lookup and name in type_lookup:
            raw_values = type_lookup[name].get("enumValues")
        enum_values = [v.get("name") for v in raw_values or [] if v.get("name")]

    return TypeRef(kind=kind, name=name, enum_values=enum_values)


def unwrap(type_ref: TypeRef) -> TypeRef:
    """Strip LIST and NON_NULL wrappers, returning the innermost named type."""
    while type_ref.kind.is_wrapper:
        type_ref = type_ref.of_type
    return type_ref


def is_required(type_ref: TypeRef) -> bool:
    """A NON_NULL outer wrapper marks a parameter as required."""
    return type_ref.kind == TypeKind.NON_NULL


def to_graphql_type_signature(type_ref: TypeRef) -> str:
    """
    Render a type reference in GraphQL syntax for variable declarations

    Examples: ``String``, ``ID!``, ``[String!]!``
    """
    if type_ref.kind == TypeKind.NON_NULL:
        return f"{to_graphql_type_signature(type_ref.of_type)}!"
    if type_ref.kind == TypeKind.LIST:
        return f"[{to_graphql_type_signature(type_ref.of_type)}]"
    return type_ref.name


def to_parameter_schema(type_ref: TypeRef) -> Dict[str, Any]:
    """
    Convert a type reference into a JSON-schema fragment for the tool interface

    Object-like types (including input objects) are not expanded; they map to
    an opaque string placeholder.
    """
    kind = type_ref.kind

    if kind == TypeKind.NON_NULL:
        return to_parameter_schema(type_ref.of_type)

    if kind == TypeKind.LIST:
        return {"type": "array", "items": to_parameter_schema(type_ref.of_type)}

    if kind == TypeKind.SCALAR:
        return {"type": SCALAR_PARAMETER_TYPES.get(type_ref.name, "string")}

    if kind == TypeKind.ENUM:
        return {"type": "string", "enum": list(type_ref.enum_values or [])}

    if kind in OBJECT_LIKE_KINDS:
        return {"type": "string", "description": f"{type_ref.name} object"}

    raise ValueError(f"Unsupported type kind: {kind}")


def to_python_type(type_ref: TypeRef) -> Any:
    """
    Convert a type reference into a Python type annotation for pydantic validation

    NON_NULL is not reflected here; required-ness is decided by the caller.
    Opaque object-like kinds accept any JSON value.
    """
    kind = type_ref.kind

    if kind == TypeKind.NON_NULL:
        return to_python_type(type_ref.of_type)

    if kind == TypeKind.LIST:
        item = to_python_type(type_ref.of_type)
        if type_ref.of_type.kind != TypeKind.NON_NULL:
            item = Optional[item]
        return List[item]

    if kind == TypeKind.SCALAR:
        return SCALAR_PYTHON_TYPES.get(type_ref.name, str)

    if kind == TypeKind.ENUM:
        if type_ref.enum_values:
            return Literal[tuple(type_ref.enum_values)]
        return str

    if kind in OBJECT_LIKE_KINDS:
        return Any

    raise ValueError(f"Unsupported type kind: {kind}")


def is_leaf(type_ref: TypeRef) -> bool:
    """Scalar and enum results need no selection set."""
    return unwrap(type_ref).kind in (TypeKind.SCALAR, TypeKind.ENUM)
