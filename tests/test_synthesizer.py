from graphql import parse

from graphql_mcp_agent.catalog import derive_descriptors
from graphql_mcp_agent.models import FieldDescriptor, OperationKind, SchemaSnapshot, TypeKind, TypeRef
from graphql_mcp_agent.synthesizer import FALLBACK_SELECTION, build_selection_set, synthesize


def descriptor_for(introspection_result, tool_name):
    return next(d for d in derive_descriptors(introspection_result) if d.tool_name == tool_name)


def test_no_argument_object_list_field(introspection_result):
    snapshot = SchemaSnapshot(raw=introspection_result)
    descriptor = descriptor_for(introspection_result, "query_countries")

    synthesized = synthesize(descriptor, snapshot, {})

    assert synthesized.document == "query { countries { code name emoji capital currency } }"
    assert synthesized.variables == {}
    parse(synthesized.document)


def test_selection_set_is_capped_and_skips_object_fields(introspection_result):
    snapshot = SchemaSnapshot(raw=introspection_result)
    country = TypeRef(kind=TypeKind.OBJECT, name="Country")

    selection = build_selection_set(country, snapshot)

    fields = selection.strip(" {}").split()
    assert fields == ["code", "name", "emoji", "capital", "currency"]
    assert "continent" not in fields
    assert "languages" not in fields


def test_scalar_return_needs_no_selection(introspection_result):
    snapshot = SchemaSnapshot(raw=introspection_result)
    descriptor = descriptor_for(introspection_result, "query_countryCount")

    assert synthesize(descriptor, snapshot, {}).document == "query { countryCount }"


def test_fallback_selection_when_type_unknown_or_has_no_leaf_fields(introspection_result):
    snapshot = SchemaSnapshot(raw=introspection_result)
    fallback = f" {{ {' '.join(FALLBACK_SELECTION)} }}"

    assert build_selection_set(TypeRef(kind=TypeKind.OBJECT, name="Wrapper"), snapshot) == fallback
    assert build_selection_set(TypeRef(kind=TypeKind.OBJECT, name="Missing"), snapshot) == fallback
    assert build_selection_set(TypeRef(kind=TypeKind.OBJECT, name="Country"), None) == fallback


def test_arguments_are_declared_and_applied(introspection_result):
    snapshot = SchemaSnapshot(raw=introspection_result)
    descriptor = descriptor_for(introspection_result, "query_country")

    synthesized = synthesize(descriptor, snapshot, {"code": "KE"})

    assert synthesized.document == (
        "query ($code: ID!) { country(code: $code) { code name emoji capital currency } }"
    )
    assert synthesized.variables == {"code": "KE"}
    parse(synthesized.document)


def test_only_supplied_arguments_are_applied(introspection_result):
    snapshot = SchemaSnapshot(raw=introspection_result)
    descriptor = descriptor_for(introspection_result, "query_countriesByContinent")

    partial = synthesize(descriptor, snapshot, {"continent": "EU"})
    full = synthesize(descriptor, snapshot)

    assert "($continent: ContinentCode!)" in partial.document
    assert "names" not in partial.document
    assert "($continent: ContinentCode!, $names: [String!])" in full.document
    assert "countriesByContinent(continent: $continent, names: $names)" in full.document


def test_mutation_document(introspection_result):
    snapshot = SchemaSnapshot(raw=introspection_result)
    descriptor = descriptor_for(introspection_result, "mutation_renameCountry")

    synthesized = synthesize(descriptor, snapshot, {"code": "AD", "name": "Andorra!"})

    assert synthesized.document.startswith("mutation ($code: ID!, $name: String!) { renameCountry(")
    parse(synthesized.document)


def test_variable_schema_marks_required_and_defaults(introspection_result):
    descriptor = descriptor_for(introspection_result, "query_languages")

    schema = synthesize(descriptor, None, {}).variable_schema

    assert schema["properties"]["limit"] == {"type": "integer", "default": 10}
    assert schema["required"] == []
    assert schema["additionalProperties"] is False


def test_json_encoded_input_object_is_decoded(introspection_result):
    descriptor = descriptor_for(introspection_result, "query_countries")

    synthesized = synthesize(descriptor, None, {"filter": '{"code": "KE"}'})

    assert synthesized.variables == {"filter": {"code": "KE"}}
    assert "($filter: CountryFilterInput)" in synthesized.document


def test_descriptor_without_schema_uses_fallback():
    descriptor = FieldDescriptor(
        field_name="viewer",
        operation_kind=OperationKind.QUERY,
        return_type=TypeRef(kind=TypeKind.OBJECT, name="User"),
    )

    assert synthesize(descriptor, None).document == "query { viewer { id name code title } }"
