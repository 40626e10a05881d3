"""Shared fixtures: an in-memory countries schema served by a fake GraphQL source."""

import copy
from typing import Any, Dict, List, Optional

import pytest
from graphql import build_schema, graphql, introspection_from_schema

from graphql_mcp_agent.config import SessionConfig
from graphql_mcp_agent.dispatcher import GraphQLDispatcher
from graphql_mcp_agent.errors import ExecutionError

COUNTRIES_ENDPOINT = "https://countries.example.com/graphql"
DOWN_ENDPOINT = "https://down.example.com/graphql"
NO_INTROSPECTION_ENDPOINT = "https://locked.example.com/graphql"

COUNTRIES_SDL = '''
type Query {
  "All countries, optionally filtered"
  countries(filter: CountryFilterInput): [Country!]!
  country(code: ID!): Country
  continents: [Continent!]!
  languages(limit: Int = 10): [Language!]!
  countryCount: Int!
  countriesByContinent(continent: ContinentCode!, names: [String!]): [Country!]!
  wrapped: Wrapper
}

type Mutation {
  renameCountry(code: ID!, name: String!): Country
}

enum ContinentCode {
  AF
  EU
  AS
}

input CountryFilterInput {
  code: String
}

type Country {
  code: ID!
  name: String!
  emoji: String!
  capital: String
  continent: Continent!
  languages: [Language!]!
  currency: String
  oldName: String @deprecated(reason: "Use name")
}

type Continent {
  code: ID!
  name: String!
}

type Language {
  code: ID!
  name: String
  rtl: Boolean!
}

type Wrapper {
  country: Country
}
'''

COUNTRIES: List[Dict[str, Any]] = [
    {"code": "AD", "name": "Andorra", "emoji": "🇦🇩", "capital": "Andorra la Vella", "currency": "EUR",
     "continent": {"code": "EU", "name": "Europe"}, "languages": [], "oldName": None},
    {"code": "KE", "name": "Kenya", "emoji": "🇰🇪", "capital": "Nairobi", "currency": "KES",
     "continent": {"code": "AF", "name": "Africa"}, "languages": [], "oldName": None},
    {"code": "JP", "name": "Japan", "emoji": "🇯🇵", "capital": "Tokyo", "currency": "JPY",
     "continent": {"code": "AS", "name": "Asia"}, "languages": [], "oldName": None},
]


def _countries(info, filter=None):
    if filter and filter.get("code"):
        return [c for c in COUNTRIES if c["code"] == filter["code"]]
    return COUNTRIES


def _country(info, code):
    return next((c for c in COUNTRIES if c["code"] == code), None)


def _countries_by_continent(info, continent, names=None):
    found = [c for c in COUNTRIES if c["continent"]["code"] == continent]
    if names is not None:
        found = [c for c in found if c["name"] in names]
    return found


def _rename_country(info, code, name):
    country = _country(info, code)
    return {**country, "name": name} if country else None


ROOT_VALUE = {
    "countries": _countries,
    "country": _country,
    "continents": [{"code": "EU", "name": "Europe"}, {"code": "AF", "name": "Africa"}],
    "languages": lambda info, limit=10: [{"code": "en", "name": "English", "rtl": False}][:limit],
    "countryCount": len(COUNTRIES),
    "countriesByContinent": _countries_by_continent,
    "wrapped": {"country": COUNTRIES[0]},
    "renameCountry": _rename_country,
}

SCHEMA = build_schema(COUNTRIES_SDL)


def countries_introspection() -> Dict[str, Any]:
    return {"data": introspection_from_schema(SCHEMA)}


class FakeGraphQLSource:
    """Stands in for GraphQLSource, executing against the in-memory schema."""

    def __init__(self, config: SessionConfig, probe_error: Optional[str] = None,
                 introspection_error: Optional[str] = None):
        self.endpoint = config.endpoint
        self.headers = dict(config.headers)
        self.timeout_ms = config.timeout_ms
        self.probe_error = probe_error
        self.introspection_error = introspection_error
        self.executed: List[Dict[str, Any]] = []
        self.introspection_calls = 0

    async def probe(self) -> None:
        if self.probe_error:
            raise ExecutionError(self.probe_error, query="{ __typename }")

    async def get_schema(self) -> Dict[str, Any]:
        self.introspection_calls += 1
        if self.introspection_error:
            raise ExecutionError(self.introspection_error)
        return copy.deepcopy(countries_introspection())

    async def execute_query(self, query: str, variables: Optional[Dict] = None,
                            operation_name: Optional[str] = None) -> Dict[str, Any]:
        self.executed.append({"query": query, "variables": variables, "operation_name": operation_name})
        result = await graphql(
            SCHEMA,
            query,
            root_value=ROOT_VALUE,
            variable_values=variables,
            operation_name=operation_name,
        )
        return result.formatted


class FakeSourceFactory:
    """Builds fake sources by endpoint and remembers them."""

    def __init__(self):
        self.sources: List[FakeGraphQLSource] = []

    def __call__(self, config: SessionConfig) -> FakeGraphQLSource:
        if config.endpoint == DOWN_ENDPOINT:
            source = FakeGraphQLSource(config, probe_error="Cannot connect to host down.example.com:443")
        elif config.endpoint == NO_INTROSPECTION_ENDPOINT:
            source = FakeGraphQLSource(config, introspection_error="GraphQL introspection is not allowed")
        else:
            source = FakeGraphQLSource(config)
        self.sources.append(source)
        return source

    @property
    def last(self) -> FakeGraphQLSource:
        return self.sources[-1]


@pytest.fixture
def introspection_result() -> Dict[str, Any]:
    return countries_introspection()


@pytest.fixture
def source_factory() -> FakeSourceFactory:
    return FakeSourceFactory()


@pytest.fixture
def dispatcher(source_factory) -> GraphQLDispatcher:
    return GraphQLDispatcher(environ={}, source_factory=source_factory)
