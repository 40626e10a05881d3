import pytest

from graphql_mcp_agent.errors import ErrorKind, QueryValidationError
from graphql_mcp_agent.safety import (
    QueryLimits,
    calculate_complexity,
    calculate_depth,
    find_disabled_resolver,
    sanitize_query,
    validate_query,
)


class TestSanitize:
    def test_strips_comments_and_collapses_whitespace(self):
        query = """
            # list countries
            query {
              countries /* all of them */ {
                name   # display name
              }
            }
        """
        assert sanitize_query(query) == "query { countries { name } }"

    def test_is_idempotent(self):
        for query in ("{ a /* x */ { b } }", "/*/ */ { a } # c", "{ a /* /* */ */ }", "  {\n\ta }  "):
            once = sanitize_query(query)
            assert sanitize_query(once) == once


class TestScores:
    def test_depth_of_nested_braces(self):
        assert calculate_depth("{ a { b { c } } }") == 3

    def test_depth_of_empty_text(self):
        assert calculate_depth("") == 0
        assert calculate_depth("query") == 0

    def test_depth_tolerates_unbalanced_braces(self):
        assert calculate_depth("} } { {") == 0
        assert calculate_depth("{ } { { } }") == 2
        assert calculate_depth("{ { {") == 3

    def test_complexity_counts_selections_with_braces_or_arguments(self):
        assert calculate_complexity("{ countries { name code emoji } }") == 1
        assert calculate_complexity("query { country(code: $code) { name } }") == 2
        assert calculate_complexity("{ a { b { c { d } } } }") == 3

    def test_complexity_of_empty_text(self):
        assert calculate_complexity("") == 0


class TestDisabledResolvers:
    def test_case_insensitive_substring_match(self):
        assert find_disabled_resolver("{ Country(code: \"KE\") { name } }", ["country"]) == "country"

    def test_substring_matches_longer_names(self):
        assert find_disabled_resolver("{ countries { name } }", ["country"]) is None
        assert find_disabled_resolver("{ countryCount }", ["country"]) == "country"

    def test_empty_names_never_match(self):
        assert find_disabled_resolver("{ a }", ["", "b"]) is None


class TestValidateQuery:
    def test_accepts_and_reports_metrics(self):
        metrics = validate_query("{ countries { name code emoji } }", QueryLimits())
        assert metrics.complexity == 1
        assert metrics.depth == 2
        assert metrics.sanitized == "{ countries { name code emoji } }"

    def test_complexity_limit(self):
        with pytest.raises(QueryValidationError) as excinfo:
            validate_query("{ a { b { c } } }", QueryLimits(max_complexity=1))
        assert str(excinfo.value) == "Query complexity (2) exceeds maximum allowed (1)"
        assert excinfo.value.kind == ErrorKind.VALIDATION
        assert excinfo.value.query == "{ a { b { c } } }"

    def test_depth_limit(self):
        with pytest.raises(QueryValidationError, match=r"Query depth \(3\) exceeds maximum allowed \(2\)"):
            validate_query("{ a { b { c } } }", QueryLimits(max_depth=2))

    def test_disabled_resolver(self):
        with pytest.raises(QueryValidationError, match="Access to resolver 'secret' is disabled"):
            validate_query("{ SECRETS { id } }", QueryLimits(disabled_resolvers=("secret",)))

    def test_complexity_is_checked_before_depth_and_deny_list(self):
        query = "{ secret { b { c } } }"
        limits = QueryLimits(max_depth=1, max_complexity=1, disabled_resolvers=("secret",))
        with pytest.raises(QueryValidationError, match="complexity"):
            validate_query(query, limits)

    def test_depth_is_checked_before_deny_list(self):
        query = "{ secret { b { c } } }"
        limits = QueryLimits(max_depth=1, disabled_resolvers=("secret",))
        with pytest.raises(QueryValidationError, match="depth"):
            validate_query(query, limits)

    def test_comments_do_not_count(self):
        query = "{ countries { name } } # secret { x { y { z } } }"
        metrics = validate_query(query, QueryLimits(max_depth=2, max_complexity=1, disabled_resolvers=("secret",)))
        assert metrics.depth == 2
