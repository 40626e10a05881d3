import mcp.types as types
import pytest

from graphql_mcp_agent.base import GraphQLToolkit
from graphql_mcp_agent.errors import ConfigurationError, InternalError, QueryValidationError, ToolNotFoundError
from graphql_mcp_agent.server import SERVER_NAME, create_server, handle_call_tool, list_tool_definitions
from graphql_mcp_agent.tools import GraphQLResolverTool, clean_query

from .conftest import COUNTRIES_ENDPOINT

STATIC_TOOLS = ["configure_graphql", "introspect_schema", "execute_query", "get_status"]


@pytest.fixture
def toolkit(dispatcher):
    return GraphQLToolkit(dispatcher=dispatcher)


def tools_by_name(toolkit):
    return {tool.name: tool for tool in toolkit.get_tools()}


class TestCleanQuery:
    def test_code_fence_with_language(self):
        assert clean_query("```graphql\n{ countries { name } }\n```") == "{ countries { name } }"

    def test_backticks_and_quotes(self):
        assert clean_query("`{ countryCount }`") == "{ countryCount }"
        assert clean_query('"{ countryCount }"') == "{ countryCount }"

    def test_plain_query_is_unchanged(self):
        assert clean_query("  query { countryCount }\n") == "query { countryCount }"


class TestToolkit:
    def test_static_tools_only_until_configured(self, toolkit):
        assert [tool.name for tool in toolkit.get_tools()] == STATIC_TOOLS
        assert toolkit.dialect == "graphql"

    @pytest.mark.asyncio
    async def test_configure_tool_adds_resolver_tools(self, toolkit):
        text = await tools_by_name(toolkit)["configure_graphql"].ainvoke(
            {"endpoint": COUNTRIES_ENDPOINT, "maxDepth": 5, "disabledResolvers": ["wrapped"]}
        )

        assert text.startswith("✅ Successfully configured GraphQL endpoint")
        assert "- Max depth: 5" in text

        names = [tool.name for tool in toolkit.get_tools()]
        assert names[:4] == STATIC_TOOLS
        assert "query_countries" in names
        assert "mutation_renameCountry" in names
        assert "query_wrapped" not in names

    @pytest.mark.asyncio
    async def test_resolver_tool(self, toolkit, dispatcher):
        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT)
        tool = tools_by_name(toolkit)["query_country"]

        assert isinstance(tool, GraphQLResolverTool)
        assert tool.spec.tool_name == "query_country"
        assert tool.parameter_schema()["required"] == ["code"]

        text = await tool.ainvoke({"code": "JP"})

        assert text.startswith("✅ Query executed successfully")
        assert f"Endpoint: {COUNTRIES_ENDPOINT}" in text
        assert '"name": "Japan"' in text

    @pytest.mark.asyncio
    async def test_execute_query_tool_cleans_input(self, toolkit, dispatcher):
        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT)

        text = await tools_by_name(toolkit)["execute_query"].ainvoke({"query": "`{ countryCount }`"})

        assert '"countryCount": 3' in text

    @pytest.mark.asyncio
    async def test_errors_are_returned_as_text(self, toolkit):
        text = await tools_by_name(toolkit)["execute_query"].ainvoke({"query": "{ countryCount }"})

        assert text.startswith("❌ Configuration error: GraphQL endpoint not configured")

    @pytest.mark.asyncio
    async def test_introspect_tool(self, toolkit, dispatcher):
        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT)

        text = await tools_by_name(toolkit)["introspect_schema"].ainvoke({"format": "sdl"})

        assert "type Country {" in text

    def test_status_tool_runs_synchronously(self, toolkit):
        text = tools_by_name(toolkit)["get_status"].invoke({})

        assert text.startswith("📊 GraphQL Agent Status")
        assert '"configured": false' in text

    def test_static_parameter_schemas(self, toolkit):
        schema = tools_by_name(toolkit)["configure_graphql"].parameter_schema()

        assert set(schema["properties"]) == {
            "endpoint", "headers", "timeout", "maxDepth", "maxComplexity", "disabledResolvers",
        }
        assert tools_by_name(toolkit)["execute_query"].parameter_schema()["required"] == ["query"]


class TestServer:
    def test_create_server(self, dispatcher):
        server = create_server(dispatcher)

        assert server.name == SERVER_NAME

    @pytest.mark.asyncio
    async def test_list_tool_definitions(self, toolkit, dispatcher):
        assert [tool.name for tool in list_tool_definitions(toolkit)] == STATIC_TOOLS

        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT)
        definitions = {tool.name: tool for tool in list_tool_definitions(toolkit)}

        assert len(definitions) == len(STATIC_TOOLS) + 8
        assert definitions["query_countriesByContinent"].inputSchema == {
            "type": "object",
            "properties": {
                "continent": {"type": "string", "enum": ["AF", "EU", "AS"]},
                "names": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["continent"],
            "additionalProperties": False,
        }
        assert definitions["query_countries"].description == "All countries, optionally filtered"

    @pytest.mark.asyncio
    async def test_call_static_and_resolver_tools(self, toolkit):
        text, is_error = await handle_call_tool(toolkit, "configure_graphql", {"endpoint": COUNTRIES_ENDPOINT})
        assert "Dynamic tools created: 8" in text
        assert not is_error

        text, is_error = await handle_call_tool(toolkit, "query_countries", {})
        assert '"code": "AD"' in text
        assert not is_error

        text, is_error = await handle_call_tool(toolkit, "query_country", {})
        assert text.startswith("❌ Query failed (validation)")
        assert is_error

    @pytest.mark.asyncio
    async def test_rejected_hand_written_query_is_an_error(self, toolkit, dispatcher):
        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT, max_depth=1)

        text, is_error = await handle_call_tool(toolkit, "execute_query", {"query": "{ countries { name } }"})

        assert text.startswith("❌ Query failed (validation)")
        assert is_error

    @pytest.mark.asyncio
    async def test_call_before_configuration(self, toolkit):
        with pytest.raises(ConfigurationError):
            await handle_call_tool(toolkit, "query_countries", {})

    @pytest.mark.asyncio
    async def test_call_unknown_tool(self, toolkit, dispatcher):
        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT)

        with pytest.raises(ToolNotFoundError, match="Unknown tool: query_nope"):
            await handle_call_tool(toolkit, "query_nope", None)

    @pytest.mark.asyncio
    async def test_invalid_static_arguments(self, toolkit):
        with pytest.raises(QueryValidationError, match="Invalid arguments for configure_graphql"):
            await handle_call_tool(toolkit, "configure_graphql", {"maxDepth": "deep"})

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_internal(self, toolkit, dispatcher, monkeypatch):
        def broken():
            raise RuntimeError("boom")

        monkeypatch.setattr(dispatcher, "render_status", broken)

        with pytest.raises(InternalError, match="Tool execution failed: boom"):
            await handle_call_tool(toolkit, "get_status", {})


async def call_through_server(server, name, arguments):
    handler = server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    return (await handler(request)).root


class TestServerCallResult:
    @pytest.mark.asyncio
    async def test_successful_call(self, dispatcher):
        server = create_server(dispatcher)
        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT)

        result = await call_through_server(server, "query_countries", {})

        assert result.isError is False
        assert result.content[0].text.startswith("✅ Query executed successfully")

    @pytest.mark.asyncio
    async def test_rejected_query_is_flagged_as_error(self, dispatcher):
        server = create_server(dispatcher)
        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT, max_complexity=1)

        result = await call_through_server(server, "query_countries", {})

        assert result.isError is True
        assert result.content[0].text.startswith("❌ Query failed (validation)")

    @pytest.mark.asyncio
    async def test_execution_error_is_flagged_as_error(self, dispatcher):
        server = create_server(dispatcher)
        await dispatcher.configure(endpoint=COUNTRIES_ENDPOINT)

        result = await call_through_server(server, "execute_query", {"query": "{ nope }"})

        assert result.isError is True
        assert result.content[0].text.startswith("❌ Query failed (execution)")

    @pytest.mark.asyncio
    async def test_raised_error_is_flagged_as_error(self, dispatcher):
        server = create_server(dispatcher)

        result = await call_through_server(server, "query_countries", {})

        assert result.isError is True
        assert "GraphQL endpoint not configured" in result.content[0].text
