#!/usr/bin/env python3
"""
Working GraphQL LangChain Agent Example

Points the toolkit at a public GraphQL API and lets a LangChain agent answer
questions with the generated query_<field> tools.

Usage:
    # Interactive mode
    python examples/working_example.py

    # Demo mode
    python examples/working_example.py --demo

    # Call tools directly, no LLM needed
    python examples/working_example.py --examples
"""

import argparse
import asyncio
import os

from dotenv import load_dotenv
from langchain.agents import create_agent
from langchain_openai import ChatOpenAI

from graphql_mcp_agent import GraphQLAgentError, create_graphql_toolkit

load_dotenv()

DEFAULT_ENDPOINT = "https://countries.trevorblades.com/"

SYSTEM_PROMPT = """You are a GraphQL assistant. Answer questions using the tools provided.

WORKFLOW:
1. Prefer the query_<field> tools: each one calls a single root field of the schema
2. Use introspect_schema (format "sdl") when you need to know which fields or arguments exist
3. Use execute_query for anything the generated tools cannot express, such as nested selections
4. If a tool reports a depth, complexity or disabled resolver error, simplify the query instead of retrying it

RULES:
- NEVER fabricate data; only report what the tools returned
- Keep answers short and user-friendly, without GraphQL or JSON details"""


class GraphQLAgent:
    """Simple GraphQL agent using LangChain."""

    def __init__(self, toolkit):
        if not os.getenv("OPENAI_API_KEY"):
            raise ValueError("OPENAI_API_KEY environment variable is required")

        model_name = os.getenv("LLM_MODEL", "gpt-4o-mini")
        self.llm = ChatOpenAI(model=model_name, temperature=0)
        print(f"🤖 Using LLM model: {model_name}")

        self.toolkit = toolkit
        self.tools = toolkit.get_tools()
        print(f"🔧 {len(self.tools)} tools available")

        self.agent = create_agent(model=self.llm, tools=self.tools, system_prompt=SYSTEM_PROMPT)

    @classmethod
    async def create(cls, endpoint: str) -> "GraphQLAgent":
        toolkit = await create_graphql_toolkit(endpoint, max_depth=5, max_complexity=50)
        return cls(toolkit)

    async def query(self, user_input: str) -> str:
        """Process a user query."""
        print(f"🔍 Processing query: {user_input}")
        result = await self.agent.ainvoke(
            {"messages": [{"role": "user", "content": user_input}]},
            {"recursion_limit": 12},
        )
        output = result["messages"][-1].content
        print(f"📤 Final result: {output[:200]}...")
        return output or "No response generated"


async def interactive_demo(endpoint: str):
    """Run an interactive demo."""
    print("🚀 Starting GraphQL LangChain Agent...")

    agent = await GraphQLAgent.create(endpoint)
    print("✅ Agent ready!")

    print("\n📚 Example questions you can ask:")
    print("  • Which countries are in Africa?")
    print("  • What is the capital and currency of Japan?")
    print("  • Which languages are written right to left?")

    print("\n" + "=" * 50)
    print("Type your question or 'quit' to exit")
    print("=" * 50)

    while True:
        try:
            question = input("\n🙋 You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n👋 Goodbye!")
            break

        if question.lower() in ["quit", "exit", "q"]:
            print("👋 Goodbye!")
            break
        if not question:
            continue

        print("\n🤖 Agent: Thinking...")
        response = await agent.query(question)
        print(f"\n🤖 Agent: {response}")


async def simple_demo(endpoint: str):
    """Run a simple demonstration."""
    print("🚀 Running simple demo...")

    agent = await GraphQLAgent.create(endpoint)
    questions = [
        "What is the capital of Kenya?",
        "List five countries in Europe with their currencies",
    ]

    for i, question in enumerate(questions, 1):
        print(f"\n{'=' * 80}")
        print(f"🧪 Test {i}/{len(questions)}: {question}")
        try:
            response = await asyncio.wait_for(agent.query(question), timeout=200)
            print(f"🤖 Response: {response[:500]}")
        except asyncio.TimeoutError:
            print("⏰ Timeout after 200 seconds")
        print("-" * 80)


async def basic_tool_examples(endpoint: str):
    """Call the generated tools directly."""
    print("🔧 Basic GraphQL Tool Examples...")

    toolkit = await create_graphql_toolkit(endpoint, max_depth=4, disabled_resolvers=["languages"])
    tools = {tool.name: tool for tool in toolkit.get_tools()}
    print(f"Available tools: {sorted(tools)}")

    print("\n=== Status ===")
    print(await tools["get_status"].ainvoke({}))

    print("\n=== Generated resolver tool ===")
    print(await tools["query_country"].ainvoke({"code": "KE"}))

    print("\n=== Hand-written query ===")
    print(await tools["execute_query"].ainvoke({"query": "{ continents { code name } }"}))

    print("\n=== Rejected by the depth limit ===")
    deep = "{ countries { languages { name } continent { countries { continent { name } } } } }"
    print(await tools["execute_query"].ainvoke({"query": deep}))

    print("\n=== Rejected by the disabled resolver list ===")
    print(await tools["execute_query"].ainvoke({"query": "{ languages { code name } }"}))


def main():
    """Main function."""
    parser = argparse.ArgumentParser(description="GraphQL LangChain Agent Demo")
    parser.add_argument("--endpoint", default=os.getenv("GRAPHQL_ENDPOINT", DEFAULT_ENDPOINT))
    parser.add_argument("--demo", action="store_true", help="Run the demo questions")
    parser.add_argument("--examples", action="store_true", help="Call the tools directly, no LLM needed")
    args = parser.parse_args()

    if args.examples:
        print("📚 Showing basic tool usage examples...")
        runner = basic_tool_examples(args.endpoint)
    else:
        if not os.getenv("OPENAI_API_KEY"):
            print("❌ Please set OPENAI_API_KEY environment variable")
            print("   Then run: export OPENAI_API_KEY='your-key-here'")
            print("\n💡 Optionally set LLM model:")
            print("   export LLM_MODEL='gpt-4o'  # or gpt-4o-mini (default)")
            print("\n💡 To try the tools without OpenAI, run with --examples")
            return
        runner = simple_demo(args.endpoint) if args.demo else interactive_demo(args.endpoint)

    try:
        asyncio.run(runner)
    except GraphQLAgentError as e:
        print(f"❌ {e.kind.value} error: {e}")


if __name__ == "__main__":
    main()
