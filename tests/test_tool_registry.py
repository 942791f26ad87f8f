"""Tests for tool_registry: categories, lookup and registration."""

from __future__ import annotations

from unittest.mock import MagicMock

from ctgov_search.presentation.mcp_server.tool_registry import (
    TOOL_CATEGORIES,
    get_tool_info,
    list_registered_tools,
    register_all_mcp_tools,
)


class TestListRegisteredTools:
    def test_has_all_categories(self):
        assert set(list_registered_tools()) == {"matching", "trends", "studies", "results"}

    def test_tools_are_lists(self):
        for tools in list_registered_tools().values():
            assert isinstance(tools, list)

    def test_returns_copies(self):
        list_registered_tools()["matching"].append("bogus")
        assert "bogus" not in TOOL_CATEGORIES["matching"]["tools"]


class TestGetToolInfo:
    def test_existing_tool(self):
        info = get_tool_info("analyze_trends")
        assert info["category_id"] == "trends"
        assert info["category"] == "Trend Analysis"

    def test_nonexistent_tool(self):
        assert get_tool_info("unified_search") is None


class TestRegisterAllMcpTools:
    def test_registers_every_listed_tool(self):
        registered = []
        mcp = MagicMock()
        mcp.tool = lambda: lambda func: (registered.append(func.__name__), func)[1]

        stats = register_all_mcp_tools(mcp, MagicMock(), MagicMock(), MagicMock())

        listed = [tool for tools in list_registered_tools().values() for tool in tools]
        assert sorted(registered) == sorted(listed)
        assert stats == {"matching": 1, "trends": 1, "studies": 3, "results": 1}
