"""
Unit tests for Sleeper MCP Server

Tests server creation, the health route and the tool registry wiring.
"""

import inspect

import pytest
from unittest.mock import AsyncMock, MagicMock

from sleeper_mcp import tool_registry
from sleeper_mcp.errors import ErrorType
from sleeper_mcp.server import create_app, create_lifespan
from sleeper_mcp.service import SleeperService, ALL_OPERATIONS


@pytest.fixture
def service():
    router = MagicMock()
    router.stats.return_value = {"result_cache": {"entries": 0, "categories": {}}}
    router.load_directory = AsyncMock(return_value={"4046": {}})
    return SleeperService(router)


@pytest.fixture(autouse=True)
def restore_shared_service():
    original = tool_registry.get_service()
    yield
    tool_registry.initialize_shared(original)


class TestServerCreation:
    """Test server creation and configuration."""

    def test_create_app_returns_fastmcp_instance(self, service):
        from fastmcp import FastMCP

        app = create_app(service)
        assert isinstance(app, FastMCP)
        assert app.name == "Sleeper MCP Server"

    def test_create_app_installs_service(self, service):
        create_app(service)
        assert tool_registry.get_service() is service

    def test_create_app_builds_default_service(self):
        create_app()
        assert isinstance(tool_registry.get_service(), SleeperService)

    def test_health_route_exists(self, service):
        app = create_app(service)
        routes = app._get_additional_http_routes()
        assert any("/health" in str(route) for route in routes)


class TestLifespan:

    @pytest.mark.asyncio
    async def test_warm_up_disabled_by_default(self, service):
        async with create_lifespan(service, "nfl")(None):
            pass
        service.router.load_directory.assert_not_called()

    @pytest.mark.asyncio
    async def test_warm_up_loads_directory(self, service, monkeypatch):
        monkeypatch.setattr("sleeper_mcp.server.WARM_DIRECTORY", True)
        async with create_lifespan(service, "nfl")(None):
            pass
        service.router.load_directory.assert_awaited_once_with("nfl")


class TestToolRegistry:

    def test_one_tool_per_operation(self):
        tool_names = {tool.__name__ for tool in tool_registry.get_all_tools()}
        assert tool_names == {op.name for op in ALL_OPERATIONS}

    def test_tool_parameters_match_schemas(self):
        operations = {op.name: op for op in ALL_OPERATIONS}
        for tool in tool_registry.get_all_tools():
            params = set(inspect.signature(tool).parameters)
            assert params == set(operations[tool.__name__].schema), tool.__name__

    def test_tools_are_documented_coroutines(self):
        for tool in tool_registry.get_all_tools():
            assert inspect.iscoroutinefunction(tool)
            assert tool.__doc__

    @pytest.mark.asyncio
    async def test_tool_forwards_to_service(self):
        service = MagicMock()
        service.resolve = AsyncMock(return_value={"success": True, "league": {}})
        tool_registry.initialize_shared(service)

        result = await tool_registry.get_league_matchups("123", 4)

        assert result["success"] is True
        service.resolve.assert_awaited_once_with("get_league_matchups", {"league_id": "123", "week": 4})

    @pytest.mark.asyncio
    async def test_uninitialized_service(self):
        tool_registry.initialize_shared(None)
        result = await tool_registry.get_nfl_state()
        assert result["success"] is False
        assert result["error_type"] == ErrorType.UNEXPECTED
