"""
Tests for the error handling utilities.

This module tests the typed failures, the response envelope and the
decorator that converts one into the other.
"""

import pytest

from sleeper_mcp.errors import (
    create_error_response, create_success_response, ErrorType,
    handle_operation_errors, error_response_from_exception,
    SleeperMCPError, UpstreamError, ParameterValidationError, ReferenceUnavailable,
    EnrichmentFailure, UnknownOperationError
)


class TestErrorResponseCreation:
    """Test error response creation utilities."""

    def test_create_error_response(self):
        response = create_error_response("Test error message", ErrorType.VALIDATION, {"data": "test"})

        assert response["success"] is False
        assert response["error"] == "Test error message"
        assert response["error_type"] == ErrorType.VALIDATION
        assert response["data"] == "test"

    def test_create_success_response(self):
        response = create_success_response({"rosters": [], "count": 0})

        assert response["success"] is True
        assert response["error"] is None
        assert response["error_type"] is None
        assert response["rosters"] == []
        assert response["count"] == 0


class TestTypedErrors:
    """Test the exception hierarchy."""

    def test_all_errors_share_base(self):
        for exc in (
            UpstreamError("boom"),
            ParameterValidationError(["'week' is required"]),
            ReferenceUnavailable("nfl"),
            EnrichmentFailure("lookup failed"),
            UnknownOperationError("get_everything"),
        ):
            assert isinstance(exc, SleeperMCPError)

    def test_error_types(self):
        assert UpstreamError("x").error_type == ErrorType.HTTP
        assert UpstreamError("x", ErrorType.TIMEOUT).error_type == ErrorType.TIMEOUT
        assert ParameterValidationError(["bad"]).error_type == ErrorType.VALIDATION
        assert ReferenceUnavailable("nfl").error_type == ErrorType.REFERENCE_UNAVAILABLE
        assert UnknownOperationError("x").error_type == ErrorType.UNKNOWN_OPERATION
        assert SleeperMCPError("gone", ErrorType.NOT_FOUND).error_type == ErrorType.NOT_FOUND

    def test_reference_unavailable_message(self):
        exc = ReferenceUnavailable("nfl", "HTTP 503: Service Unavailable")
        assert exc.domain == "nfl"
        assert "nfl" in exc.message
        assert "503" in exc.message

    def test_validation_error_joins_messages(self):
        exc = ParameterValidationError(["'week' is required", "'league_id' has an invalid format"])
        assert exc.errors == ["'week' is required", "'league_id' has an invalid format"]
        assert exc.message == "'week' is required; 'league_id' has an invalid format"


class TestErrorResponseFromException:
    """Test mapping of exceptions onto the envelope."""

    def test_upstream_error_includes_status_code(self):
        response = error_response_from_exception(
            UpstreamError("HTTP 404", status_code=404, path="/league/1"),
            {"league": None}
        )
        assert response["success"] is False
        assert response["error_type"] == ErrorType.HTTP
        assert response["status_code"] == 404
        assert response["league"] is None

    def test_validation_error_includes_details(self):
        response = error_response_from_exception(ParameterValidationError(["'week' is required"]))
        assert response["error_type"] == ErrorType.VALIDATION
        assert response["validation_errors"] == ["'week' is required"]

    def test_unexpected_error(self):
        response = error_response_from_exception(RuntimeError("kaput"), {"items": []}, "test operation")
        assert response["error_type"] == ErrorType.UNEXPECTED
        assert "Unexpected error during test operation" in response["error"]
        assert response["items"] == []


class TestOperationErrorDecorator:
    """Test the operation error handling decorator."""

    @pytest.mark.asyncio
    async def test_successful_function(self):
        @handle_operation_errors(default_data={"items": []}, operation_name="test operation")
        async def test_func():
            return create_success_response({"items": ["item1", "item2"]})

        result = await test_func()
        assert result["success"] is True
        assert result["items"] == ["item1", "item2"]

    @pytest.mark.asyncio
    async def test_timeout_error(self):
        @handle_operation_errors(default_data={"items": []}, operation_name="test operation")
        async def test_func():
            raise UpstreamError("Request timed out", ErrorType.TIMEOUT)

        result = await test_func()
        assert result["success"] is False
        assert result["error_type"] == ErrorType.TIMEOUT
        assert result["items"] == []

    @pytest.mark.asyncio
    async def test_reference_unavailable(self):
        @handle_operation_errors(default_data={"player": None}, operation_name="player lookup")
        async def test_func():
            raise ReferenceUnavailable("nfl")

        result = await test_func()
        assert result["error_type"] == ErrorType.REFERENCE_UNAVAILABLE
        assert result["player"] is None

    @pytest.mark.asyncio
    async def test_unexpected_error(self):
        @handle_operation_errors(default_data={"items": []}, operation_name="test operation")
        async def test_func():
            raise KeyError("missing")

        result = await test_func()
        assert result["error_type"] == ErrorType.UNEXPECTED
        assert "test operation" in result["error"]
