"""
Error handling utilities for the Sleeper MCP Server.

This module provides the typed failures raised by the caching/routing core and
the standardized response envelope returned to tool callers, together with a
decorator that converts one into the other.
"""

import logging
from functools import wraps
from typing import Any, Dict, Optional, Callable, List


# Configure logging for error tracking
logger = logging.getLogger(__name__)


class ErrorType:
    """Standard error type constants."""
    VALIDATION = "validation_error"
    TIMEOUT = "timeout_error"
    HTTP = "http_error"
    NETWORK = "network_error"
    UPSTREAM_PAYLOAD = "upstream_payload_error"
    REFERENCE_UNAVAILABLE = "reference_unavailable_error"
    NOT_FOUND = "not_found_error"
    UNKNOWN_OPERATION = "unknown_operation_error"
    UNEXPECTED = "unexpected_error"


class SleeperMCPError(Exception):
    """Base class for failures surfaced to tool callers."""

    error_type = ErrorType.UNEXPECTED

    def __init__(self, message: str, error_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error_type is not None:
            self.error_type = error_type


class UpstreamError(SleeperMCPError):
    """Non-success status, transport failure or malformed body from the Sleeper API."""

    error_type = ErrorType.HTTP

    def __init__(
        self,
        message: str,
        error_type: str = ErrorType.HTTP,
        status_code: Optional[int] = None,
        path: Optional[str] = None
    ):
        super().__init__(message, error_type)
        self.status_code = status_code
        self.path = path


class ParameterValidationError(SleeperMCPError):
    """Malformed tool input, raised before any cache or upstream interaction."""

    error_type = ErrorType.VALIDATION

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid parameters")


class ReferenceUnavailable(SleeperMCPError):
    """The player directory for a domain is neither persisted nor fetchable."""

    error_type = ErrorType.REFERENCE_UNAVAILABLE

    def __init__(self, domain: str, reason: Optional[str] = None):
        self.domain = domain
        self.reason = reason
        message = f"Player directory for '{domain}' is not available"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EnrichmentFailure(SleeperMCPError):
    """Raised inside the enrichment pass; always caught, never surfaced."""


class UnknownOperationError(SleeperMCPError):
    """No operation with the requested name is registered."""

    error_type = ErrorType.UNKNOWN_OPERATION

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown operation: {name}")


def create_error_response(
    error_message: str,
    error_type: str = ErrorType.UNEXPECTED,
    data: Optional[Dict[str, Any]] = None,
    success: bool = False
) -> Dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        error_message: Human-readable error description
        error_type: Type of error (see ErrorType constants)
        data: Operation-specific data to include in response
        success: Whether the operation was successful

    Returns:
        Standardized error response dictionary
    """
    response = {
        "success": success,
        "error": error_message,
        "error_type": error_type
    }

    if data:
        response.update(data)

    if not success:
        logger.error(f"Error ({error_type}): {error_message}")

    return response


def create_success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a standardized success response.

    Args:
        data: Operation-specific data to include in response

    Returns:
        Standardized success response dictionary
    """
    response = {
        "success": True,
        "error": None,
        "error_type": None
    }
    response.update(data)
    return response


def error_response_from_exception(
    exc: Exception,
    default_data: Optional[Dict[str, Any]] = None,
    operation_name: str = "operation"
) -> Dict[str, Any]:
    """Map a raised exception onto the standardized error envelope."""
    if isinstance(exc, SleeperMCPError):
        data = dict(default_data or {})
        if isinstance(exc, UpstreamError) and exc.status_code is not None:
            data["status_code"] = exc.status_code
        if isinstance(exc, ParameterValidationError):
            data["validation_errors"] = exc.errors
        return create_error_response(exc.message, exc.error_type, data)

    return create_error_response(
        f"Unexpected error during {operation_name}: {str(exc)}",
        ErrorType.UNEXPECTED,
        default_data or {}
    )


def handle_operation_errors(
    default_data: Optional[Dict[str, Any]] = None,
    operation_name: str = "operation"
) -> Callable:
    """
    Decorator that turns typed failures into the standard error envelope.

    Args:
        default_data: Default data structure to return on errors
        operation_name: Name of the operation for error messages

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Dict[str, Any]:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                return error_response_from_exception(e, default_data, operation_name)

        return wrapper
    return decorator
