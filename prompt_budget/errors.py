"""
Prompt Budget - Core Error Types

Only configuration problems are raised. Budget shortfalls and unknown models
are recoverable and reported as warnings on the optimization result.
MCP tools never raise to the client; they return make_error_response().
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """`error_code` values returned by MCP tools."""

    # Tool arguments rejected by a schema
    INVALID_INPUT = "INVALID_INPUT"

    # Malformed policy, policy override or environment
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Anything else
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PromptBudgetError(Exception):
    """Base exception carrying a message, structured details and an HTTP-style status."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(PromptBudgetError):
    """Invalid configuration or optimization policy (details hold validation_errors when available)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


class ValidationError(PromptBudgetError):
    """Invalid tool input."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=400)


def make_error_response(
    error_code: ErrorCode,
    message: str,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build the failure payload every tool returns instead of raising.

    Args:
        error_code: Category of the failure
        message: Human-readable description
        context: Structured details (validation errors, offending tool, ...)

    Returns:
        {"success": False, "error_code": ..., "message": ..., "details": ...}

    Example:
        >>> make_error_response(ErrorCode.CONFIGURATION_ERROR, "Invalid optimization policy")["error_code"]
        'CONFIGURATION_ERROR'
    """
    return {
        "success": False,
        "error_code": error_code.value,
        "message": message,
        "details": context or {},
    }


def extract_error_code(error: Exception) -> ErrorCode:
    """Map an exception to the error code reported by tools."""
    if isinstance(error, ValidationError):
        return ErrorCode.INVALID_INPUT
    if isinstance(error, ConfigurationError):
        return ErrorCode.CONFIGURATION_ERROR
    return ErrorCode.INTERNAL_ERROR
