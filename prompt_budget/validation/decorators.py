"""
Prompt Budget - Validation Decorators

Runs each MCP tool's keyword arguments through its pydantic schema.
Invalid input never reaches the tool body; the caller receives a structured
INVALID_INPUT response instead.
"""

import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import ErrorCode, make_error_response
from ..observability.monitoring import get_observability

logger = logging.getLogger(__name__)


def _format_validation_errors(error: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into field/message/type records."""
    return [
        {
            "field": " -> ".join(str(loc) for loc in item["loc"]),
            "message": item["msg"],
            "type": item["type"],
        }
        for item in error.errors()
    ]


def _validation_failure(func: Callable[..., Any], error: ValidationError, kwargs: dict[str, Any]) -> dict[str, Any]:
    """Log, count and build the error response for a failed validation."""
    validation_errors = _format_validation_errors(error)

    logger.warning(
        f"Input validation failed for {func.__name__}",
        extra={
            "function": func.__name__,
            "validation_errors": validation_errors,
            "input_keys": sorted(kwargs),
        },
    )

    get_observability().increment(
        "validation.failed",
        tags={
            "function": func.__name__,
            "error_count": str(len(validation_errors)),
        },
    )

    return make_error_response(
        error_code=ErrorCode.INVALID_INPUT,
        message="Input validation failed",
        context={
            "validation_errors": validation_errors,
            "function": func.__name__,
        },
    )


def validate_input(schema: type[BaseModel]) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Validate a tool's keyword arguments against schema before calling it.

    Args:
        schema: Pydantic model describing the tool arguments

    Returns:
        Wrapper that calls the tool with validated, defaulted arguments

    Example:
        >>> @validate_input(CountTokensInput)
        ... async def count_tokens(content: str, model: str | None = None):
        ...     # Function receives validated inputs
        ...     pass

    Error Response:
        {
            "success": False,
            "error_code": "INVALID_INPUT",
            "message": "Input validation failed",
            "details": {
                "validation_errors": [
                    {
                        "field": "rag_results -> 0 -> relevance_score",
                        "message": "Input should be less than or equal to 1",
                        "type": "less_than_equal"
                    }
                ],
                "function": "optimize_prompt"
            }
        }
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    validated = schema(**kwargs)
                except ValidationError as e:
                    return _validation_failure(func, e, kwargs)
                return await func(*args, **validated.model_dump())

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                validated = schema(**kwargs)
            except ValidationError as e:
                return _validation_failure(func, e, kwargs)
            return func(*args, **validated.model_dump())

        return sync_wrapper

    return decorator
