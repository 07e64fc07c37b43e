"""
Prompt Budget - Input Validation Module

Provides Pydantic-based validation for all MCP tool inputs.
"""

from .decorators import validate_input
from .tool_schemas import (
    CheckStatusInput,
    CountTokensInput,
    DocumentInput,
    EstimateTokensInput,
    GetModelProfileInput,
    GetOptimizationSettingsInput,
    GetOptimizationStatsInput,
    MessageInput,
    OptimizePromptInput,
)

__all__ = [
    # Decorator
    "validate_input",
    # Tool input schemas
    "DocumentInput",
    "MessageInput",
    "OptimizePromptInput",
    "CountTokensInput",
    "EstimateTokensInput",
    "GetModelProfileInput",
    "GetOptimizationSettingsInput",
    "GetOptimizationStatsInput",
    "CheckStatusInput",
]
