"""
Tests for Validation Decorators and Tool Schemas

Covers the @validate_input decorator (async and sync tools, structured
error responses, failure counting) and the tool input schemas.
"""

import pytest
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from prompt_budget.errors import ErrorCode
from prompt_budget.observability import get_observability
from prompt_budget.validation import validate_input
from prompt_budget.validation.tool_schemas import (
    CountTokensInput,
    DocumentInput,
    GetOptimizationStatsInput,
    OptimizePromptInput,
)


class SampleInput(BaseModel):
    """Sample validation schema for testing."""

    name: str = Field(..., min_length=1, max_length=100)
    limit: int = Field(default=10, ge=0)


class TestValidateInputDecorator:
    """Test @validate_input decorator."""

    @pytest.mark.asyncio
    async def test_valid_async_input(self):
        """Test decorator passes validated values to an async tool."""

        @validate_input(SampleInput)
        async def sample_func(name: str, limit: int):
            return {"name": name, "limit": limit}

        result = await sample_func(name="Alice")

        assert result == {"name": "Alice", "limit": 10}

    @pytest.mark.asyncio
    async def test_invalid_async_input_missing_field(self):
        """Test missing required field returns INVALID_INPUT."""

        @validate_input(SampleInput)
        async def sample_func(name: str, limit: int):
            return {"name": name}

        result = await sample_func()

        assert result["success"] is False
        assert result["error_code"] == ErrorCode.INVALID_INPUT
        assert result["details"]["function"] == "sample_func"
        assert result["details"]["validation_errors"][0]["field"] == "name"

    @pytest.mark.asyncio
    async def test_constraint_violation(self):
        """Test constraint violations are reported per field."""

        @validate_input(SampleInput)
        async def sample_func(name: str, limit: int):
            return {"name": name}

        result = await sample_func(name="Alice", limit=-1)

        errors = result["details"]["validation_errors"]
        assert errors[0]["field"] == "limit"
        assert errors[0]["type"] == "greater_than_equal"

    def test_sync_function(self):
        """Test decorator on a synchronous function."""

        @validate_input(SampleInput)
        def sample_func(name: str, limit: int):
            return {"name": name, "limit": limit}

        assert sample_func(name="Bob", limit=3) == {"name": "Bob", "limit": 3}
        assert sample_func(name="")["error_code"] == "INVALID_INPUT"

    def test_failure_counted(self):
        """Test failed validations increment the validation counter."""

        @validate_input(SampleInput)
        def sample_func(name: str, limit: int):
            return {}

        sample_func(limit="many")

        counters = get_observability().get_metrics()["counters"]
        assert any(key.startswith("prompt_budget.validation.failed") for key in counters)

    @pytest.mark.asyncio
    async def test_tool_errors_not_swallowed(self):
        """Test exceptions raised by the tool body propagate."""

        @validate_input(SampleInput)
        async def sample_func(name: str, limit: int):
            raise RuntimeError("tool failed")

        with pytest.raises(RuntimeError):
            await sample_func(name="Alice")

    def test_preserves_function_metadata(self):
        """Test functools.wraps keeps the tool name and docstring."""

        @validate_input(SampleInput)
        async def documented_tool(name: str, limit: int):
            """Tool docstring."""

        assert documented_tool.__name__ == "documented_tool"
        assert documented_tool.__doc__ == "Tool docstring."


class TestToolSchemas:
    """Tests for tool input schemas."""

    def test_optimize_prompt_defaults(self):
        """Test optional fields default sensibly."""
        data = OptimizePromptInput(system_prompt="sys", user_message="hi")

        assert data.rag_results == []
        assert data.history == []
        assert data.model is None
        assert data.policy is None
        assert data.agent_type == "default"

    def test_blank_user_message_rejected(self):
        """Test the user message must contain text."""
        with pytest.raises(PydanticValidationError):
            OptimizePromptInput(system_prompt="sys", user_message="   ")

    def test_relevance_score_bounds(self):
        """Test document scores must lie in [0, 1]."""
        with pytest.raises(PydanticValidationError):
            DocumentInput(content="x", relevance_score=1.5)
        assert DocumentInput(content="x").relevance_score == 0.5

    def test_nested_documents_validated(self):
        """Test nested document and message records are parsed."""
        data = OptimizePromptInput(
            system_prompt="sys",
            user_message="hi",
            rag_results=[{"content": "doc", "relevance_score": 0.9, "source": "kb"}],
            history=[{"role": "user", "content": "earlier"}],
        )

        assert data.rag_results[0].source == "kb"
        assert data.history[0].role == "user"

    def test_count_tokens_rejects_whitespace(self):
        """Test content must not be only whitespace."""
        with pytest.raises(PydanticValidationError):
            CountTokensInput(content="   ")

    def test_stats_agent_type_optional(self):
        """Test agent filter is optional but non-empty when given."""
        assert GetOptimizationStatsInput().agent_type is None
        with pytest.raises(PydanticValidationError):
            GetOptimizationStatsInput(agent_type="")
