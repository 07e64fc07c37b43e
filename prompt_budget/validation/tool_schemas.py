"""
Prompt Budget - Tool Input Validation Schemas

Pydantic models for validating all MCP tool inputs.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class DocumentInput(BaseModel):
    """A retrieved document as supplied to optimize_prompt."""

    content: str = Field(..., max_length=1_000_000, description="Document text")
    relevance_score: float = Field(default=0.5, ge=0.0, le=1.0, description="Relevance score (0-1)")
    source: str = Field(default="", max_length=1000, description="Opaque source label")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Opaque metadata carried through")


class MessageInput(BaseModel):
    """A prior conversation turn as supplied to optimize_prompt."""

    role: str = Field(..., min_length=1, max_length=50, description="Speaker role (e.g., 'user', 'assistant')")
    content: str = Field(..., max_length=1_000_000, description="Message text")


class OptimizePromptInput(BaseModel):
    """Input validation for optimize_prompt tool."""

    system_prompt: str = Field(..., max_length=1_000_000, description="System instruction (kept verbatim)")
    user_message: str = Field(..., max_length=1_000_000, description="User message (kept verbatim)")
    rag_results: list[DocumentInput] = Field(
        default_factory=list,
        max_length=1000,
        description="Ranked retrieved documents",
    )
    history: list[MessageInput] = Field(
        default_factory=list,
        max_length=1000,
        description="Prior conversation turns, oldest first",
    )
    model: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="Target model (configured default if None)",
    )
    policy: dict[str, Any] | None = Field(
        default=None,
        description="Nested overrides of the configured optimization policy",
    )
    include_cost: bool = Field(default=False, description="Include a cost estimate of the optimized prompt")
    agent_type: str = Field(
        default="default",
        min_length=1,
        max_length=100,
        description="Caller label for per-agent optimization stats",
    )

    @field_validator("user_message")
    @classmethod
    def validate_user_message_not_empty(cls, v: str) -> str:
        """Ensure the user message is not just whitespace."""
        if not v.strip():
            raise ValueError("User message cannot be empty or only whitespace")
        return v


class CountTokensInput(BaseModel):
    """Input validation for count_tokens tool."""

    content: str = Field(
        ...,
        min_length=1,
        max_length=1_000_000,
        description="Content to count tokens for (1-1M characters)",
    )
    model: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="Model name for tokenization (e.g., 'gpt-4o', 'claude-3-opus')",
    )
    include_breakdown: bool = Field(
        default=False,
        description="Include encoding and character breakdown",
    )

    @field_validator("content")
    @classmethod
    def validate_content_not_empty(cls, v: str) -> str:
        """Ensure content is not just whitespace."""
        if not v.strip():
            raise ValueError("Content cannot be empty or only whitespace")
        return v


class EstimateTokensInput(BaseModel):
    """Input validation for estimate_tokens tool."""

    system_prompt: str = Field(default="", max_length=1_000_000, description="System instruction")
    user_message: str = Field(default="", max_length=1_000_000, description="User message")
    rag_context: list[str] = Field(default_factory=list, max_length=1000, description="Retrieved document texts")
    conversation_history: list[str] = Field(
        default_factory=list, max_length=1000, description="Prior turn texts, oldest first"
    )
    model: str | None = Field(default=None, min_length=1, max_length=100, description="Model name")


class GetModelProfileInput(BaseModel):
    """Input validation for get_model_profile tool."""

    model: str = Field(..., min_length=1, max_length=100, description="Model name to look up")


class GetOptimizationSettingsInput(BaseModel):
    """Input validation for get_optimization_settings tool (no parameters)."""

    pass


class GetOptimizationStatsInput(BaseModel):
    """Input validation for get_optimization_stats tool."""

    agent_type: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="Restrict per-agent stats to one agent",
    )


class CheckStatusInput(BaseModel):
    """Input validation for check_status tool."""

    include_details: bool = Field(
        default=False,
        description="Include encoding cache and observability metrics",
    )
