"""
Prompt Optimization Policy

Typed, immutable configuration for a single optimization call.
Every recognized option is enumerated with its default and validated once,
when the policy is constructed. Invalid values raise ConfigurationError.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ConfigurationError


class _PolicyModel(BaseModel):
    """Frozen policy section whose validation failures are configuration errors."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid {self.__class__.__name__}: {e.error_count()} validation error(s)",
                details={"validation_errors": e.errors(include_url=False, include_context=False)},
            ) from e


class PriorityWeights(_PolicyModel):
    """Relative weights used to split the free budget between components."""

    system: int = Field(default=100, ge=0, description="System prompt weight (100 = mandatory)")
    user: int = Field(default=100, ge=0, description="User message weight (100 = mandatory)")
    rag: int = Field(default=80, ge=0, description="Retrieved document weight")
    history: int = Field(default=60, ge=0, description="Conversation history weight")

    @model_validator(mode="after")
    def check_split_possible(self) -> "PriorityWeights":
        if self.rag + self.history <= 0:
            raise ValueError("rag and history weights cannot both be zero")
        return self


class RagPolicy(_PolicyModel):
    """Selection limits for retrieved reference documents."""

    max_tokens: int = Field(default=10000, ge=0, description="Hard cap on the RAG sub-budget")
    min_relevance_score: float = Field(default=0.3, ge=0.0, le=1.0, description="Relevance filter floor")
    min_results: int = Field(default=3, ge=0, description="Documents kept even when over budget")
    max_results: int = Field(default=10, ge=0, description="Ceiling on kept documents")
    trim_large_results: bool = Field(default=True, description="Truncate documents over max_tokens_per_result")
    max_tokens_per_result: int = Field(default=2000, gt=0, description="Per-document token ceiling")

    @model_validator(mode="after")
    def check_result_bounds(self) -> "RagPolicy":
        if self.min_results > self.max_results:
            raise ValueError(f"min_results ({self.min_results}) exceeds max_results ({self.max_results})")
        return self


class HistoryPolicy(_PolicyModel):
    """Selection limits for prior conversation turns."""

    max_messages: int = Field(default=20, ge=0, description="Most recent messages considered")
    max_tokens: int = Field(default=5000, ge=0, description="Hard cap on the history sub-budget")
    min_messages: int = Field(default=3, ge=0, description="Messages kept even when over budget")

    @model_validator(mode="after")
    def check_message_bounds(self) -> "HistoryPolicy":
        if self.min_messages > self.max_messages:
            raise ValueError(f"min_messages ({self.min_messages}) exceeds max_messages ({self.max_messages})")
        return self


class OptimizationPolicy(_PolicyModel):
    """
    Complete policy for one prompt optimization call.

    Percentages are expressed on a 0-100 scale. context_window overrides the
    model profile's window when set; reserved_completion_tokens of None uses
    the profile's completion size.
    """

    enabled: bool = Field(default=True, description="Pass inputs through untouched when False")
    reserved_completion_tokens: int | None = Field(
        default=4000, ge=0, description="Tokens held back for the model's reply"
    )
    safety_buffer_percentage: float = Field(
        default=5.0, ge=0.0, lt=100.0, description="Margin subtracted from the window"
    )
    warning_threshold_percentage: float = Field(
        default=80.0, ge=0.0, le=100.0, description="Window utilization that triggers a warning"
    )
    context_window: int | None = Field(default=None, gt=0, description="Override of the model's context window")
    priorities: PriorityWeights = Field(default_factory=PriorityWeights)
    rag: RagPolicy = Field(default_factory=RagPolicy)
    history: HistoryPolicy = Field(default_factory=HistoryPolicy)

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None, **overrides: Any) -> "OptimizationPolicy":
        """
        Build a policy from a (possibly nested) options mapping.

        Args:
            options: Mapping shaped like the policy, e.g. {"rag": {"min_results": 1}}
            **overrides: Top-level fields applied on top of options

        Returns:
            Validated OptimizationPolicy

        Raises:
            ConfigurationError: If any value is invalid
        """
        data = _deep_merge(dict(options or {}), overrides)
        return cls(**data)

    def with_overrides(self, overrides: Mapping[str, Any] | None = None, **changes: Any) -> "OptimizationPolicy":
        """
        Return a new validated policy with nested overrides applied.

        Args:
            overrides: Nested mapping of fields to change
            **changes: Top-level fields to change

        Returns:
            New OptimizationPolicy (self is unchanged)
        """
        data = _deep_merge(self.model_dump(), dict(overrides or {}))
        data = _deep_merge(data, changes)
        return self.__class__(**data)


def _deep_merge(base: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Merge updates into base, recursing into nested mappings."""
    merged = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(value, BaseModel):
            value = value.model_dump()
        if isinstance(current, BaseModel):
            current = current.model_dump()
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(dict(current), value)
        else:
            merged[key] = value
    return merged
