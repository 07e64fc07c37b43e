"""
Unit Tests for Optimization Policy

Tests defaults, validation and override handling of OptimizationPolicy.
"""

import pytest

from prompt_budget.errors import ConfigurationError
from prompt_budget.prompt_optimization.policy import (
    HistoryPolicy,
    OptimizationPolicy,
    PriorityWeights,
    RagPolicy,
)


class TestDefaults:
    """Tests for policy defaults."""

    def test_top_level_defaults(self):
        """Test documented defaults."""
        policy = OptimizationPolicy()

        assert policy.enabled is True
        assert policy.reserved_completion_tokens == 4000
        assert policy.safety_buffer_percentage == 5.0
        assert policy.warning_threshold_percentage == 80.0
        assert policy.context_window is None

    def test_section_defaults(self):
        """Test nested section defaults."""
        policy = OptimizationPolicy()

        assert (policy.priorities.system, policy.priorities.user) == (100, 100)
        assert (policy.priorities.rag, policy.priorities.history) == (80, 60)
        assert policy.rag.max_tokens == 10000
        assert policy.rag.min_relevance_score == 0.3
        assert (policy.rag.min_results, policy.rag.max_results) == (3, 10)
        assert policy.rag.trim_large_results is True
        assert policy.rag.max_tokens_per_result == 2000
        assert (policy.history.max_messages, policy.history.max_tokens) == (20, 5000)
        assert policy.history.min_messages == 3

    def test_policy_is_immutable(self):
        """Test that policies cannot be mutated after construction."""
        policy = OptimizationPolicy()
        with pytest.raises(Exception):
            policy.enabled = False  # type: ignore[misc]


class TestValidation:
    """Tests for policy validation."""

    @pytest.mark.parametrize(
        "options",
        [
            {"reserved_completion_tokens": -1},
            {"safety_buffer_percentage": 100},
            {"safety_buffer_percentage": -5},
            {"warning_threshold_percentage": 150},
            {"context_window": 0},
            {"rag": {"max_tokens": -10}},
            {"rag": {"min_relevance_score": 1.5}},
            {"rag": {"max_tokens_per_result": 0}},
            {"rag": {"min_results": 5, "max_results": 2}},
            {"history": {"min_messages": 10, "max_messages": 5}},
            {"priorities": {"rag": 0, "history": 0}},
            {"priorities": {"rag": -1}},
        ],
    )
    def test_invalid_values_raise_configuration_error(self, options):
        """Test malformed policies are rejected at construction."""
        with pytest.raises(ConfigurationError) as exc_info:
            OptimizationPolicy.from_options(options)

        assert "validation_errors" in exc_info.value.details
        assert exc_info.value.details["validation_errors"]

    def test_unknown_option_rejected(self):
        """Test that misspelled options are not silently ignored."""
        with pytest.raises(ConfigurationError):
            OptimizationPolicy.from_options({"rag": {"min_result": 1}})

    def test_sections_validate_directly(self):
        """Test that each section wraps pydantic errors too."""
        with pytest.raises(ConfigurationError):
            RagPolicy(min_results=11, max_results=10)
        with pytest.raises(ConfigurationError):
            HistoryPolicy(max_tokens=-1)
        with pytest.raises(ConfigurationError):
            PriorityWeights(rag=0, history=0)

    def test_reserved_none_allowed(self):
        """Test that None defers the reservation to the model profile."""
        assert OptimizationPolicy(reserved_completion_tokens=None).reserved_completion_tokens is None


class TestOverrides:
    """Tests for from_options and with_overrides."""

    def test_from_options_nested(self):
        """Test building from a nested mapping plus keyword overrides."""
        policy = OptimizationPolicy.from_options({"rag": {"min_results": 1}}, context_window=1000)

        assert policy.rag.min_results == 1
        assert policy.rag.max_results == 10
        assert policy.context_window == 1000

    def test_with_overrides_keeps_other_fields(self):
        """Test that overrides merge into nested sections."""
        base = OptimizationPolicy.from_options({"rag": {"min_results": 1, "max_tokens": 500}})
        updated = base.with_overrides({"rag": {"max_results": 4}}, enabled=False)

        assert updated.rag.min_results == 1
        assert updated.rag.max_tokens == 500
        assert updated.rag.max_results == 4
        assert updated.enabled is False
        assert base.enabled is True

    def test_with_overrides_validates(self):
        """Test that overrides are validated like a new policy."""
        with pytest.raises(ConfigurationError):
            OptimizationPolicy().with_overrides({"history": {"min_messages": 50}})

    def test_equal_policies_compare_equal(self):
        """Test value equality of identical policies."""
        assert OptimizationPolicy.from_options({"rag": {"min_results": 2}}) == OptimizationPolicy(
            rag=RagPolicy(min_results=2)
        )
