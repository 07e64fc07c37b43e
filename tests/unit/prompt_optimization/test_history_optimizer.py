"""
Unit Tests for Conversation History Optimizer

Tests recency-aware pruning, the message count cap and the minimum-messages
floor.
"""

import pytest

from prompt_budget.prompt_optimization.history_optimizer import HistoryOptimizer
from prompt_budget.prompt_optimization.models import Message
from prompt_budget.prompt_optimization.policy import HistoryPolicy
from tests.helpers import make_history


@pytest.fixture
def history_optimizer(fake_counter):
    """HistoryOptimizer with exact word-level counts."""
    return HistoryOptimizer(counter=fake_counter)


class TestSelect:
    """Tests for HistoryOptimizer.select."""

    def test_everything_fits(self, history_optimizer):
        """Test that history within budget is kept whole."""
        messages = make_history(5, 10)
        selection = history_optimizer.select(messages, 1000, HistoryPolicy())

        assert selection.kept == messages
        assert selection.removed_count == 0
        assert selection.used_tokens == 50
        assert selection.constrained is False

    def test_drops_oldest_first(self, history_optimizer):
        """Test pruning keeps the most recent messages in order."""
        messages = make_history(10, 50)
        selection = history_optimizer.select(messages, 300, HistoryPolicy())

        assert selection.kept == messages[4:]
        assert selection.removed_count == 4
        assert selection.used_tokens == 300
        assert selection.item_tokens == [50] * 6
        assert selection.constrained is True

    def test_max_messages_cap(self, history_optimizer):
        """Test that only the most recent max_messages are considered."""
        messages = make_history(30, 1)
        selection = history_optimizer.select(messages, 1000, HistoryPolicy(max_messages=20))

        assert selection.kept == messages[10:]
        assert selection.removed_count == 10
        assert selection.constrained is False

    def test_max_messages_zero(self, history_optimizer):
        """Test a zero message cap drops all history."""
        messages = make_history(4, 5)
        selection = history_optimizer.select(messages, 1000, HistoryPolicy(max_messages=0, min_messages=0))

        assert selection.kept == []
        assert selection.removed_count == 4

    def test_min_messages_floor(self, history_optimizer):
        """Test the floor keeps the most recent min_messages over budget."""
        messages = make_history(6, 100)
        selection = history_optimizer.select(messages, 150, HistoryPolicy(min_messages=3))

        assert selection.kept == messages[3:]
        assert selection.used_tokens == 300
        assert selection.forced_count == 2
        assert selection.over_budget is True

    def test_floor_needs_enough_messages(self, history_optimizer):
        """Test the floor does not apply when fewer messages exist."""
        messages = make_history(2, 100)
        selection = history_optimizer.select(messages, 50, HistoryPolicy(min_messages=3))

        assert selection.kept == []
        assert selection.forced_count == 0

    def test_kept_is_contiguous_suffix(self, history_optimizer):
        """Test that uneven message sizes still yield a contiguous suffix."""
        messages = make_history(8, 10)
        messages[6] = Message(role="assistant", content=" ".join(["x"] * 200))
        selection = history_optimizer.select(messages, 215, HistoryPolicy(min_messages=0))

        assert selection.kept == messages[6:]
        assert selection.used_tokens == 210

    def test_empty_history(self, history_optimizer):
        """Test empty input."""
        selection = history_optimizer.select([], 100, HistoryPolicy())

        assert selection.kept == []
        assert selection.removed_count == 0
        assert selection.used_tokens == 0
