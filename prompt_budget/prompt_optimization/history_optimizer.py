"""
Conversation History Optimizer

Recency-aware pruning of prior conversation turns. The kept messages are
always a contiguous, chronologically ordered suffix of the input.
"""

import logging
from collections.abc import Sequence

from ..token_optimization.counter import TokenCounter, get_token_counter
from ..token_optimization.profiles import DEFAULT_MODEL
from .models import HistorySelection, Message
from .policy import HistoryPolicy

logger = logging.getLogger(__name__)


class HistoryOptimizer:
    """Keeps the most recent conversation turns that fit a token budget."""

    def __init__(self, counter: TokenCounter | None = None) -> None:
        self.counter = counter or get_token_counter()

    def select(
        self,
        messages: Sequence[Message],
        budget_tokens: int,
        policy: HistoryPolicy,
        model: str = DEFAULT_MODEL,
    ) -> HistorySelection:
        """
        Prune history to fit budget_tokens.

        The most recent max_messages are considered, then the oldest are
        dropped until the rest fit. At least min_messages are kept when that
        many remain after the count cut, even if they overrun the budget.

        Args:
            messages: Conversation turns, oldest first
            budget_tokens: Token budget for the kept messages
            policy: History selection limits
            model: Model name for token counting

        Returns:
            HistorySelection with the kept suffix and removal statistics
        """
        messages = list(messages or [])
        budget = max(0, budget_tokens)

        recent = messages[-policy.max_messages :] if policy.max_messages > 0 else []
        costs = [self.counter.count_tokens(message.content, model) for message in recent]

        start = 0
        used_tokens = sum(costs)
        while start < len(recent) and used_tokens > budget:
            used_tokens -= costs[start]
            start += 1
        constrained = start > 0

        forced_count = 0
        if len(recent) - start < policy.min_messages <= len(recent):
            floor_start = len(recent) - policy.min_messages
            forced_count = start - floor_start
            start = floor_start
            used_tokens = sum(costs[start:])

        kept = recent[start:]
        logger.debug(
            f"History selection: kept {len(kept)}/{len(messages)} messages, "
            f"{used_tokens}/{budget} tokens, {forced_count} forced"
        )

        return HistorySelection(
            kept=kept,
            removed_count=len(messages) - len(kept),
            used_tokens=used_tokens,
            budget=budget,
            forced_count=forced_count,
            constrained=constrained,
            item_tokens=costs[start:],
        )
