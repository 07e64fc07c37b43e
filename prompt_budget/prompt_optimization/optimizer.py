"""
Prompt Optimizer

Assembles a system prompt, user message, retrieved documents and
conversation history into a prompt that fits a model's context window with
room left for the reply.

Pipeline:
1. Count the fixed components (system prompt and user message)
2. Subtract safety buffer, reply reservation and fixed cost from the window
3. Split the remainder between RAG and history by priority weight
4. Select documents and messages against their budgets
5. Hand one category's unused budget to the other (single pass)
6. Estimate, warn, and describe what changed
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Any

from ..token_optimization.counter import TokenCounter, get_token_counter
from ..token_optimization.models import TokenEstimate
from ..token_optimization.profiles import DEFAULT_MODEL
from .history_optimizer import HistoryOptimizer
from .models import (
    HistorySelection,
    Message,
    OptimizationWarning,
    OptimizedPrompt,
    PromptComponents,
    RagSelection,
    RankedDocument,
    WarningCode,
)
from .policy import OptimizationPolicy
from .rag_optimizer import RagContextOptimizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetAllocation:
    """Token budgets derived from a policy, a model and the fixed components."""

    context_window: int
    usable_tokens: int
    reserved_completion_tokens: int
    fixed_tokens: int
    available_tokens: int
    rag_budget: int
    history_budget: int

    def to_dict(self) -> dict[str, int]:
        return {
            "context_window": self.context_window,
            "usable_tokens": self.usable_tokens,
            "reserved_completion_tokens": self.reserved_completion_tokens,
            "fixed_tokens": self.fixed_tokens,
            "available_tokens": self.available_tokens,
            "rag_budget": self.rag_budget,
            "history_budget": self.history_budget,
        }


class PromptOptimizer:
    """
    Token-budgeted prompt assembler.

    The system prompt and user message are never altered. Retrieved documents
    are filtered, ranked and truncated, and history is pruned oldest-first,
    until the prompt fits. Configured minimums are honored even when they do
    not fit; the result then carries DEGRADED_FIT and OVER_BUDGET warnings
    instead of raising.
    """

    def __init__(
        self,
        counter: TokenCounter | None = None,
        rag_optimizer: RagContextOptimizer | None = None,
        history_optimizer: HistoryOptimizer | None = None,
        enable_logging: bool = True,
    ) -> None:
        """
        Initialize prompt optimizer.

        Args:
            counter: Token counter (shared default counter if omitted)
            rag_optimizer: Document selector (built on counter if omitted)
            history_optimizer: History pruner (built on counter if omitted)
            enable_logging: Log optimization summaries and utilization warnings
        """
        self.counter = counter or get_token_counter()
        self.rag_optimizer = rag_optimizer or RagContextOptimizer(self.counter)
        self.history_optimizer = history_optimizer or HistoryOptimizer(self.counter)
        self.enable_logging = enable_logging

    def optimize(
        self,
        components: PromptComponents,
        policy: OptimizationPolicy | None = None,
        model_id: str | None = None,
    ) -> OptimizedPrompt:
        """
        Fit prompt components into the model's context window.

        Args:
            components: System prompt, user message, documents and history
            policy: Optimization policy (defaults if omitted)
            model_id: Target model name (default model if omitted)

        Returns:
            OptimizedPrompt with the kept components, estimates and warnings
        """
        start_time = time.perf_counter()
        policy = policy or OptimizationPolicy()
        model = model_id or DEFAULT_MODEL

        documents = list(components.rag_results or [])
        messages = list(components.history or [])
        allocation = self.calculate_budgets(components, policy, model)
        original = self._estimate(
            components.system_prompt, components.user_message, documents, messages, model, allocation
        )

        if not policy.enabled:
            diagnostics = self._model_warnings(model)
            return OptimizedPrompt(
                system_prompt=components.system_prompt,
                user_message=components.user_message,
                rag_results=documents,
                history=messages,
                original_estimate=original,
                optimized_estimate=self._copy_estimate(original),
                was_optimized=False,
                strategy_description="Token management disabled",
                diagnostics=diagnostics,
                rag_budget=allocation.rag_budget,
                history_budget=allocation.history_budget,
                requested_model=model,
                processing_time_ms=(time.perf_counter() - start_time) * 1000,
            )

        rag_selection = self.rag_optimizer.select(documents, allocation.rag_budget, policy.rag, model)
        history_selection = self.history_optimizer.select(
            messages, allocation.history_budget, policy.history, model
        )
        rag_selection, history_selection = self._redistribute(
            documents, messages, rag_selection, history_selection, policy, model
        )

        optimized = TokenEstimate(
            model_id=original.model_id,
            context_window=allocation.context_window,
            reserved_completion_tokens=allocation.reserved_completion_tokens,
            system_prompt_tokens=original.system_prompt_tokens,
            user_message_tokens=original.user_message_tokens,
            rag_context_tokens=rag_selection.used_tokens,
            conversation_history_tokens=history_selection.used_tokens,
            rag_item_tokens=list(rag_selection.item_tokens),
            history_item_tokens=list(history_selection.item_tokens),
        )

        tokens_saved = original.total - optimized.total
        result = OptimizedPrompt(
            system_prompt=components.system_prompt,
            user_message=components.user_message,
            rag_results=list(rag_selection.kept),
            history=list(history_selection.kept),
            original_estimate=original,
            optimized_estimate=optimized,
            was_optimized=tokens_saved > 0,
            strategy_description=self._describe_strategy(rag_selection, history_selection),
            diagnostics=self._collect_warnings(
                model, policy, allocation, optimized, documents, messages, rag_selection, history_selection
            ),
            rag_results_removed=rag_selection.removed_count,
            rag_results_trimmed=rag_selection.trimmed_count,
            history_messages_removed=history_selection.removed_count,
            rag_budget=rag_selection.budget,
            history_budget=history_selection.budget,
            requested_model=model,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
        )

        if self.enable_logging:
            if result.was_optimized:
                logger.warning(f"Prompt optimized to fit token limits:\n{result.get_summary()}")
            elif result.has_warning(WarningCode.HIGH_UTILIZATION):
                logger.warning(
                    f"High token utilization: {optimized.utilization_percentage:.1f}% of "
                    f"{optimized.context_window:,} token window ({optimized.model_id})"
                )

        return result

    def calculate_budgets(
        self,
        components: PromptComponents,
        policy: OptimizationPolicy | None = None,
        model_id: str | None = None,
    ) -> BudgetAllocation:
        """
        Compute the usable window and the RAG/history split.

        Args:
            components: Prompt components (only the fixed parts are counted)
            policy: Optimization policy (defaults if omitted)
            model_id: Target model name

        Returns:
            BudgetAllocation for this prompt
        """
        policy = policy or OptimizationPolicy()
        model = model_id or DEFAULT_MODEL
        profile = self.counter.get_profile(model)

        window = policy.context_window or profile.context_window
        reserved = (
            profile.max_completion_tokens
            if policy.reserved_completion_tokens is None
            else policy.reserved_completion_tokens
        )
        fixed = self.counter.count_tokens(components.system_prompt or "", model) + self.counter.count_tokens(
            components.user_message or "", model
        )

        usable = window - math.ceil(window * policy.safety_buffer_percentage / 100)
        available = max(0, usable - reserved - fixed)

        weights = policy.priorities
        rag_share = available * weights.rag // (weights.rag + weights.history)
        history_share = available - rag_share

        return BudgetAllocation(
            context_window=window,
            usable_tokens=usable,
            reserved_completion_tokens=reserved,
            fixed_tokens=fixed,
            available_tokens=available,
            rag_budget=min(rag_share, policy.rag.max_tokens),
            history_budget=min(history_share, policy.history.max_tokens),
        )

    def needs_optimization(
        self,
        components: PromptComponents,
        policy: OptimizationPolicy | None = None,
        model_id: str | None = None,
    ) -> bool:
        """
        Check whether the components would be changed by optimize().

        Returns True when the prompt overruns the usable window, a category
        exceeds its capped budget, or documents/messages exceed their policy
        limits.
        """
        policy = policy or OptimizationPolicy()
        if not policy.enabled:
            return False

        model = model_id or DEFAULT_MODEL
        allocation = self.calculate_budgets(components, policy, model)
        documents = list(components.rag_results or [])
        messages = list(components.history or [])
        estimate = self._estimate(
            components.system_prompt, components.user_message, documents, messages, model, allocation
        )

        if estimate.total + allocation.reserved_completion_tokens > allocation.usable_tokens:
            return True
        if estimate.rag_context_tokens > allocation.rag_budget:
            return True
        if estimate.conversation_history_tokens > allocation.history_budget:
            return True
        if len(documents) > policy.rag.max_results or len(messages) > policy.history.max_messages:
            return True
        if any(doc.relevance_score < policy.rag.min_relevance_score for doc in documents):
            return True
        return policy.rag.trim_large_results and any(
            tokens > policy.rag.max_tokens_per_result for tokens in estimate.rag_item_tokens
        )

    def _redistribute(
        self,
        documents: list[RankedDocument],
        messages: list[Message],
        rag_selection: RagSelection,
        history_selection: HistorySelection,
        policy: OptimizationPolicy,
        model: str,
    ) -> tuple[RagSelection, HistorySelection]:
        """
        Re-run one budget-constrained category once with the other's surplus.

        When only one category ran out of budget it receives the other's
        unused tokens. When both did, the one with the higher priority
        weight (RAG on ties) receives the other's packing gap.
        """
        rag_surplus = max(0, rag_selection.budget - rag_selection.used_tokens)
        history_surplus = max(0, history_selection.budget - history_selection.used_tokens)

        if rag_selection.constrained and history_selection.constrained:
            rag_first = policy.priorities.rag >= policy.priorities.history
            grow_rag, grow_history = rag_first, not rag_first
        else:
            grow_rag, grow_history = rag_selection.constrained, history_selection.constrained

        if grow_rag and history_surplus > 0:
            budget = min(rag_selection.budget + history_surplus, policy.rag.max_tokens)
            if budget > rag_selection.budget:
                rag_selection = self.rag_optimizer.select(documents, budget, policy.rag, model)
        elif grow_history and rag_surplus > 0:
            budget = min(history_selection.budget + rag_surplus, policy.history.max_tokens)
            if budget > history_selection.budget:
                history_selection = self.history_optimizer.select(messages, budget, policy.history, model)

        return rag_selection, history_selection

    def _estimate(
        self,
        system_prompt: str,
        user_message: str,
        documents: list[RankedDocument],
        messages: list[Message],
        model: str,
        allocation: BudgetAllocation,
    ) -> TokenEstimate:
        return self.counter.estimate_tokens(
            system_prompt,
            user_message,
            rag_context=[doc.content for doc in documents],
            conversation_history=[message.content for message in messages],
            model=model,
            reserved_completion_tokens=allocation.reserved_completion_tokens,
            context_window=allocation.context_window,
        )

    @staticmethod
    def _copy_estimate(estimate: TokenEstimate) -> TokenEstimate:
        return TokenEstimate(
            model_id=estimate.model_id,
            context_window=estimate.context_window,
            reserved_completion_tokens=estimate.reserved_completion_tokens,
            system_prompt_tokens=estimate.system_prompt_tokens,
            user_message_tokens=estimate.user_message_tokens,
            rag_context_tokens=estimate.rag_context_tokens,
            conversation_history_tokens=estimate.conversation_history_tokens,
            rag_item_tokens=list(estimate.rag_item_tokens),
            history_item_tokens=list(estimate.history_item_tokens),
        )

    def _model_warnings(self, model: str) -> list[OptimizationWarning]:
        if self.counter.is_known_model(model):
            return []
        fallback = self.counter.get_profile(model).model_id
        return [
            OptimizationWarning(
                WarningCode.UNKNOWN_MODEL,
                f"Unknown model '{model}', using {fallback} profile",
            )
        ]

    def _collect_warnings(
        self,
        model: str,
        policy: OptimizationPolicy,
        allocation: BudgetAllocation,
        optimized: TokenEstimate,
        documents: list[RankedDocument],
        messages: list[Message],
        rag_selection: RagSelection,
        history_selection: HistorySelection,
    ) -> list[OptimizationWarning]:
        warnings = self._model_warnings(model)

        if rag_selection.forced_count and rag_selection.over_budget:
            warnings.append(
                OptimizationWarning(
                    WarningCode.DEGRADED_FIT,
                    f"Kept minimum of {policy.rag.min_results} RAG results ({rag_selection.used_tokens} tokens), "
                    f"above the {rag_selection.budget}-token RAG budget",
                )
            )
        if history_selection.forced_count and history_selection.over_budget:
            warnings.append(
                OptimizationWarning(
                    WarningCode.DEGRADED_FIT,
                    f"Kept minimum of {policy.history.min_messages} history messages "
                    f"({history_selection.used_tokens} tokens), above the {history_selection.budget}-token "
                    f"history budget",
                )
            )

        if optimized.total_with_completion > allocation.usable_tokens:
            warnings.append(
                OptimizationWarning(
                    WarningCode.OVER_BUDGET,
                    f"Prompt needs {optimized.total_with_completion:,} tokens with reserved completion, "
                    f"above the usable window of {allocation.usable_tokens:,}",
                )
            )
        if optimized.utilization_percentage > policy.warning_threshold_percentage:
            warnings.append(
                OptimizationWarning(
                    WarningCode.HIGH_UTILIZATION,
                    f"Context window utilization {optimized.utilization_percentage:.1f}% exceeds "
                    f"{policy.warning_threshold_percentage:g}% threshold",
                )
            )

        if documents and rag_selection.filtered_count == len(documents):
            warnings.append(
                OptimizationWarning(
                    WarningCode.NO_RAG_RESULTS,
                    f"No RAG results met the minimum relevance score of {policy.rag.min_relevance_score:g}",
                )
            )
        elif not documents:
            warnings.append(OptimizationWarning(WarningCode.NO_RAG_CONTEXT, "No RAG context provided"))

        if not messages:
            warnings.append(OptimizationWarning(WarningCode.NO_HISTORY, "No conversation history provided"))

        return warnings

    @staticmethod
    def _describe_strategy(rag_selection: RagSelection, history_selection: HistorySelection) -> str:
        dropped = rag_selection.removed_count - rag_selection.filtered_count
        parts = []
        if rag_selection.filtered_count:
            parts.append(f"removed {_plural(rag_selection.filtered_count, 'low-relevance result')}")
        if dropped:
            parts.append(f"dropped {_plural(dropped, 'result')} over budget")
        if rag_selection.trimmed_count:
            parts.append(f"trimmed {_plural(rag_selection.trimmed_count, 'large result')}")
        if history_selection.removed_count:
            parts.append(f"pruned {_plural(history_selection.removed_count, 'history message')}")

        if not parts:
            return "No optimization needed - within token limits"
        description = ", ".join(parts)
        return description[0].upper() + description[1:]


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


# Process-wide default instance
_optimizer_instance: PromptOptimizer | None = None


def get_optimizer(**kwargs: Any) -> PromptOptimizer:
    """
    Get singleton PromptOptimizer instance.

    Args:
        **kwargs: Constructor arguments, used only when the instance is created

    Returns:
        Shared PromptOptimizer instance
    """
    global _optimizer_instance
    if _optimizer_instance is None:
        _optimizer_instance = PromptOptimizer(**kwargs)
    return _optimizer_instance
