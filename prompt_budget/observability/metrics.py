"""
Prompt Optimization Metrics

Thread-safe, in-memory aggregate of optimization results: how many prompts
were processed and trimmed, how many tokens and dollars were saved, and a
per-agent breakdown.
"""

import threading
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..prompt_optimization.models import OptimizedPrompt


@dataclass
class AgentOptimizationStats:
    """Per-agent optimization statistics."""

    agent_type: str
    operation_count: int = 0
    optimized_operation_count: int = 0
    tokens_saved: int = 0
    cost_saved: float = 0.0
    average_optimization_percentage: float = 0.0
    preferred_strategy: str = ""
    strategy_counts: Counter = field(default_factory=Counter, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_type": self.agent_type,
            "operation_count": self.operation_count,
            "optimized_operation_count": self.optimized_operation_count,
            "tokens_saved": self.tokens_saved,
            "cost_saved_usd": round(self.cost_saved, 6),
            "average_optimization_percentage": round(self.average_optimization_percentage, 2),
            "preferred_strategy": self.preferred_strategy,
        }


class OptimizationMetrics:
    """
    Aggregated optimization metrics.

    All mutation happens under a lock so the aggregate can be shared by
    concurrent tool calls.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reset_locked()

    def _reset_locked(self) -> None:
        self.total_prompts_processed = 0
        self.prompts_optimized = 0
        self.total_tokens_processed = 0
        self.total_tokens_after_optimization = 0
        self.total_tokens_saved = 0
        self.total_cost_saved = 0.0
        self.total_cost_incurred = 0.0
        self.period_start: datetime | None = None
        self.period_end: datetime | None = None
        self._reduction_sum = 0.0
        self._strategies: Counter = Counter()
        self._agents: dict[str, AgentOptimizationStats] = {}

    def record(
        self,
        result: "OptimizedPrompt",
        agent_type: str = "default",
        cost: dict[str, Any] | None = None,
    ) -> None:
        """
        Add one optimization result to the aggregate.

        Args:
            result: Result of PromptOptimizer.optimize
            agent_type: Caller label for the per-agent breakdown
            cost: Output of CostEstimator.estimate_prompt_cost, if priced
        """
        cost_saved = float(cost.get("cost_saved_usd", 0.0)) if cost else 0.0
        cost_incurred = float(cost.get("estimated_cost_usd", 0.0)) if cost else 0.0
        now = datetime.now(UTC)

        with self._lock:
            if self.period_start is None:
                self.period_start = now
            self.period_end = now

            self.total_prompts_processed += 1
            self.total_tokens_processed += result.original_estimate.total
            self.total_tokens_after_optimization += result.optimized_estimate.total
            self.total_tokens_saved += result.tokens_saved
            self.total_cost_saved += cost_saved
            self.total_cost_incurred += cost_incurred
            self._reduction_sum += result.reduction_percentage

            stats = self._agents.get(agent_type)
            if stats is None:
                stats = self._agents[agent_type] = AgentOptimizationStats(agent_type=agent_type)
            stats.average_optimization_percentage = (
                stats.average_optimization_percentage * stats.operation_count + result.reduction_percentage
            ) / (stats.operation_count + 1)
            stats.operation_count += 1
            stats.tokens_saved += result.tokens_saved
            stats.cost_saved += cost_saved

            if result.was_optimized:
                self.prompts_optimized += 1
                self._strategies[result.strategy_description] += 1
                stats.optimized_operation_count += 1
                stats.strategy_counts[result.strategy_description] += 1
                stats.preferred_strategy = stats.strategy_counts.most_common(1)[0][0]

    @property
    def average_optimization_percentage(self) -> float:
        if self.total_prompts_processed == 0:
            return 0.0
        return self._reduction_sum / self.total_prompts_processed

    @property
    def most_common_strategy(self) -> str:
        if not self._strategies:
            return ""
        return self._strategies.most_common(1)[0][0]

    def get_optimization_roi(self) -> float:
        """Cost saved as a percentage of cost incurred."""
        if self.total_cost_incurred == 0:
            return 0.0
        return self.total_cost_saved / self.total_cost_incurred * 100

    def get_agent_stats(self, agent_type: str) -> AgentOptimizationStats | None:
        """Copy of one agent's stats; later records do not change it."""
        with self._lock:
            stats = self._agents.get(agent_type)
            if stats is None:
                return None
            return replace(stats, strategy_counts=Counter(stats.strategy_counts))

    def snapshot(self) -> dict[str, Any]:
        """Consistent copy of the aggregate as a dictionary."""
        with self._lock:
            optimized_rate = (
                self.prompts_optimized / self.total_prompts_processed * 100 if self.total_prompts_processed else 0.0
            )
            return {
                "total_prompts_processed": self.total_prompts_processed,
                "prompts_optimized": self.prompts_optimized,
                "optimization_rate_percentage": round(optimized_rate, 2),
                "total_tokens_processed": self.total_tokens_processed,
                "total_tokens_after_optimization": self.total_tokens_after_optimization,
                "total_tokens_saved": self.total_tokens_saved,
                "average_optimization_percentage": round(self.average_optimization_percentage, 2),
                "total_cost_saved_usd": round(self.total_cost_saved, 6),
                "total_cost_incurred_usd": round(self.total_cost_incurred, 6),
                "optimization_roi_percentage": round(self.get_optimization_roi(), 2),
                "most_common_strategy": self.most_common_strategy,
                "period_start": self.period_start.isoformat() if self.period_start else None,
                "period_end": self.period_end.isoformat() if self.period_end else None,
                "agent_stats": {name: stats.to_dict() for name, stats in self._agents.items()},
            }

    def get_summary(self) -> str:
        """Multi-line human-readable summary."""
        data = self.snapshot()
        return (
            "Prompt Optimization Metrics Summary:\n"
            f"  Total Prompts Processed: {data['total_prompts_processed']:,}\n"
            f"  Prompts Optimized: {data['prompts_optimized']:,} ({data['optimization_rate_percentage']:.1f}%)\n"
            f"  Total Tokens Processed: {data['total_tokens_processed']:,}\n"
            f"  Tokens After Optimization: {data['total_tokens_after_optimization']:,}\n"
            f"  Total Tokens Saved: {data['total_tokens_saved']:,}\n"
            f"  Average Optimization: {data['average_optimization_percentage']:.1f}%\n"
            f"  Total Cost Saved: ${data['total_cost_saved_usd']:.4f}\n"
            f"  Total Cost Incurred: ${data['total_cost_incurred_usd']:.4f}\n"
            f"  Optimization ROI: {data['optimization_roi_percentage']:.1f}%\n"
        )

    def reset(self) -> None:
        with self._lock:
            self._reset_locked()


_metrics_instance: OptimizationMetrics | None = None


def get_optimization_metrics() -> OptimizationMetrics:
    """Get the process-wide OptimizationMetrics instance."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = OptimizationMetrics()
    return _metrics_instance
