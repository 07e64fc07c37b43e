"""
Prompt Budget - Observability Module

Single observability adapter for the runtime plus the optimization
metrics aggregate.

Usage:
    from prompt_budget.observability import get_observability

    obs = get_observability()
    obs.increment("optimizer.calls")
    obs.gauge("optimizer.utilization", 42.0)

    with obs.trace("optimizer.optimize"):
        # traced code here
        pass
"""

from .metrics import AgentOptimizationStats, OptimizationMetrics, get_optimization_metrics
from .monitoring import (
    JSONFormatter,
    ObservabilityAdapter,
    get_observability,
    initialize_observability,
    setup_logging,
)

__all__ = [
    # Canonical observability adapter
    "ObservabilityAdapter",
    "get_observability",
    "initialize_observability",
    # Logging
    "JSONFormatter",
    "setup_logging",
    # Optimization metrics
    "AgentOptimizationStats",
    "OptimizationMetrics",
    "get_optimization_metrics",
]
