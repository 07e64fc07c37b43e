"""
Prompt Optimization Module

Token-budgeted assembly of system prompt, user message, retrieved documents
and conversation history.

Public API:
    - PromptOptimizer: Budget allocation and selection orchestrator
    - RagContextOptimizer: Relevance-aware document selection
    - HistoryOptimizer: Recency-aware history pruning
    - OptimizationPolicy: Typed, immutable policy
    - OptimizedPrompt: Optimization result
    - get_optimizer: Get shared optimizer instance

Example:
    >>> from prompt_budget.prompt_optimization import PromptComponents, PromptOptimizer
    >>> result = PromptOptimizer().optimize(PromptComponents("You are helpful.", "Hi"))
    >>> result.was_optimized
    False
"""

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
from .optimizer import BudgetAllocation, PromptOptimizer, get_optimizer
from .policy import HistoryPolicy, OptimizationPolicy, PriorityWeights, RagPolicy
from .rag_optimizer import RagContextOptimizer

__all__ = [
    # Policy
    "OptimizationPolicy",
    "PriorityWeights",
    "RagPolicy",
    "HistoryPolicy",
    # Models
    "RankedDocument",
    "Message",
    "PromptComponents",
    "WarningCode",
    "OptimizationWarning",
    "RagSelection",
    "HistorySelection",
    "OptimizedPrompt",
    # Optimizers
    "BudgetAllocation",
    "RagContextOptimizer",
    "HistoryOptimizer",
    "PromptOptimizer",
    "get_optimizer",
]
