"""
Prompt Budget - Token-Budgeted Prompt Assembly

Fits system prompt, user message, retrieved documents and conversation
history into a model's context window, with room reserved for the reply.
"""

__version__ = "1.0.0"

from .errors import ConfigurationError, PromptBudgetError
from .prompt_optimization import (
    Message,
    OptimizationPolicy,
    OptimizedPrompt,
    PromptComponents,
    PromptOptimizer,
    RankedDocument,
    WarningCode,
)
from .token_optimization import TokenCounter, get_token_counter

__all__ = [
    "__version__",
    "ConfigurationError",
    "PromptBudgetError",
    "Message",
    "OptimizationPolicy",
    "OptimizedPrompt",
    "PromptComponents",
    "PromptOptimizer",
    "RankedDocument",
    "WarningCode",
    "TokenCounter",
    "get_token_counter",
]
