"""
Token Optimization Module

Token counting, model profiles and cost estimation for prompt budgeting.

Public API:
    - TokenCounter: Model-aware token counter
    - EncodingCache: Shared per-model encoding cache
    - ModelProfile: Context window and tokenizer data
    - TokenEstimate: Per-component token counts
    - CostEstimator: Prompt cost estimation
    - count_tokens: Convenience function
    - get_token_counter: Get shared counter instance

Example:
    >>> from prompt_budget.token_optimization import count_tokens, get_model_profile
    >>> tokens = count_tokens("Hello, world!", model="gpt-4o")
    >>> get_model_profile("gpt-4o").context_window
    128000
"""

from .cost_estimator import CostEstimator, ModelPricing, PricingTier, get_cost_estimator
from .counter import TRUNCATION_NOTICE, EncodingCache, TokenCounter, count_tokens, get_token_counter
from .models import TokenEstimate
from .profiles import (
    DEFAULT_MODEL,
    MODEL_PROFILES,
    ModelProfile,
    ModelProvider,
    get_model_profile,
    normalize_model_name,
    resolve_profile,
)

__all__ = [
    # Profiles
    "DEFAULT_MODEL",
    "MODEL_PROFILES",
    "ModelProfile",
    "ModelProvider",
    "get_model_profile",
    "normalize_model_name",
    "resolve_profile",
    # Token counter
    "TRUNCATION_NOTICE",
    "EncodingCache",
    "TokenCounter",
    "TokenEstimate",
    "count_tokens",
    "get_token_counter",
    # Cost estimator
    "CostEstimator",
    "ModelPricing",
    "PricingTier",
    "get_cost_estimator",
]
