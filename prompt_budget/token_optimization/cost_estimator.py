"""
Cost Estimator Module

Prices prompts for the models in profiles.py and reports how much an
optimization pass saved on input tokens.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .counter import TokenCounter, get_token_counter
from .profiles import normalize_model_name

if TYPE_CHECKING:
    from ..prompt_optimization.models import OptimizedPrompt

logger = logging.getLogger(__name__)


class PricingTier(str, Enum):
    """Pricing tiers for different model capabilities."""

    BUDGET = "budget"
    STANDARD = "standard"
    PREMIUM = "premium"


@dataclass(frozen=True)
class ModelPricing:
    """Pricing information for a specific model."""

    model_name: str
    provider: str
    input_price_per_1k: float  # USD per 1K tokens
    output_price_per_1k: float  # USD per 1K tokens
    tier: PricingTier
    last_updated: str

    def calculate_cost(self, input_tokens: int, output_tokens: int = 0) -> float:
        """
        Calculate total cost for token usage.

        Args:
            input_tokens: Number of input tokens
            output_tokens: Number of output tokens

        Returns:
            Total cost in USD
        """
        input_cost = (input_tokens / 1000) * self.input_price_per_1k
        output_cost = (output_tokens / 1000) * self.output_price_per_1k
        return input_cost + output_cost


class CostEstimator:
    """
    Cost estimator for prompts assembled by the optimizer.

    Keys of the pricing table match model profile names, so any name the
    token counter recognizes can be priced.
    """

    PRICING_DATABASE: dict[str, ModelPricing] = {
        "gpt-4o": ModelPricing("gpt-4o", "openai", 0.005, 0.015, PricingTier.STANDARD, "2024-05"),
        "gpt-4o-mini": ModelPricing("gpt-4o-mini", "openai", 0.00015, 0.0006, PricingTier.BUDGET, "2024-07"),
        "gpt-4-turbo": ModelPricing("gpt-4-turbo", "openai", 0.01, 0.03, PricingTier.PREMIUM, "2024-01"),
        "gpt-4-turbo-preview": ModelPricing(
            "gpt-4-turbo-preview", "openai", 0.01, 0.03, PricingTier.PREMIUM, "2024-01"
        ),
        "gpt-4": ModelPricing("gpt-4", "openai", 0.03, 0.06, PricingTier.PREMIUM, "2024-01"),
        "gpt-4-32k": ModelPricing("gpt-4-32k", "openai", 0.06, 0.12, PricingTier.PREMIUM, "2024-01"),
        "gpt-3.5-turbo": ModelPricing("gpt-3.5-turbo", "openai", 0.0005, 0.0015, PricingTier.BUDGET, "2024-01"),
        "gpt-3.5-turbo-16k": ModelPricing(
            "gpt-3.5-turbo-16k", "openai", 0.0005, 0.0015, PricingTier.BUDGET, "2024-01"
        ),
        "claude-3-opus": ModelPricing("claude-3-opus", "anthropic", 0.015, 0.075, PricingTier.PREMIUM, "2024-03"),
        "claude-3-sonnet": ModelPricing("claude-3-sonnet", "anthropic", 0.003, 0.015, PricingTier.STANDARD, "2024-03"),
        "claude-3-5-sonnet": ModelPricing(
            "claude-3-5-sonnet", "anthropic", 0.003, 0.015, PricingTier.STANDARD, "2024-06"
        ),
        "claude-3-haiku": ModelPricing("claude-3-haiku", "anthropic", 0.00025, 0.00125, PricingTier.BUDGET, "2024-03"),
        "claude-3-5-haiku": ModelPricing("claude-3-5-haiku", "anthropic", 0.0008, 0.004, PricingTier.BUDGET, "2024-11"),
    }

    def __init__(self, counter: TokenCounter | None = None) -> None:
        """
        Initialize cost estimator.

        Args:
            counter: Token counter (shared default counter if omitted)
        """
        self.counter = counter or get_token_counter()

    def estimate_cost(
        self,
        content: str,
        model: str,
        output_tokens: int = 0,
    ) -> dict[str, Any]:
        """
        Estimate cost for sending content to a model.

        Args:
            content: Input content
            model: Model name
            output_tokens: Expected output tokens

        Returns:
            Cost estimation with breakdown
        """
        pricing = self._get_pricing(model)
        input_tokens = self.counter.count_tokens(content, model)

        if pricing is None:
            logger.warning(f"No pricing data for model: {model}")
            return {
                "model": model,
                "pricing_available": False,
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "total_cost_usd": 0.0,
            }

        input_cost = (input_tokens / 1000) * pricing.input_price_per_1k
        output_cost = (output_tokens / 1000) * pricing.output_price_per_1k

        return {
            "model": model,
            "pricing_available": True,
            "provider": pricing.provider,
            "tier": pricing.tier.value,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "input_cost_usd": round(input_cost, 6),
            "output_cost_usd": round(output_cost, 6),
            "total_cost_usd": round(input_cost + output_cost, 6),
        }

    def estimate_prompt_cost(
        self,
        optimized: "OptimizedPrompt",
        completion_tokens: int = 0,
    ) -> dict[str, Any]:
        """
        Price an optimized prompt and the cost the optimization avoided.

        Args:
            optimized: Result of PromptOptimizer.optimize
            completion_tokens: Completion tokens to include in the estimate

        Returns:
            Dictionary with original/optimized cost and cost saved (USD)
        """
        # Requested name, not the fallback profile
        model = optimized.requested_model or optimized.optimized_estimate.model_id
        pricing = self._get_pricing(model)
        original_tokens = optimized.original_estimate.total
        optimized_tokens = optimized.optimized_estimate.total

        if pricing is None:
            logger.warning(f"No pricing data for model: {model}")
            return {
                "model": model,
                "pricing_available": False,
                "original_cost_usd": 0.0,
                "estimated_cost_usd": 0.0,
                "cost_saved_usd": 0.0,
            }

        original_cost = pricing.calculate_cost(original_tokens, completion_tokens)
        estimated_cost = pricing.calculate_cost(optimized_tokens, completion_tokens)

        return {
            "model": model,
            "pricing_available": True,
            "provider": pricing.provider,
            "tier": pricing.tier.value,
            "original_input_tokens": original_tokens,
            "optimized_input_tokens": optimized_tokens,
            "completion_tokens": completion_tokens,
            "original_cost_usd": round(original_cost, 6),
            "estimated_cost_usd": round(estimated_cost, 6),
            "cost_saved_usd": round(original_cost - estimated_cost, 6),
        }

    def get_pricing_info(self, model: str) -> dict[str, Any] | None:
        """
        Get pricing information for a model.

        Args:
            model: Model name

        Returns:
            Pricing information or None
        """
        pricing = self._get_pricing(model)
        if pricing is None:
            return None

        return {
            "model": pricing.model_name,
            "provider": pricing.provider,
            "tier": pricing.tier.value,
            "input_price_per_1k": pricing.input_price_per_1k,
            "output_price_per_1k": pricing.output_price_per_1k,
            "last_updated": pricing.last_updated,
        }

    def _get_pricing(self, model: str) -> ModelPricing | None:
        name = normalize_model_name(model)
        if name is None:
            return None
        return self.PRICING_DATABASE.get(name)


# Process-wide default instance
_estimator_instance: CostEstimator | None = None


def get_cost_estimator() -> CostEstimator:
    """
    Get singleton CostEstimator instance.

    Returns:
        Shared CostEstimator instance
    """
    global _estimator_instance
    if _estimator_instance is None:
        _estimator_instance = CostEstimator()
    return _estimator_instance
