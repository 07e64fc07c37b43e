"""
Prompt Budget - Test Configuration and Shared Fixtures

Provides counters backed by a deterministic word-level encoding, so token
counts in tests are exact, plus singleton resets between tests.
"""

import os
from collections.abc import Generator

import pytest

from prompt_budget.config import loader as config_loader
from prompt_budget.observability import initialize_observability
from prompt_budget.observability import metrics as metrics_module
from prompt_budget.prompt_optimization import PromptOptimizer
from prompt_budget.token_optimization import TokenCounter
from tests.helpers import FakeEncoding

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


@pytest.fixture
def fake_counter() -> TokenCounter:
    """TokenCounter backed by the word-level fake encoding."""
    return TokenCounter(encoding_loader=lambda name: FakeEncoding())


@pytest.fixture
def optimizer(fake_counter: TokenCounter) -> PromptOptimizer:
    """PromptOptimizer with exact word-level token counts."""
    return PromptOptimizer(counter=fake_counter, enable_logging=False)


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Fresh observability adapter, metrics and config for every test."""
    initialize_observability(enable_metrics=True, enable_tracing=False)
    metrics_module._metrics_instance = None
    config_loader._config_instance = None
    yield
    metrics_module._metrics_instance = None
    config_loader._config_instance = None
