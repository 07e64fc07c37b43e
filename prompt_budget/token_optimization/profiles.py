"""
Model Profiles

Static context-window and tokenizer data for the models the counter knows.
Profiles are consumed, never computed: callers look one up by name and
unknown names resolve to the default profile.
"""

from dataclasses import dataclass
from enum import Enum


class ModelProvider(str, Enum):
    """Model providers with known tokenizers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ModelProfile:
    """Context window and tokenizer data for a single model."""

    model_id: str
    context_window: int
    max_completion_tokens: int
    encoding: str
    provider: ModelProvider

    def to_dict(self) -> dict[str, str | int]:
        """Convert to dictionary."""
        return {
            "model_id": self.model_id,
            "context_window": self.context_window,
            "max_completion_tokens": self.max_completion_tokens,
            "encoding": self.encoding,
            "provider": self.provider.value,
        }


DEFAULT_MODEL = "gpt-4o"

MODEL_PROFILES: dict[str, ModelProfile] = {
    # OpenAI models
    "gpt-4o": ModelProfile("gpt-4o", 128000, 16384, "o200k_base", ModelProvider.OPENAI),
    "gpt-4o-mini": ModelProfile("gpt-4o-mini", 128000, 16384, "o200k_base", ModelProvider.OPENAI),
    "gpt-4-turbo": ModelProfile("gpt-4-turbo", 128000, 4096, "cl100k_base", ModelProvider.OPENAI),
    "gpt-4-turbo-preview": ModelProfile("gpt-4-turbo-preview", 128000, 4096, "cl100k_base", ModelProvider.OPENAI),
    "gpt-4": ModelProfile("gpt-4", 8192, 4096, "cl100k_base", ModelProvider.OPENAI),
    "gpt-4-32k": ModelProfile("gpt-4-32k", 32768, 4096, "cl100k_base", ModelProvider.OPENAI),
    "gpt-3.5-turbo": ModelProfile("gpt-3.5-turbo", 16385, 4096, "cl100k_base", ModelProvider.OPENAI),
    "gpt-3.5-turbo-16k": ModelProfile("gpt-3.5-turbo-16k", 16385, 4096, "cl100k_base", ModelProvider.OPENAI),
    # Anthropic models (cl100k_base is a close approximation of their tokenizer)
    "claude-3-opus": ModelProfile("claude-3-opus", 200000, 4096, "cl100k_base", ModelProvider.ANTHROPIC),
    "claude-3-sonnet": ModelProfile("claude-3-sonnet", 200000, 4096, "cl100k_base", ModelProvider.ANTHROPIC),
    "claude-3-haiku": ModelProfile("claude-3-haiku", 200000, 4096, "cl100k_base", ModelProvider.ANTHROPIC),
    "claude-3-5-sonnet": ModelProfile("claude-3-5-sonnet", 200000, 8192, "cl100k_base", ModelProvider.ANTHROPIC),
    "claude-3-5-haiku": ModelProfile("claude-3-5-haiku", 200000, 8192, "cl100k_base", ModelProvider.ANTHROPIC),
}

# Checked in order, so longer names must come before their prefixes
_NAME_PATTERNS: list[tuple[str, str]] = [
    ("gpt-4o-mini", "gpt-4o-mini"),
    ("gpt-4o", "gpt-4o"),
    ("gpt-4-turbo-preview", "gpt-4-turbo-preview"),
    ("gpt-4-turbo", "gpt-4-turbo"),
    ("gpt-4-32k", "gpt-4-32k"),
    ("gpt-4", "gpt-4"),
    ("gpt-3.5-turbo-16k", "gpt-3.5-turbo-16k"),
    ("gpt-35-turbo-16k", "gpt-3.5-turbo-16k"),
    ("gpt-3.5", "gpt-3.5-turbo"),
    ("gpt-35", "gpt-3.5-turbo"),
    ("claude-3-5-sonnet", "claude-3-5-sonnet"),
    ("claude-3-5-haiku", "claude-3-5-haiku"),
    ("claude-3-opus", "claude-3-opus"),
    ("claude-3-sonnet", "claude-3-sonnet"),
    ("claude-3-haiku", "claude-3-haiku"),
]


def normalize_model_name(model: str | None) -> str | None:
    """
    Map a model or deployment name onto a known profile name.

    Handles case differences, version/date suffixes ("gpt-4o-2024-08-06")
    and Azure deployment spellings ("my-gpt-35-turbo").

    Args:
        model: Model or deployment name

    Returns:
        Known profile name, or None if the name is not recognized
    """
    if not model:
        return None

    normalized = model.strip().lower()
    if normalized in MODEL_PROFILES:
        return normalized

    for pattern, profile_name in _NAME_PATTERNS:
        if pattern in normalized:
            return profile_name

    return None


def resolve_profile(model: str | None) -> tuple[ModelProfile, bool]:
    """
    Look up the profile for a model name.

    Args:
        model: Model or deployment name

    Returns:
        Tuple of (profile, known). Unknown names get the default profile
        and known=False.
    """
    name = normalize_model_name(model)
    if name is None:
        return MODEL_PROFILES[DEFAULT_MODEL], False
    return MODEL_PROFILES[name], True


def get_model_profile(model: str | None) -> ModelProfile:
    """Return the profile for a model, falling back to the default profile."""
    return resolve_profile(model)[0]
