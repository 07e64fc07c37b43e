"""
Token Estimation Models

Per-component token counts for an assembled prompt, measured against a
model's context window.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class TokenEstimate:
    """Token counts for each prompt component relative to a context window."""

    model_id: str
    context_window: int
    reserved_completion_tokens: int = 0
    system_prompt_tokens: int = 0
    user_message_tokens: int = 0
    rag_context_tokens: int = 0
    conversation_history_tokens: int = 0
    rag_item_tokens: list[int] = field(default_factory=list)
    history_item_tokens: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Tokens used by the prompt itself (reply reservation excluded)."""
        return (
            self.system_prompt_tokens
            + self.user_message_tokens
            + self.rag_context_tokens
            + self.conversation_history_tokens
        )

    @property
    def total_with_completion(self) -> int:
        """Prompt tokens plus the tokens held back for the reply."""
        return self.total + self.reserved_completion_tokens

    @property
    def remaining_tokens(self) -> int:
        """Window tokens left after prompt and reply reservation (may be negative)."""
        return self.context_window - self.total_with_completion

    @property
    def exceeds_limit(self) -> bool:
        return self.total_with_completion > self.context_window

    @property
    def utilization_percentage(self) -> float:
        """Share of the context window consumed by prompt and reply reservation."""
        if self.context_window <= 0:
            return 0.0
        return self.total_with_completion / self.context_window * 100

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "model_id": self.model_id,
            "context_window": self.context_window,
            "reserved_completion_tokens": self.reserved_completion_tokens,
            "system_prompt_tokens": self.system_prompt_tokens,
            "user_message_tokens": self.user_message_tokens,
            "rag_context_tokens": self.rag_context_tokens,
            "conversation_history_tokens": self.conversation_history_tokens,
            "rag_item_tokens": list(self.rag_item_tokens),
            "history_item_tokens": list(self.history_item_tokens),
            "total": self.total,
            "total_with_completion": self.total_with_completion,
            "remaining_tokens": self.remaining_tokens,
            "utilization_percentage": round(self.utilization_percentage, 2),
            "exceeds_limit": self.exceeds_limit,
        }
