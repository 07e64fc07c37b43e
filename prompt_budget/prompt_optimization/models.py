"""
Prompt Optimization Models

Inputs, intermediate selections and the final report of a prompt
optimization call.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..token_optimization.models import TokenEstimate


@dataclass(frozen=True)
class RankedDocument:
    """A retrieved reference document with its relevance score."""

    content: str
    relevance_score: float
    source: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def with_content(self, content: str) -> "RankedDocument":
        """Copy of this document with replaced content (score, source and metadata kept)."""
        return RankedDocument(
            content=content,
            relevance_score=self.relevance_score,
            source=self.source,
            metadata=self.metadata,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "content": self.content,
            "relevance_score": self.relevance_score,
            "source": self.source,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class Message:
    """A single prior conversation turn."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class PromptComponents:
    """Everything the caller wants in the prompt, before budgeting."""

    system_prompt: str
    user_message: str
    rag_results: Sequence[RankedDocument] = field(default_factory=list)
    history: Sequence[Message] = field(default_factory=list)


class WarningCode(str, Enum):
    """Recoverable conditions reported on an optimization result."""

    UNKNOWN_MODEL = "UNKNOWN_MODEL"
    DEGRADED_FIT = "DEGRADED_FIT"
    OVER_BUDGET = "OVER_BUDGET"
    HIGH_UTILIZATION = "HIGH_UTILIZATION"
    NO_RAG_RESULTS = "NO_RAG_RESULTS"
    NO_RAG_CONTEXT = "NO_RAG_CONTEXT"
    NO_HISTORY = "NO_HISTORY"


@dataclass(frozen=True)
class OptimizationWarning:
    """A warning emitted instead of raising."""

    code: WarningCode
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code.value, "message": self.message}


@dataclass
class RagSelection:
    """Outcome of selecting retrieved documents against a token budget."""

    kept: list[RankedDocument]
    trimmed_count: int
    removed_count: int
    used_tokens: int
    budget: int
    filtered_count: int = 0
    forced_count: int = 0
    constrained: bool = False
    item_tokens: list[int] = field(default_factory=list)

    @property
    def over_budget(self) -> bool:
        return self.used_tokens > self.budget


@dataclass
class HistorySelection:
    """Outcome of pruning conversation history against a token budget."""

    kept: list[Message]
    removed_count: int
    used_tokens: int
    budget: int
    forced_count: int = 0
    constrained: bool = False
    item_tokens: list[int] = field(default_factory=list)

    @property
    def over_budget(self) -> bool:
        return self.used_tokens > self.budget


@dataclass
class OptimizedPrompt:
    """Result of prompt optimization."""

    system_prompt: str
    user_message: str
    rag_results: list[RankedDocument]
    history: list[Message]
    original_estimate: TokenEstimate
    optimized_estimate: TokenEstimate
    was_optimized: bool
    strategy_description: str
    diagnostics: list[OptimizationWarning] = field(default_factory=list)
    rag_results_removed: int = 0
    rag_results_trimmed: int = 0
    history_messages_removed: int = 0
    rag_budget: int = 0
    history_budget: int = 0
    requested_model: str = ""
    processing_time_ms: float = field(default=0.0, compare=False)

    @property
    def tokens_saved(self) -> int:
        """Prompt tokens removed relative to the unfiltered inputs."""
        return self.original_estimate.total - self.optimized_estimate.total

    @property
    def reduction_percentage(self) -> float:
        """Calculate reduction percentage."""
        if self.original_estimate.total == 0:
            return 0.0
        return self.tokens_saved / self.original_estimate.total * 100

    @property
    def warnings(self) -> list[str]:
        """Warning messages in the order they were raised."""
        return [warning.message for warning in self.diagnostics]

    def has_warning(self, code: WarningCode) -> bool:
        return any(warning.code == code for warning in self.diagnostics)

    def as_components(self) -> PromptComponents:
        """Turn this result back into optimizer input."""
        return PromptComponents(
            system_prompt=self.system_prompt,
            user_message=self.user_message,
            rag_results=list(self.rag_results),
            history=list(self.history),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "system_prompt": self.system_prompt,
            "user_message": self.user_message,
            "rag_results": [doc.to_dict() for doc in self.rag_results],
            "history": [message.to_dict() for message in self.history],
            "original_estimate": self.original_estimate.to_dict(),
            "optimized_estimate": self.optimized_estimate.to_dict(),
            "tokens_saved": self.tokens_saved,
            "reduction_percentage": round(self.reduction_percentage, 2),
            "was_optimized": self.was_optimized,
            "strategy_description": self.strategy_description,
            "warnings": self.warnings,
            "warning_codes": [warning.code.value for warning in self.diagnostics],
            "rag_results_removed": self.rag_results_removed,
            "rag_results_trimmed": self.rag_results_trimmed,
            "history_messages_removed": self.history_messages_removed,
            "rag_budget": self.rag_budget,
            "history_budget": self.history_budget,
            "requested_model": self.requested_model,
            "processing_time_ms": self.processing_time_ms,
        }

    def get_summary(self) -> str:
        """Multi-line human-readable report of the optimization."""
        original = self.original_estimate
        optimized = self.optimized_estimate
        lines = [
            "Prompt Optimization:",
            f"  Model: {optimized.model_id} (window {optimized.context_window:,} tokens)",
            f"  Original Tokens: {original.total:,}",
            f"  Optimized Tokens: {optimized.total:,}",
            f"  Tokens Saved: {self.tokens_saved:,} ({self.reduction_percentage:.1f}%)",
            f"  Reserved For Completion: {optimized.reserved_completion_tokens:,}",
            f"  Utilization: {optimized.utilization_percentage:.1f}%",
            f"  RAG Results: {len(self.rag_results)} kept, {self.rag_results_removed} removed, "
            f"{self.rag_results_trimmed} trimmed",
            f"  History Messages: {len(self.history)} kept, {self.history_messages_removed} removed",
            f"  Strategy: {self.strategy_description}",
        ]
        if self.diagnostics:
            lines.append(f"  Warnings: {'; '.join(self.warnings)}")
        return "\n".join(lines)
