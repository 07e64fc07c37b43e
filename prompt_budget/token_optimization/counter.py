"""
Token Counter Module

Provides token counting for the models described in profiles.py.
Encodings come from tiktoken and are cached per model in an EncodingCache
that callers construct once and share by reference.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import tiktoken

from .models import TokenEstimate
from .profiles import DEFAULT_MODEL, ModelProfile, resolve_profile

logger = logging.getLogger(__name__)

TRUNCATION_NOTICE = "\n\n[Content truncated to fit token limits]"

_MISSING = object()


class Encoding(Protocol):
    """The subset of tiktoken.Encoding the counter relies on."""

    def encode(self, text: str, *, disallowed_special: Any = ...) -> list[int]: ...

    def decode(self, tokens: list[int]) -> str: ...


class EncodingCache:
    """
    Write-once, read-mostly cache of encodings keyed by model.

    Reads are plain dict lookups without locking. A miss takes the lock,
    checks again and publishes the new entry with a single assignment, so
    each key is built at most once. Entries are never evicted.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        """
        Return the cached entry for key, building it with factory on first use.

        Args:
            key: Cache key (normalized model name)
            factory: Zero-argument callable producing the entry

        Returns:
            Cached entry (may be None if the factory produced None)
        """
        entry = self._entries.get(key, _MISSING)
        if entry is not _MISSING:
            return entry

        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                entry = factory()
                self._entries[key] = entry
        return entry

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)


class TokenCounter:
    """
    Model-aware token counter with a per-model encoding cache.

    Counting never raises: empty text costs 0 tokens, unknown models use the
    default profile's encoding, and a model whose encoding cannot be loaded
    falls back to a ~4 characters/token estimate.
    """

    def __init__(
        self,
        cache: EncodingCache | None = None,
        encoding_loader: Callable[[str], Encoding] | None = None,
    ) -> None:
        """
        Initialize token counter.

        Args:
            cache: Shared encoding cache (a private one is created if omitted)
            encoding_loader: Maps an encoding name to an encoding object
                (defaults to tiktoken.get_encoding)
        """
        self._encoding_cache = cache if cache is not None else EncodingCache()
        self._encoding_loader = encoding_loader or tiktoken.get_encoding

    @property
    def cache(self) -> EncodingCache:
        return self._encoding_cache

    def get_profile(self, model: str | None) -> ModelProfile:
        """Return the model profile used for counting (default profile if unknown)."""
        return resolve_profile(model)[0]

    def is_known_model(self, model: str | None) -> bool:
        return resolve_profile(model)[1]

    def count_tokens(self, content: str, model: str = DEFAULT_MODEL) -> int:
        """
        Count tokens in content for specified model.

        Args:
            content: Text content to count tokens for
            model: Model name (e.g., "gpt-4o", "claude-3-opus")

        Returns:
            Token count for the specified model
        """
        if not content:
            return 0

        encoding = self._get_encoding(model)
        if encoding is None:
            return self._estimate_tokens(content)

        try:
            return len(encoding.encode(content, disallowed_special=()))
        except Exception as e:
            logger.error(f"Error counting tokens for {model}: {e}")
            return self._estimate_tokens(content)

    def truncate_to_tokens(
        self,
        content: str,
        max_tokens: int,
        model: str = DEFAULT_MODEL,
        suffix: str = TRUNCATION_NOTICE,
    ) -> str:
        """
        Truncate content so that it, suffix included, fits in max_tokens.

        Content already within the limit is returned unchanged.

        Args:
            content: Text to truncate
            max_tokens: Token limit for the returned text
            model: Model name
            suffix: Notice appended to truncated text

        Returns:
            Text whose token count is at most max_tokens
        """
        if max_tokens <= 0:
            return ""
        if self.count_tokens(content, model) <= max_tokens:
            return content

        keep = max_tokens - self.count_tokens(suffix, model)
        if keep <= 0:
            # Not even the notice fits; return as much of the notice as does
            return self._take_prefix(suffix, max_tokens, model)

        truncated = self._take_prefix(content, keep, model) + suffix
        # Decoding a token prefix can re-encode to a few more tokens
        while keep > 0 and self.count_tokens(truncated, model) > max_tokens:
            keep -= 1
            truncated = self._take_prefix(content, keep, model) + suffix

        if keep <= 0:
            return self._take_prefix(suffix, max_tokens, model)
        return truncated

    def estimate_tokens(
        self,
        system_prompt: str,
        user_message: str,
        rag_context: Sequence[str] | None = None,
        conversation_history: Sequence[str] | None = None,
        model: str = DEFAULT_MODEL,
        reserved_completion_tokens: int | None = None,
        context_window: int | None = None,
    ) -> TokenEstimate:
        """
        Estimate tokens for every component of a prompt.

        Args:
            system_prompt: System instruction text
            user_message: User message text
            rag_context: Retrieved document texts
            conversation_history: Prior turn texts, oldest first
            model: Model name
            reserved_completion_tokens: Reply reservation (profile default if None)
            context_window: Window override (profile window if None)

        Returns:
            TokenEstimate with per-component and per-item counts
        """
        profile = self.get_profile(model)
        rag_items = [self.count_tokens(item, model) for item in rag_context or []]
        history_items = [self.count_tokens(item, model) for item in conversation_history or []]

        return TokenEstimate(
            model_id=profile.model_id,
            context_window=context_window or profile.context_window,
            reserved_completion_tokens=(
                profile.max_completion_tokens if reserved_completion_tokens is None else reserved_completion_tokens
            ),
            system_prompt_tokens=self.count_tokens(system_prompt or "", model),
            user_message_tokens=self.count_tokens(user_message or "", model),
            rag_context_tokens=sum(rag_items),
            conversation_history_tokens=sum(history_items),
            rag_item_tokens=rag_items,
            history_item_tokens=history_items,
        )

    def get_token_breakdown(self, content: str, model: str = DEFAULT_MODEL) -> dict[str, Any]:
        """
        Get detailed token breakdown with metadata.

        Args:
            content: Text content
            model: Model name

        Returns:
            Dictionary with token count and metadata
        """
        profile, known = resolve_profile(model)
        token_count = self.count_tokens(content, model)
        exact = self._get_encoding(model) is not None

        return {
            "token_count": token_count,
            "model": model,
            "profile": profile.model_id,
            "known_model": known,
            "provider": profile.provider.value,
            "encoding": profile.encoding,
            "character_count": len(content),
            "chars_per_token": len(content) / token_count if token_count > 0 else 0,
            "method": "exact" if exact else "estimated",
        }

    def _get_encoding(self, model: str | None) -> Encoding | None:
        """
        Get or create the encoding for a model.

        Args:
            model: Model name

        Returns:
            Encoding, or None if it could not be loaded
        """
        profile, known = resolve_profile(model)
        if not known:
            logger.debug(f"Unknown model: {model}, using {profile.model_id} encoding")

        return self._encoding_cache.get_or_create(profile.model_id, lambda: self._load_encoding(profile))

    def _load_encoding(self, profile: ModelProfile) -> Encoding | None:
        try:
            return self._encoding_loader(profile.encoding)
        except Exception as e:
            logger.error(
                f"Failed to load {profile.encoding} encoding for {profile.model_id}, using estimation: {e}",
                extra={"model": profile.model_id, "encoding": profile.encoding},
            )
            return None

    def _take_prefix(self, content: str, token_count: int, model: str) -> str:
        """Return the text of the first token_count tokens of content."""
        if token_count <= 0:
            return ""

        encoding = self._get_encoding(model)
        if encoding is None:
            return content[: token_count * 4]

        try:
            tokens = encoding.encode(content, disallowed_special=())
            return encoding.decode(tokens[:token_count])
        except Exception as e:
            logger.error(f"Error truncating content for {model}: {e}")
            return content[: token_count * 4]

    def _estimate_tokens(self, content: str) -> int:
        """
        Estimate token count using simple heuristic.

        Rule of thumb: ~4 characters per token for English text.

        Args:
            content: Text content

        Returns:
            Estimated token count
        """
        return max(1, len(content) // 4)


# Process-wide default instance
_counter_instance: TokenCounter | None = None


def get_token_counter() -> TokenCounter:
    """
    Get the shared TokenCounter instance.

    Returns:
        Shared TokenCounter instance
    """
    global _counter_instance
    if _counter_instance is None:
        _counter_instance = TokenCounter()
    return _counter_instance


def count_tokens(content: str, model: str = DEFAULT_MODEL) -> int:
    """
    Convenience function to count tokens.

    Args:
        content: Text content
        model: Model name

    Returns:
        Token count
    """
    counter = get_token_counter()
    return counter.count_tokens(content, model)
