"""
Shared test helpers: a deterministic word-level encoding and input builders.
"""

import pytest

from prompt_budget.prompt_optimization import Message, RankedDocument


class FakeEncoding:
    """One token per whitespace-separated word; decode joins words with spaces."""

    def __init__(self) -> None:
        self._ids: dict[str, int] = {}
        self._words: list[str] = []

    def encode(self, text: str, disallowed_special=()) -> list[int]:
        tokens = []
        for word in text.split():
            if word not in self._ids:
                self._ids[word] = len(self._words)
                self._words.append(word)
            tokens.append(self._ids[word])
        return tokens

    def decode(self, tokens: list[int]) -> str:
        return " ".join(self._words[token] for token in tokens)


def words(count: int, prefix: str = "w") -> str:
    """Text that the fake encoding counts as exactly `count` tokens."""
    return " ".join(f"{prefix}{index}" for index in range(count))


def make_docs(sizes: list[int], scores: list[float]) -> list[RankedDocument]:
    """Documents with the given token sizes and relevance scores."""
    return [
        RankedDocument(content=words(size, prefix=f"d{index}_"), relevance_score=score, source=f"doc-{index}")
        for index, (size, score) in enumerate(zip(sizes, scores, strict=True))
    ]


def make_history(count: int, size: int) -> list[Message]:
    """Alternating user/assistant messages of `size` tokens each, oldest first."""
    return [
        Message(role="user" if index % 2 == 0 else "assistant", content=words(size, prefix=f"m{index}_"))
        for index in range(count)
    ]


def is_tiktoken_available() -> bool:
    """Check whether real tiktoken encodings can be loaded (needs cached or downloadable BPE files)."""
    try:
        import tiktoken

        tiktoken.get_encoding("cl100k_base")
        tiktoken.get_encoding("o200k_base")
        return True
    except Exception:
        return False


# Skip marker for tests needing real tiktoken encodings
tiktoken_available = pytest.mark.skipif(not is_tiktoken_available(), reason="tiktoken encodings not available")
