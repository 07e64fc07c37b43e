"""
Reference-Context Optimizer

Selects, orders and truncates retrieved documents so they fit a token
budget. Relevance filtering happens before packing, and a configured
minimum number of documents survives even when it overruns the budget.
"""

import logging
from collections.abc import Sequence

from ..token_optimization.counter import TokenCounter, get_token_counter
from ..token_optimization.profiles import DEFAULT_MODEL
from .models import RagSelection, RankedDocument
from .policy import RagPolicy

logger = logging.getLogger(__name__)


class RagContextOptimizer:
    """Budget-aware selection of ranked reference documents."""

    def __init__(self, counter: TokenCounter | None = None) -> None:
        self.counter = counter or get_token_counter()

    def select(
        self,
        documents: Sequence[RankedDocument],
        budget_tokens: int,
        policy: RagPolicy,
        model: str = DEFAULT_MODEL,
    ) -> RagSelection:
        """
        Select the documents that fit in budget_tokens.

        Documents below the relevance floor are discarded, the rest are
        sorted by descending score (stable on ties) and packed in order until
        the next one would overrun the budget or max_results is reached.
        Oversized documents are truncated first when trimming is enabled.
        If fewer than min_results were packed but at least that many passed
        the filter, the top min_results are kept regardless of budget.

        Args:
            documents: Candidate documents in retrieval order
            budget_tokens: Token budget for the kept documents
            policy: RAG selection limits
            model: Model name for token counting

        Returns:
            RagSelection with kept documents and trim/remove statistics
        """
        documents = list(documents or [])
        budget = max(0, budget_tokens)
        candidates = self.rank_and_filter(documents, policy.min_relevance_score)

        prepared: dict[int, tuple[RankedDocument, int, bool]] = {}

        def prepare(index: int) -> tuple[RankedDocument, int, bool]:
            if index not in prepared:
                prepared[index] = self._prepare(candidates[index], policy, model)
            return prepared[index]

        kept: list[RankedDocument] = []
        item_tokens: list[int] = []
        trimmed_count = 0
        used_tokens = 0
        constrained = False

        for index in range(len(candidates)):
            if len(kept) >= policy.max_results:
                break
            document, tokens, trimmed = prepare(index)
            if used_tokens + tokens > budget:
                constrained = True
                break
            kept.append(document)
            item_tokens.append(tokens)
            used_tokens += tokens
            trimmed_count += int(trimmed)

        forced_count = 0
        if len(kept) < policy.min_results <= len(candidates):
            for index in range(len(kept), policy.min_results):
                document, tokens, trimmed = prepare(index)
                kept.append(document)
                item_tokens.append(tokens)
                used_tokens += tokens
                trimmed_count += int(trimmed)
                forced_count += 1

        selection = RagSelection(
            kept=kept,
            trimmed_count=trimmed_count,
            removed_count=len(documents) - len(kept),
            used_tokens=used_tokens,
            budget=budget,
            filtered_count=len(documents) - len(candidates),
            forced_count=forced_count,
            constrained=constrained,
            item_tokens=item_tokens,
        )

        logger.debug(
            f"RAG selection: kept {len(kept)}/{len(documents)} documents, "
            f"{used_tokens}/{budget} tokens, {trimmed_count} trimmed, {forced_count} forced"
        )
        return selection

    def rank_and_filter(
        self,
        documents: Sequence[RankedDocument],
        min_relevance_score: float = 0.3,
        max_results: int | None = None,
    ) -> list[RankedDocument]:
        """
        Drop weak documents and order the rest by descending relevance.

        Args:
            documents: Candidate documents
            min_relevance_score: Documents scoring below this are dropped
            max_results: Optional cap on the number returned

        Returns:
            Filtered documents, highest score first, input order kept on ties
        """
        ranked = sorted(
            (doc for doc in documents or [] if doc.relevance_score >= min_relevance_score),
            key=lambda doc: doc.relevance_score,
            reverse=True,
        )
        if max_results is not None:
            ranked = ranked[:max_results]
        return ranked

    def trim_result(
        self,
        document: RankedDocument,
        max_tokens: int,
        model: str = DEFAULT_MODEL,
    ) -> tuple[RankedDocument, int]:
        """
        Truncate a document to max_tokens, keeping score, source and metadata.

        Args:
            document: Document to truncate
            max_tokens: Token ceiling for the document content
            model: Model name for token counting

        Returns:
            Tuple of (document, token count). The document is returned as-is
            when it already fits.
        """
        tokens = self.counter.count_tokens(document.content, model)
        if tokens <= max_tokens:
            return document, tokens

        content = self.counter.truncate_to_tokens(document.content, max_tokens, model)
        return document.with_content(content), self.counter.count_tokens(content, model)

    def create_ranked_results(
        self,
        contents: Sequence[str],
        default_score: float = 0.5,
    ) -> list[RankedDocument]:
        """
        Wrap plain text results in RankedDocuments with a uniform score.

        Args:
            contents: Document texts in retrieval order
            default_score: Relevance score assigned to every document

        Returns:
            Documents labelled "Result 1", "Result 2", ...
        """
        return [
            RankedDocument(content=content, relevance_score=default_score, source=f"Result {index + 1}")
            for index, content in enumerate(contents or [])
        ]

    def _prepare(
        self,
        document: RankedDocument,
        policy: RagPolicy,
        model: str,
    ) -> tuple[RankedDocument, int, bool]:
        """Cost a document, truncating it first if the policy asks for it."""
        if policy.trim_large_results:
            trimmed, tokens = self.trim_result(document, policy.max_tokens_per_result, model)
            return trimmed, tokens, trimmed is not document
        return document, self.counter.count_tokens(document.content, model), False
