"""Lexical relevance ranking over pooled document chunks."""

from collections.abc import Sequence

import numpy as np

from .config import config
from .models import Chunk, Document

logger = config.get_logger(__name__)

EXACT_PHRASE_BONUS = 5


class RelevanceRanker:
    """Scores chunks by query-token overlap and selects the top K.

    Scoring is lexical, not semantic: each query token found as a substring
    of the chunk counts one point, and the whole query appearing verbatim
    adds ``phrase_bonus``.
    """

    def __init__(
        self,
        top_k: int | None = None,
        multi_document_top_k: int | None = None,
        phrase_bonus: int = EXACT_PHRASE_BONUS,
    ) -> None:
        """Initialize the ranker.

        Args:
            top_k: Chunks selected for single-document sessions. If None, uses
                config.TOP_K.
            multi_document_top_k: Chunks selected when several documents are
                pooled. If None, uses config.MULTI_DOCUMENT_TOP_K.
            phrase_bonus: Score added when the full query occurs in a chunk.
        """
        self.top_k = top_k if top_k is not None else config.TOP_K
        self.multi_document_top_k = (
            multi_document_top_k
            if multi_document_top_k is not None
            else config.MULTI_DOCUMENT_TOP_K
        )
        self.phrase_bonus = phrase_bonus

    def score(self, chunk_text: str, query: str) -> int:
        """Score one chunk text against a query.

        Returns:
            Number of matching query tokens plus the exact-phrase bonus.
        """
        query_lower = query.lower()
        chunk_lower = chunk_text.lower()

        score = sum(1 for word in query_lower.split() if word in chunk_lower)
        if query_lower and query_lower in chunk_lower:
            score += self.phrase_bonus
        return score

    def rank(self, chunks: Sequence[Chunk], query: str, top_k: int) -> list[Chunk]:
        """Select the most relevant chunks for a query.

        Ties keep pooled order. When no chunk scores above zero the first
        ``top_k`` chunks are returned in pooled order instead.

        Returns:
            At most ``top_k`` chunks, best first.
        """
        if not chunks or top_k <= 0:
            return []

        scores = np.array([self.score(chunk.text, query) for chunk in chunks])
        # Stable sort so equal scores keep their pooled order
        order = np.argsort(-scores, kind="stable")
        relevant = [chunks[i] for i in order if scores[i] > 0][:top_k]

        if not relevant:
            logger.info("No lexical match for query; using first %d chunks", top_k)
            return list(chunks[:top_k])

        logger.debug(
            "Selected %d of %d chunks (best score %d)",
            len(relevant),
            len(chunks),
            scores.max(),
        )
        return relevant

    def top_k_for(self, documents: Sequence[Document]) -> int:
        """Pick K for a session: wider coverage when documents are pooled.

        Returns:
            The number of chunks to select.
        """
        return self.multi_document_top_k if len(documents) > 1 else self.top_k

    def rank_documents(self, documents: Sequence[Document], query: str) -> list[Chunk]:
        """Pool the chunks of all documents in attachment order and rank them.

        Returns:
            The selected chunks.
        """
        pooled = [chunk for document in documents for chunk in document.chunks]
        return self.rank(pooled, query, self.top_k_for(documents))
