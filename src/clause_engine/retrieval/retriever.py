"""Keyword retriever with domain boosts."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from clause_engine.config import RetrievalConfig
from clause_engine.errors import ConfigurationError
from clause_engine.retrieval.boost import BoostEvaluator
from clause_engine.types import Chunk, ChunkT, ScoredChunk, chunk_body

logger = logging.getLogger(__name__)


class KeywordRetriever:
    """Ranks chunks by distinct query-term overlap plus rule-based boosts.

    Scoring:
    1. Query and chunk are lowercased and split on whitespace.
    2. Query tokens shorter than `min_token_length` are dropped.
    3. The base score counts distinct query tokens present in the chunk.
    4. Boost rules activated by the query add their bonus to chunks that
       contain one of the rule's signal phrases.

    Ranking sorts on descending score, then input position, so ties keep the
    input order and a query with no matches returns the leading chunks
    unchanged.
    """

    def __init__(self, config: RetrievalConfig | None = None) -> None:
        self.config = config or RetrievalConfig()
        self.boosts = BoostEvaluator(self.config.boost_rules)

    def retrieve(
        self,
        chunks: Sequence[ChunkT],
        query: str,
        *,
        top_k: int | None = None,
    ) -> list[ChunkT]:
        limit = self.config.top_k if top_k is None else top_k
        if limit < 1:
            raise ConfigurationError(f"top_k must be at least 1, got {limit}")
        if not chunks:
            return []

        ranked = sorted(self.score(chunks, query), key=lambda item: (-item.score, item.position))
        logger.debug(
            "Ranked %d chunks, best score %.1f", len(ranked), ranked[0].score
        )
        return [item.chunk for item in ranked[:limit]]

    def score(self, chunks: Sequence[Chunk], query: str) -> list[ScoredChunk]:
        """Score every chunk in input order."""

        query_terms = self._query_terms(query)
        rules = self.boosts.active_rules(query)
        scored: list[ScoredChunk] = []
        for position, chunk in enumerate(chunks):
            text = chunk_body(chunk)
            score = float(len(query_terms & set(text.lower().split())))
            if rules:
                score += self.boosts.bonus(text, rules)
            scored.append(ScoredChunk(chunk=chunk, score=score, position=position))
        return scored

    def _query_terms(self, query: str) -> set[str]:
        return {
            token
            for token in query.lower().split()
            if len(token) >= self.config.min_token_length
        }
