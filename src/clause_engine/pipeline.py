"""End-to-end decision pipeline: chunk -> retrieve -> prompt -> decide."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from clause_engine.cache import DecisionCache
from clause_engine.errors import InputValidationError
from clause_engine.ingest.chunker import WindowChunker
from clause_engine.llm.schema import Decision
from clause_engine.obs.tracing import Timer, TraceStore, estimate_token_count
from clause_engine.prompting.builder import DecisionPromptBuilder
from clause_engine.retrieval.retriever import KeywordRetriever
from clause_engine.types import Document

logger = logging.getLogger(__name__)


class DecisionModel(Protocol):
    """Anything that turns a prompt into a validated decision."""

    def decide(self, prompt: str) -> Decision:
        """Return the model's decision for `prompt`."""


class DecisionPipeline:
    """Coordinates chunker/retriever/prompt builder/model stages.

    The cache is owned by the caller and passed in, so its lifetime matches
    the host session. A cached decision is returned as-is without scoring or
    calling the model again. Failures from any stage propagate unchanged.
    """

    def __init__(
        self,
        *,
        model: DecisionModel,
        cache: DecisionCache,
        chunker: WindowChunker | None = None,
        retriever: KeywordRetriever | None = None,
        prompt_builder: DecisionPromptBuilder | None = None,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.model = model
        self.cache = cache
        self.chunker = chunker or WindowChunker()
        self.retriever = retriever or KeywordRetriever()
        self.prompt_builder = prompt_builder or DecisionPromptBuilder()
        self.trace_store = trace_store

    def run(self, documents: Sequence[Document], query: str) -> Decision:
        _validate_inputs(documents, query)

        with Timer() as timer:
            cached = self.cache.get(query)
            if cached is not None:
                logger.info("Decision cache hit for query %r", query)
                decision = cached
                chunk_count = 0
                context_ids: list[str] = []
                prompt = ""
            else:
                logger.info("Decision cache miss for query %r", query)
                chunks = self.chunker.chunk_documents(list(documents))
                context = self.retriever.retrieve(chunks, query)
                prompt = self.prompt_builder.build(query, context)
                decision = self.model.decide(prompt)
                self.cache.put(query, decision)
                chunk_count = len(chunks)
                context_ids = [chunk.chunk_id for chunk in context]
                logger.info(
                    "Decision '%s' from %d of %d chunks",
                    decision.decision.value,
                    len(context),
                    len(chunks),
                )

        if self.trace_store is not None:
            self.trace_store.create_record(
                query=query,
                decision=decision.decision.value,
                amount_payable=decision.amount_payable,
                cache_hit=cached is not None,
                chunk_count=chunk_count,
                context_chunk_ids=context_ids,
                prompt_tokens=estimate_token_count(prompt),
                latency_ms=timer.elapsed_ms,
            )
        return decision


def _validate_inputs(documents: Sequence[Document], query: str) -> None:
    if not documents or not any(document.text.strip() for document in documents):
        raise InputValidationError("At least one document with text is required.")
    if not query or not query.strip():
        raise InputValidationError("A non-empty query is required.")
