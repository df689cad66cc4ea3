"""FastAPI entrypoint for decision/trace endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from clause_engine.cache import DecisionCache
from clause_engine.config import ModelSettings
from clause_engine.errors import (
    ClauseEngineError,
    ConfigurationError,
    InputValidationError,
    ModelCancelledError,
    ModelOverloadedError,
)
from clause_engine.ingest.loader import DocumentLoader
from clause_engine.llm.client import GeminiDecisionClient
from clause_engine.llm.schema import Decision
from clause_engine.obs.logging import setup_logging
from clause_engine.obs.tracing import TraceStore
from clause_engine.pipeline import DecisionPipeline
from clause_engine.types import Document


class DocumentIn(BaseModel):
    name: str = Field(min_length=1)
    text: str


class DecideRequest(BaseModel):
    query: str
    documents: list[DocumentIn] = Field(default_factory=list)
    paths: list[str] = Field(default_factory=list)


app = FastAPI(title="Clause-to-Conclusion Engine", version="0.1.0")

setup_logging()

_settings = ModelSettings()
_cache = DecisionCache()
_trace_store = TraceStore()
_loader = DocumentLoader()
_pipeline = DecisionPipeline(
    model=GeminiDecisionClient(_settings),
    cache=_cache,
    trace_store=_trace_store,
)


def get_pipeline() -> DecisionPipeline:
    return _pipeline


def get_loader() -> DocumentLoader:
    return _loader


def get_trace_store() -> TraceStore:
    return _trace_store


def _status_for(exc: ClauseEngineError) -> int:
    if isinstance(exc, InputValidationError):
        return 400
    if isinstance(exc, ConfigurationError):
        return 500
    if isinstance(exc, (ModelOverloadedError, ModelCancelledError)):
        return 503
    return 502


@app.get("/health")
def health(pipeline: DecisionPipeline = Depends(get_pipeline)) -> dict[str, Any]:
    return {
        "status": "ok",
        "llm_configured": getattr(pipeline.model, "configured", False),
        "cached_decisions": len(pipeline.cache),
    }


@app.post("/decide", response_model=Decision)
def decide(
    request: DecideRequest,
    pipeline: DecisionPipeline = Depends(get_pipeline),
    loader: DocumentLoader = Depends(get_loader),
) -> Decision:
    documents = [Document(name=doc.name, text=doc.text) for doc in request.documents]
    try:
        documents.extend(loader.load_many(list(request.paths)))
        return pipeline.run(documents, request.query)
    except ClauseEngineError as exc:
        raise HTTPException(
            status_code=_status_for(exc),
            detail={"error": type(exc).__name__, "message": exc.user_message},
        ) from exc
    except OSError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/traces")
def traces(limit: int = 20, store: TraceStore = Depends(get_trace_store)) -> dict[str, Any]:
    return {"items": [asdict(record) for record in store.list_recent(limit=limit)]}


@app.get("/traces/{trace_id}")
def trace_detail(trace_id: str, store: TraceStore = Depends(get_trace_store)) -> dict[str, Any]:
    try:
        record = store.get(trace_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return asdict(record)


@app.get("/metrics")
def metrics(store: TraceStore = Depends(get_trace_store)) -> dict[str, Any]:
    return store.summary()
