"""Clause-to-conclusion decision engine."""

from .cache import DecisionCache
from .config import ChunkingConfig, ClientConfig, ModelSettings, RetrievalConfig
from .llm.schema import Decision, DecisionStatus
from .pipeline import DecisionPipeline
from .types import Document

__all__ = [
    "ChunkingConfig",
    "ClientConfig",
    "Decision",
    "DecisionCache",
    "DecisionPipeline",
    "DecisionStatus",
    "Document",
    "ModelSettings",
    "RetrievalConfig",
]
