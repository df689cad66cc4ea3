"""Per-run decision traces and latency accounting."""

from __future__ import annotations

import re
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]", flags=re.UNICODE)


@dataclass(slots=True)
class DecisionTraceRecord:
    trace_id: str
    timestamp_utc: str
    query: str
    decision: str
    amount_payable: float
    cache_hit: bool
    chunk_count: int
    context_chunk_ids: list[str]
    prompt_tokens: int
    latency_ms: float


class TraceStore:
    """In-memory trace storage for API-level observability."""

    def __init__(self) -> None:
        self._records: dict[str, DecisionTraceRecord] = {}
        self._lock = threading.Lock()

    def create_record(
        self,
        *,
        query: str,
        decision: str,
        amount_payable: float,
        cache_hit: bool,
        chunk_count: int,
        context_chunk_ids: list[str],
        prompt_tokens: int,
        latency_ms: float,
    ) -> DecisionTraceRecord:
        record = DecisionTraceRecord(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            query=query,
            decision=decision,
            amount_payable=amount_payable,
            cache_hit=cache_hit,
            chunk_count=chunk_count,
            context_chunk_ids=context_chunk_ids,
            prompt_tokens=prompt_tokens,
            latency_ms=latency_ms,
        )
        with self._lock:
            self._records[record.trace_id] = record
        return record

    def get(self, trace_id: str) -> DecisionTraceRecord:
        with self._lock:
            record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[DecisionTraceRecord]:
        if limit <= 0:
            return []
        with self._lock:
            return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, float | int]:
        """Aggregate request, cache and latency metrics."""
        with self._lock:
            records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "cache_hits": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "total_prompt_tokens": 0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        return {
            "total_requests": total,
            "cache_hits": sum(1 for record in records if record.cache_hit),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "total_prompt_tokens": sum(record.prompt_tokens for record in records),
        }


class Timer:
    """Simple context timer used by the pipeline."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


def estimate_token_count(text: str) -> int:
    return len(_TOKEN_PATTERN.findall(text))
