"""Session-scoped decision cache keyed by the exact query string."""

from __future__ import annotations

import threading

from clause_engine.llm.schema import Decision


class DecisionCache:
    """Thread-safe exact-match map from query to decision.

    Keys are not normalized: "Is X payable?" and "is x payable?" are
    different entries. Nothing is evicted, so the cache grows for as long as
    the owning session lives.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Decision] = {}
        self._lock = threading.Lock()

    def get(self, query: str) -> Decision | None:
        with self._lock:
            return self._entries.get(query)

    def put(self, query: str, decision: Decision) -> None:
        with self._lock:
            self._entries[query] = decision

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, query: object) -> bool:
        with self._lock:
            return query in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
