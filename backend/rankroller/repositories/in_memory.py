"""Fallback repository that keeps saves in process memory when MongoDB is unavailable."""

from __future__ import annotations

from typing import Dict, Optional

from .protocols import SaveRepositoryProtocol


class InMemorySaveRepository(SaveRepositoryProtocol):
    """Keep save envelopes in a dictionary keyed by slot."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._store: Dict[str, str] = dict(initial or {})

    async def ensure_indexes(self) -> None:
        """No-op for the in-memory implementation."""

    async def read(self, slot: str) -> Optional[str]:
        return self._store.get(slot)

    async def write(self, slot: str, blob: str) -> None:
        self._store[slot] = blob
