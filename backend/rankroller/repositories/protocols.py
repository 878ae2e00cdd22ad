from __future__ import annotations

from typing import Optional, Protocol


class SaveRepositoryProtocol(Protocol):
    """Protocol implemented by save envelope stores.

    The store only ever sees opaque strings; encoding is the codec's job.
    """

    async def ensure_indexes(self) -> None: ...

    async def read(self, slot: str) -> Optional[str]: ...

    async def write(self, slot: str, blob: str) -> None: ...
