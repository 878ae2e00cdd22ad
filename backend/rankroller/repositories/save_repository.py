from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config import settings


class MongoSaveRepository:
    """Data-access layer storing one save envelope per slot document."""

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._collection = database[settings.save_collection]

    async def ensure_indexes(self) -> None:
        """Create indexes required by the collection."""

        await self._collection.create_index("updated_at", name="save_updated_at_idx")

    async def read(self, slot: str) -> Optional[str]:
        """Return the stored envelope for ``slot`` if one exists."""

        document = await self._collection.find_one({"_id": slot})
        if document is None:
            return None
        return document.get("blob")

    async def write(self, slot: str, blob: str) -> None:
        """Replace the envelope stored for ``slot``."""

        await self._collection.update_one(
            {"_id": slot},
            {"$set": {"blob": blob, "updated_at": datetime.now(timezone.utc)}},
            upsert=True,
        )
