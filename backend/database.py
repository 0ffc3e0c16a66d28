from __future__ import annotations
from typing import Any, Optional, Protocol
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from bson.errors import InvalidDocument
from datetime import datetime, timezone

from config import Settings
from errors import StorageError
from logconfig import get_logger

logger = get_logger(__name__)


class OrderStore(Protocol):
    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        """Persist one order document and return it with its ``id``."""
        ...


async def create_document(db: AsyncIOMotorDatabase, collection_name: str, data: dict[str, Any]) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    data_with_meta = {**data, "created_at": now, "updated_at": now}
    result = await db[collection_name].insert_one(data_with_meta)
    inserted = await db[collection_name].find_one({"_id": result.inserted_id})
    if inserted and "_id" in inserted:
        inserted["id"] = str(inserted.pop("_id"))
    return inserted or {}


class MongoOrderStore:
    """Orders collection on MongoDB.

    The Motor client is only built when the first query needs it, so creating
    the store (e.g. at import of the app) never opens a connection.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Optional[AsyncIOMotorClient] = None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._client is None:
            logger.info("Connecting to MongoDB", database=self.settings.DATABASE_NAME)
            self._client = AsyncIOMotorClient(self.settings.DATABASE_URL)
        return self._client[self.settings.DATABASE_NAME]

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        try:
            saved = await create_document(self.db, self.settings.ORDERS_COLLECTION, document)
        except (PyMongoError, InvalidDocument, OverflowError) as exc:
            raise StorageError(str(exc)) from exc
        if not saved:
            raise StorageError("Inserted order could not be read back")
        return saved

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
        except PyMongoError as exc:
            logger.warning("MongoDB ping failed", error=str(exc))
            return False
        return True

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
