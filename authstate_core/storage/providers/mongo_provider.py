# authstate_core/storage/providers/mongo_provider.py
from __future__ import annotations
from typing import Any, Dict, Iterable, Optional

from authstate_core.logger import get_logger
from authstate_core.storage.models import StorageRecord
from authstate_core.storage.provider import DocumentStore
from authstate_core.utils import now_utc

log = get_logger("authstate.storage.mongo")

DEFAULT_MONGO_OPTIONS: Dict[str, Any] = {
    "maxPoolSize": 10,
    "serverSelectionTimeoutMS": 5000,
    "socketTimeoutMS": 45000,
}


class MongoStore(DocumentStore):
    """
    Document collection on MongoDB through pymongo's asyncio client.

    Documents look like ``{_id, value, session, createdAt, updatedAt}``.
    Timeouts are the driver's own; pass overrides through ``options``.
    """

    name = "mongo"

    def __init__(self, uri: str, collection_name: str = "baileys-auth",
                 database_name: str = "baileys", options: Optional[Dict[str, Any]] = None):
        self.uri = uri
        self.collection_name = collection_name
        self.database_name = database_name
        self.options = {**DEFAULT_MONGO_OPTIONS, **(options or {})}
        self._client = None
        self._collection = None

    async def connect(self) -> None:
        # pymongo is an optional extra; only needed once this provider is used
        from pymongo import ASCENDING, AsyncMongoClient

        if self._client is not None:
            await self.close()

        client = AsyncMongoClient(self.uri, **self.options)
        try:
            await client.admin.command("ping")
            collection = client.get_default_database(default=self.database_name)[self.collection_name]
            await collection.create_index([("session", ASCENDING)])
            await collection.create_index([("session", ASCENDING), ("_id", ASCENDING)])
        except Exception:
            await client.close()
            raise

        self._client = client
        self._collection = collection
        log.debug(f"[MONGO] connected db={self.database_name} collection={self.collection_name}")

    async def close(self) -> None:
        client, self._client, self._collection = self._client, None, None
        if client is not None:
            await client.close()
            log.debug("[MONGO] disconnected")

    def is_healthy(self) -> bool:
        return self._collection is not None

    def _coll(self):
        if self._collection is None:
            from pymongo.errors import ConnectionFailure
            raise ConnectionFailure("MongoDB store is not connected")
        return self._collection

    async def find_by_id(self, record_id: str) -> Optional[StorageRecord]:
        doc = await self._coll().find_one({"_id": record_id})
        if doc is None:
            return None
        return StorageRecord(
            id=doc["_id"],
            value=doc.get("value"),
            session=doc.get("session", ""),
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )

    async def upsert(self, record_id: str, value: str, session: str) -> None:
        now = now_utc()
        await self._coll().update_one(
            {"_id": record_id},
            {
                "$set": {"value": value, "session": session, "updatedAt": now},
                "$setOnInsert": {"createdAt": now},
            },
            upsert=True,
        )

    async def delete_one(self, record_id: str) -> None:
        await self._coll().delete_one({"_id": record_id})

    async def delete_many(self, session: str, exclude_ids: Iterable[str] = ()) -> int:
        query: Dict[str, Any] = {"session": session}
        exclude = list(exclude_ids)
        if exclude:
            query["_id"] = {"$nin": exclude}
        result = await self._coll().delete_many(query)
        return result.deleted_count
