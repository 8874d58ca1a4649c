from typing import Dict, Iterable, Optional
from authstate_core.storage.models import StorageRecord
from authstate_core.storage.provider import DocumentStore
from authstate_core.utils import now_utc


class InMemoryStore(DocumentStore):
    name = "memory"

    def __init__(self):
        self.records: Dict[str, StorageRecord] = {}
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        # records survive, like a server outliving its clients
        self.connected = False

    def is_healthy(self) -> bool:
        return self.connected

    async def find_by_id(self, record_id: str) -> Optional[StorageRecord]:
        return self.records.get(record_id)

    async def upsert(self, record_id: str, value: str, session: str) -> None:
        now = now_utc()
        existing = self.records.get(record_id)
        created_at = existing.created_at if existing else now
        self.records[record_id] = StorageRecord(record_id, value, session, created_at, now)

    async def delete_one(self, record_id: str) -> None:
        self.records.pop(record_id, None)

    async def delete_many(self, session: str, exclude_ids: Iterable[str] = ()) -> int:
        keep = set(exclude_ids)
        doomed = [rid for rid, rec in self.records.items() if rec.session == session and rid not in keep]
        for rid in doomed:
            del self.records[rid]
        return len(doomed)
