# authstate_core/storage/provider.py
from __future__ import annotations
from typing import Iterable, Optional
from .models import StorageRecord


class DocumentStore:
    """
    Interface every storage backend implements.

    Writes are idempotent: ``upsert`` overwrites, ``delete_one`` on a missing
    id is a no-op. That is what makes blind retries safe.
    """
    name: str = "base"

    async def connect(self) -> None: ...
    async def close(self) -> None: ...
    def is_healthy(self) -> bool: ...

    async def find_by_id(self, record_id: str) -> Optional[StorageRecord]: ...
    async def upsert(self, record_id: str, value: str, session: str) -> None: ...
    async def delete_one(self, record_id: str) -> None: ...
    async def delete_many(self, session: str, exclude_ids: Iterable[str] = ()) -> int: ...
