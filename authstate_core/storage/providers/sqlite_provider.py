from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional
import asyncio, os, sqlite3

from authstate_core.storage.models import MAX_ID_LEN, MAX_SESSION_LEN, StorageRecord
from authstate_core.storage.provider import DocumentStore
from authstate_core.utils import now_utc


class SQLiteStore(DocumentStore):
    """
    Document collection kept in a single SQLite table.

    The table is named after the collection; names are validated upstream
    against ``[a-zA-Z0-9_-]`` so quoting them is enough. Each call runs in a
    worker thread to keep the event loop free.
    """
    name = "sqlite"

    def __init__(self, path="db/authstate.db", collection_name="baileys-auth"):
        self.path = path
        self.table = collection_name
        self.db: Optional[sqlite3.Connection] = None

    async def connect(self) -> None:
        await asyncio.to_thread(self._open)

    def _open(self) -> None:
        if self.db is not None:
            self.db.close()
            self.db = None
        if self.path != ":memory:":
            # If no directory, default to current working directory
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        db = sqlite3.connect(self.path, check_same_thread=False)
        self._init(db)
        self.db = db

    def _init(self, db: sqlite3.Connection) -> None:
        t = self.table
        db.execute(f"""CREATE TABLE IF NOT EXISTS "{t}"(
            _id TEXT PRIMARY KEY CHECK(length(_id) <= {MAX_ID_LEN}),
            value TEXT NOT NULL,
            session TEXT NOT NULL CHECK(length(session) <= {MAX_SESSION_LEN}),
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )""")
        db.execute(f'CREATE INDEX IF NOT EXISTS "{t}_session" ON "{t}"(session)')
        # compound index for namespace sweeps
        db.execute(f'CREATE INDEX IF NOT EXISTS "{t}_session_id" ON "{t}"(session, _id)')
        db.commit()

    async def close(self) -> None:
        if self.db is not None:
            db, self.db = self.db, None
            await asyncio.to_thread(db.close)

    def is_healthy(self) -> bool:
        if self.db is None:
            return False
        try:
            self.db.execute("SELECT 1")
            return True
        except sqlite3.Error:
            return False

    def _conn(self) -> sqlite3.Connection:
        if self.db is None:
            raise sqlite3.OperationalError("SQLite store is not connected")
        return self.db

    async def find_by_id(self, record_id: str) -> Optional[StorageRecord]:
        return await asyncio.to_thread(self._find_by_id, record_id)

    def _find_by_id(self, record_id: str) -> Optional[StorageRecord]:
        cur = self._conn().execute(
            f'SELECT _id, value, session, created_at, updated_at FROM "{self.table}" WHERE _id=?',
            (record_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        rid, value, session, created_at, updated_at = row
        return StorageRecord(
            id=rid,
            value=value,
            session=session,
            created_at=datetime.fromisoformat(created_at),
            updated_at=datetime.fromisoformat(updated_at),
        )

    async def upsert(self, record_id: str, value: str, session: str) -> None:
        await asyncio.to_thread(self._upsert, record_id, value, session)

    def _upsert(self, record_id: str, value: str, session: str) -> None:
        now = now_utc().isoformat()
        db = self._conn()
        db.execute(
            f'INSERT INTO "{self.table}"(_id,value,session,created_at,updated_at) VALUES(?,?,?,?,?) '
            "ON CONFLICT(_id) DO UPDATE SET value=excluded.value, session=excluded.session, "
            "updated_at=excluded.updated_at",
            (record_id, value, session, now, now),
        )
        db.commit()

    async def delete_one(self, record_id: str) -> None:
        await asyncio.to_thread(self._delete_one, record_id)

    def _delete_one(self, record_id: str) -> None:
        db = self._conn()
        db.execute(f'DELETE FROM "{self.table}" WHERE _id=?', (record_id,))
        db.commit()

    async def delete_many(self, session: str, exclude_ids: Iterable[str] = ()) -> int:
        return await asyncio.to_thread(self._delete_many, session, list(exclude_ids))

    def _delete_many(self, session: str, exclude_ids: list) -> int:
        sql = f'DELETE FROM "{self.table}" WHERE session=?'
        params = [session]
        if exclude_ids:
            sql += f" AND _id NOT IN ({', '.join(['?'] * len(exclude_ids))})"
            params.extend(exclude_ids)
        db = self._conn()
        cur = db.execute(sql, tuple(params))
        db.commit()
        return cur.rowcount
