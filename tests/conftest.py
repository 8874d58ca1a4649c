import time
import pytest

from authstate_core.config import SessionConfig
from authstate_core.storage import InMemoryStore


class FlakyStore(InMemoryStore):
    """InMemoryStore whose operations fail a set number of times first."""

    def __init__(self, fail_times=0, fail_connect=0, error=None):
        super().__init__()
        self.fail_times = fail_times
        self.fail_connect = fail_connect
        self.error = error or OSError("store unavailable")
        self.calls = 0
        self.connect_calls = 0
        self.attempt_times = []

    async def connect(self):
        self.connect_calls += 1
        if self.fail_connect > 0:
            self.fail_connect -= 1
            self.attempt_times.append(time.monotonic())
            raise self.error
        await super().connect()

    def _maybe_fail(self):
        self.calls += 1
        self.attempt_times.append(time.monotonic())
        if self.fail_times > 0:
            self.fail_times -= 1
            raise self.error

    async def find_by_id(self, record_id):
        self._maybe_fail()
        return await super().find_by_id(record_id)

    async def upsert(self, record_id, value, session):
        self._maybe_fail()
        await super().upsert(record_id, value, session)

    async def delete_one(self, record_id):
        self._maybe_fail()
        await super().delete_one(record_id)

    async def delete_many(self, session, exclude_ids=()):
        self._maybe_fail()
        return await super().delete_many(session, exclude_ids)


class BrokenIdStore(InMemoryStore):
    """Fails every read for the listed record ids."""

    def __init__(self, broken_ids=(), broken_writes=()):
        super().__init__()
        self.broken_ids = set(broken_ids)
        self.broken_writes = set(broken_writes)
        self.writes = []

    async def find_by_id(self, record_id):
        if record_id in self.broken_ids:
            raise OSError(f"cannot read {record_id}")
        return await super().find_by_id(record_id)

    async def upsert(self, record_id, value, session):
        if record_id in self.broken_writes:
            raise OSError(f"cannot write {record_id}")
        self.writes.append(record_id)
        await super().upsert(record_id, value, session)


@pytest.fixture
def make_config():
    def _make(session="test-session", **kwargs):
        kwargs.setdefault("provider", "memory")
        kwargs.setdefault("retry_request_delay_ms", 1)
        kwargs.setdefault("max_retries", 3)
        return SessionConfig(session=session, **kwargs)
    return _make


@pytest.fixture
def memory_store():
    return InMemoryStore()
