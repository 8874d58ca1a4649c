import asyncio
from datetime import datetime

import pytest

from authstate_core.errors import DecodingError, SessionValidationError, StoreConnectionError
from authstate_core.gateway import ConnectionState, RetryingGateway
from authstate_core.storage import InMemoryStore

from conftest import FlakyStore

DELAY_MS = 20


@pytest.mark.asyncio
async def test_succeeds_on_last_attempt():
    store = FlakyStore(fail_times=3)
    gw = RetryingGateway(store, max_retries=4, retry_request_delay_ms=DELAY_MS)

    await gw.write("s-pre-key-1", {"a": 1}, "s")

    assert store.calls == 4
    assert await gw.read_value("s-pre-key-1") == {"a": 1}
    gaps = [b - a for a, b in zip(store.attempt_times, store.attempt_times[1:4])]
    assert all(gap >= DELAY_MS / 1000.0 - 0.002 for gap in gaps)


@pytest.mark.asyncio
async def test_exhaustion_raises_connection_error():
    cause = OSError("socket closed")
    store = FlakyStore(fail_times=100, error=cause)
    gw = RetryingGateway(store, max_retries=5, retry_request_delay_ms=1)

    with pytest.raises(StoreConnectionError) as info:
        await gw.read("s-session-x")

    assert store.calls == 5
    err = info.value
    assert err.attempts == 5
    assert err.original_error is cause
    assert err.__cause__ is cause
    assert "Query document s-session-x" in str(err)
    assert "5 attempts" in str(err)


@pytest.mark.asyncio
async def test_no_sleep_after_final_attempt(monkeypatch):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr("authstate_core.gateway.asyncio.sleep", fake_sleep)
    gw = RetryingGateway(FlakyStore(fail_times=100), max_retries=3, retry_request_delay_ms=250)

    with pytest.raises(StoreConnectionError):
        await gw.delete("s-pre-key-1")

    assert sleeps == [0.25, 0.25]


@pytest.mark.asyncio
async def test_failed_connect_is_retried_on_next_attempt():
    store = FlakyStore(fail_connect=2)
    gw = RetryingGateway(store, max_retries=3, retry_request_delay_ms=1)

    assert await gw.read("missing") is None
    assert store.connect_calls == 3
    assert gw.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_connect_failure_exhausts_budget():
    store = FlakyStore(fail_connect=10)
    gw = RetryingGateway(store, max_retries=2, retry_request_delay_ms=1)

    with pytest.raises(StoreConnectionError) as info:
        await gw.read("missing")

    assert store.connect_calls == 2
    assert store.calls == 0
    assert isinstance(info.value.original_error, StoreConnectionError)
    assert gw.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_validation_errors_are_not_retried():
    store = FlakyStore(error=SessionValidationError("bad input"), fail_times=10)
    gw = RetryingGateway(store, max_retries=5, retry_request_delay_ms=1)

    with pytest.raises(SessionValidationError):
        await gw.read("x")
    assert store.calls == 1


@pytest.mark.asyncio
async def test_connection_is_reused():
    store = FlakyStore()
    gw = RetryingGateway(store, max_retries=2, retry_request_delay_ms=1)

    await gw.write("s-creds", {"x": 1}, "s")
    await gw.read("s-creds")
    await gw.delete("s-creds")

    assert store.connect_calls == 1


@pytest.mark.asyncio
async def test_disconnect_then_reconnect_transparently():
    store = InMemoryStore()
    gw = RetryingGateway(store, max_retries=2, retry_request_delay_ms=1)
    await gw.write("s-session-1", b"blob", "s")

    await gw.disconnect()
    assert gw.state is ConnectionState.DISCONNECTED
    assert not store.is_healthy()

    assert await gw.read_value("s-session-1") == b"blob"
    assert gw.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_dropped_connection_recovers():
    store = InMemoryStore()
    gw = RetryingGateway(store, max_retries=2, retry_request_delay_ms=1)
    await gw.write("s-session-1", b"blob", "s")

    store.connected = False  # server side drop
    assert await gw.read_value("s-session-1") == b"blob"
    assert store.is_healthy()


@pytest.mark.asyncio
async def test_read_value_missing_is_none():
    gw = RetryingGateway(InMemoryStore(), max_retries=1, retry_request_delay_ms=0)
    assert await gw.read_value("nothing-here") is None


@pytest.mark.asyncio
async def test_read_value_accepts_legacy_object_rows():
    store = InMemoryStore()
    await store.upsert("s-creds", {"k": {"type": "Buffer", "data": "AQI="}}, "s")
    gw = RetryingGateway(store, max_retries=1, retry_request_delay_ms=0)
    assert await gw.read_value("s-creds") == {"k": b"\x01\x02"}


@pytest.mark.asyncio
async def test_corrupt_buffer_is_not_retried():
    store = FlakyStore()
    await store.upsert("s-session-1", '{"type":"Buffer","data":"@@@"}', "s")
    gw = RetryingGateway(store, max_retries=4, retry_request_delay_ms=1)

    with pytest.raises(DecodingError):
        await gw.read_value("s-session-1")
    assert store.calls == 2  # the seeding upsert plus a single read


@pytest.mark.asyncio
async def test_oversized_key_rejected_before_store():
    store = FlakyStore()
    gw = RetryingGateway(store, max_retries=3, retry_request_delay_ms=1)
    with pytest.raises(SessionValidationError):
        await gw.write("k" * 201, b"x", "s")
    assert store.calls == 0


@pytest.mark.asyncio
async def test_namespace_sweeps():
    store = InMemoryStore()
    gw = RetryingGateway(store, max_retries=1, retry_request_delay_ms=0)
    for key, session in [("a-creds", "a"), ("a-session-1", "a"), ("a-pre-key-1", "a"), ("b-creds", "b")]:
        await gw.write(key, {"v": key}, session)

    assert await gw.delete_by_namespace("a", ["a-creds"]) == 2
    assert set(store.records) == {"a-creds", "b-creds"}

    assert await gw.delete_all_by_namespace("a") == 1
    assert set(store.records) == {"b-creds"}


def test_rejects_zero_retries():
    with pytest.raises(SessionValidationError):
        RetryingGateway(InMemoryStore(), max_retries=0)


class SlowConnectStore(InMemoryStore):
    def __init__(self):
        super().__init__()
        self.connect_calls = 0

    async def connect(self):
        self.connect_calls += 1
        await asyncio.sleep(0.01)
        await super().connect()


@pytest.mark.asyncio
async def test_concurrent_first_use_connects_once():
    store = SlowConnectStore()
    gw = RetryingGateway(store, max_retries=2, retry_request_delay_ms=1)

    results = await asyncio.gather(*(gw.read(f"s-pre-key-{i}") for i in range(5)))

    assert results == [None] * 5
    assert store.connect_calls == 1
    assert gw.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_concurrent_reconnect_after_drop_connects_once():
    store = SlowConnectStore()
    gw = RetryingGateway(store, max_retries=2, retry_request_delay_ms=1)
    await gw.ensure_connection()

    store.connected = False
    await asyncio.gather(*(gw.read("s-creds") for _ in range(4)))

    assert store.connect_calls == 2


@pytest.mark.asyncio
async def test_unserialisable_legacy_row_is_a_decoding_error():
    store = InMemoryStore()
    await store.upsert("s-session-1", {"when": datetime(2024, 1, 1)}, "s")
    gw = RetryingGateway(store, max_retries=3, retry_request_delay_ms=1)

    with pytest.raises(DecodingError):
        await gw.read_value("s-session-1")


def test_store_connection_error_keeps_its_own_arguments():
    cause = OSError("refused")
    err = StoreConnectionError("Write data k failed after 3 attempts", cause, operation="Write data k", attempts=3)
    assert not isinstance(err, OSError)
    assert str(err) == "Write data k failed after 3 attempts"
    assert err.code == "STORE_CONNECTION_ERROR"
    assert (err.operation, err.attempts, err.__cause__) == ("Write data k", 3, cause)
