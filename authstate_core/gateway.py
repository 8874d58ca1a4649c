"""
authstate_core.gateway
----------------------
Retrying access to a DocumentStore.

Every operation runs inside ``execute_with_retry``: each attempt first makes
sure the store is connected, then runs the operation body. Attempts are
separated by a fixed delay (no backoff). Validation errors are never retried.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar
import asyncio, json, logging

from . import codec
from .errors import DecodingError, SessionValidationError, StoreConnectionError
from .logger import get_logger
from .storage.models import MAX_ID_LEN, StorageRecord
from .storage.provider import DocumentStore

T = TypeVar("T")


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class RetryingGateway:
    def __init__(
        self,
        store: DocumentStore,
        max_retries: int = 10,
        retry_request_delay_ms: float = 200,
        logger: Optional[logging.Logger] = None,
    ):
        if max_retries < 1:
            raise SessionValidationError(f"max_retries must be at least 1, got {max_retries}")
        self.store = store
        self.max_retries = max_retries
        self.delay_s = retry_request_delay_ms / 1000.0
        self.state = ConnectionState.DISCONNECTED
        self.log = logger or get_logger("authstate.gateway")
        self._connect_lock: Optional[asyncio.Lock] = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED and self.store.is_healthy()

    async def ensure_connection(self) -> None:
        if self.is_connected():
            return

        # bound to the loop of the first connect
        if self._connect_lock is None:
            self._connect_lock = asyncio.Lock()

        async with self._connect_lock:
            # callers queued behind a connect reuse its result
            if self.is_connected():
                return

            self.state = ConnectionState.CONNECTING
            self.log.debug(f"[STORE] connecting provider={self.store.name}")
            try:
                await self.store.connect()
            except Exception as err:
                self.state = ConnectionState.DISCONNECTED
                raise StoreConnectionError("Failed to connect to document store", err) from err

            self.state = ConnectionState.CONNECTED
            self.log.debug(f"[STORE] connected provider={self.store.name}")

    async def disconnect(self) -> None:
        if self.state is ConnectionState.DISCONNECTED:
            return
        try:
            await self.store.close()
        except Exception as err:
            raise StoreConnectionError("Failed to close document store", err) from err
        finally:
            self.state = ConnectionState.DISCONNECTED
        self.log.debug(f"[STORE] disconnected provider={self.store.name}")

    async def execute_with_retry(self, operation: Callable[[], Awaitable[T]], name: str) -> T:
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                await self.ensure_connection()
                return await operation()
            except SessionValidationError:
                raise
            except Exception as err:
                last_error = err
                self.log.warning(f"[RETRY] {name} attempt {attempt}/{self.max_retries} failed: {err}")
                if attempt < self.max_retries:
                    await asyncio.sleep(self.delay_s)

        raise StoreConnectionError(
            f"{name} failed after {self.max_retries} attempts",
            last_error,
            operation=name,
            attempts=self.max_retries,
        ) from last_error

    # ------------------------------------------------------------------
    # Point operations
    # ------------------------------------------------------------------
    async def read(self, key: str) -> Optional[StorageRecord]:
        async def op():
            record = await self.store.find_by_id(key)
            if record is not None:
                self.log.debug(f"[STORE] retrieved {key}")
            return record

        return await self.execute_with_retry(op, f"Query document {key}")

    async def read_value(self, key: str) -> Any:
        record = await self.read(key)
        if record is None or record.value is None or record.value == "":
            return None
        raw = record.value
        try:
            if not isinstance(raw, str):
                # rows written by older clients hold the object itself
                raw = json.dumps(raw)
            return codec.decode(raw)
        except SessionValidationError:
            raise
        except (TypeError, ValueError, RecursionError) as err:
            raise DecodingError(f"Stored value for {key} cannot be decoded", err) from err

    async def write(self, key: str, value: Any, session: str) -> None:
        _check_key(key)
        payload = codec.encode(value)

        async def op():
            await self.store.upsert(key, payload, session)
            self.log.debug(f"[STORE] stored {key}")

        await self.execute_with_retry(op, f"Write data {key}")

    async def delete(self, key: str) -> None:
        async def op():
            await self.store.delete_one(key)
            self.log.debug(f"[STORE] removed {key}")

        await self.execute_with_retry(op, f"Remove data {key}")

    async def delete_by_namespace(self, session: str, exclude_keys: Iterable[str] = ()) -> int:
        exclude = list(exclude_keys)

        async def op():
            count = await self.store.delete_many(session, exclude)
            self.log.debug(f"[STORE] cleared {count} records session={session} kept={len(exclude)}")
            return count

        return await self.execute_with_retry(op, "Clear session data")

    async def delete_all_by_namespace(self, session: str) -> int:
        async def op():
            count = await self.store.delete_many(session)
            self.log.debug(f"[STORE] removed {count} records session={session}")
            return count

        return await self.execute_with_retry(op, "Remove all session data")


def _check_key(key: str) -> None:
    if not key or len(key) > MAX_ID_LEN:
        raise SessionValidationError(f"Storage key must be 1-{MAX_ID_LEN} characters, got {len(key or '')}")
