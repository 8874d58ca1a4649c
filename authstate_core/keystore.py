"""
authstate_core.keystore
-----------------------
Signal key store over a RetryingGateway.

Reads and writes are deliberately asymmetric:

- ``get`` isolates failures per id. A broken or unreachable record maps to
  ``None`` and the remaining ids are still fetched.
- ``set`` stops at the first failed write or delete and re-raises. Updates
  already applied in that call stay applied; the caller reconciles.

Ids are processed one at a time so a large batch never fans out into
concurrent calls on the shared connection.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, Mapping, Optional, Union
import logging

from .errors import SessionManagerError
from .gateway import RetryingGateway
from .keys import KeyCategory, apply_hook, creds_key, resolve
from .logger import get_logger


class SignalKeyStore:
    def __init__(self, gateway: RetryingGateway, session: str, logger: Optional[logging.Logger] = None):
        self.gateway = gateway
        self.session = session
        self.log = logger or get_logger("authstate.keystore")

    async def get(self, category: Union[str, KeyCategory], ids: Iterable[str]) -> Dict[str, Any]:
        cat = KeyCategory.parse(category)
        data: Dict[str, Any] = {}
        for key_id in ids:
            try:
                value = await self.gateway.read_value(resolve(self.session, cat, key_id))
                data[key_id] = apply_hook(cat, value)
            except SessionManagerError as err:
                self.log.warning(f"[KEYS] failed to get {cat.value}-{key_id}: {err}")
                data[key_id] = None
        return data

    async def set(self, data: Mapping[Union[str, KeyCategory], Optional[Mapping[str, Any]]]) -> None:
        # reject unknown categories before touching the store
        batches = [(KeyCategory.parse(category), values) for category, values in data.items()]

        for cat, values in batches:
            if not values:
                continue
            for key_id, value in values.items():
                key = resolve(self.session, cat, key_id)
                try:
                    if value is not None:
                        await self.gateway.write(key, value, self.session)
                    else:
                        await self.gateway.delete(key)
                except SessionManagerError as err:
                    self.log.error(f"[KEYS] failed to set {cat.value}-{key_id}: {err}")
                    raise

    async def clear(self) -> None:
        """Remove every record of this session except the credentials."""
        await self.gateway.delete_by_namespace(self.session, [creds_key(self.session)])

    async def remove_all(self) -> None:
        """Remove every record of this session, credentials included."""
        await self.gateway.delete_all_by_namespace(self.session)
