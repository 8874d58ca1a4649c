"""
authstate_core.manager
----------------------
Session manager: the surface the messaging client talks to.

    config = SessionConfig(session="bot-1", provider="sqlite")
    handle = await use_document_auth_state(config)
    # hand handle.state to the client, persist with handle.save_creds()

One manager serves one session; several managers may share a collection.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
import logging

from .config import SessionConfig
from .creds import init_auth_creds, is_valid_auth_creds
from .crypto import CryptoProvider, CurveCryptoProvider
from .errors import SessionValidationError
from .gateway import RetryingGateway
from .keys import creds_key
from .keystore import SignalKeyStore
from .logger import get_logger
from .models import AuthenticationCreds
from .storage import DocumentStore, StorageRecord, load_storage_provider


@dataclass
class AuthenticationState:
    creds: AuthenticationCreds
    keys: SignalKeyStore


class SessionManager:
    def __init__(self, store: DocumentStore, config: SessionConfig,
                 crypto: Optional[CryptoProvider] = None):
        if not isinstance(config, SessionConfig):
            raise SessionValidationError("config must be a SessionConfig")
        config.validate()
        if store is None:
            raise SessionValidationError("A document store is required")

        self.config = config
        self.session = config.session
        self.crypto = crypto or CurveCryptoProvider()
        self.log = get_logger(
            f"authstate.session.{config.session}",
            level=logging.DEBUG if config.debug else logging.INFO,
        )
        self.gateway = RetryingGateway(
            store,
            max_retries=config.max_retries,
            retry_request_delay_ms=config.retry_request_delay_ms,
            logger=self.log,
        )
        self.keys = SignalKeyStore(self.gateway, config.session, self.log)
        self.log.debug(f"[SESSION] initialized session={config.session} provider={store.name}")

    async def get_auth_state(self) -> AuthenticationState:
        raw = await self.gateway.read_value(creds_key(self.session))
        if raw:
            creds = AuthenticationCreds.from_dict(raw)
        else:
            self.log.info(f"[SESSION] no stored credentials for {self.session}, bootstrapping")
            creds = init_auth_creds(self.crypto)
        return AuthenticationState(creds=creds, keys=self.keys)

    async def save_credentials(self, creds: Union[AuthenticationCreds, Dict[str, Any]]) -> None:
        if not is_valid_auth_creds(creds):
            raise SessionValidationError("Invalid authentication credentials provided")
        await self.gateway.write(creds_key(self.session), creds, self.session)

    async def delete_credentials(self) -> None:
        await self.gateway.delete(creds_key(self.session))

    async def clear_session_data(self) -> None:
        await self.keys.clear()
        self.log.debug(f"[SESSION] cleared session data for {self.session}")

    async def remove_all_session_data(self) -> None:
        await self.keys.remove_all()
        self.log.debug(f"[SESSION] removed all data for {self.session}")

    async def query(self, doc_id: str) -> Optional[StorageRecord]:
        return await self.gateway.read(f"{self.session}-{doc_id}")

    async def disconnect(self) -> None:
        await self.gateway.disconnect()


class AuthStateHandle:
    """Bundle of the loaded state and the calls a client needs around it."""

    def __init__(self, manager: SessionManager, state: AuthenticationState):
        self.manager = manager
        self.state = state

    async def save_creds(self) -> None:
        await self.manager.save_credentials(self.state.creds)

    async def clear(self) -> None:
        await self.manager.clear_session_data()

    async def remove_creds(self) -> None:
        await self.manager.remove_all_session_data()

    async def query(self, doc_id: str) -> Optional[StorageRecord]:
        return await self.manager.query(doc_id)

    async def disconnect(self) -> None:
        await self.manager.disconnect()


async def use_document_auth_state(
    config: SessionConfig,
    store: Optional[DocumentStore] = None,
    crypto: Optional[CryptoProvider] = None,
) -> AuthStateHandle:
    manager = SessionManager(store or load_storage_provider(config), config, crypto)
    state = await manager.get_auth_state()
    return AuthStateHandle(manager, state)
