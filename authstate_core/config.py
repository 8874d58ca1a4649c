# authstate_core/config.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import os

from .errors import SessionValidationError
from .keys import is_valid_collection_name, is_valid_session_id

DEFAULT_COLLECTION_NAME = "baileys-auth"
DEFAULT_RETRY_DELAY_MS = 200
DEFAULT_MAX_RETRIES = 10
PROVIDERS = ("memory", "sqlite", "mongo")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as err:
        raise SessionValidationError(f"{name} must be an integer, got {raw!r}", err) from err


@dataclass
class SessionConfig:
    """
    Settings for one logical session.

    ``store_options`` is handed to the storage provider untouched (for Mongo:
    client keyword arguments such as socket and server selection timeouts).
    ``debug`` only changes log verbosity.
    """
    session: str
    collection_name: str = DEFAULT_COLLECTION_NAME
    retry_request_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    debug: bool = False
    provider: str = "sqlite"
    sqlite_path: str = "db/authstate.db"
    mongo_uri: Optional[str] = None
    database_name: str = "baileys"
    store_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not is_valid_session_id(self.session):
            raise SessionValidationError("Valid session identifier is required")
        if not is_valid_collection_name(self.collection_name):
            raise SessionValidationError(f"Invalid collection name: {self.collection_name}")
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int) or self.max_retries < 1:
            raise SessionValidationError(f"max_retries must be a positive integer, got {self.max_retries!r}")
        if isinstance(self.retry_request_delay_ms, bool) or not isinstance(self.retry_request_delay_ms, (int, float)) \
                or self.retry_request_delay_ms < 0:
            raise SessionValidationError(
                f"retry_request_delay_ms must be a non-negative number, got {self.retry_request_delay_ms!r}"
            )
        if self.provider not in PROVIDERS:
            raise SessionValidationError(f"Unknown storage provider: {self.provider}")
        if self.provider == "mongo" and not self.mongo_uri:
            raise SessionValidationError("MongoDB URI is required for the mongo provider")
        if not isinstance(self.store_options, dict):
            raise SessionValidationError("store_options must be a mapping")

    @property
    def retry_delay_s(self) -> float:
        return self.retry_request_delay_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides: Any) -> "SessionConfig":
        values: Dict[str, Any] = {
            "session": os.getenv("AUTHSTATE_SESSION", ""),
            "collection_name": os.getenv("AUTHSTATE_COLLECTION", DEFAULT_COLLECTION_NAME),
            "retry_request_delay_ms": _env_int("AUTHSTATE_RETRY_DELAY_MS", DEFAULT_RETRY_DELAY_MS),
            "max_retries": _env_int("AUTHSTATE_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            "debug": _env_bool("AUTHSTATE_DEBUG"),
            "provider": os.getenv("AUTHSTATE_STORAGE_PROVIDER", "sqlite").lower(),
            "sqlite_path": os.getenv("AUTHSTATE_DB_PATH", "db/authstate.db"),
            "mongo_uri": os.getenv("AUTHSTATE_MONGO_URI"),
            "database_name": os.getenv("AUTHSTATE_DATABASE", "baileys"),
        }
        values.update(overrides)
        return cls(**values)
