"""
authstate_core
==============
Credential and Signal key persistence for multi-device messaging clients.

Provides:
- Session manager with a pluggable document store (SQLite default, MongoDB, memory)
- Signal key store with per-session namespacing and bounded retries
- Buffer-aware JSON codec and credential bootstrap
"""

from .config import SessionConfig
from .errors import DecodingError, SessionManagerError, SessionValidationError, StoreConnectionError
from .keys import KeyCategory
from .manager import AuthenticationState, AuthStateHandle, SessionManager, use_document_auth_state

__version__ = "1.0.0"

__all__ = [
    "SessionConfig",
    "SessionManager",
    "AuthenticationState",
    "AuthStateHandle",
    "use_document_auth_state",
    "KeyCategory",
    "SessionManagerError",
    "SessionValidationError",
    "DecodingError",
    "StoreConnectionError",
]
