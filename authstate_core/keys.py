"""
authstate_core.keys
-------------------
Key categories and the namespace policy that maps (session, category, id) to a
single storage identifier. Several sessions can share one physical collection;
every identifier they write starts with their own session name.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union
import re

from .errors import SessionValidationError
from .models import AppStateSyncKeyData

SESSION_ID_RE = re.compile(r"[a-zA-Z0-9_-]{1,100}")
COLLECTION_NAME_RE = re.compile(r"[a-zA-Z0-9_-]{1,120}")
CREDS_SUFFIX = "creds"


class KeyCategory(str, Enum):
    SESSION = "session"
    PRE_KEY = "pre-key"
    SENDER_KEY = "sender-key"
    APP_STATE_SYNC_KEY = "app-state-sync-key"
    APP_STATE_SYNC_VERSION = "app-state-sync-version"
    SENDER_KEY_MEMORY = "sender-key-memory"

    @classmethod
    def parse(cls, value: Union[str, "KeyCategory"]) -> "KeyCategory":
        if isinstance(value, KeyCategory):
            return value
        try:
            return cls(value)
        except ValueError as err:
            raise SessionValidationError(f"Unknown key category: {value!r}", err) from err

    def __str__(self) -> str:
        return self.value


# Applied to a decoded value before it is handed back from get()
POST_DECODE_HOOKS: Dict[KeyCategory, Optional[Callable[[Any], Any]]] = {
    KeyCategory.SESSION: None,
    KeyCategory.PRE_KEY: None,
    KeyCategory.SENDER_KEY: None,
    KeyCategory.APP_STATE_SYNC_KEY: AppStateSyncKeyData.from_object,
    KeyCategory.APP_STATE_SYNC_VERSION: None,
    KeyCategory.SENDER_KEY_MEMORY: None,
}


def is_valid_session_id(session: Any) -> bool:
    return isinstance(session, str) and SESSION_ID_RE.fullmatch(session) is not None


def is_valid_collection_name(name: Any) -> bool:
    return (
        isinstance(name, str)
        and COLLECTION_NAME_RE.fullmatch(name) is not None
        and not name.startswith("system.")
    )


def resolve(session: str, category: Union[str, KeyCategory], key_id: str) -> str:
    return f"{session}-{KeyCategory.parse(category).value}-{key_id}"


def creds_key(session: str) -> str:
    return f"{session}-{CREDS_SUFFIX}"


def apply_hook(category: KeyCategory, value: Any) -> Any:
    hook = POST_DECODE_HOOKS.get(category)
    if hook is None or value is None:
        return value
    return hook(value)
