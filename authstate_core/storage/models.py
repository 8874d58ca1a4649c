# authstate_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

MAX_ID_LEN = 200
MAX_SESSION_LEN = 100


@dataclass
class StorageRecord:
    """
    The persisted unit behind every credential and key entry.

    ``id`` is the session-namespaced key and is unique per collection;
    ``session`` duplicates the owning session so namespace sweeps can use an
    index instead of a prefix scan.
    """
    id: str
    value: Any
    session: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
