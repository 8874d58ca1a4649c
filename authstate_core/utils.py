"""
authstate_core.utils
--------------------
Lightweight helpers for base64 handling, timestamps and random identifiers.
"""

from __future__ import annotations
import base64, os, time, uuid
from datetime import datetime, timezone


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


def b64d(s: str) -> bytes:
    # strict: rejects characters outside the base64 alphabet
    return base64.b64decode(s.encode("ascii"), validate=True)


def b64url(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode("ascii").rstrip("=")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_s() -> int:
    return int(time.time())


def random_bytes(n: int) -> bytes:
    return os.urandom(n)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()
