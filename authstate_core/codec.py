"""
authstate_core.codec
--------------------
JSON codec for key material.

Binary values are written as ``{"type": "Buffer", "data": "<base64>"}`` so the
records stay readable by Baileys-compatible stores, and are revived as
``bytes`` on the way back. ``normalize_timestamp`` folds the many shapes a sync
timestamp arrives in (decimal string, number, Long-like object) into ``int``.
"""

from __future__ import annotations
from typing import Any
import binascii, json, math

from .errors import DecodingError, SessionValidationError
from .utils import b64e, b64d

BUFFER_TYPE = "Buffer"


def _replace(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"type": BUFFER_TYPE, "data": b64e(bytes(value))}
    if isinstance(value, dict):
        # Node's Buffer.toJSON() shape: {"type": "Buffer", "data": [1, 2, 3]}
        if value.get("type") == BUFFER_TYPE and isinstance(value.get("data"), list):
            return {"type": BUFFER_TYPE, "data": b64e(bytes(value["data"]))}
        return {k: _replace(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_replace(v) for v in value]
    if hasattr(value, "to_dict"):
        return _replace(value.to_dict())
    return value


def _revive(obj: dict) -> Any:
    if obj.get("type") != BUFFER_TYPE or "data" not in obj:
        return obj
    data = obj["data"]
    if not isinstance(data, str):
        raise DecodingError(f"Buffer data must be a base64 string, got {type(data).__name__}")
    try:
        return b64d(data)
    except (binascii.Error, ValueError) as err:
        raise DecodingError("Failed to revive Buffer from base64", err) from err


def encode(value: Any) -> str:
    try:
        return json.dumps(_replace(value), separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise SessionValidationError(f"Value of type {type(value).__name__} is not serializable", err) from err


def decode(text: str) -> Any:
    try:
        return json.loads(text, object_hook=_revive)
    except json.JSONDecodeError as err:
        raise DecodingError("Stored value is not valid JSON", err) from err


def normalize_timestamp(value: Any) -> int:
    if isinstance(value, bool):
        raise SessionValidationError(f"Unsupported timestamp type: {type(value).__name__}")

    if isinstance(value, str):
        return _parse_int(value)

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise SessionValidationError(f"Timestamp must be finite, got {value!r}")
        return int(value)

    if value is None:
        raise SessionValidationError("Unsupported timestamp type: NoneType")

    # Long-like objects coming from protobuf decoders
    for accessor in ("to_number", "toNumber"):
        fn = getattr(value, accessor, None)
        if callable(fn):
            return normalize_timestamp(fn())

    if type(value).__str__ is not object.__str__:
        return _parse_int(str(value))

    raise SessionValidationError(f"Unsupported timestamp type: {type(value).__name__}")


def _parse_int(text: str) -> int:
    try:
        return int(text.strip(), 10)
    except ValueError as err:
        raise SessionValidationError(f"Invalid timestamp string: {text!r}", err) from err
