# authstate_core/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .codec import normalize_timestamp
from .errors import SessionValidationError
from .utils import b64d


def _as_bytes(value: Any, name: str) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, list):
        return bytes(value)
    raise SessionValidationError(f"{name} must be binary, got {type(value).__name__}")


def _require(data: Dict[str, Any], key: str) -> Any:
    if not isinstance(data, dict) or data.get(key) is None:
        raise SessionValidationError(f"Missing required field: {key}")
    return data[key]


@dataclass(frozen=True)
class KeyPair:
    public: bytes
    private: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {"public": self.public, "private": self.private}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyPair":
        return cls(
            public=_as_bytes(_require(data, "public"), "public"),
            private=_as_bytes(_require(data, "private"), "private"),
        )


@dataclass(frozen=True)
class SignedKeyPair:
    key_pair: KeyPair
    signature: bytes
    key_id: int
    timestamp_s: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {"keyPair": self.key_pair.to_dict(), "signature": self.signature, "keyId": self.key_id}
        if self.timestamp_s is not None:
            d["timestampS"] = self.timestamp_s
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignedKeyPair":
        return cls(
            key_pair=KeyPair.from_dict(_require(data, "keyPair")),
            signature=_as_bytes(_require(data, "signature"), "signature"),
            key_id=int(_require(data, "keyId")),
            timestamp_s=data.get("timestampS"),
        )


@dataclass
class Fingerprint:
    raw_id: int = 0
    current_index: int = 0
    device_indexes: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rawId": self.raw_id,
            "currentIndex": self.current_index,
            "deviceIndexes": list(self.device_indexes),
        }


@dataclass
class AppStateSyncKeyData:
    """
    Key material used to decrypt app state patches.

    ``from_object`` accepts the loose shapes found in stored records and in
    protobuf-decoded messages and returns the canonical form.
    """
    key_data: bytes
    fingerprint: Fingerprint
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyData": self.key_data,
            "fingerprint": self.fingerprint.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_object(cls, obj: Any) -> "AppStateSyncKeyData":
        if isinstance(obj, AppStateSyncKeyData):
            obj = obj.to_dict()
        if not isinstance(obj, dict):
            raise SessionValidationError(f"Cannot build app state sync key from {type(obj).__name__}")

        try:
            fp = obj.get("fingerprint") or {}
            raw_id = fp.get("rawId")
            raw_id = 0 if raw_id is None else int(raw_id)
            current_index = fp.get("currentIndex")
            device_indexes = fp.get("deviceIndexes")
            fingerprint = Fingerprint(
                raw_id=raw_id,
                current_index=raw_id if current_index is None else int(current_index),
                device_indexes=list(device_indexes) if isinstance(device_indexes, list) else [],
            )

            key_data = obj.get("keyData")
            if key_data is None:
                key_bytes = b""
            elif isinstance(key_data, str):
                key_bytes = b64d(key_data)
            else:
                key_bytes = _as_bytes(key_data, "keyData")

            return cls(
                key_data=key_bytes,
                fingerprint=fingerprint,
                timestamp=normalize_timestamp(obj.get("timestamp")),
            )
        except SessionValidationError:
            raise
        except (TypeError, ValueError, AttributeError) as err:
            raise SessionValidationError("Failed to convert app state sync key", err) from err


@dataclass
class AccountSettings:
    unarchive_chats: bool = False
    default_disappearing_mode: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"unarchiveChats": self.unarchive_chats}
        if self.default_disappearing_mode is not None:
            d["defaultDisappearingMode"] = self.default_disappearing_mode
        return d

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AccountSettings":
        data = data or {}
        return cls(
            unarchive_chats=bool(data.get("unarchiveChats", False)),
            default_disappearing_mode=data.get("defaultDisappearingMode"),
        )


# (attribute, wire name) for fields persisted as-is
_PLAIN_FIELDS = (
    ("registration_id", "registrationId"),
    ("adv_secret_key", "advSecretKey"),
    ("next_pre_key_id", "nextPreKeyId"),
    ("first_unuploaded_pre_key_id", "firstUnuploadedPreKeyId"),
    ("account_sync_counter", "accountSyncCounter"),
    ("registered", "registered"),
    ("device_id", "deviceId"),
    ("phone_id", "phoneId"),
    ("identity_id", "identityId"),
    ("backup_token", "backupToken"),
    ("registration", "registration"),
    ("processed_history_messages", "processedHistoryMessages"),
    ("me", "me"),
    ("account", "account"),
    ("signal_identities", "signalIdentities"),
    ("my_app_state_key_id", "myAppStateKeyId"),
    ("last_account_sync_timestamp", "lastAccountSyncTimestamp"),
    ("platform", "platform"),
    ("pairing_code", "pairingCode"),
    ("last_prop_hash", "lastPropHash"),
    ("routing_info", "routingInfo"),
)

_KEY_PAIR_FIELDS = (
    ("signed_identity_key", "signedIdentityKey"),
    ("noise_key", "noiseKey"),
    ("pairing_ephemeral_key_pair", "pairingEphemeralKeyPair"),
)


@dataclass
class AuthenticationCreds:
    """
    Long-lived identity and registration material for one session.

    The four key fields are frozen objects and are never replaced after
    bootstrap; counters only move forward. Unknown persisted fields are kept in
    ``extra`` and written back unchanged.
    """
    signed_identity_key: KeyPair
    signed_pre_key: SignedKeyPair
    noise_key: KeyPair
    pairing_ephemeral_key_pair: KeyPair
    registration_id: int
    adv_secret_key: str
    device_id: str = ""
    phone_id: str = ""
    identity_id: bytes = b""
    backup_token: bytes = b""
    next_pre_key_id: int = 1
    first_unuploaded_pre_key_id: int = 1
    account_sync_counter: int = 0
    registered: bool = False
    registration: Dict[str, Any] = field(default_factory=dict)
    processed_history_messages: List[Any] = field(default_factory=list)
    account_settings: AccountSettings = field(default_factory=AccountSettings)
    me: Optional[Dict[str, Any]] = None
    account: Optional[Dict[str, Any]] = None
    signal_identities: Optional[List[Dict[str, Any]]] = None
    my_app_state_key_id: Optional[str] = None
    last_account_sync_timestamp: Optional[int] = None
    platform: Optional[str] = None
    pairing_code: Optional[str] = None
    last_prop_hash: Optional[str] = None
    routing_info: Optional[bytes] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = dict(self.extra)
        for attr, wire in _KEY_PAIR_FIELDS:
            d[wire] = getattr(self, attr).to_dict()
        d["signedPreKey"] = self.signed_pre_key.to_dict()
        d["accountSettings"] = self.account_settings.to_dict()
        for attr, wire in _PLAIN_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                d[wire] = value
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthenticationCreds":
        if not isinstance(data, dict):
            raise SessionValidationError(f"Credentials must be a mapping, got {type(data).__name__}")
        remaining = dict(data)
        kwargs: Dict[str, Any] = {}
        for attr, wire in _KEY_PAIR_FIELDS:
            kwargs[attr] = KeyPair.from_dict(_require(remaining, wire))
            remaining.pop(wire)
        kwargs["signed_pre_key"] = SignedKeyPair.from_dict(_require(remaining, "signedPreKey"))
        remaining.pop("signedPreKey")
        kwargs["account_settings"] = AccountSettings.from_dict(remaining.pop("accountSettings", None))
        for attr, wire in _PLAIN_FIELDS:
            if wire in remaining:
                value = remaining.pop(wire)
                if value is not None:
                    kwargs[attr] = value
        if "registration_id" not in kwargs or "adv_secret_key" not in kwargs:
            raise SessionValidationError("Credentials are missing registrationId or advSecretKey")
        return cls(extra=remaining, **kwargs)
