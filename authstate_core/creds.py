"""
authstate_core.creds
--------------------
Credential bootstrap and shape validation.

``init_auth_creds`` is pure construction: no storage I/O happens here, and the
returned bundle is only persisted once the caller saves it.
"""

from __future__ import annotations
from typing import Any, Optional
import secrets

from .crypto import CryptoProvider, CurveCryptoProvider, create_signed_key_pair
from .errors import SessionValidationError
from .models import AccountSettings, AuthenticationCreds, KeyPair, SignedKeyPair
from .utils import b64e, b64url, new_uuid, random_bytes

REGISTRATION_ID_MASK = 0x3FFF  # 14 bits
ADV_SECRET_LEN = 32
IDENTITY_TOKEN_LEN = 20


def generate_registration_id() -> int:
    return int.from_bytes(secrets.token_bytes(2), "little") & REGISTRATION_ID_MASK


def init_auth_creds(provider: Optional[CryptoProvider] = None) -> AuthenticationCreds:
    provider = provider or CurveCryptoProvider()
    try:
        identity_key = provider.generate_key_pair()
        return AuthenticationCreds(
            noise_key=provider.generate_key_pair(),
            pairing_ephemeral_key_pair=provider.generate_key_pair(),
            signed_identity_key=identity_key,
            signed_pre_key=create_signed_key_pair(identity_key, 1, provider),
            registration_id=generate_registration_id(),
            adv_secret_key=b64e(random_bytes(ADV_SECRET_LEN)),
            processed_history_messages=[],
            next_pre_key_id=1,
            first_unuploaded_pre_key_id=1,
            account_sync_counter=0,
            account_settings=AccountSettings(unarchive_chats=False),
            device_id=b64url(new_uuid().bytes),
            phone_id=str(new_uuid()),
            identity_id=random_bytes(IDENTITY_TOKEN_LEN),
            backup_token=random_bytes(IDENTITY_TOKEN_LEN),
            registered=False,
            registration={},
        )
    except Exception as err:
        raise SessionValidationError("Failed to initialize authentication credentials", err) from err


def is_valid_auth_creds(creds: Any) -> bool:
    if isinstance(creds, dict):
        return bool(
            creds.get("signedIdentityKey")
            and creds.get("signedPreKey")
            and isinstance(creds.get("registrationId"), int)
            and creds.get("noiseKey")
            and creds.get("pairingEphemeralKeyPair")
            and isinstance(creds.get("advSecretKey"), str)
        )
    if isinstance(creds, AuthenticationCreds):
        return (
            isinstance(creds.signed_identity_key, KeyPair)
            and isinstance(creds.signed_pre_key, SignedKeyPair)
            and isinstance(creds.registration_id, int)
            and not isinstance(creds.registration_id, bool)
            and isinstance(creds.noise_key, KeyPair)
            and isinstance(creds.pairing_ephemeral_key_pair, KeyPair)
            and isinstance(creds.adv_secret_key, str)
        )
    return False
