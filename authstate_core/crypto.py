"""
authstate_core.crypto
---------------------
Key generation and signing collaborator used by credential bootstrap.

- X25519: identity, noise, pairing and pre-key pairs (32-byte raw keys)
- XEdDSA: signatures made with a curve private key and checked against the
  matching curve public key, as Signal does for signed pre-keys
- Signal key formatting: 33-byte public keys carrying the version byte

The provider is injectable; anything exposing ``generate_key_pair`` and
``sign`` can replace the default.
"""

from __future__ import annotations
from typing import Optional, Protocol, Tuple, runtime_checkable
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import x25519
import xeddsa

from .errors import SessionValidationError
from .models import KeyPair, SignedKeyPair
from .utils import now_s, random_bytes

SIGNAL_KEY_VERSION_BYTE = 0x05
SIGNAL_PUB_KEY_LEN = 33
XEDDSA_NONCE_LEN = 64

# --------- X25519 (key pairs) ----------
def x25519_generate() -> Tuple[bytes, bytes]:
    sk = x25519.X25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def clamp_private(priv_raw: bytes) -> bytes:
    k = bytearray(priv_raw)
    k[0] &= 248
    k[31] &= 127
    k[31] |= 64
    return bytes(k)

# --------- XEdDSA (sign/verify) ----------
def xeddsa_sign(priv_raw: bytes, data: bytes) -> bytes:
    # sign bit forced to zero so verifiers can rebuild the Ed25519 key from the curve key alone
    priv = xeddsa.priv_force_sign(clamp_private(priv_raw), False)
    return bytes(xeddsa.ed25519_priv_sign(priv, data, random_bytes(XEDDSA_NONCE_LEN)))

def xeddsa_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    if len(pub_raw) == SIGNAL_PUB_KEY_LEN:
        pub_raw = pub_raw[1:]
    try:
        ed_pub = xeddsa.curve25519_pub_to_ed25519_pub(pub_raw, False)
        return bool(xeddsa.ed25519_verify(sig, ed_pub, data))
    except (ValueError, TypeError):
        return False

# --------- Signal key formatting ----------
def signal_pub_key(pub: bytes) -> bytes:
    if len(pub) == SIGNAL_PUB_KEY_LEN:
        return bytes(pub)
    return bytes([SIGNAL_KEY_VERSION_BYTE]) + bytes(pub)

@runtime_checkable
class CryptoProvider(Protocol):
    def generate_key_pair(self) -> KeyPair: ...
    def sign(self, private_key: bytes, data: bytes) -> bytes: ...

class CurveCryptoProvider:
    """Default provider: X25519 keys from ``cryptography``, XEdDSA signatures from ``xeddsa``."""

    def generate_key_pair(self) -> KeyPair:
        try:
            priv, pub = x25519_generate()
        except (UnsupportedAlgorithm, ValueError) as err:
            raise SessionValidationError("Failed to generate key pair", err) from err
        return KeyPair(public=pub, private=priv)

    def sign(self, private_key: bytes, data: bytes) -> bytes:
        try:
            return xeddsa_sign(private_key, data)
        except (ValueError, TypeError, IndexError) as err:
            raise SessionValidationError("Failed to sign data", err) from err

    def verify(self, public_key: bytes, signature: bytes, data: bytes) -> bool:
        return xeddsa_verify(public_key, signature, data)

def create_signed_key_pair(
    identity: KeyPair, key_id: int, provider: Optional[CryptoProvider] = None
) -> SignedKeyPair:
    provider = provider or CurveCryptoProvider()
    try:
        pre_key = provider.generate_key_pair()
        signature = provider.sign(identity.private, signal_pub_key(pre_key.public))
    except Exception as err:
        raise SessionValidationError(f"Failed to create signed key pair for keyId: {key_id}", err) from err

    return SignedKeyPair(key_pair=pre_key, signature=bytes(signature), key_id=key_id, timestamp_s=now_s())
