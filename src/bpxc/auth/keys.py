"""Ed25519 key material handling for Backpack API keys.

Backpack hands out keys as base64 strings of the raw 32-byte seed (private)
and the raw 32-byte curve point (public). ``cryptography`` loads Ed25519 keys
from DER, so the raw bytes are wrapped in the fixed ASN.1 headers for a
PKCS8 private key and an SPKI public key before loading.

USAGE:
    keypair = KeyPair.from_base64(private_b64, public_b64)  # raises on mismatch
    signature = keypair.private.sign(b"message")
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from bpxc.errors import InvalidKeyPairError
from bpxc.logging import get_logger

logger = get_logger("auth.keys")

KEY_SIZE = 32

# DER headers for Ed25519 (RFC 8410)
PKCS8_ED25519_PREFIX = bytes.fromhex("302e020100300506032b657004220420")
SPKI_ED25519_PREFIX = bytes.fromhex("302a300506032b6570032100")


@dataclass(frozen=True)
class PublicKeyHandle:
    """Verify-capable Ed25519 public key."""

    raw: bytes
    key: Ed25519PublicKey

    def to_spki_der(self) -> bytes:
        """Export as DER SubjectPublicKeyInfo (the canonical comparison form)."""
        return self.key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def to_base64(self) -> str:
        """Raw 32-byte point, base64-encoded (the exchange's API key form)."""
        return base64.b64encode(self.raw).decode()

    def verify(self, signature: bytes, message: bytes) -> bool:
        """Check an Ed25519 signature over ``message``."""
        try:
            self.key.verify(signature, message)
        except InvalidSignature:
            return False
        return True


@dataclass(frozen=True)
class PrivateKeyHandle:
    """Sign-capable Ed25519 private key."""

    seed: bytes
    key: Ed25519PrivateKey

    def sign(self, message: bytes) -> bytes:
        """Pure Ed25519 signature (deterministic) over ``message``."""
        return self.key.sign(message)

    def __repr__(self) -> str:
        return "PrivateKeyHandle(seed=<redacted>)"


def _b64decode(value: str, what: str) -> bytes:
    # Padding is optional on input
    value = value.strip()
    value += "=" * (-len(value) % 4)
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyPairError(f"{what} is not valid base64") from e


def derive_private_key_handle(seed_b64: str) -> PrivateKeyHandle:
    """Build a private key handle from a base64 seed.

    Only the first 32 bytes of the decoded buffer are used, so 64-byte
    seed-plus-public encodings are accepted as well.

    Raises:
        InvalidKeyPairError: If the seed cannot be decoded or loaded
    """
    seed = _b64decode(seed_b64, "Private key")[:KEY_SIZE]
    if len(seed) != KEY_SIZE:
        raise InvalidKeyPairError(f"Private key must be at least {KEY_SIZE} bytes")

    try:
        key = serialization.load_der_private_key(PKCS8_ED25519_PREFIX + seed, password=None)
    except ValueError as e:
        raise InvalidKeyPairError("Private key could not be loaded as Ed25519") from e

    if not isinstance(key, Ed25519PrivateKey):
        raise InvalidKeyPairError("Private key is not an Ed25519 key")
    return PrivateKeyHandle(seed=seed, key=key)


def derive_public_key_handle(public_b64: str) -> PublicKeyHandle:
    """Build a public key handle from a base64 raw point.

    Raises:
        InvalidKeyPairError: If the key cannot be decoded or loaded
    """
    raw = _b64decode(public_b64, "Public key")
    if len(raw) != KEY_SIZE:
        raise InvalidKeyPairError(f"Public key must be exactly {KEY_SIZE} bytes, got {len(raw)}")

    try:
        key = serialization.load_der_public_key(SPKI_ED25519_PREFIX + raw)
    except ValueError as e:
        raise InvalidKeyPairError("Public key could not be loaded as Ed25519") from e

    if not isinstance(key, Ed25519PublicKey):
        raise InvalidKeyPairError("Public key is not an Ed25519 key")
    return PublicKeyHandle(raw=raw, key=key)


def public_key_handle_from(private: PrivateKeyHandle) -> PublicKeyHandle:
    """Derive the public key handle belonging to a private key handle."""
    public_key = private.key.public_key()
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return PublicKeyHandle(raw=raw, key=public_key)


@dataclass(frozen=True)
class KeyPair:
    """Validated private/public key pair.

    Attributes:
        private: Signing handle
        public: Verification handle for the supplied public key
        api_key: Public key exactly as supplied, sent as X-API-Key
    """

    private: PrivateKeyHandle
    public: PublicKeyHandle
    api_key: str

    @classmethod
    def from_base64(cls, private_b64: str, public_b64: str) -> KeyPair:
        """Load and cross-check a base64 key pair.

        Raises:
            InvalidKeyPairError: If either key is malformed or they do not match
        """
        private = derive_private_key_handle(private_b64)
        supplied = derive_public_key_handle(public_b64)
        derived = public_key_handle_from(private)

        if derived.to_spki_der() != supplied.to_spki_der():
            logger.debug("Public key does not match private key")
            raise InvalidKeyPairError("Invalid keypair: public key does not match private key")

        return cls(private=private, public=supplied, api_key=public_b64.strip())


def generate_keypair() -> tuple[str, str]:
    """Generate a fresh Ed25519 key pair.

    Returns:
        Tuple of (private seed base64, public key base64)
    """
    private_key = Ed25519PrivateKey.generate()
    seed = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return base64.b64encode(seed).decode(), base64.b64encode(public).decode()
