"""
Plain Ed25519 message signatures.

Ordinary, non-anonymous signatures for wallet identities (for example
authenticating a published stealth address). Spends never use these; they
are authorized by ring signatures.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from .hashing import Hash

SIGNATURE_SIZE = 64
PUBLIC_KEY_SIZE = 32


@dataclass(frozen=True)
class Ed25519Keypair:
    """Ed25519 signing key with its verifying key."""

    _key: Ed25519PrivateKey

    @classmethod
    def generate(cls) -> "Ed25519Keypair":
        """Generate a new random keypair from OS randomness."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Ed25519Keypair":
        """Restore a keypair from its 32-byte seed."""
        if len(seed) != 32:
            raise ValueError("Ed25519 seed must be exactly 32 bytes")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    def seed_bytes(self) -> bytes:
        return self._key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())

    def public_bytes(self) -> bytes:
        """Public key as 32 bytes."""
        return self._key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    def verifying_key(self) -> Ed25519PublicKey:
        return self._key.public_key()

    def sign(self, message: Union[bytes, str, Hash]) -> bytes:
        """Sign a message; Ed25519 signatures are deterministic."""
        return self._key.sign(_message_bytes(message))

    def __str__(self) -> str:
        return f"Ed25519Keypair('{self.public_bytes().hex()[:8]}...')"

    __repr__ = __str__


def _message_bytes(message: Union[bytes, str, Hash]) -> bytes:
    if isinstance(message, str):
        return message.encode("utf-8")
    if isinstance(message, Hash):
        return message.value
    return message


def verify_signature(
    public_key: bytes, message: Union[bytes, str, Hash], signature: bytes
) -> bool:
    """
    Verify an Ed25519 signature with raw key and signature bytes.

    Args:
        public_key: 32-byte verifying key
        message: Signed message
        signature: 64-byte signature

    Returns:
        True if the signature is valid, False for any malformed input
    """
    if len(public_key) != PUBLIC_KEY_SIZE or len(signature) != SIGNATURE_SIZE:
        return False
    try:
        key = Ed25519PublicKey.from_public_bytes(public_key)
        key.verify(signature, _message_bytes(message))
        return True
    except (InvalidSignature, ValueError):
        return False
