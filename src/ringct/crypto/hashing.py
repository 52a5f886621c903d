"""
Hash functions for ringct.

Blake2b-512 is the engine's single hash primitive. Every use is domain
separated: callers pass a tag from the ``DOMAIN_*`` constants, and multi-part
inputs are length-prefixed so that no two different part lists can collide
by concatenation.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Iterable, List, Union

from cryptography.hazmat.primitives import hashes

DIGEST_SIZE = 64

DOMAIN_HASH_TO_POINT = b"ringct/hash_to_point/v1"
DOMAIN_HASH_TO_SCALAR = b"ringct/hash_to_scalar/v1"
DOMAIN_PEDERSEN_H = b"ringct/pedersen_h/v1"
DOMAIN_KEY_IMAGE = b"ringct/key_image/v1"
DOMAIN_DERIVATION = b"ringct/derivation/v1"
DOMAIN_AMOUNT = b"ringct/amount/v1"
DOMAIN_COMMITMENT_MASK = b"ringct/commitment_mask/v1"
DOMAIN_RING_SIGNATURE = b"ringct/lsag/v1"
DOMAIN_RINGCT_SIGNATURE = b"ringct/mlsag/v1"
DOMAIN_RANGE_PROOF = b"ringct/range_proof/v1"
DOMAIN_PREFIX = b"ringct/tx_prefix/v1"
DOMAIN_TX = b"ringct/tx/v1"


@dataclass(frozen=True)
class Hash:
    """Immutable Blake2b-512 digest."""

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != DIGEST_SIZE:
            raise ValueError(f"Hash must be exactly {DIGEST_SIZE} bytes")

    def __str__(self) -> str:
        return self.value.hex()

    def __repr__(self) -> str:
        return f"Hash('{self.value.hex()[:16]}...')"

    @classmethod
    def from_hex(cls, hex_string: str) -> "Hash":
        """Create a Hash from a hexadecimal string."""
        return cls(bytes.fromhex(hex_string))

    def to_hex(self) -> str:
        """Convert hash to hexadecimal string."""
        return self.value.hex()

    def short(self) -> bytes:
        """First 32 bytes of the digest."""
        return self.value[:32]


def length_prefixed(parts: Iterable[Union[bytes, str]]) -> bytes:
    """Concatenate parts, each preceded by its 4-byte big-endian length."""
    out = bytearray()
    for part in parts:
        if isinstance(part, str):
            part = part.encode("utf-8")
        out += len(part).to_bytes(4, byteorder="big")
        out += part
    return bytes(out)


class Blake2bHasher:
    """Blake2b-512 hasher with domain-separation helpers."""

    @staticmethod
    def hash(data: Union[bytes, str]) -> Hash:
        """
        Hash data using Blake2b-512.

        Args:
            data: Data to hash (bytes or string)

        Returns:
            Hash object containing the 64-byte digest
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        hasher = hashes.Hash(hashes.BLAKE2b(DIGEST_SIZE))
        hasher.update(data)
        return Hash(hasher.finalize())

    @staticmethod
    def hash_domain(domain: bytes, *parts: Union[bytes, str]) -> Hash:
        """
        Hash a domain tag followed by length-prefixed parts.

        Args:
            domain: Domain separation tag
            parts: Items to hash

        Returns:
            Hash of the framed input
        """
        return Blake2bHasher.hash(length_prefixed([domain, *parts]))

    @staticmethod
    def hash_list(items: List[Union[bytes, str]]) -> Hash:
        """Hash a list of items with length framing."""
        return Blake2bHasher.hash(length_prefixed(items))
