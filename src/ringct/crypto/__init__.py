"""
Cryptographic primitives for ringct.

This module provides:
- Scalar and group-element arithmetic (Ed25519 prime-order subgroup)
- Hash-to-scalar and hash-to-point
- Blake2b-512 hashing
- Canonical byte encoding
- Plain Ed25519 signatures
"""

from .encoding import ByteReader, ByteWriter
from .group import (
    BASE_POINT,
    CURVE_ORDER,
    PEDERSEN_H,
    GroupElement,
    Scalar,
    hash_to_point,
    hash_to_scalar,
    hp,
    mul_base,
    sum_points,
    sum_scalars,
    validate_public_key,
)
from .hashing import Blake2bHasher, Hash
from .signatures import Ed25519Keypair, verify_signature

__all__ = [
    # Group arithmetic
    "Scalar",
    "GroupElement",
    "CURVE_ORDER",
    "BASE_POINT",
    "PEDERSEN_H",
    "mul_base",
    "sum_points",
    "sum_scalars",
    "hash_to_scalar",
    "hash_to_point",
    "hp",
    "validate_public_key",
    # Hashing
    "Blake2bHasher",
    "Hash",
    # Encoding
    "ByteWriter",
    "ByteReader",
    # Signatures
    "Ed25519Keypair",
    "verify_signature",
]
