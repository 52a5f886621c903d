"""
Scalar and group-element arithmetic over the Ed25519 prime-order subgroup.

All arithmetic is delegated to libsodium through PyNaCl's bindings, which run
in constant time with respect to the scalar. Scalars live in a mutable buffer
so that secret material can be wiped once it is no longer needed; use them as
context managers where the lifetime is local:

    with Scalar.random() as alpha:
        ...

Group elements are public values. Anything decoded from untrusted bytes goes
through :meth:`GroupElement.from_bytes`, which rejects non-canonical
encodings, small-order points and points outside the prime-order subgroup.
"""

import logging

logger = logging.getLogger(__name__)
import hmac
import secrets
from dataclasses import dataclass
from typing import Iterable

import nacl.bindings
import nacl.exceptions

from ..errors import DecodingError
from .hashing import (
    DOMAIN_HASH_TO_POINT,
    DOMAIN_HASH_TO_SCALAR,
    DOMAIN_KEY_IMAGE,
    DOMAIN_PEDERSEN_H,
    Blake2bHasher,
)

# Order of the prime-order subgroup (l)
CURVE_ORDER = 2**252 + 27742317777372353535851937790883648493

SCALAR_SIZE = 32
POINT_SIZE = 32

_ZERO = bytes(SCALAR_SIZE)
_IDENTITY = b"\x01" + bytes(POINT_SIZE - 1)
_HASH_TO_POINT_ATTEMPTS = 256


class Scalar:
    """Element of Z/lZ held in a wipeable buffer (32 bytes, little-endian)."""

    __slots__ = ("_buf",)

    def __init__(self, data: bytes):
        if len(data) != SCALAR_SIZE:
            raise ValueError(f"Scalar must be exactly {SCALAR_SIZE} bytes")
        self._buf = bytearray(data)

    @classmethod
    def from_int(cls, value: int) -> "Scalar":
        """Create a scalar from an integer, reduced modulo the group order."""
        return cls((value % CURVE_ORDER).to_bytes(SCALAR_SIZE, byteorder="little"))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Scalar":
        """Decode a canonical scalar; anything >= l is rejected."""
        if not isinstance(data, (bytes, bytearray)) or len(data) != SCALAR_SIZE:
            raise DecodingError("Scalar must be exactly 32 bytes", field="scalar")
        if int.from_bytes(data, byteorder="little") >= CURVE_ORDER:
            raise DecodingError("Scalar is not reduced modulo the group order", field="scalar")
        return cls(bytes(data))

    @classmethod
    def from_wide(cls, data: bytes) -> "Scalar":
        """Reduce a 64-byte value modulo the group order."""
        return cls(nacl.bindings.crypto_core_ed25519_scalar_reduce(data))

    @classmethod
    def random(cls) -> "Scalar":
        """Uniformly random non-zero scalar from the OS CSPRNG."""
        while True:
            scalar = cls.from_wide(secrets.token_bytes(64))
            if not scalar.is_zero():
                return scalar

    @classmethod
    def zero(cls) -> "Scalar":
        return cls(_ZERO)

    @classmethod
    def one(cls) -> "Scalar":
        return cls.from_int(1)

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def to_int(self) -> int:
        return int.from_bytes(self._buf, byteorder="little")

    def hex(self) -> str:
        return self._buf.hex()

    def copy(self) -> "Scalar":
        return Scalar(bytes(self._buf))

    def is_zero(self) -> bool:
        return hmac.compare_digest(bytes(self._buf), _ZERO)

    def invert(self) -> "Scalar":
        """Multiplicative inverse modulo l."""
        if self.is_zero():
            raise ZeroDivisionError("Zero scalar has no inverse")
        return Scalar(nacl.bindings.crypto_core_ed25519_scalar_invert(self.to_bytes()))

    def wipe(self) -> None:
        """Overwrite the buffer with zeros in place."""
        self._buf[:] = _ZERO

    def __add__(self, other: "Scalar") -> "Scalar":
        if not isinstance(other, Scalar):
            return NotImplemented
        return Scalar(
            nacl.bindings.crypto_core_ed25519_scalar_add(self.to_bytes(), other.to_bytes())
        )

    def __sub__(self, other: "Scalar") -> "Scalar":
        if not isinstance(other, Scalar):
            return NotImplemented
        return Scalar(
            nacl.bindings.crypto_core_ed25519_scalar_sub(self.to_bytes(), other.to_bytes())
        )

    def __mul__(self, other):
        if not isinstance(other, Scalar):
            return NotImplemented
        return Scalar(
            nacl.bindings.crypto_core_ed25519_scalar_mul(self.to_bytes(), other.to_bytes())
        )

    def __neg__(self) -> "Scalar":
        return Scalar(nacl.bindings.crypto_core_ed25519_scalar_negate(self.to_bytes()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Scalar):
            return False
        return hmac.compare_digest(bytes(self._buf), bytes(other._buf))

    __hash__ = None

    def __enter__(self) -> "Scalar":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __del__(self) -> None:
        try:
            self.wipe()
        except AttributeError:
            pass

    def __repr__(self) -> str:
        return "Scalar(<redacted>)"


def sum_scalars(scalars: Iterable[Scalar]) -> Scalar:
    total = Scalar.zero()
    for scalar in scalars:
        total = total + scalar
    return total


@dataclass(frozen=True)
class GroupElement:
    """Point in the Ed25519 prime-order subgroup (compressed, 32 bytes)."""

    data: bytes

    def __post_init__(self) -> None:
        if len(self.data) != POINT_SIZE:
            raise ValueError(f"GroupElement must be exactly {POINT_SIZE} bytes")

    @classmethod
    def from_bytes(cls, data: bytes, allow_identity: bool = False) -> "GroupElement":
        """
        Decode and validate an untrusted point encoding.

        Args:
            data: 32-byte compressed encoding
            allow_identity: Accept the identity element

        Returns:
            The decoded group element

        Raises:
            DecodingError: If the encoding is not a prime-order subgroup member
        """
        if not isinstance(data, (bytes, bytearray)) or len(data) != POINT_SIZE:
            raise DecodingError("Point must be exactly 32 bytes", field="point")
        data = bytes(data)
        if data == _IDENTITY:
            if allow_identity:
                return cls(data)
            raise DecodingError("Identity element not allowed here", field="point")
        if not nacl.bindings.crypto_core_ed25519_is_valid_point(data):
            raise DecodingError("Invalid or small-order curve point", field="point")
        return cls(data)

    @classmethod
    def from_hex(cls, hex_string: str) -> "GroupElement":
        try:
            raw = bytes.fromhex(hex_string)
        except ValueError as e:
            raise DecodingError(f"Invalid hex point: {e}", field="point") from e
        return cls.from_bytes(raw)

    @classmethod
    def identity(cls) -> "GroupElement":
        return cls(_IDENTITY)

    def is_identity(self) -> bool:
        return self.data == _IDENTITY

    def to_bytes(self) -> bytes:
        return self.data

    def hex(self) -> str:
        return self.data.hex()

    def __add__(self, other: "GroupElement") -> "GroupElement":
        if not isinstance(other, GroupElement):
            return NotImplemented
        return GroupElement(nacl.bindings.crypto_core_ed25519_add(self.data, other.data))

    def __sub__(self, other: "GroupElement") -> "GroupElement":
        if not isinstance(other, GroupElement):
            return NotImplemented
        return GroupElement(nacl.bindings.crypto_core_ed25519_sub(self.data, other.data))

    def __neg__(self) -> "GroupElement":
        return GroupElement(nacl.bindings.crypto_core_ed25519_sub(_IDENTITY, self.data))

    def __mul__(self, scalar: Scalar) -> "GroupElement":
        if not isinstance(scalar, Scalar):
            return NotImplemented
        if scalar.is_zero() or self.is_identity():
            return GroupElement.identity()
        if self.data == BASE_POINT.data:
            return mul_base(scalar)
        try:
            return GroupElement(
                nacl.bindings.crypto_scalarmult_ed25519_noclamp(scalar.to_bytes(), self.data)
            )
        except nacl.exceptions.CryptoError as e:
            raise DecodingError(
                "Point is not in the prime-order subgroup", field="point", cause=e
            ) from e

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"GroupElement('{self.data.hex()[:16]}...')"


def mul_base(scalar: Scalar) -> GroupElement:
    """Compute scalar * G using the fixed-base routine."""
    if scalar.is_zero():
        return GroupElement.identity()
    return GroupElement(nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(scalar.to_bytes()))


def sum_points(points: Iterable[GroupElement]) -> GroupElement:
    total = GroupElement.identity()
    for point in points:
        total = total + point
    return total


def hash_to_scalar(*parts: bytes, domain: bytes = DOMAIN_HASH_TO_SCALAR) -> Scalar:
    """Hs: hash length-prefixed parts under a domain tag to a scalar."""
    digest = Blake2bHasher.hash_domain(domain, *parts)
    return Scalar.from_wide(digest.value)


def hash_to_point(data: bytes, domain: bytes = DOMAIN_HASH_TO_POINT) -> GroupElement:
    """
    Map bytes deterministically to a prime-order group element.

    Try-and-increment: each candidate encoding is multiplied by the cofactor
    (three doublings) and accepted once it lands in the prime-order subgroup.
    Inputs are public, so the variable iteration count leaks nothing.
    """
    for counter in range(_HASH_TO_POINT_ATTEMPTS):
        candidate = Blake2bHasher.hash_domain(domain, data, bytes([counter])).short()
        try:
            doubled = nacl.bindings.crypto_core_ed25519_add(candidate, candidate)
            doubled = nacl.bindings.crypto_core_ed25519_add(doubled, doubled)
            doubled = nacl.bindings.crypto_core_ed25519_add(doubled, doubled)
        except nacl.exceptions.CryptoError:
            continue
        if nacl.bindings.crypto_core_ed25519_is_valid_point(doubled):
            return GroupElement(doubled)

    raise DecodingError(f"Hash to point failed after {_HASH_TO_POINT_ATTEMPTS} attempts")


def hp(point: GroupElement) -> GroupElement:
    """Hp: the key-image generator for a public key."""
    return hash_to_point(point.to_bytes(), domain=DOMAIN_KEY_IMAGE)


def validate_public_key(point: GroupElement, name: str = "public_key") -> GroupElement:
    """Reject identity and re-validate subgroup membership of a spendable key."""
    if not isinstance(point, GroupElement):
        raise DecodingError(f"{name} must be a group element", field=name)
    try:
        return GroupElement.from_bytes(point.data)
    except DecodingError as e:
        raise DecodingError(f"Invalid {name}: {e.message}", field=name, cause=e) from e


BASE_POINT = GroupElement(nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(
    (1).to_bytes(SCALAR_SIZE, byteorder="little")
))
PEDERSEN_H = hash_to_point(DOMAIN_PEDERSEN_H)
