"""
Canonical byte encoding.

Signer and verifier must hash byte-identical messages, so every structure in
the engine serializes through these two classes. Integers are fixed-width
big-endian, variable-length byte strings and lists carry a u32 length prefix,
points and scalars are fixed 32-byte fields.
"""

from typing import List

from ..errors import DecodingError
from .group import POINT_SIZE, SCALAR_SIZE, GroupElement, Scalar

MAX_LIST_LENGTH = 1 << 16
MAX_BYTES_LENGTH = 1 << 24


class ByteWriter:
    """Append-only canonical encoder."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def write_u8(self, value: int) -> "ByteWriter":
        self._buf += value.to_bytes(1, byteorder="big")
        return self

    def write_u32(self, value: int) -> "ByteWriter":
        self._buf += value.to_bytes(4, byteorder="big")
        return self

    def write_u64(self, value: int) -> "ByteWriter":
        self._buf += value.to_bytes(8, byteorder="big")
        return self

    def write_raw(self, data: bytes) -> "ByteWriter":
        self._buf += data
        return self

    def write_bytes(self, data: bytes) -> "ByteWriter":
        """Length-prefixed byte string."""
        self.write_u32(len(data))
        self._buf += data
        return self

    def write_point(self, point: GroupElement) -> "ByteWriter":
        self._buf += point.to_bytes()
        return self

    def write_scalar(self, scalar: Scalar) -> "ByteWriter":
        self._buf += scalar.to_bytes()
        return self

    def write_points(self, points: List[GroupElement]) -> "ByteWriter":
        self.write_u32(len(points))
        for point in points:
            self.write_point(point)
        return self

    def write_scalars(self, scalars: List[Scalar]) -> "ByteWriter":
        self.write_u32(len(scalars))
        for scalar in scalars:
            self.write_scalar(scalar)
        return self

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)


class ByteReader:
    """Strict decoder; every malformed read raises :class:`DecodingError`."""

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, size: int, what: str) -> bytes:
        if size < 0 or self._pos + size > len(self._data):
            raise DecodingError(
                f"Truncated input reading {what}: need {size} bytes, "
                f"{self.remaining} left",
                field=what,
            )
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def read_u8(self, what: str = "u8") -> int:
        return self._take(1, what)[0]

    def read_u32(self, what: str = "u32") -> int:
        return int.from_bytes(self._take(4, what), byteorder="big")

    def read_u64(self, what: str = "u64") -> int:
        return int.from_bytes(self._take(8, what), byteorder="big")

    def read_fixed_bytes(self, size: int, what: str = "bytes") -> bytes:
        return self._take(size, what)

    def read_bytes(self, what: str = "bytes") -> bytes:
        length = self.read_u32(what)
        if length > MAX_BYTES_LENGTH:
            raise DecodingError(f"{what} length {length} exceeds limit", field=what)
        return self._take(length, what)

    def read_length(self, what: str = "list") -> int:
        length = self.read_u32(what)
        if length > MAX_LIST_LENGTH:
            raise DecodingError(f"{what} length {length} exceeds limit", field=what)
        return length

    def read_point(self, what: str = "point", allow_identity: bool = False) -> GroupElement:
        raw = self._take(POINT_SIZE, what)
        try:
            return GroupElement.from_bytes(raw, allow_identity=allow_identity)
        except DecodingError as e:
            raise DecodingError(f"{what}: {e.message}", field=what, cause=e) from e

    def read_scalar(self, what: str = "scalar") -> Scalar:
        raw = self._take(SCALAR_SIZE, what)
        try:
            return Scalar.from_bytes(raw)
        except DecodingError as e:
            raise DecodingError(f"{what}: {e.message}", field=what, cause=e) from e

    def read_points(self, what: str = "points") -> List[GroupElement]:
        return [self.read_point(what) for _ in range(self.read_length(what))]

    def read_scalars(self, what: str = "scalars") -> List[Scalar]:
        return [self.read_scalar(what) for _ in range(self.read_length(what))]

    def expect_end(self) -> None:
        if self.remaining:
            raise DecodingError(f"{self.remaining} trailing bytes after structure")
