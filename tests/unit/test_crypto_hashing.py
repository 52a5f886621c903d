"""
Unit tests for Blake2b hashing and canonical encoding.
"""

import pytest

from ringct.crypto.encoding import ByteReader, ByteWriter
from ringct.crypto.group import BASE_POINT, CURVE_ORDER, GroupElement, Scalar
from ringct.crypto.hashing import (
    DOMAIN_HASH_TO_SCALAR,
    DOMAIN_PREFIX,
    Blake2bHasher,
    Hash,
    length_prefixed,
)
from ringct.errors import DecodingError


class TestHash:
    """Test the Hash class."""

    def test_hash_creation(self):
        """Test creating a hash from bytes."""
        data = b"\x00" * 64
        assert Hash(data).value == data

    def test_hash_invalid_length(self):
        """Test that invalid length raises ValueError."""
        with pytest.raises(ValueError, match="Hash must be exactly 64 bytes"):
            Hash(b"\x00" * 32)

    def test_hash_hex_round_trip(self):
        """Test hex conversion both ways."""
        hash_obj = Blake2bHasher.hash(b"data")
        assert Hash.from_hex(hash_obj.to_hex()) == hash_obj
        assert str(hash_obj) == hash_obj.to_hex()
        assert "Hash(" in repr(hash_obj)

    def test_short(self):
        """Test that short() is the first half of the digest."""
        hash_obj = Blake2bHasher.hash(b"data")
        assert hash_obj.short() == hash_obj.value[:32]


class TestBlake2bHasher:
    """Test the Blake2bHasher class."""

    def test_hash_is_deterministic(self):
        assert Blake2bHasher.hash(b"abc") == Blake2bHasher.hash(b"abc")
        assert Blake2bHasher.hash(b"abc") != Blake2bHasher.hash(b"abd")

    def test_hash_string_and_bytes_agree(self):
        assert Blake2bHasher.hash("hello") == Blake2bHasher.hash(b"hello")

    def test_known_vector(self):
        """Blake2b-512 of the empty string."""
        assert Blake2bHasher.hash(b"").to_hex().startswith("786a02f742015903")

    def test_domain_separation(self):
        """Test that the same parts under different domains differ."""
        assert Blake2bHasher.hash_domain(DOMAIN_PREFIX, b"x") != Blake2bHasher.hash_domain(
            DOMAIN_HASH_TO_SCALAR, b"x"
        )

    def test_length_framing_prevents_ambiguity(self):
        """Test that moving bytes across part boundaries changes the hash."""
        first = Blake2bHasher.hash_domain(DOMAIN_PREFIX, b"ab", b"c")
        second = Blake2bHasher.hash_domain(DOMAIN_PREFIX, b"a", b"bc")
        assert first != second

    def test_length_prefixed(self):
        assert length_prefixed([b"ab", "c"]) == b"\x00\x00\x00\x02ab\x00\x00\x00\x01c"

    def test_hash_list(self):
        assert Blake2bHasher.hash_list([b"a", b"b"]) == Blake2bHasher.hash(
            length_prefixed([b"a", b"b"])
        )


class TestByteWriterReader:
    """Test canonical encoding."""

    def test_integers_are_big_endian(self):
        writer = ByteWriter().write_u8(1).write_u32(2).write_u64(3)
        assert writer.to_bytes() == b"\x01" + b"\x00\x00\x00\x02" + b"\x00" * 7 + b"\x03"
        assert len(writer) == 13

    def test_round_trip_mixed_structure(self):
        scalar = Scalar.from_int(42)
        writer = ByteWriter()
        writer.write_u64(7).write_bytes(b"payload").write_point(BASE_POINT)
        writer.write_scalars([scalar, Scalar.one()])

        reader = ByteReader(writer.to_bytes())
        assert reader.read_u64() == 7
        assert reader.read_bytes() == b"payload"
        assert reader.read_point() == BASE_POINT
        assert reader.read_scalars() == [scalar, Scalar.one()]
        reader.expect_end()

    def test_truncated_input(self):
        reader = ByteReader(b"\x00\x00")
        with pytest.raises(DecodingError, match="Truncated"):
            reader.read_u32("count")

    def test_trailing_bytes(self):
        reader = ByteReader(b"\x01\x02")
        reader.read_u8()
        with pytest.raises(DecodingError, match="trailing"):
            reader.expect_end()

    def test_list_length_limit(self):
        reader = ByteReader(b"\xff\xff\xff\xff")
        with pytest.raises(DecodingError, match="exceeds limit"):
            reader.read_length("members")

    def test_invalid_point_field(self):
        reader = ByteReader(b"\xff" * 32)
        with pytest.raises(DecodingError) as exc_info:
            reader.read_point("ring_member")
        assert exc_info.value.field == "ring_member"

    def test_identity_point_rejected_unless_allowed(self):
        data = GroupElement.identity().to_bytes()
        with pytest.raises(DecodingError):
            ByteReader(data).read_point()
        assert ByteReader(data).read_point(allow_identity=True).is_identity()

    def test_non_canonical_scalar(self):
        reader = ByteReader(CURVE_ORDER.to_bytes(32, byteorder="little"))
        with pytest.raises(DecodingError):
            reader.read_scalar()
