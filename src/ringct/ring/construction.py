"""
Key images and ring assembly.

A key image I = x*Hp(P) is a deterministic function of the one-time key pair
(x, P = x*G). Spending the same output twice yields the same I whatever ring
surrounds it, which is how double spends are detected without revealing
which ring member is real.
"""

import logging

logger = logging.getLogger(__name__)
import hmac
import secrets
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from ..amounts.commitments import Commitment
from ..crypto.encoding import ByteReader, ByteWriter
from ..crypto.group import GroupElement, Scalar, hp, mul_base, validate_public_key
from ..errors import BuildError, DecodingError


@dataclass(frozen=True)
class KeyImage:
    """Linking tag of a spent one-time key."""

    point: GroupElement

    def __post_init__(self) -> None:
        if self.point.is_identity():
            raise DecodingError("Key image must not be the identity", field="key_image")

    def to_bytes(self) -> bytes:
        return self.point.to_bytes()

    def hex(self) -> str:
        return self.point.hex()

    @classmethod
    def from_bytes(cls, data: bytes) -> "KeyImage":
        return cls(GroupElement.from_bytes(data))

    def write(self, writer: ByteWriter) -> None:
        writer.write_point(self.point)

    @classmethod
    def read(cls, reader: ByteReader) -> "KeyImage":
        return cls(reader.read_point("key_image"))

    def __repr__(self) -> str:
        return f"KeyImage('{self.point.hex()[:16]}...')"


def compute_key_image(secret: Scalar, public_key: Optional[GroupElement] = None) -> KeyImage:
    """
    I = x*Hp(P) for the one-time key pair (x, P).

    Args:
        secret: One-time secret x
        public_key: P, recomputed as x*G when omitted

    Returns:
        The key image
    """
    if secret.is_zero():
        raise ValueError("Cannot compute the key image of a zero secret")
    if public_key is None:
        public_key = mul_base(secret)
    return KeyImage(hp(public_key) * secret)


@dataclass(frozen=True)
class RingMember:
    """A ring slot: public key, plus global index and commitment when known."""

    public_key: GroupElement
    global_index: Optional[int] = None
    commitment: Optional[Commitment] = None


# Ring members may be given as RingMember, bare points, or any output record
# exposing ``public_key`` (and optionally ``global_index`` and ``commitment``).
MemberLike = Any


def as_ring_member(member: MemberLike) -> RingMember:
    """Normalise points, indexed outputs and owned outputs to ring members."""
    if isinstance(member, RingMember):
        return member
    if isinstance(member, GroupElement):
        return RingMember(member)
    public_key = getattr(member, "public_key", None)
    if not isinstance(public_key, GroupElement):
        raise TypeError(f"Cannot use {type(member).__name__} as a ring member")
    return RingMember(
        public_key,
        getattr(member, "global_index", None),
        getattr(member, "commitment", None),
    )


@dataclass
class Ring:
    """
    Ordered ring of public keys with the spender's key image.

    ``real_index`` is only known to the signer and never serialized.
    """

    members: List[RingMember]
    key_image: KeyImage
    real_index: Optional[int] = field(default=None, repr=False)

    @property
    def public_keys(self) -> List[GroupElement]:
        return [m.public_key for m in self.members]

    @property
    def member_ids(self) -> List[Optional[int]]:
        return [m.global_index for m in self.members]

    @property
    def commitments(self) -> List[Optional[Commitment]]:
        return [m.commitment for m in self.members]

    @property
    def size(self) -> int:
        return len(self.members)

    def __len__(self) -> int:
        return len(self.members)


def build_ring(
    real_output: MemberLike, real_secret: Scalar, decoys: Sequence[MemberLike]
) -> Ring:
    """
    Place the real output among its decoys at a uniformly random position.

    Args:
        real_output: Output being spent (point, indexed or owned output)
        real_secret: Its one-time secret x
        decoys: Decoy outputs; must not contain the real key or duplicates

    Returns:
        Ring with the key image computed and the real position recorded

    Raises:
        BuildError: If the secret does not match, or keys repeat
    """
    real = as_ring_member(real_output)
    validate_public_key(real.public_key, "real_output")
    if not hmac.compare_digest(mul_base(real_secret).to_bytes(), real.public_key.to_bytes()):
        raise BuildError("Secret does not match the real output's public key")

    decoy_members = [as_ring_member(d) for d in decoys]
    seen = {real.public_key.to_bytes()}
    for decoy in decoy_members:
        validate_public_key(decoy.public_key, "decoy")
        key = decoy.public_key.to_bytes()
        if key in seen:
            raise BuildError(f"Ring member {decoy.public_key.hex()[:16]} appears twice")
        seen.add(key)

    real_index = secrets.randbelow(len(decoy_members) + 1)
    members = list(decoy_members)
    members.insert(real_index, real)

    logger.debug("Built ring of size %d", len(members))
    return Ring(
        members=members,
        key_image=compute_key_image(real_secret, real.public_key),
        real_index=real_index,
    )
