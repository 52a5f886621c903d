"""
Linkable spontaneous anonymous group (LSAG) signatures.

For a ring P_0..P_{n-1} where the signer knows x with P_pi = x*G and key image
I = x*Hp(P_pi):

    L_i = s_i*G + c_i*P_i
    R_i = s_i*Hp(P_i) + c_i*I
    c_{i+1} = Hs(message, ring, I, L_i, R_i)

The signer starts the chain at pi with a random nonce, fills every other slot
with random responses, and closes the loop by solving for s_pi. Every
challenge is published; the verifier recomputes each link, which is
equivalent to checking the loop closes and makes tampering with any single
value detectable.
"""

import logging

logger = logging.getLogger(__name__)
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence

from ..crypto.encoding import ByteReader, ByteWriter
from ..crypto.group import (
    GroupElement,
    Scalar,
    hash_to_scalar,
    hp,
    mul_base,
    validate_public_key,
)
from ..crypto.hashing import DOMAIN_RING_SIGNATURE
from ..errors import DecodingError
from .construction import KeyImage, Ring, compute_key_image


@dataclass
class RingSignature:
    """Per-member challenges and responses plus the key image."""

    challenges: List[Scalar]
    responses: List[Scalar]
    key_image: KeyImage

    @property
    def size(self) -> int:
        return len(self.responses)

    def write(self, writer: ByteWriter) -> None:
        writer.write_u32(len(self.responses))
        for c, s in zip(self.challenges, self.responses):
            writer.write_scalar(c)
            writer.write_scalar(s)
        self.key_image.write(writer)

    @classmethod
    def read(cls, reader: ByteReader) -> "RingSignature":
        count = reader.read_length("ring_signature")
        challenges, responses = [], []
        for _ in range(count):
            challenges.append(reader.read_scalar("challenge"))
            responses.append(reader.read_scalar("response"))
        return cls(challenges, responses, KeyImage.read(reader))

    def to_bytes(self) -> bytes:
        writer = ByteWriter()
        self.write(writer)
        return writer.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "RingSignature":
        reader = ByteReader(data)
        signature = cls.read(reader)
        reader.expect_end()
        return signature


class RingSignatureScheme(ABC):
    """Pluggable linkable ring signature."""

    name: str = "abstract"

    @abstractmethod
    def sign(self, message: bytes, ring: Ring, secret: Scalar) -> RingSignature:
        """Sign ``message`` as an anonymous member of ``ring``."""
        pass

    @abstractmethod
    def verify(
        self, message: bytes, public_keys: Sequence[GroupElement], signature: RingSignature
    ) -> bool:
        """Check a signature; malformed input yields False, never an exception."""
        pass


def link(first: RingSignature, second: RingSignature) -> bool:
    """Two valid signatures were produced with the same secret key."""
    return first.key_image == second.key_image


class LSAGScheme(RingSignatureScheme):
    """Back's LSAG over Ed25519 with Blake2b challenges."""

    name = "lsag"

    @staticmethod
    def _challenge(
        prefix: List[bytes], left: GroupElement, right: GroupElement
    ) -> Scalar:
        return hash_to_scalar(
            *prefix, left.to_bytes(), right.to_bytes(), domain=DOMAIN_RING_SIGNATURE
        )

    @staticmethod
    def _prefix(
        message: bytes, public_keys: Sequence[GroupElement], key_image: KeyImage
    ) -> List[bytes]:
        return [message, b"".join(p.to_bytes() for p in public_keys), key_image.to_bytes()]

    def sign(self, message: bytes, ring: Ring, secret: Scalar) -> RingSignature:
        """
        Produce an LSAG signature.

        Args:
            message: Bytes being authorised (the transaction prefix hash)
            ring: Ring with ``real_index`` set
            secret: One-time secret of the real member

        Returns:
            RingSignature with n challenges and n responses

        Raises:
            ValueError: If the ring is too small, the real index is unknown or
                the secret does not match the real member or key image
        """
        n = ring.size
        if n < 2:
            raise ValueError("Ring must contain at least 2 members")
        pi = ring.real_index
        if pi is None or not 0 <= pi < n:
            raise ValueError("Ring does not record the signer's position")

        public_keys = ring.public_keys
        if mul_base(secret) != public_keys[pi]:
            raise ValueError("Secret does not match the ring's real member")
        key_image = compute_key_image(secret, public_keys[pi])
        if key_image != ring.key_image:
            raise ValueError("Ring key image does not match the secret")

        generators = [hp(p) for p in public_keys]
        prefix = self._prefix(message, public_keys, key_image)
        image = key_image.point

        challenges: List[Scalar] = [None] * n
        responses: List[Scalar] = [None] * n

        with Scalar.random() as alpha:
            challenges[(pi + 1) % n] = self._challenge(
                prefix, mul_base(alpha), generators[pi] * alpha
            )
            for step in range(1, n):
                i = (pi + step) % n
                responses[i] = Scalar.random()
                left = mul_base(responses[i]) + public_keys[i] * challenges[i]
                right = generators[i] * responses[i] + image * challenges[i]
                challenges[(i + 1) % n] = self._challenge(prefix, left, right)
            responses[pi] = alpha - challenges[pi] * secret

        return RingSignature(challenges=challenges, responses=responses, key_image=key_image)

    def verify(
        self, message: bytes, public_keys: Sequence[GroupElement], signature: RingSignature
    ) -> bool:
        n = len(public_keys)
        if n < 2:
            logger.debug("Ring of size %d rejected", n)
            return False
        if len(signature.challenges) != n or len(signature.responses) != n:
            logger.debug("Signature size does not match ring size %d", n)
            return False

        try:
            for p in public_keys:
                validate_public_key(p, "ring_member")
            image = validate_public_key(signature.key_image.point, "key_image")

            prefix = self._prefix(message, public_keys, signature.key_image)
            for i in range(n):
                c, s = signature.challenges[i], signature.responses[i]
                left = mul_base(s) + public_keys[i] * c
                right = hp(public_keys[i]) * s + image * c
                if self._challenge(prefix, left, right) != signature.challenges[(i + 1) % n]:
                    logger.debug("Ring signature link %d does not verify", i)
                    return False
        except DecodingError as e:
            logger.debug("Ring signature rejected: %s", e.message)
            return False

        return True


def sign(message: bytes, ring: Ring, secret: Scalar) -> RingSignature:
    return LSAGScheme().sign(message, ring, secret)


def verify(message: bytes, public_keys: Sequence[GroupElement], signature: RingSignature) -> bool:
    return LSAGScheme().verify(message, public_keys, signature)
