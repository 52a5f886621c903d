"""
Range proofs for committed amounts.

Proves that a commitment C = v*G + b*H opens to 0 <= v < 2^n without revealing
v. The bundled scheme is a bit-decomposition proof:

- C is split into per-bit commitments C_j = bit_j*2^j*G + r_j*H with
  sum(r_j) = b, so sum(C_j) = C.
- For each C_j a two-member ring proof over the generator H shows that either
  C_j or C_j - 2^j*G is a multiple of H, i.e. that bit_j is 0 or 1, without
  saying which.

Proof size and verification time are linear in the number of bits. The
scheme sits behind :class:`RangeProofScheme` so a logarithmic-size proof
can replace it without touching callers.
"""

import logging

logger = logging.getLogger(__name__)
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Union

from ..crypto.encoding import ByteReader, ByteWriter
from ..crypto.group import (
    PEDERSEN_H,
    GroupElement,
    Scalar,
    hash_to_scalar,
    mul_base,
    sum_points,
)
from ..crypto.hashing import DOMAIN_RANGE_PROOF
from ..errors import DecodingError
from .commitments import Commitment, commit

DEFAULT_RANGE_BITS = 64


class RangeProof(ABC):
    """Opaque, serializable range proof."""

    @abstractmethod
    def write(self, writer: ByteWriter) -> None:
        pass

    def to_bytes(self) -> bytes:
        writer = ByteWriter()
        self.write(writer)
        return writer.to_bytes()


@dataclass
class BitRangeProof(RangeProof):
    """Per-bit commitments plus one two-member ring proof per bit."""

    bit_commitments: List[GroupElement]
    challenges: List[Scalar]
    responses_zero: List[Scalar]
    responses_one: List[Scalar]

    @property
    def bits(self) -> int:
        return len(self.bit_commitments)

    def write(self, writer: ByteWriter) -> None:
        writer.write_u32(self.bits)
        for i in range(self.bits):
            writer.write_point(self.bit_commitments[i])
            writer.write_scalar(self.challenges[i])
            writer.write_scalar(self.responses_zero[i])
            writer.write_scalar(self.responses_one[i])

    @classmethod
    def read(cls, reader: ByteReader) -> "BitRangeProof":
        count = reader.read_u32("range_proof_bits")
        if count > 64:
            raise DecodingError(f"Range proof claims {count} bits", field="range_proof")
        commitments, challenges, zeros, ones = [], [], [], []
        for _ in range(count):
            commitments.append(reader.read_point("bit_commitment"))
            challenges.append(reader.read_scalar("bit_challenge"))
            zeros.append(reader.read_scalar("bit_response"))
            ones.append(reader.read_scalar("bit_response"))
        return cls(commitments, challenges, zeros, ones)

    @classmethod
    def from_bytes(cls, data: bytes) -> "BitRangeProof":
        reader = ByteReader(data)
        proof = cls.read(reader)
        reader.expect_end()
        return proof


class RangeProofScheme(ABC):
    """Pluggable range-proof construction."""

    name: str = "abstract"

    @abstractmethod
    def prove(self, value: int, blinding: Scalar) -> RangeProof:
        """Prove that commit(value, blinding) opens to a value in range."""
        pass

    @abstractmethod
    def verify(self, commitment: Commitment, proof: RangeProof) -> bool:
        """Check a proof against a commitment; never raises on bad proofs."""
        pass

    @abstractmethod
    def read_proof(self, reader: ByteReader) -> RangeProof:
        """Decode a proof of this scheme."""
        pass


@lru_cache(maxsize=None)
def _power_of_two_point(exponent: int) -> GroupElement:
    return mul_base(Scalar.from_int(1 << exponent))


def _bit_challenge(
    commitment: Commitment, bit: int, bit_commitment: GroupElement, member: int, nonce_point: GroupElement
) -> Scalar:
    return hash_to_scalar(
        commitment.to_bytes(),
        bit.to_bytes(1, byteorder="big"),
        bit_commitment.to_bytes(),
        member.to_bytes(1, byteorder="big"),
        nonce_point.to_bytes(),
        domain=DOMAIN_RANGE_PROOF,
    )


class BitRangeProofScheme(RangeProofScheme):
    """Bit-decomposition range proof with per-bit ring proofs."""

    name = "bit-decomposition"

    def __init__(self, bits: int = DEFAULT_RANGE_BITS):
        if not 1 <= bits <= 64:
            raise ValueError("Range proof width must be between 1 and 64 bits")
        self.bits = bits

    def prove(self, value: int, blinding: Scalar) -> BitRangeProof:
        """
        Produce a range proof for commit(value, blinding).

        Values outside [0, 2^bits) are not rejected here: the proof is still
        produced and will simply fail verification, because only the low bits
        get decomposed and the bit commitments no longer sum to C. Callers
        that hold cleartext amounts check the range up front.
        """
        if not 0 <= value < 1 << self.bits:
            logger.warning("Proving a value outside the %d-bit range; proof will not verify", self.bits)
        value %= 1 << self.bits
        commitment = commit(value, blinding)

        bit_blindings = [Scalar.random() for _ in range(self.bits - 1)]
        partial = Scalar.zero()
        for r in bit_blindings:
            partial = partial + r
        bit_blindings.append(blinding - partial)
        partial.wipe()

        proof = BitRangeProof([], [], [], [])
        for j in range(self.bits):
            bit = (value >> j) & 1
            r_j = bit_blindings[j]
            c_j = PEDERSEN_H * r_j
            if bit:
                c_j = c_j + _power_of_two_point(j)
            keys = (c_j, c_j - _power_of_two_point(j))
            challenge, responses = self._sign_bit(commitment, j, keys, bit, r_j)
            proof.bit_commitments.append(c_j)
            proof.challenges.append(challenge)
            proof.responses_zero.append(responses[0])
            proof.responses_one.append(responses[1])
            r_j.wipe()

        return proof

    def _sign_bit(self, commitment, j, keys, real, secret):
        # Two-member ring over base H: member ``real`` knows secret with
        # keys[real] = secret*H. Returns (c_0, (s_0, s_1)).
        other = 1 - real
        responses = [None, None]
        with Scalar.random() as alpha:
            c_other = _bit_challenge(commitment, j, keys[0], real, PEDERSEN_H * alpha)
            responses[other] = Scalar.random()
            nonce_other = PEDERSEN_H * responses[other] + keys[other] * c_other
            c_real = _bit_challenge(commitment, j, keys[0], other, nonce_other)
            responses[real] = alpha - c_real * secret
        c_zero = c_real if real == 0 else c_other
        return c_zero, responses

    def verify(self, commitment: Commitment, proof: RangeProof) -> bool:
        if not isinstance(proof, BitRangeProof):
            logger.debug("Range proof of unexpected type %s", type(proof).__name__)
            return False
        if proof.bits != self.bits or not (
            len(proof.challenges) == len(proof.responses_zero) == len(proof.responses_one) == self.bits
        ):
            logger.debug("Range proof has %d bits, expected %d", proof.bits, self.bits)
            return False

        try:
            if sum_points(proof.bit_commitments) != commitment.point:
                logger.debug("Bit commitments do not sum to the output commitment")
                return False

            for j in range(self.bits):
                c_j = proof.bit_commitments[j]
                keys = (c_j, c_j - _power_of_two_point(j))
                c_zero = proof.challenges[j]
                nonce_zero = PEDERSEN_H * proof.responses_zero[j] + keys[0] * c_zero
                c_one = _bit_challenge(commitment, j, c_j, 0, nonce_zero)
                nonce_one = PEDERSEN_H * proof.responses_one[j] + keys[1] * c_one
                if _bit_challenge(commitment, j, c_j, 1, nonce_one) != c_zero:
                    logger.debug("Bit proof %d does not close", j)
                    return False
        except DecodingError as e:
            logger.debug("Range proof contains invalid points: %s", e.message)
            return False

        return True

    def read_proof(self, reader: ByteReader) -> BitRangeProof:
        return BitRangeProof.read(reader)


def prove_range(value: int, blinding: Scalar, bits: int = DEFAULT_RANGE_BITS) -> BitRangeProof:
    """Prove 0 <= value < 2^bits for commit(value, blinding)."""
    return BitRangeProofScheme(bits).prove(value, blinding)


def verify_range(
    commitment: Commitment, proof: Union[RangeProof, bytes], bits: int = DEFAULT_RANGE_BITS
) -> bool:
    """Verify a range proof; encoded proofs that fail to decode are rejected."""
    if isinstance(proof, (bytes, bytearray)):
        try:
            proof = BitRangeProof.from_bytes(proof)
        except DecodingError as e:
            logger.debug("Undecodable range proof: %s", e.message)
            return False
    return BitRangeProofScheme(bits).verify(commitment, proof)
