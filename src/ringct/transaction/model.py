"""
Confidential transaction data model and wire encoding.

A transaction is split into a prefix (everything except the ring signatures)
and the signatures over the prefix hash. Signer and verifier both derive the
signed message from :meth:`RingCTTransaction.prefix_bytes`, so the encoding
here is the single source of truth for what gets signed.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass, field
from typing import List, Optional

from ..amounts.commitments import Commitment
from ..amounts.range_proof import BitRangeProofScheme, RangeProof, RangeProofScheme
from ..crypto.encoding import ByteReader, ByteWriter
from ..crypto.group import GroupElement
from ..crypto.hashing import DOMAIN_PREFIX, DOMAIN_TX, Blake2bHasher, Hash
from ..errors import DecodingError
from ..keys.stealth import OneTimeOutput
from ..ring.construction import KeyImage
from ..ring.mlsag import MLSAGSignature


@dataclass
class TxInput:
    """
    A spend: the ring it hides in and its pseudo-output commitment.

    ``member_commitments[i]`` is the amount commitment of ring member i and is
    covered, together with the pseudo commitment, by the input's signature.
    """

    ring_members: List[GroupElement]
    member_ids: List[int]
    member_commitments: List[Commitment]
    pseudo_commitment: Commitment

    def __post_init__(self) -> None:
        if self.member_ids and len(self.member_ids) != len(self.ring_members):
            raise ValueError("member_ids must be empty or match the ring size")
        if any(i is None for i in self.member_ids):
            raise ValueError("Member ids must be all known or omitted entirely")
        if any(i < 0 for i in self.member_ids):
            raise ValueError("Member ids must be non-negative")
        if len(self.member_commitments) != len(self.ring_members) or any(
            c is None for c in self.member_commitments
        ):
            raise ValueError("Every ring member needs an amount commitment")

    @property
    def ring_size(self) -> int:
        return len(self.ring_members)

    def write(self, writer: ByteWriter) -> None:
        writer.write_points(self.ring_members)
        writer.write_u32(len(self.member_ids))
        for member_id in self.member_ids:
            writer.write_u64(member_id)
        writer.write_points([c.point for c in self.member_commitments])
        self.pseudo_commitment.write(writer)

    @classmethod
    def read(cls, reader: ByteReader) -> "TxInput":
        ring_members = reader.read_points("ring_members")
        id_count = reader.read_length("member_ids")
        member_ids = [reader.read_u64("member_id") for _ in range(id_count)]
        member_commitments = [
            Commitment(p) for p in reader.read_points("member_commitments")
        ]
        pseudo = Commitment.read(reader, "pseudo_commitment")
        if member_ids and len(member_ids) != len(ring_members):
            raise DecodingError("member_ids do not match ring size", field="member_ids")
        if len(member_commitments) != len(ring_members):
            raise DecodingError(
                "member_commitments do not match ring size", field="member_commitments"
            )
        return cls(ring_members, member_ids, member_commitments, pseudo)


@dataclass
class TxOutput:
    """A payment: one-time destination, amount commitment and range proof."""

    one_time_output: OneTimeOutput
    commitment: Commitment
    range_proof: RangeProof

    @property
    def public_key(self) -> GroupElement:
        return self.one_time_output.one_time_public_key

    def write(self, writer: ByteWriter) -> None:
        self.one_time_output.write(writer)
        self.commitment.write(writer)
        writer.write_bytes(self.range_proof.to_bytes())

    @classmethod
    def read(cls, reader: ByteReader, range_scheme: RangeProofScheme) -> "TxOutput":
        one_time_output = OneTimeOutput.read(reader)
        commitment = Commitment.read(reader, "output_commitment")
        proof_reader = ByteReader(reader.read_bytes("range_proof"))
        proof = range_scheme.read_proof(proof_reader)
        proof_reader.expect_end()
        return cls(one_time_output, commitment, proof)


@dataclass
class RingCTTransaction:
    """Inputs, outputs, cleartext fee and one ring signature per input."""

    version: int
    inputs: List[TxInput]
    outputs: List[TxOutput]
    fee: int
    ring_signatures: List[MLSAGSignature] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not 0 <= self.version <= 255:
            raise ValueError("Version must fit in one byte")
        if not 0 <= self.fee < 1 << 64:
            raise ValueError("Fee must be a 64-bit unsigned integer")

    def write_prefix(self, writer: ByteWriter) -> None:
        writer.write_u8(self.version)
        writer.write_u64(self.fee)
        writer.write_u32(len(self.inputs))
        for tx_input in self.inputs:
            tx_input.write(writer)
        writer.write_u32(len(self.outputs))
        for tx_output in self.outputs:
            tx_output.write(writer)

    def prefix_bytes(self) -> bytes:
        writer = ByteWriter()
        self.write_prefix(writer)
        return writer.to_bytes()

    def prefix_hash(self) -> Hash:
        """Hash of the prefix; the message every ring signature covers."""
        return Blake2bHasher.hash_domain(DOMAIN_PREFIX, self.prefix_bytes())

    @property
    def message(self) -> bytes:
        return self.prefix_hash().value

    def to_bytes(self) -> bytes:
        writer = ByteWriter()
        self.write_prefix(writer)
        writer.write_u32(len(self.ring_signatures))
        for signature in self.ring_signatures:
            signature.write(writer)
        return writer.to_bytes()

    @classmethod
    def from_bytes(
        cls, data: bytes, range_scheme: Optional[RangeProofScheme] = None
    ) -> "RingCTTransaction":
        """
        Decode a transaction.

        Every point is checked for subgroup membership and every scalar for
        canonical form while decoding.

        Raises:
            DecodingError: On any malformed or trailing data
        """
        range_scheme = range_scheme or BitRangeProofScheme()
        reader = ByteReader(data)
        version = reader.read_u8("version")
        fee = reader.read_u64("fee")
        inputs = [TxInput.read(reader) for _ in range(reader.read_length("inputs"))]
        outputs = [
            TxOutput.read(reader, range_scheme) for _ in range(reader.read_length("outputs"))
        ]
        signatures = [
            MLSAGSignature.read(reader) for _ in range(reader.read_length("ring_signatures"))
        ]
        reader.expect_end()
        return cls(version, inputs, outputs, fee, signatures)

    def tx_hash(self) -> Hash:
        return Blake2bHasher.hash_domain(DOMAIN_TX, self.to_bytes())

    @property
    def key_images(self) -> List[KeyImage]:
        return [s.key_image for s in self.ring_signatures]

    @property
    def pseudo_commitments(self) -> List[Commitment]:
        return [i.pseudo_commitment for i in self.inputs]

    @property
    def output_commitments(self) -> List[Commitment]:
        return [o.commitment for o in self.outputs]

    def __str__(self) -> str:
        return (
            f"RingCTTransaction({self.tx_hash().to_hex()[:16]}..., "
            f"{len(self.inputs)} in, {len(self.outputs)} out, fee={self.fee})"
        )
