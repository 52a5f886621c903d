"""
Pedersen commitments to amounts.

C = v*G + b*H, where G is the Ed25519 base point and H is a hash-derived
generator with no known discrete log relative to G. Commitments add
homomorphically, which is what lets a verifier check that a transaction
balances without learning any amount.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Iterable, Union

from ..crypto.encoding import ByteReader, ByteWriter
from ..crypto.group import (
    PEDERSEN_H,
    GroupElement,
    Scalar,
    mul_base,
    sum_points,
)

Amount = Union[int, Scalar]


@dataclass(frozen=True)
class Commitment:
    """A Pedersen commitment (public)."""

    point: GroupElement

    def __add__(self, other: "Commitment") -> "Commitment":
        if not isinstance(other, Commitment):
            return NotImplemented
        return Commitment(self.point + other.point)

    def __sub__(self, other: "Commitment") -> "Commitment":
        if not isinstance(other, Commitment):
            return NotImplemented
        return Commitment(self.point - other.point)

    def to_bytes(self) -> bytes:
        return self.point.to_bytes()

    def hex(self) -> str:
        return self.point.hex()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Commitment":
        return cls(GroupElement.from_bytes(data))

    def write(self, writer: ByteWriter) -> None:
        writer.write_point(self.point)

    @classmethod
    def read(cls, reader: ByteReader, what: str = "commitment") -> "Commitment":
        return cls(reader.read_point(what))


def _as_scalar(value: Amount) -> Scalar:
    if isinstance(value, Scalar):
        return value
    return Scalar.from_int(value)


def commit(value: Amount, blinding: Scalar) -> Commitment:
    """
    Commit to a value.

    Args:
        value: Amount (integers are reduced modulo the group order, so -1
            wraps to l - 1)
        blinding: Blinding scalar; must be fresh for every hidden value

    Returns:
        Commitment v*G + b*H
    """
    return Commitment(mul_base(_as_scalar(value)) + PEDERSEN_H * blinding)


def random_blinding() -> Scalar:
    """Fresh uniformly random blinding factor."""
    return Scalar.random()


def fee_commitment(fee: int) -> Commitment:
    """Unblinded commitment to the fee, computable by any verifier."""
    return commit(fee, Scalar.zero())


def sum_commitments(commitments: Iterable[Commitment]) -> Commitment:
    return Commitment(sum_points(c.point for c in commitments))


def balance_holds(
    inputs: Iterable[Commitment], outputs: Iterable[Commitment], fee: int
) -> bool:
    """
    Check sum(inputs) == sum(outputs) + fee*G using group arithmetic only.

    Args:
        inputs: Input (pseudo-output) commitments
        outputs: Output commitments
        fee: Cleartext fee

    Returns:
        True if the commitments balance
    """
    lhs = sum_commitments(inputs)
    rhs = sum_commitments(outputs) + fee_commitment(fee)
    balanced = lhs == rhs
    if not balanced:
        logger.debug("Commitment balance check failed")
    return balanced
