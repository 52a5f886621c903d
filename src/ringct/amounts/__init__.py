"""
Confidential amounts.

Pedersen commitments hide amounts while preserving additive balance; range
proofs show each hidden amount is a non-negative 64-bit value.
"""

from .commitments import (
    Commitment,
    balance_holds,
    commit,
    fee_commitment,
    random_blinding,
    sum_commitments,
)
from .range_proof import (
    BitRangeProof,
    BitRangeProofScheme,
    RangeProof,
    RangeProofScheme,
    prove_range,
    verify_range,
)

__all__ = [
    "Commitment",
    "commit",
    "random_blinding",
    "fee_commitment",
    "sum_commitments",
    "balance_holds",
    "RangeProof",
    "RangeProofScheme",
    "BitRangeProof",
    "BitRangeProofScheme",
    "prove_range",
    "verify_range",
]
