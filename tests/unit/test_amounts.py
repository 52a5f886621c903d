"""
Unit tests for Pedersen commitments and range proofs.
"""

import pytest

from ringct.amounts.commitments import (
    Commitment,
    balance_holds,
    commit,
    fee_commitment,
    random_blinding,
    sum_commitments,
)
from ringct.amounts.range_proof import (
    BitRangeProof,
    BitRangeProofScheme,
    prove_range,
    verify_range,
)
from ringct.crypto.group import PEDERSEN_H, Scalar, mul_base
from ringct.errors import DecodingError


class TestCommitments:
    """Test Pedersen commitments."""

    def test_commitment_structure(self):
        blinding = random_blinding()
        expected = mul_base(Scalar.from_int(100)) + PEDERSEN_H * blinding
        assert commit(100, blinding).point == expected

    def test_homomorphic_sum(self):
        """commit(100, b1) + commit(50, b2) == commit(150, b1 + b2)."""
        b1, b2 = random_blinding(), random_blinding()
        assert commit(100, b1) + commit(50, b2) == commit(150, b1 + b2)

    def test_difference(self):
        b1, b2 = random_blinding(), random_blinding()
        assert commit(100, b1) - commit(30, b2) == commit(70, b1 - b2)

    def test_hiding_with_distinct_blindings(self):
        assert commit(5, random_blinding()) != commit(5, random_blinding())

    def test_binding_to_value(self):
        blinding = random_blinding()
        assert commit(5, blinding) != commit(6, blinding)

    def test_fee_commitment_is_unblinded(self):
        assert fee_commitment(7).point == mul_base(Scalar.from_int(7))

    def test_zero_fee_commitment_is_identity(self):
        assert fee_commitment(0).point.is_identity()

    def test_sum_commitments(self):
        blindings = [random_blinding() for _ in range(3)]
        total = sum_commitments(commit(10, b) for b in blindings)
        assert total == commit(30, blindings[0] + blindings[1] + blindings[2])

    def test_encoding(self):
        commitment = commit(1, random_blinding())
        assert Commitment.from_bytes(commitment.to_bytes()) == commitment
        assert len(commitment.hex()) == 64

    def test_balance_holds(self):
        b1, b2 = random_blinding(), random_blinding()
        inputs = [commit(60, b1), commit(40, b2)]
        outputs = [commit(95, b1 + b2)]
        assert balance_holds(inputs, outputs, fee=5)
        assert not balance_holds(inputs, outputs, fee=4)

    def test_balance_requires_matching_blindings(self):
        inputs = [commit(100, random_blinding())]
        outputs = [commit(100, random_blinding())]
        assert not balance_holds(inputs, outputs, fee=0)


class TestBitRangeProof:
    """Test the bit-decomposition range proof."""

    def test_valid_proof(self):
        blinding = random_blinding()
        proof = prove_range(1000, blinding)
        assert proof.bits == 64
        assert verify_range(commit(1000, blinding), proof)

    def test_boundary_values(self):
        scheme = BitRangeProofScheme(bits=8)
        for value in (0, 1, 255):
            blinding = random_blinding()
            assert scheme.verify(commit(value, blinding), scheme.prove(value, blinding))

    def test_max_64_bit_value(self):
        blinding = random_blinding()
        value = (1 << 64) - 1
        assert verify_range(commit(value, blinding), prove_range(value, blinding))

    def test_value_of_two_to_the_64_fails(self):
        blinding = random_blinding()
        proof = prove_range(1 << 64, blinding)
        assert not verify_range(commit(1 << 64, blinding), proof)

    def test_negative_value_fails(self):
        """-1 wraps to l - 1 in the commitment and cannot be proven."""
        blinding = random_blinding()
        proof = prove_range(-1, blinding)
        assert not verify_range(commit(-1, blinding), proof)

    def test_proof_bound_to_commitment(self):
        blinding = random_blinding()
        proof = prove_range(10, blinding)
        assert not verify_range(commit(11, blinding), proof)
        assert not verify_range(commit(10, random_blinding()), proof)

    def test_tampered_response_fails(self):
        scheme = BitRangeProofScheme(bits=8)
        blinding = random_blinding()
        proof = scheme.prove(77, blinding)
        proof.responses_one[3] = proof.responses_one[3] + Scalar.one()
        assert not scheme.verify(commit(77, blinding), proof)

    def test_tampered_challenge_fails(self):
        scheme = BitRangeProofScheme(bits=8)
        blinding = random_blinding()
        proof = scheme.prove(77, blinding)
        proof.challenges[0] = proof.challenges[0] + Scalar.one()
        assert not scheme.verify(commit(77, blinding), proof)

    def test_swapped_bit_commitments_fail(self):
        scheme = BitRangeProofScheme(bits=8)
        blinding = random_blinding()
        proof = scheme.prove(77, blinding)
        proof.bit_commitments[0], proof.bit_commitments[1] = (
            proof.bit_commitments[1],
            proof.bit_commitments[0],
        )
        assert not scheme.verify(commit(77, blinding), proof)

    def test_wrong_width_rejected(self):
        blinding = random_blinding()
        proof = BitRangeProofScheme(bits=8).prove(5, blinding)
        assert not BitRangeProofScheme(bits=16).verify(commit(5, blinding), proof)

    def test_encoding(self):
        scheme = BitRangeProofScheme(bits=8)
        blinding = random_blinding()
        proof = scheme.prove(200, blinding)
        decoded = BitRangeProof.from_bytes(proof.to_bytes())
        assert decoded.bit_commitments == proof.bit_commitments
        assert scheme.verify(commit(200, blinding), decoded)

    def test_verify_encoded_proof(self):
        blinding = random_blinding()
        data = prove_range(9, blinding).to_bytes()
        assert verify_range(commit(9, blinding), data)
        assert not verify_range(commit(9, blinding), data[:-1])

    def test_decoding_rejects_oversized_width(self):
        with pytest.raises(DecodingError):
            BitRangeProof.from_bytes((65).to_bytes(4, byteorder="big"))

    def test_invalid_width(self):
        with pytest.raises(ValueError):
            BitRangeProofScheme(bits=0)
        with pytest.raises(ValueError):
            BitRangeProofScheme(bits=65)
