"""
Two-row MLSAG signatures binding each spend to the amount it carries.

Every ring slot i holds a one-time key P_i and that output's amount
commitment C_i. For an input with pseudo-output commitment C' the amount row
of slot i is D_i = C_i - C'. When C' commits to the same amount as the real
output, D_pi = z*H with z the real blinding minus the pseudo blinding, so the
real slot has known discrete logs in both rows (x over G, z over H). No other
slot does, and a pseudo commitment that does not carry a ring member's amount
cannot be signed for at all.

    L_i = s_i*G + c_i*P_i
    R_i = s_i*Hp(P_i) + c_i*I
    A_i = t_i*H + c_i*D_i
    c_{i+1} = Hs(message, ring, commitments, C', I, L_i, R_i, A_i)

Only the key row carries a key image. As with LSAG every challenge is
published and the verifier checks every link.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import List, Sequence

from ..amounts.commitments import Commitment
from ..crypto.encoding import ByteReader, ByteWriter
from ..crypto.group import (
    PEDERSEN_H,
    GroupElement,
    Scalar,
    hash_to_scalar,
    hp,
    mul_base,
    validate_public_key,
)
from ..crypto.hashing import DOMAIN_RINGCT_SIGNATURE
from ..errors import DecodingError
from .construction import KeyImage, Ring, compute_key_image


@dataclass
class MLSAGSignature:
    """Challenges, key-row and amount-row responses, and the key image."""

    challenges: List[Scalar]
    responses: List[Scalar]
    amount_responses: List[Scalar]
    key_image: KeyImage

    @property
    def size(self) -> int:
        return len(self.responses)

    def write(self, writer: ByteWriter) -> None:
        writer.write_u32(len(self.responses))
        for c, s, t in zip(self.challenges, self.responses, self.amount_responses):
            writer.write_scalar(c)
            writer.write_scalar(s)
            writer.write_scalar(t)
        self.key_image.write(writer)

    @classmethod
    def read(cls, reader: ByteReader) -> "MLSAGSignature":
        count = reader.read_length("ring_signature")
        challenges, responses, amount_responses = [], [], []
        for _ in range(count):
            challenges.append(reader.read_scalar("challenge"))
            responses.append(reader.read_scalar("response"))
            amount_responses.append(reader.read_scalar("amount_response"))
        return cls(challenges, responses, amount_responses, KeyImage.read(reader))

    def to_bytes(self) -> bytes:
        writer = ByteWriter()
        self.write(writer)
        return writer.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "MLSAGSignature":
        reader = ByteReader(data)
        signature = cls.read(reader)
        reader.expect_end()
        return signature


class MLSAGScheme:
    """Ring signature over (one-time key, amount commitment) pairs."""

    name = "mlsag"

    @staticmethod
    def _prefix(
        message: bytes,
        public_keys: Sequence[GroupElement],
        commitments: Sequence[Commitment],
        pseudo_commitment: Commitment,
        key_image: KeyImage,
    ) -> List[bytes]:
        return [
            message,
            b"".join(p.to_bytes() for p in public_keys),
            b"".join(c.to_bytes() for c in commitments),
            pseudo_commitment.to_bytes(),
            key_image.to_bytes(),
        ]

    @staticmethod
    def _challenge(
        prefix: List[bytes], left: GroupElement, right: GroupElement, amount: GroupElement
    ) -> Scalar:
        return hash_to_scalar(
            *prefix,
            left.to_bytes(),
            right.to_bytes(),
            amount.to_bytes(),
            domain=DOMAIN_RINGCT_SIGNATURE,
        )

    @staticmethod
    def _amount_keys(
        commitments: Sequence[Commitment], pseudo_commitment: Commitment
    ) -> List[GroupElement]:
        return [c.point - pseudo_commitment.point for c in commitments]

    def _check_amount_secret(self, amount_key: GroupElement, amount_secret: Scalar) -> None:
        if PEDERSEN_H * amount_secret != amount_key:
            raise ValueError("Pseudo commitment does not carry the real member's amount")

    def sign(
        self,
        message: bytes,
        ring: Ring,
        secret: Scalar,
        pseudo_commitment: Commitment,
        amount_secret: Scalar,
    ) -> MLSAGSignature:
        """
        Produce a two-row MLSAG signature.

        Args:
            message: Bytes being authorised (the transaction prefix hash)
            ring: Ring with ``real_index`` set and a commitment on every member
            secret: One-time secret of the real member
            pseudo_commitment: The input's pseudo-output commitment
            amount_secret: Real output blinding minus pseudo-output blinding

        Returns:
            MLSAGSignature with n challenges and 2n responses

        Raises:
            ValueError: If the ring is malformed or either secret does not
                match the real member
        """
        n = ring.size
        if n < 2:
            raise ValueError("Ring must contain at least 2 members")
        pi = ring.real_index
        if pi is None or not 0 <= pi < n:
            raise ValueError("Ring does not record the signer's position")
        commitments = ring.commitments
        if any(c is None for c in commitments):
            raise ValueError("Every ring member needs an amount commitment")

        public_keys = ring.public_keys
        if mul_base(secret) != public_keys[pi]:
            raise ValueError("Secret does not match the ring's real member")
        key_image = compute_key_image(secret, public_keys[pi])
        if key_image != ring.key_image:
            raise ValueError("Ring key image does not match the secret")
        amount_keys = self._amount_keys(commitments, pseudo_commitment)
        self._check_amount_secret(amount_keys[pi], amount_secret)

        generators = [hp(p) for p in public_keys]
        prefix = self._prefix(message, public_keys, commitments, pseudo_commitment, key_image)
        image = key_image.point

        challenges: List[Scalar] = [None] * n
        responses: List[Scalar] = [None] * n
        amount_responses: List[Scalar] = [None] * n

        with Scalar.random() as alpha, Scalar.random() as beta:
            challenges[(pi + 1) % n] = self._challenge(
                prefix, mul_base(alpha), generators[pi] * alpha, PEDERSEN_H * beta
            )
            for step in range(1, n):
                i = (pi + step) % n
                responses[i] = Scalar.random()
                amount_responses[i] = Scalar.random()
                c = challenges[i]
                left = mul_base(responses[i]) + public_keys[i] * c
                right = generators[i] * responses[i] + image * c
                amount = PEDERSEN_H * amount_responses[i] + amount_keys[i] * c
                challenges[(i + 1) % n] = self._challenge(prefix, left, right, amount)
            responses[pi] = alpha - challenges[pi] * secret
            amount_responses[pi] = beta - challenges[pi] * amount_secret

        return MLSAGSignature(
            challenges=challenges,
            responses=responses,
            amount_responses=amount_responses,
            key_image=key_image,
        )

    def verify(
        self,
        message: bytes,
        public_keys: Sequence[GroupElement],
        commitments: Sequence[Commitment],
        pseudo_commitment: Commitment,
        signature: MLSAGSignature,
    ) -> bool:
        """Check a signature; malformed input yields False, never an exception."""
        n = len(public_keys)
        if n < 2:
            logger.debug("Ring of size %d rejected", n)
            return False
        if len(commitments) != n:
            logger.debug("Ring has %d commitments for %d members", len(commitments), n)
            return False
        if (
            len(signature.challenges) != n
            or len(signature.responses) != n
            or len(signature.amount_responses) != n
        ):
            logger.debug("Signature size does not match ring size %d", n)
            return False

        try:
            for p in public_keys:
                validate_public_key(p, "ring_member")
            image = validate_public_key(signature.key_image.point, "key_image")

            amount_keys = self._amount_keys(commitments, pseudo_commitment)
            prefix = self._prefix(
                message, public_keys, commitments, pseudo_commitment, signature.key_image
            )
            for i in range(n):
                c = signature.challenges[i]
                s, t = signature.responses[i], signature.amount_responses[i]
                left = mul_base(s) + public_keys[i] * c
                right = hp(public_keys[i]) * s + image * c
                amount = PEDERSEN_H * t + amount_keys[i] * c
                expected = signature.challenges[(i + 1) % n]
                if self._challenge(prefix, left, right, amount) != expected:
                    logger.debug("Ring signature link %d does not verify", i)
                    return False
        except DecodingError as e:
            logger.debug("Ring signature rejected: %s", e.message)
            return False

        return True
