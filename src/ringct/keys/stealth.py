"""
Wallet keys, stealth addresses and one-time outputs.

CryptoNote-style stealth addressing:

1. Sender picks a fresh ephemeral secret r and publishes R = r*G.
2. Both sides derive d = Hs(r*V) = Hs(v*R), V being the recipient's view key.
3. The one-time output key is P = d*G + S, S being the recipient's spend key.
4. Only the holder of the spend secret s can compute x = d + s with x*G = P.

The derivation d also masks the amount and seeds the commitment blinding
factor, so a recipient recovers everything needed to spend the output from
the output itself and the view secret.
"""

import logging

logger = logging.getLogger(__name__)
import hmac
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from ..amounts.commitments import Commitment, commit
from ..crypto.encoding import ByteReader, ByteWriter
from ..crypto.group import (
    GroupElement,
    Scalar,
    hash_to_scalar,
    mul_base,
    validate_public_key,
)
from ..crypto.hashing import (
    DOMAIN_AMOUNT,
    DOMAIN_COMMITMENT_MASK,
    DOMAIN_DERIVATION,
    Blake2bHasher,
)
from ..errors import DecodingError

ENCODED_AMOUNT_SIZE = 8
ADDRESS_SIZE = 64


@dataclass
class KeyPair:
    """A secret scalar and its public point."""

    secret: Scalar
    public: GroupElement

    def __iter__(self) -> Iterator:
        return iter((self.secret, self.public))

    def wipe(self) -> None:
        self.secret.wipe()

    def __enter__(self) -> "KeyPair":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"KeyPair(public={self.public!r})"


def generate_keypair() -> KeyPair:
    """Uniformly random secret with public = secret * G."""
    secret = Scalar.random()
    return KeyPair(secret=secret, public=mul_base(secret))


@dataclass(frozen=True)
class StealthAddress:
    """Published (view, spend) public keys of a wallet."""

    view_public: GroupElement
    spend_public: GroupElement

    def __post_init__(self) -> None:
        validate_public_key(self.view_public, "view_public")
        validate_public_key(self.spend_public, "spend_public")

    def to_bytes(self) -> bytes:
        return self.view_public.to_bytes() + self.spend_public.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "StealthAddress":
        """Decode and validate a 64-byte address."""
        if len(data) != ADDRESS_SIZE:
            raise DecodingError("Stealth address must be exactly 64 bytes", field="address")
        return cls(
            view_public=GroupElement.from_bytes(data[:32]),
            spend_public=GroupElement.from_bytes(data[32:]),
        )

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, hex_string: str) -> "StealthAddress":
        try:
            raw = bytes.fromhex(hex_string)
        except ValueError as e:
            raise DecodingError(f"Invalid hex address: {e}", field="address") from e
        return cls.from_bytes(raw)

    def __str__(self) -> str:
        return self.to_hex()


@dataclass
class WalletKeys:
    """View and spend key pairs of one wallet identity."""

    view: KeyPair
    spend: KeyPair

    @classmethod
    def generate(cls) -> "WalletKeys":
        return cls(view=generate_keypair(), spend=generate_keypair())

    @classmethod
    def from_spend_secret(cls, spend_secret: Scalar) -> "WalletKeys":
        """Deterministic wallet: the view secret is Hs(spend secret)."""
        view_secret = hash_to_scalar(spend_secret.to_bytes(), domain=DOMAIN_DERIVATION)
        return cls(
            view=KeyPair(view_secret, mul_base(view_secret)),
            spend=KeyPair(spend_secret.copy(), mul_base(spend_secret)),
        )

    @property
    def address(self) -> StealthAddress:
        return StealthAddress(view_public=self.view.public, spend_public=self.spend.public)

    def wipe(self) -> None:
        self.view.wipe()
        self.spend.wipe()

    def __enter__(self) -> "WalletKeys":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()


@dataclass(frozen=True)
class OneTimeOutput:
    """Per-payment destination: one-time key, ephemeral key, masked amount."""

    one_time_public_key: GroupElement
    ephemeral_public_key: GroupElement
    encoded_amount: bytes

    def __post_init__(self) -> None:
        if len(self.encoded_amount) != ENCODED_AMOUNT_SIZE:
            raise ValueError(f"encoded_amount must be {ENCODED_AMOUNT_SIZE} bytes")

    def write(self, writer: ByteWriter) -> None:
        writer.write_point(self.one_time_public_key)
        writer.write_point(self.ephemeral_public_key)
        writer.write_raw(self.encoded_amount)

    @classmethod
    def read(cls, reader: ByteReader) -> "OneTimeOutput":
        return cls(
            one_time_public_key=reader.read_point("one_time_public_key"),
            ephemeral_public_key=reader.read_point("ephemeral_public_key"),
            encoded_amount=reader.read_fixed_bytes(ENCODED_AMOUNT_SIZE, "encoded_amount"),
        )

    def to_bytes(self) -> bytes:
        writer = ByteWriter()
        self.write(writer)
        return writer.to_bytes()


@dataclass
class OwnedOutput:
    """An output recognised by a wallet, with its recovered opening."""

    output: OneTimeOutput
    amount: int
    blinding: Scalar
    commitment: Optional[Commitment] = None
    global_index: Optional[int] = None

    @property
    def public_key(self) -> GroupElement:
        return self.output.one_time_public_key


def derivation_from_shared(shared_point: GroupElement) -> Scalar:
    """d = Hs(shared point)."""
    return hash_to_scalar(shared_point.to_bytes(), domain=DOMAIN_DERIVATION)


def sender_derivation(ephemeral_secret: Scalar, address: StealthAddress) -> Scalar:
    return derivation_from_shared(address.view_public * ephemeral_secret)


def receiver_derivation(view_secret: Scalar, output: OneTimeOutput) -> Scalar:
    return derivation_from_shared(output.ephemeral_public_key * view_secret)


def _amount_mask(derivation: Scalar) -> bytes:
    return Blake2bHasher.hash_domain(DOMAIN_AMOUNT, derivation.to_bytes()).value[
        :ENCODED_AMOUNT_SIZE
    ]


def encode_amount(amount: int, derivation: Scalar) -> bytes:
    if not 0 <= amount < 1 << 64:
        raise ValueError("Amount must fit in 64 bits")
    raw = amount.to_bytes(ENCODED_AMOUNT_SIZE, byteorder="big")
    return bytes(a ^ b for a, b in zip(raw, _amount_mask(derivation)))


def decode_amount(encoded: bytes, derivation: Scalar) -> int:
    raw = bytes(a ^ b for a, b in zip(encoded, _amount_mask(derivation)))
    return int.from_bytes(raw, byteorder="big")


def commitment_mask(derivation: Scalar) -> Scalar:
    """Blinding factor of an output, recoverable by its recipient."""
    return hash_to_scalar(derivation.to_bytes(), domain=DOMAIN_COMMITMENT_MASK)


def derive_one_time_output(
    receiver_address: StealthAddress,
    amount: int,
    ephemeral_secret: Optional[Scalar] = None,
) -> Tuple[OneTimeOutput, Scalar]:
    """
    Create a one-time destination for a payment.

    Args:
        receiver_address: Recipient's stealth address
        amount: Amount to mask into the output
        ephemeral_secret: Ephemeral secret r; a fresh one is drawn when omitted.
            Supplying r makes the output deterministic and must never reuse r.

    Returns:
        (OneTimeOutput, ephemeral secret r)
    """
    validate_public_key(receiver_address.view_public, "view_public")
    validate_public_key(receiver_address.spend_public, "spend_public")

    r = ephemeral_secret if ephemeral_secret is not None else Scalar.random()
    derivation = sender_derivation(r, receiver_address)
    try:
        output = OneTimeOutput(
            one_time_public_key=mul_base(derivation) + receiver_address.spend_public,
            ephemeral_public_key=mul_base(r),
            encoded_amount=encode_amount(amount, derivation),
        )
    finally:
        derivation.wipe()
    return output, r


def is_mine(output: OneTimeOutput, address: StealthAddress, view_secret: Scalar) -> bool:
    """
    Check whether an output pays to ``address``.

    Recomputes Hs(v*R)*G + S and compares it with the output key.
    """
    if output.ephemeral_public_key.is_identity():
        return False
    with receiver_derivation(view_secret, output) as derivation:
        expected = mul_base(derivation) + address.spend_public
    return hmac.compare_digest(expected.to_bytes(), output.one_time_public_key.to_bytes())


def derive_spend_secret(
    output: OneTimeOutput, spend_secret: Scalar, view_secret: Scalar
) -> Scalar:
    """One-time secret x = Hs(v*R) + s, the key later used for ring signing."""
    with receiver_derivation(view_secret, output) as derivation:
        return derivation + spend_secret


def _candidate_parts(candidate) -> Tuple[OneTimeOutput, Optional[Commitment], Optional[int]]:
    if isinstance(candidate, OneTimeOutput):
        return candidate, None, None
    return (
        candidate.one_time_output,
        getattr(candidate, "commitment", None),
        getattr(candidate, "global_index", None),
    )


def scan_outputs(
    candidate_outputs: Iterable, wallet_keys: WalletKeys
) -> List[Tuple[OwnedOutput, Scalar]]:
    """
    Find the outputs owned by a wallet and recover their openings.

    Args:
        candidate_outputs: OneTimeOutput instances, or objects exposing
            ``one_time_output`` and optionally ``commitment`` and
            ``global_index`` (transaction outputs, indexed outputs)
        wallet_keys: The scanning wallet

    Returns:
        List of (owned output, one-time spend secret)
    """
    address = wallet_keys.address
    owned: List[Tuple[OwnedOutput, Scalar]] = []

    for candidate in candidate_outputs:
        output, output_commitment, global_index = _candidate_parts(candidate)
        if not is_mine(output, address, wallet_keys.view.secret):
            continue

        with receiver_derivation(wallet_keys.view.secret, output) as derivation:
            amount = decode_amount(output.encoded_amount, derivation)
            blinding = commitment_mask(derivation)

        if output_commitment is not None and commit(amount, blinding) != output_commitment:
            logger.warning(
                "Owned output %s does not open to its commitment; skipping",
                output.one_time_public_key.hex()[:16],
            )
            blinding.wipe()
            continue

        secret = derive_spend_secret(output, wallet_keys.spend.secret, wallet_keys.view.secret)
        owned.append(
            (
                OwnedOutput(
                    output=output,
                    amount=amount,
                    blinding=blinding,
                    commitment=output_commitment,
                    global_index=global_index,
                ),
                secret,
            )
        )

    logger.debug("Scan found %d owned outputs", len(owned))
    return owned
