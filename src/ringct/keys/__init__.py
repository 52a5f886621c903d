"""
Key and stealth-address layer.

Long-term view/spend key pairs, one-time output derivation and ownership
detection.
"""

from .stealth import (
    KeyPair,
    OneTimeOutput,
    OwnedOutput,
    StealthAddress,
    WalletKeys,
    commitment_mask,
    decode_amount,
    derive_one_time_output,
    derive_spend_secret,
    encode_amount,
    generate_keypair,
    is_mine,
    receiver_derivation,
    scan_outputs,
    sender_derivation,
)

__all__ = [
    "KeyPair",
    "WalletKeys",
    "StealthAddress",
    "OneTimeOutput",
    "OwnedOutput",
    "generate_keypair",
    "derive_one_time_output",
    "is_mine",
    "derive_spend_secret",
    "scan_outputs",
    "sender_derivation",
    "receiver_derivation",
    "encode_amount",
    "decode_amount",
    "commitment_mask",
]
