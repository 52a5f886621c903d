"""
ringct: confidential ring transactions.

Sender anonymity through linkable ring signatures over decoy outputs,
receiver anonymity through one-time stealth addresses, and hidden amounts
through Pedersen commitments with range proofs.
"""

from .config import RingCTConfig
from .errors import (
    BuildError,
    DoubleSpend,
    ImbalancedTransaction,
    InsufficientDecoys,
    InvalidRangeProof,
    InvalidSignature,
    MalformedTransaction,
    RingCTError,
    VerifyError,
    VerifyFailure,
)
from .keys import OwnedOutput, StealthAddress, WalletKeys, scan_outputs
from .ring import InMemoryOutputIndex, KeyImage, compute_key_image
from .transaction import (
    Destination,
    InMemoryKeyImageSet,
    Ledger,
    RingCTTransaction,
    TransactionBuilder,
    TransactionVerifier,
    VerificationContext,
    build_transaction,
    verify_transaction,
)

__version__ = "0.1.0"

__all__ = [
    "RingCTConfig",
    # Keys
    "WalletKeys",
    "StealthAddress",
    "OwnedOutput",
    "scan_outputs",
    # Ring
    "KeyImage",
    "compute_key_image",
    "InMemoryOutputIndex",
    # Transactions
    "RingCTTransaction",
    "Destination",
    "TransactionBuilder",
    "build_transaction",
    "TransactionVerifier",
    "VerificationContext",
    "verify_transaction",
    "InMemoryKeyImageSet",
    "Ledger",
    # Errors
    "RingCTError",
    "BuildError",
    "VerifyError",
    "VerifyFailure",
    "InsufficientDecoys",
    "ImbalancedTransaction",
    "DoubleSpend",
    "MalformedTransaction",
    "InvalidSignature",
    "InvalidRangeProof",
]
