"""
Transaction layer: data model, builder, verifier and key-image ledger.
"""

from .builder import Destination, TransactionBuilder, build_transaction, create_output
from .ledger import InMemoryKeyImageSet, KeyImageSet, Ledger, accept_transaction
from .model import RingCTTransaction, TxInput, TxOutput
from .verifier import TransactionVerifier, VerificationContext, verify_transaction

__all__ = [
    "RingCTTransaction",
    "TxInput",
    "TxOutput",
    "Destination",
    "TransactionBuilder",
    "build_transaction",
    "create_output",
    "TransactionVerifier",
    "VerificationContext",
    "verify_transaction",
    "KeyImageSet",
    "InMemoryKeyImageSet",
    "Ledger",
    "accept_transaction",
]
