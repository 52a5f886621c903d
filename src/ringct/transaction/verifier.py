"""
Transaction verification.

Checks run in a fixed order and stop at the first failure:

1. Structure: version, input/output counts, ring sizes, signature count,
   no repeated ring member, no repeated key image within the transaction.
2. Ring members and their amount commitments match the output index (when
   one is supplied).
3. Every MLSAG verifies over the prefix hash. Its amount row ties each
   pseudo-output commitment to the amount of one ring member.
4. Every output range proof verifies.
5. Pseudo-output commitments equal output commitments plus fee*G.
6. No key image is already in the ledger's key-image set (when supplied).

Verification never mutates shared state, so many transactions can be checked
concurrently; :meth:`TransactionVerifier.verify_many` fans out over a thread
pool.
"""

import logging

logger = logging.getLogger(__name__)
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..amounts.commitments import balance_holds
from ..amounts.range_proof import BitRangeProofScheme, RangeProofScheme
from ..config import RingCTConfig
from ..errors import (
    DoubleSpend,
    ImbalancedTransaction,
    InvalidRangeProof,
    InvalidSignature,
    MalformedTransaction,
    VerifyError,
)
from ..ring.decoys import OutputIndex
from ..ring.mlsag import MLSAGScheme
from .ledger import KeyImageSet
from .model import RingCTTransaction


@dataclass
class VerificationContext:
    """Ledger state a verifier may consult; both lookups are optional."""

    config: RingCTConfig = field(default_factory=RingCTConfig)
    output_index: Optional[OutputIndex] = None
    key_images: Optional[KeyImageSet] = None


class TransactionVerifier:
    """Stateless verifier for confidential ring transactions."""

    def __init__(
        self,
        context: Optional[VerificationContext] = None,
        ring_scheme: Optional[MLSAGScheme] = None,
        range_scheme: Optional[RangeProofScheme] = None,
    ):
        self.context = context or VerificationContext()
        self.config = self.context.config
        self.config.validate()
        self.ring_scheme = ring_scheme or MLSAGScheme()
        self.range_scheme = range_scheme or BitRangeProofScheme(self.config.range_bits)

    def _check_structure(self, tx: RingCTTransaction) -> None:
        config = self.config
        if tx.version != config.tx_version:
            raise MalformedTransaction(f"Unsupported version {tx.version}")
        if not 1 <= len(tx.inputs) <= config.max_inputs:
            raise MalformedTransaction(f"Invalid input count {len(tx.inputs)}")
        if not 1 <= len(tx.outputs) <= config.max_outputs:
            raise MalformedTransaction(f"Invalid output count {len(tx.outputs)}")
        if len(tx.ring_signatures) != len(tx.inputs):
            raise MalformedTransaction(
                f"{len(tx.ring_signatures)} signatures for {len(tx.inputs)} inputs"
            )
        if tx.fee < config.min_fee:
            raise MalformedTransaction(f"Fee {tx.fee} below minimum {config.min_fee}")

        for index, (tx_input, signature) in enumerate(zip(tx.inputs, tx.ring_signatures)):
            if tx_input.ring_size != config.ring_size:
                raise MalformedTransaction(
                    f"Ring size {tx_input.ring_size}, expected {config.ring_size}",
                    input_index=index,
                )
            if signature.size != tx_input.ring_size:
                raise MalformedTransaction(
                    "Signature size does not match ring size", input_index=index
                )
            keys = {p.to_bytes() for p in tx_input.ring_members}
            if len(keys) != tx_input.ring_size:
                raise MalformedTransaction("Ring repeats a member", input_index=index)

        seen = set()
        for index, key_image in enumerate(tx.key_images):
            raw = key_image.to_bytes()
            if raw in seen:
                raise DoubleSpend(
                    "Key image repeats within the transaction",
                    input_index=index,
                    key_image=raw,
                )
            seen.add(raw)

    def _check_ring_members(self, tx: RingCTTransaction) -> None:
        output_index = self.context.output_index
        if output_index is None:
            return
        for index, tx_input in enumerate(tx.inputs):
            if not tx_input.member_ids:
                raise MalformedTransaction(
                    "Ring members carry no output references", input_index=index
                )
            members = zip(tx_input.member_ids, tx_input.ring_members, tx_input.member_commitments)
            for member_id, key, commitment in members:
                try:
                    indexed = output_index.get(member_id)
                except KeyError as e:
                    raise MalformedTransaction(
                        f"Unknown ring member {member_id}", input_index=index, cause=e
                    ) from e
                if indexed.public_key != key:
                    raise MalformedTransaction(
                        f"Ring member {member_id} does not match the output index",
                        input_index=index,
                    )
                if indexed.commitment is None or indexed.commitment != commitment:
                    raise MalformedTransaction(
                        f"Ring member {member_id} commitment does not match the output index",
                        input_index=index,
                    )

    def verify(self, tx: RingCTTransaction) -> None:
        """
        Verify a transaction.

        Raises:
            MalformedTransaction: Structural problems
            InvalidSignature: A ring signature fails
            InvalidRangeProof: A range proof fails
            ImbalancedTransaction: Commitments do not balance
            DoubleSpend: A key image repeats or is already spent
        """
        self._check_structure(tx)
        self._check_ring_members(tx)

        message = tx.message
        for index, (tx_input, signature) in enumerate(zip(tx.inputs, tx.ring_signatures)):
            if not self.ring_scheme.verify(
                message,
                tx_input.ring_members,
                tx_input.member_commitments,
                tx_input.pseudo_commitment,
                signature,
            ):
                raise InvalidSignature("Ring signature does not verify", input_index=index)

        for index, tx_output in enumerate(tx.outputs):
            if not self.range_scheme.verify(tx_output.commitment, tx_output.range_proof):
                raise InvalidRangeProof(f"Range proof of output {index} does not verify")

        if not balance_holds(tx.pseudo_commitments, tx.output_commitments, tx.fee):
            raise ImbalancedTransaction("Input and output commitments do not balance")

        key_images = self.context.key_images
        if key_images is not None:
            for index, key_image in enumerate(tx.key_images):
                if key_images.contains(key_image):
                    raise DoubleSpend(
                        f"Key image {key_image.hex()[:16]}... already spent",
                        input_index=index,
                        key_image=key_image.to_bytes(),
                    )

        logger.debug("Transaction %s verified", tx.tx_hash().to_hex()[:16])

    def is_valid(self, tx: RingCTTransaction) -> bool:
        try:
            self.verify(tx)
        except VerifyError as e:
            logger.info("Transaction rejected: %s", e)
            return False
        return True

    def _verify_one(self, tx: RingCTTransaction) -> Optional[VerifyError]:
        try:
            self.verify(tx)
        except VerifyError as e:
            return e
        return None

    def verify_many(
        self, transactions: Sequence[RingCTTransaction], max_workers: Optional[int] = None
    ) -> List[Optional[VerifyError]]:
        """
        Verify independent transactions in parallel.

        Returns:
            One entry per transaction, in order: None if valid, else the error
        """
        workers = max_workers or self.config.verify_workers
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._verify_one, transactions))


def verify_transaction(
    tx: RingCTTransaction, context: Optional[VerificationContext] = None
) -> None:
    """Verify ``tx`` with the default schemes; raises VerifyError on failure."""
    TransactionVerifier(context).verify(tx)
