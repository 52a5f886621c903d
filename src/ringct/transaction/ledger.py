"""
Ledger-side state: the spent key-image set and transaction acceptance.

The key-image set is the only mutable state the engine touches. Acceptance
is atomic: either every key image of a transaction is inserted or none is,
so two racing transactions sharing a key image cannot both be accepted.
"""

import logging

logger = logging.getLogger(__name__)
import threading
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Set

from ..errors import DoubleSpend
from ..ring.construction import KeyImage
from ..ring.decoys import IndexedOutput, InMemoryOutputIndex


class KeyImageSet(ABC):
    """Set of key images already spent on the ledger."""

    @abstractmethod
    def contains(self, key_image: KeyImage) -> bool:
        pass

    @abstractmethod
    def insert_all(self, key_images: Iterable[KeyImage]) -> None:
        """
        Insert every key image atomically.

        Raises:
            DoubleSpend: If any image is already present or repeats within the
                batch; nothing is inserted in that case
        """
        pass

    def insert(self, key_image: KeyImage) -> None:
        self.insert_all([key_image])

    def __contains__(self, key_image: KeyImage) -> bool:
        return self.contains(key_image)


class InMemoryKeyImageSet(KeyImageSet):
    """Thread-safe in-memory key-image set."""

    def __init__(self) -> None:
        self._images: Set[bytes] = set()
        self._lock = threading.Lock()

    def contains(self, key_image: KeyImage) -> bool:
        with self._lock:
            return key_image.to_bytes() in self._images

    def insert_all(self, key_images: Iterable[KeyImage]) -> None:
        batch = [k.to_bytes() for k in key_images]
        with self._lock:
            seen: Set[bytes] = set()
            for image in batch:
                if image in self._images or image in seen:
                    raise DoubleSpend(
                        f"Key image {image.hex()[:16]}... already spent", key_image=image
                    )
                seen.add(image)
            self._images.update(batch)

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)


def accept_transaction(tx, key_images: KeyImageSet, verifier) -> None:
    """
    Verify a transaction and record its key images.

    Args:
        tx: Transaction to accept
        key_images: Ledger key-image set, updated atomically on success
        verifier: TransactionVerifier used for the cryptographic checks

    Raises:
        VerifyError: If verification fails (DoubleSpend for a reused image)
    """
    verifier.verify(tx)
    key_images.insert_all(tx.key_images)
    logger.info("Accepted transaction %s", tx.tx_hash().to_hex()[:16])


class Ledger:
    """
    Minimal ledger tying the output index to the key-image set.

    Accepted transactions have their key images recorded and their outputs
    appended to the index, where they become spendable and usable as decoys.
    """

    def __init__(
        self,
        verifier,
        output_index: Optional[InMemoryOutputIndex] = None,
        key_images: Optional[KeyImageSet] = None,
    ):
        self.verifier = verifier
        self.output_index = output_index if output_index is not None else InMemoryOutputIndex()
        self.key_images = key_images if key_images is not None else InMemoryKeyImageSet()
        self._lock = threading.Lock()

    def accept(self, tx, height: Optional[int] = None) -> List[IndexedOutput]:
        """Accept ``tx`` and return the index records of its outputs."""
        with self._lock:
            accept_transaction(tx, self.key_images, self.verifier)
            return [
                self.output_index.add_output(
                    out.one_time_output, commitment=out.commitment, height=height
                )
                for out in tx.outputs
            ]
