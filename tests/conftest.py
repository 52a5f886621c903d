"""
Shared fixtures for ringct tests.
"""

import pytest

from ringct.amounts.commitments import commit
from ringct.config import RingCTConfig
from ringct.keys.stealth import (
    WalletKeys,
    commitment_mask,
    derive_one_time_output,
    scan_outputs,
    sender_derivation,
)
from ringct.ring.decoys import IndexedOutput, InMemoryOutputIndex
from ringct.transaction.ledger import InMemoryKeyImageSet

DECOY_COUNT = 24


def mint_output(index: InMemoryOutputIndex, address, amount: int, height=None) -> IndexedOutput:
    """Append an output paying ``amount`` to ``address`` without a range proof."""
    one_time_output, ephemeral = derive_one_time_output(address, amount)
    blinding = commitment_mask(sender_derivation(ephemeral, address))
    return index.add_output(one_time_output, commitment=commit(amount, blinding), height=height)


@pytest.fixture
def config():
    return RingCTConfig(ring_size=5)


@pytest.fixture
def alice():
    return WalletKeys.generate()


@pytest.fixture
def bob():
    return WalletKeys.generate()


@pytest.fixture
def output_index():
    """Index pre-filled with outputs owned by strangers, usable as decoys."""
    index = InMemoryOutputIndex()
    for height in range(DECOY_COUNT):
        mint_output(index, WalletKeys.generate().address, 1000 + height, height=height)
    return index


@pytest.fixture
def key_images():
    return InMemoryKeyImageSet()


@pytest.fixture
def mint():
    return mint_output


@pytest.fixture
def fund(output_index):
    """Give a wallet owned outputs of the requested amounts."""

    def _fund(wallet: WalletKeys, *amounts: int):
        minted = [mint_output(output_index, wallet.address, a) for a in amounts]
        owned = scan_outputs(minted, wallet)
        assert len(owned) == len(amounts)
        return [o for o, _ in owned]

    return _fund
