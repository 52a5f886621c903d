"""
Transaction construction.

Building a transaction runs in this order:

1. Check the cleartext amounts: inputs must cover outputs plus fee exactly,
   and every amount must fit the range-proof width. Every spent output must
   open to the commitment the output index holds for it.
2. For every input, derive the one-time secret and key image, select decoys
   and assemble the ring.
3. Derive one-time outputs, commitments and range proofs for each
   destination. Output blindings come from the stealth derivation so each
   recipient can reopen their commitment.
4. Pick pseudo-output blindings so that the input blindings sum to the output
   blindings; the commitment difference then equals fee*G exactly.
5. Hash the prefix and sign it once per input with a two-row MLSAG, whose
   amount row proves the pseudo commitment carries the real member's amount.

One-time secrets and intermediate blindings are wiped once signing finishes.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..amounts.commitments import commit
from ..amounts.range_proof import BitRangeProofScheme, RangeProofScheme
from ..config import RingCTConfig
from ..crypto.group import Scalar, mul_base
from ..errors import BuildError, DoubleSpend, ImbalancedTransaction
from ..keys.stealth import (
    OwnedOutput,
    StealthAddress,
    WalletKeys,
    commitment_mask,
    derive_one_time_output,
    derive_spend_secret,
    sender_derivation,
)
from ..ring.construction import RingMember, build_ring, compute_key_image
from ..ring.decoys import DecoySelectionPolicy, OutputIndex, policy_from_name, select_decoys
from ..ring.mlsag import MLSAGScheme
from .ledger import KeyImageSet
from .model import RingCTTransaction, TxInput, TxOutput


@dataclass(frozen=True)
class Destination:
    """A payment to build: recipient address and cleartext amount."""

    address: StealthAddress
    amount: int


def create_output(
    destination: Destination, range_scheme: Optional[RangeProofScheme] = None
) -> Tuple[TxOutput, Scalar]:
    """
    Build one confidential output.

    Returns:
        (TxOutput, blinding factor of its commitment)
    """
    range_scheme = range_scheme or BitRangeProofScheme()
    one_time_output, ephemeral = derive_one_time_output(destination.address, destination.amount)
    with ephemeral:
        with sender_derivation(ephemeral, destination.address) as derivation:
            blinding = commitment_mask(derivation)
    output = TxOutput(
        one_time_output=one_time_output,
        commitment=commit(destination.amount, blinding),
        range_proof=range_scheme.prove(destination.amount, blinding),
    )
    return output, blinding


class TransactionBuilder:
    """Builds and signs confidential ring transactions."""

    def __init__(
        self,
        output_index: OutputIndex,
        config: Optional[RingCTConfig] = None,
        ring_scheme: Optional[MLSAGScheme] = None,
        range_scheme: Optional[RangeProofScheme] = None,
        decoy_policy: Optional[DecoySelectionPolicy] = None,
        key_images: Optional[KeyImageSet] = None,
    ):
        self.config = config or RingCTConfig()
        self.config.validate()
        self.output_index = output_index
        self.ring_scheme = ring_scheme or MLSAGScheme()
        self.range_scheme = range_scheme or BitRangeProofScheme(self.config.range_bits)
        self.decoy_policy = decoy_policy or policy_from_name(self.config.decoy_policy)
        self.key_images = key_images

    def _check_amounts(
        self, inputs: Sequence[OwnedOutput], outputs: Sequence[Destination], fee: int
    ) -> None:
        if not inputs:
            raise BuildError("Transaction needs at least one input")
        if not outputs:
            raise BuildError("Transaction needs at least one output")
        if len(inputs) > self.config.max_inputs:
            raise BuildError(f"Too many inputs ({len(inputs)} > {self.config.max_inputs})")
        if len(outputs) > self.config.max_outputs:
            raise BuildError(f"Too many outputs ({len(outputs)} > {self.config.max_outputs})")
        if not self.config.min_fee <= fee < 1 << 64:
            raise BuildError(f"Fee {fee} is below the minimum or out of range")
        for destination in outputs:
            if not 0 <= destination.amount < self.config.max_amount:
                raise BuildError(
                    f"Output amount {destination.amount} outside "
                    f"[0, 2^{self.config.range_bits})"
                )
        for owned in inputs:
            if owned.global_index is None:
                raise BuildError("Spent outputs must carry their global index")

    def _check_openings(self, inputs: Sequence[OwnedOutput]) -> None:
        for owned in inputs:
            try:
                indexed = self.output_index.get(owned.global_index)
            except KeyError as e:
                raise BuildError(
                    f"Spent output {owned.global_index} is unknown to the output index",
                    cause=e,
                ) from e
            if indexed.public_key != owned.public_key:
                raise BuildError(
                    f"Spent output {owned.global_index} does not match the output index"
                )
            if indexed.commitment is None:
                raise BuildError(f"Spent output {owned.global_index} has no amount commitment")
            if commit(owned.amount, owned.blinding) != indexed.commitment:
                raise BuildError(
                    f"Spent output {owned.global_index} does not open to its commitment"
                )

    def _check_balance(
        self, inputs: Sequence[OwnedOutput], outputs: Sequence[Destination], fee: int
    ) -> None:
        total_in = sum(o.amount for o in inputs)
        total_out = sum(d.amount for d in outputs) + fee
        if total_in != total_out:
            raise ImbalancedTransaction(
                f"Inputs total {total_in} but outputs plus fee total {total_out}"
            )

    def build(
        self,
        sender_keys: WalletKeys,
        spendable_inputs: Sequence[OwnedOutput],
        desired_outputs: Sequence[Destination],
        fee: int,
    ) -> RingCTTransaction:
        """
        Build and sign a transaction.

        Args:
            sender_keys: Wallet owning every spent output
            spendable_inputs: Owned outputs (from :func:`scan_outputs`) to spend
            desired_outputs: Payments to make
            fee: Cleartext fee

        Returns:
            Fully signed transaction

        Raises:
            ImbalancedTransaction: If inputs do not equal outputs plus fee
            InsufficientDecoys: If a ring cannot be filled
            DoubleSpend: If a key image is already known to the ledger
            BuildError: For any other invalid request
        """
        self._check_amounts(spendable_inputs, desired_outputs, fee)
        self._check_openings(spendable_inputs)
        self._check_balance(spendable_inputs, desired_outputs, fee)

        spend_secrets: List[Scalar] = []
        amount_secrets: List[Scalar] = []
        blindings: List[Scalar] = []
        try:
            rings = []
            for owned in spendable_inputs:
                secret = derive_spend_secret(
                    owned.output, sender_keys.spend.secret, sender_keys.view.secret
                )
                spend_secrets.append(secret)
                if mul_base(secret) != owned.public_key:
                    raise BuildError("Spent output does not belong to the sender's wallet")

                key_image = compute_key_image(secret, owned.public_key)
                if self.key_images is not None and self.key_images.contains(key_image):
                    raise DoubleSpend(
                        f"Output {owned.global_index} is already spent",
                        key_image=key_image.to_bytes(),
                    )
                if any(r.key_image == key_image for r in rings):
                    raise DoubleSpend(
                        f"Output {owned.global_index} is spent twice in one transaction",
                        key_image=key_image.to_bytes(),
                    )

                decoys = select_decoys(
                    None,
                    self.config.ring_size - 1,
                    self.output_index,
                    exclude=[o.global_index for o in spendable_inputs],
                    exclude_keys=[owned.public_key],
                    policy=self.decoy_policy,
                )
                real = RingMember(
                    owned.public_key,
                    owned.global_index,
                    self.output_index.get(owned.global_index).commitment,
                )
                rings.append(build_ring(real, secret, decoys))

            outputs: List[TxOutput] = []
            output_blinding = Scalar.zero()
            for destination in desired_outputs:
                tx_output, blinding = create_output(destination, self.range_scheme)
                outputs.append(tx_output)
                output_blinding = output_blinding + blinding
                blindings.append(blinding)
            blindings.append(output_blinding)

            inputs: List[TxInput] = []
            input_blinding = Scalar.zero()
            for position, (owned, ring) in enumerate(zip(spendable_inputs, rings)):
                if position == len(spendable_inputs) - 1:
                    pseudo_blinding = output_blinding - input_blinding
                else:
                    pseudo_blinding = Scalar.random()
                    input_blinding = input_blinding + pseudo_blinding
                blindings.append(pseudo_blinding)
                blindings.append(owned.blinding - pseudo_blinding)
                inputs.append(
                    TxInput(
                        ring_members=ring.public_keys,
                        member_ids=ring.member_ids,
                        member_commitments=ring.commitments,
                        pseudo_commitment=commit(owned.amount, pseudo_blinding),
                    )
                )
                amount_secrets.append(blindings[-1])
            blindings.append(input_blinding)

            unsigned = RingCTTransaction(
                version=self.config.tx_version,
                inputs=inputs,
                outputs=outputs,
                fee=fee,
            )
            message = unsigned.message
            signatures = [
                self.ring_scheme.sign(
                    message, ring, secret, tx_input.pseudo_commitment, amount_secret
                )
                for ring, secret, tx_input, amount_secret in zip(
                    rings, spend_secrets, inputs, amount_secrets
                )
            ]
        finally:
            for scalar in spend_secrets + blindings:
                scalar.wipe()

        tx = replace(unsigned, ring_signatures=signatures)
        logger.info(
            "Built transaction %s with %d inputs and %d outputs",
            tx.tx_hash().to_hex()[:16],
            len(inputs),
            len(outputs),
        )
        return tx


def build_transaction(
    sender_keys: WalletKeys,
    spendable_inputs: Sequence[OwnedOutput],
    desired_outputs: Sequence[Destination],
    fee: int,
    output_index: OutputIndex,
    config: Optional[RingCTConfig] = None,
    key_images: Optional[KeyImageSet] = None,
) -> RingCTTransaction:
    """Build a transaction with the default MLSAG and range-proof schemes."""
    builder = TransactionBuilder(output_index, config=config, key_images=key_images)
    return builder.build(sender_keys, spendable_inputs, desired_outputs, fee)
