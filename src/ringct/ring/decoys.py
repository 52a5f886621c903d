"""
Decoy selection.

Decoys are drawn from a read-only output index owned by the ledger layer.
Which outputs get picked is a policy decision (it decides how convincing the
anonymity set looks against age-based statistical attacks), so the policy is
pluggable; correctness only requires that decoys are eligible, distinct and
that a shortfall is a hard failure.
"""

import logging

logger = logging.getLogger(__name__)
import bisect
import math
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Collection, Dict, List, Optional, Sequence

from ..amounts.commitments import Commitment
from ..crypto.group import GroupElement
from ..errors import BuildError, ConfigurationError, InsufficientDecoys
from ..keys.stealth import OneTimeOutput


@dataclass(frozen=True)
class IndexedOutput:
    """An output as recorded by the ledger's output index."""

    global_index: int
    one_time_output: OneTimeOutput
    commitment: Optional[Commitment] = None
    denomination: Optional[int] = None
    height: int = 0
    spent: bool = False

    @property
    def public_key(self) -> GroupElement:
        return self.one_time_output.one_time_public_key


class OutputIndex(ABC):
    """Read-only view of the global output set."""

    @abstractmethod
    def get(self, global_index: int) -> IndexedOutput:
        """Return the output with the given index; raise KeyError if unknown."""
        pass

    @abstractmethod
    def candidates(self, denomination: Optional[int]) -> List[IndexedOutput]:
        """Outputs of one cleartext denomination, or all outputs for None."""
        pass

    @abstractmethod
    def height(self) -> int:
        """Current chain height."""
        pass


class InMemoryOutputIndex(OutputIndex):
    """Thread-safe in-memory output index."""

    def __init__(self) -> None:
        self._outputs: List[IndexedOutput] = []
        self._by_denomination: Dict[int, List[int]] = {}
        self._height = 0
        self._lock = threading.RLock()

    def add_output(
        self,
        one_time_output: OneTimeOutput,
        commitment: Optional[Commitment] = None,
        denomination: Optional[int] = None,
        height: Optional[int] = None,
    ) -> IndexedOutput:
        """Append an output and return its indexed record."""
        with self._lock:
            if height is None:
                height = self._height
            if height < 0:
                raise ValueError("Height must be non-negative")
            entry = IndexedOutput(
                global_index=len(self._outputs),
                one_time_output=one_time_output,
                commitment=commitment,
                denomination=denomination,
                height=height,
            )
            self._outputs.append(entry)
            if denomination is not None:
                self._by_denomination.setdefault(denomination, []).append(
                    entry.global_index
                )
            self._height = max(self._height, height)
            return entry

    def mark_spent(self, global_index: int) -> None:
        """Flag an output as known-spent so it is never used as a decoy."""
        with self._lock:
            self._outputs[global_index] = replace(self._outputs[global_index], spent=True)

    def set_height(self, height: int) -> None:
        with self._lock:
            self._height = max(self._height, height)

    def get(self, global_index: int) -> IndexedOutput:
        with self._lock:
            if not 0 <= global_index < len(self._outputs):
                raise KeyError(f"Unknown output index {global_index}")
            return self._outputs[global_index]

    def candidates(self, denomination: Optional[int]) -> List[IndexedOutput]:
        with self._lock:
            if denomination is None:
                return list(self._outputs)
            return [self._outputs[i] for i in self._by_denomination.get(denomination, [])]

    def height(self) -> int:
        with self._lock:
            return self._height

    def __len__(self) -> int:
        with self._lock:
            return len(self._outputs)


class DecoySelectionPolicy(ABC):
    """Strategy for choosing decoys among eligible outputs."""

    @abstractmethod
    def choose(
        self, candidates: Sequence[IndexedOutput], count: int, current_height: int
    ) -> List[IndexedOutput]:
        """Pick ``count`` distinct outputs from ``candidates``."""
        pass


class UniformDecoyPolicy(DecoySelectionPolicy):
    """Every eligible output is equally likely."""

    def __init__(self) -> None:
        self._rng = secrets.SystemRandom()

    def choose(
        self, candidates: Sequence[IndexedOutput], count: int, current_height: int
    ) -> List[IndexedOutput]:
        return self._rng.sample(list(candidates), count)


class GammaAgeDecoyPolicy(DecoySelectionPolicy):
    """
    Age-weighted selection mimicking real spending behaviour.

    Output ages are sampled as exp(Gamma(shape, 1/rate)) seconds, the
    distribution Monero fitted to observed spend ages, converted to blocks
    and matched to the output whose height is closest to the target.
    Remaining slots (when sampling keeps hitting already chosen outputs) are
    filled uniformly.
    """

    def __init__(
        self,
        shape: float = 19.28,
        rate: float = 1.61,
        seconds_per_block: float = 120.0,
        max_attempts_per_decoy: int = 20,
    ):
        if shape <= 0 or rate <= 0 or seconds_per_block <= 0:
            raise ConfigurationError("Gamma policy parameters must be positive")
        self.shape = shape
        self.rate = rate
        self.seconds_per_block = seconds_per_block
        self.max_attempts_per_decoy = max_attempts_per_decoy
        self._rng = secrets.SystemRandom()

    def _sample_age_blocks(self) -> float:
        log_seconds = self._rng.gammavariate(self.shape, 1.0 / self.rate)
        # exp() overflows above ~709; such ages are older than any chain anyway
        return math.exp(min(log_seconds, 700.0)) / self.seconds_per_block

    def choose(
        self, candidates: Sequence[IndexedOutput], count: int, current_height: int
    ) -> List[IndexedOutput]:
        by_height = sorted(candidates, key=lambda o: (o.height, o.global_index))
        heights = [o.height for o in by_height]
        chosen: Dict[int, IndexedOutput] = {}

        attempts = 0
        while len(chosen) < count and attempts < count * self.max_attempts_per_decoy:
            attempts += 1
            target = current_height - self._sample_age_blocks()
            pos = bisect.bisect_left(heights, target)
            pos = min(max(pos, 0), len(by_height) - 1)
            pick = by_height[pos]
            if pick.global_index not in chosen:
                chosen[pick.global_index] = pick

        if len(chosen) < count:
            rest = [o for o in by_height if o.global_index not in chosen]
            for pick in self._rng.sample(rest, count - len(chosen)):
                chosen[pick.global_index] = pick

        return list(chosen.values())


def policy_from_name(name: str) -> DecoySelectionPolicy:
    """Resolve a configured policy name."""
    if name == "uniform":
        return UniformDecoyPolicy()
    if name == "gamma":
        return GammaAgeDecoyPolicy()
    raise ConfigurationError(f"Unknown decoy policy: {name}", "decoy_policy", name)


def select_decoys(
    denomination: Optional[int],
    count: int,
    utxo_source: OutputIndex,
    exclude: Collection[int] = (),
    exclude_keys: Collection[GroupElement] = (),
    policy: Optional[DecoySelectionPolicy] = None,
) -> List[IndexedOutput]:
    """
    Select ``count`` decoys for a ring.

    Args:
        denomination: Cleartext denomination of the real output, or None for
            confidential outputs (decoys then come from every output that
            carries an amount commitment)
        count: Number of decoys (ring size - 1)
        utxo_source: Output index to draw from
        exclude: Global indices that must not be picked (the real output)
        exclude_keys: Public keys that must not be picked
        policy: Selection policy; uniform when omitted

    Returns:
        ``count`` distinct eligible outputs

    Raises:
        InsufficientDecoys: If fewer than ``count`` outputs are eligible
    """
    if count < 0:
        raise ValueError("Decoy count must be non-negative")
    policy = policy or UniformDecoyPolicy()

    excluded = set(exclude)
    excluded_keys = {k.to_bytes() for k in exclude_keys}
    seen_keys = set()
    eligible: List[IndexedOutput] = []
    for candidate in utxo_source.candidates(denomination):
        key = candidate.public_key.to_bytes()
        if candidate.spent or candidate.global_index in excluded:
            continue
        if denomination is None and candidate.commitment is None:
            continue
        if key in excluded_keys or key in seen_keys:
            continue
        seen_keys.add(key)
        eligible.append(candidate)

    if len(eligible) < count:
        raise InsufficientDecoys(
            f"Need {count} decoys but only {len(eligible)} eligible outputs "
            f"(denomination={denomination})",
            requested=count,
            available=len(eligible),
        )

    picks = policy.choose(eligible, count, utxo_source.height())

    eligible_ids = {o.global_index for o in eligible}
    pick_ids = [o.global_index for o in picks]
    if len(picks) != count or len(set(pick_ids)) != count or not set(pick_ids) <= eligible_ids:
        raise BuildError(
            f"Decoy policy {type(policy).__name__} returned an invalid selection"
        )

    logger.debug("Selected %d decoys from %d eligible outputs", count, len(eligible))
    return picks
