"""
Engine configuration.

A single dataclass shared by the builder and verifier so both sides agree on
ring size, range-proof width and structural limits.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .errors import ConfigurationError

DECOY_POLICIES = ("uniform", "gamma")


@dataclass
class RingCTConfig:
    """Configuration for building and verifying transactions."""

    # Ring settings
    ring_size: int = 11
    decoy_policy: str = "uniform"

    # Amount settings
    range_bits: int = 64
    min_fee: int = 0

    # Structural limits
    max_inputs: int = 16
    max_outputs: int = 16
    tx_version: int = 2

    # Batch verification
    verify_workers: int = 4

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.ring_size < 2:
            raise ConfigurationError(
                "ring_size must be at least 2", "ring_size", self.ring_size
            )
        if self.ring_size > 255:
            raise ConfigurationError(
                "ring_size must not exceed 255", "ring_size", self.ring_size
            )
        if self.decoy_policy not in DECOY_POLICIES:
            raise ConfigurationError(
                f"decoy_policy must be one of {DECOY_POLICIES}",
                "decoy_policy",
                self.decoy_policy,
            )
        if not 1 <= self.range_bits <= 64:
            raise ConfigurationError(
                "range_bits must be between 1 and 64", "range_bits", self.range_bits
            )
        if self.min_fee < 0:
            raise ConfigurationError("min_fee must be non-negative", "min_fee", self.min_fee)
        if self.max_inputs <= 0:
            raise ConfigurationError(
                "max_inputs must be positive", "max_inputs", self.max_inputs
            )
        if self.max_outputs <= 0:
            raise ConfigurationError(
                "max_outputs must be positive", "max_outputs", self.max_outputs
            )
        if not 0 <= self.tx_version <= 255:
            raise ConfigurationError(
                "tx_version must fit in one byte", "tx_version", self.tx_version
            )
        if self.verify_workers <= 0:
            raise ConfigurationError(
                "verify_workers must be positive", "verify_workers", self.verify_workers
            )

    @property
    def max_amount(self) -> int:
        """Exclusive upper bound for committed amounts."""
        return 1 << self.range_bits

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RingCTConfig":
        """Create configuration from dictionary, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        config = cls(**known)
        config.validate()
        return config
