"""ringct error handling.

Typed exceptions returned by every build and verify entry point.
"""

from .exceptions import (
    BuildError,
    ConfigurationError,
    DecodingError,
    DoubleSpend,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    ImbalancedTransaction,
    InsufficientDecoys,
    InvalidRangeProof,
    InvalidSignature,
    MalformedTransaction,
    RingCTError,
    VerifyError,
    VerifyFailure,
)

__all__ = [
    "RingCTError",
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "VerifyFailure",
    "DecodingError",
    "ConfigurationError",
    "BuildError",
    "InsufficientDecoys",
    "ImbalancedTransaction",
    "DoubleSpend",
    "VerifyError",
    "MalformedTransaction",
    "InvalidSignature",
    "InvalidRangeProof",
]
