"""Exception hierarchy for the ringct engine.

Every failure the engine can report is a :class:`RingCTError`. Build-time
rejections derive from :class:`BuildError`, verification failures from
:class:`VerifyError`; the latter carry a :class:`VerifyFailure` reason so
callers can tell a bad signature from a bad range proof or an imbalance while
still treating all of them as "transaction invalid".
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    VALIDATION = "validation"
    CRYPTOGRAPHIC = "cryptographic"
    ENCODING = "encoding"
    TRANSACTION = "transaction"
    LEDGER = "ledger"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class VerifyFailure(Enum):
    """Reason a transaction failed verification."""

    MALFORMED = "malformed"
    SIGNATURE = "signature"
    RANGE_PROOF = "range_proof"
    BALANCE = "balance"
    DOUBLE_SPEND = "double_spend"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    component: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "component": self.component,
            "operation": self.operation,
            "metadata": self.metadata,
        }


class RingCTError(Exception):
    """Base exception for all ringct errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        if self.category != ErrorCategory.SYSTEM:
            parts.append(f"Category: {self.category.value}")

        return " | ".join(parts)


class DecodingError(RingCTError):
    """Malformed scalar, point or wire structure."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.ENCODING)
        kwargs.setdefault("error_code", "DECODING")
        super().__init__(message, **kwargs)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"field": self.field})
        return data


class ConfigurationError(RingCTError):
    """Invalid engine configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": (
                    str(self.config_value) if self.config_value is not None else None
                ),
            }
        )
        return data


class BuildError(RingCTError):
    """A transaction could not be built."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.TRANSACTION)
        super().__init__(message, **kwargs)


class VerifyError(RingCTError):
    """A transaction failed verification."""

    reason: VerifyFailure = VerifyFailure.MALFORMED

    def __init__(self, message: str, input_index: Optional[int] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.CRYPTOGRAPHIC)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("error_code", self.reason.name)
        super().__init__(message, **kwargs)
        self.input_index = input_index

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"reason": self.reason.value, "input_index": self.input_index})
        return data


class MalformedTransaction(VerifyError):
    """Transaction structure or encoding is invalid."""

    reason = VerifyFailure.MALFORMED


class InvalidSignature(VerifyError):
    """A ring signature does not verify."""

    reason = VerifyFailure.SIGNATURE


class InvalidRangeProof(VerifyError):
    """A range proof does not verify."""

    reason = VerifyFailure.RANGE_PROOF


class InsufficientDecoys(BuildError):
    """Not enough eligible outputs to fill a ring."""

    def __init__(self, message: str, requested: int = 0, available: int = 0, **kwargs):
        kwargs.setdefault("error_code", "INSUFFICIENT_DECOYS")
        super().__init__(message, **kwargs)
        self.requested = requested
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"requested": self.requested, "available": self.available})
        return data


class ImbalancedTransaction(BuildError, VerifyError):
    """Inputs do not cover outputs plus fee."""

    reason = VerifyFailure.BALANCE


class DoubleSpend(BuildError, VerifyError):
    """A key image has already been recorded by the ledger."""

    reason = VerifyFailure.DOUBLE_SPEND

    def __init__(self, message: str, key_image: Optional[bytes] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.LEDGER)
        super().__init__(message, **kwargs)
        self.key_image = key_image

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"key_image": self.key_image.hex() if self.key_image else None})
        return data
