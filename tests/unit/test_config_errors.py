"""
Unit tests for configuration and the error hierarchy.
"""

import pytest

from ringct.config import RingCTConfig
from ringct.errors import (
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


class TestRingCTConfig:
    """Test RingCTConfig."""

    def test_defaults(self):
        config = RingCTConfig()
        config.validate()
        assert config.ring_size == 11
        assert config.range_bits == 64
        assert config.max_amount == 1 << 64

    @pytest.mark.parametrize(
        "field_name,value",
        [
            ("ring_size", 1),
            ("ring_size", 256),
            ("decoy_policy", "triangular"),
            ("range_bits", 0),
            ("range_bits", 65),
            ("min_fee", -1),
            ("max_inputs", 0),
            ("max_outputs", 0),
            ("tx_version", 256),
            ("verify_workers", 0),
        ],
    )
    def test_invalid_values(self, field_name, value):
        config = RingCTConfig(**{field_name: value})
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        assert exc_info.value.config_key == field_name
        assert exc_info.value.category is ErrorCategory.CONFIGURATION

    def test_dict_round_trip(self):
        config = RingCTConfig(ring_size=7, decoy_policy="gamma")
        assert RingCTConfig.from_dict(config.to_dict()) == config

    def test_from_dict_ignores_unknown_keys(self):
        config = RingCTConfig.from_dict({"ring_size": 3, "colour": "blue"})
        assert config.ring_size == 3

    def test_from_dict_validates(self):
        with pytest.raises(ConfigurationError):
            RingCTConfig.from_dict({"ring_size": 0})


class TestRingCTError:
    """Test the base error."""

    def test_base_error_creation(self):
        error = RingCTError("Something failed", error_code="E1")
        assert error.message == "Something failed"
        assert error.severity is ErrorSeverity.MEDIUM
        assert error.category is ErrorCategory.SYSTEM
        assert isinstance(error.context, ErrorContext)

    def test_to_dict(self):
        cause = ValueError("inner")
        error = RingCTError("outer", cause=cause, metadata={"k": 1})
        data = error.to_dict()
        assert data["type"] == "RingCTError"
        assert data["cause"] == "inner"
        assert data["metadata"] == {"k": 1}

    def test_string_representation(self):
        error = RingCTError(
            "bad", error_code="E2", severity=ErrorSeverity.HIGH, category=ErrorCategory.LEDGER
        )
        text = str(error)
        assert "RingCTError: bad" in text
        assert "Code: E2" in text
        assert "Severity: high" in text
        assert "Category: ledger" in text


class TestErrorHierarchy:
    """Test the specific error types."""

    def test_decoding_error(self):
        error = DecodingError("bad point", field="key_image")
        assert error.field == "key_image"
        assert error.category is ErrorCategory.ENCODING
        assert error.to_dict()["field"] == "key_image"

    def test_verify_errors_carry_reason(self):
        cases = [
            (MalformedTransaction, VerifyFailure.MALFORMED),
            (InvalidSignature, VerifyFailure.SIGNATURE),
            (InvalidRangeProof, VerifyFailure.RANGE_PROOF),
            (ImbalancedTransaction, VerifyFailure.BALANCE),
            (DoubleSpend, VerifyFailure.DOUBLE_SPEND),
        ]
        for error_type, reason in cases:
            error = error_type("failed", input_index=2)
            assert isinstance(error, VerifyError)
            assert error.reason is reason
            assert error.error_code == reason.name
            assert error.input_index == 2
            assert error.to_dict()["reason"] == reason.value

    def test_build_and_verify_overlap(self):
        assert issubclass(ImbalancedTransaction, BuildError)
        assert issubclass(DoubleSpend, BuildError)
        assert not issubclass(InvalidSignature, BuildError)
        assert not issubclass(InsufficientDecoys, VerifyError)

    def test_double_spend_key_image(self):
        error = DoubleSpend("reused", key_image=b"\x01" * 32)
        assert error.category is ErrorCategory.LEDGER
        assert error.to_dict()["key_image"] == "01" * 32

    def test_insufficient_decoys(self):
        error = InsufficientDecoys("short", requested=10, available=3)
        data = error.to_dict()
        assert data["requested"] == 10
        assert data["available"] == 3
        assert error.error_code == "INSUFFICIENT_DECOYS"

    def test_catch_all(self):
        with pytest.raises(RingCTError):
            raise InvalidRangeProof("bad proof")
