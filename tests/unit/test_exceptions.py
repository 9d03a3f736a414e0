"""Tests for the typed exception hierarchy."""

from decimal import Decimal

import pytest

from backoffice_kernel.exceptions import (
    BackofficeError,
    CircularOwnershipError,
    ConfigurationError,
    ConsolidationError,
    ContractNotCompleteError,
    DivisionByZeroError,
    InvalidMilestoneSequenceError,
    InvalidStatusTransitionError,
    MissingExchangeRateError,
    OverRecognitionError,
    RevenueRecognitionError,
)


class TestHierarchy:

    @pytest.mark.parametrize(
        ("exc", "base", "code"),
        [
            (InvalidMilestoneSequenceError("C", ["50", "25"], "bad"), RevenueRecognitionError, "INVALID_MILESTONE_SEQUENCE"),
            (DivisionByZeroError("C"), RevenueRecognitionError, "DIVISION_BY_ZERO"),
            (ContractNotCompleteError("C", "active"), RevenueRecognitionError, "CONTRACT_NOT_COMPLETE"),
            (
                OverRecognitionError("C", Decimal("10"), Decimal("11"), Decimal("1")),
                RevenueRecognitionError,
                "OVER_RECOGNITION",
            ),
            (InvalidStatusTransitionError("pending", "recognized"), RevenueRecognitionError, "INVALID_STATUS_TRANSITION"),
            (MissingExchangeRateError("EUR", "USD"), ConsolidationError, "MISSING_EXCHANGE_RATE"),
            (CircularOwnershipError("A", ["A", "B", "A"]), ConsolidationError, "CIRCULAR_OWNERSHIP"),
            (ConfigurationError("file.yaml", "broken"), BackofficeError, "CONFIGURATION_ERROR"),
        ],
    )
    def test_codes_and_bases(self, exc, base, code):
        assert isinstance(exc, base)
        assert isinstance(exc, BackofficeError)
        assert exc.code == code


class TestMessages:

    def test_over_recognition_message(self):
        exc = OverRecognitionError("C-1", Decimal("24000"), Decimal("25000"), Decimal("1000"))
        assert "over by 1000" in str(exc)

    def test_cycle_message_shows_chain(self):
        exc = CircularOwnershipError("A", ["A", "B", "A"])
        assert "A -> B -> A" in str(exc)

    def test_missing_rate_message_names_entity(self):
        assert "for entity E-7" in str(MissingExchangeRateError("EUR", "USD", "E-7"))
        assert "entity" not in str(MissingExchangeRateError("EUR", "USD"))
