"""
Tests for booking money helpers.

Tests cover:
- Decimal string to cents conversion with half-up rounding
- Rejection of non-numeric, non-finite, non-positive and oversized amounts
- Session pricing from hourly rate and length
- Session length from a schedule window
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from payments.exceptions import InvalidAmountError, InvalidScheduleError
from payments.money import (
    MAX_AMOUNT_CENTS,
    amount_to_cents,
    calculate_total_amount,
    parse_amount,
    session_length_minutes,
)


class TestAmountToCents:
    """Tests for amount_to_cents."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            ("45", 4500),
            ("45.00", 4500),
            ("12.5", 1250),
            ("19.999", 2000),
            ("0.005", 1),
            (" 30.00 ", 3000),
            (Decimal("7.25"), 725),
        ],
    )
    def test_converts_to_cents(self, amount, expected):
        """Should round half-up to the nearest cent."""
        assert amount_to_cents(amount) == expected

    @pytest.mark.parametrize("amount", ["0", "-5", "0.004", "-0.01"])
    def test_rejects_non_positive(self, amount):
        """Should reject amounts that round to zero or less."""
        with pytest.raises(InvalidAmountError) as exc_info:
            amount_to_cents(amount)

        assert exc_info.value.error_code == "invalid_amount"

    @pytest.mark.parametrize("amount", ["abc", "", "NaN", "Infinity", "-inf", "12,50"])
    def test_rejects_unparsable_and_non_finite(self, amount):
        """Should reject values that are not finite decimal numbers."""
        with pytest.raises(InvalidAmountError):
            amount_to_cents(amount)

    def test_accepts_maximum_charge(self):
        """Should accept the largest chargeable amount."""
        assert amount_to_cents("999999.99") == MAX_AMOUNT_CENTS

    @pytest.mark.parametrize("amount", ["1000000", "1e20", "1e30", "9" * 40])
    def test_rejects_oversized(self, amount):
        """Should reject amounts above the maximum charge as invalid_amount."""
        with pytest.raises(InvalidAmountError) as exc_info:
            amount_to_cents(amount)

        assert exc_info.value.error_code == "invalid_amount"


class TestParseAmount:
    """Tests for parse_amount."""

    def test_returns_decimal(self):
        """Should return an exact Decimal."""
        assert parse_amount("19.99") == Decimal("19.99")

    def test_error_details_include_input(self):
        """Should record the rejected input in the error details."""
        with pytest.raises(InvalidAmountError) as exc_info:
            parse_amount("ten")

        assert exc_info.value.details == {"amount": "ten"}


class TestCalculateTotalAmount:
    """Tests for calculate_total_amount."""

    @pytest.mark.parametrize(
        "rate,minutes,expected",
        [
            ("20", 90, "30.00"),
            ("45", 60, "45.00"),
            ("45.50", 30, "22.75"),
            ("10", 1, "0.17"),
            ("33.33", 45, "25.00"),
        ],
    )
    def test_prices_session(self, rate, minutes, expected):
        """Should multiply rate by hours and round half-up to 2 places."""
        assert calculate_total_amount(rate, minutes) == expected

    def test_rejects_invalid_rate(self):
        """Should reject a rate that is not a number."""
        with pytest.raises(InvalidAmountError):
            calculate_total_amount("free", 60)

    def test_rejects_rate_beyond_decimal_precision(self):
        """Should reject a rate whose total cannot be held to the cent."""
        with pytest.raises(InvalidAmountError) as exc_info:
            calculate_total_amount("1e30", 60)

        assert exc_info.value.details == {"hourly_rate": "1e30"}


class TestSessionLengthMinutes:
    """Tests for session_length_minutes."""

    START = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_whole_minutes(self):
        """Should count whole minutes in the window."""
        assert session_length_minutes(self.START, self.START + timedelta(minutes=90)) == 90

    def test_truncates_partial_minutes(self):
        """Should drop trailing seconds."""
        end = self.START + timedelta(minutes=45, seconds=59)
        assert session_length_minutes(self.START, end) == 45

    def test_rejects_end_before_start(self):
        """Should reject a window that ends before it starts."""
        with pytest.raises(InvalidScheduleError) as exc_info:
            session_length_minutes(self.START, self.START - timedelta(hours=1))

        assert exc_info.value.error_code == "invalid_schedule"

    def test_rejects_empty_window(self):
        """Should reject a zero-length window."""
        with pytest.raises(InvalidScheduleError):
            session_length_minutes(self.START, self.START)

    def test_rejects_sub_minute_window(self):
        """Should reject a window shorter than one minute."""
        with pytest.raises(InvalidScheduleError):
            session_length_minutes(self.START, self.START + timedelta(seconds=30))
