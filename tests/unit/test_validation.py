"""Unit tests for input validators."""

from decimal import Decimal

import pytest

from earnhub.validators import (
    normalize_display_handle,
    validate_amount,
    validate_external_ref,
    validate_task_id,
)


class TestAmountValidation:
    """Tests for validate_amount."""

    def test_valid_string_amount(self):
        """Numeric strings are parsed to Decimal."""
        assert validate_amount("100.50") == (True, Decimal("100.50"), None)

    def test_comma_decimal_separator(self):
        """Comma separators are accepted."""
        is_valid, value, _ = validate_amount("10,25")
        assert is_valid
        assert value == Decimal("10.25")

    def test_negative_rejected(self):
        """Negative amounts are below the default minimum."""
        is_valid, value, error = validate_amount("-10")
        assert not is_valid
        assert value is None
        assert error == "Amount must be >= 0"

    def test_zero_rejected_by_default(self):
        """Zero needs allow_zero."""
        assert not validate_amount(Decimal("0"))[0]
        assert validate_amount(Decimal("0"), allow_zero=True)[0]

    def test_float_rejected(self):
        """Floats are ambiguous for money."""
        assert not validate_amount(10.5)[0]

    def test_too_many_decimal_places(self):
        """Ledger precision is 8 places."""
        assert validate_amount("0.00000001")[0]
        assert not validate_amount("0.000000001")[0]

    def test_max_value(self):
        """Upper bound is inclusive."""
        assert validate_amount("100", max_val=Decimal("100"))[0]
        assert not validate_amount("100.01", max_val=Decimal("100"))[0]

    @pytest.mark.parametrize("amount", ["", "abc", "NaN", "Infinity"])
    def test_invalid_formats(self, amount):
        """Garbage and non-finite values are rejected."""
        assert not validate_amount(amount)[0]


class TestIdentifierValidation:
    """Tests for task and external reference validation."""

    def test_task_id_is_stripped(self):
        """Surrounding whitespace is removed."""
        assert validate_task_id(" task-42 ") == (True, "task-42", None)

    @pytest.mark.parametrize("task_id", ["", "   ", None])
    def test_empty_task_id(self, task_id):
        """Empty task ids are rejected."""
        assert not validate_task_id(task_id)[0]

    def test_long_task_id(self):
        """Task ids are limited to 64 characters."""
        assert validate_task_id("t" * 64)[0]
        assert not validate_task_id("t" * 65)[0]

    def test_external_ref(self):
        """External references are stripped and length-limited."""
        assert validate_external_ref(" tg:123 ") == (True, "tg:123", None)
        assert not validate_external_ref("x" * 256)[0]
        assert not validate_external_ref("")[0]


class TestDisplayHandle:
    """Tests for normalize_display_handle."""

    @pytest.mark.parametrize(
        ("hint", "expected"),
        [
            ("John Doe!", "john_doe"),
            ("  Alice  ", "alice"),
            ("a--b__c", "a_b_c"),
            ("__x__", "x"),
            ("Мария", "user"),
            ("", "user"),
            (None, "user"),
            ("!!!", "user"),
        ],
    )
    def test_normalization(self, hint, expected):
        """Handles are lowercase [a-z0-9_] with a fallback."""
        assert normalize_display_handle(hint) == expected

    def test_truncated(self):
        """Handles are at most 32 characters."""
        handle = normalize_display_handle("a" * 50)
        assert handle == "a" * 32
