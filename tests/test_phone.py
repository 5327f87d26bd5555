"""Tests for phone number normalization."""
import pytest

from costume_contest.utils.exceptions import ValidationRejected
from costume_contest.utils.phone import (
    canonical_phone,
    format_phone,
    mask_phone,
    normalize_phone,
    validate_phone,
)


@pytest.mark.parametrize(
    "raw",
    ["0501234567", "050-123-4567", "050 1234567", "+972501234567", "972-50-123-4567"],
)
def test_equivalent_spellings_share_one_identity(raw):
    assert canonical_phone(raw) == "0501234567"


def test_normalize_strips_non_digits_only():
    assert normalize_phone("(050) 123-4567") == "0501234567"
    assert normalize_phone(None) == ""


@pytest.mark.parametrize("raw", ["", "12345", "0401234567", "05012345678", "abc"])
def test_invalid_numbers_are_rejected(raw):
    assert validate_phone(raw) is False
    with pytest.raises(ValidationRejected) as exc_info:
        canonical_phone(raw)
    assert exc_info.value.code == "invalid_phone"


def test_format_phone_uses_display_form():
    assert format_phone("+972501234567") == "050-1234567"
    assert format_phone("123") == "123"


def test_mask_phone_hides_the_middle():
    assert mask_phone("0501234567") == "050****567"
    assert mask_phone(None) == "<missing>"
