from __future__ import annotations

import pytest

from src.shift_attendance.shift_attendance.common.money import format_currency, parse_currency
from src.shift_attendance.shift_attendance.core.exceptions import ValidationError


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 0),
        ("", 0),
        ("abc", 0),
        ("1.500.000đ", 1_500_000),
        ("200,000", 200_000),
        (480000, 480_000),
        (-5, 0),
        (480000.0, 480_000),
        (0.0, 0),
    ],
)
def test_parse_currency(raw, expected):
    assert parse_currency(raw) == expected


@pytest.mark.parametrize("raw", [True, False, 1500.5, float("nan"), float("inf")])
def test_parse_currency_rejects_non_amounts(raw):
    with pytest.raises(ValidationError):
        parse_currency(raw)


def test_format_currency():
    assert format_currency(1_500_000) == "1.500.000"
    assert format_currency("abc") == "0"
    assert format_currency(None) == "0"
