from __future__ import annotations

import re
from typing import Union

from ..core.exceptions import ValidationError

_NON_DIGIT = re.compile(r"\D")


def parse_currency(value: Union[str, int, float, None]) -> int:
    """Sanitize user-typed money: strip every non-digit, fall back to 0.

    Numbers coming from JSON are taken as amounts, not as text: ``480000.0``
    is 480000. Fractional amounts and booleans are rejected.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValidationError("Số tiền không hợp lệ")
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("Số tiền không hợp lệ")
        return max(int(value), 0)
    digits = _NON_DIGIT.sub("", str(value))
    return int(digits) if digits else 0


def format_currency(value: Union[str, int, None]) -> str:
    """Group thousands with '.', e.g. 1500000 -> '1.500.000'."""
    num = parse_currency(value) if not isinstance(value, int) else value
    if not num:
        return "0"
    return f"{num:,}".replace(",", ".")
