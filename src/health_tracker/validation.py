"""Field-level predicates applied before any store mutation."""

import math
from typing import Any

MAX_NAME_LENGTH = 50
MAX_AGE = 120
MAX_WEIGHT_KG = 500.0
MAX_HEIGHT_M = 3.0
MIN_PASSWORD_LENGTH = 3
MAX_PASSWORD_LENGTH = 100

_DATE_LENGTH = 10
_DATE_SEPARATORS = (4, 7)
_DIGITS = frozenset("0123456789")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_valid_name(name: Any) -> bool:
    """Names (and category names) are 1 to 50 characters."""
    return isinstance(name, str) and 0 < len(name) <= MAX_NAME_LENGTH


def is_valid_age(age: Any) -> bool:
    return isinstance(age, int) and not isinstance(age, bool) and 0 <= age <= MAX_AGE


def is_valid_weight(weight_kg: Any) -> bool:
    return _is_number(weight_kg) and 0.0 < weight_kg < MAX_WEIGHT_KG


def is_valid_height(height_m: Any) -> bool:
    return _is_number(height_m) and 0.0 < height_m < MAX_HEIGHT_M


def is_valid_password(password: Any) -> bool:
    return (
        isinstance(password, str)
        and MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH
    )


def is_valid_date(value: Any) -> bool:
    """Check the ``YYYY-MM-DD`` shape only; "2024-13-45" passes."""
    if not isinstance(value, str) or len(value) != _DATE_LENGTH:
        return False
    for i, ch in enumerate(value):
        if i in _DATE_SEPARATORS:
            if ch != "-":
                return False
        elif ch not in _DIGITS:
            return False
    return True


def is_non_negative(value: Any) -> bool:
    """Finite and >= 0; NaN and infinities never reach the snapshot."""
    return _is_number(value) and math.isfinite(value) and value >= 0


def is_valid_minutes(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
