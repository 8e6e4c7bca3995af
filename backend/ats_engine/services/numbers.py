"""Numeric guards shared by every score, percentage and count in the pipeline.

Model output is untrusted: a field documented as a number can arrive as a
string, a boolean, ``null`` or (after arithmetic) ``NaN``/``Infinity``.
Everything numeric that ends up on an analysis record goes through here so
that no non-finite value is ever persisted.
"""

import math
from typing import Any, TypeVar

T = TypeVar("T")


def safe_number(value: Any, default: T = None) -> float | int | T:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return value


def safe_int(value: Any, default: T = None) -> int | T:
    number = safe_number(value)
    if number is None:
        return default
    # Half-up, so 72.5 scores as 73 rather than banker's 72.
    return int(math.floor(number + 0.5))


def safe_score(value: Any, default: T = None) -> int | T:
    """Integer in 0..100, or ``default`` when the input is not a usable number."""
    number = safe_int(value)
    if number is None:
        return default
    return max(0, min(100, number))


def safe_ratio_percentage(part: Any, whole: Any) -> int | None:
    part_number = safe_number(part)
    whole_number = safe_number(whole)
    if part_number is None or not whole_number:
        return None
    return safe_score(100 * part_number / whole_number)


def scrub_non_finite(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: scrub_non_finite(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [scrub_non_finite(item) for item in value]
    return value


def safe_count(value: Any, default: T = None) -> int | T:
    number = safe_int(value)
    if number is None or number < 0:
        return default
    return number
