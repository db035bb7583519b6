# src/fundscreen/utils/numbers.py

from __future__ import annotations

import math
from typing import Any

MISSING_TOKENS = {"", "-", "n/a"}


def _is_bad_number(x: Any) -> bool:
    """NaN/Inf cannot be stored in a real column nor serialized as JSON."""
    return isinstance(x, float) and (math.isnan(x) or math.isinf(x))


def _is_canonical_decimal(text: str) -> bool:
    if "," in text or text.count(".") != 1:
        return False
    fraction = text.split(".", 1)[1]
    return not (len(fraction) == 3 and fraction.isdigit())


def parse_br_number(value: str | None) -> float | None:
    """
    Convert a Brazilian-formatted cell to float.

    - "1.234,56" -> 1234.56
    - "15,3%"    -> 15.3
    - "7" / "7.0" -> 7.0
    - "", "-", "n/a" or any unparseable residue -> None

    A lone dot with no comma and not followed by a 3-digit group is read as
    an already canonical decimal point, so normalized output parses back
    to itself. Never raises.
    """
    if value is None:
        return None

    text = str(value).strip()
    if text.lower() in MISSING_TOKENS:
        return None

    cleaned = text.replace("%", "").strip()
    if not _is_canonical_decimal(cleaned):
        cleaned = cleaned.replace(".", "")   # thousands separators
        cleaned = cleaned.replace(",", ".", 1)  # decimal separator

    try:
        parsed = float(cleaned)
    except ValueError:
        return None

    if _is_bad_number(parsed):
        return None
    return parsed


def safe_float_or_none(x: Any) -> float | None:
    """
    Coerce to a finite float for a nullable numeric column.

    Values that cannot be represented (None, text, NaN/Inf) become None.
    """
    if x is None:
        return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    if _is_bad_number(v):
        return None
    return v


def invert_or_none(x: float | None) -> float | None:
    """1/x, or None when x is missing or zero (EV/EBIT -> EBIT/EV)."""
    if not x:
        return None
    return safe_float_or_none(1.0 / x)
