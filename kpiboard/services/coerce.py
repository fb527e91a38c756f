"""
Tolerant numeric coercion for spreadsheet and model-supplied values.

Anything that is not a number (None, "", "n/a", ...) becomes 0. Strings
may use a decimal comma and thousands separators ("1 250,5", "12.500,00",
"1,250.75").
"""
from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

_NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)?")


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return default if math.isnan(value) or math.isinf(value) else float(value)
    text = str(value).strip().replace(" ", "").replace(" ", "")
    if not text:
        return default
    if "," in text and "." in text:
        # the right-most separator is the decimal mark
        thousands = "." if text.rfind(",") > text.rfind(".") else ","
        text = text.replace(thousands, "")
    for sep in ",.":
        if text.count(sep) > 1:
            text = text.replace(sep, "")
    match = _NUMBER_RE.search(text)
    if match is None:
        return default
    return float(match.group(0).replace(",", "."))


def to_int(value: Any, default: int = 0) -> int:
    """Integer part of the tolerant float parse (2.9 -> 2, like parseInt)."""
    return int(to_float(value, default))


def to_optional_int(value: Any) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    if _NUMBER_RE.search(text) is None:
        return None
    return to_int(text)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_percentage(value: Any) -> int | None:
    """
    Whole-number percentage from a sheet or model value, or None if absent.

    Fractions below 1 are read as percent-formatted cells (0.3 -> 30).
    Rounds half up.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float)) and _NUMBER_RE.search(str(value)) is None:
        return None
    number = to_float(value)
    if abs(number) < 1:
        number *= 100
    return int(Decimal(str(number)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
