from __future__ import annotations

import json
import math
import re
from decimal import ROUND_HALF_UP, Decimal
from numbers import Real

MISSING_NUMBER = "n/a"

_QUANTA = {0: Decimal("1"), 1: Decimal("0.1"), 2: Decimal("0.01")}


def _round_half_up(value: float, digits: int) -> Decimal:
    # Decimal(value) is the exact binary value, so ties round the way browsers do.
    return Decimal(value).quantize(_QUANTA[digits], rounding=ROUND_HALF_UP)


def format_number(value: float | None) -> str:
    """Format a metric value with magnitude-dependent precision.

    |v| >= 1000 uses thousands separators and at most one decimal, >= 100 no
    decimals, >= 10 one decimal, anything smaller two decimals.
    """
    if value is None or not math.isfinite(value):
        return MISSING_NUMBER
    magnitude = abs(value)
    if magnitude >= 1000:
        text = f"{_round_half_up(value, 1):,.1f}"
        return text[:-2] if text.endswith(".0") else text
    if magnitude >= 100:
        return f"{_round_half_up(value, 0):.0f}"
    if magnitude >= 10:
        return f"{_round_half_up(value, 1):.1f}"
    return f"{_round_half_up(value, 2):.2f}"


def format_range(start: float, end: float) -> str:
    return f"{format_number(start)}–{format_number(end)}"


def format_header(key: str) -> str:
    """``geo_place_name`` -> ``Geo Place Name``."""
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), key.replace("_", " "))


def display_cell(value: object) -> object:
    """Render a raw field for the preview table."""
    if value is None:
        return ""
    if isinstance(value, (str, Real)) and not isinstance(value, bool):
        return value
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
