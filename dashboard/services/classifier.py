from __future__ import annotations

import math
import re
import warnings
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from numbers import Real

import pandas as pd

from dashboard.services.rows import Row, observed_columns

DATE_ROW_THRESHOLD = 6
"""Rows that must hold a parseable, non-numeric date string before a column counts as date-like."""

_DECIMAL_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_YEAR_PATTERN = re.compile(r"\d{4}", re.ASCII)


@dataclass(frozen=True)
class ColumnClassification:
    strings: tuple[str, ...] = ()
    numbers: tuple[str, ...] = ()
    dates: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "strings": list(self.strings),
            "numbers": list(self.numbers),
            "dates": list(self.dates),
        }


def coerce_number(value: object) -> float | None:
    """Return ``value`` as a finite float, or ``None`` when it is not numeric.

    Accepts real numbers (booleans excluded) and plain ASCII decimal strings with an
    optional sign and exponent, after stripping whitespace. Underscore separators,
    non-ASCII digits, NaN and infinities are rejected.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Real):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _DECIMAL_PATTERN.fullmatch(text):
            return None
        number = float(text)
    else:
        return None
    return number if math.isfinite(number) else None


def is_numeric_string(value: str) -> bool:
    return coerce_number(value) is not None


def parse_timestamp(value: object) -> pd.Timestamp | None:
    """Parse a date/time string into a UTC timestamp; anything unparseable is ``None``.

    Naive values are read as UTC so the calendar day never depends on the host timezone.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    return _parse_text(text)


@lru_cache(maxsize=8192)
def _parse_text(text: str) -> pd.Timestamp | None:
    # Without a four-digit year pandas fills in the current one or resolves words like "now"
    # against the wall clock, so the result would change from day to day.
    if not _YEAR_PATTERN.search(text):
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    if parsed.tzinfo is None:
        return parsed.tz_localize("UTC")
    return parsed.tz_convert("UTC")


def timestamp_millis(value: object) -> int:
    """Epoch milliseconds of a parsed date value, 0 when absent or unparseable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return 0
    return int(parsed.value // 1_000_000)


def is_date_string(value: object) -> bool:
    if not isinstance(value, str) or is_numeric_string(value):
        return False
    return parse_timestamp(value) is not None


def classify_columns(
    rows: Sequence[Row],
    columns: Sequence[str] | None = None,
    *,
    date_threshold: int = DATE_ROW_THRESHOLD,
) -> ColumnClassification:
    """Flag each column as string-like, numeric-like and/or date-like.

    Classes overlap: a column of ISO date strings is both string-like and
    date-like. Date scanning for a column stops once ``date_threshold`` rows
    have qualified.
    """
    candidates = tuple(columns) if columns is not None else observed_columns(rows)
    strings: list[str] = []
    numbers: list[str] = []
    dates: list[str] = []

    for column in candidates:
        has_string = False
        has_number = False
        date_hits = 0
        for row in rows:
            value = row.get(column)
            if value is None:
                continue
            if not has_number and coerce_number(value) is not None:
                has_number = True
            if isinstance(value, str):
                if not has_string and value.strip():
                    has_string = True
                if date_hits < date_threshold and is_date_string(value):
                    date_hits += 1
            if has_string and has_number and date_hits >= date_threshold:
                break
        if has_string:
            strings.append(column)
        if has_number:
            numbers.append(column)
        if date_hits >= date_threshold:
            dates.append(column)

    return ColumnClassification(strings=tuple(strings), numbers=tuple(numbers), dates=tuple(dates))
