from __future__ import annotations

from collections.abc import Sequence

from dashboard.services.rows import Row


def row_matches(row: Row, needle: str) -> bool:
    return any(isinstance(value, str) and needle in value.lower() for value in row.values())


def filter_rows(rows: Sequence[Row], query: str | None) -> Sequence[Row]:
    """Rows where any string field contains ``query``, case-insensitively.

    A blank query returns ``rows`` itself, not a copy.
    """
    if not query or not query.strip():
        return rows
    needle = query.lower()
    return [row for row in rows if row_matches(row, needle)]
