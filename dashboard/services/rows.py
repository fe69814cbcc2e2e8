from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

Row = Mapping[str, Any]
"""A flat record. A missing key and a ``None`` value both mean the field is absent."""


def observed_columns(rows: Iterable[Row], seed: Sequence[str] = ()) -> tuple[str, ...]:
    """Union of keys across rows, in first-seen order."""
    seen: dict[str, None] = dict.fromkeys(seed)
    for row in rows:
        for key in row:
            if key not in seen:
                seen[key] = None
    return tuple(seen)


@dataclass(frozen=True, eq=False)
class RowSet:
    """Immutable snapshot of the rows loaded so far.

    Snapshots hash and compare by identity: ``extend`` always produces a new
    object, so a snapshot can key a cache of derived views.
    """

    rows: tuple[Row, ...] = ()
    columns: tuple[str, ...] = ()
    pages_loaded: int = 0
    source: str | None = None

    @classmethod
    def from_rows(cls, rows: Iterable[Row], *, source: str | None = None) -> RowSet:
        materialized = tuple(rows)
        return cls(
            rows=materialized,
            columns=observed_columns(materialized),
            source=source,
        )

    def extend(self, page: Sequence[Row]) -> RowSet:
        return RowSet(
            rows=self.rows + tuple(page),
            columns=observed_columns(page, seed=self.columns),
            pages_loaded=self.pages_loaded + 1,
            source=self.source,
        )

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)
