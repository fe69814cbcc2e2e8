from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Literal

from dashboard.services.classifier import ColumnClassification

Slot = Literal["group", "metric", "date", "display"]

GROUP_PREFERENCES: tuple[str, ...] = (
    "borough",
    "geo_place_name",
    "geo_join_id",
    "neighborhood",
    "uhf42",
    "county",
    "city",
    "state",
    "site_name",
    "location",
    "name",
)
METRIC_PREFERENCES: tuple[str, ...] = (
    "aqi",
    "air_quality_index",
    "pm25",
    "pm2_5",
    "pm2.5",
    "no2",
    "o3",
    "so2",
    "co",
    "data_value",
    "value",
    "score",
)
DATE_PREFERENCES: tuple[str, ...] = (
    "date",
    "start_date",
    "date_local",
    "datetime",
    "timestamp",
    "time",
    "time_period",
    "observation_date",
    "measurement_date",
    "created_date",
)
DISPLAY_PREFERENCES: tuple[str, ...] = (
    "geo_place_name",
    "name",
    "location_name",
    "site_name",
    "display_name",
    "label",
    "title",
)


class SelectionError(ValueError):
    """Raised when a column choice does not belong to the slot's column class."""


def _candidates(slot: Slot, classification: ColumnClassification) -> tuple[str, ...]:
    if slot == "metric":
        return classification.numbers
    if slot == "date":
        return classification.dates
    return classification.strings


def find_preferred(columns: Sequence[str], preferences: Sequence[str]) -> str | None:
    """First column matching a preference name case-insensitively, in preference order."""
    lowered = {}
    for column in columns:
        lowered.setdefault(column.lower(), column)
    for preference in preferences:
        match = lowered.get(preference.lower())
        if match is not None:
            return match
    return None


def default_group_column(classification: ColumnClassification) -> str | None:
    strings = classification.strings
    return find_preferred(strings, GROUP_PREFERENCES) or (strings[0] if strings else None)


def default_metric_column(classification: ColumnClassification) -> str | None:
    numbers = classification.numbers
    return find_preferred(numbers, METRIC_PREFERENCES) or (numbers[0] if numbers else None)


def default_date_column(classification: ColumnClassification) -> str | None:
    dates = classification.dates
    return find_preferred(dates, DATE_PREFERENCES) or (dates[0] if dates else None)


def default_display_column(classification: ColumnClassification) -> str | None:
    return find_preferred(classification.strings, DISPLAY_PREFERENCES)


_DEFAULTS = {
    "group": default_group_column,
    "metric": default_metric_column,
    "date": default_date_column,
    "display": default_display_column,
}
_FIELDS = {
    "group": "group_column",
    "metric": "metric_column",
    "date": "date_column",
    "display": "display_column",
}


@dataclass(frozen=True)
class SchemaSelection:
    """Group, metric, date and display-name columns.

    Each slot is initialised at most once: ``apply_defaults`` only fills slots
    that are still ``None``, so re-running it after more rows arrive never
    replaces a column the user (or an earlier pass) already picked.
    """

    group_column: str | None = None
    metric_column: str | None = None
    date_column: str | None = None
    display_column: str | None = None
    resolved: frozenset[str] = frozenset()

    def get(self, slot: Slot) -> str | None:
        return getattr(self, _FIELDS[slot])

    def is_set(self, slot: Slot) -> bool:
        return slot in self.resolved

    def choose(self, slot: Slot, column: str | None, classification: ColumnClassification) -> SchemaSelection:
        if slot not in _FIELDS:
            raise SelectionError(f"Unknown selection slot '{slot}'.")
        if column is not None and column not in _candidates(slot, classification):
            raise SelectionError(f"Column '{column}' cannot be used as the {slot} column.")
        return replace(self, **{_FIELDS[slot]: column, "resolved": self.resolved | {slot}})

    def apply_defaults(self, classification: ColumnClassification) -> SchemaSelection:
        updates: dict[str, object] = {}
        resolved = set(self.resolved)
        for slot, resolver in _DEFAULTS.items():
            if slot in resolved:
                continue
            column = resolver(classification)
            if column is None:
                continue
            updates[_FIELDS[slot]] = column
            resolved.add(slot)
        if not updates:
            return self
        return replace(self, **updates, resolved=frozenset(resolved))

    def to_dict(self) -> dict[str, str | None]:
        return {
            "groupColumn": self.group_column,
            "metricColumn": self.metric_column,
            "dateColumn": self.date_column,
            "displayColumn": self.display_column,
        }


def apply_defaults(selection: SchemaSelection, classification: ColumnClassification) -> SchemaSelection:
    return selection.apply_defaults(classification)
