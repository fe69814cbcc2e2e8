from __future__ import annotations

import math
from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

from dashboard.services.classifier import coerce_number, parse_timestamp, timestamp_millis
from dashboard.services.formatting import format_range
from dashboard.services.rows import Row

ALL_GROUPS = "__all__"
RANKING_LIMIT = 10
GROUP_OPTION_LIMIT = 50
MOVING_AVERAGE_WINDOW = 7
HISTOGRAM_BINS = 20
PERCENTILE = 0.95
TOP_BOTTOM_LIMIT = 5


@dataclass(frozen=True)
class RankingEntry:
    label: str
    value: float

    def to_dict(self) -> dict[str, object]:
        return {"label": self.label, "value": self.value}


@dataclass(frozen=True)
class GroupOption:
    id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class SeriesPoint:
    date: str
    value: float
    moving_average: float | None = None

    def to_dict(self) -> dict[str, object]:
        return {"date": self.date, "value": self.value, "movingAverage": self.moving_average}


@dataclass(frozen=True)
class HistogramBucket:
    range_label: str
    start: float
    end: float
    count: int

    def to_dict(self) -> dict[str, object]:
        return {
            "rangeLabel": self.range_label,
            "start": self.start,
            "end": self.end,
            "count": self.count,
        }


@dataclass(frozen=True)
class SummaryStatistics:
    count: int = 0
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    p95: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "count": self.count,
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "median": self.median,
            "p95": self.p95,
        }


@dataclass(frozen=True)
class TopBottom:
    top: tuple[RankingEntry, ...] = ()
    bottom: tuple[RankingEntry, ...] = ()

    def to_dict(self) -> dict[str, list[dict[str, object]]]:
        return {
            "top": [entry.to_dict() for entry in self.top],
            "bottom": [entry.to_dict() for entry in self.bottom],
        }


def group_key(value: object) -> str | None:
    """Normalise a group field to its key; ``None`` and blank strings have no group."""
    if value is None:
        return None
    key = value.strip() if isinstance(value, str) else str(value)
    return key or None


def resolve_group_labels(
    rows: Sequence[Row],
    group_column: str | None,
    display_column: str | None,
) -> dict[str, str]:
    """Map each group key to the first non-empty display name seen for it."""
    labels: dict[str, str] = {}
    if not group_column or not display_column:
        return labels
    for row in rows:
        key = group_key(row.get(group_column))
        if key is None or key in labels:
            continue
        name = row.get(display_column)
        if isinstance(name, str) and name.strip():
            labels[key] = name.strip()
    return labels


def _labels_for(
    rows: Sequence[Row],
    group_column: str,
    display_column: str | None,
    labels: dict[str, str] | None,
) -> dict[str, str]:
    if labels is not None:
        return labels
    return resolve_group_labels(rows, group_column, display_column)


def latest_value_ranking(
    rows: Sequence[Row],
    group_column: str | None,
    metric_column: str | None,
    date_column: str | None = None,
    display_column: str | None = None,
    *,
    labels: dict[str, str] | None = None,
    limit: int = RANKING_LIMIT,
) -> list[RankingEntry]:
    """Most recent metric reading per group, highest first.

    Recency is the parsed date column (0 when missing), and an equal timestamp
    lets the later row win, so without a date column the last row per group counts.
    """
    if not group_column or not metric_column:
        return []
    latest: dict[str, tuple[int, float]] = {}
    for row in rows:
        key = group_key(row.get(group_column))
        value = coerce_number(row.get(metric_column))
        if key is None or value is None:
            continue
        recency = timestamp_millis(row.get(date_column)) if date_column else 0
        current = latest.get(key)
        if current is None or recency >= current[0]:
            latest[key] = (recency, value)

    names = _labels_for(rows, group_column, display_column, labels)
    entries = [RankingEntry(label=names.get(key, key), value=value) for key, (_, value) in latest.items()]
    entries.sort(key=lambda entry: entry.value, reverse=True)
    return entries[:limit]


def group_options(
    rows: Sequence[Row],
    group_column: str | None,
    display_column: str | None = None,
    *,
    labels: dict[str, str] | None = None,
    limit: int = GROUP_OPTION_LIMIT,
) -> list[GroupOption]:
    """Most frequent group values for the group picker; ``ALL_GROUPS`` is implied."""
    if not group_column:
        return []
    counts = Counter(
        key for key in (group_key(row.get(group_column)) for row in rows) if key is not None
    )
    names = _labels_for(rows, group_column, display_column, labels)
    return [GroupOption(id=key, name=names.get(key, key)) for key, _ in counts.most_common(limit)]


def group_counts(
    rows: Sequence[Row],
    group_column: str | None,
    *,
    limit: int = RANKING_LIMIT,
) -> list[RankingEntry]:
    """Row count per group, largest first."""
    if not group_column:
        return []
    counts = Counter(
        key for key in (group_key(row.get(group_column)) for row in rows) if key is not None
    )
    return [RankingEntry(label=key, value=float(count)) for key, count in counts.most_common(limit)]


def moving_averages(values: Sequence[float], window: int = MOVING_AVERAGE_WINDOW) -> list[float | None]:
    """Trailing mean over the last ``window`` values; ``None`` until the window is full."""
    averages: list[float | None] = []
    running = 0.0
    for index, value in enumerate(values):
        running += value
        if index >= window:
            running -= values[index - window]
        averages.append(running / window if index >= window - 1 else None)
    return averages


def time_series(
    rows: Sequence[Row],
    metric_column: str | None,
    date_column: str | None,
    *,
    group_column: str | None = None,
    selected_group: str | None = None,
    window: int = MOVING_AVERAGE_WINDOW,
) -> list[SeriesPoint]:
    """One point per UTC calendar day with a trailing moving average.

    Later rows for the same day overwrite earlier ones. The window runs over the
    days present in the data; missing calendar days are not filled.
    """
    if not metric_column or not date_column:
        return []
    filter_group = selected_group not in (None, ALL_GROUPS) and bool(group_column)
    daily: dict[str, float] = {}
    for row in rows:
        if filter_group and group_key(row.get(group_column)) != selected_group:
            continue
        stamp = parse_timestamp(row.get(date_column))
        value = coerce_number(row.get(metric_column))
        if stamp is None or value is None:
            continue
        daily[stamp.strftime("%Y-%m-%d")] = value

    days = sorted(daily)
    values = [daily[day] for day in days]
    averages = moving_averages(values, window)
    return [
        SeriesPoint(date=day, value=value, moving_average=average)
        for day, value, average in zip(days, values, averages, strict=True)
    ]


def metric_values(rows: Sequence[Row], metric_column: str | None) -> list[float]:
    if not metric_column:
        return []
    values: list[float] = []
    for row in rows:
        value = coerce_number(row.get(metric_column))
        if value is not None:
            values.append(value)
    return values


def histogram(
    rows: Sequence[Row],
    metric_column: str | None,
    *,
    bins: int = HISTOGRAM_BINS,
) -> list[HistogramBucket]:
    """Equal-width buckets over the observed ``[min, max]`` of the metric."""
    values = metric_values(rows, metric_column)
    if not values:
        return []
    low = min(values)
    high = max(values)
    width = (high - low) / bins if high != low else 1.0
    counts = [0] * bins
    for value in values:
        index = math.floor((value - low) / width)
        counts[min(max(index, 0), bins - 1)] += 1

    buckets: list[HistogramBucket] = []
    for index, count in enumerate(counts):
        start = low + index * width
        end = start + width
        buckets.append(HistogramBucket(range_label=format_range(start, end), start=start, end=end, count=count))
    return buckets


def summary_statistics(values: Sequence[float]) -> SummaryStatistics:
    """Count, extremes, mean, median and nearest-rank p95 (no interpolation)."""
    if not values:
        return SummaryStatistics()
    ordered = sorted(values)
    count = len(ordered)
    middle = count // 2
    if count % 2:
        median = ordered[middle]
    else:
        median = (ordered[middle - 1] + ordered[middle]) / 2
    p95_index = min(math.floor(count * PERCENTILE), count - 1)
    return SummaryStatistics(
        count=count,
        min=ordered[0],
        max=ordered[-1],
        mean=sum(ordered) / count,
        median=median,
        p95=ordered[p95_index],
    )


def metric_statistics(rows: Sequence[Row], metric_column: str | None) -> SummaryStatistics:
    return summary_statistics(metric_values(rows, metric_column))


def top_bottom_groups(
    rows: Sequence[Row],
    group_column: str | None,
    metric_column: str | None,
    display_column: str | None = None,
    *,
    labels: dict[str, str] | None = None,
    limit: int = TOP_BOTTOM_LIMIT,
) -> TopBottom:
    """Groups with the highest and lowest mean metric; ``bottom`` starts with the lowest."""
    if not group_column or not metric_column:
        return TopBottom()
    grouped: defaultdict[str, list[float]] = defaultdict(list)
    for row in rows:
        key = group_key(row.get(group_column))
        value = coerce_number(row.get(metric_column))
        if key is None or value is None:
            continue
        grouped[key].append(value)

    names = _labels_for(rows, group_column, display_column, labels)
    means = [
        RankingEntry(label=names.get(key, key), value=sum(values) / len(values))
        for key, values in grouped.items()
    ]
    means.sort(key=lambda entry: entry.value, reverse=True)
    bottom = list(reversed(means[-limit:])) if means else []
    return TopBottom(top=tuple(means[:limit]), bottom=tuple(bottom))
