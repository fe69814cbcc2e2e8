from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from dashboard.services.aggregations import (
    ALL_GROUPS,
    GroupOption,
    HistogramBucket,
    RankingEntry,
    SeriesPoint,
    SummaryStatistics,
    TopBottom,
    group_counts,
    group_options,
    histogram,
    latest_value_ranking,
    metric_values,
    resolve_group_labels,
    summary_statistics,
    time_series,
    top_bottom_groups,
)
from dashboard.services.classifier import ColumnClassification, classify_columns
from dashboard.services.formatting import display_cell, format_header
from dashboard.services.row_filter import filter_rows
from dashboard.services.rows import Row, RowSet
from dashboard.services.schema_selector import SchemaSelection
from dashboard.utils.logging import get_logger, log_timing
from dashboard.utils.metrics import measure_view

LOGGER = get_logger(__name__)

PREVIEW_ROW_LIMIT = 500


@dataclass(frozen=True)
class DatasetOverview:
    row_count: int
    column_count: int
    group_column: str | None

    def to_dict(self) -> dict[str, object]:
        return {
            "rowCount": self.row_count,
            "columnCount": self.column_count,
            "groupColumn": self.group_column,
        }


@dataclass(frozen=True)
class DashboardViews:
    overview: DatasetOverview
    selection: SchemaSelection
    ranking: tuple[RankingEntry, ...] = ()
    group_counts: tuple[RankingEntry, ...] = ()
    groups: tuple[GroupOption, ...] = ()
    series: tuple[SeriesPoint, ...] = ()
    histogram: tuple[HistogramBucket, ...] = ()
    statistics: SummaryStatistics = field(default_factory=SummaryStatistics)
    top_bottom: TopBottom = field(default_factory=TopBottom)
    selected_group: str = ALL_GROUPS

    def to_dict(self) -> dict[str, object]:
        return {
            "overview": self.overview.to_dict(),
            "selection": self.selection.to_dict(),
            "selectedGroup": self.selected_group,
            "ranking": [entry.to_dict() for entry in self.ranking],
            "groupCounts": [entry.to_dict() for entry in self.group_counts],
            "groups": [option.to_dict() for option in self.groups],
            "series": [point.to_dict() for point in self.series],
            "histogram": [bucket.to_dict() for bucket in self.histogram],
            "statistics": self.statistics.to_dict(),
            "topBottom": self.top_bottom.to_dict(),
        }


def resolve_selection(
    row_set: RowSet,
    selection: SchemaSelection | None = None,
) -> tuple[ColumnClassification, SchemaSelection]:
    """Classify the snapshot and fill any selection slot that is still unset."""
    classification = classify_columns(row_set.rows, row_set.columns)
    current = selection or SchemaSelection()
    return classification, current.apply_defaults(classification)


def build_views(
    row_set: RowSet,
    selection: SchemaSelection,
    *,
    query: str = "",
    selected_group: str | None = None,
) -> DashboardViews:
    """Compute every derived view for one snapshot, selection, query and group filter."""
    group = selected_group or ALL_GROUPS
    with log_timing(LOGGER, "views.compute", rows=len(row_set), group=group), measure_view(
        "compute", rows=len(row_set)
    ):
        rows = filter_rows(row_set.rows, query)
        labels = resolve_group_labels(row_set.rows, selection.group_column, selection.display_column)
        return DashboardViews(
            overview=DatasetOverview(
                row_count=len(rows),
                column_count=len(row_set.columns),
                group_column=selection.group_column,
            ),
            selection=selection,
            selected_group=group,
            ranking=tuple(
                latest_value_ranking(
                    rows,
                    selection.group_column,
                    selection.metric_column,
                    selection.date_column,
                    selection.display_column,
                    labels=labels,
                )
            ),
            group_counts=tuple(group_counts(rows, selection.group_column)),
            groups=tuple(
                group_options(rows, selection.group_column, selection.display_column, labels=labels)
            ),
            series=tuple(
                time_series(
                    rows,
                    selection.metric_column,
                    selection.date_column,
                    group_column=selection.group_column,
                    selected_group=group,
                )
            ),
            histogram=tuple(histogram(rows, selection.metric_column)),
            statistics=summary_statistics(metric_values(rows, selection.metric_column)),
            top_bottom=top_bottom_groups(
                rows,
                selection.group_column,
                selection.metric_column,
                selection.display_column,
                labels=labels,
            ),
        )


def preview_table(
    rows: Sequence[Row],
    columns: Sequence[str],
    *,
    limit: int = PREVIEW_ROW_LIMIT,
) -> tuple[list[str], list[list[object]]]:
    """Headers and display cells for the data preview, one cell per observed column."""
    headers = [format_header(column) for column in columns]
    body = [[display_cell(row.get(column)) for column in columns] for row in rows[:limit]]
    return headers, body
