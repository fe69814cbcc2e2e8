from __future__ import annotations

from dashboard.services.aggregations import (
    GroupOption,
    RankingEntry,
    group_counts,
    group_key,
    group_options,
    latest_value_ranking,
    resolve_group_labels,
    top_bottom_groups,
)


def test_group_key_normalises_blank_and_numeric_values() -> None:
    assert group_key(None) is None
    assert group_key("  ") is None
    assert group_key(" Bronx ") == "Bronx"
    assert group_key(101) == "101"


def test_latest_value_ranking_uses_most_recent_reading() -> None:
    rows = [
        {"group": "A", "value": 10, "day": "2023-01-01"},
        {"group": "A", "value": 20, "day": "2023-01-02"},
        {"group": "B", "value": 5, "day": "2023-01-01"},
    ]
    ranking = latest_value_ranking(rows, "group", "value", "day")
    assert ranking == [RankingEntry("A", 20.0), RankingEntry("B", 5.0)]


def test_latest_value_ranking_ignores_older_rows_seen_later() -> None:
    rows = [
        {"group": "A", "value": 20, "day": "2023-01-02"},
        {"group": "A", "value": 10, "day": "2023-01-01"},
    ]
    assert latest_value_ranking(rows, "group", "value", "day") == [RankingEntry("A", 20.0)]


def test_latest_value_ranking_prefers_later_row_on_equal_recency() -> None:
    rows = [
        {"group": "A", "value": 1},
        {"group": "A", "value": 7},
        {"group": "A", "value": "n/a"},
        {"group": "", "value": 100},
    ]
    assert latest_value_ranking(rows, "group", "value") == [RankingEntry("A", 7.0)]


def test_latest_value_ranking_labels_and_limit() -> None:
    rows = [{"id": str(index), "name": f"Place {index}", "value": index} for index in range(15)]
    rows.append({"id": "3", "name": "Renamed", "value": 3})
    ranking = latest_value_ranking(rows, "id", "value", display_column="name")

    assert len(ranking) == 10
    assert ranking[0] == RankingEntry("Place 14", 14.0)
    assert [entry.value for entry in ranking] == sorted((entry.value for entry in ranking), reverse=True)


def test_latest_value_ranking_without_columns_is_empty(air_quality_rows) -> None:
    assert latest_value_ranking(air_quality_rows, None, "data_value") == []
    assert latest_value_ranking([], "geo_place_name", "data_value") == []


def test_resolve_group_labels_keeps_first_non_empty_name() -> None:
    rows = [
        {"id": "1", "name": ""},
        {"id": "1", "name": "First"},
        {"id": "1", "name": "Second"},
        {"id": "2"},
    ]
    assert resolve_group_labels(rows, "id", "name") == {"1": "First"}
    assert resolve_group_labels(rows, "id", None) == {}


def test_group_options_order_by_frequency() -> None:
    rows = [{"id": "b"}, {"id": "a"}, {"id": "a"}, {"id": "c", "name": "Cee"}, {"id": None}]
    options = group_options(rows, "id", "name")
    assert options == [GroupOption("a", "a"), GroupOption("b", "b"), GroupOption("c", "Cee")]


def test_group_options_cap_at_fifty() -> None:
    rows = [{"id": str(index)} for index in range(80)]
    assert len(group_options(rows, "id")) == 50


def test_group_counts(air_quality_rows) -> None:
    counts = group_counts(air_quality_rows, "geo_place_name")
    assert [entry.value for entry in counts] == [8.0, 8.0, 8.0]
    assert counts[0].label == "Kingsbridge - Riverdale"
    assert group_counts(air_quality_rows, None) == []


def test_top_bottom_groups_by_mean() -> None:
    rows = [{"g": name, "v": value} for name, value in zip("abcdefg", range(7), strict=True)]
    rows.append({"g": "a", "v": -2})
    result = top_bottom_groups(rows, "g", "v", limit=3)

    assert [entry.label for entry in result.top] == ["g", "f", "e"]
    assert [entry.label for entry in result.bottom] == ["a", "b", "c"]
    assert result.bottom[0].value == -1.0


def test_top_bottom_groups_empty() -> None:
    result = top_bottom_groups([], "g", "v")
    assert result.top == () and result.bottom == ()
    assert result.to_dict() == {"top": [], "bottom": []}
