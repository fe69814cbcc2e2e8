from __future__ import annotations

from dashboard.components.controls import (
    ALL_GROUPS_LABEL,
    apply_pending_reset,
    build_group_choices,
    summarize_selection,
)
from dashboard.services.aggregations import ALL_GROUPS, GroupOption
from dashboard.services.schema_selector import SchemaSelection
from dashboard.utils.session_state import request_reset, update_session_state


def test_group_choices_start_with_all_sentinel() -> None:
    choices = build_group_choices([GroupOption("101", "Kingsbridge"), GroupOption("Bronx", "Bronx")])
    assert list(choices.items()) == [
        (ALL_GROUPS_LABEL, ALL_GROUPS),
        ("Kingsbridge (101)", "101"),
        ("Bronx", "Bronx"),
    ]


def test_summarize_selection_lists_active_parts() -> None:
    selection = SchemaSelection(group_column="borough", metric_column="aqi", date_column="date")
    summary = summarize_selection(selection, query="park", group="Bronx")
    assert summary == 'group=borough, metric=aqi, date=date, only=Bronx, search="park"'


def test_summarize_selection_ignores_all_groups() -> None:
    assert summarize_selection(SchemaSelection(), group=ALL_GROUPS) == "No columns selected"


def test_pending_reset_clears_column_choices_and_pickers() -> None:
    store: dict[str, object] = {}
    chosen = SchemaSelection(group_column="borough", resolved=frozenset({"group"}))
    update_session_state(store, query="park", schema_selection=chosen, selected_group="Bronx")
    store["picker_group"] = "borough"

    assert apply_pending_reset(store) is False
    assert store["schema_selection"] is chosen

    request_reset(store, reason="sidebar")
    assert apply_pending_reset(store) is True
    assert store["schema_selection"] == SchemaSelection()
    assert store["selected_group"] is None
    assert "picker_group" not in store
    assert store["query"] == "park"
    assert store["last_reset_at"] is not None
