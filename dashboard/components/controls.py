from __future__ import annotations

import asyncio
from collections.abc import Sequence

import streamlit as st

from dashboard.services.aggregations import ALL_GROUPS, GroupOption
from dashboard.services.classifier import ColumnClassification
from dashboard.services.row_source import PagedRowLoader, RowSource
from dashboard.services.rows import RowSet
from dashboard.services.schema_selector import SchemaSelection, SelectionError, Slot
from dashboard.services.views import DashboardViews, build_views, resolve_selection
from dashboard.utils.caching import cache_data, cache_resource
from dashboard.utils.logging import get_logger, log_event
from dashboard.utils.session_state import (
    SessionStore,
    confirm_reset,
    ensure_session_defaults,
    request_reset,
    update_session_state,
)

LOGGER = get_logger(__name__)

ALL_GROUPS_LABEL = "All"
NONE_LABEL = "(none)"
SLOT_PICKER_KEYS = ("picker_group", "picker_metric", "picker_date")
RESET_KEYS = ("schema_selection", "selected_group", *SLOT_PICKER_KEYS)


def build_group_choices(groups: Sequence[GroupOption]) -> dict[str, str]:
    """Selectbox label -> group id, with the "All" sentinel first."""
    choices = {ALL_GROUPS_LABEL: ALL_GROUPS}
    for option in groups:
        label = option.name if option.name == option.id else f"{option.name} ({option.id})"
        choices[label] = option.id
    return choices


def summarize_selection(selection: SchemaSelection, *, query: str = "", group: str | None = None) -> str:
    """One-line description of the active columns and filters."""
    parts: list[str] = []
    if selection.group_column:
        parts.append(f"group={selection.group_column}")
    if selection.metric_column:
        parts.append(f"metric={selection.metric_column}")
    if selection.date_column:
        parts.append(f"date={selection.date_column}")
    if group and group != ALL_GROUPS:
        parts.append(f"only={group}")
    if query.strip():
        parts.append(f'search="{query}"')
    return ", ".join(parts) if parts else "No columns selected"


@cache_resource
def get_loader() -> PagedRowLoader:
    return PagedRowLoader(RowSource())


@cache_data
def compute_views(
    row_set: RowSet,
    selection: SchemaSelection,
    query: str,
    selected_group: str | None,
) -> DashboardViews:
    return build_views(row_set, selection, query=query, selected_group=selected_group)


def ensure_first_page(loader: PagedRowLoader) -> None:
    if loader.rows.pages_loaded == 0 and loader.error is None:
        with st.spinner("Loading…"):
            asyncio.run(loader.load_more())


def render_load_more(loader: PagedRowLoader) -> None:
    state = loader.state()
    label = f"Load more rows ({state.row_count:,} loaded)"
    if st.sidebar.button(label, disabled=not loader.can_load_more()):
        asyncio.run(loader.load_more())
        log_event(LOGGER, "streamlit.rows.load_more", rows=len(loader.rows))
        st.rerun()
    if not state.has_more:
        st.sidebar.caption("All pages loaded.")


def _column_picker(
    slot: Slot,
    label: str,
    candidates: Sequence[str],
    selection: SchemaSelection,
    classification: ColumnClassification,
) -> SchemaSelection:
    options = [NONE_LABEL, *candidates]
    current = selection.get(slot)
    index = options.index(current) if current in options else 0
    picked = st.sidebar.selectbox(label, options=options, index=index, key=f"picker_{slot}")
    column = None if picked == NONE_LABEL else picked
    if column == current:
        return selection
    try:
        return selection.choose(slot, column, classification)
    except SelectionError as error:
        st.sidebar.warning(str(error))
        return selection


def apply_pending_reset(store: SessionStore | None = None) -> bool:
    """Drop column choices and picker widgets once a reset has been requested."""
    state = ensure_session_defaults(store)
    reason = state.get("reset_reason")
    if not confirm_reset(state, keys=RESET_KEYS):
        return False
    log_event(LOGGER, "streamlit.columns.reset", reason=reason)
    return True


def render_reset_button(state: SessionStore) -> None:
    if st.sidebar.button("Reset columns"):
        request_reset(state, reason="sidebar")
        st.rerun()
    if state.get("last_reset_at") is not None:
        st.sidebar.caption(f"Columns reset at {state['last_reset_at']:%H:%M:%S} UTC.")


def render_dataset_controls() -> tuple[PagedRowLoader, SchemaSelection, str]:
    """Sidebar search, column pickers and paging; returns loader, selection and query."""
    state = ensure_session_defaults()
    apply_pending_reset(state)
    loader = get_loader()
    ensure_first_page(loader)
    if loader.error:
        st.error(f"Failed to load: {loader.error}")

    classification, selection = resolve_selection(loader.rows, state["schema_selection"])
    query = st.sidebar.text_input("Search", value=state["query"], placeholder="Search…")
    selection = _column_picker("group", "Group by", classification.strings, selection, classification)
    selection = _column_picker("metric", "Metric", classification.numbers, selection, classification)
    selection = _column_picker("date", "Date", classification.dates, selection, classification)
    update_session_state(schema_selection=selection, query=query)
    render_reset_button(state)
    render_load_more(loader)
    return loader, selection, query
