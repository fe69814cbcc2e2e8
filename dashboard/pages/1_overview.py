from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from dashboard.components.controls import (  # noqa: E402
    compute_views,
    render_dataset_controls,
    summarize_selection,
)
from dashboard.services.aggregations import RankingEntry  # noqa: E402
from dashboard.services.formatting import format_number  # noqa: E402
from dashboard.services.row_filter import filter_rows  # noqa: E402
from dashboard.services.views import preview_table  # noqa: E402
from dashboard.utils.logging import get_logger, log_event  # noqa: E402

LOGGER = get_logger(__name__)


def _ranking_dataframe(entries: tuple[RankingEntry, ...], value_label: str) -> pd.DataFrame:
    if not entries:
        return pd.DataFrame(columns=["Label", value_label])
    return pd.DataFrame(
        [{"Label": entry.label, value_label: entry.value} for entry in entries]
    ).set_index("Label")


def main() -> None:
    st.title("Overview")
    loader, selection, query = render_dataset_controls()
    views = compute_views(loader.rows, selection, query, None)
    st.caption(summarize_selection(selection, query=query))
    log_event(
        LOGGER,
        "streamlit.overview.rendered",
        rows=views.overview.row_count,
        ranking=len(views.ranking),
    )

    if not loader.rows.rows:
        st.info("Rows will appear once the first page has loaded.")
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Rows", f"{views.overview.row_count:,}")
    col2.metric("Columns", views.overview.column_count)
    col3.metric("Grouped By", views.overview.group_column or "—")

    if views.ranking:
        st.subheader(f"Latest {selection.metric_column} by {selection.group_column}")
        st.bar_chart(_ranking_dataframe(views.ranking, "Value"), horizontal=True)
        st.dataframe(
            pd.DataFrame(
                [{"Group": entry.label, "Latest": format_number(entry.value)} for entry in views.ranking]
            ),
            use_container_width=True,
            hide_index=True,
        )

    if views.group_counts:
        st.subheader(f"Top {len(views.group_counts)} by {selection.group_column}")
        st.bar_chart(_ranking_dataframe(views.group_counts, "Rows"), horizontal=True)

    st.subheader("Data Preview")
    headers, body = preview_table(filter_rows(loader.rows.rows, query), loader.rows.columns)
    st.dataframe(pd.DataFrame(body, columns=headers), use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
