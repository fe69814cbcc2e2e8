from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from dashboard.components.controls import (  # noqa: E402
    build_group_choices,
    compute_views,
    render_dataset_controls,
    summarize_selection,
)
from dashboard.services.aggregations import ALL_GROUPS  # noqa: E402
from dashboard.services.formatting import format_number  # noqa: E402
from dashboard.utils.logging import get_logger, log_event  # noqa: E402
from dashboard.utils.session_state import update_session_state  # noqa: E402

LOGGER = get_logger(__name__)


def main() -> None:
    st.title("Trends")
    loader, selection, query = render_dataset_controls()
    if not loader.rows.rows:
        st.info("Trends will appear once the first page has loaded.")
        return

    overview = compute_views(loader.rows, selection, query, None)
    choices = build_group_choices(overview.groups)
    current = st.session_state.get("selected_group") or ALL_GROUPS
    labels = list(choices)
    index = next((i for i, label in enumerate(labels) if choices[label] == current), 0)
    picked = st.selectbox(selection.group_column or "Group", options=labels, index=index)
    selected_group = choices[picked]
    update_session_state(selected_group=selected_group)

    views = compute_views(loader.rows, selection, query, selected_group)
    st.caption(summarize_selection(selection, query=query, group=selected_group))
    log_event(LOGGER, "streamlit.trends.rendered", points=len(views.series), group=selected_group)

    st.subheader("Daily values with 7-day moving average")
    if views.series:
        frame = pd.DataFrame(
            [
                {"Date": point.date, "Value": point.value, "7-day average": point.moving_average}
                for point in views.series
            ]
        ).set_index("Date")
        st.line_chart(frame)
    else:
        st.info("No date column with parseable values for the current selection.")

    st.subheader("Distribution")
    if views.histogram:
        frame = pd.DataFrame(
            [{"Range": bucket.range_label, "Count": bucket.count} for bucket in views.histogram]
        ).set_index("Range")
        st.bar_chart(frame)

    stats = views.statistics
    cols = st.columns(6)
    for column, (label, value) in zip(
        cols,
        (
            ("Count", f"{stats.count:,}"),
            ("Min", format_number(stats.min)),
            ("Max", format_number(stats.max)),
            ("Mean", format_number(stats.mean)),
            ("Median", format_number(stats.median)),
            ("P95", format_number(stats.p95)),
        ),
        strict=True,
    ):
        column.metric(label, value)

    top_col, bottom_col = st.columns(2)
    top_col.subheader("Highest average")
    top_col.dataframe(
        pd.DataFrame([{"Group": e.label, "Mean": format_number(e.value)} for e in views.top_bottom.top]),
        use_container_width=True,
        hide_index=True,
    )
    bottom_col.subheader("Lowest average")
    bottom_col.dataframe(
        pd.DataFrame([{"Group": e.label, "Mean": format_number(e.value)} for e in views.top_bottom.bottom]),
        use_container_width=True,
        hide_index=True,
    )


if __name__ == "__main__":
    main()
