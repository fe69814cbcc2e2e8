from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Ensure package imports work when launched as a file via `streamlit run dashboard/main.py`.
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from dashboard.utils.config import get_data_root, load_source_config  # noqa: E402

APP_TITLE = "NYC Air Quality"


def prepare_data_directories() -> Path:
    data_root = get_data_root()
    (data_root / "logs").mkdir(parents=True, exist_ok=True)
    return data_root


def render_home() -> None:
    config = load_source_config()
    st.title(APP_TITLE)
    st.caption(f"Live data from [{config.dataset_page}]({config.dataset_page}).")

    st.subheader("Getting Started")
    st.write(
        "Rows are fetched page by page from the open data endpoint. Column types are "
        "inferred from the values, and sensible grouping, metric and date columns are "
        "picked automatically until you choose your own."
    )
    st.info(f"Source: `{config.url}` · page size {config.page_size}")

    st.divider()
    st.markdown(
        """
        ### Pages
        1. **Overview**: search rows, see the latest reading per group and preview the data.
        2. **Trends**: daily series with a 7-day moving average, distribution and summary statistics.
        """
    )


def run() -> None:
    st.set_page_config(page_title=APP_TITLE, page_icon="🌫️", layout="wide")
    prepare_data_directories()

    with st.sidebar:
        st.header("Navigation")
        st.markdown(
            "- **Overview**: Rankings, row counts and the data preview.\n"
            "- **Trends**: Time series, histogram and top/bottom groups."
        )
        st.divider()
        st.caption("Views are recomputed from the loaded rows on every change.")

    render_home()


if __name__ == "__main__":
    run()
