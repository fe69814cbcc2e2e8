from __future__ import annotations

import pytest

from dashboard.utils.config import (
    DEFAULT_PAGE_SIZE,
    get_source_url,
    load_source_config,
)


def test_defaults_point_at_air_quality_dataset(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DASHBOARD_SOURCE_URL",
        "DASHBOARD_DATASET_ID",
        "DASHBOARD_PAGE_SIZE",
        "DASHBOARD_REQUEST_TIMEOUT",
        "DASHBOARD_MAX_PAGES",
    ):
        monkeypatch.delenv(name, raising=False)

    config = load_source_config()
    assert config.url == "https://data.cityofnewyork.us/resource/c3uy-2p5r.json"
    assert config.page_size == DEFAULT_PAGE_SIZE == 1000
    assert config.max_pages is None
    assert config.dataset_page == "https://data.cityofnewyork.us/resource/c3uy-2p5r"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DASHBOARD_SOURCE_URL", raising=False)
    monkeypatch.setenv("DASHBOARD_DATASET_ID", "abcd-1234")
    monkeypatch.setenv("DASHBOARD_PAGE_SIZE", "200")
    monkeypatch.setenv("DASHBOARD_REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("DASHBOARD_MAX_PAGES", "3")

    config = load_source_config()
    assert config.url.endswith("/resource/abcd-1234.json")
    assert config.page_size == 200
    assert config.timeout_seconds == 2.5
    assert config.max_pages == 3

    monkeypatch.setenv("DASHBOARD_SOURCE_URL", "https://example.test/rows.json")
    assert get_source_url() == "https://example.test/rows.json"


def test_page_size_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHBOARD_PAGE_SIZE", "0")
    with pytest.raises(ValueError, match="must be positive"):
        load_source_config()
