from __future__ import annotations

import asyncio
import threading

import pytest
import requests

from dashboard.services.row_source import (
    PagedRowLoader,
    RowSource,
    RowSourceError,
    fetch_all_rows,
)
from dashboard.utils.config import SourceConfig
from tests.fixtures.air_quality import StubResponse, StubSession


def test_fetch_page_sends_limit_and_offset(row_source: RowSource, stub_session: StubSession) -> None:
    page = row_source.fetch_page(10)

    assert stub_session.calls == [
        {
            "url": "https://example.test/resource/c3uy-2p5r.json",
            "params": {"$limit": 10, "$offset": 10},
            "timeout": 5.0,
        }
    ]
    assert len(page.rows) == 10
    assert page.is_full


def test_fetch_page_reports_http_status(source_config: SourceConfig) -> None:
    source = RowSource(source_config, session=StubSession(responses=[StubResponse(status_code=503)]))
    with pytest.raises(RowSourceError, match="HTTP 503"):
        source.fetch_page(0)


def test_fetch_page_wraps_transport_errors(source_config: SourceConfig) -> None:
    session = StubSession(responses=[requests.ConnectionError("connection refused")])
    with pytest.raises(RowSourceError, match="connection refused"):
        RowSource(source_config, session=session).fetch_page(0)


def test_fetch_page_rejects_non_array_payload(source_config: SourceConfig) -> None:
    session = StubSession(responses=[StubResponse(payload={"error": True})])
    with pytest.raises(RowSourceError, match="JSON array"):
        RowSource(source_config, session=session).fetch_page(0)


def test_fetch_page_rejects_invalid_json(source_config: SourceConfig) -> None:
    session = StubSession(responses=[StubResponse(raw_text="<html>")])
    with pytest.raises(RowSourceError, match="not valid JSON"):
        RowSource(source_config, session=session).fetch_page(0)


def test_fetch_page_skips_non_object_items(source_config: SourceConfig) -> None:
    session = StubSession(responses=[StubResponse(payload=[{"a": 1}, "stray", 3])])
    page = RowSource(source_config, session=session).fetch_page(0)
    assert page.rows == ({"a": 1},)
    assert page.received == 3
    assert not page.is_full


def test_skipped_items_still_count_towards_paging() -> None:
    config = SourceConfig(url="https://example.test/resource/x.json", page_size=3, timeout_seconds=5.0)
    session = StubSession(
        responses=[
            StubResponse(payload=[{"n": 0}, "stray", {"n": 2}]),
            StubResponse(payload=[{"n": 3}, {"n": 4}]),
        ]
    )
    loader = PagedRowLoader(RowSource(config, session=session))
    rows = asyncio.run(loader.load_all())

    assert [call["params"]["$offset"] for call in session.calls] == [0, 3]
    assert [row["n"] for row in rows] == [0, 2, 3, 4]
    assert loader.next_offset == 5
    assert loader.has_more is False


def test_load_all_stops_after_short_page(loader: PagedRowLoader, stub_session: StubSession) -> None:
    rows = asyncio.run(loader.load_all())

    assert len(rows) == 24
    assert rows.pages_loaded == 3
    assert [call["params"]["$offset"] for call in stub_session.calls] == [0, 10, 20]
    assert loader.has_more is False
    assert rows.columns[0] == "unique_id"


def test_load_more_is_rejected_when_no_pages_remain(loader: PagedRowLoader, stub_session: StubSession) -> None:
    asyncio.run(loader.load_all())
    calls = len(stub_session.calls)

    assert asyncio.run(loader.load_more()) is False
    assert len(stub_session.calls) == calls


def test_full_final_page_needs_one_more_request(source_config: SourceConfig) -> None:
    session = StubSession([{"n": index} for index in range(20)])
    loader = PagedRowLoader(RowSource(source_config, session=session))
    rows = asyncio.run(loader.load_all())

    assert len(rows) == 20
    assert [call["params"]["$offset"] for call in session.calls] == [0, 10, 20]


def test_each_page_produces_a_new_snapshot(loader: PagedRowLoader) -> None:
    asyncio.run(loader.load_more())
    first = loader.rows
    asyncio.run(loader.load_more())

    assert loader.rows is not first
    assert len(first) == 10
    assert len(loader.rows) == 20


def test_failed_page_keeps_loaded_rows(source_config: SourceConfig, air_quality_rows) -> None:
    session = StubSession(
        responses=[
            StubResponse(payload=air_quality_rows[:10]),
            StubResponse(status_code=500),
        ]
    )
    loader = PagedRowLoader(RowSource(source_config, session=session))
    asyncio.run(loader.load_all())

    assert len(loader.rows) == 10
    assert loader.error == "HTTP 500"
    assert loader.loading is False
    assert loader.state().to_dict() == {
        "rowCount": 10,
        "pagesLoaded": 1,
        "hasMore": True,
        "loading": False,
        "error": "HTTP 500",
    }


def test_max_pages_caps_loading(air_quality_rows) -> None:
    config = SourceConfig(url="https://example.test/data.json", page_size=5, timeout_seconds=1.0, max_pages=2)
    loader = PagedRowLoader(RowSource(config, session=StubSession(air_quality_rows)))
    asyncio.run(loader.load_all())
    assert len(loader.rows) == 10
    assert loader.has_more is True
    assert loader.can_load_more() is False


class _BlockingSession(StubSession):
    def __init__(self, rows) -> None:
        super().__init__(rows)
        self.started = threading.Event()
        self.release = threading.Event()

    def get(self, url, *, params, timeout):
        self.started.set()
        self.release.wait(timeout=5)
        return super().get(url, params=params, timeout=timeout)


def test_second_request_is_rejected_while_one_is_in_flight(source_config: SourceConfig, air_quality_rows) -> None:
    session = _BlockingSession(air_quality_rows)
    loader = PagedRowLoader(RowSource(source_config, session=session))

    async def scenario() -> tuple[bool, bool]:
        first = asyncio.create_task(loader.load_more())
        await asyncio.to_thread(session.started.wait, 5)
        second = await loader.load_more()
        session.release.set()
        return await first, second

    first, second = asyncio.run(scenario())
    assert first is True
    assert second is False
    assert len(session.calls) == 1
    assert len(loader.rows) == 10


def test_response_after_close_is_discarded(source_config: SourceConfig, air_quality_rows) -> None:
    session = _BlockingSession(air_quality_rows)
    loader = PagedRowLoader(RowSource(source_config, session=session))

    async def scenario() -> bool:
        pending = asyncio.create_task(loader.load_more())
        await asyncio.to_thread(session.started.wait, 5)
        loader.close()
        session.release.set()
        return await pending

    assert asyncio.run(scenario()) is False
    assert len(loader.rows) == 0
    assert loader.rows.pages_loaded == 0
    assert asyncio.run(loader.load_more()) is False


def test_fetch_all_rows_raises_when_nothing_loaded(source_config: SourceConfig) -> None:
    session = StubSession(responses=[StubResponse(status_code=404)])
    with pytest.raises(RowSourceError, match="HTTP 404"):
        fetch_all_rows(RowSource(source_config, session=session))


def test_fetch_all_rows_returns_snapshot(row_source: RowSource) -> None:
    rows = fetch_all_rows(row_source)
    assert len(rows) == 24
