from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from dashboard.services.rows import Row, RowSet
from dashboard.utils.config import SourceConfig, load_source_config
from dashboard.utils.logging import get_logger, log_event, log_warning

LOGGER = get_logger(__name__)

LIMIT_PARAM = "$limit"
OFFSET_PARAM = "$offset"


class RowSourceError(RuntimeError):
    """Raised when a page of rows cannot be retrieved or decoded."""


class HttpSession(Protocol):
    def get(self, url: str, *, params: Mapping[str, Any], timeout: float) -> requests.Response: ...


@dataclass(frozen=True)
class Page:
    offset: int
    rows: tuple[Row, ...]
    page_size: int
    received: int = 0
    """Items in the response before non-object entries were dropped."""

    @property
    def is_full(self) -> bool:
        return max(self.received, len(self.rows)) >= self.page_size

    @property
    def next_offset(self) -> int:
        return self.offset + max(self.received, len(self.rows))


class RowSource:
    """Fetch one page of JSON records from a ``$limit``/``$offset`` paginated endpoint."""

    def __init__(
        self,
        config: SourceConfig | None = None,
        *,
        session: HttpSession | None = None,
    ) -> None:
        self.config = config or load_source_config()
        self.session = session or requests.Session()

    def fetch_page(self, offset: int) -> Page:
        params = {LIMIT_PARAM: self.config.page_size, OFFSET_PARAM: offset}
        try:
            response = self.session.get(
                self.config.url,
                params=params,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as error:
            raise RowSourceError(str(error) or error.__class__.__name__) from error

        if not response.ok:
            raise RowSourceError(f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as error:
            raise RowSourceError("Response was not valid JSON") from error
        if not isinstance(payload, list):
            raise RowSourceError("Expected a JSON array of records")

        rows = tuple(item for item in payload if isinstance(item, dict))
        skipped = len(payload) - len(rows)
        if skipped:
            log_warning(LOGGER, "rows.page.skipped_items", offset=offset, skipped=skipped)
        return Page(offset=offset, rows=rows, page_size=self.config.page_size, received=len(payload))


@dataclass(frozen=True)
class LoaderState:
    row_count: int
    pages_loaded: int
    has_more: bool
    loading: bool
    error: str | None

    def to_dict(self) -> dict[str, object]:
        return {
            "rowCount": self.row_count,
            "pagesLoaded": self.pages_loaded,
            "hasMore": self.has_more,
            "loading": self.loading,
            "error": self.error,
        }


class PagedRowLoader:
    """Append pages to an immutable ``RowSet`` with at most one request in flight.

    ``load_more`` is rejected while a request is outstanding or once a short
    page has shown there is nothing left. After ``close`` any response that
    arrives is discarded instead of applied. A failed page keeps the rows
    already loaded and records a single error message.
    """

    def __init__(self, source: RowSource) -> None:
        self.source = source
        self.rows = RowSet(source=source.config.url)
        self.has_more = True
        self.loading = False
        self.error: str | None = None
        self.closed = False
        self.next_offset = 0

    def state(self) -> LoaderState:
        return LoaderState(
            row_count=len(self.rows),
            pages_loaded=self.rows.pages_loaded,
            has_more=self.has_more,
            loading=self.loading,
            error=self.error,
        )

    def can_load_more(self) -> bool:
        if self.closed or self.loading or not self.has_more:
            return False
        max_pages = self.source.config.max_pages
        return max_pages is None or self.rows.pages_loaded < max_pages

    async def load_more(self) -> bool:
        """Fetch and append the next page; ``False`` when rejected, failed or discarded."""
        if not self.can_load_more():
            log_event(
                LOGGER,
                "rows.load.rejected",
                loading=self.loading,
                has_more=self.has_more,
                closed=self.closed,
            )
            return False

        offset = self.next_offset
        self.loading = True
        self.error = None
        try:
            page = await asyncio.to_thread(self.source.fetch_page, offset)
        except RowSourceError as error:
            if self.closed:
                return False
            self.error = str(error)
            log_warning(LOGGER, "rows.page.failed", offset=offset, error=self.error)
            return False
        finally:
            self.loading = False

        if self.closed:
            log_event(LOGGER, "rows.page.discarded", offset=offset, rows=len(page.rows))
            return False

        self.rows = self.rows.extend(page.rows)
        self.next_offset = page.next_offset
        self.has_more = page.is_full
        log_event(
            LOGGER,
            "rows.page.loaded",
            offset=offset,
            rows=len(page.rows),
            total=len(self.rows),
            has_more=self.has_more,
        )
        return True

    async def load_all(self) -> RowSet:
        """Keep requesting pages while they come back full and the loader is open."""
        while await self.load_more():
            pass
        return self.rows

    def close(self) -> None:
        self.closed = True


def fetch_all_rows(source: RowSource | None = None) -> RowSet:
    """Blocking helper: load every page and return the snapshot.

    Raises only when nothing could be loaded; a later failed page returns the
    rows gathered before it.
    """
    loader = PagedRowLoader(source or RowSource())
    rows = asyncio.run(loader.load_all())
    if loader.error and not rows.rows:
        raise RowSourceError(loader.error)
    return rows
