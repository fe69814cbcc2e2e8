from __future__ import annotations

from typing import Any

import pytest

from dashboard.services.row_source import PagedRowLoader, RowSource
from dashboard.services.rows import RowSet
from dashboard.utils.config import SourceConfig
from tests.fixtures.air_quality import StubSession, build_air_quality_rows


@pytest.fixture
def air_quality_rows() -> list[dict[str, Any]]:
    return build_air_quality_rows()


@pytest.fixture
def air_quality_row_set(air_quality_rows) -> RowSet:
    return RowSet.from_rows(air_quality_rows, source="stub://air-quality")


@pytest.fixture
def source_config() -> SourceConfig:
    return SourceConfig(url="https://example.test/resource/c3uy-2p5r.json", page_size=10, timeout_seconds=5.0)


@pytest.fixture
def stub_session(air_quality_rows) -> StubSession:
    return StubSession(air_quality_rows)


@pytest.fixture
def row_source(source_config: SourceConfig, stub_session: StubSession) -> RowSource:
    return RowSource(source_config, session=stub_session)


@pytest.fixture
def loader(row_source: RowSource) -> PagedRowLoader:
    return PagedRowLoader(row_source)
