from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_ROOT = Path("./data")
DEFAULT_DATASET_ID = "c3uy-2p5r"
DEFAULT_SOURCE_HOST = "https://data.cityofnewyork.us"
DEFAULT_PAGE_SIZE = 1000
DEFAULT_TIMEOUT_SECONDS = 30.0

SOURCE_URL_ENV = "DASHBOARD_SOURCE_URL"
DATASET_ID_ENV = "DASHBOARD_DATASET_ID"
PAGE_SIZE_ENV = "DASHBOARD_PAGE_SIZE"
TIMEOUT_ENV = "DASHBOARD_REQUEST_TIMEOUT"
MAX_PAGES_ENV = "DASHBOARD_MAX_PAGES"


@dataclass(frozen=True)
class SourceConfig:
    url: str
    page_size: int
    timeout_seconds: float
    max_pages: int | None = None

    @property
    def dataset_page(self) -> str:
        return self.url.removesuffix(".json")


def get_data_root() -> Path:
    return Path(os.getenv("DATA_ROOT", DEFAULT_DATA_ROOT)).expanduser()


def get_dataset_id() -> str:
    return os.getenv(DATASET_ID_ENV) or DEFAULT_DATASET_ID


def get_source_url(dataset_id: str | None = None) -> str:
    explicit = os.getenv(SOURCE_URL_ENV)
    if explicit:
        return explicit
    return f"{DEFAULT_SOURCE_HOST}/resource/{dataset_id or get_dataset_id()}.json"


def get_page_size() -> int:
    page_size = int(os.getenv(PAGE_SIZE_ENV, DEFAULT_PAGE_SIZE))
    if page_size <= 0:
        raise ValueError(f"{PAGE_SIZE_ENV} must be positive, got {page_size}.")
    return page_size


def get_max_pages() -> int | None:
    raw = os.getenv(MAX_PAGES_ENV)
    if not raw:
        return None
    value = int(raw)
    return value if value > 0 else None


def load_source_config() -> SourceConfig:
    return SourceConfig(
        url=get_source_url(),
        page_size=get_page_size(),
        timeout_seconds=float(os.getenv(TIMEOUT_ENV, DEFAULT_TIMEOUT_SECONDS)),
        max_pages=get_max_pages(),
    )
