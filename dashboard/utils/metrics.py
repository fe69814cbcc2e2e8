from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import UTC, datetime
from time import perf_counter
from typing import Any

from dashboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


def timing_payload(event: str, *, elapsed_ms: float, **fields: Any) -> dict[str, Any]:
    payload = {
        "event": f"{_normalize_event(event)}.timing",
        "elapsed_ms": elapsed_ms,
        "timestamp": datetime.now(UTC).isoformat(),
        **fields,
    }
    return payload


def emit_view_timing(event: str, *, elapsed_ms: float, **fields: Any) -> dict[str, Any]:
    payload = timing_payload(event, elapsed_ms=elapsed_ms, **fields)
    _log_payload(payload)
    return payload


@contextmanager
def measure_view(event: str, **fields: Any):
    """Emit a timing metric around a view computation."""
    start = perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (perf_counter() - start) * 1000
        emit_view_timing(event, elapsed_ms=elapsed_ms, **fields)


def _normalize_event(event: str) -> str:
    return event if event.startswith("views.") else f"views.{event}"


def _log_payload(payload: dict[str, Any]) -> None:
    LOGGER.info(json.dumps(payload, default=str))
