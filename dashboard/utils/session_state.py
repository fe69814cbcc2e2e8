from __future__ import annotations

from collections.abc import MutableMapping, Sequence
from copy import deepcopy
from datetime import UTC, datetime
from typing import Any

from dashboard.services.schema_selector import SchemaSelection

SessionStore = MutableMapping[str, Any]

SESSION_DEFAULTS: dict[str, Any] = {
    "query": "",
    "selected_group": None,
    "schema_selection": SchemaSelection(),
    "reset_requested": False,
    "reset_reason": None,
    "last_reset_at": None,
}


def _get_store(store: SessionStore | None) -> SessionStore:
    if store is not None:
        return store
    try:
        import streamlit as st  # type: ignore
    except (
        ModuleNotFoundError
    ) as error:  # pragma: no cover - Streamlit only available in app runtime
        raise RuntimeError("Streamlit session state is unavailable outside the app.") from error
    return st.session_state


def ensure_session_defaults(
    store: SessionStore | None = None,
    *,
    defaults: dict[str, Any] | None = None,
) -> SessionStore:
    """Populate default keys without overwriting existing selections."""
    state = _get_store(store)
    baseline = defaults or SESSION_DEFAULTS
    for key, value in baseline.items():
        if key not in state:
            state[key] = deepcopy(value)
    return state


def update_session_state(store: SessionStore | None = None, **updates: object) -> SessionStore:
    state = ensure_session_defaults(store)
    for key, value in updates.items():
        state[key] = value
    return state


def request_reset(store: SessionStore | None = None, *, reason: str | None = None) -> bool:
    """Flag the session so the next ``confirm_reset`` clears column choices."""
    state = ensure_session_defaults(store)
    state["reset_requested"] = True
    state["reset_reason"] = reason
    return True


def confirm_reset(
    store: SessionStore | None = None,
    *,
    keys: Sequence[str] | None = None,
) -> bool:
    """Clear the selected keys, but only after a reset was requested."""
    state = ensure_session_defaults(store)
    if not state.get("reset_requested"):
        return False

    targets = keys or ("query", "selected_group", "schema_selection")
    for key in targets:
        if key in SESSION_DEFAULTS:
            state[key] = deepcopy(SESSION_DEFAULTS[key])
        else:
            state.pop(key, None)

    state["reset_requested"] = False
    state["last_reset_at"] = datetime.now(UTC)
    state["reset_reason"] = None
    return True
