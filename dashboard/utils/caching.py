from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache, wraps
from typing import ParamSpec, TypeVar

try:
    import streamlit as st
except ModuleNotFoundError:  # pragma: no cover - Streamlit unavailable during some tests
    st = None  # type: ignore[assignment]

P = ParamSpec("P")
T = TypeVar("T")


def _in_streamlit_runtime() -> bool:
    if st is None:
        return False
    from streamlit import runtime

    return runtime.exists()


def cache_resource(func: Callable[P, T]) -> Callable[P, T]:
    """Cache a long-lived resource such as the row loader.

    Outside a running Streamlit app (tests, the API process) the cache is a plain
    ``lru_cache`` so the same callable works everywhere.
    """
    if _in_streamlit_runtime():
        return st.cache_resource(show_spinner=False)(func)

    cached_func = lru_cache(maxsize=None)(func)

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        return cached_func(*args, **kwargs)

    wrapper.clear = cached_func.cache_clear  # type: ignore[attr-defined]
    return wrapper


def cache_data(func: Callable[P, T]) -> Callable[P, T]:
    """Cache derived views keyed on their (hashable) inputs."""
    if _in_streamlit_runtime():
        return st.cache_data(show_spinner=False)(func)

    cached_func = lru_cache(maxsize=128)(func)

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        return cached_func(*args, **kwargs)

    wrapper.clear = cached_func.cache_clear  # type: ignore[attr-defined]
    return wrapper
