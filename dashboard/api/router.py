from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Literal

from fastapi import Depends, FastAPI, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from dashboard.services.aggregations import ALL_GROUPS
from dashboard.services.classifier import ColumnClassification
from dashboard.services.row_filter import filter_rows
from dashboard.services.row_source import LoaderState, PagedRowLoader, RowSource
from dashboard.services.schema_selector import SchemaSelection, SelectionError
from dashboard.services.views import DashboardViews, build_views, preview_table, resolve_selection
from dashboard.utils.logging import log_event

LOGGER = logging.getLogger(__name__)


class SelectionUpdateRequest(BaseModel):
    slot: Literal["group", "metric", "date", "display"]
    column: Annotated[str | None, Field(default=None)]

    model_config = ConfigDict(populate_by_name=True)


class LoaderStateResponse(BaseModel):
    row_count: Annotated[int, Field(alias="rowCount", ge=0)]
    pages_loaded: Annotated[int, Field(alias="pagesLoaded", ge=0)]
    has_more: Annotated[bool, Field(alias="hasMore")]
    loading: bool
    error: Annotated[str | None, Field(default=None)]

    model_config = ConfigDict(populate_by_name=True)


class SelectionResponse(BaseModel):
    group_column: Annotated[str | None, Field(alias="groupColumn", default=None)]
    metric_column: Annotated[str | None, Field(alias="metricColumn", default=None)]
    date_column: Annotated[str | None, Field(alias="dateColumn", default=None)]
    display_column: Annotated[str | None, Field(alias="displayColumn", default=None)]

    model_config = ConfigDict(populate_by_name=True)


class DatasetSession:
    """Loader plus the set-once column selection shared by every request."""

    def __init__(self, loader: PagedRowLoader) -> None:
        self.loader = loader
        self.selection = SchemaSelection()

    def refresh_selection(self) -> ColumnClassification:
        classification, self.selection = resolve_selection(self.loader.rows, self.selection)
        return classification


def _state_response(state: LoaderState) -> LoaderStateResponse:
    return LoaderStateResponse(
        row_count=state.row_count,
        pages_loaded=state.pages_loaded,
        has_more=state.has_more,
        loading=state.loading,
        error=state.error,
    )


def _selection_response(selection: SchemaSelection) -> SelectionResponse:
    return SelectionResponse(
        group_column=selection.group_column,
        metric_column=selection.metric_column,
        date_column=selection.date_column,
        display_column=selection.display_column,
    )


def create_app(
    *,
    loader: PagedRowLoader | None = None,
    source: RowSource | None = None,
) -> FastAPI:
    """Create the API exposing the dataset loader and its derived views."""
    session = DatasetSession(loader or PagedRowLoader(source or RowSource()))

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        session.loader.close()

    app = FastAPI(
        title="Open Data Dashboard API",
        version="0.1.0",
        lifespan=lifespan,
    )

    async def get_session() -> DatasetSession:
        # The first request pulls page zero; later pages only load on demand.
        if session.loader.rows.pages_loaded == 0 and session.loader.error is None:
            await session.loader.load_more()
        return session

    def _views(current: DatasetSession, query: str, group: str | None) -> DashboardViews:
        current.refresh_selection()
        return build_views(
            current.loader.rows,
            current.selection,
            query=query,
            selected_group=group,
        )

    @app.get("/api/dataset")
    def dataset_summary(
        current: DatasetSession = Depends(get_session),
    ) -> dict[str, object]:
        classification = current.refresh_selection()
        rows = current.loader.rows
        return {
            "source": rows.source,
            "columns": list(rows.columns),
            "classification": classification.to_dict(),
            "selection": _selection_response(current.selection).model_dump(by_alias=True),
            "loader": _state_response(current.loader.state()).model_dump(by_alias=True),
        }

    @app.post("/api/dataset/load-more", status_code=status.HTTP_202_ACCEPTED)
    async def load_more(
        current: DatasetSession = Depends(get_session),
    ) -> dict[str, object]:
        if not current.loader.can_load_more():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A page is already loading or no further pages exist.",
            )
        loaded = await current.loader.load_more()
        log_event(LOGGER, "api.dataset.load_more", loaded=loaded, rows=len(current.loader.rows))
        return _state_response(current.loader.state()).model_dump(by_alias=True)

    @app.put("/api/dataset/selection")
    def update_selection(
        payload: SelectionUpdateRequest,
        current: DatasetSession = Depends(get_session),
    ) -> dict[str, object]:
        classification = current.refresh_selection()
        try:
            current.selection = current.selection.choose(payload.slot, payload.column, classification)
        except SelectionError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        return _selection_response(current.selection).model_dump(by_alias=True)

    @app.get("/api/views")
    def all_views(
        current: DatasetSession = Depends(get_session),
        query: str = Query(default="", description="Case-insensitive substring filter"),
        group: str = Query(default=ALL_GROUPS, description="Group id for the time series"),
    ) -> dict[str, object]:
        return _views(current, query, group).to_dict()

    @app.get("/api/views/groups")
    def view_groups(
        current: DatasetSession = Depends(get_session),
        query: str = Query(default=""),
    ) -> dict[str, object]:
        views = _views(current, query, None)
        return {
            "allGroups": ALL_GROUPS,
            "groups": [option.to_dict() for option in views.groups],
        }

    @app.get("/api/views/ranking")
    def view_ranking(
        current: DatasetSession = Depends(get_session),
        query: str = Query(default=""),
    ) -> dict[str, object]:
        views = _views(current, query, None)
        return {
            "ranking": [entry.to_dict() for entry in views.ranking],
            "groupCounts": [entry.to_dict() for entry in views.group_counts],
        }

    @app.get("/api/views/series")
    def view_series(
        current: DatasetSession = Depends(get_session),
        query: str = Query(default=""),
        group: str = Query(default=ALL_GROUPS),
    ) -> dict[str, object]:
        views = _views(current, query, group)
        return {
            "selectedGroup": views.selected_group,
            "series": [point.to_dict() for point in views.series],
        }

    @app.get("/api/views/histogram")
    def view_histogram(
        current: DatasetSession = Depends(get_session),
        query: str = Query(default=""),
    ) -> dict[str, object]:
        views = _views(current, query, None)
        return {"histogram": [bucket.to_dict() for bucket in views.histogram]}

    @app.get("/api/views/statistics")
    def view_statistics(
        current: DatasetSession = Depends(get_session),
        query: str = Query(default=""),
    ) -> dict[str, object]:
        views = _views(current, query, None)
        return {
            "statistics": views.statistics.to_dict(),
            "topBottom": views.top_bottom.to_dict(),
        }

    @app.get("/api/preview")
    def preview(
        current: DatasetSession = Depends(get_session),
        query: str = Query(default=""),
        limit: int = Query(default=100, ge=1, le=1000),
    ) -> dict[str, object]:
        rows = current.loader.rows
        headers, body = preview_table(filter_rows(rows.rows, query), rows.columns, limit=limit)
        return {"columns": list(rows.columns), "headers": headers, "rows": body}

    return app

