"""FastAPI application for the work order dashboard."""

from typing import Any

from fastapi import Body, FastAPI, Query, Response
from fastapi.middleware.cors import CORSMiddleware

from workorder_launcher.api.dependencies import CacheHandlerDep, WorkorderHandlerDep, lifespan
from workorder_launcher.config import settings
from workorder_launcher.dto import (
    BomLineItem,
    CacheInvalidateRequest,
    CacheInvalidateResponse,
    CacheStatsResponse,
    CacheStatusResponse,
    ConnectionTestResponse,
    HealthCheckResponse,
    StartWorkorderRequest,
    TimeTrackingItem,
    TransitionResponse,
    UpdateBomLineRequest,
    UpdateResponse,
    UpdateSpecsRequest,
    WorkcenterItem,
    WorkcenterTagItem,
    WorkorderGroupsResponse,
    WorkorderItem,
)

API_VERSION = "0.1.0"


def create_app() -> FastAPI:
    """Build the FastAPI application with all routes registered.

    Returns:
        The application; services are attached to ``app.state`` by the lifespan
    """
    app = FastAPI(
        title="Work Order Launcher API",
        description="Shop-floor dashboard backend for ERP work orders",
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Cache-Status", "X-Cache-Age", "X-Cache-TTL", "X-Cache-Remaining"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Work Order Launcher API",
            "version": API_VERSION,
            "endpoints": {
                "workcenters": "/api/workcenters",
                "workorders": "/api/workorders",
                "cache": "/api/cache",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: CacheHandlerDep) -> HealthCheckResponse:
        return await handler.health_check()

    @app.get("/api/test", response_model=ConnectionTestResponse)
    async def test_connection(handler: WorkorderHandlerDep) -> ConnectionTestResponse:
        """Authenticate against the ERP and report the user id."""
        return await handler.test_connection()

    @app.get("/api/workcenters", response_model=list[WorkcenterItem])
    async def list_workcenters(handler: WorkorderHandlerDep, response: Response) -> list[WorkcenterItem]:
        return await handler.list_workcenters(response)

    @app.get("/api/workcenters/tags", response_model=list[WorkcenterTagItem])
    async def list_workcenter_tags(
        handler: WorkorderHandlerDep,
        response: Response,
    ) -> list[WorkcenterTagItem]:
        return await handler.list_workcenter_tags(response)

    @app.get("/api/workcenters/{workcenter_id}/workorders", response_model=WorkorderGroupsResponse)
    async def list_workorders(
        workcenter_id: int,
        handler: WorkorderHandlerDep,
        response: Response,
    ) -> WorkorderGroupsResponse:
        """Ready and in-progress work orders of a work center."""
        return await handler.list_workorders(workcenter_id, response)

    # Registered before /api/workorders/{workorder_id} so "search" is not taken for an id
    @app.get("/api/workorders/search", response_model=list[WorkorderItem])
    async def search_workorders(
        handler: WorkorderHandlerDep,
        response: Response,
        q: str = Query("", description="Work order, product or production order name"),
    ) -> list[WorkorderItem]:
        return await handler.search_workorders(q, response)

    @app.get("/api/workorders/{workorder_id}", response_model=WorkorderItem)
    async def get_workorder(
        workorder_id: int,
        handler: WorkorderHandlerDep,
        response: Response,
    ) -> WorkorderItem:
        return await handler.get_workorder(workorder_id, response)

    @app.get("/api/workorders/{workorder_id}/time-tracking", response_model=list[TimeTrackingItem])
    async def get_time_tracking(
        workorder_id: int,
        handler: WorkorderHandlerDep,
        response: Response,
    ) -> list[TimeTrackingItem]:
        return await handler.get_time_tracking(workorder_id, response)

    @app.get("/api/workorders/{workorder_id}/bom", response_model=list[BomLineItem])
    async def get_bom_lines(
        workorder_id: int,
        handler: WorkorderHandlerDep,
        response: Response,
    ) -> list[BomLineItem]:
        return await handler.get_bom_lines(workorder_id, response)

    @app.post("/api/workorders/{workorder_id}/start", response_model=TransitionResponse)
    async def start_workorder(
        workorder_id: int,
        handler: WorkorderHandlerDep,
        request: StartWorkorderRequest | None = Body(None),
    ) -> TransitionResponse:
        """Start a work order, moving it to the operator's work center first if needed."""
        return await handler.start_workorder(workorder_id, request or StartWorkorderRequest())

    @app.post("/api/workorders/{workorder_id}/pause", response_model=TransitionResponse)
    async def pause_workorder(workorder_id: int, handler: WorkorderHandlerDep) -> TransitionResponse:
        return await handler.pause_workorder(workorder_id)

    @app.post("/api/workorders/{workorder_id}/complete", response_model=TransitionResponse)
    async def complete_workorder(workorder_id: int, handler: WorkorderHandlerDep) -> TransitionResponse:
        return await handler.complete_workorder(workorder_id)

    @app.put("/api/workorders/{workorder_id}/specs", response_model=UpdateResponse)
    async def update_specs(
        workorder_id: int,
        request: UpdateSpecsRequest,
        handler: WorkorderHandlerDep,
    ) -> UpdateResponse:
        return await handler.update_specs(workorder_id, request)

    @app.put("/api/workorders/{workorder_id}/bom/{line_id}", response_model=BomLineItem)
    async def update_bom_line(
        workorder_id: int,
        line_id: int,
        request: UpdateBomLineRequest,
        handler: WorkorderHandlerDep,
    ) -> BomLineItem:
        return await handler.update_bom_line(workorder_id, line_id, request)

    @app.get("/api/cache/stats", response_model=CacheStatsResponse)
    async def cache_stats(handler: CacheHandlerDep) -> CacheStatsResponse:
        return await handler.get_stats()

    @app.get("/api/cache/status", response_model=CacheStatusResponse)
    async def cache_status(handler: CacheHandlerDep) -> CacheStatusResponse:
        """Per-namespace cache state (has data, age, TTL, validity)."""
        return await handler.get_status()

    @app.post("/api/cache/invalidate", response_model=CacheInvalidateResponse)
    async def invalidate_cache(
        handler: CacheHandlerDep,
        request: CacheInvalidateRequest | None = Body(None),
    ) -> CacheInvalidateResponse:
        """Invalidate one key, a key prefix, or (with an empty body) everything."""
        return await handler.invalidate(request or CacheInvalidateRequest())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "workorder_launcher.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
