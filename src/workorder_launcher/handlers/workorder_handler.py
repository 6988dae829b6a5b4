"""HTTP handlers for work center and work order operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, cache headers and error mapping.
"""

import logging

from fastapi import HTTPException, Response, status

from workorder_launcher.dto import (
    BomLineItem,
    ConnectionTestResponse,
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
from workorder_launcher.entities import CacheLookup, TransitionResult
from workorder_launcher.errors import (
    BomLineNotFoundError,
    InvalidTransitionError,
    MissingOperationError,
    RemoteAuthenticationError,
    RemoteCallError,
    RemoteUnavailableError,
    WorkorderNotFoundError,
)
from workorder_launcher.services import CacheService, WorkorderService

logger = logging.getLogger(__name__)


def http_error(exc: Exception, action: str) -> HTTPException:
    """Map a service-layer exception to an HTTPException.

    Args:
        exc: The exception raised by the service
        action: What was being attempted, for the 500 message

    Returns:
        HTTPException with a status code matching the error class
    """
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, (WorkorderNotFoundError, BomLineNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, (InvalidTransitionError, MissingOperationError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    if isinstance(exc, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, RemoteUnavailableError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message)
    if isinstance(exc, (RemoteAuthenticationError, RemoteCallError)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)

    logger.exception("Unexpected error while trying to %s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {exc}",
    )


def _apply_cache_headers(response: Response, lookup: CacheLookup) -> None:
    response.headers.update(CacheService.cache_headers(lookup))


def _transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        success=True,
        workorder_id=result.workorder_id,
        action=result.action,
        previous_state=result.previous_state,
        new_state=result.new_state,
    )


class WorkorderHandler:
    """HTTP handlers for the shop-floor dashboard.

    This handler delegates business logic to WorkorderService
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Advertising cache status in response headers
    - Mapping domain and remote errors to status codes

    Example:
        ```python
        handler = WorkorderHandler(workorder_service=service)

        @app.get("/api/workcenters", response_model=list[WorkcenterItem])
        async def list_workcenters(response: Response):
            return await handler.list_workcenters(response)
        ```
    """

    def __init__(self, workorder_service: WorkorderService) -> None:
        """Initialize the work order handler.

        Args:
            workorder_service: The service for business logic (required).
        """
        self._service = workorder_service

    async def test_connection(self) -> ConnectionTestResponse:
        """Handle GET /api/test requests."""
        try:
            uid = await self._service.test_connection()
        except Exception as e:
            raise http_error(e, "connect to the ERP") from e

        return ConnectionTestResponse(success=True, uid=uid, message="Connected to the ERP")

    async def list_workcenters(self, response: Response) -> list[WorkcenterItem]:
        """Handle GET /api/workcenters requests."""
        try:
            lookup = await self._service.get_workcenters()
        except Exception as e:
            raise http_error(e, "load work centers") from e

        _apply_cache_headers(response, lookup)
        logger.info("[API] %d work centers (%s)", len(lookup.value), lookup.status.value)
        return [WorkcenterItem.model_validate(wc) for wc in lookup.value]

    async def list_workcenter_tags(self, response: Response) -> list[WorkcenterTagItem]:
        """Handle GET /api/workcenters/tags requests."""
        try:
            lookup = await self._service.get_workcenter_tags()
        except Exception as e:
            raise http_error(e, "load work center tags") from e

        _apply_cache_headers(response, lookup)
        return [WorkcenterTagItem.model_validate(tag) for tag in lookup.value]

    async def list_workorders(self, workcenter_id: int, response: Response) -> WorkorderGroupsResponse:
        """Handle GET /api/workcenters/{workcenter_id}/workorders requests."""
        try:
            lookup = await self._service.get_workorders(workcenter_id)
        except Exception as e:
            raise http_error(e, "load work orders") from e

        _apply_cache_headers(response, lookup)
        groups = lookup.value
        logger.info(
            "[API] Work center %s: %d ready, %d active (%s)",
            workcenter_id,
            len(groups.ready),
            len(groups.active),
            lookup.status.value,
        )
        return WorkorderGroupsResponse.model_validate(groups)

    async def search_workorders(self, term: str, response: Response) -> list[WorkorderItem]:
        """Handle GET /api/workorders/search requests."""
        try:
            lookup = await self._service.search_workorders(term)
        except Exception as e:
            raise http_error(e, "search work orders") from e

        _apply_cache_headers(response, lookup)
        return [WorkorderItem.model_validate(wo) for wo in lookup.value]

    async def get_workorder(self, workorder_id: int, response: Response) -> WorkorderItem:
        """Handle GET /api/workorders/{workorder_id} requests."""
        try:
            lookup = await self._service.get_workorder(workorder_id)
        except Exception as e:
            raise http_error(e, "load work order") from e

        _apply_cache_headers(response, lookup)
        return WorkorderItem.model_validate(lookup.value)

    async def get_time_tracking(self, workorder_id: int, response: Response) -> list[TimeTrackingItem]:
        """Handle GET /api/workorders/{workorder_id}/time-tracking requests."""
        try:
            lookup = await self._service.get_time_tracking(workorder_id)
        except Exception as e:
            raise http_error(e, "load time tracking") from e

        _apply_cache_headers(response, lookup)
        return [TimeTrackingItem.model_validate(entry) for entry in lookup.value]

    async def get_bom_lines(self, workorder_id: int, response: Response) -> list[BomLineItem]:
        """Handle GET /api/workorders/{workorder_id}/bom requests."""
        try:
            lookup = await self._service.get_bom_lines(workorder_id)
        except Exception as e:
            raise http_error(e, "load components") from e

        _apply_cache_headers(response, lookup)
        return [BomLineItem.model_validate(line) for line in lookup.value]

    async def start_workorder(
        self,
        workorder_id: int,
        request: StartWorkorderRequest,
    ) -> TransitionResponse:
        """Handle POST /api/workorders/{workorder_id}/start requests."""
        logger.info(
            "[API] Start work order %s (target work center: %s)",
            workorder_id,
            request.target_workcenter_id or "none",
        )
        try:
            result = await self._service.start_workorder(workorder_id, request.target_workcenter_id)
        except Exception as e:
            raise http_error(e, "start work order") from e
        return _transition_response(result)

    async def pause_workorder(self, workorder_id: int) -> TransitionResponse:
        """Handle POST /api/workorders/{workorder_id}/pause requests."""
        try:
            result = await self._service.pause_workorder(workorder_id)
        except Exception as e:
            raise http_error(e, "pause work order") from e
        return _transition_response(result)

    async def complete_workorder(self, workorder_id: int) -> TransitionResponse:
        """Handle POST /api/workorders/{workorder_id}/complete requests."""
        try:
            result = await self._service.complete_workorder(workorder_id)
        except Exception as e:
            raise http_error(e, "complete work order") from e
        return _transition_response(result)

    async def update_specs(self, workorder_id: int, request: UpdateSpecsRequest) -> UpdateResponse:
        """Handle PUT /api/workorders/{workorder_id}/specs requests."""
        try:
            await self._service.update_technical_specs(workorder_id, request.note)
        except Exception as e:
            raise http_error(e, "update specifications") from e
        return UpdateResponse(success=True, message="Specifications updated")

    async def update_bom_line(
        self,
        workorder_id: int,
        line_id: int,
        request: UpdateBomLineRequest,
    ) -> BomLineItem:
        """Handle PUT /api/workorders/{workorder_id}/bom/{line_id} requests."""
        try:
            line = await self._service.update_bom_line(workorder_id, line_id, request.quantity)
        except Exception as e:
            raise http_error(e, "update component") from e
        return BomLineItem.model_validate(line)
