"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
    - Objects already placed on app.state (e.g. by tests) are kept as they are
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from workorder_launcher.config import configure_logging, settings
from workorder_launcher.handlers import CacheHandler, WorkorderHandler
from workorder_launcher.repositories import ErpRepository, XmlRpcTransport
from workorder_launcher.services import CacheService, ResilientRpcClient, WorkorderService

logger = logging.getLogger(__name__)


def _from_state(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{label} not initialized. Check lifespan setup.")
    return value


def get_workorder_handler(request: Request) -> WorkorderHandler:
    """Dependency injection for WorkorderHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    return _from_state(request, "workorder_handler", "WorkorderHandler")


def get_cache_handler(request: Request) -> CacheHandler:
    return _from_state(request, "cache_handler", "CacheHandler")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores them in app.state:
    1. Transport and RPC client (remote access) - app.state.rpc_client
    2. Repository and services (business logic) - app.state.workorder_service
    3. Handlers (HTTP endpoints) - app.state.workorder_handler, app.state.cache_handler

    Layers already present on app.state are reused, so tests can inject fakes.

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Closes the RPC client and removes what this lifespan created
    """
    configure_logging()
    state = app.state
    created: list[str] = []

    if getattr(state, "workorder_service", None) is None:
        if getattr(state, "cache_service", None) is None:
            state.cache_service = CacheService.create()
            created.append("cache_service")
        state.rpc_client = ResilientRpcClient.create(transport=XmlRpcTransport.create())
        state.workorder_service = WorkorderService(
            repository=ErpRepository(client=state.rpc_client),
            cache=state.cache_service,
        )
        created += ["rpc_client", "workorder_service"]
    elif getattr(state, "cache_service", None) is None:
        state.cache_service = state.workorder_service.cache
        created.append("cache_service")

    if getattr(state, "workorder_handler", None) is None:
        state.workorder_handler = WorkorderHandler(workorder_service=state.workorder_service)
        created.append("workorder_handler")
    if getattr(state, "cache_handler", None) is None:
        state.cache_handler = CacheHandler(
            cache_service=state.cache_service,
            rpc_client=getattr(state, "rpc_client", None),
        )
        created.append("cache_handler")

    if settings.erp_configured:
        logger.info("ERP endpoint: %s (database %s)", settings.erp_url, settings.erp_db)
    else:
        logger.warning("ERP connection is not configured; set ERP_URL, ERP_DB, ERP_USER and ERP_API_KEY")
    logger.info("Work order launcher initialized")

    yield

    # Cleanup - close remote connections and remove what was created here
    if "rpc_client" in created:
        await state.rpc_client.close()
    for name in created:
        delattr(state, name)
    logger.info("Work order launcher shut down")


# Type aliases for cleaner dependency injection
WorkorderHandlerDep = Annotated[WorkorderHandler, Depends(get_workorder_handler)]
CacheHandlerDep = Annotated[CacheHandler, Depends(get_cache_handler)]
