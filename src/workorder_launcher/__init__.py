"""Work Order Launcher - shop-floor dashboard backend for ERP work orders.

This package provides a layered architecture over the ERP's XML-RPC API:

Layers:
    - protocols: Interface contracts (CacheStore, RpcTransport, RpcClient)
    - repositories: Data access implementations (in-memory cache, XML-RPC, ERP models)
    - services: Business logic (caching, resilient remote calls, request coordination)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)
    - client: Dashboard client for the HTTP API

Usage:
    ```python
    from workorder_launcher.services import CacheService, ResilientRpcClient, WorkorderService
    from workorder_launcher.repositories import ErpRepository, XmlRpcTransport

    client = ResilientRpcClient.create(transport=XmlRpcTransport.create())
    service = WorkorderService(repository=ErpRepository(client), cache=CacheService.create())
    ```

For HTTP API:
    ```python
    from workorder_launcher.api.app import app
    ```
"""

from workorder_launcher.client import DashboardClient, DashboardState
from workorder_launcher.config import get_settings, settings
from workorder_launcher.entities import CacheEntryEntity, CacheLookup, CacheNamespace, Workorder
from workorder_launcher.errors import (
    InvalidTransitionError,
    RemoteAuthenticationError,
    RemoteCallError,
    RemoteUnavailableError,
    WorkorderLauncherError,
    WorkorderNotFoundError,
)
from workorder_launcher.handlers import CacheHandler, WorkorderHandler
from workorder_launcher.protocols import CacheStore, RpcClient, RpcTransport
from workorder_launcher.repositories import ErpRepository, InMemoryCacheRepository, XmlRpcTransport
from workorder_launcher.services import (
    CacheService,
    Debouncer,
    RequestCoordinator,
    ResilientRpcClient,
    Throttler,
    WorkorderService,
)

__all__ = [
    # Configuration
    "settings",
    "get_settings",
    # Protocols (interfaces)
    "CacheStore",
    "RpcClient",
    "RpcTransport",
    # Services (business logic)
    "CacheService",
    "ResilientRpcClient",
    "WorkorderService",
    "RequestCoordinator",
    "Debouncer",
    "Throttler",
    # Handlers (HTTP)
    "CacheHandler",
    "WorkorderHandler",
    # Repositories (data access)
    "InMemoryCacheRepository",
    "XmlRpcTransport",
    "ErpRepository",
    # Entities (domain models)
    "CacheEntryEntity",
    "CacheLookup",
    "CacheNamespace",
    "Workorder",
    # Errors
    "WorkorderLauncherError",
    "RemoteCallError",
    "RemoteUnavailableError",
    "RemoteAuthenticationError",
    "WorkorderNotFoundError",
    "InvalidTransitionError",
    # Client
    "DashboardClient",
    "DashboardState",
]
