"""Service layer for business logic.

This layer contains the core business logic and orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository -> RpcClient -> RpcTransport
    (HTTP)  -> (Business) -> (ERP models) -> (retry/session) -> (XML-RPC)

Usage:
    ```python
    from workorder_launcher.services import CacheService, ResilientRpcClient, WorkorderService

    client = ResilientRpcClient.create(transport=XmlRpcTransport.create())
    service = WorkorderService(repository=ErpRepository(client), cache=CacheService.create())
    ```
"""

from .cache_service import CacheService
from .request_coordinator import SUPERSEDED, Debouncer, RequestCoordinator, Superseded, Throttler
from .rpc_client import ErpCredentials, ErrorKind, ResilientRpcClient, classify_error
from .workorder_service import WorkorderService

__all__ = [
    "CacheService",
    "WorkorderService",
    "ResilientRpcClient",
    "ErpCredentials",
    "ErrorKind",
    "classify_error",
    "RequestCoordinator",
    "Debouncer",
    "Throttler",
    "Superseded",
    "SUPERSEDED",
]
