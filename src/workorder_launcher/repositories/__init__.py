"""Repository layer for data access.

This layer abstracts external dependencies (the cache store, the ERP's RPC
endpoints) behind protocol-based interfaces. This enables:
- Easy swapping of implementations
- Unit testing with fake implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from workorder_launcher.protocols import CacheStore, RpcClient, RpcTransport

from .erp_repository import ErpRepository
from .memory_cache_repository import InMemoryCacheRepository
from .xmlrpc_transport import RpcFault, RpcProtocolError, XmlRpcTransport

__all__ = [
    "CacheStore",
    "RpcClient",
    "RpcTransport",
    "ErpRepository",
    "InMemoryCacheRepository",
    "XmlRpcTransport",
    "RpcFault",
    "RpcProtocolError",
]
