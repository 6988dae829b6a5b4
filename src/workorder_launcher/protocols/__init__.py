"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (in-memory -> shared cache, XML-RPC -> JSON-RPC)
- Unit testing with fake implementations
- Clear separation of concerns

Usage:
    ```python
    from workorder_launcher.protocols import CacheStore, RpcTransport

    store: CacheStore = InMemoryCacheRepository()
    transport: RpcTransport = XmlRpcTransport.create()
    ```
"""

from .cache_store import CacheStore
from .rpc_transport import RpcClient, RpcTransport

__all__ = [
    "CacheStore",
    "RpcClient",
    "RpcTransport",
]
