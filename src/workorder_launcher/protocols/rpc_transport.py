"""Remote procedure call transport protocol.

Defines the interface to the ERP's RPC endpoints. The transport performs a
single call and reports failures as they happen; retrying and session
handling belong to ``ResilientRpcClient``.

Implementations can include:
- XML-RPC over HTTP (default)
- JSON-RPC over HTTP
- In-memory fakes for tests
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RpcTransport(Protocol):
    """Protocol for ERP RPC transports."""

    async def call(self, service: str, method: str, params: list[Any]) -> Any:
        """Invoke ``method`` on ``service`` with positional ``params``.

        Args:
            service: RPC service name (``common`` or ``object``)
            method: Method name (``authenticate``, ``execute_kw``, ...)
            params: Positional parameters

        Returns:
            The decoded result

        Raises:
            RpcFault: If the remote side answered with a structured fault
            httpx.TransportError: On connection-level failures
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


@runtime_checkable
class RpcClient(Protocol):
    """Protocol for session-aware ERP clients used by repositories."""

    async def execute_kw(
        self,
        model: str,
        method: str,
        args: list[Any] | None = None,
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Call ``method`` on an ERP ``model``.

        Args:
            model: ERP model name
            method: Model method
            args: Positional arguments
            kwargs: Keyword arguments

        Returns:
            The remote result
        """
        ...

    async def test_connection(self) -> int:
        """Authenticate from scratch and return the user id."""
        ...
