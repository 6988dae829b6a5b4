"""XML-RPC transport over httpx.

Talks to the ERP's ``/xmlrpc/2/common`` (authentication) and
``/xmlrpc/2/object`` (model methods) endpoints. Request and response bodies
are marshalled with the standard library's ``xmlrpc.client``; the HTTP side
uses an ``httpx.AsyncClient`` so calls never block the event loop.
"""

import xmlrpc.client
from typing import Any
from xml.parsers.expat import ExpatError

import httpx

from workorder_launcher.config import settings


class RpcFault(Exception):
    """Structured fault returned by the ERP.

    Attributes:
        code: The fault code (an int or a string, depending on the server)
        message: The fault string, often a full server-side traceback
    """

    def __init__(self, code: int | str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class RpcProtocolError(Exception):
    """The ERP answered with something that is not a valid XML-RPC response."""


class XmlRpcTransport:
    """XML-RPC implementation of the RpcTransport protocol.

    This class satisfies the RpcTransport protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        transport = XmlRpcTransport.create(base_url="https://erp.example.com")
        version = await transport.call("common", "version", [])
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the XML-RPC transport.

        Args:
            base_url: ERP base URL. Defaults to settings.erp_url.
            timeout: HTTP timeout in seconds. Defaults to settings.rpc_timeout.
            client: Preconfigured httpx client (tests pass one with a mock transport).
        """
        self._base_url = (base_url if base_url is not None else settings.erp_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.rpc_timeout
        self._client = client

    @classmethod
    def create(cls, base_url: str | None = None, timeout: float | None = None) -> "XmlRpcTransport":
        """Factory method to create XmlRpcTransport with defaults.

        Args:
            base_url: ERP base URL. If None, uses settings.
            timeout: HTTP timeout. If None, uses settings.

        Returns:
            Configured XmlRpcTransport
        """
        return cls(base_url=base_url, timeout=timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            )
        return self._client

    def endpoint(self, service: str) -> str:
        return f"{self._base_url}/xmlrpc/2/{service}"

    async def call(self, service: str, method: str, params: list[Any]) -> Any:
        """Invoke ``method`` on ``service``.

        Args:
            service: ``common`` or ``object``
            method: Remote method name
            params: Positional parameters

        Returns:
            The decoded result

        Raises:
            RpcFault: If the response is an XML-RPC fault
            RpcProtocolError: If the response cannot be decoded
            httpx.HTTPError: On transport failures and non-2xx responses
        """
        if not self._base_url:
            raise RpcProtocolError("ERP_URL is not configured")

        body = xmlrpc.client.dumps(tuple(params), methodname=method, allow_none=True)
        response = await self.client.post(
            self.endpoint(service),
            content=body.encode("utf-8"),
            headers={"Content-Type": "text/xml"},
        )
        response.raise_for_status()

        try:
            result, _ = xmlrpc.client.loads(response.content, use_builtin_types=True)
        except xmlrpc.client.Fault as e:
            raise RpcFault(e.faultCode, e.faultString) from e
        except (ExpatError, xmlrpc.client.ResponseError) as e:
            raise RpcProtocolError(f"Invalid XML-RPC response from {service}.{method}: {e}") from e

        return result[0] if result else None

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
