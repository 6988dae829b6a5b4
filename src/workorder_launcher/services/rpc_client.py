"""Resilient remote call wrapper for the ERP.

Every remote operation goes through ``ResilientRpcClient``, which:

1. Makes sure a valid session token exists, authenticating if needed
2. Performs the call with an enforced timeout
3. Classifies failures and retries session and transient errors with
   exponential backoff, up to a fixed number of attempts

Errors that cannot be recovered are raised as ``RemoteCallError``
subclasses, chained to the last original exception.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from workorder_launcher.config import settings
from workorder_launcher.entities import SessionToken
from workorder_launcher.errors import (
    RemoteAuthenticationError,
    RemoteCallError,
    RemoteFaultError,
    RemoteUnavailableError,
)
from workorder_launcher.protocols import RpcTransport
from workorder_launcher.repositories.xmlrpc_transport import RpcFault, RpcProtocolError

logger = logging.getLogger(__name__)

COMMON_SERVICE = "common"
OBJECT_SERVICE = "object"

# Fault code the ERP uses for AccessDenied on XML-RPC
ACCESS_DENIED_FAULT_CODE = 3

# Methods returning None make the server fail while marshalling the response
NONE_RESULT_MARKER = "cannot marshal none"

SESSION_ERROR_MARKERS = (
    "session expired",
    "sessionexpiredexception",
    "access denied",
    "accessdenied",
)

TRANSIENT_ERROR_MARKERS = (
    "econnreset",
    "etimedout",
    "econnrefused",
    "enotfound",
    "eai_again",
    "socket hang up",
    "connection reset",
    "connection refused",
    "connection aborted",
    "timed out",
    "name or service not known",
    "temporary failure in name resolution",
)

RETRYABLE_HTTP_STATUSES = frozenset({502, 503, 504})


class ErrorKind(Enum):
    """How a failed remote call is handled."""

    SESSION = "session"
    TRANSIENT = "transient"
    NONE_RESULT = "none_result"
    FATAL = "fatal"


def classify_error(exc: BaseException, none_means_success: bool = True) -> ErrorKind:
    """Decide whether a remote failure is retryable.

    Args:
        exc: The exception raised by the transport
        none_means_success: Treat the "cannot marshal None" fault as success

    Returns:
        The ErrorKind of the failure
    """
    message = str(exc).lower()

    if none_means_success and NONE_RESULT_MARKER in message:
        return ErrorKind.NONE_RESULT

    if isinstance(exc, RpcFault):
        if exc.code == ACCESS_DENIED_FAULT_CODE:
            return ErrorKind.SESSION
        if any(marker in message for marker in SESSION_ERROR_MARKERS):
            return ErrorKind.SESSION
        return ErrorKind.FATAL

    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code in RETRYABLE_HTTP_STATUSES:
            return ErrorKind.TRANSIENT
        return ErrorKind.FATAL

    if isinstance(exc, (httpx.TransportError, asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return ErrorKind.TRANSIENT

    if any(marker in message for marker in TRANSIENT_ERROR_MARKERS):
        return ErrorKind.TRANSIENT

    return ErrorKind.FATAL


@dataclass(frozen=True)
class ErpCredentials:
    """Database and user the session is opened for."""

    db: str
    user: str
    api_key: str

    @classmethod
    def from_settings(cls) -> "ErpCredentials":
        return cls(db=settings.erp_db, user=settings.erp_user, api_key=settings.erp_api_key)


class ResilientRpcClient:
    """Session-aware, retrying client for the ERP's RPC interface.

    The session token and failure counters are owned by the instance.
    Attempts for one operation run strictly one after another.

    Example:
        ```python
        client = ResilientRpcClient.create(transport=XmlRpcTransport.create())
        workcenters = await client.execute_kw(
            "mrp.workcenter", "search_read", [[["active", "=", True]]], {"fields": ["name"]}
        )
        ```
    """

    def __init__(
        self,
        transport: RpcTransport,
        credentials: ErpCredentials | None = None,
        timeout: float | None = None,
        timeout_grace: float | None = None,
        max_retries: int | None = None,
        retry_base_delay: float | None = None,
        session_ttl: float | None = None,
        none_means_success: bool | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            transport: RPC transport (required).
            credentials: ERP database and user. Defaults to settings.
            timeout: Per-call timeout in seconds. Defaults to settings.
            timeout_grace: Extra seconds before the local timer fires. Defaults to settings.
            max_retries: Total attempts per operation. Defaults to settings.
            retry_base_delay: First backoff delay in seconds. Defaults to settings.
            session_ttl: Seconds before a session is renewed. Defaults to settings.
            none_means_success: Accept the "cannot marshal None" fault as success.
            sleep: Coroutine used for backoff delays. Defaults to asyncio.sleep.
            clock: Monotonic clock in seconds. Defaults to time.monotonic.
        """
        self._transport = transport
        self._credentials = credentials or ErpCredentials.from_settings()
        self._timeout = timeout if timeout is not None else settings.rpc_timeout
        self._timeout_grace = timeout_grace if timeout_grace is not None else settings.rpc_timeout_grace
        self._max_retries = max_retries if max_retries is not None else settings.rpc_max_retries
        self._retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.rpc_retry_base_delay
        )
        self._session_ttl = session_ttl if session_ttl is not None else settings.session_ttl
        self._none_means_success = (
            none_means_success if none_means_success is not None else settings.rpc_none_means_success
        )
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic

        if self._max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self._session: SessionToken | None = None
        self._failure_count = 0
        self._last_error: str | None = None
        self._last_failure_at: float | None = None

    @classmethod
    def create(
        cls,
        transport: RpcTransport,
        credentials: ErpCredentials | None = None,
    ) -> "ResilientRpcClient":
        """Factory method to create ResilientRpcClient with settings defaults.

        Args:
            transport: RPC transport (required).
            credentials: ERP credentials. If None, uses settings.

        Returns:
            Configured ResilientRpcClient
        """
        return cls(transport=transport, credentials=credentials)

    @property
    def session(self) -> SessionToken | None:
        """Current session token, if any."""
        return self._session

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def invalidate_session(self) -> None:
        """Forget the session so the next call authenticates again."""
        if self._session is not None:
            logger.info("[RPC] Session invalidated (uid %s)", self._session.uid)
        self._session = None

    async def _call(self, service: str, method: str, params: list[Any]) -> Any:
        # The transport has its own timeout; this timer covers transports that do not.
        return await asyncio.wait_for(
            self._transport.call(service, method, params),
            timeout=self._timeout + self._timeout_grace,
        )

    async def authenticate(self, force: bool = False) -> SessionToken:
        """Return a valid session token, authenticating if needed.

        Args:
            force: Discard the current token first

        Returns:
            The valid SessionToken

        Raises:
            RemoteAuthenticationError: If the ERP rejects the credentials
        """
        if force:
            self.invalidate_session()

        if self._session is not None and self._session.is_valid(self._clock()):
            return self._session

        logger.info("[RPC] Authenticating %s on %s", self._credentials.user, self._credentials.db)
        uid = await self._call(
            COMMON_SERVICE,
            "authenticate",
            [self._credentials.db, self._credentials.user, self._credentials.api_key, {}],
        )
        if not uid:
            raise RemoteAuthenticationError("Authentication failed: invalid credentials")

        self._session = SessionToken(uid=int(uid), issued_at=self._clock(), ttl=self._session_ttl)
        logger.info("[RPC] Authenticated with uid %s", uid)
        return self._session

    async def execute_kw(
        self,
        model: str,
        method: str,
        args: list[Any] | None = None,
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Call ``method`` on ``model`` with retries and session renewal.

        Args:
            model: ERP model name (e.g. ``mrp.workorder``)
            method: Model method (e.g. ``search_read``, ``button_start``)
            args: Positional arguments
            kwargs: Keyword arguments

        Returns:
            The remote result, or True when the method returned None

        Raises:
            RemoteFaultError: On a non-retryable fault
            RemoteAuthenticationError: If the session could not be renewed
            RemoteUnavailableError: If transient failures outlasted every attempt
        """

        async def call(token: SessionToken) -> Any:
            return await self._call(
                OBJECT_SERVICE,
                "execute_kw",
                [
                    self._credentials.db,
                    token.uid,
                    self._credentials.api_key,
                    model,
                    method,
                    args or [],
                    kwargs or {},
                ],
            )

        return await self._run(f"{model}.{method}", call)

    async def test_connection(self) -> int:
        """Force a fresh authentication and return the user id."""
        self.invalidate_session()

        async def call(token: SessionToken) -> int:
            return token.uid

        return await self._run("common.authenticate", call)

    async def _run(self, operation: str, call: Callable[[SessionToken], Awaitable[Any]]) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._retry_base_delay),
            retry=retry_if_exception(self._is_retryable),
            sleep=self._sleep,
            before_sleep=partial(self._log_retry, operation),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._attempt(operation, call, attempt.retry_state.attempt_number)
        except RemoteCallError:
            raise
        except Exception as e:
            message = f"{operation} failed after {self._max_retries} attempts: {_describe(e)}"
            if classify_error(e, self._none_means_success) is ErrorKind.SESSION:
                raise RemoteAuthenticationError(message, attempts=self._max_retries) from e
            raise RemoteUnavailableError(message, attempts=self._max_retries) from e

    async def _attempt(
        self,
        operation: str,
        call: Callable[[SessionToken], Awaitable[Any]],
        attempt_number: int,
    ) -> Any:
        """Run one attempt of ``operation``.

        Session and transient failures are re-raised as they are so the retry
        policy can decide on them. Fatal faults become ``RemoteFaultError``.
        """
        try:
            token = await self.authenticate()
            result = await call(token)
        except RemoteAuthenticationError as e:
            e.attempts = attempt_number
            self._record_failure(operation, e)
            raise
        except Exception as e:
            kind = classify_error(e, self._none_means_success)

            if kind is ErrorKind.NONE_RESULT:
                logger.info("[RPC] %s completed (returned None)", operation)
                self._record_success()
                return True

            self._record_failure(operation, e)

            if kind is ErrorKind.FATAL:
                raise RemoteFaultError(
                    f"{operation} failed: {_describe(e)}",
                    fault_code=e.code if isinstance(e, RpcFault) else None,
                    attempts=attempt_number,
                ) from e

            if kind is ErrorKind.SESSION:
                self.invalidate_session()
            raise

        self._record_success()
        return result

    def _is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, RemoteCallError):
            return False
        return classify_error(exc, self._none_means_success) in (ErrorKind.SESSION, ErrorKind.TRANSIENT)

    def _log_retry(self, operation: str, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            "[RPC] %s attempt %d/%d failed (%s), retrying in %ss",
            operation,
            retry_state.attempt_number,
            self._max_retries,
            classify_error(exc, self._none_means_success).value,
            retry_state.next_action.sleep,
        )

    def _record_failure(self, operation: str, exc: Exception) -> None:
        self._failure_count += 1
        self._last_failure_at = time.time()
        self._last_error = f"{exc.__class__.__name__}: {exc}"
        logger.warning("[RPC] %s failed (%s): %s", operation, exc.__class__.__name__, exc)

    def _record_success(self) -> None:
        self._failure_count = 0
        self._last_error = None

    def get_health(self) -> dict[str, Any]:
        """Session and failure bookkeeping for the health endpoint."""
        now = self._clock()
        return {
            "authenticated": self._session is not None and self._session.is_valid(now),
            "uid": self._session.uid if self._session else None,
            "session_age": round(self._session.age(now)) if self._session else None,
            "failure_count": self._failure_count,
            "last_error": self._last_error,
            "last_failure_at": self._last_failure_at,
        }

    async def close(self) -> None:
        await self._transport.close()


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "unknown error"
    if isinstance(exc, RpcFault):
        # Fault strings carry the whole server traceback; the last line names the error.
        lines = [line for line in exc.message.strip().splitlines() if line.strip()]
        return lines[-1] if lines else str(exc.code)
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)) and not str(exc):
        return "timed out"
    if isinstance(exc, RpcProtocolError):
        return str(exc)
    return str(exc) or exc.__class__.__name__
