"""Request coordination for user-driven fetches.

``RequestCoordinator`` keeps "latest wins" ordering: when several fetches of
the same resource overlap, only the outcome of the one issued last is
surfaced, whatever order they complete in. ``Debouncer`` and ``Throttler``
limit how often user input (typing, refresh clicks) reaches the backend.

All three are meant to be used from a single asyncio event loop.
Cancellation is advisory: a superseded remote call still runs to completion
and its side effects still happen, only its result is dropped.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Superseded:
    """Marker returned in place of the result of a superseded request."""

    _instance: "Superseded | None" = None

    def __new__(cls) -> "Superseded":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "SUPERSEDED"


SUPERSEDED = Superseded()


class RequestCoordinator:
    """Discards outcomes of requests that a newer request has superseded.

    Example:
        ```python
        coordinator = RequestCoordinator()
        result = await coordinator.execute("workorders", lambda: api.fetch(wc_id))
        if result is SUPERSEDED:
            return  # a newer selection is already on screen
        ```
    """

    def __init__(self) -> None:
        self._sequence = 0
        self._latest: dict[str, int] = {}

    def next_sequence(self, resource_type: str) -> int:
        """Issue a sequence number and record it as the latest for ``resource_type``."""
        self._sequence += 1
        self._latest[resource_type] = self._sequence
        return self._sequence

    def is_current(self, resource_type: str, sequence: int) -> bool:
        """Check whether ``sequence`` is still the latest issued for ``resource_type``."""
        return self._latest.get(resource_type) == sequence

    async def execute(
        self,
        resource_type: str,
        producer: Callable[[], Awaitable[T]],
    ) -> T | Superseded:
        """Run ``producer`` and surface its outcome only if still current.

        Args:
            resource_type: Logical resource being fetched (e.g. ``workorders``)
            producer: Coroutine function performing the fetch

        Returns:
            The producer's result, or SUPERSEDED if a newer request for the
            same resource was issued (or the type was cancelled) meanwhile

        Raises:
            Exception: Whatever the producer raised, if the request is still current
        """
        sequence = self.next_sequence(resource_type)
        try:
            result = await producer()
        except Exception as e:
            if self.is_current(resource_type, sequence):
                raise
            logger.debug(
                "Dropping error of superseded %s request #%d: %s", resource_type, sequence, e
            )
            return SUPERSEDED

        if not self.is_current(resource_type, sequence):
            logger.debug("Dropping result of superseded %s request #%d", resource_type, sequence)
            return SUPERSEDED
        return result

    def cancel(self, resource_type: str) -> None:
        """Treat every in-flight request of ``resource_type`` as superseded."""
        self._latest.pop(resource_type, None)

    @property
    def in_flight_types(self) -> list[str]:
        return list(self._latest)


def _dispatch(func: Callable[..., Any], args: tuple, kwargs: dict, tasks: set[asyncio.Task]) -> None:
    """Call ``func`` from a timer callback, scheduling it if it is async."""
    try:
        result = func(*args, **kwargs)
    except Exception:
        logger.exception("Deferred call to %s failed", getattr(func, "__name__", func))
        return

    if inspect.isawaitable(result):
        task = asyncio.ensure_future(result)
        tasks.add(task)
        task.add_done_callback(lambda t: _task_done(t, tasks))


def _task_done(task: asyncio.Task, tasks: set[asyncio.Task]) -> None:
    tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Deferred task failed: %s", exc, exc_info=exc)


class Debouncer:
    """Collapse bursts of calls into one trailing call.

    Each call restarts the quiet window; when the window elapses without
    another call, ``func`` runs once with the arguments of the last call.
    Must be called from within a running event loop.
    """

    def __init__(self, func: Callable[..., Any], wait: float = 0.3) -> None:
        self._func = func
        self._wait = wait
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._wait, self._fire, args, kwargs)

    def _fire(self, args: tuple, kwargs: dict) -> None:
        self._handle = None
        _dispatch(self._func, args, kwargs, self._tasks)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        """Drop the scheduled call, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def drain(self) -> None:
        """Wait for calls that already fired to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class Throttler:
    """Run ``func`` at most once per ``interval`` seconds.

    The first call runs immediately and opens a cooldown window. Calls made
    during the window are not dropped: the most recent one runs once when
    the window closes, opening a new window.
    Must be called from within a running event loop.
    """

    def __init__(self, func: Callable[..., Any], interval: float = 2.0) -> None:
        self._func = func
        self._interval = interval
        self._cooldown: asyncio.TimerHandle | None = None
        self._pending: tuple[tuple, dict] | None = None
        self._tasks: set[asyncio.Task] = set()

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if self._cooldown is None:
            self._invoke(args, kwargs)
        else:
            self._pending = (args, kwargs)

    def _invoke(self, args: tuple, kwargs: dict) -> None:
        loop = asyncio.get_running_loop()
        self._cooldown = loop.call_later(self._interval, self._on_window_end)
        _dispatch(self._func, args, kwargs, self._tasks)

    def _on_window_end(self) -> None:
        self._cooldown = None
        if self._pending is not None:
            args, kwargs = self._pending
            self._pending = None
            self._invoke(args, kwargs)

    @property
    def cooling_down(self) -> bool:
        return self._cooldown is not None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def cancel(self) -> None:
        """Drop the trailing call and close the current window."""
        if self._cooldown is not None:
            self._cooldown.cancel()
            self._cooldown = None
        self._pending = None

    async def drain(self) -> None:
        """Wait for calls that already fired to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
