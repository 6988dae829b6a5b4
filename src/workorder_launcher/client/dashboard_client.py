"""Async dashboard client for the launcher API.

Mirrors what the shop-floor screen does: pick a work center, watch its work
orders, search, and start/pause/complete work orders. Every fetch goes
through a ``RequestCoordinator`` so a slow response for a previous selection
can never overwrite the current one.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx

from workorder_launcher.config import settings
from workorder_launcher.dto import TransitionResponse, WorkcenterItem, WorkorderGroupsResponse, WorkorderItem
from workorder_launcher.errors import DashboardRequestError
from workorder_launcher.services import SUPERSEDED, Debouncer, RequestCoordinator, Throttler

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_DEBOUNCE = 0.3
REFRESH_THROTTLE = 2.0
MIN_SEARCH_LENGTH = 2


@dataclass
class DashboardState:
    """What the dashboard currently shows."""

    workcenters: list[WorkcenterItem] = field(default_factory=list)
    selected_workcenter_id: int | None = None
    ready: list[WorkorderItem] = field(default_factory=list)
    active: list[WorkorderItem] = field(default_factory=list)
    search_term: str = ""
    search_results: list[WorkorderItem] = field(default_factory=list)
    last_error: str | None = None


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    if isinstance(detail, str) and detail:
        return detail
    return f"HTTP {response.status_code}"


class DashboardClient:
    """Client-side state and request coordination for the dashboard.

    Example:
        ```python
        async with DashboardClient.create("http://localhost:3000") as dashboard:
            await dashboard.load_workcenters()
            await dashboard.select_workcenter(3)
            dashboard.state.ready  # list[WorkorderItem]
        ```
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        coordinator: RequestCoordinator | None = None,
        search_debounce: float = SEARCH_DEBOUNCE,
        refresh_throttle: float = REFRESH_THROTTLE,
        owns_http: bool = False,
    ) -> None:
        """Initialize the dashboard client.

        Args:
            http: Client bound to the launcher API base URL (required).
            coordinator: Shared request coordinator. Defaults to a new one.
            search_debounce: Quiet period in seconds before a typed search runs.
            refresh_throttle: Minimum seconds between refreshes.
            owns_http: Close ``http`` when this client is closed.
        """
        self._http = http
        self._owns_http = owns_http
        self._coordinator = coordinator or RequestCoordinator()
        self.state = DashboardState()
        self._search_debouncer = Debouncer(self.search, wait=search_debounce)
        self._refresh_throttler = Throttler(self.refresh, interval=refresh_throttle)

    @classmethod
    def create(cls, base_url: str | None = None, timeout: float = 30.0) -> "DashboardClient":
        """Factory method to create a client for a running launcher API.

        Args:
            base_url: API root. If None, uses the configured host and port.
            timeout: HTTP timeout in seconds

        Returns:
            DashboardClient owning its HTTP client
        """
        url = base_url or f"http://localhost:{settings.api_port}"
        return cls(http=httpx.AsyncClient(base_url=url, timeout=timeout), owns_http=True)

    @property
    def coordinator(self) -> RequestCoordinator:
        return self._coordinator

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise DashboardRequestError(f"{method} {path} failed: {e}") from e
        if response.is_error:
            raise DashboardRequestError(_error_detail(response), status_code=response.status_code)
        return response.json()

    async def _coordinated(
        self,
        resource_type: str,
        producer: Callable[[], Awaitable[T]],
        apply: Callable[[T], None],
    ) -> bool:
        """Run a fetch and apply its result only if it is still the latest.

        Returns:
            True if the state was updated
        """
        try:
            result = await self._coordinator.execute(resource_type, producer)
        except DashboardRequestError as e:
            logger.warning("[DASHBOARD] %s request failed: %s", resource_type, e.message)
            self.state.last_error = e.message
            return False

        if result is SUPERSEDED:
            return False
        apply(result)
        self.state.last_error = None
        return True

    async def load_workcenters(self) -> bool:
        async def fetch() -> list[WorkcenterItem]:
            payload = await self._request("GET", "/api/workcenters")
            return [WorkcenterItem.model_validate(item) for item in payload]

        def apply(workcenters: list[WorkcenterItem]) -> None:
            self.state.workcenters = workcenters

        return await self._coordinated("workcenters", fetch, apply)

    async def _load_workorders(self, workcenter_id: int) -> bool:
        async def fetch() -> WorkorderGroupsResponse:
            payload = await self._request("GET", f"/api/workcenters/{workcenter_id}/workorders")
            return WorkorderGroupsResponse.model_validate(payload)

        def apply(groups: WorkorderGroupsResponse) -> None:
            self.state.ready = groups.ready
            self.state.active = groups.active

        return await self._coordinated("workorders", fetch, apply)

    async def select_workcenter(self, workcenter_id: int) -> bool:
        """Switch to a work center and load its work orders.

        Args:
            workcenter_id: The work center to show

        Returns:
            True if this selection's work orders were applied
        """
        if self.state.selected_workcenter_id != workcenter_id:
            self.state.ready = []
            self.state.active = []
        self.state.selected_workcenter_id = workcenter_id
        return await self._load_workorders(workcenter_id)

    async def refresh(self) -> bool:
        """Reload the work orders of the selected work center."""
        if self.state.selected_workcenter_id is None:
            return False
        return await self._load_workorders(self.state.selected_workcenter_id)

    def request_refresh(self) -> None:
        """Refresh at most once per throttle window; the last request in a window still runs."""
        self._refresh_throttler()

    async def search(self, term: str) -> bool:
        """Search work orders across all work centers.

        Terms shorter than two characters clear the results and discard any
        search still in flight.

        Args:
            term: Search text

        Returns:
            True if this search's results were applied
        """
        self.state.search_term = term
        if len(term.strip()) < MIN_SEARCH_LENGTH:
            self._coordinator.cancel("search")
            self.state.search_results = []
            return False

        async def fetch() -> list[WorkorderItem]:
            payload = await self._request("GET", "/api/workorders/search", params={"q": term.strip()})
            return [WorkorderItem.model_validate(item) for item in payload]

        def apply(results: list[WorkorderItem]) -> None:
            self.state.search_results = results

        return await self._coordinated("search", fetch, apply)

    def search_as_you_type(self, term: str) -> None:
        """Search once typing pauses for the debounce period."""
        self.state.search_term = term
        self._search_debouncer(term)

    async def _transition(self, workorder_id: int, action: str, body: dict | None = None) -> TransitionResponse | None:
        try:
            payload = await self._request("POST", f"/api/workorders/{workorder_id}/{action}", json=body)
        except DashboardRequestError as e:
            logger.warning("[DASHBOARD] %s of work order %s failed: %s", action, workorder_id, e.message)
            self.state.last_error = e.message
            return None

        result = TransitionResponse.model_validate(payload)
        await self.refresh()
        return result

    async def start_workorder(self, workorder_id: int) -> TransitionResponse | None:
        """Start a work order at the selected work center.

        Returns:
            The transition, or None if it failed (see ``state.last_error``)
        """
        body = {"target_workcenter_id": self.state.selected_workcenter_id}
        return await self._transition(workorder_id, "start", body)

    async def pause_workorder(self, workorder_id: int) -> TransitionResponse | None:
        return await self._transition(workorder_id, "pause")

    async def complete_workorder(self, workorder_id: int) -> TransitionResponse | None:
        return await self._transition(workorder_id, "complete")

    async def drain(self) -> None:
        """Wait for debounced and throttled calls that already fired."""
        await self._search_debouncer.drain()
        await self._refresh_throttler.drain()

    async def close(self) -> None:
        self._search_debouncer.cancel()
        self._refresh_throttler.cancel()
        await self.drain()
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "DashboardClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
