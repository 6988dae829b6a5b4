"""Work order service for the dashboard's business logic.

Reads go through the cache; every mutation invalidates the cached work order
views afterwards, whether the mutation succeeded or not, so the next read
reflects whatever the ERP now holds.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from workorder_launcher.entities import (
    BomLine,
    CacheLookup,
    CacheNamespace,
    CacheStatus,
    TransitionResult,
)
from workorder_launcher.repositories import ErpRepository
from workorder_launcher.services.cache_service import CacheService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkorderService:
    """Cached access to work centers and work orders.

    Example:
        ```python
        service = WorkorderService(repository=erp_repository, cache=CacheService.create())
        result = await service.get_workorders(3)
        result.value.ready  # list[Workorder]
        result.status       # CacheStatus.HIT or MISS
        ```
    """

    def __init__(self, repository: ErpRepository, cache: CacheService) -> None:
        """Initialize the work order service.

        Args:
            repository: ERP data access (required).
            cache: Namespaced cache (required).
        """
        self._repository = repository
        self._cache = cache

    async def test_connection(self) -> int:
        return await self._repository.test_connection()

    async def get_workcenters(self) -> CacheLookup:
        key = self._cache.make_key(CacheNamespace.WORKCENTERS)
        return await self._cache.wrap(CacheNamespace.WORKCENTERS, key, self._repository.get_workcenters)

    async def get_workcenter_tags(self) -> CacheLookup:
        key = self._cache.make_key(CacheNamespace.TAGS)
        return await self._cache.wrap(CacheNamespace.TAGS, key, self._repository.get_workcenter_tags)

    async def get_workorders(self, workcenter_id: int) -> CacheLookup:
        """Get ready and active work orders of a work center.

        Args:
            workcenter_id: The work center id

        Returns:
            CacheLookup whose value is a WorkorderGroups
        """
        key = self._cache.make_key(CacheNamespace.WORKORDERS, "wc", workcenter_id)
        return await self._cache.wrap(
            CacheNamespace.WORKORDERS,
            key,
            lambda: self._repository.get_workorders_for_workcenter(workcenter_id),
        )

    async def search_workorders(self, term: str) -> CacheLookup:
        """Search work orders across all work centers.

        Args:
            term: Search text; fewer than two characters yields no results

        Returns:
            CacheLookup whose value is a list of Workorder
        """
        normalized = term.strip().lower()
        if len(normalized) < 2:
            return CacheLookup(value=[], age=0, ttl=0, remaining=0, status=CacheStatus.BYPASS)

        key = self._cache.make_key(CacheNamespace.SEARCH, normalized)
        return await self._cache.wrap(
            CacheNamespace.SEARCH,
            key,
            lambda: self._repository.search_workorders(term),
        )

    async def get_workorder(self, workorder_id: int) -> CacheLookup:
        """Get one work order.

        Raises:
            WorkorderNotFoundError: If the work order does not exist (not cached)
        """
        key = self._cache.make_key(CacheNamespace.WORKORDERS, "detail", workorder_id)
        return await self._cache.wrap(
            CacheNamespace.WORKORDERS,
            key,
            lambda: self._repository.require_workorder(workorder_id),
        )

    async def get_time_tracking(self, workorder_id: int) -> CacheLookup:
        key = self._cache.make_key(CacheNamespace.WORKORDERS, "time", workorder_id)
        return await self._cache.wrap(
            CacheNamespace.WORKORDERS,
            key,
            lambda: self._repository.get_time_tracking(workorder_id),
        )

    async def get_bom_lines(self, workorder_id: int) -> CacheLookup:
        key = self._cache.make_key(CacheNamespace.WORKORDERS, "bom", workorder_id)
        return await self._cache.wrap(
            CacheNamespace.WORKORDERS,
            key,
            lambda: self._repository.get_bom_lines(workorder_id),
        )

    async def start_workorder(
        self,
        workorder_id: int,
        target_workcenter_id: int | None = None,
    ) -> TransitionResult:
        return await self._mutate(
            lambda: self._repository.start_workorder(workorder_id, target_workcenter_id)
        )

    async def pause_workorder(self, workorder_id: int) -> TransitionResult:
        return await self._mutate(lambda: self._repository.pause_workorder(workorder_id))

    async def complete_workorder(self, workorder_id: int) -> TransitionResult:
        return await self._mutate(lambda: self._repository.complete_workorder(workorder_id))

    async def update_technical_specs(self, workorder_id: int, note: str) -> bool:
        return await self._mutate(lambda: self._repository.update_technical_specs(workorder_id, note))

    async def update_bom_line(self, workorder_id: int, line_id: int, quantity: float) -> BomLine:
        return await self._mutate(
            lambda: self._repository.update_bom_line(workorder_id, line_id, quantity)
        )

    async def _mutate(self, operation: Callable[[], Awaitable[T]]) -> T:
        # Remote state may have changed even when the operation raised.
        try:
            return await operation()
        finally:
            self.invalidate_workorders()

    def invalidate_workorders(self) -> int:
        """Drop every cached work order view and search result.

        Returns:
            Number of entries removed
        """
        removed = self._cache.invalidate_namespace(CacheNamespace.WORKORDERS)
        removed += self._cache.invalidate_namespace(CacheNamespace.SEARCH)
        logger.debug("Invalidated %d work order cache entries", removed)
        return removed

    @property
    def cache(self) -> CacheService:
        """Get the underlying cache service (for testing)."""
        return self._cache

    @property
    def repository(self) -> ErpRepository:
        """Get the underlying repository (for testing)."""
        return self._repository
