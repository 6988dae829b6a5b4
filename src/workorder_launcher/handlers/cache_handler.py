"""HTTP handlers for cache administration and health.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging

from fastapi import HTTPException, status

from workorder_launcher.config import settings
from workorder_launcher.dto import (
    CacheInvalidateRequest,
    CacheInvalidateResponse,
    CacheStatsResponse,
    CacheStatusResponse,
    HealthCheckResponse,
    NamespaceStatus,
)
from workorder_launcher.services import CacheService, ResilientRpcClient

logger = logging.getLogger(__name__)


class CacheHandler:
    """HTTP handlers for cache operations.

    This handler delegates business logic to CacheService
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Choosing between key, prefix and full invalidation
    - Error handling and responses

    Example:
        ```python
        handler = CacheHandler(cache_service=CacheService.create())

        @app.get("/api/cache/stats", response_model=CacheStatsResponse)
        async def cache_stats():
            return await handler.get_stats()
        ```
    """

    def __init__(
        self,
        cache_service: CacheService,
        rpc_client: ResilientRpcClient | None = None,
        erp_configured: bool | None = None,
    ) -> None:
        """Initialize the cache handler.

        Args:
            cache_service: The cache service for business logic (required).
            rpc_client: Client whose session state is reported by the health check.
            erp_configured: Override of ``settings.erp_configured``.
        """
        self._cache = cache_service
        self._rpc_client = rpc_client
        self._erp_configured = settings.erp_configured if erp_configured is None else erp_configured

    def _stats_response(self) -> CacheStatsResponse:
        stats = self._cache.get_stats()
        return CacheStatsResponse(
            entries=stats.entries,
            hits=stats.hits,
            misses=stats.misses,
            hit_rate=stats.hit_rate,
            invalidations=stats.invalidations,
        )

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /api/cache/stats requests.

        Returns:
            CacheStatsResponse with hit/miss counters

        Raises:
            HTTPException: If an error occurs while fetching stats
        """
        try:
            return self._stats_response()
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get stats: {e}",
            ) from e

    async def get_status(self) -> CacheStatusResponse:
        """Handle GET /api/cache/status requests."""
        try:
            namespaces = {
                name: NamespaceStatus(**state) for name, state in self._cache.get_status().items()
            }
            return CacheStatusResponse(namespaces=namespaces, stats=self._stats_response())
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get cache status: {e}",
            ) from e

    async def invalidate(self, request: CacheInvalidateRequest) -> CacheInvalidateResponse:
        """Handle POST /api/cache/invalidate requests.

        An exact ``key`` wins over ``prefix``; with neither, the whole cache is cleared.

        Args:
            request: The invalidation request DTO

        Returns:
            CacheInvalidateResponse with the number of entries removed
        """
        try:
            if request.key:
                count = 1 if self._cache.invalidate(request.key) else 0
                message = f"Invalidated key {request.key}"
            elif request.prefix:
                count = self._cache.invalidate_prefix(request.prefix)
                message = f"Invalidated {count} entries with prefix {request.prefix}"
            else:
                count = self._cache.clear()
                message = "Cache cleared successfully"
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to invalidate cache: {e}",
            ) from e

        logger.info("[CACHE] %s", message)
        return CacheInvalidateResponse(success=True, deleted_count=count, message=message)

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests.

        Returns:
            HealthCheckResponse; unhealthy when the ERP is not configured
        """
        health = self._rpc_client.get_health() if self._rpc_client else {}
        return HealthCheckResponse(
            status="healthy" if self._erp_configured else "unhealthy",
            erp_configured=self._erp_configured,
            authenticated=health.get("authenticated", False),
            failure_count=health.get("failure_count", 0),
            last_error=health.get("last_error"),
        )
