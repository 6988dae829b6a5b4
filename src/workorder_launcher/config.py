import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Remote ERP (XML-RPC)
    erp_url: str = os.getenv("ERP_URL", "")
    erp_db: str = os.getenv("ERP_DB", "")
    erp_user: str = os.getenv("ERP_USER", "")
    erp_api_key: str = os.getenv("ERP_API_KEY", "")

    # Remote call policy
    rpc_timeout: float = float(os.getenv("RPC_TIMEOUT", "30"))
    rpc_timeout_grace: float = float(os.getenv("RPC_TIMEOUT_GRACE", "5"))
    rpc_max_retries: int = int(os.getenv("RPC_MAX_RETRIES", "3"))
    rpc_retry_base_delay: float = float(os.getenv("RPC_RETRY_BASE_DELAY", "1"))
    session_ttl: float = float(os.getenv("ERP_SESSION_TTL", "3600"))  # 1 hour
    # Some ERP methods return None, which the server cannot marshal over XML-RPC
    rpc_none_means_success: bool = os.getenv("RPC_NONE_MEANS_SUCCESS", "true").lower() == "true"

    # Cache TTLs in seconds, 0 disables caching for the namespace
    cache_ttl_workcenters: float = float(os.getenv("CACHE_TTL_WORKCENTERS", "3600"))
    cache_ttl_tags: float = float(os.getenv("CACHE_TTL_TAGS", "3600"))
    cache_ttl_workorders: float = float(os.getenv("CACHE_TTL_WORKORDERS", "15"))
    cache_ttl_search: float = float(os.getenv("CACHE_TTL_SEARCH", "0"))
    cache_ttl_default: float = float(os.getenv("CACHE_TTL_DEFAULT", "30"))

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "3000"))
    api_reload: bool = os.getenv("API_RELOAD", "false").lower() == "true"

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def erp_configured(self) -> bool:
        """Check whether the ERP endpoint and credentials are all set.

        Returns:
            True if URL, database, user and API key are present
        """
        return all((self.erp_url, self.erp_db, self.erp_user, self.erp_api_key))

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.rpc_timeout <= 0:
            raise ValueError("RPC_TIMEOUT must be positive")

        if self.rpc_max_retries < 1:
            raise ValueError(f"RPC_MAX_RETRIES must be at least 1, got {self.rpc_max_retries}")

        ttls = (
            self.cache_ttl_workcenters,
            self.cache_ttl_tags,
            self.cache_ttl_workorders,
            self.cache_ttl_search,
            self.cache_ttl_default,
        )
        if any(ttl < 0 for ttl in ttls):
            raise ValueError("CACHE_TTL_* values must be non-negative")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
