"""Visit store backends and the process-wide store singleton."""

from compliance_engine.config.logging import get_logger
from compliance_engine.config.settings import get_settings
from compliance_engine.store.base import VisitStore
from compliance_engine.store.memory import InMemoryVisitStore
from compliance_engine.store.redis import RedisVisitStore

logger = get_logger(__name__)

_visit_store: VisitStore | None = None


def get_visit_store() -> VisitStore:
    """
    Get or create the singleton visit store.

    Uses Redis if configured, otherwise falls back to in-memory storage.
    """
    global _visit_store

    if _visit_store is not None:
        return _visit_store

    settings = get_settings()
    if settings.redis_url:
        _visit_store = RedisVisitStore(
            redis_url=settings.redis_url,
            key_prefix=settings.redis_key_prefix,
            require_tls=settings.require_redis_tls,
        )
        logger.info("Using Redis visit store")
    else:
        _visit_store = InMemoryVisitStore()
        logger.warning("Using in-memory visit store - data will not persist across restarts")

    return _visit_store


def set_visit_store(store: VisitStore) -> None:
    """Install a specific store instance (tests, embedding)."""
    global _visit_store
    _visit_store = store


async def cleanup_visit_store() -> None:
    """Close and drop the singleton store."""
    global _visit_store

    if _visit_store is not None:
        await _visit_store.close()
        _visit_store = None


def reset_visit_store() -> None:
    """Drop the singleton without closing it."""
    global _visit_store
    _visit_store = None


__all__ = [
    "InMemoryVisitStore",
    "RedisVisitStore",
    "VisitStore",
    "cleanup_visit_store",
    "get_visit_store",
    "reset_visit_store",
    "set_visit_store",
]
