"""Builds the IconService and owns the lifecycle of its resources."""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from cloudicons.config import Settings
from cloudicons.database import build_engine, close_db, init_db
from cloudicons.services.cache import TieredCache
from cloudicons.services.resolver import IconService
from cloudicons.stores import ContentStore, FailoverMetadataStore, JsonCatalogStore, SqlIconStore

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Everything the API needs, constructed at startup and closed at shutdown."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: AsyncEngine | None = build_engine(settings) if settings.has_database else None
        self.cache = TieredCache.from_settings(settings)

        primary = None
        if self.engine is not None:
            primary = SqlIconStore(
                self.engine,
                max_attempts=settings.db_max_retries,
                retry_delay=settings.db_retry_delay_seconds,
                backoff=settings.db_retry_backoff,
            )

        self.icon_service = IconService(
            store=FailoverMetadataStore(primary, JsonCatalogStore(settings.catalog_candidates)),
            content_store=ContentStore(settings.content_candidates),
            cache=self.cache,
            single_flight=settings.single_flight,
            list_cache_ttl=settings.list_cache_ttl,
            list_cache_size=settings.list_cache_size,
        )

    async def start(self) -> None:
        if self.engine is not None:
            db_ok = await init_db(self.engine)
            logger.info("Database: %s", "connected" if db_ok else "unavailable (catalog fallback)")
        else:
            logger.info("Database: not configured (catalog only)")

        redis_ok = await self.cache.connect()
        logger.info("Redis: %s", "connected" if redis_ok else "unavailable (in-memory tier only)")

    async def stop(self) -> None:
        await self.cache.close()
        if self.engine is not None:
            await close_db(self.engine)
