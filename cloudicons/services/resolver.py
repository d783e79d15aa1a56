"""Icon resolution pipeline.

resolve_content: content cache (memory → Redis) → metadata → SVG file →
sanitize → resize → back-fill both content tiers.
resolve_metadata: metadata cache (memory → Redis) → database, falling back
to the catalog file → back-fill both metadata tiers. Misses are not cached.
list_icons_with_content: one listing page, then the content step for every
icon on it concurrently, sharing the content cache.
"""

import asyncio
import logging
import time

from cachetools import TTLCache
from pydantic import ValidationError

from cloudicons.errors import AssetMissingError, IconNotFoundError
from cloudicons.schemas import HealthStatus, Icon, IconPage, IconQuery, ResolvedIcon, ResolvedPage
from cloudicons.services.cache import TieredCache
from cloudicons.services.singleflight import SingleFlight
from cloudicons.stores.base import MetadataStore
from cloudicons.stores.content_store import ContentStore
from cloudicons.utils.svg_resizer import resize_svg
from cloudicons.utils.svg_sanitizer import sanitize_svg

logger = logging.getLogger(__name__)


class IconService:
    """Public entry point for icon lookups, listings and health."""

    def __init__(
        self,
        store: MetadataStore,
        content_store: ContentStore,
        cache: TieredCache,
        single_flight: bool = True,
        list_cache_ttl: int = 0,
        list_cache_size: int = 256,
    ):
        self.store = store
        self.content_store = content_store
        self.cache = cache
        self.flights = SingleFlight(enabled=single_flight)
        self.list_cache = TTLCache(maxsize=list_cache_size, ttl=list_cache_ttl) if list_cache_ttl > 0 else None

    # ═══════════════ RESOLUTION ═══════════════

    async def resolve_content(self, provider: str, icon_id: str, size: int) -> ResolvedIcon:
        """Metadata plus sanitized SVG sized to `size`. Raises IconNotFoundError."""
        key = self.cache.content.make_key(provider, icon_id, size)

        cached = await self._cached_content(key)
        if cached is not None:
            return cached

        return await self.flights.run(key, lambda: self._build_content(key, provider, icon_id, size))

    async def resolve_icon(self, icon: Icon, size: int) -> ResolvedIcon:
        """Content for an icon whose metadata is already known."""
        key = self.cache.content.make_key(icon.provider, icon.id, size)

        cached = await self._cached_content(key)
        if cached is not None:
            return cached

        return await self.flights.run(key, lambda: self._render(key, icon, size))

    async def _cached_content(self, key: str) -> ResolvedIcon | None:
        cached = await self.cache.content.get(key)
        if cached is None:
            return None
        try:
            return ResolvedIcon.model_validate_json(cached)
        except ValidationError:
            logger.warning("Corrupt content cache entry ignored | key=%s", key)
            return None

    async def _build_content(self, key: str, provider: str, icon_id: str, size: int) -> ResolvedIcon:
        icon = await self.resolve_metadata(provider, icon_id)
        return await self._render(key, icon, size)

    async def _render(self, key: str, icon: Icon, size: int) -> ResolvedIcon:
        start = time.monotonic()
        try:
            raw = await self.content_store.read_raw(icon.content_path)
        except AssetMissingError:
            logger.warning(
                "Asset missing for catalog entry | provider=%s | icon=%s | svg_path=%s",
                icon.provider, icon.id, icon.content_path,
            )
            return ResolvedIcon.from_icon(icon, content="", size=size)

        text = raw.decode("utf-8-sig", errors="replace")
        content = resize_svg(sanitize_svg(text), size)
        resolved = ResolvedIcon.from_icon(icon, content=content, size=size)

        await self.cache.content.set(key, resolved.to_json())
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("SVG resolved | key=%s | bytes=%d | %dms", key, len(content), elapsed_ms)
        return resolved

    async def resolve_metadata(self, provider: str, icon_id: str) -> Icon:
        """Icon metadata. Raises IconNotFoundError or DataUnavailableError."""
        key = self.cache.metadata.make_key(provider, icon_id)

        cached = await self.cache.metadata.get(key)
        if cached is not None:
            try:
                return Icon.model_validate_json(cached)
            except ValidationError:
                logger.warning("Corrupt metadata cache entry ignored | key=%s", key)

        return await self.flights.run(key, lambda: self._load_metadata(key, provider, icon_id))

    async def _load_metadata(self, key: str, provider: str, icon_id: str) -> Icon:
        icon = await self.store.get_icon(provider, icon_id)
        if icon is None:
            logger.info("Icon not found | provider=%s | icon=%s", provider, icon_id)
            raise IconNotFoundError(provider, icon_id)

        await self.cache.metadata.set(key, icon.to_json())
        return icon

    # ═══════════════ LISTINGS ═══════════════

    async def list_icons(self, query: IconQuery) -> IconPage:
        return await self._listing(query.cache_key(), lambda: self.store.list_icons(query))

    async def list_icons_with_content(self, query: IconQuery, size: int) -> ResolvedPage:
        """A listing page with every icon's SVG resolved at `size`."""
        page = await self.list_icons(query)
        start = time.monotonic()
        resolved = await asyncio.gather(*(self.resolve_icon(icon, size) for icon in page.items))
        logger.debug(
            "Listing content resolved | count=%d | size=%d | %dms",
            len(resolved), size, int((time.monotonic() - start) * 1000),
        )
        return ResolvedPage(total=page.total, page=page.page, page_size=page.page_size, data=list(resolved))

    async def list_providers(self) -> list[str]:
        return await self._listing("providers", self.store.list_providers)

    async def list_tags(self) -> list[str]:
        return await self._listing("tags", self.store.list_tags)

    async def _listing(self, key: str, load):
        if self.list_cache is None:
            return await load()

        cached = self.list_cache.get(key)
        if cached is not None:
            logger.debug("Listing cache HIT | key=%s", key)
            return cached

        result = await load()
        self.list_cache[key] = result
        return result

    async def health(self) -> HealthStatus:
        return await self.store.health()
