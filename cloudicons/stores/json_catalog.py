"""Fallback metadata store — the icons.json catalog file.

The catalog is re-read on every call from the first readable candidate
path, so a catalog rewritten by the migration tooling is picked up without
a restart.
"""

import asyncio
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from cloudicons.errors import MalformedCatalogError, StoreUnavailableError
from cloudicons.schemas import HealthStatus, Icon, IconPage, IconQuery
from cloudicons.stores.base import MetadataStore
from cloudicons.utils.catalog_query import (
    apply_query,
    distinct_providers,
    distinct_tags,
    find_icon,
)

logger = logging.getLogger(__name__)

_catalog_adapter = TypeAdapter(list[Icon])


class JsonCatalogStore(MetadataStore):
    """Icon metadata parsed from a JSON array of icon records."""

    name = "catalog"

    def __init__(self, candidate_paths: list[Path]):
        self.candidate_paths = list(candidate_paths)

    async def read_icons(self) -> list[Icon]:
        return await asyncio.to_thread(self._read_first)

    def _read_first(self) -> list[Icon]:
        last_error: OSError | None = None

        for path in self.candidate_paths:
            try:
                data = path.read_bytes()
            except OSError as e:
                last_error = e
                logger.debug("Catalog not readable | path=%s | %s", path, e)
                continue

            try:
                icons = _catalog_adapter.validate_json(data)
            except ValidationError as e:
                logger.error("Catalog malformed | path=%s | %s", path, str(e)[:200])
                raise MalformedCatalogError(f"Catalog {path} could not be parsed") from e

            logger.debug("Catalog loaded | path=%s | count=%d", path, len(icons))
            return icons

        logger.error("No readable catalog | paths=%s", [str(p) for p in self.candidate_paths])
        raise StoreUnavailableError("No readable icon catalog") from last_error

    async def list_icons(self, query: IconQuery) -> IconPage:
        return apply_query(await self.read_icons(), query)

    async def get_icon(self, provider: str, icon_id: str) -> Icon | None:
        return find_icon(await self.read_icons(), provider, icon_id)

    async def list_providers(self) -> list[str]:
        return distinct_providers(await self.read_icons())

    async def list_tags(self) -> list[str]:
        return distinct_tags(await self.read_icons())

    async def health(self) -> HealthStatus:
        icons = await self.read_icons()
        return HealthStatus(status="ok", item_count=len(icons), source="catalog")
