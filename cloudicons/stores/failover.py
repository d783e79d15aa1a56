"""Primary-then-fallback composition of two metadata stores.

Each call starts at the primary; a StoreUnavailableError demotes that one
call to the fallback. There is no sticky fallback mode.
"""

import logging

from cloudicons.errors import DataUnavailableError, MalformedCatalogError, StoreUnavailableError
from cloudicons.schemas import HealthStatus, Icon, IconPage, IconQuery
from cloudicons.stores.base import MetadataStore

logger = logging.getLogger(__name__)

FALLBACK_ERRORS = (StoreUnavailableError, MalformedCatalogError)


class FailoverMetadataStore(MetadataStore):
    """Tries `primary` (if any), then `fallback`."""

    name = "failover"

    def __init__(self, primary: MetadataStore | None, fallback: MetadataStore):
        self.primary = primary
        self.fallback = fallback

    async def _call(self, method: str, *args):
        if self.primary is not None:
            try:
                return await getattr(self.primary, method)(*args)
            except StoreUnavailableError as e:
                logger.warning(
                    "Primary store unavailable — falling back to %s | op=%s | %s",
                    self.fallback.name, method, str(e)[:200],
                )

        try:
            return await getattr(self.fallback, method)(*args)
        except FALLBACK_ERRORS as e:
            logger.error("Fallback store failed | op=%s | %s", method, str(e)[:200])
            raise DataUnavailableError(f"No metadata source could serve {method}") from e

    async def list_icons(self, query: IconQuery) -> IconPage:
        return await self._call("list_icons", query)

    async def get_icon(self, provider: str, icon_id: str) -> Icon | None:
        return await self._call("get_icon", provider, icon_id)

    async def list_providers(self) -> list[str]:
        return await self._call("list_providers")

    async def list_tags(self) -> list[str]:
        return await self._call("list_tags")

    async def health(self) -> HealthStatus:
        """Never raises; a fallback answer is reported as degraded."""
        try:
            status = await self._call("health")
        except DataUnavailableError:
            return HealthStatus(status="unavailable", item_count=0, source="none")
        if self.primary is not None and status.source != self.primary.name:
            return status.model_copy(update={"status": "degraded"})
        return status
