"""Contract shared by the SQL store and the JSON catalog store."""

from abc import ABC, abstractmethod

from cloudicons.schemas import HealthStatus, Icon, IconPage, IconQuery


class MetadataStore(ABC):
    """Read-only access to icon metadata."""

    name: str = "store"

    @abstractmethod
    async def list_icons(self, query: IconQuery) -> IconPage:
        """Filtered, ordered page of icons plus the total match count."""

    @abstractmethod
    async def get_icon(self, provider: str, icon_id: str) -> Icon | None:
        """Case-insensitive lookup. None when no record matches."""

    @abstractmethod
    async def list_providers(self) -> list[str]:
        """Distinct provider names, sorted."""

    @abstractmethod
    async def list_tags(self) -> list[str]:
        """Distinct tag names in use, sorted."""

    @abstractmethod
    async def health(self) -> HealthStatus:
        """Status and item count of this store."""
