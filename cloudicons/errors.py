"""Error taxonomy for icon resolution.

Only IconNotFoundError and DataUnavailableError ever reach a caller of
IconService. The rest are absorbed inside the layer that raises them.
"""


class CatalogError(Exception):
    """Base class for all icon catalog errors."""


class IconNotFoundError(CatalogError):
    """No icon matches (provider, icon_id). A normal negative result."""

    def __init__(self, provider: str, icon_id: str):
        super().__init__(f"Icon not found: {provider}/{icon_id}")
        self.provider = provider
        self.icon_id = icon_id


class StoreUnavailableError(CatalogError):
    """A metadata store could not be read (retries exhausted, no catalog file)."""


class MalformedCatalogError(CatalogError):
    """The catalog file exists but could not be parsed."""


class DataUnavailableError(CatalogError):
    """Both the primary store and the fallback catalog failed."""


class AssetMissingError(CatalogError):
    """Metadata references an SVG that exists under none of the content roots."""

    def __init__(self, content_path: str):
        super().__init__(f"Asset not found: {content_path}")
        self.content_path = content_path


class CacheDegradedError(CatalogError):
    """The distributed cache is unreachable or misbehaving."""
