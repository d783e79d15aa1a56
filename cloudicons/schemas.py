"""Pydantic models shared by stores, caches and the API.

Field names follow the Python side; aliases keep the wire format of the
icons.json catalog (icon_name, svg_path, svg_content).
"""

from __future__ import annotations

import json
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALL_PROVIDERS = "all"


# ═══════════════ ICONS ═══════════════

class Icon(BaseModel):
    """Metadata record for one provider's SVG icon."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    provider: str
    display_name: str = Field(alias="icon_name")
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    content_path: str = Field(alias="svg_path")
    png_path: str | None = None
    license: str | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, value):
        return value or ""

    @field_validator("tags", mode="before")
    @classmethod
    def _canonical_tags(cls, value):
        """Tags are a set: strip, drop blanks and duplicates, sort."""
        if not value:
            return []
        return sorted({str(t).strip() for t in value if t is not None and str(t).strip()})

    @property
    def key(self) -> tuple[str, str]:
        return self.provider.lower(), self.id.lower()

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ResolvedIcon(Icon):
    """An icon plus its sanitized SVG resized to `size` pixels."""

    content: str = Field(default="", alias="svg_content")
    size: int

    @classmethod
    def from_icon(cls, icon: Icon, content: str, size: int) -> ResolvedIcon:
        return cls(**icon.model_dump(), content=content, size=size)


# ═══════════════ LISTINGS ═══════════════

class IconQuery(BaseModel):
    """Normalized listing query."""

    provider: str = ALL_PROVIDERS
    search: str | None = None
    tags: list[str] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=24, ge=1)

    @field_validator("search", mode="before")
    @classmethod
    def _normalize_search(cls, value):
        if value is None:
            return None
        value = str(value).strip().lower()
        return value or None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        if not value:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return sorted({str(t).strip().lower() for t in value if str(t).strip()})

    @property
    def all_providers(self) -> bool:
        return self.provider.lower() == ALL_PROVIDERS

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def cache_key(self) -> str:
        shape = {
            "provider": self.provider.lower(),
            "search": self.search,
            "tags": self.tags,
            "page": self.page,
            "page_size": self.page_size,
        }
        return "list:" + json.dumps(shape, sort_keys=True)


class IconPage(BaseModel):
    items: list[Icon]
    total: int
    page: int
    page_size: int


class ResolvedPage(BaseModel):
    """A listing page whose icons carry their SVG content."""

    model_config = ConfigDict(populate_by_name=True)

    total: int
    page: int
    page_size: int = Field(alias="pageSize")
    data: list[ResolvedIcon]


# ═══════════════ HEALTH ═══════════════

class HealthStatus(BaseModel):
    status: Literal["ok", "degraded", "unavailable"]
    item_count: int = 0
    source: Literal["database", "catalog", "none"] = "none"
