"""SQLAlchemy ORM models."""

from cloudicons.models.base import Base
from cloudicons.models.icon import IconRecord, TagRecord, icon_tags

__all__ = ["Base", "IconRecord", "TagRecord", "icon_tags"]
