"""Icon catalog tables — icons, tags and the icon_tags join table."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Table, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cloudicons.models.base import Base
from cloudicons.schemas import Icon

icon_tags = Table(
    "icon_tags",
    Base.metadata,
    Column("icon_pk", ForeignKey("icons.pk", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class TagRecord(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class IconRecord(Base):
    """One icon row. (provider, icon_id) is unique case-insensitively."""

    __tablename__ = "icons"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    icon_id: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    icon_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    svg_path: Mapped[str] = mapped_column(String(255), nullable=False)
    png_path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    license: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    tags: Mapped[list[TagRecord]] = relationship(secondary=icon_tags, lazy="selectin")

    def to_icon(self) -> Icon:
        return Icon(
            id=self.icon_id,
            provider=self.provider,
            display_name=self.icon_name,
            description=self.description,
            tags=[tag.name for tag in self.tags],
            content_path=self.svg_path,
            png_path=self.png_path,
            license=self.license,
        )


Index(
    "uq_icons_provider_icon_id",
    func.lower(IconRecord.provider),
    func.lower(IconRecord.icon_id),
    unique=True,
)
