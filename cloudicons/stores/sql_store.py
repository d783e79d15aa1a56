"""Primary metadata store — PostgreSQL through SQLAlchemy asyncio.

All statements are built with select() and bound parameters. Each public
method is one run_with_retry call; list_icons reads the page and the count
in a single transaction so the total agrees with the page.
"""

import logging

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from cloudicons.database import build_session_factory, run_with_retry
from cloudicons.models import IconRecord, TagRecord, icon_tags
from cloudicons.schemas import HealthStatus, Icon, IconPage, IconQuery
from cloudicons.stores.base import MetadataStore

logger = logging.getLogger(__name__)


class SqlIconStore(MetadataStore):
    """Icon metadata backed by the icons/tags/icon_tags tables."""

    name = "database"

    def __init__(
        self,
        engine: AsyncEngine,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        backoff: str = "fixed",
    ):
        self.engine = engine
        self.session_factory = build_session_factory(engine)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.backoff = backoff

    async def _run(self, operation, label: str):
        return await run_with_retry(
            self.session_factory,
            operation,
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            backoff=self.backoff,
            label=label,
        )

    # ═══════════════ QUERIES ═══════════════

    async def list_icons(self, query: IconQuery) -> IconPage:
        conditions = self._build_conditions(query)

        page_stmt = (
            select(IconRecord)
            .where(*conditions)
            .order_by(IconRecord.provider, IconRecord.icon_name, IconRecord.icon_id)
            .limit(query.page_size)
            .offset(query.offset)
        )
        count_stmt = select(func.count()).select_from(IconRecord).where(*conditions)

        async def operation(session: AsyncSession) -> IconPage:
            async with session.begin():
                if self.engine.dialect.name == "postgresql":
                    await session.connection(
                        execution_options={"isolation_level": "REPEATABLE READ"},
                    )
                records = (await session.execute(page_stmt)).scalars().all()
                total = (await session.execute(count_stmt)).scalar_one()
                items = [r.to_icon() for r in records]
            return IconPage(
                items=items,
                total=total,
                page=query.page,
                page_size=query.page_size,
            )

        page = await self._run(operation, "list_icons")
        logger.debug(
            "DB list_icons | provider=%s | search=%s | tags=%s | total=%d",
            query.provider, query.search, query.tags, page.total,
        )
        return page

    async def get_icon(self, provider: str, icon_id: str) -> Icon | None:
        stmt = select(IconRecord).where(
            func.lower(IconRecord.provider) == provider.lower(),
            func.lower(IconRecord.icon_id) == icon_id.lower(),
        )

        async def operation(session: AsyncSession) -> Icon | None:
            record = (await session.execute(stmt)).scalars().first()
            return record.to_icon() if record else None

        return await self._run(operation, "get_icon")

    async def list_providers(self) -> list[str]:
        provider = func.lower(IconRecord.provider).label("provider")
        stmt = select(provider).distinct().order_by(provider)

        async def operation(session: AsyncSession) -> list[str]:
            return list((await session.execute(stmt)).scalars().all())

        return await self._run(operation, "list_providers")

    async def list_tags(self) -> list[str]:
        stmt = (
            select(distinct(TagRecord.name))
            .join(icon_tags, icon_tags.c.tag_id == TagRecord.id)
            .order_by(TagRecord.name)
        )

        async def operation(session: AsyncSession) -> list[str]:
            return list((await session.execute(stmt)).scalars().all())

        return await self._run(operation, "list_tags")

    async def health(self) -> HealthStatus:
        stmt = select(func.count()).select_from(IconRecord)

        async def operation(session: AsyncSession) -> int:
            return (await session.execute(stmt)).scalar_one()

        count = await self._run(operation, "health")
        return HealthStatus(status="ok", item_count=count, source="database")

    # ═══════════════ HELPERS ═══════════════

    @staticmethod
    def _build_conditions(query: IconQuery) -> list:
        conditions = []

        if not query.all_providers:
            conditions.append(func.lower(IconRecord.provider) == query.provider.lower())

        if query.search:
            term = query.search
            conditions.append(or_(
                IconRecord.icon_name.icontains(term, autoescape=True),
                IconRecord.description.icontains(term, autoescape=True),
                IconRecord.icon_id.icontains(term, autoescape=True),
                IconRecord.tags.any(TagRecord.name.icontains(term, autoescape=True)),
            ))

        if query.tags:
            conditions.append(IconRecord.tags.any(func.lower(TagRecord.name).in_(query.tags)))

        return conditions
