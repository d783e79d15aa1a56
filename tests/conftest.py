"""Shared test fixtures and configuration."""

import asyncio
import json
import os
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

# No real PostgreSQL or Redis during tests
os.environ.setdefault("DATABASE_URL", "")
os.environ.setdefault("REDIS_URL", "")

from cloudicons.database import build_session_factory, init_db
from cloudicons.models import IconRecord, TagRecord
from cloudicons.schemas import Icon
from cloudicons.services.cache import RedisTier, TieredCache
from cloudicons.stores import ContentStore, FailoverMetadataStore, JsonCatalogStore

STORAGE_ACCOUNT_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 18 18" width="18" height="18">'
    "<script>alert('xss')</script>"
    '<path d="M0 0h18v18H0z" fill="#0078d4" onclick="steal()"/>'
    "</svg>"
)

VIRTUAL_MACHINE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">'
    '<rect width="100" height="100" fill="blue"/>'
    "</svg>"
)

S3_BUCKET_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 64 64">'
    '<defs><linearGradient id="g"><stop offset="0" stop-color="#1b660f"/></linearGradient></defs>'
    '<g><circle cx="32" cy="32" r="30" fill="url(#g)" stroke-width="2"/></g>'
    "</svg>"
)


@pytest.fixture
def sample_catalog():
    """Catalog records in the icons.json wire format."""
    return [
        {
            "id": "storage-account",
            "provider": "azure",
            "icon_name": "Storage Account",
            "description": "Azure Storage Account for blobs, files, queues, and tables",
            "tags": ["storage", "cloud"],
            "svg_path": "/icons/azure/storage-account.svg",
            "png_path": "/icons/azure/storage-account.png",
            "license": "MIT",
        },
        {
            "id": "virtual-machine",
            "provider": "azure",
            "icon_name": "Virtual Machine",
            "description": "Azure Virtual Machine for compute workloads",
            "tags": ["compute", "vm"],
            "svg_path": "/icons/azure/virtual-machine.svg",
            "png_path": None,
            "license": "MIT",
        },
        {
            "id": "s3-bucket",
            "provider": "aws",
            "icon_name": "S3 Bucket",
            "description": "Amazon S3 object bucket",
            "tags": ["storage", "object"],
            "svg_path": "/icons/aws/s3-bucket.svg",
            "png_path": None,
            "license": "Apache-2.0",
        },
        {
            "id": "orphan-function",
            "provider": "gcp",
            "icon_name": "Orphan Function",
            "description": "Catalog entry whose SVG was never shipped",
            "tags": ["serverless"],
            "svg_path": "/icons/gcp/orphan-function.svg",
            "png_path": None,
            "license": None,
        },
    ]


@pytest.fixture
def sample_icons(sample_catalog):
    return [Icon.model_validate(record) for record in sample_catalog]


@pytest.fixture
def site_dir(tmp_path, sample_catalog) -> Path:
    """A deployment tree with data/icons.json and public/icons/... SVG files."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "icons.json").write_text(json.dumps(sample_catalog), encoding="utf-8")

    files = {
        "icons/azure/storage-account.svg": STORAGE_ACCOUNT_SVG,
        "icons/azure/virtual-machine.svg": VIRTUAL_MACHINE_SVG,
        "icons/aws/s3-bucket.svg": S3_BUCKET_SVG,
    }
    for relative, content in files.items():
        path = tmp_path / "public" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return tmp_path


@pytest.fixture
def catalog_store(site_dir):
    return JsonCatalogStore([site_dir / "data" / "icons.json"])


@pytest.fixture
def content_store(site_dir):
    return CountingContentStore([site_dir / "public"])


# ═══════════════ TEST DOUBLES ═══════════════

class CountingContentStore(ContentStore):
    """ContentStore that records how often it was read."""

    def __init__(self, roots, delay: float = 0.0):
        super().__init__(roots)
        self.reads: list[str] = []
        self.delay = delay

    async def read_raw(self, content_path: str) -> bytes:
        self.reads.append(content_path)
        if self.delay:
            await asyncio.sleep(self.delay)
        return await super().read_raw(content_path)


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis (decode_responses=True)."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.get_calls = 0
        self.set_calls = 0
        self.closed = False

    async def ping(self):
        return True

    async def get(self, key):
        self.get_calls += 1
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.set_calls += 1
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def tiered_cache(fake_redis):
    return TieredCache(remote=RedisTier(client=fake_redis), memory_size=100)


@pytest.fixture
def catalog_only_store(catalog_store):
    return FailoverMetadataStore(None, catalog_store)


# ═══════════════ DATABASE ═══════════════

async def seed_icons(engine, icons: list[Icon]) -> None:
    """Insert icons (and their tags) into the catalog tables."""
    factory = build_session_factory(engine)
    async with factory() as session:
        tags: dict[str, TagRecord] = {}
        for icon in icons:
            records = []
            for name in icon.tags:
                if name not in tags:
                    tags[name] = TagRecord(name=name)
                records.append(tags[name])
            session.add(IconRecord(
                icon_id=icon.id,
                provider=icon.provider,
                icon_name=icon.display_name,
                description=icon.description,
                svg_path=icon.content_path,
                png_path=icon.png_path,
                license=icon.license,
                tags=records,
            ))
        await session.commit()


@pytest.fixture
async def sqlite_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'icons.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def seeded_engine(sqlite_engine, sample_icons):
    await seed_icons(sqlite_engine, sample_icons)
    return sqlite_engine


@pytest.fixture
async def broken_engine(tmp_path):
    """Engine whose every connection attempt fails."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'icons.db'}")
    yield engine
    await engine.dispose()
