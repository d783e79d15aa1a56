"""Tests for primary/fallback store composition."""

import pytest

from cloudicons.errors import DataUnavailableError, MalformedCatalogError, StoreUnavailableError
from cloudicons.schemas import HealthStatus, Icon, IconPage, IconQuery
from cloudicons.stores import FailoverMetadataStore, MetadataStore


def make_icon(icon_id="vm", provider="azure"):
    return Icon(id=icon_id, provider=provider, display_name=icon_id.upper(), content_path=f"/icons/{icon_id}.svg")


class FakeStore(MetadataStore):
    """Serves a fixed icon list or raises a fixed error on every call."""

    def __init__(self, name, icons=None, error=None):
        self.name = name
        self.icons = icons or []
        self.error = error
        self.calls: list[str] = []

    def _check(self, method):
        self.calls.append(method)
        if self.error is not None:
            raise self.error

    async def list_icons(self, query: IconQuery) -> IconPage:
        self._check("list_icons")
        return IconPage(items=self.icons, total=len(self.icons), page=query.page, page_size=query.page_size)

    async def get_icon(self, provider, icon_id):
        self._check("get_icon")
        return next((i for i in self.icons if i.key == (provider.lower(), icon_id.lower())), None)

    async def list_providers(self):
        self._check("list_providers")
        return sorted({i.provider for i in self.icons})

    async def list_tags(self):
        self._check("list_tags")
        return []

    async def health(self):
        self._check("health")
        return HealthStatus(status="ok", item_count=len(self.icons), source=self.name)


class TestFailover:
    @pytest.mark.asyncio
    async def test_primary_answers(self):
        primary = FakeStore("database", [make_icon("db-icon")])
        fallback = FakeStore("catalog", [make_icon("file-icon")])
        store = FailoverMetadataStore(primary, fallback)

        icon = await store.get_icon("azure", "db-icon")
        assert icon.id == "db-icon"
        assert fallback.calls == []

    @pytest.mark.asyncio
    async def test_primary_none_result_is_not_a_failure(self):
        primary = FakeStore("database", [])
        fallback = FakeStore("catalog", [make_icon("vm")])
        store = FailoverMetadataStore(primary, fallback)

        assert await store.get_icon("azure", "vm") is None
        assert fallback.calls == []

    @pytest.mark.asyncio
    async def test_unavailable_primary_falls_back(self):
        primary = FakeStore("database", error=StoreUnavailableError("down"))
        fallback = FakeStore("catalog", [make_icon("vm")])
        store = FailoverMetadataStore(primary, fallback)

        page = await store.list_icons(IconQuery())
        assert [i.id for i in page.items] == ["vm"]
        assert primary.calls == ["list_icons"]
        assert fallback.calls == ["list_icons"]

    @pytest.mark.asyncio
    async def test_primary_retried_on_every_call(self):
        primary = FakeStore("database", error=StoreUnavailableError("down"))
        fallback = FakeStore("catalog", [make_icon("vm")])
        store = FailoverMetadataStore(primary, fallback)

        await store.list_providers()
        await store.list_providers()
        assert primary.calls == ["list_providers", "list_providers"]

    @pytest.mark.asyncio
    async def test_no_primary_uses_fallback(self):
        fallback = FakeStore("catalog", [make_icon("vm")])
        store = FailoverMetadataStore(None, fallback)
        assert await store.list_providers() == ["azure"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        StoreUnavailableError("no file"),
        MalformedCatalogError("bad json"),
    ])
    async def test_both_failing_is_data_unavailable(self, error):
        primary = FakeStore("database", error=StoreUnavailableError("down"))
        fallback = FakeStore("catalog", error=error)
        store = FailoverMetadataStore(primary, fallback)

        with pytest.raises(DataUnavailableError):
            await store.get_icon("azure", "vm")

    @pytest.mark.asyncio
    async def test_other_primary_errors_propagate(self):
        primary = FakeStore("database", error=RuntimeError("bug"))
        fallback = FakeStore("catalog", [make_icon("vm")])
        store = FailoverMetadataStore(primary, fallback)

        with pytest.raises(RuntimeError):
            await store.get_icon("azure", "vm")
        assert fallback.calls == []


class TestFailoverHealth:
    @pytest.mark.asyncio
    async def test_primary_healthy(self):
        store = FailoverMetadataStore(FakeStore("database", [make_icon()]), FakeStore("catalog"))
        status = await store.health()
        assert status.status == "ok"
        assert status.source == "database"

    @pytest.mark.asyncio
    async def test_fallback_reports_degraded(self):
        primary = FakeStore("database", error=StoreUnavailableError("down"))
        store = FailoverMetadataStore(primary, FakeStore("catalog", [make_icon()]))
        status = await store.health()
        assert status.status == "degraded"
        assert status.source == "catalog"
        assert status.item_count == 1

    @pytest.mark.asyncio
    async def test_catalog_only_deployment_is_ok(self):
        store = FailoverMetadataStore(None, FakeStore("catalog", [make_icon()]))
        assert (await store.health()).status == "ok"

    @pytest.mark.asyncio
    async def test_nothing_available(self):
        primary = FakeStore("database", error=StoreUnavailableError("down"))
        fallback = FakeStore("catalog", error=StoreUnavailableError("gone"))
        status = await FailoverMetadataStore(primary, fallback).health()
        assert status.status == "unavailable"
        assert status.source == "none"
