"""Metadata and content stores."""

from cloudicons.stores.base import MetadataStore
from cloudicons.stores.content_store import ContentStore
from cloudicons.stores.failover import FailoverMetadataStore
from cloudicons.stores.json_catalog import JsonCatalogStore
from cloudicons.stores.sql_store import SqlIconStore

__all__ = [
    "ContentStore",
    "FailoverMetadataStore",
    "JsonCatalogStore",
    "MetadataStore",
    "SqlIconStore",
]
