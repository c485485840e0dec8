"""Storage layer: PostgreSQL (asyncpg) and the catalog store."""

from verdict.storage.base import CatalogStore
from verdict.storage.catalog import PostgresCatalogStore
from verdict.storage.database import Database, close_database, get_database, init_database

__all__ = [
    "CatalogStore",
    "Database",
    "PostgresCatalogStore",
    "close_database",
    "get_database",
    "init_database",
]
