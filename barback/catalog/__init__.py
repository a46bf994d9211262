"""Product catalog storage backends."""

from .base import SEED_PRODUCTS, CatalogStore
from .factory import build_catalog_store
from .memory import InMemoryCatalogStore
from .sql import SqlCatalogStore

__all__ = [
    "SEED_PRODUCTS",
    "CatalogStore",
    "build_catalog_store",
    "InMemoryCatalogStore",
    "SqlCatalogStore",
]
