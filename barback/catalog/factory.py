"""Choose the catalog backend at startup."""

from __future__ import annotations

from barback import config
from barback.catalog.base import SEED_PRODUCTS, CatalogStore
from barback.catalog.memory import InMemoryCatalogStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="catalog/factory")

DEFAULT_BACKEND = "memory"


def build_catalog_store(settings: config.Settings | None = None) -> CatalogStore:
    """Instantiate the configured catalog store, seeded with the demo bar stock."""
    settings = settings or config.settings
    backend = (settings.catalog_backend or DEFAULT_BACKEND).lower()

    if backend == "memory":
        logger.info("Using in-memory catalog")
        return InMemoryCatalogStore(seed=SEED_PRODUCTS)

    if backend == "sql":
        from .sql import SqlCatalogStore

        if not settings.catalog_database_url:
            raise ValueError("catalog_database_url must be set for the SQL catalog")
        return SqlCatalogStore.from_url(settings.catalog_database_url, seed=SEED_PRODUCTS)

    raise ValueError(f"Unknown catalog backend '{backend}'")
