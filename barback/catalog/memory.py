"""In-memory catalog store, intended for development, demos, and tests."""

import threading
from typing import Dict, Iterable, List, Optional, Tuple

from barback.catalog.base import CatalogStore
from barback.domain import CatalogProduct, NewCatalogProduct
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="catalog/in_memory_catalog_store")


class InMemoryCatalogStore(CatalogStore):
    """Thread-safe dict-backed catalog; the lock makes insert_or_get atomic."""

    def __init__(self, seed: Iterable[NewCatalogProduct] = ()) -> None:
        logger.debug("Initializing InMemoryCatalogStore")
        self._products: Dict[int, CatalogProduct] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        for product in seed:
            self.insert_or_get(product)

    def _find_conflict(self, product: NewCatalogProduct) -> Optional[CatalogProduct]:
        for existing in self._products.values():
            if product.barcode and existing.barcode == product.barcode:
                return existing
            if existing.sku == product.sku:
                return existing
        return None

    def list_products(self) -> List[CatalogProduct]:
        with self._lock:
            return [self._products[pid] for pid in sorted(self._products)]

    def get_product(self, product_id: int) -> Optional[CatalogProduct]:
        with self._lock:
            return self._products.get(product_id)

    def get_by_barcode(self, barcode: str) -> Optional[CatalogProduct]:
        with self._lock:
            for product in self._products.values():
                if product.barcode == barcode:
                    return product
            return None

    def insert_or_get(self, product: NewCatalogProduct) -> Tuple[CatalogProduct, bool]:
        with self._lock:
            existing = self._find_conflict(product)
            if existing is not None:
                logger.debug("Product already in catalog", extra={"sku": existing.sku, "id": existing.id})
                return existing, False
            created = CatalogProduct(id=self._next_id, **product.model_dump())
            self._products[created.id] = created
            self._next_id += 1
            return created, True

    def clear(self) -> None:
        with self._lock:
            self._products.clear()
            self._next_id = 1
