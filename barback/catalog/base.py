"""Shared protocol and seed data for product catalog backends."""

from decimal import Decimal
from typing import List, Optional, Protocol, Tuple

from barback.domain import CatalogProduct, NewCatalogProduct


class CatalogStore(Protocol):
    """Protocol for catalog storage backends.

    `barcode` and `sku` are unique. `insert_or_get` is the only write the
    core performs and must be atomic with respect to those keys.
    """

    def list_products(self) -> List[CatalogProduct]:
        """Return every product, ordered by id."""

    def get_product(self, product_id: int) -> Optional[CatalogProduct]:
        """Fetch one product by id."""

    def get_by_barcode(self, barcode: str) -> Optional[CatalogProduct]:
        """Fetch the product carrying `barcode`, if any."""

    def insert_or_get(self, product: NewCatalogProduct) -> Tuple[CatalogProduct, bool]:
        """Insert `product`, or return the existing row with the same barcode/sku.

        The flag is True only when this call created the row.
        """

    def clear(self) -> None:
        """Remove all products (dev/testing)."""


SEED_PRODUCTS: List[NewCatalogProduct] = [
    NewCatalogProduct(
        sku="VDK-GG-750",
        name="Grey Goose Vodka 750ml",
        unit_price=Decimal("34.99"),
        category="Spirits",
        category_id=3,
        par_level=12,
        last_count_quantity=8,
    ),
    NewCatalogProduct(
        sku="BEER-COR-24",
        name="Corona Extra 12oz (24-pack)",
        unit_price=Decimal("28.24"),
        category="Beer",
        category_id=1,
        par_level=8,
        last_count_quantity=6,
    ),
    NewCatalogProduct(
        sku="WINE-CAB-750",
        name="Cabernet Sauvignon 750ml",
        unit_price=Decimal("20.00"),
        category="Wine",
        category_id=2,
        par_level=24,
        last_count_quantity=18,
    ),
]
