"""SQL-backed catalog store (SQLite for local runs, Postgres in deployment).

Uniqueness of `barcode` and `sku` is enforced by the database, so two
workers racing to create the same scanned product both end up with the
same row: the loser's IntegrityError is turned into a read of the winner.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    delete,
    insert,
    or_,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from barback.catalog.base import CatalogStore
from barback.domain import CatalogProduct, NewCatalogProduct
from barback.errors import CatalogConflict
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="catalog/sql_catalog_store")

metadata = MetaData()

products_table = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sku", String(64), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("unit_price", Numeric(10, 2), nullable=False),
    Column("category", String(128), nullable=False),
    Column("category_id", Integer, nullable=True),
    Column("par_level", Integer, nullable=True),
    Column("last_count_quantity", Integer, nullable=True),
    Column("barcode", String(32), nullable=True, unique=True),
    Column("brand", String(255), nullable=True),
    Column("image", String(1024), nullable=True),
)


class SqlCatalogStore(CatalogStore):
    """Catalog persisted in a relational database through SQLAlchemy Core."""

    def __init__(self, engine: Engine, *, create_tables: bool = True) -> None:
        self.engine = engine
        if create_tables:
            metadata.create_all(engine)

    @classmethod
    def from_url(cls, database_url: str, seed: Iterable[NewCatalogProduct] = (), **kwargs) -> "SqlCatalogStore":
        """Create an engine from a URL, build the store, and insert any missing seed rows."""
        logger.info("Connecting catalog database", extra={"db_url": mask_secret_url(database_url)})
        store = cls(create_engine(database_url, future=True), **kwargs)
        for product in seed:
            store.insert_or_get(product)
        return store

    @staticmethod
    def _to_product(row: Mapping) -> CatalogProduct:
        return CatalogProduct(**dict(row))

    def list_products(self) -> List[CatalogProduct]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(products_table).order_by(products_table.c.id)).mappings().all()
        return [self._to_product(row) for row in rows]

    def get_product(self, product_id: int) -> Optional[CatalogProduct]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(products_table).where(products_table.c.id == product_id)
            ).mappings().first()
        return self._to_product(row) if row else None

    def get_by_barcode(self, barcode: str) -> Optional[CatalogProduct]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(products_table).where(products_table.c.barcode == barcode)
            ).mappings().first()
        return self._to_product(row) if row else None

    def _find_conflict(self, product: NewCatalogProduct) -> Optional[CatalogProduct]:
        conditions = [products_table.c.sku == product.sku]
        if product.barcode:
            conditions.append(products_table.c.barcode == product.barcode)
        with self.engine.connect() as conn:
            row = conn.execute(
                select(products_table).where(or_(*conditions)).order_by(products_table.c.id)
            ).mappings().first()
        return self._to_product(row) if row else None

    def insert_or_get(self, product: NewCatalogProduct) -> Tuple[CatalogProduct, bool]:
        existing = self._find_conflict(product)
        if existing is not None:
            return existing, False

        try:
            with self.engine.begin() as conn:
                result = conn.execute(insert(products_table).values(**product.model_dump()))
                new_id = result.inserted_primary_key[0]
        except IntegrityError:
            # another writer inserted the same barcode/sku between our read and write
            logger.info("Catalog insert conflict; returning existing row", extra={"sku": product.sku})
            existing = self._find_conflict(product)
            if existing is None:
                raise CatalogConflict(f"Conflict inserting {product.sku} but no existing row found")
            return existing, False

        created = self.get_product(new_id)
        if created is None:
            raise CatalogConflict(f"Inserted product {new_id} could not be read back")
        return created, True

    def clear(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(products_table))
