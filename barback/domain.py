"""Domain vocabulary and schemas for weather-driven ordering and product resolution.

These models are the stable contract between the rule engines, the external
data sources, the catalog, and the HTTP layer. They serialize with camelCase
aliases because the inventory UI consumes them as-is. No decision logic
lives here.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that accepts snake_case or camelCase and emits camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class FrozenCamelModel(CamelModel):
    """Immutable variant for values handed out of a cache."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid", frozen=True)


class ProductCategory(str, Enum):
    """Categories a demand forecast can target."""
    BEER = "Beer"
    WINE = "Wine"
    SPIRITS = "Spirits"
    ALL_CATEGORIES = "All Categories"


class Priority(str, Enum):
    """Urgency of a reorder suggestion."""
    HIGH = "High"
    MEDIUM = "Medium"


class ProductSource(str, Enum):
    """Where a ProductInfo came from; FALLBACK means every tier missed."""
    OPENFOODFACTS = "openfoodfacts"
    UPCITEMDB = "upcitemdb"
    BARCODELOOKUP = "barcodelookup"
    COCKTAILDB = "cocktaildb"
    FALLBACK = "fallback"


UNKNOWN_PRODUCT_NAME = "Unknown Product"


class ForecastDay(FrozenCamelModel):
    """One day of the short-range forecast."""
    date: str
    temp_high: int
    temp_low: int
    condition: str


class WeatherObservation(FrozenCamelModel):
    """Current conditions (°F) plus a five-day daily outlook."""
    temperature: int
    condition: str
    humidity: int = Field(ge=0, le=100)
    forecast: Tuple[ForecastDay, ...] = ()


class DemandForecast(CamelModel):
    """Demand shift for one product category and why."""
    product_category: ProductCategory
    demand_multiplier: float = Field(gt=0)
    reasoning: str
    recommended_action: str


class InventoryItem(CamelModel):
    """Snapshot of one product's stock used for reorder planning."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: int
    name: str
    category_id: int | None = None
    category: str | None = None
    last_count_quantity: int | None = None
    par_level: int | None = None
    unit_price: Decimal | None = None


class ReorderSuggestion(CamelModel):
    """Suggested order quantity for one product under a demand forecast."""
    product_id: int
    product_name: str
    current_stock: int
    normal_par_level: int
    weather_adjusted_par_level: int
    suggested_order_quantity: int
    reasoning: str
    priority: Priority


class ForecastSummary(CamelModel):
    """Aggregate numbers shown above the reorder list."""
    total_suggestions: int
    high_priority: int
    estimated_additional_revenue: float


class ProductInfo(FrozenCamelModel):
    """Result of resolving a barcode against the external providers."""
    name: str | None = None
    brand: str | None = None
    category: str | None = None
    image: str | None = None
    source: ProductSource

    @property
    def is_resolved(self) -> bool:
        return self.source != ProductSource.FALLBACK

    @classmethod
    def not_found(cls) -> "ProductInfo":
        return cls(name=UNKNOWN_PRODUCT_NAME, source=ProductSource.FALLBACK)


class NewCatalogProduct(CamelModel):
    """Catalog product fields supplied on create."""
    sku: str
    name: str
    unit_price: Decimal = Decimal("0.00")
    category: str
    category_id: int | None = None
    par_level: int | None = None
    last_count_quantity: int | None = None
    barcode: str | None = None
    brand: str | None = None
    image: str | None = None


class CatalogProduct(NewCatalogProduct):
    """Persisted catalog product."""
    id: int

    def to_inventory_item(self) -> InventoryItem:
        return InventoryItem(
            id=self.id,
            name=self.name,
            category_id=self.category_id,
            category=self.category,
            last_count_quantity=self.last_count_quantity,
            par_level=self.par_level,
            unit_price=self.unit_price,
        )


class ScanResult(CamelModel):
    """Barcode scan/test outcome returned to the scanner UI."""
    barcode: str
    product_name: str | None = None
    brand: str | None = None
    category: str | None = None
    image: str | None = None
    product: CatalogProduct | None = None
    confidence: int = Field(ge=0, le=100)
    success: bool
    source: str | None = None
    message: str | None = None


class LookupResult(CamelModel):
    """Plain barcode lookup result."""
    barcode: str
    success: bool
    name: str | None = None
    brand: str | None = None
    category: str | None = None
    image: str | None = None
    source: ProductSource


class TranscriptionResult(CamelModel):
    """Speech transcript with the quantity spoken in it."""
    transcript: str
    confidence: int = Field(ge=0, le=100)
    quantity: int = Field(ge=0)
    success: bool


class WeatherForecastResponse(CamelModel):
    """Weather, category forecasts, and the top reorder suggestions for a location."""
    location: str
    weather: WeatherObservation
    demand_forecasts: List[DemandForecast] = Field(default_factory=list)
    reorder_suggestions: List[ReorderSuggestion] = Field(default_factory=list)
    summary: ForecastSummary
