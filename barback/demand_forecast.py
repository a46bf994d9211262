"""Deterministic weather-to-demand rules and reorder suggestions.

`calculate_demand_forecast` maps one WeatherObservation to zero or more
category DemandForecasts. `generate_reorders` applies those multipliers to
an inventory snapshot's par levels and suggests order quantities. Neither
function performs I/O; randomness only enters through an explicit
InventoryDefaults policy.
"""

from __future__ import annotations

import random
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from barback.domain import (
    DemandForecast,
    ForecastSummary,
    InventoryItem,
    Priority,
    ProductCategory,
    ReorderSuggestion,
    WeatherObservation,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="demand_forecast")

CATEGORY_IDS = {
    ProductCategory.BEER: 1,
    ProductCategory.WINE: 2,
    ProductCategory.SPIRITS: 3,
}

BEER_KEYWORDS = ("beer", "lager", "ipa", "corona", "budweiser", "heineken", "stella", "modelo", "coors")

MAX_CANDIDATES_PER_FORECAST = 5
FALLBACK_CANDIDATES = 3
HIGH_PRIORITY_MULTIPLIER = 1.3
RAIN_CONDITIONS = ("Rain", "Thunderstorm")


def calculate_demand_forecast(obs: WeatherObservation) -> List[DemandForecast]:
    """Return every category forecast whose weather rule fires for `obs`.

    Rules are independent; overlapping ones (e.g. Beer and All Categories)
    are all emitted and never merged. 50 < temp < 60 yields no Beer entry.
    """
    temp = obs.temperature
    condition = obs.condition
    forecasts: List[DemandForecast] = []

    if temp >= 75:
        forecasts.append(DemandForecast(
            product_category=ProductCategory.BEER,
            demand_multiplier=1.4,
            reasoning=f"Hot weather ({temp}°F) drives beer consumption",
            recommended_action="Increase beer orders by 40%. Focus on light beers and lagers.",
        ))
    elif temp >= 60:
        forecasts.append(DemandForecast(
            product_category=ProductCategory.BEER,
            demand_multiplier=1.2,
            reasoning=f"Pleasant weather ({temp}°F) increases beer consumption",
            recommended_action="Increase beer orders by 20%. All beer styles in demand.",
        ))
    elif temp <= 50:
        forecasts.append(DemandForecast(
            product_category=ProductCategory.BEER,
            demand_multiplier=0.8,
            reasoning=f"Cold weather ({temp}°F) reduces beer consumption",
            recommended_action="Reduce beer orders by 20%. Focus on darker, heavier beers.",
        ))

    if temp <= 60 or condition == "Rain":
        forecasts.append(DemandForecast(
            product_category=ProductCategory.WINE,
            demand_multiplier=1.2,
            reasoning=f"Cool or rainy weather ({temp}°F, {condition}) increases wine consumption",
            recommended_action="Increase wine orders by 20%. Focus on reds and full-bodied wines.",
        ))

    if temp <= 45:
        forecasts.append(DemandForecast(
            product_category=ProductCategory.SPIRITS,
            demand_multiplier=1.3,
            reasoning=f"Cold weather ({temp}°F) increases cocktail and spirits consumption",
            recommended_action="Increase spirits orders by 30%. Focus on whiskey, rum, and hot cocktail ingredients.",
        ))

    if condition in RAIN_CONDITIONS:
        forecasts.append(DemandForecast(
            product_category=ProductCategory.ALL_CATEGORIES,
            demand_multiplier=1.15,
            reasoning=f"{condition} keeps customers inside longer, lifting overall consumption",
            recommended_action="Increase all inventory by 15%. Prepare for longer customer visits.",
        ))

    logger.debug(
        "Calculated demand forecast",
        extra={"temperature": temp, "condition": condition, "forecast_count": len(forecasts)},
    )
    return forecasts


class InventoryDefaults(Protocol):
    """Policy for filling in stock figures an inventory snapshot lacks."""

    def current_stock(self, item: InventoryItem) -> int:
        ...

    def par_level(self, item: InventoryItem) -> int:
        ...


class ZeroInventoryDefaults:
    """Treat missing counts and par levels as zero."""

    def current_stock(self, item: InventoryItem) -> int:
        return item.last_count_quantity if item.last_count_quantity is not None else 0

    def par_level(self, item: InventoryItem) -> int:
        return item.par_level if item.par_level is not None else 0


class DemoInventoryDefaults:
    """Fill missing figures with plausible random values so demos never come back empty.

    Stock is drawn from 15-40 and par level from 30-70. The values are
    fabricated; use ZeroInventoryDefaults wherever real accuracy matters.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def current_stock(self, item: InventoryItem) -> int:
        if item.last_count_quantity is not None:
            return item.last_count_quantity
        return self.rng.randint(15, 40)

    def par_level(self, item: InventoryItem) -> int:
        if item.par_level is not None:
            return item.par_level
        return self.rng.randint(30, 70)


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _matches_category(item: InventoryItem, category: ProductCategory) -> bool:
    if item.category_id is not None:
        return item.category_id == CATEGORY_IDS.get(category)
    return bool(item.category) and item.category.strip().lower() == category.value.lower()


def select_candidates(forecast: DemandForecast, inventory: Sequence[InventoryItem]) -> List[InventoryItem]:
    """Pick the products a forecast applies to, capped at five.

    Exact category match first; otherwise beer-keyword name matches (Beer
    forecasts only); otherwise the first three items of the snapshot.
    """
    category = forecast.product_category
    if category == ProductCategory.ALL_CATEGORIES:
        return list(inventory[:MAX_CANDIDATES_PER_FORECAST])

    candidates = [item for item in inventory if _matches_category(item, category)]
    if not candidates and category == ProductCategory.BEER:
        candidates = [
            item for item in inventory
            if any(keyword in item.name.lower() for keyword in BEER_KEYWORDS)
        ]
    if not candidates:
        candidates = list(inventory[:FALLBACK_CANDIDATES])
    return candidates[:MAX_CANDIDATES_PER_FORECAST]


def generate_reorders(
    forecasts: Iterable[DemandForecast],
    inventory: Sequence[InventoryItem],
    *,
    defaults: InventoryDefaults | None = None,
) -> List[ReorderSuggestion]:
    """Suggest order quantities for every product below its weather-adjusted par.

    Output is sorted by suggested quantity, largest first; ties keep
    forecast order. Quantities are always positive.
    """
    defaults = defaults or ZeroInventoryDefaults()
    suggestions: List[ReorderSuggestion] = []
    # one (stock, par) per product per call, even when several forecasts pick it
    figures: Dict[int, Tuple[int, int]] = {}

    for forecast in forecasts:
        for item in select_candidates(forecast, inventory):
            if item.id not in figures:
                figures[item.id] = (defaults.current_stock(item), defaults.par_level(item))
            current_stock, par_level = figures[item.id]
            adjusted_par = _round_half_up(par_level * forecast.demand_multiplier)
            if current_stock >= adjusted_par:
                continue
            suggestions.append(ReorderSuggestion(
                product_id=item.id,
                product_name=item.name,
                current_stock=current_stock,
                normal_par_level=par_level,
                weather_adjusted_par_level=adjusted_par,
                suggested_order_quantity=adjusted_par - current_stock,
                reasoning=forecast.reasoning,
                priority=Priority.HIGH if forecast.demand_multiplier > HIGH_PRIORITY_MULTIPLIER else Priority.MEDIUM,
            ))

    suggestions.sort(key=lambda s: s.suggested_order_quantity, reverse=True)
    logger.debug("Generated reorder suggestions", extra={"count": len(suggestions)})
    return suggestions


def summarize_reorders(
    suggestions: Sequence[ReorderSuggestion],
    inventory: Sequence[InventoryItem],
) -> ForecastSummary:
    """Count suggestions and estimate revenue from the extra stock at unit price."""
    prices = {item.id: item.unit_price for item in inventory if item.unit_price is not None}
    revenue = Decimal("0")
    for suggestion in suggestions:
        price = prices.get(suggestion.product_id)
        if price is not None:
            revenue += price * suggestion.suggested_order_quantity
    return ForecastSummary(
        total_suggestions=len(suggestions),
        high_priority=sum(1 for s in suggestions if s.priority == Priority.HIGH),
        estimated_additional_revenue=float(revenue.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
    )


__all__ = [
    "CATEGORY_IDS",
    "BEER_KEYWORDS",
    "InventoryDefaults",
    "ZeroInventoryDefaults",
    "DemoInventoryDefaults",
    "calculate_demand_forecast",
    "select_candidates",
    "generate_reorders",
    "summarize_reorders",
]
