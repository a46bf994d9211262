"""Public barcode/product databases used by the ProductResolver fallback chain.

Tiers, in priority order:

1. Open Food Facts   - exact barcode, success flag `status == 1`
2. UPCitemdb         - trial lookup, `code == "OK"` with a non-empty item list
3. Barcode Lookup    - needs an API key; non-empty product list
4. TheCocktailDB     - name search on the barcode's last four digits, only
                       for barcodes of eight digits or more
"""
from __future__ import annotations

from typing import Any, List, Optional

import requests

from barback.config import Settings, settings as default_settings
from barback.data_sources.base import HttpJsonClient, ProductTier
from barback.domain import ProductInfo, ProductSource
from barback.errors import MalformedUpstreamResponse
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/product_tiers")


def _first_csv(value: Optional[str]) -> Optional[str]:
    """Return the first entry of a comma-separated field, or None."""
    if not value:
        return None
    head = value.split(",")[0].strip()
    return head or None


def _first(items: Optional[List[Any]]) -> Optional[Any]:
    return items[0] if items else None


def _or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class _HttpProductTier(HttpJsonClient):
    """Shared parsing guard: shape errors become MalformedUpstreamResponse."""

    source: ProductSource

    @property
    def name(self) -> str:
        return self.source.value

    @property
    def provider(self) -> str:  # type: ignore[override]
        return self.source.value

    def supports(self, barcode: str) -> bool:
        return bool(barcode)

    def resolve(self, barcode: str) -> Optional[ProductInfo]:
        payload = self._fetch(barcode)
        try:
            return self._parse(payload, barcode)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise MalformedUpstreamResponse(self.provider, f"unexpected payload: {exc}") from exc

    def _fetch(self, barcode: str) -> Any:
        raise NotImplementedError

    def _parse(self, payload: Any, barcode: str) -> Optional[ProductInfo]:
        raise NotImplementedError


class OpenFoodFactsTier(_HttpProductTier):
    """Open Food Facts product API (v0)."""

    source = ProductSource.OPENFOODFACTS

    def __init__(self, base_url: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url

    def _fetch(self, barcode: str) -> Any:
        return self._get_json(f"{self.base_url}/api/v0/product/{barcode}.json")

    def _parse(self, payload: Any, barcode: str) -> Optional[ProductInfo]:
        if payload.get("status") != 1:
            return None
        product = payload["product"]
        return ProductInfo(
            name=_or_none(product.get("product_name")),
            brand=_first_csv(product.get("brands")),
            category=_first_csv(product.get("categories")),
            image=_or_none(product.get("image_url")),
            source=self.source,
        )


class UpcItemDbTier(_HttpProductTier):
    """UPCitemdb trial lookup endpoint."""

    source = ProductSource.UPCITEMDB

    def __init__(self, base_url: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url

    def _fetch(self, barcode: str) -> Any:
        return self._get_json(f"{self.base_url}/prod/trial/lookup", params={"upc": barcode})

    def _parse(self, payload: Any, barcode: str) -> Optional[ProductInfo]:
        if payload.get("code") != "OK" or not payload.get("items"):
            return None
        item = payload["items"][0]
        return ProductInfo(
            name=_or_none(item.get("title")),
            brand=_or_none(item.get("brand")),
            category=_or_none(item.get("category")),
            image=_or_none(_first(item.get("images"))),
            source=self.source,
        )


class BarcodeLookupTier(_HttpProductTier):
    """barcodelookup.com v3 products endpoint; inactive without an API key."""

    source = ProductSource.BARCODELOOKUP

    def __init__(self, base_url: str, api_key: str | None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url
        self.api_key = api_key

    def supports(self, barcode: str) -> bool:
        return bool(barcode) and bool(self.api_key)

    def _fetch(self, barcode: str) -> Any:
        return self._get_json(
            f"{self.base_url}/v3/products",
            params={"barcode": barcode, "formatted": "y", "key": self.api_key},
        )

    def _parse(self, payload: Any, barcode: str) -> Optional[ProductInfo]:
        products = payload.get("products")
        if not products:
            return None
        product = products[0]
        return ProductInfo(
            name=_or_none(product.get("title") or product.get("product_name")),
            brand=_or_none(product.get("brand")),
            category=_or_none(product.get("category")),
            image=_or_none(_first(product.get("images"))),
            source=self.source,
        )


class CocktailDbTier(_HttpProductTier):
    """TheCocktailDB name search.

    Barcodes carry no drink names, so the last four digits are used as a
    search fragment. This is a heuristic that only occasionally hits.
    """

    source = ProductSource.COCKTAILDB
    MIN_BARCODE_LENGTH = 8

    def __init__(self, base_url: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url

    def supports(self, barcode: str) -> bool:
        return len(barcode) >= self.MIN_BARCODE_LENGTH

    def _fetch(self, barcode: str) -> Any:
        return self._get_json(f"{self.base_url}/search.php", params={"s": barcode[-4:]})

    def _parse(self, payload: Any, barcode: str) -> Optional[ProductInfo]:
        drinks = payload.get("drinks")
        if not drinks:
            return None
        drink = drinks[0]
        return ProductInfo(
            name=_or_none(drink.get("strDrink")),
            category=_or_none(drink.get("strCategory")),
            image=_or_none(drink.get("strDrinkThumb")),
            source=self.source,
        )


def build_default_tiers(
    settings: Settings | None = None,
    session: requests.Session | None = None,
) -> List[ProductTier]:
    """Instantiate the standard four-tier chain in priority order."""
    settings = settings or default_settings
    session = session or requests.Session()
    common: dict[str, Any] = {"session": session, "timeout": settings.http_timeout_seconds}
    tiers: List[ProductTier] = [
        OpenFoodFactsTier(settings.openfoodfacts_base_url, **common),
        UpcItemDbTier(settings.upcitemdb_base_url, **common),
        BarcodeLookupTier(settings.barcodelookup_base_url, settings.barcode_lookup_api_key, **common),
        CocktailDbTier(settings.cocktaildb_base_url, **common),
    ]
    if not settings.barcode_lookup_api_key:
        logger.info("No Barcode Lookup API key; that tier will be skipped")
    return tiers


__all__ = [
    "OpenFoodFactsTier",
    "UpcItemDbTier",
    "BarcodeLookupTier",
    "CocktailDbTier",
    "build_default_tiers",
]
