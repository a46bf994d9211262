"""Barcode resolution across ordered provider tiers, plus the scan workflow.

`ProductResolver` walks the tiers in priority order and returns the first
hit. A failing or rate-limited tier is logged and skipped, so resolution
always produces a ProductInfo; when every tier misses the result is the
"Unknown Product" fallback.

`BarcodeScanService` is the scanner-screen workflow: OCR text -> barcode ->
resolution -> create the catalog product the first time a barcode resolves.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from barback.catalog.base import CatalogStore
from barback.config import Settings, settings as default_settings
from barback.data_sources.base import ProductTier, TextDetector
from barback.domain import (
    CatalogProduct,
    NewCatalogProduct,
    ProductInfo,
    ScanResult,
)
from barback.errors import ProviderUnavailable, RateLimitExceeded
from barback.rate_limited_cache import RateLimitedCache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="product_resolver")

BARCODE_PATTERN = re.compile(r"\b(\d{12,13})\b")

RESOLVED_CONFIDENCE = 85
DATABASE_CONFIDENCE = 95
NEW_PRODUCT_PAR_LEVEL = 10
NEW_PRODUCT_CATEGORY = "Uncategorized"


class ProductResolver:
    """Resolve barcodes through an ordered list of ProductTiers."""

    def __init__(
        self,
        tiers: Sequence[ProductTier],
        cache: RateLimitedCache,
        settings: Settings | None = None,
    ) -> None:
        self.tiers: List[ProductTier] = list(tiers)
        self.cache = cache
        self.settings = settings or default_settings

    def lookup_product_by_barcode(self, barcode: str) -> ProductInfo:
        """Return the first tier hit for `barcode`, or the Unknown Product fallback."""
        barcode = (barcode or "").strip()
        for tier in self.tiers:
            if not tier.supports(barcode):
                logger.debug("Tier skipped", extra={"tier": tier.name, "barcode": barcode})
                continue
            info = self._resolve_with_tier(tier, barcode)
            if info is not None:
                logger.info("Barcode resolved", extra={"tier": tier.name, "barcode": barcode})
                return info

        logger.info("Barcode not found in any tier", extra={"barcode": barcode})
        return ProductInfo.not_found()

    def _resolve_with_tier(self, tier: ProductTier, barcode: str) -> Optional[ProductInfo]:
        limit = self.settings.limit_for(tier.name)
        try:
            return self.cache.get_or_fetch(
                tier.name, barcode, limit.ttl_ms, limit.max_calls, limit.window_ms,
                lambda: tier.resolve(barcode),
            )
        except RateLimitExceeded as exc:
            logger.warning("Tier over rate limit; trying next", extra={"tier": tier.name, "error": str(exc)})
        except ProviderUnavailable as exc:
            logger.warning("Tier unavailable; trying next", extra={"tier": tier.name, "error": str(exc)})
        return None


def detect_barcode(text: Optional[str]) -> Optional[str]:
    """Return the first standalone 12-13 digit run in OCR text, or None."""
    if not text:
        return None
    match = BARCODE_PATTERN.search(text)
    return match.group(1) if match else None


class BarcodeScanService:
    """Scanner workflow tying OCR, resolution, and the catalog together."""

    def __init__(self, resolver: ProductResolver, catalog: CatalogStore, text_detector: TextDetector) -> None:
        self.resolver = resolver
        self.catalog = catalog
        self.text_detector = text_detector

    def scan(self, image_data: str) -> ScanResult:
        """Read a barcode from an image, resolve it, and register new products."""
        text = self.text_detector.detect_text(image_data)
        barcode = detect_barcode(text)
        if barcode is None:
            logger.info("No barcode pattern in OCR text", extra={"text_length": len(text or "")})
            return ScanResult(
                barcode="",
                confidence=0,
                success=False,
                message="No barcode detected in image",
            )

        info = self.resolver.lookup_product_by_barcode(barcode)
        if not info.is_resolved:
            return self._unresolved(barcode, info)

        product = self.catalog.get_by_barcode(barcode)
        if product is None:
            product = self._register(barcode, info)
        return self._resolved(barcode, info, product)

    def test_barcode(self, barcode: str) -> ScanResult:
        """Resolve a typed-in barcode, preferring the catalog; never creates products."""
        product = self.catalog.get_by_barcode(barcode)
        if product is not None:
            return ScanResult(
                barcode=barcode,
                product_name=product.name,
                brand=product.brand,
                category=product.category,
                image=product.image,
                product=product,
                confidence=DATABASE_CONFIDENCE,
                success=True,
                source="database",
            )

        info = self.resolver.lookup_product_by_barcode(barcode)
        if not info.is_resolved:
            return self._unresolved(barcode, info)
        return self._resolved(barcode, info, None)

    def _register(self, barcode: str, info: ProductInfo) -> CatalogProduct:
        new_product = NewCatalogProduct(
            sku=f"UPC-{barcode}",
            name=info.name or f"Product {barcode}",
            category=info.category or NEW_PRODUCT_CATEGORY,
            par_level=NEW_PRODUCT_PAR_LEVEL,
            barcode=barcode,
            brand=info.brand,
            image=info.image,
        )
        product, created = self.catalog.insert_or_get(new_product)
        if created:
            logger.info("Created catalog product from scan", extra={"sku": product.sku, "id": product.id})
        return product

    @staticmethod
    def _resolved(barcode: str, info: ProductInfo, product: CatalogProduct | None) -> ScanResult:
        return ScanResult(
            barcode=barcode,
            product_name=info.name,
            brand=info.brand,
            category=info.category,
            image=info.image,
            product=product,
            confidence=RESOLVED_CONFIDENCE,
            success=True,
            source=info.source.value,
        )

    @staticmethod
    def _unresolved(barcode: str, info: ProductInfo) -> ScanResult:
        return ScanResult(
            barcode=barcode,
            product_name=info.name,
            confidence=0,
            success=False,
            source=info.source.value,
            message="Product not found",
        )


__all__ = ["ProductResolver", "BarcodeScanService", "detect_barcode", "BARCODE_PATTERN"]
