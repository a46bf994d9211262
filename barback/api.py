"""HTTP API for weather-driven reorders, barcode scanning, and voice counts."""

import hmac
from typing import List, Optional

import redis
from fastapi import APIRouter, Depends, Header, HTTPException, status

from .catalog import build_catalog_store
from .config import settings
from .data_sources import build_product_tiers, build_text_detector, build_transcriber
from .demand_forecast import (
    DemoInventoryDefaults,
    ZeroInventoryDefaults,
    calculate_demand_forecast,
    generate_reorders,
    summarize_reorders,
)
from .domain import (
    CamelModel,
    CatalogProduct,
    LookupResult,
    ScanResult,
    TranscriptionResult,
    WeatherForecastResponse,
)
from .errors import ProviderUnavailable, RateLimitExceeded
from .product_resolver import BarcodeScanService, ProductResolver
from .quantity_extractor import extract_quantity_from_text
from .rate_limited_cache import RateLimitedCache
from .weather_provider import WeatherProvider, sanitize_location
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="barback/api")

_redis_client = None
if settings.api_key_redis_url:
    try:
        _redis_client = redis.Redis.from_url(settings.api_key_redis_url)
        logger.info("API key checks will use Redis backend",
                    extra={"redis_url": mask_secret_url(settings.api_key_redis_url)})
    except (redis.RedisError, ValueError) as exc:
        logger.warning("Failed to configure Redis for API key checks; falling back to static key",
                       extra={"error": str(exc)})


def require_api_key(x_api_key: str | None = Header(default=None)):
    """
    Validate X-API-Key header against Redis (if configured) or the static api_key setting.
    """
    # No key configured anywhere: dev/demo mode.
    if not settings.api_key and not _redis_client:
        logger.debug("No API key configured; allowing all requests")
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if _redis_client:
        logger.debug("Checking API key against Redis")
        try:
            if _redis_client.sismember(settings.api_key_redis_set, x_api_key):
                return
        except redis.RedisError as e:
            logger.warning("Redis API key lookup error; falling back to static key",
                           extra={"error": str(e)})

    if settings.api_key and hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])

CACHE = RateLimitedCache()
WEATHER = WeatherProvider(CACHE, settings)
RESOLVER = ProductResolver(build_product_tiers(settings), CACHE, settings)
CATALOG = build_catalog_store(settings)
TEXT_DETECTOR = build_text_detector(settings)
TRANSCRIBER = build_transcriber(settings)
SCAN_SERVICE = BarcodeScanService(RESOLVER, CATALOG, TEXT_DETECTOR)
INVENTORY_DEFAULTS = DemoInventoryDefaults() if settings.demo_inventory_defaults else ZeroInventoryDefaults()


class ScanRequest(CamelModel):
    """Base64 camera frame from the scanner screen."""
    image_data: Optional[str] = None


class SpeechRequest(CamelModel):
    """Base64 audio clip from the voice-count screen."""
    audio_data: Optional[str] = None


class ExtractQuantityRequest(CamelModel):
    text: str = ""


class ExtractQuantityResponse(CamelModel):
    text: str
    quantity: int


def _weather_forecast(location: Optional[str]) -> WeatherForecastResponse:
    loc = sanitize_location(location, settings.default_location)
    try:
        observation = WEATHER.get_weather_data(loc)
    except RateLimitExceeded as exc:
        logger.warning("Weather rate limit exceeded", extra={"location": loc, "retry_after_ms": exc.retry_after_ms})
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Weather provider rate limit exceeded; try again later.",
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )
    except ProviderUnavailable as exc:
        logger.error("Weather provider failed", extra={"location": loc, "error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Weather data unavailable.")

    inventory = [product.to_inventory_item() for product in CATALOG.list_products()]
    forecasts = calculate_demand_forecast(observation)
    suggestions = generate_reorders(forecasts, inventory, defaults=INVENTORY_DEFAULTS)
    top = suggestions[: settings.max_reorder_suggestions]

    logger.info(
        "Built weather forecast",
        extra={"location": loc, "forecasts": len(forecasts), "suggestions": len(suggestions)},
    )
    return WeatherForecastResponse(
        location=loc,
        weather=observation,
        demand_forecasts=forecasts,
        reorder_suggestions=top,
        summary=summarize_reorders(top, inventory),
    )


@router.get("/weather-forecast", response_model=WeatherForecastResponse)
def weather_forecast_default():
    """Forecast and reorder suggestions for the default location."""
    return _weather_forecast(None)


@router.get("/weather-forecast/{location}", response_model=WeatherForecastResponse)
def weather_forecast(location: str):
    """Forecast and reorder suggestions for `location`."""
    return _weather_forecast(location)


@router.post("/scan-barcode", response_model=ScanResult, response_model_exclude_none=True)
def scan_barcode(req: ScanRequest):
    """OCR a camera frame, resolve its barcode, and register new products."""
    if not req.image_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="imageData is required")
    try:
        return SCAN_SERVICE.scan(req.image_data)
    except ProviderUnavailable as exc:
        logger.error("Text detection failed", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Text detection unavailable.")


@router.get("/upc-lookup/{barcode}", response_model=LookupResult, response_model_exclude_none=True)
def upc_lookup(barcode: str):
    """Resolve a barcode against the product tiers without touching the catalog."""
    if not barcode.isdigit():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Barcode must contain only digits")
    info = RESOLVER.lookup_product_by_barcode(barcode)
    return LookupResult(
        barcode=barcode,
        success=info.is_resolved,
        name=info.name,
        brand=info.brand,
        category=info.category,
        image=info.image,
        source=info.source,
    )


@router.post("/test-barcode/{barcode}", response_model=ScanResult, response_model_exclude_none=True)
def check_barcode(barcode: str):
    """Resolve a typed-in barcode, checking the catalog first."""
    if not barcode.isdigit():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Barcode must contain only digits")
    return SCAN_SERVICE.test_barcode(barcode)


@router.post("/speech-to-text", response_model=TranscriptionResult)
def speech_to_text(req: SpeechRequest):
    """Transcribe a spoken count and pull the quantity out of it."""
    if not req.audio_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="audioData is required")
    try:
        transcript, confidence = TRANSCRIBER.transcribe(req.audio_data)
    except ProviderUnavailable as exc:
        logger.error("Transcription failed", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Speech recognition unavailable.")

    quantity = extract_quantity_from_text(transcript)
    logger.info("Transcribed count", extra={"quantity": quantity, "demo": TRANSCRIBER.demo_mode})
    return TranscriptionResult(
        transcript=transcript,
        confidence=max(0, min(100, round(confidence * 100))),
        quantity=quantity,
        success=bool(transcript),
    )


@router.post("/extract-quantity", response_model=ExtractQuantityResponse)
def extract_quantity(req: ExtractQuantityRequest):
    """Pull a quantity out of free text."""
    return ExtractQuantityResponse(text=req.text, quantity=extract_quantity_from_text(req.text))


@router.get("/products", response_model=List[CatalogProduct])
def list_products():
    """Return the catalog in id order."""
    return CATALOG.list_products()


def demo_modes() -> dict:
    """Which integrations are running without credentials."""
    return {
        "weather": WEATHER.demo_mode,
        "vision": TEXT_DETECTOR.demo_mode,
        "speech": TRANSCRIBER.demo_mode,
    }


__all__ = ["router", "require_api_key", "demo_modes"]
