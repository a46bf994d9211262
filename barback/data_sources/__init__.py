"""External data sources: product tiers, OCR, and speech recognition."""

from .base import HttpJsonClient, ProductTier, TextDetector, Transcriber
from .factory import build_product_tiers, build_text_detector, build_transcriber
from .google_cloud import DemoOcrClient, DemoSpeechClient, SpeechClient, VisionOcrClient
from .product_tiers import (
    BarcodeLookupTier,
    CocktailDbTier,
    OpenFoodFactsTier,
    UpcItemDbTier,
    build_default_tiers,
)

__all__ = [
    "HttpJsonClient",
    "ProductTier",
    "TextDetector",
    "Transcriber",
    "build_product_tiers",
    "build_text_detector",
    "build_transcriber",
    "build_default_tiers",
    "OpenFoodFactsTier",
    "UpcItemDbTier",
    "BarcodeLookupTier",
    "CocktailDbTier",
    "VisionOcrClient",
    "DemoOcrClient",
    "SpeechClient",
    "DemoSpeechClient",
]
