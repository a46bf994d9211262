"""Factory helpers for choosing data source implementations at startup."""

from __future__ import annotations

from typing import List

import requests

from barback import config
from barback.data_sources.base import ProductTier, TextDetector, Transcriber
from barback.data_sources.google_cloud import DemoOcrClient, DemoSpeechClient, SpeechClient, VisionOcrClient
from barback.data_sources.product_tiers import build_default_tiers
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_product_tiers(
    settings: config.Settings | None = None,
    session: requests.Session | None = None,
) -> List[ProductTier]:
    """Return the barcode tiers in priority order."""
    return build_default_tiers(settings or config.settings, session)


def build_text_detector(settings: config.Settings | None = None) -> TextDetector:
    """Vision OCR when a key is configured, demo OCR otherwise."""
    settings = settings or config.settings
    if settings.vision_api_key:
        logger.info("Using Google Vision OCR")
        return VisionOcrClient(
            settings.vision_base_url,
            settings.vision_api_key,
            timeout=settings.http_timeout_seconds,
        )
    logger.info("No vision API key; using demo OCR")
    return DemoOcrClient()


def build_transcriber(settings: config.Settings | None = None) -> Transcriber:
    """Speech-to-Text when a key is configured, demo transcripts otherwise."""
    settings = settings or config.settings
    if settings.speech_api_key:
        logger.info("Using Google Speech-to-Text")
        return SpeechClient(
            settings.speech_base_url,
            settings.speech_api_key,
            timeout=settings.http_timeout_seconds,
        )
    logger.info("No speech API key; using demo transcriber")
    return DemoSpeechClient()
