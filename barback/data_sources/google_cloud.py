"""Google Cloud Vision (OCR) and Speech-to-Text clients with demo stand-ins.

The scanner and voice-count screens always work: without an API key the
demo clients return canned text derived from a hash of the upload, so the
same image or clip always yields the same result.
"""
from __future__ import annotations

import hashlib
from typing import Any

import requests

from barback.data_sources.base import HttpJsonClient
from barback.errors import MalformedUpstreamResponse, ProviderUnavailable
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/google_cloud")

# Sample retail UPC-A codes printed on common bar stock labels.
DEMO_BARCODES = (
    "080660956435",
    "018200000164",
    "087000007369",
    "081753812811",
    "5010677850209",
)

DEMO_TRANSCRIPTS = (
    "twelve bottles",
    "I count 8 cases",
    "about seven cases",
    "three kegs",
    "24 bottles",
)


def _strip_data_url(data: str) -> str:
    """Drop a `data:<mime>;base64,` prefix if the browser sent one."""
    if data.startswith("data:") and "," in data:
        return data.split(",", 1)[1]
    return data


def _digest_index(data: str, modulo: int) -> int:
    return int(hashlib.sha256(data.encode("utf-8")).hexdigest(), 16) % modulo


class VisionOcrClient(HttpJsonClient):
    """Text detection through the Vision `images:annotate` endpoint."""

    provider = "google-vision"
    demo_mode = False

    def __init__(self, base_url: str, api_key: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url
        self.api_key = api_key

    def detect_text(self, image_data: str) -> str:
        payload = {
            "requests": [
                {
                    "image": {"content": _strip_data_url(image_data)},
                    "features": [{"type": "TEXT_DETECTION"}],
                }
            ]
        }
        data = self._post_json(f"{self.base_url}/images:annotate", payload, params={"key": self.api_key})
        try:
            response: dict[str, Any] = data["responses"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedUpstreamResponse(self.provider, f"unexpected payload: {exc}") from exc
        if "error" in response:
            error = response["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else error
            raise ProviderUnavailable(self.provider, str(message))
        annotations = response.get("textAnnotations") or []
        if not annotations:
            return ""
        return annotations[0].get("description", "") or ""


class DemoOcrClient:
    """Returns label text containing one of DEMO_BARCODES."""

    demo_mode = True

    def detect_text(self, image_data: str) -> str:
        barcode = DEMO_BARCODES[_digest_index(image_data, len(DEMO_BARCODES))]
        logger.debug("Demo OCR produced barcode", extra={"barcode": barcode})
        return f"UPC {barcode}"


class SpeechClient(HttpJsonClient):
    """Short-utterance recognition through the Speech `speech:recognize` endpoint."""

    provider = "google-speech"
    demo_mode = False

    def __init__(self, base_url: str, api_key: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url
        self.api_key = api_key

    def transcribe(self, audio_data: str) -> tuple[str, float]:
        payload = {
            "config": {
                "encoding": "WEBM_OPUS",
                "sampleRateHertz": 48000,
                "languageCode": "en-US",
                "enableAutomaticPunctuation": True,
                "model": "latest_short",
            },
            "audio": {"content": _strip_data_url(audio_data)},
        }
        data = self._post_json(f"{self.base_url}/speech:recognize", payload, params={"key": self.api_key})
        if not isinstance(data, dict):
            raise MalformedUpstreamResponse(self.provider, "expected a JSON object")
        for result in data.get("results") or []:
            alternatives = result.get("alternatives") or []
            if alternatives:
                best = alternatives[0]
                return best.get("transcript", "") or "", float(best.get("confidence", 0.0) or 0.0)
        return "", 0.0


class DemoSpeechClient:
    """Returns one of DEMO_TRANSCRIPTS with a fixed confidence."""

    demo_mode = True
    CONFIDENCE = 0.92

    def transcribe(self, audio_data: str) -> tuple[str, float]:
        return DEMO_TRANSCRIPTS[_digest_index(audio_data, len(DEMO_TRANSCRIPTS))], self.CONFIDENCE


__all__ = [
    "DEMO_BARCODES",
    "DEMO_TRANSCRIPTS",
    "VisionOcrClient",
    "DemoOcrClient",
    "SpeechClient",
    "DemoSpeechClient",
]
