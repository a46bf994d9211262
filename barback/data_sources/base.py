"""Interfaces and HTTP plumbing shared by the external data sources."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import requests

from barback.domain import ProductInfo
from barback.errors import MalformedUpstreamResponse, ProviderUnavailable
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="data_sources/base")


class ProductTier(Protocol):
    """One provider in the barcode fallback chain."""

    name: str

    def supports(self, barcode: str) -> bool:
        """Return False to skip this tier for `barcode` without calling it."""
        ...

    def resolve(self, barcode: str) -> Optional[ProductInfo]:
        """Return product metadata, or None when the provider has no match.

        Network failures raise ProviderUnavailable and unexpected payloads
        raise MalformedUpstreamResponse.
        """
        ...


class TextDetector(Protocol):
    """Anything that turns a base64 image into the text printed on it."""

    demo_mode: bool

    def detect_text(self, image_data: str) -> str:
        ...


class Transcriber(Protocol):
    """Anything that turns base64 audio into a transcript and 0-1 confidence."""

    demo_mode: bool

    def transcribe(self, audio_data: str) -> tuple[str, float]:
        ...


class HttpJsonClient:
    """requests.Session wrapper that maps failures onto the provider error taxonomy."""

    provider: str = "http"

    def __init__(self, session: requests.Session | None = None, timeout: float = 10.0) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request_json(self, method: str, url: str, **kwargs) -> Any:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning(
                "Upstream request failed",
                extra={"provider": self.provider, "url": mask_secret_url(url), "error_type": type(exc).__name__},
            )
            # str(exc) embeds the full query string, api key included
            raise ProviderUnavailable(self.provider, f"request failed: {type(exc).__name__}") from exc

        if resp.status_code >= 400:
            logger.warning(
                "Upstream returned error status",
                extra={"provider": self.provider, "status": resp.status_code, "url": mask_secret_url(url)},
            )
            raise ProviderUnavailable(self.provider, f"HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedUpstreamResponse(self.provider, "invalid json") from exc

    def _get_json(self, url: str, params: dict | None = None) -> Any:
        return self._request_json("GET", url, params=params)

    def _post_json(self, url: str, payload: dict, params: dict | None = None) -> Any:
        return self._request_json("POST", url, json=payload, params=params)


__all__ = ["ProductTier", "TextDetector", "Transcriber", "HttpJsonClient"]
