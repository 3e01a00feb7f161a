"""Thin HTTP client for the page analyzer service."""

from __future__ import annotations

import logging
import time
from typing import Protocol

import requests

from .config import AnalyzerConfig
from .models import PageMetadata

LOGGER = logging.getLogger(__name__)


class PageAnalyzerError(RuntimeError):
    """Raised when the page analyzer returns an error or an unusable body."""


class PageAnalyzer(Protocol):
    """Anything that turns a page image into structured page metadata."""

    def analyze(self, image_url: str, page_number: int, source: str) -> PageMetadata:
        ...


class HttpPageAnalyzer:
    """Client that posts page image URLs to the analyzer endpoint."""

    def __init__(
        self,
        config: AnalyzerConfig,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._session.headers.update(headers)

    def analyze(self, image_url: str, page_number: int, source: str) -> PageMetadata:
        """Analyze a single page image.

        Args:
            image_url: URL of the page's original-resolution variant.
            page_number: 1-indexed page number in the source document.
            source: Source document name.

        Returns:
            PageMetadata: Parsed analysis for the page.

        Raises:
            PageAnalyzerError: On transport errors, non-2xx responses or
                bodies that are not a JSON object.
        """

        payload = {
            "imageUrl": image_url,
            "pageNumber": page_number,
            "source": source,
        }
        started = time.perf_counter()
        try:
            response = self._session.post(
                self._config.url,
                json=payload,
                timeout=self._config.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise PageAnalyzerError(f"Page {page_number} analysis request failed: {exc}") from exc

        if not response.ok:
            LOGGER.error(
                "Page analyzer responded with %s: %s",
                response.status_code,
                response.text,
            )
            raise PageAnalyzerError(
                f"Page {page_number} analysis failed with HTTP {response.status_code}.",
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise PageAnalyzerError(f"Page {page_number} analysis returned invalid JSON.") from exc
        if not isinstance(data, dict):
            raise PageAnalyzerError(f"Page {page_number} analysis returned a non-object body.")

        metadata = PageMetadata.from_payload(data, page_number=page_number, source=source)
        metadata.processing_time_ms = (time.perf_counter() - started) * 1000
        return metadata
