"""Shared fixtures: in-memory PDFs, a fake image store and a fake page analyzer."""
from __future__ import annotations

from io import BytesIO
import threading
from typing import Callable, Dict, Iterable

import pytest
from pypdf import PdfWriter

from brochure_pipeline.models import (
    VARIANT_NAMES,
    ImageBatch,
    ImageVariants,
    PageMetadata,
)
from brochure_pipeline.rendering import RenderedPage


def build_pdf(pages: int) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=100)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def variants_for(page: int, prefix: str = "https://img.test/abc") -> ImageVariants:
    return ImageVariants(**{name: f"{prefix}/page_{page}_{name}.jpg" for name in VARIANT_NAMES})


class FakeImageStore:
    """Records uploads; pages listed in ``failing`` raise on every attempt."""

    def __init__(self, failing: Iterable[int] = (), flaky: Dict[int, int] | None = None) -> None:
        self.failing = set(failing)
        self.flaky = dict(flaky or {})
        self.calls: list[tuple[int, str]] = []
        self._lock = threading.Lock()

    def upload_with_variants(self, rendered: RenderedPage, cache_key: str) -> ImageVariants:
        with self._lock:
            self.calls.append((rendered.page_number, cache_key))
            if rendered.page_number in self.failing:
                raise RuntimeError(f"upload failed for page {rendered.page_number}")
            remaining = self.flaky.get(rendered.page_number, 0)
            if remaining:
                self.flaky[rendered.page_number] = remaining - 1
                raise RuntimeError("transient")
        return variants_for(rendered.page_number, prefix=f"https://img.test/{cache_key}")


class FakeAnalyzer:
    """Returns canned payloads per page; pages in ``failing`` raise."""

    def __init__(
        self,
        payloads: Dict[int, dict] | Callable[[int], dict] | None = None,
        failing: Iterable[int] = (),
    ) -> None:
        self.payloads = payloads or {}
        self.failing = set(failing)
        self.calls: list[tuple[str, int, str]] = []
        self._lock = threading.Lock()

    def analyze(self, image_url: str, page_number: int, source: str) -> PageMetadata:
        with self._lock:
            self.calls.append((image_url, page_number, source))
        if page_number in self.failing:
            raise RuntimeError(f"analyzer down for page {page_number}")
        if callable(self.payloads):
            payload = self.payloads(page_number)
        else:
            payload = self.payloads.get(page_number, {"classification": "GeneralText"})
        return PageMetadata.from_payload(payload, page_number=page_number, source=source)


class FakeImageGenerator:
    """Image batch generator that skips rendering entirely."""

    def __init__(self, missing: Iterable[int] = (), error: Exception | None = None) -> None:
        self.missing = set(missing)
        self.error = error
        self.calls = 0

    def generate(self, data: bytes, source_name: str = "", cache_key: str | None = None) -> ImageBatch:
        from brochure_pipeline.chunker import count_pages

        self.calls += 1
        if self.error is not None:
            raise self.error
        total = count_pages(data)
        batch = ImageBatch(
            content_hash=cache_key or "hash",
            source_name=source_name,
            total_pages=total,
            attempted=total,
            failed_pages=sorted(self.missing),
        )
        for page in range(1, total + 1):
            if page not in self.missing:
                batch.image_urls[page] = variants_for(page)
        return batch


@pytest.fixture
def pdf_factory() -> Callable[[int], bytes]:
    return build_pdf


@pytest.fixture
def image_batch_for() -> Callable[..., ImageBatch]:
    def _factory(total_pages: int, missing: Iterable[int] = ()) -> ImageBatch:
        missing_set = set(missing)
        batch = ImageBatch(content_hash="hash", source_name="test.pdf", total_pages=total_pages)
        for page in range(1, total_pages + 1):
            if page not in missing_set:
                batch.image_urls[page] = variants_for(page)
        return batch

    return _factory
