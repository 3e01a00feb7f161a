"""Render and upload every page of a document exactly once."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
from pathlib import Path
import shutil
import tempfile
import time
from typing import Callable

from .config import ImageConfig
from .hashing import content_hash, short_hash
from .models import ImageBatch, ImageVariants
from .rendering import RenderedPage, render_document
from .storage import ImageStore

LOGGER = logging.getLogger(__name__)


class ImageBatchGenerator:
    """Produce the page-to-variants map for one document."""

    def __init__(
        self,
        store: ImageStore,
        config: ImageConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._config = config or ImageConfig()
        self._sleep = sleep

    def generate(
        self,
        data: bytes,
        source_name: str = "",
        cache_key: str | None = None,
    ) -> ImageBatch:
        """Rasterize all pages, build their variants and upload them.

        Uploads run in sequential batches of ``upload_concurrency`` pages.
        A page whose upload still fails after the configured attempts is left
        out of the result; the other pages are unaffected. The staging
        directory is removed whether or not the run succeeds.

        Args:
            data: Raw PDF bytes of the whole document.
            source_name: Display name used in logs.
            cache_key: Content hash; computed from ``data`` when omitted.

        Returns:
            ImageBatch: Variant URLs per page plus attempt statistics.

        Raises:
            RenderError: If the document cannot be opened for rendering.
        """

        started = time.perf_counter()
        cache_key = cache_key or content_hash(data)
        staging_dir = Path(tempfile.mkdtemp(prefix="brochure-pages-"))
        try:
            rendered, render_failures = render_document(
                data,
                staging_dir,
                resolution=self._config.render_resolution,
            )
            batch = ImageBatch(
                content_hash=cache_key,
                source_name=source_name,
                total_pages=len(rendered) + len(render_failures),
                attempted=len(rendered) + len(render_failures),
                failed_pages=list(render_failures),
            )
            LOGGER.info(
                "Rendered %s/%s page(s) of %s (%s); uploading.",
                len(rendered),
                batch.total_pages,
                source_name or "document",
                short_hash(cache_key),
            )
            self._upload_all(rendered, cache_key, batch)
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

        batch.failed_pages.sort()
        batch.elapsed_ms = (time.perf_counter() - started) * 1000
        if batch.failed_pages:
            LOGGER.warning(
                "Image batch for %s is missing page(s) %s.",
                source_name or "document",
                batch.failed_pages,
            )
        LOGGER.info(
            "Image batch for %s ready: %s/%s page(s) in %.0f ms.",
            source_name or "document",
            batch.succeeded,
            batch.attempted,
            batch.elapsed_ms,
        )
        return batch

    def _upload_all(
        self,
        rendered: dict[int, RenderedPage],
        cache_key: str,
        batch: ImageBatch,
    ) -> None:
        """Upload pages batch by batch, recording results on ``batch``."""

        page_numbers = sorted(rendered)
        size = max(1, self._config.upload_concurrency)
        with ThreadPoolExecutor(max_workers=size) as executor:
            for offset in range(0, len(page_numbers), size):
                futures = {
                    executor.submit(self._upload_with_retry, rendered[number], cache_key): number
                    for number in page_numbers[offset:offset + size]
                }
                for future in as_completed(futures):
                    page_number = futures[future]
                    variants = future.result()
                    if variants is None:
                        batch.failed_pages.append(page_number)
                    else:
                        batch.image_urls[page_number] = variants

    def _upload_with_retry(self, rendered: RenderedPage, cache_key: str) -> ImageVariants | None:
        """Upload one page, retrying with a fixed delay; ``None`` when exhausted."""

        attempts = max(1, self._config.upload_retries)
        attempt = 0
        while attempt < attempts:
            attempt += 1
            try:
                return self._store.upload_with_variants(rendered, cache_key)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning(
                    "Upload of page %s failed (attempt %s/%s): %s",
                    rendered.page_number,
                    attempt,
                    attempts,
                    exc,
                )
                if attempt < attempts:
                    self._sleep(self._config.upload_retry_delay)
        return None
