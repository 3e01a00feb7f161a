"""Analyze every page of one chunk and fold the results into chunk data."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
import logging
import time

from .analyzer import PageAnalyzer
from .deduplication import dedupe_amenities
from .image_analysis import analyze_page_images, route_images
from .models import (
    ChunkData,
    ChunkResult,
    DocumentChunk,
    ImageBatch,
    ImageVariants,
    PageMetadata,
    ProjectInfo,
)

LOGGER = logging.getLogger(__name__)

_PROJECT_FIELDS = tuple(ProjectInfo.__dataclass_fields__)


class ChunkProcessor:
    """Run page analyses for a chunk concurrently and collect the outcome."""

    def __init__(self, analyzer: PageAnalyzer) -> None:
        self._analyzer = analyzer

    def process(
        self,
        chunk: DocumentChunk,
        image_batch: ImageBatch | None,
        source: str = "",
    ) -> ChunkResult:
        """Process one chunk without raising past the chunk boundary.

        Args:
            chunk: Chunk whose page range is analyzed.
            image_batch: Pre-generated page images for the whole document.
            source: Source document name forwarded to the analyzer.

        Returns:
            ChunkResult: ``success`` is false when the image batch is missing
            or no page of the chunk could be analyzed.
        """

        started = time.perf_counter()
        source = source or chunk.source_name
        result = ChunkResult(
            success=False,
            chunk_index=chunk.chunk_index,
            page_range=chunk.page_range,
            source_name=source,
        )
        label = f"chunk {chunk.chunk_index + 1} (pages {chunk.page_range})"

        if image_batch is None:
            result.errors.append(f"Image batch missing for {label}.")
            result.processing_time_ms = _elapsed_ms(started)
            return result

        pages: dict[int, ImageVariants] = {}
        for page_number in chunk.page_range.pages():
            variants = image_batch.variants_for(page_number)
            if variants is None:
                result.warnings.append(f"Page {page_number} has no image URLs; skipped.")
                LOGGER.warning("Page %s of %s has no image URLs; skipped.", page_number, source)
                continue
            pages[page_number] = variants

        if not pages:
            result.errors.append(f"No page images available for {label}.")
            result.processing_time_ms = _elapsed_ms(started)
            return result

        metadata_list = self._analyze_pages(pages, source, result)
        result.page_metadata_list = metadata_list
        if not metadata_list:
            result.errors.append(f"All {len(pages)} page analyses failed for {label}.")
        else:
            result.success = True
            result.data = build_chunk_data(metadata_list)

        result.processing_time_ms = _elapsed_ms(started)
        LOGGER.info(
            "Processed %s of %s: %s/%s page(s) analyzed in %.0f ms.",
            label,
            source or "document",
            len(metadata_list),
            len(pages),
            result.processing_time_ms,
        )
        return result

    def _analyze_pages(
        self,
        pages: dict[int, ImageVariants],
        source: str,
        result: ChunkResult,
    ) -> list[PageMetadata]:
        """Dispatch all pages at once and wait for every one of them."""

        collected: list[PageMetadata] = []
        with ThreadPoolExecutor(max_workers=len(pages)) as executor:
            futures = {
                executor.submit(self._analyze_page, number, variants, source): number
                for number, variants in pages.items()
            }
            for future in as_completed(futures):
                page_number = futures[future]
                metadata, error = future.result()
                if metadata is None:
                    result.warnings.append(f"Page {page_number} analysis failed: {error}")
                    continue
                collected.append(metadata)
        return sorted(collected, key=lambda item: item.page_number)

    def _analyze_page(
        self,
        page_number: int,
        variants: ImageVariants,
        source: str,
    ) -> tuple[PageMetadata | None, str | None]:
        """Analyze one page; failures come back as ``(None, message)``."""

        try:
            metadata = self._analyzer.analyze(variants.original, page_number, source)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Analysis of page %s of %s failed: %s", page_number, source, exc)
            return None, str(exc)
        return replace(metadata, page_number=page_number, variants=variants), None


def build_chunk_data(metadata_list: list[PageMetadata]) -> ChunkData:
    """Fold page results (in page order) into one partial building record."""

    data = ChunkData()
    for metadata in metadata_list:
        if metadata.project_info is not None:
            for name in _PROJECT_FIELDS:
                if getattr(data.project_info, name) in (None, ""):
                    setattr(data.project_info, name, getattr(metadata.project_info, name))
        if metadata.description and len(metadata.description) > len(data.description or ""):
            data.description = metadata.description

        for unit in metadata.units:
            tagged = unit.copy()
            if tagged.page_number is None:
                tagged.page_number = metadata.page_number
            data.units.append(tagged)
        data.payment_plans.extend(metadata.payment_plans)
        data.amenities = dedupe_amenities(metadata.amenities, seed=data.amenities)
        route_images(analyze_page_images(metadata), data.images)
    return data


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
