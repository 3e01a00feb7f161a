"""High level brochure processing pipeline."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import logging
from pathlib import Path
import time
from typing import Callable
import uuid

from .aggregator import DataAggregator
from .analyzer import HttpPageAnalyzer
from .chunk_processor import ChunkProcessor
from .chunker import split_document
from .config import PipelineConfig
from .hashing import content_hash, short_hash
from .image_batch import ImageBatchGenerator
from .models import ChunkResult, DocumentChunk, ImageBatch, PipelineResult
from .recorder import ResultRecorder
from .storage import build_image_store

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class JobContext:
    """State owned by a single document job."""

    job_id: str
    source_name: str
    content_hash: str
    config: PipelineConfig
    aggregator: DataAggregator
    recorder: ResultRecorder
    image_batch: ImageBatch | None = None
    total_chunks: int = 0
    total_pages: int = 0
    successful_chunks: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class BrochurePipeline:
    """Coordinate chunking, page images, analysis and aggregation."""

    def __init__(
        self,
        config: PipelineConfig,
        image_generator: ImageBatchGenerator,
        processor: ChunkProcessor,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._image_generator = image_generator
        self._processor = processor
        self._sleep = sleep

    def process_file(self, path: Path, job_id: str | None = None) -> PipelineResult:
        """Process a PDF on disk."""

        if not path.exists():
            raise FileNotFoundError(f"Document {path} does not exist.")
        return self.process(path.read_bytes(), source_name=path.name, job_id=job_id)

    def process(
        self,
        data: bytes,
        source_name: str = "document.pdf",
        job_id: str | None = None,
    ) -> PipelineResult:
        """Run one document through the whole pipeline.

        Args:
            data: Raw PDF bytes.
            source_name: Display name of the document.
            job_id: Identifier for logs and reports; generated when omitted.

        Returns:
            PipelineResult: The finalized record plus every error and warning.
            ``success`` is true when at least one chunk succeeded.

        Raises:
            ChunkingError: If the document cannot be parsed or split.
        """

        started = time.perf_counter()
        digest = content_hash(data)
        job_id = job_id or f"{short_hash(digest)}-{uuid.uuid4().hex[:8]}"
        context = JobContext(
            job_id=job_id,
            source_name=source_name,
            content_hash=digest,
            config=self._config,
            aggregator=DataAggregator(),
            recorder=ResultRecorder(job_id, source_name, self._config.report_dir),
        )
        LOGGER.info("Job %s: processing %s (%s)", job_id, source_name, short_hash(digest))

        chunks = split_document(
            data,
            pages_per_chunk=self._config.chunking.pages_per_chunk,
            threshold=self._config.chunking.chunk_threshold,
            source_name=source_name,
        )
        context.total_chunks = len(chunks)
        context.total_pages = chunks[-1].page_range.end

        context.image_batch = self._generate_images(context, data)
        self._process_chunks(context, chunks)

        building = context.aggregator.finalize()
        report_path = self._write_report(context)
        elapsed_ms = (time.perf_counter() - started) * 1000
        LOGGER.info(
            "Job %s finished: %s/%s chunk(s) succeeded, %s error(s), %s warning(s) in %.0f ms.",
            job_id,
            context.successful_chunks,
            context.total_chunks,
            len(context.errors),
            len(context.warnings),
            elapsed_ms,
        )
        return PipelineResult(
            success=context.successful_chunks > 0,
            building=building,
            job_id=job_id,
            total_chunks=context.total_chunks,
            total_pages=context.total_pages,
            errors=list(context.errors),
            warnings=list(context.warnings),
            processing_time_ms=elapsed_ms,
            report_path=str(report_path) if report_path else None,
        )

    def _generate_images(self, context: JobContext, data: bytes) -> ImageBatch | None:
        """Build the page image batch; a failure leaves every chunk without images."""

        try:
            batch = self._image_generator.generate(
                data,
                source_name=context.source_name,
                cache_key=context.content_hash,
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Job %s: image generation failed", context.job_id)
            context.errors.append(f"Image generation failed: {exc}")
            return None
        if batch.failed_pages:
            context.warnings.append(
                "No images for page(s) " + ", ".join(str(page) for page in batch.failed_pages),
            )
        return batch

    def _process_chunks(self, context: JobContext, chunks: list[DocumentChunk]) -> None:
        """Process chunks concurrently in batches, merging on this thread."""

        batch_size = max(1, self._config.processing.chunk_batch_size)
        for offset in range(0, len(chunks), batch_size):
            if offset:
                self._sleep(self._config.processing.chunk_batch_delay)
            batch = chunks[offset:offset + batch_size]
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                futures = {
                    executor.submit(
                        self._processor.process,
                        chunk,
                        context.image_batch,
                        context.source_name,
                    ): chunk
                    for chunk in batch
                }
                results: list[ChunkResult] = []
                for future in as_completed(futures):
                    chunk = futures[future]
                    try:
                        result = future.result()
                    except Exception as exc:  # noqa: BLE001
                        LOGGER.exception(
                            "Job %s: chunk %s crashed",
                            context.job_id,
                            chunk.chunk_index + 1,
                        )
                        result = ChunkResult(
                            success=False,
                            chunk_index=chunk.chunk_index,
                            page_range=chunk.page_range,
                            errors=[f"Chunk {chunk.chunk_index + 1} failed: {exc}"],
                        )
                    results.append(result)
            # merged in document order
            for result in sorted(results, key=lambda item: item.chunk_index):
                self._merge_result(context, result)

    def _merge_result(self, context: JobContext, result: ChunkResult) -> None:
        context.recorder.record_chunk(result)
        context.warnings.extend(result.warnings)
        if result.success and result.data is not None:
            context.aggregator.add_chunk(result.data)
            context.successful_chunks += 1
        else:
            context.errors.extend(result.errors)
            LOGGER.warning(
                "Job %s: chunk %s (pages %s) failed: %s",
                context.job_id,
                result.chunk_index + 1,
                result.page_range,
                "; ".join(result.errors),
            )

    def _write_report(self, context: JobContext) -> Path | None:
        try:
            return context.recorder.write()
        except OSError as exc:
            LOGGER.exception("Job %s: could not write analysis report", context.job_id)
            context.warnings.append(f"Analysis report not written: {exc}")
            return None


def build_pipeline(config: PipelineConfig) -> BrochurePipeline:
    """Construct a pipeline using the provided configuration."""

    store = build_image_store(config.storage)
    image_generator = ImageBatchGenerator(store, config.images)
    processor = ChunkProcessor(HttpPageAnalyzer(config.analyzer))
    return BrochurePipeline(
        config=config,
        image_generator=image_generator,
        processor=processor,
    )
