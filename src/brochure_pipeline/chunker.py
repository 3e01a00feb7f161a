"""Split a PDF into standalone sub-documents of contiguous pages."""

from __future__ import annotations

from io import BytesIO
import logging
import math

from pypdf import PdfReader, PdfWriter

from .models import DocumentChunk, PageRange

LOGGER = logging.getLogger(__name__)

DEFAULT_PAGES_PER_CHUNK = 5
DEFAULT_CHUNK_THRESHOLD = 10


class ChunkingError(RuntimeError):
    """Raised when a document cannot be parsed or split."""


def plan_page_ranges(total_pages: int, pages_per_chunk: int) -> list[PageRange]:
    """Compute the page ranges that tile ``[1, total_pages]``.

    Args:
        total_pages: Number of pages in the document.
        pages_per_chunk: Maximum pages per range.

    Returns:
        list[PageRange]: ``ceil(total_pages / pages_per_chunk)`` contiguous,
        non-overlapping ranges. Only the last one may be shorter.

    Raises:
        ValueError: If ``pages_per_chunk`` is not positive.
    """

    if pages_per_chunk <= 0:
        raise ValueError("pages_per_chunk must be a positive integer.")
    if total_pages <= 0:
        return []
    return [
        PageRange(
            start=index * pages_per_chunk + 1,
            end=min((index + 1) * pages_per_chunk, total_pages),
        )
        for index in range(math.ceil(total_pages / pages_per_chunk))
    ]


def count_pages(data: bytes) -> int:
    """Return the page count of a PDF held in memory."""

    return len(_open_reader(data).pages)


def needs_chunking(data: bytes, threshold: int = DEFAULT_CHUNK_THRESHOLD) -> bool:
    """Whether a document is long enough to be split."""

    return count_pages(data) > threshold


def split_document(
    data: bytes,
    pages_per_chunk: int = DEFAULT_PAGES_PER_CHUNK,
    threshold: int = DEFAULT_CHUNK_THRESHOLD,
    source_name: str = "",
) -> list[DocumentChunk]:
    """Split a PDF into chunks of at most ``pages_per_chunk`` pages.

    Documents with ``threshold`` pages or fewer are returned as a single
    chunk carrying the original bytes. Longer documents are copied page by
    page into fresh writers so every chunk is a self-contained PDF.

    Args:
        data: Raw PDF bytes.
        pages_per_chunk: Maximum pages per chunk.
        threshold: Largest page count that is processed unsplit.
        source_name: Display name used in logs and on the chunks.

    Returns:
        list[DocumentChunk]: Chunks ordered by page range.

    Raises:
        ValueError: If ``pages_per_chunk`` is not positive.
        ChunkingError: If the PDF cannot be read or has no pages.
    """

    if pages_per_chunk <= 0:
        raise ValueError("pages_per_chunk must be a positive integer.")

    reader = _open_reader(data)
    total_pages = len(reader.pages)
    if total_pages == 0:
        raise ChunkingError(f"Document {source_name or '<bytes>'} has no pages.")

    if total_pages <= threshold:
        LOGGER.info(
            "%s has %s page(s); processing as a single chunk.",
            source_name or "Document",
            total_pages,
        )
        return [
            DocumentChunk(
                chunk_index=0,
                total_chunks=1,
                byte_content=data,
                page_range=PageRange(start=1, end=total_pages),
                source_name=source_name,
            ),
        ]

    ranges = plan_page_ranges(total_pages, pages_per_chunk)
    chunks: list[DocumentChunk] = []
    for index, page_range in enumerate(ranges):
        writer = PdfWriter()
        for page_number in page_range.pages():
            writer.add_page(reader.pages[page_number - 1])
        buffer = BytesIO()
        try:
            writer.write(buffer)
        except Exception as exc:
            raise ChunkingError(
                f"Failed to write pages {page_range} of {source_name or '<bytes>'}: {exc}",
            ) from exc
        chunks.append(
            DocumentChunk(
                chunk_index=index,
                total_chunks=len(ranges),
                byte_content=buffer.getvalue(),
                page_range=page_range,
                source_name=source_name,
            ),
        )

    LOGGER.info(
        "Split %s (%s pages) into %s chunk(s) of up to %s page(s).",
        source_name or "document",
        total_pages,
        len(chunks),
        pages_per_chunk,
    )
    return chunks


def _open_reader(data: bytes) -> PdfReader:
    """Parse PDF bytes, mapping parser failures to ``ChunkingError``."""

    if not data:
        raise ChunkingError("Document is empty.")
    try:
        reader = PdfReader(BytesIO(data))
        # Page tree errors surface lazily; force them here.
        len(reader.pages)
    except Exception as exc:
        raise ChunkingError(f"Unable to parse PDF: {exc}") from exc
    return reader
