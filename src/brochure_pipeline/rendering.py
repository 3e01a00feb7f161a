"""Rasterize PDF pages and build the fixed set of image variants."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
import logging
from pathlib import Path

import pdfplumber
from pdfplumber.page import Page
from PIL import Image

from .models import VARIANT_NAMES

LOGGER = logging.getLogger(__name__)

DEFAULT_RESOLUTION = 150
JPEG_QUALITY = 85

# Bounding boxes; images are fitted inside and never enlarged.
VARIANT_SIZES: dict[str, tuple[int, int]] = {
    "original": (1920, 1080),
    "large": (1280, 720),
    "medium": (800, 450),
    "thumbnail": (400, 225),
}


class RenderError(RuntimeError):
    """Raised when a page cannot be rasterized."""


@dataclass(slots=True)
class RenderedPage:
    """Variant files for one page, written to a staging directory."""

    page_number: int
    files: dict[str, Path] = field(default_factory=dict)

    def read(self, variant: str) -> bytes:
        return self.files[variant].read_bytes()


def build_variants(image: Image.Image) -> dict[str, bytes]:
    """Encode ``image`` as JPEG at every variant size.

    Args:
        image: Rendered page.

    Returns:
        dict[str, bytes]: JPEG bytes keyed by variant name.
    """

    base = image.convert("RGB") if image.mode != "RGB" else image
    variants: dict[str, bytes] = {}
    for name in VARIANT_NAMES:
        resized = base.copy()
        resized.thumbnail(VARIANT_SIZES[name], Image.Resampling.LANCZOS)
        buffer = BytesIO()
        resized.save(buffer, format="JPEG", quality=JPEG_QUALITY, optimize=True)
        variants[name] = buffer.getvalue()
    return variants


def render_page(page: Page, resolution: int = DEFAULT_RESOLUTION) -> Image.Image:
    """Render a full PDF page to a Pillow image."""

    snapshot = page.to_image(resolution=resolution)
    return snapshot.original


def render_document(
    data: bytes,
    staging_dir: Path,
    resolution: int = DEFAULT_RESOLUTION,
) -> tuple[dict[int, RenderedPage], list[int]]:
    """Rasterize every page of a PDF into ``staging_dir``.

    A page that fails to render is logged and reported in the failure list;
    the remaining pages are still rendered.

    Args:
        data: Raw PDF bytes.
        staging_dir: Existing directory that receives the variant files.
        resolution: Rasterization DPI.

    Returns:
        tuple: Rendered pages keyed by 1-indexed page number, and the page
        numbers that failed.

    Raises:
        RenderError: If the document itself cannot be opened.
    """

    rendered: dict[int, RenderedPage] = {}
    failed: list[int] = []
    try:
        pdf = pdfplumber.open(BytesIO(data))
    except Exception as exc:
        raise RenderError(f"Unable to open PDF for rendering: {exc}") from exc

    with pdf:
        for page_number, page in enumerate(pdf.pages, start=1):
            try:
                rendered[page_number] = _render_to_files(page, page_number, staging_dir, resolution)
            except RenderError as exc:
                LOGGER.warning("%s", exc)
                failed.append(page_number)
    return rendered, failed


def _render_to_files(
    page: Page,
    page_number: int,
    staging_dir: Path,
    resolution: int,
) -> RenderedPage:
    """Render one page and write its variants to disk."""

    try:
        variants = build_variants(render_page(page, resolution=resolution))
    except Exception as exc:
        raise RenderError(f"Failed to render page {page_number}: {exc}") from exc

    result = RenderedPage(page_number=page_number)
    for name, payload in variants.items():
        path = staging_dir / f"page_{page_number}_{name}.jpg"
        path.write_bytes(payload)
        result.files[name] = path
    return result
