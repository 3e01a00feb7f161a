from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image

from brochure_pipeline.models import VARIANT_NAMES
from brochure_pipeline.rendering import VARIANT_SIZES, RenderError, build_variants, render_document


def _size(payload: bytes) -> tuple[int, int]:
    with Image.open(BytesIO(payload)) as image:
        assert image.format == "JPEG"
        return image.size


def test_variants_fit_their_boxes_and_keep_aspect_ratio() -> None:
    variants = build_variants(Image.new("RGB", (3000, 2000), "white"))

    assert set(variants) == set(VARIANT_NAMES)
    assert _size(variants["original"]) == (1620, 1080)
    for name, payload in variants.items():
        width, height = _size(payload)
        box_width, box_height = VARIANT_SIZES[name]
        assert width <= box_width and height <= box_height


def test_small_images_are_never_enlarged() -> None:
    variants = build_variants(Image.new("RGBA", (100, 50)))

    assert {_size(payload) for payload in variants.values()} == {(100, 50)}


def test_render_document_writes_every_variant(tmp_path, pdf_factory) -> None:
    rendered, failed = render_document(pdf_factory(2), tmp_path, resolution=72)

    assert failed == []
    assert sorted(rendered) == [1, 2]
    for page in rendered.values():
        assert set(page.files) == set(VARIANT_NAMES)
        assert all(path.exists() and path.parent == tmp_path for path in page.files.values())
        assert page.read("thumbnail")


def test_render_document_rejects_garbage(tmp_path) -> None:
    with pytest.raises(RenderError):
        render_document(b"not a pdf", tmp_path)
