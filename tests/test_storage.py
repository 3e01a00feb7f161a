from __future__ import annotations

from pathlib import Path

import pytest

from brochure_pipeline.config import StorageConfig
from brochure_pipeline.models import VARIANT_NAMES
from brochure_pipeline.rendering import RenderedPage
from brochure_pipeline.storage import (
    GCSImageStore,
    ImageUploadError,
    LocalImageStore,
    build_image_store,
    object_name,
)


def _rendered(tmp_path: Path, page: int = 3, payload: bytes = b"jpeg") -> RenderedPage:
    staging = tmp_path / "staging"
    staging.mkdir(exist_ok=True)
    files = {}
    for name in VARIANT_NAMES:
        path = staging / f"page_{page}_{name}.jpg"
        path.write_bytes(payload)
        files[name] = path
    return RenderedPage(page_number=page, files=files)


class _FakeBlob:
    def __init__(self, bucket: "_FakeBucket", name: str) -> None:
        self._bucket = bucket
        self.name = name

    def exists(self) -> bool:
        return self.name in self._bucket.objects

    def upload_from_filename(self, filename: str, content_type: str | None = None) -> None:
        if self._bucket.fail:
            raise ConnectionError("network down")
        self._bucket.objects[self.name] = (Path(filename).read_bytes(), content_type)
        self._bucket.uploads += 1


class _FakeBucket:
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str | None]] = {}
        self.uploads = 0
        self.fail = False

    def blob(self, name: str) -> _FakeBlob:
        return _FakeBlob(self, name)


class _FakeClient:
    def __init__(self) -> None:
        self.buckets: dict[str, _FakeBucket] = {}

    def bucket(self, name: str) -> _FakeBucket:
        return self.buckets.setdefault(name, _FakeBucket())


def test_object_name_layout() -> None:
    assert object_name("pdf-cache", "abc", 4, "medium") == "pdf-cache/abc/page_4_medium.jpg"
    assert object_name("", "abc", 1, "original") == "pdf-cache/abc/page_1_original.jpg"


def test_local_store_is_idempotent(tmp_path: Path) -> None:
    store = LocalImageStore(tmp_path / "store", base_url="https://cdn.test/")

    first = store.upload_with_variants(_rendered(tmp_path, payload=b"v1"), "abc")
    second = store.upload_with_variants(_rendered(tmp_path, payload=b"v2"), "abc")

    assert first == second
    assert first.medium == "https://cdn.test/pdf-cache/abc/page_3_medium.jpg"
    assert (tmp_path / "store/pdf-cache/abc/page_3_medium.jpg").read_bytes() == b"v1"


def test_local_store_without_base_url_returns_file_uris(tmp_path: Path) -> None:
    variants = LocalImageStore(tmp_path / "store").upload_with_variants(_rendered(tmp_path), "abc")

    assert variants.original.startswith("file://")


def test_local_store_missing_variant_raises(tmp_path: Path) -> None:
    rendered = _rendered(tmp_path)
    del rendered.files["thumbnail"]

    with pytest.raises(ImageUploadError):
        LocalImageStore(tmp_path / "store").upload_with_variants(rendered, "abc")


def test_gcs_store_uploads_once_per_object(tmp_path: Path) -> None:
    client = _FakeClient()
    store = GCSImageStore("brochures", client=client)

    first = store.upload_with_variants(_rendered(tmp_path), "abc")
    second = store.upload_with_variants(_rendered(tmp_path), "abc")

    bucket = client.buckets["brochures"]
    assert first == second
    assert bucket.uploads == 4
    assert first.large == "https://storage.googleapis.com/brochures/pdf-cache/abc/page_3_large.jpg"
    assert {content_type for _, content_type in bucket.objects.values()} == {"image/jpeg"}


def test_gcs_store_uses_public_base_url(tmp_path: Path) -> None:
    store = GCSImageStore("brochures", public_base_url="https://cdn.test", client=_FakeClient())

    variants = store.upload_with_variants(_rendered(tmp_path), "abc")

    assert variants.thumbnail == "https://cdn.test/pdf-cache/abc/page_3_thumbnail.jpg"


def test_gcs_store_wraps_upload_errors(tmp_path: Path) -> None:
    client = _FakeClient()
    client.bucket("brochures").fail = True

    with pytest.raises(ImageUploadError):
        GCSImageStore("brochures", client=client).upload_with_variants(_rendered(tmp_path), "abc")


def test_build_image_store_selects_backend(tmp_path: Path) -> None:
    assert isinstance(build_image_store(StorageConfig(backend="local", local_dir=tmp_path)), LocalImageStore)
    assert isinstance(build_image_store(StorageConfig(backend="gcs", bucket="b")), GCSImageStore)
    with pytest.raises(RuntimeError):
        build_image_store(StorageConfig(backend="gcs"))
