"""Content-addressed storage for page image variants."""

from __future__ import annotations

import logging
from pathlib import Path
import re
import shutil
from typing import Protocol

from google.cloud import storage

from .config import StorageConfig
from .models import VARIANT_NAMES, ImageVariants
from .rendering import RenderedPage

LOGGER = logging.getLogger(__name__)

DEFAULT_PREFIX = "pdf-cache"

_storage_client: storage.Client | None = None


class ImageUploadError(RuntimeError):
    """Raised when a page's variants cannot be stored."""


class ImageStore(Protocol):
    """Backend that persists the variants of one rendered page."""

    def upload_with_variants(self, rendered: RenderedPage, cache_key: str) -> ImageVariants:
        ...


def _get_storage_client() -> storage.Client:
    global _storage_client
    if _storage_client is None:
        # Relies on GOOGLE_APPLICATION_CREDENTIALS or ADC
        _storage_client = storage.Client()
    return _storage_client


def _sanitize_folder(folder: str | None) -> str:
    """Restrict prefixes to safe characters and fall back to the default."""
    if not folder:
        return DEFAULT_PREFIX
    cleaned = re.sub(r"[^a-z0-9/_-]+", "-", folder.strip().lower())
    cleaned = cleaned.strip("/-")
    return cleaned or DEFAULT_PREFIX


def object_name(prefix: str, cache_key: str, page_number: int, variant: str) -> str:
    """Build the object key ``<prefix>/<hash>/page_<n>_<variant>.jpg``."""

    return f"{_sanitize_folder(prefix)}/{cache_key}/page_{page_number}_{variant}.jpg"


class GCSImageStore:
    """Store variants in a Google Cloud Storage bucket."""

    def __init__(
        self,
        bucket_name: str,
        prefix: str = DEFAULT_PREFIX,
        public_base_url: str | None = None,
        client: storage.Client | None = None,
    ) -> None:
        self._bucket_name = bucket_name
        self._prefix = prefix
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._client = client

    def upload_with_variants(self, rendered: RenderedPage, cache_key: str) -> ImageVariants:
        """Upload every variant of ``rendered`` unless it is already cached.

        Raises:
            ImageUploadError: If any variant fails to upload.
        """

        client = self._client or _get_storage_client()
        bucket = client.bucket(self._bucket_name)
        urls: dict[str, str] = {}
        for variant in VARIANT_NAMES:
            name = object_name(self._prefix, cache_key, rendered.page_number, variant)
            blob = bucket.blob(name)
            try:
                if blob.exists():
                    LOGGER.debug("Cache hit for gs://%s/%s", self._bucket_name, name)
                else:
                    blob.upload_from_filename(
                        str(rendered.files[variant]),
                        content_type="image/jpeg",
                    )
            except Exception as exc:
                LOGGER.error("Failed to upload %s to GCS: %s", name, exc)
                raise ImageUploadError(
                    f"Upload of page {rendered.page_number} ({variant}) failed: {exc}",
                ) from exc
            urls[variant] = self._public_url(name)
        return ImageVariants.from_mapping(urls)

    def _public_url(self, name: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{name}"
        return f"https://storage.googleapis.com/{self._bucket_name}/{name}"


class LocalImageStore:
    """Store variants under a local directory, served from ``base_url``."""

    def __init__(
        self,
        root_dir: Path,
        prefix: str = DEFAULT_PREFIX,
        base_url: str | None = None,
    ) -> None:
        self._root_dir = root_dir
        self._prefix = prefix
        self._base_url = base_url.rstrip("/") if base_url else None

    def upload_with_variants(self, rendered: RenderedPage, cache_key: str) -> ImageVariants:
        """Copy every variant into the store, skipping files already present.

        Raises:
            ImageUploadError: If a variant cannot be written.
        """

        urls: dict[str, str] = {}
        for variant in VARIANT_NAMES:
            name = object_name(self._prefix, cache_key, rendered.page_number, variant)
            target = self._root_dir / name
            try:
                if not target.exists():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copyfile(rendered.files[variant], target)
            except (OSError, KeyError) as exc:
                raise ImageUploadError(
                    f"Storing page {rendered.page_number} ({variant}) failed: {exc}",
                ) from exc
            urls[variant] = f"{self._base_url}/{name}" if self._base_url else target.resolve().as_uri()
        return ImageVariants.from_mapping(urls)


def build_image_store(config: StorageConfig) -> ImageStore:
    """Create the configured storage backend."""

    if config.backend == "gcs":
        if not config.bucket:
            raise RuntimeError("A bucket name is required for the gcs storage backend.")
        return GCSImageStore(
            bucket_name=config.bucket,
            prefix=config.prefix,
            public_base_url=config.public_base_url,
        )
    return LocalImageStore(
        root_dir=config.local_dir,
        prefix=config.prefix,
        base_url=config.public_base_url,
    )
