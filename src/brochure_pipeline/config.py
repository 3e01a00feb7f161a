"""Application configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path


@dataclass(slots=True)
class ChunkingConfig:
    """How a document is split into sub-documents."""

    pages_per_chunk: int = 5
    chunk_threshold: int = 10


@dataclass(slots=True)
class ImageConfig:
    """Page rasterization and upload settings."""

    render_resolution: int = 150
    upload_concurrency: int = 10
    upload_retries: int = 3
    upload_retry_delay: float = 1.5


@dataclass(slots=True)
class StorageConfig:
    """Where page images are stored."""

    backend: str = "local"
    bucket: str | None = None
    prefix: str = "pdf-cache"
    public_base_url: str | None = None
    local_dir: Path = field(default_factory=lambda: Path("page-images"))


@dataclass(slots=True)
class AnalyzerConfig:
    """Configuration required to talk to the page analyzer service."""

    url: str
    api_key: str | None = None
    timeout_seconds: float = 60.0


@dataclass(slots=True)
class ProcessingConfig:
    """Chunk-level concurrency."""

    chunk_batch_size: int = 10
    chunk_batch_delay: float = 1.0


@dataclass(slots=True)
class PipelineConfig:
    """Container for all runtime configuration."""

    analyzer: AnalyzerConfig
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    images: ImageConfig = field(default_factory=ImageConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    report_dir: Path | None = None


def load_config() -> PipelineConfig:
    """Load configuration from environment variables.

    Returns:
        PipelineConfig: Fully populated configuration object.

    Raises:
        RuntimeError: If required environment variables are not set or a
            numeric variable cannot be parsed.
    """

    analyzer = AnalyzerConfig(
        url=_require_env("PAGE_ANALYZER_URL"),
        api_key=os.getenv("PAGE_ANALYZER_API_KEY") or None,
        timeout_seconds=_float_env("PAGE_ANALYZER_TIMEOUT_SECONDS", 60.0),
    )

    backend = os.getenv("BROCHURE_STORAGE_BACKEND", "local").strip().lower()
    if backend not in {"gcs", "local"}:
        raise RuntimeError(
            f"BROCHURE_STORAGE_BACKEND must be 'gcs' or 'local', got {backend!r}.",
        )
    storage = StorageConfig(
        backend=backend,
        bucket=_require_env("BROCHURE_STORAGE_BUCKET") if backend == "gcs" else None,
        prefix=os.getenv("BROCHURE_STORAGE_PREFIX", "pdf-cache").strip("/") or "pdf-cache",
        public_base_url=os.getenv("BROCHURE_PUBLIC_BASE_URL") or None,
        local_dir=Path(
            os.getenv("BROCHURE_LOCAL_STORAGE_DIR", "page-images"),
        ).expanduser().resolve(),
    )

    report_dir_raw = os.getenv("BROCHURE_REPORT_DIR")
    report_dir = Path(report_dir_raw).expanduser().resolve() if report_dir_raw else None

    return PipelineConfig(
        analyzer=analyzer,
        chunking=ChunkingConfig(
            pages_per_chunk=_int_env("BROCHURE_PAGES_PER_CHUNK", 5),
            chunk_threshold=_int_env("BROCHURE_CHUNK_THRESHOLD", 10),
        ),
        images=ImageConfig(
            render_resolution=_int_env("BROCHURE_RENDER_RESOLUTION", 150),
            upload_concurrency=_int_env("BROCHURE_UPLOAD_CONCURRENCY", 10),
            upload_retries=_int_env("BROCHURE_UPLOAD_RETRIES", 3),
            upload_retry_delay=_float_env("BROCHURE_UPLOAD_RETRY_DELAY", 1.5),
        ),
        storage=storage,
        processing=ProcessingConfig(
            chunk_batch_size=_int_env("BROCHURE_CHUNK_BATCH_SIZE", 10),
            chunk_batch_delay=_float_env("BROCHURE_CHUNK_BATCH_DELAY", 1.0),
        ),
        report_dir=report_dir,
    )


def _require_env(var_name: str) -> str:
    """Fetch a variable from the environment or raise an error."""

    try:
        value = os.environ[var_name]
    except KeyError as exc:
        raise RuntimeError(f"Environment variable {var_name} is required.") from exc
    if not value.strip():
        raise RuntimeError(f"Environment variable {var_name} must not be empty.")
    return value


def _int_env(var_name: str, default: int) -> int:
    raw = os.getenv(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{var_name} must be an integer value.") from exc


def _float_env(var_name: str, default: float) -> float:
    raw = os.getenv(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{var_name} must be a float value.") from exc
