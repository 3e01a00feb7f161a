"""Command line entrypoint for the brochure pipeline."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from dotenv import load_dotenv

from .chunker import ChunkingError
from .config import load_config
from .logger import setup_logger
from .pipeline import build_pipeline

LOGGER = logging.getLogger(__name__)

load_dotenv()


def main(argv: list[str] | None = None) -> int:
    """Entrypoint used by the CLI script."""

    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    if args.log_file:
        setup_logger("brochure_pipeline", level=args.log_level, tofile=True, filename=str(args.log_file))
    config = load_config()
    if args.pages_per_chunk is not None:
        config.chunking.pages_per_chunk = args.pages_per_chunk
    pipeline = build_pipeline(config)

    try:
        result = pipeline.process_file(args.pdf)
    except (ChunkingError, FileNotFoundError, ValueError) as exc:
        LOGGER.error("Cannot process %s: %s", args.pdf, exc)
        return 2

    payload = {
        "success": result.success,
        "jobId": result.job_id,
        "totalChunks": result.total_chunks,
        "totalPages": result.total_pages,
        "building": result.building,
        "errors": result.errors,
        "warnings": result.warnings,
        "processingTimeMs": round(result.processing_time_ms, 1),
        "reportPath": result.report_path,
    }
    text = json.dumps(payload, indent=2)
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        LOGGER.info("Wrote building record to %s", args.output)
    else:
        sys.stdout.write(text + "\n")
    return 0 if result.success else 1


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Extract a building record from a property brochure PDF.",
    )
    parser.add_argument("pdf", type=Path, help="Path to the brochure PDF.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the result JSON here instead of stdout.",
    )
    parser.add_argument(
        "--pages-per-chunk",
        type=int,
        default=None,
        help="Override BROCHURE_PAGES_PER_CHUNK.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write package logs to this file.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO).",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    sys.exit(main())
