"""Per-job analysis report written alongside the pipeline output."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Any

from .image_analysis import analyze_page_images
from .models import ChunkResult, JsonDict, PageClassification, PageMetadata

LOGGER = logging.getLogger(__name__)

_BUILDING_CLASSES = frozenset({PageClassification.RENDERING, PageClassification.COVER})


class ResultRecorder:
    """Collect what every chunk produced and write it out as a report."""

    def __init__(self, job_id: str, source_name: str, report_dir: Path | None = None) -> None:
        self.job_id = job_id
        self.source_name = source_name
        self.report_dir = report_dir
        self.started_at = datetime.now(timezone.utc)
        self.chunks: list[JsonDict] = []

    def record_chunk(self, result: ChunkResult) -> None:
        data = result.data
        self.chunks.append(
            {
                "chunkIndex": result.chunk_index,
                "pageRange": result.page_range.to_dict(),
                "success": result.success,
                "processingTimeMs": round(result.processing_time_ms, 1),
                "totalUnits": len(data.units) if data else 0,
                "totalPaymentPlans": len(data.payment_plans) if data else 0,
                "totalAmenities": len(data.amenities) if data else 0,
                "totalProjectImages": len(data.images.project_images) if data else 0,
                "totalFloorPlanImages": len(data.images.floor_plan_images) if data else 0,
                "pages": [_page_summary(page) for page in result.page_metadata_list],
                "errors": list(result.errors),
                "warnings": list(result.warnings),
            },
        )

    def summary(self) -> JsonDict:
        """Totals across all recorded chunks."""

        pages = [page for chunk in self.chunks for page in chunk["pages"]]
        return {
            "totalChunks": len(self.chunks),
            "successfulChunks": sum(1 for chunk in self.chunks if chunk["success"]),
            "totalUnits": _total(self.chunks, "totalUnits"),
            "totalPaymentPlans": _total(self.chunks, "totalPaymentPlans"),
            "totalAmenities": _total(self.chunks, "totalAmenities"),
            "totalProjectImages": _total(self.chunks, "totalProjectImages"),
            "totalFloorPlanImages": _total(self.chunks, "totalFloorPlanImages"),
            "pagesAnalyzed": len(pages),
            "pagesWithFloorPlans": sum(1 for page in pages if page["hasFloorPlan"]),
            "pagesWithBuildingImages": sum(1 for page in pages if page["hasBuildingImage"]),
        }

    def to_dict(self) -> JsonDict:
        return {
            "jobId": self.job_id,
            "source": self.source_name,
            "startedAt": self.started_at.isoformat(),
            "summary": self.summary(),
            "chunks": sorted(self.chunks, key=lambda chunk: chunk["chunkIndex"]),
        }

    def write(self) -> Path | None:
        """Write the JSON report and text summary; returns the JSON path.

        Nothing is written when no report directory is configured.
        """

        if self.report_dir is None:
            return None
        self.report_dir.mkdir(parents=True, exist_ok=True)
        report_path = self.report_dir / f"analysis-report-{self.job_id}.json"
        summary_path = self.report_dir / f"analysis-summary-{self.job_id}.txt"
        report_path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        summary_path.write_text(self.render_text(), encoding="utf-8")
        LOGGER.info("Wrote analysis report to %s", report_path)
        return report_path

    def render_text(self) -> str:
        summary = self.summary()
        lines = [
            f"Analysis summary for {self.source_name} (job {self.job_id})",
            f"Started: {self.started_at.isoformat()}",
            "",
        ]
        lines.extend(f"{key}: {value}" for key, value in summary.items())
        for chunk in sorted(self.chunks, key=lambda item: item["chunkIndex"]):
            page_range = chunk["pageRange"]
            status = "ok" if chunk["success"] else "FAILED"
            lines.append("")
            lines.append(
                f"Chunk {chunk['chunkIndex'] + 1} pages {page_range['start']}-{page_range['end']}: "
                f"{status}, {chunk['totalUnits']} unit(s), {chunk['processingTimeMs']} ms",
            )
            for page in chunk["pages"]:
                lines.append(
                    f"  page {page['pageNumber']}: {page['classification']} "
                    f"units={page['unitsExtracted']} floorPlan={page['hasFloorPlan']} "
                    f"building={page['hasBuildingImage']}",
                )
            lines.extend(f"  error: {message}" for message in chunk["errors"])
            lines.extend(f"  warning: {message}" for message in chunk["warnings"])
        return "\n".join(lines) + "\n"


def _page_summary(page: PageMetadata) -> JsonDict:
    return {
        "pageNumber": page.page_number,
        "classification": page.classification.value,
        "confidence": page.confidence,
        "hasFloorPlan": page.classification is PageClassification.FLOOR_PLAN or bool(page.units),
        "hasBuildingImage": page.classification in _BUILDING_CLASSES,
        "unitsExtracted": len(page.units),
        "images": [
            {
                "category": image.category.value,
                "linkedUnitType": image.linked_unit_type,
                "imagePath": image.image_url,
            }
            for image in analyze_page_images(page)
        ],
    }


def _total(chunks: list[JsonDict], key: str) -> Any:
    return sum(chunk[key] for chunk in chunks)
