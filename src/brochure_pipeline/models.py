"""Shared dataclasses, enums and type aliases."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
import re
from typing import Any, Iterator, Mapping

JsonDict = dict[str, Any]

VARIANT_NAMES: tuple[str, ...] = ("original", "large", "medium", "thumbnail")


class PageClassification(str, Enum):
    """Page-level category reported by the page analyzer."""

    COVER = "Cover"
    RENDERING = "Rendering"
    FLOOR_PLAN = "FloorPlan"
    PAYMENT_PLAN = "PaymentPlan"
    LOCATION_MAP = "LocationMap"
    GENERAL_TEXT = "GeneralText"
    AMENITIES = "Amenities"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> PageClassification:
        """Map a loosely formatted label ("floor plan", "FLOOR_PLAN") to a member."""

        if not value:
            return cls.UNKNOWN
        normalized = re.sub(r"[\s_\-]+", "", str(value)).lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return cls.UNKNOWN


class ImageCategory(str, Enum):
    """Category assigned to a page image."""

    FLOOR_PLAN = "floor_plan"
    UNIT_RENDERING = "unit_rendering"
    PROJECT_EXTERIOR = "project_exterior"
    PROJECT_ENVIRONMENT = "project_environment"
    FACILITY = "facility"
    LOCATION_MAP = "location_map"
    AMENITY = "amenity"
    COVER = "cover"
    OTHER = "other"


@dataclass(slots=True, frozen=True)
class PageRange:
    """Inclusive, 1-indexed range of pages."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def pages(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))

    def to_dict(self) -> JsonDict:
        return {"start": self.start, "end": self.end}

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(slots=True)
class DocumentChunk:
    """A standalone sub-document covering a contiguous page range."""

    chunk_index: int
    total_chunks: int
    byte_content: bytes
    page_range: PageRange
    source_name: str = ""

    @property
    def size_bytes(self) -> int:
        return len(self.byte_content)


@dataclass(slots=True)
class ImageVariants:
    """URLs of the four resolutions generated for one page."""

    original: str
    large: str
    medium: str
    thumbnail: str

    @classmethod
    def from_mapping(cls, urls: Mapping[str, str]) -> ImageVariants:
        """Build a variant set, refusing partial input."""

        missing = [name for name in VARIANT_NAMES if not urls.get(name)]
        if missing:
            raise ValueError(f"Variant set is missing {', '.join(missing)}.")
        return cls(**{name: urls[name] for name in VARIANT_NAMES})

    def get(self, variant: str) -> str:
        if variant not in VARIANT_NAMES:
            raise KeyError(variant)
        return getattr(self, variant)

    def to_dict(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in VARIANT_NAMES}


@dataclass(slots=True)
class ImageBatch:
    """Result of rasterizing and uploading every page of one document."""

    content_hash: str
    source_name: str
    total_pages: int
    image_urls: dict[int, ImageVariants] = field(default_factory=dict)
    attempted: int = 0
    failed_pages: list[int] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def succeeded(self) -> int:
        return len(self.image_urls)

    def variants_for(self, page_number: int) -> ImageVariants | None:
        return self.image_urls.get(page_number)

    def url_for(self, page_number: int, variant: str = "original") -> str | None:
        variants = self.image_urls.get(page_number)
        return variants.get(variant) if variants else None


def _to_number(value: Any) -> float | None:
    """Coerce analyzer output such as ``"1,250 sq.ft"`` into a float."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.search(r"-?\d+(?:\.\d+)?", str(value).replace(",", ""))
    return float(match.group(0)) if match else None


def _to_int(value: Any) -> int | None:
    number = _to_number(value)
    return int(round(number)) if number is not None else None


def _to_price(value: Any) -> float | int | None:
    number = _to_number(value)
    if number is None:
        return None
    return int(number) if number.is_integer() else number


def _to_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_str_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _compact(payload: JsonDict) -> JsonDict:
    return {key: value for key, value in payload.items() if value is not None}


# wire key -> attribute name
_UNIT_WIRE_FIELDS: dict[str, str] = {
    "category": "category",
    "typeName": "type_name",
    "name": "name",
    "bedrooms": "bedrooms",
    "bathrooms": "bathrooms",
    "area": "area",
    "areaUnit": "area_unit",
    "price": "price",
    "unitNumbers": "unit_numbers",
    "unitCount": "unit_count",
    "features": "features",
    "orientation": "orientation",
    "floorPlanImage": "floor_plan_image",
    "floorPlanImages": "floor_plan_images",
    "tower": "tower",
    "pageNumber": "page_number",
    "description": "description",
    "suiteArea": "suite_area",
    "balconyArea": "balcony_area",
    "pricePerSqft": "price_per_sqft",
    "floorPlanMatch": "floor_plan_match",
    "unitKey": "unit_key",
}


@dataclass(slots=True)
class UnitRecord:
    """One unit type as extracted from a brochure page."""

    category: str | None = None
    type_name: str | None = None
    name: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    area: float | None = None
    area_unit: str | None = None
    price: float | int | None = None
    unit_numbers: list[str] = field(default_factory=list)
    unit_count: int | None = None
    features: list[str] = field(default_factory=list)
    orientation: str | None = None
    floor_plan_image: str | None = None
    floor_plan_images: list[str] = field(default_factory=list)
    tower: str | None = None
    page_number: int | None = None
    description: str | None = None
    suite_area: float | None = None
    balcony_area: float | None = None
    price_per_sqft: float | None = None
    floor_plan_match: str | None = None
    unit_key: str | None = None
    extra: JsonDict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> UnitRecord:
        """Parse a camelCase unit payload; unknown keys land in ``extra``."""

        extra = {
            key: value
            for key, value in payload.items()
            if key not in _UNIT_WIRE_FIELDS and key != "buildingName"
        }
        floor_plan_images = _to_str_list(payload.get("floorPlanImages"))
        return cls(
            category=_to_str(payload.get("category")),
            type_name=_to_str(payload.get("typeName")),
            name=_to_str(payload.get("name")),
            bedrooms=_to_int(payload.get("bedrooms")),
            bathrooms=_to_int(payload.get("bathrooms")),
            area=_to_number(payload.get("area")),
            area_unit=_to_str(payload.get("areaUnit")),
            price=_to_price(payload.get("price")),
            unit_numbers=_to_str_list(payload.get("unitNumbers")),
            unit_count=_to_int(payload.get("unitCount")),
            features=_to_str_list(payload.get("features")),
            orientation=_to_str(payload.get("orientation")),
            floor_plan_image=_to_str(payload.get("floorPlanImage")),
            floor_plan_images=floor_plan_images,
            tower=_to_str(payload.get("tower") or payload.get("buildingName")),
            page_number=_to_int(payload.get("pageNumber")),
            description=_to_str(payload.get("description")),
            suite_area=_to_number(payload.get("suiteArea")),
            balcony_area=_to_number(payload.get("balconyArea")),
            price_per_sqft=_to_number(payload.get("pricePerSqft")),
            extra=extra,
        )

    @property
    def display_name(self) -> str:
        return self.type_name or self.name or ""

    def copy(self) -> UnitRecord:
        return replace(
            self,
            unit_numbers=list(self.unit_numbers),
            features=list(self.features),
            floor_plan_images=list(self.floor_plan_images),
            extra=dict(self.extra),
        )

    def to_dict(self) -> JsonDict:
        payload: JsonDict = dict(self.extra)
        for wire_key, attribute in _UNIT_WIRE_FIELDS.items():
            payload[wire_key] = getattr(self, attribute)
        return _compact(payload)


@dataclass(slots=True)
class Milestone:
    """Single payment milestone."""

    milestone: str
    percentage: float | None = None
    stage: str | None = None
    date: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Milestone:
        return cls(
            milestone=_to_str(payload.get("milestone") or payload.get("name")) or "",
            percentage=_to_number(payload.get("percentage")),
            stage=_to_str(payload.get("stage")),
            date=_to_str(payload.get("date")),
        )

    def to_dict(self) -> JsonDict:
        return _compact(
            {
                "milestone": self.milestone,
                "percentage": self.percentage,
                "stage": self.stage,
                "date": self.date,
            },
        )


@dataclass(slots=True)
class PaymentPlan:
    """A payment plan candidate found in one chunk."""

    name: str | None = None
    milestones: list[Milestone] = field(default_factory=list)
    total_percentage: float | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PaymentPlan:
        milestones = [
            Milestone.from_payload(item)
            for item in payload.get("milestones") or []
            if isinstance(item, Mapping)
        ]
        return cls(
            name=_to_str(payload.get("name")),
            milestones=milestones,
            total_percentage=_to_number(payload.get("totalPercentage")),
        )

    def effective_total(self) -> float | None:
        """Return the stated total, or the milestone sum when none is stated."""

        if self.total_percentage is not None:
            return self.total_percentage
        percentages = [m.percentage for m in self.milestones if m.percentage is not None]
        return sum(percentages) if percentages else None

    def to_dict(self) -> JsonDict:
        return _compact(
            {
                "name": self.name,
                "milestones": [m.to_dict() for m in self.milestones],
                "totalPercentage": self.effective_total(),
            },
        )


@dataclass(slots=True)
class ProjectInfo:
    """Project-level scalar fields; any of them may be missing on a page."""

    name: str | None = None
    developer: str | None = None
    address: str | None = None
    area: str | None = None
    launch_date: str | None = None
    completion_date: str | None = None
    handover_date: str | None = None
    construction_progress: float | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ProjectInfo:
        return cls(
            name=_to_str(payload.get("projectName") or payload.get("name")),
            developer=_to_str(payload.get("developer")),
            address=_to_str(payload.get("address")),
            area=_to_str(payload.get("area")),
            launch_date=_to_str(payload.get("launchDate")),
            completion_date=_to_str(payload.get("completionDate")),
            handover_date=_to_str(payload.get("handoverDate")),
            construction_progress=_to_number(payload.get("constructionProgress")),
        )


@dataclass(slots=True)
class PageMetadata:
    """Analysis result for one page. Never mutated once produced."""

    page_number: int
    classification: PageClassification
    confidence: float = 0.0
    raw_classification: str = ""
    units: list[UnitRecord] = field(default_factory=list)
    payment_plans: list[PaymentPlan] = field(default_factory=list)
    amenities: list[str] = field(default_factory=list)
    project_info: ProjectInfo | None = None
    description: str | None = None
    image_urls: list[str] = field(default_factory=list)
    variants: ImageVariants | None = None
    source: str = ""
    processing_time_ms: float | None = None
    content: JsonDict = field(default_factory=dict)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        page_number: int,
        source: str = "",
        variants: ImageVariants | None = None,
    ) -> PageMetadata:
        """Parse an analyzer response body."""

        raw_classification = _to_str(payload.get("classification")) or ""
        project_payload = payload.get("projectInfo")
        plans_payload = payload.get("paymentPlans") or []
        if isinstance(payload.get("paymentPlan"), Mapping):
            plans_payload = [*plans_payload, payload["paymentPlan"]]
        return cls(
            page_number=page_number,
            classification=PageClassification.parse(raw_classification),
            confidence=_to_number(payload.get("confidence")) or 0.0,
            raw_classification=raw_classification,
            units=[
                UnitRecord.from_payload(item)
                for item in payload.get("units") or []
                if isinstance(item, Mapping)
            ],
            payment_plans=[
                PaymentPlan.from_payload(item)
                for item in plans_payload
                if isinstance(item, Mapping)
            ],
            amenities=_to_str_list(payload.get("amenities")),
            project_info=(
                ProjectInfo.from_payload(project_payload)
                if isinstance(project_payload, Mapping)
                else None
            ),
            description=_to_str(payload.get("description")),
            image_urls=_to_str_list(payload.get("images")),
            variants=variants,
            source=source,
            content=dict(payload),
        )

    @property
    def page_image_url(self) -> str | None:
        return self.variants.original if self.variants else None


@dataclass(slots=True)
class ImageInfo:
    """A categorized image taken from a brochure page."""

    page_number: int
    image_url: str
    category: ImageCategory
    linked_unit_type: str | None = None
    description: str | None = None
    confidence: float | None = None
    matched_by: str | None = None

    def to_dict(self) -> JsonDict:
        return _compact(
            {
                "pageNumber": self.page_number,
                "imagePath": self.image_url,
                "category": self.category.value,
                "linkedUnitType": self.linked_unit_type,
                "description": self.description,
                "confidence": self.confidence,
                "matchedBy": self.matched_by,
            },
        )


@dataclass(slots=True)
class BuildingImages:
    """Image bag shared by chunk data and the aggregated record."""

    project_images: list[str] = field(default_factory=list)
    floor_plan_images: list[str] = field(default_factory=list)
    all_images: list[ImageInfo] = field(default_factory=list)

    def to_dict(self) -> JsonDict:
        return {
            "projectImages": list(self.project_images),
            "floorPlanImages": list(self.floor_plan_images),
            "allImages": [image.to_dict() for image in self.all_images],
        }


@dataclass(slots=True)
class ChunkData:
    """Partial building data assembled from one chunk's pages."""

    project_info: ProjectInfo = field(default_factory=ProjectInfo)
    description: str | None = None
    units: list[UnitRecord] = field(default_factory=list)
    payment_plans: list[PaymentPlan] = field(default_factory=list)
    amenities: list[str] = field(default_factory=list)
    images: BuildingImages = field(default_factory=BuildingImages)


@dataclass(slots=True)
class ChunkResult:
    """Outcome of processing one chunk."""

    success: bool
    chunk_index: int
    page_range: PageRange
    page_metadata_list: list[PageMetadata] = field(default_factory=list)
    data: ChunkData | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0
    source_name: str = ""


@dataclass(slots=True)
class AggregatedBuilding:
    """Running accumulator for one document."""

    name: str = ""
    developer: str = ""
    address: str = ""
    area: str = ""
    launch_date: str = ""
    completion_date: str = ""
    handover_date: str = ""
    construction_progress: float | None = None
    description: str = ""
    amenities: list[str] = field(default_factory=list)
    units: list[UnitRecord] = field(default_factory=list)
    payment_plans: list[PaymentPlan] = field(default_factory=list)
    images: BuildingImages = field(default_factory=BuildingImages)


@dataclass(slots=True)
class PipelineResult:
    """Final outcome of one document job."""

    success: bool
    building: JsonDict
    job_id: str
    total_chunks: int
    total_pages: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0
    report_path: str | None = None


__all__ = [
    "AggregatedBuilding",
    "BuildingImages",
    "ChunkData",
    "ChunkResult",
    "DocumentChunk",
    "ImageBatch",
    "ImageCategory",
    "ImageInfo",
    "ImageVariants",
    "JsonDict",
    "Milestone",
    "PageClassification",
    "PageMetadata",
    "PageRange",
    "PaymentPlan",
    "PipelineResult",
    "ProjectInfo",
    "UnitRecord",
    "VARIANT_NAMES",
]
