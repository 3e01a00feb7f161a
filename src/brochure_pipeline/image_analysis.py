"""Categorize page images and link floor plans to the units on their page."""

from __future__ import annotations

from dataclasses import replace
import json
from typing import Any, Iterable, Sequence

from .models import (
    BuildingImages,
    ImageCategory,
    ImageInfo,
    PageClassification,
    PageMetadata,
    UnitRecord,
)

MULTI_UNIT_DESCRIPTION = "Floor plan (multiple units on this page)"

_FACILITY_WORDS = ("lobby", "gym", "pool", "fitness")
_ENVIRONMENT_WORDS = ("garden", "park", "landscape")

_PROJECT_CATEGORIES = frozenset(
    {
        ImageCategory.COVER,
        ImageCategory.PROJECT_EXTERIOR,
        ImageCategory.PROJECT_ENVIRONMENT,
        ImageCategory.FACILITY,
        ImageCategory.AMENITY,
        ImageCategory.LOCATION_MAP,
        ImageCategory.UNIT_RENDERING,
    },
)


def classify_image_category(classification: str | None, content: Any = None) -> ImageCategory:
    """Map a page classification (plus optional page content) to an image category.

    The checks run in a fixed order and the first match wins, so the result
    is deterministic for any input.

    Args:
        classification: Page classification label, e.g. ``"FloorPlan"``.
        content: Any JSON-serializable page payload searched for keywords.

    Returns:
        ImageCategory: The category; ``OTHER`` when nothing matches.
    """

    label = (classification or "").lower()
    if "floorplan" in label or "floor plan" in label:
        return ImageCategory.FLOOR_PLAN
    if "rendering" in label:
        return ImageCategory.PROJECT_EXTERIOR
    if "cover" in label:
        return ImageCategory.COVER
    if "amenities" in label or "amenity" in label:
        return ImageCategory.AMENITY
    if "map" in label or "location" in label:
        return ImageCategory.LOCATION_MAP

    if content is not None:
        text = json.dumps(content, default=str).lower()
        if any(word in text for word in _FACILITY_WORDS):
            return ImageCategory.FACILITY
        if any(word in text for word in _ENVIRONMENT_WORDS):
            return ImageCategory.PROJECT_ENVIRONMENT
    return ImageCategory.OTHER


def link_images_to_units(
    images: Sequence[ImageInfo],
    units: Sequence[UnitRecord],
) -> list[ImageInfo]:
    """Attach floor-plan images on one page to the units found on that page.

    With a single unit every floor plan belongs to it. With as many floor
    plans as units they are paired in order. Any other combination is left
    unlinked. Non floor-plan images pass through unchanged.
    """

    floor_plans = [image for image in images if image.category is ImageCategory.FLOOR_PLAN]
    if not floor_plans or not units:
        return list(images)

    linked: dict[int, ImageInfo] = {}
    if len(units) == 1:
        unit_type = units[0].display_name or None
        for image in floor_plans:
            linked[id(image)] = replace(
                image,
                linked_unit_type=unit_type,
                description=f"Floor plan for {unit_type}" if unit_type else image.description,
                matched_by="single_unit",
            )
    elif len(units) == len(floor_plans):
        for image, unit in zip(floor_plans, units):
            unit_type = unit.display_name or None
            linked[id(image)] = replace(
                image,
                linked_unit_type=unit_type,
                description=f"Floor plan for {unit_type}" if unit_type else image.description,
                matched_by="positional",
            )
    else:
        for image in floor_plans:
            linked[id(image)] = replace(image, description=MULTI_UNIT_DESCRIPTION)

    return [linked.get(id(image), image) for image in images]


def analyze_page_images(metadata: PageMetadata) -> list[ImageInfo]:
    """Build categorized, unit-linked image records for one analyzed page.

    Images reported by the analyzer are used when present; otherwise the
    rendered page itself stands in as the page's image.
    """

    urls = list(metadata.image_urls)
    if not urls and metadata.page_image_url:
        urls = [metadata.page_image_url]
    if not urls:
        return []

    label = metadata.classification.value
    if metadata.classification is PageClassification.UNKNOWN and metadata.raw_classification:
        label = metadata.raw_classification
    category = classify_image_category(label, metadata.content or None)
    images = [
        ImageInfo(
            page_number=metadata.page_number,
            image_url=url,
            category=category,
            confidence=metadata.confidence,
        )
        for url in urls
    ]
    return link_images_to_units(images, metadata.units)


def route_images(images: Iterable[ImageInfo], bag: BuildingImages) -> None:
    """Append images to ``bag`` according to their category."""

    for image in images:
        if image.category is ImageCategory.FLOOR_PLAN:
            bag.floor_plan_images.append(image.image_url)
        elif image.category in _PROJECT_CATEGORIES:
            bag.project_images.append(image.image_url)
        bag.all_images.append(image)
