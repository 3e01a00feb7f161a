"""Attach floor-plan images to finalized units."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from .deduplication import unit_key
from .models import ImageCategory, ImageInfo, UnitRecord

LOGGER = logging.getLogger(__name__)

MATCH_SOURCE = "source"
MATCH_PAGE = "page"
MATCH_PROPORTIONAL = "proportional"


def match_floor_plans(
    units: Sequence[UnitRecord],
    images: Sequence[ImageInfo],
) -> list[UnitRecord]:
    """Give every unit a floor-plan image where one can be found.

    Units that already carry an image keep it. Otherwise an image from the
    unit's own page is used, preferring one linked to the same unit type.
    As a last resort the unit is paired with the image at the same relative
    position in the floor-plan list; that pairing is approximate and is
    labelled as such in ``floor_plan_match``.

    Args:
        units: Deduplicated units in display order.
        images: All categorized images; only floor plans are considered.

    Returns:
        list[UnitRecord]: Copies of ``units`` with image fields filled in.
    """

    floor_plans = [image for image in images if image.category is ImageCategory.FLOOR_PLAN]
    by_page: dict[int, list[ImageInfo]] = {}
    for image in floor_plans:
        by_page.setdefault(image.page_number, []).append(image)

    matched: list[UnitRecord] = []
    proportional = 0
    for index, original in enumerate(units):
        unit = original.copy()
        if unit.floor_plan_image:
            unit.floor_plan_match = unit.floor_plan_match or MATCH_SOURCE
        elif unit.page_number is not None and unit.page_number in by_page:
            chosen = _pick_for_unit(unit, by_page[unit.page_number])
            _assign(unit, chosen.image_url, MATCH_PAGE)
        elif floor_plans:
            position = math.floor((index / len(units)) * len(floor_plans))
            _assign(unit, floor_plans[position].image_url, MATCH_PROPORTIONAL)
            proportional += 1
        matched.append(unit)

    if proportional:
        LOGGER.info(
            "Matched %s unit(s) to floor plans by position only.",
            proportional,
        )
    return matched


def _pick_for_unit(unit: UnitRecord, candidates: Sequence[ImageInfo]) -> ImageInfo:
    """Prefer the candidate linked to this unit's type, else the first one."""

    key = unit.unit_key or unit_key(unit)
    for image in candidates:
        if image.linked_unit_type and unit_key(UnitRecord(type_name=image.linked_unit_type)) == key:
            return image
    return candidates[0]


def _assign(unit: UnitRecord, url: str, provenance: str) -> None:
    unit.floor_plan_image = url
    if url not in unit.floor_plan_images:
        unit.floor_plan_images.insert(0, url)
    unit.floor_plan_match = provenance
