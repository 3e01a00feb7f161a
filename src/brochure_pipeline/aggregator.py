"""Accumulate chunk data into one building record and finalize it."""

from __future__ import annotations

import logging

from .deduplication import dedupe_amenities, deduplicate_units, select_payment_plan
from .matching import match_floor_plans
from .models import AggregatedBuilding, ChunkData, JsonDict, UnitRecord

LOGGER = logging.getLogger(__name__)

# First non-empty value wins for these fields.
_FIRST_WINS = (
    "name",
    "developer",
    "address",
    "area",
    "launch_date",
    "completion_date",
    "handover_date",
    "construction_progress",
)


class DataAggregator:
    """Running accumulator for one document; not shared between jobs."""

    def __init__(self) -> None:
        self.building = AggregatedBuilding()
        self.chunks_merged = 0

    def add_chunk(self, data: ChunkData) -> None:
        """Merge one chunk's partial data into the running record."""

        building = self.building
        for name in _FIRST_WINS:
            incoming = getattr(data.project_info, name)
            if getattr(building, name) in (None, "") and incoming not in (None, ""):
                setattr(building, name, incoming)

        if data.description and len(data.description) > len(building.description):
            building.description = data.description

        building.units.extend(unit.copy() for unit in data.units)
        building.payment_plans.extend(data.payment_plans)
        building.amenities = dedupe_amenities(data.amenities, seed=building.amenities)

        building.images.project_images.extend(data.images.project_images)
        building.images.floor_plan_images.extend(data.images.floor_plan_images)
        building.images.all_images.extend(data.images.all_images)
        self.chunks_merged += 1

    def snapshot_units(self) -> list[UnitRecord]:
        """Deduplicated, sorted and matched units without finalizing."""

        units = deduplicate_units(self.building.units)
        return match_floor_plans(units, self.building.images.all_images)

    def finalize(self) -> JsonDict:
        """Build the canonical building record.

        Units are deduplicated and sorted, the best payment plan is kept,
        floor plans are matched to units, and price and area ranges are
        derived. A range key is omitted when no unit carries the value.

        Returns:
            JsonDict: The finalized record with camelCase keys.
        """

        building = self.building
        units = self.snapshot_units()
        best_plan = select_payment_plan(building.payment_plans)

        record: JsonDict = {
            "name": building.name,
            "developer": building.developer,
            "address": building.address,
            "area": building.area,
            "launchDate": building.launch_date,
            "completionDate": building.completion_date,
            "handoverDate": building.handover_date,
            "description": building.description,
            "amenities": list(building.amenities),
            "units": [unit.to_dict() for unit in units],
            "paymentPlans": [best_plan.to_dict()] if best_plan else [],
            "images": building.images.to_dict(),
        }
        if building.construction_progress is not None:
            record["constructionProgress"] = building.construction_progress

        prices = [unit.price for unit in units if unit.price is not None]
        if prices:
            record["minPrice"] = min(prices)
            record["maxPrice"] = max(prices)
        areas = [unit.area for unit in units if unit.area is not None]
        if areas:
            record["minArea"] = min(areas)
            record["maxArea"] = max(areas)

        LOGGER.info(
            "Finalized %s: %s unit(s) from %s raw record(s), %s payment plan candidate(s).",
            building.name or "building",
            len(units),
            len(building.units),
            len(building.payment_plans),
        )
        return record
