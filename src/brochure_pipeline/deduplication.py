"""Canonicalize, merge and order unit and payment-plan records."""

from __future__ import annotations

import logging
import math
import re
from typing import Iterable, Sequence

from .models import PaymentPlan, UnitRecord

LOGGER = logging.getLogger(__name__)

CATEGORY_ORDER: tuple[str, ...] = (
    "Studio",
    "1BR",
    "2BR",
    "3BR",
    "4BR",
    "5BR",
    "Penthouse",
    "Duplex",
    "Townhouse",
)
_UNKNOWN_CATEGORY_RANK = 999
_CATEGORY_RANK = {name.upper(): index for index, name in enumerate(CATEGORY_ORDER)}

_SUMMARY_WORDS = ("overall", "summary", "total")

_PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)\s*$")
_TYPE_PREFIX_RE = re.compile(r"^type\s+", re.IGNORECASE)
_DASH_SPACING_RE = re.compile(r"\s*-\s*")
_WHITESPACE_RE = re.compile(r"\s+")
_BEDROOM_CATEGORY_RE = re.compile(r"^(\d+)\s*(?:BR|BED|BEDS|BEDROOM|BEDROOMS)$", re.IGNORECASE)

_TOWER_RE = re.compile(r"^([A-Z])-\d")
_NO_TOWER_RE = re.compile(r"villa|-v\d|townhouse|th-\d", re.IGNORECASE)

# Fields with a dedicated merge rule; everything else is fill-if-empty.
_SPECIAL_FIELDS = frozenset(
    {
        "type_name",
        "unit_numbers",
        "unit_count",
        "features",
        "orientation",
        "floor_plan_image",
        "floor_plan_images",
        "price",
        "extra",
        "unit_key",
        "page_number",
    },
)
_FILL_FIELDS = tuple(
    name for name in UnitRecord.__dataclass_fields__ if name not in _SPECIAL_FIELDS
)


def unit_key(unit: UnitRecord) -> str:
    """Derive the identity key of a unit from its type name, name or size.

    >>> unit_key(UnitRecord(type_name="DSTH-M1 (4 BR - MID UNIT)"))
    'DSTH-M1'
    """

    base = unit.type_name or unit.name
    if not base:
        area = round(unit.area) if unit.area is not None else 0
        base = f"{unit.category or 'unit'}_{area}sqft"
    text = _PARENTHETICAL_RE.sub("", base).strip()
    text = _TYPE_PREFIX_RE.sub("", text)
    text = _DASH_SPACING_RE.sub("-", text)
    text = _WHITESPACE_RE.sub("-", text.strip())
    return text.upper()


def is_valid_unit(unit: UnitRecord) -> bool:
    """Reject summary rows and entries without a usable size or bedroom count."""

    label = f"{unit.type_name or ''} {unit.name or ''}".lower()
    if any(word in label for word in _SUMMARY_WORDS):
        return False
    if unit.area is not None and unit.area <= 0:
        return False
    return unit.bedrooms is not None


def extract_tower(type_name: str | None) -> str | None:
    """Infer a tower label such as ``"Tower A"`` from a type name.

    Villa and townhouse naming schemes never yield a tower.
    """

    if not type_name:
        return None
    name = type_name.strip()
    if _NO_TOWER_RE.search(name):
        return None
    match = _TOWER_RE.match(name)
    return f"Tower {match.group(1)}" if match else None


def normalize_category(category: str | None, bedrooms: int | None) -> str | None:
    """Normalize bedroom-style categories to ``"<n>BR"``; derive one if missing."""

    if category:
        compact = category.strip()
        match = _BEDROOM_CATEGORY_RE.match(compact.replace(" ", ""))
        if match:
            return f"{int(match.group(1))}BR"
        for known in CATEGORY_ORDER:
            if compact.lower() == known.lower():
                return known
        return compact
    if bedrooms is None:
        return None
    return "Studio" if bedrooms == 0 else f"{bedrooms}BR"


def category_rank(category: str | None) -> int:
    if not category:
        return _UNKNOWN_CATEGORY_RANK
    return _CATEGORY_RANK.get(category.strip().upper(), _UNKNOWN_CATEGORY_RANK)


def merge_units(current: UnitRecord, incoming: UnitRecord) -> UnitRecord:
    """Merge two records that share a unit key into a new record."""

    merged = current.copy()
    merged.type_name = _preferred_type_name(current.type_name, incoming.type_name)
    merged.unit_numbers = sorted(set(current.unit_numbers) | set(incoming.unit_numbers))
    if current.unit_count is None and incoming.unit_count is None:
        merged.unit_count = None
    else:
        merged.unit_count = (current.unit_count or 0) + (incoming.unit_count or 0)
    merged.features = sorted(_union(current.features, incoming.features))
    merged.orientation = _longer(current.orientation, incoming.orientation)

    images = sorted(_union(_floor_plans_of(current), _floor_plans_of(incoming)))
    merged.floor_plan_images = images
    merged.floor_plan_image = images[0] if images else None
    pages = [page for page in (current.page_number, incoming.page_number) if page is not None]
    merged.page_number = min(pages) if pages else None

    if current.price is None:
        merged.price = incoming.price
    elif incoming.price is not None and incoming.price != current.price:
        merged.price = _mean_price(current.price, incoming.price)

    for name in _FILL_FIELDS:
        if _is_empty(getattr(merged, name)):
            setattr(merged, name, getattr(incoming, name))
    for key, value in incoming.extra.items():
        merged.extra.setdefault(key, value)
    return merged


def deduplicate_units(units: Iterable[UnitRecord]) -> list[UnitRecord]:
    """Filter, merge and sort units.

    Invalid entries are dropped first. The survivors are grouped by
    :func:`unit_key` and each group is folded with :func:`merge_units`.
    Missing categories and towers are filled in, and the result is sorted
    with :func:`sort_units`. Running the function on its own output returns
    an equal list.

    Args:
        units: Units collected from any number of chunks.

    Returns:
        list[UnitRecord]: One record per unit key, in display order.
    """

    groups: dict[str, UnitRecord] = {}
    dropped = 0
    for unit in units:
        if not is_valid_unit(unit):
            dropped += 1
            continue
        key = unit_key(unit)
        held = groups.get(key)
        groups[key] = merge_units(held, unit) if held is not None else unit.copy()

    result: list[UnitRecord] = []
    for key, unit in groups.items():
        unit.unit_key = key
        unit.category = normalize_category(unit.category, unit.bedrooms)
        if unit.floor_plan_image and unit.floor_plan_image not in unit.floor_plan_images:
            unit.floor_plan_images.insert(0, unit.floor_plan_image)
        elif unit.floor_plan_images and not unit.floor_plan_image:
            unit.floor_plan_image = unit.floor_plan_images[0]
        if not unit.tower:
            unit.tower = extract_tower(unit.type_name)
        result.append(unit)

    if dropped:
        LOGGER.debug("Dropped %s invalid unit record(s).", dropped)
    return sort_units(result)


def sort_units(units: Sequence[UnitRecord]) -> list[UnitRecord]:
    """Order by tower (towered units first), category rank, then type name."""

    return sorted(
        units,
        key=lambda unit: (
            0 if unit.tower else 1,
            unit.tower or "",
            category_rank(unit.category),
            unit.display_name.lower(),
        ),
    )


def score_payment_plan(plan: PaymentPlan) -> int:
    score = 10 * len(plan.milestones)
    total = plan.effective_total()
    if total is not None and abs(total - 100) < 5:
        score += 50
    score += 5 * sum(1 for milestone in plan.milestones if milestone.date)
    return score


def select_payment_plan(plans: Sequence[PaymentPlan]) -> PaymentPlan | None:
    """Return the highest-scoring plan; the earliest wins ties."""

    best: PaymentPlan | None = None
    best_score = -1
    for plan in plans:
        score = score_payment_plan(plan)
        if score > best_score:
            best, best_score = plan, score
    return best


def dedupe_amenities(amenities: Iterable[str], seed: Iterable[str] = ()) -> list[str]:
    """Append amenities to ``seed`` unless already present ignoring case and padding."""

    result = [item for item in seed]
    seen = {item.strip().lower() for item in result}
    for amenity in amenities:
        key = (amenity or "").strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(amenity)
    return result


def _preferred_type_name(current: str | None, incoming: str | None) -> str | None:
    if not current or not incoming:
        return current or incoming
    return min(current, incoming, key=lambda name: (name.count(" "), len(name), name))


def _longer(current: str | None, incoming: str | None) -> str | None:
    if not current or not incoming:
        return current or incoming
    return max(current, incoming, key=lambda value: (len(value), value))


def _union(first: Sequence[str], second: Sequence[str]) -> list[str]:
    result: list[str] = []
    for value in (*first, *second):
        if value and value not in result:
            result.append(value)
    return result


def _floor_plans_of(unit: UnitRecord) -> list[str]:
    images = [unit.floor_plan_image] if unit.floor_plan_image else []
    return _union(images, unit.floor_plan_images)


def _mean_price(first: float, second: float) -> int:
    return math.floor((first + second) / 2 + 0.5)


def _is_empty(value: object) -> bool:
    return value is None or value == "" or value == [] or value == {}
