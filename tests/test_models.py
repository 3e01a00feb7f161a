from __future__ import annotations

import pytest

from brochure_pipeline.models import (
    ImageVariants,
    PageClassification,
    PaymentPlan,
    UnitRecord,
)


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("FloorPlan", PageClassification.FLOOR_PLAN),
        ("FLOOR_PLAN", PageClassification.FLOOR_PLAN),
        ("payment plan", PageClassification.PAYMENT_PLAN),
        ("Location-Map", PageClassification.LOCATION_MAP),
        ("something else", PageClassification.UNKNOWN),
        (None, PageClassification.UNKNOWN),
    ],
)
def test_page_classification_parse(label, expected) -> None:
    assert PageClassification.parse(label) is expected


def test_unit_payload_coercion_and_unknown_keys() -> None:
    unit = UnitRecord.from_payload(
        {
            "typeName": " A-1 ",
            "bedrooms": "Studio",
            "area": "1,050.5 sqft",
            "price": "AED 950,000",
            "unitNumbers": ["101", None, " 102 "],
            "buildingName": "Tower B",
            "view": "Sea",
        },
    )

    assert unit.type_name == "A-1"
    assert unit.bedrooms is None
    assert unit.area == 1050.5
    assert unit.price == 950000
    assert unit.unit_numbers == ["101", "102"]
    assert unit.tower == "Tower B"
    assert unit.extra == {"view": "Sea"}
    assert unit.to_dict()["view"] == "Sea"
    assert "buildingName" not in unit.to_dict()


def test_unit_copy_is_independent() -> None:
    unit = UnitRecord(type_name="A", features=["Balcony"])
    clone = unit.copy()
    clone.features.append("Pool")

    assert unit.features == ["Balcony"]


def test_payment_plan_total_is_derived_from_milestones() -> None:
    plan = PaymentPlan.from_payload(
        {"name": "Plan", "milestones": [{"milestone": "Booking", "percentage": "20%"}, {"milestone": "Handover", "percentage": 80}]},
    )

    assert plan.total_percentage is None
    assert plan.effective_total() == 100
    assert plan.to_dict()["totalPercentage"] == 100


def test_image_variants_refuse_partial_sets() -> None:
    with pytest.raises(ValueError):
        ImageVariants.from_mapping({"original": "a", "large": "b", "medium": "c"})
    variants = ImageVariants.from_mapping({"original": "a", "large": "b", "medium": "c", "thumbnail": "d"})
    assert variants.get("thumbnail") == "d"
    with pytest.raises(KeyError):
        variants.get("huge")
