# Overview: Service-layer operations for quality inspections; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import FoodCondition, Material
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import MAX_NOTES_LENGTH, ValidationError, require_text


CONDITION_EXCELLENT = "Excellent"
CONDITION_FRESH = "Fresh"
CONDITION_GOOD = "Good"
CONDITION_SLIGHTLY_DAMAGED = "Slightly Damaged"
CONDITION_DAMAGED = "Damaged"
CONDITION_EXPIRED = "Expired"
CONDITION_CONTAMINATED = "Contaminated"

CONDITIONS = (
    CONDITION_EXCELLENT,
    CONDITION_FRESH,
    CONDITION_GOOD,
    CONDITION_SLIGHTLY_DAMAGED,
    CONDITION_DAMAGED,
    CONDITION_EXPIRED,
    CONDITION_CONTAMINATED,
)


def record_inspection(
    acting_user,
    product_name=None,
    condition=None,
    fit_for_processing=True,
    notes=None,
    product_id: str | None = None,
    inspection_date=None,
) -> FoodCondition:
    """Record a food-condition inspection. Informational only; stock is untouched."""
    data = {"product_name": product_name, "condition": condition, "notes": notes}

    material = None
    if product_id:
        material = db.session.get(Material, product_id)
        if not material:
            raise ValidationError("Material not found")
        if not product_name:
            data["product_name"] = material.name

    if condition not in CONDITIONS:
        raise ValidationError(f"condition must be one of {', '.join(CONDITIONS)}")

    if not isinstance(fit_for_processing, bool):
        raise ValidationError("fit_for_processing must be a boolean")

    try:
        inspected_at = parse_iso_datetime(inspection_date) if inspection_date else None
    except (TypeError, ValueError):
        raise ValidationError("inspection_date must be an ISO-8601 datetime")

    record = FoodCondition(
        product_id=material.id if material else None,
        product_name=require_text(data, "product_name", max_length=200),
        condition=condition,
        fit_for_processing=fit_for_processing,
        notes=require_text(data, "notes", max_length=MAX_NOTES_LENGTH, required=False),
        inspection_date=inspected_at or utcnow(),
        inspector_id=acting_user.id,
    )
    db.session.add(record)
    db.session.commit()
    return record


def list_inspections(fit_for_processing: bool | None = None) -> list[FoodCondition]:
    query = db.session.query(FoodCondition)
    if fit_for_processing is not None:
        query = query.filter(FoodCondition.fit_for_processing.is_(fit_for_processing))
    return query.order_by(FoodCondition.inspection_date.desc()).all()
