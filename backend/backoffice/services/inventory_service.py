# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Inventory Ledger

WHY: Material.quantity is changed by delivery (increment), rejection
(decrement) and admin correction. All of them go through adjust_stock, a
single atomic UPDATE, so concurrent callers cannot lose each other's
writes and the quantity can never go below zero.

DESIGN:
- adjust_stock never reads-then-writes in Python; the clamp happens in SQL
- material updates cannot touch quantity (use adjust_stock)
- a material referenced by order items cannot be deleted
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import case, update

from ..extensions import db
from ..models import FoodCondition, Material, OrderItem, RejectedItem, Return
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_int,
    enforce_rules_material,
    validate_payload,
)
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Raised for stock adjustment errors."""
    pass


MATERIAL_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "color", "price", "quantity"},
    required_on_create={"name", "category", "price"},
)

# quantity is deliberately absent: stock moves only through adjust_stock
MATERIAL_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "color", "price"},
)


@dataclass(frozen=True)
class StockAdjustment:
    """Outcome of adjust_stock; applied_delta differs from requested_delta when clamped."""
    material_id: str
    requested_delta: int
    applied_delta: int
    quantity: int

    @property
    def clamped(self) -> bool:
        return self.applied_delta != self.requested_delta

    def to_dict(self) -> dict:
        return {
            "material_id": self.material_id,
            "requested_delta": self.requested_delta,
            "applied_delta": self.applied_delta,
            "quantity": self.quantity,
            "clamped": self.clamped,
        }


# =============================================================================
# STOCK PRIMITIVE
# =============================================================================

def adjust_stock(material_id: str, delta: int, *, commit: bool = True) -> StockAdjustment:
    """
    Atomically add delta to a material's quantity, clamping at zero.

    Issued as one UPDATE ... SET quantity = CASE WHEN quantity + delta < 0
    THEN 0 ELSE quantity + delta END, then the new quantity is read back in
    the same transaction.

    Args:
        material_id: Material to adjust
        delta: Positive to add stock, negative to remove it
        commit: False when the caller commits as part of a larger unit
            (workflow steps)

    Raises:
        InventoryError: material not found or delta not an integer
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InventoryError("delta must be an integer")

    before = lock_for_update(
        db.session.query(Material.quantity).filter(Material.id == material_id)
    ).scalar()
    if before is None:
        raise InventoryError(f"Material {material_id} not found")

    target = Material.quantity + delta
    stmt = (
        update(Material)
        .where(Material.id == material_id)
        .values(quantity=case((target < 0, 0), else_=target))
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise InventoryError(f"Material {material_id} not found")

    quantity = db.session.query(Material.quantity).filter(Material.id == material_id).scalar()

    if commit:
        db.session.commit()

    adjustment = StockAdjustment(
        material_id=material_id,
        requested_delta=delta,
        applied_delta=quantity - before,
        quantity=quantity,
    )
    logger.info(
        "Stock adjusted material=%s requested=%s applied=%s quantity=%s",
        material_id, delta, adjustment.applied_delta, quantity,
    )
    return adjustment


# =============================================================================
# MATERIAL MASTER DATA
# =============================================================================

def get_material(material_id: str) -> Material:
    material = db.session.get(Material, material_id)
    if not material:
        raise NotFoundError("Material not found")
    return material


def list_materials(search: str | None = None, category: str | None = None) -> list[Material]:
    query = db.session.query(Material)
    if search:
        query = query.filter(Material.name.ilike(f"%{search.strip()}%"))
    if category:
        query = query.filter(Material.category == category.strip())
    return query.order_by(Material.created_at.desc(), Material.name.asc()).all()


def stock_valuation(materials: list[Material]) -> dict:
    """Totals shown above the materials table."""
    total_value = sum((Decimal(m.price) * m.quantity for m in materials), Decimal("0.00"))
    return {
        "material_count": len(materials),
        "total_quantity": sum(m.quantity for m in materials),
        "total_value": str(total_value.quantize(Decimal("0.01"))),
        "out_of_stock": sum(1 for m in materials if m.quantity == 0),
    }


def create_material(payload: dict, *, acting_user) -> Material:
    """
    Create a material from a client payload.

    Initial quantity may be given on create; afterwards it only changes
    through adjust_stock.
    """
    patch = validate_payload(model=Material, payload=payload, policy=MATERIAL_CREATE_POLICY, partial=False)
    enforce_rules_material(patch)

    def _op() -> Material:
        material = Material(user_id=acting_user.id, **patch)
        if material.quantity is None:
            material.quantity = 0
        db.session.add(material)
        db.session.commit()
        return material

    material = run_with_retry(_op)
    logger.info("Material created id=%s name=%r by=%s", material.id, material.name, acting_user.username)
    return material


def update_material(material_id: str, payload: dict) -> Material:
    """
    Update name/category/color/price.

    Raises:
        ValidationError: quantity (or any other non-writable field) in payload
        NotFoundError: unknown material
    """
    patch = validate_payload(model=Material, payload=payload, policy=MATERIAL_UPDATE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    enforce_rules_material(patch)

    material = get_material(material_id)
    for key, value in patch.items():
        setattr(material, key, value)
    db.session.commit()
    return material


def delete_material(material_id: str) -> None:
    """
    Delete a material.

    Refused while order items reference it (orders keep their snapshot but
    delivery would have nothing to replenish). Rejections, returns and
    inspections keep their product_name snapshot and lose the link.
    """
    material = get_material(material_id)

    in_use = db.session.query(OrderItem.id).filter(OrderItem.product_id == material_id).first()
    if in_use:
        raise ConflictError("Material is referenced by orders and cannot be deleted")

    for model in (RejectedItem, Return, FoodCondition):
        db.session.execute(
            update(model)
            .where(model.product_id == material_id)
            .values(product_id=None)
            .execution_options(synchronize_session=False)
        )

    db.session.delete(material)
    db.session.commit()
    logger.info("Material deleted id=%s", material_id)


def parse_delta(value) -> int:
    """Admin adjustment input: non-zero integer."""
    if value is None:
        raise ValidationError("delta is required")
    delta = coerce_int("delta", value)
    if delta == 0:
        raise ValidationError("delta must not be zero")
    return delta
