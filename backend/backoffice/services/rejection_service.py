# Overview: Service-layer operations for rejections; encapsulates business logic and database work.

"""
Rejection Service

WHY: An inspector can reject material at intake. The rejection removes the
quantity from stock immediately (clamped at zero), outside the order
pipeline, and opens a discussion thread for the rejected item.

DESIGN:
- the RejectedItem insert and the stock decrement commit together
- resolving a rejection never puts stock back
- chat messages are append-only, ordered by creation time then sequence
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..extensions import db
from ..models import ChatMessage, Material, RejectedItem
from ..validation import (
    MAX_MESSAGE_LENGTH,
    MAX_NOTES_LENGTH,
    NotFoundError,
    ValidationError,
    require_quantity,
    require_text,
)
from .inventory_service import StockAdjustment, adjust_stock


logger = logging.getLogger(__name__)


class RejectionError(Exception):
    """Raised for rejection workflow errors."""
    pass


REJECTION_STATUS_PENDING = "pending"
REJECTION_STATUS_RESOLVED = "resolved"

REJECTION_STATUSES = (REJECTION_STATUS_PENDING, REJECTION_STATUS_RESOLVED)


@dataclass
class RejectionResult:
    rejected_item: RejectedItem
    stock: StockAdjustment

    def to_dict(self) -> dict:
        return {
            "rejected_item": self.rejected_item.to_dict(),
            "stock": self.stock.to_dict(),
        }


def reject_material(product_id: str, quantity, reason, acting_user) -> RejectionResult:
    """
    Record a rejection and remove the quantity from stock.

    The decrement is clamped at zero: rejecting more than is on hand leaves
    the material at 0.

    Raises:
        ValidationError: bad quantity/reason or unknown material
    """
    data = {"quantity": quantity, "reason": reason}
    qty = require_quantity(data)
    reason_text = require_text(data, "reason", max_length=MAX_NOTES_LENGTH)

    if not product_id:
        raise ValidationError("product_id is required")
    material = db.session.get(Material, product_id)
    if not material:
        raise ValidationError("Material not found")

    item = RejectedItem(
        product_id=material.id,
        product_name=material.name,
        quantity=qty,
        reason=reason_text,
        status=REJECTION_STATUS_PENDING,
        seller_id=acting_user.id,
    )
    db.session.add(item)
    db.session.flush()

    try:
        stock = adjust_stock(material.id, -qty, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Material rejected material=%s quantity=%s applied=%s by=%s",
        material.id, qty, stock.applied_delta, acting_user.username,
    )
    return RejectionResult(rejected_item=item, stock=stock)


def get_rejection(rejected_item_id: str) -> RejectedItem:
    item = db.session.get(RejectedItem, rejected_item_id)
    if not item:
        raise NotFoundError("Rejected item not found")
    return item


def resolve_rejection(rejected_item_id: str, status: str = REJECTION_STATUS_RESOLVED) -> RejectedItem:
    """Change a rejection's status. No stock effect."""
    if status not in REJECTION_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(REJECTION_STATUSES)}")

    item = get_rejection(rejected_item_id)
    if item.status == status:
        raise RejectionError(f"Rejected item is already {status}")
    item.status = status
    db.session.commit()
    return item


def list_rejections(status: str | None = None) -> list[RejectedItem]:
    query = db.session.query(RejectedItem)
    if status:
        if status not in REJECTION_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(REJECTION_STATUSES)}")
        query = query.filter(RejectedItem.status == status)
    return query.order_by(RejectedItem.created_at.desc()).all()


# =============================================================================
# CHAT
# =============================================================================

def post_message(rejected_item_id: str, sender_id: str, message) -> ChatMessage:
    text = require_text({"message": message}, "message", max_length=MAX_MESSAGE_LENGTH)
    get_rejection(rejected_item_id)

    last = (
        db.session.query(db.func.max(ChatMessage.sequence))
        .filter(ChatMessage.rejected_item_id == rejected_item_id)
        .scalar()
    )
    msg = ChatMessage(
        rejected_item_id=rejected_item_id,
        sender_id=sender_id,
        message=text,
        sequence=(last or 0) + 1,
    )
    db.session.add(msg)
    db.session.commit()
    return msg


def list_messages(rejected_item_id: str) -> list[ChatMessage]:
    get_rejection(rejected_item_id)
    return (
        db.session.query(ChatMessage)
        .filter(ChatMessage.rejected_item_id == rejected_item_id)
        .order_by(ChatMessage.created_at.asc(), ChatMessage.sequence.asc())
        .all()
    )
