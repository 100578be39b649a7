# Overview: Service-layer operations for return; encapsulates business logic and database work.

"""
Return Processing Service

WHY: Track material sent back to suppliers with an approval step.

DESIGN:
- Returns are records only. Creating, approving or rejecting a return
  never changes stock (unlike rejections, which decrement immediately)
- pending -> approved | rejected, decided once
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Material, Return
from ..validation import MAX_NOTES_LENGTH, NotFoundError, ValidationError, require_quantity, require_text
from .concurrency import claim_status
from .document_service import next_document_number


logger = logging.getLogger(__name__)


class ReturnError(Exception):
    """Raised for return operation errors."""
    pass


# =============================================================================
# RETURN STATUS CONSTANTS
# =============================================================================

RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_APPROVED = "approved"
RETURN_STATUS_REJECTED = "rejected"

RETURN_STATUSES = (RETURN_STATUS_PENDING, RETURN_STATUS_APPROVED, RETURN_STATUS_REJECTED)


def create_return(acting_user, product_name=None, quantity=None, reason=None, product_id: str | None = None) -> Return:
    """
    Create a return document (status: pending).

    product_name may be omitted when product_id is given; the material's
    current name is copied.
    """
    data = {"product_name": product_name, "quantity": quantity, "reason": reason}

    material = None
    if product_id:
        material = db.session.get(Material, product_id)
        if not material:
            raise ValidationError("Material not found")
        if not product_name:
            data["product_name"] = material.name

    return_doc = Return(
        return_number=next_document_number("return"),
        product_id=material.id if material else None,
        product_name=require_text(data, "product_name", max_length=200),
        quantity=require_quantity(data),
        reason=require_text(data, "reason", max_length=MAX_NOTES_LENGTH),
        status=RETURN_STATUS_PENDING,
        user_id=acting_user.id,
    )
    db.session.add(return_doc)
    db.session.commit()

    logger.info("Return created number=%s by=%s", return_doc.return_number, acting_user.username)
    return return_doc


def _decide(return_id: str, to_status: str) -> Return:
    return_doc = get_return(return_id)
    if not claim_status(Return, return_id, from_statuses=(RETURN_STATUS_PENDING,), to_status=to_status):
        db.session.rollback()
        raise ReturnError(f"Cannot change a return with status {return_doc.status}")
    db.session.commit()
    db.session.refresh(return_doc)
    return return_doc


def approve_return(return_id: str) -> Return:
    """pending -> approved. Stock is untouched."""
    return _decide(return_id, RETURN_STATUS_APPROVED)


def reject_return(return_id: str) -> Return:
    """pending -> rejected."""
    return _decide(return_id, RETURN_STATUS_REJECTED)


def get_return(return_id: str) -> Return:
    return_doc = db.session.get(Return, return_id)
    if not return_doc:
        raise NotFoundError("Return not found")
    return return_doc


def list_returns(status: str | None = None) -> list[Return]:
    query = db.session.query(Return)
    if status:
        if status not in RETURN_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(RETURN_STATUSES)}")
        query = query.filter(Return.status == status)
    return query.order_by(Return.created_at.desc()).all()
