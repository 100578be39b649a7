# Overview: Service-layer operations for supplier history; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Order, SupplierHistory
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import MAX_NOTES_LENGTH, ValidationError, require_quantity, require_text


STOCK_STATUS_RECEIVED = "received"
STOCK_STATUS_PENDING = "pending"
STOCK_STATUS_PARTIAL = "partial"

STOCK_STATUSES = (STOCK_STATUS_RECEIVED, STOCK_STATUS_PENDING, STOCK_STATUS_PARTIAL)

UNKNOWN_SUPPLIER = "Unknown"


def record_order_arrivals(order: Order) -> list[SupplierHistory]:
    """
    One "received" row per order item, copying the order's supplier
    details. Items that already have a row are skipped. Not committed.
    """
    existing = {
        row.order_item_id
        for row in db.session.query(SupplierHistory.order_item_id).filter(SupplierHistory.order_id == order.id)
    }

    now = utcnow()
    rows = []
    for item in order.items:
        if item.id in existing:
            continue
        row = SupplierHistory(
            order_id=order.id,
            order_item_id=item.id,
            supplier_name=order.supplier_name or UNKNOWN_SUPPLIER,
            supplier_phone=order.supplier_contact,
            product_name=item.product_name,
            quantity=item.quantity,
            arrival_date=now,
            stock_status=STOCK_STATUS_RECEIVED,
            notes=f"Delivered from order {order.order_number}",
        )
        db.session.add(row)
        rows.append(row)
    db.session.flush()
    return rows


def add_supplier_entry(payload: dict) -> SupplierHistory:
    """Manual supplier history entry (arrivals outside the order pipeline)."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    stock_status = payload.get("stock_status") or STOCK_STATUS_RECEIVED
    if stock_status not in STOCK_STATUSES:
        raise ValidationError(f"stock_status must be one of {', '.join(STOCK_STATUSES)}")

    arrival_raw = payload.get("arrival_date")
    try:
        arrival_date = parse_iso_datetime(arrival_raw) if arrival_raw else None
    except (TypeError, ValueError):
        raise ValidationError("arrival_date must be an ISO-8601 datetime")

    order_id = payload.get("order_id")
    if order_id and not db.session.get(Order, order_id):
        raise ValidationError("order_id does not reference an order")

    row = SupplierHistory(
        order_id=order_id or None,
        supplier_name=require_text(payload, "supplier_name", max_length=200),
        supplier_phone=require_text(payload, "supplier_phone", max_length=200, required=False),
        supplier_email=require_text(payload, "supplier_email", max_length=255, required=False),
        supplier_address=require_text(payload, "supplier_address", max_length=MAX_NOTES_LENGTH, required=False),
        product_name=require_text(payload, "product_name", max_length=200),
        quantity=require_quantity(payload),
        arrival_date=arrival_date or utcnow(),
        stock_status=stock_status,
        notes=require_text(payload, "notes", max_length=MAX_NOTES_LENGTH, required=False),
    )
    db.session.add(row)
    db.session.commit()
    return row


def list_supplier_history(order_id: str | None = None, supplier_name: str | None = None) -> list[SupplierHistory]:
    query = db.session.query(SupplierHistory)
    if order_id:
        query = query.filter(SupplierHistory.order_id == order_id)
    if supplier_name:
        query = query.filter(SupplierHistory.supplier_name.ilike(f"%{supplier_name.strip()}%"))
    return query.order_by(SupplierHistory.created_at.desc()).all()
