# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Aggregate

WHY: A purchase order is the root of the procurement chain. Placing one
creates the order with its items, then an invoice, then a pending payment,
as a persisted workflow run (see workflow_service).

DESIGN:
- unit_price and product_name are copied from the material when the order
  is placed; later material edits never touch existing orders
- total_amount is always derived from the items, never taken from input
- order numbers are "<PREFIX>-<epoch ms>"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from ..extensions import db
from ..models import Invoice, Material, Order, OrderItem, Payment, Transaction, WorkflowRun
from ..time_utils import parse_iso_date, utcnow
from ..validation import (
    CENT,
    MAX_NOTES_LENGTH,
    NotFoundError,
    ValidationError,
    require_price,
    require_quantity,
    require_text,
)
from . import invoice_service, workflow_service
from .concurrency import claim_status
from .document_service import next_document_number


logger = logging.getLogger(__name__)


class OrderError(Exception):
    """Raised for order operation errors."""
    pass


# =============================================================================
# ORDER STATUS (CONSTANTS)
# =============================================================================

ORDER_STATUS_DRAFT = "draft"
ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_PROCESSING = "processing"
ORDER_STATUS_IN_TRANSIT = "in_transit"
ORDER_STATUS_DELIVERED = "delivered"
ORDER_STATUS_PAID = "paid"
ORDER_STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = (
    ORDER_STATUS_DRAFT,
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_IN_TRANSIT,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_PAID,
    ORDER_STATUS_CANCELLED,
)

# Orders that have not started moving yet
OPEN_ORDER_STATUSES = (ORDER_STATUS_DRAFT, ORDER_STATUS_PENDING)


@dataclass
class OrderPlacement:
    order: Order
    invoice: Invoice
    payment: Payment
    run: WorkflowRun

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(include_items=True),
            "invoice": self.invoice.to_dict(include_items=True),
            "payment": self.payment.to_dict(),
            "workflow_run_id": self.run.id,
        }


# =============================================================================
# INPUT VALIDATION
# =============================================================================

def validate_supplier_info(data: dict | None) -> dict:
    """Normalize the order header; dates are kept as ISO strings for the run context."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("supplier_info must be an object")

    info = {
        "supplier_name": require_text(data, "supplier_name", max_length=200),
        "supplier_contact": require_text(data, "supplier_contact", max_length=200, required=False),
        "account_number": require_text(data, "account_number", max_length=64, required=False),
        "notes": require_text(data, "notes", max_length=MAX_NOTES_LENGTH, required=False),
    }
    for key in ("order_date", "delivery_date"):
        raw = data.get(key)
        if raw in (None, ""):
            info[key] = None
            continue
        try:
            parsed = parse_iso_date(str(raw))
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date")
        info[key] = parsed.isoformat() if parsed else None
    return info


def validate_order_items(items) -> list[dict]:
    """
    Check order lines against the material catalogue.

    Each line needs an existing product_id and a positive integer quantity.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")

    lines = []
    for index, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {index} must be an object")
        product_id = raw.get("product_id")
        if not product_id or not isinstance(product_id, str):
            raise ValidationError(f"Item {index}: product_id is required")
        quantity = require_quantity(raw)

        material = db.session.get(Material, product_id)
        if not material:
            raise ValidationError(f"Item {index}: material not found")

        lines.append({"product_id": product_id, "quantity": quantity})
    return lines


# =============================================================================
# ORDER PLACEMENT (WORKFLOW)
# =============================================================================

def create_order(acting_user, supplier_info: dict | None, items) -> OrderPlacement:
    """
    Place an order: order + items, then invoice, then pending payment.

    Validation happens before anything is written. Raises WorkflowError if
    a step fails; the steps that already finished stay committed and the
    run can be resumed.
    """
    info = validate_supplier_info(supplier_info)
    lines = validate_order_items(items)

    run = workflow_service.run_workflow(
        workflow_service.KIND_CREATE_ORDER,
        {"supplier_info": info, "items": lines, "user_id": acting_user.id},
        actor_user_id=acting_user.id,
    )
    placement = placement_from_run(run)
    logger.info(
        "Order placed number=%s total=%s by=%s",
        placement.order.order_number, placement.order.total_amount, acting_user.username,
    )
    return placement


def placement_from_run(run: WorkflowRun) -> OrderPlacement:
    ctx = run.context or {}
    return OrderPlacement(
        order=db.session.get(Order, ctx["order_id"]),
        invoice=db.session.get(Invoice, ctx["invoice_id"]),
        payment=db.session.get(Payment, ctx["payment_id"]),
        run=run,
    )


def _step_create_order(ctx: dict) -> None:
    if ctx.get("order_id") and db.session.get(Order, ctx["order_id"]):
        return

    info = ctx["supplier_info"]
    order = Order(
        order_number=next_document_number("order"),
        status=ORDER_STATUS_DRAFT,
        supplier_name=info.get("supplier_name"),
        supplier_contact=info.get("supplier_contact"),
        account_number=info.get("account_number"),
        order_date=parse_iso_date(info.get("order_date")) or utcnow().date(),
        delivery_date=parse_iso_date(info.get("delivery_date")),
        notes=info.get("notes"),
        user_id=ctx.get("user_id"),
    )

    for line_number, line in enumerate(ctx["items"], start=1):
        material = db.session.get(Material, line["product_id"])
        if not material:
            raise OrderError(f"Material {line['product_id']} no longer exists")
        unit_price = Decimal(material.price).quantize(CENT)
        order.items.append(OrderItem(
            line_number=line_number,
            product_id=material.id,
            product_name=material.name,
            quantity=line["quantity"],
            unit_price=unit_price,
            total_price=(unit_price * line["quantity"]).quantize(CENT),
        ))

    order.total_amount = sum((item.total_price for item in order.items), Decimal("0.00"))
    db.session.add(order)
    db.session.flush()

    ctx["order_id"] = order.id
    ctx["order_number"] = order.order_number


def _step_create_invoice(ctx: dict) -> None:
    existing = invoice_service.find_invoice_for_order(ctx["order_id"])
    if existing:
        ctx["invoice_id"] = existing.id
        return

    order = get_order(ctx["order_id"])
    invoice = invoice_service.create_invoice_for_order(order, user_id=ctx.get("user_id"))
    ctx["invoice_id"] = invoice.id
    ctx["invoice_number"] = invoice.invoice_number


def _step_create_payment(ctx: dict) -> None:
    from .payment_service import build_pending_payment

    if ctx.get("payment_id") and db.session.get(Payment, ctx["payment_id"]):
        return

    order = get_order(ctx["order_id"])
    payment = build_pending_payment(order_id=order.id, amount=order.total_amount)
    ctx["payment_id"] = payment.id
    ctx["payment_number"] = payment.payment_number


workflow_service.register_workflow(workflow_service.KIND_CREATE_ORDER, [
    ("create_order", _step_create_order),
    ("create_invoice", _step_create_invoice),
    ("create_payment", _step_create_payment),
])


# =============================================================================
# QUERIES
# =============================================================================

def get_order(order_id: str) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_orders(status: str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status: {status}")
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc()).all()


def recompute_order_total(order_id: str) -> Decimal:
    """Re-derive the order total from its persisted items."""
    get_order(order_id)
    total = (
        db.session.query(db.func.coalesce(db.func.sum(OrderItem.total_price), 0))
        .filter(OrderItem.order_id == order_id)
        .scalar()
    )
    return Decimal(total).quantize(CENT)


def get_order_snapshot(order_id: str) -> dict:
    """
    Read-only aggregate handed to export collaborators: order with items,
    its invoices (with items), payments and transactions.
    """
    order = get_order(order_id)
    invoices = (
        db.session.query(Invoice)
        .filter(Invoice.order_id == order_id)
        .order_by(Invoice.created_at.asc())
        .all()
    )
    payments = (
        db.session.query(Payment)
        .filter(Payment.order_id == order_id)
        .order_by(Payment.created_at.asc())
        .all()
    )
    transactions = (
        db.session.query(Transaction)
        .filter(Transaction.order_id == order_id)
        .order_by(Transaction.created_at.asc())
        .all()
    )
    return {
        "order": order.to_dict(include_items=True),
        "invoices": [inv.to_dict(include_items=True) for inv in invoices],
        "payments": [p.to_dict() for p in payments],
        "transactions": [t.to_dict() for t in transactions],
    }


# =============================================================================
# HEADER UPDATES
# =============================================================================

def set_account_number(order_id: str, account_number) -> Order:
    order = get_order(order_id)
    order.account_number = require_text(
        {"account_number": account_number}, "account_number", max_length=64, required=False
    )
    db.session.commit()
    return order


def cancel_order(order_id: str) -> Order:
    """
    Cancel an order that has not started moving (draft or pending).

    Invoices and payments already created for it are left as they are.
    """
    order = get_order(order_id)
    if not claim_status(Order, order_id, from_statuses=OPEN_ORDER_STATUSES, to_status=ORDER_STATUS_CANCELLED):
        db.session.rollback()
        raise OrderError(f"Cannot cancel an order with status {order.status}")
    db.session.commit()
    db.session.refresh(order)
    logger.info("Order cancelled number=%s", order.order_number)
    return order


# =============================================================================
# QUICK ORDERS (scan to pay)
# =============================================================================

def create_quick_order(acting_user, items, supplier_name: str | None = None, notes: str | None = None) -> Order:
    """
    Record an ad-hoc purchase from free-form lines.

    No material link, no invoice or payment, no stock effect. The order
    starts "pending" and becomes "paid" via mark_quick_order_paid.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")

    header = {"supplier_name": supplier_name, "notes": notes}
    order = Order(
        order_number=next_document_number("order"),
        status=ORDER_STATUS_PENDING,
        supplier_name=require_text(header, "supplier_name", max_length=200, required=False),
        notes=require_text(header, "notes", max_length=MAX_NOTES_LENGTH, required=False),
        order_date=utcnow().date(),
        user_id=acting_user.id,
    )

    for line_number, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {line_number} must be an object")
        quantity = require_quantity(raw)
        unit_price = require_price(raw, "unit_price")
        total_price = (unit_price * quantity).quantize(CENT)
        order.items.append(OrderItem(
            line_number=line_number,
            product_id=None,
            product_name=require_text(raw, "product_name", max_length=200),
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
        ))

    order.total_amount = sum((item.total_price for item in order.items), Decimal("0.00"))
    db.session.add(order)
    db.session.commit()
    logger.info("Quick order created number=%s by=%s", order.order_number, acting_user.username)
    return order


def mark_quick_order_paid(order_id: str) -> Order:
    order = get_order(order_id)

    has_payment = db.session.query(Payment.id).filter(Payment.order_id == order_id).first()
    if has_payment:
        raise OrderError("Order is settled through its payment record")

    if not claim_status(Order, order_id, from_statuses=(ORDER_STATUS_PENDING,), to_status=ORDER_STATUS_PAID):
        db.session.rollback()
        raise OrderError(f"Cannot mark an order with status {order.status} as paid")
    db.session.commit()
    db.session.refresh(order)
    return order
