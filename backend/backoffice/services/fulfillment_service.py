# Overview: Service-layer operations for fulfillment; encapsulates business logic and database work.

"""
Fulfillment Tracker

WHY: After settlement an order moves processing -> in_transit -> delivered
on explicit operator action. Delivery is the point where stock is
actually replenished.

STATE MACHINE:
- forward only: processing -> in_transit -> delivered
- in_transit may be skipped
- delivered is terminal

DELIVERY is a persisted workflow run:
  mark_delivered -> record_supplier_history -> approve_transactions -> replenish_stock
Each step commits with its completion marker, so a resumed run neither
duplicates supplier history nor adds stock twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import update

from ..extensions import db
from ..models import Order, SupplierHistory, Transaction, WorkflowRun
from ..validation import ConflictError, ValidationError
from . import inventory_service, order_service, supplier_service, workflow_service
from .concurrency import claim_status
from .invoice_service import get_invoice
from .payment_service import TRANSACTION_STATUS_APPROVED


logger = logging.getLogger(__name__)


class FulfillmentError(Exception):
    """Raised for fulfillment (status transition) errors."""
    pass


FULFILLMENT_STATUSES = (
    order_service.ORDER_STATUS_PROCESSING,
    order_service.ORDER_STATUS_IN_TRANSIT,
    order_service.ORDER_STATUS_DELIVERED,
)

# Position in the forward-only chain
_RANK = {status: rank for rank, status in enumerate(FULFILLMENT_STATUSES)}


@dataclass
class FulfillmentResult:
    order: Order
    run: WorkflowRun | None = None
    supplier_history: list[SupplierHistory] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"order": self.order.to_dict(include_items=True)}
        if self.run is not None:
            data["workflow_run_id"] = self.run.id
            data["supplier_history"] = [row.to_dict() for row in self.supplier_history]
            data["stock"] = (self.run.context or {}).get("stock", [])
        return data


def advance_order_status(order_id: str, new_status: str, acting_user) -> FulfillmentResult:
    """
    Move an order forward through the fulfillment states.

    Raises:
        ValidationError: new_status is not a fulfillment state
        FulfillmentError: transition not allowed from the current status
        ConflictError: another caller changed the order first
        WorkflowError: a delivery step failed
    """
    if new_status not in FULFILLMENT_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(FULFILLMENT_STATUSES)}")

    order = order_service.get_order(order_id)
    current = order.status

    if current == order_service.ORDER_STATUS_DELIVERED:
        raise FulfillmentError("Delivered orders cannot change status")
    if current not in FULFILLMENT_STATUSES:
        raise FulfillmentError(f"Order with status {current} is not in fulfillment")
    if current == new_status:
        raise FulfillmentError(f"Order is already {current}")
    if _RANK[new_status] < _RANK[current]:
        raise FulfillmentError(f"Cannot move an order back from {current} to {new_status}")

    if new_status == order_service.ORDER_STATUS_DELIVERED:
        run = workflow_service.run_workflow(
            workflow_service.KIND_DELIVER_ORDER,
            {"order_id": order_id, "order_number": order.order_number},
            actor_user_id=acting_user.id,
        )
        db.session.refresh(order)
        rows = supplier_service.list_supplier_history(order_id=order_id)
        logger.info("Order delivered number=%s by=%s", order.order_number, acting_user.username)
        return FulfillmentResult(order=order, run=run, supplier_history=rows)

    if not claim_status(Order, order_id, from_statuses=(current,), to_status=new_status):
        db.session.rollback()
        raise ConflictError("Order status changed concurrently; reload and retry")
    db.session.commit()
    db.session.refresh(order)
    logger.info("Order %s moved %s -> %s by=%s", order.order_number, current, new_status, acting_user.username)
    return FulfillmentResult(order=order)


# =============================================================================
# DELIVERY STEPS
# =============================================================================

def _step_mark_delivered(ctx: dict) -> None:
    won = claim_status(
        Order,
        ctx["order_id"],
        from_statuses=(order_service.ORDER_STATUS_PROCESSING, order_service.ORDER_STATUS_IN_TRANSIT),
        to_status=order_service.ORDER_STATUS_DELIVERED,
    )
    if not won:
        raise ConflictError("Order is already delivered or no longer in fulfillment")


def _step_record_supplier_history(ctx: dict) -> None:
    order = order_service.get_order(ctx["order_id"])
    rows = supplier_service.record_order_arrivals(order)
    ctx["supplier_history_ids"] = sorted(set(ctx.get("supplier_history_ids", [])) | {r.id for r in rows})


def _step_approve_transactions(ctx: dict) -> None:
    result = db.session.execute(
        update(Transaction)
        .where(Transaction.order_id == ctx["order_id"])
        .values(status=TRANSACTION_STATUS_APPROVED)
        .execution_options(synchronize_session=False)
    )
    ctx["transactions_approved"] = result.rowcount


def _step_replenish_stock(ctx: dict) -> None:
    order = order_service.get_order(ctx["order_id"])
    done = list(ctx.get("replenished_item_ids", []))
    stock = list(ctx.get("stock", []))

    for item in order.items:
        if item.id in done or not item.product_id:
            continue
        adjustment = inventory_service.adjust_stock(item.product_id, item.quantity, commit=False)
        done.append(item.id)
        stock.append(adjustment.to_dict())

    ctx["replenished_item_ids"] = done
    ctx["stock"] = stock


workflow_service.register_workflow(workflow_service.KIND_DELIVER_ORDER, [
    ("mark_delivered", _step_mark_delivered),
    ("record_supplier_history", _step_record_supplier_history),
    ("approve_transactions", _step_approve_transactions),
    ("replenish_stock", _step_replenish_stock),
])


# =============================================================================
# SHIPMENT SUBMISSION / QUERIES
# =============================================================================

def submit_shipment(invoice_id: str) -> Order:
    """Hand an invoiced order to fulfillment: draft/pending -> processing."""
    invoice = get_invoice(invoice_id)
    if not invoice.order_id:
        raise FulfillmentError("Invoice has no linked order")
    order = order_service.get_order(invoice.order_id)

    if not claim_status(
        Order,
        order.id,
        from_statuses=order_service.OPEN_ORDER_STATUSES,
        to_status=order_service.ORDER_STATUS_PROCESSING,
    ):
        db.session.rollback()
        raise FulfillmentError(f"Order is already {order.status}")
    db.session.commit()
    db.session.refresh(order)
    logger.info("Shipment submitted order=%s invoice=%s", order.order_number, invoice.invoice_number)
    return order


def list_fulfillment_orders(status: str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if status:
        if status not in FULFILLMENT_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(FULFILLMENT_STATUSES)}")
        query = query.filter(Order.status == status)
    else:
        query = query.filter(Order.status.in_(FULFILLMENT_STATUSES))
    return query.order_by(Order.updated_at.desc()).all()
