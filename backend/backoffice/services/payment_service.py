# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Tracker

WHY: A payment is the authorization point of the procurement chain.
Settling it completes the payment, moves the order to processing and
writes one approved transaction per order item.

DESIGN PRINCIPLES:
- Settlement is a persisted workflow run (complete_payment,
  advance_order, record_transactions); see workflow_service
- A completed payment is never completed again: the status change is a
  conditional UPDATE, so two concurrent settlements cannot both win
- Exactly one transaction per (payment, order item)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..extensions import db
from ..models import Order, OrderItem, Payment, Transaction, WorkflowRun
from ..time_utils import utcnow
from ..validation import ConflictError, ModelValidationPolicy, NotFoundError, ValidationError, validate_payload
from . import order_service, workflow_service
from .concurrency import claim_status
from .document_service import next_document_number
from .invoice_service import find_invoice_for_order, get_invoice


logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PROCESSING = "processing"
PAYMENT_STATUS_COMPLETED = "completed"
PAYMENT_STATUS_FAILED = "failed"

PAYMENT_STATUSES = (
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_PROCESSING,
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_FAILED,
)

SETTLEABLE_STATUSES = (PAYMENT_STATUS_PENDING, PAYMENT_STATUS_PROCESSING, PAYMENT_STATUS_FAILED)

PAYMENT_METHOD_BANK_TRANSFER = "bank_transfer"

TRANSACTION_STATUS_APPROVED = "approved"
TRANSACTION_STATUS_REJECTED = "rejected"

AUTO_APPROVE_NOTE = "Auto-approved upon payment confirmation"

PAYMENT_DETAILS_POLICY = ModelValidationPolicy(
    writable_fields={"bank_name", "account_number", "payment_code", "qr_code_url"},
)


@dataclass
class PaymentSettlement:
    payment: Payment
    order: Order
    transactions: list[Transaction]
    run: WorkflowRun

    def to_dict(self) -> dict:
        return {
            "payment": self.payment.to_dict(),
            "order": self.order.to_dict(),
            "transactions": [t.to_dict() for t in self.transactions],
            "workflow_run_id": self.run.id,
        }


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def build_pending_payment(*, order_id: str, amount) -> Payment:
    """Pending bank-transfer payment for an order (flushed, not committed)."""
    payment = Payment(
        payment_number=next_document_number("payment"),
        amount=amount,
        status=PAYMENT_STATUS_PENDING,
        payment_method=PAYMENT_METHOD_BANK_TRANSFER,
        order_id=order_id,
    )
    db.session.add(payment)
    db.session.flush()
    return payment


def create_payment_for_invoice(invoice_id: str) -> Payment:
    """
    Open a new pending payment for an invoice's order and amount
    ("pay directly" from the invoice list).
    """
    invoice = get_invoice(invoice_id)
    if not invoice.order_id:
        raise PaymentError("Invoice has no linked order")
    order = db.session.get(Order, invoice.order_id)
    if not order:
        raise PaymentError("Linked order not found")
    if order.status == order_service.ORDER_STATUS_CANCELLED:
        raise PaymentError("Cannot pay a cancelled order")

    payment = build_pending_payment(order_id=order.id, amount=invoice.total_amount)
    db.session.commit()
    logger.info("Payment opened number=%s invoice=%s", payment.payment_number, invoice.invoice_number)
    return payment


def update_payment_details(payment_id: str, payload: dict) -> Payment:
    """Bank name, account number, payment code and QR code URL."""
    patch = validate_payload(model=Payment, payload=payload, policy=PAYMENT_DETAILS_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    payment = get_payment(payment_id)
    for key, value in patch.items():
        setattr(payment, key, value or None)
    db.session.commit()
    return payment


# =============================================================================
# SETTLEMENT (WORKFLOW)
# =============================================================================

def mark_paid(payment_id: str, acting_user) -> PaymentSettlement:
    """
    Settle a payment.

    Preconditions checked before the run starts:
    - payment exists (NotFoundError)
    - payment is linked to an existing, non-cancelled order (PaymentError)
    - payment is not already completed (ConflictError)

    Raises WorkflowError if a step fails.
    """
    payment = get_payment(payment_id)
    if not payment.order_id:
        raise PaymentError("Payment has no linked order")

    order = db.session.get(Order, payment.order_id)
    if not order:
        raise PaymentError("Linked order not found")
    if order.status == order_service.ORDER_STATUS_CANCELLED:
        raise PaymentError("Cannot settle a payment for a cancelled order")

    if payment.status == PAYMENT_STATUS_COMPLETED:
        raise ConflictError("Payment is already completed")

    run = workflow_service.run_workflow(
        workflow_service.KIND_MARK_PAID,
        {"payment_id": payment.id, "order_id": order.id},
        actor_user_id=acting_user.id,
    )

    db.session.refresh(payment)
    db.session.refresh(order)
    transactions = list_transactions(payment_id=payment.id)
    logger.info(
        "Payment settled number=%s transactions=%d by=%s",
        payment.payment_number, len(transactions), acting_user.username,
    )
    return PaymentSettlement(payment=payment, order=order, transactions=transactions, run=run)


def _step_complete_payment(ctx: dict) -> None:
    won = claim_status(
        Payment,
        ctx["payment_id"],
        from_statuses=SETTLEABLE_STATUSES,
        to_status=PAYMENT_STATUS_COMPLETED,
        paid_at=utcnow(),
    )
    if not won:
        raise ConflictError("Payment is already completed")


def _step_advance_order(ctx: dict) -> None:
    # Orders already past processing are left where they are
    ctx["order_advanced"] = claim_status(
        Order,
        ctx["order_id"],
        from_statuses=order_service.OPEN_ORDER_STATUSES,
        to_status=order_service.ORDER_STATUS_PROCESSING,
    )


def _step_record_transactions(ctx: dict) -> None:
    payment_id = ctx["payment_id"]
    order_id = ctx["order_id"]

    items = (
        db.session.query(OrderItem)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.line_number.asc())
        .all()
    )
    recorded = {
        row.order_item_id
        for row in db.session.query(Transaction.order_item_id).filter(Transaction.payment_id == payment_id)
    }
    invoice = find_invoice_for_order(order_id)

    now = utcnow()
    created = []
    for item in items:
        if item.id in recorded:
            continue
        txn = Transaction(
            order_id=order_id,
            order_item_id=item.id,
            payment_id=payment_id,
            invoice_id=invoice.id if invoice else None,
            product_name=item.product_name,
            quantity=item.quantity,
            amount=item.total_price,
            status=TRANSACTION_STATUS_APPROVED,
            transaction_date=now,
            notes=AUTO_APPROVE_NOTE,
        )
        db.session.add(txn)
        created.append(txn)
    db.session.flush()

    ctx["transaction_ids"] = sorted(set(ctx.get("transaction_ids", [])) | {t.id for t in created})


workflow_service.register_workflow(workflow_service.KIND_MARK_PAID, [
    ("complete_payment", _step_complete_payment),
    ("advance_order", _step_advance_order),
    ("record_transactions", _step_record_transactions),
])


# =============================================================================
# QUERIES
# =============================================================================

def get_payment(payment_id: str) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def list_payments(status: str | None = None) -> list[dict]:
    """Payments newest first with the order's number, supplier and account."""
    query = db.session.query(Payment, Order).outerjoin(Order, Payment.order_id == Order.id)
    if status:
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status: {status}")
        query = query.filter(Payment.status == status)

    results = []
    for payment, order in query.order_by(Payment.created_at.desc()).all():
        data = payment.to_dict()
        data["order_number"] = order.order_number if order else None
        data["supplier_name"] = order.supplier_name if order else None
        data["order_account_number"] = order.account_number if order else None
        results.append(data)
    return results


def list_transactions(payment_id: str | None = None, order_id: str | None = None) -> list[Transaction]:
    query = db.session.query(Transaction)
    if payment_id:
        query = query.filter(Transaction.payment_id == payment_id)
    if order_id:
        query = query.filter(Transaction.order_id == order_id)
    return query.order_by(Transaction.created_at.asc()).all()
