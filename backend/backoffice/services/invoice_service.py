# Overview: Service-layer operations for invoices; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Invoice, InvoiceItem, Order
from ..validation import NotFoundError, ValidationError
from .document_service import next_document_number


INVOICE_STATUS_PENDING = "pending"
INVOICE_STATUS_PAID = "paid"
INVOICE_STATUS_CANCELLED = "cancelled"

INVOICE_STATUSES = (INVOICE_STATUS_PENDING, INVOICE_STATUS_PAID, INVOICE_STATUS_CANCELLED)


def create_invoice_for_order(order: Order, user_id: str | None = None) -> Invoice:
    """
    Derive an invoice from an order: same total, one line per order item
    priced at the item's unit price.

    Adds to the session without committing (runs inside a workflow step).
    """
    invoice = Invoice(
        invoice_number=next_document_number("invoice"),
        total_amount=order.total_amount,
        status=INVOICE_STATUS_PENDING,
        order_id=order.id,
        user_id=user_id,
    )
    for item in order.items:
        invoice.items.append(InvoiceItem(
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            price=item.unit_price,
        ))
    db.session.add(invoice)
    db.session.flush()
    return invoice


def find_invoice_for_order(order_id: str) -> Invoice | None:
    return (
        db.session.query(Invoice)
        .filter(Invoice.order_id == order_id)
        .order_by(Invoice.created_at.asc())
        .first()
    )


def get_invoice(invoice_id: str) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice


def list_invoices(status: str | None = None) -> list[dict]:
    """Invoices newest first, with the linked order's number and status."""
    query = db.session.query(Invoice, Order).outerjoin(Order, Invoice.order_id == Order.id)
    if status:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"Invalid invoice status: {status}")
        query = query.filter(Invoice.status == status)

    results = []
    for invoice, order in query.order_by(Invoice.created_at.desc()).all():
        data = invoice.to_dict()
        data["order_number"] = order.order_number if order else None
        data["order_status"] = order.status if order else None
        data["account_number"] = order.account_number if order else None
        results.append(data)
    return results
