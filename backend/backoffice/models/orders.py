from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow
from ..validation import to_money_str
from ._ids import new_id


class Order(db.Model):
    """
    Procurement order placed with a supplier.

    TOTAL: total_amount always equals the sum of its items' total_price
    (order_service.recompute_order_total re-derives it).

    STATUS: see order_service.ORDER_STATUS_* for the vocabulary and
    fulfillment_service for the allowed transitions.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    status = db.Column(db.String(32), nullable=False, default="draft")
    total_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    supplier_name = db.Column(db.String(200), nullable=True)
    supplier_contact = db.Column(db.String(200), nullable=True)
    account_number = db.Column(db.String(64), nullable=True)

    order_date = db.Column(db.Date, nullable=True)
    delivery_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.line_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status!r}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status,
            "total_amount": to_money_str(self.total_amount),
            "supplier_name": self.supplier_name,
            "supplier_contact": self.supplier_contact,
            "account_number": self.account_number,
            "order_date": to_iso_date(self.order_date),
            "delivery_date": to_iso_date(self.delivery_date),
            "notes": self.notes,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """
    Order line.

    SNAPSHOT: product_name and unit_price are copied from the material when
    the order is placed and never re-read, so later price edits do not
    rewrite history. product_id may be null for free-form (quick) orders or
    when the material was deleted.
    """
    __tablename__ = "order_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False, default=1)

    product_id = db.Column(db.String(36), db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = db.Column(db.String(200), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(14, 2), nullable=False)
    total_price = db.Column(db.Numeric(14, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": to_money_str(self.unit_price),
            "total_price": to_money_str(self.total_price),
        }


class Invoice(db.Model):
    """Invoice mirroring an order's items and total."""
    __tablename__ = "invoices"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    invoice_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending")

    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship("InvoiceItem", backref="invoice", lazy=True, cascade="all, delete-orphan")
    order = db.relationship("Order", backref=db.backref("invoices", lazy=True))

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "total_amount": to_money_str(self.total_amount),
            "status": self.status,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(db.Model):
    __tablename__ = "invoice_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    invoice_id = db.Column(db.String(36), db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = db.Column(db.String(36), db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(14, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": to_money_str(self.price),
        }


class Payment(db.Model):
    """
    Payment request against an order.

    LIFECYCLE: pending -> completed (mark_paid). A completed payment is
    never settled a second time.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    payment_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending")
    payment_method = db.Column(db.String(32), nullable=False, default="bank_transfer")

    bank_name = db.Column(db.String(100), nullable=True)
    account_number = db.Column(db.String(64), nullable=True)
    payment_code = db.Column(db.String(64), nullable=True)
    qr_code_url = db.Column(db.String(500), nullable=True)

    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payment_number": self.payment_number,
            "amount": to_money_str(self.amount),
            "status": self.status,
            "payment_method": self.payment_method,
            "bank_name": self.bank_name,
            "account_number": self.account_number,
            "payment_code": self.payment_code,
            "qr_code_url": self.qr_code_url,
            "order_id": self.order_id,
            "paid_at": to_utc_z(self.paid_at),
            "created_at": to_utc_z(self.created_at),
        }


class Transaction(db.Model):
    """
    Per-item ledger entry created when a payment is settled.

    One row per (payment, order item); the unique constraint keeps a resumed
    settlement from writing a second row for the same line.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("payment_id", "order_item_id", name="uq_transactions_payment_item"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    order_item_id = db.Column(db.String(36), db.ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True)
    payment_id = db.Column(db.String(36), db.ForeignKey("payments.id", ondelete="SET NULL"), nullable=True, index=True)
    invoice_id = db.Column(db.String(36), db.ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True)

    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)

    status = db.Column(db.String(32), nullable=False, default="approved")
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "order_item_id": self.order_item_id,
            "payment_id": self.payment_id,
            "invoice_id": self.invoice_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "amount": to_money_str(self.amount),
            "status": self.status,
            "transaction_date": to_utc_z(self.transaction_date),
            "notes": self.notes,
        }
