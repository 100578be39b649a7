# Overview: Service-layer operations for analytics; encapsulates business logic and database work.

"""
Dashboard figures. Read-only aggregate queries; nothing here writes.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import FoodCondition, Order, Payment, RejectedItem, Return, Transaction
from ..validation import to_money_str
from .payment_service import (
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_PENDING,
    TRANSACTION_STATUS_APPROVED,
    TRANSACTION_STATUS_REJECTED,
)


def _count(model, *criteria) -> int:
    return db.session.query(db.func.count(model.id)).filter(*criteria).scalar() or 0


def get_dashboard_stats() -> dict:
    total_amount = db.session.query(db.func.coalesce(db.func.sum(Order.total_amount), 0)).scalar()

    orders_by_status = dict(
        db.session.query(Order.status, db.func.count(Order.id)).group_by(Order.status).all()
    )

    return {
        "total_orders": _count(Order),
        "total_order_amount": to_money_str(Decimal(total_amount)),
        "orders_by_status": orders_by_status,
        "approved_transactions": _count(Transaction, Transaction.status == TRANSACTION_STATUS_APPROVED),
        "rejected_transactions": _count(Transaction, Transaction.status == TRANSACTION_STATUS_REJECTED),
        "pending_payments": _count(Payment, Payment.status == PAYMENT_STATUS_PENDING),
        "completed_payments": _count(Payment, Payment.status == PAYMENT_STATUS_COMPLETED),
        "total_returns": _count(Return),
        "total_rejected_items": _count(RejectedItem),
        "total_inspections": _count(FoodCondition),
        "fit_for_processing": _count(FoodCondition, FoodCondition.fit_for_processing.is_(True)),
    }
