# Overview: Service-layer operations for document numbers; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Invoice, Order, Payment, Return
from ..time_utils import epoch_millis


class DocumentNumberError(Exception):
    """Raised when a document number cannot be allocated."""
    pass


# document_type -> (model, number column, config key for the prefix)
_DOCUMENT_TYPES = {
    "order": (Order, "order_number", "ORDER_NUMBER_PREFIX"),
    "invoice": (Invoice, "invoice_number", "INVOICE_NUMBER_PREFIX"),
    "payment": (Payment, "payment_number", "PAYMENT_NUMBER_PREFIX"),
    "return": (Return, "return_number", "RETURN_NUMBER_PREFIX"),
}

MAX_PROBES = 1000


def next_document_number(document_type: str, *, now_ms: int | None = None) -> str:
    """
    Allocate a human-readable number "<PREFIX>-<epoch milliseconds>".

    Two documents created within the same millisecond would collide, so the
    millisecond value is bumped until a free number is found. The unique
    index on the number column still rejects a concurrent duplicate at
    commit time.
    """
    if document_type not in _DOCUMENT_TYPES:
        raise DocumentNumberError(f"Unknown document type: {document_type}")

    model, column_name, prefix_key = _DOCUMENT_TYPES[document_type]
    column = getattr(model, column_name)
    prefix = current_app.config.get(prefix_key, document_type[:3].upper())

    millis = now_ms if now_ms is not None else epoch_millis()
    for _ in range(MAX_PROBES):
        candidate = f"{prefix}-{millis}"
        taken = db.session.query(column).filter(column == candidate).first()
        if not taken:
            return candidate
        millis += 1

    raise DocumentNumberError(f"Could not allocate a {document_type} number")
