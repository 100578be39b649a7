# Overview: Service-layer operations for recap documents; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Order, RecapDocument
from ..validation import ValidationError, require_text


FILE_TYPES = ("pdf", "csv")


def add_recap_document(acting_user, order_id=None, document_name=None, document_url=None, file_type="pdf") -> RecapDocument:
    """Register an exported recap file; rendering and storage happen elsewhere."""
    if file_type not in FILE_TYPES:
        raise ValidationError(f"file_type must be one of {', '.join(FILE_TYPES)}")
    if order_id and not db.session.get(Order, order_id):
        raise ValidationError("order_id does not reference an order")

    data = {"document_name": document_name, "document_url": document_url}
    doc = RecapDocument(
        order_id=order_id or None,
        document_name=require_text(data, "document_name", max_length=255),
        document_url=require_text(data, "document_url", max_length=1000),
        file_type=file_type,
        created_by=acting_user.id,
    )
    db.session.add(doc)
    db.session.commit()
    return doc


def list_recap_documents(order_id: str | None = None) -> list[RecapDocument]:
    query = db.session.query(RecapDocument)
    if order_id:
        query = query.filter(RecapDocument.order_id == order_id)
    return query.order_by(RecapDocument.created_at.desc()).all()
