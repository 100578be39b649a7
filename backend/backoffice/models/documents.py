from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ._ids import new_id


class RecapDocument(db.Model):
    """Reference to an exported recap (the file itself lives elsewhere)."""
    __tablename__ = "recap_documents"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)

    document_name = db.Column(db.String(255), nullable=False)
    document_url = db.Column(db.String(1000), nullable=False)
    file_type = db.Column(db.String(16), nullable=False, default="pdf")

    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "document_name": self.document_name,
            "document_url": self.document_url,
            "file_type": self.file_type,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
