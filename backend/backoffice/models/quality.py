from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ._ids import new_id


class RejectedItem(db.Model):
    """
    Material rejected at intake.

    Creating one removes the quantity from stock (clamped at zero);
    resolving it afterwards has no stock effect.
    """
    __tablename__ = "rejected_items"
    __table_args__ = (
        db.Index("ix_rejected_items_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    product_id = db.Column(db.String(36), db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending")

    # Acting admin who recorded the rejection
    seller_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "reason": self.reason,
            "status": self.status,
            "seller_id": self.seller_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ChatMessage(db.Model):
    """
    Append-only discussion thread attached to a rejected item.

    sequence is assigned per rejected item at insert time and breaks ties
    between messages sharing a created_at.
    """
    __tablename__ = "chat_messages"
    __table_args__ = (
        db.Index("ix_chat_messages_thread", "rejected_item_id", "created_at", "sequence"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    rejected_item_id = db.Column(
        db.String(36), db.ForeignKey("rejected_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    sequence = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    sender = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rejected_item_id": self.rejected_item_id,
            "sender_id": self.sender_id,
            "sender_username": self.sender.username if self.sender else None,
            "message": self.message,
            "sequence": self.sequence,
            "created_at": to_utc_z(self.created_at),
        }


class Return(db.Model):
    """
    Return of goods to a supplier.

    Record-only: neither creating nor approving a return touches stock.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.Index("ix_returns_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    return_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    product_id = db.Column(db.String(36), db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending")

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_number": self.return_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "reason": self.reason,
            "status": self.status,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
