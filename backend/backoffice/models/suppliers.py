from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ._ids import new_id


class SupplierHistory(db.Model):
    """
    Arrival record per delivered order item (or a manual entry).

    Delivery writes exactly one row per order item; the supplier details are
    copied from the order at that moment.
    """
    __tablename__ = "supplier_history"
    __table_args__ = (
        db.UniqueConstraint("order_item_id", name="uq_supplier_history_order_item"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    order_item_id = db.Column(db.String(36), db.ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True)

    supplier_name = db.Column(db.String(200), nullable=False)
    supplier_phone = db.Column(db.String(200), nullable=True)
    supplier_email = db.Column(db.String(255), nullable=True)
    supplier_address = db.Column(db.Text, nullable=True)

    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    arrival_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    stock_status = db.Column(db.String(32), nullable=False, default="received")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "order_item_id": self.order_item_id,
            "supplier_name": self.supplier_name,
            "supplier_phone": self.supplier_phone,
            "supplier_email": self.supplier_email,
            "supplier_address": self.supplier_address,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "arrival_date": to_utc_z(self.arrival_date),
            "stock_status": self.stock_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
