from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import to_money_str
from ._ids import new_id


class Material(db.Model):
    """
    Raw material master data with its on-hand stock.

    STOCK: quantity is never written from a client payload. It moves only
    through inventory_service.adjust_stock (delivery, rejection, admin
    adjustment), which clamps at zero. The CHECK constraint is the last
    line behind that clamp.

    Table name stays "products": order items, rejections and inspections
    all reference products.id.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_category", "category"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(200), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=False)
    color = db.Column(db.String(50), nullable=True)

    price = db.Column(db.Numeric(14, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    # Creator
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Material id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "color": self.color,
            "price": to_money_str(self.price),
            "quantity": self.quantity,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class FoodCondition(db.Model):
    """
    Quality inspection of a material batch.

    Informational only: recording an inspection never moves stock.
    """
    __tablename__ = "food_conditions"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    product_id = db.Column(db.String(36), db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = db.Column(db.String(200), nullable=False)

    condition = db.Column(db.String(100), nullable=False)
    fit_for_processing = db.Column(db.Boolean, nullable=False, default=True)

    inspection_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    inspector_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "condition": self.condition,
            "fit_for_processing": self.fit_for_processing,
            "inspection_date": to_utc_z(self.inspection_date),
            "inspector_id": self.inspector_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
