"""
Full procurement chain with reference figures: order, settle, deliver,
then rejection write-offs.
"""

from decimal import Decimal

from backoffice.models import Invoice, Payment, SupplierHistory, Transaction
from backoffice.services import fulfillment_service, order_service, payment_service, rejection_service


def test_order_settle_deliver(db_session, staff, material_factory):
    rice = material_factory("Rice", "Grain", "12000", 0)

    placement = order_service.create_order(
        staff, {"supplier_name": "PT Beras Jaya"}, [{"product_id": rice.id, "quantity": 10}]
    )
    assert placement.order.total_amount == Decimal("120000.00")
    assert db_session.query(Invoice).filter_by(order_id=placement.order.id).count() == 1
    assert placement.invoice.total_amount == Decimal("120000.00")
    assert db_session.query(Payment).filter_by(order_id=placement.order.id).count() == 1
    assert placement.payment.amount == Decimal("120000.00")
    assert placement.payment.status == "pending"

    settlement = payment_service.mark_paid(placement.payment.id, staff)
    assert settlement.order.status == "processing"
    txns = db_session.query(Transaction).filter_by(order_id=placement.order.id).all()
    assert len(txns) == 1
    assert txns[0].amount == Decimal("120000.00")
    assert txns[0].status == "approved"

    fulfillment_service.advance_order_status(placement.order.id, "delivered", staff)
    db_session.refresh(rice)
    assert rice.quantity == 10

    history = db_session.query(SupplierHistory).filter_by(order_id=placement.order.id).all()
    assert len(history) == 1
    assert placement.order.order_number in history[0].notes
    assert {t.status for t in db_session.query(Transaction).filter_by(order_id=placement.order.id)} == {"approved"}

    # Totals never drift from the persisted items
    assert order_service.recompute_order_total(placement.order.id) == Decimal("120000.00")


def test_rejection_within_stock(db_session, admin, material_factory):
    chili = material_factory("Red Chili", "Spice", "30000", 5)

    result = rejection_service.reject_material(chili.id, 3, "Rotten", admin)

    db_session.refresh(chili)
    assert chili.quantity == 2
    assert result.rejected_item.status == "pending"


def test_rejection_beyond_stock_clamps(db_session, admin, material_factory):
    oil = material_factory("Cooking Oil", "Oil", "25000", 4)

    rejection_service.reject_material(oil.id, 10, "Leaking", admin)

    db_session.refresh(oil)
    assert oil.quantity == 0
