"""
Fulfillment and delivery tests.

Verifies:
- processing -> in_transit -> delivered, forward only
- Delivery records supplier history, approves transactions and
  replenishes stock exactly once per item
- A delivery interrupted mid-replenish resumes without double counting
"""

import pytest

from backoffice.models import SupplierHistory, Transaction, WorkflowStep
from backoffice.services import (
    fulfillment_service,
    inventory_service,
    order_service,
    payment_service,
    supplier_service,
    workflow_service,
)
from backoffice.services.fulfillment_service import FulfillmentError
from backoffice.services.workflow_service import WorkflowError
from backoffice.validation import ValidationError


@pytest.fixture
def paid_order(db_session, staff, rice, sugar):
    placement = order_service.create_order(
        staff,
        {"supplier_name": "PT Beras Jaya", "supplier_contact": "0812-555-0101"},
        [
            {"product_id": rice.id, "quantity": 3},
            {"product_id": sugar.id, "quantity": 2},
        ],
    )
    payment_service.mark_paid(placement.payment.id, staff)
    return placement.order


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================


class TestTransitions:

    def test_processing_to_in_transit(self, db_session, staff, paid_order):
        result = fulfillment_service.advance_order_status(paid_order.id, "in_transit", staff)
        assert result.order.status == order_service.ORDER_STATUS_IN_TRANSIT
        assert result.run is None

    def test_cannot_move_backwards(self, db_session, staff, paid_order):
        fulfillment_service.advance_order_status(paid_order.id, "in_transit", staff)
        with pytest.raises(FulfillmentError):
            fulfillment_service.advance_order_status(paid_order.id, "processing", staff)

    def test_same_status_refused(self, db_session, staff, paid_order):
        with pytest.raises(FulfillmentError):
            fulfillment_service.advance_order_status(paid_order.id, "processing", staff)

    def test_unknown_status_refused(self, db_session, staff, paid_order):
        with pytest.raises(ValidationError):
            fulfillment_service.advance_order_status(paid_order.id, "lost", staff)

    def test_unpaid_order_is_not_in_fulfillment(self, db_session, staff, rice):
        placement = order_service.create_order(
            staff, {"supplier_name": "PT Beras Jaya"}, [{"product_id": rice.id, "quantity": 1}]
        )
        with pytest.raises(FulfillmentError):
            fulfillment_service.advance_order_status(placement.order.id, "delivered", staff)

    def test_submit_shipment_moves_open_order_to_processing(self, db_session, staff, rice):
        placement = order_service.create_order(
            staff, {"supplier_name": "PT Beras Jaya"}, [{"product_id": rice.id, "quantity": 1}]
        )
        order = fulfillment_service.submit_shipment(placement.invoice.id)
        assert order.status == order_service.ORDER_STATUS_PROCESSING

        with pytest.raises(FulfillmentError):
            fulfillment_service.submit_shipment(placement.invoice.id)

    def test_fulfillment_list_only_shows_fulfillment_states(self, db_session, staff, paid_order, rice):
        order_service.create_order(
            staff, {"supplier_name": "Other"}, [{"product_id": rice.id, "quantity": 1}]
        )
        orders = fulfillment_service.list_fulfillment_orders()
        assert [o.id for o in orders] == [paid_order.id]


# =============================================================================
# DELIVERY
# =============================================================================


class TestDelivery:

    def test_delivery_replenishes_and_records_history(self, db_session, staff, paid_order, rice, sugar):
        fulfillment_service.advance_order_status(paid_order.id, "in_transit", staff)
        result = fulfillment_service.advance_order_status(paid_order.id, "delivered", staff)

        assert result.order.status == order_service.ORDER_STATUS_DELIVERED
        assert result.run.status == workflow_service.RUN_STATUS_COMPLETED

        db_session.refresh(rice)
        db_session.refresh(sugar)
        assert rice.quantity == 13
        assert sugar.quantity == 7

        rows = supplier_service.list_supplier_history(order_id=paid_order.id)
        assert len(rows) == 2
        assert {r.supplier_name for r in rows} == {"PT Beras Jaya"}
        assert {r.supplier_phone for r in rows} == {"0812-555-0101"}
        assert {r.stock_status for r in rows} == {supplier_service.STOCK_STATUS_RECEIVED}

        statuses = {t.status for t in db_session.query(Transaction).filter_by(order_id=paid_order.id)}
        assert statuses == {payment_service.TRANSACTION_STATUS_APPROVED}

        assert [s["applied_delta"] for s in result.to_dict()["stock"]] == [3, 2]

    def test_delivery_may_skip_in_transit(self, db_session, staff, paid_order, rice):
        fulfillment_service.advance_order_status(paid_order.id, "delivered", staff)
        db_session.refresh(rice)
        assert rice.quantity == 13

    def test_delivered_is_terminal(self, db_session, staff, paid_order, rice):
        fulfillment_service.advance_order_status(paid_order.id, "delivered", staff)

        with pytest.raises(FulfillmentError):
            fulfillment_service.advance_order_status(paid_order.id, "delivered", staff)
        with pytest.raises(FulfillmentError):
            fulfillment_service.advance_order_status(paid_order.id, "in_transit", staff)

        db_session.refresh(rice)
        assert rice.quantity == 13
        assert db_session.query(SupplierHistory).count() == 2

    def test_missing_supplier_name_recorded_as_unknown(self, db_session, staff, rice):
        order = order_service.create_quick_order(
            staff, [{"product_name": "Chili", "quantity": 1, "unit_price": "1000"}]
        )
        rows = supplier_service.record_order_arrivals(order)
        assert [r.supplier_name for r in rows] == [supplier_service.UNKNOWN_SUPPLIER]


class TestDeliveryResume:

    def test_interrupted_replenish_resumes_without_double_count(
        self, db_session, staff, paid_order, rice, sugar, monkeypatch
    ):
        real_adjust = inventory_service.adjust_stock
        calls = []

        def flaky_adjust(material_id, delta, *, commit=True):
            calls.append(material_id)
            if len(calls) == 2:
                raise RuntimeError("connection dropped")
            return real_adjust(material_id, delta, commit=commit)

        monkeypatch.setattr(inventory_service, "adjust_stock", flaky_adjust)

        with pytest.raises(WorkflowError) as excinfo:
            fulfillment_service.advance_order_status(paid_order.id, "delivered", staff)

        run = excinfo.value.run
        assert run.current_step == "replenish_stock"

        # The step is atomic: the first item's increment was rolled back with it
        db_session.refresh(rice)
        db_session.refresh(sugar)
        assert rice.quantity == 10
        assert sugar.quantity == 5

        # Earlier steps stay committed
        db_session.refresh(paid_order)
        assert paid_order.status == order_service.ORDER_STATUS_DELIVERED
        assert db_session.query(SupplierHistory).count() == 2

        monkeypatch.undo()
        resumed = workflow_service.resume_workflow(run.id)
        assert resumed.status == workflow_service.RUN_STATUS_COMPLETED

        db_session.refresh(rice)
        db_session.refresh(sugar)
        assert rice.quantity == 13
        assert sugar.quantity == 7
        assert db_session.query(SupplierHistory).count() == 2

        history_step = db_session.query(WorkflowStep).filter_by(run_id=run.id, name="record_supplier_history").one()
        assert history_step.attempts == 1
