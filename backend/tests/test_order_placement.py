"""
Order placement tests.

Verifies:
- Placing an order writes order + items, invoice and pending payment
- Totals are derived from material prices at placement time
- Later material edits do not touch placed orders
- Invalid input writes nothing
- A failed step leaves a resumable run and no duplicates on resume
"""

from decimal import Decimal

import pytest

from backoffice.models import Invoice, InvoiceItem, Order, OrderItem, Payment, WorkflowRun, WorkflowStep
from backoffice.services import invoice_service, order_service, workflow_service
from backoffice.services.order_service import OrderError
from backoffice.services.workflow_service import WorkflowError
from backoffice.validation import ConflictError, ValidationError


SUPPLIER = {"supplier_name": "PT Beras Jaya", "supplier_contact": "0812-555-0101"}


def _place(staff, rice, sugar):
    return order_service.create_order(
        staff,
        SUPPLIER,
        [
            {"product_id": rice.id, "quantity": 3},
            {"product_id": sugar.id, "quantity": 2},
        ],
    )


# =============================================================================
# HAPPY PATH
# =============================================================================


class TestPlaceOrder:

    def test_creates_order_invoice_and_pending_payment(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)

        order = placement.order
        assert order.status == order_service.ORDER_STATUS_DRAFT
        assert order.order_number.startswith("ORD-")
        assert order.supplier_name == "PT Beras Jaya"
        assert order.user_id == staff.id
        assert order.total_amount == Decimal("66000.00")
        assert [i.line_number for i in order.items] == [1, 2]

        invoice = placement.invoice
        assert invoice.order_id == order.id
        assert invoice.total_amount == order.total_amount
        assert invoice.status == invoice_service.INVOICE_STATUS_PENDING
        assert invoice.invoice_number.startswith("INV-")
        assert sorted((it.product_name, it.quantity, it.price) for it in invoice.items) == [
            ("Rice", 3, Decimal("12000.00")),
            ("Sugar", 2, Decimal("15000.00")),
        ]

        payment = placement.payment
        assert payment.order_id == order.id
        assert payment.amount == order.total_amount
        assert payment.status == "pending"
        assert payment.payment_method == "bank_transfer"

        assert placement.run.status == workflow_service.RUN_STATUS_COMPLETED

    def test_placing_does_not_touch_stock(self, db_session, staff, rice, sugar):
        _place(staff, rice, sugar)
        db_session.refresh(rice)
        db_session.refresh(sugar)
        assert rice.quantity == 10
        assert sugar.quantity == 5

    def test_total_matches_recomputed_items(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)
        assert order_service.recompute_order_total(placement.order.id) == placement.order.total_amount

    def test_price_snapshot_survives_material_edit(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)

        rice.price = Decimal("99999.00")
        rice.name = "Premium Rice"
        db_session.commit()

        item = db_session.query(OrderItem).filter_by(order_id=placement.order.id, line_number=1).one()
        assert item.product_name == "Rice"
        assert item.unit_price == Decimal("12000.00")
        assert item.total_price == Decimal("36000.00")

    def test_order_date_defaults_to_today(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)
        assert placement.order.order_date is not None

    def test_snapshot_contains_invoices_and_payments(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)
        snapshot = order_service.get_order_snapshot(placement.order.id)

        assert snapshot["order"]["total_amount"] == "66000.00"
        assert len(snapshot["order"]["items"]) == 2
        assert len(snapshot["invoices"]) == 1
        assert len(snapshot["payments"]) == 1
        assert snapshot["transactions"] == []


# =============================================================================
# VALIDATION (NOTHING WRITTEN)
# =============================================================================


class TestPlaceOrderValidation:

    @pytest.mark.parametrize(
        "items",
        [
            [],
            None,
            [{"quantity": 1}],
            [{"product_id": "missing", "quantity": 1}],
        ],
    )
    def test_bad_items_rejected(self, db_session, staff, items):
        with pytest.raises(ValidationError):
            order_service.create_order(staff, SUPPLIER, items)
        assert db_session.query(Order).count() == 0
        assert db_session.query(WorkflowRun).count() == 0

    @pytest.mark.parametrize("quantity", [0, -1, "2.5", "1e3", True])
    def test_bad_quantity_rejected(self, db_session, staff, rice, quantity):
        with pytest.raises(ValidationError):
            order_service.create_order(staff, SUPPLIER, [{"product_id": rice.id, "quantity": quantity}])
        assert db_session.query(Order).count() == 0

    def test_supplier_name_required(self, db_session, staff, rice):
        with pytest.raises(ValidationError):
            order_service.create_order(staff, {}, [{"product_id": rice.id, "quantity": 1}])
        assert db_session.query(Order).count() == 0

    def test_large_line_total_accepted(self, db_session, staff, rice):
        placement = order_service.create_order(staff, SUPPLIER, [{"product_id": rice.id, "quantity": 100}])

        assert placement.order.items[0].total_price == Decimal("1200000.00")
        assert placement.order.total_amount == Decimal("1200000.00")
        assert placement.invoice.total_amount == Decimal("1200000.00")
        assert placement.payment.amount == Decimal("1200000.00")

    def test_bad_delivery_date(self, db_session, staff, rice):
        with pytest.raises(ValidationError):
            order_service.create_order(
                staff,
                {**SUPPLIER, "delivery_date": "next tuesday"},
                [{"product_id": rice.id, "quantity": 1}],
            )


# =============================================================================
# FAILURE + RESUME
# =============================================================================


class TestPlacementFailure:

    def test_failed_invoice_step_is_reported_and_resumable(self, db_session, staff, rice, sugar, monkeypatch):
        def broken(order, user_id=None):
            raise RuntimeError("invoice store unavailable")

        monkeypatch.setattr(invoice_service, "create_invoice_for_order", broken)

        with pytest.raises(WorkflowError) as excinfo:
            _place(staff, rice, sugar)

        run = excinfo.value.run
        assert run.status == workflow_service.RUN_STATUS_FAILED
        assert run.current_step == "create_invoice"
        assert "invoice store unavailable" in run.error
        assert isinstance(excinfo.value.cause, RuntimeError)

        # The order step committed; nothing after it did
        assert db_session.query(Order).count() == 1
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(Payment).count() == 0

        monkeypatch.undo()
        resumed = workflow_service.resume_workflow(run.id)

        assert resumed.status == workflow_service.RUN_STATUS_COMPLETED
        assert db_session.query(Order).count() == 1
        assert db_session.query(Invoice).count() == 1
        assert db_session.query(InvoiceItem).count() == 2
        assert db_session.query(Payment).count() == 1

        placement = order_service.placement_from_run(resumed)
        assert placement.invoice.total_amount == placement.order.total_amount
        assert placement.payment.amount == placement.order.total_amount

        step = db_session.query(WorkflowStep).filter_by(run_id=run.id, name="create_invoice").one()
        assert step.attempts == 2
        assert step.status == workflow_service.STEP_STATUS_COMPLETED

        order_step = db_session.query(WorkflowStep).filter_by(run_id=run.id, name="create_order").one()
        assert order_step.attempts == 1

    def test_completed_run_cannot_be_resumed(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)
        with pytest.raises(ConflictError):
            workflow_service.resume_workflow(placement.run.id)


# =============================================================================
# CANCEL / QUICK ORDERS
# =============================================================================


class TestCancelAndQuickOrders:

    def test_cancel_draft_order(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)
        order = order_service.cancel_order(placement.order.id)
        assert order.status == order_service.ORDER_STATUS_CANCELLED

    def test_cannot_cancel_twice(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)
        order_service.cancel_order(placement.order.id)
        with pytest.raises(OrderError):
            order_service.cancel_order(placement.order.id)

    def test_quick_order_has_no_material_link(self, db_session, staff):
        order = order_service.create_quick_order(
            staff,
            [{"product_name": "Red Chili", "quantity": 2, "unit_price": "15000"}],
            supplier_name="Market stall",
        )
        assert order.status == order_service.ORDER_STATUS_PENDING
        assert order.total_amount == Decimal("30000.00")
        assert order.items[0].product_id is None
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(Payment).count() == 0

    def test_quick_order_large_line_total(self, db_session, staff):
        order = order_service.create_quick_order(
            staff, [{"product_name": "Chili", "quantity": 100, "unit_price": "15000"}]
        )
        assert order.items[0].total_price == Decimal("1500000.00")
        assert order.total_amount == Decimal("1500000.00")

    @pytest.mark.parametrize("unit_price", ["1000000", "0", "-5"])
    def test_quick_order_unit_price_bound(self, db_session, staff, unit_price):
        with pytest.raises(ValidationError):
            order_service.create_quick_order(
                staff, [{"product_name": "Saffron", "quantity": 1, "unit_price": unit_price}]
            )
        assert db_session.query(Order).count() == 0

    def test_quick_pay(self, db_session, staff):
        order = order_service.create_quick_order(
            staff, [{"product_name": "Garlic", "quantity": 1, "unit_price": "8000"}]
        )
        paid = order_service.mark_quick_order_paid(order.id)
        assert paid.status == order_service.ORDER_STATUS_PAID

        with pytest.raises(OrderError):
            order_service.mark_quick_order_paid(order.id)

    def test_quick_pay_refused_for_managed_orders(self, db_session, staff, rice, sugar):
        placement = _place(staff, rice, sugar)
        with pytest.raises(OrderError):
            order_service.mark_quick_order_paid(placement.order.id)
