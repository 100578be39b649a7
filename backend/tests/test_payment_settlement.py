"""
Payment settlement tests.

Verifies:
- mark_paid completes the payment, moves the order to processing and
  writes one approved transaction per order item
- A completed payment cannot be settled again
- Payments without a usable order fail before anything is written
- Orders already in fulfillment are not moved back
"""

from decimal import Decimal

import pytest

from backoffice.models import Payment, Transaction, WorkflowRun
from backoffice.services import fulfillment_service, order_service, payment_service, workflow_service
from backoffice.services.payment_service import PaymentError
from backoffice.services.workflow_service import WorkflowError
from backoffice.validation import ConflictError, ValidationError


@pytest.fixture
def placement(db_session, staff, rice, sugar):
    return order_service.create_order(
        staff,
        {"supplier_name": "PT Beras Jaya"},
        [
            {"product_id": rice.id, "quantity": 3},
            {"product_id": sugar.id, "quantity": 2},
        ],
    )


class TestMarkPaid:

    def test_settles_payment_order_and_transactions(self, db_session, staff, placement):
        settlement = payment_service.mark_paid(placement.payment.id, staff)

        assert settlement.payment.status == payment_service.PAYMENT_STATUS_COMPLETED
        assert settlement.payment.paid_at is not None
        assert settlement.order.status == order_service.ORDER_STATUS_PROCESSING
        assert settlement.run.status == workflow_service.RUN_STATUS_COMPLETED

        txns = settlement.transactions
        assert len(txns) == 2
        assert {t.status for t in txns} == {payment_service.TRANSACTION_STATUS_APPROVED}
        assert {t.notes for t in txns} == {payment_service.AUTO_APPROVE_NOTE}
        assert {t.invoice_id for t in txns} == {placement.invoice.id}
        assert sum((t.amount for t in txns), Decimal("0")) == placement.order.total_amount
        assert sorted((t.product_name, t.quantity) for t in txns) == [("Rice", 3), ("Sugar", 2)]

    def test_invoice_status_is_left_pending(self, db_session, staff, placement):
        payment_service.mark_paid(placement.payment.id, staff)
        db_session.refresh(placement.invoice)
        assert placement.invoice.status == "pending"

    def test_stock_unchanged_by_settlement(self, db_session, staff, placement, rice):
        payment_service.mark_paid(placement.payment.id, staff)
        db_session.refresh(rice)
        assert rice.quantity == 10

    def test_second_settlement_refused(self, db_session, staff, placement):
        payment_service.mark_paid(placement.payment.id, staff)

        with pytest.raises(ConflictError):
            payment_service.mark_paid(placement.payment.id, staff)

        assert db_session.query(Transaction).count() == 2
        assert db_session.query(WorkflowRun).filter_by(kind=workflow_service.KIND_MARK_PAID).count() == 1

    def test_lost_race_fails_the_run(self, db_session, staff, placement):
        # Another settlement completed the payment between the precheck and the claim
        run = workflow_service.run_workflow(
            workflow_service.KIND_MARK_PAID,
            {"payment_id": placement.payment.id, "order_id": placement.order.id},
            actor_user_id=staff.id,
        )
        assert run.status == workflow_service.RUN_STATUS_COMPLETED

        with pytest.raises(WorkflowError) as excinfo:
            workflow_service.run_workflow(
                workflow_service.KIND_MARK_PAID,
                {"payment_id": placement.payment.id, "order_id": placement.order.id},
                actor_user_id=staff.id,
            )
        assert isinstance(excinfo.value.cause, ConflictError)
        assert excinfo.value.failed_step == "complete_payment"
        assert db_session.query(Transaction).count() == 2

    def test_missing_payment(self, db_session, staff):
        from backoffice.validation import NotFoundError

        with pytest.raises(NotFoundError):
            payment_service.mark_paid("does-not-exist", staff)

    def test_payment_without_order_fails_cleanly(self, db_session, staff):
        orphan = Payment(payment_number="PAY-1", amount=Decimal("10.00"), status="pending")
        db_session.add(orphan)
        db_session.commit()

        with pytest.raises(PaymentError):
            payment_service.mark_paid(orphan.id, staff)

        db_session.refresh(orphan)
        assert orphan.status == "pending"
        assert orphan.paid_at is None
        assert db_session.query(Transaction).count() == 0
        assert db_session.query(WorkflowRun).count() == 0

    def test_cancelled_order_cannot_be_settled(self, db_session, staff, placement):
        order_service.cancel_order(placement.order.id)
        with pytest.raises(PaymentError):
            payment_service.mark_paid(placement.payment.id, staff)

    def test_order_in_transit_is_not_moved_back(self, db_session, staff, placement):
        payment_service.mark_paid(placement.payment.id, staff)
        fulfillment_service.advance_order_status(placement.order.id, "in_transit", staff)

        # A second payment opened from the invoice and settled later
        extra = payment_service.create_payment_for_invoice(placement.invoice.id)
        settlement = payment_service.mark_paid(extra.id, staff)

        assert settlement.order.status == order_service.ORDER_STATUS_IN_TRANSIT
        assert settlement.run.context["order_advanced"] is False
        assert len(settlement.transactions) == 2


class TestPaymentDetails:

    def test_update_bank_details(self, db_session, placement):
        payment = payment_service.update_payment_details(
            placement.payment.id,
            {"bank_name": "Bank Mandiri", "account_number": "1234567890"},
        )
        assert payment.bank_name == "Bank Mandiri"
        assert payment.account_number == "1234567890"

    def test_status_not_writable(self, db_session, placement):
        with pytest.raises(ValidationError):
            payment_service.update_payment_details(placement.payment.id, {"status": "completed"})

    def test_list_payments_includes_order_info(self, db_session, placement):
        rows = payment_service.list_payments()
        assert len(rows) == 1
        assert rows[0]["order_number"] == placement.order.order_number
        assert rows[0]["supplier_name"] == "PT Beras Jaya"
