# Overview: Pytest coverage for installment payments, mark-as-paid and late fees.

"""
Payment Recorder Tests

Default sale (conftest): 2023-05-15, 3 installments of 5000 cents due
2023-06-15, 2023-07-15, 2023-08-15.
"""

from datetime import date, datetime

import pytest

from credit_ledger.errors import NotFoundError, ValidationError
from credit_ledger.extensions import db
from credit_ledger.models import Installment, PaymentTransaction
from credit_ledger.services import installment_service, payment_service


def _ids(sale):
    return [i.id for i in sale.installments]


def _due_dates(sale_id):
    return [i.due_date for i in installment_service.get_installments_by_sale(sale_id)]


class TestRecordPayment:

    def test_partial_payment_stays_pending(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]

        result = payment_service.record_payment(first_id, 2000, "cash", payment_date="2023-06-15T12:00:00Z")

        installment = result["installment"]
        assert installment.paid_amount_cents == 2000
        assert installment.balance_cents == 3000
        assert installment.status == "pending"
        assert installment.paid_date is None
        assert result["rescheduled"] is None

        transaction = result["transaction"]
        assert transaction.amount_cents == 2000
        assert transaction.status == "completed"
        assert transaction.installment_id == first_id
        assert transaction.sale_id == installment_sale.id

    def test_completing_payment_marks_paid(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]

        payment_service.record_payment(first_id, 2000, "cash", payment_date="2023-06-14T12:00:00Z")
        result = payment_service.record_payment(
            first_id, 3000, "bank_transfer", reference="TRF-991", payment_date="2023-06-15T12:00:00Z"
        )

        installment = result["installment"]
        assert installment.status == "paid"
        assert installment.balance_cents == 0
        assert installment.paid_date == datetime(2023, 6, 15, 12, 0)
        assert result["transaction"].payment_reference == "TRF-991"

        completed = db.session.query(PaymentTransaction).filter_by(installment_id=first_id).all()
        assert sum(t.amount_cents for t in completed) == installment.paid_amount_cents

    def test_early_payment_is_noted(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]

        result = payment_service.record_payment(first_id, 5000, "cash", payment_date="2023-06-10T09:00:00Z")

        assert result["installment"].notes == "Pago adelantado"
        assert result["rescheduled"] is None
        assert _due_dates(installment_sale.id) == [date(2023, 6, 15), date(2023, 7, 15), date(2023, 8, 15)]

    def test_late_payment_reschedules_remaining(self, db_session, installment_sale):
        first_id, second_id, _ = _ids(installment_sale)

        result = payment_service.record_payment(first_id, 5000, "cash", payment_date="2023-07-20T10:00:00Z")

        assert result["installment"].notes is None
        assert result["rescheduled"].installment_id == second_id
        assert result["rescheduled"].new_due_date == date(2023, 8, 15)
        assert _due_dates(installment_sale.id) == [date(2023, 6, 15), date(2023, 8, 15), date(2023, 9, 15)]

    def test_overpayment_changes_nothing(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]

        with pytest.raises(ValidationError) as exc_info:
            payment_service.record_payment(first_id, 5001, "cash")

        assert exc_info.value.details == {"remaining_cents": 5000}

        installment = db.session.get(Installment, first_id)
        assert installment.paid_amount_cents == 0
        assert installment.balance_cents == 5000
        assert installment.status == "pending"
        assert db.session.query(PaymentTransaction).count() == 0

    @pytest.mark.parametrize("amount", [0, -100, 10.5, "5000"])
    def test_invalid_amount(self, db_session, installment_sale, amount):
        with pytest.raises(ValidationError):
            payment_service.record_payment(_ids(installment_sale)[0], amount, "cash")

    def test_invalid_method(self, db_session, installment_sale):
        with pytest.raises(ValidationError):
            payment_service.record_payment(_ids(installment_sale)[0], 1000, "bitcoin")

    def test_missing_installment(self, db_session):
        with pytest.raises(NotFoundError):
            payment_service.record_payment(987654, 1000, "cash")

    def test_paid_installment_rejects_more_money(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]
        payment_service.record_payment(first_id, 5000, "cash", payment_date="2023-06-15T12:00:00Z")

        with pytest.raises(ValidationError):
            payment_service.record_payment(first_id, 1, "cash")


class TestMarkAsPaid:

    def test_logs_synthetic_transaction_for_remainder(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]
        payment_service.record_payment(first_id, 2000, "cash", payment_date="2023-06-01T12:00:00Z")

        result = payment_service.mark_as_paid(first_id, payment_date="2023-06-15T12:00:00Z")

        installment = result["installment"]
        assert installment.status == "paid"
        assert installment.paid_amount_cents == 5000
        assert installment.balance_cents == 0

        transaction = result["transaction"]
        assert transaction.amount_cents == 3000
        assert transaction.payment_method == "cash"
        assert transaction.payment_reference == "Marcado como pagado"

    def test_reschedules_like_a_payment(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]

        result = payment_service.mark_as_paid(first_id, payment_date="2023-08-03T12:00:00Z")

        assert result["rescheduled"] is not None
        assert _due_dates(installment_sale.id) == [date(2023, 6, 15), date(2023, 9, 15), date(2023, 10, 15)]

    def test_already_settled_installment_logs_nothing(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]
        payment_service.record_payment(first_id, 5000, "cash", payment_date="2023-06-15T12:00:00Z")

        result = payment_service.mark_as_paid(first_id)

        assert result["transaction"] is None
        assert db.session.query(PaymentTransaction).filter_by(installment_id=first_id).count() == 1


class TestLateFee:

    def test_fee_raises_amount_not_balance(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]

        installment = payment_service.apply_late_fee(first_id, 500)

        assert installment.amount_cents == 5500
        assert installment.late_fee_cents == 500
        assert installment.late_fee_applied is True
        assert installment.balance_cents == 5000

    def test_next_payment_catches_balance_up(self, db_session, installment_sale):
        first_id = _ids(installment_sale)[0]
        payment_service.apply_late_fee(first_id, 500)

        result = payment_service.record_payment(first_id, 5000, "cash", payment_date="2023-06-20T12:00:00Z")

        assert result["installment"].balance_cents == 500
        assert result["installment"].status == "pending"

    def test_fee_must_be_positive(self, db_session, installment_sale):
        with pytest.raises(ValidationError):
            payment_service.apply_late_fee(_ids(installment_sale)[0], 0)
