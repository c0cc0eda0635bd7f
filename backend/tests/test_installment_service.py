# Overview: Pytest coverage for manual installment edits, cascade rescheduling and notification reads.

from datetime import date, datetime

import pytest

from credit_ledger.errors import NotFoundError, ValidationError
from credit_ledger.extensions import db
from credit_ledger.models import Installment, PaymentTransaction
from credit_ledger.services import installment_service, payment_service


def _rows(sale_id):
    return installment_service.get_installments_by_sale(sale_id)


class TestUpdateInstallment:

    def test_due_date_edit_keeps_positions(self, db_session, installment_sale):
        second_id = installment_sale.installments[1].id

        installment_service.update_installment(second_id, {"due_date": "2023-07-25"})

        rows = _rows(installment_sale.id)
        assert [r.installment_number for r in rows] == [1, 2, 3]
        assert [r.id for r in rows] == [i.id for i in installment_sale.installments]
        assert rows[1].due_date == date(2023, 7, 25)

    def test_status_edit_reschedules_sale(self, db_session, installment_sale):
        first_id = installment_sale.installments[0].id

        installment_service.update_installment(first_id, {
            "status": "paid",
            "paid_date": "2023-08-02T10:00:00Z",
        })

        assert [r.due_date for r in _rows(installment_sale.id)] == [
            date(2023, 6, 15),
            date(2023, 9, 15),
            date(2023, 10, 15),
        ]

    def test_unchanged_values_do_not_reschedule(self, db_session, installment_sale):
        first_id = installment_sale.installments[0].id
        installment_service.update_installment(first_id, {"status": "paid", "paid_date": "2023-08-02T10:00:00Z"})
        # move installment 2 by hand; re-sending the same status must not undo it
        db.session.get(Installment, installment_sale.installments[1].id).due_date = date(2023, 9, 20)
        db.session.commit()

        installment_service.update_installment(first_id, {"status": "paid", "notes": "revisado"})

        assert _rows(installment_sale.id)[1].due_date == date(2023, 9, 20)

    def test_balance_follows_amounts(self, db_session, installment_sale):
        first_id = installment_sale.installments[0].id

        installment = installment_service.update_installment(first_id, {
            "paid_amount_cents": 1000,
            "balance_cents": 4000,
        })

        assert installment.balance_cents == 4000

    def test_inconsistent_balance_is_rejected(self, db_session, installment_sale):
        first_id = installment_sale.installments[0].id

        with pytest.raises(ValidationError):
            installment_service.update_installment(first_id, {"paid_amount_cents": 1000, "balance_cents": 5000})

        assert db.session.get(Installment, first_id).paid_amount_cents == 0

    def test_invalid_status(self, db_session, installment_sale):
        with pytest.raises(ValidationError):
            installment_service.update_installment(installment_sale.installments[0].id, {"status": "partial"})

    def test_unknown_keys_are_ignored(self, db_session, installment_sale):
        first_id = installment_sale.installments[0].id

        installment = installment_service.update_installment(first_id, {
            "installment_number": 9,
            "sale_id": 42,
            "notes": "llamar el viernes",
        })

        assert installment.installment_number == 1
        assert installment.sale_id == installment_sale.id
        assert installment.notes == "llamar el viernes"

    def test_missing_installment(self, db_session):
        with pytest.raises(NotFoundError):
            installment_service.update_installment(987654, {"notes": "x"})


class TestManualRows:

    def test_create_installment_defaults_originals(self, db_session, installment_sale):
        installment = installment_service.create_installment({
            "sale_id": installment_sale.id,
            "installment_number": 4,
            "due_date": "2023-09-15",
            "amount_cents": 2500,
        })

        assert installment.original_installment_number == 4
        assert installment.original_due_date == date(2023, 9, 15)
        assert installment.balance_cents == 2500
        assert [r.installment_number for r in _rows(installment_sale.id)] == [1, 2, 3, 4]

    def test_create_installment_rejects_taken_number(self, db_session, installment_sale):
        with pytest.raises(ValidationError):
            installment_service.create_installment({
                "sale_id": installment_sale.id,
                "installment_number": 2,
                "due_date": "2023-09-15",
                "amount_cents": 2500,
            })

    def test_create_installment_requires_sale(self, db_session):
        with pytest.raises(NotFoundError):
            installment_service.create_installment({
                "sale_id": 987654,
                "installment_number": 1,
                "due_date": "2023-09-15",
                "amount_cents": 2500,
            })

    def test_delete_installment_removes_its_transactions(self, db_session, installment_sale):
        first_id = installment_sale.installments[0].id
        payment_service.record_payment(first_id, 1000, "cash")

        installment_service.delete_installment(first_id)

        assert db.session.get(Installment, first_id) is None
        assert db.session.query(PaymentTransaction).filter_by(installment_id=first_id).count() == 0


class TestReschedule:

    def test_reschedule_sale_is_idempotent(self, db_session, installment_sale):
        first_id = installment_sale.installments[0].id
        installment = db.session.get(Installment, first_id)
        installment.status = "paid"
        installment.paid_date = datetime(2023, 7, 20, 10, 0)
        db.session.commit()

        first = installment_service.reschedule_sale(installment_sale.id)
        second = installment_service.reschedule_sale(installment_sale.id)

        assert [u.new_due_date for u in first] == [date(2023, 8, 15), date(2023, 9, 15)]
        assert second == []

    def test_month_end_billing_day_survives_repeated_reschedules(self, db_session, make_installment_sale):
        sale = make_installment_sale(date="2023-01-31T12:00:00Z", count=4, quantity=4)
        first_id = sale.installments[0].id

        payment_service.record_payment(first_id, 5000, "cash", payment_date="2023-03-05T10:00:00Z")

        assert [r.due_date for r in _rows(sale.id)] == [
            date(2023, 2, 28),
            date(2023, 4, 30),
            date(2023, 5, 31),
            date(2023, 6, 30),
        ]
        assert installment_service.reschedule_sale(sale.id) == []

    def test_reschedule_missing_sale(self, db_session):
        with pytest.raises(NotFoundError):
            installment_service.reschedule_sale(987654)

    def test_scheduler_failure_does_not_abort_payment(self, db_session, installment_sale, monkeypatch):
        def _boom(installments):
            raise RuntimeError("scheduler down")

        monkeypatch.setattr(installment_service, "schedule_all_pending_monthly", _boom)
        first_id = installment_sale.installments[0].id

        result = payment_service.record_payment(first_id, 5000, "cash", payment_date="2023-07-20T10:00:00Z")

        assert result["rescheduled"] is None
        assert db.session.get(Installment, first_id).status == "paid"


class TestNotificationReads:

    def test_overdue(self, db_session, installment_sale):
        rows = installment_service.get_overdue(today=date(2023, 7, 1))

        assert [r["installment_number"] for r in rows] == [1]
        assert rows[0]["sale_number"] == installment_sale.sale_number
        assert rows[0]["customer_name"] == "Ana Torres"
        assert rows[0]["is_overdue"] is True

    def test_paid_rows_are_never_overdue(self, db_session, installment_sale):
        first_id = installment_sale.installments[0].id
        payment_service.record_payment(first_id, 5000, "cash", payment_date="2023-06-15T12:00:00Z")

        assert installment_service.get_overdue(today=date(2023, 7, 1)) == []

    def test_upcoming_window(self, db_session, installment_sale):
        assert [r["due_date"] for r in installment_service.get_upcoming(today=date(2023, 6, 13))] == ["2023-06-15"]
        assert [r["due_date"] for r in installment_service.get_upcoming(today=date(2023, 6, 15))] == ["2023-06-15"]
        assert installment_service.get_upcoming(today=date(2023, 6, 11)) == []

    def test_upcoming_limit(self, db_session, make_installment_sale):
        for _ in range(3):
            make_installment_sale()

        rows = installment_service.get_upcoming(limit=2, today=date(2023, 6, 14))

        assert len(rows) == 2

    def test_get_installment_returns_none_when_missing(self, db_session):
        assert installment_service.get_installment(987654) is None
