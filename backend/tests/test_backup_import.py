# Overview: Pytest coverage for backup normalization and sale import.

"""
Backup Import Tests

Backups carry loosely typed values (numbers as text, currency units,
full timestamps). normalize_backup_sale turns them into a canonical record;
import_sale_from_backup recreates the sale from it.
"""

from datetime import date

import pytest

from credit_ledger.errors import ValidationError
from credit_ledger.extensions import db
from credit_ledger.models import Customer, Product
from credit_ledger.services import sales_service
from credit_ledger.services.backup_schema import normalize_backup_sale


def _backup_record(**overrides):
    raw = {
        "customer_id": "900001",
        "customer_name": "Luis Prieto",
        "sale_number": "VTA-007-20230515",
        "reference_code": "12345678",
        "date": "2023-05-15T00:00:00.000Z",
        "subtotal": "150",
        "total_amount": 150,
        "payment_type": "installments",
        "payment_status": "unpaid",
        "number_of_installments": "3",
        "installment_amount": "50",
        "items": [
            {"product_id": "77", "quantity": "3", "unit_price": "50.00", "product_name": "Estufa"},
        ],
    }
    raw.update(overrides)
    return raw


class TestNormalizeBackupSale:

    def test_coerces_types_and_converts_to_cents(self):
        record = normalize_backup_sale(_backup_record())

        assert record["customer_id"] == 900001
        assert record["subtotal_cents"] == 15000
        assert record["total_cents"] == 15000
        assert record["number_of_installments"] == 3
        assert record["installment_amount_cents"] == 5000
        assert record["items"] == [
            {"product_id": 77, "quantity": 3, "unit_price_cents": 5000, "product_name": "Estufa"},
        ]

    def test_fractional_amounts_round_half_up(self):
        record = normalize_backup_sale(_backup_record(total_amount="149.995"))
        assert record["total_cents"] == 15000

    def test_total_falls_back_to_subtotal(self):
        record = normalize_backup_sale(_backup_record(total_amount=None))
        assert record["total_cents"] == 15000

    def test_cash_sales_are_paid(self):
        record = normalize_backup_sale(_backup_record(payment_type="contado", payment_status="unpaid"))
        assert record["payment_type"] == "cash"
        assert record["payment_status"] == "paid"

    def test_customer_id_required(self):
        with pytest.raises(ValidationError):
            normalize_backup_sale(_backup_record(customer_id=None))

    @pytest.mark.parametrize("overrides", [
        {"total_amount": "ciento cincuenta"},
        {"customer_id": "abc"},
        {"date": "15/05/2023"},
        {"items": "Estufa"},
    ])
    def test_rejects_malformed_values(self, overrides):
        with pytest.raises(ValidationError):
            normalize_backup_sale(_backup_record(**overrides))


class TestImportSaleFromBackup:

    def test_keeps_backup_date_and_identifiers(self, db_session):
        sale = sales_service.import_sale_from_backup(normalize_backup_sale(_backup_record()))

        data = sale.to_dict()
        assert data["date"] == "2023-05-15T00:00:00Z"
        assert data["sale_number"] == "VTA-007-20230515"
        assert data["reference_code"] == "12345678"
        assert data["total_cents"] == 15000

    def test_schedule_anchors_on_backup_calendar_day(self, db_session):
        raw = _backup_record(date="2023-05-15T00:00:00.000-05:00")
        sale = sales_service.import_sale_from_backup(normalize_backup_sale(raw))

        assert [i.due_date for i in sale.installments] == [
            date(2023, 6, 15),
            date(2023, 7, 15),
            date(2023, 8, 15),
        ]
        assert all(i.amount_cents == 5000 for i in sale.installments)

    def test_missing_customer_becomes_placeholder(self, db_session):
        raw = _backup_record(customer_id=900002, customer_name=None)
        sales_service.import_sale_from_backup(normalize_backup_sale(raw))

        customer = db.session.get(Customer, 900002)
        assert customer is not None
        assert customer.name == "Cliente 900002"

    def test_existing_customer_is_reused(self, db_session, customer):
        raw = _backup_record(customer_id=customer.id, customer_name="Otro Nombre")
        sale = sales_service.import_sale_from_backup(normalize_backup_sale(raw))

        assert sale.customer_id == customer.id
        assert db.session.get(Customer, customer.id).name == "Ana Torres"

    def test_taken_identifiers_are_replaced(self, db_session):
        record = normalize_backup_sale(_backup_record())
        first = sales_service.import_sale_from_backup(record)
        second = sales_service.import_sale_from_backup(record)

        assert second.sale_number != first.sale_number
        assert second.sale_number.startswith("VTA-007-20230515-")
        assert second.reference_code != first.reference_code

    def test_import_leaves_stock_alone(self, db_session, product):
        raw = _backup_record(items=[
            {"product_id": product.id, "quantity": 2, "unit_price": 50},
        ])
        sale = sales_service.import_sale_from_backup(normalize_backup_sale(raw))

        assert db.session.get(Product, product.id).stock == 10
        assert sale.items[0].product_name == "Refrigerador"

    def test_installment_amount_derived_when_missing(self, db_session):
        raw = _backup_record(installment_amount=None, total_amount="100")
        sale = sales_service.import_sale_from_backup(normalize_backup_sale(raw))

        assert sale.installment_amount_cents == 3333
        assert [i.amount_cents for i in sale.installments] == [3333, 3333, 3333]
