"""
Pytest fixtures for the credit ledger backend tests.

Provides the test database setup, catalog/customer fixtures, an installment
sale factory, and the test client.
"""

import pytest
from credit_ledger import create_app
from credit_ledger.extensions import db
from credit_ledger.models import Customer, Product
from credit_ledger.services import sales_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SALE_NUMBER_PREFIX': 'VTA-',
        'UPCOMING_WINDOW_DAYS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def customer(db_session):
    """Customer buying on credit."""
    customer = Customer(name="Ana Torres", phone="555-0101")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def product(db_session):
    """Catalog product with tracked stock."""
    product = Product(name="Refrigerador", price_cents=5000, stock=10)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def make_installment_sale(db_session, customer, product):
    """
    Factory for installment sales.

    Default: sold 2023-05-15, 3 units at 50.00, 3 installments of 50.00
    due 2023-06-15, 2023-07-15, 2023-08-15.
    """
    def _make(date="2023-05-15T10:00:00Z", count=3, quantity=3, unit_price_cents=5000, **extra):
        data = {
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": quantity, "unit_price_cents": unit_price_cents}],
            "payment_type": "installments",
            "number_of_installments": count,
            "date": date,
        }
        data.update(extra)
        return sales_service.create_sale(data)

    return _make


@pytest.fixture(scope='function')
def installment_sale(make_installment_sale):
    return make_installment_sale()
