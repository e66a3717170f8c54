"""
Pytest fixtures for almacen backend tests.

Provides an in-memory database, two businesses and one product stocked in both.
"""

import pytest
from almacen import create_app
from almacen.extensions import db
from almacen.models import Business, ProductMaster, BusinessInventory, Activity


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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


@pytest.fixture(scope='function')
def store_a(db_session):
    business = Business(name="Store A")
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def store_b(db_session):
    business = Business(name="Store B")
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def coca(db_session, store_a, store_b):
    """BEBIDA Coca Cola 500ml, 10 units at Store A and 3 at Store B."""
    product = ProductMaster(
        code="7790895000997",
        codes_asociados=["CC500"],
        name="BEBIDA Coca Cola 500ml",
        default_purchase_cents=1000,
        margin_bps=5000,
        default_selling_cents=1500,
    )
    db_session.add(product)
    db_session.flush()
    db_session.add(BusinessInventory(product_id=product.id, business_id=store_a.id, stock=10))
    db_session.add(BusinessInventory(product_id=product.id, business_id=store_b.id, stock=3))
    db_session.commit()
    return product


def stock_of(product_id: int, business_id: int):
    """Current ledger quantity, or None when there is no row."""
    db.session.expire_all()
    row = db.session.query(BusinessInventory).filter_by(product_id=product_id, business_id=business_id).first()
    return row.stock if row else None


def stock_activities(product_id: int) -> list:
    """Activity entries that describe stock changes (business-level)."""
    db.session.expire_all()
    return (
        db.session.query(Activity)
        .filter(Activity.product_id == product_id, Activity.business_id.isnot(None))
        .order_by(Activity.id.asc())
        .all()
    )
