"""
Pytest fixtures for garment ledger backend tests.

Provides test database setup, catalog fixtures, and test client.
"""

import uuid

import pytest

from garment_ledger import create_app
from garment_ledger.extensions import db
from garment_ledger.models import Category, Size, Color, Product
from garment_ledger.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BACKOFF': 0,
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
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def principal():
    return uuid.uuid4()


@pytest.fixture(scope='function')
def headers(principal):
    """Headers the upstream identity gateway would forward."""
    return principal_headers(principal)


@pytest.fixture(scope='function')
def sizes(db_session):
    """S, M, L keyed by name, on the canonical XS..XXXL sort scale."""
    rows = {}
    for order, name in enumerate(("S", "M", "L"), start=2):
        size = Size(name=name, sort_order=order)
        db_session.add(size)
        rows[name] = size
    db_session.commit()
    return rows


@pytest.fixture(scope='function')
def colors(db_session):
    """Red and Blue keyed by name."""
    rows = {
        "Red": Color(name="Red", hex_code="#FF0000", sort_order=1),
        "Blue": Color(name="Blue", hex_code="#0000FF", sort_order=2),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return rows


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Shirts", description="Tops")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def shirt(db_session, category, sizes, colors):
    """Base price 500.00, offered in S/M/L x Red/Blue, no stock."""
    product = Product(
        name="Oxford Shirt",
        sku="SHIRT-001",
        price_cents=50000,
        category_id=category.id,
        sizes=list(sizes.values()),
        colors=list(colors.values()),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def scarf(db_session):
    """No sizes, no colors: the single implicit variant."""
    product = Product(name="Silk Scarf", sku="SCARF-001", price_cents=12000)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def stock(db_session):
    """Seed a variant's stock through the service: stock(product, size, color, qty)."""
    def _stock(product, size=None, color=None, quantity=0):
        return inventory_service.adjust_quantity(
            product.id,
            size.id if size is not None else None,
            color.id if color is not None else None,
            quantity,
        )
    return _stock


def principal_headers(principal_id) -> dict:
    """Helper to create X-Principal-Id headers."""
    return {'X-Principal-Id': str(principal_id)}
