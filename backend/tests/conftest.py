"""
Pytest fixtures for packledger backend tests.

Provides the application on an in-memory database, a per-test wipe of all
tables, catalog factories and actors for each role.
"""

import pytest
from datetime import date

from packledger import create_app
from packledger.extensions import db
from packledger.services import pos_service, products_service
from packledger.services.permission_service import Actor


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TRANSACTION_RETRY_BACKOFF': 0.0,
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
def admin():
    return Actor(id="admin-1", role="admin")


@pytest.fixture(scope='function')
def superadmin():
    return Actor(id="root", role="superadmin")


@pytest.fixture(scope='function')
def worker():
    return Actor(id="worker-1", role="worker")


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(sku, stock=..., price=..., unit_type=...)."""
    def _make(sku="P-1", *, name=None, stock=100.0, price=2.0, unit_type="piece", is_active=True):
        return products_service.create_product(
            sku=sku,
            name=name or f"Product {sku}",
            unit_type=unit_type,
            base_price=price,
            initial_stock=stock,
            is_active=is_active,
            actor_id="fixture",
        )
    return _make


@pytest.fixture(scope='function')
def pos(db_session):
    """Create a point of sale."""
    return pos_service.create_pos(name="Market Square", location="Old Town")


@pytest.fixture(scope='function')
def market_day():
    return date(2024, 5, 4)
