"""
Pytest fixtures for duka backend tests.

Provides test database setup, two tenants with stores and staff, stock line
factories, and the gateway header helper used by route tests.
"""

import pytest
from duka import create_app
from duka.config import TestConfig
from duka.extensions import db
from duka.models import Business, InventoryItem, Store, User
from duka.models.auth import ROLE_ADMIN, ROLE_STAFF, ROLE_STAFF_ADMIN


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
def business(db_session):
    """Business owning the two stores most tests use."""
    business = Business(name="Duka Shoes", is_active=True)
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def other_business(db_session):
    """A second tenant, for isolation checks."""
    business = Business(name="Rival Kicks", is_active=True)
    db_session.add(business)
    db_session.commit()
    return business


def _store(db_session, business, name, code):
    store = Store(business_id=business.id, name=name, code=code)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_a(db_session, business):
    return _store(db_session, business, "Moi Avenue", "MOI")


@pytest.fixture(scope='function')
def store_b(db_session, business):
    return _store(db_session, business, "Tom Mboya", "TOM")


@pytest.fixture(scope='function')
def foreign_store(db_session, other_business):
    return _store(db_session, other_business, "River Road", "RIV")


def _user(db_session, business, username, role, store=None):
    user = User(
        business_id=business.id,
        username=username,
        email=f"{username}@duka.local",
        role=role,
        store_id=store.id if store else None,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session, business):
    """Business-level admin (no store)."""
    return _user(db_session, business, "admin", ROLE_ADMIN)


@pytest.fixture(scope='function')
def staff_a(db_session, business, store_a):
    return _user(db_session, business, "wanjiru", ROLE_STAFF, store_a)


@pytest.fixture(scope='function')
def staff_b(db_session, business, store_b):
    return _user(db_session, business, "otieno", ROLE_STAFF, store_b)


@pytest.fixture(scope='function')
def staff_admin_a(db_session, business, store_a):
    return _user(db_session, business, "akinyi", ROLE_STAFF_ADMIN, store_a)


@pytest.fixture(scope='function')
def foreign_admin(db_session, other_business, foreign_store):
    return _user(db_session, other_business, "rival_admin", ROLE_ADMIN)


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory for stock lines: make_item(store, stock=10, incomplete_pairs=0, ...)."""
    def _make(store, **overrides):
        values = {
            "at_no": "AT-100",
            "name": "Air Force 1",
            "brand": "Nike",
            "category": "Sneakers",
            "age_group": "Adult",
            "gender": "Unisex",
            "sizes": ["40", "41", "42"],
            "colors": ["white"],
            "price_cents": 350000,
            "stock": 10,
            "incomplete_pairs": 0,
        }
        values.update(overrides)
        item = InventoryItem(store_id=store.id, **values)
        db_session.add(item)
        db_session.commit()
        return item
    return _make


@pytest.fixture(scope='function')
def item_a(make_item, store_a):
    """Ten complete pairs of AT-100 at store A."""
    return make_item(store_a)


def auth_headers(user) -> dict:
    """Gateway header identifying the caller."""
    return {'X-User-Id': str(user.id)}
