"""
Pytest fixtures for stockledger backend tests.

Provides test database setup, seeded users/catalog, and test client.
"""

from decimal import Decimal

import pytest
from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Category, Product, User, ROLE_ADMIN, ROLE_STAFF
from stockledger.services.auth_service import hash_password
from stockledger.services import session_service

PASSWORD = "Password123!"


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


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


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
def admin_user(db_session, password_hash):
    user = User(name="Ada Admin", email="admin@stock.local", password_hash=password_hash, role=ROLE_ADMIN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def staff_user(db_session, password_hash):
    user = User(name="Sam Staff", email="staff@stock.local", password_hash=password_hash, role=ROLE_STAFF)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Hardware", description="Nuts and bolts")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def make_product(db_session, category):
    """Factory inserting products directly (bypassing the API)."""
    def _make(sku, quantity=0, threshold=10, price="1.00", **extra):
        product = Product(
            sku=sku,
            name=extra.pop("name", f"Product {sku}"),
            category_id=extra.pop("category_id", category.id),
            quantity=quantity,
            low_stock_threshold=threshold,
            unit_price=Decimal(price),
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Quantity 5 against a threshold of 10, so it starts low on stock."""
    return make_product("BOLT-001", quantity=5, threshold=10, price="2.50")


def auth_headers(user: User) -> dict:
    """Helper to create Authorization headers for a user."""
    _, token = session_service.create_session(user.id)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture(scope='function')
def staff_headers(staff_user):
    return auth_headers(staff_user)
