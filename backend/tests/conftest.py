"""
Pytest fixtures for MiniERP backend tests.

Provides an in-memory application, per-test table wipe, users for every
role, sample products and auth helpers.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from minierp import create_app
from minierp.extensions import db
from minierp.models import User, Product
from minierp.services import token_service
from minierp.services.auth_service import hash_password, identity_for


TEST_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET_KEY': 'test-jwt-secret',
        'BCRYPT_ROUNDS': 4,
        'OPENAI_API_KEY': 'test-key',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
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


def make_user(db_session, role: str, email: str | None = None, is_active: bool = True) -> User:
    user = User(
        name=f"{role.title()} User",
        email=email or f"{role}@example.com",
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user(db_session, "admin")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return make_user(db_session, "manager")


@pytest.fixture(scope='function')
def staff_user(db_session):
    return make_user(db_session, "staff")


@pytest.fixture(scope='function')
def viewer_user(db_session):
    return make_user(db_session, "viewer")


def make_product(db_session, **overrides) -> Product:
    fields = {
        "name": "Vinyl Record Sleeve",
        "sku": "SKU-A",
        "category": "Packaging",
        "current_stock": 5,
        "reorder_level": 10,
        "reorder_quantity": 50,
        "unit_price": Decimal("4.50"),
        "supplier": "Acme Supplies",
        "location": "Aisle 1",
    }
    fields.update(overrides)
    product = Product(**fields)
    product.refresh_status()
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session):
    """SKU-A: stock 5 under a reorder level of 10 (low-stock)."""
    return make_product(db_session)


@pytest.fixture(scope='function')
def product_b(db_session):
    """SKU-B: plenty of stock."""
    return make_product(
        db_session,
        name="Cardboard Box",
        sku="SKU-B",
        category="Packaging",
        current_stock=100,
        unit_price=Decimal("2.25"),
        supplier="Boxworks",
        location="Aisle 2",
    )


def token_for(user: User) -> str:
    return token_service.issue(identity_for(user))


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(token_for(admin_user))


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return auth_headers(token_for(manager_user))


@pytest.fixture(scope='function')
def staff_headers(staff_user):
    return auth_headers(token_for(staff_user))


@pytest.fixture(scope='function')
def viewer_headers(viewer_user):
    return auth_headers(token_for(viewer_user))


def order_payload(*items, **overrides) -> dict:
    """POST /api/orders body; items are (product_id, quantity) pairs."""
    payload = {
        "customer": {
            "name": "Jane Customer",
            "email": "Jane@Example.com",
            "phone": "555-0100",
            "address": "1 Main St",
        },
        "items": [{"product": pid, "quantity": qty} for pid, qty in items],
        "paymentMethod": "card",
        "shippingMethod": "ground",
    }
    payload.update(overrides)
    return payload


class FakeCompletions:
    """Stands in for client.chat.completions; records calls."""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai_client(content=None, error=None):
    completions = FakeCompletions(content=content, error=error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))
