"""
Pytest fixtures for tradedesk backend tests.

Provides test database setup, tenant fixtures (two organizations, members
with different roles), catalog/stock fixtures, and a test client.
"""

from decimal import Decimal

import pytest
from tradedesk import create_app
from tradedesk.constants import WRITE_ROLES
from tradedesk.extensions import db
from tradedesk.models import Organization, User, Member, Customer, Product, Stock
from tradedesk.services.auth_service import hash_password
from tradedesk.services.membership_service import get_business_auth_context
from tradedesk.services import notification_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'DB_RETRY_BACKOFF': 0,
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
        notification_service.clear_listeners()


@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Acme Corp", code="ACME", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Beta Inc", code="BETA", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


def make_member(db_session, org, username: str, role: str) -> Member:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(PASSWORD),
    )
    db_session.add(user)
    db_session.flush()
    member = Member(user_id=user.id, org_id=org.id, role=role)
    db_session.add(member)
    db_session.commit()
    return member


@pytest.fixture(scope='function')
def admin_a(db_session, org_a):
    return make_member(db_session, org_a, "admin_a", "ADMIN")


@pytest.fixture(scope='function')
def staff_a(db_session, org_a):
    return make_member(db_session, org_a, "staff_a", "STAFF")


@pytest.fixture(scope='function')
def viewer_a(db_session, org_a):
    return make_member(db_session, org_a, "viewer_a", "VIEWER")


@pytest.fixture(scope='function')
def admin_b(db_session, org_b):
    return make_member(db_session, org_b, "admin_b", "ADMIN")


@pytest.fixture(scope='function')
def staff_ctx(org_a, staff_a):
    """AuthContext for a STAFF member of Organization A."""
    return get_business_auth_context(org_a.id, staff_a.user_id, WRITE_ROLES)


@pytest.fixture(scope='function')
def admin_ctx(org_a, admin_a):
    return get_business_auth_context(org_a.id, admin_a.user_id, WRITE_ROLES)


@pytest.fixture(scope='function')
def ctx_b(org_b, admin_b):
    return get_business_auth_context(org_b.id, admin_b.user_id, WRITE_ROLES)


@pytest.fixture(scope='function')
def customer_a(db_session, org_a):
    customer = Customer(org_id=org_a.id, customer_code="C1", name="Customer One", email="c1@example.com")
    db_session.add(customer)
    db_session.commit()
    return customer


def make_product(db_session, org, *, name, sku=None, price_cents=1000, type="PHYSICAL", unit="pcs", is_active=True):
    product = Product(
        org_id=org.id,
        sku=sku,
        name=name,
        type=type,
        unit=unit,
        current_price_cents=price_cents,
        is_active=is_active,
    )
    db_session.add(product)
    db_session.commit()
    return product


def add_stock(db_session, product, quantity, unit_cost_cents=500) -> Stock:
    batch = Stock(
        org_id=product.org_id,
        product_id=product.id,
        quantity_available=Decimal(str(quantity)),
        unit=product.unit,
        unit_cost_cents=unit_cost_cents,
    )
    db_session.add(batch)
    db_session.commit()
    return batch


@pytest.fixture(scope='function')
def product_p1(db_session, org_a):
    """PHYSICAL, price 10.00, stock 5."""
    product = make_product(db_session, org_a, name="Widget", sku="P1", price_cents=1000)
    add_stock(db_session, product, 5)
    return product


@pytest.fixture(scope='function')
def product_p2(db_session, org_a):
    """PHYSICAL with no selling price configured."""
    product = make_product(db_session, org_a, name="Gadget", sku="P2", price_cents=0)
    add_stock(db_session, product, 10)
    return product


@pytest.fixture(scope='function')
def service_s1(db_session, org_a):
    """SERVICE, price 50.00, never stocked."""
    return make_product(db_session, org_a, name="Installation", sku="S1", price_cents=5000, type="SERVICE", unit="hour")


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
