"""
Pytest fixtures for the back-office tests.

Provides an in-memory app, per-test table cleanup, admin and staff users
with acting-user values, and a couple of stocked materials.
"""

from decimal import Decimal

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Material
from backoffice.models.auth import ROLE_ADMIN, ROLE_USER
from backoffice.services.auth_service import acting_user_for, create_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
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
def admin_user(db_session):
    return create_user("admin", "admin@example.com", PASSWORD, roles=[ROLE_ADMIN])


@pytest.fixture(scope='function')
def staff_user(db_session):
    return create_user("staff", "staff@example.com", PASSWORD, roles=[ROLE_USER])


@pytest.fixture(scope='function')
def admin(admin_user):
    """ActingUser for the admin account."""
    return acting_user_for(admin_user)


@pytest.fixture(scope='function')
def staff(staff_user):
    """ActingUser for the staff account."""
    return acting_user_for(staff_user)


def make_material(session, name="Rice", category="Grain", price="12000.00", quantity=10, **extra) -> Material:
    material = Material(name=name, category=category, price=Decimal(price), quantity=quantity, **extra)
    session.add(material)
    session.commit()
    return material


@pytest.fixture(scope='function')
def rice(db_session):
    return make_material(db_session, "Rice", "Grain", "12000.00", 10)


@pytest.fixture(scope='function')
def sugar(db_session):
    return make_material(db_session, "Sugar", "Sweetener", "15000.00", 5)


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin"))


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, "staff"))


@pytest.fixture(scope='function')
def material_factory(db_session):
    def _make(name="Rice", category="Grain", price="12000.00", quantity=10, **extra):
        return make_material(db_session, name, category, price, quantity, **extra)
    return _make
