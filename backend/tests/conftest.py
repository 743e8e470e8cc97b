"""
Pytest fixtures for bizledger backend tests.

Provides the application, a freshly emptied database per test, partner and
admin accounts, and a controllable clock for work-session tests.
"""

from datetime import datetime, timedelta

import pytest

from bizledger import create_app
from bizledger.extensions import db
from bizledger.services.auth_service import create_user

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
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
    """The bootstrap-style admin account."""
    return create_user(
        username="admin",
        password=PASSWORD,
        email="admin@example.com",
        first_name="Administrador",
        is_admin=True,
    )


@pytest.fixture(scope='function')
def partner(db_session):
    """Partner Ana (not an admin)."""
    return create_user(
        username="ana",
        password=PASSWORD,
        email="ana@example.com",
        first_name="Ana",
        last_name="Souza",
    )


@pytest.fixture(scope='function')
def other_partner(db_session):
    """Partner Bruno (not an admin)."""
    return create_user(
        username="bruno",
        password=PASSWORD,
        email="bruno@example.com",
        first_name="Bruno",
        last_name="Lima",
    )


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username, PASSWORD))


@pytest.fixture(scope='function')
def partner_headers(client, partner):
    return auth_headers(get_auth_token(client, partner.username, PASSWORD))


@pytest.fixture(scope='function')
def other_partner_headers(client, other_partner):
    return auth_headers(get_auth_token(client, other_partner.username, PASSWORD))


class FakeClock:
    """Stand-in for utcnow() that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope='function')
def clock(monkeypatch):
    """Freeze the timekeeping service's clock at 2026-03-02 09:00 UTC."""
    from bizledger.services import timekeeping_service

    fake = FakeClock(datetime(2026, 3, 2, 9, 0, 0))
    monkeypatch.setattr(timekeeping_service, "utcnow", fake)
    return fake


def get_auth_token(client, username: str, password: str) -> str:
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
