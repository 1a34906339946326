"""
Pytest fixtures for Eno Livraison backend tests.

Provides the app on a throwaway SQLite file, per-test table cleanup,
one profile per role, and helpers for bearer-token requests.
"""

import time

import pytest

from eno import create_app
from eno.extensions import db
from eno.models import Partner
from eno.services import auth_service, session_service


PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    # A file database lets the client's fetch threads use separate connections
    db_path = tmp_path_factory.mktemp("db") / "eno-test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_LOG_ROUNDS': 4,
        'ENO_REFRESH_INTERVAL': 0,
        'ENO_SSE_HEARTBEAT_SECONDS': 0.05,
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


def make_profile(role, email, *, partner_id=None, full_name=None):
    profile = auth_service.create_profile(
        email=email,
        password=PASSWORD,
        full_name=full_name or email.split("@")[0].title(),
        role=role,
        partner_id=partner_id,
    )
    db.session.commit()
    return profile


@pytest.fixture(scope='function')
def partner_a(db_session):
    partner = Partner(id="PAT001", partner_code="PAT001", name="Boutique Awa", email="awa@example.com")
    db_session.add(partner)
    db_session.commit()
    return partner


@pytest.fixture(scope='function')
def partner_b(db_session):
    partner = Partner(id="PAT002", partner_code="PAT002", name="Kossi Mode")
    db_session.add(partner)
    db_session.commit()
    return partner


@pytest.fixture(scope='function')
def ceo(db_session):
    return make_profile("ceo", "ceo@eno.test", full_name="Eno Ceo")


@pytest.fixture(scope='function')
def accountant(db_session):
    return make_profile("accountant", "compta@eno.test")


@pytest.fixture(scope='function')
def secretary(db_session):
    return make_profile("secretary", "secretariat@eno.test")


@pytest.fixture(scope='function')
def partner_user(db_session, partner_a):
    return make_profile("partner", "awa@eno.test", partner_id=partner_a.id)


@pytest.fixture(scope='function')
def partner_b_user(db_session, partner_b):
    return make_profile("partner", "kossi@eno.test", partner_id=partner_b.id)


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def token_for(profile) -> str:
    """Session token without going through the login route."""
    _, token = session_service.create_session(profile.id)
    return token


@pytest.fixture(scope='function')
def ceo_headers(ceo):
    return auth_headers(token_for(ceo))


@pytest.fixture(scope='function')
def accountant_headers(accountant):
    return auth_headers(token_for(accountant))


@pytest.fixture(scope='function')
def secretary_headers(secretary):
    return auth_headers(token_for(secretary))


@pytest.fixture(scope='function')
def partner_headers(partner_user):
    return auth_headers(token_for(partner_user))


def wait_until(predicate, timeout: float = 3.0, interval: float = 0.02) -> bool:
    """Poll predicate until it holds; for state filled in by background threads."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())
