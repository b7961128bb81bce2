"""
Shared pytest fixtures for the ITIL Governance Tracker test suite.

Provides:
    - app: Flask application with freshly seeded demo state (function-scoped)
    - app_ctx: pushed application context (bcrypt rounds / Fernet key from TestingConfig)
    - client: Flask test client
    - store: the app's TrackerStore
    - admin_headers / msmith_headers / jdoe_headers: Authorization headers
    - today: fixed reference date for unit tests
"""

from datetime import date

import pytest

from itil_tracker import create_app
from itil_tracker.models.integrations import LdapConfig
from itil_tracker.store import EXTENSION_KEY


def login(client, username, password):
    """Log in through the API and return the Authorization header dict."""
    res = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert res.status_code == 200, res.get_json()
    return {"Authorization": f"Bearer {res.get_json()['access_token']}"}


# ── App fixtures ─────────────────────────────────────────────────────────


@pytest.fixture()
def app():
    """Create a Flask application per test; each gets its own store."""
    return create_app("testing")


@pytest.fixture()
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def store(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture()
def today():
    return date(2024, 1, 15)


# ── Auth fixtures ────────────────────────────────────────────────────────


@pytest.fixture()
def admin_headers(client):
    return login(client, "admin", "admin")


@pytest.fixture()
def msmith_headers(client):
    """USER role, edit access on category p2-0-0 only."""
    return login(client, "msmith", "password123")


@pytest.fixture()
def jdoe_headers(client, store):
    """Directory account: edit on p0-0-0, view on p1-0-0. Enables LDAP first."""
    store.commit(ldap_config=LdapConfig(enabled=True))
    return login(client, "jdoe", "any-password")


@pytest.fixture()
def login_as(client):
    """Log in any account created during a test: ``login_as("user", "pass")``."""
    return lambda username, password: login(client, username, password)
