import os
import pytest
from fastapi.testclient import TestClient

# Make the runtime detection in sites_manager.db.database unambiguous
os.environ.setdefault("PYTEST_RUNNING", "1")

from sites_manager.config import refresh_settings_cache  # noqa: E402
from sites_manager.db import models  # noqa: E402
from sites_manager.db import database as db_module  # noqa: E402
from sites_manager.api.main import app  # noqa: E402

AUTH_HEADERS = {"x-auth-request-user": "tester", "x-auth-request-email": "tester@example.com"}


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Each test starts from a known environment and a fresh settings cache."""
    monkeypatch.setenv("DEV_MODE", "false")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    monkeypatch.delenv("ADMIN_EMAILS", raising=False)
    monkeypatch.delenv("ALLOW_DEV_MODE", raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()


@pytest.fixture(autouse=True)
def _clean_tables():
    """Wipe every table after each test; the in-memory database is shared."""
    yield
    with db_module.engine.begin() as conn:
        for table in reversed(models.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db_session():
    session = db_module.SessionLocal()
    try:
        yield session
    finally:
        session.close()


# Backwards compatibility: some tests prefer the shorter fixture name
@pytest.fixture
def db(db_session):
    return db_session


@pytest.fixture
def client():
    return TestClient(app, headers=AUTH_HEADERS)


@pytest.fixture
def anon_client():
    return TestClient(app)


def _site_payload(**overrides):
    payload = {
        "name_of_agency": "Ministry of Water",
        "url": "https://water.example.gov",
        "province": "Bagmati",
        "district": "Kathmandu",
    }
    payload.update(overrides)
    return payload


def _issue_payload(**overrides):
    payload = {
        "issue_types": ["SSL_ERROR"],
        "description": "Certificate expired",
        "priority": "HIGH",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_site(client):
    """Create a site through the API and return its JSON body."""
    def _make(**overrides):
        r = client.post("/sites/", json=_site_payload(**overrides))
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture
def site_payload():
    return _site_payload


@pytest.fixture
def issue_payload():
    return _issue_payload
