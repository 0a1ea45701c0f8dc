"""
Test infrastructure.

  - in-memory SQLite for the app (DATABASE_URL is set before any import)
  - per-test engine, session factory and change feed for unit tests
  - FastAPI TestClient with a fresh schema and store registry per test
"""

import os
from types import SimpleNamespace

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from inspectly import database
from inspectly.database import Base, build_engine, init_db
from inspectly.models.organization_model import Organization
from inspectly.realtime import ChangeFeed, bind_session_events


# ============================================================================
# Unit-level fixtures: isolated engine and feed
# ============================================================================

@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def session_factory(engine, feed):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
    bind_session_events(feed, factory)
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def make_organization(session, name="Acme Safety"):
    org = Organization(name=name)
    session.add(org)
    session.commit()
    return org.id


@pytest.fixture
def org_id(db):
    return make_organization(db)


@pytest.fixture
def other_org_id(db):
    return make_organization(db, "Other Co")


# ============================================================================
# App-level fixtures
# ============================================================================

@pytest.fixture
def client():
    from inspectly.main import app
    from inspectly.stores.registry import StoreRegistry

    Base.metadata.drop_all(bind=database.engine)
    Base.metadata.create_all(bind=database.engine)
    app.state.store_registry = StoreRegistry()
    with TestClient(app) as c:
        yield c


def register_and_login(client, email="inspector@example.com", password="secret123", full_name="Pat Inspector"):
    resp = client.post("/api/auth/register", json={"email": email, "password": password, "full_name": full_name})
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    token = resp.json()["data"]["session"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def member(client):
    """A signed-in admin of a freshly created organization."""
    headers = register_and_login(client)
    resp = client.post("/api/organizations/", json={"name": "Acme Safety"}, headers=headers)
    assert resp.status_code == 201, resp.text
    return SimpleNamespace(headers=headers, organization_id=resp.json()["data"]["id"])
