import base64
import json
import os

# Settings and the default engine are read at import time.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notable_backend.api.deps import get_credential_store, get_db, get_mailer, get_token_service
from notable_backend.api.main import app
from notable_backend.auth.credential_store import LocalCredentialStore
from notable_backend.auth.mailer import ResetEmailSender
from notable_backend.auth.session_tokens import SessionTokenService
from notable_database.db import enable_sqlite_foreign_keys
from notable_database.init_db import init_db
from notable_database.models import Base

SESSION_SECRET = "test-session-secret"
PROVIDER_SECRET = "test-provider-secret"
RESET_URL = "http://localhost:3000/reset-password"


class RecordingMailer(ResetEmailSender):
    """Keeps reset emails in memory instead of sending them."""

    def __init__(self):
        self.sent = []

    def send_reset_email(self, email, link):
        self.sent.append((email, link))


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session of one test."""
    return enable_sqlite_foreign_keys(create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    ))

@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine; each thread gets its own connection."""
    return enable_sqlite_foreign_keys(create_engine(
        f"sqlite:///{tmp_path / 'notes.db'}", connect_args={"check_same_thread": False}
    ))

@pytest.fixture
def tables(engine):
    """Create tables for one test and drop them afterwards."""
    init_db(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def session_factory(engine, tables):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db_session(session_factory):
    """Provide a SQLAlchemy session for isolated test usage."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture
def file_session_factory(file_engine):
    init_db(bind=file_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    file_engine.dispose()

@pytest.fixture
def credential_store(session_factory):
    return LocalCredentialStore(session_factory, PROVIDER_SECRET, RESET_URL)

@pytest.fixture
def token_service():
    return SessionTokenService({"primary": SESSION_SECRET}, "primary")

@pytest.fixture
def mailer():
    return RecordingMailer()

@pytest.fixture
def client(session_factory, credential_store, token_service, mailer):
    """Fixture for FastAPI TestClient with test DB and auth service overrides."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_credential_store] = lambda: credential_store
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_mailer] = lambda: mailer

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()

@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {
        "email": "alice@notable.io",
        "username": "alice",
        "password": "alicepassword123",
        "phone_number": "5550100",
    }

def register_and_auth(client, email, username, password, phone_number="1"):
    """Helper for registering then logging in; returns (token, local user id)."""
    r1 = client.post("/users/register", json={
        "email": email, "username": username, "password": password, "phone_number": phone_number
    })
    assert r1.status_code == 200

    r2 = client.post("/users/login", json={"email": email, "password": password})
    assert r2.status_code == 200
    body = r2.json()
    return body["token"], body["id"]

@pytest.fixture
def logged_in(client, user_data):
    """(auth header, local user id) for the default user."""
    token, user_id = register_and_auth(
        client, user_data["email"], user_data["username"], user_data["password"], user_data["phone_number"]
    )
    return {"Authorization": f"Bearer {token}"}, user_id

@pytest.fixture
def auth_header(logged_in):
    """Returns {'Authorization': 'Bearer <token>'} for default user."""
    return logged_in[0]

def _b64(obj):
    return base64.urlsafe_b64encode(json.dumps(obj).encode()).rstrip(b"=").decode()

def forge_token(header, payload):
    """Unsigned token with an arbitrary header, for exercising header checks."""
    return f"{_b64(header)}.{_b64(payload)}.c2ln"
