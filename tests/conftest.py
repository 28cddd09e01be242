import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.auth import get_password_hasher, get_token_service
from core.credentials import CredentialStore
from core.security import PasswordHasher, TokenService, make_password_context
from core.tasks import TaskRepository
from database import build_engine, get_db, init_db
from main import app


@pytest.fixture()
def engine():
    """
    A private in-memory database per test.
    StaticPool keeps the single connection alive across sessions.
    """
    eng = build_engine("sqlite://", poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast.
    return PasswordHasher(make_password_context(rounds=4))


@pytest.fixture()
def token_service() -> TokenService:
    return TokenService("unit-test-secret")


@pytest.fixture()
def credentials(db, hasher) -> CredentialStore:
    return CredentialStore(db, hasher)


@pytest.fixture()
def repo(db) -> TaskRepository:
    return TaskRepository(db)


@pytest.fixture()
def client(session_factory, hasher, token_service):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    app.dependency_overrides[get_token_service] = lambda: token_service
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def register_and_login(client):
    """Registers a user through the API and returns its auth headers."""

    def _do(username: str, email: str | None = None, password: str = "pw123") -> dict:
        email = email or f"{username}@x.com"
        r = client.post("/auth/register", json={"username": username, "email": email, "password": password})
        assert r.status_code == 201, r.text
        r = client.post("/auth/login", json={"username": username, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}

    return _do
