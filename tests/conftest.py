"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown
- An in-memory Redis double behind the session store
- A stubbed Google identity provider
- FastAPI test client
"""

from urllib.parse import parse_qs, urlparse

import pytest
import redis
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base, Database
from app.core.exceptions import AuthProviderError
from app.core.session_store import RedisSessionStore
from app.schemas.user import SessionUser
from app.services.google_oauth import GoogleOAuthService
from main import create_app


class FakeRedis:
    """
    Dict-backed stand-in for the few redis.Redis calls the session store makes.
    Expiry is not simulated; the store checks expires_at itself.
    """

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def setex(self, name, time, value):
        if isinstance(value, str):
            value = value.encode()
        self.data[name] = value
        self.ttls[name] = time
        return True

    def get(self, name):
        return self.data.get(name)

    def delete(self, *names):
        removed = 0
        for name in names:
            if name in self.data:
                del self.data[name]
                self.ttls.pop(name, None)
                removed += 1
        return removed

    def ping(self):
        return True

    def close(self):
        pass


class BrokenRedis:
    """Redis client whose every call fails like a dropped connection."""

    def _fail(self, *args, **kwargs):
        raise redis.exceptions.ConnectionError("Connection refused")

    setex = get = delete = ping = _fail

    def close(self):
        pass


class StubOAuthService(GoogleOAuthService):
    """Google client that resolves every code to a fixed user without HTTP."""

    def __init__(self):
        super().__init__(client_id="test-client", client_secret="test-secret",
                         redirect_uri="http://testserver/auth/google/callback")
        self.user = SessionUser(id="google-user-1", display_name="Ada Lovelace",
                                emails=["ada@example.com", "ada@work.example.com"])
        self.error = None
        self.codes = []

    async def resolve_identity(self, code: str) -> SessionUser:
        self.codes.append(code)
        if self.error:
            raise AuthProviderError(self.error)
        return self.user


@pytest.fixture
def database():
    """
    Connected in-memory SQLite database with a fresh schema per test.
    """
    db = Database(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.connect()
    engine = db.engine
    Base.metadata.create_all(bind=engine)
    try:
        yield db
    finally:
        Base.metadata.drop_all(bind=engine)
        db.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def broken_redis():
    return BrokenRedis()


@pytest.fixture
def session_store(fake_redis):
    return RedisSessionStore(fake_redis, ttl_seconds=settings.SESSION_TTL_SECONDS)


@pytest.fixture
def oauth_service():
    return StubOAuthService()


@pytest.fixture
def app(database, session_store, oauth_service):
    return create_app(database=database, session_store=session_store, oauth_service=oauth_service)


@pytest.fixture
def client(app):
    """
    FastAPI test client. Redirects are not followed so tests can inspect them.
    """
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


def oauth_state_from(response):
    """Extract the CSRF state from a /auth/google redirect."""
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


@pytest.fixture
def sign_in(client):
    """
    Run the full login round trip against the stub provider.

    Returns a callable giving the callback response.
    """
    def _sign_in(return_to=None):
        params = {"returnTo": return_to} if return_to else {}
        login = client.get("/auth/google", params=params)
        state = oauth_state_from(login)
        return client.get("/auth/google/callback", params={"code": "auth-code", "state": state})

    return _sign_in


@pytest.fixture
def signed_in_client(client, sign_in):
    response = sign_in()
    assert response.status_code == 302
    return client


@pytest.fixture
def sample_cv_data():
    """Sample CV payload for testing"""
    return {
        "personal": {
            "fullName": "Ada Lovelace",
            "email": "ada@example.com",
            "location": "London, UK"
        },
        "experience": [
            {
                "company": "Analytical Engines Ltd",
                "role": "Programmer",
                "start": "1842-01",
                "highlights": ["Wrote the first published algorithm"]
            }
        ],
        "skills": ["Mathematics", "Algorithms"]
    }
