"""
Test configuration for the clinic patient records API.
"""
import os

# Settings are read at import time, so the environment is prepared first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic_api.config import Settings
from clinic_api.core.cloudinary import MediaStore, MediaStoreError, UploadedMedia
from clinic_api.core.session_cache import MemorySessionCache
from clinic_api.database import Base, get_db
from clinic_api.main import create_app

# Test database URL
TEST_DATABASE_URL = "sqlite://"

# Create test database engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secret123"
ADMIN_EMAIL = "admin@example.com"
STAFF_EMAIL = "staff@example.com"


class FrozenClock:
    """Wall clock that only moves when a test advances it."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def monotonic(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMediaStore(MediaStore):
    """Records uploads and deletions instead of talking to Cloudinary."""

    def __init__(self):
        self.uploads = []
        self.destroyed = []
        self.fail_uploads = False
        self.fail_destroy = False

    def upload(self, source, folder, public_id=None):
        if self.fail_uploads:
            raise MediaStoreError("upload refused")
        public_id = f"{folder}/{public_id or f'upload_{len(self.uploads) + 1}'}"
        self.uploads.append((source, public_id))
        return UploadedMedia(public_id=public_id, url=f"https://media.example.com/{public_id}.png")

    def destroy(self, public_id):
        if self.fail_destroy:
            raise MediaStoreError("destroy refused")
        self.destroyed.append(public_id)


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "database_url": TEST_DATABASE_URL,
        "access_token_secret": "test-access-secret-0123456789abcdef",
        "refresh_token_secret": "test-refresh-secret-0123456789abcdef",
        "bcrypt_rounds": 4,
        "rate_limit_enabled": False,
        "redis_url": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def session_cache(clock):
    return MemorySessionCache(clock=clock.monotonic)


@pytest.fixture
def media_store():
    return FakeMediaStore()


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def app_factory(db, session_cache, media_store, clock):
    """
    Build an application wired to the test database and in-memory collaborators.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    def build(**setting_overrides):
        app = create_app(
            make_settings(**setting_overrides),
            session_cache=session_cache,
            media_store=media_store,
            clock=clock,
            create_tables=False,
        )
        app.dependency_overrides[get_db] = override_get_db
        return app

    return build


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture(scope="function")
def client(app):
    """
    Create a test client with a test database session.
    """
    with TestClient(app) as client:
        yield client


@pytest.fixture
def register_user(client):
    def _register(email, password=PASSWORD, **extra):
        payload = {"email": email, "password": password, "confirmPassword": password}
        payload.update(extra)
        response = client.post("/api/v1/auth/registration", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["user"]
    return _register


@pytest.fixture
def login_user(client):
    """Log in and return headers carrying the access token of that user."""
    def _login(email, password=PASSWORD):
        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"access-token": response.json()["accessToken"]}
    return _login


@pytest.fixture
def admin_headers(register_user, login_user):
    register_user(ADMIN_EMAIL)
    return login_user(ADMIN_EMAIL)


@pytest.fixture
def staff_headers(admin_headers, register_user, login_user):
    register_user(STAFF_EMAIL)
    return login_user(STAFF_EMAIL)


@pytest.fixture
def settings_factory():
    return make_settings
