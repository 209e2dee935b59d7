"""
Shared test configuration and fixtures
"""
import pytest
import os
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["SKIP_SCHEDULER"] = "true"  # Skip scheduler during tests

from main import app
from api.rate_limit import limiter
from db.base import Base
from db.models import User, Monitor, PingEvent, Settings  # noqa: F401
from db.models.user import PLAN_FREE, SUBSCRIPTION_INACTIVE

# One shared in-memory connection, visible from the TestClient's worker threads
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# Fixed reference instant for fake-clock tests
BASE_TIME = datetime(2026, 1, 5, 12, 0, 0)


def override_get_db():
    """Override database dependency for tests"""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def test_db():
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def session(test_db):
    sess = TestSessionLocal()
    yield sess
    sess.close()


@pytest.fixture
def make_user(session):
    """Factory for persisted users; defaults to an active free account"""
    counter = {"n": 0}

    def _make(
        email=None,
        plan=PLAN_FREE,
        subscription_status=SUBSCRIPTION_INACTIVE,
        is_active=True,
    ):
        counter["n"] += 1
        user = User(
            email=email or f"owner{counter['n']}@example.com",
            hashed_password="not-a-real-hash",
            plan=plan,
            subscription_status=subscription_status,
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def client(test_db):
    """Create a test client with overridden database"""
    from api.dependencies import get_db
    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def login_as(client):
    """Sign up (if needed) and log in, returning bearer headers"""

    def _login(email="test@example.com", password="strongpassword123"):
        client.post("/api/signup", data={"email": email, "password": password})
        response = client.post(
            "/api/login", data={"username": email, "password": password}
        )
        token = response.json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture
def auth_headers(login_as):
    """Create a user and return authentication headers"""
    return login_as()
