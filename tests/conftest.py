"""
Pulseboard - Test Configuration

Pytest fixtures for API, store and real-time tests.
Provides test settings, a file-backed test database, the app client,
user fixtures and an in-memory async session factory for store tests.
"""

from datetime import datetime
from typing import Generator, Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from pulseboard.app import create_app
from pulseboard.auth.models import Role, User
from pulseboard.auth.password import hash_password
from pulseboard.config import Settings
from pulseboard.database import get_engine, get_session_factory, init_db

# Register every table with SQLModel metadata
from pulseboard.admin.models import ConfigEntry  # noqa: F401
from pulseboard.audit.models import AuditLog  # noqa: F401
from pulseboard.metrics.models import Metric  # noqa: F401
from pulseboard.registry.models import AIModel  # noqa: F401


TEST_SECRET = "pulseboard-test-secret"
TEST_PASSWORD = "CorrectHorse42"


@pytest.fixture(scope="function")
def database_path(tmp_path):
    return tmp_path / "pulseboard-test.db"


@pytest.fixture(scope="function")
def test_settings(database_path) -> Settings:
    """Settings with background timers off and generous rate limits."""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{database_path}",
        SECRET_KEY=TEST_SECRET,
        BCRYPT_ROUNDS=4,
        BOOTSTRAP_ADMIN_EMAIL="",
        BOOTSTRAP_ADMIN_PASSWORD="",
        METRICS_GENERATOR_ENABLED=False,
        REALTIME_BROADCAST_INTERVAL_SECONDS=0,
        SESSION_SWEEP_INTERVAL_SECONDS=0,
        API_RATE_LIMIT=10_000,
        AUTH_RATE_LIMIT=10_000,
        EXPORT_RATE_LIMIT=10_000,
    )


@pytest.fixture(scope="function")
def test_engine(database_path):
    """Synchronous engine over the same file the app uses, for seeding and checks."""
    engine = create_engine(
        f"sqlite:///{database_path}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(scope="function")
def client(test_settings, test_engine) -> Generator[TestClient, None, None]:
    """Create a test client with fresh database."""
    app = create_app(test_settings)
    with TestClient(app) as c:
        yield c


def make_user(
    db_session: Session,
    email: str,
    role: Role = Role.USER,
    is_active: bool = True,
    password: str = TEST_PASSWORD,
) -> User:
    now = datetime.utcnow()
    user = User(
        id=uuid4(),
        email=email,
        password_hash=hash_password(password, rounds=4),
        role=role,
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def regular_user(db_session) -> User:
    return make_user(db_session, "viewer@test.com", Role.USER)


@pytest.fixture(scope="function")
def admin_user(db_session) -> User:
    return make_user(db_session, "admin@test.com", Role.ADMIN)


@pytest.fixture(scope="function")
def superadmin_user(db_session) -> User:
    return make_user(db_session, "root@test.com", Role.SUPERADMIN)


@pytest.fixture(scope="function")
def inactive_user(db_session) -> User:
    return make_user(db_session, "inactive@test.com", Role.USER, is_active=False)


@pytest.fixture(scope="function")
async def async_engine():
    """In-memory async engine for store-level tests."""
    engine = get_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine):
    return get_session_factory(async_engine)


@pytest.fixture(scope="function")
async def db(session_factory):
    async with session_factory() as session:
        yield session


def login_user(client: TestClient, email: str, password: str = TEST_PASSWORD) -> Optional[dict]:
    """Helper function to login and return the response body."""
    response = client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
    )
    return response.json() if response.status_code == 200 else None


def auth_headers(token: str) -> dict:
    """Create authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {token}"}


def token_for(client: TestClient, user: User) -> str:
    body = login_user(client, user.email)
    assert body is not None, f"login failed for {user.email}"
    return body["token"]
