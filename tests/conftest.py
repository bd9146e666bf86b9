import os
from collections.abc import AsyncGenerator
from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

# Settings are read at import time, so defaults for the test run go in first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./littlefalls_app_test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ["BCRYPT_ROUNDS"] = "4"

from app.core.security import get_password_hash, issue_access_token  # noqa: E402
from app.database import get_db  # noqa: E402
from app.dependencies import get_email_service  # noqa: E402
from app.main import app  # noqa: E402
from app.models import metadata  # noqa: E402
from app.models.users import users  # noqa: E402

# Test database URL - never the application database
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///./littlefalls_test.db")

# Use NullPool so every session gets a fresh connection
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

DEFAULT_PASSWORD = "Passw0rd"


class FakeEmailService:
    """Records outgoing e-mail instead of talking to SMTP."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    def _record(self, kind: str, to: str, **extra) -> bool:
        if self.fail:
            return False
        self.sent.append({"kind": kind, "to": to, **extra})
        return True

    async def send_verification_code(self, to: str, name: str, code: str) -> bool:
        return self._record("verification", to, code=code)

    async def send_recovery_code(self, to: str, name: str, code: str) -> bool:
        return self._record("recovery", to, code=code)

    async def send_password_changed(self, to: str, name: str) -> bool:
        return self._record("password_changed", to)

    def last_code(self, kind: str) -> str:
        return [mail for mail in self.sent if mail["kind"] == kind][-1]["code"]


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    # Create tables
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    # Create session
    async with TestSessionLocal() as session:
        yield session

    # Drop tables after test
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def email_service() -> FakeEmailService:
    """In-memory e-mail sender."""
    return FakeEmailService()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    email_service: FakeEmailService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Insert an account directly, bypassing registration."""

    async def _make_user(
        email: str,
        role: str = "patient",
        password: str = DEFAULT_PASSWORD,
        **overrides,
    ) -> dict:
        now = datetime.now(UTC)
        values = {
            "id": uuid4(),
            "email": email,
            "password_hash": get_password_hash(password),
            "first_name": "Laura",
            "last_name": "Gomez",
            "age": 30,
            "role": role,
            "is_active": True,
            "is_verified": True,
            "created_at": now,
            "updated_at": now,
            **overrides,
        }
        await db_session.execute(insert(users).values(**values))
        await db_session.commit()
        return values

    return _make_user


@pytest.fixture
def auth_headers():
    """Build authorization headers carrying an access token for a user."""

    def _auth_headers(user: dict) -> dict:
        token = issue_access_token(
            {"sub": user["id"], "email": user["email"], "role": user["role"]},
            expires_delta=timedelta(minutes=30),
        )
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest_asyncio.fixture
async def patient(make_user) -> dict:
    return await make_user("paciente@gmail.com")


@pytest_asyncio.fixture
async def veterinarian(make_user) -> dict:
    return await make_user("vet@littlefalls.com", role="veterinarian", first_name="Carlos")


@pytest_asyncio.fixture
async def admin(make_user) -> dict:
    return await make_user("admin@littlefalls.com", role="admin")


@pytest.fixture
def sample_appointment_data() -> dict:
    """Sample appointment data for testing."""
    return {
        "patient_first_name": "Laura",
        "patient_last_name": "Gomez",
        "patient_email": "paciente@gmail.com",
        "patient_phone": "5512345678",
        "pet_name": "Firulais",
        "pet_age": 3,
        "pet_species": "dog",
        "pet_sex": "male",
        "date": (date.today() + timedelta(days=7)).isoformat(),
        "time_slot": "10:00",
        "description": "Annual checkup, vaccines.",
    }
