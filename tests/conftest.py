# tests/conftest.py
import os
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Must be set before clinic.* is imported: the engine and settings are module-level
os.environ["SQL_DSN"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["CLINIC_TIMEZONE"] = "UTC"
os.environ["APP_ENV"] = "test"
os.environ["DB_AUTO_CREATE"] = "false"

from clinic.core.config import settings  # noqa: E402
from clinic.core.security import create_access_token, hash_password  # noqa: E402
from clinic.db.base import Base  # noqa: E402
from clinic.db.sql import get_session  # noqa: E402
from clinic.main import app  # noqa: E402
from clinic.modules.doctors import repository as doctors_repo  # noqa: E402
from clinic.modules.doctors.models import Weekday  # noqa: E402
from clinic.modules.users import repository as users_repo  # noqa: E402
from clinic.modules.users.models import User, UserRole  # noqa: E402

import clinic.models  # noqa: E402,F401

API = settings.API_PREFIX
PASSWORD = "secret-pass-1"
ALL_WEEK = [d.value for d in Weekday]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False, class_=AsyncSession)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_test_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_test_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(session, email: str, role: UserRole = UserRole.PATIENT, name: str = "Test User") -> User:
    user = await users_repo.create_user(
        session,
        name=name,
        email=email,
        password_hash=hash_password(PASSWORD),
        role=role,
    )
    await session.commit()
    return user


async def make_doctor(session, **overrides):
    values = {
        "name": "Dr. Ada Lovelace",
        "specialization": "Cardiology",
        "email": "ada@clinic.com",
        "phone": "+15550001",
        "experience": 10,
        "license_number": "LIC-001",
        "hospital": "General Hospital",
        "consultation_fee": Decimal("150.00"),
        "available_days": ALL_WEEK,
        "start_time": time(8, 0),
        "end_time": time(18, 0),
        "appointment_duration": 30,
    }
    values.update(overrides)
    doctor = await doctors_repo.create_doctor(session, values)
    await session.commit()
    return doctor


def auth_headers(user: User) -> dict:
    token = create_access_token(subject=str(user.id), email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


def future_slot(days: int = 3, hour: int = 10, minutes: int = 30):
    """A [start, end) UTC interval `days` from today, inside 08:00-18:00."""
    start = (datetime.now(timezone.utc) + timedelta(days=days)).replace(
        hour=hour, minute=0, second=0, microsecond=0
    )
    return start, start + timedelta(minutes=minutes)


@pytest.fixture
async def patient(session):
    return await make_user(session, "patient@mail.com", name="Pat Patient")


@pytest.fixture
async def other_patient(session):
    return await make_user(session, "other@mail.com", name="Olga Other")


@pytest.fixture
async def admin(session):
    return await make_user(session, "admin@mail.com", role=UserRole.ADMIN, name="Adam Admin")


@pytest.fixture
async def doctor(session):
    return await make_doctor(session)
