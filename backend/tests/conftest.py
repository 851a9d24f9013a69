"""
Test configuration and fixtures for GymDesk backend tests.
"""
import os
import pytest
import pytest_asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.db.base import Base, get_db
from app.core.security import get_password_hash, create_access_token
from app.models.user import User
from app.models.member import Member, MemberStatus, PaymentStatus, ReminderStatus
from app.services.billing import Actor, ensure_cycles, normalize_duration, sync_summary, to_money


# Use a file-based SQLite DB to avoid :memory: multiple-connection issues
# with SQLAlchemy + aiosqlite (each new connection would see an empty DB).
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    # Clean up test database file
    try:
        os.remove("./test.db")
    except OSError:
        pass


@pytest_asyncio.fixture(scope="function")
async def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Session for fixtures and direct assertions."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client. Each request gets its own session that commits or rolls
    back exactly like app.db.base.get_db.
    """
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin user."""
    user = User(
        email="admin@example.com",
        name="Front Desk",
        password_hash=get_password_hash("AdminPass123"),
        is_admin=True,
        is_active=True,
        created=datetime.now(timezone.utc),
        updated=datetime.now(timezone.utc),
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def staff_user(db_session: AsyncSession) -> User:
    """Create a non-admin user."""
    user = User(
        email="staff@example.com",
        name="Trainer",
        password_hash=get_password_hash("StaffPass123"),
        is_admin=False,
        is_active=True,
        created=datetime.now(timezone.utc),
        updated=datetime.now(timezone.utc),
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_token(admin_user: User) -> str:
    """Create an access token for the admin user."""
    return create_access_token(subject=admin_user.id)


@pytest_asyncio.fixture
async def auth_headers(admin_token: str) -> dict:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def actor() -> Actor:
    return Actor(id="admin0000000001", name="Front Desk")


@pytest.fixture
def make_member():
    """
    Build a transient Member with one seeded cycle, no session needed.

    Engine tests work on these objects directly.
    """
    def _make(
        fee="1000",
        duration="1 Month",
        start_date=date(2024, 1, 1),
        member_status=MemberStatus.ACTIVE,
        **fields
    ) -> Member:
        member = Member(
            name=fields.pop("name", "Test Member"),
            phone=fields.pop("phone", "5550000001"),
            fee=to_money(fee),
            duration=normalize_duration(duration),
            registration_date=start_date,
            start_date=start_date,
            member_status=member_status,
            reminder_status=ReminderStatus.NONE,
            paid_amount=Decimal("0.00"),
            remaining_amount=Decimal("0.00"),
            payment_status=PaymentStatus.PENDING,
            **fields
        )
        ensure_cycles(member, start_date)
        sync_summary(member)
        return member

    return _make
