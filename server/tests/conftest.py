"""Test configuration and fixtures."""

import os

# Settings are read at import time, so the test environment must be in place first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")

from datetime import date, time, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool, StaticPool  # noqa: E402

from playzone.core.database import Base, get_db  # noqa: E402
from playzone.core.dependencies import get_notification_sender  # noqa: E402
from playzone.models import (  # noqa: E402
    DiscountVoucher,
    HolidayCalendar,
    Package,
    TimeSlot,
    User,
    UserRole,
    default_permissions,
)
from playzone.services.identity_service import Identity, hash_password, issue_token  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeSender:
    """Records outbound messages instead of delivering them."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.sent: list[tuple[str, str]] = []

    async def send_text(self, to: str, body: str) -> bool:
        self.sent.append((to, body))
        return self.deliver

    def last_code(self) -> str:
        """The digits of the most recent OTP message."""
        body = self.sent[-1][1]
        return body.split("*")[3]


async def create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    await create_schema(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path):
    """
    Factory for independent sessions on a file-backed database.

    Each session gets its own connection, as concurrent requests would.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'playzone.db'}",
        poolclass=NullPool,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    await create_schema(engine)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.fixture
def fake_sender():
    return FakeSender()


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, fake_sender):
    """Create the application with the test database and sender."""
    from playzone.main import create_app

    app = create_app()

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_sender] = lambda: fake_sender

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def visit_date():
    """A bookable date a week from today."""
    return date.today() + timedelta(days=7)


async def seed_catalog(session: AsyncSession, visit_date: date) -> SimpleNamespace:
    """Packages, two slots of capacity 15, a holiday and the welcome voucher."""
    walk_in = Package(name="Walk-in Play", type="walk_in", price=Decimal("299.00"), duration=2, features=[])
    birthday = Package(
        name="Birthday Party", type="birthday", price=Decimal("4999.00"), duration=3, max_children=15, features=[]
    )
    morning = TimeSlot(start_time=time(10, 0), end_time=time(12, 0), max_capacity=15)
    noon = TimeSlot(start_time=time(12, 0), end_time=time(14, 0), max_capacity=15)
    holiday = HolidayCalendar(holiday_date=visit_date + timedelta(days=3), name="Independence Day")
    welcome = DiscountVoucher(
        code="WELCOME20",
        discount_type="percentage",
        discount_value=Decimal("20"),
        min_amount=Decimal("200"),
        max_discount=Decimal("100"),
        valid_from=date.today() - timedelta(days=30),
        valid_till=date.today() + timedelta(days=60),
    )
    session.add_all([walk_in, birthday, morning, noon, holiday, welcome])
    await session.commit()
    # Plain ids stay readable after a rollback expires the instances
    return SimpleNamespace(
        walk_in=walk_in,
        birthday=birthday,
        morning=morning,
        noon=noon,
        holiday=holiday,
        welcome=welcome,
        walk_in_id=walk_in.id,
        birthday_id=birthday.id,
        morning_id=morning.id,
        noon_id=noon.id,
        holiday_date=holiday.holiday_date,
        welcome_id=welcome.id,
    )


@pytest_asyncio.fixture
async def catalog(test_session, visit_date):
    return await seed_catalog(test_session, visit_date)


async def create_user(
    session: AsyncSession,
    role: UserRole = UserRole.CUSTOMER,
    phone: str | None = None,
    email: str | None = None,
    password: str | None = None,
) -> User:
    user = User(
        phone=phone,
        email=email,
        first_name=role.value.title(),
        role=role.value,
        is_admin=role == UserRole.ADMIN,
        permissions=default_permissions(role),
        password_hash=hash_password(password) if password else None,
        registration_source="test",
    )
    session.add(user)
    await session.commit()
    return user


def bearer_headers(user: User) -> dict[str, str]:
    token, _ = issue_token(Identity.from_user(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Builds the Authorization header for a test user."""
    return bearer_headers


@pytest_asyncio.fixture
async def customer(test_session):
    return await create_user(test_session, phone="+919876543210")


@pytest_asyncio.fixture
async def staff(test_session):
    return await create_user(test_session, UserRole.STAFF, email="staff@playzone.test", password="counter-pass")


@pytest_asyncio.fixture
async def admin(test_session):
    return await create_user(test_session, UserRole.ADMIN, email="admin@playzone.test", password="admin-pass-123")


@pytest.fixture
def booking_payload(catalog, visit_date):
    """Valid create-booking body for two children in the morning slot."""
    return {
        "package_id": catalog.walk_in_id,
        "time_slot_id": catalog.morning_id,
        "booking_date": visit_date.isoformat(),
        "number_of_children": 2,
        "parent_name": "Asha Rao",
        "parent_phone": "+919812345678",
        "parent_email": "asha@example.com",
        "children_ages": [4, 6],
    }


@pytest.fixture
def catalog_seeder():
    """Seeds the standard catalog into any session."""
    return seed_catalog


@pytest.fixture
def user_factory():
    """Creates a user with the role's default permissions in any session."""
    return create_user
