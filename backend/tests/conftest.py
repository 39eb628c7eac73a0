# Shared pytest configuration and fixtures for all test types
import pytest
import pytest_asyncio
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from common.core.config import settings
from common.providers.rate_limiter.limiter import limiter

# Rate limits are exercised by SlowAPI itself, not by these tests
limiter.enabled = False

from api.main import app  # noqa: E402
from common.db.base import Base  # noqa: E402
from packages.auth.dependencies import get_current_active_user  # noqa: E402
from packages.auth.models.domain.authenticated_user import AuthenticatedUser  # noqa: E402
from packages.billing.models.database.payment import PaymentEntity  # noqa: E402,F401
from packages.companies.models.database.company import CompanyEntity  # noqa: E402
from tests.factories.stripe_events import TEST_WEBHOOK_SECRET  # noqa: E402

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PRICE_IDS = {
    "stripe_price_starter_monthly": "price_starter_monthly",
    "stripe_price_starter_annual": "price_starter_annual",
    "stripe_price_team_monthly": "price_team_monthly",
    "stripe_price_team_annual": "price_team_annual",
    "stripe_price_business_monthly": "price_business_monthly",
    "stripe_price_business_annual": "price_business_annual",
}


@pytest.fixture(autouse=True)
def billing_settings(monkeypatch):
    """Configure Stripe webhook secret and price table for every test."""
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_dummy")
    monkeypatch.setattr(settings, "stripe_webhook_secret", TEST_WEBHOOK_SECRET)
    for name, price_id in TEST_PRICE_IDS.items():
        monkeypatch.setattr(settings, name, price_id)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)
    monkeypatch.setattr(
        "common.db.scoped.AsyncSessionLocalReadonly", test_session_factory
    )


async def _create_company(test_db: AsyncSession, **fields) -> CompanyEntity:
    company = CompanyEntity(**fields)
    test_db.add(company)
    await test_db.commit()
    await test_db.refresh(company)
    return company


@pytest_asyncio.fixture(scope="function")
async def sample_company(test_db: AsyncSession):
    """A company on a running trial with a billing customer."""
    now = datetime.now(timezone.utc)
    return await _create_company(
        test_db,
        name="test company",
        email="billing@test.example",
        stripe_customer_id="cus_test123",
        subscription_ids=[],
        subscription_status="trial",
        subscription_plan="trial",
        subscription_end=now + timedelta(days=20),
        trial_start_date=now - timedelta(days=10),
        max_seats=10,
        seated_member_ids=["user-1"],
    )


@pytest_asyncio.fixture(scope="function")
async def subscribed_company(test_db: AsyncSession):
    """A company on an active team plan."""
    return await _create_company(
        test_db,
        name="subscribed company",
        stripe_customer_id="cus_subscribed",
        subscription_ids=["sub_existing"],
        subscription_status="active",
        subscription_plan="team",
        subscription_period="monthly",
        subscription_end=datetime.now(timezone.utc) + timedelta(days=25),
        max_seats=5,
        seated_member_ids=["user-1", "user-2", "user-3", "user-4"],
    )


@pytest_asyncio.fixture(scope="function")
async def company_without_customer(test_db: AsyncSession):
    """A company that never talked to the billing provider."""
    return await _create_company(
        test_db,
        name="new company",
        email="owner@new.example",
        subscription_ids=[],
        seated_member_ids=[],
    )


@pytest_asyncio.fixture(scope="function")
async def test_user(sample_company):
    """Create a test authenticated user."""
    return AuthenticatedUser(user_id="user-1", company_id=sample_company.id)


@pytest_asyncio.fixture(scope="function")
async def client(test_user):
    """Create a test client authenticated as test_user."""

    def override_get_current_active_user():
        return test_user

    app.dependency_overrides[get_current_active_user] = override_get_current_active_user

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def anonymous_client():
    """Create a test client without any auth override."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
