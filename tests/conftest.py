"""
Pytest configuration and fixtures for testing
"""
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from database_models import Price, Product
from crud.subscription import SubscriptionRepository
from crud.user import UserRepository
from models.enums import ProductType

# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    future=True,
    poolclass=StaticPool,
)

TestAsyncSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

PERIOD_START = datetime(2026, 3, 1, tzinfo=timezone.utc)
PERIOD_END = datetime(2026, 4, 1, tzinfo=timezone.utc)


@pytest.fixture
async def test_db():
    """
    Fixture that provides an isolated, in-memory SQLite database session for each test.

    This fixture:
    - Creates all tables before the test runs
    - Yields a clean AsyncSession for the test
    - Drops all tables after the test completes
    """
    async with test_engine.begin() as conn:
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

    async with TestAsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def user(test_db):
    user = await UserRepository(test_db).create_user({"email": "Ada@Example.com", "name": "Ada"})
    await test_db.commit()
    return user


@pytest.fixture
async def catalog(test_db):
    """Pro product with a 100 and a 200 messages/month price"""
    product = Product(name="Pro", type=ProductType.PRO, stripe_product_id="prod_pro")
    starter = Price(product=product, key="pro_100", monthly_message_limit=100, stripe_price_id="price_pro_100")
    plus = Price(product=product, key="pro_200", monthly_message_limit=200, stripe_price_id="price_pro_200")
    test_db.add_all([product, starter, plus])
    await test_db.commit()
    return SimpleNamespace(product=product, starter=starter, plus=plus)


@pytest.fixture
async def subscription(test_db, user, catalog):
    """Active subscription on the 200 messages/month price"""
    record = await SubscriptionRepository(test_db).create(
        user.id,
        catalog.plus,
        {
            "stripe_customer_id": "cus_123",
            "stripe_subscription_id": "sub_123",
            "stripe_subscription_item_id": "si_123",
            "stripe_current_period_start": PERIOD_START,
            "stripe_current_period_end": PERIOD_END,
        },
    )
    await test_db.commit()
    return record


def make_schedule(phases=None, schedule_id="sub_sched_123"):
    """Subscription schedule as Stripe returns it for from_subscription"""
    if phases is None:
        phases = [
            {
                "items": [{"price": "price_pro_200", "quantity": 1}],
                "start_date": int(PERIOD_START.timestamp()),
                "end_date": int(PERIOD_END.timestamp()),
            }
        ]
    return {"id": schedule_id, "phases": phases}


@pytest.fixture
def stripe_client():
    """StripeClient stand-in with async resource methods"""
    client = MagicMock()
    v1 = client.v1
    v1.customers.create_async = AsyncMock(return_value={"id": "cus_new"})
    v1.checkout.sessions.create_async = AsyncMock(
        return_value={"id": "cs_123", "url": "https://checkout.stripe.test/cs_123"}
    )
    v1.billing_portal.sessions.create_async = AsyncMock(
        return_value={"id": "bps_123", "url": "https://billing.stripe.test/bps_123"}
    )
    v1.subscriptions.update_async = AsyncMock(return_value={"id": "sub_123"})
    v1.subscription_schedules.create_async = AsyncMock(return_value=make_schedule())
    v1.subscription_schedules.update_async = AsyncMock(
        side_effect=lambda schedule_id, params: {"id": schedule_id, **params}
    )
    v1.subscription_schedules.release_async = AsyncMock(return_value={"id": "sub_sched_123", "status": "released"})
    v1.subscription_schedules.retrieve_async = AsyncMock(return_value={"id": "sub_sched_123", "status": "active"})
    return client


@pytest.fixture
def schedule_factory():
    return make_schedule
