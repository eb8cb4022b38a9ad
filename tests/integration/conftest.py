import pytest_asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.services.audit_sink import SqlAlchemyAuditSink
from src.adapter.services.notification_service import LoggingNotificationService
from src.depends import (
    build_grace_enforcer,
    build_reconcile_payment,
    build_state_machine,
    get_audit_sink,
    get_notification_service,
    get_payment_gateway,
    get_session,
)
from src.domain.billing_plan import BillingInterval, BillingPlan
from src.domain.subscription import Subscription, SubscriptionStatus
from tests.fixtures.provider import FakePaymentGateway


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Create a throwaway SQLite database per test"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'billing_test.db'}", echo=False, future=True
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def audit_sink(session_factory):
    return SqlAlchemyAuditSink(session_factory)


@pytest_asyncio.fixture
async def gateway():
    return FakePaymentGateway()


@pytest_asyncio.fixture
async def state_machine(db_session, audit_sink):
    return build_state_machine(db_session, audit_sink)


@pytest_asyncio.fixture
async def reconcile(db_session, gateway, audit_sink):
    return build_reconcile_payment(db_session, gateway, audit_sink)


@pytest_asyncio.fixture
async def grace_enforcer(db_session, audit_sink):
    return build_grace_enforcer(db_session, LoggingNotificationService(), audit_sink)


@pytest_asyncio.fixture
async def plans(db_session):
    """Basic (10 NGN) and Pro (20 NGN) monthly plans"""
    basic = BillingPlan(
        id="plan_basic", name="Basic", price=Decimal("10.00"), currency="NGN",
        interval=BillingInterval.MONTHLY,
    )
    pro = BillingPlan(
        id="plan_pro", name="Pro", price=Decimal("20.00"), currency="NGN",
        interval=BillingInterval.MONTHLY,
    )
    db_session.add(basic)
    db_session.add(pro)
    await db_session.commit()
    return {"basic": basic, "pro": pro}


@pytest_asyncio.fixture
async def make_subscription(db_session, plans):
    async def _make(
        subscription_id="sub_1",
        user_id="user_1",
        status=SubscriptionStatus.INCOMPLETE,
        **kwargs,
    ):
        subscription = Subscription(
            id=subscription_id,
            user_id=user_id,
            plan_id=kwargs.pop("plan_id", "plan_basic"),
            status=status,
            provider_customer_id=kwargs.pop("provider_customer_id", "CUS_1"),
            **kwargs,
        )
        db_session.add(subscription)
        await db_session.commit()
        return subscription

    return _make


@pytest_asyncio.fixture
async def active_period():
    start = datetime.utcnow() - timedelta(days=10)
    return {"current_period_start": start, "current_period_end": start + timedelta(days=30)}


@pytest_asyncio.fixture
async def client(db_session, gateway, audit_sink):
    """Create test client with database session and provider overrides"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_audit_sink] = lambda: audit_sink
    app.dependency_overrides[get_notification_service] = LoggingNotificationService

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
