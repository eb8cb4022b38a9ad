from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.repositories import (
    SqlAlchemyBillingPlanRepository,
    SqlAlchemyPaymentRepository,
    SqlAlchemySubscriptionHistoryRepository,
    SqlAlchemySubscriptionRepository,
)
from src.adapter.services.audit_sink import SqlAlchemyAuditSink
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.paystack_gateway import PaystackGateway
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.audit_sink import AuditSink
from src.app.services.ledger_writer import LedgerWriter
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.subscription import (
    EnforceGracePeriods,
    GracePeriodConfigDTO,
    ReconcilePayment,
    SubscriptionStateMachine,
)

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_payment_gateway() -> PaymentGateway:
    return PaystackGateway(
        secret_key=ApplicationConfig.PAYSTACK_SECRET_KEY,
        base_url=ApplicationConfig.PAYSTACK_BASE_URL,
        timeout=ApplicationConfig.PROVIDER_TIMEOUT_SECONDS,
        page_size=ApplicationConfig.PROVIDER_PAGE_SIZE,
    )


def get_notification_service() -> NotificationService:
    return create_notification_service(ApplicationConfig.NOTIFICATION_WEBHOOK)


def get_audit_sink() -> AuditSink:
    return SqlAlchemyAuditSink(AsyncSessionLocal)


def grace_period_config() -> GracePeriodConfigDTO:
    return GracePeriodConfigDTO(
        grace_period_days=ApplicationConfig.GRACE_PERIOD_DAYS,
        warning_days=ApplicationConfig.GRACE_WARNING_DAYS,
        enable_auto_cancel=ApplicationConfig.GRACE_AUTO_CANCEL,
    )


def build_state_machine(session: AsyncSession, audit_sink: AuditSink) -> SubscriptionStateMachine:
    """Wire the state machine and its ledger onto one session"""
    return SubscriptionStateMachine(
        uow=SqlAlchemyUnitOfWork(session),
        subscription_repo=SqlAlchemySubscriptionRepository(session),
        payment_repo=SqlAlchemyPaymentRepository(session),
        plan_repo=SqlAlchemyBillingPlanRepository(session),
        ledger=LedgerWriter(SqlAlchemySubscriptionHistoryRepository(session), audit_sink),
    )


def build_reconcile_payment(
    session: AsyncSession, gateway: PaymentGateway, audit_sink: AuditSink
) -> ReconcilePayment:
    return ReconcilePayment(
        uow=SqlAlchemyUnitOfWork(session),
        state_machine=build_state_machine(session, audit_sink),
        subscription_repo=SqlAlchemySubscriptionRepository(session),
        payment_repo=SqlAlchemyPaymentRepository(session),
        gateway=gateway,
        recent_success_days=ApplicationConfig.RECONCILE_RECENT_SUCCESS_DAYS,
        pending_window_days=ApplicationConfig.RECONCILE_PENDING_WINDOW_DAYS,
    )


def build_grace_enforcer(
    session: AsyncSession,
    notification_service: NotificationService,
    audit_sink: AuditSink,
    config: GracePeriodConfigDTO = None,
) -> EnforceGracePeriods:
    return EnforceGracePeriods(
        state_machine=build_state_machine(session, audit_sink),
        subscription_repo=SqlAlchemySubscriptionRepository(session),
        notification_service=notification_service,
        ledger=LedgerWriter(SqlAlchemySubscriptionHistoryRepository(session), audit_sink),
        config=config or grace_period_config(),
    )
