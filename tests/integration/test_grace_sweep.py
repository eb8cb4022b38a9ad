"""Integration tests for the grace period sweep with a real database"""

import pytest
from datetime import datetime, timedelta
from sqlmodel import select

from src.adapter.repositories.subscription_history_repository import (
    SqlAlchemySubscriptionHistoryRepository,
)
from src.adapter.repositories.subscription_repository import SqlAlchemySubscriptionRepository
from src.adapter.services.notification_service import LoggingNotificationService
from src.app.use_cases.subscription.dtos import ActivationSource, PaymentEvidenceDTO
from src.depends import build_grace_enforcer, build_state_machine
from src.domain.audit_log import AuditLog
from src.domain.subscription import SubscriptionStatus


def sweep_on(session, audit_sink):
    return build_grace_enforcer(session, LoggingNotificationService(), audit_sink)


def run_after_listing(enforcer, operation):
    """Run another operation between the sweep loading its candidates and acting on them"""
    load = enforcer.subscription_repo.list_in_grace_period

    async def load_then_run():
        subscriptions = await load()
        await operation()
        return subscriptions

    enforcer.subscription_repo.list_in_grace_period = load_then_run


async def history_of(session_factory, subscription_id):
    async with session_factory() as session:
        entries = await SqlAlchemySubscriptionHistoryRepository(session).list_by_subscription(
            subscription_id
        )
        return [(e.action, e.reason) for e in entries]


class TestGraceSweepIntegration:

    @pytest.mark.asyncio
    async def test_expired_grace_period_is_canceled_once(
        self, grace_enforcer, make_subscription, db_session
    ):
        now = datetime.utcnow()
        await make_subscription(
            status=SubscriptionStatus.GRACE_PERIOD, grace_period_end=now - timedelta(hours=2)
        )

        first = await grace_enforcer.execute(now=now)
        second = await grace_enforcer.execute(now=now + timedelta(hours=1))

        assert first.value.cancelled == 1
        assert second.value.processed == 0

        subscription = await SqlAlchemySubscriptionRepository(db_session).get_by_id("sub_1")
        assert subscription.status == SubscriptionStatus.CANCELED
        assert subscription.grace_period_end is None

        entries = await SqlAlchemySubscriptionHistoryRepository(db_session).list_by_subscription("sub_1")
        assert [(e.action, e.reason) for e in entries] == [("cancelled", "grace_period_expired")]

    @pytest.mark.asyncio
    async def test_warning_writes_notification_audit(
        self, grace_enforcer, make_subscription, session_factory
    ):
        now = datetime.utcnow()
        await make_subscription(
            status=SubscriptionStatus.GRACE_PERIOD, grace_period_end=now + timedelta(days=3)
        )
        await make_subscription(
            "sub_2", "user_2", SubscriptionStatus.GRACE_PERIOD,
            grace_period_end=now + timedelta(days=5),
        )

        result = await grace_enforcer.execute(now=now)

        assert result.value.processed == 2
        assert result.value.warned == 1
        async with session_factory() as session:
            audit = (await session.execute(select(AuditLog))).scalars().all()
        assert [(a.action, a.user_id, a.resource_id) for a in audit] == [
            ("notification_sent", "system", "sub_1")
        ]
        assert audit[0].details["days_remaining"] == 3

    @pytest.mark.asyncio
    async def test_set_grace_period_then_sweep_after_expiry(
        self, state_machine, grace_enforcer, make_subscription
    ):
        await make_subscription(status=SubscriptionStatus.PAST_DUE)

        await state_machine.set_grace_period("sub_1", 7)
        result = await grace_enforcer.execute(now=datetime.utcnow() + timedelta(days=8))

        assert result.value.cancelled == 1


class TestOverlappingGraceSweeps:

    @pytest.mark.asyncio
    async def test_two_sweeps_cancel_once(self, make_subscription, session_factory, audit_sink):
        now = datetime.utcnow()
        await make_subscription(
            status=SubscriptionStatus.GRACE_PERIOD, grace_period_end=now - timedelta(hours=2)
        )
        first = []

        async with session_factory() as session_a, session_factory() as session_b:
            sweep_a = sweep_on(session_a, audit_sink)
            sweep_b = sweep_on(session_b, audit_sink)

            async def sweep_first():
                first.append(await sweep_a.execute(now=now))

            run_after_listing(sweep_b, sweep_first)
            second = await sweep_b.execute(now=now)

        assert first[0].value.cancelled == 1
        assert second.value.cancelled == 0
        assert second.value.skipped == 1
        assert second.value.errors == []
        assert await history_of(session_factory, "sub_1") == [
            ("cancelled", "grace_period_expired")
        ]

    @pytest.mark.asyncio
    async def test_payment_during_sweep_keeps_subscription_active(
        self, make_subscription, session_factory, audit_sink
    ):
        now = datetime.utcnow()
        await make_subscription(
            status=SubscriptionStatus.GRACE_PERIOD, grace_period_end=now - timedelta(hours=2)
        )
        evidence = PaymentEvidenceDTO(
            reference="ref_retry", provider_payment_id="7002", amount=1000, currency="NGN"
        )

        async with session_factory() as session_a, session_factory() as session_b:
            state_machine = build_state_machine(session_a, audit_sink)
            sweep = sweep_on(session_b, audit_sink)

            async def pay():
                result = await state_machine.activate("sub_1", evidence, ActivationSource.WEBHOOK)
                assert result.value.changed

            run_after_listing(sweep, pay)
            result = await sweep.execute(now=now)

        assert result.value.cancelled == 0
        assert result.value.skipped == 1
        async with session_factory() as session:
            subscription = await SqlAlchemySubscriptionRepository(session).get_by_id("sub_1")
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert await history_of(session_factory, "sub_1") == [("activated", "webhook")]
