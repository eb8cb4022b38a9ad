"""Integration tests for ReconcilePayment with a real database"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlmodel import select

from src.adapter.repositories.payment_repository import SqlAlchemyPaymentRepository
from src.adapter.repositories.subscription_history_repository import (
    SqlAlchemySubscriptionHistoryRepository,
)
from src.app.errors import ErrorCode
from src.depends import build_reconcile_payment
from src.domain.payment import Payment, PaymentStatus
from src.domain.subscription import SubscriptionStatus
from tests.fixtures.provider import FakePaymentGateway, provider_transaction


async def add_payment(db_session, payment_id, status=PaymentStatus.PENDING, **kwargs):
    payment = Payment(
        id=payment_id,
        user_id=kwargs.pop("user_id", "user_1"),
        subscription_id=kwargs.pop("subscription_id", "sub_1"),
        amount=kwargs.pop("amount", Decimal("5000.00")),
        currency="NGN",
        status=status,
        provider_payment_ref=kwargs.pop("reference", f"ref_{payment_id}"),
        **kwargs,
    )
    db_session.add(payment)
    await db_session.commit()
    return payment


class InterleavingGateway(FakePaymentGateway):
    """Runs another operation inside the first verification call"""

    def __init__(self):
        super().__init__()
        self.before_first_verify = None

    async def verify_transaction(self, reference: str):
        operation, self.before_first_verify = self.before_first_verify, None
        if operation:
            await operation()
        return await super().verify_transaction(reference)


class TestReconcilePaymentIntegration:

    @pytest.mark.asyncio
    async def test_reference_tier_activates(self, reconcile, gateway, make_subscription, db_session):
        await make_subscription()
        gateway.add(provider_transaction("9001", "ref_checkout"))

        result = await reconcile.execute("sub_1", reference="ref_checkout")

        assert result.is_ok()
        assert result.value.tier == "reference"
        assert result.value.subscription.status == "active"
        payment = await SqlAlchemyPaymentRepository(db_session).get_by_provider_payment_id("9001")
        assert payment.amount == Decimal("5000.00")
        entries = await SqlAlchemySubscriptionHistoryRepository(db_session).list_by_subscription("sub_1")
        assert [(e.action, e.reason) for e in entries] == [("activated", "manual_recovery_ref")]

    @pytest.mark.asyncio
    async def test_orphaned_success_of_same_owner_is_linked(
        self, reconcile, make_subscription, db_session
    ):
        await make_subscription()
        await add_payment(db_session, "pay_orphan", PaymentStatus.SUCCEEDED, subscription_id=None)

        result = await reconcile.execute("sub_1")

        assert result.value.tier == "recent_success"
        payment = await SqlAlchemyPaymentRepository(db_session).get_by_id("pay_orphan")
        assert payment.subscription_id == "sub_1"

    @pytest.mark.asyncio
    async def test_other_owners_orphans_are_ignored(
        self, reconcile, make_subscription, db_session
    ):
        await make_subscription(provider_customer_id=None)
        await add_payment(
            db_session, "pay_other", PaymentStatus.SUCCEEDED, subscription_id=None, user_id="user_2"
        )

        result = await reconcile.execute("sub_1")

        assert result.error.code == ErrorCode.RECONCILIATION_EXHAUSTED

    @pytest.mark.asyncio
    async def test_old_success_is_outside_window(self, reconcile, make_subscription, db_session):
        await make_subscription(provider_customer_id=None)
        await add_payment(
            db_session,
            "pay_old",
            PaymentStatus.SUCCEEDED,
            created_at=datetime.utcnow() - timedelta(days=8),
        )

        result = await reconcile.execute("sub_1")

        assert result.is_err()

    @pytest.mark.asyncio
    async def test_pending_payment_verified_and_updated_in_place(
        self, reconcile, gateway, make_subscription, db_session
    ):
        await make_subscription()
        await add_payment(db_session, "pay_pending", reference="ref_pending")
        gateway.add(provider_transaction("9002", "ref_pending"))

        result = await reconcile.execute("sub_1")

        assert result.value.tier == "pending_verification"
        assert result.value.payment_id == "pay_pending"
        payment = await SqlAlchemyPaymentRepository(db_session).get_by_id("pay_pending")
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.provider_payment_id == "9002"
        count = len((await db_session.execute(select(Payment))).scalars().all())
        assert count == 1

    @pytest.mark.asyncio
    async def test_deep_search_recovers_and_deduplicates(
        self, reconcile, gateway, make_subscription, db_session
    ):
        await make_subscription()
        gateway.customers["CUS_1"] = [provider_transaction("9003", "ref_lost")]

        first = await reconcile.execute("sub_1")
        second = await reconcile.execute("sub_1")

        assert first.value.tier == "deep_search"
        assert first.value.source == "deep_search_recovery"
        # second run is satisfied locally by the payment the first run recorded
        assert second.value.tier == "recent_success"
        assert not second.is_err()
        payments = (await db_session.execute(select(Payment))).scalars().all()
        assert [p.provider_payment_id for p in payments] == ["9003"]

    @pytest.mark.asyncio
    async def test_deep_search_matches_pending_by_amount(
        self, reconcile, gateway, make_subscription, db_session
    ):
        await make_subscription()
        await add_payment(db_session, "pay_small", amount=Decimal("1000.00"))
        await add_payment(db_session, "pay_exact", amount=Decimal("5000.00"))
        gateway.customers["CUS_1"] = [provider_transaction("9004", "ref_provider_side")]

        result = await reconcile.execute("sub_1")

        assert result.value.tier == "deep_search"
        assert result.value.payment_id == "pay_exact"
        small = await SqlAlchemyPaymentRepository(db_session).get_by_id("pay_small")
        assert small.status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_exhausted_with_unverified_candidates(
        self, reconcile, make_subscription, db_session
    ):
        await make_subscription()
        await add_payment(db_session, "pay_pending")

        result = await reconcile.execute("sub_1", reference="ref_unknown")

        assert result.error.code == ErrorCode.RECONCILIATION_EXHAUSTED
        assert result.error.details["diagnostic"] == "candidates_unverified"
        assert result.error.details["subscription"]["status"] == "incomplete"

    @pytest.mark.asyncio
    async def test_canceled_subscription_conflicts(self, reconcile, make_subscription):
        await make_subscription(status=SubscriptionStatus.CANCELED)

        result = await reconcile.execute("sub_1")

        assert result.error.code == ErrorCode.CONFLICT


class TestConcurrentRecoveries:

    async def recover_twice(self, session_factory, audit_sink, gateway, reference=None):
        first = []
        async with session_factory() as session_a, session_factory() as session_b:
            reconcile_a = build_reconcile_payment(session_a, gateway, audit_sink)
            reconcile_b = build_reconcile_payment(session_b, gateway, audit_sink)

            async def recover_first():
                first.append(await reconcile_a.execute("sub_1", reference=reference))

            gateway.before_first_verify = recover_first
            second = await reconcile_b.execute("sub_1", reference=reference)
        return first[0], second

    async def history(self, session_factory):
        async with session_factory() as session:
            entries = await SqlAlchemySubscriptionHistoryRepository(session).list_by_subscription(
                "sub_1"
            )
            return [(e.action, e.reason) for e in entries]

    @pytest.mark.asyncio
    async def test_same_reference_activates_once(
        self, make_subscription, session_factory, audit_sink
    ):
        gateway = InterleavingGateway()
        gateway.add(provider_transaction("9001", "ref_checkout"))
        await make_subscription()

        first, second = await self.recover_twice(
            session_factory, audit_sink, gateway, reference="ref_checkout"
        )

        assert first.value.reason == "activated"
        assert second.is_ok()
        assert second.value.reason == "already_active"
        assert await self.history(session_factory) == [("activated", "manual_recovery_ref")]
        async with session_factory() as session:
            payments = (await session.execute(select(Payment))).scalars().all()
        assert len(payments) == 1

    @pytest.mark.asyncio
    async def test_pending_payment_verified_once(
        self, make_subscription, session_factory, audit_sink, db_session
    ):
        gateway = InterleavingGateway()
        gateway.add(provider_transaction("9001", "ref_pay_pending"))
        await make_subscription()
        await add_payment(db_session, "pay_pending")

        first, second = await self.recover_twice(session_factory, audit_sink, gateway)

        assert first.value.tier == "pending_verification"
        assert first.value.reason == "activated"
        assert second.value.reason == "already_active"
        assert await self.history(session_factory) == [("activated", "manual_verification")]
        async with session_factory() as session:
            payment = await SqlAlchemyPaymentRepository(session).get_by_id("pay_pending")
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.provider_payment_id == "9001"
