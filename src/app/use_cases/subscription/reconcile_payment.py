"""ReconcilePayment Use Case

Finds provider-side evidence that a subscription was paid for and drives
activation through the state machine when the webhook never arrived.
"""

import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Tuple
from libs.result import Result, Return, Error
from src.app.errors import ErrorCode
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.app.services.payment_gateway import PROVIDER_SUCCESS, PaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.domain.currency import UnsupportedCurrencyError, to_major_units
from src.domain.subscription import SubscriptionStatus
from .dtos import (
    ActivationSource,
    PaymentEvidenceDTO,
    ReconciliationResultDTO,
    SubscriptionSnapshotDTO,
    TierFailureDTO,
)
from .state_machine import SubscriptionStateMachine

logger = logging.getLogger(__name__)

TIER_REFERENCE = "reference"
TIER_RECENT_SUCCESS = "recent_success"
TIER_PENDING_VERIFICATION = "pending_verification"
TIER_DEEP_SEARCH = "deep_search"

CANDIDATES_UNVERIFIED = "candidates_unverified"
NO_PROVIDER_TRANSACTIONS = "no_provider_transactions"
PROVIDER_TRANSACTIONS_UNMATCHED = "provider_transactions_unmatched"


class ReconcileContext:
    """Plain values gathered for one reconciliation run"""

    def __init__(
        self,
        subscription_id: str,
        user_id: str,
        status: SubscriptionStatus,
        provider_customer_id: Optional[str],
        reference: Optional[str],
        now: datetime,
    ):
        self.subscription_id = subscription_id
        self.user_id = user_id
        self.status = status
        self.provider_customer_id = provider_customer_id
        self.reference = reference
        self.now = now
        self.local_candidates = 0
        self.provider_transactions = 0


def tier_failed(reason: str) -> Result:
    return Return.err(Error(code=ErrorCode.RECONCILIATION_EXHAUSTED, message=reason, reason=reason))


class ReconcilePayment:
    """
    Use Case: Reconcile a subscription with the payment provider

    Tiers, cheapest first; the first tier that activates wins:
    1. reference            - verify the caller's reference with the provider
    2. recent_success       - succeeded local payments from the last 7 days
    3. pending_verification - verify pending/processing local payments (30 days)
    4. deep_search          - list the customer's successful provider transactions

    Local scans cover payments linked to the subscription and orphaned
    payments of the same owner. Provider errors fail a tier, never the run.
    Every tier only activates through the state machine, so re-running is
    safe.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        state_machine: SubscriptionStateMachine,
        subscription_repo: SubscriptionRepository,
        payment_repo: PaymentRepository,
        gateway: PaymentGateway,
        recent_success_days: int = 7,
        pending_window_days: int = 30,
    ):
        self.uow = uow
        self.state_machine = state_machine
        self.subscription_repo = subscription_repo
        self.payment_repo = payment_repo
        self.gateway = gateway
        self.recent_success_days = recent_success_days
        self.pending_window_days = pending_window_days

    def _tiers(self) -> List[Tuple[str, Callable[[ReconcileContext], Awaitable[Result]]]]:
        return [
            (TIER_REFERENCE, self._verify_reference),
            (TIER_RECENT_SUCCESS, self._scan_recent_success),
            (TIER_PENDING_VERIFICATION, self._verify_pending),
            (TIER_DEEP_SEARCH, self._deep_search),
        ]

    async def execute(
        self,
        subscription_id: str,
        reference: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Result[ReconciliationResultDTO]:
        """
        Execute reconciliation

        Args:
            subscription_id: Subscription to reconcile
            reference: Optional provider reference supplied by the caller
            now: Clock override

        Returns:
            Result[ReconciliationResultDTO]: The activating tier, or
            RECONCILIATION_EXHAUSTED with per-tier reasons in details
        """
        if not subscription_id:
            return Return.err(
                Error(code=ErrorCode.VALIDATION_ERROR, message="subscription_id is required")
            )

        subscription = await self.subscription_repo.get_by_id(subscription_id)
        if not subscription:
            return Return.err(
                Error(
                    code=ErrorCode.NOT_FOUND,
                    message=f"Subscription {subscription_id} not found",
                )
            )
        if subscription.status == SubscriptionStatus.CANCELED:
            return Return.err(
                Error(
                    code=ErrorCode.CONFLICT,
                    message=f"Subscription {subscription_id} is canceled",
                    reason="invalid_status",
                )
            )

        snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
        ctx = ReconcileContext(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            status=SubscriptionStatus(subscription.status),
            provider_customer_id=subscription.provider_customer_id,
            reference=reference,
            now=now or datetime.utcnow(),
        )

        logger.info(f"Reconciling subscription {subscription_id} (status={ctx.status.value})")

        failures: List[TierFailureDTO] = []
        for tier, run_tier in self._tiers():
            result = await run_tier(ctx)
            if result.is_ok():
                logger.info(
                    f"Subscription {subscription_id} reconciled by tier {tier} "
                    f"({result.value.source})"
                )
                return result
            failures.append(TierFailureDTO(tier=tier, reason=result.error.reason))
            logger.info(f"Tier {tier} did not reconcile {subscription_id}: {result.error.reason}")

        await self.uow.rollback()

        if ctx.local_candidates > 0:
            diagnostic = CANDIDATES_UNVERIFIED
        elif ctx.provider_transactions == 0:
            diagnostic = NO_PROVIDER_TRANSACTIONS
        else:
            diagnostic = PROVIDER_TRANSACTIONS_UNMATCHED

        logger.warning(f"Reconciliation exhausted for {subscription_id}: {diagnostic}")
        return Return.err(
            Error(
                code=ErrorCode.RECONCILIATION_EXHAUSTED,
                message="No payment evidence found for subscription",
                reason=diagnostic,
                details={
                    "diagnostic": diagnostic,
                    "tiers": [f.model_dump() for f in failures],
                    "local_candidates": ctx.local_candidates,
                    "provider_transactions": ctx.provider_transactions,
                    "subscription": snapshot.model_dump(mode="json"),
                },
            )
        )

    async def _activate(
        self,
        ctx: ReconcileContext,
        tier: str,
        evidence: PaymentEvidenceDTO,
        source: ActivationSource,
    ) -> Result[ReconciliationResultDTO]:
        result = await self.state_machine.activate(ctx.subscription_id, evidence, source, now=ctx.now)
        if result.is_err():
            return tier_failed(f"activation_failed: {result.error.message}")
        return Return.ok(
            ReconciliationResultDTO(
                tier=tier,
                source=source.value,
                reason=result.value.reason,
                subscription=result.value.subscription,
                payment_id=result.value.payment_id,
            )
        )

    async def _verify_reference(self, ctx: ReconcileContext) -> Result[ReconciliationResultDTO]:
        if not ctx.reference:
            return tier_failed("no_reference")

        verification = await self.gateway.verify_transaction(ctx.reference)
        if verification.is_err():
            return tier_failed(f"provider_error: {verification.error.reason or verification.error.message}")

        transaction = verification.value
        if not transaction.is_successful:
            return tier_failed(f"reference_not_successful: {transaction.status}")

        return await self._activate(
            ctx,
            TIER_REFERENCE,
            PaymentEvidenceDTO.from_provider_transaction(transaction),
            ActivationSource.MANUAL_RECOVERY_REF,
        )

    async def _scan_recent_success(self, ctx: ReconcileContext) -> Result[ReconciliationResultDTO]:
        since = ctx.now - timedelta(days=self.recent_success_days)
        payments = await self.payment_repo.list_recent_succeeded(ctx.subscription_id, ctx.user_id, since)
        if not payments:
            return tier_failed("no_recent_succeeded_payments")

        ctx.local_candidates += len(payments)
        evidence = PaymentEvidenceDTO.from_payment(payments[0])
        return await self._activate(ctx, TIER_RECENT_SUCCESS, evidence, ActivationSource.MANUAL_CHECK)

    async def _verify_pending(self, ctx: ReconcileContext) -> Result[ReconciliationResultDTO]:
        since = ctx.now - timedelta(days=self.pending_window_days)
        payments = await self.payment_repo.list_unconfirmed(ctx.subscription_id, ctx.user_id, since)
        if not payments:
            return tier_failed("no_pending_payments")

        ctx.local_candidates += len(payments)
        # Failed activations roll back and expire loaded rows
        candidates = [(p.id, p.provider_payment_ref) for p in payments]

        for payment_id, reference in candidates:
            verification = await self.gateway.verify_transaction(reference)
            if verification.is_err():
                logger.warning(
                    f"Could not verify payment {payment_id} ({reference}): {verification.error.reason}"
                )
                continue
            if not verification.value.is_successful:
                continue

            evidence = PaymentEvidenceDTO.from_provider_transaction(
                verification.value, payment_id=payment_id
            )
            result = await self._activate(
                ctx, TIER_PENDING_VERIFICATION, evidence, ActivationSource.MANUAL_VERIFICATION
            )
            if result.is_ok():
                return result
            logger.warning(f"Verified payment {payment_id} could not activate: {result.error.reason}")

        return tier_failed(CANDIDATES_UNVERIFIED)

    async def _deep_search(self, ctx: ReconcileContext) -> Result[ReconciliationResultDTO]:
        if not ctx.provider_customer_id:
            return tier_failed("no_provider_customer")

        listing = await self.gateway.list_transactions(ctx.provider_customer_id, PROVIDER_SUCCESS)
        if listing.is_err():
            return tier_failed(f"provider_error: {listing.error.reason or listing.error.message}")

        transactions = [t for t in listing.value if t.is_successful]
        ctx.provider_transactions += len(transactions)
        if not transactions:
            return tier_failed(NO_PROVIDER_TRANSACTIONS)

        since = ctx.now - timedelta(days=self.pending_window_days)
        pending = await self.payment_repo.list_unconfirmed(ctx.subscription_id, ctx.user_id, since)
        pending = [(p.id, p.amount, p.currency) for p in pending]

        for transaction in transactions:
            known = await self.payment_repo.get_by_provider_payment_id(transaction.id)
            if known:
                linked_here = known.subscription_id == ctx.subscription_id
                known_id = known.id
                if not (linked_here and ctx.status == SubscriptionStatus.INCOMPLETE):
                    continue
                result = await self._activate(
                    ctx,
                    TIER_DEEP_SEARCH,
                    PaymentEvidenceDTO.from_provider_transaction(transaction, payment_id=known_id),
                    ActivationSource.DEEP_SEARCH_SYNC,
                )
                if result.is_ok():
                    return result
                continue

            try:
                amount = to_major_units(transaction.amount, transaction.currency)
            except UnsupportedCurrencyError:
                logger.warning(
                    f"Skipping provider transaction {transaction.id} with unsupported "
                    f"currency {transaction.currency}"
                )
                continue

            match = next(
                (
                    payment_id for payment_id, pending_amount, currency in pending
                    if pending_amount == amount and currency.upper() == transaction.currency.upper()
                ),
                None,
            )
            result = await self._activate(
                ctx,
                TIER_DEEP_SEARCH,
                PaymentEvidenceDTO.from_provider_transaction(transaction, payment_id=match),
                ActivationSource.DEEP_SEARCH_RECOVERY,
            )
            if result.is_ok():
                return result

        return tier_failed(PROVIDER_TRANSACTIONS_UNMATCHED)
