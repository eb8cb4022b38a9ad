"""Subscription State Machine

Owns subscription statuses and the rules for moving between them. It is the
only component that writes Subscription and Payment rows, and every write
goes through the ledger writer inside the same unit of work.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Union
from libs.result import Result, Return, Error
from src.app.errors import ErrorCode
from src.app.repositories.billing_plan_repository import BillingPlanRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.app.services.ledger_writer import LedgerWriter
from src.app.services.unit_of_work import UnitOfWork
from src.domain.audit_log import AuditAction, SYSTEM_USER
from src.domain.billing_plan import BillingInterval, add_interval
from src.domain.currency import UnsupportedCurrencyError, to_major_units
from src.domain.payment import Payment, PaymentStatus
from src.domain.proration import calculate_proration
from src.domain.subscription import Subscription, SubscriptionStatus
from src.domain.subscription_history import (
    ActivationSnapshot,
    CancellationSnapshot,
    GracePeriodSnapshot,
    PlanChangeSnapshot,
    PlanSnapshot,
    StatusSnapshot,
    SubscriptionActivated,
    SubscriptionCancelled,
    SubscriptionCreated,
    SubscriptionGracePeriodSet,
    SubscriptionPlanChanged,
    SubscriptionStatusChanged,
)
from .dtos import (
    ActivationSource,
    CancelEffective,
    ChangePlanResultDTO,
    PaymentEvidenceDTO,
    PlanChangeEffective,
    SubscriptionResultDTO,
    SubscriptionSnapshotDTO,
)

logger = logging.getLogger(__name__)

ACTIVATABLE_STATUSES = (
    SubscriptionStatus.INCOMPLETE,
    SubscriptionStatus.PAST_DUE,
    SubscriptionStatus.GRACE_PERIOD,
)
PLAN_CHANGE_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAST_DUE)
GRACE_PERIOD_ELIGIBLE_STATUSES = (
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PAST_DUE,
    SubscriptionStatus.GRACE_PERIOD,
)


def validation_error(message: str, reason: Optional[str] = None) -> Error:
    return Error(code=ErrorCode.VALIDATION_ERROR, message=message, reason=reason)


def not_found(message: str, reason: Optional[str] = None) -> Error:
    return Error(code=ErrorCode.NOT_FOUND, message=message, reason=reason)


def conflict(message: str, reason: Optional[str] = None) -> Error:
    return Error(code=ErrorCode.CONFLICT, message=message, reason=reason)


class SubscriptionStateMachine:
    """
    Use Case: Subscription lifecycle transitions

    Transitions:
    - incomplete -> active                    (activate)
    - active <-> past_due                     (mark_past_due / activate)
    - active, past_due -> grace_period        (set_grace_period)
    - grace_period -> active                  (activate, recovered)
    - any open status -> canceled             (cancel)
    - canceled is terminal

    Every operation:
    1. Validates input before any I/O
    2. Re-reads the subscription with a row lock
    3. Applies the change and appends exactly one history row
    4. Commits, then writes a best-effort audit entry

    Idempotent repeats (already active with the same payment, already
    canceled) succeed with changed=False and write nothing.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        subscription_repo: SubscriptionRepository,
        payment_repo: PaymentRepository,
        plan_repo: BillingPlanRepository,
        ledger: LedgerWriter,
    ):
        self.uow = uow
        self.subscription_repo = subscription_repo
        self.payment_repo = payment_repo
        self.plan_repo = plan_repo
        self.ledger = ledger

    async def _abort(self, error: Error) -> Result:
        await self.uow.rollback()
        return Return.err(error)

    async def _transaction_failed(self, operation: str, subscription_id: str, e: Exception) -> Result:
        await self.uow.rollback()
        logger.error(f"Failed to {operation} subscription {subscription_id}: {e}")
        return Return.err(
            Error(
                code=ErrorCode.TRANSACTION_ERROR,
                message=f"Failed to {operation} subscription",
                reason=str(e),
            )
        )

    async def _unchanged(
        self, subscription: Subscription, reason: str, payment_id: Optional[str] = None
    ) -> Result[SubscriptionResultDTO]:
        # Snapshot before rollback: rollback expires loaded instances
        snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
        await self.uow.rollback()
        return Return.ok(
            SubscriptionResultDTO(
                changed=False, reason=reason, subscription=snapshot, payment_id=payment_id
            )
        )

    async def create(
        self,
        user_id: str,
        plan_id: str,
        provider_customer_id: Optional[str] = None,
    ) -> Result[SubscriptionResultDTO]:
        """
        Create an incomplete subscription for an owner

        Args:
            user_id: Owner identifier
            plan_id: Billing plan to subscribe to
            provider_customer_id: Customer id at the payment provider, if known

        Returns:
            Result[SubscriptionResultDTO]: The new subscription, or
            VALIDATION_ERROR / NOT_FOUND / CONFLICT (owner already has an
            open subscription)
        """
        if not user_id:
            return Return.err(validation_error("user_id is required"))
        if not plan_id:
            return Return.err(validation_error("plan_id is required"))

        try:
            plan = await self.plan_repo.get_by_id(plan_id)
            if not plan or not plan.is_active:
                return await self._abort(not_found(f"Plan {plan_id} not found or inactive"))

            existing = await self.subscription_repo.get_open_by_user_id(user_id)
            if existing:
                return await self._abort(
                    conflict(
                        f"User {user_id} already has an open subscription",
                        reason=f"subscription={existing.id}, status={existing.status.value}",
                    )
                )

            subscription = await self.subscription_repo.create(
                Subscription(
                    user_id=user_id,
                    plan_id=plan_id,
                    status=SubscriptionStatus.INCOMPLETE,
                    provider_customer_id=provider_customer_id,
                )
            )
            await self.ledger.record(
                subscription.id,
                SubscriptionCreated(new=StatusSnapshot(status=SubscriptionStatus.INCOMPLETE)),
                reason=f"Subscription created for plan {plan.name}",
            )
            snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
            await self.uow.commit()
        except Exception as e:
            return await self._transaction_failed("create", user_id, e)

        await self.ledger.audit(
            user_id,
            AuditAction.SUBSCRIPTION_CREATED,
            snapshot.id,
            {"plan_id": plan_id, "status": snapshot.status},
        )
        logger.info(f"Created subscription {snapshot.id} for user {user_id}")
        return Return.ok(
            SubscriptionResultDTO(changed=True, reason="created", subscription=snapshot)
        )

    async def _find_payment(self, evidence: PaymentEvidenceDTO) -> Optional[Payment]:
        """Locate the local row for this evidence, strongest key first"""
        if evidence.provider_payment_id:
            payment = await self.payment_repo.get_by_provider_payment_id(
                evidence.provider_payment_id, for_update=True
            )
            if payment:
                return payment
        if evidence.payment_id:
            payment = await self.payment_repo.get_by_id(evidence.payment_id, for_update=True)
            if payment:
                return payment
        if evidence.reference:
            return await self.payment_repo.get_by_reference(evidence.reference, for_update=True)
        return None

    async def _record_payment(
        self,
        subscription: Subscription,
        payment: Optional[Payment],
        evidence: PaymentEvidenceDTO,
        source: ActivationSource,
        now: datetime,
    ) -> Payment:
        if payment is None:
            reference = evidence.reference or f"manual_{subscription.id}_{int(now.timestamp() * 1000)}"
            return await self.payment_repo.create(
                Payment(
                    user_id=subscription.user_id,
                    subscription_id=subscription.id,
                    amount=to_major_units(evidence.amount, evidence.currency),
                    currency=evidence.currency,
                    status=PaymentStatus.SUCCEEDED,
                    provider_payment_ref=reference,
                    provider_payment_id=evidence.provider_payment_id or None,
                    authorization_code=evidence.authorization_code,
                    description=f"Payment recorded from {source.value}",
                )
            )

        payment.status = PaymentStatus.SUCCEEDED
        payment.subscription_id = subscription.id
        if evidence.provider_payment_id and not payment.provider_payment_id:
            payment.provider_payment_id = evidence.provider_payment_id
        if evidence.authorization_code:
            payment.authorization_code = evidence.authorization_code
        return await self.payment_repo.update(payment)

    async def activate(
        self,
        subscription_id: str,
        evidence: PaymentEvidenceDTO,
        source: ActivationSource,
        now: Optional[datetime] = None,
    ) -> Result[SubscriptionResultDTO]:
        """
        Activate a subscription from evidence of a successful payment

        Args:
            subscription_id: Subscription to activate
            evidence: Normalized payment evidence (amount in minor units)
            source: Where the evidence came from, recorded as the history reason
            now: Clock override

        Returns:
            Result[SubscriptionResultDTO]: changed=False when the subscription
            is already active with this payment linked
        """
        if not subscription_id:
            return Return.err(validation_error("subscription_id is required"))
        try:
            to_major_units(evidence.amount, evidence.currency)
        except UnsupportedCurrencyError as e:
            return Return.err(validation_error("Unsupported payment currency", str(e)))

        now = now or datetime.utcnow()

        try:
            subscription = await self.subscription_repo.get_by_id(subscription_id, for_update=True)
            if not subscription:
                return await self._abort(not_found(f"Subscription {subscription_id} not found"))

            if subscription.status == SubscriptionStatus.CANCELED:
                return await self._abort(
                    conflict(
                        f"Subscription {subscription_id} is canceled and cannot be activated",
                        reason="invalid_status",
                    )
                )

            payment = await self._find_payment(evidence)
            if payment and payment.subscription_id not in (None, subscription.id):
                return await self._abort(
                    conflict(
                        f"Payment {payment.id} is linked to another subscription",
                        reason=f"linked_to={payment.subscription_id}",
                    )
                )

            already_linked = (
                payment is not None
                and payment.subscription_id == subscription.id
                and payment.status == PaymentStatus.SUCCEEDED
            )
            if subscription.status == SubscriptionStatus.ACTIVE and already_linked:
                logger.info(
                    f"Subscription {subscription_id} already active with payment {payment.id}, "
                    f"skipping activation from {source.value}"
                )
                return await self._unchanged(subscription, "already_active", payment.id)

            payment = await self._record_payment(subscription, payment, evidence, source, now)

            if subscription.status == SubscriptionStatus.ACTIVE:
                snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
                await self.uow.commit()
                logger.info(
                    f"Linked payment {payment.id} to already active subscription {subscription_id}"
                )
                return Return.ok(
                    SubscriptionResultDTO(
                        changed=True,
                        reason="payment_linked",
                        subscription=snapshot,
                        payment_id=payment.id,
                    )
                )

            old_status = subscription.status
            plan = await self.plan_repo.get_by_id(subscription.plan_id)
            interval = plan.interval if plan else BillingInterval.MONTHLY
            period_end = add_interval(now, interval)

            subscription.status = SubscriptionStatus.ACTIVE
            subscription.current_period_start = now
            subscription.current_period_end = period_end
            subscription.next_billing_date = period_end
            subscription.cancel_at_period_end = False
            subscription.retry_count = 0
            subscription.grace_period_end = None
            subscription = await self.subscription_repo.update(subscription)

            await self.ledger.record(
                subscription.id,
                SubscriptionActivated(
                    old=StatusSnapshot(status=old_status),
                    new=ActivationSnapshot(
                        status=SubscriptionStatus.ACTIVE,
                        provider_payment_ref=payment.provider_payment_ref,
                        provider_payment_id=payment.provider_payment_id,
                        current_period_end=period_end,
                    ),
                ),
                reason=source.value,
            )
            snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
            payment_id = payment.id
            reference = payment.provider_payment_ref
            await self.uow.commit()
        except Exception as e:
            return await self._transaction_failed("activate", subscription_id, e)

        await self.ledger.audit(
            snapshot.user_id,
            AuditAction.SUBSCRIPTION_UPDATED,
            subscription_id,
            {
                "action": "activated",
                "source": source.value,
                "reference": reference,
                "previous_status": old_status.value,
            },
        )
        logger.info(f"Activated subscription {subscription_id} from {source.value}")
        return Return.ok(
            SubscriptionResultDTO(
                changed=True, reason="activated", subscription=snapshot, payment_id=payment_id
            )
        )

    async def cancel(
        self,
        subscription_id: str,
        reason: str,
        effective: Union[CancelEffective, str] = CancelEffective.IMMEDIATE,
        actor: Optional[str] = None,
        grace_expired_by: Optional[datetime] = None,
    ) -> Result[SubscriptionResultDTO]:
        """
        Cancel a subscription immediately or at the end of its period

        Incomplete and grace_period subscriptions have no paid period left
        and are always canceled immediately.

        Args:
            subscription_id: Subscription to cancel
            reason: Recorded as the history reason
            effective: immediate or period_end
            actor: Who requested it (defaults to the owner)
            grace_expired_by: Only cancel if the subscription is still in a
                grace period that ended at or before this time; otherwise
                return changed=False
        """
        if not subscription_id:
            return Return.err(validation_error("subscription_id is required"))
        if not reason:
            return Return.err(validation_error("reason is required"))
        try:
            effective = CancelEffective(effective)
        except ValueError:
            return Return.err(validation_error(f"Invalid cancellation effective value: {effective}"))

        try:
            subscription = await self.subscription_repo.get_by_id(subscription_id, for_update=True)
            if not subscription:
                return await self._abort(not_found(f"Subscription {subscription_id} not found"))

            if subscription.status == SubscriptionStatus.CANCELED:
                return await self._unchanged(subscription, "already_canceled")

            if grace_expired_by is not None and not (
                subscription.status == SubscriptionStatus.GRACE_PERIOD
                and subscription.grace_period_end is not None
                and subscription.grace_period_end <= grace_expired_by
            ):
                logger.info(
                    f"Subscription {subscription_id} left its grace period "
                    f"(status={subscription.status.value}), not canceling"
                )
                return await self._unchanged(subscription, "grace_period_not_expired")

            old = CancellationSnapshot(
                status=subscription.status,
                cancel_at_period_end=subscription.cancel_at_period_end,
            )
            at_period_end = (
                effective == CancelEffective.PERIOD_END
                and subscription.status in PLAN_CHANGE_STATUSES
            )

            if at_period_end:
                if subscription.cancel_at_period_end:
                    return await self._unchanged(subscription, "already_scheduled")
                subscription.cancel_at_period_end = True
                audit_action = AuditAction.SUBSCRIPTION_UPDATED
            else:
                subscription.status = SubscriptionStatus.CANCELED
                subscription.cancel_at_period_end = False
                subscription.grace_period_end = None
                audit_action = AuditAction.SUBSCRIPTION_CANCELLED

            subscription = await self.subscription_repo.update(subscription)
            await self.ledger.record(
                subscription.id,
                SubscriptionCancelled(
                    old=old,
                    new=CancellationSnapshot(
                        status=subscription.status,
                        cancel_at_period_end=subscription.cancel_at_period_end,
                    ),
                ),
                reason=reason,
            )
            snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
            await self.uow.commit()
        except Exception as e:
            return await self._transaction_failed("cancel", subscription_id, e)

        await self.ledger.audit(
            actor or snapshot.user_id,
            audit_action,
            subscription_id,
            {
                "action": "cancel_scheduled" if at_period_end else "cancelled",
                "reason": reason,
                "previous_status": old.status.value,
                "cancel_at_period_end": snapshot.cancel_at_period_end,
            },
        )
        outcome = "cancel_scheduled" if at_period_end else "canceled"
        logger.info(f"Subscription {subscription_id} {outcome}: {reason}")
        return Return.ok(SubscriptionResultDTO(changed=True, reason=outcome, subscription=snapshot))

    async def change_plan(
        self,
        subscription_id: str,
        new_plan_id: str,
        effective_date: Union[PlanChangeEffective, str] = PlanChangeEffective.IMMEDIATE,
        prorate: bool = True,
        now: Optional[datetime] = None,
    ) -> Result[ChangePlanResultDTO]:
        """
        Move a subscription to another plan

        With prorate and an immediate change, the unused part of the old
        plan is credited against the remaining part of the new plan and the
        net becomes a payment row: pending for a charge, succeeded for a
        credit, none when zero.
        """
        if not subscription_id:
            return Return.err(validation_error("subscription_id is required"))
        if not new_plan_id:
            return Return.err(validation_error("new_plan_id is required"))
        try:
            effective_date = PlanChangeEffective(effective_date)
        except ValueError:
            return Return.err(validation_error(f"Invalid effective date: {effective_date}"))

        now = now or datetime.utcnow()

        try:
            subscription = await self.subscription_repo.get_by_id(subscription_id, for_update=True)
            if not subscription:
                return await self._abort(not_found(f"Subscription {subscription_id} not found"))

            if subscription.status not in PLAN_CHANGE_STATUSES:
                return await self._abort(
                    conflict(
                        f"Subscription {subscription_id} is {subscription.status.value}; "
                        f"plan changes need an active subscription",
                        reason="invalid_status",
                    )
                )

            if subscription.plan_id == new_plan_id:
                return await self._abort(conflict("Subscription is already on this plan"))

            new_plan = await self.plan_repo.get_by_id(new_plan_id)
            if not new_plan or not new_plan.is_active:
                return await self._abort(not_found(f"Plan {new_plan_id} not found or inactive"))

            old_plan = await self.plan_repo.get_by_id(subscription.plan_id)
            if not old_plan:
                return await self._abort(not_found(f"Current plan {subscription.plan_id} not found"))

            proration = None
            proration_payment_id = None
            if prorate and effective_date == PlanChangeEffective.IMMEDIATE:
                if not subscription.current_period_start or not subscription.current_period_end:
                    return await self._abort(
                        conflict("Subscription has no current billing period to prorate")
                    )
                proration = calculate_proration(
                    old_plan.price,
                    new_plan.price,
                    subscription.current_period_start,
                    subscription.current_period_end,
                    now,
                    currency=old_plan.currency,
                )
                amount = abs(proration.amount)
                if amount != 0:
                    payment = await self.payment_repo.create(
                        Payment(
                            user_id=subscription.user_id,
                            subscription_id=subscription.id,
                            amount=amount,
                            currency=old_plan.currency,
                            status=(
                                PaymentStatus.PENDING if proration.is_charge
                                else PaymentStatus.SUCCEEDED
                            ),
                            provider_payment_ref=(
                                f"proration_{subscription.id}_{int(now.timestamp() * 1000)}"
                            ),
                            description=proration.description,
                        )
                    )
                    proration_payment_id = payment.id

            subscription.plan_id = new_plan_id
            subscription = await self.subscription_repo.update(subscription)

            proration_amount = proration.amount if proration else 0
            await self.ledger.record(
                subscription.id,
                SubscriptionPlanChanged(
                    old=PlanSnapshot(
                        plan_id=old_plan.id, plan_name=old_plan.name, price=old_plan.price
                    ),
                    new=PlanChangeSnapshot(
                        plan_id=new_plan.id,
                        plan_name=new_plan.name,
                        price=new_plan.price,
                        effective_date=effective_date.value,
                        proration_amount=proration_amount,
                    ),
                ),
                reason=f"Plan changed from {old_plan.name} to {new_plan.name}",
            )
            snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
            old_plan_id, old_plan_name = old_plan.id, old_plan.name
            new_plan_name = new_plan.name
            await self.uow.commit()
        except ValueError as e:
            await self.uow.rollback()
            return Return.err(validation_error("Cannot prorate plan change", str(e)))
        except Exception as e:
            return await self._transaction_failed("change plan of", subscription_id, e)

        await self.ledger.audit(
            snapshot.user_id,
            AuditAction.SUBSCRIPTION_MIGRATED,
            subscription_id,
            {
                "old_plan_id": old_plan_id,
                "old_plan_name": old_plan_name,
                "new_plan_id": new_plan_id,
                "new_plan_name": new_plan_name,
                "effective_date": effective_date.value,
                "proration_amount": str(proration_amount),
            },
        )
        logger.info(
            f"Subscription {subscription_id} changed plan {old_plan_id} -> {new_plan_id} "
            f"(proration={proration_amount})"
        )
        return Return.ok(
            ChangePlanResultDTO(
                changed=True,
                reason=f"Plan changed from {old_plan_name} to {new_plan_name}",
                subscription=snapshot,
                payment_id=proration_payment_id,
                old_plan_id=old_plan_id,
                new_plan_id=new_plan_id,
                effective_date=effective_date.value,
                proration=proration,
            )
        )

    async def mark_past_due(
        self, subscription_id: str, reason: str
    ) -> Result[SubscriptionResultDTO]:
        """
        Record a failed renewal: active/past_due -> past_due, retry_count + 1
        """
        if not subscription_id:
            return Return.err(validation_error("subscription_id is required"))

        try:
            subscription = await self.subscription_repo.get_by_id(subscription_id, for_update=True)
            if not subscription:
                return await self._abort(not_found(f"Subscription {subscription_id} not found"))

            if subscription.status not in PLAN_CHANGE_STATUSES:
                return await self._abort(
                    conflict(
                        f"Subscription {subscription_id} is {subscription.status.value} "
                        f"and cannot become past_due",
                        reason="invalid_status",
                    )
                )

            old = StatusSnapshot(status=subscription.status, retry_count=subscription.retry_count)
            subscription.status = SubscriptionStatus.PAST_DUE
            subscription.retry_count = (subscription.retry_count or 0) + 1
            subscription = await self.subscription_repo.update(subscription)

            await self.ledger.record(
                subscription.id,
                SubscriptionStatusChanged(
                    old=old,
                    new=StatusSnapshot(
                        status=SubscriptionStatus.PAST_DUE, retry_count=subscription.retry_count
                    ),
                ),
                reason=reason,
            )
            snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
            await self.uow.commit()
        except Exception as e:
            return await self._transaction_failed("mark past due", subscription_id, e)

        await self.ledger.audit(
            snapshot.user_id,
            AuditAction.SUBSCRIPTION_UPDATED,
            subscription_id,
            {
                "action": "past_due",
                "reason": reason,
                "previous_status": old.status.value,
                "retry_count": snapshot.retry_count,
            },
        )
        logger.warning(
            f"Subscription {subscription_id} past due (attempt {snapshot.retry_count}): {reason}"
        )
        return Return.ok(SubscriptionResultDTO(changed=True, reason="past_due", subscription=snapshot))

    async def set_grace_period(
        self,
        subscription_id: str,
        days: int,
        now: Optional[datetime] = None,
    ) -> Result[SubscriptionResultDTO]:
        """
        Put a delinquent subscription into its grace period

        Sets status=grace_period and grace_period_end = now + days. Called
        by the dunning flow; the sweep only reads grace_period_end.
        """
        if not subscription_id:
            return Return.err(validation_error("subscription_id is required"))
        if not isinstance(days, int) or days <= 0:
            return Return.err(validation_error("Grace period days must be a positive integer"))

        now = now or datetime.utcnow()

        try:
            subscription = await self.subscription_repo.get_by_id(subscription_id, for_update=True)
            if not subscription:
                return await self._abort(not_found(f"Subscription {subscription_id} not found"))

            if subscription.status not in GRACE_PERIOD_ELIGIBLE_STATUSES:
                return await self._abort(
                    conflict(
                        f"Subscription {subscription_id} is {subscription.status.value} "
                        f"and cannot enter a grace period",
                        reason="invalid_status",
                    )
                )

            old = GracePeriodSnapshot(
                status=subscription.status, grace_period_end=subscription.grace_period_end
            )
            grace_period_end = now + timedelta(days=days)
            subscription.status = SubscriptionStatus.GRACE_PERIOD
            subscription.grace_period_end = grace_period_end
            subscription = await self.subscription_repo.update(subscription)

            await self.ledger.record(
                subscription.id,
                SubscriptionGracePeriodSet(
                    old=old,
                    new=GracePeriodSnapshot(
                        status=SubscriptionStatus.GRACE_PERIOD,
                        grace_period_end=grace_period_end,
                        grace_period_days=days,
                    ),
                ),
                reason=f"Grace period of {days} days started",
            )
            snapshot = SubscriptionSnapshotDTO.from_entity(subscription)
            await self.uow.commit()
        except Exception as e:
            return await self._transaction_failed("set grace period for", subscription_id, e)

        await self.ledger.audit(
            SYSTEM_USER,
            AuditAction.SUBSCRIPTION_GRACE_PERIOD_SET,
            subscription_id,
            {
                "grace_period_days": days,
                "grace_period_end": grace_period_end.isoformat(),
                "previous_status": old.status.value,
            },
        )
        logger.info(f"Grace period set for subscription {subscription_id} until {grace_period_end}")
        return Return.ok(
            SubscriptionResultDTO(changed=True, reason="grace_period_set", subscription=snapshot)
        )
