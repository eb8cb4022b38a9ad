"""Subscription API Routes

FastAPI routes for subscription lifecycle, reconciliation and grace sweeps.
"""

from typing import Any, Dict, List
from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.subscription_history_repository import (
    SqlAlchemySubscriptionHistoryRepository,
)
from src.api.error import ClientError
from src.api.schemas.subscription_request import (
    ActivateRequestSchema,
    CancelRequestSchema,
    ChangePlanRequestSchema,
    CreateSubscriptionRequestSchema,
    GracePeriodRequestSchema,
    PastDueRequestSchema,
    ReconcileRequestSchema,
)
from src.app.services.audit_sink import AuditSink
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.subscription.dtos import (
    ChangePlanResultDTO,
    GraceSweepResultDTO,
    ReconciliationResultDTO,
    SubscriptionResultDTO,
)
from src.depends import (
    build_grace_enforcer,
    build_reconcile_payment,
    build_state_machine,
    get_audit_sink,
    get_notification_service,
    get_payment_gateway,
    get_session,
    grace_period_config,
)

router = APIRouter(prefix="/billing/subscriptions", tags=["Subscriptions"])


def unwrap(result):
    if result.is_err():
        raise ClientError(result.error)
    return result.value


@router.post("", response_model=SubscriptionResultDTO, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    request: CreateSubscriptionRequestSchema,
    session: AsyncSession = Depends(get_session),
    audit_sink: AuditSink = Depends(get_audit_sink),
):
    """
    Create an incomplete subscription for an owner.

    **Returns:**
    - 201: Subscription created
    - 404: Plan not found or inactive
    - 409: Owner already has an open subscription
    """
    state_machine = build_state_machine(session, audit_sink)
    return unwrap(
        await state_machine.create(
            request.user_id, request.plan_id, request.provider_customer_id
        )
    )


@router.post("/grace-sweep", response_model=GraceSweepResultDTO)
async def run_grace_sweep(
    session: AsyncSession = Depends(get_session),
    notification_service: NotificationService = Depends(get_notification_service),
    audit_sink: AuditSink = Depends(get_audit_sink),
):
    """
    Run one grace period sweep: cancel expired grace periods and send
    warnings. Per-subscription failures are reported in `errors`.
    """
    enforcer = build_grace_enforcer(session, notification_service, audit_sink)
    return unwrap(await enforcer.execute())


@router.post("/{subscription_id}/activate", response_model=SubscriptionResultDTO)
async def activate_subscription(
    subscription_id: str,
    request: ActivateRequestSchema,
    session: AsyncSession = Depends(get_session),
    audit_sink: AuditSink = Depends(get_audit_sink),
):
    """
    Activate a subscription from evidence of a successful payment.

    Repeating the call with the same evidence is a no-op (`changed: false`).

    **Returns:**
    - 200: Activated, payment linked, or already active
    - 400: Invalid evidence (e.g. unsupported currency)
    - 404: Subscription not found
    - 409: Subscription canceled or payment linked elsewhere
    """
    state_machine = build_state_machine(session, audit_sink)
    return unwrap(await state_machine.activate(subscription_id, request.evidence, request.source))


@router.post("/{subscription_id}/reconcile", response_model=ReconciliationResultDTO)
async def reconcile_subscription(
    subscription_id: str,
    request: ReconcileRequestSchema = None,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    audit_sink: AuditSink = Depends(get_audit_sink),
):
    """
    Look for evidence of payment locally and at the provider and activate
    the subscription when found.

    **Returns:**
    - 200: Reconciled; `tier` names the tier that found the payment
    - 404: Subscription not found
    - 409: Subscription canceled
    - 422: No evidence found; `error.details` carries per-tier reasons
    """
    reference = request.reference if request else None
    reconcile = build_reconcile_payment(session, gateway, audit_sink)
    return unwrap(await reconcile.execute(subscription_id, reference=reference))


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResultDTO)
async def cancel_subscription(
    subscription_id: str,
    request: CancelRequestSchema,
    session: AsyncSession = Depends(get_session),
    audit_sink: AuditSink = Depends(get_audit_sink),
):
    state_machine = build_state_machine(session, audit_sink)
    return unwrap(
        await state_machine.cancel(subscription_id, request.reason, request.effective)
    )


@router.post("/{subscription_id}/change-plan", response_model=ChangePlanResultDTO)
async def change_plan(
    subscription_id: str,
    request: ChangePlanRequestSchema,
    session: AsyncSession = Depends(get_session),
    audit_sink: AuditSink = Depends(get_audit_sink),
):
    """
    Move a subscription to another plan, optionally prorating the rest of
    the current period.

    **Returns:**
    - 200: Plan changed; `proration` and `payment_id` describe any adjustment
    - 404: Subscription or plan not found
    - 409: Subscription not active/past_due, or already on the plan
    """
    state_machine = build_state_machine(session, audit_sink)
    return unwrap(
        await state_machine.change_plan(
            subscription_id,
            request.new_plan_id,
            effective_date=request.effective_date,
            prorate=request.prorate,
        )
    )


@router.post("/{subscription_id}/past-due", response_model=SubscriptionResultDTO)
async def mark_past_due(
    subscription_id: str,
    request: PastDueRequestSchema,
    session: AsyncSession = Depends(get_session),
    audit_sink: AuditSink = Depends(get_audit_sink),
):
    state_machine = build_state_machine(session, audit_sink)
    return unwrap(await state_machine.mark_past_due(subscription_id, request.reason))


@router.post("/{subscription_id}/grace-period", response_model=SubscriptionResultDTO)
async def set_grace_period(
    subscription_id: str,
    request: GracePeriodRequestSchema,
    session: AsyncSession = Depends(get_session),
    audit_sink: AuditSink = Depends(get_audit_sink),
):
    days = request.days or grace_period_config().grace_period_days
    state_machine = build_state_machine(session, audit_sink)
    return unwrap(await state_machine.set_grace_period(subscription_id, days))


@router.get("/{subscription_id}/history", response_model=List[Dict[str, Any]])
async def get_history(
    subscription_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Return the subscription's history ledger, oldest first"""
    history_repo = SqlAlchemySubscriptionHistoryRepository(session)
    entries = await history_repo.list_by_subscription(subscription_id)
    return [
        {
            "id": entry.id,
            "created_at": entry.created_at.isoformat(),
            "reason": entry.reason,
            **entry.to_event().model_dump(mode="json"),
        }
        for entry in entries
    ]
