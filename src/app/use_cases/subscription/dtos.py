"""Data Transfer Objects for Subscription Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from src.app.services.payment_gateway import ProviderTransaction
from src.domain.currency import to_minor_units
from src.domain.payment import Payment
from src.domain.proration import ProrationResult
from src.domain.subscription import Subscription, SubscriptionStatus


class ActivationSource(str, Enum):
    """Where the evidence behind an activation came from (audit trail only)"""
    WEBHOOK = "webhook"
    MANUAL_RECOVERY_REF = "manual_recovery_ref"
    MANUAL_CHECK = "manual_check"
    MANUAL_VERIFICATION = "manual_verification"
    DEEP_SEARCH_RECOVERY = "deep_search_recovery"
    DEEP_SEARCH_SYNC = "deep_search_sync"
    SCRIPT = "script"


class CancelEffective(str, Enum):
    IMMEDIATE = "immediate"
    PERIOD_END = "period_end"


class PlanChangeEffective(str, Enum):
    IMMEDIATE = "immediate"
    NEXT_PERIOD = "next_period"


class PaymentEvidenceDTO(BaseModel):
    """
    Normalized evidence that a payment succeeded

    amount is in the currency's minor units, as the provider reports it.
    payment_id optionally names a local Payment row to update in place.
    """

    reference: Optional[str] = Field(
        default=None,
        description="Provider reference / client idempotency key"
    )

    provider_payment_id: Optional[str] = Field(
        default=None,
        description="Provider-assigned transaction id"
    )

    amount: int = Field(
        ...,
        ge=0,
        description="Amount in minor units"
    )

    currency: str = Field(
        ...,
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code"
    )

    authorization_code: Optional[str] = Field(
        default=None,
        description="Reusable authorization for future charges"
    )

    payment_id: Optional[str] = Field(
        default=None,
        description="Local payment row to update in place"
    )

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v):
        return v.upper()

    @classmethod
    def from_provider_transaction(
        cls, transaction: ProviderTransaction, payment_id: Optional[str] = None
    ) -> "PaymentEvidenceDTO":
        return cls(
            reference=transaction.reference or None,
            provider_payment_id=transaction.id,
            amount=transaction.amount,
            currency=transaction.currency,
            authorization_code=transaction.authorization_code,
            payment_id=payment_id,
        )

    @classmethod
    def from_payment(cls, payment: Payment) -> "PaymentEvidenceDTO":
        return cls(
            reference=payment.provider_payment_ref,
            provider_payment_id=payment.provider_payment_id,
            amount=to_minor_units(payment.amount, payment.currency),
            currency=payment.currency,
            authorization_code=payment.authorization_code,
            payment_id=payment.id,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "reference": "sub_ref_1700000000",
                "provider_payment_id": "4099260516",
                "amount": 500000,
                "currency": "NGN",
                "authorization_code": "AUTH_8dfhjjdt",
            }
        }


class SubscriptionSnapshotDTO(BaseModel):
    """Point-in-time view of a subscription returned to callers"""

    id: str
    user_id: str
    plan_id: str
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    cancel_at_period_end: bool = False
    grace_period_end: Optional[datetime] = None
    retry_count: int = 0
    provider_customer_id: Optional[str] = None
    provider_subscription_id: Optional[str] = None

    @classmethod
    def from_entity(cls, subscription: Subscription) -> "SubscriptionSnapshotDTO":
        return cls(
            id=subscription.id,
            user_id=subscription.user_id,
            plan_id=subscription.plan_id,
            status=SubscriptionStatus(subscription.status).value,
            current_period_start=subscription.current_period_start,
            current_period_end=subscription.current_period_end,
            next_billing_date=subscription.next_billing_date,
            cancel_at_period_end=subscription.cancel_at_period_end,
            grace_period_end=subscription.grace_period_end,
            retry_count=subscription.retry_count,
            provider_customer_id=subscription.provider_customer_id,
            provider_subscription_id=subscription.provider_subscription_id,
        )


class SubscriptionResultDTO(BaseModel):
    """
    Response DTO for state machine operations

    changed is False for idempotent no-ops (e.g. re-activating with a
    payment that is already linked).
    """

    success: bool = True
    changed: bool = Field(..., description="Whether any row was written")
    reason: str = Field(..., description="Human readable outcome for logs and UI")
    subscription: SubscriptionSnapshotDTO
    payment_id: Optional[str] = Field(
        default=None,
        description="Payment recorded or linked by the operation"
    )


class ChangePlanResultDTO(SubscriptionResultDTO):
    """Response DTO for plan changes"""

    old_plan_id: str
    new_plan_id: str
    effective_date: str
    proration: Optional[ProrationResult] = None


class ReconciliationResultDTO(BaseModel):
    """Response DTO for a successful reconciliation"""

    success: bool = True
    tier: str = Field(..., description="Tier that produced the activation")
    source: str = Field(..., description="Activation source recorded in history")
    reason: str
    subscription: SubscriptionSnapshotDTO
    payment_id: Optional[str] = None


class TierFailureDTO(BaseModel):
    """Why a single reconciliation tier did not activate"""

    tier: str
    reason: str


class GracePeriodConfigDTO(BaseModel):
    """Grace period policy"""

    grace_period_days: int = Field(
        default=7,
        gt=0,
        description="Length of a grace period when one is set"
    )

    warning_days: List[int] = Field(
        default_factory=lambda: [3, 1],
        description="Days before expiry at which a warning is sent"
    )

    enable_auto_cancel: bool = Field(
        default=True,
        description="Cancel subscriptions whose grace period has expired"
    )


class GraceSweepResultDTO(BaseModel):
    """Aggregated outcome of one grace period sweep"""

    processed: int
    cancelled: int
    warned: int
    skipped: int
    errors: List[str] = Field(default_factory=list)
    sweep_time: datetime
    execution_time_ms: int


class BulkReconciliationResultDTO(BaseModel):
    """Aggregated outcome of reconciling stuck incomplete subscriptions"""

    checked: int
    reconciled: int
    exhausted: int
    errors: List[str] = Field(default_factory=list)
    reconciliation_time: datetime
    execution_time_ms: int
