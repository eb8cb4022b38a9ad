"""Subscription Domain Entity

Locally stored subscription whose status is kept consistent with the
payment provider.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Index
from src.domain.base import BaseModel, generate_uuid


class SubscriptionStatus(str, Enum):
    """Subscription status types"""
    INCOMPLETE = "incomplete"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    GRACE_PERIOD = "grace_period"
    CANCELED = "canceled"


# Statuses that count towards the one-open-subscription-per-owner rule
OPEN_STATUSES = (
    SubscriptionStatus.INCOMPLETE,
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PAST_DUE,
    SubscriptionStatus.GRACE_PERIOD,
)


class Subscription(BaseModel, table=True):
    """
    Subscription - Owner's plan subscription and billing period

    Domain Rules:
    - Created in INCOMPLETE status until a payment is confirmed
    - Status transitions:
        incomplete -> active
        active <-> past_due
        active/past_due -> grace_period
        grace_period -> active (recovered) or canceled
        active -> canceled (immediately or at period end)
    - CANCELED is terminal
    - At most one open subscription per owner (enforced at creation)
    - Only the subscription state machine mutates this entity
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        Index('ix_subscriptions_user_id', 'user_id'),
        Index('ix_subscriptions_status', 'status'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique subscription identifier"
    )

    user_id: str = Field(
        description="Owner of the subscription"
    )

    plan_id: str = Field(
        foreign_key="billing_plans.id",
        description="Current billing plan"
    )

    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.INCOMPLETE,
        description="Subscription status"
    )

    current_period_start: Optional[datetime] = Field(
        default=None,
        description="Start of the current billing period"
    )

    current_period_end: Optional[datetime] = Field(
        default=None,
        description="End of the current billing period"
    )

    next_billing_date: Optional[datetime] = Field(
        default=None,
        description="Next renewal date"
    )

    cancel_at_period_end: bool = Field(
        default=False,
        description="Cancel when the current period ends"
    )

    grace_period_end: Optional[datetime] = Field(
        default=None,
        description="Deadline for recovering a delinquent subscription"
    )

    retry_count: int = Field(
        default=0,
        description="Failed payment attempts since last success"
    )

    provider_customer_id: Optional[str] = Field(
        default=None,
        description="Customer identifier at the payment provider"
    )

    provider_subscription_id: Optional[str] = Field(
        default=None,
        description="Subscription identifier at the payment provider"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Subscription creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )
