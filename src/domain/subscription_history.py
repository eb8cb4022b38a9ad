"""Subscription History Domain Entity

Append-only ledger of subscription state changes. Snapshots are typed: each
history action has exactly one event variant, and rows are rebuilt into that
variant through a discriminated union.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, Literal, Optional, Union
from pydantic import BaseModel as PydanticModel, Field as PydanticField, TypeAdapter
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, Text
from src.domain.base import BaseModel, generate_uuid
from src.domain.subscription import SubscriptionStatus


class StatusSnapshot(PydanticModel):
    status: SubscriptionStatus
    retry_count: Optional[int] = None


class ActivationSnapshot(PydanticModel):
    status: SubscriptionStatus
    provider_payment_ref: Optional[str] = None
    provider_payment_id: Optional[str] = None
    current_period_end: Optional[datetime] = None


class CancellationSnapshot(PydanticModel):
    status: SubscriptionStatus
    cancel_at_period_end: bool


class PlanSnapshot(PydanticModel):
    plan_id: str
    plan_name: str
    price: Decimal


class PlanChangeSnapshot(PlanSnapshot):
    effective_date: str
    proration_amount: Decimal = Decimal("0")


class GracePeriodSnapshot(PydanticModel):
    status: SubscriptionStatus
    grace_period_end: Optional[datetime] = None
    grace_period_days: Optional[int] = None


class SubscriptionCreated(PydanticModel):
    action: Literal["created"] = "created"
    old: None = None
    new: StatusSnapshot


class SubscriptionActivated(PydanticModel):
    action: Literal["activated"] = "activated"
    old: StatusSnapshot
    new: ActivationSnapshot


class SubscriptionStatusChanged(PydanticModel):
    action: Literal["status_changed"] = "status_changed"
    old: StatusSnapshot
    new: StatusSnapshot


class SubscriptionCancelled(PydanticModel):
    action: Literal["cancelled"] = "cancelled"
    old: CancellationSnapshot
    new: CancellationSnapshot


class SubscriptionPlanChanged(PydanticModel):
    action: Literal["plan_changed"] = "plan_changed"
    old: PlanSnapshot
    new: PlanChangeSnapshot


class SubscriptionGracePeriodSet(PydanticModel):
    action: Literal["grace_period_set"] = "grace_period_set"
    old: GracePeriodSnapshot
    new: GracePeriodSnapshot


HistoryEvent = Annotated[
    Union[
        SubscriptionCreated,
        SubscriptionActivated,
        SubscriptionStatusChanged,
        SubscriptionCancelled,
        SubscriptionPlanChanged,
        SubscriptionGracePeriodSet,
    ],
    PydanticField(discriminator="action"),
]

_history_event_adapter = TypeAdapter(HistoryEvent)


class SubscriptionHistory(BaseModel, table=True):
    """
    Subscription History - Immutable record of a subscription change

    Domain Rules:
    - Rows are append-only (never updated or deleted)
    - Written in the same transaction as the change it records
    - action identifies the event variant that old_value/new_value belong to
    """

    __tablename__ = "subscription_history"
    __table_args__ = (
        Index('ix_subscription_history_subscription_id', 'subscription_id'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique history entry identifier"
    )

    subscription_id: str = Field(
        foreign_key="subscriptions.id",
        description="Subscription the entry belongs to"
    )

    action: str = Field(
        description="Event type (activated, plan_changed, cancelled, ...)"
    )

    old_value: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Snapshot before the change"
    )

    new_value: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Snapshot after the change"
    )

    reason: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Free text reason"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Entry timestamp (immutable)"
    )

    @classmethod
    def from_event(
        cls, subscription_id: str, event: HistoryEvent, reason: Optional[str] = None
    ) -> "SubscriptionHistory":
        old = event.old.model_dump(mode="json") if event.old is not None else None
        return cls(
            subscription_id=subscription_id,
            action=event.action,
            old_value=old,
            new_value=event.new.model_dump(mode="json"),
            reason=reason,
        )

    def to_event(self) -> HistoryEvent:
        """Rebuild the typed event recorded by this row"""
        return _history_event_adapter.validate_python(
            {"action": self.action, "old": self.old_value, "new": self.new_value}
        )
