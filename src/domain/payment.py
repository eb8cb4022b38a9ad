"""Payment Domain Entity

Local record of a payment attempt. The provider references are the dedup
keys that make reconciliation idempotent.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import Numeric, String
from src.domain.base import BaseModel, generate_uuid


class PaymentStatus(str, Enum):
    """Payment status types"""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Payment(BaseModel, table=True):
    """
    Payment - Money movement tied to a subscription

    Domain Rules:
    - amount is stored in major currency units
    - provider_payment_ref is globally unique (client-chosen idempotency key)
    - provider_payment_id is unique once populated (provider-assigned)
    - subscription_id may be None for payments not yet linked (orphaned)
    - Only the subscription state machine updates payment rows
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index('ix_payments_subscription_id', 'subscription_id'),
        Index('ix_payments_user_status', 'user_id', 'status'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique payment identifier"
    )

    user_id: str = Field(
        description="Owner of the payment"
    )

    subscription_id: Optional[str] = Field(
        default=None,
        foreign_key="subscriptions.id",
        nullable=True,
        description="Linked subscription (None = orphaned)"
    )

    amount: Decimal = Field(
        # Three places covers every supported minor unit (e.g. KWD fils)
        sa_column=Column(Numeric(18, 3), nullable=False),
        description="Amount in major currency units"
    )

    currency: str = Field(
        max_length=3,
        description="ISO 4217 currency code"
    )

    status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        description="Payment status"
    )

    provider_payment_ref: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True),
        description="Client-chosen idempotency key sent to the provider"
    )

    provider_payment_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True, unique=True, index=True),
        description="Provider-assigned transaction id"
    )

    authorization_code: Optional[str] = Field(
        default=None,
        description="Reusable authorization for off-session charges"
    )

    description: Optional[str] = Field(
        default=None,
        description="Human readable description"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Payment creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )
