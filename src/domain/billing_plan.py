"""Billing Plan Domain Entity

Priced plan a subscription is attached to.
"""

import calendar
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlmodel import Field, Column
from sqlalchemy import Numeric, String
from src.domain.base import BaseModel, generate_uuid


class BillingInterval(str, Enum):
    """Billing interval types"""
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BillingPlan(BaseModel, table=True):
    """
    Billing Plan - Price and interval offered to subscribers

    Domain Rules:
    - price is stored in major currency units
    - Inactive plans cannot be chosen for a plan change
    """

    __tablename__ = "billing_plans"

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique plan identifier"
    )

    name: str = Field(
        sa_column=Column(String(100), nullable=False),
        description="Display name of the plan"
    )

    price: Decimal = Field(
        # Three places covers every supported minor unit (e.g. KWD fils)
        sa_column=Column(Numeric(18, 3), nullable=False),
        description="Price per interval in major currency units"
    )

    currency: str = Field(
        default="USD",
        max_length=3,
        description="ISO 4217 currency code"
    )

    interval: BillingInterval = Field(
        default=BillingInterval.MONTHLY,
        description="Billing interval (monthly, yearly)"
    )

    is_active: bool = Field(
        default=True,
        description="Whether the plan can be subscribed to"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Plan creation timestamp"
    )


def add_interval(start: datetime, interval: BillingInterval) -> datetime:
    """
    Advance a timestamp by one billing interval

    Month arithmetic clamps the day to the end of the target month,
    e.g. Jan 31 + 1 month = Feb 28/29.
    """
    months = 12 if interval == BillingInterval.YEARLY else 1
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)
