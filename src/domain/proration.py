"""Proration calculation for mid-cycle plan changes

Pure functions, no I/O.
"""

import math
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel
from src.domain.currency import quantize_amount

SECONDS_PER_DAY = 24 * 60 * 60


class ProrationResult(BaseModel):
    """
    Outcome of a plan change proration

    amount is the net adjustment rounded to the currency's minor unit:
    positive = charge owed, negative = credit returned, zero = nothing.
    """

    amount: Decimal
    description: str
    total_days: int
    days_remaining: int
    old_plan_daily_rate: Decimal
    new_plan_daily_rate: Decimal
    unused_old_credit: Decimal
    new_plan_charge: Decimal

    @property
    def is_charge(self) -> bool:
        return self.amount > 0

    @property
    def is_credit(self) -> bool:
        return self.amount < 0


def _days_between(start: datetime, end: datetime) -> int:
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def is_upgrade(old_price: Decimal, new_price: Decimal) -> bool:
    return new_price > old_price


def is_downgrade(old_price: Decimal, new_price: Decimal) -> bool:
    return new_price < old_price


def calculate_proration(
    old_price: Decimal,
    new_price: Decimal,
    period_start: datetime,
    period_end: datetime,
    change_date: datetime,
    currency: str = "USD",
) -> ProrationResult:
    """
    Calculate the prorated adjustment for switching plans at change_date

    Args:
        old_price: Price of the current plan for a full period
        new_price: Price of the new plan for a full period
        period_start: Start of the current billing period
        period_end: End of the current billing period
        change_date: When the change takes effect
        currency: ISO 4217 code that decides the rounding of amount

    Returns:
        ProrationResult with the net amount and its components

    Raises:
        ValueError: If the billing period is empty or inverted, or the
            currency is unsupported
    """
    total_days = _days_between(period_start, period_end)
    if total_days <= 0:
        raise ValueError(
            f"Invalid billing period: {period_start.isoformat()} - {period_end.isoformat()}"
        )

    days_remaining = max(0, min(_days_between(change_date, period_end), total_days))

    old_price = Decimal(old_price)
    new_price = Decimal(new_price)
    remaining_fraction = Decimal(days_remaining) / Decimal(total_days)

    unused_old_credit = old_price * remaining_fraction
    new_plan_charge = new_price * remaining_fraction
    net = quantize_amount(new_plan_charge - unused_old_credit, currency)

    if days_remaining == 0:
        description = "Plan change (no proration - period ended)"
    elif is_upgrade(old_price, new_price):
        description = (
            f"Upgrade proration: {days_remaining} of {total_days} days remaining in billing period"
        )
    elif is_downgrade(old_price, new_price):
        description = (
            f"Downgrade credit: {days_remaining} of {total_days} days remaining in billing period"
        )
    else:
        description = f"Plan change proration: {days_remaining} days remaining in billing period"

    return ProrationResult(
        amount=net,
        description=description,
        total_days=total_days,
        days_remaining=days_remaining,
        old_plan_daily_rate=old_price / Decimal(total_days),
        new_plan_daily_rate=new_price / Decimal(total_days),
        unused_old_credit=unused_old_credit,
        new_plan_charge=new_plan_charge,
    )
