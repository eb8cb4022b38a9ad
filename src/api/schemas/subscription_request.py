"""Request schemas for Subscription API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Optional
from pydantic import BaseModel, Field
from src.app.use_cases.subscription.dtos import (
    ActivationSource,
    CancelEffective,
    PaymentEvidenceDTO,
    PlanChangeEffective,
)


class CreateSubscriptionRequestSchema(BaseModel):
    """
    Request schema for creating a subscription

    Used for POST /billing/subscriptions endpoint.
    """

    user_id: str = Field(..., min_length=1, description="Owner identifier")
    plan_id: str = Field(..., min_length=1, description="Billing plan identifier")
    provider_customer_id: Optional[str] = Field(
        default=None,
        description="Customer code at the payment provider"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user_123",
                "plan_id": "plan_pro_monthly",
                "provider_customer_id": "CUS_xnxdt6s1zg1f4nx",
            }
        }


class ActivateRequestSchema(BaseModel):
    """
    Request schema for activating a subscription from payment evidence

    Used for POST /billing/subscriptions/{id}/activate endpoint.
    """

    evidence: PaymentEvidenceDTO
    source: ActivationSource = Field(
        default=ActivationSource.WEBHOOK,
        description="Where the evidence came from"
    )


class ReconcileRequestSchema(BaseModel):
    """Request schema for POST /billing/subscriptions/{id}/reconcile"""

    reference: Optional[str] = Field(
        default=None,
        description="Provider reference to verify first, if the caller has one"
    )


class CancelRequestSchema(BaseModel):
    """Request schema for POST /billing/subscriptions/{id}/cancel"""

    reason: str = Field(..., min_length=1, description="Why the subscription is canceled")
    effective: CancelEffective = Field(
        default=CancelEffective.IMMEDIATE,
        description="immediate or period_end"
    )


class ChangePlanRequestSchema(BaseModel):
    """Request schema for POST /billing/subscriptions/{id}/change-plan"""

    new_plan_id: str = Field(..., min_length=1)
    effective_date: PlanChangeEffective = Field(default=PlanChangeEffective.IMMEDIATE)
    prorate: bool = Field(default=True)

    class Config:
        json_schema_extra = {
            "example": {
                "new_plan_id": "plan_business_monthly",
                "effective_date": "immediate",
                "prorate": True,
            }
        }


class PastDueRequestSchema(BaseModel):
    reason: str = Field(..., min_length=1, description="Why the renewal failed")


class GracePeriodRequestSchema(BaseModel):
    days: Optional[int] = Field(
        default=None,
        gt=0,
        description="Grace period length; defaults to the configured value"
    )
