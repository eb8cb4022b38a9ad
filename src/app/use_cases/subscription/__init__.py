"""Subscription lifecycle use cases"""
from .state_machine import SubscriptionStateMachine
from .reconcile_payment import ReconcilePayment
from .enforce_grace_periods import EnforceGracePeriods
from .dtos import (
    ActivationSource,
    CancelEffective,
    PlanChangeEffective,
    PaymentEvidenceDTO,
    SubscriptionSnapshotDTO,
    SubscriptionResultDTO,
    ChangePlanResultDTO,
    ReconciliationResultDTO,
    TierFailureDTO,
    GracePeriodConfigDTO,
    GraceSweepResultDTO,
    BulkReconciliationResultDTO,
)

__all__ = [
    "SubscriptionStateMachine",
    "ReconcilePayment",
    "EnforceGracePeriods",
    "ActivationSource",
    "CancelEffective",
    "PlanChangeEffective",
    "PaymentEvidenceDTO",
    "SubscriptionSnapshotDTO",
    "SubscriptionResultDTO",
    "ChangePlanResultDTO",
    "ReconciliationResultDTO",
    "TierFailureDTO",
    "GracePeriodConfigDTO",
    "GraceSweepResultDTO",
    "BulkReconciliationResultDTO",
]
