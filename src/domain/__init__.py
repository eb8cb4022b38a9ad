from .base import BaseModel, generate_uuid
from .billing_plan import BillingPlan, BillingInterval, add_interval
from .subscription import Subscription, SubscriptionStatus, OPEN_STATUSES
from .payment import Payment, PaymentStatus
from .subscription_history import SubscriptionHistory, HistoryEvent
from .audit_log import AuditLog, AuditAction, SYSTEM_USER

__all__ = [
    "BaseModel",
    "generate_uuid",
    "BillingPlan",
    "BillingInterval",
    "add_interval",
    "Subscription",
    "SubscriptionStatus",
    "OPEN_STATUSES",
    "Payment",
    "PaymentStatus",
    "SubscriptionHistory",
    "HistoryEvent",
    "AuditLog",
    "AuditAction",
    "SYSTEM_USER",
]
