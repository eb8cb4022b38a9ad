from .subscription_repository import SubscriptionRepository
from .payment_repository import PaymentRepository
from .subscription_history_repository import SubscriptionHistoryRepository
from .billing_plan_repository import BillingPlanRepository

__all__ = [
    "SubscriptionRepository",
    "PaymentRepository",
    "SubscriptionHistoryRepository",
    "BillingPlanRepository",
]
