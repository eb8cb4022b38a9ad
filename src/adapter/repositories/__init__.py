from .subscription_repository import SqlAlchemySubscriptionRepository
from .payment_repository import SqlAlchemyPaymentRepository
from .subscription_history_repository import SqlAlchemySubscriptionHistoryRepository
from .billing_plan_repository import SqlAlchemyBillingPlanRepository

__all__ = [
    "SqlAlchemySubscriptionRepository",
    "SqlAlchemyPaymentRepository",
    "SqlAlchemySubscriptionHistoryRepository",
    "SqlAlchemyBillingPlanRepository",
]
