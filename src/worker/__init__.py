"""Background workers for subscription billing"""
from .grace_period_enforcer import GracePeriodEnforcerWorker
from .subscription_reconciler import SubscriptionReconcilerWorker

__all__ = ["GracePeriodEnforcerWorker", "SubscriptionReconcilerWorker"]
