"""Notification Service Interface

Defines the contract for notifying subscribers about their subscription.
"""

from abc import ABC, abstractmethod


class NotificationService(ABC):
    """
    Abstract notification service for subscriber warnings

    Implementations can send notifications via:
    - Webhook (HTTP POST)
    - Email
    - Logging (development)
    """

    @abstractmethod
    async def send_grace_period_warning(self, subscription_id: str, days_remaining: int) -> bool:
        """
        Warn that a subscription's grace period is about to expire

        Args:
            subscription_id: Subscription in grace period
            days_remaining: Whole days until the grace period ends

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass
