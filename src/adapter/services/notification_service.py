"""Notification Service Implementations

Provides concrete implementations for sending subscriber warnings.
"""

import logging
from datetime import datetime
from typing import Optional
import httpx
from src.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class LoggingNotificationService(NotificationService):
    """
    Notification service that logs warnings

    Useful for development and testing, or as a fallback.
    """

    async def send_grace_period_warning(self, subscription_id: str, days_remaining: int) -> bool:
        logger.warning(
            f"[GRACE PERIOD WARNING] Subscription: {subscription_id}, "
            f"Days remaining: {days_remaining}"
        )
        return True


class WebhookNotificationService(NotificationService):
    """
    Notification service that sends warnings via HTTP webhook

    Sends JSON payload to configured webhook URL.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        """
        Initialize webhook notification service

        Args:
            webhook_url: URL to POST warnings to
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def send_grace_period_warning(self, subscription_id: str, days_remaining: int) -> bool:
        payload = {
            "type": "grace_period_warning",
            "subscription_id": subscription_id,
            "days_remaining": days_remaining,
            "sent_at": datetime.utcnow().isoformat(),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                logger.info(
                    f"Grace period warning sent for subscription {subscription_id} to {self.webhook_url}"
                )
                return True
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to send grace period warning for subscription {subscription_id}: {e}"
            )
            return False


class CompositeNotificationService(NotificationService):
    """
    Notification service that delegates to multiple services

    Useful for sending to multiple channels (e.g., log + webhook).
    """

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def send_grace_period_warning(self, subscription_id: str, days_remaining: int) -> bool:
        """
        Send warning to all configured services

        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.send_grace_period_warning(subscription_id, days_remaining):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


def create_notification_service(webhook_url: Optional[str] = None) -> NotificationService:
    """
    Factory function to create appropriate notification service

    Args:
        webhook_url: Optional webhook URL. If provided, creates composite
                     service with logging + webhook. Otherwise, just logging.

    Returns:
        Configured NotificationService
    """
    services: list[NotificationService] = [LoggingNotificationService()]

    if webhook_url:
        services.append(WebhookNotificationService(webhook_url))

    if len(services) == 1:
        return services[0]

    return CompositeNotificationService(services)
