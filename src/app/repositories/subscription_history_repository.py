"""Subscription History Repository Interface

Append-only access to the subscription history ledger.
"""

from abc import ABC, abstractmethod
from typing import List
from src.domain.subscription_history import SubscriptionHistory


class SubscriptionHistoryRepository(ABC):
    """
    Repository interface for SubscriptionHistory persistence

    There is deliberately no update or delete operation.
    """

    @abstractmethod
    async def create(self, entry: SubscriptionHistory) -> SubscriptionHistory:
        """
        Append a history entry within the current transaction

        Args:
            entry: SubscriptionHistory entity to persist

        Returns:
            Created SubscriptionHistory
        """
        pass

    @abstractmethod
    async def list_by_subscription(self, subscription_id: str) -> List[SubscriptionHistory]:
        """
        Retrieve history entries for a subscription, oldest first
        """
        pass
