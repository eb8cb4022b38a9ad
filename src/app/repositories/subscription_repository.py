"""Subscription Repository Interface

Defines the contract for subscription persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List
from src.domain.subscription import Subscription


class SubscriptionRepository(ABC):
    """
    Repository interface for Subscription persistence

    Read access is open to every use case; writes are issued only by the
    subscription state machine.
    """

    @abstractmethod
    async def get_by_id(
        self, subscription_id: str, for_update: bool = False
    ) -> Optional[Subscription]:
        """
        Retrieve subscription by ID with optional row-level locking

        Args:
            subscription_id: Subscription ID
            for_update: If True, locks the row with SELECT FOR UPDATE and
                refreshes any copy already loaded in the session

        Returns:
            Subscription if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_open_by_user_id(self, user_id: str) -> Optional[Subscription]:
        """
        Retrieve the owner's open subscription

        Open means incomplete, active, past_due or grace_period.

        Args:
            user_id: Owner identifier

        Returns:
            Most recent open Subscription if any, None otherwise
        """
        pass

    @abstractmethod
    async def list_in_grace_period(self) -> List[Subscription]:
        """
        Retrieve subscriptions in grace_period with a grace_period_end set

        Used by the grace period sweep.
        """
        pass

    @abstractmethod
    async def list_incomplete_created_before(self, cutoff: datetime) -> List[Subscription]:
        """
        Retrieve incomplete subscriptions created before cutoff

        Used by the bulk reconciliation worker.
        """
        pass

    @abstractmethod
    async def create(self, subscription: Subscription) -> Subscription:
        """
        Create a new subscription

        Args:
            subscription: Subscription entity to persist

        Returns:
            Created Subscription
        """
        pass

    @abstractmethod
    async def update(self, subscription: Subscription) -> Subscription:
        """
        Update an existing subscription

        Args:
            subscription: Subscription entity with updated values

        Returns:
            Updated Subscription
        """
        pass
