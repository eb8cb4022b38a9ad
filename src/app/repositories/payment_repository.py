"""Payment Repository Interface

Defines the contract for payment persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List
from src.domain.payment import Payment


class PaymentRepository(ABC):
    """
    Repository interface for Payment persistence

    provider_payment_ref and provider_payment_id are unique and serve as
    the dedup keys for reconciliation.
    """

    @abstractmethod
    async def get_by_id(self, payment_id: str, for_update: bool = False) -> Optional[Payment]:
        pass

    @abstractmethod
    async def get_by_reference(
        self, reference: str, for_update: bool = False
    ) -> Optional[Payment]:
        """
        Retrieve payment by provider_payment_ref

        Args:
            reference: Client-chosen idempotency key
            for_update: Lock the row and refresh any copy already in the session

        Returns:
            Payment if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_provider_payment_id(
        self, provider_payment_id: str, for_update: bool = False
    ) -> Optional[Payment]:
        """
        Retrieve payment by provider-assigned transaction id

        Args:
            provider_payment_id: Provider transaction id
            for_update: Lock the row and refresh any copy already in the session

        Returns:
            Payment if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_recent_succeeded(
        self, subscription_id: str, user_id: str, since: datetime
    ) -> List[Payment]:
        """
        Retrieve succeeded payments created since a point in time

        Includes payments linked to the subscription and orphaned payments
        (no subscription) belonging to the same owner, newest first.
        """
        pass

    @abstractmethod
    async def list_unconfirmed(
        self, subscription_id: str, user_id: str, since: datetime
    ) -> List[Payment]:
        """
        Retrieve pending or processing payments created since a point in time

        Same scope and ordering as list_recent_succeeded.
        """
        pass

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        """
        Create a new payment

        Raises:
            IntegrityError: If provider_payment_ref or provider_payment_id already exists
        """
        pass

    @abstractmethod
    async def update(self, payment: Payment) -> Payment:
        pass
