"""Payment Gateway Interface

Read-only view of the payment provider used for reconciliation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from libs.result import Result

PROVIDER_SUCCESS = "success"


class ProviderTransaction(BaseModel):
    """
    Normalized provider transaction

    amount is in the currency's minor units as reported by the provider.
    """

    id: str = Field(..., description="Provider-assigned transaction id")
    reference: str = Field(..., description="Transaction reference (idempotency key)")
    status: str = Field(..., description="Provider status, e.g. 'success', 'failed'")
    amount: int = Field(..., description="Amount in minor units")
    currency: str = Field(..., description="ISO 4217 currency code")
    authorization_code: Optional[str] = Field(default=None)
    customer_code: Optional[str] = Field(default=None)
    paid_at: Optional[datetime] = Field(default=None)

    @property
    def is_successful(self) -> bool:
        return self.status == PROVIDER_SUCCESS


class PaymentGateway(ABC):
    """
    Abstract payment provider gateway

    Both operations are read-only and idempotent. Failures are reported as
    Result errors with code PROVIDER_ERROR rather than raised.
    """

    @abstractmethod
    async def verify_transaction(self, reference: str) -> Result[ProviderTransaction]:
        """
        Verify a transaction by reference

        Args:
            reference: Transaction reference

        Returns:
            Result[ProviderTransaction]: The provider's record of the transaction
        """
        pass

    @abstractmethod
    async def list_transactions(
        self, customer: str, status: str = PROVIDER_SUCCESS
    ) -> Result[List[ProviderTransaction]]:
        """
        List a customer's transactions filtered by status

        Args:
            customer: Provider customer identifier
            status: Provider transaction status filter

        Returns:
            Result[List[ProviderTransaction]]: Matching transactions, newest first
        """
        pass
