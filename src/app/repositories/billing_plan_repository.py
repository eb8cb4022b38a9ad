"""Billing Plan Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.billing_plan import BillingPlan


class BillingPlanRepository(ABC):
    """Read access to billing plans"""

    @abstractmethod
    async def get_by_id(self, plan_id: str) -> Optional[BillingPlan]:
        """
        Retrieve plan by ID

        Args:
            plan_id: Plan ID

        Returns:
            BillingPlan if found, None otherwise
        """
        pass
