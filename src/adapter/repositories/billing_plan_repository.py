"""SQLAlchemy Billing Plan Repository Implementation"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.billing_plan_repository import BillingPlanRepository
from src.domain.billing_plan import BillingPlan


class SqlAlchemyBillingPlanRepository(BillingPlanRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, plan_id: str) -> Optional[BillingPlan]:
        statement = select(BillingPlan).where(BillingPlan.id == plan_id)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()
