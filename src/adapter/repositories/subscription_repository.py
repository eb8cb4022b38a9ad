"""SQLAlchemy Subscription Repository Implementation

Implements subscription persistence using SQLAlchemy async session.
"""

from datetime import datetime
from typing import Optional, List
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.subscription import Subscription, SubscriptionStatus, OPEN_STATUSES


class SqlAlchemySubscriptionRepository(SubscriptionRepository):
    """
    SQLAlchemy implementation of SubscriptionRepository

    Features:
    - Row-level locking via SELECT FOR UPDATE (ignored by SQLite)
    - Flush-on-write so changes join the caller's unit of work
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(
        self, subscription_id: str, for_update: bool = False
    ) -> Optional[Subscription]:
        statement = select(Subscription).where(Subscription.id == subscription_id)

        if for_update:
            # Re-read the row even if this session already holds it
            statement = statement.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def get_open_by_user_id(self, user_id: str) -> Optional[Subscription]:
        statement = (
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .where(Subscription.status.in_(OPEN_STATUSES))
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def list_in_grace_period(self) -> List[Subscription]:
        statement = select(Subscription).where(
            Subscription.status == SubscriptionStatus.GRACE_PERIOD,
            Subscription.grace_period_end.is_not(None),
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def list_incomplete_created_before(self, cutoff: datetime) -> List[Subscription]:
        statement = (
            select(Subscription)
            .where(Subscription.status == SubscriptionStatus.INCOMPLETE)
            .where(Subscription.created_at < cutoff)
            .order_by(Subscription.created_at)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def create(self, subscription: Subscription) -> Subscription:
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription

    async def update(self, subscription: Subscription) -> Subscription:
        subscription.updated_at = datetime.utcnow()
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription
