"""SQLAlchemy Payment Repository Implementation

Implements payment persistence using SQLAlchemy async session.
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy import or_, and_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.payment import Payment, PaymentStatus


class SqlAlchemyPaymentRepository(PaymentRepository):
    """
    SQLAlchemy implementation of PaymentRepository

    Uniqueness of provider_payment_ref / provider_payment_id is enforced by
    the database; a duplicate insert surfaces as IntegrityError at flush.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _one(self, statement, for_update: bool) -> Optional[Payment]:
        if for_update:
            statement = statement.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_id(self, payment_id: str, for_update: bool = False) -> Optional[Payment]:
        return await self._one(select(Payment).where(Payment.id == payment_id), for_update)

    async def get_by_reference(
        self, reference: str, for_update: bool = False
    ) -> Optional[Payment]:
        statement = select(Payment).where(Payment.provider_payment_ref == reference)
        return await self._one(statement, for_update)

    async def get_by_provider_payment_id(
        self, provider_payment_id: str, for_update: bool = False
    ) -> Optional[Payment]:
        statement = select(Payment).where(Payment.provider_payment_id == provider_payment_id)
        return await self._one(statement, for_update)

    def _owned_by(self, subscription_id: str, user_id: str):
        """Linked to the subscription, or orphaned and owned by the same user"""
        return or_(
            Payment.subscription_id == subscription_id,
            and_(Payment.subscription_id.is_(None), Payment.user_id == user_id),
        )

    async def list_recent_succeeded(
        self, subscription_id: str, user_id: str, since: datetime
    ) -> List[Payment]:
        statement = (
            select(Payment)
            .where(self._owned_by(subscription_id, user_id))
            .where(Payment.status == PaymentStatus.SUCCEEDED)
            .where(Payment.created_at >= since)
            .order_by(Payment.created_at.desc())
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def list_unconfirmed(
        self, subscription_id: str, user_id: str, since: datetime
    ) -> List[Payment]:
        statement = (
            select(Payment)
            .where(self._owned_by(subscription_id, user_id))
            .where(Payment.status.in_([PaymentStatus.PENDING, PaymentStatus.PROCESSING]))
            .where(Payment.created_at >= since)
            .order_by(Payment.created_at.desc())
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def create(self, payment: Payment) -> Payment:
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment

    async def update(self, payment: Payment) -> Payment:
        payment.updated_at = datetime.utcnow()
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment
