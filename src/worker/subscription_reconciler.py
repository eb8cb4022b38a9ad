"""Subscription Reconciliation Background Worker

Periodically reconciles subscriptions stuck in incomplete status, for when
the payment webhook was delayed or never delivered.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.subscription_repository import SqlAlchemySubscriptionRepository
from src.adapter.services.audit_sink import SqlAlchemyAuditSink
from src.app.errors import ErrorCode
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.subscription import BulkReconciliationResultDTO
from src.depends import build_reconcile_payment, get_payment_gateway

logger = logging.getLogger(__name__)


class SubscriptionReconcilerWorker:
    """
    Background worker for bulk payment reconciliation

    Features:
    - Finds incomplete subscriptions older than a configurable age
    - Runs the tiered reconciliation for each in its own session
    - Can run once or continuously

    Usage:
        worker = SubscriptionReconcilerWorker()
        result = await worker.run_once()
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        gateway: Optional[PaymentGateway] = None,
        min_age_hours: Optional[int] = None,
    ):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.gateway = gateway or get_payment_gateway()
        self.min_age_hours = (
            min_age_hours if min_age_hours is not None
            else ApplicationConfig.RECONCILE_INCOMPLETE_AFTER_HOURS
        )

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self.audit_sink = SqlAlchemyAuditSink(self.async_session_factory)

        logger.info(f"SubscriptionReconcilerWorker initialized (min_age_hours={self.min_age_hours})")

    async def run_once(self, now: Optional[datetime] = None) -> BulkReconciliationResultDTO:
        """
        Reconcile every stuck incomplete subscription once

        Returns:
            BulkReconciliationResultDTO with counts and per-subscription errors
        """
        start_time = time.time()
        reconciliation_time = now or datetime.utcnow()

        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Subscription reconciliation is disabled, skipping")
            return BulkReconciliationResultDTO(
                checked=0,
                reconciled=0,
                exhausted=0,
                reconciliation_time=reconciliation_time,
                execution_time_ms=0,
            )

        cutoff = reconciliation_time - timedelta(hours=self.min_age_hours)
        async with self.async_session_factory() as session:
            repo = SqlAlchemySubscriptionRepository(session)
            subscription_ids = [s.id for s in await repo.list_incomplete_created_before(cutoff)]

        logger.info(f"Found {len(subscription_ids)} incomplete subscriptions to reconcile")

        reconciled = exhausted = 0
        errors = []
        for subscription_id in subscription_ids:
            async with self.async_session_factory() as session:
                reconcile = build_reconcile_payment(session, self.gateway, self.audit_sink)
                result = await reconcile.execute(subscription_id, now=reconciliation_time)

            if result.is_ok():
                reconciled += 1
            elif result.error.code == ErrorCode.RECONCILIATION_EXHAUSTED:
                exhausted += 1
            else:
                errors.append(f"{subscription_id}: {result.error.message}")

        execution_time_ms = int((time.time() - start_time) * 1000)
        if errors:
            logger.error(f"ALERT: {len(errors)} subscriptions failed to reconcile")
            for error in errors:
                logger.error(f"  - {error}")

        return BulkReconciliationResultDTO(
            checked=len(subscription_ids),
            reconciled=reconciled,
            exhausted=exhausted,
            errors=errors,
            reconciliation_time=reconciliation_time,
            execution_time_ms=execution_time_ms,
        )

    async def run_forever(self, interval_seconds: int = 900):
        """
        Run reconciliation continuously at specified interval

        Args:
            interval_seconds: Seconds between runs (default: 15 minutes)
        """
        logger.info(
            f"Starting continuous subscription reconciliation with {interval_seconds}s interval"
        )

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Reconciliation cycle complete. Checked {result.checked}, "
                    f"reconciled {result.reconciled}, exhausted {result.exhausted} "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("SubscriptionReconcilerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.subscription_reconciler --once

        # Only subscriptions older than 6 hours
        python -m src.worker.subscription_reconciler --once --min-age-hours 6

        # Run continuously with custom interval (in seconds)
        python -m src.worker.subscription_reconciler --interval 600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Subscription Reconciliation Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Interval between runs in seconds"
    )
    parser.add_argument(
        "--min-age-hours", type=int, default=None,
        help="Only reconcile incomplete subscriptions older than this"
    )
    args = parser.parse_args()

    worker = SubscriptionReconcilerWorker(min_age_hours=args.min_age_hours)

    try:
        if args.once:
            result = await worker.run_once()
            print("Subscription reconciliation complete:")
            print(f"  Checked: {result.checked}")
            print(f"  Reconciled: {result.reconciled}")
            print(f"  Exhausted: {result.exhausted}")
            print(f"  Errors: {len(result.errors)}")
            print(f"  Execution time: {result.execution_time_ms}ms")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
