"""Grace Period Enforcement Background Worker

Periodically sweeps subscriptions in their grace period, cancelling the
expired ones and warning owners before expiry.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.services.audit_sink import SqlAlchemyAuditSink
from src.app.services.notification_service import NotificationService
from src.app.use_cases.subscription import GracePeriodConfigDTO, GraceSweepResultDTO
from src.depends import build_grace_enforcer, get_notification_service, grace_period_config

logger = logging.getLogger(__name__)


class GracePeriodEnforcerWorker:
    """
    Background worker for grace period enforcement

    Features:
    - Cancels subscriptions whose grace period has expired
    - Sends warnings on the configured days before expiry
    - Can run once or continuously
    - Configurable interval (default: hourly)

    Usage:
        # Run once
        worker = GracePeriodEnforcerWorker()
        result = await worker.run_once()

        # Run continuously
        worker = GracePeriodEnforcerWorker()
        await worker.run_forever(interval_seconds=3600)
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        notification_service: Optional[NotificationService] = None,
        config: Optional[GracePeriodConfigDTO] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            notification_service: Warning channel (defaults to log + optional webhook)
            config: Grace period policy (defaults to ApplicationConfig values)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.notification_service = notification_service or get_notification_service()
        self.config = config or grace_period_config()

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self.audit_sink = SqlAlchemyAuditSink(self.async_session_factory)

        logger.info(
            f"GracePeriodEnforcerWorker initialized "
            f"(warning_days={self.config.warning_days}, "
            f"auto_cancel={self.config.enable_auto_cancel})"
        )

    async def run_once(self, now: Optional[datetime] = None) -> GraceSweepResultDTO:
        """
        Run one sweep

        Returns:
            GraceSweepResultDTO with sweep counts and errors
        """
        async with self.async_session_factory() as session:
            enforcer = build_grace_enforcer(
                session, self.notification_service, self.audit_sink, self.config
            )
            result = await enforcer.execute(now=now)

            if result.is_err():
                logger.error(f"Grace period sweep failed: {result.error.message}")
                raise RuntimeError(f"Grace period sweep failed: {result.error.message}")

            response = result.value
            for error in response.errors:
                logger.error(f"  - {error}")

            return response

    async def run_forever(self, interval_seconds: int = 3600):
        """
        Run sweeps continuously at specified interval

        Args:
            interval_seconds: Seconds between sweeps (default: 1 hour)
        """
        logger.info(f"Starting continuous grace period sweeps with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Sweep cycle complete. Processed {result.processed}, "
                    f"cancelled {result.cancelled}, warned {result.warned}, "
                    f"errors {len(result.errors)} in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Sweep cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("GracePeriodEnforcerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.grace_period_enforcer --once

        # Run continuously (default: hourly)
        python -m src.worker.grace_period_enforcer

        # Run continuously with custom interval (in seconds)
        python -m src.worker.grace_period_enforcer --interval 600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Grace Period Enforcement Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.GRACE_SWEEP_INTERVAL_SECONDS,
        help="Interval between runs in seconds"
    )
    args = parser.parse_args()

    worker = GracePeriodEnforcerWorker()

    try:
        if args.once:
            result = await worker.run_once()
            print("Grace period sweep complete:")
            print(f"  Processed: {result.processed}")
            print(f"  Cancelled: {result.cancelled}")
            print(f"  Warned: {result.warned}")
            print(f"  Skipped: {result.skipped}")
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
