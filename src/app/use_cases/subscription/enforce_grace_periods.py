"""EnforceGracePeriods Use Case

Sweeps subscriptions in their grace period: cancels the expired ones and
warns owners whose grace period is about to run out.
"""

import logging
import math
import time
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import ErrorCode
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.app.services.ledger_writer import LedgerWriter
from src.app.services.notification_service import NotificationService
from src.domain.audit_log import AuditAction, SYSTEM_USER
from .dtos import CancelEffective, GracePeriodConfigDTO, GraceSweepResultDTO
from .state_machine import SubscriptionStateMachine

logger = logging.getLogger(__name__)

GRACE_PERIOD_EXPIRED = "grace_period_expired"
SECONDS_PER_DAY = 24 * 60 * 60


def days_until(end: datetime, now: datetime) -> int:
    return math.ceil((end - now).total_seconds() / SECONDS_PER_DAY)


class EnforceGracePeriods:
    """
    Use Case: Grace period sweep

    Business Rules:
    1. Only grace_period subscriptions with a grace_period_end are considered
    2. Expired grace periods are canceled through the state machine when
       auto-cancel is enabled, otherwise skipped
    3. When the days left match a configured warning day, the owner is
       notified and a notification_sent audit entry is written
    4. One failing subscription never aborts the sweep; errors are collected

    Warnings are not de-duplicated: sweeping twice on the same day sends the
    same warning twice.
    """

    def __init__(
        self,
        state_machine: SubscriptionStateMachine,
        subscription_repo: SubscriptionRepository,
        notification_service: NotificationService,
        ledger: LedgerWriter,
        config: Optional[GracePeriodConfigDTO] = None,
    ):
        self.state_machine = state_machine
        self.subscription_repo = subscription_repo
        self.notification_service = notification_service
        self.ledger = ledger
        self.config = config or GracePeriodConfigDTO()

    async def execute(self, now: Optional[datetime] = None) -> Result[GraceSweepResultDTO]:
        """
        Run one sweep

        Args:
            now: Clock override

        Returns:
            Result[GraceSweepResultDTO]: Counts and per-subscription errors.
            SWEEP_FAILED only when the candidate list cannot be loaded.
        """
        start_time = time.time()
        sweep_time = now or datetime.utcnow()

        try:
            subscriptions = await self.subscription_repo.list_in_grace_period()
        except Exception as e:
            logger.error(f"Grace period sweep could not load subscriptions: {e}")
            return Return.err(
                Error(
                    code=ErrorCode.SWEEP_FAILED,
                    message="Failed to load subscriptions in grace period",
                    reason=str(e),
                )
            )

        candidates = [
            (s.id, s.grace_period_end) for s in subscriptions if s.grace_period_end is not None
        ]
        logger.info(f"Grace period sweep found {len(candidates)} subscriptions")

        cancelled = warned = skipped = 0
        errors = []

        for subscription_id, grace_period_end in candidates:
            try:
                if grace_period_end <= sweep_time:
                    if not self.config.enable_auto_cancel:
                        logger.info(
                            f"Grace period expired for {subscription_id}; auto-cancel disabled"
                        )
                        skipped += 1
                        continue

                    result = await self.state_machine.cancel(
                        subscription_id,
                        GRACE_PERIOD_EXPIRED,
                        CancelEffective.IMMEDIATE,
                        actor=SYSTEM_USER,
                        grace_expired_by=sweep_time,
                    )
                    if result.is_err():
                        errors.append(f"{subscription_id}: {result.error.message}")
                    elif result.value.changed:
                        cancelled += 1
                    else:
                        # Recovered or canceled since the candidate list was loaded
                        skipped += 1
                    continue

                days_remaining = days_until(grace_period_end, sweep_time)
                if days_remaining not in self.config.warning_days:
                    continue

                sent = await self.notification_service.send_grace_period_warning(
                    subscription_id, days_remaining
                )
                if not sent:
                    errors.append(f"{subscription_id}: warning notification failed")
                    continue

                await self.ledger.audit(
                    SYSTEM_USER,
                    AuditAction.NOTIFICATION_SENT,
                    subscription_id,
                    {
                        "type": "grace_period_warning",
                        "days_remaining": days_remaining,
                        "grace_period_end": grace_period_end.isoformat(),
                    },
                )
                warned += 1
            except Exception as e:
                logger.error(f"Grace period sweep failed for {subscription_id}: {e}")
                errors.append(f"{subscription_id}: {e}")

        execution_time_ms = int((time.time() - start_time) * 1000)
        response = GraceSweepResultDTO(
            processed=len(candidates),
            cancelled=cancelled,
            warned=warned,
            skipped=skipped,
            errors=errors,
            sweep_time=sweep_time,
            execution_time_ms=execution_time_ms,
        )

        if errors:
            logger.warning(
                f"Grace period sweep complete with {len(errors)} errors: "
                f"cancelled={cancelled}, warned={warned}, skipped={skipped}"
            )
        else:
            logger.info(
                f"Grace period sweep complete: processed={len(candidates)}, "
                f"cancelled={cancelled}, warned={warned}, skipped={skipped} "
                f"in {execution_time_ms}ms"
            )

        return Return.ok(response)
