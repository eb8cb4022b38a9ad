"""Ledger Writer

Single write path for the subscription history ledger and the audit log.
"""

import logging
from typing import Any, Dict, Optional
from src.app.repositories.subscription_history_repository import SubscriptionHistoryRepository
from src.app.services.audit_sink import AuditSink
from src.domain.audit_log import AuditLog, AuditAction
from src.domain.subscription_history import SubscriptionHistory, HistoryEvent

logger = logging.getLogger(__name__)


class LedgerWriter:
    """
    Appends history rows and audit entries

    - record() joins the caller's unit of work, so the history row commits
      or rolls back together with the change it describes
    - audit() is best-effort and never raises
    """

    def __init__(self, history_repo: SubscriptionHistoryRepository, audit_sink: AuditSink):
        self.history_repo = history_repo
        self.audit_sink = audit_sink

    async def record(
        self, subscription_id: str, event: HistoryEvent, reason: Optional[str] = None
    ) -> SubscriptionHistory:
        entry = SubscriptionHistory.from_event(subscription_id, event, reason)
        return await self.history_repo.create(entry)

    async def audit(
        self,
        user_id: str,
        action: AuditAction,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
        resource: str = "subscription",
    ) -> None:
        entry = AuditLog(
            user_id=user_id,
            action=action.value,
            resource=resource,
            resource_id=resource_id,
            details=details or {},
        )
        try:
            await self.audit_sink.write(entry)
        except Exception as e:
            logger.error(f"Failed to write audit entry {action.value} for {resource_id}: {e}")
