"""Audit Sink Implementations

Audit entries are telemetry: every implementation swallows its own
failures after logging them.
"""

import logging
from typing import Callable
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.services.audit_sink import AuditSink
from src.domain.audit_log import AuditLog

logger = logging.getLogger(__name__)


class SqlAlchemyAuditSink(AuditSink):
    """
    Writes audit entries to the audit_logs table

    Uses its own short-lived session so that an audit failure can never roll
    back, or be rolled back by, the billing transaction.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def write(self, entry: AuditLog) -> None:
        try:
            async with self.session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception as e:
            logger.error(
                f"Failed to create audit log entry {entry.action} "
                f"for {entry.resource}/{entry.resource_id}: {e}"
            )


class LoggingAuditSink(AuditSink):
    """Audit sink that only logs entries"""

    async def write(self, entry: AuditLog) -> None:
        logger.info(
            f"[AUDIT] user={entry.user_id} action={entry.action} "
            f"{entry.resource}/{entry.resource_id} details={entry.details}"
        )
