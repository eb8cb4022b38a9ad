"""Audit Sink Interface

Write-and-forget destination for audit entries.
"""

from abc import ABC, abstractmethod
from src.domain.audit_log import AuditLog


class AuditSink(ABC):
    """
    Best-effort audit writer

    Implementations must never raise: a failed write is logged and dropped
    so that billing operations are not blocked by telemetry.
    """

    @abstractmethod
    async def write(self, entry: AuditLog) -> None:
        pass
