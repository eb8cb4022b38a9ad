"""Audit Log Domain Entity

Write-and-forget record of notable billing actions.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON
from src.domain.base import BaseModel, generate_uuid

SYSTEM_USER = "system"


class AuditAction(str, Enum):
    """Audit actions written by the billing engine"""
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    SUBSCRIPTION_MIGRATED = "subscription_migrated"
    SUBSCRIPTION_GRACE_PERIOD_SET = "subscription_grace_period_set"
    NOTIFICATION_SENT = "notification_sent"


class AuditLog(BaseModel, table=True):
    """
    Audit Log - Best-effort telemetry

    Domain Rules:
    - user_id may be "system" for scheduled jobs
    - A failure to write an entry never fails the primary operation
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index('ix_audit_logs_resource', 'resource', 'resource_id'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique audit entry identifier"
    )

    user_id: str = Field(
        description="Acting user, or 'system'"
    )

    action: str = Field(
        description="Audit action"
    )

    resource: str = Field(
        description="Resource type (e.g., 'subscription')"
    )

    resource_id: str = Field(
        description="Resource identifier"
    )

    details: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Structured details"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Entry timestamp"
    )
