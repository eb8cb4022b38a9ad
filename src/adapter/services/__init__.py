from .unit_of_work import SqlAlchemyUnitOfWork
from .notification_service import (
    LoggingNotificationService,
    WebhookNotificationService,
    CompositeNotificationService,
    create_notification_service,
)
from .audit_sink import SqlAlchemyAuditSink, LoggingAuditSink
from .paystack_gateway import PaystackGateway

__all__ = [
    "SqlAlchemyUnitOfWork",
    "LoggingNotificationService",
    "WebhookNotificationService",
    "CompositeNotificationService",
    "create_notification_service",
    "SqlAlchemyAuditSink",
    "LoggingAuditSink",
    "PaystackGateway",
]
