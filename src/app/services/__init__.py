from .unit_of_work import UnitOfWork
from .notification_service import NotificationService
from .audit_sink import AuditSink
from .payment_gateway import PaymentGateway, ProviderTransaction
from .ledger_writer import LedgerWriter

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "AuditSink",
    "PaymentGateway",
    "ProviderTransaction",
    "LedgerWriter",
]
