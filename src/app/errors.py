"""Error codes shared by use cases, gateways and the HTTP layer"""


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    RECONCILIATION_EXHAUSTED = "RECONCILIATION_EXHAUSTED"
    TRANSACTION_ERROR = "TRANSACTION_ERROR"
    SWEEP_FAILED = "SWEEP_FAILED"
