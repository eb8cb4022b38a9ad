"""HTTP error mapping for use case results"""

import logging
from typing import Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse
from libs.result import Error
from src.app.errors import ErrorCode

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.PROVIDER_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.RECONCILIATION_EXHAUSTED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.TRANSACTION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.SWEEP_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ClientError(Exception):
    """Raised by routes to turn a use case Error into an HTTP response"""

    def __init__(self, error: Error, status_code: Optional[int] = None):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code or STATUS_BY_CODE.get(
            error.code, status.HTTP_400_BAD_REQUEST
        )


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.error.code} {exc.error.message}"
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error.model_dump(exclude_none=True)},
    )
