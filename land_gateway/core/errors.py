"""Error taxonomy and the JSON envelope every failure is rendered into."""
from typing import Any

import sentry_sdk
import structlog
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from land_gateway.schemas.common import OperationResult

logger = structlog.get_logger()


class GatewayError(Exception):
    """Base for errors the gateway knows how to report."""

    status_code = 500
    code = "GATEWAY_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details


class InvalidInput(GatewayError):
    status_code = 400
    code = "INVALID_INPUT"


class NotFound(GatewayError):
    status_code = 404
    code = "NOT_FOUND"


class RequestNotFound(NotFound):
    code = "REQUEST_NOT_FOUND"


class DuplicateKey(GatewayError):
    status_code = 409
    code = "DUPLICATE_KEY"


class LedgerReadFailure(GatewayError):
    status_code = 502
    code = "LEDGER_READ_FAILURE"


class LedgerCallFailure(GatewayError):
    status_code = 502
    code = "LEDGER_CALL_FAILURE"


class LedgerConfirmationPending(LedgerCallFailure):
    """Transaction was broadcast but no receipt arrived within the timeout."""

    status_code = 202
    code = "PENDING_CONFIRMATION"

    def __init__(self, message: str, *, tx_hash: str) -> None:
        super().__init__(message, details={"txHash": tx_hash})
        self.tx_hash = tx_hash


class ReconciliationFailure(GatewayError):
    status_code = 502
    code = "RECONCILIATION_FAILURE"


class MirrorWriteFailure(GatewayError):
    """Store write failed after the ledger confirmed; reported as a warning only."""

    code = "MIRROR_WRITE_FAILURE"


def _envelope(status_code: int, result: OperationResult) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if isinstance(exc, LedgerConfirmationPending):
        result = OperationResult.pending(exc.message, {"txHash": exc.tx_hash})
        return _envelope(exc.status_code, result)

    logger.warning(
        "gateway_error",
        code=exc.code,
        error=exc.message,
        path=request.url.path,
        method=request.method,
    )
    result = OperationResult.failure(exc.message, code=exc.code, details=exc.details)
    return _envelope(exc.status_code, result)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    result = OperationResult.failure(
        "Request validation failed", code=InvalidInput.code, details=details
    )
    return _envelope(400, result)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    result = OperationResult.failure(
        str(exc.detail), code=f"HTTP_{exc.status_code}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=result.model_dump(mode="json"),
        headers=dict(exc.headers or {}),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    sentry_sdk.capture_exception(exc)

    result = OperationResult.failure(
        "An unexpected error occurred.", code="INTERNAL_ERROR"
    )
    return _envelope(500, result)
