# hms_core/core/errors.py
"""
Service-level error taxonomy.

Services raise these; the HTTP layer turns them into
``{"kind": ..., "detail": ...}`` responses with the matching status code.
"""
from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    kind = "unknown"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidRequestError(ServiceError):
    kind = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(ServiceError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InsufficientStockError(ServiceError):
    kind = "insufficient_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, medicine_name: str, available: int, required: int):
        super().__init__(
            f"Insufficient stock for '{medicine_name}'. Available: {available}, Required: {required}"
        )
        self.medicine_name = medicine_name
        self.available = available
        self.required = required


class UnauthorizedError(ServiceError):
    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ServiceError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class GatewayError(ServiceError):
    """Payment gateway call failed or returned a non-success response."""

    kind = "gateway_failure"
    status_code = status.HTTP_502_BAD_GATEWAY


class GatewayTimeoutError(GatewayError):
    """Gateway did not answer in time. Safe for the caller to retry."""

    kind = "gateway_timeout"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class LockTimeoutError(ServiceError):
    kind = "lock_timeout"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": exc.kind, "detail": exc.detail},
    )
