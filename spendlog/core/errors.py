"""Domain exceptions and their HTTP mapping.

Every failure in the ledger core is non-fatal: it either rejects a call
synchronously with no state change or degrades and notifies. The handlers
below translate the synchronous kinds into JSON responses.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger("spendlog.errors")


class LedgerError(Exception):
    """Base class for ledger core errors."""


class LedgerValidationError(LedgerError, ValueError):
    """Malformed mutation input; raised before any state change."""


class UnsupportedCurrencyError(LedgerValidationError):
    def __init__(self, currency: str):
        super().__init__(f"unsupported currency '{currency}'")
        self.currency = currency


class NotFoundError(LedgerError, LookupError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} '{key}' not found")
        self.kind = kind
        self.key = key


class PersistenceError(LedgerError):
    """Backend fetch/save rejected."""


class SubscriptionError(LedgerError):
    """Standing subscription failed (permissions, connectivity)."""


class ExternalCollaboratorError(LedgerError):
    """Text inference or rate refresh failed."""


def not_found_handler(request: Request, exc):  # type: ignore
    detail = str(exc) if isinstance(exc, NotFoundError) else f"No route for {request.method} {request.url.path}"
    if not isinstance(exc, NotFoundError) and getattr(exc, "status_code", 404) != 404:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "http_error", "detail": exc.detail},
        )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "not_found", "detail": detail},
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": exc.errors(),
        },
    )


def ledger_validation_handler(request: Request, exc: LedgerValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "validation_error", "detail": str(exc)},
    )


def collaborator_error_handler(request: Request, exc: ExternalCollaboratorError):  # type: ignore
    logger.warning("external collaborator failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": "collaborator_error", "detail": str(exc)},
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
