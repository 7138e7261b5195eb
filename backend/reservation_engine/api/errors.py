"""
Exception handlers: domain errors become `{detail, code}` JSON with the
status code the error carries.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from reservation_engine.core.exceptions import ReservationError, StorageUnavailableError
from reservation_engine.core.logging import get_logger

logger = get_logger(__name__)


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    if isinstance(exc, StorageUnavailableError):
        logger.error("storage_unavailable", error=exc.message)
    elif exc.status_code >= 500:
        logger.error("reservation_error", code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "INTERNAL_ERROR"},
    )


EXCEPTION_HANDLERS = {
    ReservationError: reservation_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc_class, handler)
