"""
Domain error -> HTTP response mapping.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from salesrecon.exceptions import (
    ImportStateError,
    ParseError,
    ReconError,
    RestoreFormatError,
    ReviewPendingError,
    UnknownProductError,
)

logger = structlog.get_logger(__name__)

STATUS_CODES = {
    ParseError: 422,
    RestoreFormatError: 422,
    ReviewPendingError: 409,
    ImportStateError: 409,
    UnknownProductError: 404,
}


def status_for(exc: ReconError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


async def recon_error_handler(request: Request, exc: ReconError) -> JSONResponse:
    status_code = status_for(exc)
    logger.warning(
        "Request rejected",
        path=request.url.path,
        error=type(exc).__name__,
        message=exc.message,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        }),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReconError, recon_error_handler)
