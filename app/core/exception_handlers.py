"""
Exception handlers translating application errors into JSON responses
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from app.core.exceptions import DeskbookException

logger = logging.getLogger(__name__)


def _error_body(code: str, message: str, details=None) -> dict:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


async def deskbook_exception_handler(request: Request, exc: DeskbookException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"Application error: {exc.message}", exc_info=exc)
    else:
        logger.info(f"Request rejected ({exc.code}): {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message, exc.details)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger.info(f"Request validation failed: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            "VALIDATION_ERROR",
            "Invalid request parameters",
            {"errors": jsonable_encoder(errors)}
        )
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Internal server error: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("INTERNAL_ERROR", "An internal server error occurred")
    )


EXCEPTION_HANDLERS = {
    DeskbookException: deskbook_exception_handler,
    RequestValidationError: validation_exception_handler,
    Exception: internal_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
