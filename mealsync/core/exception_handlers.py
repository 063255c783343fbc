import logging
import traceback
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from mealsync.core.errors import MealSyncError
from mealsync.schemas.response import ErrorResponse

log = logging.getLogger(__name__)


def _body(message, code=None, rolled_back=None):
    return ErrorResponse(error=message, code=code, rolled_back=rolled_back).model_dump(
        by_alias=True, exclude_none=True
    )


# ----------- Exception Handlers (called by FastAPI) -----------

def mealsync_exception_handler(request: Request, exc: MealSyncError):
    """Handles every failure from the write path, keeping its status and code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(exc.message, exc.code, exc.rolled_back),
    )


def http_exception_handler(request: Request, exc: HTTPException):
    """Handles exceptions raised by HTTPException (e.g., 404, 405)."""
    return JSONResponse(status_code=exc.status_code, content=_body(str(exc.detail), "http_error"))


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reports request validation errors as 400 like every other input failure."""
    return JSONResponse(status_code=400, content=_body("Invalid input data", "validation_error"))


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    log.error(f"Unhandled exception on path: {request.url.path}\n{traceback.format_exc()}")
    return JSONResponse(status_code=500, content=_body(str(exc) or "Internal Server Error", "server_error"))


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""
    app.add_exception_handler(MealSyncError, mealsync_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app
