import logging
import uuid
import traceback
from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError

from foodflow.core.exceptions import AlreadyRated, BusinessRuleError, NotAuthorized, NotFound
from foodflow.workflow import InvalidTransition

log = logging.getLogger("foodflow.errors")


# Generate a clean request id for every response
def _rid():
    """Generates a unique request ID for tracing."""
    return uuid.uuid4().hex


def _error_body(code: str, message, **extra):
    error = {"code": code, "message": message}
    error.update(extra)
    return {
        "success": False,
        "message": message,
        "error": error,
        "request_id": _rid(),
    }


# ----------- Exception Handlers (called by FastAPI) -----------

def http_exception_handler(request: Request, exc: HTTPException):
    """Handles exceptions raised by HTTPException (e.g., 401, 404)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", exc.detail),
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles Pydantic validation errors (422 Unprocessable Entity)."""
    body = _error_body("validation_error", "Invalid input data", details=exc.errors())
    return JSONResponse(status_code=422, content=jsonable_encoder(body))


def business_rule_handler(request: Request, exc: ValueError):
    """Workflow rejections: illegal transitions, already-rated orders, OTP failures."""
    log.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    if isinstance(exc, InvalidTransition):
        code = "invalid_transition"
    elif isinstance(exc, AlreadyRated):
        code = "already_rated"
    else:
        code = "business_rule"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_body(code, str(exc)))


def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_body("not_found", str(exc)))


def forbidden_handler(request: Request, exc: NotAuthorized):
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=_error_body("forbidden", str(exc)))


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    # Log the full traceback for debugging purposes
    log.error(f"Unhandled exception on path: {request.url.path}\n{traceback.format_exc()}")
    return JSONResponse(status_code=500, content=_error_body("server_error", "Internal Server Error"))


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""

    # Register handlers
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(NotAuthorized, forbidden_handler)
    app.add_exception_handler(BusinessRuleError, business_rule_handler)
    app.add_exception_handler(InvalidTransition, business_rule_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app
