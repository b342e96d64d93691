from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


# =========================================================
# ERROR TAXONOMY
# =========================================================

class ConsoleError(Exception):
    """Base class for every failure a screen can surface to the user."""
    status_code = 400
    error_type = "console_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationFailed(ConsoleError):
    """Bad credentials on login. Shown inline, no redirect."""
    status_code = 401
    error_type = "authentication_error"


class SessionExpired(ConsoleError):
    """Missing or expired token on a protected call. Routes to login."""
    status_code = 401
    error_type = "session_expired"


class ApiError(ConsoleError):
    """Backend rejected a call; message comes from the server payload."""
    error_type = "api_error"

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload


class BackendUnavailable(ApiError):
    """Transport failure: the backend could not be reached."""
    error_type = "backend_unavailable"

    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class PolicyViolation(ConsoleError):
    """The current role may not perform the requested action."""
    status_code = 403
    error_type = "policy_violation"


class TransitionRejected(ConsoleError):
    """No workflow edge exists for the requested status change."""
    status_code = 409
    error_type = "transition_rejected"


class FormValidationError(ConsoleError):
    """Form input rejected before anything is sent to the backend."""
    status_code = 422
    error_type = "validation_error"


def message_from_payload(payload: Any, default: str) -> str:
    """Pick a user-facing message out of a backend error body."""
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    if isinstance(payload, str) and payload.strip():
        return payload
    return default


# =========================================================
# FASTAPI HANDLERS
# =========================================================

def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SessionExpired)
    async def session_expired_handler(request: Request, exc: SessionExpired):
        logger.info(f"Session ended: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.message,
                "type": exc.error_type,
                "redirect": "/login",
            }
        )

    @app.exception_handler(ConsoleError)
    async def console_exception_handler(request: Request, exc: ConsoleError):
        if exc.status_code >= 500:
            logger.error(f"Console Error: {exc.status_code} - {exc.message}")
        else:
            logger.warning(f"Console Error: {exc.status_code} - {exc.message}")

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.message,
                "type": exc.error_type
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        elif exc.status_code >= 400:
            logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail}")

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.detail,
                "type": "http_error"
            }
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation Error: {exc.errors()}")
        return JSONResponse(
            status_code=422,
            content={
                "error": True,
                "message": "Invalid form data",
                "type": "validation_error",
                "details": jsonable_errors(exc.errors())
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected Error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "message": "Internal console error",
                "type": "internal_error"
            }
        )


def jsonable_errors(errors) -> list:
    """Drop the non-serializable `ctx`/`input` parts of pydantic errors."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]
