"""Domain error taxonomy and its mapping onto HTTP responses.

Service functions raise these exceptions; ``register_exception_handlers`` turns
each one into exactly one status code and a stable ``code`` string so clients
can tell a duplicate request from a stale version without parsing messages.
Internal failures are logged with full detail and answered with a generic text.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "the server encountered a problem and could not process your request"


class AppError(Exception):
    status_code = 500
    code = "internal_error"
    message = INTERNAL_ERROR_MESSAGE
    headers: Optional[dict[str, str]] = None

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def payload(self) -> Any:
        return self.message


class ValidationFailed(AppError):
    status_code = 422
    code = "validation_failed"
    message = "validation failed"

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__()

    def payload(self) -> Any:
        return self.errors


class BadRequest(AppError):
    status_code = 400
    code = "bad_request"
    message = "bad request"


class InvalidCredentials(AppError):
    status_code = 401
    code = "invalid_credentials"
    message = "invalid authentication credentials"


class InvalidToken(AppError):
    status_code = 401
    code = "invalid_token"
    message = "invalid or missing authentication token"
    headers = {"WWW-Authenticate": "Bearer"}


class AuthenticationRequired(AppError):
    status_code = 401
    code = "authentication_required"
    message = "you must be authenticated to access this resource"
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    message = "you do not have permission to access this resource"


class RecordNotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "the requested resource could not be found"


class DuplicateRequest(AppError):
    status_code = 409
    code = "duplicate_request"
    message = "friend request already pending or accepted"


class DuplicateEmail(AppError):
    status_code = 409
    code = "duplicate_email"
    message = "a user with this email address already exists"

    def payload(self) -> Any:
        return {"email": self.message}


class EditConflict(AppError):
    status_code = 409
    code = "edit_conflict"
    message = "unable to update the record due to an edit conflict, please try again"


class ConstraintViolation(AppError):
    """A storage constraint rejected a write.

    ``kind`` is one of ``unique``, ``foreign_key``, ``check``, ``not_null`` or
    None when the driver did not say; ``name`` is the constraint name when the
    driver reports it.
    """

    status_code = 409
    code = "constraint_violation"
    message = "the request conflicts with existing data"

    def __init__(self, kind: Optional[str], name: Optional[str] = None):
        self.kind = kind
        self.name = name
        super().__init__()


class OAuthProviderError(AppError):
    status_code = 502
    code = "oauth_provider_error"
    message = "the authentication provider could not complete the sign in"


class QueryTimeout(AppError):
    code = "timeout"
    message = "the server took too long to process your request"


def error_response(status_code: int, code: str, payload: Any, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": payload, "code": code}, headers=headers)


def _field_name(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "body"


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the taxonomy above to ``app``."""
    from materix.database import is_query_timeout
    from materix.validator import Validator

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.code, exc.payload(), exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        v = Validator()
        for error in exc.errors():
            if error.get("type") == "json_invalid":
                return error_response(400, BadRequest.code, "body contains badly formed JSON")
            v.add_error(_field_name(tuple(error.get("loc", ()))), error.get("msg", "is invalid"))
        return error_response(ValidationFailed.status_code, ValidationFailed.code, v.errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = {404: "not_found", 405: "method_not_allowed"}.get(exc.status_code, "http_error")
        return error_response(exc.status_code, code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError):
        if is_query_timeout(exc):
            logger.error("Query timed out on %s %s", request.method, request.url.path)
            return error_response(500, QueryTimeout.code, QueryTimeout.message)
        logger.exception("Database failure on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(500, AppError.code, INTERNAL_ERROR_MESSAGE)

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database failure on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(500, AppError.code, INTERNAL_ERROR_MESSAGE)
