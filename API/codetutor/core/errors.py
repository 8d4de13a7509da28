import logging
import uuid

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TutorError(Exception):
    """Base for every failure an AI operation can surface to its caller."""

    code = "tutor_error"
    status_code = 500

    def __init__(self, message: str, *, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidLanguage(TutorError):
    code = "invalid_language"
    status_code = 422


class InvalidInput(TutorError):
    code = "invalid_input"
    status_code = 422


class ClientNotInitialized(TutorError):
    code = "client_not_initialized"
    status_code = 503


class TransportFailure(TutorError):
    code = "transport_failure"
    status_code = 502


class InvalidApiKey(TransportFailure):
    code = "invalid_api_key"


class QuotaExceeded(TransportFailure):
    code = "quota_exceeded"
    status_code = 429


class MalformedResponse(TutorError):
    code = "malformed_response"
    status_code = 502

    def __init__(self, message: str, *, excerpt: str = "", request_kind: str | None = None):
        super().__init__(message, details={"excerpt": excerpt, "request_kind": request_kind})
        self.excerpt = excerpt
        self.request_kind = request_kind

    def for_kind(self, request_kind: str) -> "MalformedResponse":
        return MalformedResponse(
            f"{request_kind} response could not be parsed: {self.message}",
            excerpt=self.excerpt,
            request_kind=request_kind,
        )


class NoActiveSession(TutorError):
    code = "no_active_session"
    status_code = 409


class StaleSession(TutorError):
    code = "stale_session"
    status_code = 409


class RateLimitExceeded(TutorError):
    code = "rate_limited"
    status_code = 429


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(
    request: Request,
    *,
    code: str,
    message: str,
    status_code: int,
    details=None,
) -> JSONResponse:
    payload = {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
            "details": details,
        },
    }
    return JSONResponse(status_code=status_code, content=payload)


async def tutor_exception_handler(request: Request, exc: TutorError):
    logger.warning("%s | request_id=%s | %s", exc.code, get_request_id(request), exc.message)
    return error_response(
        request,
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(
        request,
        code="http_error",
        message=str(exc.detail),
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        request,
        code="validation_error",
        message="Request validation failed",
        status_code=422,
        details=jsonable_encoder(exc.errors()),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception | request_id=%s", get_request_id(request), exc_info=exc)
    return error_response(
        request,
        code="internal_error",
        message="Internal server error",
        status_code=500,
    )


async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("x-request-id")
    request.state.request_id = incoming or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["x-request-id"] = request.state.request_id
    return response
