import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class EarnHubError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BusinessRuleError(EarnHubError):
    status_code = 400


class AuthorizationError(EarnHubError):
    status_code = 401


class ForbiddenError(EarnHubError):
    status_code = 403


class NotFoundError(EarnHubError):
    status_code = 404


class DuplicateRecord(EarnHubError):
    status_code = 409


class InvalidTransition(EarnHubError):
    """Raised when a review targets a record that is no longer pending."""

    status_code = 409

    def __init__(self, kind: str, record_id: str, status: str):
        super().__init__(f"{kind} {record_id} is already {status}")
        self.kind = kind
        self.record_id = record_id
        self.status = status


class InsufficientBalance(BusinessRuleError):
    pass


async def earnhub_error_handler(request: Request, exc: EarnHubError):
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("%s %s -> 400: invalid payload", request.method, request.url.path)
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_encoder(errors)},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EarnHubError, earnhub_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
