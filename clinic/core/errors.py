# clinic/core/errors.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from clinic.core.config import settings

logger = logging.getLogger(__name__)


# Service-level errors (routers map them to HTTP)
class ServiceError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "bad_request"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadRequestError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "bad_request"


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "forbidden"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "not_found"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "conflict"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Malformed input is a 400 in this API, not FastAPI's default 422.
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "internal_server_error"}
    if not settings.is_production:
        content["error"] = f"{type(exc).__name__}: {exc}"
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
