import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Any]] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)
        self.errors = errors


class BadRequestError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated", errors: Optional[List[Any]] = None):
        super().__init__(message, errors, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class FeedError(AppError):
    """The external SAP feed could not be reached or returned something unusable."""

    status_code = 500


class DatabaseNotConfigured(AppError):
    status_code = 500

    def __init__(self):
        super().__init__("Database not configured")


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body: Dict[str, Any] = {"message": exc.detail}
    errors = getattr(exc, "errors", None)
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"message": "Validation error", "errors": jsonable_encoder(exc.errors())},
    )


async def _duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    logger.info("Duplicate key on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"message": "Duplicate key", "error": str(exc)})


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error", "error": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(DuplicateKeyError, _duplicate_key_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
