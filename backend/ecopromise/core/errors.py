# FILE: backend/ecopromise/core/errors.py
# Single operational error type plus the centralised handlers that turn every
# failure into {"status": "fail" | "error", "message": ...}.

import logging
import traceback
from typing import Any, Dict

from bson.errors import InvalidId
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import JWTError, ExpiredSignatureError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings

logger = logging.getLogger(__name__)

class AppError(HTTPException):
    """Operational error raised by services and dependencies."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=message)
        self.message = message

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"

def _body(status_code: int, message: str) -> Dict[str, Any]:
    return {"status": "fail" if 400 <= status_code < 500 else "error", "message": message}

def _duplicate_field(exc: DuplicateKeyError) -> str:
    details = exc.details or {}
    key_value = details.get("keyValue") or {}
    if key_value:
        return next(iter(key_value))
    key_pattern = details.get("keyPattern") or {}
    if key_pattern:
        return next(iter(key_pattern))
    return "value"

def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        msg = error.get("msg", "Invalid value")
        messages.append(f"{location}: {msg}" if location else msg)
    return ", ".join(messages) or "Invalid request"

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_body(400, _validation_message(exc)))

async def invalid_id_handler(request: Request, exc: InvalidId) -> JSONResponse:
    return JSONResponse(status_code=400, content=_body(400, "Invalid ID format"))

async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_body(400, f"{_duplicate_field(exc)} already exists"))

async def jwt_error_handler(request: Request, exc: JWTError) -> JSONResponse:
    message = "Token expired" if isinstance(exc, ExpiredSignatureError) else "Invalid token"
    return JSONResponse(status_code=401, content=_body(401, message))

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    content = _body(500, "Internal server error")
    if settings.is_development:
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content)

def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidId, invalid_id_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)  # type: ignore[arg-type]
    app.add_exception_handler(JWTError, jwt_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
