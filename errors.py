"""Error kinds and the translator that turns every failure into the JSON error envelope."""

import traceback
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from jose import JWTError
from loguru import logger
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse


class ErrorKind(int, Enum):
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404


class ApiError(Exception):
    """An error whose status and message are safe to show to the client."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.value

    @classmethod
    def bad_request(cls, message: str) -> "ApiError":
        return cls(ErrorKind.BAD_REQUEST, message)

    @classmethod
    def unauthorized(cls, message: str) -> "ApiError":
        return cls(ErrorKind.UNAUTHORIZED, message)

    @classmethod
    def forbidden(cls, message: str) -> "ApiError":
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(ErrorKind.NOT_FOUND, message)


def validation_details(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    details = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")]
        details.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return details


def _include_stack(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is None or not settings.is_production


def error_response(
    request: Request,
    exc: Exception,
    status_code: int,
    message: str,
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": message}
    if extra:
        content.update(extra)
    if _include_stack(request):
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=content)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    logger.bind(status_code=exc.status_code).warning("{}: {}", type(exc).__name__, exc.message)
    return error_response(request, exc, exc.status_code, exc.message)


async def jwt_error_handler(request: Request, exc: JWTError) -> JSONResponse:
    logger.bind(status_code=401).warning("{}: {}", type(exc).__name__, exc)
    return error_response(request, exc, 401, "Unauthorized: Invalid token")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = validation_details(exc.errors())
    logger.bind(status_code=400).warning("ValidationError: {}", errors)
    return error_response(request, exc, 400, "Validation error", {"errors": errors})


async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    errors = validation_details(exc.errors())
    logger.bind(status_code=400).warning("ValidationError: {}", errors)
    return error_response(request, exc, 400, "Validation error", {"errors": errors})


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    logger.bind(status_code=400).warning("DuplicateKeyError: {}", exc.details)
    return error_response(request, exc, 400, "Duplicate field value entered")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = str(exc.detail)
    if exc.status_code == 404 and message == "Not Found":
        message = f"Not Found - {request.url.path}"
    logger.bind(status_code=exc.status_code).warning("HTTPException: {}", message)
    response = error_response(request, exc, exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).bind(status_code=500).error("{}: {}", type(exc).__name__, exc)
    return error_response(request, exc, 500, "Server Error")


async def catch_unhandled(request: Request, call_next):
    """Innermost middleware: unclassified errors become the 500 envelope here,
    inside the request logger and security headers. The ``Exception`` handler
    only sees failures raised by the middleware themselves.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        return await unhandled_error_handler(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(JWTError, jwt_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, model_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
