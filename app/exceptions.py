import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from services.exceptions import BakeryDomainError

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "خطأ في الخادم"
INVALID_DATA_MESSAGE = "بيانات غير صحيحة"


def error_response(status_code: int, message: str, errors: list | None = None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


async def domain_exception_handler(request: Request, exc: BakeryDomainError):
    if exc.status_code >= 500:
        logger.error(
            f"Domain error on {request.method} {request.url.path}: {exc.message}",
            exc_info=exc,
        )
        return error_response(exc.status_code, SERVER_ERROR_MESSAGE)

    logger.warning(
        "Request rejected",
        extra={"path": request.url.path, "status_code": exc.status_code, "reason": exc.message},
    )
    return error_response(exc.status_code, exc.message, exc.errors)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or None,
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    logger.warning("Validation failed", extra={"path": request.url.path, "errors": errors})
    return error_response(400, INVALID_DATA_MESSAGE, errors)


async def http_exception_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else SERVER_ERROR_MESSAGE
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return error_response(500, SERVER_ERROR_MESSAGE)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return error_response(500, SERVER_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(BakeryDomainError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
