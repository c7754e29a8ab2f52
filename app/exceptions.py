from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError, DBAPIError
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTPException que además devuelve un bloque `data` en el sobre de error."""

    def __init__(self, status_code: int, detail: str, data: Optional[Any] = None, headers: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.data = data


def error_body(message: Any, type_: str, **extra: Any) -> dict:
    body = {"success": False, "error": message, "type": type_}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Solo loguear como ERROR si es un error del servidor (5xx)
        if exc.status_code >= 500:
            logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        elif exc.status_code >= 400:
            logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail}")

        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(error_body(exc.detail, "http_error", data=getattr(exc, "data", None))),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation Error: {exc.errors()}")
        return JSONResponse(
            status_code=422,
            content=jsonable_encoder(
                error_body("Invalid request data", "validation_error", details=exc.errors())
            ),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        error_message = str(exc.orig).lower() if hasattr(exc, 'orig') else str(exc)

        if "unique constraint" in error_message or "duplicate key" in error_message:
            if "slug" in error_message:
                message = "This family URL is already in use"
            elif "email" in error_message:
                message = "Email address already in use"
            elif "unit_abbr" in error_message:
                message = "Unit already exists"
            else:
                message = "A record with these unique values already exists"
        elif "foreign key constraint" in error_message:
            message = "This record is referenced by other records"
        elif "not-null constraint" in error_message or "not null constraint" in error_message:
            message = "Missing required fields"
        else:
            message = "Database integrity error"

        logger.error(f"Database Integrity Error: {error_message}")
        return JSONResponse(status_code=400, content=error_body(message, "integrity_error"))

    @app.exception_handler(DBAPIError)
    async def db_exception_handler(request: Request, exc: DBAPIError):
        logger.error(f"Database Error: {str(exc)}")
        return JSONResponse(status_code=500, content=error_body("Database error", "database_error"))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected Error: {str(exc)}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Internal server error", "internal_error"))
