from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import IntakeBotError
from app.schemas.response import ErrorResponse
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def _error_response(status_code: int, error: str, code: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code, details=details).model_dump(),
    )


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(IntakeBotError)
    async def intake_exception_handler(request: Request, exc: IntakeBotError):
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles standard HTTP exceptions (404, 405, etc.)
        """
        return _error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Handles Pydantic validation errors.
        """
        return _error_response(
            422,
            "Input validation failed",
            "VALIDATION_ERROR",
            # ctx may carry exception instances which are not JSON serializable
            [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()],
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "action": f"{request.method} {request.url.path}",
            },
            exc_info=True
        )

        message = "An internal error occurred. Please try again later." if settings.is_production else str(exc)
        return _error_response(500, message, "INTERNAL_ERROR")
