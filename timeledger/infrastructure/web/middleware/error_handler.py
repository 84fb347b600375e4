"""
Global error handling for the FastAPI application.
Maps failures to HTTP status codes and the shared error envelope.
"""

import logging
import traceback
from typing import Any, Dict, List, Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from fastapi import status

from timeledger.config import settings
from timeledger.domain.models.base import utcnow

logger = logging.getLogger(__name__)


# Error categories of the domain exceptions and their HTTP status
STATUS_BY_ERROR_TYPE = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "business_rule": status.HTTP_400_BAD_REQUEST,
    "invariant": status.HTTP_400_BAD_REQUEST,
    "invalid_state": status.HTTP_409_CONFLICT,
    "conflict": status.HTTP_409_CONFLICT,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error_type: Optional[str]) -> int:
    return STATUS_BY_ERROR_TYPE.get(error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_envelope(
    code: str,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """The ``{success: false, error, timestamp}`` body shared by every failure."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {
        "success": False,
        "error": error,
        "timestamp": utcnow().isoformat() + "Z",
    }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle all uncaught exceptions and format error responses.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Process the request and handle any exceptions.
        """
        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            return await self.handle_exception(request, exc)

    async def handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """
        Log an unexpected exception and answer with a generic 500 envelope.
        """
        # Log the full exception with traceback
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            exc_info=True,
            extra={
                "request_path": request.url.path,
                "request_method": request.method,
                "client_host": request.client.host if request.client else None
            }
        )

        error_response = self.format_error_response(exc)

        # In development, add more debug information
        if settings.debug:
            error_response["debug"] = {
                "exception_type": type(exc).__name__,
                "traceback": traceback.format_exc().split("\n")
            }

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response
        )

    def format_error_response(self, exc: Exception) -> Dict[str, Any]:
        """
        Format exception into the error envelope. Internals are never exposed.
        """
        return error_envelope("INTERNAL_ERROR", "An unexpected error occurred")


class BusinessException(Exception):
    """
    Failure reported by a use case, carried to the exception handler that
    renders it.
    """
    def __init__(
        self,
        message: str,
        error_code: str = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: List[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or []
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=error_envelope(self.error_code or "ERROR", self.message, self.details)
        )
