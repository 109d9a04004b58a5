"""
Exception handlers rendering every error as a dismissible notification:
{"success": false, "title": ..., "message": ...}
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog_admin.core.exceptions import AppError

logger = logging.getLogger(__name__)


def _notification(status_code: int, title: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "title": title, "message": message},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if isinstance(exc, AppError):
        if exc.status_code >= 500:
            logger.warning(f"{request.method} {request.url.path} -> {exc.title}: {exc.message}")
        return _notification(exc.status_code, exc.title, exc.message)
    return _notification(exc.status_code, "Error", str(exc.detail))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _notification(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Unexpected error",
        "Something went wrong. Please try again.",
    )
