"""HTTP exception handlers.

将领域异常转换为标准 HTTP 响应；各模块的异常类通过 http_status_code 和
error_code 类属性自定义响应。
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from release_sentry.core.domain.exceptions import DomainException, StorageError
from release_sentry.core.interfaces.http.response import ErrorResponse


async def domain_exception_handler(
    _request: Request, exc: DomainException
) -> JSONResponse:
    """Handle domain exceptions."""
    status_code = getattr(exc, "http_status_code", status.HTTP_400_BAD_REQUEST)
    error_code = getattr(exc, "error_code", "DOMAIN_ERROR")

    if isinstance(exc, StorageError) and status_code >= 500:
        logger.error(f"Storage failure: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse.create(code=error_code, message=exc.message).model_dump(),
    )


async def global_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.create(
            code="INTERNAL_ERROR", message="An internal error occurred"
        ).model_dump(),
    )
