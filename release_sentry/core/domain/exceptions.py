"""Base domain exceptions.

所有领域异常都应继承自 DomainException，并可以通过定义 http_status_code 和 error_code
类属性来指定 HTTP 响应细节。
"""

from fastapi import status


class DomainException(Exception):
    """Base exception for all domain errors.

    子类可以通过定义以下类属性来自定义 HTTP 响应：
    - http_status_code: HTTP 状态码（默认 400）
    - error_code: 错误代码字符串（默认 "DOMAIN_ERROR"）
    """

    http_status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str = "A domain error occurred"):
        self.message = message
        super().__init__(self.message)


class StorageError(DomainException):
    """Raised when the persistence layer fails (connectivity, schema)."""

    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "STORAGE_ERROR"


class LogUnavailableError(DomainException):
    """Raised when the log file is missing or currently locked."""

    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "LOG_UNAVAILABLE"
