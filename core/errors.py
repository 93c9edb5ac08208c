from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    STORAGE_CONFIGURATION_ERROR = "STORAGE_CONFIGURATION_ERROR"
    PROFILE_STORE_ERROR = "PROFILE_STORE_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class AppException(HTTPException):
    def __init__(
        self,
        *,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details
        detail = {
            "message": message,
            "code": code.value,
            "details": details,
        }
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    def __init__(self, message: str = "Invalid request data", details: Any | None = None) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code=ErrorCode.AUTHENTICATION_ERROR,
            message=message,
        )


class AuthorizationError(AppException):
    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code=ErrorCode.AUTHORIZATION_ERROR,
            message=message,
        )


class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=ErrorCode.NOT_FOUND_ERROR,
            message=message,
        )


class RateLimitError(AppException):
    def __init__(
        self,
        message: str = "Too many requests",
        *,
        retry_after: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        response_headers = dict(headers or {})
        if retry_after:
            response_headers["Retry-After"] = str(retry_after)
        self.retry_after = retry_after
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            code=ErrorCode.RATE_LIMIT_ERROR,
            message=message,
            headers=response_headers or None,
        )


class StorageConfigurationError(AppException):
    def __init__(self, message: str = "Storage configuration error", details: Any | None = None) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=ErrorCode.STORAGE_CONFIGURATION_ERROR,
            message=message,
            details=details,
        )


class ProfileStoreError(AppException):
    def __init__(self, message: str, *, provider_code: str | None = None) -> None:
        self.provider_code = provider_code
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=ErrorCode.PROFILE_STORE_ERROR,
            message=message,
        )
