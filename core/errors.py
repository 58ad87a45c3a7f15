from __future__ import annotations

from enum import Enum
from typing import Any

from botocore.exceptions import ClientError
from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    MEDIA_UNSUPPORTED = "MEDIA_UNSUPPORTED"
    MEDIA_BACKEND_ERROR = "MEDIA_BACKEND_ERROR"
    MEDIA_UPLOAD_INVALID = "MEDIA_UPLOAD_INVALID"


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
        detail = {
            "message": message,
            "code": code.value,
            "details": details,
        }
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class MediaError(Exception):
    """Base class for failures raised by media handlers."""


class ConfigError(MediaError):
    pass


class MediaNotFoundError(MediaError):
    def __init__(self, file_id: str | None = None) -> None:
        self.file_id = file_id
        super().__init__(f"file not found: {file_id}" if file_id else "file not found")


class UnsupportedError(MediaError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} is not supported by this media handler")


class BackendError(MediaError):
    """A storage backend call failed.

    The backend error code (e.g. ``AccessDenied``) is kept in ``code`` and the
    original exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        operation: str,
        key: str | None = None,
        *,
        code: str | None = None,
        message: str | None = None,
    ) -> None:
        self.operation = operation
        self.key = key
        self.code = code
        text = f"{operation} failed"
        if key:
            text += f" for '{key}'"
        if code:
            text += f" [{code}]"
        if message:
            text += f": {message}"
        super().__init__(text)

    @classmethod
    def wrap(cls, operation: str, key: str | None, err: Exception) -> "BackendError":
        code = client_error_code(err) or None
        wrapped = cls(operation, key, code=code, message=str(err))
        wrapped.__cause__ = err
        return wrapped


class BatchDeleteError(BackendError):
    def __init__(self, failures: list[dict[str, str]]) -> None:
        self.failures = failures
        super().__init__(
            "delete",
            code=failures[0].get("code") if failures else None,
            message=f"{len(failures)} object(s) could not be deleted",
        )


def client_error_code(err: Exception) -> str:
    if isinstance(err, ClientError):
        return str(err.response.get("Error", {}).get("Code", ""))
    return ""


def resource_not_found(resource: str, resource_id: str | None = None) -> AppException:
    details = {"resource": resource}
    if resource_id:
        details["resource_id"] = resource_id
    return AppException(
        status_code=status.HTTP_404_NOT_FOUND,
        code=ErrorCode.RESOURCE_NOT_FOUND,
        message=f"{resource} not found",
        details=details,
    )


def upload_invalid(message: str, details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_400_BAD_REQUEST,
        code=ErrorCode.MEDIA_UPLOAD_INVALID,
        message=message,
        details=details,
    )


def media_error_to_http(err: MediaError) -> AppException:
    if isinstance(err, MediaNotFoundError):
        return resource_not_found("File", err.file_id)
    if isinstance(err, UnsupportedError):
        return AppException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            code=ErrorCode.MEDIA_UNSUPPORTED,
            message="Operation not supported",
            details={"operation": err.operation},
        )
    if isinstance(err, BackendError):
        details: dict[str, Any] = {"operation": err.operation, "backend_code": err.code}
        if isinstance(err, BatchDeleteError):
            details["failures"] = err.failures
        return AppException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            code=ErrorCode.MEDIA_BACKEND_ERROR,
            message="Storage backend error",
            details=details,
        )
    return AppException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.INTERNAL_ERROR,
        message="Internal Server Error",
    )
