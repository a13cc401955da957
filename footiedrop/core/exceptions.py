from fastapi import HTTPException, status
from typing import Any, Dict
from footiedrop.core.error_codes import ErrorCode

class AppException(HTTPException):
    default_code: ErrorCode = ErrorCode.BAD_REQUEST
    default_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        *,
        error_code: ErrorCode | None = None,
        status_code: int | None = None,
        user_message: str | None = None,
        details: Dict[str, Any] | None = None,
    ):
        error_code = error_code or self.default_code
        super().__init__(
            status_code=status_code or self.default_status,
            detail={"error_code": error_code, "user_message": user_message, "details": details},
        )
        self.error_code = error_code
        self.user_message = user_message
        self.details = details


# One class per failure kind; the error_code narrows it down further.

class NotFoundError(AppException):
    default_code = ErrorCode.NOT_FOUND
    default_status = status.HTTP_404_NOT_FOUND


class ConflictError(AppException):
    default_code = ErrorCode.CONFLICT
    default_status = status.HTTP_409_CONFLICT


class InvalidCredentialError(AppException):
    default_code = ErrorCode.INVALID_CREDENTIALS
    default_status = status.HTTP_400_BAD_REQUEST


class ExpiredError(AppException):
    default_code = ErrorCode.TOKEN_EXPIRED
    default_status = status.HTTP_400_BAD_REQUEST


class AlreadyInStateError(AppException):
    default_code = ErrorCode.CONFLICT
    default_status = status.HTTP_409_CONFLICT


class PreconditionFailedError(AppException):
    default_code = ErrorCode.BAD_REQUEST
    default_status = status.HTTP_400_BAD_REQUEST


class DependencyFailureError(AppException):
    default_code = ErrorCode.INTERNAL_ERROR
    default_status = status.HTTP_502_BAD_GATEWAY


def raise_error(
    code: ErrorCode,
    status_code: int,
    user_message: str | None = None,
    details: Dict[str, Any] | None = None,
) -> None:
    raise AppException(error_code=code, status_code=status_code, user_message=user_message, details=details)
