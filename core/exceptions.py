from fastapi import status

from core.errors import ErrorCode, ErrorMessage


class AppException(Exception):
    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict | None = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}


class ValidationError(AppException):
    def __init__(self, message: str, details: dict | None = None, code: str = ErrorCode.VALIDATION_ERROR):
        super().__init__(status.HTTP_400_BAD_REQUEST, code, message, details)


class NotFoundError(AppException):
    def __init__(self, code: str, message: str, details: dict | None = None):
        super().__init__(status.HTTP_404_NOT_FOUND, code, message, details)


class ConflictError(AppException):
    def __init__(self, code: str, message: str, details: dict | None = None):
        super().__init__(status.HTTP_409_CONFLICT, code, message, details)


class InsufficientBalanceError(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, ErrorCode.INSUFFICIENT_BALANCE, message, details)


class LockedAssetError(AppException):
    def __init__(self, details: dict | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, ErrorCode.ASSET_LOCKED, ErrorMessage.ASSET_LOCKED, details)


class AlreadyFinalizedError(ConflictError):
    def __init__(self, transaction_id: int, current_status: str | None = None):
        super().__init__(
            ErrorCode.ALREADY_FINALIZED,
            ErrorMessage.ALREADY_FINALIZED,
            {"transactionId": transaction_id, "status": current_status},
        )
        self.transaction_id = transaction_id
        self.current_status = current_status


class StorageError(AppException):
    """Transient persistence failure; the whole operation is safe to retry."""

    def __init__(self, message: str = ErrorMessage.STORAGE_ERROR, details: dict | None = None):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, ErrorCode.STORAGE_ERROR, message, details)


class Unauthorized(AppException):
    def __init__(self, message: str = ErrorMessage.UNAUTHORIZED, code: str = ErrorCode.AUTH_UNAUTHORIZED):
        super().__init__(status.HTTP_401_UNAUTHORIZED, code, message)


class Forbidden(AppException):
    def __init__(self, message: str = ErrorMessage.FORBIDDEN):
        super().__init__(status.HTTP_403_FORBIDDEN, ErrorCode.AUTH_FORBIDDEN, message)
