from typing import Optional


class MealSyncError(Exception):
    """
    Base of every failure the service reports to a caller.
    Each subclass pins the HTTP status and the machine-readable code.
    """
    status_code = 500
    code = "unexpected_remote_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        # Set by the writer once compensating rollback has been attempted
        self.rolled_back: Optional[bool] = None


class ValidationFailed(MealSyncError):
    status_code = 400
    code = "validation_error"


class NotFound(MealSyncError):
    status_code = 404
    code = "not_found"


class AlreadyExists(MealSyncError):
    status_code = 409
    code = "already_exists"


class RemoteConflict(MealSyncError):
    status_code = 409
    code = "conflict"


class OperationLimitExceeded(MealSyncError):
    status_code = 429
    code = "transaction_limit_exceeded"


class UnexpectedRemoteError(MealSyncError):
    status_code = 500
    code = "unexpected_remote_error"
