"""Application errors, each bound to the HTTP status it is reported with."""

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Server error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or type(self).default_detail,
        )


class AuthenticationFailure(AppError):
    """Missing, invalid or expired credential. Detail stays opaque."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class AdminAccessRequired(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Admin access required"


class ValidationFailure(AppError):
    status_code = 422
    default_detail = "Validation failed"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class StateConflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflicting state"


class UpstreamFailure(AppError):
    """Store or notifier failure. The real cause is only logged."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Upstream service failure"
