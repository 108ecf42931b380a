from enum import Enum
from typing import Optional


class IssueErrorKind(str, Enum):
    """Structured failure kinds reported by the issue tracker client."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class AppError(Exception):
    """Base error rendered as {"success": false, "error": message}."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class InvalidStateError(AppError):
    status_code = 400


class UpstreamError(AppError):
    """Issue tracker or model provider failure."""

    _STATUS_BY_KIND = {
        IssueErrorKind.UNAUTHORIZED: 401,
        IssueErrorKind.NOT_FOUND: 404,
        IssueErrorKind.UNKNOWN: 500,
    }

    def __init__(self, message: str, kind: IssueErrorKind = IssueErrorKind.UNKNOWN):
        super().__init__(message, status_code=self._STATUS_BY_KIND[kind])
        self.kind = kind


class ConfigurationError(Exception):
    """Raised at startup when a required credential is missing."""


def error_message(exc: BaseException) -> str:
    """Human-readable message for an exception, never empty."""
    return str(exc) or exc.__class__.__name__
