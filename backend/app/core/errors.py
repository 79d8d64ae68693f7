"""Closed error taxonomy shared by stores, services, and the HTTP layer.

Every failure the task core can report is an ``AppError`` subclass. Each
subclass is bound to exactly one ``ErrorCode`` and inherits a fixed message
from ``ERROR_MESSAGES``; callers attach a free-text ``description`` and,
through ``raise ... from exc``, an underlying cause.

Matching is by kind only: use ``isinstance`` (``except TaskNotFoundError``) or
compare ``error.code``. The wrapped cause never takes part in matching.
"""

from __future__ import annotations

from enum import IntEnum
from typing import ClassVar


class ErrorCode(IntEnum):
    """Stable numeric error codes grouped by concern."""

    # 1000: request validation and auth context
    VALIDATION_FAILED = 1000
    CONTEXT_USER_NOT_FOUND = 1001
    HASH_PASSWORD_FAILED = 1002
    CREATE_SESSION_FAILED = 1003
    NO_LOGIN = 1004

    # 2000: conflicts raised by the identity flow
    USER_ALREADY_EXISTS = 2000
    INVALID_PASSWORD = 2001

    # 3000: persistence and access control
    QUERY_FAILED = 3000
    TASK_NOT_FOUND = 3001
    USER_NOT_FOUND = 3002
    GRANT_PERMISSION_FAILED = 3003
    PERMISSION_NOT_FOUND = 3004
    PERMISSION_DENIED = 3005
    TRANSACTION_NOT_FOUND = 3006

    UNEXPECTED = 9999


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_FAILED: "validation failed",
    ErrorCode.CONTEXT_USER_NOT_FOUND: "user not found in context",
    ErrorCode.HASH_PASSWORD_FAILED: "failed to hash password",
    ErrorCode.CREATE_SESSION_FAILED: "failed to create session",
    ErrorCode.NO_LOGIN: "user not logged in",
    ErrorCode.USER_ALREADY_EXISTS: "user already exists",
    ErrorCode.INVALID_PASSWORD: "invalid password",
    ErrorCode.QUERY_FAILED: "failed to execute query",
    ErrorCode.TASK_NOT_FOUND: "task not found",
    ErrorCode.USER_NOT_FOUND: "user not found",
    ErrorCode.GRANT_PERMISSION_FAILED: "failed to grant permission",
    ErrorCode.PERMISSION_NOT_FOUND: "permission not found",
    ErrorCode.PERMISSION_DENIED: "permission denied",
    ErrorCode.TRANSACTION_NOT_FOUND: "no active unit of work for transactional write",
    ErrorCode.UNEXPECTED: "unexpected error occurred",
}


class AppError(Exception):
    """Base taxonomy error carrying a code, a fixed message, and a description."""

    code: ClassVar[ErrorCode] = ErrorCode.UNEXPECTED

    def __init__(self, description: str = "") -> None:
        self.description = description
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"code={int(self.code)} message={self.message}"
        if self.description:
            text = f"{text} description={self.description}"
        if self.__cause__ is not None:
            text = f"{text} cause={self.__cause__!r}"
        return text

    def __repr__(self) -> str:
        return f"{type(self).__name__}(description={self.description!r})"

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self.code]

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def is_kind(self, other: AppError | ErrorCode) -> bool:
        """Return True when *other* names the same error kind."""
        code = other if isinstance(other, ErrorCode) else other.code
        return self.code == code

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = {"code": int(self.code), "message": self.message}
        if self.description:
            item["description"] = self.description
        return item


class ValidationFailedError(AppError):
    code = ErrorCode.VALIDATION_FAILED


class ContextUserNotFoundError(AppError):
    code = ErrorCode.CONTEXT_USER_NOT_FOUND


class HashPasswordFailedError(AppError):
    code = ErrorCode.HASH_PASSWORD_FAILED


class CreateSessionFailedError(AppError):
    code = ErrorCode.CREATE_SESSION_FAILED


class NoLoginError(AppError):
    code = ErrorCode.NO_LOGIN


class UserAlreadyExistsError(AppError):
    code = ErrorCode.USER_ALREADY_EXISTS


class InvalidPasswordError(AppError):
    code = ErrorCode.INVALID_PASSWORD


class QueryFailedError(AppError):
    code = ErrorCode.QUERY_FAILED


class TaskNotFoundError(AppError):
    code = ErrorCode.TASK_NOT_FOUND


class UserNotFoundError(AppError):
    code = ErrorCode.USER_NOT_FOUND


class GrantPermissionFailedError(AppError):
    code = ErrorCode.GRANT_PERMISSION_FAILED


class PermissionNotFoundError(AppError):
    code = ErrorCode.PERMISSION_NOT_FOUND


class PermissionDeniedError(AppError):
    code = ErrorCode.PERMISSION_DENIED


class TransactionNotFoundError(AppError):
    """A transactional write ran without an active unit of work (wiring defect)."""

    code = ErrorCode.TRANSACTION_NOT_FOUND


class UnexpectedError(AppError):
    code = ErrorCode.UNEXPECTED


ERROR_TYPES: dict[ErrorCode, type[AppError]] = {
    cls.code: cls
    for cls in (
        ValidationFailedError,
        ContextUserNotFoundError,
        HashPasswordFailedError,
        CreateSessionFailedError,
        NoLoginError,
        UserAlreadyExistsError,
        InvalidPasswordError,
        QueryFailedError,
        TaskNotFoundError,
        UserNotFoundError,
        GrantPermissionFailedError,
        PermissionNotFoundError,
        PermissionDeniedError,
        TransactionNotFoundError,
        UnexpectedError,
    )
}


def error_for(code: ErrorCode, description: str = "") -> AppError:
    """Build the taxonomy error registered for *code*."""
    return ERROR_TYPES[code](description)
