"""Application error type with a category, a message and optional context."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Category of an application error."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"
    EXTERNAL = "external"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"


class AppError(Exception):
    """An error carrying a category, a message, an optional cause and context."""

    def __init__(
        self,
        error_type: ErrorType | str,
        message: str,
        err: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = ErrorType(error_type)
        self.message = message
        self.err = err
        self.context: dict[str, Any] = dict(context) if context else {}
        if err is not None:
            self.__cause__ = err

    def __str__(self) -> str:
        if self.err is not None:
            return f"{self.error_type.value}: {self.message}: {self.err}"
        return f"{self.error_type.value}: {self.message}"

    def with_context(self, key: str, value: Any) -> AppError:
        """Attach a context entry and return the same error."""
        self.context[key] = value
        return self


def new_error(error_type: ErrorType | str, message: str) -> AppError:
    """Create an error of the given category."""
    return AppError(error_type, message)


def wrap(err: BaseException | None, error_type: ErrorType | str, message: str) -> AppError:
    """Wrap an existing exception in an error of the given category."""
    return AppError(error_type, message, err)


def is_error_type(err: BaseException | None, error_type: ErrorType | str) -> bool:
    """Tell whether the first AppError in the cause chain has the given category."""
    wanted = ErrorType(error_type)
    seen: set[int] = set()
    current = err
    while current is not None and id(current) not in seen:
        if isinstance(current, AppError):
            return current.error_type == wanted
        seen.add(id(current))
        current = current.__cause__
    return False


def validation_error(message: str) -> AppError:
    return new_error(ErrorType.VALIDATION, message)


def not_found_error(message: str) -> AppError:
    return new_error(ErrorType.NOT_FOUND, message)


def internal_error(message: str) -> AppError:
    return new_error(ErrorType.INTERNAL, message)


def external_error(message: str, err: BaseException | None) -> AppError:
    return wrap(err, ErrorType.EXTERNAL, message)