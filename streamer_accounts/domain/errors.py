"""Result and error types threaded through every account operation.

Expected failures (bad input, wrong credentials, name collisions) are
returned as values. Only store faults are raised, and they are converted
to ``database`` results at the domain boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    validation = "validation"
    credentials = "credentials"
    duplicate = "duplicate"
    database = "database"


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.validation: 401,
    ErrorKind.credentials: 401,
    ErrorKind.duplicate: 403,
    ErrorKind.database: 503,
}

_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.validation: "Validation error.",
    ErrorKind.credentials: "Credentials error.",
    ErrorKind.duplicate: "Duplicate error.",
    ErrorKind.database: "Database error.",
}


@dataclass(slots=True, frozen=True)
class AccountError:
    """Tagged failure carried by a :class:`Result`.

    ``detail`` is for logs only and is never sent to callers.
    """

    kind: ErrorKind
    detail: str | None = None

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.kind]

    @property
    def message(self) -> str:
        return _MESSAGES[self.kind]


@dataclass(slots=True, frozen=True)
class Result(Generic[T]):
    """Either a success ``value`` or an ``error``, never both."""

    value: T | None = None
    error: AccountError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str | None = None) -> "Result[T]":
        return cls(error=AccountError(kind=kind, detail=detail))

    def propagate(self) -> "Result":
        """Re-wrap this failure so it can be returned with a different value type."""
        if self.error is None:
            raise ValueError("cannot propagate a successful result")
        return Result(error=self.error)
