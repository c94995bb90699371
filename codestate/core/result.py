"""Typed success/failure results shared by every component."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Domain error kinds surfaced through Result failures."""
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    INVALID_INPUT = "INVALID_INPUT"
    STORAGE_READ_FAILED = "STORAGE_READ_FAILED"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    STORAGE_DECRYPTION_FAILED = "STORAGE_DECRYPTION_FAILED"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    EXTERNAL_COLLABORATOR_FAILED = "EXTERNAL_COLLABORATOR_FAILED"


class AppError(Exception):
    """Structured error carried by a failed Result."""

    def __init__(self, kind: ErrorKind, message: str, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.meta = meta or {}

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"

    def __repr__(self) -> str:
        return f"AppError({self.kind.value!r}, {self.message!r})"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value (success) or an AppError (failure)."""
    value: Optional[T] = None
    error: Optional[AppError] = None
    warnings: tuple = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def success(cls, value: Optional[T] = None, warnings=()) -> "Result[T]":
        return cls(value=value, warnings=tuple(warnings))

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **meta: Any) -> "Result[T]":
        return cls(error=AppError(kind, message, meta))

    @classmethod
    def from_error(cls, error: AppError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried AppError."""
        if self.error is not None:
            raise self.error
        return self.value
