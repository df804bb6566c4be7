"""Core schemas shared by the lending services."""

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class LendingError(str, Enum):
    """Business failure reasons returned by the services."""
    NOT_FOUND = "NotFound"
    POLICY_VIOLATION = "PolicyViolation"
    UNAVAILABLE = "Unavailable"
    ALREADY_PROCESSED = "AlreadyProcessed"
    UNAUTHORIZED = "Unauthorized"


class ServiceResult(BaseModel, Generic[T]):
    """Typed success/failure outcome of a use case."""
    value: Optional[T] = None
    error: Optional[LendingError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: LendingError, message: str) -> "ServiceResult[T]":
        return cls(error=error, message=message)
