"""Contracts of the collaborators the lending core consumes."""

from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, runtime_checkable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@runtime_checkable
class NotificationGateway(Protocol):
    """Best-effort dispatch of a message to a user."""

    async def notify(self, user_id: int, message: str) -> None: ...


@runtime_checkable
class HistoryRecorder(Protocol):
    """Append-only record of domain events."""

    async def record(
        self,
        user_id: int,
        event_type: str,
        loan_id: Optional[int] = None,
        reservation_id: Optional[int] = None,
    ) -> None: ...


@runtime_checkable
class ActivityAuditLog(Protocol):
    """Secondary structured audit sink."""

    async def record(self, user_id: int, action: str, details: str) -> None: ...


@runtime_checkable
class UserDirectory(Protocol):
    async def exists(self, user_id: int) -> bool: ...
