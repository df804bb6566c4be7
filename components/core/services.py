"""Builds the lending services with their collaborators."""

from dataclasses import dataclass
from typing import Optional

from components.audit.log import LoggingActivityAuditLog
from components.core.config import LendingPolicy
from components.core.database import DatabaseManager
from components.core.protocols import (
    ActivityAuditLog,
    Clock,
    HistoryRecorder,
    NotificationGateway,
    UserDirectory,
    utcnow,
)
from components.history.repository import SqlHistoryRecorder
from components.loan.reminders import LoanReminderService
from components.loan.service import LoanService
from components.notification.gateway import LoggingNotificationGateway
from components.reservation.cleanup import ReservationCleanupService
from components.reservation.service import ReservationService
from components.stock.ledger import StockLedger
from components.user.repository import SqlUserDirectory


@dataclass
class LendingServices:
    loans: LoanService
    reservations: ReservationService
    cleanup: ReservationCleanupService
    reminders: LoanReminderService


def build_services(
    db: DatabaseManager,
    policy: Optional[LendingPolicy] = None,
    notifications: Optional[NotificationGateway] = None,
    history: Optional[HistoryRecorder] = None,
    audit: Optional[ActivityAuditLog] = None,
    users: Optional[UserDirectory] = None,
    clock: Clock = utcnow,
) -> LendingServices:
    """Wire every service on one session factory, defaulting collaborators."""
    session_factory = db.get_session()
    policy = policy or LendingPolicy()
    ledger = StockLedger()
    notifications = notifications or LoggingNotificationGateway()
    history = history or SqlHistoryRecorder(session_factory, clock=clock)
    audit = audit or LoggingActivityAuditLog()
    users = users or SqlUserDirectory(session_factory)

    reservations = ReservationService(
        session_factory, users, history, audit, policy=policy, ledger=ledger, clock=clock
    )
    return LendingServices(
        loans=LoanService(
            session_factory,
            reservations,
            users,
            notifications,
            history,
            audit,
            policy=policy,
            ledger=ledger,
            clock=clock,
        ),
        reservations=reservations,
        cleanup=ReservationCleanupService(
            session_factory, history, policy=policy, ledger=ledger, clock=clock
        ),
        reminders=LoanReminderService(
            session_factory, notifications, audit, policy=policy, clock=clock
        ),
    )
