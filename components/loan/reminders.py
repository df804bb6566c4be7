"""Due-soon and overdue reminders for open loans."""

import logging
import math
from datetime import timedelta
from typing import Optional

from components.book.repository import BookRepository
from components.core.config import LendingPolicy
from components.core.database import SessionMaker
from components.core.protocols import ActivityAuditLog, Clock, NotificationGateway, utcnow
from components.loan.repository import LoanRepository

logger = logging.getLogger(__name__)


class LoanReminderService:
    """Triggers reminder notifications; returns how many were sent."""

    def __init__(
        self,
        session_factory: SessionMaker,
        notifications: NotificationGateway,
        audit: ActivityAuditLog,
        policy: Optional[LendingPolicy] = None,
        clock: Clock = utcnow,
    ):
        self._session_factory = session_factory
        self._notifications = notifications
        self._audit = audit
        self.policy = policy or LendingPolicy()
        self._clock = clock

    async def send_return_reminders(self) -> int:
        """Remind borrowers whose loans fall due within the reminder window."""
        now = self._clock()
        window_end = now + timedelta(hours=self.policy.reminder_window_hours)

        async with self._session_factory() as session:
            loans = await LoanRepository(session).get_due_between(now, window_end)
            books = BookRepository(session)
            messages = []
            for loan in loans:
                title = await books.get_title(loan.book_id)
                hours_left = math.ceil((loan.due_date - now).total_seconds() / 3600)
                messages.append((
                    loan.user_id,
                    f"Reminder: '{title}' is due in {hours_left}h "
                    f"(due at {loan.due_date:%Y-%m-%d %H:%M} UTC).",
                ))

        for user_id, message in messages:
            await self._send(user_id, "ReturnReminder", message)
        return len(messages)

    async def send_overdue_notifications(self) -> int:
        """Chase borrowers whose loans are past due."""
        now = self._clock()

        async with self._session_factory() as session:
            loans = await LoanRepository(session).get_overdue(now)
            books = BookRepository(session)
            messages = []
            for loan in loans:
                title = await books.get_title(loan.book_id)
                days_late = max(1, (now - loan.due_date).days)
                messages.append((
                    loan.user_id,
                    f"Overdue: '{title}' is {days_late} day(s) late. "
                    "Please return it as soon as possible.",
                ))

        for user_id, message in messages:
            await self._send(user_id, "OverdueNotice", message)
        return len(messages)

    async def run(self) -> int:
        """One reminder tick: due-soon reminders then overdue notices."""
        sent = await self.send_return_reminders()
        sent += await self.send_overdue_notifications()
        logger.info("Loan reminder tick sent %s notification(s)", sent)
        return sent

    async def _send(self, user_id: int, kind: str, message: str) -> None:
        await self._notifications.notify(user_id, message)
        await self._audit.record(user_id, kind, message)
