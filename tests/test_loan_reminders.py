"""Tests for due-soon and overdue loan reminders."""

import pytest

from components.loan.schemas import LoanCreate


class TestLoanReminders:
    @pytest.mark.asyncio
    async def test_due_within_window_gets_reminder(self, services, library, clock, notifications):
        user = await library.add_user("alice")
        book = await library.add_book("Dune")
        await services.loans.create_loan(LoanCreate(user_id=user, book_id=book))
        clock.advance(days=13, hours=6)

        sent = await services.reminders.send_return_reminders()

        assert sent == 1
        user_id, message = notifications.notify.await_args.args
        assert user_id == user
        assert message.startswith("Reminder: 'Dune' is due in 18h")

    @pytest.mark.asyncio
    async def test_loan_far_from_due_gets_nothing(self, services, library, notifications):
        user = await library.add_user("alice")
        book = await library.add_book("Dune")
        await services.loans.create_loan(LoanCreate(user_id=user, book_id=book))

        assert await services.reminders.send_return_reminders() == 0
        assert await services.reminders.send_overdue_notifications() == 0
        notifications.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_overdue_loan_gets_notice(self, services, library, clock, notifications, audit):
        user = await library.add_user("alice")
        book = await library.add_book("Dune")
        await services.loans.create_loan(LoanCreate(user_id=user, book_id=book))
        clock.advance(days=17)

        sent = await services.reminders.send_overdue_notifications()

        assert sent == 1
        notifications.notify.assert_awaited_once_with(
            user, "Overdue: 'Dune' is 3 day(s) late. Please return it as soon as possible."
        )
        assert audit.record.await_args.args[1] == "OverdueNotice"

    @pytest.mark.asyncio
    async def test_returned_loans_are_skipped(self, services, library, clock):
        user = await library.add_user("alice")
        book = await library.add_book("Dune")
        loan = await services.loans.create_loan(LoanCreate(user_id=user, book_id=book))
        await services.loans.return_loan(loan.value.loan_id)
        clock.advance(days=20)

        assert await services.reminders.run() == 0
