"""Tests for the expired reservation sweep."""

from unittest.mock import AsyncMock, Mock

import pytest

from components.loan.schemas import LoanCreate
from components.reservation.cleanup import ReservationCleanupService
from components.reservation.models import ReservationStatus
from components.reservation.schemas import ReservationCreate


async def promoted_reservation(services, library, copies=1):
    """Lend the only copy, queue a reservation, return the copy."""
    lender = await library.add_user("lender")
    waiting = await library.add_user("waiting")
    book = await library.add_book("Dune", copies=copies)
    loan = await services.loans.create_loan(LoanCreate(user_id=lender, book_id=book))
    created = await services.reservations.create_reservation(
        ReservationCreate(user_id=waiting, book_id=book), waiting
    )
    await services.loans.return_loan(loan.value.loan_id)
    return book, created.value.id, waiting


class TestCleanupExpiredReservations:
    @pytest.mark.asyncio
    async def test_nothing_to_clean(self, services):
        assert await services.cleanup.cleanup_expired_reservations() == 0

    @pytest.mark.asyncio
    async def test_fresh_promotion_is_kept(self, services, library, clock):
        book, reservation_id, _ = await promoted_reservation(services, library)
        clock.advance(hours=47, minutes=59)

        removed = await services.cleanup.cleanup_expired_reservations()

        assert removed == 0
        assert (await library.reservation(reservation_id)).status is ReservationStatus.AVAILABLE
        assert (await library.stock(book)).earmarked == 1

    @pytest.mark.asyncio
    async def test_expired_promotion_is_removed_and_unit_restored(self, services, library, clock):
        book, reservation_id, owner = await promoted_reservation(services, library)
        clock.advance(hours=48)

        removed = await services.cleanup.cleanup_expired_reservations()

        assert removed == 1
        assert await library.reservation(reservation_id) is None
        stock = await library.stock(book)
        assert (stock.quantity, stock.earmarked, stock.is_available) == (1, 0, True)
        events = await library.events("ReservationExpired")
        assert [(e.user_id, e.reservation_id) for e in events] == [(owner, reservation_id)]

    @pytest.mark.asyncio
    async def test_second_sweep_is_noop(self, services, library, clock):
        book, _, _ = await promoted_reservation(services, library)
        clock.advance(hours=49)
        await services.cleanup.cleanup_expired_reservations()

        removed = await services.cleanup.cleanup_expired_reservations()

        assert removed == 0
        assert (await library.stock(book)).earmarked == 0
        assert len(await library.events("ReservationExpired")) == 1

    @pytest.mark.asyncio
    async def test_pending_reservations_never_expire(self, services, library, clock):
        user = await library.add_user("alice")
        book = await library.add_book("Dune")
        await services.reservations.create_reservation(
            ReservationCreate(user_id=user, book_id=book), user
        )
        clock.advance(days=30)

        assert await services.cleanup.cleanup_expired_reservations() == 0
        assert await library.reservation_count() == 1

    @pytest.mark.asyncio
    async def test_row_removed_since_selection_is_skipped(self, services, library, clock):
        _, reservation_id, _ = await promoted_reservation(services, library)
        clock.advance(hours=50)
        await services.reservations.delete_reservation(reservation_id)

        threshold = clock.now
        assert await services.cleanup._expire_one(reservation_id, threshold) is None

    @pytest.mark.asyncio
    async def test_collected_reservation_is_not_expired(self, services, library, clock):
        book, reservation_id, owner = await promoted_reservation(services, library)
        await services.loans.create_loan(LoanCreate(user_id=owner, book_id=book))
        clock.advance(hours=72)

        removed = await services.cleanup.cleanup_expired_reservations()

        assert removed == 0
        assert (await library.reservation(reservation_id)).status is ReservationStatus.COMPLETED
        assert (await library.stock(book)).quantity == 0

    @pytest.mark.asyncio
    async def test_only_earmarked_unit_is_restored(self, services, library, clock):
        book, _, _ = await promoted_reservation(services, library, copies=3)
        clock.advance(hours=48)

        await services.cleanup.cleanup_expired_reservations()

        stock = await library.stock(book)
        assert (stock.quantity, stock.earmarked) == (3, 0)

    @pytest.mark.asyncio
    async def test_history_failure_does_not_stop_sweep(self, db, services, library, clock, policy, caplog):
        lenders = [await library.add_user(f"lender{i}") for i in range(2)]
        waiting = [await library.add_user(f"waiting{i}") for i in range(2)]
        book = await library.add_book("Dune", copies=2)
        loans = [
            await services.loans.create_loan(LoanCreate(user_id=user, book_id=book))
            for user in lenders
        ]
        for user in waiting:
            await services.reservations.create_reservation(
                ReservationCreate(user_id=user, book_id=book), user
            )
        for loan in loans:
            await services.loans.return_loan(loan.value.loan_id)
        history = Mock()
        history.record = AsyncMock(side_effect=RuntimeError("history store down"))
        sweeper = ReservationCleanupService(db.get_session(), history, policy=policy, clock=clock)
        clock.advance(hours=48)

        removed = await sweeper.cleanup_expired_reservations()

        assert removed == 2
        assert history.record.await_count == 2
        assert await library.reservation_count() == 0
        stock = await library.stock(book)
        assert (stock.quantity, stock.earmarked, stock.is_available) == (2, 0, True)
        assert "could not be recorded" in caplog.text
