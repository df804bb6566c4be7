"""Reservation queue: requests, FIFO promotion and fulfilment."""

import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import LendingPolicy, ReservationAvailabilityRule
from components.core.database import SessionMaker
from components.core.exceptions import UnauthorizedAccessError
from components.core.protocols import (
    ActivityAuditLog,
    Clock,
    HistoryRecorder,
    UserDirectory,
    utcnow,
)
from components.core.schemas import LendingError, ServiceResult
from components.reservation import schemas
from components.reservation.models import ACTIVE_STATUSES, Reservation, ReservationStatus
from components.reservation.repository import ReservationRepository
from components.stock.ledger import StockLedger
from components.stock.models import Stock
from components.stock.repository import StockRepository

logger = logging.getLogger(__name__)


class ReservationService:
    """Manages reservation requests and their promotion order per title."""

    def __init__(
        self,
        session_factory: SessionMaker,
        users: UserDirectory,
        history: HistoryRecorder,
        audit: ActivityAuditLog,
        policy: Optional[LendingPolicy] = None,
        ledger: Optional[StockLedger] = None,
        clock: Clock = utcnow,
    ):
        self._session_factory = session_factory
        self._users = users
        self._history = history
        self._audit = audit
        self.policy = policy or LendingPolicy()
        self.ledger = ledger or StockLedger()
        self._clock = clock

    def to_read(self, reservation: Reservation) -> schemas.ReservationRead:
        read = schemas.ReservationRead.model_validate(reservation)
        if reservation.available_at is not None:
            read.expiration_date = reservation.available_at + timedelta(
                hours=self.policy.reservation_expiry_hours
            )
        return read

    async def create_reservation(
        self,
        data: schemas.ReservationCreate,
        requesting_user_id: int,
    ) -> ServiceResult[schemas.ReservationRead]:
        """
        Queue a user for the next returned copy of a title.

        Raises UnauthorizedAccessError when the requester is not the
        reservation owner; every other failure is returned.
        """
        if data.user_id != requesting_user_id:
            raise UnauthorizedAccessError(requesting_user_id, data.user_id)

        if not await self._users.exists(data.user_id):
            return ServiceResult.failure(LendingError.NOT_FOUND, "User not found.")

        async with self._session_factory() as session:
            async with session.begin():
                reservations = ReservationRepository(session)
                stocks = StockRepository(session)

                if await reservations.has_active(data.user_id, data.book_id):
                    return ServiceResult.failure(
                        LendingError.POLICY_VIOLATION,
                        "Existing active reservation for this book.",
                    )

                refusal = await self._check_availability_rule(stocks, data.book_id)
                if refusal is not None:
                    return ServiceResult.failure(LendingError.UNAVAILABLE, refusal)

                reservation = reservations.add(
                    Reservation(
                        user_id=data.user_id,
                        book_id=data.book_id,
                        status=ReservationStatus.PENDING,
                        created_at=self._clock(),
                    )
                )
                await session.flush()

        await self._history.record(
            data.user_id, "Reservation", reservation_id=reservation.id
        )
        await self._audit.record(
            data.user_id,
            "CreateReservation",
            f"ReservationId={reservation.id}, BookId={data.book_id}",
        )
        logger.info(
            "Reservation %s queued for user %s on book %s",
            reservation.id, data.user_id, data.book_id,
        )
        return ServiceResult.success(self.to_read(reservation))

    async def _check_availability_rule(
        self, stocks: StockRepository, book_id: int
    ) -> Optional[str]:
        """Return the refusal message, or None when the request may proceed."""
        if not await stocks.has_stock(book_id):
            return "No copy of this book is held in stock."

        rule = self.policy.reservation_availability_rule
        match rule:
            case ReservationAvailabilityRule.STOCK_EXISTS:
                return None
            case ReservationAvailabilityRule.REQUIRE_AVAILABLE_COPY:
                if await stocks.has_free_unit(book_id):
                    return None
                return "No copies are currently available."
            case ReservationAvailabilityRule.REQUIRE_NO_AVAILABLE_COPY:
                if await stocks.has_free_unit(book_id):
                    return "Copies available. Please borrow instead of reserving."
                return None
        raise ValueError(f"Unknown reservation availability rule: {rule}")

    async def get_pending_for_book(self, book_id: int) -> List[schemas.ReservationRead]:
        """Pending reservations, oldest first: the order returns promote them in."""
        async with self._session_factory() as session:
            pending = await ReservationRepository(session).get_pending_for_book(book_id)
        return [self.to_read(r) for r in pending]

    async def get_all(self) -> List[schemas.ReservationRead]:
        async with self._session_factory() as session:
            items = await ReservationRepository(session).get_all()
        return [self.to_read(r) for r in items]

    async def get_active_for_user(self, user_id: int) -> List[schemas.ReservationRead]:
        async with self._session_factory() as session:
            items = await ReservationRepository(session).get_active_for_user(user_id)
        return [self.to_read(r) for r in items]

    async def get_by_id(self, reservation_id: int) -> ServiceResult[schemas.ReservationRead]:
        async with self._session_factory() as session:
            reservation = await ReservationRepository(session).get_by_id(reservation_id)
        if reservation is None:
            return ServiceResult.failure(LendingError.NOT_FOUND, "Reservation not found.")
        return ServiceResult.success(self.to_read(reservation))

    async def update_reservation(
        self,
        reservation_id: int,
        data: schemas.ReservationUpdate,
    ) -> ServiceResult[schemas.ReservationRead]:
        """
        Overwrite the given fields of a reservation.

        A reservation only becomes AVAILABLE through promotion on return, so
        an update may keep that status but never set it. Moving a promoted
        reservation to another title gives its earmarked unit back and queues
        it again as PENDING.
        """
        if data.user_id is not None and not await self._users.exists(data.user_id):
            return ServiceResult.failure(LendingError.NOT_FOUND, "User not found.")

        async with self._session_factory() as session:
            async with session.begin():
                repository = ReservationRepository(session)
                reservation = await repository.get_by_id(reservation_id, for_update=True)
                if reservation is None:
                    return ServiceResult.failure(
                        LendingError.NOT_FOUND, "Reservation not found."
                    )

                changes = data.model_dump(exclude_unset=True, exclude_none=True)
                was_available = reservation.status is ReservationStatus.AVAILABLE
                new_status = changes.pop("status", reservation.status)
                new_user_id = changes.get("user_id", reservation.user_id)
                new_book_id = changes.get("book_id", reservation.book_id)
                book_changed = new_book_id != reservation.book_id

                if new_status is ReservationStatus.AVAILABLE and not was_available:
                    return ServiceResult.failure(
                        LendingError.POLICY_VIOLATION,
                        "A reservation becomes available only when a copy is returned.",
                    )
                if book_changed and not await StockRepository(session).has_stock(new_book_id):
                    return ServiceResult.failure(
                        LendingError.UNAVAILABLE, "No copy of this book is held in stock."
                    )
                if new_status in ACTIVE_STATUSES and await repository.has_active(
                    new_user_id, new_book_id, exclude_id=reservation.id
                ):
                    return ServiceResult.failure(
                        LendingError.POLICY_VIOLATION,
                        "Existing active reservation for this book.",
                    )

                if was_available and (
                    new_status is not ReservationStatus.AVAILABLE or book_changed
                ):
                    # The earmark must not outlive its hold on this title
                    await self._release_assigned_stock(session, reservation)
                    if new_status is ReservationStatus.AVAILABLE:
                        new_status = ReservationStatus.PENDING

                for field, value in changes.items():
                    setattr(reservation, field, value)
                reservation.status = new_status
                if new_status is ReservationStatus.PENDING:
                    reservation.available_at = None

        await self._audit.record(
            reservation.user_id,
            "UpdateReservation",
            f"ReservationId={reservation.id}, Status={reservation.status.value}",
        )
        return ServiceResult.success(self.to_read(reservation))

    async def delete_reservation(self, reservation_id: int) -> ServiceResult[bool]:
        """Remove a reservation, giving back any unit earmarked for it."""
        async with self._session_factory() as session:
            async with session.begin():
                repository = ReservationRepository(session)
                reservation = await repository.get_by_id(reservation_id, for_update=True)
                if reservation is None:
                    return ServiceResult.failure(
                        LendingError.NOT_FOUND, "Reservation not found."
                    )
                if reservation.status is ReservationStatus.AVAILABLE:
                    await self._release_assigned_stock(session, reservation)
                await repository.delete(reservation)

        await self._audit.record(
            reservation.user_id,
            "DeleteReservation",
            f"ReservationId={reservation.id}",
        )
        return ServiceResult.success(True)

    async def _release_assigned_stock(
        self, session: AsyncSession, reservation: Reservation
    ) -> None:
        if reservation.assigned_stock_id is None:
            return
        stock = await StockRepository(session).get_by_id(
            reservation.assigned_stock_id, for_update=True
        )
        if stock is not None:
            self.ledger.release_earmark(stock)
        reservation.assigned_stock_id = None

    # Operations below run inside a transaction owned by LoanService.

    async def promote_next(
        self, session: AsyncSession, stock: Stock, now
    ) -> Optional[Reservation]:
        """
        Promote the oldest pending reservation of the stock's title.

        Earmarks one unit of ``stock`` for it. Returns None when nobody is
        waiting.
        """
        candidate = await ReservationRepository(session).next_pending_for_book(stock.book_id)
        if candidate is None:
            return None

        # Re-check under the row lock; a concurrent return may have won
        match candidate.status:
            case ReservationStatus.PENDING:
                pass
            case ReservationStatus.AVAILABLE | ReservationStatus.COMPLETED:
                return None

        candidate.status = ReservationStatus.AVAILABLE
        candidate.available_at = now
        candidate.assigned_stock_id = stock.id
        self.ledger.earmark(stock)
        logger.info(
            "Reservation %s promoted, stock %s earmarked for user %s",
            candidate.id, stock.id, candidate.user_id,
        )
        return candidate

    async def fulfil_for_borrower(
        self, session: AsyncSession, user_id: int, book_id: int
    ) -> Optional[Tuple[Reservation, Stock]]:
        """
        Complete the user's promoted reservation for a title.

        Returns the reservation and the stock row whose earmarked unit the
        new loan takes, or None if the user holds no usable promotion.
        """
        reservation = await ReservationRepository(session).get_available_for_user(
            user_id, book_id
        )
        if reservation is None or reservation.assigned_stock_id is None:
            return None

        stock = await StockRepository(session).get_by_id(
            reservation.assigned_stock_id, for_update=True
        )
        if stock is None or stock.earmarked <= 0 or stock.book_id != book_id:
            logger.warning(
                "Reservation %s points at stock %s with no earmarked unit of book %s",
                reservation.id, reservation.assigned_stock_id, book_id,
            )
            return None

        self.ledger.consume_earmark(stock)
        reservation.status = ReservationStatus.COMPLETED
        return reservation, stock
