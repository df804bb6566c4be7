"""Loan issue and return: borrowing policy, stock and promotion on return."""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from components.book.repository import BookRepository
from components.core.config import LendingPolicy
from components.core.database import SessionMaker
from components.core.protocols import (
    ActivityAuditLog,
    Clock,
    HistoryRecorder,
    NotificationGateway,
    UserDirectory,
    utcnow,
)
from components.core.schemas import LendingError, ServiceResult
from components.loan import schemas
from components.loan.models import Loan
from components.loan.repository import LoanRepository
from components.reservation.service import ReservationService
from components.stock.ledger import StockLedger
from components.stock.repository import StockRepository

logger = logging.getLogger(__name__)


class LoanService:
    """Issues and returns loans."""

    def __init__(
        self,
        session_factory: SessionMaker,
        reservations: ReservationService,
        users: UserDirectory,
        notifications: NotificationGateway,
        history: HistoryRecorder,
        audit: ActivityAuditLog,
        policy: Optional[LendingPolicy] = None,
        ledger: Optional[StockLedger] = None,
        clock: Clock = utcnow,
    ):
        self._session_factory = session_factory
        self._reservations = reservations
        self._users = users
        self._notifications = notifications
        self._history = history
        self._audit = audit
        self.policy = policy or LendingPolicy()
        self.ledger = ledger or StockLedger()
        self._clock = clock

    async def create_loan(
        self, data: schemas.LoanCreate
    ) -> ServiceResult[schemas.LoanCreated]:
        """
        Lend a copy of a title to a user.

        A user holding a promoted reservation for the title takes the unit
        earmarked for them; everyone else needs a free copy. Nothing is
        written unless the loan is issued.
        """
        if not await self._users.exists(data.user_id):
            return ServiceResult.failure(LendingError.NOT_FOUND, "User not found.")

        async with self._session_factory() as session:
            async with session.begin():
                loans = LoanRepository(session)

                active_count = await loans.count_active_for_user(data.user_id)
                if active_count >= self.policy.max_active_loans:
                    logger.info(
                        "User %s refused a loan: %s active loans",
                        data.user_id, active_count,
                    )
                    return ServiceResult.failure(
                        LendingError.POLICY_VIOLATION,
                        f"Maximum active loans ({self.policy.max_active_loans}) reached.",
                    )

                fulfilled_reservation_id = None
                fulfilment = await self._reservations.fulfil_for_borrower(
                    session, data.user_id, data.book_id
                )
                if fulfilment is not None:
                    reservation, stock = fulfilment
                    fulfilled_reservation_id = reservation.id
                else:
                    stock = await StockRepository(session).first_free_for_book(data.book_id)
                    if stock is None:
                        return ServiceResult.failure(
                            LendingError.UNAVAILABLE, "Book unavailable."
                        )
                    self.ledger.decrease(stock)

                now = self._clock()
                loan = loans.add(
                    Loan(
                        user_id=data.user_id,
                        book_id=data.book_id,
                        stock_id=stock.id,
                        loan_date=now,
                        due_date=now + timedelta(days=self.policy.loan_duration_days),
                        fine=Decimal("0"),
                    )
                )
                await session.flush()

        await self._history.record(data.user_id, "Loan", loan_id=loan.id)
        await self._audit.record(
            data.user_id,
            "CreateLoan",
            f"LoanId={loan.id}, BookId={data.book_id}",
        )
        if fulfilled_reservation_id is not None:
            await self._audit.record(
                data.user_id,
                "FulfilReservation",
                f"ReservationId={fulfilled_reservation_id}, LoanId={loan.id}",
            )
        logger.info("Loan %s issued to user %s, due %s", loan.id, data.user_id, loan.due_date)
        return ServiceResult.success(
            schemas.LoanCreated(
                loan_id=loan.id,
                due_date=loan.due_date,
                fulfilled_reservation_id=fulfilled_reservation_id,
            )
        )

    async def return_loan(self, loan_id: int) -> ServiceResult[schemas.LoanReturned]:
        """
        Mark a loan returned and hand the copy to the next patron in line.

        The copy goes back on the shelf; if someone is waiting for the title
        the oldest pending reservation is promoted and the unit earmarked for
        it. The owner is notified once the transaction has committed.
        """
        async with self._session_factory() as session:
            async with session.begin():
                loan = await LoanRepository(session).get_by_id(loan_id, for_update=True)
                if loan is None:
                    return ServiceResult.failure(LendingError.NOT_FOUND, "Loan not found.")
                if loan.return_date is not None:
                    return ServiceResult.failure(
                        LendingError.ALREADY_PROCESSED, "Loan already returned."
                    )

                now = self._clock()
                loan.return_date = now
                loan.fine = self.compute_fine(loan.due_date, now)

                stock = await StockRepository(session).get_by_id(loan.stock_id, for_update=True)
                self.ledger.increase(stock)

                promoted = await self._reservations.promote_next(session, stock, now)
                title = await BookRepository(session).get_title(stock.book_id) if promoted else None

        await self._history.record(loan.user_id, "Return", loan_id=loan.id)
        await self._audit.record(
            loan.user_id,
            "ReturnLoan",
            f"LoanId={loan.id}, Fine={loan.fine}",
        )

        notified = False
        if promoted is not None:
            await self._notify(promoted.user_id, f"The book '{title}' is now available.")
            notified = True

        return ServiceResult.success(
            schemas.LoanReturned(
                reservation_notified=notified,
                fine=loan.fine,
                promoted_reservation_id=promoted.id if promoted else None,
            )
        )

    def compute_fine(self, due_date, returned_at) -> Decimal:
        """Late fee for every whole calendar day past the due date."""
        days_late = (returned_at.date() - due_date.date()).days
        if days_late <= 0:
            return Decimal("0")
        return days_late * self.policy.late_fee_per_day

    async def _notify(self, user_id: int, message: str) -> None:
        # Delivery is best effort; the return is already committed
        try:
            await self._notifications.notify(user_id, message)
        except Exception:
            logger.exception("Notification to user %s failed", user_id)

    async def get_all(self) -> List[schemas.LoanRead]:
        async with self._session_factory() as session:
            loans = await LoanRepository(session).get_all()
        return [schemas.LoanRead.model_validate(loan) for loan in loans]

    async def get_by_id(self, loan_id: int) -> ServiceResult[schemas.LoanRead]:
        async with self._session_factory() as session:
            loan = await LoanRepository(session).get_by_id(loan_id)
        if loan is None:
            return ServiceResult.failure(LendingError.NOT_FOUND, "Loan not found.")
        return ServiceResult.success(schemas.LoanRead.model_validate(loan))

    async def get_active_for_user(self, user_id: int) -> List[schemas.LoanRead]:
        async with self._session_factory() as session:
            loans = await LoanRepository(session).get_active_for_user(user_id)
        return [schemas.LoanRead.model_validate(loan) for loan in loans]

    async def update_loan(
        self, loan_id: int, data: schemas.LoanUpdate
    ) -> ServiceResult[schemas.LoanRead]:
        """Move the due date of a loan."""
        async with self._session_factory() as session:
            async with session.begin():
                loan = await LoanRepository(session).get_by_id(loan_id, for_update=True)
                if loan is None:
                    return ServiceResult.failure(LendingError.NOT_FOUND, "Loan not found.")
                loan.due_date = data.due_date

        await self._history.record(loan.user_id, "Update", loan_id=loan.id)
        await self._audit.record(
            loan.user_id,
            "UpdateLoan",
            f"LoanId={loan.id}, DueDate={data.due_date}",
        )
        return ServiceResult.success(schemas.LoanRead.model_validate(loan))
