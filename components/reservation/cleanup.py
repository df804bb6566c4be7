"""Reclaims promoted reservations that were never collected."""

import logging
from datetime import timedelta
from typing import Optional

from components.core.config import LendingPolicy
from components.core.database import SessionMaker
from components.core.protocols import Clock, HistoryRecorder, utcnow
from components.reservation.models import ReservationStatus
from components.reservation.repository import ReservationRepository
from components.stock.ledger import StockLedger
from components.stock.repository import StockRepository

logger = logging.getLogger(__name__)


class ReservationCleanupService:
    """
    Purges expired reservations and gives their earmarked units back.

    Each reservation is removed in its own transaction after being re-read
    under a row lock, so a sweep that overlaps another sweep, a return or a
    loan never restores the same unit twice. The periodic trigger lives
    outside this class (see PeriodicTask).
    """

    def __init__(
        self,
        session_factory: SessionMaker,
        history: HistoryRecorder,
        policy: Optional[LendingPolicy] = None,
        ledger: Optional[StockLedger] = None,
        clock: Clock = utcnow,
    ):
        self._session_factory = session_factory
        self._history = history
        self.policy = policy or LendingPolicy()
        self.ledger = ledger or StockLedger()
        self._clock = clock

    async def cleanup_expired_reservations(self) -> int:
        """Run one sweep and return the number of reservations removed."""
        threshold = self._clock() - timedelta(hours=self.policy.reservation_expiry_hours)

        async with self._session_factory() as session:
            candidate_ids = await ReservationRepository(session).get_expired_ids(threshold)

        removed = 0
        for reservation_id in candidate_ids:
            user_id = await self._expire_one(reservation_id, threshold)
            if user_id is None:
                continue
            removed += 1
            # The deletion is committed; a lost history row must not stop the sweep
            try:
                await self._history.record(
                    user_id, "ReservationExpired", reservation_id=reservation_id
                )
            except Exception:
                logger.exception(
                    "History for expired reservation %s could not be recorded",
                    reservation_id,
                )

        if removed:
            logger.info("Reservation sweep removed %s expired reservation(s)", removed)
        return removed

    async def _expire_one(self, reservation_id: int, threshold) -> Optional[int]:
        """Remove one reservation if it is still expired; return its owner."""
        async with self._session_factory() as session:
            async with session.begin():
                reservation = await ReservationRepository(session).get_by_id(
                    reservation_id, for_update=True
                )
                if reservation is None:
                    return None

                match reservation.status:
                    case ReservationStatus.AVAILABLE:
                        pass
                    case ReservationStatus.PENDING | ReservationStatus.COMPLETED:
                        # Claimed or reset since the candidates were read
                        return None

                if reservation.available_at is None or reservation.available_at > threshold:
                    return None

                if reservation.assigned_stock_id is not None:
                    stock = await StockRepository(session).get_by_id(
                        reservation.assigned_stock_id, for_update=True
                    )
                    if stock is not None:
                        self.ledger.release_earmark(stock)

                await session.delete(reservation)
                user_id = reservation.user_id

        logger.info("Reservation %s of user %s expired", reservation_id, user_id)
        return user_id
