"""Repository for reservation operations."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.reservation.models import ACTIVE_STATUSES, Reservation, ReservationStatus


class ReservationRepository:
    """Repository for reservation operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    @staticmethod
    def _locked(query):
        return query.with_for_update().execution_options(populate_existing=True)

    def add(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        return reservation

    async def delete(self, reservation: Reservation) -> None:
        await self.session.delete(reservation)

    async def get_by_id(self, reservation_id: int, for_update: bool = False) -> Optional[Reservation]:
        """Get reservation by ID."""
        query = select(Reservation).where(Reservation.id == reservation_id)
        if for_update:
            query = self._locked(query)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_all(self) -> List[Reservation]:
        result = await self.session.execute(select(Reservation).order_by(Reservation.id))
        return list(result.scalars().all())

    async def get_active_for_user(self, user_id: int) -> List[Reservation]:
        """Pending or available reservations of a user."""
        result = await self.session.execute(
            select(Reservation)
            .where(
                Reservation.user_id == user_id,
                Reservation.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Reservation.created_at, Reservation.id)
        )
        return list(result.scalars().all())

    async def has_active(
        self, user_id: int, book_id: int, exclude_id: Optional[int] = None
    ) -> bool:
        query = select(Reservation.id).where(
            Reservation.user_id == user_id,
            Reservation.book_id == book_id,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        if exclude_id is not None:
            query = query.where(Reservation.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def get_available_for_user(self, user_id: int, book_id: int) -> Optional[Reservation]:
        """Lock the user's promoted reservation for a title, if any."""
        result = await self.session.execute(
            self._locked(
                select(Reservation)
                .where(
                    Reservation.user_id == user_id,
                    Reservation.book_id == book_id,
                    Reservation.status == ReservationStatus.AVAILABLE,
                )
                .order_by(Reservation.id)
                .limit(1)
            )
        )
        return result.scalar_one_or_none()

    async def get_pending_for_book(self, book_id: int) -> List[Reservation]:
        """Pending reservations of a title in promotion order."""
        result = await self.session.execute(
            select(Reservation)
            .where(
                Reservation.book_id == book_id,
                Reservation.status == ReservationStatus.PENDING,
            )
            .order_by(Reservation.created_at, Reservation.id)
        )
        return list(result.scalars().all())

    async def next_pending_for_book(self, book_id: int) -> Optional[Reservation]:
        """Lock the head of a title's pending queue."""
        result = await self.session.execute(
            self._locked(
                select(Reservation)
                .where(
                    Reservation.book_id == book_id,
                    Reservation.status == ReservationStatus.PENDING,
                )
                .order_by(Reservation.created_at, Reservation.id)
                .limit(1)
            )
        )
        return result.scalar_one_or_none()

    async def get_expired_ids(self, threshold: datetime) -> List[int]:
        """Ids of promoted reservations made available at or before ``threshold``."""
        result = await self.session.execute(
            select(Reservation.id)
            .where(
                Reservation.status == ReservationStatus.AVAILABLE,
                Reservation.available_at.is_not(None),
                Reservation.available_at <= threshold,
            )
            .order_by(Reservation.available_at, Reservation.id)
        )
        return [row[0] for row in result.all()]
