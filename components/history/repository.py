"""Repository for history events."""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.database import SessionMaker
from components.core.protocols import Clock, utcnow
from components.history.models import History

logger = logging.getLogger(__name__)


class HistoryRepository:
    """Repository for history events."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    def add(
        self,
        user_id: int,
        event_type: str,
        event_date,
        loan_id: Optional[int] = None,
        reservation_id: Optional[int] = None,
    ) -> History:
        event = History(
            user_id=user_id,
            event_type=event_type,
            loan_id=loan_id,
            reservation_id=reservation_id,
            event_date=event_date,
        )
        self.session.add(event)
        return event

    async def get_by_type(self, event_type: str) -> List[History]:
        result = await self.session.execute(
            select(History).where(History.event_type == event_type).order_by(History.id)
        )
        return list(result.scalars().all())


class SqlHistoryRecorder:
    """HistoryRecorder writing one row per event in its own transaction."""

    def __init__(self, session_factory: SessionMaker, clock: Clock = utcnow):
        self._session_factory = session_factory
        self._clock = clock

    async def record(
        self,
        user_id: int,
        event_type: str,
        loan_id: Optional[int] = None,
        reservation_id: Optional[int] = None,
    ) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                HistoryRepository(session).add(
                    user_id=user_id,
                    event_type=event_type,
                    event_date=self._clock(),
                    loan_id=loan_id,
                    reservation_id=reservation_id,
                )
        logger.debug("History %s recorded for user %s", event_type, user_id)
