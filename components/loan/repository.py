"""Repository for loan operations."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from components.loan.models import Loan


class LoanRepository:
    """Repository for loan operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    def add(self, loan: Loan) -> Loan:
        self.session.add(loan)
        return loan

    async def get_by_id(self, loan_id: int, for_update: bool = False) -> Optional[Loan]:
        """Get loan by ID."""
        query = select(Loan).where(Loan.id == loan_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_all(self) -> List[Loan]:
        result = await self.session.execute(select(Loan).order_by(Loan.id))
        return list(result.scalars().all())

    async def count_active_for_user(self, user_id: int) -> int:
        """Count loans of the user that are not returned yet."""
        result = await self.session.execute(
            select(func.count(Loan.id)).where(
                Loan.user_id == user_id,
                Loan.return_date.is_(None),
            )
        )
        return result.scalar_one()

    async def get_active_for_user(self, user_id: int) -> List[Loan]:
        result = await self.session.execute(
            select(Loan)
            .where(Loan.user_id == user_id, Loan.return_date.is_(None))
            .order_by(Loan.due_date)
        )
        return list(result.scalars().all())

    async def get_due_between(self, start: datetime, end: datetime) -> List[Loan]:
        """Open loans falling due inside [start, end]."""
        result = await self.session.execute(
            select(Loan)
            .where(
                Loan.return_date.is_(None),
                Loan.due_date >= start,
                Loan.due_date <= end,
            )
            .order_by(Loan.due_date)
        )
        return list(result.scalars().all())

    async def get_overdue(self, now: datetime) -> List[Loan]:
        """Open loans whose due date has passed."""
        result = await self.session.execute(
            select(Loan)
            .where(Loan.return_date.is_(None), Loan.due_date < now)
            .order_by(Loan.due_date)
        )
        return list(result.scalars().all())
