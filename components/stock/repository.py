"""Repository for stock operations."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.stock.models import Stock


class StockRepository:
    """Repository for stock operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    def _select(self, for_update: bool):
        query = select(Stock)
        if for_update:
            # Re-read the latest committed row and hold it until commit
            query = query.with_for_update().execution_options(populate_existing=True)
        return query

    async def get_by_id(self, stock_id: int, for_update: bool = False) -> Optional[Stock]:
        """Get stock row by ID."""
        result = await self.session.execute(
            self._select(for_update).where(Stock.id == stock_id)
        )
        return result.scalar_one_or_none()

    async def get_for_book(self, book_id: int) -> List[Stock]:
        """Get all stock rows of a title."""
        result = await self.session.execute(
            select(Stock).where(Stock.book_id == book_id).order_by(Stock.id)
        )
        return list(result.scalars().all())

    async def has_stock(self, book_id: int) -> bool:
        result = await self.session.execute(
            select(Stock.id).where(Stock.book_id == book_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def has_free_unit(self, book_id: int) -> bool:
        """Whether any row of the title has a copy not held for a reservation."""
        result = await self.session.execute(
            select(Stock.id)
            .where(Stock.book_id == book_id, Stock.quantity > Stock.earmarked)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def first_free_for_book(self, book_id: int) -> Optional[Stock]:
        """Lock the first row of the title that still has a free copy."""
        result = await self.session.execute(
            self._select(for_update=True)
            .where(Stock.book_id == book_id, Stock.quantity > Stock.earmarked)
            .order_by(Stock.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, book_id: int, quantity: int) -> Stock:
        """Add a stock row and flush it so it gets an id."""
        stock = Stock(
            book_id=book_id,
            quantity=quantity,
            earmarked=0,
            is_available=quantity > 0,
        )
        self.session.add(stock)
        await self.session.flush()
        return stock
