"""Repository for book operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.book.models import Book


class BookRepository:
    """Repository for book operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, title: str) -> Book:
        book = Book(title=title)
        self.session.add(book)
        await self.session.flush()
        return book

    async def get_title(self, book_id: int) -> str:
        """Title for messages; falls back to a placeholder for unknown ids."""
        result = await self.session.execute(select(Book.title).where(Book.id == book_id))
        return result.scalar_one_or_none() or f"Book #{book_id}"
