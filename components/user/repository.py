"""Repository for user operations."""

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.database import SessionMaker
from components.user.models import User


class UserRepository:
    """Repository for user operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, login: str, registration_date: Optional[date] = None) -> User:
        """Create a new user."""
        db_user = User(
            login=login,
            registration_date=registration_date or date.today(),
        )
        self.session.add(db_user)
        await self.session.flush()
        return db_user

    async def exists(self, user_id: int) -> bool:
        """Check if user with given ID exists."""
        result = await self.session.execute(
            select(User.id).where(User.id == user_id)
        )
        return result.scalar_one_or_none() is not None


class SqlUserDirectory:
    """UserDirectory backed by the local users table."""

    def __init__(self, session_factory: SessionMaker):
        self._session_factory = session_factory

    async def exists(self, user_id: int) -> bool:
        async with self._session_factory() as session:
            return await UserRepository(session).exists(user_id)
