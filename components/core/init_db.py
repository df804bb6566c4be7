"""Database initialization and session access."""

from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from components.core.database import DatabaseManager
# Import all models to ensure they're registered
import components.user.models
import components.book.models
import components.stock.models
import components.loan.models
import components.reservation.models
import components.history.models


@lru_cache()
def get_db_manager() -> DatabaseManager:
    """Returns the process-wide DatabaseManager."""
    return DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the shared manager."""
    async with get_db_manager().get_db() as session:
        yield session


async def init_db(manager: DatabaseManager = None) -> DatabaseManager:
    """Create the schema and return the manager that owns the engine."""
    manager = manager or get_db_manager()
    await manager.create_tables()
    return manager
