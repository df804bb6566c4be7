"""
Shared fixtures for the lending service tests.

Each test gets its own SQLite database file, a controllable clock and mock
notification/audit collaborators. History is recorded in the database.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import create_async_engine

import components.core.init_db  # noqa: F401  registers every model
from components.book.repository import BookRepository
from components.core.config import LendingPolicy
from components.core.database import DatabaseManager
from components.core.services import build_services
from components.history.repository import HistoryRepository
from components.loan.models import Loan
from components.reservation.models import Reservation
from components.stock.models import Stock
from components.stock.repository import StockRepository
from components.user.repository import UserRepository


class FakeClock:
    """Callable clock the tests move by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 10, 0, 0))


@pytest.fixture
def policy():
    return LendingPolicy()


@pytest.fixture
def notifications():
    gateway = Mock()
    gateway.notify = AsyncMock(return_value=None)
    return gateway


@pytest.fixture
def audit():
    sink = Mock()
    sink.record = AsyncMock(return_value=None)
    return sink


@pytest_asyncio.fixture
async def db(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lending.db'}")

    # SQLite has no FOR UPDATE; taking the write lock at BEGIN serializes
    # transactions the way row locks do on the production database
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    manager = DatabaseManager(engine=engine)
    await manager.create_tables()
    yield manager
    await manager.dispose()


@pytest.fixture
def services(db, policy, notifications, audit, clock):
    return build_services(
        db,
        policy=policy,
        notifications=notifications,
        audit=audit,
        clock=clock,
    )


class Library:
    """Seeds rows and reads back table state for assertions."""

    def __init__(self, db: DatabaseManager):
        self._session_factory = db.get_session()

    async def add_user(self, login: str) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                user = await UserRepository(session).create(login)
        return user.id

    async def add_book(self, title: str, copies: int = 1, rows: int = 1) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                book = await BookRepository(session).create(title)
                for _ in range(rows):
                    await StockRepository(session).create(book.id, copies)
        return book.id

    async def stocks(self, book_id: int):
        async with self._session_factory() as session:
            return await StockRepository(session).get_for_book(book_id)

    async def stock(self, book_id: int) -> Stock:
        rows = await self.stocks(book_id)
        assert len(rows) == 1
        return rows[0]

    async def count(self, model) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    async def loan_count(self) -> int:
        return await self.count(Loan)

    async def reservation_count(self) -> int:
        return await self.count(Reservation)

    async def reservation(self, reservation_id: int):
        async with self._session_factory() as session:
            return await session.get(Reservation, reservation_id)

    async def events(self, event_type: str):
        async with self._session_factory() as session:
            return await HistoryRepository(session).get_by_type(event_type)


@pytest.fixture
def library(db):
    return Library(db)
