"""Script to seed demo library data into the database."""

import asyncio
from datetime import date

from sqlalchemy.sql import text

from components.book.repository import BookRepository
from components.core.init_db import get_db, init_db
from components.stock.repository import StockRepository
from components.user.repository import UserRepository

BOOKS = [
    ("Dune", 2),
    ("The Left Hand of Darkness", 1),
    ("Neuromancer", 3),
]

USERS = ["john_doe", "jane_smith", "bob_wilson"]


async def seed_data():
    """Seed demo data into the database."""
    await init_db()
    async for db in get_db():
        # Clear existing data
        for table in ("histories", "reservations", "loans", "stocks", "books", "users"):
            await db.execute(text(f"DELETE FROM {table}"))
        await db.commit()

        users = UserRepository(db)
        for login in USERS:
            await users.create(login, registration_date=date(2024, 1, 1))

        books = BookRepository(db)
        stocks = StockRepository(db)
        for title, copies in BOOKS:
            book = await books.create(title)
            await stocks.create(book.id, copies)
        await db.commit()
        print(f"Seeded {len(USERS)} users and {len(BOOKS)} titles.")


if __name__ == "__main__":
    asyncio.run(seed_data())
