"""Book model for the database."""

from sqlalchemy import Column, Integer, String

from components.core.database import Base


class Book(Base):
    """Catalog title. Only what the lending core reads is mapped here."""
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
