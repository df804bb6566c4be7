"""Loan model for the database."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric

from components.core.database import Base


class Loan(Base):
    """One physical copy lent to one user. Never deleted."""
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    stock_id = Column(Integer, ForeignKey("stocks.id"), nullable=False)
    loan_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=True)
    fine = Column(Numeric(10, 2), nullable=False, default=0)
