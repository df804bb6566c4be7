"""Stock model for the database."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer

from components.core.database import Base


class Stock(Base):
    """
    Owned copies of a title.

    ``quantity`` counts copies on the shelf, ``earmarked`` how many of them
    are held for promoted reservations. ``is_available`` is stored and kept
    in step with both by StockLedger.
    """
    __tablename__ = "stocks"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
        CheckConstraint("earmarked >= 0 AND earmarked <= quantity", name="ck_stock_earmarked_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    earmarked = Column(Integer, nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=False)
