"""Reservation model for the database."""

import enum

from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey

from components.core.database import Base


class ReservationStatus(enum.Enum):
    PENDING = "Pending"
    AVAILABLE = "Available"
    COMPLETED = "Completed"


ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.AVAILABLE)


class Reservation(Base):
    """A patron's standing request for the next returned copy of a title."""
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    status = Column(
        Enum(ReservationStatus, name="reservation_status"),
        nullable=False,
        default=ReservationStatus.PENDING,
        index=True,
    )
    created_at = Column(DateTime, nullable=False)
    available_at = Column(DateTime, nullable=True)
    assigned_stock_id = Column(Integer, ForeignKey("stocks.id"), nullable=True)
