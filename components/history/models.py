"""History model for the database."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, String

from components.core.database import Base


class History(Base):
    """Append-only domain event for a user."""
    __tablename__ = "histories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=True)
    # No FK: the reservation row is removed when it expires
    reservation_id = Column(Integer, nullable=True)
    event_date = Column(DateTime, nullable=False)
