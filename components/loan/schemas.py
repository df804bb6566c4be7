"""Pydantic schemas for loan data validation."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class LoanCreate(BaseModel):
    """Schema for loan creation."""
    user_id: int = Field(gt=0)
    book_id: int = Field(gt=0)


class LoanUpdate(BaseModel):
    """Schema for loan update."""
    due_date: datetime


class LoanRead(BaseModel):
    """Schema for loan response."""
    id: int
    user_id: int
    book_id: int
    stock_id: int
    loan_date: datetime
    due_date: datetime
    return_date: Optional[datetime] = None
    fine: Decimal = Decimal("0")

    class Config:
        from_attributes = True


class LoanCreated(BaseModel):
    """Outcome of a successful loan issue."""
    loan_id: int
    due_date: datetime
    fulfilled_reservation_id: Optional[int] = None


class LoanReturned(BaseModel):
    """Outcome of a successful return."""
    reservation_notified: bool
    fine: Decimal = Decimal("0")
    promoted_reservation_id: Optional[int] = None
