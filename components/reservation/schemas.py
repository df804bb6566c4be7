"""Pydantic schemas for reservation data validation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from components.reservation.models import ReservationStatus


class ReservationCreate(BaseModel):
    """Schema for reservation creation."""
    user_id: int = Field(gt=0)
    book_id: int = Field(gt=0)


class ReservationUpdate(BaseModel):
    """Schema for reservation update. Unset fields are left untouched."""
    user_id: Optional[int] = Field(default=None, gt=0)
    book_id: Optional[int] = Field(default=None, gt=0)
    status: Optional[ReservationStatus] = None


class ReservationRead(BaseModel):
    """Schema for reservation response."""
    id: int
    user_id: int
    book_id: int
    status: ReservationStatus
    created_at: datetime
    available_at: Optional[datetime] = None
    assigned_stock_id: Optional[int] = None
    expiration_date: Optional[datetime] = None

    class Config:
        from_attributes = True
