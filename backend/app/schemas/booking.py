"""
Booking Pydantic schemas.

Defines request and response models for booking creation and visibility.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List, Optional

from backend.app.core.timeutils import ensure_utc
from backend.app.models.booking_enums import BookingStatus
from backend.app.schemas.vehicle import VehicleSummary

PINCODE_PATTERN = r"^\d{6}$"


class BookingCreate(BaseModel):
    """
    Schema for booking a vehicle.

    start_time stays a string here; the booking engine parses it so that an
    unparseable value is reported as ERR_BOOKING_003.
    """
    vehicle_id: int = Field(..., description="Vehicle to book")
    from_pincode: str = Field(..., pattern=PINCODE_PATTERN, description="Origin pincode (6 digits)")
    to_pincode: str = Field(..., pattern=PINCODE_PATTERN, description="Destination pincode (6 digits)")
    start_time: str = Field(..., description="ISO-8601 start instant")
    customer_id: str = Field(..., min_length=1, max_length=100, description="Requesting customer")

    @field_validator("customer_id")
    @classmethod
    def strip_customer_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("customer_id must not be blank")
        return value


class BookingResponse(BaseModel):
    """Schema for booking response."""
    id: int
    vehicle_id: int
    vehicle: Optional[VehicleSummary] = None
    from_pincode: str
    to_pincode: str
    start_time: datetime
    end_time: datetime
    estimated_ride_duration_hours: int
    customer_id: str
    status: BookingStatus
    created_at: datetime
    updated_at: datetime

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    class Config:
        from_attributes = True


class BookingListResponse(BaseModel):
    """Schema for booking list."""
    bookings: List[BookingResponse]
    total: int
