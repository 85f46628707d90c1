"""
Vehicle Pydantic schemas.

Defines request and response models for fleet management and availability search.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List

from backend.app.core.timeutils import ensure_utc


class VehicleCreate(BaseModel):
    """
    Schema for registering a new vehicle.

    Capacity and tyre ranges are checked by the booking engine so that they
    report their own error codes.
    """
    name: str = Field(..., min_length=1, max_length=100, description="Vehicle display name")
    capacity_kg: float = Field(..., description="Load capacity in kg (0 < capacity <= 10000)")
    tyres: float = Field(..., description="Number of tyres (integer, 2 to 20)")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class VehicleResponse(BaseModel):
    """Schema for vehicle response."""
    id: int
    name: str
    capacity_kg: float
    tyres: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    class Config:
        from_attributes = True


class VehicleSummary(BaseModel):
    """Vehicle fields embedded in booking responses."""
    id: int
    name: str
    capacity_kg: float
    tyres: int

    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    """Schema for vehicle list."""
    vehicles: List[VehicleResponse]
    total: int


class SearchCriteria(BaseModel):
    """Echo of an availability search, with the computed window."""
    capacity_required: float
    from_pincode: str
    to_pincode: str
    start_time: datetime
    end_time: datetime


class AvailabilityResponse(BaseModel):
    """Schema for availability search results."""
    vehicles: List[VehicleResponse]
    estimated_ride_duration_hours: int
    search_criteria: SearchCriteria
