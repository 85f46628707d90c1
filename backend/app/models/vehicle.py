"""
Vehicle database model.

Vehicles are registered with a capacity and tyre count and are never
hard-deleted; ``is_active`` gates whether they can be searched and booked.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base


# Registration limits
MIN_CAPACITY_KG = 1
MAX_CAPACITY_KG = 10000
MIN_TYRES = 2
MAX_TYRES = 20


class Vehicle(Base):
    """
    Vehicle model.

    ``booking_version`` is bumped in the same transaction as every booking
    insert for this vehicle. A booking only commits if the version it read
    before its conflict check is still current.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False)

    # Capacity (eligibility filter for availability search)
    capacity_kg = Column(Float, nullable=False, index=True)
    tyres = Column(Integer, nullable=False)

    # Status
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Optimistic concurrency token for booking inserts
    booking_version = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, name='{self.name}', capacity_kg={self.capacity_kg}, active={self.is_active})>"
