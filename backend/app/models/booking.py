"""
Booking database model.

A booking is a committed claim on one vehicle for the half-open window
[start_time, end_time).
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.booking_enums import BookingStatus


class Booking(Base):
    """
    Booking model.

    end_time and estimated_ride_duration_hours are fixed at creation and
    never recomputed. Only status changes afterwards.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Vehicle reference (the vehicle may later be deactivated)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False)

    # Route (6-digit pincodes)
    from_pincode = Column(String(6), nullable=False)
    to_pincode = Column(String(6), nullable=False)

    # Window
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    estimated_ride_duration_hours = Column(Integer, nullable=False)

    # Requester (opaque)
    customer_id = Column(String(100), nullable=False, index=True)

    # Status
    status = Column(Enum(BookingStatus), default=BookingStatus.ACTIVE, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    vehicle = relationship("Vehicle", lazy="selectin")

    # Availability lookups filter on all four columns
    __table_args__ = (
        Index('ix_bookings_vehicle_window', 'vehicle_id', 'start_time', 'end_time', 'status'),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, vehicle_id={self.vehicle_id}, status='{self.status.value}')>"
