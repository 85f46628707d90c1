"""
Booking-related enumerations.
"""

import enum


class BookingStatus(str, enum.Enum):
    """Booking status enumeration."""
    ACTIVE = "active"  # Holds the vehicle for [start_time, end_time)
    COMPLETED = "completed"  # Set by an external process once the ride is over
    CANCELLED = "cancelled"  # Released by the customer
