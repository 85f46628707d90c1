"""
Ride duration estimation.

Placeholder for a real distance service: the estimate is derived from the
numeric distance between the two pincodes. The booking engine only relies on
it being deterministic, symmetric and at least one hour.
"""

from backend.app.core.exceptions import InvalidLocationCodeError

HOURS_PER_DAY = 24
MIN_DURATION_HOURS = 1


def _pincode_number(pincode) -> int:
    return int(str(pincode).strip())


def estimate_ride_duration(from_pincode: str, to_pincode: str) -> int:
    """
    Estimate the ride duration between two pincodes in whole hours.

    Args:
        from_pincode: Origin pincode
        to_pincode: Destination pincode

    Returns:
        ``max(1, |to - from| % 24)``

    Raises:
        InvalidLocationCodeError: If either pincode is not numeric
    """
    try:
        origin = _pincode_number(from_pincode)
        destination = _pincode_number(to_pincode)
    except (TypeError, ValueError):
        raise InvalidLocationCodeError(from_pincode, to_pincode)

    duration = abs(destination - origin) % HOURS_PER_DAY
    return max(duration, MIN_DURATION_HOURS)
