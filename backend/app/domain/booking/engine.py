"""
Booking Engine (Domain Logic).

Vehicle registration, availability search, conflict-free booking creation
and cancellation. Guarantees that active bookings of one vehicle never
overlap, however requests interleave.
"""

import logging
import math
import numbers
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from backend.app.core.exceptions import (
    BookingAlreadyCancelledError,
    BookingAlreadyCompletedError,
    BookingConflictError,
    BookingNotFoundError,
    InvalidCapacityError,
    InvalidTimeInputError,
    InvalidTyreCountError,
    VehicleInactiveError,
    VehicleNotFoundError,
)
from backend.app.core.timeutils import ensure_utc, isoformat_utc, parse_instant
from backend.app.domain.booking.locks import BookingLocks, BookingLockTimeoutError
from backend.app.domain.booking.overlap import overlaps
from backend.app.domain.booking.ride_duration import estimate_ride_duration
from backend.app.domain.booking.store import BookingQuery, ReservationStore, VehicleStore
from backend.app.models.booking import Booking
from backend.app.models.booking_enums import BookingStatus
from backend.app.models.vehicle import MAX_CAPACITY_KG, MAX_TYRES, MIN_CAPACITY_KG, MIN_TYRES, Vehicle

logger = logging.getLogger("fleetlink.booking")


@dataclass(frozen=True)
class BookingWindow:
    start_time: datetime
    end_time: datetime
    duration_hours: int


@dataclass
class AvailabilityResult:
    vehicles: list[Vehicle]
    capacity_required: float
    from_pincode: str
    to_pincode: str
    window: BookingWindow


def compute_window(from_pincode: str, to_pincode: str, start_time: Union[str, datetime]) -> BookingWindow:
    """Parse the start instant and derive the end from the estimated ride duration."""
    start = parse_instant(start_time)
    duration_hours = estimate_ride_duration(from_pincode, to_pincode)
    try:
        end = start + timedelta(hours=duration_hours)
    except OverflowError:
        raise InvalidTimeInputError(start_time)
    return BookingWindow(start_time=start, end_time=end, duration_hours=duration_hours)


def _is_number(value) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _detail(value):
    # JSON has no NaN or infinity
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    return value


def validate_capacity(capacity_kg) -> float:
    if not _is_number(capacity_kg) or capacity_kg <= 0:
        raise InvalidCapacityError(details={"capacity_kg": _detail(capacity_kg)})
    if capacity_kg < MIN_CAPACITY_KG:
        raise InvalidCapacityError(
            f"capacity_kg must be at least {MIN_CAPACITY_KG}",
            details={"capacity_kg": capacity_kg}
        )
    if capacity_kg > MAX_CAPACITY_KG:
        raise InvalidCapacityError(
            f"capacity_kg cannot exceed {MAX_CAPACITY_KG}",
            details={"capacity_kg": capacity_kg}
        )
    return float(capacity_kg)


def validate_tyres(tyres) -> int:
    if not _is_number(tyres) or int(tyres) != tyres or tyres < MIN_TYRES:
        raise InvalidTyreCountError(details={"tyres": _detail(tyres)})
    if tyres > MAX_TYRES:
        raise InvalidTyreCountError(
            f"tyres cannot exceed {MAX_TYRES}",
            details={"tyres": tyres}
        )
    return int(tyres)


def describe_conflicts(bookings: list[Booking]) -> list[dict]:
    return [
        {
            "id": booking.id,
            "start_time": isoformat_utc(booking.start_time),
            "end_time": isoformat_utc(booking.end_time),
        }
        for booking in bookings
    ]


class BookingEngine:
    """
    Orchestrates the vehicle and reservation stores.

    Booking creation for a vehicle runs inside ``locks.hold(vehicle_id)`` and
    commits through ``ReservationStore.insert_if_unchanged``. A lost race on
    the version check is retried at most once (``conflict_retries``) with a
    fresh overlap check, then reported as a conflict.
    """

    def __init__(
        self,
        vehicles: VehicleStore,
        reservations: ReservationStore,
        locks: BookingLocks,
        conflict_retries: int = 1
    ):
        if conflict_retries not in (0, 1):
            raise ValueError(f"conflict_retries must be 0 or 1, got {conflict_retries}")
        self.vehicles = vehicles
        self.reservations = reservations
        self.locks = locks
        self.conflict_retries = conflict_retries

    # Vehicles

    async def register_vehicle(self, name: str, capacity_kg, tyres) -> Vehicle:
        vehicle = Vehicle(
            name=name.strip(),
            capacity_kg=validate_capacity(capacity_kg),
            tyres=validate_tyres(tyres),
            is_active=True,
            booking_version=0,
        )
        vehicle = await self.vehicles.add_vehicle(vehicle)
        logger.info("Registered vehicle %s (%s kg, %s tyres)", vehicle.id, vehicle.capacity_kg, vehicle.tyres)
        return vehicle

    async def list_vehicles(self) -> list[Vehicle]:
        return await self.vehicles.list_active_vehicles()

    async def set_vehicle_active(self, vehicle_id: int, active: bool) -> Vehicle:
        """
        Toggle whether a vehicle can be searched and booked.

        Existing bookings are left untouched, and a booking already past its
        eligibility check may still commit.
        """
        vehicle = await self.vehicles.get_vehicle(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(vehicle_id)

        vehicle.is_active = active
        vehicle = await self.vehicles.save_vehicle(vehicle)
        logger.info("Vehicle %s %s", vehicle_id, "activated" if active else "deactivated")
        return vehicle

    # Availability

    async def search_available(
        self,
        capacity_required,
        from_pincode: str,
        to_pincode: str,
        start_time: Union[str, datetime]
    ) -> AvailabilityResult:
        """
        Find active vehicles with enough capacity and no overlapping active booking.

        The result is advisory: nothing is held, and a later create_booking
        re-checks on its own.
        """
        if not _is_number(capacity_required) or capacity_required <= 0:
            raise InvalidCapacityError(
                "capacity_required must be a positive number",
                details={"capacity_required": _detail(capacity_required)}
            )

        window = compute_window(from_pincode, to_pincode, start_time)
        candidates = await self.vehicles.list_eligible_vehicles(capacity_required)

        overlapping = await self.reservations.find_overlapping(
            [vehicle.id for vehicle in candidates],
            window.start_time,
            window.end_time
        )
        busy_ids = {
            booking.vehicle_id
            for booking in overlapping
            if self._collides(booking, window)
        }

        return AvailabilityResult(
            vehicles=[vehicle for vehicle in candidates if vehicle.id not in busy_ids],
            capacity_required=capacity_required,
            from_pincode=from_pincode,
            to_pincode=to_pincode,
            window=window,
        )

    # Bookings

    async def create_booking(
        self,
        vehicle_id: int,
        from_pincode: str,
        to_pincode: str,
        start_time: Union[str, datetime],
        customer_id: str
    ) -> Booking:
        """
        Book a vehicle for the window starting at ``start_time``.

        Raises:
            InvalidTimeInputError: start_time is not an ISO-8601 instant, or
                the ride would end past the representable range
            VehicleNotFoundError: unknown vehicle
            VehicleInactiveError: vehicle is deactivated
            InvalidLocationCodeError: a pincode is not numeric
            BookingConflictError: the window overlaps active bookings, or the
                vehicle stayed contended after the retry
        """
        start = parse_instant(start_time)

        vehicle = await self.vehicles.get_vehicle(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(vehicle_id)
        if not vehicle.is_active:
            raise VehicleInactiveError(vehicle_id)

        window = compute_window(from_pincode, to_pincode, start)

        try:
            async with self.locks.hold(vehicle_id):
                booking = await self._insert_without_overlap(
                    vehicle_id, from_pincode, to_pincode, window, customer_id
                )
        except BookingLockTimeoutError:
            logger.warning("Vehicle %s contended, booking lock wait timed out", vehicle_id)
            raise BookingConflictError(
                vehicle_id,
                [],
                message="Vehicle is being booked by another request, try again"
            )

        logger.info(
            "Booking %s created for vehicle %s [%s, %s) by %s",
            booking.id, vehicle_id,
            isoformat_utc(window.start_time), isoformat_utc(window.end_time),
            customer_id
        )
        return booking

    async def _insert_without_overlap(
        self,
        vehicle_id: int,
        from_pincode: str,
        to_pincode: str,
        window: BookingWindow,
        customer_id: str
    ) -> Booking:
        for attempt in range(self.conflict_retries + 1):
            version = await self.reservations.get_booking_version(vehicle_id)
            if version is None:
                raise VehicleNotFoundError(vehicle_id)

            conflicts = await self._conflicts_for(vehicle_id, window)
            if conflicts:
                details = describe_conflicts(conflicts)
                await self.reservations.rollback()
                logger.warning(
                    "Booking conflict on vehicle %s with bookings %s",
                    vehicle_id, [c["id"] for c in details]
                )
                raise BookingConflictError(vehicle_id, details)

            booking = Booking(
                vehicle_id=vehicle_id,
                from_pincode=from_pincode,
                to_pincode=to_pincode,
                start_time=window.start_time,
                end_time=window.end_time,
                estimated_ride_duration_hours=window.duration_hours,
                customer_id=customer_id,
                status=BookingStatus.ACTIVE,
            )
            stored = await self.reservations.insert_if_unchanged(booking, expected_version=version)
            if stored is not None:
                return stored

            logger.warning(
                "Lost booking race on vehicle %s (attempt %s of %s)",
                vehicle_id, attempt + 1, self.conflict_retries + 1
            )

        conflicts = await self._conflicts_for(vehicle_id, window)
        details = describe_conflicts(conflicts)
        await self.reservations.rollback()
        raise BookingConflictError(vehicle_id, details)

    async def _conflicts_for(self, vehicle_id: int, window: BookingWindow) -> list[Booking]:
        candidates = await self.reservations.find_overlapping(
            [vehicle_id], window.start_time, window.end_time
        )
        return [booking for booking in candidates if self._collides(booking, window)]

    @staticmethod
    def _collides(booking: Booking, window: BookingWindow) -> bool:
        return overlaps(
            ensure_utc(booking.start_time), ensure_utc(booking.end_time),
            window.start_time, window.end_time
        )

    async def list_bookings(self, query: Optional[BookingQuery] = None) -> list[Booking]:
        return await self.reservations.list_bookings(query or BookingQuery())

    async def get_booking(self, booking_id: int) -> Booking:
        booking = await self.reservations.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    async def cancel_booking(self, booking_id: int) -> Booking:
        """
        Cancel an active booking.

        Cancelling a booking that is already cancelled is an error, not a
        no-op, and so is cancelling a completed one.
        """
        booking = await self.get_booking(booking_id)
        self._ensure_cancellable(booking)

        changed = await self.reservations.transition_status(
            booking_id, BookingStatus.ACTIVE, BookingStatus.CANCELLED
        )
        booking = await self.get_booking(booking_id)
        if not changed:
            # Status moved between the read and the update
            self._ensure_cancellable(booking)

        logger.info("Booking %s cancelled", booking_id)
        return booking

    @staticmethod
    def _ensure_cancellable(booking: Booking) -> None:
        if booking.status == BookingStatus.CANCELLED:
            raise BookingAlreadyCancelledError(booking.id)
        if booking.status == BookingStatus.COMPLETED:
            raise BookingAlreadyCompletedError(booking.id)
