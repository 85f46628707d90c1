"""
Booking engine tests.

Exercises the engine directly over the SQLAlchemy store: registration,
availability search, conflict detection and the cancellation state machine.
"""

import pytest
from sqlalchemy import update

from backend.app.core.exceptions import (
    BookingAlreadyCancelledError,
    BookingAlreadyCompletedError,
    BookingConflictError,
    BookingNotFoundError,
    InvalidCapacityError,
    InvalidLocationCodeError,
    InvalidTimeInputError,
    InvalidTyreCountError,
    VehicleInactiveError,
    VehicleNotFoundError,
)
from backend.app.domain.booking.store import BookingQuery
from backend.app.models.booking import Booking
from backend.app.models.booking_enums import BookingStatus

# 110001 -> 110002 is a one hour ride
ONE_HOUR = ("110001", "110002")


# Vehicle registration

@pytest.mark.asyncio
async def test_register_vehicle(booking_engine):
    vehicle = await booking_engine.register_vehicle("  Tata Ace  ", 750, 4)

    assert vehicle.id is not None
    assert vehicle.name == "Tata Ace"
    assert vehicle.capacity_kg == 750
    assert vehicle.tyres == 4
    assert vehicle.is_active is True


@pytest.mark.asyncio
@pytest.mark.parametrize("capacity", [0, -5, 0.5, 10001, "heavy", True, float("nan"), float("inf")])
async def test_register_vehicle_invalid_capacity(booking_engine, capacity):
    with pytest.raises(InvalidCapacityError):
        await booking_engine.register_vehicle("Truck", capacity, 6)


@pytest.mark.asyncio
@pytest.mark.parametrize("tyres", [1, 0, 21, 6.5, "six", float("nan"), float("inf"), float("-inf")])
async def test_register_vehicle_invalid_tyres(booking_engine, tyres):
    with pytest.raises(InvalidTyreCountError):
        await booking_engine.register_vehicle("Truck", 1000, tyres)


@pytest.mark.asyncio
async def test_list_vehicles_only_active_newest_first(booking_engine, vehicle_factory):
    first = await vehicle_factory("First", 500)
    await vehicle_factory("Retired", 800, is_active=False)
    second = await vehicle_factory("Second", 1000)

    vehicles = await booking_engine.list_vehicles()

    assert [v.id for v in vehicles] == [second.id, first.id]


@pytest.mark.asyncio
async def test_set_vehicle_active_unknown_vehicle(booking_engine):
    with pytest.raises(VehicleNotFoundError):
        await booking_engine.set_vehicle_active(404, False)


# Booking creation

@pytest.mark.asyncio
async def test_create_booking(booking_engine, truck):
    booking = await booking_engine.create_booking(
        truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "customer123"
    )

    assert booking.id is not None
    assert booking.vehicle_id == truck.id
    assert booking.status == BookingStatus.ACTIVE
    assert booking.estimated_ride_duration_hours == 1
    assert booking.customer_id == "customer123"
    assert booking.vehicle.name == "Test Truck"


@pytest.mark.asyncio
async def test_end_time_is_start_plus_estimated_duration(booking_engine, truck):
    booking = await booking_engine.create_booking(
        truck.id, "110001", "110010", "2023-10-27T10:00:00Z", "customer123"
    )

    assert booking.estimated_ride_duration_hours == 9
    assert (booking.end_time - booking.start_time).total_seconds() == 9 * 3600


@pytest.mark.asyncio
async def test_overlap_conflict_and_adjacent_window(booking_engine, truck):
    """[10:00, 11:00) blocks [10:30, 11:30) but not [11:00, 12:00)."""
    first = await booking_engine.create_booking(
        truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "customer1"
    )
    first_id = first.id

    with pytest.raises(BookingConflictError) as exc_info:
        await booking_engine.create_booking(
            truck.id, *ONE_HOUR, "2023-10-27T10:30:00Z", "customer2"
        )

    conflict = exc_info.value
    assert conflict.status_code == 409
    assert conflict.conflicting_bookings == [{
        "id": first_id,
        "start_time": "2023-10-27T10:00:00Z",
        "end_time": "2023-10-27T11:00:00Z",
    }]

    third = await booking_engine.create_booking(
        truck.id, *ONE_HOUR, "2023-10-27T11:00:00Z", "customer3"
    )
    assert third.status == BookingStatus.ACTIVE


@pytest.mark.asyncio
async def test_conflict_lists_every_overlapping_booking(booking_engine, truck):
    a = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")
    a_id = a.id
    b = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T12:00:00Z", "c2")
    b_id = b.id

    # 110001 -> 110004 is three hours: [10:30, 13:30)
    with pytest.raises(BookingConflictError) as exc_info:
        await booking_engine.create_booking(truck.id, "110001", "110004", "2023-10-27T10:30:00Z", "c3")

    assert [c["id"] for c in exc_info.value.conflicting_bookings] == [a_id, b_id]


@pytest.mark.asyncio
async def test_same_window_on_other_vehicle_is_free(booking_engine, truck, vehicle_factory):
    other = await vehicle_factory("Other Truck", 1000)

    await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")
    booking = await booking_engine.create_booking(other.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c2")

    assert booking.vehicle_id == other.id


@pytest.mark.asyncio
async def test_cancelled_booking_frees_the_window(booking_engine, truck):
    first = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")
    await booking_engine.cancel_booking(first.id)

    again = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c2")

    assert again.status == BookingStatus.ACTIVE


@pytest.mark.asyncio
async def test_create_booking_unknown_vehicle(booking_engine):
    with pytest.raises(VehicleNotFoundError) as exc_info:
        await booking_engine.create_booking(999, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_create_booking_inactive_vehicle(booking_engine, vehicle_factory):
    parked = await vehicle_factory("Parked", 1000, is_active=False)

    with pytest.raises(VehicleInactiveError) as exc_info:
        await booking_engine.create_booking(parked.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_create_booking_invalid_start_time(booking_engine, truck):
    with pytest.raises(InvalidTimeInputError):
        await booking_engine.create_booking(truck.id, *ONE_HOUR, "invalid-date", "c1")


@pytest.mark.asyncio
async def test_create_booking_invalid_pincode(booking_engine, truck):
    with pytest.raises(InvalidLocationCodeError):
        await booking_engine.create_booking(truck.id, "11O001", "110002", "2023-10-27T10:00:00Z", "c1")


@pytest.mark.asyncio
async def test_create_booking_end_past_datetime_range(booking_engine, truck):
    # 110001 -> 110010 is a nine hour ride
    with pytest.raises(InvalidTimeInputError):
        await booking_engine.create_booking(truck.id, "110001", "110010", "9999-12-31T20:00:00Z", "c1")

    with pytest.raises(InvalidTimeInputError):
        await booking_engine.search_available(100, "110001", "110010", "9999-12-31T20:00:00Z")


@pytest.mark.asyncio
async def test_create_booking_checks_vehicle_before_pincodes(booking_engine, vehicle_factory):
    with pytest.raises(VehicleNotFoundError):
        await booking_engine.create_booking(999, "abcdef", "110002", "2023-10-27T10:00:00Z", "c1")

    parked = await vehicle_factory("Parked", 1000, is_active=False)
    with pytest.raises(VehicleInactiveError):
        await booking_engine.create_booking(parked.id, "abcdef", "110002", "2023-10-27T10:00:00Z", "c1")


@pytest.mark.asyncio
async def test_register_vehicle_minimum_capacity(booking_engine):
    vehicle = await booking_engine.register_vehicle("Scooter", 1, 2)

    assert vehicle.capacity_kg == 1


# Availability search

@pytest.mark.asyncio
async def test_search_filters_by_capacity_and_then_by_bookings(booking_engine, vehicle_factory):
    await vehicle_factory("Small", 500)
    medium = await vehicle_factory("Medium", 1000)
    large = await vehicle_factory("Large", 2000)

    result = await booking_engine.search_available(800, *ONE_HOUR, "2023-10-27T10:00:00Z")

    assert [v.id for v in result.vehicles] == [medium.id, large.id]
    assert result.window.duration_hours == 1

    await booking_engine.create_booking(medium.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")

    result = await booking_engine.search_available(800, *ONE_HOUR, "2023-10-27T10:00:00Z")

    assert [v.id for v in result.vehicles] == [large.id]


@pytest.mark.asyncio
async def test_search_excludes_inactive_vehicles(booking_engine, vehicle_factory):
    await vehicle_factory("Parked", 5000, is_active=False)
    active = await vehicle_factory("Active", 5000)

    result = await booking_engine.search_available(100, *ONE_HOUR, "2023-10-27T10:00:00Z")

    assert [v.id for v in result.vehicles] == [active.id]


@pytest.mark.asyncio
async def test_search_adjacent_booking_keeps_vehicle_available(booking_engine, truck):
    await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")

    result = await booking_engine.search_available(100, *ONE_HOUR, "2023-10-27T11:00:00Z")

    assert [v.id for v in result.vehicles] == [truck.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("capacity", [0, -1, "lots", float("nan"), float("inf")])
async def test_search_invalid_capacity(booking_engine, capacity):
    with pytest.raises(InvalidCapacityError):
        await booking_engine.search_available(capacity, *ONE_HOUR, "2023-10-27T10:00:00Z")


@pytest.mark.asyncio
async def test_search_invalid_inputs(booking_engine):
    with pytest.raises(InvalidLocationCodeError):
        await booking_engine.search_available(100, "abcdef", "110002", "2023-10-27T10:00:00Z")

    with pytest.raises(InvalidTimeInputError):
        await booking_engine.search_available(100, *ONE_HOUR, "not-a-time")


# Listing and lookup

@pytest.mark.asyncio
async def test_list_bookings_filters_newest_first(booking_engine, truck):
    a = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T08:00:00Z", "alice")
    b = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "bob")
    c = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T12:00:00Z", "alice")
    a_id, b_id, c_id = a.id, b.id, c.id
    await booking_engine.cancel_booking(a_id)

    everything = await booking_engine.list_bookings()
    assert [x.id for x in everything] == [c_id, b_id, a_id]

    alice = await booking_engine.list_bookings(BookingQuery(customer_id="alice"))
    assert [x.id for x in alice] == [c_id, a_id]

    active_alice = await booking_engine.list_bookings(
        BookingQuery(customer_id="alice", status=BookingStatus.ACTIVE)
    )
    assert [x.id for x in active_alice] == [c_id]

    cancelled = await booking_engine.list_bookings(BookingQuery(status=BookingStatus.CANCELLED))
    assert [x.id for x in cancelled] == [a_id]


@pytest.mark.asyncio
async def test_get_booking_not_found(booking_engine):
    with pytest.raises(BookingNotFoundError) as exc_info:
        await booking_engine.get_booking(12345)

    assert exc_info.value.error_code == "ERR_NOT_FOUND_002"


# Cancellation state machine

@pytest.mark.asyncio
async def test_cancel_then_cancel_again(booking_engine, truck):
    booking = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")

    cancelled = await booking_engine.cancel_booking(booking.id)
    assert cancelled.status == BookingStatus.CANCELLED

    # Re-cancelling is an error, not a no-op
    with pytest.raises(BookingAlreadyCancelledError):
        await booking_engine.cancel_booking(booking.id)


@pytest.mark.asyncio
async def test_cancel_completed_booking(booking_engine, truck, db_session):
    booking = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")
    booking_id = booking.id

    # Completion is driven by an external process
    await db_session.execute(
        update(Booking).where(Booking.id == booking_id).values(status=BookingStatus.COMPLETED)
    )
    await db_session.commit()

    with pytest.raises(BookingAlreadyCompletedError) as exc_info:
        await booking_engine.cancel_booking(booking_id)

    assert exc_info.value.error_code == "ERR_BOOKING_006"


@pytest.mark.asyncio
async def test_cancel_unknown_booking(booking_engine):
    with pytest.raises(BookingNotFoundError):
        await booking_engine.cancel_booking(777)


@pytest.mark.asyncio
async def test_booking_survives_vehicle_deactivation(booking_engine, truck):
    booking = await booking_engine.create_booking(truck.id, *ONE_HOUR, "2023-10-27T10:00:00Z", "c1")
    booking_id = booking.id

    await booking_engine.set_vehicle_active(truck.id, False)

    kept = await booking_engine.get_booking(booking_id)
    assert kept.status == BookingStatus.ACTIVE
    assert kept.vehicle.id == truck.id
