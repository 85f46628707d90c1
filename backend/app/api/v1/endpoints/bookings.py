"""
Booking API Endpoints.

Create, list, view and cancel vehicle bookings.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.dependencies import get_booking_engine
from backend.app.core.timeutils import isoformat_utc
from backend.app.domain.booking.engine import BookingEngine
from backend.app.domain.booking.store import BookingQuery
from backend.app.models.booking_enums import BookingStatus
from backend.app.schemas.booking import BookingCreate, BookingResponse, BookingListResponse
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    engine: BookingEngine = Depends(get_booking_engine),
    db: AsyncSession = Depends(get_db)
):
    """
    Book a vehicle.

    The end time is start_time plus the estimated ride duration. Returns 409
    with the colliding bookings if the vehicle is already booked in that window.
    """
    booking = await engine.create_booking(
        vehicle_id=booking_data.vehicle_id,
        from_pincode=booking_data.from_pincode,
        to_pincode=booking_data.to_pincode,
        start_time=booking_data.start_time,
        customer_id=booking_data.customer_id
    )

    await log_event(
        db=db,
        action=AuditAction.BOOKING_CREATED,
        entity_type="booking",
        entity_id=booking.id,
        actor_id=booking.customer_id,
        metadata={
            "vehicle_id": booking.vehicle_id,
            "start_time": isoformat_utc(booking.start_time),
            "end_time": isoformat_utc(booking.end_time)
        }
    )

    return BookingResponse.model_validate(booking)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    customer_id: Optional[str] = Query(None, description="Only this customer's bookings"),
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Only bookings in this status"),
    engine: BookingEngine = Depends(get_booking_engine)
):
    """List bookings, newest first."""
    bookings = await engine.list_bookings(
        BookingQuery(customer_id=customer_id, status=booking_status)
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(booking) for booking in bookings],
        total=len(bookings)
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int = Path(..., description="Booking ID"),
    engine: BookingEngine = Depends(get_booking_engine)
):
    """Get a single booking."""
    booking = await engine.get_booking(booking_id)
    return BookingResponse.model_validate(booking)


@router.delete("/{booking_id}", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int = Path(..., description="Booking ID"),
    engine: BookingEngine = Depends(get_booking_engine),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel an active booking.

    Cancelling twice fails with ERR_BOOKING_005; a completed booking fails
    with ERR_BOOKING_006.
    """
    booking = await engine.cancel_booking(booking_id)

    await log_event(
        db=db,
        action=AuditAction.BOOKING_CANCELLED,
        entity_type="booking",
        entity_id=booking.id,
        actor_id=booking.customer_id,
        metadata={"vehicle_id": booking.vehicle_id}
    )

    return BookingResponse.model_validate(booking)
