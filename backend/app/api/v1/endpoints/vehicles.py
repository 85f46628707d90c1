"""
Vehicle API Endpoints.

Fleet registration, activation toggles and availability search.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.dependencies import get_booking_engine
from backend.app.domain.booking.engine import BookingEngine
from backend.app.schemas.booking import PINCODE_PATTERN
from backend.app.schemas.vehicle import (
    VehicleCreate, VehicleResponse, VehicleListResponse,
    AvailabilityResponse, SearchCriteria
)
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def register_vehicle(
    vehicle_data: VehicleCreate,
    engine: BookingEngine = Depends(get_booking_engine),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new vehicle.

    Fails with ERR_VEHICLE_001 for an invalid capacity and ERR_VEHICLE_002
    for an invalid tyre count.
    """
    vehicle = await engine.register_vehicle(
        name=vehicle_data.name,
        capacity_kg=vehicle_data.capacity_kg,
        tyres=vehicle_data.tyres
    )

    await log_event(
        db=db,
        action=AuditAction.VEHICLE_CREATED,
        entity_type="vehicle",
        entity_id=vehicle.id,
        metadata={
            "name": vehicle.name,
            "capacity_kg": vehicle.capacity_kg,
            "tyres": vehicle.tyres
        }
    )

    return VehicleResponse.model_validate(vehicle)


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(engine: BookingEngine = Depends(get_booking_engine)):
    """List active vehicles, newest first."""
    vehicles = await engine.list_vehicles()
    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(vehicle) for vehicle in vehicles],
        total=len(vehicles)
    )


@router.get("/available", response_model=AvailabilityResponse)
async def search_available_vehicles(
    capacity_required: float = Query(..., description="Minimum capacity in kg"),
    from_pincode: str = Query(..., pattern=PINCODE_PATTERN, description="Origin pincode"),
    to_pincode: str = Query(..., pattern=PINCODE_PATTERN, description="Destination pincode"),
    start_time: str = Query(..., description="ISO-8601 start instant"),
    engine: BookingEngine = Depends(get_booking_engine)
):
    """
    Find vehicles free for the whole estimated ride.

    The result does not hold anything; booking re-checks availability.
    """
    result = await engine.search_available(
        capacity_required=capacity_required,
        from_pincode=from_pincode,
        to_pincode=to_pincode,
        start_time=start_time
    )

    return AvailabilityResponse(
        vehicles=[VehicleResponse.model_validate(vehicle) for vehicle in result.vehicles],
        estimated_ride_duration_hours=result.window.duration_hours,
        search_criteria=SearchCriteria(
            capacity_required=result.capacity_required,
            from_pincode=result.from_pincode,
            to_pincode=result.to_pincode,
            start_time=result.window.start_time,
            end_time=result.window.end_time
        )
    )


@router.patch("/{vehicle_id}/deactivate", response_model=VehicleResponse)
async def deactivate_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    engine: BookingEngine = Depends(get_booking_engine),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a vehicle (soft delete).

    Existing bookings are kept; the vehicle disappears from listings and
    searches and can no longer be booked.
    """
    vehicle = await engine.set_vehicle_active(vehicle_id, False)

    await log_event(
        db=db,
        action=AuditAction.VEHICLE_DEACTIVATED,
        entity_type="vehicle",
        entity_id=vehicle.id
    )

    return VehicleResponse.model_validate(vehicle)


@router.patch("/{vehicle_id}/activate", response_model=VehicleResponse)
async def activate_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    engine: BookingEngine = Depends(get_booking_engine),
    db: AsyncSession = Depends(get_db)
):
    """Make a deactivated vehicle bookable again."""
    vehicle = await engine.set_vehicle_active(vehicle_id, True)

    await log_event(
        db=db,
        action=AuditAction.VEHICLE_ACTIVATED,
        entity_type="vehicle",
        entity_id=vehicle.id
    )

    return VehicleResponse.model_validate(vehicle)
