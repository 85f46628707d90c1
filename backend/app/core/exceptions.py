"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, List

logger = logging.getLogger("fleetlink.http")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None, error_code: str = "ERR_NOT_FOUND_001"):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class VehicleNotFoundError(ResourceNotFoundError):
    """Raised when a booking or toggle references an unknown vehicle."""

    def __init__(self, vehicle_id: Any):
        super().__init__("Vehicle", vehicle_id, error_code="ERR_NOT_FOUND_001")


class BookingNotFoundError(ResourceNotFoundError):
    """Raised when a booking identifier does not resolve."""

    def __init__(self, booking_id: Any):
        super().__init__("Booking", booking_id, error_code="ERR_NOT_FOUND_002")


# Vehicle registration errors

class InvalidCapacityError(AppException):
    """Raised for a non-positive or out-of-range capacity."""

    def __init__(self, message: str = "capacity_kg must be a positive number", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VEHICLE_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InvalidTyreCountError(AppException):
    """Raised when the tyre count is not an integer in the allowed range."""

    def __init__(self, message: str = "tyres must be a number greater than or equal to 2", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VEHICLE_002",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


# Booking errors

class VehicleInactiveError(AppException):
    """Raised when booking a vehicle that has been deactivated."""

    def __init__(self, vehicle_id: Any):
        super().__init__(
            message="Vehicle is not available for booking",
            error_code="ERR_BOOKING_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"vehicle_id": vehicle_id}
        )


class InvalidLocationCodeError(AppException):
    """Raised when a pincode cannot be read as a number."""

    def __init__(self, from_pincode: Any, to_pincode: Any):
        super().__init__(
            message="Invalid pincode format",
            error_code="ERR_BOOKING_002",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"from_pincode": from_pincode, "to_pincode": to_pincode}
        )


class InvalidTimeInputError(AppException):
    """Raised when start_time is not a valid ISO-8601 instant."""

    def __init__(self, value: Any):
        super().__init__(
            message="start_time must be a valid ISO date string",
            error_code="ERR_BOOKING_003",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"start_time": str(value)}
        )


class BookingConflictError(AppException):
    """
    Raised when the requested window overlaps active bookings.

    Carries the colliding bookings as ``{"id", "start_time", "end_time"}``
    entries so the caller can pick another slot. An empty list means the
    vehicle was contended and the outcome could not be settled.
    """

    def __init__(
        self,
        vehicle_id: Any,
        conflicting_bookings: List[Dict[str, Any]],
        message: str = "Vehicle is already booked for an overlapping time slot"
    ):
        self.vehicle_id = vehicle_id
        self.conflicting_bookings = conflicting_bookings
        super().__init__(
            message=message,
            error_code="ERR_BOOKING_004",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "vehicle_id": vehicle_id,
                "conflicting_bookings": conflicting_bookings
            }
        )


class InvalidBookingTransitionError(AppException):
    """Raised when a booking status change is not allowed."""

    def __init__(self, message: str, error_code: str, booking_id: Any, current_status: str):
        self.booking_id = booking_id
        self.current_status = current_status
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"booking_id": booking_id, "status": current_status}
        )


class BookingAlreadyCancelledError(InvalidBookingTransitionError):
    def __init__(self, booking_id: Any):
        super().__init__("Booking is already cancelled", "ERR_BOOKING_005", booking_id, "cancelled")


class BookingAlreadyCompletedError(InvalidBookingTransitionError):
    def __init__(self, booking_id: Any):
        super().__init__("Cannot cancel a completed booking", "ERR_BOOKING_006", booking_id, "completed")


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": jsonable_encoder(exc.details)
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
