"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import vehicles, bookings

router = APIRouter()

# Fleet registration and availability search
router.include_router(vehicles.router)

# Booking lifecycle
router.include_router(bookings.router)
