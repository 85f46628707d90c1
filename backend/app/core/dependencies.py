"""
Booking engine dependencies for FastAPI.

Builds a ``BookingEngine`` per request over the request's database session
and the application-wide booking lock manager.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.core.config import settings
from backend.app.db.session import get_db
from backend.app.domain.booking.engine import BookingEngine
from backend.app.domain.booking.locks import BookingLocks
from backend.app.domain.booking.store import SqlAlchemyStore


def get_booking_locks(request: Request) -> BookingLocks:
    """Lock manager created once at application start (see main.py)."""
    return request.app.state.booking_locks


async def get_booking_engine(
    db: AsyncSession = Depends(get_db),
    locks: BookingLocks = Depends(get_booking_locks)
) -> BookingEngine:
    """
    FastAPI dependency returning the booking engine for this request.

    Args:
        db: Database session for the request
        locks: Shared per-vehicle booking locks

    Returns:
        BookingEngine bound to a SqlAlchemyStore over ``db``
    """
    store = SqlAlchemyStore(db)
    return BookingEngine(
        vehicles=store,
        reservations=store,
        locks=locks,
        conflict_retries=settings.booking_conflict_retries
    )
