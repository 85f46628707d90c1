"""
Vehicle and reservation store contracts.

The booking engine only talks to these interfaces. ``SqlAlchemyStore``
implements both on top of an ``AsyncSession``; one instance is built per
request from the request's session.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.domain.booking.overlap import overlap_clause
from backend.app.models.booking import Booking
from backend.app.models.booking_enums import BookingStatus
from backend.app.models.vehicle import Vehicle


@dataclass(frozen=True)
class BookingQuery:
    """Filters accepted by ``list_bookings``. ``None`` means no filter."""
    customer_id: Optional[str] = None
    status: Optional[BookingStatus] = None


class VehicleStore(ABC):

    @abstractmethod
    async def add_vehicle(self, vehicle: Vehicle) -> Vehicle:
        raise NotImplementedError

    @abstractmethod
    async def get_vehicle(self, vehicle_id: int) -> Optional[Vehicle]:
        raise NotImplementedError

    @abstractmethod
    async def list_active_vehicles(self) -> list[Vehicle]:
        """Active vehicles, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def list_eligible_vehicles(self, min_capacity_kg: float) -> list[Vehicle]:
        """Active vehicles with ``capacity_kg >= min_capacity_kg``."""
        raise NotImplementedError

    @abstractmethod
    async def save_vehicle(self, vehicle: Vehicle) -> Vehicle:
        raise NotImplementedError


class ReservationStore(ABC):

    @abstractmethod
    async def get_booking(self, booking_id: int) -> Optional[Booking]:
        raise NotImplementedError

    @abstractmethod
    async def list_bookings(self, query: BookingQuery) -> list[Booking]:
        """Bookings matching ``query``, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def find_overlapping(
        self,
        vehicle_ids: Sequence[int],
        start: datetime,
        end: datetime
    ) -> list[Booking]:
        """Active bookings of ``vehicle_ids`` whose window overlaps [start, end)."""
        raise NotImplementedError

    @abstractmethod
    async def get_booking_version(self, vehicle_id: int) -> Optional[int]:
        raise NotImplementedError

    @abstractmethod
    async def insert_if_unchanged(self, booking: Booking, expected_version: int) -> Optional[Booking]:
        """
        Insert ``booking`` only if its vehicle's booking version still equals
        ``expected_version``; the version bump and insert commit together.

        Returns the stored booking, or None if another booking committed
        for the vehicle in the meantime.
        """
        raise NotImplementedError

    @abstractmethod
    async def transition_status(
        self,
        booking_id: int,
        from_status: BookingStatus,
        to_status: BookingStatus
    ) -> bool:
        """Move a booking from ``from_status`` to ``to_status``. False if it was not in ``from_status``."""
        raise NotImplementedError

    @abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyStore(VehicleStore, ReservationStore):
    """Async SQLAlchemy implementation of both store contracts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Vehicles

    async def add_vehicle(self, vehicle: Vehicle) -> Vehicle:
        self.db.add(vehicle)
        await self.db.commit()
        await self.db.refresh(vehicle)
        return vehicle

    async def get_vehicle(self, vehicle_id: int) -> Optional[Vehicle]:
        result = await self.db.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id)
        )
        return result.scalar_one_or_none()

    async def list_active_vehicles(self) -> list[Vehicle]:
        result = await self.db.execute(
            select(Vehicle)
            .where(Vehicle.is_active.is_(True))
            .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        )
        return list(result.scalars().all())

    async def list_eligible_vehicles(self, min_capacity_kg: float) -> list[Vehicle]:
        result = await self.db.execute(
            select(Vehicle)
            .where(
                Vehicle.is_active.is_(True),
                Vehicle.capacity_kg >= min_capacity_kg
            )
            .order_by(Vehicle.capacity_kg.asc(), Vehicle.id.asc())
        )
        return list(result.scalars().all())

    async def save_vehicle(self, vehicle: Vehicle) -> Vehicle:
        await self.db.commit()
        await self.db.refresh(vehicle)
        return vehicle

    # Bookings

    async def get_booking(self, booking_id: int) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_bookings(self, query: BookingQuery) -> list[Booking]:
        stmt = select(Booking).order_by(Booking.created_at.desc(), Booking.id.desc())

        if query.customer_id is not None:
            stmt = stmt.where(Booking.customer_id == query.customer_id)

        if query.status is not None:
            stmt = stmt.where(Booking.status == query.status)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_overlapping(
        self,
        vehicle_ids: Sequence[int],
        start: datetime,
        end: datetime
    ) -> list[Booking]:
        if not vehicle_ids:
            return []

        result = await self.db.execute(
            select(Booking)
            .where(
                Booking.vehicle_id.in_(list(vehicle_ids)),
                Booking.status == BookingStatus.ACTIVE,
                overlap_clause(Booking.start_time, Booking.end_time, start, end)
            )
            .order_by(Booking.start_time.asc(), Booking.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_booking_version(self, vehicle_id: int) -> Optional[int]:
        result = await self.db.execute(
            select(Vehicle.booking_version).where(Vehicle.id == vehicle_id)
        )
        return result.scalar_one_or_none()

    async def insert_if_unchanged(self, booking: Booking, expected_version: int) -> Optional[Booking]:
        result = await self.db.execute(
            update(Vehicle)
            .where(
                Vehicle.id == booking.vehicle_id,
                Vehicle.booking_version == expected_version
            )
            .values(booking_version=Vehicle.booking_version + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            await self.db.rollback()
            return None

        self.db.add(booking)
        await self.db.commit()

        return await self.get_booking(booking.id)

    async def transition_status(
        self,
        booking_id: int,
        from_status: BookingStatus,
        to_status: BookingStatus
    ) -> bool:
        result = await self.db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == from_status
            )
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def rollback(self) -> None:
        await self.db.rollback()
