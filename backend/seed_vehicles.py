"""
Database seeding script for a sample fleet.

Registers a handful of vehicles of different capacities for local
development and manual testing of availability search.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.core.config import settings
from backend.app.db.session import AsyncSessionLocal, Base, engine
from backend.app.domain.booking.engine import BookingEngine
from backend.app.domain.booking.locks import MemoryBookingLocks
from backend.app.domain.booking.store import SqlAlchemyStore
from backend.app.models.vehicle import Vehicle
# Registered with Base so create_all builds every table
from backend.app.models.booking import Booking  # noqa: F401
from backend.app.models.audit_log import AuditLog  # noqa: F401
from backend.app.services.audit import log_event, AuditAction
from sqlalchemy import select, func


SAMPLE_FLEET = [
    ("Tata Ace", 750, 4),
    ("Mahindra Bolero Pickup", 1500, 4),
    ("Eicher Pro 2049", 5000, 6),
    ("Ashok Leyland Dost", 1250, 4),
    ("BharatBenz 1917R", 10000, 10),
]


async def seed_vehicles():
    """
    Seed the sample fleet.

    Skips seeding if any vehicle already exists.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting vehicle seeding...")

        existing = await db.scalar(select(func.count(Vehicle.id)))
        if existing:
            print(f"ℹ️  {existing} vehicles already exist, skipping seeding")
            return

        store = SqlAlchemyStore(db)
        booking_engine = BookingEngine(
            store, store, MemoryBookingLocks(), conflict_retries=settings.booking_conflict_retries
        )

        for name, capacity_kg, tyres in SAMPLE_FLEET:
            vehicle = await booking_engine.register_vehicle(name, capacity_kg, tyres)
            await log_event(
                db=db,
                action=AuditAction.VEHICLE_CREATED,
                entity_type="vehicle",
                entity_id=vehicle.id,
                metadata={"name": name, "capacity_kg": capacity_kg, "tyres": tyres, "source": "seed"}
            )
            print(f"✅ Created vehicle #{vehicle.id}: {name} ({capacity_kg} kg, {tyres} tyres)")

    await engine.dispose()

    print("\n🎉 Vehicle seeding completed successfully!")
    print("\nTry: GET /v1/vehicles/available?capacity_required=1000"
          "&from_pincode=110001&to_pincode=110005&start_time=2023-10-27T10:00:00Z")


if __name__ == "__main__":
    asyncio.run(seed_vehicles())
