"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin (admin@getitdone.test / password123)
  - 3 verified customers
  - 4 runners around Lagos Island (3 approved, 1 awaiting approval)
  - 5 sample errands (PENDING, ACCEPTED, IN_PROGRESS, COMPLETED, CANCELLED)
"""

import asyncio

from sqlalchemy import text

from getitdone.config import settings
from getitdone.domain.enums import (
    ErrandStatus,
    ErrandType,
    PaymentMethod,
    PaymentStatus,
    Priority,
    UserRole,
    VehicleType,
)
from getitdone.domain.geolocation import compute_distance
from getitdone.domain.pricing import PricingEngine
from getitdone.domain.spatial import cell_for
from getitdone.infrastructure.database import async_session_factory, engine
from getitdone.infrastructure.models import ErrandModel, TrackingModel, UserModel, utcnow
from getitdone.infrastructure.security import hash_password

PASSWORD = "password123"

# Lagos Island (approx)
CENTER_LNG, CENTER_LAT = 3.3792, 6.5244


CUSTOMERS = [
    {"first": "Adaeze", "last": "Okafor", "email": "adaeze@example.com", "phone": "+2348010000001"},
    {"first": "Tunde", "last": "Bakare", "email": "tunde@example.com", "phone": "+2348010000002"},
    {"first": "Ngozi", "last": "Eze", "email": "ngozi@example.com", "phone": "+2348010000003"},
]

RUNNERS = [
    {"first": "Chidi", "last": "Nwosu", "email": "chidi@example.com", "phone": "+2348020000001",
     "vehicle": VehicleType.MOTORCYCLE, "lng": 3.3800, "lat": 6.5250, "approved": True},
    {"first": "Femi", "last": "Adeyemi", "email": "femi@example.com", "phone": "+2348020000002",
     "vehicle": VehicleType.BICYCLE, "lng": 3.3850, "lat": 6.5200, "approved": True},
    {"first": "Bola", "last": "Ajayi", "email": "bola@example.com", "phone": "+2348020000003",
     "vehicle": VehicleType.CAR, "lng": 3.3700, "lat": 6.5300, "approved": True},
    {"first": "Kemi", "last": "Olawale", "email": "kemi@example.com", "phone": "+2348020000004",
     "vehicle": VehicleType.WALKING, "lng": 3.3790, "lat": 6.5240, "approved": False},
]


def _place(address: str, lng: float, lat: float) -> dict:
    return {
        "address": address,
        "city": "Lagos",
        "state": "Lagos",
        "country": "Nigeria",
        "coordinates": [lng, lat],
    }


ERRANDS = [
    {"customer": 0, "runner": None, "type": ErrandType.DELIVERY, "priority": Priority.NORMAL,
     "status": ErrandStatus.PENDING,
     "pickup": _place("12 Broad Street", 3.3792, 6.5244),
     "dropoff": _place("5 Marina Road", 3.3892, 6.5244),
     "items": [{"name": "Documents envelope", "quantity": 1, "price": 0.0}]},
    {"customer": 1, "runner": 0, "type": ErrandType.SHOPPING, "priority": Priority.PRIORITY,
     "status": ErrandStatus.ACCEPTED,
     "pickup": _place("Balogun Market", 3.3870, 6.4560),
     "dropoff": _place("22 Awolowo Road", 3.4210, 6.4470),
     "items": [{"name": "Ankara fabric", "quantity": 3, "price": 4500.0}]},
    {"customer": 2, "runner": 1, "type": ErrandType.DOCUMENT, "priority": Priority.NORMAL,
     "status": ErrandStatus.IN_PROGRESS,
     "pickup": _place("Tafawa Balewa Square", 3.3950, 6.4530),
     "dropoff": _place("Lagos State Secretariat", 3.3570, 6.6000),
     "items": []},
    {"customer": 0, "runner": 2, "type": ErrandType.REPAIR, "priority": Priority.NORMAL,
     "status": ErrandStatus.COMPLETED,
     "pickup": _place("Computer Village", 3.3470, 6.5960),
     "dropoff": _place("14 Allen Avenue", 3.3510, 6.6010),
     "items": [{"name": "Laptop screen", "quantity": 1, "price": 35000.0}],
     "rating": (5, "Fast and careful")},
    {"customer": 1, "runner": None, "type": ErrandType.DELIVERY, "priority": Priority.NORMAL,
     "status": ErrandStatus.CANCELLED,
     "pickup": _place("Ikeja City Mall", 3.3570, 6.6140),
     "dropoff": _place("Maryland Mall", 3.3670, 6.5710),
     "items": [],
     "reason": "Picked it up myself"},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        password_hash = hash_password(PASSWORD)

        # ── Users ─────────────────────────────────────────────────────
        admin = UserModel(
            first_name="Site",
            last_name="Admin",
            email="admin@getitdone.test",
            phone="+2348000000000",
            password_hash=password_hash,
            role=UserRole.ADMIN,
            is_verified=True,
        )
        session.add(admin)

        customers = []
        for c in CUSTOMERS:
            m = UserModel(
                first_name=c["first"],
                last_name=c["last"],
                email=c["email"],
                phone=c["phone"],
                password_hash=password_hash,
                role=UserRole.CUSTOMER,
                is_verified=True,
                wallet_balance=20000.0,
            )
            session.add(m)
            customers.append(m)

        runners = []
        for r in RUNNERS:
            m = UserModel(
                first_name=r["first"],
                last_name=r["last"],
                email=r["email"],
                phone=r["phone"],
                password_hash=password_hash,
                role=UserRole.RUNNER,
                is_verified=True,
                runner_is_approved=r["approved"],
                vehicle_type=r["vehicle"],
                current_lng=r["lng"],
                current_lat=r["lat"],
                h3_cell=cell_for(r["lng"], r["lat"], settings.h3_resolution),
            )
            session.add(m)
            runners.append(m)
        await session.flush()
        print(f"  Created 1 admin, {len(customers)} customers, {len(runners)} runners")

        # ── Errands ───────────────────────────────────────────────────
        pricing = PricingEngine(
            rate_per_km=settings.rate_per_km,
            priority_fee_rate=settings.priority_fee_rate,
            service_fee_rate=settings.service_fee_rate,
            average_speed_kmh=settings.average_speed_kmh,
        )
        now = utcnow()
        for e in ERRANDS:
            distance = compute_distance(e["pickup"]["coordinates"], e["dropoff"]["coordinates"])
            quote = pricing.quote(distance, e["type"], e["priority"])
            runner = runners[e["runner"]] if e["runner"] is not None else None
            pickup_lng, pickup_lat = e["pickup"]["coordinates"]

            errand = ErrandModel(
                customer_id=customers[e["customer"]].id,
                runner_id=runner.id if runner else None,
                type=e["type"],
                priority=e["priority"],
                status=e["status"],
                pickup_location=e["pickup"],
                dropoff_location=e["dropoff"],
                pickup_h3=cell_for(pickup_lng, pickup_lat, settings.h3_resolution),
                items=e["items"],
                estimated_distance=distance,
                estimated_duration=quote.estimated_duration,
                base_price=quote.base_price,
                priority_fee=quote.priority_fee,
                service_fee=quote.service_fee,
                total_price=quote.total_price,
                payment_status=PaymentStatus.PENDING,
                tracking=[],
            )
            if runner is not None:
                errand.tracking.append(
                    TrackingModel(
                        longitude=runner.current_lng,
                        latitude=runner.current_lat,
                        status=ErrandStatus.ACCEPTED,
                        timestamp=now,
                    )
                )
            if e["status"] == ErrandStatus.COMPLETED:
                errand.completed_at = now
                errand.payment_status = PaymentStatus.PAID
                errand.payment_method = PaymentMethod.WALLET
                stars, comment = e["rating"]
                errand.rating_stars = stars
                errand.rating_comment = comment
                errand.rated_at = now
                runner.earnings += quote.total_price
                runner.completed_tasks += 1
                runner.rating = float(stars)
                runner.total_ratings = 1
            elif e["status"] == ErrandStatus.CANCELLED:
                errand.cancelled_at = now
                errand.cancellation_by = UserRole.CUSTOMER
                errand.cancellation_reason = e["reason"]
            session.add(errand)
        await session.flush()
        print(f"  Created {len(ERRANDS)} errands")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
