"""
Concurrency safety tests.

Demonstrates:
1. Two runners accepting the same errand at once: exactly one wins.
2. Two rating attempts: the second fails with ``AlreadyRated``.
3. A stale status write (optimistic version check) surfaces as ``Conflict``.

Each contender gets its own session (its own SQLite connection), which is
how two concurrent requests reach the database in production.
"""

import asyncio

import pytest

from getitdone.domain.entities import Actor
from getitdone.domain.enums import ErrandStatus, ErrandType, UserRole
from getitdone.domain.errors import AlreadyRated, Conflict, InvalidTransition
from getitdone.infrastructure.models import ErrandModel, UserModel
from getitdone.services.errands import ErrandService
from getitdone.services.notifications import NotificationDispatcher
from tests.conftest import LAGOS, PASSWORD_HASH, RecordingTransport, place


async def _seed(session_factory):
    async with session_factory() as session:
        customer = UserModel(
            first_name="Ada", last_name="Obi", email="ada@example.com",
            phone="+2348100000001", password_hash=PASSWORD_HASH,
            role=UserRole.CUSTOMER, is_verified=True,
        )
        runners = [
            UserModel(
                first_name=f"Runner{i}", last_name="R", email=f"runner{i}@example.com",
                phone=f"+23481000001{i}", password_hash=PASSWORD_HASH,
                role=UserRole.RUNNER, is_verified=True, runner_is_approved=True,
            )
            for i in range(2)
        ]
        session.add_all([customer, *runners])
        await session.flush()

        service = ErrandService(session, _dispatcher())
        errand = await service.create(
            Actor(customer.id, UserRole.CUSTOMER),
            errand_type=ErrandType.DELIVERY,
            pickup_location=place(LAGOS),
            dropoff_location=place([3.3892, 6.5244]),
        )
        await session.commit()
        return customer.id, [r.id for r in runners], errand.id


def _dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(RecordingTransport(), RecordingTransport())


class TestAcceptRace:
    @pytest.mark.asyncio
    async def test_exactly_one_runner_wins(self, session_factory):
        _, runner_ids, errand_id = await _seed(session_factory)

        async def attempt(runner_id: int) -> str:
            async with session_factory() as session:
                service = ErrandService(session, _dispatcher())
                try:
                    await service.accept(errand_id, Actor(runner_id, UserRole.RUNNER))
                    await session.commit()
                    return "won"
                except InvalidTransition:  # includes Conflict
                    await session.rollback()
                    return "lost"

        results = await asyncio.gather(*(attempt(r) for r in runner_ids))
        assert sorted(results) == ["lost", "won"]

        async with session_factory() as session:
            errand = await session.get(ErrandModel, errand_id)
            assert errand.status == ErrandStatus.ACCEPTED
            assert errand.runner_id in runner_ids

    @pytest.mark.asyncio
    async def test_loser_of_claim_gets_conflict(self, session_factory):
        """Both read PENDING before either writes; the second write loses."""
        _, (first, second), errand_id = await _seed(session_factory)

        async with session_factory() as s1, session_factory() as s2:
            svc1 = ErrandService(s1, _dispatcher())
            svc2 = ErrandService(s2, _dispatcher())
            # s2 keeps the PENDING snapshot in its identity map
            await svc2.errands.get_by_id(errand_id)

            await svc1.accept(errand_id, Actor(first, UserRole.RUNNER))
            await s1.commit()

            with pytest.raises(Conflict):
                await svc2.accept(errand_id, Actor(second, UserRole.RUNNER))
            await s2.rollback()


class TestRateRace:
    @pytest.mark.asyncio
    async def test_second_rating_rejected(self, session_factory):
        customer_id, (runner_id, _), errand_id = await _seed(session_factory)
        customer = Actor(customer_id, UserRole.CUSTOMER)
        runner = Actor(runner_id, UserRole.RUNNER)

        async with session_factory() as session:
            service = ErrandService(session, _dispatcher())
            await service.accept(errand_id, runner)
            await service.update_status(errand_id, runner, "in_progress")
            await service.update_status(errand_id, runner, "completed")
            await session.commit()

        async def attempt(stars: int) -> str:
            async with session_factory() as session:
                service = ErrandService(session, _dispatcher())
                try:
                    await service.rate(errand_id, customer, stars)
                    await session.commit()
                    return "rated"
                except AlreadyRated:
                    await session.rollback()
                    return "already"

        results = await asyncio.gather(attempt(5), attempt(1))
        assert sorted(results) == ["already", "rated"]

        async with session_factory() as session:
            runner_row = await session.get(UserModel, runner_id)
            assert runner_row.total_ratings == 1
            assert runner_row.rating in (5.0, 1.0)


class TestOptimisticVersioning:
    @pytest.mark.asyncio
    async def test_stale_write_raises_conflict(self, session_factory):
        customer_id, (runner_id, _), errand_id = await _seed(session_factory)
        customer = Actor(customer_id, UserRole.CUSTOMER)
        runner = Actor(runner_id, UserRole.RUNNER)

        async with session_factory() as session:
            await ErrandService(session, _dispatcher()).accept(errand_id, runner)
            await session.commit()

        async with session_factory() as s1, session_factory() as s2:
            runner_svc = ErrandService(s1, _dispatcher())
            customer_svc = ErrandService(s2, _dispatcher())
            # customer's session holds the ACCEPTED snapshot
            await customer_svc.errands.get_by_id(errand_id)

            await runner_svc.update_status(errand_id, runner, "in_progress")
            await s1.commit()

            with pytest.raises(Conflict):
                await customer_svc.update_status(
                    errand_id, customer, "cancelled", reason="taking too long"
                )
            await s2.rollback()

        async with session_factory() as session:
            errand = await session.get(ErrandModel, errand_id)
            assert errand.status == ErrandStatus.IN_PROGRESS
            assert errand.cancellation_reason is None
