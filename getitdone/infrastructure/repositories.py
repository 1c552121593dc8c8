"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Read-modify-write operations that can race
(accepting an errand, rating it, crediting a runner) are single UPDATE
statements so the database serialises them.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ErrandModel, UserModel, utcnow
from getitdone.domain.enums import ErrandStatus, UserRole


class ErrandRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, errand: ErrandModel) -> ErrandModel:
        self.session.add(errand)
        await self.session.flush()
        return errand

    async def get_by_id(
        self, errand_id: int, *, refresh: bool = False
    ) -> Optional[ErrandModel]:
        return await self.session.get(
            ErrandModel, errand_id, populate_existing=refresh
        )

    async def list_for_customer(self, customer_id: int) -> list[ErrandModel]:
        result = await self.session.execute(
            select(ErrandModel)
            .where(ErrandModel.customer_id == customer_id)
            .order_by(ErrandModel.created_at.desc(), ErrandModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_runner(self, runner_id: int) -> list[ErrandModel]:
        result = await self.session.execute(
            select(ErrandModel)
            .where(ErrandModel.runner_id == runner_id)
            .order_by(ErrandModel.created_at.desc(), ErrandModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_pending_in_cells(self, cells: Iterable[str]) -> list[ErrandModel]:
        result = await self.session.execute(
            select(ErrandModel).where(
                ErrandModel.status == ErrandStatus.PENDING,
                ErrandModel.pickup_h3.in_(list(cells)),
            )
        )
        return list(result.scalars().all())

    async def list_all(
        self,
        status: ErrandStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ErrandModel]:
        query = select(ErrandModel)
        if status is not None:
            query = query.where(ErrandModel.status == status)
        result = await self.session.execute(
            query.order_by(ErrandModel.created_at.desc(), ErrandModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count(self, status: ErrandStatus | None = None) -> int:
        query = select(func.count()).select_from(ErrandModel)
        if status is not None:
            query = query.where(ErrandModel.status == status)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def claim_pending(self, errand_id: int, runner_id: int) -> bool:
        """
        ``UPDATE ... SET runner, status WHERE status = 'pending'``.

        Returns True iff this caller won the errand.  Two runners racing
        for the same errand both issue this statement; the database lets
        exactly one of them match.
        """
        result = await self.session.execute(
            update(ErrandModel)
            .where(
                ErrandModel.id == errand_id,
                ErrandModel.status == ErrandStatus.PENDING,
                ErrandModel.runner_id.is_(None),
            )
            .values(
                runner_id=runner_id,
                status=ErrandStatus.ACCEPTED,
                version=ErrandModel.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_rating_once(
        self, errand_id: int, stars: int, comment: str | None
    ) -> bool:
        """Set the rating only if the errand is completed and still unrated."""
        now = utcnow()
        result = await self.session.execute(
            update(ErrandModel)
            .where(
                ErrandModel.id == errand_id,
                ErrandModel.status == ErrandStatus.COMPLETED,
                ErrandModel.rating_stars.is_(None),
            )
            .values(
                rating_stars=stars,
                rating_comment=comment,
                rated_at=now,
                version=ErrandModel.version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_email_or_phone(
        self, email: str, phone: str
    ) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel)
            .where(
                or_(
                    UserModel.email == email.strip().lower(),
                    UserModel.phone == phone.strip(),
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_runners_in_cells(self, cells: Iterable[str]) -> list[UserModel]:
        """Approved, active runners whose last position falls in *cells*."""
        result = await self.session.execute(
            select(UserModel).where(
                UserModel.role == UserRole.RUNNER,
                UserModel.runner_is_approved.is_(True),
                UserModel.is_active.is_(True),
                UserModel.h3_cell.in_(list(cells)),
            )
        )
        return list(result.scalars().all())

    async def credit_completion(self, runner_id: int, amount: float) -> None:
        """``earnings += amount, completed_tasks += 1`` in one statement."""
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == runner_id)
            .values(
                earnings=UserModel.earnings + amount,
                completed_tasks=UserModel.completed_tasks + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

    async def record_rating(self, runner_id: int, stars: int) -> None:
        """
        Fold *stars* into the running average without a read-then-write:

            rating = (rating * total_ratings + stars) / (total_ratings + 1)

        Both SET expressions see the pre-update row, so concurrent ratings
        never lose an update.
        """
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == runner_id)
            .values(
                rating=(UserModel.rating * UserModel.total_ratings + stars)
                / (UserModel.total_ratings + 1.0),
                total_ratings=UserModel.total_ratings + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
