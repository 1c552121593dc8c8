"""User profile operations: last known position and runner approval."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from getitdone.config import Settings, settings as default_settings
from getitdone.domain.entities import Location
from getitdone.domain.enums import UserRole
from getitdone.domain.errors import NotFound
from getitdone.domain.spatial import cell_for
from getitdone.infrastructure.models import UserModel
from getitdone.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: AsyncSession, config: Settings = default_settings):
        self.session = session
        self.users = UserRepository(session)
        self.config = config

    async def get(self, user_id: int) -> UserModel:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def update_location(self, user_id: int, lng: float, lat: float) -> UserModel:
        point = Location.from_pair([lng, lat], "location")
        user = await self.get(user_id)
        user.current_lng = point.longitude
        user.current_lat = point.latitude
        user.h3_cell = cell_for(point.longitude, point.latitude, self.config.h3_resolution)
        await self.session.flush()
        logger.debug("User %s moved to cell %s", user_id, user.h3_cell)
        return user

    async def approve_runner(self, runner_id: int) -> UserModel:
        user = await self.users.get_by_id(runner_id)
        if user is None or user.role != UserRole.RUNNER:
            raise NotFound("Runner not found")
        user.runner_is_approved = True
        await self.session.flush()
        logger.info("Runner %s approved", runner_id)
        return user
