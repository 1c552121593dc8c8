"""
User endpoints
==============

GET   /api/v1/users/me           -- current profile
PATCH /api/v1/users/me/location  -- report last known position
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from getitdone.api.dependencies import get_current_user, get_db
from getitdone.api.middleware import limiter
from getitdone.api.schemas import Envelope, LocationUpdateRequest, UserData, UserResponse
from getitdone.config import settings
from getitdone.infrastructure.models import UserModel
from getitdone.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=Envelope[UserData], summary="Current user")
@limiter.limit(settings.rate_limit)
async def me(
    request: Request,
    user: UserModel = Depends(get_current_user),
):
    return Envelope[UserData](data=UserData(user=UserResponse.from_model(user)))


@router.patch(
    "/me/location",
    response_model=Envelope[UserData],
    summary="Update last known position",
    description="Feeds the nearby-runner and available-errand lookups.",
)
@limiter.limit(settings.rate_limit)
async def update_location(
    request: Request,
    body: LocationUpdateRequest,
    user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await UserService(db, settings).update_location(
        user.id, body.longitude, body.latitude
    )
    return Envelope[UserData](data=UserData(user=UserResponse.from_model(updated)))
