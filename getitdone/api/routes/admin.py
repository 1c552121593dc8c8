"""
Admin / observability endpoints
===============================

PATCH /api/v1/admin/runners/{runner_id}/approve -- allow a runner to work
GET   /api/v1/admin/health                      -- health check
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from getitdone.api.dependencies import get_db, require_admin
from getitdone.api.middleware import limiter
from getitdone.api.schemas import Envelope, HealthResponse, UserData, UserResponse
from getitdone.config import settings
from getitdone.infrastructure.models import UserModel
from getitdone.services.users import UserService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.patch(
    "/runners/{runner_id}/approve",
    response_model=Envelope[UserData],
    summary="Approve a runner account",
)
@limiter.limit(settings.rate_limit)
async def approve_runner(
    request: Request,
    runner_id: int,
    admin: UserModel = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    runner = await UserService(db, settings).approve_runner(runner_id)
    return Envelope[UserData](
        message="Runner approved",
        data=UserData(user=UserResponse.from_model(runner)),
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return HealthResponse()
