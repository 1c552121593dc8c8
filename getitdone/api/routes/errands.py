"""
Errand endpoints
================

POST  /api/v1/errands                     -- create (customer)
GET   /api/v1/errands                     -- list all, paged (admin)
GET   /api/v1/errands/my-errands          -- customer's errands
GET   /api/v1/errands/runner/my-errands   -- runner's errands
GET   /api/v1/errands/available           -- pending errands near the runner
GET   /api/v1/errands/{errand_id}         -- one errand (party or admin)
POST  /api/v1/errands/{errand_id}/accept  -- claim a pending errand
PATCH /api/v1/errands/{errand_id}/status  -- lifecycle transition
PATCH /api/v1/errands/{errand_id}/cancel  -- customer cancel with reason
POST  /api/v1/errands/{errand_id}/rate    -- rate a completed errand

Writes commit before notifications are handed to a background task, so
the SMS/email providers only ever see committed state.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from getitdone.api.dependencies import (
    as_actor,
    get_current_user,
    get_db,
    get_errand_service,
    get_notifier,
    require_admin,
    require_approved_runner,
    require_customer,
)
from getitdone.api.middleware import limiter
from getitdone.api.schemas import (
    AcceptRequest,
    CancelRequest,
    Envelope,
    ErrandCreateRequest,
    ErrandData,
    ErrandListData,
    ErrandPageData,
    ErrandResponse,
    RateRequest,
    StatusUpdateRequest,
)
from getitdone.config import settings
from getitdone.domain.enums import ErrandStatus
from getitdone.infrastructure.models import ErrandModel, UserModel
from getitdone.services.errands import ErrandService
from getitdone.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/errands", tags=["errands"])


def _one(errand: ErrandModel, message: str | None = None) -> Envelope[ErrandData]:
    return Envelope[ErrandData](
        message=message,
        data=ErrandData(errand=ErrandResponse.from_model(errand)),
    )


def _many(errands: list[ErrandModel]) -> Envelope[ErrandListData]:
    return Envelope[ErrandListData](
        results=len(errands),
        data=ErrandListData(errands=[ErrandResponse.from_model(e) for e in errands]),
    )


async def _commit_then_notify(
    db: AsyncSession,
    notifier: NotificationDispatcher,
    background_tasks: BackgroundTasks,
) -> None:
    await db.commit()
    background_tasks.add_task(notifier.dispatch)


# ── Collection routes (declared before /{errand_id}) ────────────────


@router.post(
    "",
    status_code=201,
    response_model=Envelope[ErrandData],
    summary="Create an errand",
    description="Prices the errand and notifies approved runners near the pickup.",
)
@limiter.limit(settings.rate_limit)
async def create_errand(
    request: Request,
    body: ErrandCreateRequest,
    background_tasks: BackgroundTasks,
    user: UserModel = Depends(require_customer),
    service: ErrandService = Depends(get_errand_service),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    errand = await service.create(
        as_actor(user),
        errand_type=body.type,
        priority=body.priority,
        pickup_location=body.pickup_location.model_dump(),
        dropoff_location=body.dropoff_location.model_dump(),
        items=[item.model_dump() for item in body.items],
        special_instructions=body.special_instructions,
        scheduled_for=body.scheduled_for,
    )
    await _commit_then_notify(db, notifier, background_tasks)
    return _one(errand)


@router.get(
    "",
    response_model=Envelope[ErrandPageData],
    summary="List all errands (admin)",
)
@limiter.limit(settings.rate_limit)
async def list_errands(
    request: Request,
    status: Optional[ErrandStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: UserModel = Depends(require_admin),
    service: ErrandService = Depends(get_errand_service),
):
    errands, total = await service.list_all(status=status, limit=limit, offset=offset)
    return Envelope[ErrandPageData](
        results=len(errands),
        data=ErrandPageData(
            errands=[ErrandResponse.from_model(e) for e in errands],
            total=total,
            limit=limit,
            offset=offset,
        ),
    )


@router.get(
    "/my-errands",
    response_model=Envelope[ErrandListData],
    summary="Errands requested by the current customer",
)
@limiter.limit(settings.rate_limit)
async def my_errands(
    request: Request,
    user: UserModel = Depends(require_customer),
    service: ErrandService = Depends(get_errand_service),
):
    return _many(await service.list_for_customer(as_actor(user)))


@router.get(
    "/runner/my-errands",
    response_model=Envelope[ErrandListData],
    summary="Errands assigned to the current runner",
)
@limiter.limit(settings.rate_limit)
async def runner_errands(
    request: Request,
    user: UserModel = Depends(require_approved_runner),
    service: ErrandService = Depends(get_errand_service),
):
    return _many(await service.list_for_runner(as_actor(user)))


@router.get(
    "/available",
    response_model=Envelope[ErrandListData],
    summary="Pending errands near the runner, nearest first",
    description=(
        "Uses ``lng``/``lat`` when given, otherwise the runner's last "
        "reported position."
    ),
)
@limiter.limit(settings.rate_limit)
async def available_errands(
    request: Request,
    lng: Optional[float] = Query(None, ge=-180, le=180),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    radius_km: Optional[float] = Query(None, alias="radiusKm", gt=0, le=100),
    user: UserModel = Depends(require_approved_runner),
    service: ErrandService = Depends(get_errand_service),
):
    errands = await service.list_available(
        as_actor(user), lng=lng, lat=lat, radius_km=radius_km
    )
    return _many(errands)


# ── Item routes ─────────────────────────────────────────────────────


@router.get(
    "/{errand_id}",
    response_model=Envelope[ErrandData],
    summary="Get one errand",
)
@limiter.limit(settings.rate_limit)
async def get_errand(
    request: Request,
    errand_id: int,
    user: UserModel = Depends(get_current_user),
    service: ErrandService = Depends(get_errand_service),
):
    return _one(await service.get(errand_id, as_actor(user)))


@router.post(
    "/{errand_id}/accept",
    response_model=Envelope[ErrandData],
    summary="Accept a pending errand",
    responses={409: {"description": "Another runner won the errand."}},
)
@limiter.limit(settings.rate_limit)
async def accept_errand(
    request: Request,
    errand_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[AcceptRequest] = None,
    user: UserModel = Depends(require_approved_runner),
    service: ErrandService = Depends(get_errand_service),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    errand = await service.accept(
        errand_id, as_actor(user), location=body.location if body else None
    )
    await _commit_then_notify(db, notifier, background_tasks)
    return _one(errand)


@router.patch(
    "/{errand_id}/status",
    response_model=Envelope[ErrandData],
    summary="Move an errand through its lifecycle",
)
@limiter.limit(settings.rate_limit)
async def update_status(
    request: Request,
    errand_id: int,
    body: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    user: UserModel = Depends(get_current_user),
    service: ErrandService = Depends(get_errand_service),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    errand = await service.update_status(
        errand_id,
        as_actor(user),
        body.status,
        location=body.location,
        reason=body.reason,
    )
    await _commit_then_notify(db, notifier, background_tasks)
    return _one(errand)


@router.patch(
    "/{errand_id}/cancel",
    response_model=Envelope[ErrandData],
    summary="Cancel an errand",
)
@limiter.limit(settings.rate_limit)
async def cancel_errand(
    request: Request,
    errand_id: int,
    body: CancelRequest,
    background_tasks: BackgroundTasks,
    user: UserModel = Depends(require_customer),
    service: ErrandService = Depends(get_errand_service),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    errand = await service.update_status(
        errand_id, as_actor(user), ErrandStatus.CANCELLED, reason=body.reason
    )
    await _commit_then_notify(db, notifier, background_tasks)
    return _one(errand, message="Errand cancelled successfully")


@router.post(
    "/{errand_id}/rate",
    response_model=Envelope[ErrandData],
    summary="Rate a completed errand",
)
@limiter.limit(settings.rate_limit)
async def rate_errand(
    request: Request,
    errand_id: int,
    body: RateRequest,
    user: UserModel = Depends(require_customer),
    service: ErrandService = Depends(get_errand_service),
):
    errand = await service.rate(errand_id, as_actor(user), body.stars, body.comment)
    return _one(errand)
