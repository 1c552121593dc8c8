"""
Geocoding endpoints
===================

GET /api/v1/geo/reverse?lng=..&lat=..  -- coordinates -> address parts
GET /api/v1/geo/search?address=..      -- address -> coordinates

The lookup is the whole point of these calls, so provider failures are
returned as 502 rather than swallowed.
"""

from fastapi import APIRouter, Depends, Query, Request

from getitdone.api.dependencies import get_current_user, get_geocoder
from getitdone.api.middleware import limiter
from getitdone.api.schemas import Envelope, ForwardGeocodeOut, ReverseGeocodeOut
from getitdone.config import settings
from getitdone.infrastructure.geocoding import GoogleGeocoder
from getitdone.infrastructure.models import UserModel

router = APIRouter(prefix="/geo", tags=["geo"])


@router.get(
    "/reverse",
    response_model=Envelope[ReverseGeocodeOut],
    summary="Reverse geocode a point",
)
@limiter.limit(settings.rate_limit)
async def reverse(
    request: Request,
    lng: float = Query(..., ge=-180, le=180),
    lat: float = Query(..., ge=-90, le=90),
    user: UserModel = Depends(get_current_user),
    geocoder: GoogleGeocoder = Depends(get_geocoder),
):
    result = await geocoder.reverse(lng, lat)
    return Envelope[ReverseGeocodeOut](data=ReverseGeocodeOut(**result))


@router.get(
    "/search",
    response_model=Envelope[ForwardGeocodeOut],
    summary="Geocode a free-form address",
)
@limiter.limit(settings.rate_limit)
async def search(
    request: Request,
    address: str = Query(..., min_length=3),
    user: UserModel = Depends(get_current_user),
    geocoder: GoogleGeocoder = Depends(get_geocoder),
):
    result = await geocoder.forward(address)
    return Envelope[ForwardGeocodeOut](data=ForwardGeocodeOut(**result))
