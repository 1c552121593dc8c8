"""Pydantic request / response schemas for the REST API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from getitdone.domain.enums import (
    ErrandStatus,
    ErrandType,
    PaymentMethod,
    PaymentStatus,
    Priority,
    UserRole,
    VehicleType,
)

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Requests ──────────────────────────────────────────────────────────


class LocationIn(ApiModel):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    coordinates: list[float] = Field(
        ..., min_length=2, max_length=2, description="[longitude, latitude]"
    )


class ItemIn(ApiModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    price: float = Field(0.0, ge=0)


class ErrandCreateRequest(ApiModel):
    type: ErrandType
    priority: Priority = Priority.NORMAL
    pickup_location: LocationIn
    dropoff_location: LocationIn
    items: list[ItemIn] = []
    special_instructions: Optional[str] = Field(None, max_length=1000)
    scheduled_for: Optional[datetime] = None


class StatusUpdateRequest(ApiModel):
    status: ErrandStatus
    location: Optional[list[float]] = Field(
        None, min_length=2, max_length=2, description="[longitude, latitude]"
    )
    reason: Optional[str] = Field(None, max_length=500)


class AcceptRequest(ApiModel):
    location: Optional[list[float]] = Field(None, min_length=2, max_length=2)


class CancelRequest(ApiModel):
    reason: str = Field(..., min_length=1, max_length=500)


class RateRequest(ApiModel):
    stars: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class RegisterRequest(ApiModel):
    first_name: str = Field(..., min_length=1, max_length=80)
    last_name: str = Field(..., min_length=1, max_length=80)
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=32)
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.CUSTOMER
    vehicle_type: Optional[VehicleType] = None


class LoginRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ResetPasswordRequest(ApiModel):
    password: str = Field(..., min_length=8)


class RefreshTokenRequest(ApiModel):
    refresh_token: str


class LocationUpdateRequest(ApiModel):
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)


# ── Responses ─────────────────────────────────────────────────────────


class Envelope(ApiModel, Generic[T]):
    status: str = "success"
    results: Optional[int] = None
    message: Optional[str] = None
    data: Optional[T] = None


class LocationOut(ApiModel):
    address: str
    city: str
    state: str
    country: str
    coordinates: list[float]


class ItemOut(ApiModel):
    name: str
    quantity: int
    price: float


class TrackingOut(ApiModel):
    location: list[float]
    status: ErrandStatus
    timestamp: datetime


class RatingOut(ApiModel):
    stars: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class ErrandResponse(ApiModel):
    id: int
    customer_id: int
    runner_id: Optional[int] = None
    type: ErrandType
    status: ErrandStatus
    priority: Priority
    pickup_location: LocationOut
    dropoff_location: LocationOut
    items: list[ItemOut] = []
    special_instructions: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    estimated_distance: float
    estimated_duration: int
    base_price: float
    priority_fee: float
    service_fee: float
    total_price: float
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    rating: Optional[RatingOut] = None
    tracking: list[TrackingOut] = []
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancellation_by: Optional[UserRole] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    elapsed_time: Optional[int] = Field(None, description="Minutes since creation")

    @classmethod
    def from_model(cls, errand, now: datetime | None = None) -> "ErrandResponse":
        now = now or datetime.now(timezone.utc)
        created = errand.created_at
        elapsed = None
        if created is not None:
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            elapsed = max(0, int((now - created).total_seconds() // 60))

        rating = None
        if errand.rating_stars is not None:
            rating = RatingOut(
                stars=errand.rating_stars,
                comment=errand.rating_comment,
                created_at=errand.rated_at,
            )

        return cls(
            id=errand.id,
            customer_id=errand.customer_id,
            runner_id=errand.runner_id,
            type=errand.type,
            status=errand.status,
            priority=errand.priority,
            pickup_location=LocationOut(**errand.pickup_location),
            dropoff_location=LocationOut(**errand.dropoff_location),
            items=[ItemOut(**item) for item in errand.items or []],
            special_instructions=errand.special_instructions,
            scheduled_for=errand.scheduled_for,
            estimated_distance=errand.estimated_distance,
            estimated_duration=errand.estimated_duration,
            base_price=errand.base_price,
            priority_fee=errand.priority_fee,
            service_fee=errand.service_fee,
            total_price=errand.total_price,
            payment_status=errand.payment_status,
            payment_method=errand.payment_method,
            rating=rating,
            tracking=[
                TrackingOut(
                    location=[t.longitude, t.latitude],
                    status=t.status,
                    timestamp=t.timestamp,
                )
                for t in errand.tracking
            ],
            completed_at=errand.completed_at,
            cancelled_at=errand.cancelled_at,
            cancellation_reason=errand.cancellation_reason,
            cancellation_by=errand.cancellation_by,
            created_at=errand.created_at,
            updated_at=errand.updated_at,
            elapsed_time=elapsed,
        )


class RunnerProfileOut(ApiModel):
    is_approved: bool
    vehicle_type: Optional[VehicleType] = None
    rating: float
    total_ratings: int
    earnings: float
    completed_tasks: int


class UserResponse(ApiModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    role: UserRole
    is_verified: bool
    is_active: bool
    wallet_balance: float = 0.0
    current_location: Optional[list[float]] = None
    runner_profile: Optional[RunnerProfileOut] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user) -> "UserResponse":
        profile = None
        if user.role == UserRole.RUNNER:
            profile = RunnerProfileOut(
                is_approved=user.runner_is_approved,
                vehicle_type=user.vehicle_type,
                rating=user.rating,
                total_ratings=user.total_ratings,
                earnings=user.earnings,
                completed_tasks=user.completed_tasks,
            )
        location = None
        if user.current_lng is not None and user.current_lat is not None:
            location = [user.current_lng, user.current_lat]
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            is_verified=user.is_verified,
            is_active=user.is_active,
            wallet_balance=user.wallet_balance,
            current_location=location,
            runner_profile=profile,
            last_login=user.last_login,
            created_at=user.created_at,
        )


class ErrandData(ApiModel):
    errand: ErrandResponse


class ErrandListData(ApiModel):
    errands: list[ErrandResponse]


class ErrandPageData(ErrandListData):
    total: int
    limit: int
    offset: int


class UserData(ApiModel):
    user: UserResponse


class AuthData(ApiModel):
    user: UserResponse
    access_token: str
    refresh_token: str


class TokenPair(ApiModel):
    access_token: str
    refresh_token: str


class ReverseGeocodeOut(ApiModel):
    address: str
    street: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    coordinates: list[float]


class ForwardGeocodeOut(ApiModel):
    formatted_address: str
    coordinates: list[float]


class HealthResponse(BaseModel):
    status: str = "ok"
    database: str = "ok"
