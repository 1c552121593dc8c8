"""
Auth endpoints
==============

POST  /api/v1/auth/register                -- create customer/runner account
POST  /api/v1/auth/login                   -- email + password -> tokens
GET   /api/v1/auth/verify-email/{token}    -- redeem verification link
POST  /api/v1/auth/forgot-password         -- email a reset link
PATCH /api/v1/auth/reset-password/{token}  -- set a new password
POST  /api/v1/auth/refresh-token           -- new token pair
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from getitdone.api.dependencies import get_db, get_notifier, get_token_store
from getitdone.api.middleware import limiter
from getitdone.api.schemas import (
    AuthData,
    Envelope,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPair,
    UserData,
    UserResponse,
)
from getitdone.config import settings
from getitdone.infrastructure.tokens import OneTimeTokenStore
from getitdone.services.auth import AuthResult, AuthService
from getitdone.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_envelope(result: AuthResult, message: str | None = None) -> Envelope[AuthData]:
    return Envelope[AuthData](
        message=message,
        data=AuthData(
            user=UserResponse.from_model(result.user),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        ),
    )


def _service(
    db: AsyncSession = Depends(get_db),
    tokens: OneTimeTokenStore = Depends(get_token_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> AuthService:
    return AuthService(db, tokens, notifier, settings)


@router.post(
    "/register",
    status_code=201,
    response_model=Envelope[AuthData],
    summary="Register a customer or runner",
)
@limiter.limit(settings.rate_limit)
async def register(
    request: Request,
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    service: AuthService = Depends(_service),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    result = await service.register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone=body.phone,
        password=body.password,
        role=body.role,
        vehicle_type=body.vehicle_type,
    )
    await db.commit()
    background_tasks.add_task(notifier.dispatch)
    return _auth_envelope(result, "Registration successful. Please verify your email.")


@router.post("/login", response_model=Envelope[AuthData], summary="Log in")
@limiter.limit(settings.rate_limit)
async def login(
    request: Request,
    body: LoginRequest,
    service: AuthService = Depends(_service),
):
    return _auth_envelope(await service.login(body.email, body.password))


@router.get(
    "/verify-email/{token}",
    response_model=Envelope[UserData],
    summary="Verify an email address",
)
@limiter.limit(settings.rate_limit)
async def verify_email(
    request: Request,
    token: str,
    service: AuthService = Depends(_service),
):
    user = await service.verify_email(token)
    return Envelope[UserData](
        message="Email verified successfully",
        data=UserData(user=UserResponse.from_model(user)),
    )


@router.post(
    "/forgot-password",
    response_model=Envelope[None],
    summary="Email a password reset link",
    responses={502: {"description": "The email could not be delivered."}},
)
@limiter.limit(settings.rate_limit)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    service: AuthService = Depends(_service),
):
    await service.forgot_password(body.email)
    return Envelope[None](message="Token sent to email!")


@router.patch(
    "/reset-password/{token}",
    response_model=Envelope[AuthData],
    summary="Reset password with an emailed token",
)
@limiter.limit(settings.rate_limit)
async def reset_password(
    request: Request,
    token: str,
    body: ResetPasswordRequest,
    service: AuthService = Depends(_service),
):
    return _auth_envelope(
        await service.reset_password(token, body.password),
        "Password reset successful",
    )


@router.post(
    "/refresh-token",
    response_model=Envelope[TokenPair],
    summary="Exchange a refresh token for a new pair",
)
@limiter.limit(settings.rate_limit)
async def refresh_token(
    request: Request,
    body: RefreshTokenRequest,
    service: AuthService = Depends(_service),
):
    result = await service.refresh(body.refresh_token)
    return Envelope[TokenPair](
        data=TokenPair(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        )
    )
