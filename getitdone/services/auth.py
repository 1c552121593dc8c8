"""
Authentication service
======================

Registration, login, email verification, password reset and token
refresh, plus the module-level ``authenticate`` which backs the bearer-token gate on every
protected route.

One-time tokens (verify / reset) live in Redis; access and refresh tokens
are stateless JWTs signed with separate secrets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from getitdone.config import Settings, settings as default_settings
from getitdone.domain.enums import UserRole, VehicleType
from getitdone.domain.errors import AuthError, NotFound, TransportFailure, ValidationError
from getitdone.infrastructure.models import UserModel, utcnow
from getitdone.infrastructure.repositories import UserRepository
from getitdone.infrastructure.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from getitdone.infrastructure.tokens import OneTimeTokenStore, TokenPurpose
from getitdone.services.notifications import (
    NotificationDispatcher,
    reset_password_text,
    verify_email_text,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
SELF_REGISTER_ROLES = (UserRole.CUSTOMER, UserRole.RUNNER)


@dataclass
class AuthResult:
    user: UserModel
    access_token: str
    refresh_token: str


def password_changed_after(changed_at: datetime | None, issued_at: int | float) -> bool:
    """True if the password was changed after a token issued at *issued_at*."""
    if changed_at is None:
        return False
    if changed_at.tzinfo is None:
        # SQLite hands back naive datetimes
        changed_at = changed_at.replace(tzinfo=timezone.utc)
    return changed_at.timestamp() > float(issued_at)


def _issue_pair(user: UserModel) -> AuthResult:
    return AuthResult(
        user=user,
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )


def _check_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    return password


class AuthService:
    def __init__(
        self,
        session: AsyncSession,
        tokens: OneTimeTokenStore,
        notifier: NotificationDispatcher,
        config: Settings = default_settings,
    ):
        self.session = session
        self.users = UserRepository(session)
        self.tokens = tokens
        self.notifier = notifier
        self.config = config

    def _link(self, path: str, token: str) -> str:
        base = self.config.public_base_url.rstrip("/")
        return f"{base}{self.config.api_prefix}/auth/{path}/{token}"

    async def register(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
        password: str,
        role: UserRole | str = UserRole.CUSTOMER,
        vehicle_type: VehicleType | str | None = None,
    ) -> AuthResult:
        try:
            role = UserRole(role)
        except ValueError:
            raise ValidationError("Role must be customer or runner") from None
        if role not in SELF_REGISTER_ROLES:
            raise ValidationError("Role must be customer or runner")
        if vehicle_type is not None:
            try:
                vehicle_type = VehicleType(vehicle_type)
            except ValueError:
                raise ValidationError("Unknown vehicle type") from None
        _check_password(password)

        email = email.strip().lower()
        phone = phone.strip()
        if await self.users.get_by_email_or_phone(email, phone) is not None:
            raise ValidationError("User with this email or phone already exists")

        user = await self.users.create(
            UserModel(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=email,
                phone=phone,
                password_hash=hash_password(password),
                role=role,
                vehicle_type=vehicle_type if role == UserRole.RUNNER else None,
            )
        )

        token = await self.tokens.issue(
            TokenPurpose.VERIFY_EMAIL,
            user.id,
            self.config.email_verification_ttl_hours * 3600,
        )
        self.notifier.queue_email(
            user.email,
            "Email Verification",
            verify_email_text(self._link("verify-email", token)),
        )
        logger.info("Registered %s user=%s", role.value, user.id)
        return _issue_pair(user)

    async def login(self, email: str | None, password: str | None) -> AuthResult:
        if not email or not password:
            raise ValidationError("Please provide email and password")

        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthError("Incorrect email or password")
        if not user.is_active:
            raise AuthError("Your account has been deactivated")
        if not user.is_verified:
            raise AuthError("Please verify your email before logging in")

        user.last_login = utcnow()
        await self.session.flush()
        logger.info("User %s logged in", user.id)
        return _issue_pair(user)

    async def verify_email(self, token: str) -> UserModel:
        user_id = await self.tokens.consume(TokenPurpose.VERIFY_EMAIL, token)
        user = await self.users.get_by_id(user_id) if user_id is not None else None
        if user is None:
            raise ValidationError("Invalid or expired verification token")
        user.is_verified = True
        await self.session.flush()
        logger.info("User %s verified their email", user.id)
        return user

    async def forgot_password(self, email: str) -> None:
        """Email a reset link now; delivery failures are surfaced."""
        user = await self.users.get_by_email(email or "")
        if user is None:
            raise NotFound("There is no user with that email address")

        token = await self.tokens.issue(
            TokenPurpose.RESET_PASSWORD,
            user.id,
            self.config.password_reset_ttl_minutes * 60,
        )
        self.notifier.queue_email(
            user.email,
            "Your password reset token (valid for 10 minutes)",
            reset_password_text(self._link("reset-password", token)),
        )
        try:
            await self.notifier.dispatch(raise_on_failure=True)
        except TransportFailure:
            # the link never arrived, so it must not stay redeemable
            await self.tokens.consume(TokenPurpose.RESET_PASSWORD, token)
            raise

    async def reset_password(self, token: str, password: str) -> AuthResult:
        _check_password(password)
        user_id = await self.tokens.consume(TokenPurpose.RESET_PASSWORD, token)
        user = await self.users.get_by_id(user_id) if user_id is not None else None
        if user is None:
            raise ValidationError("Token is invalid or has expired")

        user.password_hash = hash_password(password)
        # tokens issued in the same second must still pass the gate
        user.password_changed_at = utcnow() - timedelta(seconds=1)
        await self.session.flush()
        logger.info("User %s reset their password", user.id)
        return _issue_pair(user)

    async def refresh(self, refresh_token: str | None) -> AuthResult:
        if not refresh_token:
            raise AuthError("Refresh token is required")
        payload = decode_refresh_token(refresh_token)
        user = await self.users.get_by_id(int(payload["sub"]))
        if user is None:
            raise AuthError("The user belonging to this token no longer exists")
        if password_changed_after(user.password_changed_at, payload["iat"]):
            raise AuthError("User recently changed password. Please log in again.")
        if not user.is_active:
            raise AuthError("Your account has been deactivated")
        return _issue_pair(user)


async def authenticate(session: AsyncSession, access_token: str | None) -> UserModel:
    """Resolve a bearer token to an active, verified user or raise ``AuthError``."""
    if not access_token:
        raise AuthError("You are not logged in. Please log in to get access.")
    payload = decode_access_token(access_token)

    user = await UserRepository(session).get_by_id(int(payload["sub"]))
    if user is None:
        raise AuthError("The user belonging to this token no longer exists.")
    if password_changed_after(user.password_changed_at, payload["iat"]):
        raise AuthError("User recently changed password. Please log in again.")
    if not user.is_active:
        raise AuthError("Your account has been deactivated")
    if not user.is_verified:
        raise AuthError("Please verify your email to access this resource")
    return user
