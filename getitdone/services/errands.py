"""
Errand Lifecycle Orchestrator
=============================

Coordinates pricing, the transition table, persistence and notifications
for the four errand operations:

* ``create``         -- price the errand, persist it as PENDING, tell
                        nearby runners
* ``accept``         -- conditional claim: exactly one runner wins
* ``update_status``  -- table-checked transition plus per-status side
                        effects (ETA, earnings credit, refund)
* ``rate``           -- once per completed errand; runner average is
                        folded in atomically

Concurrency safety
------------------
* **Conditional UPDATE** for accept and rate (``WHERE status = 'pending'``
  / ``WHERE rating IS NULL``).
* **Optimistic versioning** (``errands.version``) for every other status
  write; a stale write surfaces as ``Conflict``.
* Runner earnings/rating use single-statement accumulate updates.

Notifications are only *queued* here.  The caller dispatches them after
commit, so a failing SMS provider never undoes a state change.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from getitdone.config import Settings, settings as default_settings
from getitdone.domain.entities import Actor, Address, Location
from getitdone.domain.enums import (
    ErrandStatus,
    ErrandType,
    PaymentStatus,
    Priority,
    UserRole,
    is_valid_transition,
)
from getitdone.domain.errors import (
    AlreadyRated,
    Conflict,
    InvalidState,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    TransportFailure,
    ValidationError,
)
from getitdone.domain.geolocation import compute_distance, compute_eta, is_within_radius
from getitdone.domain.permissions import can_rate, can_set_status, can_view_errand, ensure
from getitdone.domain.pricing import PricingEngine
from getitdone.domain.spatial import cell_for, cells_within_radius
from getitdone.infrastructure.models import ErrandModel, TrackingModel, utcnow
from getitdone.infrastructure.payments import PaystackGateway
from getitdone.infrastructure.repositories import ErrandRepository, UserRepository
from getitdone.services import notifications as templates
from getitdone.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


def _coerce_enum(enum_cls, value: Any, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{label} must be one of: {allowed}") from None


def _validate_items(items: Optional[Iterable[Mapping[str, Any]]]) -> list[dict[str, Any]]:
    cleaned: list[dict[str, Any]] = []
    for index, item in enumerate(items or []):
        name = str(item.get("name") or "").strip()
        quantity = item.get("quantity")
        price = item.get("price")
        if not name:
            raise ValidationError(f"Item {index + 1}: name is required")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(f"Item {index + 1}: quantity must be a positive integer")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0:
            raise ValidationError(f"Item {index + 1}: price must be a non-negative number")
        cleaned.append({"name": name, "quantity": quantity, "price": float(price)})
    return cleaned


class ErrandService:
    def __init__(
        self,
        session: AsyncSession,
        notifier: NotificationDispatcher,
        payments: PaystackGateway | None = None,
        pricing: PricingEngine | None = None,
        config: Settings = default_settings,
    ):
        self.session = session
        self.errands = ErrandRepository(session)
        self.users = UserRepository(session)
        self.notifier = notifier
        self.payments = payments or PaystackGateway(config)
        self.config = config
        self.pricing = pricing or PricingEngine(
            rate_per_km=config.rate_per_km,
            priority_fee_rate=config.priority_fee_rate,
            service_fee_rate=config.service_fee_rate,
            average_speed_kmh=config.average_speed_kmh,
        )

    # ── Helpers ───────────────────────────────────────────────────────

    async def _load(self, errand_id: int) -> ErrandModel:
        errand = await self.errands.get_by_id(errand_id)
        if errand is None:
            raise NotFound("Errand not found")
        return errand

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except StaleDataError:
            raise Conflict() from None

    @staticmethod
    def _track(errand: ErrandModel, point: Location, status: ErrandStatus) -> None:
        errand.tracking.append(
            TrackingModel(
                longitude=point.longitude,
                latitude=point.latitude,
                status=status,
                timestamp=utcnow(),
            )
        )

    # ── Create ────────────────────────────────────────────────────────

    async def create(
        self,
        customer: Actor,
        *,
        errand_type: ErrandType | str,
        pickup_location: Mapping[str, Any],
        dropoff_location: Mapping[str, Any],
        priority: Priority | str = Priority.NORMAL,
        items: Optional[Iterable[Mapping[str, Any]]] = None,
        special_instructions: str | None = None,
        scheduled_for=None,
    ) -> ErrandModel:
        if customer.role != UserRole.CUSTOMER:
            raise PermissionDenied("Only customers can perform this action.")

        errand_type = _coerce_enum(ErrandType, errand_type, "Errand type")
        priority = _coerce_enum(Priority, priority or Priority.NORMAL, "Priority")
        pickup = Address.from_document(pickup_location, "Pickup location")
        dropoff = Address.from_document(dropoff_location, "Dropoff location")
        cleaned_items = _validate_items(items)

        distance = compute_distance(pickup.location.as_pair(), dropoff.location.as_pair())
        quote = self.pricing.quote(distance, errand_type, priority)

        errand = await self.errands.create(
            ErrandModel(
                customer_id=customer.id,
                type=errand_type,
                priority=priority,
                status=ErrandStatus.PENDING,
                pickup_location=pickup.to_document(),
                dropoff_location=dropoff.to_document(),
                pickup_h3=cell_for(
                    pickup.location.longitude,
                    pickup.location.latitude,
                    self.config.h3_resolution,
                ),
                items=cleaned_items,
                special_instructions=special_instructions,
                scheduled_for=scheduled_for,
                estimated_distance=distance,
                estimated_duration=quote.estimated_duration,
                base_price=quote.base_price,
                priority_fee=quote.priority_fee,
                service_fee=quote.service_fee,
                total_price=quote.total_price,
                payment_status=PaymentStatus.PENDING,
                tracking=[],
            )
        )
        logger.info(
            "Errand %s created by customer=%s type=%s distance=%.2fkm total=%.2f",
            errand.id,
            customer.id,
            errand_type.value,
            distance,
            quote.total_price,
        )
        await self._notify_nearby_runners(errand, pickup.location)
        return errand

    async def _notify_nearby_runners(self, errand: ErrandModel, pickup: Location) -> int:
        radius = self.config.nearby_runner_radius_km
        cells = cells_within_radius(
            pickup.longitude, pickup.latitude, radius, self.config.h3_resolution
        )
        notified = 0
        for runner in await self.users.list_runners_in_cells(cells):
            if runner.current_lng is None or runner.current_lat is None:
                continue
            if not is_within_radius(
                [runner.current_lng, runner.current_lat], pickup.as_pair(), radius
            ):
                continue
            self.notifier.queue_sms(
                runner.phone,
                templates.errand_nearby_text(errand.type.value, errand.estimated_distance),
            )
            notified += 1
        logger.debug("Errand %s: %d nearby runners queued for SMS", errand.id, notified)
        return notified

    # ── Reads ─────────────────────────────────────────────────────────

    async def get(self, errand_id: int, actor: Actor) -> ErrandModel:
        errand = await self._load(errand_id)
        ensure(
            can_view_errand(actor, errand.customer_id, errand.runner_id),
            "You do not have permission to view this errand",
        )
        return errand

    async def list_for_customer(self, customer: Actor) -> list[ErrandModel]:
        return await self.errands.list_for_customer(customer.id)

    async def list_for_runner(self, runner: Actor) -> list[ErrandModel]:
        return await self.errands.list_for_runner(runner.id)

    async def list_all(
        self, status: ErrandStatus | None = None, limit: int = 50, offset: int = 0
    ) -> tuple[list[ErrandModel], int]:
        errands = await self.errands.list_all(status=status, limit=limit, offset=offset)
        return errands, await self.errands.count(status=status)

    async def list_available(
        self,
        runner: Actor,
        lng: float | None = None,
        lat: float | None = None,
        radius_km: float | None = None,
    ) -> list[ErrandModel]:
        """Pending errands whose pickup is within *radius_km*, nearest first."""
        if lng is None or lat is None:
            user = await self.users.get_by_id(runner.id)
            if user is None or user.current_lng is None or user.current_lat is None:
                raise ValidationError(
                    "Location required: pass lng/lat or update your location first"
                )
            lng, lat = user.current_lng, user.current_lat
        origin = Location.from_pair([lng, lat], "location")
        radius = radius_km if radius_km is not None else self.config.available_errand_radius_km

        cells = cells_within_radius(
            origin.longitude, origin.latitude, radius, self.config.h3_resolution
        )
        nearby: list[tuple[float, ErrandModel]] = []
        for errand in await self.errands.list_pending_in_cells(cells):
            distance = compute_distance(origin.as_pair(), errand.pickup_location["coordinates"])
            if distance <= radius:
                nearby.append((distance, errand))
        nearby.sort(key=lambda pair: (pair[0], pair[1].id))
        return [errand for _, errand in nearby]

    # ── Accept ────────────────────────────────────────────────────────

    async def accept(
        self,
        errand_id: int,
        runner: Actor,
        location: Optional[Sequence[float]] = None,
    ) -> ErrandModel:
        if runner.role != UserRole.RUNNER:
            raise PermissionDenied("Only runners can perform this action.")
        point = Location.from_pair(location, "location") if location is not None else None

        runner_user = await self.users.get_by_id(runner.id)
        if runner_user is None or not runner_user.runner_is_approved:
            raise PermissionDenied("Your runner account is not yet approved.")

        errand = await self._load(errand_id)
        if errand.status != ErrandStatus.PENDING:
            raise InvalidTransition("This errand is no longer available")

        if not await self.errands.claim_pending(errand_id, runner.id):
            raise Conflict("This errand was just accepted by another runner")

        errand = await self.errands.get_by_id(errand_id, refresh=True)
        if point is not None:
            self._track(errand, point, ErrandStatus.ACCEPTED)
            await self._flush()
        logger.info("Errand %s accepted by runner=%s", errand_id, runner.id)

        customer = await self.users.get_by_id(errand.customer_id)
        if customer is not None:
            self.notifier.queue_sms(
                customer.phone, templates.errand_accepted_text(runner_user.first_name)
            )
        return errand

    # ── Status updates ────────────────────────────────────────────────

    async def update_status(
        self,
        errand_id: int,
        actor: Actor,
        new_status: ErrandStatus | str,
        location: Optional[Sequence[float]] = None,
        reason: str | None = None,
    ) -> ErrandModel:
        new_status = _coerce_enum(ErrandStatus, new_status, "Status")
        errand = await self._load(errand_id)

        if new_status == ErrandStatus.ACCEPTED:
            return await self.accept(errand_id, actor, location=location)

        ensure(
            can_set_status(actor, errand.customer_id, errand.runner_id, new_status),
            "You do not have permission to update this errand",
        )
        if not is_valid_transition(errand.status, new_status):
            raise InvalidTransition(
                f"Invalid status transition: {errand.status.value} -> {new_status.value}"
            )
        reason = (reason or "").strip() or None
        if new_status == ErrandStatus.CANCELLED and reason is None:
            raise ValidationError("A reason is required to cancel an errand")
        point = Location.from_pair(location, "location") if location is not None else None

        previous = errand.status
        errand.status = new_status
        if point is not None:
            self._track(errand, point, new_status)

        if new_status == ErrandStatus.COMPLETED:
            errand.completed_at = utcnow()
        elif new_status == ErrandStatus.CANCELLED:
            errand.cancelled_at = utcnow()
            errand.cancellation_by = actor.role
            errand.cancellation_reason = reason

        # Version check first: a stale writer must not trigger side effects.
        await self._flush()
        logger.info(
            "Errand %s: %s -> %s by %s=%s",
            errand_id,
            previous.value,
            new_status.value,
            actor.role.value,
            actor.id,
        )

        if new_status == ErrandStatus.IN_PROGRESS:
            await self._on_in_progress(errand)
        elif new_status == ErrandStatus.COMPLETED:
            await self._on_completed(errand)
        elif new_status == ErrandStatus.CANCELLED:
            await self._on_cancelled(errand)
        return errand

    async def _on_in_progress(self, errand: ErrandModel) -> None:
        if errand.tracking:
            last = errand.tracking[-1]
            origin = [last.longitude, last.latitude]
        else:
            origin = errand.pickup_location["coordinates"]
        distance = compute_distance(origin, errand.dropoff_location["coordinates"])
        eta = compute_eta(distance, self.config.average_speed_kmh)

        customer = await self.users.get_by_id(errand.customer_id)
        if customer is not None:
            self.notifier.queue_sms(customer.phone, templates.errand_in_progress_text(eta))

    async def _on_completed(self, errand: ErrandModel) -> None:
        if errand.runner_id is not None:
            await self.users.credit_completion(errand.runner_id, errand.total_price)
        customer = await self.users.get_by_id(errand.customer_id)
        if customer is not None:
            self.notifier.queue_sms(customer.phone, templates.errand_completed_text())

    async def _on_cancelled(self, errand: ErrandModel) -> None:
        if errand.payment_status == PaymentStatus.PAID:
            await self._refund(errand)

        customer = await self.users.get_by_id(errand.customer_id)
        if customer is not None:
            self.notifier.queue_sms(
                customer.phone, templates.errand_cancelled_text(errand.cancellation_reason)
            )
        if errand.runner_id is not None:
            runner = await self.users.get_by_id(errand.runner_id)
            if runner is not None:
                self.notifier.queue_sms(
                    runner.phone,
                    templates.errand_cancelled_text(errand.cancellation_reason, for_runner=True),
                )

    async def _refund(self, errand: ErrandModel) -> None:
        try:
            await self.payments.refund(errand.payment_reference, errand.total_price)
        except TransportFailure as exc:
            logger.warning(
                "Refund for errand %s failed (retryable=%s): %s",
                errand.id,
                exc.retryable,
                exc.message,
            )
            return
        errand.payment_status = PaymentStatus.REFUNDED
        await self._flush()
        logger.info("Errand %s refunded %.2f", errand.id, errand.total_price)

    # ── Rating ────────────────────────────────────────────────────────

    async def rate(
        self, errand_id: int, actor: Actor, stars: int, comment: str | None = None
    ) -> ErrandModel:
        if isinstance(stars, bool) or not isinstance(stars, int) or not 1 <= stars <= 5:
            raise ValidationError("Stars must be an integer between 1 and 5")

        errand = await self._load(errand_id)
        ensure(
            can_rate(actor, errand.customer_id),
            "Only the customer who requested this errand can rate it",
        )
        if errand.status != ErrandStatus.COMPLETED:
            raise InvalidState("Can only rate completed errands")
        if errand.rating_stars is not None:
            raise AlreadyRated()

        if not await self.errands.set_rating_once(errand_id, stars, comment):
            raise AlreadyRated()
        if errand.runner_id is not None:
            await self.users.record_rating(errand.runner_id, stars)

        logger.info("Errand %s rated %d stars by customer=%s", errand_id, stars, actor.id)
        return await self.errands.get_by_id(errand_id, refresh=True)
