"""
Permission policy.

Plain functions of (actor, resource ownership) -> allow/deny.  Routes gate
by role through ``getitdone.api.dependencies``; the errand service calls
these before touching a specific errand.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .entities import Actor
from .enums import ErrandStatus, UserRole
from .errors import PermissionDenied


def has_role(actor: Actor, roles: Iterable[UserRole]) -> bool:
    return actor.role in set(roles)


def is_party(actor: Actor, customer_id: int, runner_id: Optional[int]) -> bool:
    return actor.id == customer_id or (runner_id is not None and actor.id == runner_id)


def can_view_errand(actor: Actor, customer_id: int, runner_id: Optional[int]) -> bool:
    return actor.is_admin or is_party(actor, customer_id, runner_id)


def can_set_status(
    actor: Actor,
    customer_id: int,
    runner_id: Optional[int],
    new_status: ErrandStatus,
) -> bool:
    """
    * admin    -- any status
    * runner   -- only on errands assigned to them
    * customer -- may only cancel their own errand
    """
    if actor.is_admin:
        return True
    if actor.role == UserRole.RUNNER:
        return runner_id is not None and actor.id == runner_id
    if actor.role == UserRole.CUSTOMER:
        return actor.id == customer_id and new_status == ErrandStatus.CANCELLED
    return False


def can_rate(actor: Actor, customer_id: int) -> bool:
    return actor.role == UserRole.CUSTOMER and actor.id == customer_id


def ensure(allowed: bool, message: str | None = None) -> None:
    if not allowed:
        raise PermissionDenied(message)
