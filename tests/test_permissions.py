"""Unit tests for the errand permission policy."""

import pytest

from getitdone.domain.entities import Actor
from getitdone.domain.enums import ErrandStatus, UserRole
from getitdone.domain.errors import PermissionDenied
from getitdone.domain.permissions import (
    can_rate,
    can_set_status,
    can_view_errand,
    ensure,
    has_role,
)

CUSTOMER_ID, RUNNER_ID = 1, 2
customer = Actor(CUSTOMER_ID, UserRole.CUSTOMER)
runner = Actor(RUNNER_ID, UserRole.RUNNER)
stranger = Actor(99, UserRole.CUSTOMER)
other_runner = Actor(98, UserRole.RUNNER)
admin = Actor(100, UserRole.ADMIN)


class TestView:
    @pytest.mark.parametrize("actor", [customer, runner, admin])
    def test_parties_and_admin(self, actor):
        assert can_view_errand(actor, CUSTOMER_ID, RUNNER_ID)

    @pytest.mark.parametrize("actor", [stranger, other_runner])
    def test_outsiders(self, actor):
        assert not can_view_errand(actor, CUSTOMER_ID, RUNNER_ID)

    def test_unassigned_errand(self):
        assert can_view_errand(customer, CUSTOMER_ID, None)
        assert not can_view_errand(runner, CUSTOMER_ID, None)


class TestSetStatus:
    @pytest.mark.parametrize("status", list(ErrandStatus))
    def test_admin_any(self, status):
        assert can_set_status(admin, CUSTOMER_ID, RUNNER_ID, status)

    @pytest.mark.parametrize("status", list(ErrandStatus))
    def test_assigned_runner_any(self, status):
        assert can_set_status(runner, CUSTOMER_ID, RUNNER_ID, status)

    def test_other_runner_none(self):
        assert not can_set_status(other_runner, CUSTOMER_ID, RUNNER_ID, ErrandStatus.IN_PROGRESS)
        assert not can_set_status(runner, CUSTOMER_ID, None, ErrandStatus.IN_PROGRESS)

    def test_customer_may_only_cancel(self):
        assert can_set_status(customer, CUSTOMER_ID, RUNNER_ID, ErrandStatus.CANCELLED)
        assert not can_set_status(customer, CUSTOMER_ID, RUNNER_ID, ErrandStatus.COMPLETED)
        assert not can_set_status(stranger, CUSTOMER_ID, RUNNER_ID, ErrandStatus.CANCELLED)


def test_only_owning_customer_rates():
    assert can_rate(customer, CUSTOMER_ID)
    assert not can_rate(stranger, CUSTOMER_ID)
    assert not can_rate(admin, CUSTOMER_ID)


def test_has_role():
    assert has_role(runner, [UserRole.RUNNER, UserRole.ADMIN])
    assert not has_role(customer, [UserRole.RUNNER])


def test_ensure():
    ensure(True)
    with pytest.raises(PermissionDenied, match="nope"):
        ensure(False, "nope")
