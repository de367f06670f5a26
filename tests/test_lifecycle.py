"""Tests for the order status state machine."""

from datetime import datetime, timezone

import pytest
from freezegun import freeze_time

from checkout_service.exceptions import InvalidStatusTransition
from checkout_service.lifecycle import (
    available_actions,
    can_reach,
    can_transition,
    is_terminal,
    next_status,
    transition,
)
from checkout_service.models import OrderStatus

S = OrderStatus


class TestNextStatus:
    @pytest.mark.parametrize("current, expected", [
        (S.PENDING, S.PAID),
        (S.PAID, S.SHIPPED),
        (S.SHIPPED, S.DELIVERED),
        (S.DELIVERED, None),
        (S.CANCELLED, None),
    ])
    def test_forward_successor(self, current, expected):
        assert next_status(current) == expected

    def test_accepts_plain_strings(self):
        assert next_status("paid") == S.SHIPPED

    def test_terminal_states(self):
        assert is_terminal(S.DELIVERED)
        assert is_terminal(S.CANCELLED)
        assert not is_terminal(S.SHIPPED)


class TestCanTransition:
    @pytest.mark.parametrize("current, target", [
        (S.PENDING, S.PAID),
        (S.PAID, S.SHIPPED),
        (S.SHIPPED, S.DELIVERED),
        (S.PENDING, S.CANCELLED),
        (S.PAID, S.CANCELLED),
        (S.SHIPPED, S.CANCELLED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current, target", [
        (S.PENDING, S.SHIPPED),
        (S.PAID, S.DELIVERED),
        (S.SHIPPED, S.PAID),
        (S.PAID, S.PENDING),
        (S.PAID, S.PAID),
        (S.DELIVERED, S.CANCELLED),
        (S.CANCELLED, S.PAID),
        (S.CANCELLED, S.CANCELLED),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_available_actions(self):
        assert available_actions(S.PAID) == [S.SHIPPED, S.CANCELLED]
        assert available_actions(S.DELIVERED) == []
        assert available_actions(S.CANCELLED) == []


class TestCanReach:
    def test_multi_step_forward(self):
        assert can_reach(S.PENDING, S.DELIVERED)
        assert can_reach(S.PAID, S.DELIVERED)

    def test_never_backwards_or_out_of_terminal(self):
        assert not can_reach(S.SHIPPED, S.PAID)
        assert not can_reach(S.DELIVERED, S.CANCELLED)
        assert not can_reach(S.CANCELLED, S.DELIVERED)

    def test_cancel_from_any_open_state(self):
        assert can_reach(S.SHIPPED, S.CANCELLED)


class TestTransition:
    @freeze_time("2026-03-11 09:30:00")
    def test_updates_status_and_timestamp_only(self, order_factory):
        order = order_factory(status=S.PAID)

        shipped = transition(order, S.SHIPPED)

        assert shipped.status == S.SHIPPED
        assert shipped.updated_at == datetime(2026, 3, 11, 9, 30, tzinfo=timezone.utc)
        assert shipped.created_at == order.created_at
        assert shipped.total == order.total
        assert shipped.items == order.items
        # the original record is left untouched
        assert order.status == S.PAID

    def test_explicit_timestamp(self, order_factory, later):
        order = order_factory(status=S.PENDING)
        assert transition(order, "cancelled", now=later(5)).updated_at == later(5)

    def test_skip_is_rejected(self, order_factory):
        order = order_factory(status=S.PENDING)
        with pytest.raises(InvalidStatusTransition) as excinfo:
            transition(order, S.SHIPPED)
        assert excinfo.value.current == "pending"
        assert excinfo.value.target == "shipped"

    def test_terminal_is_final(self, order_factory):
        with pytest.raises(InvalidStatusTransition):
            transition(order_factory(status=S.DELIVERED), S.CANCELLED)
