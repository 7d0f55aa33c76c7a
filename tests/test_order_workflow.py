import re
from datetime import datetime, timedelta, timezone

import pytest

from qrdine.models import ItemStatus, OrderStatus
from qrdine.services.order_workflow import (
    InvalidTransition,
    apply_rollup,
    generate_order_number,
    is_order_complete,
    next_item_status,
    next_order_status,
    parse_item_status,
    parse_order_status,
    priority_for,
    reopen_target,
    rollup_order_status,
    time_since,
    validate_item_transition,
    validate_order_transition,
)

NOW = datetime(2026, 3, 14, 19, 30, tzinfo=timezone.utc)


def test_next_order_status_walks_the_flow():
    assert next_order_status(OrderStatus.PENDING) == OrderStatus.CONFIRMED
    assert next_order_status(OrderStatus.CONFIRMED) == OrderStatus.PREPARING
    assert next_order_status(OrderStatus.PREPARING) == OrderStatus.READY
    assert next_order_status(OrderStatus.READY) == OrderStatus.DELIVERED
    assert next_order_status(OrderStatus.DELIVERED) is None
    assert next_order_status(OrderStatus.CANCELLED) is None


def test_next_item_status_walks_the_flow():
    assert next_item_status(ItemStatus.PENDING) == ItemStatus.PREPARING
    assert next_item_status(ItemStatus.READY) == ItemStatus.DELIVERED
    assert next_item_status(ItemStatus.DELIVERED) is None


def test_parse_item_status_maps_confirmed_to_pending():
    assert parse_item_status("CONFIRMED") == ItemStatus.PENDING
    assert parse_item_status(" preparing ") == ItemStatus.PREPARING


@pytest.mark.parametrize("value", ["", "COOKING", "CANCELLED"])
def test_parse_item_status_rejects_unknown(value):
    with pytest.raises(ValueError):
        parse_item_status(value)


def test_parse_order_status():
    assert parse_order_status("ready") == OrderStatus.READY
    with pytest.raises(ValueError):
        parse_order_status("SERVED")


class TestValidateOrderTransition:
    def test_one_step_forward_is_allowed(self):
        validate_order_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED, [ItemStatus.PENDING])
        validate_order_transition(OrderStatus.CONFIRMED, OrderStatus.PREPARING, [ItemStatus.PENDING])

    def test_skipping_a_step_is_rejected(self):
        with pytest.raises(InvalidTransition) as exc:
            validate_order_transition(OrderStatus.PENDING, OrderStatus.PREPARING, [ItemStatus.PENDING])
        assert exc.value.current == "PENDING"
        assert exc.value.target == "PREPARING"

    def test_moving_backwards_is_rejected(self):
        with pytest.raises(InvalidTransition):
            validate_order_transition(OrderStatus.PREPARING, OrderStatus.CONFIRMED, [ItemStatus.PREPARING])

    def test_same_status_is_rejected(self):
        with pytest.raises(InvalidTransition):
            validate_order_transition(OrderStatus.CONFIRMED, OrderStatus.CONFIRMED, [])

    def test_ready_requires_complete_items(self):
        with pytest.raises(InvalidTransition):
            validate_order_transition(
                OrderStatus.PREPARING,
                OrderStatus.READY,
                [ItemStatus.READY, ItemStatus.PREPARING],
            )
        validate_order_transition(
            OrderStatus.PREPARING,
            OrderStatus.READY,
            [ItemStatus.READY, ItemStatus.DELIVERED],
        )

    @pytest.mark.parametrize("current", [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
    ])
    def test_cancel_from_any_open_status(self, current):
        validate_order_transition(current, OrderStatus.CANCELLED, [ItemStatus.PENDING])

    @pytest.mark.parametrize("current", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_terminal_orders_cannot_change(self, current):
        with pytest.raises(InvalidTransition):
            validate_order_transition(current, OrderStatus.CANCELLED, [ItemStatus.DELIVERED])


def test_validate_item_transition():
    validate_item_transition(ItemStatus.PENDING, ItemStatus.PREPARING)
    with pytest.raises(InvalidTransition):
        validate_item_transition(ItemStatus.PENDING, ItemStatus.READY)
    with pytest.raises(InvalidTransition):
        validate_item_transition(ItemStatus.READY, ItemStatus.PREPARING)
    with pytest.raises(InvalidTransition):
        validate_item_transition(ItemStatus.DELIVERED, ItemStatus.DELIVERED)


def test_is_order_complete():
    assert is_order_complete([ItemStatus.READY, ItemStatus.DELIVERED])
    assert not is_order_complete([ItemStatus.READY, ItemStatus.PENDING])
    assert not is_order_complete([])


@pytest.mark.parametrize("statuses, expected", [
    ([ItemStatus.DELIVERED, ItemStatus.DELIVERED], OrderStatus.DELIVERED),
    ([ItemStatus.READY, ItemStatus.DELIVERED], OrderStatus.READY),
    ([ItemStatus.PREPARING, ItemStatus.READY], OrderStatus.PREPARING),
    ([ItemStatus.PENDING, ItemStatus.READY], None),
    ([], None),
])
def test_rollup_order_status(statuses, expected):
    assert rollup_order_status(statuses) == expected


def test_apply_rollup_only_moves_forward():
    assert apply_rollup(OrderStatus.CONFIRMED, [ItemStatus.PREPARING]) == OrderStatus.PREPARING
    assert apply_rollup(OrderStatus.PENDING, [ItemStatus.READY]) == OrderStatus.READY
    # Already further along than the items suggest
    assert apply_rollup(OrderStatus.READY, [ItemStatus.PREPARING]) is None
    assert apply_rollup(OrderStatus.PREPARING, [ItemStatus.PREPARING]) is None
    assert apply_rollup(OrderStatus.CANCELLED, [ItemStatus.DELIVERED]) is None


def test_reopen_target():
    assert reopen_target(OrderStatus.READY) == OrderStatus.CONFIRMED
    assert reopen_target(OrderStatus.DELIVERED) == OrderStatus.CONFIRMED
    assert reopen_target(OrderStatus.PREPARING) is None
    with pytest.raises(InvalidTransition):
        reopen_target(OrderStatus.CANCELLED)


@pytest.mark.parametrize("age_minutes, expected", [
    (0, "normal"),
    (10, "normal"),
    (11, "high"),
    (20, "high"),
    (21, "urgent"),
])
def test_priority_for(age_minutes, expected):
    assert priority_for(NOW - timedelta(minutes=age_minutes), NOW) == expected


def test_priority_for_naive_timestamp_is_utc():
    naive = (NOW - timedelta(minutes=30)).replace(tzinfo=None)
    assert priority_for(naive, NOW) == "urgent"


@pytest.mark.parametrize("age, expected", [
    (timedelta(seconds=30), "Just now"),
    (timedelta(minutes=5), "5m ago"),
    (timedelta(minutes=125), "2h ago"),
    (timedelta(days=3, hours=1), "3d ago"),
])
def test_time_since(age, expected):
    assert time_since(NOW - age, NOW) == expected


def test_generate_order_number_format():
    numbers = {generate_order_number() for _ in range(20)}
    assert all(re.fullmatch(r"ORD-\d{13}-[A-Z0-9]{4}", n) for n in numbers)
