import pytest

from models import Actor, Coordinates, OrderStatus
from services.errors import InvalidTransitionError, ValidationError
from services.timeline import VALID_TRANSITIONS, TransitionPolicy, check_transition, update_status


def test_every_update_appends_one_matching_entry(make_order):
    order = make_order()
    sequence = ["confirmed", "preparing", "ready_for_pickup", "picked_up", "in_transit", "delivered"]

    for status in sequence:
        before = len(order.status.timeline)
        update_status(order, status)
        assert len(order.status.timeline) == before + 1
        assert order.status.timeline[-1].status == order.status.current


def test_permissive_policy_accepts_out_of_order_updates(make_order):
    order = make_order()

    update_status(order, OrderStatus.DELIVERED, policy="permissive")
    update_status(order, OrderStatus.PENDING, policy="permissive")

    assert order.status.current == OrderStatus.PENDING
    assert [e.status for e in order.status.timeline] == [
        OrderStatus.PENDING, OrderStatus.DELIVERED, OrderStatus.PENDING,
    ]


def test_strict_policy_rejects_skipped_steps(make_order):
    order = make_order()

    with pytest.raises(InvalidTransitionError):
        update_status(order, OrderStatus.DELIVERED, policy="strict")

    assert order.status.current == OrderStatus.PENDING
    assert len(order.status.timeline) == 1


def test_strict_policy_reads_settings(make_order, strict_policy):
    order = make_order()
    with pytest.raises(InvalidTransitionError):
        update_status(order, OrderStatus.IN_TRANSIT)


def test_terminal_states_have_no_exits():
    assert VALID_TRANSITIONS[OrderStatus.DELIVERED] == set()
    assert VALID_TRANSITIONS[OrderStatus.CANCELLED] == set()
    with pytest.raises(InvalidTransitionError):
        check_transition(OrderStatus.CANCELLED, OrderStatus.PENDING, TransitionPolicy.STRICT)


def test_invalid_status_and_actor_are_rejected(make_order):
    order = make_order()

    with pytest.raises(ValidationError):
        update_status(order, "teleported")
    with pytest.raises(ValidationError):
        update_status(order, "confirmed", updated_by="robot")

    assert len(order.status.timeline) == 1


def test_entry_records_location_notes_and_actor(make_order, frozen_clock):
    order = make_order()
    frozen_clock.advance(minutes=5)
    here = Coordinates(latitude=12.97, longitude=77.59)

    update_status(order, "confirmed", location=here, notes="Called customer", updated_by="admin")

    entry = order.status.timeline[-1]
    assert entry.location == here
    assert entry.notes == "Called customer"
    assert entry.updated_by == Actor.ADMIN
    assert entry.timestamp == frozen_clock.moment
    assert order.updated_at == frozen_clock.moment


def test_picked_up_generates_four_digit_otp(make_order):
    order = make_order()

    update_status(order, OrderStatus.PICKED_UP)

    otp = order.tracking.delivery_otp
    assert otp is not None
    assert len(otp) == 4 and otp.isdigit()
    assert order.assignment.picked_up_at is not None


def test_picked_up_keeps_existing_otp(make_order):
    order = make_order()
    order.tracking.delivery_otp = "4321"

    update_status(order, OrderStatus.PICKED_UP)
    update_status(order, OrderStatus.PICKED_UP)

    assert order.tracking.delivery_otp == "4321"


def test_delivered_stamps_delivery_times(make_order, frozen_clock):
    order = make_order()
    frozen_clock.advance(minutes=40)

    update_status(order, OrderStatus.DELIVERED)

    assert order.assignment.delivered_at == frozen_clock.moment
    assert order.assignment.actual_delivery_time == frozen_clock.moment
