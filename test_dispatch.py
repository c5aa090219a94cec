import re

import pytest

from db import get_cursor
from models import Coordinates, Feedback, OrderStatus
from services import dispatch as dispatch_module
from services.errors import (
    AgentNotAuthorizedError,
    AgentNotFoundError,
    AgentUnavailableError,
    ConcurrentModificationError,
    OrderNotFoundError,
    OrderNumberCollisionError,
    ValidationError,
)
from services.store import AgentStore, OrderStore


def deliver(dispatch, order_id, agent_id):
    dispatch.assign_agent(order_id, agent_id)
    dispatch.accept_order(order_id, agent_id)
    dispatch.agent_update_status(order_id, agent_id, "picked_up")
    return dispatch.agent_update_status(order_id, agent_id, "delivered")


def test_create_order_starts_pending_and_unassigned(order_factory, dispatch):
    order = order_factory()

    assert re.fullmatch(r"GJD\d{6}", order.order_number)
    assert order.status.current == OrderStatus.PENDING
    assert len(order.status.timeline) == 1
    assert order.status.timeline[0].notes == "Order placed"
    assert order.assignment.delivery_agent is None
    assert order.earnings.total == 120

    stored = dispatch.get_order(order.order_id)
    assert stored == order


def test_order_number_collision_is_retried(order_factory, monkeypatch):
    numbers = iter(["GJD111111", "GJD111111", "GJD222222"])
    monkeypatch.setattr(dispatch_module, "generate_order_number", lambda: next(numbers))

    first = order_factory()
    second = order_factory()

    assert first.order_number == "GJD111111"
    assert second.order_number == "GJD222222"


def test_order_number_collision_gives_up(order_factory, monkeypatch):
    monkeypatch.setattr(dispatch_module, "generate_order_number", lambda: "GJD333333")
    order_factory()

    with pytest.raises(OrderNumberCollisionError):
        order_factory()


def test_missing_order(dispatch):
    with pytest.raises(OrderNotFoundError):
        dispatch.get_order("does-not-exist")


def test_every_save_bumps_version(order_factory, agent_factory, dispatch):
    order = order_factory()
    agent = agent_factory()

    assigned = dispatch.assign_agent(order.order_id, agent.agent_id)
    accepted = dispatch.accept_order(order.order_id, agent.agent_id)

    assert (order.version, assigned.version, accepted.version) == (0, 1, 2)


def test_stale_write_is_refused(order_factory, dispatch):
    order = order_factory()
    first = dispatch.get_order(order.order_id)
    second = dispatch.get_order(order.order_id)

    with get_cursor() as cursor:
        OrderStore(cursor).save(first)

    with pytest.raises(ConcurrentModificationError):
        with get_cursor() as cursor:
            OrderStore(cursor).save(second)

    assert dispatch.get_order(order.order_id).version == 1


def test_full_delivery_credits_agent(order_factory, agent_factory, load_agent, dispatch):
    agent = agent_factory(total_deliveries=5, completed_deliveries=5, earnings_total=500)
    order = order_factory(delivery_fee=100, tip=20, distance=5)

    delivered = deliver(dispatch, order.order_id, agent.agent_id)

    assert delivered.status.current == OrderStatus.DELIVERED
    assert delivered.earnings.total == 120
    assert delivered.assignment.earnings_credited_at is not None

    stats = load_agent(agent.agent_id)
    assert stats.total_deliveries == 6
    assert stats.completed_deliveries == 6
    assert stats.earnings_total == 620
    assert stats.earnings_this_month == 120
    assert stats.earnings_month == "2026-03"


def test_repeated_delivered_update_credits_once(order_factory, agent_factory, load_agent, dispatch):
    agent = agent_factory()
    order = order_factory()
    deliver(dispatch, order.order_id, agent.agent_id)

    dispatch.update_status(order.order_id, "delivered", updated_by="admin")

    stats = load_agent(agent.agent_id)
    assert stats.total_deliveries == 1
    assert stats.earnings_total == 120


def test_monthly_earnings_reset_on_new_month(order_factory, agent_factory, load_agent, dispatch):
    agent = agent_factory(earnings_total=900, earnings_this_month=300, earnings_month="2026-02")

    deliver(dispatch, order_factory().order_id, agent.agent_id)

    stats = load_agent(agent.agent_id)
    assert stats.earnings_total == 1020
    assert stats.earnings_this_month == 120


def test_overlapping_deliveries_both_credit_agent(order_factory, agent_factory, load_agent, dispatch, monkeypatch):
    agent = agent_factory(total_deliveries=5, completed_deliveries=5, earnings_total=500)
    first, second = order_factory(), order_factory()
    for order in (first, second):
        dispatch.assign_agent(order.order_id, agent.agent_id)
        dispatch.accept_order(order.order_id, agent.agent_id)
        dispatch.agent_update_status(order.order_id, agent.agent_id, "picked_up")

    # Both settlements see the agent row as it was before either credit
    snapshot = load_agent(agent.agent_id)
    with monkeypatch.context() as m:
        m.setattr(AgentStore, "get", lambda self, agent_id: snapshot)
        dispatch.agent_update_status(first.order_id, agent.agent_id, "delivered")
        dispatch.agent_update_status(second.order_id, agent.agent_id, "delivered")

    stats = load_agent(agent.agent_id)
    assert stats.total_deliveries == 7
    assert stats.earnings_total == 740
    assert stats.earnings_this_month == 240


def test_overlapping_ratings_both_count(agent_factory, load_agent, monkeypatch):
    agent = agent_factory()
    with get_cursor() as cursor:
        AgentStore(cursor).record_rating(agent.agent_id, 4)

    snapshot = load_agent(agent.agent_id)
    with monkeypatch.context() as m:
        m.setattr(AgentStore, "get", lambda self, agent_id: snapshot)
        for rating in (2, 3):
            with get_cursor() as cursor:
                AgentStore(cursor).record_rating(agent.agent_id, rating)

    stats = load_agent(agent.agent_id)
    assert stats.rating_count == 3
    assert stats.rating == 3.0


def test_assign_requires_active_agent(order_factory, agent_factory, dispatch):
    order = order_factory()
    sleeping = agent_factory(is_active=False)

    with pytest.raises(AgentNotFoundError):
        dispatch.assign_agent(order.order_id, "ghost")
    with pytest.raises(AgentUnavailableError):
        dispatch.assign_agent(order.order_id, sleeping.agent_id)

    assert dispatch.get_order(order.order_id).version == 0


def test_failed_accept_is_not_persisted(order_factory, agent_factory, dispatch):
    order = order_factory()
    owner, intruder = agent_factory(), agent_factory()
    dispatch.assign_agent(order.order_id, owner.agent_id)

    with pytest.raises(AgentNotAuthorizedError):
        dispatch.accept_order(order.order_id, intruder.agent_id)

    stored = dispatch.get_order(order.order_id)
    assert stored.status.current == OrderStatus.CONFIRMED
    assert stored.assignment.accepted_at is None
    assert stored.version == 1


def test_agents_set_only_delivery_statuses(order_factory, agent_factory, dispatch):
    order = order_factory()
    agent = agent_factory()
    dispatch.assign_agent(order.order_id, agent.agent_id)

    with pytest.raises(ValidationError):
        dispatch.agent_update_status(order.order_id, agent.agent_id, "confirmed")
    with pytest.raises(AgentNotAuthorizedError):
        dispatch.agent_update_status(order.order_id, agent_factory().agent_id, "picked_up")


def test_agent_status_update_tracks_location(order_factory, agent_factory, dispatch):
    order = order_factory()
    agent = agent_factory()
    dispatch.assign_agent(order.order_id, agent.agent_id)
    here = Coordinates(latitude=12.98, longitude=77.60)

    updated = dispatch.agent_update_status(order.order_id, agent.agent_id, "picked_up", location=here)

    assert updated.tracking.agent_location.latitude == 12.98
    assert updated.status.timeline[-1].location == here
    assert len(updated.tracking.delivery_otp) == 4


def test_agent_cancel(order_factory, agent_factory, dispatch):
    order = order_factory()
    agent = agent_factory()
    dispatch.assign_agent(order.order_id, agent.agent_id)

    cancelled = dispatch.agent_cancel_order(order.order_id, agent.agent_id, "Vehicle breakdown")

    assert cancelled.status.current == OrderStatus.CANCELLED
    assert cancelled.cancellation.cancelled_by.value == "delivery_agent"


def test_location_update_refreshes_live_tracking(order_factory, agent_factory, dispatch):
    agent = agent_factory()
    carried, waiting = order_factory(), order_factory()
    dispatch.assign_agent(carried.order_id, agent.agent_id)
    dispatch.agent_update_status(carried.order_id, agent.agent_id, "picked_up")
    dispatch.assign_agent(waiting.order_id, agent.agent_id)

    moved = dispatch.update_agent_location(agent.agent_id, Coordinates(latitude=12.99, longitude=77.61))

    assert moved.current_location.latitude == 12.99
    assert dispatch.get_order(carried.order_id).tracking.agent_location.longitude == 77.61
    assert dispatch.get_order(waiting.order_id).tracking.agent_location is None


def test_feedback_updates_agent_rating(order_factory, agent_factory, load_agent, dispatch):
    agent = agent_factory()
    first, second = order_factory(), order_factory()
    deliver(dispatch, first.order_id, agent.agent_id)
    deliver(dispatch, second.order_id, agent.agent_id)

    dispatch.submit_feedback(first.order_id, Feedback(delivery_rating=4, food_rating=5))
    rated = dispatch.submit_feedback(second.order_id, Feedback(delivery_rating=3))

    assert rated.feedback.submitted_at is not None
    stats = load_agent(agent.agent_id)
    assert stats.rating == 3.5
    assert stats.rating_count == 2


def test_feedback_rules(order_factory, agent_factory, dispatch):
    pending = order_factory()
    with pytest.raises(ValidationError):
        dispatch.submit_feedback(pending.order_id, Feedback(delivery_rating=5))

    agent = agent_factory()
    delivered = order_factory()
    deliver(dispatch, delivered.order_id, agent.agent_id)
    dispatch.submit_feedback(delivered.order_id, Feedback(delivery_rating=5))
    with pytest.raises(ValidationError):
        dispatch.submit_feedback(delivered.order_id, Feedback(delivery_rating=1))


def test_summary_visibility(order_factory, agent_factory, dispatch):
    order = order_factory()
    owner, other = agent_factory(), agent_factory()

    # Unassigned orders are open to any agent
    assert dispatch.get_delivery_summary(order.order_id, other.agent_id).order_number == order.order_number

    dispatch.assign_agent(order.order_id, owner.agent_id)
    with pytest.raises(AgentNotAuthorizedError):
        dispatch.get_delivery_summary(order.order_id, other.agent_id)
    assert dispatch.get_delivery_summary(order.order_id, owner.agent_id).status == OrderStatus.CONFIRMED
