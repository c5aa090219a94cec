from datetime import datetime

import pytest

from models import Priority, SpecialRequest
from services.earnings import calculate_agent_earnings, is_peak_hour
from services.summary import get_delivery_summary
from services.timeline import update_status


def test_off_peak_breakdown(make_order):
    order = make_order(delivery_fee=100, tip=20, distance=5, priority=Priority.HIGH)

    earnings = calculate_agent_earnings(order, datetime(2026, 3, 10, 10, 0))

    assert earnings.delivery_fee == 75
    assert earnings.tip == 20
    assert earnings.distance_bonus == 10
    assert earnings.priority_bonus == 15
    assert earnings.total == 120
    assert order.earnings == earnings


def test_peak_hour_adds_to_priority_bonus(make_order):
    order = make_order(delivery_fee=100, tip=20, distance=5, priority=Priority.HIGH)

    earnings = calculate_agent_earnings(order, datetime(2026, 3, 10, 13, 0))

    assert earnings.priority_bonus == 25
    assert earnings.total == 130


def test_uses_clock_when_no_time_given(make_order, frozen_clock):
    order = make_order()
    frozen_clock.set(datetime(2026, 3, 10, 20, 15))

    assert calculate_agent_earnings(order).total == 130


@pytest.mark.parametrize("hour, peak", [
    (11, False), (12, True), (14, True), (15, False),
    (18, False), (19, True), (22, True), (23, False),
])
def test_peak_windows(hour, peak):
    assert is_peak_hour(datetime(2026, 3, 10, hour, 59)) is peak


def test_short_distance_and_normal_priority(make_order):
    order = make_order(delivery_fee=40, tip=0, distance=2.5, priority=Priority.NORMAL)

    earnings = calculate_agent_earnings(order, datetime(2026, 3, 10, 9, 0))

    assert earnings.distance_bonus == 0
    assert earnings.priority_bonus == 0
    assert earnings.total == 30


def test_amounts_are_rounded(make_order):
    order = make_order(delivery_fee=33.33, tip=0, distance=3.34, priority=Priority.URGENT)

    earnings = calculate_agent_earnings(order, datetime(2026, 3, 10, 9, 0))

    assert earnings.delivery_fee == 25.0
    assert earnings.distance_bonus == 1.7
    assert earnings.priority_bonus == 30
    assert earnings.total == 56.7


def test_summary_recomputes_earnings_and_filters_requests(make_order, frozen_clock):
    order = make_order(special_requests=[
        SpecialRequest(type="contactless", description="Leave at door"),
        SpecialRequest(type="no_bell", is_active=False),
    ])
    update_status(order, "picked_up")
    frozen_clock.set(datetime(2026, 3, 10, 13, 0))

    summary = get_delivery_summary(order)

    assert summary.order_number == order.order_number
    assert summary.earnings.total == 130
    assert [r.type for r in summary.special_requests] == ["contactless"]
    assert summary.delivery_otp == order.tracking.delivery_otp
    assert summary.customer.phone == order.customer.phone
    assert summary.total_amount == order.pricing.total_amount
