"""
Earnings Calculator - a delivery agent's payout for one order

    delivery_fee   = 75% of the order's delivery fee (platform keeps 25%)
    tip            = passed through in full
    distance_bonus = 5 per km beyond the first 3 km
    priority_bonus = 0 normal / 15 high / 30 urgent,
                     plus 10 when calculated during a peak window

Peak windows are 12:00-14:59 and 19:00-22:59 local time (hours 12-14 and
19-22 inclusive). The bonus depends on the time of calculation, not on when
the order was placed, so two calls at different times can disagree.
"""

from datetime import datetime

from models import EarningsBreakdown, Order, Priority
from services import clock

AGENT_FEE_SHARE = 0.75
FREE_DISTANCE_KM = 3.0
DISTANCE_BONUS_PER_KM = 5.0

PRIORITY_BONUS = {
    Priority.NORMAL: 0.0,
    Priority.HIGH: 15.0,
    Priority.URGENT: 30.0,
}

PEAK_WINDOWS = [(12, 14), (19, 22)]
PEAK_HOUR_BONUS = 10.0


def is_peak_hour(moment: datetime) -> bool:
    return any(start <= moment.hour <= end for start, end in PEAK_WINDOWS)


def calculate_agent_earnings(order: Order, now: datetime | None = None) -> EarningsBreakdown:
    """Compute the payout breakdown and store it on `order.earnings`."""
    now = now or clock.now()

    base_delivery_fee = order.pricing.delivery_fee * AGENT_FEE_SHARE
    tip_amount = order.pricing.tip
    distance_bonus = max(0.0, order.delivery_info.distance - FREE_DISTANCE_KM) * DISTANCE_BONUS_PER_KM
    priority_bonus = PRIORITY_BONUS[order.delivery_info.priority]
    time_bonus = PEAK_HOUR_BONUS if is_peak_hour(now) else 0.0

    total = base_delivery_fee + tip_amount + distance_bonus + priority_bonus + time_bonus

    order.earnings = EarningsBreakdown(
        delivery_fee=round(base_delivery_fee, 2),
        tip=round(tip_amount, 2),
        distance_bonus=round(distance_bonus, 2),
        priority_bonus=round(priority_bonus + time_bonus, 2),
        total=round(total, 2),
    )
    return order.earnings
