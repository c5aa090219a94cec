"""
Status Timeline Engine

Every change of `status.current` goes through `update_status`, which pairs
it with a timestamped, attributable entry appended to `status.timeline`.
The timeline is append-only: entries are never edited or removed.

Which transitions are allowed depends on the configured policy:
- permissive: any status may follow any other, sequencing is the caller's job
- strict: only the edges listed in VALID_TRANSITIONS are accepted
"""

import random
from enum import Enum

from config import settings
from models import Actor, Coordinates, Order, OrderStatus, TimelineEntry
from services import clock
from services.errors import InvalidTransitionError, ValidationError


class TransitionPolicy(str, Enum):
    PERMISSIVE = "permissive"
    STRICT = "strict"


VALID_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.PICKED_UP,
        OrderStatus.PENDING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.READY_FOR_PICKUP: {OrderStatus.PICKED_UP, OrderStatus.CANCELLED},
    OrderStatus.PICKED_UP: {OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

ACTIVE_STATES = [
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_TRANSIT,
]


def resolve_policy(policy: str | TransitionPolicy | None = None) -> TransitionPolicy:
    try:
        return TransitionPolicy(policy or settings.TRANSITION_POLICY)
    except ValueError:
        raise ValidationError(f"Unknown transition policy: {policy or settings.TRANSITION_POLICY}")


def parse_status(value: str | OrderStatus) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid order status: {value}")


def check_transition(current: OrderStatus, new_status: OrderStatus, policy=None):
    """Raise InvalidTransitionError if the policy forbids current -> new_status."""
    if resolve_policy(policy) == TransitionPolicy.STRICT:
        if new_status not in VALID_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Cannot change order status from {current.value} to {new_status.value}"
            )


def generate_delivery_otp() -> str:
    return str(random.randint(1000, 9999))


def update_status(
    order: Order,
    new_status: str | OrderStatus,
    location: Coordinates | None = None,
    notes: str = "",
    updated_by: str | Actor = Actor.SYSTEM,
    policy=None,
) -> Order:
    """Move `order` to `new_status` and record it on the timeline.

    Entering picked_up stamps `assignment.picked_up_at` and issues the
    delivery OTP if the order has none yet. Entering delivered stamps both
    `assignment.delivered_at` and `assignment.actual_delivery_time`.

    The order is mutated in place and returned; persisting it is up to the
    caller (see DispatchService).
    """
    new_status = parse_status(new_status)
    try:
        updated_by = Actor(updated_by)
    except ValueError:
        raise ValidationError(f"Invalid actor: {updated_by}")
    check_transition(order.status.current, new_status, policy)

    now = clock.now()
    order.status.current = new_status
    order.status.timeline.append(TimelineEntry(
        status=new_status,
        timestamp=now,
        location=location,
        notes=notes or "",
        updated_by=updated_by,
    ))

    if new_status == OrderStatus.PICKED_UP:
        order.assignment.picked_up_at = now
        if not order.tracking.delivery_otp:
            order.tracking.delivery_otp = generate_delivery_otp()
    elif new_status == OrderStatus.DELIVERED:
        order.assignment.delivered_at = now
        order.assignment.actual_delivery_time = now

    order.updated_at = now
    print(f"[{now.strftime('%H:%M:%S')}] Order {order.order_number} -> {new_status.value} ({updated_by.value})")
    return order
