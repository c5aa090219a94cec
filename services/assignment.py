"""
Assignment & Acceptance Protocol

    unassigned -> assigned -> accepted -> picked_up -> delivered
         ^            |
         +-- rejected +            cancelled is reachable from any non-terminal state

All checks run before the order is touched, so a refused call leaves the
order exactly as it was.
"""

from datetime import timedelta

from models import Actor, Cancellation, CancelledBy, Coordinates, Order, OrderStatus, Rejection, RefundStatus
from services import clock
from services.errors import AgentNotAuthorizedError, OrderTerminalError, ValidationError
from services.timeline import TERMINAL_STATES, check_transition, update_status


def _ensure_not_terminal(order: Order):
    if order.status.current in TERMINAL_STATES:
        raise OrderTerminalError(f"Order is already {order.status.current.value}")


def is_assigned_to(order: Order, agent_id: str) -> bool:
    assigned = order.assignment.delivery_agent
    return assigned is not None and str(assigned) == str(agent_id)


def assign_agent(order: Order, agent_id: str, policy=None) -> Order:
    """Bind `agent_id` to the order. Overwrites any previous assignment."""
    _ensure_not_terminal(order)
    check_transition(order.status.current, OrderStatus.CONFIRMED, policy)

    now = clock.now()
    order.assignment.delivery_agent = str(agent_id)
    order.assignment.assigned_at = now
    order.assignment.estimated_delivery_time = now + timedelta(minutes=order.delivery_info.estimated_time)
    return update_status(order, OrderStatus.CONFIRMED, None, "Order assigned to delivery agent", Actor.SYSTEM, policy)


def accept_by_agent(order: Order, agent_id: str, location: Coordinates | None = None, policy=None) -> Order:
    if not is_assigned_to(order, agent_id):
        raise AgentNotAuthorizedError("Agent not authorized to accept this order")
    _ensure_not_terminal(order)
    check_transition(order.status.current, OrderStatus.PREPARING, policy)

    order.assignment.accepted_at = clock.now()
    return update_status(
        order, OrderStatus.PREPARING, location, "Order accepted by delivery agent", Actor.DELIVERY_AGENT, policy
    )


def reject_by_agent(order: Order, agent_id: str, reason: str = "", policy=None) -> Order:
    """Decline the order and return it to the unassigned pool.

    An agent may reject an order assigned to them or an unassigned order
    offered to them. The rejection is kept in `assignment.rejected_by`
    for good.
    """
    if order.assignment.delivery_agent is not None and not is_assigned_to(order, agent_id):
        raise AgentNotAuthorizedError("Agent not authorized to reject this order")
    _ensure_not_terminal(order)
    check_transition(order.status.current, OrderStatus.PENDING, policy)

    order.assignment.rejected_by.append(Rejection(
        agent_id=str(agent_id),
        rejected_at=clock.now(),
        reason=reason or "",
    ))
    order.assignment.delivery_agent = None
    order.assignment.assigned_at = None
    return update_status(order, OrderStatus.PENDING, None, f"Order rejected: {reason}", Actor.DELIVERY_AGENT, policy)


def cancel_order(
    order: Order,
    reason: str,
    cancelled_by: str | CancelledBy,
    refund_amount: float = 0,
    policy=None,
) -> Order:
    try:
        cancelled_by = CancelledBy(cancelled_by)
    except ValueError:
        raise ValidationError(f"Invalid cancellation actor: {cancelled_by}")
    if refund_amount < 0:
        raise ValidationError("Refund amount cannot be negative")
    if refund_amount > order.pricing.total_amount:
        raise ValidationError("Refund amount cannot exceed the order total")
    _ensure_not_terminal(order)
    check_transition(order.status.current, OrderStatus.CANCELLED, policy)

    order.cancellation = Cancellation(
        reason=reason or "",
        cancelled_by=cancelled_by,
        cancelled_at=clock.now(),
        refund_amount=refund_amount,
        refund_status=RefundStatus.PENDING if refund_amount > 0 else RefundStatus.NOT_APPLICABLE,
    )
    return update_status(
        order,
        OrderStatus.CANCELLED,
        None,
        f"Cancelled by {cancelled_by.value}: {reason}",
        Actor(cancelled_by.value),
        policy,
    )
