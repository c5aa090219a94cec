"""
Dispatch Service

Transactional entry point for every order mutation. Each public method
loads the order, applies one protocol step, and saves the result inside a
single db transaction. Saves are version-checked, so two requests racing on
the same order cannot both win. A delivery and the agent credit it earns are
written in the same transaction.
"""

import random
import uuid

from db import get_cursor
from models import (
    Actor,
    AgentLocation,
    Coordinates,
    DeliveryAgent,
    Feedback,
    Order,
    OrderDraft,
    OrderStatus,
    Payment,
    StatusInfo,
    TimelineEntry,
)
from services import clock
from services.assignment import accept_by_agent, assign_agent, cancel_order, is_assigned_to, reject_by_agent
from services.earnings import calculate_agent_earnings
from services.errors import (
    AgentNotAuthorizedError,
    AgentUnavailableError,
    OrderNumberCollisionError,
    ValidationError,
)
from services.store import AgentStore, OrderStore
from services.summary import DeliverySummary, get_delivery_summary
from services.timeline import parse_status, update_status

ORDER_NUMBER_PREFIX = "GJD"
ORDER_NUMBER_MAX_RETRIES = 5

# Statuses a delivery agent may set on their own order
AGENT_SETTABLE_STATUSES = {
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
}

LIVE_TRACKING_STATUSES = {OrderStatus.PICKED_UP, OrderStatus.IN_TRANSIT}


def generate_order_number() -> str:
    return f"{ORDER_NUMBER_PREFIX}{random.randint(100000, 999999)}"


class DispatchService:
    """
    Parameters:
    -----------
    policy : str | None
        Transition policy ("permissive" or "strict"). None uses
        settings.TRANSITION_POLICY.
    """

    def __init__(self, policy: str | None = None):
        self.policy = policy

    # -------------------------------------------------------------------------
    # Creation & lookup
    # -------------------------------------------------------------------------

    def _build_order(self, draft: OrderDraft, created_by: Actor) -> Order:
        now = clock.now()
        order = Order(
            order_id=str(uuid.uuid4()),
            order_number=generate_order_number(),
            customer=draft.customer,
            restaurant=draft.restaurant,
            items=draft.items,
            pricing=draft.pricing,
            delivery_info=draft.delivery_info,
            status=StatusInfo(
                current=OrderStatus.PENDING,
                timeline=[TimelineEntry(
                    status=OrderStatus.PENDING,
                    timestamp=now,
                    notes="Order placed",
                    updated_by=created_by,
                )],
            ),
            payment=Payment(method=draft.payment_method),
            special_requests=draft.special_requests,
            created_at=now,
            updated_at=now,
        )
        calculate_agent_earnings(order, now)
        return order

    def create_order(self, draft: OrderDraft, created_by: Actor = Actor.CUSTOMER) -> Order:
        """Store a new pending, unassigned order under a fresh order number."""
        for _ in range(ORDER_NUMBER_MAX_RETRIES):
            order = self._build_order(draft, created_by)
            try:
                with get_cursor() as cursor:
                    OrderStore(cursor).insert(order)
            except OrderNumberCollisionError:
                continue
            print(f"[{order.created_at.strftime('%H:%M:%S')}] Created order {order.order_number} "
                  f"(total {order.pricing.total_amount:.2f})")
            return order
        raise OrderNumberCollisionError("Could not allocate a unique order number, try again")

    def get_order(self, order_id: str) -> Order:
        with get_cursor() as cursor:
            return OrderStore(cursor).get(order_id)

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    def _settle_delivery(self, order: Order, agents: AgentStore):
        """Recompute earnings on delivery and credit the agent exactly once."""
        now = clock.now()
        earnings = calculate_agent_earnings(order, now)
        agent_id = order.assignment.delivery_agent
        if agent_id is None or order.assignment.earnings_credited_at is not None:
            return
        agent = agents.credit_delivery(agent_id, earnings.total, order.assignment.delivered_at or now)
        order.assignment.earnings_credited_at = now
        print(f"[{now.strftime('%H:%M:%S')}] Credited {earnings.total:.2f} to agent {agent_id[:8]}... "
              f"(total {agent.earnings_total:.2f}, {agent.completed_deliveries} deliveries)")

    def _transition(
        self,
        cursor,
        order: Order,
        new_status: OrderStatus,
        location: Coordinates | None,
        notes: str,
        updated_by: Actor,
    ) -> Order:
        update_status(order, new_status, location, notes, updated_by, self.policy)
        if new_status == OrderStatus.DELIVERED:
            self._settle_delivery(order, AgentStore(cursor))
        return OrderStore(cursor).save(order)

    def update_status(
        self,
        order_id: str,
        new_status: str | OrderStatus,
        location: Coordinates | None = None,
        notes: str = "",
        updated_by: str | Actor = Actor.SYSTEM,
    ) -> Order:
        new_status = parse_status(new_status)
        with get_cursor() as cursor:
            order = OrderStore(cursor).get(order_id)
            return self._transition(cursor, order, new_status, location, notes, updated_by)

    def agent_update_status(
        self,
        order_id: str,
        agent_id: str,
        new_status: str | OrderStatus,
        location: Coordinates | None = None,
        notes: str = "",
    ) -> Order:
        new_status = parse_status(new_status)
        if new_status not in AGENT_SETTABLE_STATUSES:
            raise ValidationError(f"Delivery agents cannot set status {new_status.value}")
        with get_cursor() as cursor:
            order = OrderStore(cursor).get(order_id)
            if not is_assigned_to(order, agent_id):
                raise AgentNotAuthorizedError("Agent not authorized to update this order")
            if location is not None:
                order.tracking.agent_location = self._agent_location(location)
            return self._transition(cursor, order, new_status, location, notes, Actor.DELIVERY_AGENT)

    # -------------------------------------------------------------------------
    # Assignment protocol
    # -------------------------------------------------------------------------

    def assign_agent(self, order_id: str, agent_id: str) -> Order:
        with get_cursor() as cursor:
            agent = AgentStore(cursor).get(agent_id)
            if not agent.is_active:
                raise AgentUnavailableError("Delivery agent is not active")
            orders = OrderStore(cursor)
            order = orders.get(order_id)
            assign_agent(order, agent.agent_id, self.policy)
            orders.save(order)
        print(f"[{order.updated_at.strftime('%H:%M:%S')}] Assigned order {order.order_number} "
              f"to {agent.full_name}")
        return order

    def accept_order(self, order_id: str, agent_id: str, location: Coordinates | None = None) -> Order:
        with get_cursor() as cursor:
            orders = OrderStore(cursor)
            order = orders.get(order_id)
            accept_by_agent(order, agent_id, location, self.policy)
            return orders.save(order)

    def reject_order(self, order_id: str, agent_id: str, reason: str = "") -> Order:
        with get_cursor() as cursor:
            orders = OrderStore(cursor)
            order = orders.get(order_id)
            reject_by_agent(order, agent_id, reason, self.policy)
            return orders.save(order)

    def cancel_order(self, order_id: str, reason: str, cancelled_by: str, refund_amount: float = 0) -> Order:
        with get_cursor() as cursor:
            orders = OrderStore(cursor)
            order = orders.get(order_id)
            cancel_order(order, reason, cancelled_by, refund_amount, self.policy)
            return orders.save(order)

    def agent_cancel_order(self, order_id: str, agent_id: str, reason: str) -> Order:
        with get_cursor() as cursor:
            orders = OrderStore(cursor)
            order = orders.get(order_id)
            if not is_assigned_to(order, agent_id):
                raise AgentNotAuthorizedError("Agent not authorized to cancel this order")
            cancel_order(order, reason, Actor.DELIVERY_AGENT.value, 0, self.policy)
            return orders.save(order)

    # -------------------------------------------------------------------------
    # Post-delivery & tracking
    # -------------------------------------------------------------------------

    def submit_feedback(self, order_id: str, feedback: Feedback) -> Order:
        """Attach customer feedback to a delivered order, once."""
        with get_cursor() as cursor:
            orders = OrderStore(cursor)
            order = orders.get(order_id)
            if order.status.current != OrderStatus.DELIVERED:
                raise ValidationError("Feedback can only be submitted for delivered orders")
            if order.feedback is not None:
                raise ValidationError("Feedback already submitted for this order")

            order.feedback = feedback.model_copy(update={"submitted_at": clock.now()})
            if feedback.delivery_rating is not None and order.assignment.delivery_agent:
                AgentStore(cursor).record_rating(order.assignment.delivery_agent, feedback.delivery_rating)
            return orders.save(order)

    @staticmethod
    def _agent_location(location: Coordinates) -> AgentLocation:
        return AgentLocation(latitude=location.latitude, longitude=location.longitude, last_updated=clock.now())

    def update_agent_location(self, agent_id: str, location: Coordinates) -> DeliveryAgent:
        """Move the agent and refresh live tracking on orders they are carrying."""
        now = clock.now()
        with get_cursor() as cursor:
            agent = AgentStore(cursor).update_location(agent_id, location.latitude, location.longitude, now)
            orders = OrderStore(cursor)
            placeholders = ",".join("?" * len(LIVE_TRACKING_STATUSES))
            carrying = orders.find(
                f"delivery_agent_id = ? AND status IN ({placeholders})",
                [str(agent_id)] + [s.value for s in LIVE_TRACKING_STATUSES],
            )
            for order in carrying:
                order.tracking.agent_location = agent.current_location
                order.updated_at = now
                orders.save(order)
        return agent

    def get_delivery_summary(self, order_id: str, agent_id: str | None = None) -> DeliverySummary:
        order = self.get_order(order_id)
        if agent_id is not None and order.assignment.delivery_agent is not None \
                and not is_assigned_to(order, agent_id):
            raise AgentNotAuthorizedError("Agent not authorized to view this order")
        return get_delivery_summary(order)
