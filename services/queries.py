"""
Agent Query Layer - read-side lookups for dispatch and agent apps.
"""

from datetime import datetime, timedelta

from config import settings
from db import get_cursor
from generators.geofence import haversine_distance
from models import Coordinates, Order, OrderStatus
from services import clock
from services.errors import ValidationError
from services.store import OrderStore
from services.timeline import ACTIVE_STATES

EARNINGS_PERIODS = ("today", "week", "month")


def _within_reach(order: Order, agent_location: Coordinates, max_distance: float) -> bool:
    pickup = order.restaurant.address.coordinates
    distance = haversine_distance(
        agent_location.latitude, agent_location.longitude,
        pickup.latitude, pickup.longitude,
    )
    return distance <= max_distance


def find_available_orders(
    agent_location: Coordinates | None = None,
    max_distance: float = 10,
    agent_id: str | None = None,
) -> list[Order]:
    """Pending, unassigned orders, oldest first.

    Orders `agent_id` already rejected are not offered again. The distance
    filter only applies when GEOFENCE_AVAILABLE_ORDERS is enabled; by
    default `agent_location` and `max_distance` are accepted and ignored.
    Candidates are read a page at a time until the result is full.
    """
    geofence = settings.GEOFENCE_AVAILABLE_ORDERS and agent_location is not None
    cap = settings.AVAILABLE_ORDERS_LIMIT
    available = []

    with get_cursor() as cursor:
        store = OrderStore(cursor)
        offset = 0
        while len(available) < cap:
            page = store.find(
                "status = ? AND delivery_agent_id IS NULL",
                (OrderStatus.PENDING.value,),
                order_by="created_at ASC, rowid ASC",
                limit=cap,
                offset=offset,
            )
            for order in page:
                if agent_id and any(r.agent_id == str(agent_id) for r in order.assignment.rejected_by):
                    continue
                if geofence and not _within_reach(order, agent_location, max_distance):
                    continue
                available.append(order)
                if len(available) >= cap:
                    break
            if len(page) < cap:
                break
            offset += cap
    return available


def get_agent_active_orders(agent_id: str) -> list[Order]:
    placeholders = ",".join("?" * len(ACTIVE_STATES))
    with get_cursor() as cursor:
        return OrderStore(cursor).find(
            f"delivery_agent_id = ? AND status IN ({placeholders})",
            [str(agent_id)] + [s.value for s in ACTIVE_STATES],
            order_by="accepted_at ASC",
        )


def get_agent_order_history(agent_id: str, limit: int = 50) -> list[Order]:
    with get_cursor() as cursor:
        return OrderStore(cursor).find(
            "delivery_agent_id = ? AND status IN (?, ?)",
            (str(agent_id), OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value),
            order_by="delivered_at DESC, created_at DESC",
            limit=limit,
        )


def period_start(period: str, now: datetime) -> datetime:
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "today":
        return midnight
    if period == "week":
        return midnight - timedelta(days=midnight.weekday())
    if period == "month":
        return midnight.replace(day=1)
    raise ValidationError(f"Invalid period: {period}. Use one of {', '.join(EARNINGS_PERIODS)}")


def get_agent_earnings(agent_id: str, period: str = "today", now: datetime | None = None) -> dict:
    """Sum the stored earnings of the agent's deliveries since the start of `period`."""
    now = now or clock.now()
    since = period_start(period, now)

    with get_cursor() as cursor:
        orders = OrderStore(cursor).find(
            "delivery_agent_id = ? AND status = ? AND delivered_at >= ?",
            (str(agent_id), OrderStatus.DELIVERED.value, since.isoformat()),
            order_by="delivered_at DESC",
        )

    totals = {"delivery_fee": 0.0, "tip": 0.0, "distance_bonus": 0.0, "priority_bonus": 0.0, "total": 0.0}
    for order in orders:
        for key in totals:
            totals[key] += getattr(order.earnings, key)

    return {
        "period": period,
        "since": since.isoformat(),
        "deliveries": len(orders),
        **{key: round(value, 2) for key, value in totals.items()},
    }


def list_orders(
    status: str | None = None,
    payment_status: str | None = None,
    search: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Order], int]:
    """Admin order listing, newest first. Returns (page of orders, total matches)."""
    conditions = []
    params = []

    if status:
        conditions.append("status = ?")
        params.append(status)
    if payment_status:
        conditions.append("payment_status = ?")
        params.append(payment_status)
    if search:
        conditions.append("(order_number LIKE ? OR customer_name LIKE ? OR customer_phone LIKE ?)")
        params.extend([f"%{search}%"] * 3)
    if start_date and end_date:
        conditions.append("created_at >= ? AND created_at <= ?")
        params.extend([start_date.isoformat(), end_date.isoformat()])

    where = " AND ".join(conditions) or "1=1"
    with get_cursor() as cursor:
        store = OrderStore(cursor)
        total = store.count(where, params)
        orders = store.find(where, params, order_by="created_at DESC", limit=limit, offset=(page - 1) * limit)
    return orders, total
