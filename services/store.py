"""
Order and delivery-agent persistence on top of a db cursor.

Stores never open their own connection: they work on the cursor they are
given, so several writes made through one `get_cursor()` block commit or
fail together.

Orders are saved with optimistic concurrency. Each save only succeeds if
the stored version still matches the version the order was loaded with,
and bumps it by one.
"""

import sqlite3
from datetime import datetime

from models import AgentLocation, DeliveryAgent, Order
from services.errors import (
    AgentNotFoundError,
    ConcurrentModificationError,
    OrderNotFoundError,
    OrderNumberCollisionError,
    ValidationError,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class OrderStore:
    def __init__(self, cursor: sqlite3.Cursor):
        self.cursor = cursor

    def _projection(self, order: Order) -> tuple:
        return (
            order.order_number,
            order.status.current.value,
            order.assignment.delivery_agent,
            order.payment.status.value,
            order.customer.name,
            order.customer.phone,
            order.created_at.isoformat(),
            _iso(order.assignment.accepted_at),
            _iso(order.assignment.delivered_at),
        )

    def insert(self, order: Order):
        try:
            self.cursor.execute(
                """
                INSERT INTO orders
                (order_number, status, delivery_agent_id, payment_status, customer_name,
                 customer_phone, created_at, accepted_at, delivered_at, order_id, version, document)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._projection(order) + (order.order_id, order.version, order.model_dump_json()),
            )
        except sqlite3.IntegrityError as e:
            if "order_number" in str(e):
                raise OrderNumberCollisionError(f"Order number {order.order_number} already exists")
            raise

    def get(self, order_id: str) -> Order:
        self.cursor.execute("SELECT document FROM orders WHERE order_id = ?", (order_id,))
        row = self.cursor.fetchone()
        if not row:
            raise OrderNotFoundError(order_id)
        return Order.model_validate_json(row[0])

    def save(self, order: Order) -> Order:
        expected_version = order.version
        order.version = expected_version + 1
        self.cursor.execute(
            """
            UPDATE orders
            SET order_number = ?, status = ?, delivery_agent_id = ?, payment_status = ?,
                customer_name = ?, customer_phone = ?, created_at = ?, accepted_at = ?,
                delivered_at = ?, version = ?, document = ?
            WHERE order_id = ? AND version = ?
            """,
            self._projection(order) + (order.version, order.model_dump_json(), order.order_id, expected_version),
        )
        if self.cursor.rowcount == 0:
            order.version = expected_version
            self.cursor.execute("SELECT 1 FROM orders WHERE order_id = ?", (order.order_id,))
            if not self.cursor.fetchone():
                raise OrderNotFoundError(order.order_id)
            raise ConcurrentModificationError(
                f"Order {order.order_number} was modified by another request, reload and retry"
            )
        return order

    def find(
        self,
        where: str = "1=1",
        params: list | tuple = (),
        order_by: str = "created_at DESC",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Order]:
        query = f"SELECT document FROM orders WHERE {where} ORDER BY {order_by}"
        params = list(params)
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        self.cursor.execute(query, params)
        return [Order.model_validate_json(row[0]) for row in self.cursor.fetchall()]

    def count(self, where: str = "1=1", params: list | tuple = ()) -> int:
        self.cursor.execute(f"SELECT COUNT(*) FROM orders WHERE {where}", list(params))
        return self.cursor.fetchone()[0]


class AgentStore:
    def __init__(self, cursor: sqlite3.Cursor):
        self.cursor = cursor

    @staticmethod
    def _from_row(row: sqlite3.Row) -> DeliveryAgent:
        location = None
        if row["latitude"] is not None and row["longitude"] is not None:
            location = AgentLocation(
                latitude=row["latitude"],
                longitude=row["longitude"],
                last_updated=datetime.fromisoformat(row["location_updated_at"]),
            )
        return DeliveryAgent(
            agent_id=row["agent_id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            phone=row["phone"],
            vehicle_type=row["vehicle_type"],
            vehicle_number=row["vehicle_number"],
            delivery_zone=row["delivery_zone"],
            is_active=bool(row["is_active"]),
            is_online=bool(row["is_online"]),
            current_location=location,
            rating=row["rating"],
            rating_count=row["rating_count"],
            total_deliveries=row["total_deliveries"],
            completed_deliveries=row["completed_deliveries"],
            earnings_total=row["earnings_total"],
            earnings_this_month=row["earnings_this_month"],
            earnings_month=row["earnings_month"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def insert(self, agent: DeliveryAgent):
        location = agent.current_location
        try:
            self.cursor.execute(
                """
                INSERT INTO delivery_agents
                (agent_id, first_name, last_name, email, phone, vehicle_type, vehicle_number,
                 delivery_zone, is_active, is_online, latitude, longitude, location_updated_at,
                 rating, rating_count, total_deliveries, completed_deliveries,
                 earnings_total, earnings_this_month, earnings_month, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (agent.agent_id, agent.first_name, agent.last_name, agent.email, agent.phone,
                 agent.vehicle_type.value, agent.vehicle_number, agent.delivery_zone,
                 agent.is_active, agent.is_online,
                 location.latitude if location else None,
                 location.longitude if location else None,
                 _iso(location.last_updated) if location else None,
                 agent.rating, agent.rating_count, agent.total_deliveries, agent.completed_deliveries,
                 agent.earnings_total, agent.earnings_this_month, agent.earnings_month,
                 agent.created_at.isoformat()),
            )
        except sqlite3.IntegrityError:
            raise ValidationError("A delivery agent with this phone or email already exists")

    def get(self, agent_id: str) -> DeliveryAgent:
        self.cursor.execute("SELECT * FROM delivery_agents WHERE agent_id = ?", (agent_id,))
        row = self.cursor.fetchone()
        if not row:
            raise AgentNotFoundError(agent_id)
        return self._from_row(row)

    def list_agents(self, active_only: bool = False, limit: int = 20, offset: int = 0) -> list[DeliveryAgent]:
        query = "SELECT * FROM delivery_agents"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY rating DESC, created_at LIMIT ? OFFSET ?"
        self.cursor.execute(query, (limit, offset))
        return [self._from_row(row) for row in self.cursor.fetchall()]

    def credit_delivery(self, agent_id: str, amount: float, delivered_at: datetime) -> DeliveryAgent:
        """Count one completed delivery and add its earnings to the agent's totals.

        The sums are computed by SQLite against the stored row, so two
        deliveries settled at the same time both land in the totals.
        """
        self.get(agent_id)
        month = delivered_at.strftime("%Y-%m")

        # A delivery in a new month restarts the monthly counter
        self.cursor.execute(
            """
            UPDATE delivery_agents
            SET total_deliveries = total_deliveries + 1,
                completed_deliveries = completed_deliveries + 1,
                earnings_total = ROUND(earnings_total + ?, 2),
                earnings_this_month = CASE
                    WHEN earnings_month = ? THEN ROUND(earnings_this_month + ?, 2)
                    ELSE ROUND(?, 2)
                END,
                earnings_month = ?
            WHERE agent_id = ?
            """,
            (amount, month, amount, amount, month, agent_id),
        )
        return self.get(agent_id)

    def record_rating(self, agent_id: str, rating: int) -> DeliveryAgent:
        self.get(agent_id)
        # The default 5.0 is a placeholder until the first real rating arrives
        self.cursor.execute(
            """
            UPDATE delivery_agents
            SET rating = CASE
                    WHEN rating_count = 0 THEN ?
                    ELSE ROUND((rating * rating_count + ?) / (rating_count + 1.0), 2)
                END,
                rating_count = rating_count + 1
            WHERE agent_id = ?
            """,
            (float(rating), rating, agent_id),
        )
        return self.get(agent_id)

    def update_location(self, agent_id: str, latitude: float, longitude: float, at: datetime) -> DeliveryAgent:
        self.get(agent_id)
        self.cursor.execute(
            "UPDATE delivery_agents SET latitude = ?, longitude = ?, location_updated_at = ? WHERE agent_id = ?",
            (latitude, longitude, at.isoformat(), agent_id),
        )
        return self.get(agent_id)

    def set_online(self, agent_id: str, is_online: bool) -> DeliveryAgent:
        self.get(agent_id)
        self.cursor.execute(
            "UPDATE delivery_agents SET is_online = ? WHERE agent_id = ?",
            (is_online, agent_id),
        )
        return self.get(agent_id)

    def set_active(self, agent_id: str, is_active: bool) -> DeliveryAgent:
        self.get(agent_id)
        # A deactivated agent cannot stay online
        self.cursor.execute(
            "UPDATE delivery_agents SET is_active = ?, is_online = CASE WHEN ? THEN is_online ELSE 0 END "
            "WHERE agent_id = ?",
            (is_active, is_active, agent_id),
        )
        return self.get(agent_id)

    def set_zone(self, agent_id: str, delivery_zone: str) -> DeliveryAgent:
        self.get(agent_id)
        self.cursor.execute(
            "UPDATE delivery_agents SET delivery_zone = ? WHERE agent_id = ?",
            (delivery_zone, agent_id),
        )
        return self.get(agent_id)

    def count(self, active_only: bool = False) -> int:
        query = "SELECT COUNT(*) FROM delivery_agents"
        if active_only:
            query += " WHERE is_active = 1"
        self.cursor.execute(query)
        return self.cursor.fetchone()[0]
