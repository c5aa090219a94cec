import itertools
import uuid
from datetime import datetime, timedelta

import pytest

import db
from config import settings
from db import get_cursor
from models import (
    Actor,
    Address,
    Coordinates,
    CustomerSnapshot,
    DeliveryAgent,
    DeliveryInfo,
    MerchantAddress,
    Order,
    OrderDraft,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    Pricing,
    Priority,
    RestaurantSnapshot,
    SpecialRequest,
    StatusInfo,
    TimelineEntry,
    VehicleType,
)
from services import DispatchService, clock
from services.store import AgentStore

# Tuesday mid-morning, outside both peak windows
OFF_PEAK = datetime(2026, 3, 10, 10, 0, 0)

_phones = itertools.count(9000000000)


class FrozenClock:
    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, moment: datetime):
        self.moment = moment

    def advance(self, **kwargs):
        self.moment += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DATABASE_PATH", tmp_path / "orders.db")
    db.init_database()
    return db.DATABASE_PATH


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch):
    frozen = FrozenClock(OFF_PEAK)
    monkeypatch.setattr(clock, "now", frozen)
    return frozen


@pytest.fixture
def strict_policy(monkeypatch):
    monkeypatch.setattr(settings, "TRANSITION_POLICY", "strict")


@pytest.fixture
def dispatch():
    return DispatchService()


def build_draft(
    delivery_fee: float = 100.0,
    tip: float = 20.0,
    distance: float = 5.0,
    priority: Priority = Priority.HIGH,
    customer_name: str = "Asha Rao",
    customer_phone: str = "9876543210",
    restaurant_at: tuple[float, float] = (12.9716, 77.5946),
    special_requests: list[SpecialRequest] | None = None,
) -> OrderDraft:
    items_total = 480.0
    return OrderDraft(
        customer=CustomerSnapshot(
            name=customer_name,
            phone=customer_phone,
            address=Address(
                street="14 MG Road",
                city="Bengaluru",
                state="Karnataka",
                zip_code="560001",
                coordinates=Coordinates(latitude=12.9750, longitude=77.6050),
            ),
        ),
        restaurant=RestaurantSnapshot(
            name="Fresh Mart",
            phone="8012345678",
            address=MerchantAddress(
                street="2 Brigade Road",
                city="Bengaluru",
                state="Karnataka",
                zip_code="560025",
                coordinates=Coordinates(latitude=restaurant_at[0], longitude=restaurant_at[1]),
            ),
        ),
        items=[
            OrderItem(name="Basmati Rice 1kg", quantity=2, price=165.0, category="staples"),
            OrderItem(name="Paneer 200g", quantity=1, price=90.0, category="dairy"),
            OrderItem(name="Toned Milk 1L", quantity=1, price=60.0, category="dairy"),
        ],
        pricing=Pricing(
            items_total=items_total,
            delivery_fee=delivery_fee,
            tip=tip,
            total_amount=items_total + delivery_fee + tip,
        ),
        delivery_info=DeliveryInfo(estimated_time=30, distance=distance, priority=priority),
        payment_method=PaymentMethod.UPI,
        special_requests=special_requests or [],
    )


@pytest.fixture
def make_order():
    """In-memory pending order, never stored."""
    def build(**kwargs) -> Order:
        draft = build_draft(**kwargs)
        now = clock.now()
        return Order(
            order_id=str(uuid.uuid4()),
            order_number="GJD123456",
            customer=draft.customer,
            restaurant=draft.restaurant,
            items=draft.items,
            pricing=draft.pricing,
            delivery_info=draft.delivery_info,
            status=StatusInfo(timeline=[TimelineEntry(
                status=OrderStatus.PENDING, timestamp=now, notes="Order placed", updated_by=Actor.CUSTOMER,
            )]),
            payment=Payment(method=draft.payment_method),
            special_requests=draft.special_requests,
            created_at=now,
            updated_at=now,
        )
    return build


@pytest.fixture
def order_factory(dispatch):
    """Stored pending order created through the dispatch service."""
    def create(**kwargs) -> Order:
        return dispatch.create_order(build_draft(**kwargs))
    return create


@pytest.fixture
def agent_factory():
    def create(**overrides) -> DeliveryAgent:
        fields = {
            "agent_id": str(uuid.uuid4()),
            "first_name": "Ravi",
            "last_name": "Kumar",
            "phone": str(next(_phones)),
            "vehicle_type": VehicleType.BIKE,
            "vehicle_number": "KA01AB1234",
            "delivery_zone": "Bengaluru",
            "created_at": clock.now(),
        }
        fields.update(overrides)
        agent = DeliveryAgent(**fields)
        with get_cursor() as cursor:
            AgentStore(cursor).insert(agent)
        return agent
    return create


@pytest.fixture
def load_agent():
    def load(agent_id: str) -> DeliveryAgent:
        with get_cursor() as cursor:
            return AgentStore(cursor).get(agent_id)
    return load


@pytest.fixture
def draft_factory():
    return build_draft
