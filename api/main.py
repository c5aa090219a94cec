"""
Grocery Delivery Order API

Order lifecycle and delivery-agent dispatch service with:
- Admin order management (create, list, status, assign, cancel)
- Delivery agent onboarding and stats
- Agent app endpoints (available orders, accept/reject, status, earnings)
- Customer feedback on delivered orders
"""

from fastapi import FastAPI, Depends, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime
import uuid

from config import settings
from db import init_database, get_table_counts, get_cursor
from generators import AgentGenerator, OrderGenerator
from models import Actor, CancelledBy, Coordinates, DeliveryAgent, Feedback, OrderDraft
from services import (
    AgentNotFoundError,
    DispatchError,
    DispatchService,
    NotAuthenticatedError,
    PermissionDeniedError,
)
from services.queries import (
    find_available_orders,
    get_agent_active_orders,
    get_agent_earnings,
    get_agent_order_history,
    list_orders,
)
from services.store import AgentStore, OrderStore
from api.models import (
    AcceptRequest,
    AgentCancelRequest,
    AgentCreate,
    AgentStatusUpdate,
    AgentZoneUpdate,
    AssignRequest,
    CancelRequest,
    FeedbackRequest,
    GenerationResponse,
    OnlineStatus,
    Pagination,
    RejectRequest,
    StatsResponse,
    StatusUpdate,
)

ADMIN_ROLES = ("super_admin", "admin", "delivery_manager")
CANCEL_ROLES = ("super_admin", "admin")

dispatch = DispatchService()


def _log(message: str):
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {message}")


def seed_demo_data(agents: int = 10, orders: int = 20):
    agent_gen = AgentGenerator(seed=None)
    agent_gen.save_to_db(agent_gen.generate_batch(agents))
    order_gen = OrderGenerator(seed=None)
    order_gen.save_to_db(order_gen.generate_batch(orders))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    print("🚀 Starting Grocery Delivery Order API...")
    init_database(reset=False)

    counts = get_table_counts()
    if settings.SEED_DEMO_DATA and counts.get("orders", 0) == 0:
        print("📦 Seeding demo agents and orders...")
        seed_demo_data()

    print(f"✅ API ready! (transition policy: {settings.TRANSITION_POLICY})")
    yield
    print("👋 Shutting down...")


app = FastAPI(
    title="Grocery Delivery Order API",
    description="Order lifecycle and delivery agent dispatch",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    _log(f"Error handling {request.method} {request.url.path}: {exc!r}")
    return JSONResponse(status_code=500, content={"success": False, "message": "Server error"})


# =============================================================================
# Caller identity
# =============================================================================

def require_role(*roles: str):
    async def check_role(x_admin_role: str | None = Header(default=None)) -> str:
        if x_admin_role not in roles:
            raise PermissionDeniedError("Not authorized for this action")
        return x_admin_role
    return check_role


async def current_agent(x_agent_id: str | None = Header(default=None)) -> DeliveryAgent:
    if not x_agent_id:
        raise NotAuthenticatedError("Missing X-Agent-Id header")
    try:
        with get_cursor() as cursor:
            return AgentStore(cursor).get(x_agent_id)
    except AgentNotFoundError:
        raise NotAuthenticatedError("Unknown delivery agent")


admin_access = Depends(require_role(*ADMIN_ROLES))


def _dump(records) -> list[dict]:
    return [r.model_dump(mode="json") for r in records]


# =============================================================================
# Health & Status
# =============================================================================

@app.get("/", tags=["Health"])
async def root():
    return {"status": "ok", "service": "grocery-delivery-orders"}


@app.get("/stats", response_model=StatsResponse, tags=["Health"])
async def get_stats():
    """Get current database statistics."""
    counts = get_table_counts()
    with get_cursor() as cursor:
        cursor.execute("SELECT status, COUNT(*) FROM orders GROUP BY status")
        by_status = {row[0]: row[1] for row in cursor.fetchall()}
    return StatsResponse(
        delivery_agents=counts.get("delivery_agents", 0),
        orders=counts.get("orders", 0),
        orders_by_status=by_status,
    )


# =============================================================================
# Admin: Orders
# =============================================================================

@app.post("/admin/orders", status_code=201, tags=["Admin Orders"], dependencies=[admin_access])
async def create_order(draft: OrderDraft):
    order = dispatch.create_order(draft, created_by=Actor.ADMIN)
    return {"success": True, "message": "Order created successfully", "order": order.model_dump(mode="json")}


@app.post("/admin/orders/generate", response_model=GenerationResponse, tags=["Admin Orders"],
          dependencies=[admin_access])
async def generate_orders(count: int = Query(default=1, ge=1, le=100)):
    """Generate random orders on demand."""
    order_gen = OrderGenerator(seed=None)
    orders = order_gen.save_to_db(order_gen.generate_batch(count))
    return GenerationResponse(entity="orders", count=len(orders), ids=[o.order_id for o in orders])


@app.get("/admin/orders", tags=["Admin Orders"], dependencies=[admin_access])
async def get_orders(
    status: str | None = None,
    payment_status: str | None = None,
    search: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
):
    """List orders, newest first, with filters and pagination."""
    orders, total = list_orders(status, payment_status, search, start_date, end_date, page, limit)
    return {
        "success": True,
        "orders": _dump(orders),
        "pagination": Pagination.build(total, page, limit).model_dump(),
    }


@app.get("/admin/orders/{order_id}", tags=["Admin Orders"], dependencies=[admin_access])
async def get_order(order_id: str):
    return {"success": True, "order": dispatch.get_order(order_id).model_dump(mode="json")}


@app.put("/admin/orders/{order_id}/status", tags=["Admin Orders"], dependencies=[admin_access])
async def update_order_status(order_id: str, body: StatusUpdate):
    order = dispatch.update_status(order_id, body.status, body.location, body.notes, Actor.ADMIN)
    return {"success": True, "message": "Order status updated successfully", "order": order.model_dump(mode="json")}


@app.put("/admin/orders/{order_id}/assign", tags=["Admin Orders"], dependencies=[admin_access])
async def assign_order(order_id: str, body: AssignRequest):
    order = dispatch.assign_agent(order_id, body.agent_id)
    return {"success": True, "message": "Delivery agent assigned successfully", "order": order.model_dump(mode="json")}


@app.put("/admin/orders/{order_id}/cancel", tags=["Admin Orders"],
         dependencies=[Depends(require_role(*CANCEL_ROLES))])
async def cancel_order(order_id: str, body: CancelRequest):
    order = dispatch.cancel_order(order_id, body.reason, CancelledBy.ADMIN.value, body.refund_amount)
    return {"success": True, "message": "Order cancelled successfully", "order": order.model_dump(mode="json")}


# =============================================================================
# Admin: Delivery Agents
# =============================================================================

@app.post("/admin/agents", status_code=201, tags=["Admin Agents"], dependencies=[admin_access])
async def create_agent(body: AgentCreate):
    agent = DeliveryAgent(agent_id=str(uuid.uuid4()), created_at=datetime.now(), **body.model_dump())
    with get_cursor() as cursor:
        AgentStore(cursor).insert(agent)
    _log(f"Onboarded delivery agent {agent.full_name} ({agent.vehicle_type.value})")
    return {"success": True, "message": "Delivery agent created successfully", "agent": agent.model_dump(mode="json")}


@app.get("/admin/agents", tags=["Admin Agents"], dependencies=[admin_access])
async def list_agents(
    active_only: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    with get_cursor() as cursor:
        store = AgentStore(cursor)
        agents = store.list_agents(active_only, limit, (page - 1) * limit)
        total = store.count(active_only)
    return {
        "success": True,
        "agents": _dump(agents),
        "pagination": Pagination.build(total, page, limit).model_dump(),
    }


@app.get("/admin/agents/{agent_id}", tags=["Admin Agents"], dependencies=[admin_access])
async def get_agent(agent_id: str):
    with get_cursor() as cursor:
        agent = AgentStore(cursor).get(agent_id)
    return {"success": True, "agent": agent.model_dump(mode="json")}


@app.put("/admin/agents/{agent_id}/status", tags=["Admin Agents"], dependencies=[admin_access])
async def set_agent_status(agent_id: str, body: AgentStatusUpdate):
    with get_cursor() as cursor:
        agent = AgentStore(cursor).set_active(agent_id, body.is_active)
    _log(f"Agent {agent.full_name} {'activated' if agent.is_active else 'deactivated'}")
    return {"success": True, "message": "Delivery agent status updated", "agent": agent.model_dump(mode="json")}


@app.put("/admin/agents/{agent_id}/zone", tags=["Admin Agents"], dependencies=[admin_access])
async def set_agent_zone(agent_id: str, body: AgentZoneUpdate):
    with get_cursor() as cursor:
        agent = AgentStore(cursor).set_zone(agent_id, body.delivery_zone)
    _log(f"Agent {agent.full_name} moved to zone {agent.delivery_zone}")
    return {"success": True, "message": "Delivery zone updated", "agent": agent.model_dump(mode="json")}


@app.get("/admin/agents/{agent_id}/stats", tags=["Admin Agents"], dependencies=[admin_access])
async def get_agent_stats(agent_id: str):
    with get_cursor() as cursor:
        agent = AgentStore(cursor).get(agent_id)

    success_rate = 0
    if agent.total_deliveries > 0:
        success_rate = round(agent.completed_deliveries / agent.total_deliveries * 100)

    return {
        "success": True,
        "stats": {
            "total_deliveries": agent.total_deliveries,
            "completed_deliveries": agent.completed_deliveries,
            "success_rate": success_rate,
            "total_earnings": agent.earnings_total,
            "this_month_earnings": agent.earnings_this_month,
            "rating": agent.rating,
        },
    }


@app.get("/admin/agents/{agent_id}/orders", tags=["Admin Agents"], dependencies=[admin_access])
async def get_agent_orders(agent_id: str, limit: int = Query(default=50, ge=1, le=200)):
    with get_cursor() as cursor:
        AgentStore(cursor).get(agent_id)
        orders = OrderStore(cursor).find("delivery_agent_id = ?", (agent_id,), limit=limit)
    return {"success": True, "orders": _dump(orders)}


# =============================================================================
# Delivery Agent App
# =============================================================================

@app.get("/delivery/orders/available", tags=["Delivery"])
async def available_orders(
    latitude: float | None = Query(default=None, ge=-90, le=90),
    longitude: float | None = Query(default=None, ge=-180, le=180),
    max_distance: float = Query(default=10, gt=0),
    agent: DeliveryAgent = Depends(current_agent),
):
    """Pending, unassigned orders the agent can pick up, oldest first."""
    location = None
    if latitude is not None and longitude is not None:
        location = Coordinates(latitude=latitude, longitude=longitude)
    elif agent.current_location:
        location = Coordinates(latitude=agent.current_location.latitude,
                               longitude=agent.current_location.longitude)

    orders = find_available_orders(location, max_distance, agent.agent_id)
    return {"success": True, "orders": _dump(orders)}


@app.get("/delivery/orders/active", tags=["Delivery"])
async def active_orders(agent: DeliveryAgent = Depends(current_agent)):
    return {"success": True, "orders": _dump(get_agent_active_orders(agent.agent_id))}


@app.get("/delivery/orders/history", tags=["Delivery"])
async def order_history(
    limit: int = Query(default=50, ge=1, le=200),
    agent: DeliveryAgent = Depends(current_agent),
):
    return {"success": True, "orders": _dump(get_agent_order_history(agent.agent_id, limit))}


@app.get("/delivery/orders/{order_id}/summary", tags=["Delivery"])
async def delivery_summary(order_id: str, agent: DeliveryAgent = Depends(current_agent)):
    summary = dispatch.get_delivery_summary(order_id, agent.agent_id)
    return {"success": True, "summary": summary.model_dump(mode="json")}


@app.post("/delivery/orders/{order_id}/accept", tags=["Delivery"])
async def accept_order(
    order_id: str,
    body: AcceptRequest | None = None,
    agent: DeliveryAgent = Depends(current_agent),
):
    location = body.location if body else None
    order = dispatch.accept_order(order_id, agent.agent_id, location)
    return {"success": True, "message": "Order accepted successfully", "order": order.model_dump(mode="json")}


@app.post("/delivery/orders/{order_id}/reject", tags=["Delivery"])
async def reject_order(
    order_id: str,
    body: RejectRequest | None = None,
    agent: DeliveryAgent = Depends(current_agent),
):
    reason = body.reason if body else ""
    order = dispatch.reject_order(order_id, agent.agent_id, reason)
    return {"success": True, "message": "Order rejected", "order": order.model_dump(mode="json")}


@app.put("/delivery/orders/{order_id}/status", tags=["Delivery"])
async def agent_update_status(order_id: str, body: StatusUpdate, agent: DeliveryAgent = Depends(current_agent)):
    order = dispatch.agent_update_status(order_id, agent.agent_id, body.status, body.location, body.notes)
    return {"success": True, "message": "Order status updated successfully", "order": order.model_dump(mode="json")}


@app.post("/delivery/orders/{order_id}/cancel", tags=["Delivery"])
async def agent_cancel_order(order_id: str, body: AgentCancelRequest, agent: DeliveryAgent = Depends(current_agent)):
    order = dispatch.agent_cancel_order(order_id, agent.agent_id, body.reason)
    return {"success": True, "message": "Order cancelled successfully", "order": order.model_dump(mode="json")}


@app.put("/delivery/location", tags=["Delivery"])
async def update_location(body: Coordinates, agent: DeliveryAgent = Depends(current_agent)):
    updated = dispatch.update_agent_location(agent.agent_id, body)
    return {"success": True, "message": "Location updated", "agent": updated.model_dump(mode="json")}


@app.put("/delivery/status/online", tags=["Delivery"])
async def set_online(body: OnlineStatus, agent: DeliveryAgent = Depends(current_agent)):
    with get_cursor() as cursor:
        updated = AgentStore(cursor).set_online(agent.agent_id, body.is_online)
    state = "online" if updated.is_online else "offline"
    _log(f"Agent {updated.full_name} is now {state}")
    return {"success": True, "message": f"You are now {state}", "agent": updated.model_dump(mode="json")}


@app.get("/delivery/earnings", tags=["Delivery"])
async def earnings(period: str = "today", agent: DeliveryAgent = Depends(current_agent)):
    return {"success": True, "earnings": get_agent_earnings(agent.agent_id, period)}


# =============================================================================
# Customer
# =============================================================================

@app.post("/orders/{order_id}/feedback", tags=["Customer"])
async def submit_feedback(order_id: str, body: FeedbackRequest):
    order = dispatch.submit_feedback(order_id, Feedback(**body.model_dump()))
    return {"success": True, "message": "Thank you for your feedback", "order": order.model_dump(mode="json")}
