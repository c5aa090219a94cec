from typing import Optional

from pydantic import BaseModel, Field

from models import Coordinates, VehicleType


class GenerationResponse(BaseModel):
    entity: str
    count: int
    ids: list[str]


class StatsResponse(BaseModel):
    delivery_agents: int
    orders: int
    orders_by_status: dict[str, int]


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=-(-total // limit),
            has_next_page=page * limit < total,
            has_prev_page=page > 1,
        )


class AgentCreate(BaseModel):
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: str
    vehicle_type: VehicleType
    vehicle_number: str
    delivery_zone: Optional[str] = None


class AgentStatusUpdate(BaseModel):
    is_active: bool


class AgentZoneUpdate(BaseModel):
    delivery_zone: str = Field(min_length=1)


class OnlineStatus(BaseModel):
    is_online: bool


class StatusUpdate(BaseModel):
    status: str  # validated by the status timeline
    notes: str = ""
    location: Optional[Coordinates] = None


class AssignRequest(BaseModel):
    agent_id: str


class CancelRequest(BaseModel):
    reason: str
    refund_amount: float = Field(default=0, ge=0)


class AgentCancelRequest(BaseModel):
    reason: str


class AcceptRequest(BaseModel):
    location: Optional[Coordinates] = None


class RejectRequest(BaseModel):
    reason: str = ""


class FeedbackRequest(BaseModel):
    delivery_rating: Optional[int] = Field(default=None, ge=1, le=5)
    delivery_comment: Optional[str] = None
    food_rating: Optional[int] = Field(default=None, ge=1, le=5)
    food_comment: Optional[str] = None
