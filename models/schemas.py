from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Actor(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT = "restaurant"
    DELIVERY_AGENT = "delivery_agent"
    ADMIN = "admin"
    SYSTEM = "system"


class CancelledBy(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT = "restaurant"
    DELIVERY_AGENT = "delivery_agent"
    ADMIN = "admin"


class Priority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    WALLET = "wallet"
    UPI = "upi"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class RefundStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
    NOT_APPLICABLE = "not_applicable"


class AddressType(str, Enum):
    HOME = "home"
    OFFICE = "office"
    OTHER = "other"


class VehicleType(str, Enum):
    BIKE = "bike"
    BICYCLE = "bicycle"
    SCOOTER = "scooter"
    CAR = "car"


class Coordinates(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class Address(BaseModel):
    street: str
    landmark: Optional[str] = None
    city: str
    state: str
    zip_code: str
    coordinates: Optional[Coordinates] = None
    address_type: AddressType = AddressType.HOME


class MerchantAddress(BaseModel):
    street: str
    landmark: Optional[str] = None
    city: str
    state: str
    zip_code: str
    coordinates: Coordinates


class CustomerSnapshot(BaseModel):
    """Customer details frozen at order time."""
    user_id: Optional[str] = None
    name: str
    phone: str
    email: Optional[str] = None
    address: Address


class RestaurantSnapshot(BaseModel):
    """Merchant details frozen at order time."""
    merchant_id: Optional[str] = None
    name: str
    phone: str
    address: MerchantAddress


class OrderItem(BaseModel):
    product_id: Optional[str] = None
    name: str
    quantity: int = Field(ge=1)
    price: float = Field(ge=0)
    discounted_price: Optional[float] = Field(default=None, ge=0)
    image: Optional[str] = None
    category: Optional[str] = None
    special_instructions: Optional[str] = None


class Pricing(BaseModel):
    items_total: float = Field(ge=0)
    discount: float = 0
    delivery_fee: float = Field(ge=0)
    platform_fee: float = 0
    tip: float = Field(default=0, ge=0)
    taxes: float = 0
    total_amount: float = Field(ge=0)  # settled amount, never recomputed from items
    coupon_code: Optional[str] = None
    coupon_discount: float = 0


class DeliverySlot(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class DeliveryInfo(BaseModel):
    estimated_time: int = Field(ge=0)  # minutes
    distance: float = Field(ge=0)  # km
    delivery_instructions: Optional[str] = None
    priority: Priority = Priority.NORMAL
    delivery_slot: Optional[DeliverySlot] = None


class TimelineEntry(BaseModel):
    status: OrderStatus
    timestamp: datetime
    location: Optional[Coordinates] = None
    notes: str = ""
    updated_by: Actor = Actor.SYSTEM


class StatusInfo(BaseModel):
    current: OrderStatus = OrderStatus.PENDING
    timeline: list[TimelineEntry] = Field(default_factory=list)


class Rejection(BaseModel):
    agent_id: str
    rejected_at: datetime
    reason: str = ""


class Assignment(BaseModel):
    delivery_agent: Optional[str] = None
    assigned_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_by: list[Rejection] = Field(default_factory=list)
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    earnings_credited_at: Optional[datetime] = None


class Payment(BaseModel):
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None


class EarningsBreakdown(BaseModel):
    delivery_fee: float = 0
    tip: float = 0
    distance_bonus: float = 0
    priority_bonus: float = 0  # includes the peak-hour bonus
    total: float = 0


class Feedback(BaseModel):
    delivery_rating: Optional[int] = Field(default=None, ge=1, le=5)
    delivery_comment: Optional[str] = None
    food_rating: Optional[int] = Field(default=None, ge=1, le=5)
    food_comment: Optional[str] = None
    submitted_at: Optional[datetime] = None


class AgentLocation(BaseModel):
    latitude: float
    longitude: float
    last_updated: datetime


class Tracking(BaseModel):
    agent_location: Optional[AgentLocation] = None
    estimated_arrival: Optional[datetime] = None
    delivery_otp: Optional[str] = None


class Cancellation(BaseModel):
    reason: str = ""
    cancelled_by: CancelledBy
    cancelled_at: datetime
    refund_amount: float = 0
    refund_status: RefundStatus = RefundStatus.NOT_APPLICABLE


class SpecialRequest(BaseModel):
    type: str  # e.g. "contactless", "leave_at_door"
    description: str = ""
    is_active: bool = True


class Order(BaseModel):
    order_id: str
    order_number: str
    customer: CustomerSnapshot
    restaurant: RestaurantSnapshot
    items: list[OrderItem] = Field(min_length=1)
    pricing: Pricing
    delivery_info: DeliveryInfo
    status: StatusInfo = Field(default_factory=StatusInfo)
    assignment: Assignment = Field(default_factory=Assignment)
    payment: Payment
    earnings: EarningsBreakdown = Field(default_factory=EarningsBreakdown)
    feedback: Optional[Feedback] = None
    tracking: Tracking = Field(default_factory=Tracking)
    cancellation: Optional[Cancellation] = None
    special_requests: list[SpecialRequest] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    version: int = 0


class DeliveryAgent(BaseModel):
    agent_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: str
    vehicle_type: VehicleType
    vehicle_number: str
    delivery_zone: Optional[str] = None
    is_active: bool = True
    is_online: bool = False
    current_location: Optional[AgentLocation] = None
    rating: float = Field(default=5.0, ge=1.0, le=5.0)
    rating_count: int = 0
    total_deliveries: int = 0
    completed_deliveries: int = 0
    earnings_total: float = 0
    earnings_this_month: float = 0
    earnings_month: Optional[str] = None  # "YYYY-MM" the monthly counter belongs to
    created_at: datetime

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class OrderDraft(BaseModel):
    """What an order creator hands over. Everything else is filled in at creation."""
    customer: CustomerSnapshot
    restaurant: RestaurantSnapshot
    items: list[OrderItem] = Field(min_length=1)
    pricing: Pricing
    delivery_info: DeliveryInfo
    payment_method: PaymentMethod
    special_requests: list[SpecialRequest] = Field(default_factory=list)
