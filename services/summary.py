from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from models import (
    Address,
    DeliveryInfo,
    EarningsBreakdown,
    MerchantAddress,
    Order,
    OrderItem,
    OrderStatus,
    SpecialRequest,
)
from services.earnings import calculate_agent_earnings


class CustomerContact(BaseModel):
    name: str
    phone: str
    address: Address


class RestaurantContact(BaseModel):
    name: str
    phone: str
    address: MerchantAddress


class DeliverySummary(BaseModel):
    order_id: str
    order_number: str
    customer: CustomerContact
    restaurant: RestaurantContact
    items: list[OrderItem]
    total_amount: float
    delivery_info: DeliveryInfo
    earnings: EarningsBreakdown
    status: OrderStatus
    special_requests: list[SpecialRequest]
    delivery_otp: Optional[str] = None


def get_delivery_summary(order: Order, now: datetime | None = None) -> DeliverySummary:
    """Payload handed to delivery-agent clients. Earnings are recalculated on every call."""
    return DeliverySummary(
        order_id=order.order_id,
        order_number=order.order_number,
        customer=CustomerContact(
            name=order.customer.name,
            phone=order.customer.phone,
            address=order.customer.address,
        ),
        restaurant=RestaurantContact(
            name=order.restaurant.name,
            phone=order.restaurant.phone,
            address=order.restaurant.address,
        ),
        items=order.items,
        total_amount=order.pricing.total_amount,
        delivery_info=order.delivery_info,
        earnings=calculate_agent_earnings(order, now),
        status=order.status.current,
        special_requests=[r for r in order.special_requests if r.is_active],
        delivery_otp=order.tracking.delivery_otp,
    )
