from .schemas import (
    Actor,
    Address,
    AddressType,
    AgentLocation,
    Assignment,
    Cancellation,
    CancelledBy,
    Coordinates,
    CustomerSnapshot,
    DeliveryAgent,
    DeliveryInfo,
    DeliverySlot,
    EarningsBreakdown,
    Feedback,
    MerchantAddress,
    Order,
    OrderDraft,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Pricing,
    Priority,
    RefundStatus,
    Rejection,
    RestaurantSnapshot,
    SpecialRequest,
    StatusInfo,
    TimelineEntry,
    Tracking,
    VehicleType,
)

__all__ = [
    "Actor",
    "Address",
    "AddressType",
    "AgentLocation",
    "Assignment",
    "Cancellation",
    "CancelledBy",
    "Coordinates",
    "CustomerSnapshot",
    "DeliveryAgent",
    "DeliveryInfo",
    "DeliverySlot",
    "EarningsBreakdown",
    "Feedback",
    "MerchantAddress",
    "Order",
    "OrderDraft",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "Pricing",
    "Priority",
    "RefundStatus",
    "Rejection",
    "RestaurantSnapshot",
    "SpecialRequest",
    "StatusInfo",
    "TimelineEntry",
    "Tracking",
    "VehicleType",
]
