from .dispatch import DispatchService
from .earnings import calculate_agent_earnings
from .errors import (
    AgentNotAuthorizedError,
    AgentNotFoundError,
    AgentUnavailableError,
    ConcurrentModificationError,
    DispatchError,
    InvalidTransitionError,
    NotAuthenticatedError,
    OrderNotFoundError,
    OrderNumberCollisionError,
    OrderTerminalError,
    PermissionDeniedError,
    ValidationError,
)
from .summary import DeliverySummary, get_delivery_summary

__all__ = [
    "DispatchService",
    "calculate_agent_earnings",
    "DeliverySummary",
    "get_delivery_summary",
    "DispatchError",
    "ValidationError",
    "AgentNotAuthorizedError",
    "AgentNotFoundError",
    "AgentUnavailableError",
    "ConcurrentModificationError",
    "InvalidTransitionError",
    "NotAuthenticatedError",
    "OrderNotFoundError",
    "OrderNumberCollisionError",
    "OrderTerminalError",
    "PermissionDeniedError",
]
