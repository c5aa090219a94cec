from .main import app
from .models import (
    AgentCreate,
    GenerationResponse,
    Pagination,
    StatsResponse,
    StatusUpdate,
)

__all__ = [
    "app",
    "AgentCreate",
    "GenerationResponse",
    "Pagination",
    "StatsResponse",
    "StatusUpdate",
]
