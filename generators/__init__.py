from .agents import AgentGenerator
from .customers import CustomerGenerator
from .merchants import MerchantGenerator
from .orders import OrderGenerator

__all__ = [
    "AgentGenerator",
    "CustomerGenerator",
    "MerchantGenerator",
    "OrderGenerator",
]
