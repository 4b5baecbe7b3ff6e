"""
x402 Server SDK
"""

from dock402.x402.server.spec_store import InMemorySpecificationStore, SpecificationStore
from dock402.x402.server.state import PaymentNegotiation, PaymentState
from dock402.x402.server.x402_server import HandlerResult, PaymentHandler, ResourceConfig

__all__ = [
    "HandlerResult",
    "InMemorySpecificationStore",
    "PaymentHandler",
    "PaymentNegotiation",
    "PaymentState",
    "ResourceConfig",
    "SpecificationStore",
]
