"""
x402 Facilitator client
"""

from dock402.x402.facilitator.facilitator_client import IDEMPOTENCY_HEADER, FacilitatorClient

__all__ = ["FacilitatorClient", "IDEMPOTENCY_HEADER"]
