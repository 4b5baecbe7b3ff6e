"""
X402 Utility Functions
"""

from dock402.x402.utils.idempotency import settlement_key

__all__ = ["settlement_key"]
