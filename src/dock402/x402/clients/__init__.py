"""
x402 Client SDK
"""

from dock402.x402.clients.policies import MaxAmountPolicy, PreferredNetworkPolicy
from dock402.x402.clients.x402_client import PaymentPolicy, X402Client
from dock402.x402.clients.x402_http_client import PaymentInterceptor

__all__ = [
    "MaxAmountPolicy",
    "PaymentInterceptor",
    "PaymentPolicy",
    "PreferredNetworkPolicy",
    "X402Client",
]
