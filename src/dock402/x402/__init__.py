"""
dock402 x402 - HTTP 402 payment protocol SDK for Python

Supports the server (PaymentHandler) and client (PaymentInterceptor) sides of
paying for HTTP resources on EVM chains and Solana.
"""

__version__ = "0.1.0"

from dock402.x402.types import (
    EvmPaymentProof,
    PaymentProof,
    PaymentRequiredResponse,
    PaymentResponse,
    PaymentSpecification,
    ServiceInfo,
    SettleResponse,
    SolanaPaymentProof,
    VerifyResponse,
)
from dock402.x402.exceptions import (
    AmbiguousSettlement,
    ConfigurationError,
    FacilitatorRejected,
    IllegalStateTransition,
    InvalidSpec,
    NetworkError,
    PaymentFailed,
    PaymentLimitExceeded,
    ProofMismatch,
    SignatureCreationError,
    UnknownTokenError,
    UnsettledDelivery,
    UnsupportedNetwork,
    X402Error,
)
from dock402.x402.config import NetworkConfig
from dock402.x402.tokens import TokenInfo, TokenRegistry

__all__ = [
    "__version__",
    # Types
    "PaymentSpecification",
    "PaymentProof",
    "EvmPaymentProof",
    "SolanaPaymentProof",
    "PaymentRequiredResponse",
    "PaymentResponse",
    "ServiceInfo",
    "VerifyResponse",
    "SettleResponse",
    # Exceptions
    "X402Error",
    "ConfigurationError",
    "InvalidSpec",
    "UnsupportedNetwork",
    "UnknownTokenError",
    "ProofMismatch",
    "NetworkError",
    "FacilitatorRejected",
    "AmbiguousSettlement",
    "UnsettledDelivery",
    "PaymentLimitExceeded",
    "PaymentFailed",
    "SignatureCreationError",
    "IllegalStateTransition",
    # Config
    "NetworkConfig",
    "TokenInfo",
    "TokenRegistry",
]
