"""
Solana chain mechanism
"""

from dock402.x402.mechanisms.solana.adapter import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    SolanaChainAdapter,
    get_associated_token_address,
)
from dock402.x402.mechanisms.solana.rpc import (
    SolanaRpcStatusReader,
    SolanaSignatureStatus,
    SolanaStatusReader,
)

__all__ = [
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "SYSTEM_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "SolanaChainAdapter",
    "SolanaRpcStatusReader",
    "SolanaSignatureStatus",
    "SolanaStatusReader",
    "get_associated_token_address",
]
