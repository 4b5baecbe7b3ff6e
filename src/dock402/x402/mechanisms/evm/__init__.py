"""
EVM chain mechanism
"""

from dock402.x402.mechanisms.evm.adapter import (
    ERC20_TRANSFER_SELECTOR,
    EvmChainAdapter,
    encode_erc20_transfer,
)
from dock402.x402.mechanisms.evm.rpc import EvmReceipt, EvmReceiptReader, Web3ReceiptReader

__all__ = [
    "ERC20_TRANSFER_SELECTOR",
    "EvmChainAdapter",
    "EvmReceipt",
    "EvmReceiptReader",
    "Web3ReceiptReader",
    "encode_erc20_transfer",
]
