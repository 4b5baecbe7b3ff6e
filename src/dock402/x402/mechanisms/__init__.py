"""
x402 Mechanisms - Chain adapters for the supported chain families

Structure:
    _base/      - ChainAdapter protocol and shared proof comparison
    evm/        - EVM adapter and receipt reader
    solana/     - Solana adapter and signature status reader
"""

from dock402.x402.config import NetworkConfig
from dock402.x402.exceptions import UnsupportedNetwork
from dock402.x402.mechanisms._base import ChainAdapter, compare_proof_fields
from dock402.x402.mechanisms.evm import EvmChainAdapter, EvmReceiptReader, encode_erc20_transfer
from dock402.x402.mechanisms.solana import (
    SolanaChainAdapter,
    SolanaStatusReader,
    get_associated_token_address,
)


def default_adapters(
    rpc_urls: dict[str, str] | None = None,
    onchain_verification: bool = False,
) -> list[ChainAdapter]:
    """One adapter per supported chain family"""
    return [
        EvmChainAdapter(rpc_urls=rpc_urls, onchain_verification=onchain_verification),
        SolanaChainAdapter(rpc_urls=rpc_urls, onchain_verification=onchain_verification),
    ]


def get_adapter_for_network(
    network: str, adapters: list[ChainAdapter] | None = None
) -> ChainAdapter:
    """Pick the adapter handling *network*

    Raises:
        UnsupportedNetwork: If no adapter supports the network
    """
    NetworkConfig.get_family(network)
    for adapter in adapters if adapters is not None else default_adapters():
        if adapter.supports(network):
            return adapter
    raise UnsupportedNetwork(network, f"No chain adapter for network: {network}")


__all__ = [
    "ChainAdapter",
    "EvmChainAdapter",
    "EvmReceiptReader",
    "SolanaChainAdapter",
    "SolanaStatusReader",
    "compare_proof_fields",
    "default_adapters",
    "encode_erc20_transfer",
    "get_adapter_for_network",
    "get_associated_token_address",
]
