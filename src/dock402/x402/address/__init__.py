"""
Address converter module
"""

from dock402.x402.address.converter import (
    AddressConverter,
    EvmAddressConverter,
    SolanaAddressConverter,
    get_converter,
)

__all__ = [
    "AddressConverter",
    "EvmAddressConverter",
    "SolanaAddressConverter",
    "get_converter",
]
