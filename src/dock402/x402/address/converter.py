"""
Address converter interface and implementations
"""

import re
from abc import ABC, abstractmethod

import base58

from dock402.x402.config import FAMILY_EVM, FAMILY_SOLANA
from dock402.x402.exceptions import UnsupportedNetwork

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class AddressConverter(ABC):
    """Abstract base class for address converters"""

    ZERO_ADDRESS: str = ""

    @abstractmethod
    def is_valid(self, address: str) -> bool:
        """Return True if *address* has the correct format for this chain family"""
        pass

    @abstractmethod
    def normalize(self, address: str) -> str:
        """Normalize address for comparison"""
        pass

    def is_native_sentinel(self, address: str | None) -> bool:
        """Return True if *address* denotes the chain's native token"""
        return address is None or self.normalize(address) == self.normalize(self.ZERO_ADDRESS)

    def equals(self, a: str, b: str) -> bool:
        return self.normalize(a) == self.normalize(b)


class EvmAddressConverter(AddressConverter):
    """EVM address converter; comparisons are case-insensitive"""

    ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

    def is_valid(self, address: str) -> bool:
        return bool(_EVM_ADDRESS_RE.match(address))

    def normalize(self, address: str) -> str:
        return address.lower()

    def pad32(self, address: str) -> str:
        """Left-pad the 20-byte address to a 32-byte ABI word (hex, no prefix)"""
        return self.normalize(address)[2:].rjust(64, "0")


class SolanaAddressConverter(AddressConverter):
    """Solana address converter; base58 public keys compared exactly"""

    ZERO_ADDRESS = "11111111111111111111111111111111"
    NATIVE_ALIAS = "native"

    def is_valid(self, address: str) -> bool:
        try:
            return len(base58.b58decode(address)) == 32
        except ValueError:
            return False

    def normalize(self, address: str) -> str:
        return address

    def is_native_sentinel(self, address: str | None) -> bool:
        return address is None or address in (self.NATIVE_ALIAS, self.ZERO_ADDRESS)


_CONVERTERS: dict[str, AddressConverter] = {
    FAMILY_EVM: EvmAddressConverter(),
    FAMILY_SOLANA: SolanaAddressConverter(),
}


def get_converter(family: str) -> AddressConverter:
    """Get the address converter for a chain family"""
    converter = _CONVERTERS.get(family)
    if converter is None:
        raise UnsupportedNetwork(family, f"No address converter for family: {family}")
    return converter
