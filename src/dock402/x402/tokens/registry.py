"""
Token registry - Centralized management of token configurations for all networks
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any

from dock402.x402.address import get_converter
from dock402.x402.config import NetworkConfig
from dock402.x402.exceptions import UnknownTokenError


@dataclass
class TokenInfo:
    """Token information; ``address`` is None for the native currency"""

    address: str | None
    decimals: int
    name: str
    symbol: str

    @property
    def is_native(self) -> bool:
        return self.address is None


def _native(symbol: str, name: str, decimals: int) -> TokenInfo:
    return TokenInfo(address=None, decimals=decimals, name=name, symbol=symbol)


def _usdc(address: str) -> TokenInfo:
    return TokenInfo(address=address, decimals=6, name="USD Coin", symbol="USDC")


class TokenRegistry:
    """Token registry"""

    _tokens: dict[str, dict[str, TokenInfo]] = {
        "base-mainnet": {
            "ETH": _native("ETH", "Ether", 18),
            "USDC": _usdc("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"),
        },
        "base-sepolia": {
            "ETH": _native("ETH", "Ether", 18),
            "USDC": _usdc("0x036CbD53842c5426634e7929541eC2318f3dCF7e"),
        },
        "polygon": {
            "MATIC": _native("MATIC", "Polygon", 18),
            "USDC": _usdc("0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"),
        },
        "bsc": {
            "BNB": _native("BNB", "BNB", 18),
            # BSC-pegged USDC uses 18 decimals
            "USDC": TokenInfo(
                address="0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d",
                decimals=18,
                name="USD Coin",
                symbol="USDC",
            ),
        },
        "sei": {
            "SEI": _native("SEI", "Sei", 18),
        },
        "peaq": {
            "PEAQ": _native("PEAQ", "peaq", 18),
        },
        "solana-mainnet": {
            "SOL": _native("SOL", "Solana", 9),
            "USDC": _usdc("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"),
        },
        "solana-devnet": {
            "SOL": _native("SOL", "Solana", 9),
            "USDC": _usdc("4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU"),
        },
    }

    @classmethod
    def register_token(cls, network: str, token: TokenInfo) -> None:
        """Register a custom token for specified network

        Args:
            network: Network identifier (e.g. "base-sepolia", "solana-devnet")
            token: TokenInfo to register
        """
        if network not in cls._tokens:
            cls._tokens[network] = {}
        cls._tokens[network][token.symbol.upper()] = token

    @classmethod
    def get_token(cls, network: str, symbol: str) -> TokenInfo:
        """Get token information for specified network and symbol

        Raises:
            UnknownTokenError: If token does not exist
        """
        tokens = cls._tokens.get(network, {})
        token = tokens.get(symbol.upper())
        if token is None:
            raise UnknownTokenError(f"Unknown token {symbol} on network {network}")
        return token

    @classmethod
    def get_native_token(cls, network: str) -> TokenInfo:
        return cls.get_token(network, NetworkConfig.get_native_currency(network))

    @classmethod
    def find_by_address(cls, network: str, address: str | None) -> TokenInfo | None:
        """Find token information by address; None/sentinel resolves to native"""
        converter = get_converter(NetworkConfig.get_family(network))
        if converter.is_native_sentinel(address):
            return cls.get_native_token(network)
        for info in cls._tokens.get(network, {}).values():
            if info.address is not None and converter.equals(info.address, address):
                return info
        return None

    @classmethod
    def get_network_tokens(cls, network: str) -> dict[str, TokenInfo]:
        """Get all tokens for specified network"""
        return cls._tokens.get(network, {})

    @classmethod
    def to_smallest_unit(cls, amount: str | Decimal, decimals: int) -> int:
        """Convert a human amount to the smallest unit without float rounding

        Raises:
            ValueError: If the amount is negative, malformed, or too precise
        """
        try:
            value = Decimal(str(amount))
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {amount}") from e
        if not value.is_finite() or value < 0:
            raise ValueError(f"Invalid amount: {amount}")
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + decimals + 1)
            scaled = value.scaleb(decimals)
            if scaled != scaled.to_integral_value():
                raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
        return int(scaled)

    @classmethod
    def parse_price(cls, price: str, network: str) -> dict[str, Any]:
        """Parse price string into asset amount

        Args:
            price: Price string (e.g. "0.01 ETH", "1.5 USDC")
            network: Network identifier

        Returns:
            Dictionary containing amount (smallest unit, str), currency, asset, decimals
        """
        parts = price.strip().split()
        if len(parts) != 2:
            raise ValueError(f"Invalid price format: {price}")

        amount_str, symbol = parts
        token = cls.get_token(network, symbol)
        amount_smallest = cls.to_smallest_unit(amount_str, token.decimals)

        return {
            "amount": str(amount_smallest),
            "currency": token.symbol,
            "asset": token.address,
            "decimals": token.decimals,
            "name": token.name,
        }
