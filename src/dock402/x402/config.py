"""
X402 Network Configuration
Centralized configuration for chain IDs, RPC endpoints and network families
"""

from typing import Dict

from dock402.x402.exceptions import UnsupportedNetwork

FAMILY_EVM = "evm"
FAMILY_SOLANA = "solana"

# Largest transferable amount per family: uint256 on EVM, u64 on Solana
MAX_AMOUNTS: Dict[str, int] = {
    FAMILY_EVM: 2**256 - 1,
    FAMILY_SOLANA: 2**64 - 1,
}


class NetworkConfig:
    """Network configuration for chain IDs, families and RPC endpoints"""

    # EVM networks
    BASE_MAINNET = "base-mainnet"
    BASE_SEPOLIA = "base-sepolia"
    POLYGON = "polygon"
    BSC = "bsc"
    SEI = "sei"
    PEAQ = "peaq"

    # Solana networks
    SOLANA_MAINNET = "solana-mainnet"
    SOLANA_DEVNET = "solana-devnet"

    FAMILIES: Dict[str, str] = {
        "base-mainnet": FAMILY_EVM,
        "base-sepolia": FAMILY_EVM,
        "polygon": FAMILY_EVM,
        "bsc": FAMILY_EVM,
        "sei": FAMILY_EVM,
        "peaq": FAMILY_EVM,
        "solana-mainnet": FAMILY_SOLANA,
        "solana-devnet": FAMILY_SOLANA,
    }

    CHAIN_IDS: Dict[str, int] = {
        "base-mainnet": 8453,
        "base-sepolia": 84532,
        "polygon": 137,
        "bsc": 56,
        "sei": 1329,
        "peaq": 3338,
    }

    RPC_URLS: Dict[str, str] = {
        "base-mainnet": "https://mainnet.base.org",
        "base-sepolia": "https://sepolia.base.org",
        "polygon": "https://polygon-rpc.com",
        "bsc": "https://bsc-dataseed.binance.org/",
        "sei": "https://evm-rpc.sei-apis.com",
        "peaq": "https://peaq.api.onfinality.io/public",
        "solana-mainnet": "https://api.mainnet-beta.solana.com",
        "solana-devnet": "https://api.devnet.solana.com",
    }

    # Native currency symbol per network
    NATIVE_CURRENCIES: Dict[str, str] = {
        "base-mainnet": "ETH",
        "base-sepolia": "ETH",
        "polygon": "MATIC",
        "bsc": "BNB",
        "sei": "SEI",
        "peaq": "PEAQ",
        "solana-mainnet": "SOL",
        "solana-devnet": "SOL",
    }

    @classmethod
    def supported_networks(cls) -> list[str]:
        """Return every supported network identifier."""
        return list(cls.FAMILIES.keys())

    @classmethod
    def is_supported(cls, network: str) -> bool:
        return network in cls.FAMILIES

    @classmethod
    def get_family(cls, network: str) -> str:
        """Get chain family ("evm" or "solana") for a network

        Raises:
            UnsupportedNetwork: If network is not supported
        """
        family = cls.FAMILIES.get(network)
        if family is None:
            raise UnsupportedNetwork(network)
        return family

    @classmethod
    def is_evm(cls, network: str) -> bool:
        return cls.FAMILIES.get(network) == FAMILY_EVM

    @classmethod
    def is_solana(cls, network: str) -> bool:
        return cls.FAMILIES.get(network) == FAMILY_SOLANA

    @classmethod
    def networks_in_family(cls, family: str) -> list[str]:
        return [n for n, f in cls.FAMILIES.items() if f == family]

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        """Get chain ID for an EVM network

        Args:
            network: Network identifier (e.g., "base-mainnet")

        Returns:
            Chain ID as integer

        Raises:
            UnsupportedNetwork: If network is not an EVM network
        """
        chain_id = cls.CHAIN_IDS.get(network)
        if chain_id is None:
            raise UnsupportedNetwork(network, f"No chain ID for network: {network}")
        return chain_id

    @classmethod
    def get_rpc_url(cls, network: str, overrides: Dict[str, str] | None = None) -> str | None:
        """Get RPC URL for a network.

        Args:
            network: Network identifier (e.g., "solana-devnet")
            overrides: Custom RPC URLs taking precedence over defaults

        Returns:
            RPC URL string, or None if not configured
        """
        if overrides and network in overrides:
            return overrides[network]
        return cls.RPC_URLS.get(network)

    @classmethod
    def get_native_currency(cls, network: str) -> str:
        currency = cls.NATIVE_CURRENCIES.get(network)
        if currency is None:
            raise UnsupportedNetwork(network)
        return currency

    @classmethod
    def get_max_amount(cls, network: str) -> int:
        """Largest amount a single transfer can carry on *network*"""
        return MAX_AMOUNTS[cls.get_family(network)]
