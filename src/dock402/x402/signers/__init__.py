"""
x402 Wallets
"""

from dock402.x402.signers.base import Wallet
from dock402.x402.signers.evm_signer import EvmWallet
from dock402.x402.signers.solana_signer import SolanaWallet

__all__ = ["Wallet", "EvmWallet", "SolanaWallet"]
