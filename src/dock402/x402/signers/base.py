"""
Wallet capability
"""

from typing import Protocol, runtime_checkable

from dock402.x402.types import SignedTransaction, TransactionRequest


@runtime_checkable
class Wallet(Protocol):
    """
    Holder of the payer's keys.

    The payment interceptor never touches keys: it hands the unsigned
    transaction to the wallet, which signs, broadcasts and reports the result.
    """

    def get_address(self, network: str) -> str:
        """Get the payer address on *network*"""
        ...

    async def sign_transaction(
        self, network: str, tx: TransactionRequest
    ) -> SignedTransaction:
        """
        Sign and submit *tx*.

        Args:
            network: Network the transaction targets
            tx: Chain-native unsigned transaction

        Returns:
            SignedTransaction describing the submitted transaction
        """
        ...
