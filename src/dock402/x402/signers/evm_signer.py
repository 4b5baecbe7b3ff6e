"""
EvmWallet - reference EVM wallet implementation
"""

import logging
from typing import Any

from dock402.x402.config import NetworkConfig
from dock402.x402.exceptions import SignatureCreationError, UnsupportedNetwork
from dock402.x402.types import EvmTransactionRequest, SignedTransaction, TransactionRequest

logger = logging.getLogger(__name__)


class EvmWallet:
    """EVM wallet using eth-account for signing and web3.py for broadcasting"""

    def __init__(
        self,
        private_key: str,
        rpc_urls: dict[str, str] | None = None,
        receipt_timeout: float = 120.0,
    ) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self._private_key = private_key
        self._address = self._derive_address(private_key)
        self._rpc_urls = rpc_urls or {}
        self._receipt_timeout = receipt_timeout
        self._async_web3_clients: dict[str, Any] = {}
        logger.debug("EvmWallet initialized", extra={"address": self._address})

    @classmethod
    def from_private_key(cls, private_key: str, **kwargs: Any) -> "EvmWallet":
        """Create wallet from private key."""
        return cls(private_key, **kwargs)

    @staticmethod
    def _derive_address(private_key: str) -> str:
        """Derive EVM address from private key"""
        from eth_account import Account

        return Account.from_key(private_key).address

    def get_address(self, network: str) -> str:
        if not NetworkConfig.is_evm(network):
            raise UnsupportedNetwork(network, f"EvmWallet cannot pay on {network}")
        return self._address

    def _ensure_async_web3_client(self, network: str) -> Any:
        """Lazy initialize async web3 client for the given network."""
        if network not in self._async_web3_clients:
            from web3 import AsyncHTTPProvider, AsyncWeb3
            from web3.middleware import ExtraDataToPOAMiddleware

            provider_uri = NetworkConfig.get_rpc_url(network, self._rpc_urls)
            if not provider_uri:
                raise UnsupportedNetwork(network, f"No RPC URL configured for {network}")
            w3 = AsyncWeb3(AsyncHTTPProvider(provider_uri))
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._async_web3_clients[network] = w3

        return self._async_web3_clients[network]

    async def _build_params(self, w3: Any, tx: EvmTransactionRequest) -> dict[str, Any]:
        from web3 import Web3

        params: dict[str, Any] = {
            "from": self._address,
            "to": Web3.to_checksum_address(tx.to),
            "value": int(tx.value or 0),
            "chainId": tx.chain_id,
            "nonce": await w3.eth.get_transaction_count(self._address),
        }
        if tx.data:
            params["data"] = tx.data
        if tx.max_fee_per_gas:
            params["maxFeePerGas"] = int(tx.max_fee_per_gas)
            params["maxPriorityFeePerGas"] = int(tx.max_priority_fee_per_gas or 0)
        else:
            params["gasPrice"] = await w3.eth.gas_price
        params["gas"] = int(tx.gas_limit) if tx.gas_limit else await w3.eth.estimate_gas(params)
        return params

    async def sign_transaction(self, network: str, tx: TransactionRequest) -> SignedTransaction:
        """Sign, broadcast and wait for the receipt of *tx*"""
        if not isinstance(tx, EvmTransactionRequest):
            raise SignatureCreationError(f"EvmWallet cannot sign {type(tx).__name__}")
        if tx.chain_id != NetworkConfig.get_chain_id(network):
            raise SignatureCreationError(f"Chain id {tx.chain_id} does not match {network}")

        from web3 import Web3

        w3 = self._ensure_async_web3_client(network)
        try:
            params = await self._build_params(w3, tx)
            signed = w3.eth.account.sign_transaction(params, private_key=self._private_key)
            tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout
            )
            block = await w3.eth.get_block(receipt["blockNumber"])
        except Exception as e:
            raise SignatureCreationError(f"Failed to send EVM payment on {network}: {e}") from e

        if receipt["status"] != 1:
            raise SignatureCreationError(f"Payment transaction {Web3.to_hex(tx_hash)} reverted")

        logger.info(
            "EVM payment sent: tx_hash=%s, block=%s", Web3.to_hex(tx_hash), receipt["blockNumber"]
        )
        return SignedTransaction(
            tx_hash=Web3.to_hex(tx_hash),
            sender=self._address,
            timestamp=int(block["timestamp"]),
            block_number=receipt["blockNumber"],
            transaction_index=receipt.get("transactionIndex"),
            gas_used=str(receipt["gasUsed"]),
            effective_gas_price=str(receipt.get("effectiveGasPrice", 0)),
        )
