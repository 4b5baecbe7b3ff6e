"""
EVM receipt reading
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvmReceipt:
    """Mined transaction as seen by the chain"""

    tx_hash: str
    status: int
    block_number: int | None
    from_address: str
    to: str | None
    value: int
    input: str

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class EvmReceiptReader(Protocol):
    """Read-only view of EVM transaction receipts"""

    async def get_receipt(self, tx_hash: str) -> EvmReceipt | None:
        """Return the receipt, or None if the transaction is unknown or pending"""
        ...


class Web3ReceiptReader:
    """EvmReceiptReader backed by web3.py"""

    def __init__(self, rpc_url: str) -> None:
        self._rpc_url = rpc_url
        self._web3: Any = None

    def _ensure_web3(self) -> Any:
        """Lazy initialize async web3 client"""
        if self._web3 is None:
            from web3 import AsyncHTTPProvider, AsyncWeb3
            from web3.middleware import ExtraDataToPOAMiddleware

            w3 = AsyncWeb3(AsyncHTTPProvider(self._rpc_url))
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._web3 = w3
        return self._web3

    async def get_receipt(self, tx_hash: str) -> EvmReceipt | None:
        from web3 import Web3
        from web3.exceptions import TransactionNotFound

        w3 = self._ensure_web3()
        try:
            receipt = await w3.eth.get_transaction_receipt(tx_hash)
            tx = await w3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            logger.debug("Transaction %s not found on %s", tx_hash, self._rpc_url)
            return None

        return EvmReceipt(
            tx_hash=tx_hash,
            status=int(receipt.get("status", 0)),
            block_number=receipt.get("blockNumber"),
            from_address=tx["from"],
            to=tx.get("to"),
            value=int(tx.get("value", 0)),
            input=Web3.to_hex(tx.get("input", b"")),
        )
