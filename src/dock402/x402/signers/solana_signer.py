"""
SolanaWallet - reference Solana wallet implementation
"""

import logging
import time
from typing import Any

import base58
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from dock402.x402.config import NetworkConfig
from dock402.x402.exceptions import SignatureCreationError, UnsupportedNetwork
from dock402.x402.types import SignedTransaction, SolanaTransactionRequest, TransactionRequest

logger = logging.getLogger(__name__)


class SolanaWallet:
    """Solana wallet using solders for signing and solana-py for broadcasting"""

    def __init__(self, keypair: Keypair, rpc_urls: dict[str, str] | None = None) -> None:
        self._keypair = keypair
        self._address = str(keypair.pubkey())
        self._rpc_urls = rpc_urls or {}
        self._clients: dict[str, Any] = {}

    @classmethod
    def from_base58(cls, secret: str, **kwargs: Any) -> "SolanaWallet":
        """Create wallet from a base58 encoded 64-byte secret key"""
        return cls(Keypair.from_bytes(base58.b58decode(secret)), **kwargs)

    @classmethod
    def from_bytes(cls, secret: bytes | list[int], **kwargs: Any) -> "SolanaWallet":
        """Create wallet from raw keypair bytes (e.g. a solana-keygen JSON array)"""
        return cls(Keypair.from_bytes(bytes(secret[:64])), **kwargs)

    def get_address(self, network: str) -> str:
        if not NetworkConfig.is_solana(network):
            raise UnsupportedNetwork(network, f"SolanaWallet cannot pay on {network}")
        return self._address

    def _ensure_client(self, network: str) -> Any:
        if network not in self._clients:
            from solana.rpc.async_api import AsyncClient

            rpc_url = NetworkConfig.get_rpc_url(network, self._rpc_urls)
            if not rpc_url:
                raise UnsupportedNetwork(network, f"No RPC URL configured for {network}")
            self._clients[network] = AsyncClient(rpc_url)
        return self._clients[network]

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()

    def build_transaction(self, tx: SolanaTransactionRequest) -> Transaction:
        """Compile and sign *tx* without sending it"""
        if tx.fee_payer != self._address:
            raise SignatureCreationError(f"Fee payer {tx.fee_payer} is not {self._address}")

        instructions: list[Instruction] = []
        if tx.compute_budget is not None:
            if tx.compute_budget.units is not None:
                instructions.append(set_compute_unit_limit(tx.compute_budget.units))
            if tx.compute_budget.micro_lamports is not None:
                instructions.append(set_compute_unit_price(tx.compute_budget.micro_lamports))
        for ix in tx.instructions:
            instructions.append(
                Instruction(
                    Pubkey.from_string(ix.program_id),
                    ix.data_bytes(),
                    [
                        AccountMeta(Pubkey.from_string(k.pubkey), k.is_signer, k.is_writable)
                        for k in ix.keys
                    ],
                )
            )

        blockhash = Hash.from_string(tx.recent_blockhash)
        message = Message.new_with_blockhash(
            instructions, Pubkey.from_string(tx.fee_payer), blockhash
        )
        return Transaction([self._keypair], message, blockhash)

    async def sign_transaction(self, network: str, tx: TransactionRequest) -> SignedTransaction:
        """Sign, send and wait for *tx* to reach finalized commitment"""
        if not isinstance(tx, SolanaTransactionRequest):
            raise SignatureCreationError(f"SolanaWallet cannot sign {type(tx).__name__}")

        from solana.rpc.commitment import Finalized

        transaction = self.build_transaction(tx)
        client = self._ensure_client(network)
        try:
            resp = await client.send_transaction(transaction)
            signature = resp.value
            await client.confirm_transaction(signature, commitment=Finalized)
            statuses = await client.get_signature_statuses([signature])
        except Exception as e:
            raise SignatureCreationError(f"Failed to send Solana payment on {network}: {e}") from e

        status = statuses.value[0]
        if status is not None and status.err is not None:
            raise SignatureCreationError(f"Payment transaction {signature} failed: {status.err}")

        logger.info("Solana payment sent: signature=%s", signature)
        return SignedTransaction(
            tx_hash=str(signature),
            sender=self._address,
            timestamp=int(time.time()),
            slot=status.slot if status is not None else None,
            confirmation_status="finalized",
        )
