"""
Solana signature status and blockhash reading
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolanaSignatureStatus:
    """Status of a transaction signature as reported by the cluster"""

    signature: str
    slot: int
    confirmation_status: str | None
    err: Any = None

    @property
    def is_finalized(self) -> bool:
        return self.err is None and self.confirmation_status == "finalized"


class SolanaStatusReader(Protocol):
    """Read-only view of a Solana cluster"""

    async def get_signature_status(self, signature: str) -> SolanaSignatureStatus | None:
        """Return the signature status, or None if the cluster does not know it"""
        ...

    async def get_latest_blockhash(self) -> str:
        ...


class SolanaRpcStatusReader:
    """SolanaStatusReader backed by solana-py's AsyncClient"""

    def __init__(self, rpc_url: str) -> None:
        self._rpc_url = rpc_url
        self._client: Any = None

    def _ensure_client(self) -> Any:
        """Lazy initialize async RPC client"""
        if self._client is None:
            from solana.rpc.async_api import AsyncClient

            self._client = AsyncClient(self._rpc_url)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def get_signature_status(self, signature: str) -> SolanaSignatureStatus | None:
        from solders.signature import Signature

        client = self._ensure_client()
        resp = await client.get_signature_statuses(
            [Signature.from_string(signature)], search_transaction_history=True
        )
        status = resp.value[0]
        if status is None:
            logger.debug("Signature %s unknown to %s", signature, self._rpc_url)
            return None

        confirmation = status.confirmation_status
        return SolanaSignatureStatus(
            signature=signature,
            slot=status.slot,
            confirmation_status=_confirmation_name(confirmation),
            err=status.err,
        )

    async def get_latest_blockhash(self) -> str:
        client = self._ensure_client()
        resp = await client.get_latest_blockhash()
        return str(resp.value.blockhash)


def _confirmation_name(status: Any) -> str | None:
    """Map solders' TransactionConfirmationStatus to its wire name"""
    if status is None:
        return None
    from solders.transaction_status import TransactionConfirmationStatus

    names = {
        TransactionConfirmationStatus.Processed: "processed",
        TransactionConfirmationStatus.Confirmed: "confirmed",
        TransactionConfirmationStatus.Finalized: "finalized",
    }
    return names.get(status)
