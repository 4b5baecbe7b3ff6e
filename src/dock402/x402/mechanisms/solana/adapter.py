"""
Solana chain adapter.
"""

import logging
import struct

from solders.pubkey import Pubkey

from dock402.x402.address import SolanaAddressConverter
from dock402.x402.config import FAMILY_SOLANA, MAX_AMOUNTS, NetworkConfig
from dock402.x402.envelope import is_native_payment, validate_specification
from dock402.x402.exceptions import ConfigurationError, ProofMismatch, UnsupportedNetwork
from dock402.x402.mechanisms._base import compare_proof_fields
from dock402.x402.mechanisms.solana.rpc import (
    SolanaRpcStatusReader,
    SolanaSignatureStatus,
    SolanaStatusReader,
)
from dock402.x402.types import (
    PaymentProof,
    PaymentSpecification,
    SolanaAccountMeta,
    SolanaComputeBudget,
    SolanaInstruction,
    SolanaPaymentProof,
    SolanaTransactionRequest,
)

logger = logging.getLogger(__name__)

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# Instruction discriminators
SYSTEM_TRANSFER = 2
TOKEN_TRANSFER = 3

_converter = SolanaAddressConverter()


def _check_u64(amount: int) -> None:
    if not 0 <= amount <= MAX_AMOUNTS[FAMILY_SOLANA]:
        raise ValueError(f"Amount out of u64 range: {amount}")


def get_associated_token_address(owner: str, mint: str) -> str:
    """Derive the associated token account of *owner* for *mint*"""
    address, _bump = Pubkey.find_program_address(
        [
            bytes(Pubkey.from_string(owner)),
            bytes(Pubkey.from_string(TOKEN_PROGRAM_ID)),
            bytes(Pubkey.from_string(mint)),
        ],
        Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID),
    )
    return str(address)


def system_transfer_instruction(sender: str, recipient: str, lamports: int) -> SolanaInstruction:
    _check_u64(lamports)
    return SolanaInstruction(
        program_id=SYSTEM_PROGRAM_ID,
        keys=(
            SolanaAccountMeta(pubkey=sender, is_signer=True, is_writable=True),
            SolanaAccountMeta(pubkey=recipient, is_signer=False, is_writable=True),
        ),
        data=tuple(struct.pack("<IQ", SYSTEM_TRANSFER, lamports)),
    )


def token_transfer_instruction(
    source: str, destination: str, owner: str, amount: int
) -> SolanaInstruction:
    _check_u64(amount)
    return SolanaInstruction(
        program_id=TOKEN_PROGRAM_ID,
        keys=(
            SolanaAccountMeta(pubkey=source, is_signer=False, is_writable=True),
            SolanaAccountMeta(pubkey=destination, is_signer=False, is_writable=True),
            SolanaAccountMeta(pubkey=owner, is_signer=True, is_writable=False),
        ),
        data=tuple(struct.pack("<BQ", TOKEN_TRANSFER, amount)),
    )


class SolanaChainAdapter:
    """Chain adapter for Solana clusters."""

    family = FAMILY_SOLANA

    def __init__(
        self,
        status_reader: SolanaStatusReader | None = None,
        rpc_urls: dict[str, str] | None = None,
        onchain_verification: bool = False,
    ) -> None:
        self._status_reader = status_reader
        self._rpc_urls = rpc_urls or {}
        self._onchain_verification = onchain_verification
        self._readers: dict[str, SolanaStatusReader] = {}

    def supports(self, network: str) -> bool:
        return NetworkConfig.is_solana(network)

    def _check_network(self, network: str) -> None:
        if not self.supports(network):
            raise UnsupportedNetwork(network, f"Not a Solana network: {network}")

    def _network_reader(self, network: str) -> SolanaStatusReader:
        if self._status_reader is not None:
            return self._status_reader
        if network not in self._readers:
            rpc_url = NetworkConfig.get_rpc_url(network, self._rpc_urls)
            if not rpc_url:
                raise ConfigurationError(f"No RPC URL configured for {network}")
            self._readers[network] = SolanaRpcStatusReader(rpc_url)
        return self._readers[network]

    def build_transaction_request(
        self,
        spec: PaymentSpecification,
        recent_blockhash: str,
        fee_payer: str,
        compute_budget: SolanaComputeBudget | None = None,
    ) -> SolanaTransactionRequest:
        """Unsigned instruction set that pays *spec* from *fee_payer*.

        Native payments are a single System Program transfer. Token payments
        are a single Token Program transfer between the associated token
        accounts of payer and recipient.
        """
        self._check_network(spec.network)
        validate_specification(spec)
        amount = int(spec.price.amount)

        if is_native_payment(spec):
            instruction = system_transfer_instruction(fee_payer, spec.recipient.address, amount)
        else:
            mint = spec.asset_address
            instruction = token_transfer_instruction(
                source=get_associated_token_address(fee_payer, mint),
                destination=get_associated_token_address(spec.recipient.address, mint),
                owner=fee_payer,
                amount=amount,
            )

        return SolanaTransactionRequest(
            recent_blockhash=recent_blockhash,
            fee_payer=fee_payer,
            instructions=(instruction,),
            compute_budget=compute_budget,
        )

    async def prepare_transaction(
        self, spec: PaymentSpecification, sender: str
    ) -> SolanaTransactionRequest:
        self._check_network(spec.network)
        blockhash = await self._network_reader(spec.network).get_latest_blockhash()
        return self.build_transaction_request(spec, blockhash, sender)

    @staticmethod
    def _check_status(status: SolanaSignatureStatus | None, proof: PaymentProof) -> None:
        if status is None:
            raise ProofMismatch("tx_not_found", f"Signature {proof.tx_hash} not found")
        if status.err is not None:
            raise ProofMismatch("tx_failed", f"Transaction failed: {status.err}")
        if not status.is_finalized:
            raise ProofMismatch(
                "not_finalized", f"On-chain status is {status.confirmation_status}"
            )

    async def verify_proof(
        self,
        proof: PaymentProof,
        spec: PaymentSpecification,
        rpc_endpoint: str | None = None,
    ) -> bool:
        """Check *proof* pays *spec*.

        Recipient comparison is exact and the proof must report the
        ``finalized`` commitment level. When a status reader is available the
        signature is also checked on chain. Any failure yields False.
        """
        try:
            self._check_network(spec.network)
            compare_proof_fields(proof, spec, _converter)
            if not isinstance(proof, SolanaPaymentProof):
                raise ProofMismatch("missing_status", "Proof carries no confirmation status")
            if proof.confirmation_status != "finalized":
                raise ProofMismatch(
                    "not_finalized", f"Confirmation status is {proof.confirmation_status}"
                )

            if rpc_endpoint:
                reader = SolanaRpcStatusReader(rpc_endpoint)
                try:
                    status = await reader.get_signature_status(proof.tx_hash)
                finally:
                    await reader.close()
                self._check_status(status, proof)
            elif self._status_reader is not None or self._onchain_verification:
                reader = self._network_reader(spec.network)
                self._check_status(await reader.get_signature_status(proof.tx_hash), proof)
        except (ProofMismatch, UnsupportedNetwork) as e:
            logger.info("Solana proof %s rejected: %s", proof.tx_hash, e)
            return False
        except Exception as e:
            logger.warning(
                "Solana proof %s could not be verified: %s", proof.tx_hash, e, exc_info=True
            )
            return False
        return True
