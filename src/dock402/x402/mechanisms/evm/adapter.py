"""
EVM chain adapter.
"""

import logging

from dock402.x402.address import EvmAddressConverter
from dock402.x402.config import FAMILY_EVM, MAX_AMOUNTS, NetworkConfig
from dock402.x402.envelope import is_native_payment, validate_specification
from dock402.x402.exceptions import ProofMismatch, UnsupportedNetwork
from dock402.x402.mechanisms._base import compare_proof_fields
from dock402.x402.mechanisms.evm.rpc import EvmReceipt, EvmReceiptReader, Web3ReceiptReader
from dock402.x402.types import EvmTransactionRequest, PaymentProof, PaymentSpecification

logger = logging.getLogger(__name__)

# transfer(address,uint256)
ERC20_TRANSFER_SELECTOR = "0xa9059cbb"

_converter = EvmAddressConverter()


def encode_erc20_transfer(to: str, amount: int | str) -> str:
    """ABI-encode an ERC-20 transfer call"""
    value = int(amount)
    if not 0 <= value <= MAX_AMOUNTS[FAMILY_EVM]:
        raise ValueError(f"Amount out of uint256 range: {amount}")
    return ERC20_TRANSFER_SELECTOR + _converter.pad32(to) + format(value, "x").rjust(64, "0")


class EvmChainAdapter:
    """Chain adapter for EVM networks (Base, Polygon, BSC, Sei, Peaq)."""

    family = FAMILY_EVM

    def __init__(
        self,
        receipt_reader: EvmReceiptReader | None = None,
        rpc_urls: dict[str, str] | None = None,
        onchain_verification: bool = False,
    ) -> None:
        """
        Args:
            receipt_reader: Reader used for on-chain checks on every network
            rpc_urls: RPC overrides used to build a reader per network
            onchain_verification: Check receipts even when no endpoint is passed
        """
        self._receipt_reader = receipt_reader
        self._rpc_urls = rpc_urls or {}
        self._onchain_verification = onchain_verification
        self._readers: dict[str, EvmReceiptReader] = {}

    def supports(self, network: str) -> bool:
        return NetworkConfig.is_evm(network)

    def _check_network(self, network: str) -> None:
        if not self.supports(network):
            raise UnsupportedNetwork(network, f"Not an EVM network: {network}")

    def build_transaction_request(self, spec: PaymentSpecification) -> EvmTransactionRequest:
        """Unsigned transaction that pays *spec*.

        Native payments send value straight to the recipient; token payments
        call ``transfer`` on the asset contract.
        """
        self._check_network(spec.network)
        validate_specification(spec)
        chain_id = NetworkConfig.get_chain_id(spec.network)

        if is_native_payment(spec):
            return EvmTransactionRequest(
                to=spec.recipient.address,
                value=spec.price.amount,
                chain_id=chain_id,
            )
        return EvmTransactionRequest(
            to=spec.asset_address,
            data=encode_erc20_transfer(spec.recipient.address, spec.price.amount),
            chain_id=chain_id,
        )

    async def prepare_transaction(
        self, spec: PaymentSpecification, sender: str
    ) -> EvmTransactionRequest:
        # Gas and nonce are filled in by the wallet
        return self.build_transaction_request(spec)

    def _get_reader(self, network: str, rpc_endpoint: str | None) -> EvmReceiptReader | None:
        if rpc_endpoint:
            return Web3ReceiptReader(rpc_endpoint)
        if self._receipt_reader is not None:
            return self._receipt_reader
        if not self._onchain_verification:
            return None
        if network not in self._readers:
            rpc_url = NetworkConfig.get_rpc_url(network, self._rpc_urls)
            if not rpc_url:
                return None
            self._readers[network] = Web3ReceiptReader(rpc_url)
        return self._readers[network]

    def _check_receipt(
        self,
        receipt: EvmReceipt | None,
        proof: PaymentProof,
        spec: PaymentSpecification,
        paid: int,
    ) -> None:
        if receipt is None:
            raise ProofMismatch("tx_not_found", f"No receipt for {proof.tx_hash}")
        if not receipt.succeeded:
            raise ProofMismatch("tx_failed", f"Transaction {proof.tx_hash} reverted")
        if receipt.block_number is None:
            raise ProofMismatch("tx_not_mined", f"Transaction {proof.tx_hash} not in a block")
        if not _converter.equals(receipt.from_address, proof.from_address):
            raise ProofMismatch("sender_mismatch", f"Sender {receipt.from_address} != {proof.from_address}")
        if receipt.to is None:
            raise ProofMismatch("recipient_mismatch", "Transaction has no recipient")

        if is_native_payment(spec):
            if not _converter.equals(receipt.to, spec.recipient.address):
                raise ProofMismatch("recipient_mismatch", f"On-chain recipient {receipt.to}")
            if receipt.value != paid:
                raise ProofMismatch("amount_mismatch", f"On-chain value {receipt.value} != {paid}")
            return

        if not _converter.equals(receipt.to, spec.asset_address):
            raise ProofMismatch("asset_mismatch", f"Called contract {receipt.to}")
        expected = encode_erc20_transfer(spec.recipient.address, paid)
        if receipt.input.lower() != expected.lower():
            raise ProofMismatch("calldata_mismatch", "Transfer calldata does not match")

    async def verify_proof(
        self,
        proof: PaymentProof,
        spec: PaymentSpecification,
        rpc_endpoint: str | None = None,
    ) -> bool:
        """Check *proof* pays *spec*.

        Recipient comparison is case-insensitive. When a receipt reader is
        available the transaction is also checked on chain. Any failure,
        including RPC errors, yields False.
        """
        try:
            self._check_network(spec.network)
            paid = compare_proof_fields(proof, spec, _converter)
            reader = self._get_reader(spec.network, rpc_endpoint)
            if reader is not None:
                receipt = await reader.get_receipt(proof.tx_hash)
                self._check_receipt(receipt, proof, spec, paid)
        except (ProofMismatch, UnsupportedNetwork) as e:
            logger.info("EVM proof %s rejected: %s", proof.tx_hash, e)
            return False
        except Exception as e:
            logger.warning(
                "EVM proof %s could not be verified: %s", proof.tx_hash, e, exc_info=True
            )
            return False
        return True
