"""
X402Client - Core payment client for x402 protocol
"""

import logging
import time
from typing import TYPE_CHECKING, Any, Protocol, Sequence

from dock402.x402.clients.policies import MaxAmountPolicy
from dock402.x402.config import FAMILY_EVM, NetworkConfig
from dock402.x402.exceptions import UnsupportedNetwork
from dock402.x402.mechanisms import ChainAdapter, EvmChainAdapter, SolanaChainAdapter
from dock402.x402.signers.base import Wallet
from dock402.x402.types import (
    EvmPaymentProof,
    PaymentProof,
    PaymentRequiredResponse,
    PaymentSpecification,
    SignedTransaction,
    SolanaPaymentProof,
)

if TYPE_CHECKING:
    from dock402.x402.settings import X402Settings

logger = logging.getLogger(__name__)


class PaymentPolicy(Protocol):
    """Policy that filters or reorders payment specifications.

    Return a subset (or reordered list) of the input.
    """

    async def apply(
        self,
        specifications: list[PaymentSpecification],
    ) -> list[PaymentSpecification]:
        """Apply this policy to the given specifications."""
        ...


class AdapterEntry:
    """Registered adapter entry"""

    def __init__(self, pattern: str, adapter: ChainAdapter, priority: int):
        self.pattern = pattern
        self.adapter = adapter
        self.priority = priority


class X402Client:
    """
    Core payment client for x402 protocol.

    Manages the chain adapter registry and turns a quoted specification into
    a payment proof through the wallet.
    """

    def __init__(
        self,
        wallet: Wallet,
        max_amount: int | None = None,
        auto_register_defaults: bool = True,
        rpc_urls: dict[str, str] | None = None,
    ) -> None:
        """
        Initialize X402Client.

        Args:
            wallet: Wallet that signs and submits payments
            max_amount: Ceiling in smallest units; quotes above it are refused
            auto_register_defaults: Register adapters for the "evm:*" and "solana:*" patterns
            rpc_urls: RPC overrides passed to the default adapters
        """
        self._wallet = wallet
        self._adapters: list[AdapterEntry] = []
        self._policies: list[PaymentPolicy] = []

        if max_amount is not None:
            self.register_policy(MaxAmountPolicy(max_amount))
        if auto_register_defaults:
            self.register("evm:*", EvmChainAdapter(rpc_urls=rpc_urls))
            self.register("solana:*", SolanaChainAdapter(rpc_urls=rpc_urls))

    @classmethod
    def from_settings(cls, wallet: Wallet, settings: "X402Settings") -> "X402Client":
        """Client honouring ``X402_MAX_AMOUNT`` and ``X402_RPC_URLS``"""
        return cls(wallet, max_amount=settings.max_amount, rpc_urls=settings.rpc_urls)

    @property
    def wallet(self) -> Wallet:
        return self._wallet

    def register_policy(self, policy: PaymentPolicy) -> "X402Client":
        """
        Register a payment policy.

        Returns:
            self for method chaining
        """
        self._policies.append(policy)
        return self

    def register(self, network_pattern: str, adapter: ChainAdapter) -> "X402Client":
        """
        Register a chain adapter for a network pattern.

        Args:
            network_pattern: Exact network ("base-sepolia"), family pattern
                ("evm:*", "solana:*") or "*"
            adapter: Chain adapter instance

        Returns:
            self for method chaining
        """
        priority = self._calculate_priority(network_pattern)
        logger.info(
            "Registering adapter for pattern '%s' with priority %d", network_pattern, priority
        )
        self._adapters.append(AdapterEntry(network_pattern, adapter, priority))
        self._adapters.sort(key=lambda e: e.priority, reverse=True)
        return self

    async def select_specification(
        self,
        spec: PaymentSpecification,
        alternatives: Sequence[PaymentSpecification] | None = None,
    ) -> PaymentSpecification:
        """
        Pick the specification to pay from the quoted options.

        The primary quote comes first, then the alternatives in server order;
        the first option surviving adapter filtering and the policies wins.

        Raises:
            UnsupportedNetwork: No quoted network has an adapter
            PaymentLimitExceeded: Every supported quote is above the ceiling
        """
        options = [spec, *(alternatives or ())]
        logger.info("Selecting payment specification from %d options", len(options))

        candidates = [s for s in options if self._find_adapter(s.network) is not None]
        logger.debug("After adapter filter: %d candidates", len(candidates))
        if not candidates:
            raise UnsupportedNetwork(
                spec.network, f"No adapter for quoted networks {[s.network for s in options]}"
            )

        for policy in self._policies:
            candidates = await policy.apply(candidates)
            logger.debug("After policy: %d candidates", len(candidates))

        if not candidates:
            raise UnsupportedNetwork(spec.network, "No acceptable payment specification")

        selected = candidates[0]
        logger.info(
            "Selected payment specification: network=%s, scheme=%s, amount=%s",
            selected.network,
            selected.scheme,
            selected.price.amount,
        )
        return selected

    async def create_payment_proof(
        self,
        spec: PaymentSpecification,
        resource: str,
    ) -> PaymentProof:
        """
        Pay *spec* through the wallet and describe the payment.

        Args:
            spec: Selected payment specification
            resource: Resource URL, for logging

        Returns:
            Family-specific payment proof
        """
        adapter = self._find_adapter(spec.network)
        if adapter is None:
            raise UnsupportedNetwork(spec.network, f"No adapter registered for {spec.network}")

        logger.info(
            "Paying %s %s on %s for %s", spec.price.amount, spec.price.currency, spec.network, resource
        )
        sender = self._wallet.get_address(spec.network)
        tx = await adapter.prepare_transaction(spec, sender)
        signed = await self._wallet.sign_transaction(spec.network, tx)
        proof = self._build_proof(spec, sender, signed)
        logger.info("Payment proof created: tx_hash=%s", proof.tx_hash)
        return proof

    async def handle_payment(
        self,
        payment_required: PaymentRequiredResponse,
        resource: str,
    ) -> PaymentProof:
        """Select a quote from a 402 envelope and pay it"""
        spec = await self.select_specification(
            payment_required.payment, payment_required.alternatives
        )
        return await self.create_payment_proof(spec, resource)

    @staticmethod
    def _build_proof(
        spec: PaymentSpecification, sender: str, signed: SignedTransaction
    ) -> PaymentProof:
        common: dict[str, Any] = {
            "tx_hash": signed.tx_hash,
            "network": spec.network,
            "from_address": signed.sender or sender,
            "to": spec.recipient.address,
            "amount": spec.price.amount,
            "timestamp": signed.timestamp or int(time.time()),
            "block_number": signed.block_number,
        }
        if NetworkConfig.get_family(spec.network) == FAMILY_EVM:
            return EvmPaymentProof(
                **common,
                transaction_index=signed.transaction_index,
                gas_used=signed.gas_used,
                effective_gas_price=signed.effective_gas_price,
            )
        return SolanaPaymentProof(
            **common,
            slot=signed.slot,
            confirmation_status=signed.confirmation_status or "processed",
            fee=signed.fee,
        )

    def _find_adapter(self, network: str) -> ChainAdapter | None:
        """Find adapter for network"""
        for entry in self._adapters:
            if self._match_pattern(entry.pattern, network) and entry.adapter.supports(network):
                return entry.adapter
        return None

    def _match_pattern(self, pattern: str, network: str) -> bool:
        """Match network against pattern"""
        if pattern == network or pattern == "*":
            return True
        if pattern.endswith(":*"):
            family = pattern[:-2]
            return NetworkConfig.FAMILIES.get(network) == family
        return False

    def _calculate_priority(self, pattern: str) -> int:
        """Calculate priority for pattern (more specific = higher priority)"""
        if pattern == "*":
            return 0
        if pattern.endswith(":*"):
            return 1
        return 10
