"""
PaymentHandler - Server side of the x402 payment flow
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence

import httpx

from dock402.x402.config import NetworkConfig
from dock402.x402.encoding import encode_header_value
from dock402.x402.envelope import (
    DEFAULT_PAYMENT_MESSAGE,
    PAYMENT_REJECTED_MESSAGE,
    PAYMENT_RESPONSE_HEADER,
    build_payment_headers,
    build_unauthorized_response,
    extract_payment_proof,
    is_native_payment,
    validate_specification,
)
from dock402.x402.exceptions import (
    InvalidSpec,
    ProofMismatch,
    UnknownTokenError,
    UnsettledDelivery,
    UnsupportedNetwork,
    X402Error,
)
from dock402.x402.mechanisms import ChainAdapter, EvmChainAdapter, SolanaChainAdapter
from dock402.x402.server.spec_store import InMemorySpecificationStore, SpecificationStore
from dock402.x402.server.state import PaymentNegotiation, PaymentState
from dock402.x402.tokens import TokenRegistry
from dock402.x402.types import (
    SCHEME_EXACT,
    PaymentAsset,
    PaymentPrice,
    PaymentProof,
    PaymentRecipient,
    PaymentRequiredResponse,
    PaymentResource,
    PaymentResponse,
    PaymentSpecification,
    SettleResponse,
)

if TYPE_CHECKING:
    from dock402.x402.facilitator.facilitator_client import FacilitatorClient
    from dock402.x402.settings import X402Settings

logger = logging.getLogger(__name__)


@dataclass
class ResourceConfig:
    """Resource payment configuration"""

    resource: str
    network: str
    price: str
    pay_to: str
    scheme: str = SCHEME_EXACT
    description: str | None = None
    metadata: dict[str, Any] | None = None

    def cache_key(self) -> str:
        return json.dumps(asdict(self), sort_keys=True, separators=(",", ":"), default=str)


@dataclass
class HandlerResult:
    """Framework-neutral HTTP answer produced by PaymentHandler.handle"""

    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    state: PaymentState = PaymentState.NO_PROOF
    settlement: SettleResponse | None = None


Operation = Callable[[], Awaitable[Any]]


class PaymentHandler:
    """
    Server side of the payment flow.

    Issues specifications, checks proofs through the chain adapters and the
    facilitator, and settles after the protected operation ran.
    """

    def __init__(
        self,
        facilitator: "FacilitatorClient | None" = None,
        spec_store: SpecificationStore | None = None,
        auto_register_defaults: bool = True,
        rpc_urls: dict[str, str] | None = None,
        onchain_verification: bool = False,
        spec_ttl_seconds: float = 300.0,
    ) -> None:
        """
        Initialize PaymentHandler.

        Args:
            facilitator: Facilitator client used for verify and settle
            spec_store: Store for issued specifications (in-memory by default)
            auto_register_defaults: Register the EVM and Solana adapters for every network
            rpc_urls: RPC overrides passed to the default adapters
            onchain_verification: Let the default adapters check the chain directly
            spec_ttl_seconds: Negotiation window of the default store
        """
        self._facilitator = facilitator
        self._spec_store = spec_store or InMemorySpecificationStore(spec_ttl_seconds)
        self._adapters: dict[str, ChainAdapter] = {}

        if auto_register_defaults:
            self._register_default_adapters(rpc_urls, onchain_verification)

    @classmethod
    def from_settings(
        cls,
        settings: "X402Settings",
        facilitator: "FacilitatorClient | None" = None,
        spec_store: SpecificationStore | None = None,
    ) -> "PaymentHandler":
        if facilitator is None:
            from dock402.x402.facilitator import FacilitatorClient

            facilitator = FacilitatorClient.from_settings(settings)
        return cls(
            facilitator=facilitator,
            spec_store=spec_store,
            rpc_urls=settings.rpc_urls,
            onchain_verification=settings.onchain_verification,
            spec_ttl_seconds=settings.spec_ttl_seconds,
        )

    def register(self, network: str, adapter: ChainAdapter) -> "PaymentHandler":
        """
        Register a chain adapter for a network.

        Returns:
            self for method chaining
        """
        if not adapter.supports(network):
            raise UnsupportedNetwork(
                network, f"Adapter {type(adapter).__name__} does not support {network}"
            )
        self._adapters[network] = adapter
        return self

    def set_facilitator(self, facilitator: "FacilitatorClient") -> "PaymentHandler":
        self._facilitator = facilitator
        return self

    def _register_default_adapters(
        self, rpc_urls: dict[str, str] | None, onchain_verification: bool
    ) -> None:
        """Register default adapters for all supported networks"""
        evm = EvmChainAdapter(rpc_urls=rpc_urls, onchain_verification=onchain_verification)
        solana = SolanaChainAdapter(rpc_urls=rpc_urls, onchain_verification=onchain_verification)
        for network in NetworkConfig.supported_networks():
            self.register(network, evm if evm.supports(network) else solana)

    def get_adapter(self, network: str) -> ChainAdapter:
        adapter = self._adapters.get(network)
        if adapter is None:
            raise UnsupportedNetwork(network, f"No adapter registered for network: {network}")
        return adapter

    # ------------------------------------------------------------------
    # Specifications
    # ------------------------------------------------------------------

    def _build_specification(self, options: ResourceConfig) -> PaymentSpecification:
        self.get_adapter(options.network)
        try:
            asset_info = TokenRegistry.parse_price(options.price, options.network)
        except (ValueError, UnknownTokenError) as e:
            raise InvalidSpec("invalid_price", f"Cannot price {options.resource}: {e}") from e

        asset = asset_info["asset"]
        spec = PaymentSpecification(
            scheme=options.scheme,
            network=options.network,
            price=PaymentPrice(
                amount=asset_info["amount"],
                currency=asset_info["currency"],
                asset=PaymentAsset(address=asset) if asset else None,
            ),
            recipient=PaymentRecipient(address=options.pay_to),
            resource=PaymentResource(uri=options.resource, description=options.description),
            metadata=options.metadata,
        )
        validate_specification(spec)
        logger.info(
            "Issued payment specification for %s: %s %s on %s (native=%s)",
            options.resource,
            spec.price.amount,
            spec.price.currency,
            spec.network,
            is_native_payment(spec),
        )
        return spec

    def create_payment_requirements(self, options: ResourceConfig) -> PaymentSpecification:
        """Specification for *options*, reused for the whole negotiation window.

        Raises:
            InvalidSpec: If the options do not describe a valid specification
            UnsupportedNetwork: If no adapter handles the network
        """
        return self._spec_store.get_or_create(
            options.cache_key(), lambda: self._build_specification(options)
        )

    def create_402_response(
        self,
        spec: PaymentSpecification,
        message: str = DEFAULT_PAYMENT_MESSAGE,
        alternatives: Sequence[PaymentSpecification] | None = None,
    ) -> PaymentRequiredResponse:
        return build_unauthorized_response(spec, message, alternatives)

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    def extract_payment(self, headers: Mapping[str, str]) -> PaymentProof | None:
        """Decode the proof header; None means the client has not paid yet

        Raises:
            ProofMismatch: If a proof header is present but malformed
        """
        return extract_payment_proof(headers)

    async def verify_payment(self, proof: PaymentProof, spec: PaymentSpecification) -> bool:
        """
        Check a proof locally, then with the facilitator.

        Never raises for a bad proof or an unreachable facilitator; the
        reason is logged and the proof is treated as rejected.
        """
        try:
            adapter = self.get_adapter(spec.network)
        except UnsupportedNetwork as e:
            logger.warning("Payment rejected: %s", e)
            return False

        if not await adapter.verify_proof(proof, spec):
            logger.info("Payment %s rejected by %s adapter", proof.tx_hash, adapter.family)
            return False

        if self._facilitator is None:
            logger.warning("Payment %s rejected: no facilitator configured", proof.tx_hash)
            return False

        try:
            result = await self._facilitator.verify(proof, spec)
        except (X402Error, httpx.HTTPError) as e:
            logger.warning("Payment %s rejected: facilitator verify failed: %s", proof.tx_hash, e)
            return False

        if not result.accepted:
            logger.info(
                "Payment %s rejected by facilitator: %s", proof.tx_hash, result.reason or "unknown"
            )
            return False
        return True

    async def settle_payment(
        self, proof: PaymentProof, spec: PaymentSpecification
    ) -> SettleResponse:
        """
        Settle a verified payment.

        Raises:
            UnsettledDelivery: If settlement did not succeed
        """
        if self._facilitator is None:
            logger.critical(
                "Resource %s delivered but no facilitator is configured to settle %s",
                spec.resource.uri,
                proof.tx_hash,
            )
            raise UnsettledDelivery("no_facilitator")

        try:
            result = await self._facilitator.settle(proof, spec)
        except X402Error as e:
            logger.critical(
                "Resource %s delivered but settlement of %s failed: %s",
                spec.resource.uri,
                proof.tx_hash,
                e,
            )
            raise UnsettledDelivery(type(e).__name__, cause=e) from e

        if not result.settled:
            reason = result.reason or "settlement_refused"
            logger.critical(
                "Resource %s delivered but facilitator did not settle %s: %s",
                spec.resource.uri,
                proof.tx_hash,
                reason,
            )
            raise UnsettledDelivery(reason)

        logger.info("Payment %s settled: %s", proof.tx_hash, result.transaction)
        return result

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def _payment_required(
        self,
        specs: list[PaymentSpecification],
        negotiation: PaymentNegotiation,
        message: str = DEFAULT_PAYMENT_MESSAGE,
    ) -> HandlerResult:
        envelope = self.create_402_response(specs[0], message, specs[1:])
        return HandlerResult(
            status_code=402,
            body=envelope.model_dump(mode="json", by_alias=True, exclude_none=True),
            headers=build_payment_headers(specs[0]),
            state=negotiation.state,
        )

    async def handle(
        self,
        headers: Mapping[str, str],
        options: ResourceConfig | Sequence[ResourceConfig],
        operation: Operation,
    ) -> HandlerResult:
        """
        Run one request through the payment flow.

        *options* may list several accepted payment options; the first one is
        quoted as the primary specification and the rest as alternatives.
        *operation* runs only after the proof is verified, and settlement
        happens after it returns.

        Raises:
            UnsettledDelivery: If the operation ran but settlement failed;
                ``result`` carries the operation output
        """
        configs = [options] if isinstance(options, ResourceConfig) else list(options)
        if not configs:
            raise ValueError("At least one ResourceConfig is required")

        negotiation = PaymentNegotiation(configs[0].resource)
        try:
            proof = self.extract_payment(headers)
        except ProofMismatch as e:
            proof = None
            negotiation.reject(e.reason)
            logger.info("Malformed payment proof for %s: %s", configs[0].resource, e)

        specs = [self.create_payment_requirements(c) for c in configs]
        if negotiation.state is PaymentState.REJECTED:
            return self._payment_required(specs, negotiation, PAYMENT_REJECTED_MESSAGE)

        negotiation.transition(PaymentState.REQUIRE_SPEC)
        if proof is None:
            return self._payment_required(specs, negotiation)

        spec = next((s for s in specs if s.network == proof.network), specs[0])
        negotiation.transition(PaymentState.AWAITING_VERIFY)
        if not await self.verify_payment(proof, spec):
            negotiation.reject("verification_failed")
            return self._payment_required(specs, negotiation, PAYMENT_REJECTED_MESSAGE)
        negotiation.transition(PaymentState.VERIFIED)

        result = await operation()

        try:
            settlement = await self.settle_payment(proof, spec)
        except UnsettledDelivery as e:
            e.result = result
            raise
        negotiation.transition(PaymentState.SETTLED)

        response = PaymentResponse(
            success=True,
            proof=proof,
            data=result,
            receipt=settlement.transaction,
        )
        return HandlerResult(
            status_code=200,
            body=response.model_dump(mode="json", by_alias=True, exclude_none=True),
            headers={PAYMENT_RESPONSE_HEADER: encode_header_value(settlement)},
            state=negotiation.state,
            settlement=settlement,
        )
