"""
Protocol envelope - builds and parses the x402 wire envelopes and headers
"""

import logging
from collections.abc import Mapping
from typing import Any, Iterable

from pydantic import ValidationError

from dock402.x402.address import get_converter
from dock402.x402.config import FAMILY_SOLANA, NetworkConfig
from dock402.x402.encoding import decode_header_value, encode_header_value
from dock402.x402.exceptions import InvalidSpec, ProofMismatch, UnsupportedNetwork
from dock402.x402.types import (
    PROTOCOL_VERSION,
    SCHEME_EXACT,
    SCHEME_MAX,
    EvmPaymentProof,
    PaymentProof,
    PaymentRequiredResponse,
    PaymentSpecification,
    ServiceInfo,
    ServicePricing,
    SolanaPaymentProof,
)

logger = logging.getLogger(__name__)

# x402 headers
PAYMENT_SPEC_HEADER = "X-402-Payment-Spec"
PAYMENT_PROOF_HEADER = "X-402-Payment-Proof"
VERSION_HEADER = "X-402-Version"
NETWORK_HEADER = "X-402-Network"
PAYMENT_RESPONSE_HEADER = "X-402-Payment-Response"

SUPPORTED_SCHEMES = (SCHEME_EXACT, SCHEME_MAX)

DEFAULT_PAYMENT_MESSAGE = "Payment required"
# Shown for every rejected proof; the reason only goes to the log
PAYMENT_REJECTED_MESSAGE = "Payment rejected"


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup for plain dicts and httpx.Headers alike"""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, val in headers.items():
        if key.lower() == lowered:
            return val
    return None


def _is_uint_string(value: str) -> bool:
    return isinstance(value, str) and value.isascii() and value.isdigit()


def validate_specification(spec: PaymentSpecification) -> None:
    """Check a specification against the protocol invariants.

    Raises:
        InvalidSpec: With a short machine-readable reason
    """
    if spec.scheme not in SUPPORTED_SCHEMES:
        raise InvalidSpec("unknown_scheme", f"Unsupported scheme: {spec.scheme}")
    try:
        family = NetworkConfig.get_family(spec.network)
    except UnsupportedNetwork as e:
        raise InvalidSpec("unknown_network", str(e)) from e
    if not _is_uint_string(spec.price.amount):
        raise InvalidSpec(
            "invalid_amount",
            f"Amount must be a non-negative integer string, got {spec.price.amount!r}",
        )
    limit = NetworkConfig.get_max_amount(spec.network)
    digits = spec.price.amount.lstrip("0")
    if len(digits) > len(str(limit)) or int(digits or "0") > limit:
        raise InvalidSpec(
            "invalid_amount", f"Amount {spec.price.amount} exceeds the {family} limit {limit}"
        )

    converter = get_converter(family)
    if not converter.is_valid(spec.recipient.address):
        raise InvalidSpec(
            "invalid_recipient",
            f"Recipient {spec.recipient.address!r} is not a valid {family} address",
        )
    asset = spec.asset_address
    if not converter.is_native_sentinel(asset) and not converter.is_valid(asset):
        raise InvalidSpec("invalid_asset", f"Asset {asset!r} is not a valid {family} address")


def is_native_payment(spec: PaymentSpecification) -> bool:
    """True when the specification pays in the chain's native currency"""
    converter = get_converter(NetworkConfig.get_family(spec.network))
    return converter.is_native_sentinel(spec.asset_address)


def build_unauthorized_response(
    spec: PaymentSpecification,
    message: str = DEFAULT_PAYMENT_MESSAGE,
    alternatives: Iterable[PaymentSpecification] | None = None,
) -> PaymentRequiredResponse:
    """Wrap a specification into a 402 envelope"""
    return PaymentRequiredResponse(
        payment=spec,
        message=message,
        alternatives=tuple(alternatives) if alternatives else None,
    )


def build_payment_headers(spec: PaymentSpecification) -> dict[str, str]:
    """Headers that accompany a 402 response"""
    return {
        PAYMENT_SPEC_HEADER: encode_header_value(spec),
        VERSION_HEADER: PROTOCOL_VERSION,
        NETWORK_HEADER: spec.network,
    }


def parse_payment_proof(data: Mapping[str, Any]) -> PaymentProof:
    """Build the family-specific proof model from wire data.

    Raises:
        ProofMismatch: If the data is not a valid proof for a known network
    """
    network = data.get("network")
    if not isinstance(network, str) or not NetworkConfig.is_supported(network):
        raise ProofMismatch("unknown_network", f"Proof for unsupported network: {network!r}")
    model = SolanaPaymentProof if NetworkConfig.get_family(network) == FAMILY_SOLANA else EvmPaymentProof
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ProofMismatch("malformed_proof", f"Malformed payment proof: {e}") from e


def parse_payment_specification(data: Mapping[str, Any]) -> PaymentSpecification:
    """Validate wire data as a specification.

    Raises:
        InvalidSpec: If the data is malformed or breaks an invariant
    """
    try:
        spec = PaymentSpecification.model_validate(data)
    except ValidationError as e:
        raise InvalidSpec("malformed_spec", f"Malformed payment specification: {e}") from e
    validate_specification(spec)
    return spec


def parse_payment_required(data: Mapping[str, Any]) -> PaymentRequiredResponse:
    """Validate a 402 body; every quoted specification must satisfy the invariants"""
    try:
        envelope = PaymentRequiredResponse.model_validate(data)
    except ValidationError as e:
        raise InvalidSpec("malformed_envelope", f"Malformed 402 envelope: {e}") from e
    for spec in envelope.all_specifications():
        validate_specification(spec)
    return envelope


def extract_payment_proof(headers: Mapping[str, str]) -> PaymentProof | None:
    """Decode the payment proof header.

    Returns:
        The proof, or None when the request carries no proof header

    Raises:
        ProofMismatch: If the header is present but cannot be decoded
    """
    raw = get_header(headers, PAYMENT_PROOF_HEADER)
    if not raw:
        return None
    try:
        data = decode_header_value(raw)
    except ValueError as e:
        raise ProofMismatch("malformed_header", str(e)) from e
    if not isinstance(data, dict):
        raise ProofMismatch("malformed_header", "Payment proof header is not a JSON object")
    return parse_payment_proof(data)


def encode_payment_proof(proof: PaymentProof) -> str:
    return encode_header_value(proof)


def extract_payment_specification(headers: Mapping[str, str]) -> PaymentSpecification | None:
    """Decode the specification header of a 402 response, if present"""
    raw = get_header(headers, PAYMENT_SPEC_HEADER)
    if not raw:
        return None
    try:
        data = decode_header_value(raw)
    except ValueError as e:
        raise InvalidSpec("malformed_header", str(e)) from e
    if not isinstance(data, dict):
        raise InvalidSpec("malformed_header", "Payment spec header is not a JSON object")
    return parse_payment_specification(data)


def build_service_info(
    id: str,
    name: str,
    description: str,
    endpoint: str,
    per_request: str,
    networks: Iterable[str],
    category: str,
    currencies: Iterable[str] | None = None,
    status: str = "online",
) -> ServiceInfo:
    """Describe a paid service for discovery listings.

    When *currencies* is omitted the native currency of every listed network
    is advertised.
    """
    networks = list(networks)
    for network in networks:
        NetworkConfig.get_family(network)
    if currencies is None:
        currencies = dict.fromkeys(NetworkConfig.get_native_currency(n) for n in networks)
    return ServiceInfo(
        id=id,
        name=name,
        description=description,
        endpoint=endpoint,
        pricing=ServicePricing(
            per_request=per_request,
            currencies=list(currencies),
            networks=networks,
        ),
        category=category,
        status=status,
    )
