"""
Chain adapter interface.

Every chain family implements the same capability: build the unsigned
payload that satisfies a specification and check a proof against it.
"""

import logging
from typing import Any, Protocol, runtime_checkable

from dock402.x402.address import AddressConverter
from dock402.x402.exceptions import ProofMismatch
from dock402.x402.types import PaymentProof, PaymentSpecification, TransactionRequest

logger = logging.getLogger(__name__)


@runtime_checkable
class ChainAdapter(Protocol):
    """Chain-specific payload construction and proof verification"""

    family: str

    def supports(self, network: str) -> bool:
        """Return True if *network* belongs to this adapter's family"""
        ...

    async def prepare_transaction(
        self, spec: PaymentSpecification, sender: str
    ) -> TransactionRequest:
        """Build the unsigned payload *sender* must sign to pay *spec*"""
        ...

    async def verify_proof(
        self,
        proof: PaymentProof,
        spec: PaymentSpecification,
        rpc_endpoint: str | None = None,
    ) -> bool:
        """Check *proof* against *spec*; never raises, fails closed"""
        ...


def parse_amount(value: Any, field: str) -> int:
    """Parse a non-negative integer amount string

    Raises:
        ProofMismatch: If the value is not an integer string
    """
    if not isinstance(value, str) or not value.isascii() or not value.isdigit():
        raise ProofMismatch("invalid_amount", f"{field} is not an integer string: {value!r}")
    return int(value)


def compare_proof_fields(
    proof: PaymentProof,
    spec: PaymentSpecification,
    converter: AddressConverter,
) -> int:
    """Field-level comparison shared by every chain family.

    Returns:
        The paid amount in the smallest unit

    Raises:
        ProofMismatch: With the first mismatching field as reason
    """
    if proof.network != spec.network:
        raise ProofMismatch(
            "network_mismatch", f"Proof network {proof.network} != {spec.network}"
        )
    if not proof.tx_hash:
        raise ProofMismatch("missing_tx_hash", "Proof has no transaction id")
    if not converter.equals(proof.to, spec.recipient.address):
        raise ProofMismatch(
            "recipient_mismatch", f"Proof recipient {proof.to} != {spec.recipient.address}"
        )

    paid = parse_amount(proof.amount, "proof amount")
    quoted = parse_amount(spec.price.amount, "quoted amount")
    if paid != quoted:
        raise ProofMismatch("amount_mismatch", f"Paid {paid} != quoted {quoted}")
    return paid
