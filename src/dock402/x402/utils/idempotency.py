"""
Idempotency key derivation for settlement requests.

A settle call is keyed by the proof's transaction id and the digest of the
specification it pays for, so the same payment always maps to the same key.
"""

import hashlib

from dock402.x402.types import PaymentProof, PaymentSpecification


def settlement_key(proof: PaymentProof, spec: PaymentSpecification) -> str:
    """
    Derive the idempotency key for settling *proof* against *spec*.

    Returns:
        A 32-byte key as a hex string with '0x' prefix.
        Example: "0x1234...cdef"
    """
    material = f"{proof.network}:{proof.tx_hash}:{spec.digest()}".encode("utf-8")
    return "0x" + hashlib.sha256(material).hexdigest()
