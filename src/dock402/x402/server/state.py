"""
Payment negotiation state machine
"""

import logging
from enum import Enum

from dock402.x402.exceptions import IllegalStateTransition

logger = logging.getLogger(__name__)


class PaymentState(str, Enum):
    """Where a single paid request stands"""

    NO_PROOF = "no_proof"
    REQUIRE_SPEC = "require_spec"
    AWAITING_VERIFY = "awaiting_verify"
    VERIFIED = "verified"
    SETTLED = "settled"
    REJECTED = "rejected"


_TRANSITIONS: dict[PaymentState, frozenset[PaymentState]] = {
    PaymentState.NO_PROOF: frozenset({PaymentState.REQUIRE_SPEC, PaymentState.REJECTED}),
    PaymentState.REQUIRE_SPEC: frozenset({PaymentState.AWAITING_VERIFY, PaymentState.REJECTED}),
    PaymentState.AWAITING_VERIFY: frozenset({PaymentState.VERIFIED, PaymentState.REJECTED}),
    PaymentState.VERIFIED: frozenset({PaymentState.SETTLED}),
    PaymentState.SETTLED: frozenset(),
    PaymentState.REJECTED: frozenset(),
}


class PaymentNegotiation:
    """Tracks one request through the payment states.

    Starts in NO_PROOF and only moves along legal edges; SETTLED and
    REJECTED are terminal.
    """

    def __init__(self, resource: str | None = None) -> None:
        self.resource = resource
        self.state = PaymentState.NO_PROOF
        self.reason: str | None = None
        self.history: list[PaymentState] = [self.state]

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]

    def can_transition(self, target: PaymentState) -> bool:
        return target in _TRANSITIONS[self.state]

    def transition(self, target: PaymentState, reason: str | None = None) -> None:
        """Move to *target*

        Raises:
            IllegalStateTransition: If *target* is not reachable from the current state
        """
        if not self.can_transition(target):
            raise IllegalStateTransition(
                f"Illegal payment state transition {self.state.value} -> {target.value}"
            )
        logger.debug(
            "Payment for %s: %s -> %s%s",
            self.resource,
            self.state.value,
            target.value,
            f" ({reason})" if reason else "",
        )
        self.state = target
        self.history.append(target)
        if reason is not None:
            self.reason = reason

    def reject(self, reason: str) -> None:
        self.transition(PaymentState.REJECTED, reason)
