"""
x402 custom exception hierarchy
"""


class X402Error(Exception):
    """x402 base exception"""

    pass


class ConfigurationError(X402Error):
    """Configuration-related error"""

    pass


class InvalidSpec(X402Error):
    """Malformed or unsupported payment specification"""

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)


class UnsupportedNetwork(ConfigurationError):
    """Network is unknown or not handled by the selected adapter"""

    def __init__(self, network: str, message: str | None = None):
        self.network = network
        super().__init__(message or f"Unsupported network: {network}")


class ProofMismatch(X402Error):
    """Payment proof does not match the quoted specification"""

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)


class FacilitatorError(X402Error):
    """Facilitator-related error"""

    pass


class NetworkError(FacilitatorError):
    """Transient transport failure talking to the facilitator (retryable)"""

    pass


class FacilitatorRejected(FacilitatorError):
    """Facilitator authoritatively rejected the proof or specification"""

    def __init__(self, status_code: int | None = None, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"Facilitator rejected request (status={status_code})")


class AmbiguousSettlement(FacilitatorError):
    """Settle outcome unknown; must be reconciled out of band"""

    def __init__(self, idempotency_key: str, message: str | None = None):
        self.idempotency_key = idempotency_key
        super().__init__(
            message or f"Settlement outcome unknown for idempotency key {idempotency_key}"
        )


class SettlementError(X402Error):
    """Settlement-related error"""

    pass


class UnsettledDelivery(SettlementError):
    """Protected operation ran but settlement did not succeed.

    The value was delivered without confirmed payment. ``result`` holds the
    operation output so the caller can decide whether to release it.
    """

    def __init__(
        self,
        reason: str,
        result: object = None,
        cause: Exception | None = None,
    ):
        self.reason = reason
        self.result = result
        self.cause = cause
        super().__init__(f"Resource delivered but settlement failed: {reason}")


class PaymentError(X402Error):
    """Client-side payment error"""

    pass


class PaymentLimitExceeded(PaymentError):
    """Quoted amount exceeds the configured maximum payable amount"""

    def __init__(self, amount: int, limit: int, network: str | None = None):
        self.amount = amount
        self.limit = limit
        self.network = network
        super().__init__(
            f"Quoted amount {amount} exceeds maximum payable amount {limit}"
            + (f" on {network}" if network else "")
        )


class PaymentFailed(PaymentError):
    """Server answered 402 again after the payment proof was attached"""

    def __init__(self, url: str, status_code: int = 402):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Payment was not accepted for {url} (status={status_code})")


class IllegalStateTransition(X402Error):
    """Payment negotiation moved between states it cannot connect"""

    pass


class UnknownTokenError(ConfigurationError):
    """Unknown token"""

    pass


class SignatureCreationError(PaymentError):
    """Wallet failed to sign or broadcast the payment transaction"""

    pass
