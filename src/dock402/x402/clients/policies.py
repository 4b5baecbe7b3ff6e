"""
Payment policies for filtering or reordering payment specifications.

Policies are applied in order after adapter filtering and before a
specification is chosen.
"""

import logging

from dock402.x402.exceptions import PaymentLimitExceeded
from dock402.x402.types import PaymentSpecification

logger = logging.getLogger(__name__)


class MaxAmountPolicy:
    """Drop quotes above a ceiling expressed in the token's smallest unit.

    Raises PaymentLimitExceeded when every quote is above the ceiling, so
    the wallet is never asked to sign an over-limit payment.

    Usage::

        client.register_policy(MaxAmountPolicy(1_000_000))
    """

    def __init__(self, max_amount: int) -> None:
        if max_amount < 0:
            raise ValueError("max_amount must be non-negative")
        self.max_amount = max_amount

    async def apply(
        self,
        specifications: list[PaymentSpecification],
    ) -> list[PaymentSpecification]:
        affordable = [s for s in specifications if int(s.price.amount) <= self.max_amount]
        for spec in specifications:
            if spec not in affordable:
                logger.info(
                    "Skipping quote %s %s on %s: above limit %s",
                    spec.price.amount,
                    spec.price.currency,
                    spec.network,
                    self.max_amount,
                )
        if specifications and not affordable:
            cheapest = min(specifications, key=lambda s: int(s.price.amount))
            raise PaymentLimitExceeded(
                int(cheapest.price.amount), self.max_amount, cheapest.network
            )
        return affordable


class PreferredNetworkPolicy:
    """Move quotes on the preferred networks to the front, keeping their order"""

    def __init__(self, networks: list[str]) -> None:
        self._rank = {network: i for i, network in enumerate(networks)}

    async def apply(
        self,
        specifications: list[PaymentSpecification],
    ) -> list[PaymentSpecification]:
        fallback = len(self._rank)
        return sorted(specifications, key=lambda s: self._rank.get(s.network, fallback))
