"""
FacilitatorClient - Client for communicating with facilitator service
"""

import asyncio
import logging
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Any, Callable

import httpx
from pydantic import ValidationError

from dock402.x402.exceptions import (
    AmbiguousSettlement,
    FacilitatorError,
    FacilitatorRejected,
    NetworkError,
)
from dock402.x402.types import PaymentProof, PaymentSpecification, SettleResponse, VerifyResponse
from dock402.x402.utils import settlement_key

if TYPE_CHECKING:
    from dock402.x402.settings import X402Settings

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 0.5
DEFAULT_SETTLED_TTL = 600.0
DEFAULT_MAX_SETTLED = 10_000


class FacilitatorClient:
    """
    Client for communicating with facilitator service.

    ``verify`` is side-effect free and retried on transient failures.
    ``settle`` moves funds, so it is sent once with an idempotency key and
    any outcome that cannot be classified surfaces as AmbiguousSettlement.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
        settled_ttl: float = DEFAULT_SETTLED_TTL,
        max_settled: int = DEFAULT_MAX_SETTLED,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize facilitator client.

        Args:
            base_url: Facilitator service base URL
            headers: Custom HTTP headers (e.g., Authorization)
            timeout: Per-request timeout in seconds
            max_retries: Retries after the first verify attempt
            backoff_base: Delay before retry n is ``backoff_base * 2**(n-1)`` seconds
            transport: Optional httpx transport (e.g. httpx.MockTransport)
            settled_ttl: Seconds a completed settlement is remembered
            max_settled: Most completed settlements remembered at once
            clock: Monotonic time source for settled_ttl
        """
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None
        self.settled_ttl = settled_ttl
        self.max_settled = max_settled
        self._clock = clock
        # key -> (response, expires_at), oldest first
        self._settled: OrderedDict[str, tuple[SettleResponse, float]] = OrderedDict()
        self._settle_locks: dict[str, asyncio.Lock] = {}
        self._settle_users: dict[str, int] = {}

    @classmethod
    def from_settings(
        cls, settings: "X402Settings", transport: httpx.AsyncBaseTransport | None = None
    ) -> "FacilitatorClient":
        return cls(
            settings.facilitator_url,
            timeout=settings.facilitator_timeout,
            max_retries=settings.verify_max_retries,
            backoff_base=settings.verify_backoff_base,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "FacilitatorClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @staticmethod
    def _request_body(proof: PaymentProof, spec: PaymentSpecification) -> dict[str, Any]:
        return {
            "proof": proof.model_dump(mode="json", by_alias=True, exclude_none=True),
            "spec": spec.model_dump(mode="json", by_alias=True, exclude_none=True),
        }

    @staticmethod
    def _rejected(response: httpx.Response) -> FacilitatorRejected:
        return FacilitatorRejected(
            response.status_code,
            f"Facilitator rejected {response.request.url.path}: "
            f"{response.status_code} {response.text[:200]}",
        )

    async def verify(
        self,
        proof: PaymentProof,
        spec: PaymentSpecification,
    ) -> VerifyResponse:
        """
        Ask the facilitator whether *proof* satisfies *spec*.

        Args:
            proof: Payment proof from client
            spec: Payment specification the proof claims to pay

        Returns:
            VerifyResponse

        Raises:
            NetworkError: If every attempt failed transiently
            FacilitatorRejected: On a 4xx answer
        """
        client = await self._get_client()
        body = self._request_body(proof, spec)

        last_error: Exception | None = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = self.backoff_base * 2 ** (attempt - 1)
                logger.info(
                    "Retrying verify for %s in %.2fs (attempt %d/%d)",
                    proof.tx_hash,
                    delay,
                    attempt + 1,
                    self.max_retries + 1,
                )
                await asyncio.sleep(delay)
            try:
                response = await client.post("/verify", json=body)
            except httpx.RequestError as e:
                last_error = e
                logger.warning("Verify request failed: %s", e)
                continue

            if response.status_code >= 500:
                last_error = httpx.HTTPStatusError(
                    f"Server error {response.status_code}",
                    request=response.request,
                    response=response,
                )
                logger.warning("Facilitator verify returned %s", response.status_code)
                continue
            if response.status_code >= 400:
                raise self._rejected(response)
            try:
                return VerifyResponse(**response.json())
            except (ValueError, ValidationError) as e:
                raise FacilitatorError(f"Malformed verify response: {e}") from e

        raise NetworkError(
            f"Facilitator verify failed after {self.max_retries + 1} attempts: {last_error}"
        ) from last_error

    async def settle(
        self,
        proof: PaymentProof,
        spec: PaymentSpecification,
    ) -> SettleResponse:
        """
        Ask the facilitator to settle *proof* against *spec*.

        The request is never retried here. A repeated call for a proof and
        specification that already settled returns the stored response.

        Returns:
            SettleResponse with the settlement transaction

        Raises:
            NetworkError: If the request could not be sent
            AmbiguousSettlement: If the request was sent but the outcome is unknown
            FacilitatorRejected: On a 4xx answer
        """
        key = settlement_key(proof, spec)
        lock = self._settle_locks.setdefault(key, asyncio.Lock())
        self._settle_users[key] = self._settle_users.get(key, 0) + 1
        try:
            async with lock:
                cached = self._cached_settlement(key)
                if cached is not None:
                    logger.debug("Settlement %s already completed, returning stored result", key)
                    return cached

                result = await self._send_settle(key, proof, spec)
                if result.settled:
                    self._remember_settlement(key, result)
                return result
        finally:
            self._settle_users[key] -= 1
            if not self._settle_users[key]:
                del self._settle_users[key]
                del self._settle_locks[key]

    def _prune_settled(self) -> None:
        now = self._clock()
        while self._settled:
            oldest = next(iter(self._settled))
            if self._settled[oldest][1] > now and len(self._settled) <= self.max_settled:
                break
            del self._settled[oldest]

    def _cached_settlement(self, key: str) -> SettleResponse | None:
        self._prune_settled()
        entry = self._settled.get(key)
        return entry[0] if entry is not None else None

    def _remember_settlement(self, key: str, result: SettleResponse) -> None:
        self._settled[key] = (result, self._clock() + self.settled_ttl)
        self._settled.move_to_end(key)
        self._prune_settled()

    async def _send_settle(
        self, key: str, proof: PaymentProof, spec: PaymentSpecification
    ) -> SettleResponse:
        client = await self._get_client()
        try:
            response = await client.post(
                "/settle",
                json=self._request_body(proof, spec),
                headers={IDEMPOTENCY_HEADER: key},
            )
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout) as e:
            raise NetworkError(f"Could not reach facilitator to settle: {e}") from e
        except httpx.RequestError as e:
            logger.error("Settle request %s interrupted after sending: %s", key, e)
            raise AmbiguousSettlement(key, f"Settle outcome unknown ({e})") from e

        if response.status_code >= 500:
            logger.error("Facilitator settle returned %s for %s", response.status_code, key)
            raise AmbiguousSettlement(
                key, f"Facilitator answered {response.status_code}; settle outcome unknown"
            )
        if response.status_code >= 400:
            raise self._rejected(response)
        try:
            return SettleResponse(**response.json())
        except (ValueError, ValidationError) as e:
            raise AmbiguousSettlement(key, f"Malformed settle response: {e}") from e
