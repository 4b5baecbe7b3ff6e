"""
PaymentInterceptor - HTTP client adapter with automatic 402 payment handling
"""

import logging
from typing import Any

import httpx

from dock402.x402.clients.x402_client import X402Client
from dock402.x402.envelope import (
    DEFAULT_PAYMENT_MESSAGE,
    PAYMENT_PROOF_HEADER,
    build_unauthorized_response,
    encode_payment_proof,
    extract_payment_specification,
    parse_payment_required,
)
from dock402.x402.exceptions import InvalidSpec, PaymentFailed
from dock402.x402.types import PaymentProof, PaymentRequiredResponse

logger = logging.getLogger(__name__)


class PaymentInterceptor:
    """
    HTTP client adapter with automatic 402 payment handling.

    Wraps httpx.AsyncClient: a 402 answer is paid through the X402Client and
    the request is sent once more with the proof attached.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        x402_client: X402Client,
    ) -> None:
        """
        Initialize HTTP client adapter.

        Args:
            http_client: httpx.AsyncClient instance
            x402_client: X402Client instance
        """
        self._http_client = http_client
        self._x402_client = x402_client

    async def fetch(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make HTTP request with automatic 402 payment handling.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            **kwargs: Additional httpx request parameters

        Returns:
            httpx.Response

        Raises:
            PaymentLimitExceeded: Every quote is above the configured ceiling
            PaymentFailed: The server answered 402 again after payment

        Flow:
            1. Send original request
            2. If 402, parse the payment envelope
            3. Pay through the wallet
            4. Retry once with X-402-Payment-Proof header
        """
        logger.info("Making %s request to %s", method, url)
        response = await self._http_client.request(method, url, **kwargs)
        logger.info("Received response: status=%s", response.status_code)

        if response.status_code != 402:
            return response

        logger.info("Received 402 Payment Required, processing payment...")
        payment_required = self._parse_payment_required(response)
        if payment_required is None:
            logger.error("Failed to parse payment envelope from 402 response")
            return response

        proof = await self._x402_client.handle_payment(payment_required, url)
        logger.info("Payment proof created, retrying request with payment")
        return await self._retry_with_payment(method, url, proof, kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET request with payment handling"""
        return await self.fetch("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """POST request with payment handling"""
        return await self.fetch("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        """PUT request with payment handling"""
        return await self.fetch("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """DELETE request with payment handling"""
        return await self.fetch("DELETE", url, **kwargs)

    def _parse_payment_required(self, response: httpx.Response) -> PaymentRequiredResponse | None:
        """Parse the 402 envelope from the body, falling back to the spec header"""
        body: Any = None
        try:
            body = response.json()
        except ValueError:
            logger.debug("402 body is not JSON")

        if isinstance(body, dict) and "payment" in body:
            try:
                return parse_payment_required(body)
            except InvalidSpec as e:
                logger.warning("Invalid payment envelope in body: %s", e)

        try:
            spec = extract_payment_specification(response.headers)
        except InvalidSpec as e:
            logger.warning("Invalid payment spec header: %s", e)
            return None
        if spec is None:
            return None

        message = DEFAULT_PAYMENT_MESSAGE
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            message = body["message"]
        logger.debug("Using payment specification from header")
        return build_unauthorized_response(spec, message)

    async def _retry_with_payment(
        self,
        method: str,
        url: str,
        proof: PaymentProof,
        kwargs: dict[str, Any],
    ) -> httpx.Response:
        """Retry request with payment proof"""
        headers = dict(kwargs.get("headers") or {})
        headers[PAYMENT_PROOF_HEADER] = encode_payment_proof(proof)
        kwargs["headers"] = headers

        response = await self._http_client.request(method, url, **kwargs)
        logger.info("Payment retry response: status=%s", response.status_code)

        if response.status_code == 402:
            logger.error("Payment %s was not accepted for %s", proof.tx_hash, url)
            raise PaymentFailed(url, response.status_code)
        return response
