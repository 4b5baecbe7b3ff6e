"""
End-to-end payment flow: PaymentInterceptor talking to a resource server
built on PaymentHandler, with an in-process facilitator.
"""

import httpx
import pytest

from conftest import EVM_MERCHANT, EVM_PAYER, FakeFacilitator, FakeWallet, make_evm_proof
from dock402.x402.clients import PaymentInterceptor, X402Client
from dock402.x402.envelope import PAYMENT_PROOF_HEADER, encode_payment_proof
from dock402.x402.exceptions import PaymentFailed, PaymentLimitExceeded
from dock402.x402.facilitator import FacilitatorClient
from dock402.x402.server import PaymentHandler, ResourceConfig
from dock402.x402.types import EvmTransactionRequest

URL = "https://api.example.com/premium"
QUOTED_WEI = "10000000000000000"

OPTIONS = ResourceConfig(
    resource=URL,
    network="base-mainnet",
    price="0.01 ETH",
    pay_to=EVM_MERCHANT,
    description="Premium report",
)


class ResourceServer:
    """ASGI-free resource server: every request goes through PaymentHandler.handle"""

    def __init__(self, handler: PaymentHandler):
        self.handler = handler
        self.operation_calls = 0
        self.results = []

    async def operation(self):
        self.operation_calls += 1
        return {"report": "premium"}

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        result = await self.handler.handle(request.headers, OPTIONS, self.operation)
        self.results.append(result)
        return httpx.Response(result.status_code, json=result.body, headers=result.headers)


def build_stack(facilitator_transport, wallet=None, max_retries=0, **client_kwargs):
    facilitator = FacilitatorClient(
        "http://facilitator.test",
        max_retries=max_retries,
        backoff_base=0,
        transport=facilitator_transport,
    )
    server = ResourceServer(PaymentHandler(facilitator=facilitator))
    wallet = wallet or FakeWallet()
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    interceptor = PaymentInterceptor(http_client, X402Client(wallet, **client_kwargs))
    return interceptor, http_client, server, wallet


class TestPaymentFlow:
    @pytest.mark.anyio
    async def test_request_without_proof_is_quoted(self):
        _, http_client, server, _ = build_stack(httpx.MockTransport(FakeFacilitator()))
        response = await http_client.get(URL)

        assert response.status_code == 402
        payment = response.json()["payment"]
        assert payment["price"]["amount"] == QUOTED_WEI
        assert payment["network"] == "base-mainnet"
        assert "asset" not in payment["price"]
        assert server.operation_calls == 0

    @pytest.mark.anyio
    async def test_client_pays_native_transfer(self):
        facilitator = FakeFacilitator()
        interceptor, _, server, wallet = build_stack(httpx.MockTransport(facilitator))

        response = await interceptor.get(URL)

        assert response.status_code == 200
        assert response.json()["data"] == {"report": "premium"}
        assert server.operation_calls == 1

        network, tx = wallet.requests[0]
        assert network == "base-mainnet"
        assert isinstance(tx, EvmTransactionRequest)
        assert tx.to == EVM_MERCHANT
        assert tx.value == QUOTED_WEI
        assert tx.chain_id == 8453

        assert len(facilitator.verify_calls) == 1
        assert len(facilitator.settle_calls) == 1

    @pytest.mark.anyio
    async def test_proof_must_match_quote(self):
        interceptor, http_client, server, _ = build_stack(httpx.MockTransport(FakeFacilitator()))
        spec = server.handler.create_payment_requirements(OPTIONS)

        for tampered in (
            make_evm_proof(spec, amount="1"),
            make_evm_proof(spec, to=EVM_PAYER),
        ):
            response = await http_client.get(
                URL, headers={PAYMENT_PROOF_HEADER: encode_payment_proof(tampered)}
            )
            assert response.status_code == 402
        assert server.operation_calls == 0

        response = await http_client.get(
            URL, headers={PAYMENT_PROOF_HEADER: encode_payment_proof(make_evm_proof(spec))}
        )
        assert response.status_code == 200
        assert server.operation_calls == 1

    @pytest.mark.anyio
    async def test_limit_exceeded_before_wallet(self):
        facilitator = FakeFacilitator()
        interceptor, _, server, wallet = build_stack(
            httpx.MockTransport(facilitator), max_amount=5000000000000000
        )
        with pytest.raises(PaymentLimitExceeded):
            await interceptor.get(URL)
        assert wallet.requests == []
        assert server.operation_calls == 0
        assert facilitator.verify_calls == []

    @pytest.mark.anyio
    async def test_verify_timeout_never_invokes_operation(self):
        attempts = []

        def timing_out(request):
            attempts.append(request)
            raise httpx.ReadTimeout("facilitator timed out", request=request)

        interceptor, _, server, _ = build_stack(httpx.MockTransport(timing_out), max_retries=2)

        with pytest.raises(PaymentFailed):
            await interceptor.get(URL)
        assert len(attempts) == 3
        assert server.operation_calls == 0
