"""
Shared fixtures
"""

import json
import time

import httpx
import pytest
from solders.keypair import Keypair

from dock402.x402.facilitator import FacilitatorClient
from dock402.x402.types import (
    EvmPaymentProof,
    PaymentAsset,
    PaymentPrice,
    PaymentRecipient,
    PaymentResource,
    PaymentSpecification,
    SignedTransaction,
    SolanaPaymentProof,
)

BASE_SEPOLIA_USDC = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
SOLANA_DEVNET_USDC = "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU"

EVM_MERCHANT = "0x209693Bc6afc0C5328bA36FaF03C514EF312287C"
EVM_PAYER = "0x1111111111111111111111111111111111111111"
EVM_TX_HASH = "0x" + "ab" * 32

SOLANA_MERCHANT = str(Keypair.from_seed(bytes([7] * 32)).pubkey())
SOLANA_PAYER = str(Keypair.from_seed(bytes([9] * 32)).pubkey())
SOLANA_SIGNATURE = "5" * 88
BLOCKHASH = "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_spec(
    network: str = "base-sepolia",
    amount: str = "10000",
    currency: str = "USDC",
    asset: str | None = BASE_SEPOLIA_USDC,
    recipient: str = EVM_MERCHANT,
    scheme: str = "exact",
    uri: str = "https://api.example.com/premium",
) -> PaymentSpecification:
    return PaymentSpecification(
        scheme=scheme,
        network=network,
        price=PaymentPrice(
            amount=amount,
            currency=currency,
            asset=PaymentAsset(address=asset) if asset else None,
        ),
        recipient=PaymentRecipient(address=recipient),
        resource=PaymentResource(uri=uri),
    )


def make_evm_proof(spec: PaymentSpecification, **overrides) -> EvmPaymentProof:
    data = {
        "txHash": EVM_TX_HASH,
        "network": spec.network,
        "from": EVM_PAYER,
        "to": spec.recipient.address,
        "amount": spec.price.amount,
        "timestamp": int(time.time()),
        "blockNumber": 123,
    }
    data.update(overrides)
    return EvmPaymentProof.model_validate(data)


def make_solana_proof(spec: PaymentSpecification, **overrides) -> SolanaPaymentProof:
    data = {
        "txHash": SOLANA_SIGNATURE,
        "network": spec.network,
        "from": SOLANA_PAYER,
        "to": spec.recipient.address,
        "amount": spec.price.amount,
        "timestamp": int(time.time()),
        "slot": 42,
        "confirmationStatus": "finalized",
    }
    data.update(overrides)
    return SolanaPaymentProof.model_validate(data)


@pytest.fixture
def evm_usdc_spec():
    return make_spec()


@pytest.fixture
def evm_native_spec():
    return make_spec(amount="1000000000000000", currency="ETH", asset=None)


@pytest.fixture
def solana_native_spec():
    return make_spec(
        network="solana-devnet",
        amount="1000000",
        currency="SOL",
        asset=None,
        recipient=SOLANA_MERCHANT,
    )


@pytest.fixture
def solana_usdc_spec():
    return make_spec(
        network="solana-devnet",
        amount="10000",
        currency="USDC",
        asset=SOLANA_DEVNET_USDC,
        recipient=SOLANA_MERCHANT,
    )


class FakeFacilitator:
    """In-process facilitator speaking the /verify and /settle wire format"""

    def __init__(self, accept: bool = True, settle: bool = True) -> None:
        self.accept = accept
        self.settle = settle
        self.verify_calls: list[dict] = []
        self.settle_calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.path == "/verify":
            self.verify_calls.append(body)
            return httpx.Response(200, json={"accepted": self.accept})
        if request.url.path == "/settle":
            self.settle_calls.append(request)
            if not self.settle:
                return httpx.Response(200, json={"settled": False, "reason": "refused"})
            return httpx.Response(
                200,
                json={
                    "settled": True,
                    "transaction": "settle-" + body["proof"]["txHash"][:8],
                    "network": body["spec"]["network"],
                },
            )
        return httpx.Response(404)


@pytest.fixture
def fake_facilitator():
    return FakeFacilitator()


@pytest.fixture
def facilitator_client(fake_facilitator):
    return FacilitatorClient(
        "http://facilitator.test",
        backoff_base=0,
        transport=httpx.MockTransport(fake_facilitator),
    )


class FakeWallet:
    """Wallet that records what it was asked to sign"""

    def __init__(self, address: str = EVM_PAYER, tx_hash: str = EVM_TX_HASH, **signed) -> None:
        self.address = address
        self.tx_hash = tx_hash
        self.signed = signed
        self.requests: list = []

    def get_address(self, network: str) -> str:
        return self.address

    async def sign_transaction(self, network, tx):
        self.requests.append((network, tx))
        return SignedTransaction(
            tx_hash=self.tx_hash,
            sender=self.address,
            timestamp=1_700_000_000,
            **self.signed,
        )


class FakeStatusReader:
    """Solana reader with a fixed blockhash and configurable signature status"""

    def __init__(self, status=None, blockhash: str = BLOCKHASH) -> None:
        self.status = status
        self.blockhash = blockhash

    async def get_signature_status(self, signature):
        return self.status

    async def get_latest_blockhash(self):
        return self.blockhash
