"""
Type definitions for x402 protocol
"""

import hashlib
import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny

PROTOCOL_VERSION = "1.0"

SCHEME_EXACT = "exact"
SCHEME_MAX = "max"

X402Network = Literal[
    "base-mainnet",
    "base-sepolia",
    "solana-mainnet",
    "solana-devnet",
    "polygon",
    "bsc",
    "sei",
    "peaq",
]

Currency = Literal["USDC", "SOL", "ETH", "BNB", "MATIC", "SEI", "PEAQ"]

ConfirmationStatus = Literal["processed", "confirmed", "finalized"]


def _canonical_dumps(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class _FrozenModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def canonical_json(self) -> str:
        """Byte-stable JSON form: sorted keys, no whitespace, no null fields."""
        return _canonical_dumps(self.model_dump(mode="json", by_alias=True, exclude_none=True))


# ---------------------------------------------------------------------------
# Payment specification
# ---------------------------------------------------------------------------


class PaymentAsset(_FrozenModel):
    """Token contract / mint address"""

    address: str


class PaymentPrice(_FrozenModel):
    """Price in the smallest unit of the chain (wei, lamports, ...)"""

    amount: str
    currency: str
    asset: Optional[PaymentAsset] = None


class PaymentRecipient(_FrozenModel):
    """Payment recipient"""

    address: str


class PaymentResource(_FrozenModel):
    """Resource being paid for"""

    uri: str
    description: Optional[str] = None


class PaymentSpecification(_FrozenModel):
    """Price and destination for a gated resource"""

    version: Literal["1.0"] = PROTOCOL_VERSION
    scheme: str = SCHEME_EXACT
    network: str
    price: PaymentPrice
    recipient: PaymentRecipient
    resource: PaymentResource
    metadata: Optional[dict[str, Any]] = None

    @property
    def asset_address(self) -> str | None:
        return self.price.asset.address if self.price.asset else None

    def digest(self) -> str:
        """sha256 of the canonical JSON form, hex encoded"""
        return hashlib.sha256(self.canonical_json().encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Payment proofs
# ---------------------------------------------------------------------------


class PaymentProof(_FrozenModel):
    """Chain-agnostic evidence that a transaction occurred"""

    tx_hash: str = Field(alias="txHash")
    network: str
    from_address: str = Field(alias="from")
    to: str
    amount: str
    timestamp: int
    block_number: Optional[int] = Field(None, alias="blockNumber")


class EvmPaymentProof(PaymentProof):
    """EVM payment proof"""

    transaction_index: Optional[int] = Field(None, alias="transactionIndex")
    gas_used: Optional[str] = Field(None, alias="gasUsed")
    effective_gas_price: Optional[str] = Field(None, alias="effectiveGasPrice")


class SolanaPaymentProof(PaymentProof):
    """Solana payment proof; ``tx_hash`` holds the transaction signature"""

    slot: Optional[int] = None
    confirmation_status: ConfirmationStatus = Field(alias="confirmationStatus")
    fee: Optional[int] = None


AnyPaymentProof = Union[EvmPaymentProof, SolanaPaymentProof, PaymentProof]


# ---------------------------------------------------------------------------
# Chain-native unsigned payloads
# ---------------------------------------------------------------------------


class EvmTransactionRequest(_FrozenModel):
    """Unsigned EVM transaction request"""

    to: str
    value: Optional[str] = None
    data: Optional[str] = None
    gas_limit: Optional[str] = Field(None, alias="gasLimit")
    max_fee_per_gas: Optional[str] = Field(None, alias="maxFeePerGas")
    max_priority_fee_per_gas: Optional[str] = Field(None, alias="maxPriorityFeePerGas")
    chain_id: int = Field(alias="chainId")

    @property
    def is_native_transfer(self) -> bool:
        return self.data is None


class SolanaAccountMeta(_FrozenModel):
    """Account referenced by a Solana instruction"""

    pubkey: str
    is_signer: bool = Field(alias="isSigner")
    is_writable: bool = Field(alias="isWritable")


class SolanaInstruction(_FrozenModel):
    """Single program instruction"""

    program_id: str = Field(alias="programId")
    keys: tuple[SolanaAccountMeta, ...]
    data: tuple[int, ...]

    def data_bytes(self) -> bytes:
        return bytes(self.data)


class SolanaComputeBudget(_FrozenModel):
    """Compute-budget hints"""

    units: Optional[int] = None
    micro_lamports: Optional[int] = Field(None, alias="microLamports")


class SolanaTransactionRequest(_FrozenModel):
    """Unsigned Solana instruction set"""

    recent_blockhash: str = Field(alias="recentBlockhash")
    fee_payer: str = Field(alias="feePayer")
    instructions: tuple[SolanaInstruction, ...]
    compute_budget: Optional[SolanaComputeBudget] = Field(None, alias="computeBudget")


TransactionRequest = Union[EvmTransactionRequest, SolanaTransactionRequest]


class SignedTransaction(BaseModel):
    """Result of a wallet signing (and broadcasting) a transaction"""

    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(alias="txHash")
    sender: str
    timestamp: Optional[int] = None
    block_number: Optional[int] = Field(None, alias="blockNumber")
    transaction_index: Optional[int] = Field(None, alias="transactionIndex")
    gas_used: Optional[str] = Field(None, alias="gasUsed")
    effective_gas_price: Optional[str] = Field(None, alias="effectiveGasPrice")
    slot: Optional[int] = None
    confirmation_status: Optional[ConfirmationStatus] = Field(None, alias="confirmationStatus")
    fee: Optional[int] = None


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class PaymentRequiredResponse(_FrozenModel):
    """Payment required response (402)"""

    status: Literal[402] = 402
    payment: PaymentSpecification
    message: str
    alternatives: Optional[tuple[PaymentSpecification, ...]] = None

    def all_specifications(self) -> list[PaymentSpecification]:
        return [self.payment, *(self.alternatives or ())]


class PaymentResponse(BaseModel):
    """Successful paid response"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    proof: SerializeAsAny[PaymentProof]
    data: Optional[Any] = None
    receipt: Optional[str] = None


class ServicePricing(BaseModel):
    """Pricing information of a paid service"""

    model_config = ConfigDict(populate_by_name=True)

    per_request: str = Field(alias="perRequest")
    currencies: list[str]
    networks: list[str]


class ServiceInfo(BaseModel):
    """Service descriptor"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str
    endpoint: str
    pricing: ServicePricing
    category: str
    status: Literal["online", "offline", "maintenance"] = "online"


# ---------------------------------------------------------------------------
# Facilitator responses
# ---------------------------------------------------------------------------


class VerifyResponse(BaseModel):
    """Verification response from facilitator"""

    model_config = ConfigDict(populate_by_name=True)

    accepted: bool
    reason: Optional[str] = None


class SettleResponse(BaseModel):
    """Settlement response from facilitator"""

    model_config = ConfigDict(populate_by_name=True)

    settled: bool
    transaction: Optional[str] = None
    network: Optional[str] = None
    reason: Optional[str] = None
