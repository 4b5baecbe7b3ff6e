"""
Tests for the Solana chain adapter.
"""

import struct

import pytest

from conftest import (
    BLOCKHASH,
    SOLANA_DEVNET_USDC,
    SOLANA_MERCHANT,
    SOLANA_PAYER,
    SOLANA_SIGNATURE,
    FakeStatusReader,
    make_evm_proof,
    make_solana_proof,
    make_spec,
)
from dock402.x402.exceptions import InvalidSpec, UnsupportedNetwork
from dock402.x402.mechanisms import SolanaChainAdapter, get_adapter_for_network
from dock402.x402.mechanisms.solana import (
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    SolanaSignatureStatus,
    get_associated_token_address,
)
from dock402.x402.mechanisms.solana.adapter import system_transfer_instruction
from dock402.x402.types import SolanaComputeBudget


def status(confirmation="finalized", err=None):
    return SolanaSignatureStatus(
        signature=SOLANA_SIGNATURE, slot=42, confirmation_status=confirmation, err=err
    )


class TestBuildTransactionRequest:
    def test_native_transfer(self, solana_native_spec):
        tx = SolanaChainAdapter().build_transaction_request(
            solana_native_spec, BLOCKHASH, SOLANA_PAYER
        )
        assert tx.recent_blockhash == BLOCKHASH
        assert tx.fee_payer == SOLANA_PAYER
        assert len(tx.instructions) == 1

        instruction = tx.instructions[0]
        assert instruction.program_id == SYSTEM_PROGRAM_ID
        assert [k.pubkey for k in instruction.keys] == [SOLANA_PAYER, SOLANA_MERCHANT]
        assert instruction.keys[0].is_signer and instruction.keys[0].is_writable
        assert not instruction.keys[1].is_signer and instruction.keys[1].is_writable
        assert instruction.data_bytes() == struct.pack("<IQ", 2, 1_000_000)

    def test_token_transfer_between_associated_accounts(self, solana_usdc_spec):
        tx = SolanaChainAdapter().build_transaction_request(
            solana_usdc_spec, BLOCKHASH, SOLANA_PAYER
        )
        instruction = tx.instructions[0]
        assert instruction.program_id == TOKEN_PROGRAM_ID
        assert [k.pubkey for k in instruction.keys] == [
            get_associated_token_address(SOLANA_PAYER, SOLANA_DEVNET_USDC),
            get_associated_token_address(SOLANA_MERCHANT, SOLANA_DEVNET_USDC),
            SOLANA_PAYER,
        ]
        assert instruction.keys[2].is_signer
        assert instruction.data_bytes() == struct.pack("<BQ", 3, 10000)

    def test_associated_address_is_deterministic(self):
        first = get_associated_token_address(SOLANA_MERCHANT, SOLANA_DEVNET_USDC)
        assert first == get_associated_token_address(SOLANA_MERCHANT, SOLANA_DEVNET_USDC)
        assert first != get_associated_token_address(SOLANA_PAYER, SOLANA_DEVNET_USDC)

    def test_deterministic(self, solana_usdc_spec):
        adapter = SolanaChainAdapter()
        first = adapter.build_transaction_request(solana_usdc_spec, BLOCKHASH, SOLANA_PAYER)
        second = adapter.build_transaction_request(solana_usdc_spec, BLOCKHASH, SOLANA_PAYER)
        assert first.canonical_json() == second.canonical_json()

    def test_rejects_amount_above_u64(self):
        spec = make_spec(
            network="solana-devnet",
            amount=str(2**64),
            currency="SOL",
            asset=None,
            recipient=SOLANA_MERCHANT,
        )
        with pytest.raises(InvalidSpec) as exc_info:
            SolanaChainAdapter().build_transaction_request(spec, BLOCKHASH, SOLANA_PAYER)
        assert exc_info.value.reason == "invalid_amount"

    def test_largest_u64_amount_builds(self):
        spec = make_spec(
            network="solana-devnet",
            amount=str(2**64 - 1),
            currency="SOL",
            asset=None,
            recipient=SOLANA_MERCHANT,
        )
        tx = SolanaChainAdapter().build_transaction_request(spec, BLOCKHASH, SOLANA_PAYER)
        assert tx.instructions[0].data_bytes() == struct.pack("<IQ", 2, 2**64 - 1)

    def test_instruction_rejects_amount_above_u64(self):
        with pytest.raises(ValueError):
            system_transfer_instruction(SOLANA_PAYER, SOLANA_MERCHANT, 2**64)

    def test_compute_budget_passthrough(self, solana_native_spec):
        budget = SolanaComputeBudget(units=200_000, micro_lamports=1000)
        tx = SolanaChainAdapter().build_transaction_request(
            solana_native_spec, BLOCKHASH, SOLANA_PAYER, compute_budget=budget
        )
        assert tx.compute_budget == budget

    def test_rejects_evm_network(self, evm_usdc_spec):
        with pytest.raises(UnsupportedNetwork):
            SolanaChainAdapter().build_transaction_request(evm_usdc_spec, BLOCKHASH, SOLANA_PAYER)

    @pytest.mark.anyio
    async def test_prepare_transaction_fetches_blockhash(self, solana_native_spec):
        adapter = SolanaChainAdapter(status_reader=FakeStatusReader(blockhash=BLOCKHASH))
        tx = await adapter.prepare_transaction(solana_native_spec, SOLANA_PAYER)
        assert tx.recent_blockhash == BLOCKHASH


class TestVerifyProof:
    @pytest.mark.anyio
    async def test_finalized_proof(self, solana_native_spec):
        proof = make_solana_proof(solana_native_spec)
        assert await SolanaChainAdapter().verify_proof(proof, solana_native_spec) is True

    @pytest.mark.anyio
    async def test_confirmed_is_not_enough(self, solana_native_spec):
        proof = make_solana_proof(solana_native_spec, confirmationStatus="confirmed")
        assert await SolanaChainAdapter().verify_proof(proof, solana_native_spec) is False

    @pytest.mark.anyio
    async def test_processed_is_rejected(self, solana_native_spec):
        proof = make_solana_proof(solana_native_spec, confirmationStatus="processed")
        assert await SolanaChainAdapter().verify_proof(proof, solana_native_spec) is False

    @pytest.mark.anyio
    async def test_recipient_is_case_sensitive(self, solana_native_spec):
        proof = make_solana_proof(solana_native_spec, to=SOLANA_MERCHANT.lower())
        assert await SolanaChainAdapter().verify_proof(proof, solana_native_spec) is False

    @pytest.mark.anyio
    async def test_amount_mismatch(self, solana_native_spec):
        proof = make_solana_proof(solana_native_spec, amount="999999")
        assert await SolanaChainAdapter().verify_proof(proof, solana_native_spec) is False

    @pytest.mark.anyio
    async def test_proof_without_status(self, solana_native_spec):
        proof = make_evm_proof(solana_native_spec, to=SOLANA_MERCHANT, txHash=SOLANA_SIGNATURE)
        assert await SolanaChainAdapter().verify_proof(proof, solana_native_spec) is False

    @pytest.mark.anyio
    async def test_wrong_family_returns_false(self, evm_usdc_spec, solana_native_spec):
        proof = make_solana_proof(solana_native_spec)
        assert await SolanaChainAdapter().verify_proof(proof, evm_usdc_spec) is False


class TestOnchainVerification:
    @pytest.mark.anyio
    async def test_finalized_on_chain(self, solana_native_spec):
        adapter = SolanaChainAdapter(status_reader=FakeStatusReader(status()))
        proof = make_solana_proof(solana_native_spec)
        assert await adapter.verify_proof(proof, solana_native_spec) is True

    @pytest.mark.anyio
    async def test_not_yet_finalized_on_chain(self, solana_native_spec):
        adapter = SolanaChainAdapter(status_reader=FakeStatusReader(status("confirmed")))
        proof = make_solana_proof(solana_native_spec)
        assert await adapter.verify_proof(proof, solana_native_spec) is False

    @pytest.mark.anyio
    async def test_failed_on_chain(self, solana_native_spec):
        reader = FakeStatusReader(status(err={"InstructionError": [0, "Custom"]}))
        adapter = SolanaChainAdapter(status_reader=reader)
        proof = make_solana_proof(solana_native_spec)
        assert await adapter.verify_proof(proof, solana_native_spec) is False

    @pytest.mark.anyio
    async def test_unknown_signature(self, solana_native_spec):
        adapter = SolanaChainAdapter(status_reader=FakeStatusReader(None))
        proof = make_solana_proof(solana_native_spec)
        assert await adapter.verify_proof(proof, solana_native_spec) is False


class TestAdapterLookup:
    def test_lookup_by_network(self):
        assert isinstance(get_adapter_for_network("solana-mainnet"), SolanaChainAdapter)
