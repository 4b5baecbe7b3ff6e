"""
Offline tests for the reference wallets.
"""

import pytest
from solders.keypair import Keypair

from conftest import BLOCKHASH, SOLANA_MERCHANT, make_spec
from dock402.x402.exceptions import SignatureCreationError, UnsupportedNetwork
from dock402.x402.mechanisms import SolanaChainAdapter
from dock402.x402.signers import EvmWallet, SolanaWallet, Wallet
from dock402.x402.types import EvmTransactionRequest, SolanaComputeBudget

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
PRIVATE_KEY_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


@pytest.fixture
def solana_wallet():
    return SolanaWallet(Keypair.from_seed(bytes([9] * 32)))


def native_request(wallet, compute_budget=None):
    spec = make_spec(
        network="solana-devnet",
        amount="1000000",
        currency="SOL",
        asset=None,
        recipient=SOLANA_MERCHANT,
    )
    payer = wallet.get_address("solana-devnet")
    return SolanaChainAdapter().build_transaction_request(
        spec, BLOCKHASH, payer, compute_budget=compute_budget
    )


class TestEvmWallet:
    def test_address_from_private_key(self):
        wallet = EvmWallet.from_private_key(PRIVATE_KEY)
        assert wallet.get_address("base-sepolia") == PRIVATE_KEY_ADDRESS

    def test_accepts_key_without_prefix(self):
        assert EvmWallet(PRIVATE_KEY[2:]).get_address("polygon") == PRIVATE_KEY_ADDRESS

    def test_refuses_solana(self):
        with pytest.raises(UnsupportedNetwork):
            EvmWallet(PRIVATE_KEY).get_address("solana-devnet")

    def test_satisfies_wallet_protocol(self):
        assert isinstance(EvmWallet(PRIVATE_KEY), Wallet)


class TestSolanaWallet:
    def test_address(self, solana_wallet):
        expected = str(Keypair.from_seed(bytes([9] * 32)).pubkey())
        assert solana_wallet.get_address("solana-mainnet") == expected

    def test_refuses_evm(self, solana_wallet):
        with pytest.raises(UnsupportedNetwork):
            solana_wallet.get_address("base-sepolia")

    def test_from_bytes(self):
        keypair = Keypair.from_seed(bytes([9] * 32))
        wallet = SolanaWallet.from_bytes(list(bytes(keypair)))
        assert wallet.get_address("solana-devnet") == str(keypair.pubkey())

    def test_build_signed_transaction(self, solana_wallet):
        transaction = solana_wallet.build_transaction(native_request(solana_wallet))
        transaction.verify()
        assert str(transaction.message.account_keys[0]) == solana_wallet.get_address(
            "solana-devnet"
        )
        assert str(transaction.message.recent_blockhash) == BLOCKHASH
        assert len(transaction.message.instructions) == 1

    def test_compute_budget_instructions(self, solana_wallet):
        budget = SolanaComputeBudget(units=200_000, micro_lamports=5_000)
        transaction = solana_wallet.build_transaction(native_request(solana_wallet, budget))
        assert len(transaction.message.instructions) == 3

    def test_fee_payer_must_be_wallet(self, solana_wallet):
        other = SolanaWallet(Keypair.from_seed(bytes([3] * 32)))
        with pytest.raises(SignatureCreationError):
            other.build_transaction(native_request(solana_wallet))

    @pytest.mark.anyio
    async def test_refuses_evm_payload(self, solana_wallet):
        tx = EvmTransactionRequest(to=SOLANA_MERCHANT, value="1", chain_id=1)
        with pytest.raises(SignatureCreationError):
            await solana_wallet.sign_transaction("solana-devnet", tx)

    def test_from_base58(self):
        import base58

        keypair = Keypair.from_seed(bytes([9] * 32))
        wallet = SolanaWallet.from_base58(base58.b58encode(bytes(keypair)).decode())
        assert wallet.get_address("solana-devnet") == str(keypair.pubkey())
