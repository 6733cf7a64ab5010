"""
Shared fixtures: a fresh in-memory ledger per test, funded wallets, a
fungible token for escrow deposits, and a registered name.
"""

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from name_tokenizer.client import TokenizerClient
from name_tokenizer.config import LAMPORTS_PER_SOL
from name_tokenizer.testing import LocalLedger


@pytest.fixture
def program_id() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def ledger(program_id) -> LocalLedger:
    return LocalLedger(program_id)


@pytest.fixture
def client(ledger, program_id) -> TokenizerClient:
    return TokenizerClient(ledger, program_id, max_retries=3, retry_delay=0.0)


def _funded(ledger: LocalLedger) -> Keypair:
    kp = Keypair()
    ledger.request_airdrop(kp.pubkey(), 10 * LAMPORTS_PER_SOL)
    return kp


@pytest.fixture
def fee_payer(ledger) -> Keypair:
    return _funded(ledger)


@pytest.fixture
def alice(ledger) -> Keypair:
    return _funded(ledger)


@pytest.fixture
def bob(ledger) -> Keypair:
    return _funded(ledger)


@pytest.fixture
def token(ledger, fee_payer) -> Pubkey:
    """A 6-decimal token used for escrow deposits."""
    return ledger.create_token_mint(fee_payer, decimals=6)


@pytest.fixture
def name_account(ledger, alice) -> Pubkey:
    return ledger.register_name("example", alice)


@pytest.fixture
def initialized(client, fee_payer, name_account):
    """Central state and the name's mint exist."""
    client.create_central_state(fee_payer)
    client.create_mint(name_account, fee_payer)
    return client


@pytest.fixture
def tokenized(initialized, name_account, alice):
    """``example`` is tokenized and Alice holds the NFT."""
    initialized.create_nft("example", "https://example.org/nft.json", name_account, alice)
    return initialized


@pytest.fixture
def deposit(ledger, client, name_account, token, fee_payer):
    """Send lamports and tokens to the name's record address."""

    def send(lamports: int = 0, tokens: int = 0) -> None:
        record = client.addresses(name_account).nft_record
        if lamports:
            ledger.transfer_lamports(fee_payer, record, lamports)
        if tokens:
            ledger.mint_tokens(token, fee_payer, record, tokens)

    return send
