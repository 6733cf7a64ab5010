"""
Full lifecycle of one name: bootstrap, tokenize, escrow deposit and
withdrawal, transfer to a second holder, redemption and re-tokenization.
"""

import pytest

from name_tokenizer.config import LAMPORTS_PER_SOL, NFT_SYMBOL
from name_tokenizer.derivation import mint_key
from name_tokenizer.errors import AlreadyInitialized, MintAlreadyExists, RecordNotActive, Unauthorized
from name_tokenizer.state import Tag

URI = "https://example.org/nft.json"
TOKENS = 20 * 10**6


def test_name_lifecycle(ledger, client, program_id, fee_payer, alice, bob, token, name_account):
    for kp in (alice, bob):
        ledger.create_associated_token_account(fee_payer, kp.pubkey(), token)

    # 1. central state, exactly once
    client.create_central_state(fee_payer)
    with pytest.raises(AlreadyInitialized):
        client.create_central_state(fee_payer)

    # 2. mint at the derived address, exactly once
    mint, _ = mint_key(name_account, program_id)
    assert client.create_mint(name_account, fee_payer).supply == 0
    assert client.addresses(name_account).nft_mint == mint
    with pytest.raises(MintAlreadyExists):
        client.create_mint(name_account, fee_payer)

    # 3. tokenize for alice
    record = client.create_nft("example", URI, name_account, alice)
    record_key = client.addresses(name_account).nft_record
    assert record.tag == Tag.ACTIVE_RECORD
    assert client.mint_info(mint).supply == 1
    assert client.name_owner(name_account) == record_key
    metadata = client.metadata(mint)
    assert (metadata.symbol, metadata.uri, metadata.seller_fee_basis_points) == (NFT_SYMBOL, URI, 500)
    assert metadata.update_authority == client.addresses(name_account).central_state
    assert metadata.is_mutable

    # 4. funds sent to the record address
    ledger.request_airdrop(record_key, LAMPORTS_PER_SOL // 2)
    ledger.mint_tokens(token, fee_payer, record_key, TOKENS)

    # 5. alice claims the escrow
    sol_before = ledger.get_balance(alice.pubkey())
    client.withdraw(name_account, alice, [token])
    assert ledger.get_balance(alice.pubkey()) - sol_before == LAMPORTS_PER_SOL // 2
    assert ledger.get_token_balance(alice.pubkey(), token) == TOKENS
    assert client.escrow_balances(name_account, [token]).is_empty

    # 6. the NFT moves to bob
    ledger.create_associated_token_account(fee_payer, bob.pubkey(), mint)
    ledger.transfer_tokens(alice, mint, bob.pubkey(), 1)
    with pytest.raises(Unauthorized):
        client.redeem_nft(name_account, alice)

    # 7. bob, now holder, claims a second deposit
    ledger.request_airdrop(record_key, LAMPORTS_PER_SOL // 2)
    ledger.mint_tokens(token, fee_payer, record_key, TOKENS)
    client.withdraw(name_account, bob, [token])
    assert ledger.get_token_balance(bob.pubkey(), token) == TOKENS
    assert client.nft_record(name_account).owner == bob.pubkey()

    # 8. bob redeems: supply back to zero and the name is his
    record = client.redeem_nft(name_account, bob)
    assert record.tag == Tag.INACTIVE_RECORD
    assert client.mint_info(mint).supply == 0
    assert client.name_owner(name_account) == bob.pubkey()
    with pytest.raises(RecordNotActive):
        client.redeem_nft(name_account, bob)

    # 9. funds arriving after redemption still go to the stored owner
    ledger.request_airdrop(record_key, LAMPORTS_PER_SOL // 2)
    ledger.mint_tokens(token, fee_payer, record_key, TOKENS)
    client.withdraw(name_account, bob, [token])
    assert ledger.get_token_balance(bob.pubkey(), token) == 2 * TOKENS

    # 10. bob tokenizes again: same record, same nonce
    first_nonce = client.addresses(name_account).record_nonce
    record = client.create_nft("example", URI, name_account, bob)
    assert record.tag == Tag.ACTIVE_RECORD
    assert record.nonce == first_nonce
    assert client.addresses(name_account).nft_record == record_key
    assert client.mint_info(mint).supply == 1
    assert ledger.get_token_balance(bob.pubkey(), mint) == 1
