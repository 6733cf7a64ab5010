import hashlib

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from name_tokenizer import derivation
from name_tokenizer.config import ASSOCIATED_TOKEN_PROGRAM_ID, NAME_PROGRAM_ID, TOKEN_PROGRAM_ID
from name_tokenizer.derivation import (
    associated_token_address,
    central_state_key,
    collection_key,
    find_program_address,
    hashed_name,
    mint_key,
    name_account_key,
    nft_record_key,
)
from name_tokenizer.errors import DerivationError


class TestProgramAddresses:

    def test_derivation_is_deterministic(self, program_id):
        name_account = Pubkey.new_unique()
        for derive in (nft_record_key, mint_key):
            first = derive(name_account, program_id)
            assert all(derive(name_account, program_id) == first for _ in range(5))
        assert central_state_key(program_id) == central_state_key(program_id)

    def test_derived_addresses_are_off_curve(self, program_id):
        name_account = Pubkey.new_unique()
        for key, _ in (
            central_state_key(program_id),
            nft_record_key(name_account, program_id),
            mint_key(name_account, program_id),
        ):
            assert not key.is_on_curve()

    def test_record_and_mint_differ_per_name(self, program_id):
        a, b = Pubkey.new_unique(), Pubkey.new_unique()
        keys = {
            nft_record_key(a, program_id)[0],
            nft_record_key(b, program_id)[0],
            mint_key(a, program_id)[0],
            mint_key(b, program_id)[0],
            central_state_key(program_id)[0],
            collection_key(program_id)[0],
        }
        assert len(keys) == 6

    def test_namespace_is_the_program_id(self):
        name_account = Pubkey.new_unique()
        assert nft_record_key(name_account, Pubkey.new_unique()) != nft_record_key(
            name_account, Pubkey.new_unique()
        )

    def test_matches_library_derivation(self, program_id):
        name_account = Pubkey.new_unique()
        expected = Pubkey.find_program_address([b"nft_record", bytes(name_account)], program_id)
        assert nft_record_key(name_account, program_id) == expected

    def test_bump_recreates_the_address(self, program_id):
        name_account = Pubkey.new_unique()
        key, bump = nft_record_key(name_account, program_id)
        recreated = Pubkey.create_program_address(
            [b"nft_record", bytes(name_account), bytes([bump])], program_id
        )
        assert recreated == key

    def test_seed_too_long(self, program_id):
        with pytest.raises(DerivationError):
            find_program_address([bytes(33)], program_id)

    def test_too_many_seeds(self, program_id):
        with pytest.raises(DerivationError):
            find_program_address([b"x"] * 17, program_id)


class TestCollaboratorAddresses:

    def test_hashed_name(self):
        assert hashed_name("example") == hashlib.sha256(b"SPL Name Service" + b"example").digest()

    def test_name_account_key(self):
        name_hash = hashed_name("example")
        expected, _ = Pubkey.find_program_address([name_hash, bytes(32), bytes(32)], NAME_PROGRAM_ID)
        assert name_account_key(name_hash) == expected
        assert name_account_key(hashed_name("other")) != expected

    def test_associated_token_address_accepts_derived_owner(self, program_id):
        record, _ = nft_record_key(Pubkey.new_unique(), program_id)
        mint = Pubkey.new_unique()
        expected, _ = Pubkey.find_program_address(
            [bytes(record), bytes(TOKEN_PROGRAM_ID), bytes(mint)], ASSOCIATED_TOKEN_PROGRAM_ID
        )
        assert associated_token_address(record, mint) == expected


class TestBumpSearch:

    def test_exhausted_bumps(self, program_id, monkeypatch):
        on_curve = Keypair().pubkey()
        assert on_curve.is_on_curve()
        monkeypatch.setattr("name_tokenizer.derivation._candidate", lambda seeds, bump, pid: on_curve)
        with pytest.raises(DerivationError):
            find_program_address([b"nft_record"], program_id)

    def test_skips_on_curve_candidates(self, program_id, monkeypatch):
        real = derivation._candidate
        on_curve = Keypair().pubkey()
        monkeypatch.setattr(
            derivation, "_candidate",
            lambda seeds, bump, pid: on_curve if bump > 250 else real(seeds, bump, pid),
        )
        key, bump = find_program_address([b"nft_record"], program_id)
        assert bump <= 250
        assert not key.is_on_curve()
