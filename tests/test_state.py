import pytest
from solders.pubkey import Pubkey

from name_tokenizer.derivation import metadata_key
from name_tokenizer.errors import MalformedAccount, NotFound
from name_tokenizer.spl import Metadata, MintInfo, NameRecordHeader, TokenAccount
from name_tokenizer.state import CentralState, NftRecord, Tag, decode_account
from name_tokenizer.testing import Account


@pytest.fixture
def record() -> NftRecord:
    return NftRecord(
        tag=Tag.ACTIVE_RECORD,
        nonce=254,
        name_account=Pubkey.new_unique(),
        owner=Pubkey.new_unique(),
        nft_mint=Pubkey.new_unique(),
    )


class TestNftRecordLayout:

    def test_fixed_width(self, record):
        assert NftRecord.LEN == 98
        assert len(record.serialize()) == 98

    def test_field_offsets(self, record):
        data = record.serialize()
        assert data[0] == Tag.ACTIVE_RECORD
        assert data[1] == 254
        assert data[2:34] == bytes(record.name_account)
        assert data[34:66] == bytes(record.owner)
        assert data[66:98] == bytes(record.nft_mint)

    def test_round_trip(self, record):
        decoded = NftRecord.deserialize(record.serialize())
        assert decoded == record
        assert decoded.is_active

    @pytest.mark.parametrize("length", [0, 1, 97, 99, 200])
    def test_wrong_length(self, record, length):
        data = (record.serialize() * 3)[:length]
        with pytest.raises(MalformedAccount):
            NftRecord.deserialize(data)

    @pytest.mark.parametrize("tag", [1, 4, 255])
    def test_unknown_or_foreign_tag(self, record, tag):
        data = bytes([tag]) + record.serialize()[1:]
        with pytest.raises(MalformedAccount):
            NftRecord.deserialize(data)

    def test_inactive_record(self, record):
        data = bytes([Tag.INACTIVE_RECORD]) + record.serialize()[1:]
        decoded = NftRecord.deserialize(data)
        assert decoded.tag == Tag.INACTIVE_RECORD
        assert not decoded.is_active


class TestCentralStateLayout:

    def test_round_trip(self):
        assert CentralState().serialize() == b"\x01"
        assert CentralState.deserialize(b"\x01").tag == Tag.CENTRAL_STATE

    @pytest.mark.parametrize("data", [b"", b"\x01\x00", b"\x02", b"\x00", b"\x09"])
    def test_malformed(self, data):
        with pytest.raises(MalformedAccount):
            CentralState.deserialize(data)


class TestDecodeAccount:

    def test_dispatches_on_tag(self, record):
        assert isinstance(decode_account(b"\x01"), CentralState)
        assert decode_account(record.serialize()) == record

    def test_record_length_with_central_tag(self, record):
        with pytest.raises(MalformedAccount):
            decode_account(b"\x01" + record.serialize()[1:])

    def test_unknown_tag(self):
        with pytest.raises(MalformedAccount):
            decode_account(b"\x07" + bytes(97))

    def test_empty(self):
        with pytest.raises(MalformedAccount):
            decode_account(b"")


class TestRetrieve:

    def test_missing_account(self, ledger):
        with pytest.raises(NotFound):
            NftRecord.retrieve(ledger, Pubkey.new_unique())

    def test_central_state_missing(self, ledger, program_id):
        key, _ = CentralState.find_key(program_id)
        with pytest.raises(NotFound):
            CentralState.retrieve(ledger, key)


class TestCollaboratorLayouts:

    def test_mint_layout(self):
        authority = Pubkey.new_unique()
        info = MintInfo(authority, 1, 0, True, authority)
        data = info.serialize()
        assert len(data) == 82
        assert MintInfo.deserialize(data) == info

    def test_mint_without_authorities(self):
        info = MintInfo(None, 0, 6, True, None)
        assert MintInfo.deserialize(info.serialize()) == info

    def test_token_account_layout(self):
        account = TokenAccount(Pubkey.new_unique(), Pubkey.new_unique(), 20_000_000)
        data = account.serialize()
        assert len(data) == 165
        assert TokenAccount.deserialize(data) == account

    def test_name_record_header(self):
        header = NameRecordHeader(Pubkey.default(), Pubkey.new_unique(), Pubkey.default(), b"abc")
        data = header.serialize()
        assert data[32:64] == bytes(header.owner)
        assert NameRecordHeader.deserialize(data) == header

    def test_metadata_layout(self):
        metadata = Metadata(Pubkey.new_unique(), Pubkey.new_unique(), "example", ".sol", "https://x", 500)
        assert Metadata.deserialize(metadata.serialize()) == metadata

    def test_truncated_metadata(self):
        metadata = Metadata(Pubkey.new_unique(), Pubkey.new_unique(), "example", ".sol", "https://x", 500)
        with pytest.raises(MalformedAccount):
            Metadata.deserialize(metadata.serialize()[:-6])

    def test_metadata_invalid_utf8(self):
        metadata = Metadata(Pubkey.new_unique(), Pubkey.new_unique(), "ab", ".sol", "https://x", 500)
        data = bytearray(metadata.serialize())
        # name payload follows the key byte, two keys and its u32 length
        data[69:71] = b"\xff\xfe"
        with pytest.raises(MalformedAccount):
            Metadata.deserialize(bytes(data))

    def test_client_metadata_invalid_utf8(self, ledger, client):
        metadata = Metadata(Pubkey.new_unique(), Pubkey.new_unique(), "ab", ".sol", "https://x", 500)
        data = bytearray(metadata.serialize())
        data[69:71] = b"\xff\xfe"
        ledger._accounts[metadata_key(metadata.mint)] = Account(lamports=1, data=bytes(data))
        with pytest.raises(MalformedAccount):
            client.metadata(metadata.mint)
