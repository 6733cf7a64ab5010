"""
Protocol account layouts.

Two account kinds are owned by the tokenizer program. Both are fixed width,
little-endian, and start with a one byte discriminant:

    CentralState (1 byte)
      [0:1]    tag            u8   (Tag.CENTRAL_STATE)

    NftRecord (98 bytes)
      [0:1]    tag            u8   (ACTIVE_RECORD / INACTIVE_RECORD)
      [1:2]    nonce          u8   (bump of the record's own address)
      [2:34]   name_account   bytes32
      [34:66]  owner          bytes32 (custody claimant)
      [66:98]  nft_mint       bytes32

A new discriminant value means a new account kind; existing offsets never move.
"""

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from solders.pubkey import Pubkey

from name_tokenizer.config import PROGRAM_ID
from name_tokenizer.derivation import central_state_key, nft_record_key
from name_tokenizer.errors import MalformedAccount, NotFound

logger = logging.getLogger(__name__)


class Tag(IntEnum):
    UNINITIALIZED   = 0
    CENTRAL_STATE   = 1
    ACTIVE_RECORD   = 2
    INACTIVE_RECORD = 3


RECORD_TAGS = (Tag.UNINITIALIZED, Tag.ACTIVE_RECORD, Tag.INACTIVE_RECORD)


def _read_tag(data: bytes) -> Tag:
    if not data:
        raise MalformedAccount("Empty account data")
    try:
        return Tag(data[0])
    except ValueError:
        raise MalformedAccount("Unknown account tag", tag=data[0]) from None


def fetch_account_data(connection, key: Pubkey) -> bytes:
    """
    Raw bytes of ``key`` through ``connection.get_account_info``.

    Works with a solana-py ``Client`` or the in-memory test ledger.
    """
    response = connection.get_account_info(key)
    account = getattr(response, "value", None)
    if account is None or not account.data:
        raise NotFound("Account not found", key=str(key))
    return bytes(account.data)


# ─────────────────────────────────────────────
#  CENTRAL STATE
# ─────────────────────────────────────────────
@dataclass(frozen=True)
class CentralState:
    tag: Tag = Tag.CENTRAL_STATE

    LEN = 1

    def serialize(self) -> bytes:
        return bytes([self.tag])

    @classmethod
    def deserialize(cls, data: bytes) -> "CentralState":
        if len(data) != cls.LEN:
            raise MalformedAccount("Central state has wrong length", length=len(data))
        tag = _read_tag(data)
        if tag != Tag.CENTRAL_STATE:
            raise MalformedAccount("Not a central state account", tag=int(tag))
        return cls(tag=tag)

    @staticmethod
    def find_key(program_id: Pubkey = PROGRAM_ID) -> tuple[Pubkey, int]:
        return central_state_key(program_id)

    @classmethod
    def retrieve(cls, connection, key: Pubkey) -> "CentralState":
        return cls.deserialize(fetch_account_data(connection, key))


# ─────────────────────────────────────────────
#  NFT RECORD
# ─────────────────────────────────────────────
_RECORD_LAYOUT = struct.Struct("<BB32s32s32s")


@dataclass(frozen=True)
class NftRecord:
    """Per-name record tracking tokenization state and the custody claimant."""

    tag: Tag
    nonce: int
    name_account: Pubkey
    owner: Pubkey
    nft_mint: Pubkey

    LEN = _RECORD_LAYOUT.size

    @property
    def is_active(self) -> bool:
        return self.tag == Tag.ACTIVE_RECORD

    def serialize(self) -> bytes:
        return _RECORD_LAYOUT.pack(
            int(self.tag),
            self.nonce,
            bytes(self.name_account),
            bytes(self.owner),
            bytes(self.nft_mint),
        )

    @classmethod
    def deserialize(cls, data: bytes) -> "NftRecord":
        if len(data) != cls.LEN:
            raise MalformedAccount("NFT record has wrong length", length=len(data))
        tag = _read_tag(data)
        if tag not in RECORD_TAGS:
            raise MalformedAccount("Not an NFT record account", tag=int(tag))
        _, nonce, name_account, owner, nft_mint = _RECORD_LAYOUT.unpack(data)
        return cls(
            tag=tag,
            nonce=nonce,
            name_account=Pubkey.from_bytes(name_account),
            owner=Pubkey.from_bytes(owner),
            nft_mint=Pubkey.from_bytes(nft_mint),
        )

    @staticmethod
    def find_key(name_account: Pubkey, program_id: Pubkey = PROGRAM_ID) -> tuple[Pubkey, int]:
        return nft_record_key(name_account, program_id)

    @classmethod
    def retrieve(cls, connection, key: Pubkey) -> "NftRecord":
        record = cls.deserialize(fetch_account_data(connection, key))
        logger.debug("Fetched NFT record %s tag=%s", key, record.tag.name)
        return record


ProtocolAccount = Union[CentralState, NftRecord]


def decode_account(data: bytes) -> ProtocolAccount:
    """Decode any protocol account by switching on its leading tag byte."""
    tag = _read_tag(data)
    if tag == Tag.CENTRAL_STATE:
        return CentralState.deserialize(data)
    return NftRecord.deserialize(data)
