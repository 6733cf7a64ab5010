"""
Layouts of the collaborator accounts the tokenizer reads and writes.

These belong to the token, name service and metadata programs. The tokenizer
only needs to decode them (clients checking supply, balances, name ownership
and metadata) and to produce them in the in-memory test ledger.
"""

import struct
from dataclasses import dataclass, field
from typing import Optional

from solders.pubkey import Pubkey

from name_tokenizer.errors import MalformedAccount

_ZERO_KEY = bytes(32)


def _option_key(flag: int, raw: bytes) -> Optional[Pubkey]:
    return Pubkey.from_bytes(raw) if flag else None


def _pack_option_key(key: Optional[Pubkey]) -> tuple[int, bytes]:
    return (1, bytes(key)) if key is not None else (0, _ZERO_KEY)


# ─────────────────────────────────────────────
#  TOKEN MINT  (82 bytes)
# ─────────────────────────────────────────────
#   [0:4]    mint_authority_option   u32
#   [4:36]   mint_authority          bytes32
#   [36:44]  supply                  u64
#   [44:45]  decimals                u8
#   [45:46]  is_initialized          u8
#   [46:50]  freeze_authority_option u32
#   [50:82]  freeze_authority        bytes32
_MINT_LAYOUT = struct.Struct("<I32sQBBI32s")


@dataclass
class MintInfo:
    mint_authority: Optional[Pubkey]
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Optional[Pubkey]

    LEN = _MINT_LAYOUT.size

    def serialize(self) -> bytes:
        return _MINT_LAYOUT.pack(
            *_pack_option_key(self.mint_authority),
            self.supply,
            self.decimals,
            int(self.is_initialized),
            *_pack_option_key(self.freeze_authority),
        )

    @classmethod
    def deserialize(cls, data: bytes) -> "MintInfo":
        if len(data) != cls.LEN:
            raise MalformedAccount("Mint has wrong length", length=len(data))
        mint_opt, mint_auth, supply, decimals, initialized, freeze_opt, freeze_auth = _MINT_LAYOUT.unpack(data)
        return cls(
            mint_authority=_option_key(mint_opt, mint_auth),
            supply=supply,
            decimals=decimals,
            is_initialized=bool(initialized),
            freeze_authority=_option_key(freeze_opt, freeze_auth),
        )


# ─────────────────────────────────────────────
#  TOKEN ACCOUNT  (165 bytes)
# ─────────────────────────────────────────────
#   [0:32]    mint
#   [32:64]   owner
#   [64:72]   amount                  u64
#   [72:108]  delegate option + key
#   [108:109] state                   u8  (1 = initialized)
#   [109:121] is_native option + u64
#   [121:129] delegated_amount        u64
#   [129:165] close_authority option + key
_TOKEN_ACCOUNT_LAYOUT = struct.Struct("<32s32sQI32sBIQQI32s")

ACCOUNT_STATE_INITIALIZED = 1


@dataclass
class TokenAccount:
    mint: Pubkey
    owner: Pubkey
    amount: int = 0

    LEN = _TOKEN_ACCOUNT_LAYOUT.size

    def serialize(self) -> bytes:
        return _TOKEN_ACCOUNT_LAYOUT.pack(
            bytes(self.mint),
            bytes(self.owner),
            self.amount,
            0, _ZERO_KEY,
            ACCOUNT_STATE_INITIALIZED,
            0, 0,
            0,
            0, _ZERO_KEY,
        )

    @classmethod
    def deserialize(cls, data: bytes) -> "TokenAccount":
        if len(data) != cls.LEN:
            raise MalformedAccount("Token account has wrong length", length=len(data))
        mint, owner, amount, *_ = _TOKEN_ACCOUNT_LAYOUT.unpack(data)
        return cls(mint=Pubkey.from_bytes(mint), owner=Pubkey.from_bytes(owner), amount=amount)


# ─────────────────────────────────────────────
#  NAME REGISTRY  (96 byte header + data)
# ─────────────────────────────────────────────
#   [0:32]   parent_name
#   [32:64]  owner
#   [64:96]  class
#   [96:]    free-form data
_NAME_HEADER = struct.Struct("<32s32s32s")


@dataclass
class NameRecordHeader:
    parent_name: Pubkey
    owner: Pubkey
    name_class: Pubkey
    data: bytes = b""

    HEADER_LEN = _NAME_HEADER.size

    def serialize(self) -> bytes:
        return _NAME_HEADER.pack(bytes(self.parent_name), bytes(self.owner), bytes(self.name_class)) + self.data

    @classmethod
    def deserialize(cls, data: bytes) -> "NameRecordHeader":
        if len(data) < cls.HEADER_LEN:
            raise MalformedAccount("Name record too short", length=len(data))
        parent, owner, name_class = _NAME_HEADER.unpack_from(data)
        return cls(
            parent_name=Pubkey.from_bytes(parent),
            owner=Pubkey.from_bytes(owner),
            name_class=Pubkey.from_bytes(name_class),
            data=bytes(data[cls.HEADER_LEN:]),
        )


# ─────────────────────────────────────────────
#  METADATA
# ─────────────────────────────────────────────
#   key                   u8  (4 = MetadataV1)
#   update_authority      bytes32
#   mint                  bytes32
#   name / symbol / uri   u32 length + utf-8
#   seller_fee_bps        u16
#   creators              option<vec>  (always None here)
#   primary_sale_happened u8
#   is_mutable            u8
METADATA_V1_KEY = 4


def pack_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def unpack_string(data: bytes, offset: int) -> tuple[str, int]:
    try:
        (length,) = struct.unpack_from("<I", data, offset)
    except struct.error:
        raise MalformedAccount("Truncated string length", offset=offset) from None
    start = offset + 4
    end = start + length
    if end > len(data):
        raise MalformedAccount("Truncated string", offset=offset)
    try:
        return data[start:end].decode("utf-8"), end
    except UnicodeDecodeError:
        raise MalformedAccount("Invalid utf-8 string", offset=offset) from None


@dataclass
class Metadata:
    update_authority: Pubkey
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int
    creators: list = field(default_factory=list)
    primary_sale_happened: bool = False
    is_mutable: bool = True

    def serialize(self) -> bytes:
        out = bytes([METADATA_V1_KEY]) + bytes(self.update_authority) + bytes(self.mint)
        out += pack_string(self.name) + pack_string(self.symbol) + pack_string(self.uri)
        out += struct.pack("<H", self.seller_fee_basis_points)
        out += b"\x00"  # no creators
        out += bytes([int(self.primary_sale_happened), int(self.is_mutable)])
        return out

    @classmethod
    def deserialize(cls, data: bytes) -> "Metadata":
        if len(data) < 65 or data[0] != METADATA_V1_KEY:
            raise MalformedAccount("Not a metadata account", length=len(data))
        update_authority = Pubkey.from_bytes(data[1:33])
        mint = Pubkey.from_bytes(data[33:65])
        name, offset = unpack_string(data, 65)
        symbol, offset = unpack_string(data, offset)
        uri, offset = unpack_string(data, offset)
        if offset + 5 > len(data):
            raise MalformedAccount("Truncated metadata", length=len(data))
        (seller_fee,) = struct.unpack_from("<H", data, offset)
        if data[offset + 2] != 0:
            raise MalformedAccount("Creators are not supported")
        return cls(
            update_authority=update_authority,
            mint=mint,
            name=name,
            symbol=symbol,
            uri=uri,
            seller_fee_basis_points=seller_fee,
            primary_sale_happened=bool(data[offset + 3]),
            is_mutable=bool(data[offset + 4]),
        )
