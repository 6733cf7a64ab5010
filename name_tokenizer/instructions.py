"""
Instruction bindings for the tokenizer program.

Each builder returns a list of ``solders`` instructions ready to be signed and
sent in one transaction. Account order is part of the program interface and
must match ``processor.py``.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from name_tokenizer.config import (
    METADATA_PROGRAM_ID,
    NAME_PROGRAM_ID,
    PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from name_tokenizer.derivation import (
    associated_token_address,
    central_state_key,
    metadata_key,
    mint_key,
    nft_record_key,
)
from name_tokenizer.errors import InvalidInstruction, MalformedAccount
from name_tokenizer.spl import pack_string, unpack_string


class InstructionTag(IntEnum):
    CREATE_MINT          = 0
    CREATE_COLLECTION    = 1
    CREATE_NFT           = 2
    REDEEM_NFT           = 3
    WITHDRAW_TOKENS      = 4
    CREATE_CENTRAL_STATE = 5


@dataclass(frozen=True)
class CreateNftParams:
    name: str
    uri: str


def encode_instruction(tag: InstructionTag, params: Optional[CreateNftParams] = None) -> bytes:
    data = bytes([tag])
    if tag == InstructionTag.CREATE_NFT:
        data += pack_string(params.name) + pack_string(params.uri)
    return data


def decode_instruction(data: bytes) -> tuple[InstructionTag, Optional[CreateNftParams]]:
    """Split instruction data into its tag and (for CreateNft) parameters."""
    if not data:
        raise InvalidInstruction("Empty instruction data")
    try:
        tag = InstructionTag(data[0])
    except ValueError:
        raise InvalidInstruction("Unknown instruction", tag=data[0]) from None

    if tag != InstructionTag.CREATE_NFT:
        return tag, None

    try:
        name, offset = unpack_string(data, 1)
        uri, offset = unpack_string(data, offset)
    except MalformedAccount as e:
        raise InvalidInstruction("Bad CreateNft parameters") from e
    if offset != len(data):
        raise InvalidInstruction("Trailing instruction data", length=len(data))
    return tag, CreateNftParams(name=name, uri=uri)


def _meta(key: Pubkey, signer: bool = False, writable: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=key, is_signer=signer, is_writable=writable)


# ─────────────────────────────────────────────
#  BUILDERS
# ─────────────────────────────────────────────
def create_central_state(fee_payer: Pubkey, program_id: Pubkey = PROGRAM_ID) -> list[Instruction]:
    central_key, _ = central_state_key(program_id)
    accounts = [
        _meta(central_key, writable=True),
        _meta(fee_payer, signer=True, writable=True),
        _meta(SYSTEM_PROGRAM_ID),
    ]
    return [Instruction(program_id, encode_instruction(InstructionTag.CREATE_CENTRAL_STATE), accounts)]


def create_mint(name_account: Pubkey, fee_payer: Pubkey, program_id: Pubkey = PROGRAM_ID) -> list[Instruction]:
    mint, _ = mint_key(name_account, program_id)
    central_key, _ = central_state_key(program_id)
    accounts = [
        _meta(mint, writable=True),
        _meta(name_account),
        _meta(central_key),
        _meta(fee_payer, signer=True, writable=True),
        _meta(TOKEN_PROGRAM_ID),
        _meta(SYSTEM_PROGRAM_ID),
    ]
    return [Instruction(program_id, encode_instruction(InstructionTag.CREATE_MINT), accounts)]


def create_nft(
    name: str,
    uri: str,
    name_account: Pubkey,
    name_owner: Pubkey,
    program_id: Pubkey = PROGRAM_ID,
    fee_payer: Optional[Pubkey] = None,
) -> list[Instruction]:
    """
    Tokenize ``name_account``: the name owner gives the name to the record
    address and receives the single NFT unit in their token account.

    Args:
        name:          Display name stored in the NFT metadata
        uri:           Metadata URI
        name_account:  Name registry account being tokenized
        name_owner:    Current name owner; signs and receives the NFT
        fee_payer:     Pays rent for new accounts (defaults to name_owner)
    """
    mint, _ = mint_key(name_account, program_id)
    record, _ = nft_record_key(name_account, program_id)
    central_key, _ = central_state_key(program_id)
    payer = fee_payer or name_owner
    accounts = [
        _meta(mint, writable=True),
        _meta(associated_token_address(name_owner, mint), writable=True),
        _meta(name_account, writable=True),
        _meta(record, writable=True),
        _meta(name_owner, signer=True, writable=True),
        _meta(central_key),
        _meta(metadata_key(mint), writable=True),
        _meta(payer, signer=True, writable=True),
        _meta(TOKEN_PROGRAM_ID),
        _meta(SYSTEM_PROGRAM_ID),
        _meta(NAME_PROGRAM_ID),
        _meta(METADATA_PROGRAM_ID),
    ]
    data = encode_instruction(InstructionTag.CREATE_NFT, CreateNftParams(name=name, uri=uri))
    return [Instruction(program_id, data, accounts)]


def redeem_nft(name_account: Pubkey, nft_owner: Pubkey, program_id: Pubkey = PROGRAM_ID) -> list[Instruction]:
    mint, _ = mint_key(name_account, program_id)
    record, _ = nft_record_key(name_account, program_id)
    accounts = [
        _meta(mint, writable=True),
        _meta(associated_token_address(nft_owner, mint), writable=True),
        _meta(nft_owner, signer=True, writable=True),
        _meta(record, writable=True),
        _meta(name_account, writable=True),
        _meta(TOKEN_PROGRAM_ID),
        _meta(NAME_PROGRAM_ID),
    ]
    return [Instruction(program_id, encode_instruction(InstructionTag.REDEEM_NFT), accounts)]


def withdraw_tokens(
    nft_mint: Pubkey,
    token_mint: Optional[Pubkey],
    nft_owner: Pubkey,
    nft_record: Pubkey,
    program_id: Pubkey = PROGRAM_ID,
) -> list[Instruction]:
    """
    Sweep the record's escrow to ``nft_owner``.

    Native balance is always swept. When ``token_mint`` is given, the record's
    whole balance of that token moves too; pass ``None`` for a native-only sweep.
    """
    accounts = [
        _meta(associated_token_address(nft_owner, nft_mint)),
        _meta(nft_owner, signer=True, writable=True),
        _meta(nft_record, writable=True),
        _meta(SYSTEM_PROGRAM_ID),
    ]
    if token_mint is not None:
        accounts += [
            _meta(token_mint),
            _meta(associated_token_address(nft_record, token_mint), writable=True),
            _meta(associated_token_address(nft_owner, token_mint), writable=True),
            _meta(TOKEN_PROGRAM_ID),
        ]
    return [Instruction(program_id, encode_instruction(InstructionTag.WITHDRAW_TOKENS), accounts)]
