"""
╔══════════════════════════════════════════════════════════════════╗
║          NAME TOKENIZER: on-ledger program                      ║
║                                                                  ║
║  Instructions:                                                   ║
║  • create_central_state  one-time bootstrap of the authority    ║
║  • create_mint           per-name NFT mint (0 decimals)         ║
║  • create_nft            tokenize a name (first time or again)  ║
║  • redeem_nft            burn the NFT, give the name back       ║
║  • withdraw_tokens       sweep escrowed SOL + tokens            ║
╚══════════════════════════════════════════════════════════════════╝

Record lifecycle:

    Uninitialized ──create_nft──▶ ActiveRecord ──redeem_nft──▶ InactiveRecord
                                       ▲                            │
                                       └─────────create_nft─────────┘

The program runs inside an invoke context ``ctx`` supplied by the ledger. The
context exposes the accounts of the current transaction and the collaborator
programs the tokenizer calls into:

    ctx.program_id                  id of the running program
    ctx.is_signer(key)              whether ``key`` signed the transaction
    ctx.get_account(key)            Account(lamports, data, owner) or None
    ctx.write_data(key, data)       overwrite data of an account we own
    ctx.transfer_lamports(src, dst, amount)
    ctx.system.create_account(payer, key, space, owner, signer_seeds)
    ctx.token.mint_info / account / initialize_mint / create_associated_account
              mint_to / burn / transfer
    ctx.names.get / transfer
    ctx.metadata.upsert

Collaborator calls that need a derived address as authority pass the seeds
(including the bump) in ``signer_seeds``, the way a program signs for its own
derived addresses. Any raised error aborts the whole transaction.
"""

import logging
from dataclasses import replace

from solders.pubkey import Pubkey

from name_tokenizer.config import (
    MAX_NAME_LENGTH,
    MAX_URI_LENGTH,
    MINT_PREFIX,
    NFT_DECIMALS,
    NFT_RECORD_PREFIX,
    NFT_SYMBOL,
    SELLER_FEE_BASIS_POINTS,
    minimum_balance_for_rent_exemption,
)
from name_tokenizer.derivation import (
    associated_token_address,
    central_state_key,
    metadata_key,
    mint_key,
    nft_record_key,
)
from name_tokenizer.errors import (
    AlreadyInitialized,
    InvalidAccount,
    InvalidInstruction,
    MintAlreadyExists,
    MissingSignature,
    NotFound,
    RecordAlreadyActive,
    RecordNotActive,
    Unauthorized,
)
from name_tokenizer.instructions import CreateNftParams, InstructionTag, decode_instruction
from name_tokenizer.state import CentralState, NftRecord, Tag

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
#  CHECKS
# ─────────────────────────────────────────────
def _check_key(actual: Pubkey, expected: Pubkey, what: str) -> None:
    if actual != expected:
        raise InvalidAccount(f"Wrong {what} account", expected=str(expected), got=str(actual))


def _check_signer(ctx, key: Pubkey, what: str) -> None:
    if not ctx.is_signer(key):
        raise MissingSignature(f"{what} must sign", key=str(key))


def _unpack(accounts: list, count: int, optional: int = 0) -> list:
    if not count <= len(accounts) <= count + optional:
        raise InvalidInstruction("Wrong number of accounts", expected=count, got=len(accounts))
    return list(accounts) + [None] * (count + optional - len(accounts))


def _load_central_state(ctx, key: Pubkey) -> CentralState:
    account = ctx.get_account(key)
    if account is None or not account.data:
        raise NotFound("Central state not initialized", key=str(key))
    if account.owner != ctx.program_id:
        raise InvalidAccount("Central state not owned by program", key=str(key))
    return CentralState.deserialize(account.data)


def _load_record(ctx, key: Pubkey) -> NftRecord:
    account = ctx.get_account(key)
    if account is None or not account.data:
        raise NotFound("NFT record not found", key=str(key))
    if account.owner != ctx.program_id:
        raise InvalidAccount("NFT record not owned by program", key=str(key))
    return NftRecord.deserialize(account.data)


def _holds_nft(ctx, token_account_key: Pubkey, holder: Pubkey, mint: Pubkey) -> bool:
    token_account = ctx.token.account(token_account_key)
    return (
        token_account is not None
        and token_account.mint == mint
        and token_account.owner == holder
        and token_account.amount == 1
    )


def _check_supply_invariant(ctx, record: NftRecord) -> None:
    """ActiveRecord ⇔ supply 1, InactiveRecord ⇔ supply 0."""
    supply = ctx.token.mint_info(record.nft_mint).supply
    expected = 1 if record.tag == Tag.ACTIVE_RECORD else 0
    if supply != expected:
        raise InvalidAccount("Mint supply does not match record state", tag=record.tag.name, supply=supply)


def _record_seeds(record: NftRecord) -> list[bytes]:
    return [NFT_RECORD_PREFIX, bytes(record.name_account), bytes([record.nonce])]


# ─────────────────────────────────────────────
#  CREATE CENTRAL STATE
# ─────────────────────────────────────────────
def process_create_central_state(ctx, accounts: list, params=None) -> None:
    """
    Accounts:
        0. [writable] central state
        1. [signer, writable] fee payer
        2. [] system program
    """
    central_key, fee_payer, _ = _unpack(accounts, 3)
    expected, bump = central_state_key(ctx.program_id)
    _check_key(central_key, expected, "central state")
    _check_signer(ctx, fee_payer, "Fee payer")

    existing = ctx.get_account(central_key)
    if existing is not None and existing.data:
        raise AlreadyInitialized("Central state already exists", key=str(central_key))

    ctx.system.create_account(
        fee_payer, central_key, CentralState.LEN, ctx.program_id,
        signer_seeds=[[bytes(ctx.program_id), bytes([bump])]],
    )
    ctx.write_data(central_key, CentralState().serialize())
    logger.info("Central state created at %s", central_key)


# ─────────────────────────────────────────────
#  CREATE MINT
# ─────────────────────────────────────────────
def process_create_mint(ctx, accounts: list, params=None) -> None:
    """
    Accounts:
        0. [writable] mint (derived from the name account)
        1. [] name account
        2. [] central state
        3. [signer, writable] fee payer
        4. [] token program
        5. [] system program
    """
    mint, name_account, central_key, fee_payer, _, _ = _unpack(accounts, 6)
    expected_mint, mint_bump = mint_key(name_account, ctx.program_id)
    _check_key(mint, expected_mint, "mint")
    _check_key(central_key, central_state_key(ctx.program_id)[0], "central state")
    _check_signer(ctx, fee_payer, "Fee payer")
    _load_central_state(ctx, central_key)

    existing = ctx.get_account(mint)
    if existing is not None and existing.data:
        raise MintAlreadyExists("Mint already exists for name", name_account=str(name_account))

    ctx.token.initialize_mint(
        fee_payer, mint,
        decimals=NFT_DECIMALS,
        mint_authority=central_key,
        freeze_authority=central_key,
        signer_seeds=[[MINT_PREFIX, bytes(name_account), bytes([mint_bump])]],
    )
    logger.info("Mint %s created for name %s", mint, name_account)


# ─────────────────────────────────────────────
#  CREATE NFT
# ─────────────────────────────────────────────
def process_create_nft(ctx, accounts: list, params: CreateNftParams) -> None:
    """
    Tokenize a name. Moves name ownership to the record address and mints the
    single NFT unit to the name owner.

    Accounts:
        0.  [writable] mint
        1.  [writable] NFT destination (name owner's associated token account)
        2.  [writable] name account
        3.  [writable] NFT record
        4.  [signer, writable] name owner
        5.  [] central state
        6.  [writable] metadata
        7.  [signer, writable] fee payer
        8-11. token, system, name service, metadata programs
    """
    (mint, destination, name_account, record_key, name_owner,
     central_key, metadata, fee_payer, _, _, _, _) = _unpack(accounts, 12)

    if len(params.name) > MAX_NAME_LENGTH:
        raise InvalidInstruction("Name too long", length=len(params.name))
    if len(params.uri) > MAX_URI_LENGTH:
        raise InvalidInstruction("URI too long", length=len(params.uri))

    _check_key(mint, mint_key(name_account, ctx.program_id)[0], "mint")
    expected_record, record_bump = nft_record_key(name_account, ctx.program_id)
    _check_key(record_key, expected_record, "NFT record")
    expected_central, central_bump = central_state_key(ctx.program_id)
    _check_key(central_key, expected_central, "central state")
    _check_key(metadata, metadata_key(mint), "metadata")
    _check_key(destination, associated_token_address(name_owner, mint), "NFT destination")
    _check_signer(ctx, name_owner, "Name owner")
    _check_signer(ctx, fee_payer, "Fee payer")

    _load_central_state(ctx, central_key)
    mint_info = ctx.token.mint_info(mint)
    if mint_info.mint_authority != central_key:
        raise InvalidAccount("Mint authority is not the central state", mint=str(mint))

    existing = ctx.get_account(record_key)
    if existing is not None and existing.data:
        record = _load_record(ctx, record_key)
        if record.tag == Tag.ACTIVE_RECORD:
            raise RecordAlreadyActive("Name is already tokenized", name_account=str(name_account))
        if record.tag == Tag.INACTIVE_RECORD:
            _check_key(record.name_account, name_account, "record name")
            _check_key(record.nft_mint, mint, "record mint")
            record = replace(record, tag=Tag.ACTIVE_RECORD)
        else:
            record = NftRecord(Tag.ACTIVE_RECORD, record_bump, name_account, name_owner, mint)
    else:
        ctx.system.create_account(
            fee_payer, record_key, NftRecord.LEN, ctx.program_id,
            signer_seeds=[[NFT_RECORD_PREFIX, bytes(name_account), bytes([record_bump])]],
        )
        record = NftRecord(Tag.ACTIVE_RECORD, record_bump, name_account, name_owner, mint)

    name_record = ctx.names.get(name_account)
    if name_record.owner != name_owner:
        raise Unauthorized("Signer does not own the name", owner=str(name_record.owner))

    if mint_info.supply != 0:
        raise InvalidAccount("NFT mint already has supply", supply=mint_info.supply)

    central_seeds = [[bytes(ctx.program_id), bytes([central_bump])]]

    ctx.names.transfer(name_account, new_owner=record_key, authority=name_owner)
    ctx.token.create_associated_account(fee_payer, name_owner, mint)
    ctx.token.mint_to(mint, destination, 1, authority=central_key, signer_seeds=central_seeds)
    ctx.metadata.upsert(
        fee_payer, mint,
        update_authority=central_key,
        name=params.name,
        symbol=NFT_SYMBOL,
        uri=params.uri,
        seller_fee_basis_points=SELLER_FEE_BASIS_POINTS,
        signer_seeds=central_seeds,
    )
    ctx.write_data(record_key, record.serialize())
    _check_supply_invariant(ctx, record)
    logger.info("Name %s tokenized to %s (record %s)", name_account, name_owner, record_key)


# ─────────────────────────────────────────────
#  REDEEM NFT
# ─────────────────────────────────────────────
def process_redeem_nft(ctx, accounts: list, params=None) -> None:
    """
    Burn the NFT and hand the name back to its holder. The record's ``owner``
    (custody claimant) is left as it was.

    Accounts:
        0. [writable] mint
        1. [writable] NFT source token account
        2. [signer, writable] NFT holder
        3. [writable] NFT record
        4. [writable] name account
        5-6. token, name service programs
    """
    mint, nft_source, holder, record_key, name_account, _, _ = _unpack(accounts, 7)
    _check_key(record_key, nft_record_key(name_account, ctx.program_id)[0], "NFT record")
    _check_signer(ctx, holder, "NFT holder")

    record = _load_record(ctx, record_key)
    if record.tag != Tag.ACTIVE_RECORD:
        raise RecordNotActive("Record is not active", tag=record.tag.name)
    _check_key(mint, record.nft_mint, "mint")
    if not _holds_nft(ctx, nft_source, holder, mint):
        raise Unauthorized("Signer does not hold the NFT", holder=str(holder))

    ctx.token.burn(mint, nft_source, 1, owner=holder)
    ctx.names.transfer(
        name_account, new_owner=holder, authority=record_key,
        signer_seeds=[_record_seeds(record)],
    )
    record = replace(record, tag=Tag.INACTIVE_RECORD)
    ctx.write_data(record_key, record.serialize())
    _check_supply_invariant(ctx, record)
    logger.info("NFT for name %s redeemed by %s", name_account, holder)


# ─────────────────────────────────────────────
#  WITHDRAW TOKENS
# ─────────────────────────────────────────────
def process_withdraw_tokens(ctx, accounts: list, params=None) -> None:
    """
    Sweep everything escrowed at the record address to the signer, who
    becomes the record's custody claimant.

    Authorization:
        ActiveRecord    signer holds the NFT unit
        InactiveRecord  signer is the stored ``owner``

    Accounts:
        0. [] NFT token account of the signer
        1. [signer, writable] NFT holder
        2. [writable] NFT record
        3. [] system program
      optional, to also sweep one token:
        4. [] token mint
        5. [writable] record's token account (source)
        6. [writable] holder's token account (destination)
        7. [] token program
    """
    (nft_account, holder, record_key, _,
     token_mint, token_source, token_destination, _) = _unpack(accounts, 4, optional=4)
    if token_mint is not None and token_destination is None:
        raise InvalidInstruction("Token sweep needs mint, source, destination and program")
    _check_signer(ctx, holder, "NFT holder")

    record = _load_record(ctx, record_key)
    if record.tag == Tag.ACTIVE_RECORD:
        if not _holds_nft(ctx, nft_account, holder, record.nft_mint):
            raise Unauthorized("Signer does not hold the NFT", holder=str(holder))
    elif record.tag == Tag.INACTIVE_RECORD:
        if record.owner != holder:
            raise Unauthorized("Signer is not the record owner", owner=str(record.owner))
    else:
        raise RecordNotActive("Record was never tokenized", key=str(record_key))

    account = ctx.get_account(record_key)
    excess = account.lamports - minimum_balance_for_rent_exemption(len(account.data))
    if excess > 0:
        ctx.transfer_lamports(record_key, holder, excess)

    swept = 0
    if token_mint is not None:
        _check_key(token_source, associated_token_address(record_key, token_mint), "escrow token")
        _check_key(token_destination, associated_token_address(holder, token_mint), "destination token")
        source = ctx.token.account(token_source)
        swept = source.amount if source is not None else 0
        if swept > 0:
            ctx.token.create_associated_account(holder, holder, token_mint)
            ctx.token.transfer(
                token_source, token_destination, swept,
                owner=record_key, signer_seeds=[_record_seeds(record)],
            )

    ctx.write_data(record_key, replace(record, owner=holder).serialize())
    logger.info(
        "Escrow of %s withdrawn by %s: %d lamports, %d tokens",
        record_key, holder, max(excess, 0), swept,
    )


_HANDLERS = {
    InstructionTag.CREATE_CENTRAL_STATE: process_create_central_state,
    InstructionTag.CREATE_MINT:          process_create_mint,
    InstructionTag.CREATE_NFT:           process_create_nft,
    InstructionTag.REDEEM_NFT:           process_redeem_nft,
    InstructionTag.WITHDRAW_TOKENS:      process_withdraw_tokens,
}


def process_instruction(ctx, accounts: list, data: bytes) -> None:
    """Entry point: decode ``data`` and dispatch to the matching handler."""
    tag, params = decode_instruction(data)
    handler = _HANDLERS.get(tag)
    if handler is None:
        raise InvalidInstruction("Unsupported instruction", instruction=tag.name)
    logger.debug("Processing %s", tag.name)
    handler(ctx, accounts, params)
