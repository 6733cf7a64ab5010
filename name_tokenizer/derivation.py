"""
Deterministic address derivation.

Every protocol account lives at a program derived address: the address is a
hash of the seeds, a bump byte and the owning program id, pushed off the
ed25519 curve so that no private key exists for it. Anyone holding only the
public key of a name account can recompute the addresses of its record, mint
and escrow token accounts.

No I/O happens here.
"""

import hashlib
from typing import Optional, Sequence

from solders.pubkey import Pubkey

from name_tokenizer.config import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    COLLECTION_PREFIX,
    METADATA_PREFIX,
    METADATA_PROGRAM_ID,
    MINT_PREFIX,
    NAME_HASH_PREFIX,
    NAME_PROGRAM_ID,
    NFT_RECORD_PREFIX,
    PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from name_tokenizer.errors import DerivationError

MAX_SEEDS       = 16
MAX_SEED_LENGTH = 32
PDA_MARKER      = b"ProgramDerivedAddress"


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """
    Derive ``(address, bump)`` for ``seeds`` under ``program_id``.

    The highest bump producing an off-curve point is returned, so the result is
    the same on every call.

    Raises:
        DerivationError: seeds exceed the ledger limits or every bump lands on curve.
    """
    if len(seeds) > MAX_SEEDS:
        raise DerivationError("Too many seeds", count=len(seeds))
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise DerivationError("Seed too long", length=len(seed))

    for bump in range(255, 0, -1):
        key = _candidate(seeds, bump, program_id)
        if not key.is_on_curve():
            return key, bump
    raise DerivationError("No off-curve bump for seeds", program=str(program_id))


def _candidate(seeds: Sequence[bytes], bump: int, program_id: Pubkey) -> Pubkey:
    h = hashlib.sha256()
    for seed in seeds:
        h.update(bytes(seed))
    h.update(bytes([bump]))
    h.update(bytes(program_id))
    h.update(PDA_MARKER)
    return Pubkey.from_bytes(h.digest())


# ─────────────────────────────────────────────
#  PROTOCOL ACCOUNTS
# ─────────────────────────────────────────────
def central_state_key(program_id: Pubkey = PROGRAM_ID) -> tuple[Pubkey, int]:
    """The singleton central state, seeded only by the program id."""
    return find_program_address([bytes(program_id)], program_id)


def nft_record_key(name_account: Pubkey, program_id: Pubkey = PROGRAM_ID) -> tuple[Pubkey, int]:
    """The per-name NFT record; also the escrow address for the name."""
    return find_program_address([NFT_RECORD_PREFIX, bytes(name_account)], program_id)


def mint_key(name_account: Pubkey, program_id: Pubkey = PROGRAM_ID) -> tuple[Pubkey, int]:
    """The single-unit NFT mint for a name."""
    return find_program_address([MINT_PREFIX, bytes(name_account)], program_id)


def collection_key(program_id: Pubkey = PROGRAM_ID) -> tuple[Pubkey, int]:
    return find_program_address([COLLECTION_PREFIX, bytes(program_id)], program_id)


# ─────────────────────────────────────────────
#  COLLABORATOR ACCOUNTS
# ─────────────────────────────────────────────
def hashed_name(name: str) -> bytes:
    return hashlib.sha256((NAME_HASH_PREFIX + name).encode("utf-8")).digest()


def name_account_key(
    name_hash: bytes,
    name_class: Optional[Pubkey] = None,
    parent_name: Optional[Pubkey] = None,
) -> Pubkey:
    """Address of a name registry entry under the name service program."""
    seeds = [
        name_hash,
        bytes(name_class) if name_class else bytes(32),
        bytes(parent_name) if parent_name else bytes(32),
    ]
    key, _ = find_program_address(seeds, NAME_PROGRAM_ID)
    return key


def associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    """
    The canonical token account of ``owner`` for ``mint``.

    ``owner`` may itself be a derived address, which is how an NFT record
    holds escrowed tokens.
    """
    key, _ = find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return key


def metadata_key(mint: Pubkey) -> Pubkey:
    key, _ = find_program_address(
        [METADATA_PREFIX, bytes(METADATA_PROGRAM_ID), bytes(mint)],
        METADATA_PROGRAM_ID,
    )
    return key
