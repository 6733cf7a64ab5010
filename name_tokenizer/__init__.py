"""
Name Tokenizer

Wraps ownership of a name service record in a single-unit NFT. Funds sent to
the name's record address stay claimable by whoever holds the NFT.
"""

__version__ = "0.1.0"

from name_tokenizer.client import EscrowBalances, NameAddresses, TokenizerClient
from name_tokenizer.derivation import (
    associated_token_address,
    central_state_key,
    find_program_address,
    hashed_name,
    mint_key,
    name_account_key,
    nft_record_key,
)
from name_tokenizer.errors import (
    AlreadyInitialized,
    MalformedAccount,
    MintAlreadyExists,
    NotFound,
    RecordAlreadyActive,
    RecordNotActive,
    TokenizerError,
    TransactionConflict,
)
from name_tokenizer.state import CentralState, NftRecord, Tag, decode_account

__all__ = [
    "TokenizerClient", "NameAddresses", "EscrowBalances",
    "find_program_address", "central_state_key", "nft_record_key", "mint_key",
    "hashed_name", "name_account_key", "associated_token_address",
    "CentralState", "NftRecord", "Tag", "decode_account",
    "TokenizerError", "NotFound", "MalformedAccount", "AlreadyInitialized",
    "MintAlreadyExists", "RecordAlreadyActive", "RecordNotActive", "TransactionConflict",
]
