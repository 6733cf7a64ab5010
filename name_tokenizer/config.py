"""
Name Tokenizer configuration.

Well-known program ids, derivation seed literals and NFT metadata constants.
Anything that depends on the deployment can be overridden from the environment.
"""

import os

from solders.pubkey import Pubkey


# ─────────────────────────────────────────────
#  CONFIGURATION
# ─────────────────────────────────────────────

# Public mainnet RPC node (override for devnet / localnet)
RPC_URL = os.environ.get(
    "NAME_TOKENIZER_RPC_URL",
    "https://api.mainnet-beta.solana.com",
)

# Deployed tokenizer program
PROGRAM_ID = Pubkey.from_string(
    os.environ.get(
        "NAME_TOKENIZER_PROGRAM_ID",
        "nftD3vbNkNqfj2Sd3HZwbpw4BxxKWr4AjGb9X38JeZk",
    )
)

# Client retry policy for TransactionConflict
MAX_RETRIES = int(os.environ.get("NAME_TOKENIZER_MAX_RETRIES", "5"))
RETRY_DELAY = float(os.environ.get("NAME_TOKENIZER_RETRY_DELAY", "0.25"))


# ─────────────────────────────────────────────
#  COLLABORATOR PROGRAMS
# ─────────────────────────────────────────────
SYSTEM_PROGRAM_ID           = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM_ID            = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
NAME_PROGRAM_ID             = Pubkey.from_string("namesLPneUpt7WZvRBTBCqmb1pne1MkCcHmZ3vncKWH")
METADATA_PROGRAM_ID         = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")


# ─────────────────────────────────────────────
#  SEEDS
# ─────────────────────────────────────────────
MINT_PREFIX       = b"tokenized_name"
NFT_RECORD_PREFIX = b"nft_record"
COLLECTION_PREFIX = b"collection"
METADATA_PREFIX   = b"metadata"
NAME_HASH_PREFIX  = "SPL Name Service"


# ─────────────────────────────────────────────
#  NFT METADATA
# ─────────────────────────────────────────────
NFT_SYMBOL              = ".sol"
SELLER_FEE_BASIS_POINTS = 500
NFT_DECIMALS            = 0
MAX_NAME_LENGTH         = 32
MAX_URI_LENGTH          = 200


# ─────────────────────────────────────────────
#  LEDGER ECONOMICS
# ─────────────────────────────────────────────
LAMPORTS_PER_SOL          = 1_000_000_000
LAMPORTS_PER_BYTE_YEAR    = 3480
EXEMPTION_THRESHOLD_YEARS = 2
ACCOUNT_STORAGE_OVERHEAD  = 128


def minimum_balance_for_rent_exemption(size: int) -> int:
    """Lamports an account of `size` data bytes must hold to stay alive."""
    return (ACCOUNT_STORAGE_OVERHEAD + size) * LAMPORTS_PER_BYTE_YEAR * EXEMPTION_THRESHOLD_YEARS
