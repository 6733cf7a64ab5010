"""
Tokenizer client.

Sequences protocol operations against a connection and reads decoded state
back. The connection must expose ``get_account_info(pubkey)``; operations that
write also need ``send_transaction(instructions, signers)`` (the in-memory
``LocalLedger`` provides both, a solana-py ``Client`` provides the first).
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from name_tokenizer import instructions
from name_tokenizer.config import MAX_RETRIES, PROGRAM_ID, RETRY_DELAY, minimum_balance_for_rent_exemption
from name_tokenizer.derivation import associated_token_address, central_state_key, metadata_key, mint_key, nft_record_key
from name_tokenizer.errors import NotFound, TransactionConflict
from name_tokenizer.spl import Metadata, MintInfo, NameRecordHeader, TokenAccount
from name_tokenizer.state import CentralState, NftRecord, fetch_account_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NameAddresses:
    """Every protocol address belonging to one name account."""

    name_account: Pubkey
    nft_record: Pubkey
    record_nonce: int
    nft_mint: Pubkey
    central_state: Pubkey
    metadata: Pubkey


@dataclass
class EscrowBalances:
    lamports: int = 0
    tokens: dict = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.lamports == 0 and not any(self.tokens.values())


class TokenizerClient:
    """
    Example:
        client = TokenizerClient(LocalLedger())
        client.create_central_state(payer)
        client.create_mint(name_account, payer)
        record = client.create_nft("example", uri, name_account, alice)
    """

    def __init__(
        self,
        connection,
        program_id: Pubkey = PROGRAM_ID,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
    ):
        self.connection = connection
        self.program_id = program_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    # ─────────────────────────────────────────────
    #  SUBMISSION
    # ─────────────────────────────────────────────
    def send(self, ixs: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        """
        Submit ``ixs`` as one transaction, retrying lost account-lock races
        with exponential backoff. Protocol rejections are raised immediately.
        """
        attempt = 0
        while True:
            try:
                return self.connection.send_transaction(list(ixs), list(signers))
            except TransactionConflict as e:
                if attempt >= self.max_retries:
                    logger.error("Giving up after %d conflicts: %s", attempt + 1, e)
                    raise
                delay = self.retry_delay * (2 ** attempt)
                logger.warning("Transaction conflict, retrying in %.2fs (%s)", delay, e)
                time.sleep(delay)
                attempt += 1

    # ─────────────────────────────────────────────
    #  ADDRESSES
    # ─────────────────────────────────────────────
    def addresses(self, name_account: Pubkey) -> NameAddresses:
        record, nonce = nft_record_key(name_account, self.program_id)
        mint, _ = mint_key(name_account, self.program_id)
        central, _ = central_state_key(self.program_id)
        return NameAddresses(
            name_account=name_account,
            nft_record=record,
            record_nonce=nonce,
            nft_mint=mint,
            central_state=central,
            metadata=metadata_key(mint),
        )

    # ─────────────────────────────────────────────
    #  OPERATIONS
    # ─────────────────────────────────────────────
    def create_central_state(self, fee_payer: Keypair) -> CentralState:
        sig = self.send(instructions.create_central_state(fee_payer.pubkey(), self.program_id), [fee_payer])
        logger.info("Create central state tx %s", sig)
        return self.central_state()

    def create_mint(self, name_account: Pubkey, fee_payer: Keypair) -> MintInfo:
        sig = self.send(
            instructions.create_mint(name_account, fee_payer.pubkey(), self.program_id),
            [fee_payer],
        )
        logger.info("Create mint tx %s", sig)
        return self.mint_info(self.addresses(name_account).nft_mint)

    def create_nft(
        self,
        name: str,
        uri: str,
        name_account: Pubkey,
        name_owner: Keypair,
        fee_payer: Optional[Keypair] = None,
    ) -> NftRecord:
        """Tokenize ``name_account``; the NFT lands in ``name_owner``'s wallet."""
        payer = fee_payer or name_owner
        signers = [name_owner] if payer is name_owner else [name_owner, payer]
        ixs = instructions.create_nft(
            name, uri, name_account, name_owner.pubkey(), self.program_id, fee_payer=payer.pubkey()
        )
        sig = self.send(ixs, signers)
        logger.info("Create NFT tx %s", sig)
        return self.nft_record(name_account)

    def redeem_nft(self, name_account: Pubkey, holder: Keypair) -> NftRecord:
        sig = self.send(instructions.redeem_nft(name_account, holder.pubkey(), self.program_id), [holder])
        logger.info("Redeem NFT tx %s", sig)
        return self.nft_record(name_account)

    def withdraw(
        self,
        name_account: Pubkey,
        holder: Keypair,
        token_mints: Iterable[Pubkey] = (),
    ) -> NftRecord:
        """
        Sweep native balance and each of ``token_mints`` from the record's
        escrow to ``holder`` in a single transaction.
        """
        addrs = self.addresses(name_account)
        mints = list(token_mints) or [None]
        ixs = []
        for token_mint in mints:
            ixs += instructions.withdraw_tokens(
                addrs.nft_mint, token_mint, holder.pubkey(), addrs.nft_record, self.program_id
            )
        sig = self.send(ixs, [holder])
        logger.info("Withdraw tx %s", sig)
        return self.nft_record(name_account)

    # ─────────────────────────────────────────────
    #  READERS
    # ─────────────────────────────────────────────
    def central_state(self) -> CentralState:
        return CentralState.retrieve(self.connection, central_state_key(self.program_id)[0])

    def nft_record(self, name_account: Pubkey) -> NftRecord:
        return NftRecord.retrieve(self.connection, self.addresses(name_account).nft_record)

    def mint_info(self, mint: Pubkey) -> MintInfo:
        return MintInfo.deserialize(fetch_account_data(self.connection, mint))

    def token_balance(self, owner: Pubkey, mint: Pubkey) -> int:
        try:
            data = fetch_account_data(self.connection, associated_token_address(owner, mint))
        except NotFound:
            return 0
        return TokenAccount.deserialize(data).amount

    def name_owner(self, name_account: Pubkey) -> Pubkey:
        return NameRecordHeader.deserialize(fetch_account_data(self.connection, name_account)).owner

    def metadata(self, mint: Pubkey) -> Metadata:
        return Metadata.deserialize(fetch_account_data(self.connection, metadata_key(mint)))

    def escrow_balances(self, name_account: Pubkey, token_mints: Iterable[Pubkey] = ()) -> EscrowBalances:
        """Withdrawable funds held at the name's record address."""
        record = self.addresses(name_account).nft_record
        account = self.connection.get_account_info(record).value
        lamports = 0
        if account is not None:
            reserved = minimum_balance_for_rent_exemption(len(account.data)) if account.data else 0
            lamports = max(account.lamports - reserved, 0)
        tokens = {mint: self.token_balance(record, mint) for mint in token_mints}
        return EscrowBalances(lamports=lamports, tokens=tokens)
