"""
╔══════════════════════════════════════════════════════════════════╗
║       NAME TOKENIZER: command line client                       ║
║                                                                  ║
║  Usage:                                                          ║
║    python -m name_tokenizer derive  --name example              ║
║    python -m name_tokenizer inspect --name example              ║
║    python -m name_tokenizer demo    --name example              ║
╚══════════════════════════════════════════════════════════════════╝
"""

import argparse
import logging
import secrets
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from name_tokenizer.client import TokenizerClient
from name_tokenizer.config import LAMPORTS_PER_SOL, PROGRAM_ID, RPC_URL
from name_tokenizer.derivation import collection_key, hashed_name, name_account_key
from name_tokenizer.errors import TokenizerError
from name_tokenizer.state import NftRecord


# ─────────────────────────────────────────────
#  CLIENTS
# ─────────────────────────────────────────────
def get_rpc(url: str = RPC_URL):
    from solana.rpc.api import Client

    return Client(url)


def resolve_name_account(name: Optional[str], name_account: Optional[str]) -> Pubkey:
    if name_account:
        return Pubkey.from_string(name_account)
    return name_account_key(hashed_name(name))


# ─────────────────────────────────────────────
#  DERIVE
# ─────────────────────────────────────────────
def derive(name_account: Pubkey, program_id: Pubkey) -> None:
    """Print every address the protocol derives for a name (no network)."""
    addrs = TokenizerClient(None, program_id).addresses(name_account)
    print(f"🔑 Name account  : {addrs.name_account}")
    print(f"   NFT record    : {addrs.nft_record}  (nonce {addrs.record_nonce})")
    print(f"   NFT mint      : {addrs.nft_mint}")
    print(f"   Central state : {addrs.central_state}")
    print(f"   Metadata      : {addrs.metadata}")
    print(f"   Collection    : {collection_key(program_id)[0]}  (reserved)")


# ─────────────────────────────────────────────
#  INSPECT
# ─────────────────────────────────────────────
def inspect(name_account: Pubkey, program_id: Pubkey, url: str) -> None:
    """Fetch and decode the record and mint of a name from an RPC node."""
    client = TokenizerClient(get_rpc(url), program_id)
    addrs = client.addresses(name_account)

    print(f"🔍 Querying {url} ...")
    record = client.nft_record(name_account)
    mint = client.mint_info(record.nft_mint)
    escrow = client.escrow_balances(name_account)

    print(f"   Record        : {addrs.nft_record}")
    print(f"   State         : {record.tag.name}")
    print(f"   Custody owner : {record.owner}")
    print(f"   NFT mint      : {record.nft_mint}  (supply {mint.supply})")
    print(f"   Escrowed SOL  : {escrow.lamports / LAMPORTS_PER_SOL:.9f}")


# ─────────────────────────────────────────────
#  DEMO  (in-memory ledger)
# ─────────────────────────────────────────────
def demo(name: str, program_id: Pubkey) -> NftRecord:
    """
    Walk the full lifecycle on a local in-memory ledger:
    tokenize, deposit, withdraw, transfer, redeem, re-tokenize.
    """
    from name_tokenizer.testing import LocalLedger

    ledger = LocalLedger(program_id)
    client = TokenizerClient(ledger, program_id)
    fee_payer, alice, bob = Keypair(), Keypair(), Keypair()
    for kp in (fee_payer, alice, bob):
        ledger.request_airdrop(kp.pubkey(), 10 * LAMPORTS_PER_SOL)

    token = ledger.create_token_mint(fee_payer, decimals=6)
    name_account = ledger.register_name(name, alice)
    uri = f"https://example.org/{secrets.token_hex(5)}"

    print("🔨 Creating central state...")
    client.create_central_state(fee_payer)
    print("🪙 Creating mint...")
    client.create_mint(name_account, fee_payer)
    print(f"🎨 Tokenizing '{name}' for Alice...")
    record = client.create_nft(name, uri, name_account, alice)
    addrs = client.addresses(name_account)
    print(f"   Record {addrs.nft_record} is {record.tag.name}")

    print("💸 Sending 0.5 SOL and 20 tokens to the record...")
    ledger.request_airdrop(addrs.nft_record, LAMPORTS_PER_SOL // 2)
    ledger.mint_tokens(token, fee_payer, addrs.nft_record, 20 * 10**6)
    client.withdraw(name_account, alice, [token])
    print(f"   Alice holds {client.token_balance(alice.pubkey(), token) / 10**6:.0f} tokens")

    print("🤝 Transferring the NFT to Bob...")
    ledger.create_associated_token_account(fee_payer, bob.pubkey(), addrs.nft_mint)
    ledger.transfer_tokens(alice, addrs.nft_mint, bob.pubkey(), 1)

    print("🔥 Bob redeems the NFT...")
    record = client.redeem_nft(name_account, bob)
    print(f"   Record is {record.tag.name}, name owner {client.name_owner(name_account)}")

    print("🎨 Re-tokenizing...")
    record = client.create_nft(name, uri, name_account, bob)
    print(f"✅ Record is {record.tag.name}, supply {client.mint_info(addrs.nft_mint).supply}")
    return record


# ─────────────────────────────────────────────
#  CLI
# ─────────────────────────────────────────────
def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Name tokenizer client")
    parser.add_argument("--program-id", default=str(PROGRAM_ID))
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd")

    for cmd, help_text in (
        ("derive",  "Derive protocol addresses for a name"),
        ("inspect", "Decode a name's record from an RPC node"),
    ):
        p = sub.add_parser(cmd, help=help_text)
        group = p.add_mutually_exclusive_group(required=True)
        group.add_argument("--name")
        group.add_argument("--name-account")
        if cmd == "inspect":
            p.add_argument("--url", default=RPC_URL)

    p_demo = sub.add_parser("demo", help="Run the full lifecycle on an in-memory ledger")
    p_demo.add_argument("--name", default="example")

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    program_id = Pubkey.from_string(args.program_id)

    try:
        if args.cmd == "derive":
            derive(resolve_name_account(args.name, args.name_account), program_id)
        elif args.cmd == "inspect":
            inspect(resolve_name_account(args.name, args.name_account), program_id, args.url)
        elif args.cmd == "demo":
            demo(args.name, program_id)
    except TokenizerError as e:
        print(f"❌ {e.__class__.__name__}: {e}")
        return 2
    return 0
