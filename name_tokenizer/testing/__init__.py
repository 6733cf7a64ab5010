"""In-memory ledger for exercising the tokenizer without a validator."""

from name_tokenizer.testing.ledger import Account, AccountInfoResponse, InvokeContext, LocalLedger

__all__ = ["Account", "AccountInfoResponse", "InvokeContext", "LocalLedger"]
