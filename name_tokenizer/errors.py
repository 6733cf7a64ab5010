"""
Error taxonomy for the name tokenizer.

Every protocol operation either returns a decoded value or raises one of these.
Only ``TransactionConflict`` is marked retryable: it reflects a lost race on an
account lock, not a logic error, so the same transaction may succeed later.
"""


class TokenizerError(Exception):
    """Base class for all name tokenizer failures."""

    retryable = False

    def __init__(self, message: str = "", **context):
        self.message = message or self.__class__.__doc__ or self.__class__.__name__
        self.context = context
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"


# ─────────────────────────────────────────────
#  RETRIEVAL / DECODING
# ─────────────────────────────────────────────
class NotFound(TokenizerError):
    """No committed account data at this address."""


class MalformedAccount(TokenizerError):
    """Account bytes failed length or discriminant validation."""


class DerivationError(TokenizerError):
    """No valid bump seed exists for this seed set."""


# ─────────────────────────────────────────────
#  STATE MACHINE PRECONDITIONS
# ─────────────────────────────────────────────
class AlreadyInitialized(TokenizerError):
    """The central state already exists."""


class MintAlreadyExists(TokenizerError):
    """A mint already exists for this name."""


class RecordAlreadyActive(TokenizerError):
    """This name is already tokenized."""


class RecordNotActive(TokenizerError):
    """The NFT record is not active."""


class Unauthorized(TokenizerError):
    """Signer is not entitled to perform this operation."""


class InvalidAccount(TokenizerError):
    """An account passed to the instruction has the wrong key or owner."""


class MissingSignature(TokenizerError):
    """A required signer did not sign the transaction."""


class InvalidInstruction(TokenizerError):
    """Instruction data could not be decoded."""


class InsufficientFunds(TokenizerError):
    """Source account cannot cover the requested amount."""


# ─────────────────────────────────────────────
#  LEDGER
# ─────────────────────────────────────────────
class TransactionConflict(TokenizerError):
    """A concurrent transaction holds a lock on a written account."""

    retryable = True
