"""
Core types and pure functions for the transfer-id ledger client.

This module provides the foundational data structures shared by the ledger
node, the client and the application layer:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: RRI, Token, the four action types, Bundle, Atom
3. Stream records delivered to observers: TokenTransfer, DecryptedMessage, Balance
4. Exceptions: LedgerError and domain-specific error types
5. Helpers: decimal normalization and content hashing for bundles

All functions in this module are pure. Nothing here mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_DOWN, getcontext
from enum import Enum
import hashlib
from typing import Optional, Protocol, Set, Tuple, Union, runtime_checkable


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Token amounts carry 18 decimal places, so the global context needs enough
# precision to hold a full balance without rounding.
#
_LEDGER_DECIMAL_CONTEXT = getcontext()
_LEDGER_DECIMAL_CONTEXT.prec = 50


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved address for issuance. Minted tokens leave this address, which is
# exempt from balance validation.
SYSTEM_WALLET = "system"

# Separator between the correlation id and the message text in a message payload.
MESSAGE_DELIMITER = "::"

# Token granularity: amounts are quantized to this many decimal places.
TOKEN_DECIMAL_PLACES = 18

# Quantities with absolute value below this threshold are treated as zero.
QUANTITY_EPSILON = Decimal("1e-18")


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a transfer would take an address balance below zero."""
    pass


class AddressNotRegistered(LedgerError):
    """Raised when an action refers to an address the ledger does not know."""
    pass


class TokenNotRegistered(LedgerError):
    """Raised when an action refers to a token that has not been created."""
    pass


class UniqueIdCollision(LedgerError):
    """Raised when a unique id has already been claimed at its address."""
    pass


class SignerMismatch(LedgerError):
    """Raised when an action spends, mints or claims on behalf of another address."""
    pass


class UnknownParticipant(LedgerError):
    """Raised when a participant label has no registered session."""
    pass


class BundleRejected(LedgerError):
    """
    Raised when the ledger rejects a submitted bundle.

    The whole bundle was discarded: no action in it took effect.

    Attributes:
        reason: Ledger-side explanation of the rejection.
        correlation_id: The correlation id the bundle carried, if any.
    """

    def __init__(self, reason: str, correlation_id: Optional[str] = None):
        super().__init__(f"Bundle rejected: {reason}")
        self.reason = reason
        self.correlation_id = correlation_id


class DecodeAnomaly(LedgerError):
    """Raised by strict decoders when an attachment or message payload is malformed."""
    pass


# ============================================================================
# HELPERS
# ============================================================================

def normalize_decimal(d: Decimal) -> str:
    """
    Normalize a Decimal to a canonical string representation.

    Ensures that semantically equal values produce identical strings:
    - Decimal("10.0") and Decimal("10.000000000000000000") both become "10"
    - Trailing zeros are removed
    - Scientific notation is avoided
    """
    normalized = d.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return format(normalized, 'f')


def to_amount(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Convert a user-supplied amount to a Decimal.

    Floats go through str() so that 10.0 becomes Decimal("10.0") rather than
    its binary expansion.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be numeric, got bool")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Amount is not a number: {value!r}") from None
    else:
        raise ValueError(f"Amount must be numeric, got {type(value)}")
    if result.is_infinite() or result.is_nan():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


def quantize_amount(value: Decimal) -> Decimal:
    """Quantize an amount to token granularity."""
    quantizer = Decimal(10) ** -TOKEN_DECIMAL_PLACES
    return value.quantize(quantizer, rounding=ROUND_DOWN)


def _validate_amount(amount: Decimal, what: str) -> None:
    if not isinstance(amount, Decimal):
        raise ValueError(f"{what} amount must be Decimal, got {type(amount)}")
    if amount.is_infinite() or amount.is_nan():
        raise ValueError(f"{what} amount must be finite, got {amount}")
    if amount < QUANTITY_EPSILON:
        raise ValueError(f"{what} amount must be positive, got {amount}")


# ============================================================================
# RESOURCE IDENTIFIERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class RRI:
    """
    Resource identifier of the form ``/address/name``.

    Tokens and unique-id claims are both named by an RRI. The address part
    scopes the name: two addresses may each own a resource called "TOK".
    """
    address: str
    name: str

    def __post_init__(self):
        if not self.address or not self.address.strip():
            raise ValueError("RRI address cannot be empty")
        if not self.name or not self.name.strip():
            raise ValueError("RRI name cannot be empty")
        if "/" in self.address or "/" in self.name:
            raise ValueError(f"RRI parts cannot contain '/': {self.address!r}, {self.name!r}")

    @classmethod
    def of(cls, address: str, name: str) -> RRI:
        return cls(address=address, name=name)

    @classmethod
    def parse(cls, text: str) -> RRI:
        """Parse ``/address/name`` back into an RRI."""
        parts = text.split("/")
        if len(parts) != 3 or parts[0] != "":
            raise ValueError(f"Not a resource identifier: {text!r}")
        return cls(address=parts[1], name=parts[2])

    def __str__(self) -> str:
        return f"/{self.address}/{self.name}"


# ============================================================================
# TOKENS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Token:
    """
    Definition of a token type.

    Attributes:
        rri: Resource identifier, e.g. ``/system-address/TOK``.
        name: Human-readable name.
        description: Free-form description.
        multi_issuance: Whether the issuer may mint after creation.
        decimal_places: Granularity of amounts.
    """
    rri: RRI
    name: str
    description: str = ""
    multi_issuance: bool = True
    decimal_places: int = TOKEN_DECIMAL_PLACES

    @property
    def symbol(self) -> str:
        return self.rri.name

    @property
    def issuer(self) -> str:
        return self.rri.address

    def round(self, value: Decimal) -> Decimal:
        """Quantize a value to this token's granularity."""
        quantizer = Decimal(10) ** -self.decimal_places
        return value.quantize(quantizer, rounding=ROUND_DOWN)


# ============================================================================
# ACTIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class MintTokens:
    """Create ``amount`` new tokens and credit them to the issuer."""
    token: RRI
    issuer: str
    amount: Decimal

    def __post_init__(self):
        if not self.issuer or not self.issuer.strip():
            raise ValueError("Mint issuer cannot be empty")
        _validate_amount(self.amount, "Mint")


@dataclass(frozen=True, slots=True)
class TransferTokens:
    """
    Move tokens between two addresses.

    Attributes:
        token: RRI of the token being moved.
        source: Address debited. Must be the bundle signer.
        dest: Address credited.
        amount: Positive, finite Decimal.
        attachment: Optional opaque bytes carried with the transfer.
    """
    token: RRI
    source: str
    dest: str
    amount: Decimal
    attachment: Optional[bytes] = None

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Transfer source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Transfer dest cannot be empty")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")
        _validate_amount(self.amount, "Transfer")
        if self.attachment is not None and not isinstance(self.attachment, bytes):
            raise ValueError(f"Attachment must be bytes, got {type(self.attachment)}")

    def __repr__(self) -> str:
        return f"TransferTokens({self.amount} {self.token.name}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class PutUniqueId:
    """Claim a unique id. Only one claim per RRI may ever exist."""
    rri: RRI


@dataclass(frozen=True, slots=True)
class SendMessage:
    """
    Deliver a message payload from one address to another.

    An encrypted message is visible to its sender and receiver only.
    """
    source: str
    dest: str
    data: bytes
    encrypt: bool = True

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Message source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Message dest cannot be empty")
        if not isinstance(self.data, bytes):
            raise ValueError(f"Message data must be bytes, got {type(self.data)}")


Action = Union[MintTokens, TransferTokens, PutUniqueId, SendMessage]


# ============================================================================
# BUNDLES AND ATOMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a bundle execution attempt.

    APPLIED: Every action validated and the bundle was committed.
    ALREADY_APPLIED: A bundle with the same intent_id was committed before.
    REJECTED: At least one action failed validation; nothing was applied.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


def _canonical_action(action: Action) -> str:
    if isinstance(action, MintTokens):
        return f"mint:{action.token}|{action.issuer}|{normalize_decimal(action.amount)}"
    if isinstance(action, TransferTokens):
        attachment = action.attachment.hex() if action.attachment is not None else "null"
        return (f"transfer:{action.token}|{action.source}|{action.dest}|"
                f"{normalize_decimal(action.amount)}|{attachment}")
    if isinstance(action, PutUniqueId):
        return f"unique:{action.rri}"
    if isinstance(action, SendMessage):
        return f"message:{action.source}|{action.dest}|{action.data.hex()}|{action.encrypt}"
    raise TypeError(f"Unknown action type: {type(action).__name__}")


def _compute_intent_id(signer: str, actions: Tuple[Action, ...], nonce: str) -> str:
    """
    Compute a deterministic content hash for a bundle.

    Action order is part of the content: the ledger applies actions in the
    order they were staged.
    """
    content_parts = [f"signer:{signer}", f"nonce:{nonce}"]
    content_parts.extend(_canonical_action(a) for a in actions)
    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class Bundle:
    """
    A set of actions to be committed together - represents INTENT.

    Attributes:
        signer: Address on whose behalf the actions are taken.
        actions: Actions in staging order.
        timestamp: When the bundle was assembled.
        nonce: Distinguishes otherwise identical bundles (e.g. two equal mints).
        intent_id: Content hash of the bundle (auto-computed).
    """
    signer: str
    actions: Tuple[Action, ...]
    timestamp: datetime
    nonce: str = ""
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            object.__setattr__(
                self, 'intent_id', _compute_intent_id(self.signer, self.actions, self.nonce)
            )

    def is_empty(self) -> bool:
        return not self.actions

    def __repr__(self) -> str:
        return f"Bundle({len(self.actions)} actions, signer={self.signer})"


@dataclass(frozen=True, slots=True)
class Atom:
    """
    A committed, immutable bundle - represents FACT.

    Attributes:
        signer: Address that signed the bundle.
        actions: Actions that were applied.
        timestamp: When the bundle was assembled.
        intent_id: Content hash from the Bundle.
        atom_id: Unique commit identifier (ledger + sequence + time).
        ledger_name: Name of the ledger that committed this.
        execution_time: When the atom was committed.
        sequence_number: Monotonic sequence within the ledger.
    """
    signer: str
    actions: Tuple[Action, ...]
    timestamp: datetime
    intent_id: str
    atom_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int

    def __post_init__(self):
        if not self.actions:
            raise ValueError("Atom must have at least one action")

    def __repr__(self) -> str:
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Atom: ' + self.atom_id)}│",
            f"├{bar}┤",
            f"│{pad('   intent_id      : ' + self.intent_id)}│",
            f"│{pad('   signer         : ' + self.signer)}│",
            f"│{pad('   execution_time : ' + str(self.execution_time))}│",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
            f"├{bar}┤",
            f"│{pad(' Actions (' + str(len(self.actions)) + '):')}│",
        ]
        for i, action in enumerate(self.actions):
            lines.append(f"│{pad(f'   [{i}] {action!r}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


# ============================================================================
# STREAM RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TokenTransfer:
    """A committed transfer as seen by one of its two parties."""
    token: RRI
    source: str
    dest: str
    amount: Decimal
    attachment: Optional[bytes]
    atom_id: str


@dataclass(frozen=True, slots=True)
class DecryptedMessage:
    """A committed message as seen by its sender or receiver."""
    source: str
    dest: str
    data: bytes
    encrypted: bool
    atom_id: str


@dataclass(frozen=True, slots=True)
class Balance:
    """Balance of one token at one address after a commit."""
    address: str
    token: RRI
    amount: Decimal

    def __str__(self) -> str:
        return normalize_decimal(self.amount)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Functions accepting a LedgerView declare their read-only intent. The
    Ledger class implements this protocol but also provides mutation methods.
    """

    @property
    def current_time(self) -> datetime:
        ...

    def get_balance(self, address: str, token: RRI) -> Decimal:
        ...

    def get_token(self, rri: RRI) -> Token:
        ...

    def list_addresses(self) -> Set[str]:
        ...

    def is_claimed(self, rri: RRI) -> bool:
        ...
