"""
ledger.py - In-Memory Ledger Node

The Ledger class is the stand-in for a distributed ledger node. It is the
only module that mutates ledger state, and it publishes every committed
record to the observation streams.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access
    - Executes bundles atomically (every action applies or none does)
    - Keeps addresses, tokens, balances and unique-id claims
    - Publishes transfers, messages and balance changes to keyed streams
    - Always validates and always logs committed atoms
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from threading import RLock
from typing import Dict, List, Optional, Set, Tuple
import logging

from .core import (
    # Types
    RRI, Token, Bundle, Atom, ExecuteResult,
    MintTokens, TransferTokens, PutUniqueId, SendMessage,
    TokenTransfer, DecryptedMessage, Balance,
    # Constants
    SYSTEM_WALLET,
    # Exceptions
    LedgerError, InsufficientFunds, AddressNotRegistered, TokenNotRegistered,
    UniqueIdCollision, SignerMismatch,
)
from .streams import EventStreams, Handler, Subscription

logger = logging.getLogger(__name__)

STREAM_TRANSFERS = "transfers"
STREAM_MESSAGES = "messages"
STREAM_BALANCE = "balance"


@dataclass(frozen=True, slots=True)
class CommitResult:
    """
    Answer to one execute() call.

    Attributes:
        status: APPLIED, ALREADY_APPLIED or REJECTED.
        atom: The committed atom when status is APPLIED, else None.
        reason: Why the bundle was rejected; empty otherwise.
    """
    status: ExecuteResult
    atom: Optional[Atom] = None
    reason: str = ""

    @property
    def applied(self) -> bool:
        return self.status == ExecuteResult.APPLIED


class Ledger:
    """
    Token ledger with atomic bundle execution and observation streams.

    Implements the LedgerView protocol.

    Design Principles:
        - Always validates: every action in a bundle is checked against
          registration, signer, uniqueness and balance rules before any
          state changes.
        - Always logs: every committed atom is appended to atom_log.

    Thread Safety:
        All reads, commits and stream deliveries take one re-entrant lock,
        so each stream observes atoms in commit order.

    Example:
        ledger = Ledger("main")
        ledger.register_address("issuer")
        tok = ledger.register_token(Token(RRI.of("issuer", "TOK"), "Test Token"))
        ledger.register_address("alice")

        bundle = Bundle("issuer", (
            MintTokens(tok.rri, "issuer", Decimal("100")),
            TransferTokens(tok.rri, "issuer", "alice", Decimal("100")),
        ), ledger.current_time)
        result = ledger.execute(bundle)
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = False,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting logical time (default: now)
            verbose: Print every committed or rejected atom (default: False)
        """
        self.name = name
        self.balances: Dict[str, Dict[str, Decimal]] = {}
        self.tokens: Dict[str, Token] = {}
        self.registered_addresses: Set[str] = set()
        self.claimed_ids: Set[str] = set()
        self.seen_intent_ids: Set[str] = set()
        self.atom_log: List[Atom] = []
        self.verbose = verbose
        self._current_time: datetime = initial_time or datetime.now()
        self._next_sequence: int = 0
        self._lock = RLock()
        self._streams = EventStreams()

        # Issuance source, exempt from balance validation
        self.registered_addresses.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(lambda: Decimal("0"))

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    def get_balance(self, address: str, token: RRI) -> Decimal:
        """
        Get the balance of a token at an address.

        Raises:
            AddressNotRegistered: If the address is not registered
            TokenNotRegistered: If the token has not been created
        """
        with self._lock:
            if address not in self.registered_addresses:
                raise AddressNotRegistered(f"Address {address} not registered")
            if str(token) not in self.tokens:
                raise TokenNotRegistered(f"Token {token} not registered")
            return self.balances[address].get(str(token), Decimal("0"))

    def get_token(self, rri: RRI) -> Token:
        with self._lock:
            if str(rri) not in self.tokens:
                raise TokenNotRegistered(f"Token {rri} not registered")
            return self.tokens[str(rri)]

    def list_addresses(self) -> Set[str]:
        with self._lock:
            return self.registered_addresses.copy()

    def is_claimed(self, rri: RRI) -> bool:
        with self._lock:
            return str(rri) in self.claimed_ids

    def total_supply(self, token: RRI) -> Decimal:
        """
        Sum a token's balances across all addresses except the issuance source.

        Equals the total amount ever minted, since transfers conserve value.
        """
        with self._lock:
            key = str(token)
            if key not in self.tokens:
                raise TokenNotRegistered(f"Token {token} not registered")
            return sum(
                (self.balances[a].get(key, Decimal("0"))
                 for a in sorted(self.registered_addresses) if a != SYSTEM_WALLET),
                Decimal("0"),
            )

    def is_registered(self, address: str) -> bool:
        return address in self.registered_addresses

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_address(self, address: str) -> str:
        """
        Register a new address.

        Raises:
            ValueError: If the address is already registered or malformed
        """
        if not address or not address.strip() or "/" in address:
            raise ValueError(f"Invalid address: {address!r}")
        with self._lock:
            if address in self.registered_addresses:
                raise ValueError(f"Address {address} already registered")
            self.registered_addresses.add(address)
            self.balances[address] = defaultdict(lambda: Decimal("0"))
        logger.debug("Registered address %s", address)
        return address

    def register_token(self, token: Token) -> Token:
        """
        Create a token. Its issuer address must already be registered.

        Raises:
            AddressNotRegistered: If the issuer is unknown
            ValueError: If the token RRI is already taken
        """
        with self._lock:
            if token.issuer not in self.registered_addresses:
                raise AddressNotRegistered(f"Address {token.issuer} not registered")
            if str(token.rri) in self.tokens:
                raise ValueError(f"Token {token.rri} already registered")
            self.tokens[str(token.rri)] = token
        if self.verbose:
            kind = "multi-issuance" if token.multi_issuance else "fixed-supply"
            print(f"Registered token: {token.rri} ({token.name}) [{kind}]")
        logger.info("Registered token %s (%s)", token.rri, token.name)
        return token

    # ========================================================================
    # OBSERVATION STREAMS
    # ========================================================================

    def observe_transfers(self, address: str, handler: Handler) -> Subscription:
        """Receive every TokenTransfer the address sends or receives."""
        return self._streams.subscribe((STREAM_TRANSFERS, address), handler)

    def observe_messages(self, address: str, handler: Handler) -> Subscription:
        """Receive every DecryptedMessage the address sends or receives."""
        return self._streams.subscribe((STREAM_MESSAGES, address), handler)

    def observe_balance(self, address: str, token: RRI, handler: Handler) -> Subscription:
        """
        Receive the address's Balance of token, now and after every change.

        The current balance is delivered before this method returns.
        """
        with self._lock:
            current = Balance(address, token, self.get_balance(address, token))
            subscription = self._streams.subscribe((STREAM_BALANCE, address, str(token)), handler)
            try:
                handler(current)
            except Exception:
                logger.exception("Error delivering initial balance of %s to %s", token, address)
            return subscription

    def subscriber_count(self) -> int:
        return self._streams.handler_count()

    # ========================================================================
    # BUNDLE EXECUTION (Mutating)
    # ========================================================================

    def _generate_atom_id(self, sequence: int) -> str:
        """
        Generate a unique atom ID.

        Format: atom:{ledger_name}:{sequence:012d}:{timestamp_micros}
        """
        micros = int(self._current_time.timestamp() * 1_000_000)
        return f"atom:{self.name}:{sequence:012d}:{micros}"

    def execute(self, bundle: Bundle) -> CommitResult:
        """
        Execute a bundle atomically.

        Every action is validated first; state changes only if all of them
        pass. Execution is idempotent on intent_id.

        Returns:
            CommitResult with status APPLIED and the committed atom,
            ALREADY_APPLIED if the same bundle was committed before,
            or REJECTED with the reason of the first failing check.
        """
        with self._lock:
            if bundle.is_empty():
                return CommitResult(ExecuteResult.APPLIED)

            if bundle.intent_id in self.seen_intent_ids:
                logger.info("Bundle %s already applied", bundle.intent_id)
                return CommitResult(ExecuteResult.ALREADY_APPLIED, reason="already applied")

            try:
                deltas = self._validate_bundle(bundle)
            except LedgerError as e:
                reason = str(e)
                logger.info("Rejected bundle %s from %s: %s", bundle.intent_id, bundle.signer, reason)
                if self.verbose:
                    print(f"✗ REJECTED: {reason}")
                return CommitResult(ExecuteResult.REJECTED, reason=reason)

            sequence = self._next_sequence
            self._next_sequence += 1
            atom = Atom(
                signer=bundle.signer,
                actions=bundle.actions,
                timestamp=bundle.timestamp,
                intent_id=bundle.intent_id,
                atom_id=self._generate_atom_id(sequence),
                ledger_name=self.name,
                execution_time=self._current_time,
                sequence_number=sequence,
            )

            changed = self._apply(atom, deltas)
            self.atom_log.append(atom)
            self.seen_intent_ids.add(bundle.intent_id)
            logger.debug("Committed %s with %d actions", atom.atom_id, len(atom.actions))
            if self.verbose:
                self._print_atom_result(atom, "APPLIED", "✓")

            self._publish(atom, changed)
            return CommitResult(ExecuteResult.APPLIED, atom=atom)

    def _print_atom_result(self, atom: Atom, result: str, icon: str) -> None:
        """Print atom details with a result line in place of the closing bar."""
        lines = repr(atom).split('\n')
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))
        lines[-1] = f"├{bar}┤"
        lines.append(f"│{pad(' ' + icon + ' ' + result)}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    def _require_address(self, address: str) -> None:
        if address not in self.registered_addresses:
            raise AddressNotRegistered(f"address not registered: {address}")

    def _require_token(self, rri: RRI) -> Token:
        token = self.tokens.get(str(rri))
        if token is None:
            raise TokenNotRegistered(f"token not registered: {rri}")
        return token

    def _validate_bundle(self, bundle: Bundle) -> Dict[Tuple[str, str], Decimal]:
        """
        Validate every action in the bundle against current state.

        Checks performed:
        1. Timestamp (bundle must not be from the future)
        2. Signer and address registration
        3. Signer authority (only the owner spends, mints, claims or sends)
        4. Unique-id claims (never claimed before, not twice in one bundle)
        5. Balance constraints (no address except SYSTEM_WALLET below zero)

        Returns:
            Net balance change per (address, token) pair.

        Raises:
            LedgerError subclass describing the first failing check.
        """
        if bundle.timestamp > self._current_time:
            raise LedgerError("future timestamp")
        self._require_address(bundle.signer)

        net: Dict[Tuple[str, str], Decimal] = {}
        claims: Set[str] = set()

        def credit(address: str, token: Token, amount: Decimal) -> None:
            key = (address, str(token.rri))
            net[key] = token.round(net.get(key, Decimal("0")) + amount)

        for action in bundle.actions:
            if isinstance(action, MintTokens):
                token = self._require_token(action.token)
                if action.issuer != bundle.signer or token.issuer != bundle.signer:
                    raise SignerMismatch(f"{bundle.signer} cannot mint {action.token}")
                if not token.multi_issuance:
                    raise LedgerError(f"token {action.token} does not allow minting")
                credit(SYSTEM_WALLET, token, -action.amount)
                credit(action.issuer, token, action.amount)
            elif isinstance(action, TransferTokens):
                token = self._require_token(action.token)
                if action.source != bundle.signer:
                    raise SignerMismatch(f"{bundle.signer} cannot spend from {action.source}")
                self._require_address(action.dest)
                credit(action.source, token, -action.amount)
                credit(action.dest, token, action.amount)
            elif isinstance(action, PutUniqueId):
                if action.rri.address != bundle.signer:
                    raise SignerMismatch(f"{bundle.signer} cannot claim {action.rri}")
                key = str(action.rri)
                if key in self.claimed_ids or key in claims:
                    raise UniqueIdCollision(f"unique id already claimed: {action.rri}")
                claims.add(key)
            elif isinstance(action, SendMessage):
                if action.source != bundle.signer:
                    raise SignerMismatch(f"{bundle.signer} cannot send as {action.source}")
                self._require_address(action.dest)
            else:
                raise LedgerError(f"unsupported action: {type(action).__name__}")

        for (address, token_key), delta in net.items():
            if address == SYSTEM_WALLET:
                continue
            proposed = self.balances[address][token_key] + delta
            if proposed < 0:
                raise InsufficientFunds(
                    f"{address} {token_key}: {proposed} < 0"
                )
        return net

    def _apply(self, atom: Atom, deltas: Dict[Tuple[str, str], Decimal]) -> List[Tuple[str, str]]:
        """Apply validated balance deltas and unique claims. Returns changed pairs."""
        changed = []
        for (address, token_key), delta in deltas.items():
            if delta == 0:
                continue
            token = self.tokens[token_key]
            self.balances[address][token_key] = token.round(self.balances[address][token_key] + delta)
            changed.append((address, token_key))
        for action in atom.actions:
            if isinstance(action, PutUniqueId):
                self.claimed_ids.add(str(action.rri))
        return changed

    def _publish(self, atom: Atom, changed: List[Tuple[str, str]]) -> None:
        """Deliver the atom's records to the parties' streams."""
        for action in atom.actions:
            if isinstance(action, TransferTokens):
                record = TokenTransfer(
                    token=action.token,
                    source=action.source,
                    dest=action.dest,
                    amount=action.amount,
                    attachment=action.attachment,
                    atom_id=atom.atom_id,
                )
                for address in (action.source, action.dest):
                    self._streams.publish((STREAM_TRANSFERS, address), record)
            elif isinstance(action, SendMessage):
                record = DecryptedMessage(
                    source=action.source,
                    dest=action.dest,
                    data=action.data,
                    encrypted=action.encrypt,
                    atom_id=atom.atom_id,
                )
                # A note to self reaches the stream once
                for address in dict.fromkeys((action.source, action.dest)):
                    self._streams.publish((STREAM_MESSAGES, address), record)
        for address, token_key in changed:
            if address == SYSTEM_WALLET:
                continue
            token = self.tokens[token_key]
            self._streams.publish(
                (STREAM_BALANCE, address, token_key),
                Balance(address, token.rri, self.balances[address][token_key]),
            )

    def close(self) -> None:
        """Drop every stream subscription."""
        self._streams.clear()
