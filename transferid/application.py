"""
application.py - The transfer-id demonstration application

Application wires the pieces together:

    start()       system identity + token, participants, initial grants,
                  then one EventPrinter observation per participant
    send_tokens() one tagged transfer through TransferSubmitter
    stop()        releases every subscription at once

The participant registry is built once in start() and exposed read-only.
"""

from __future__ import annotations
from threading import Lock
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union
from decimal import Decimal
import logging

from .core import RRI, MintTokens, TransferTokens, BundleRejected, LedgerError, to_amount
from .client import LedgerClient
from .config import TransferIdConfig
from .ledger import Ledger
from .printer import EventPrinter
from .streams import CompositeSubscription
from .submitter import TransferReceipt, TransferSubmitter

logger = logging.getLogger(__name__)

_EMPTY_SESSIONS: Mapping[str, LedgerClient] = MappingProxyType({})


class Application:
    """
    Runs the transfer-id scenario against a ledger.

    Args:
        config: Settings (default: TransferIdConfig()).
        ledger: Ledger to use. A fresh one is created on every start() if omitted.
        printer: Event printer (default: prints to stdout).

    Example:
        app = Application()
        app.start()
        alice, bob = app.get_users()
        app.send_tokens(alice, bob, 10, "Hello! I sent you 10 tokens")
        app.stop()
    """

    def __init__(
        self,
        config: Optional[TransferIdConfig] = None,
        ledger: Optional[Ledger] = None,
        printer: Optional[EventPrinter] = None,
    ):
        self.config = config or TransferIdConfig()
        self.printer = printer or EventPrinter()
        self._given_ledger = ledger
        self._started = False
        self._lock = Lock()
        self._disposables = CompositeSubscription()
        self.ledger: Optional[Ledger] = ledger
        self.system: Optional[LedgerClient] = None
        self.token: Optional[RRI] = None
        self.sessions: Mapping[str, LedgerClient] = _EMPTY_SESSIONS
        self.submitter: Optional[TransferSubmitter] = None

    @property
    def is_started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Set up identities and tokens and begin observing. Idempotent."""
        with self._lock:
            if self._started:
                return
            self._setup_system()
            users = self._setup_users()
            self._setup_tokens(users)
            self.sessions = MappingProxyType(users)
            self.submitter = TransferSubmitter(
                self.sessions, self.token, claim_unique=self.config.claim_unique
            )
            for name, client in self.sessions.items():
                self._disposables.add(self.printer.observe(name, client, self.token))
            self._started = True
            logger.info("Started with participants %s", ", ".join(self.sessions))

    def stop(self) -> None:
        """Release every subscription and forget the participants. Idempotent."""
        with self._lock:
            if not self._started:
                return
            self._disposables.clear()
            self.sessions = _EMPTY_SESSIONS
            self.submitter = None
            self._started = False
            logger.info("Stopped")

    def get_users(self) -> Tuple[str, ...]:
        return tuple(self.sessions)

    def send_tokens(
        self,
        sender: str,
        receiver: str,
        amount: Union[Decimal, int, float, str],
        message: Optional[str] = None,
    ) -> TransferReceipt:
        """
        Send tokens with an attached transfer id and an optional message.

        Raises:
            LedgerError: If the application has not been started.
            UnknownParticipant: If either label is not a participant.
            BundleRejected: If the ledger rejected the transfer.
        """
        submitter = self.submitter
        if submitter is None:
            raise LedgerError("Application not started")
        return submitter.submit(sender, receiver, amount, message)

    def _setup_system(self) -> None:
        self.ledger = self._given_ledger or Ledger(self.config.ledger_name, verbose=self.config.verbose)
        self.system = LedgerClient(self.ledger, base64_attachments=self.config.base64_attachments)
        self.token = self.system.create_token(
            self.config.token_symbol,
            self.config.token_name,
            self.config.token_description,
            multi_issuance=True,
        )

    def _setup_users(self) -> Dict[str, LedgerClient]:
        return {
            name: LedgerClient(self.ledger, base64_attachments=self.config.base64_attachments)
            for name in self.config.participants
        }

    def _setup_tokens(self, users: Mapping[str, LedgerClient]) -> None:
        """Let the system mint and send the initial grant to every user."""
        amount = to_amount(self.config.initial_grant)
        if amount == 0:
            return
        sender = self.system.address
        for name, client in users.items():
            tx = self.system.create_transaction()
            tx.stage(MintTokens(self.token, sender, amount))
            tx.stage(TransferTokens(self.token, sender, client.address, amount))
            result = tx.commit()
            if not result.applied:
                raise BundleRejected(result.reason)
            logger.debug("Granted %s %s to %s", amount, self.token, name)
